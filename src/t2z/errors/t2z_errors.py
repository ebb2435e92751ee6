"""T2ZError: base exception class for all t2z errors."""

from __future__ import annotations


class T2ZError(Exception):
    """Base error for all PCZT protocol and node operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error category.
    """

    def __init__(self, message: str, *, code: str = "t2z-error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
