"""PCZT protocol errors, one class per failure category."""

from __future__ import annotations

from t2z.errors.t2z_errors import T2ZError


class InvalidRequestError(T2ZError):
    """Malformed payment request, input list or change address."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid-request")


class InsufficientFundsError(T2ZError):
    """Input value cannot cover the payments plus the fee."""

    def __init__(self, message: str, *, required: int = 0, available: int = 0) -> None:
        super().__init__(message, code="insufficient-funds")
        self.required = required
        self.available = available


class ProvingError(T2ZError):
    """Shielded proof generation failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="proving-error")


class VerificationError(T2ZError):
    """The document does not match the trusted payment request."""

    def __init__(self, message: str, *, code: str = "verification-error") -> None:
        super().__init__(message, code=code)


class AmountMismatchError(VerificationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="amount-mismatch")


class RecipientMismatchError(VerificationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="recipient-mismatch")


class MemoMismatchError(VerificationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="memo-mismatch")


class UnexpectedOutputError(VerificationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="unexpected-output")


class IndexOutOfRangeError(T2ZError):
    """Sighash or signature requested for an input that does not exist."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(
            f"input index {index} out of range (document has {count} inputs)",
            code="index-out-of-range",
        )
        self.index = index
        self.count = count


class InvalidSignatureError(T2ZError):
    """Signature is malformed or does not verify against the input's key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="invalid-signature")


class CombineConflictError(T2ZError):
    """Documents handed to combine are not copies of the same proposal."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="combine-conflict")


class IncompleteDocumentError(T2ZError):
    """A signature or proof slot required by the operation is still empty."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="incomplete-document")


class BalanceError(T2ZError):
    """Inputs do not equal outputs plus fee."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="balance-error")


class CodecError(T2ZError):
    """Malformed bytes handed to a parser."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="codec-error")


class HandleConsumedError(T2ZError):
    """A PCZT handle was used after a consuming operation retired it."""

    def __init__(self, message: str = "PCZT handle has already been consumed") -> None:
        super().__init__(message, code="handle-consumed")
