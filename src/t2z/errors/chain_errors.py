"""Node RPC errors."""

from __future__ import annotations

from t2z.errors.t2z_errors import T2ZError


class NodeRPCError(T2ZError):
    """Error returned by (or while talking to) the node's JSON-RPC interface.

    Attributes:
        rpc_code: JSON-RPC error code, when the node supplied one.
    """

    def __init__(self, message: str, *, rpc_code: int | None = None) -> None:
        super().__init__(message, code="node-rpc-error")
        self.rpc_code = rpc_code


class ChainTimeoutError(T2ZError):
    """A polling wait on the node ran past its caller-supplied timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="chain-timeout")
