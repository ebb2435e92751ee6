"""Error types raised by t2z."""

from t2z.errors.chain_errors import ChainTimeoutError, NodeRPCError
from t2z.errors.protocol_errors import (
    AmountMismatchError,
    BalanceError,
    CodecError,
    CombineConflictError,
    HandleConsumedError,
    IncompleteDocumentError,
    IndexOutOfRangeError,
    InsufficientFundsError,
    InvalidRequestError,
    InvalidSignatureError,
    MemoMismatchError,
    ProvingError,
    RecipientMismatchError,
    UnexpectedOutputError,
    VerificationError,
)
from t2z.errors.t2z_errors import T2ZError

__all__ = [
    "AmountMismatchError",
    "BalanceError",
    "ChainTimeoutError",
    "CodecError",
    "CombineConflictError",
    "HandleConsumedError",
    "IncompleteDocumentError",
    "IndexOutOfRangeError",
    "InsufficientFundsError",
    "InvalidRequestError",
    "InvalidSignatureError",
    "MemoMismatchError",
    "NodeRPCError",
    "ProvingError",
    "RecipientMismatchError",
    "T2ZError",
    "UnexpectedOutputError",
    "VerificationError",
]
