"""Payment requests: what the proposer is asked to pay.

A :class:`TransactionRequest` is mutable only until the Builder consumes
it.  After that it is locked, so the Verifier later compares the document
against exactly what was proposed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from t2z.errors import InvalidRequestError
from t2z.zcash.address import Recipient, parse_recipient

if TYPE_CHECKING:
    from t2z.config.settings import ProtocolConfig

COIN = 100_000_000
MAX_MONEY = 21_000_000 * COIN

MEMO_SIZE = 512
# ZIP-302: a memo starting with 0xF6 followed by zeros means "no memo".
EMPTY_MEMO = b"\xf6" + b"\x00" * (MEMO_SIZE - 1)


def encode_memo(memo: str | None) -> bytes:
    """Encode a text memo as the 512-byte ZIP-302 field.

    Raises:
        InvalidRequestError: If the UTF-8 encoding is longer than 512 bytes.
    """
    if not memo:
        return EMPTY_MEMO
    raw = memo.encode("utf-8")
    if len(raw) > MEMO_SIZE:
        msg = f"Memo is {len(raw)} bytes, the limit is {MEMO_SIZE}"
        raise InvalidRequestError(msg)
    return raw + b"\x00" * (MEMO_SIZE - len(raw))


def decode_memo(field: bytes) -> str | None:
    """Inverse of :func:`encode_memo` for text memos; None for the empty memo."""
    if field == EMPTY_MEMO:
        return None
    return field.rstrip(b"\x00").decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Payment:
    """A single payment (ZIP-321 style).

    Attributes:
        address: Transparent or unified recipient address.
        amount: Value in zatoshis.
        memo: Optional text memo, Orchard recipients only.
        label: Optional label for the recipient (not committed on chain).
        message: Optional message for the payer (not committed on chain).
    """

    address: str
    amount: int
    memo: str | None = None
    label: str | None = None
    message: str | None = None

    def resolve(self) -> Recipient:
        """Validate the payment and resolve its destination.

        Raises:
            InvalidRequestError: On a bad amount, address, or memo.
        """
        if not 1 <= self.amount <= MAX_MONEY:
            msg = f"Payment amount {self.amount} out of range 1..{MAX_MONEY}"
            raise InvalidRequestError(msg)
        try:
            recipient = parse_recipient(self.address)
        except ValueError as exc:
            msg = f"Invalid recipient address {self.address!r}: {exc}"
            raise InvalidRequestError(msg) from exc
        if self.memo:
            if not recipient.accepts_memo:
                msg = f"Memos are only allowed for shielded recipients: {self.address}"
                raise InvalidRequestError(msg)
            encode_memo(self.memo)
        return recipient


class TransactionRequest:
    """An ordered, non-empty list of payments plus network parameters.

    Args:
        payments: The payments to make.
        target_height: Block height the transaction targets; None selects
            the latest known network upgrade and disables expiry.
        use_mainnet: Use mainnet consensus parameters (regtest does too).

    Raises:
        InvalidRequestError: If *payments* is empty.
    """

    def __init__(
        self,
        payments: Iterable[Payment],
        *,
        target_height: int | None = None,
        use_mainnet: bool = True,
    ) -> None:
        self._payments = tuple(payments)
        if not self._payments:
            msg = "A transaction request needs at least one payment"
            raise InvalidRequestError(msg)
        for payment in self._payments:
            if not isinstance(payment, Payment):
                msg = f"Expected Payment, got {type(payment).__name__}"
                raise InvalidRequestError(msg)
        self._target_height: int | None = None
        self._use_mainnet = use_mainnet
        self._locked = False
        if target_height is not None:
            self.set_target_height(target_height)

    @classmethod
    def with_target_height(cls, payments: Iterable[Payment], height: int) -> Self:
        return cls(payments, target_height=height)

    @classmethod
    def from_config(
        cls,
        payments: Iterable[Payment],
        config: ProtocolConfig,
        *,
        target_height: int | None = None,
    ) -> Self:
        """Build a request using the network selected in *config*."""
        return cls(payments, target_height=target_height, use_mainnet=config.use_mainnet)

    # -- Properties ------------------------------------------------------

    @property
    def payments(self) -> tuple[Payment, ...]:
        return self._payments

    @property
    def target_height(self) -> int | None:
        return self._target_height

    @property
    def use_mainnet(self) -> bool:
        return self._use_mainnet

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def total_amount(self) -> int:
        return sum(p.amount for p in self._payments)

    # -- Setters ---------------------------------------------------------

    def _check_unlocked(self) -> None:
        if self._locked:
            msg = "Transaction request was already used to propose a transaction"
            raise InvalidRequestError(msg)

    def set_target_height(self, height: int) -> None:
        self._check_unlocked()
        if height < 0:
            msg = f"Target height must be non-negative, got {height}"
            raise InvalidRequestError(msg)
        self._target_height = height

    def set_use_mainnet(self, use_mainnet: bool) -> None:
        self._check_unlocked()
        self._use_mainnet = use_mainnet

    def lock(self) -> None:
        """Freeze the request (called by the Builder)."""
        self._locked = True

    def __repr__(self) -> str:
        return (
            f"TransactionRequest(payments={len(self._payments)}, total={self.total_amount}, "
            f"target_height={self._target_height}, use_mainnet={self._use_mainnet})"
        )
