"""The PCZT document and its move-only handle.

A :class:`PcztState` is an immutable snapshot of a partially constructed
transaction: global fields, transparent inputs and outputs, and Orchard
actions.  Roles produce new snapshots with :func:`dataclasses.replace`.

A :class:`Pczt` owns exactly one state.  Consuming roles take the state out
before doing any work, so the handle is dead whether they succeed or fail.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, NoReturn

from t2z.errors import HandleConsumedError, IncompleteDocumentError
from t2z.zcash.sighash import SIGHASH_ALL
from t2z.zcash.transaction import (
    DEFAULT_SEQUENCE,
    FLAG_OUTPUTS_ENABLED,
    TX_VERSION_V5,
    V5_VERSION_GROUP_ID,
    OrchardAction,
    OrchardBundle,
    Transaction,
    TxInput,
    TxOutput,
)

PCZT_FORMAT_VERSION = 1

Unknown = tuple[tuple[bytes, bytes], ...]

# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GlobalFields:
    """Transaction-wide fields.

    Attributes:
        consensus_branch_id: Branch ID signatures commit to.
        expiry_height: Expiry height (0 = never).
        use_mainnet: Network parameters the document was built for.
        fee: Fee in zatoshis the proposer committed to.
        anchor: Orchard anchor, set by the Prover.
        zkproof: Aggregated Orchard proof, set by the Prover.
        binding_sig: Orchard binding signature, set by the Prover.
    """

    consensus_branch_id: int
    expiry_height: int
    use_mainnet: bool
    fee: int
    tx_version: int = TX_VERSION_V5
    version_group_id: int = V5_VERSION_GROUP_ID
    lock_time: int = 0
    orchard_flags: int = FLAG_OUTPUTS_ENABLED
    anchor: bytes | None = None
    zkproof: bytes | None = None
    binding_sig: bytes | None = None
    unknown: Unknown = ()


@dataclass(frozen=True)
class InputEntry:
    """A transparent input and its signature slot."""

    txid: bytes
    vout: int
    value: int
    script_pubkey: bytes
    pubkey: bytes
    sequence: int = DEFAULT_SEQUENCE
    sighash_type: int = SIGHASH_ALL
    signature: bytes | None = None
    unknown: Unknown = ()

    @property
    def is_signed(self) -> bool:
        return self.signature is not None


@dataclass(frozen=True)
class OutputEntry:
    """A transparent output."""

    value: int
    script_pubkey: bytes
    user_address: str | None = None
    unknown: Unknown = ()


@dataclass(frozen=True)
class ActionEntry:
    """An Orchard action: the planned note plus its proof slot.

    Attributes:
        recipient: 43-byte raw Orchard address, None for a padding action.
        value: Note value in zatoshis.
        memo: 512-byte memo field.
        user_address: The address string the payer asked to pay.
        proof: Action description and spend authorization, set by the Prover.
    """

    recipient: bytes | None
    value: int
    memo: bytes
    user_address: str | None = None
    proof: OrchardAction | None = None
    unknown: Unknown = ()

    @property
    def is_dummy(self) -> bool:
        return self.recipient is None


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PcztState:
    """A complete PCZT snapshot."""

    global_fields: GlobalFields
    inputs: tuple[InputEntry, ...] = ()
    outputs: tuple[OutputEntry, ...] = ()
    actions: tuple[ActionEntry, ...] = ()

    @property
    def value_balance(self) -> int:
        """Net Orchard value balance (negative: value enters the pool)."""
        return -sum(action.value for action in self.actions)

    @property
    def is_proved(self) -> bool:
        if not self.actions:
            return True
        g = self.global_fields
        return (
            g.anchor is not None
            and g.zkproof is not None
            and g.binding_sig is not None
            and all(action.proof is not None for action in self.actions)
        )

    @property
    def is_fully_signed(self) -> bool:
        return all(inp.is_signed for inp in self.inputs)

    @property
    def total_input_value(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def total_output_value(self) -> int:
        """Value leaving the transparent inputs: transparent outputs plus shielded value."""
        return sum(out.value for out in self.outputs) + sum(a.value for a in self.actions)

    def orchard_bundle(self) -> OrchardBundle | None:
        """The proved Orchard bundle, or None when there are no actions.

        Raises:
            IncompleteDocumentError: If the actions have not been proved yet.
        """
        if not self.actions:
            return None
        if not self.is_proved:
            msg = "Orchard actions have not been proved"
            raise IncompleteDocumentError(msg)
        g = self.global_fields
        return OrchardBundle(
            actions=[action.proof for action in self.actions],  # type: ignore[misc]
            flags=g.orchard_flags,
            value_balance=self.value_balance,
            anchor=g.anchor,  # type: ignore[arg-type]
            proof=g.zkproof,  # type: ignore[arg-type]
            binding_sig=g.binding_sig,  # type: ignore[arg-type]
        )

    def to_transaction(
        self,
        orchard: OrchardBundle | None = None,
        script_sigs: Sequence[bytes] | None = None,
    ) -> Transaction:
        """Assemble a v5 transaction from this document."""
        g = self.global_fields
        sigs = list(script_sigs) if script_sigs is not None else [b""] * len(self.inputs)
        return Transaction(
            consensus_branch_id=g.consensus_branch_id,
            lock_time=g.lock_time,
            expiry_height=g.expiry_height,
            inputs=[
                TxInput(inp.txid, inp.vout, script_sig=sig, sequence=inp.sequence)
                for inp, sig in zip(self.inputs, sigs, strict=True)
            ],
            outputs=[TxOutput(out.value, out.script_pubkey) for out in self.outputs],
            orchard=orchard,
            version_group_id=g.version_group_id,
        )

    @property
    def input_amounts(self) -> list[int]:
        return [inp.value for inp in self.inputs]

    @property
    def input_scripts(self) -> list[bytes]:
        return [inp.script_pubkey for inp in self.inputs]


# ---------------------------------------------------------------------------
# Handle
# ---------------------------------------------------------------------------


class Pczt:
    """Move-only handle around a :class:`PcztState`.

    Duplicating a handle is refused; the only way to get an independent
    copy is to serialize and parse.
    """

    __slots__ = ("_state",)

    def __init__(self, state: PcztState) -> None:
        self._state: PcztState | None = state

    # -- Ownership -------------------------------------------------------

    @property
    def is_consumed(self) -> bool:
        return self._state is None

    def _peek(self) -> PcztState:
        if self._state is None:
            raise HandleConsumedError
        return self._state

    def _take(self) -> PcztState:
        state = self._peek()
        self._state = None
        return state

    def free(self) -> None:
        """Release the document.  Safe to call on a consumed handle."""
        self._state = None

    def _refuse_copy(self, *_args: Any) -> NoReturn:
        msg = "Pczt handles cannot be copied; serialize and parse instead"
        raise TypeError(msg)

    __copy__ = _refuse_copy
    __deepcopy__ = _refuse_copy
    __reduce__ = _refuse_copy
    __reduce_ex__ = _refuse_copy

    # -- Read-only views -------------------------------------------------

    @property
    def state(self) -> PcztState:
        """The current snapshot (immutable)."""
        return self._peek()

    @property
    def inputs(self) -> tuple[InputEntry, ...]:
        return self._peek().inputs

    @property
    def outputs(self) -> tuple[OutputEntry, ...]:
        return self._peek().outputs

    @property
    def actions(self) -> tuple[ActionEntry, ...]:
        return self._peek().actions

    @property
    def fee(self) -> int:
        return self._peek().global_fields.fee

    @property
    def consensus_branch_id(self) -> int:
        return self._peek().global_fields.consensus_branch_id

    @property
    def expiry_height(self) -> int:
        return self._peek().global_fields.expiry_height

    @property
    def is_proved(self) -> bool:
        return self._peek().is_proved

    @property
    def is_fully_signed(self) -> bool:
        return self._peek().is_fully_signed

    def __repr__(self) -> str:
        if self._state is None:
            return "Pczt(<consumed>)"
        s = self._state
        return (
            f"Pczt(inputs={len(s.inputs)}, outputs={len(s.outputs)}, "
            f"actions={len(s.actions)}, fee={s.global_fields.fee})"
        )
