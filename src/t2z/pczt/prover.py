"""Prover role: attach Orchard proofs and bundle signatures.

Proof generation itself is delegated to a :class:`ProvingBackend`.  This
module only assembles what the backend needs and checks what it returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from t2z.errors import ProvingError
from t2z.pczt.document import Pczt, PcztState
from t2z.zcash.sighash import shielded_signature_digest
from t2z.zcash.transaction import SIGNATURE_SIZE, OrchardAction, OrchardBundle

logger = logging.getLogger(__name__)

ShieldedSighash = Callable[[Sequence[OrchardAction], bytes], bytes]


@dataclass(frozen=True)
class ActionDescription:
    """What one Orchard action has to create."""

    recipient: bytes | None
    value: int
    memo: bytes

    @property
    def is_dummy(self) -> bool:
        return self.recipient is None


@dataclass(frozen=True)
class BundleProvingRequest:
    """Everything a backend needs to prove and authorize an Orchard bundle.

    Attributes:
        actions: Actions in document order.
        consensus_branch_id: Branch ID the bundle commits to.
        flags: Orchard bundle flags.
        value_balance: Net value balance of the bundle.
        sighash: Returns the shielded signature digest for candidate
            ``(actions, anchor)``; sign it for the binding and spend
            authorization signatures.
    """

    actions: tuple[ActionDescription, ...]
    consensus_branch_id: int
    flags: int
    value_balance: int
    sighash: ShieldedSighash


@dataclass(frozen=True)
class ProvedBundle:
    """What a backend returns: one authorized action per requested action."""

    anchor: bytes
    actions: Sequence[OrchardAction]
    zkproof: bytes
    binding_signature: bytes


@runtime_checkable
class ProvingBackend(Protocol):
    """Orchard proving capability."""

    def prove_bundle(self, request: BundleProvingRequest) -> ProvedBundle: ...


def _sighash_for(state: PcztState) -> ShieldedSighash:
    amounts = state.input_amounts
    scripts = state.input_scripts
    flags = state.global_fields.orchard_flags
    value_balance = state.value_balance

    def sighash(actions: Sequence[OrchardAction], anchor: bytes) -> bytes:
        bundle = OrchardBundle(
            actions=list(actions),
            flags=flags,
            value_balance=value_balance,
            anchor=anchor,
            proof=b"",
            binding_sig=b"\x00" * SIGNATURE_SIZE,
        )
        return shielded_signature_digest(state.to_transaction(orchard=bundle), amounts, scripts)

    return sighash


def _check_result(state: PcztState, result: object) -> ProvedBundle:
    if not isinstance(result, ProvedBundle):
        msg = f"Proving backend returned {type(result).__name__}, expected ProvedBundle"
        raise ProvingError(msg)
    if len(result.actions) != len(state.actions):
        msg = f"Proving backend returned {len(result.actions)} actions, expected {len(state.actions)}"
        raise ProvingError(msg)
    if not all(isinstance(a, OrchardAction) for a in result.actions):
        msg = "Proving backend returned a malformed action"
        raise ProvingError(msg)
    if len(result.anchor) != 32 or len(result.binding_signature) != SIGNATURE_SIZE or not result.zkproof:
        msg = "Proving backend returned a malformed bundle"
        raise ProvingError(msg)
    return result


def prove_transaction(pczt: Pczt, backend: ProvingBackend | None = None) -> Pczt:
    """Prove the document's Orchard actions.  Always consumes *pczt*.

    Documents with no actions, or already proved, pass through unchanged
    and need no backend.

    Raises:
        HandleConsumedError: If *pczt* is dead.
        ProvingError: If a backend is needed but missing, fails, or
            returns a malformed result.
    """
    state = pczt._take()
    if not state.actions:
        logger.debug("No Orchard actions; nothing to prove")
        return Pczt(state)
    if state.is_proved:
        logger.debug("Orchard actions already proved")
        return Pczt(state)
    if backend is None:
        msg = "A proving backend is required for documents with Orchard actions"
        raise ProvingError(msg)

    request = BundleProvingRequest(
        actions=tuple(ActionDescription(a.recipient, a.value, a.memo) for a in state.actions),
        consensus_branch_id=state.global_fields.consensus_branch_id,
        flags=state.global_fields.orchard_flags,
        value_balance=state.value_balance,
        sighash=_sighash_for(state),
    )
    try:
        result = backend.prove_bundle(request)
    except ProvingError:
        raise
    except Exception as exc:
        msg = f"Proving backend failed: {exc}"
        raise ProvingError(msg) from exc
    result = _check_result(state, result)

    proved = replace(
        state,
        global_fields=replace(
            state.global_fields,
            anchor=result.anchor,
            zkproof=result.zkproof,
            binding_sig=result.binding_signature,
        ),
        actions=tuple(
            replace(entry, proof=action)
            for entry, action in zip(state.actions, result.actions, strict=True)
        ),
    )
    logger.info("Proved PCZT: %d Orchard actions", len(proved.actions))
    return Pczt(proved)
