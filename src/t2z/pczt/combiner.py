"""Combiner role: merge independently signed copies of one PCZT."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import TypeVar

from t2z.errors import CombineConflictError, HandleConsumedError
from t2z.pczt.document import ActionEntry, GlobalFields, InputEntry, OutputEntry, Pczt, PcztState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _structure(state: PcztState) -> tuple:
    """Everything except signature slots, proof slots, and unknown entries."""
    g = replace(state.global_fields, anchor=None, zkproof=None, binding_sig=None, unknown=())
    return (
        g,
        tuple(replace(inp, signature=None, unknown=()) for inp in state.inputs),
        tuple(replace(out, unknown=()) for out in state.outputs),
        tuple(replace(action, proof=None, unknown=()) for action in state.actions),
    )


def _union(values: Sequence[T | None], what: str) -> T | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    first = present[0]
    if any(v != first for v in present[1:]):
        msg = f"Conflicting values for {what}"
        raise CombineConflictError(msg)
    return first


def _union_unknown(maps: Sequence[tuple[tuple[bytes, bytes], ...]], what: str) -> tuple[tuple[bytes, bytes], ...]:
    merged: dict[bytes, bytes] = {}
    for entries in maps:
        for key, value in entries:
            if key in merged and merged[key] != value:
                msg = f"Conflicting values for {what} key {key.hex()}"
                raise CombineConflictError(msg)
            merged[key] = value
    return tuple(sorted(merged.items()))


def _merge_slots(
    entries: Sequence[T], fields: Sequence[str], what: str, update: Callable[..., T]
) -> T:
    changes = {
        name: _union([getattr(e, name) for e in entries], f"{what} {name}") for name in fields
    }
    changes["unknown"] = _union_unknown([e.unknown for e in entries], what)  # type: ignore[attr-defined]
    return update(entries[0], **changes)


def combine(pczts: Sequence[Pczt]) -> Pczt:
    """Merge copies of the same proposal into one document.

    Every handle in *pczts* is consumed, including on failure.

    Raises:
        CombineConflictError: If the list is empty, the copies describe
            different transactions, or one slot holds different values.
        HandleConsumedError: If any handle was already dead.
    """
    states: list[PcztState] = []
    dead = 0
    for pczt in pczts:
        if pczt.is_consumed:
            dead += 1
        else:
            states.append(pczt._take())
    if dead:
        msg = f"{dead} of {len(pczts)} handles passed to combine were already consumed"
        raise HandleConsumedError(msg)
    if not states:
        msg = "Nothing to combine"
        raise CombineConflictError(msg)

    base = _structure(states[0])
    for i, state in enumerate(states[1:], start=1):
        if _structure(state) != base:
            msg = f"Document {i} is not a copy of the same proposal"
            raise CombineConflictError(msg)

    global_fields: GlobalFields = _merge_slots(
        [s.global_fields for s in states], ("anchor", "zkproof", "binding_sig"), "global", replace
    )
    inputs: list[InputEntry] = [
        _merge_slots([s.inputs[i] for s in states], ("signature",), f"input {i}", replace)
        for i in range(len(states[0].inputs))
    ]
    outputs: list[OutputEntry] = [
        _merge_slots([s.outputs[i] for s in states], (), f"output {i}", replace)
        for i in range(len(states[0].outputs))
    ]
    actions: list[ActionEntry] = [
        _merge_slots([s.actions[i] for s in states], ("proof",), f"action {i}", replace)
        for i in range(len(states[0].actions))
    ]

    merged = PcztState(
        global_fields=global_fields,
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        actions=tuple(actions),
    )
    signed = sum(1 for inp in merged.inputs if inp.is_signed)
    logger.info("Combined %d PCZTs: %d/%d inputs signed", len(states), signed, len(merged.inputs))
    return Pczt(merged)
