"""ZIP-317 conventional fee calculation."""

from __future__ import annotations

MARGINAL_FEE = 5_000
GRACE_ACTIONS = 2
# Orchard bundles always carry at least this many actions.
MIN_ORCHARD_ACTIONS = 2


def orchard_action_count(num_orchard_outputs: int) -> int:
    """Number of Orchard actions a bundle with *num_orchard_outputs* outputs carries."""
    if num_orchard_outputs == 0:
        return 0
    return max(MIN_ORCHARD_ACTIONS, num_orchard_outputs)


def calculate_fee(
    num_transparent_inputs: int,
    num_transparent_outputs: int,
    num_orchard_outputs: int,
) -> int:
    """Compute the ZIP-317 fee for a transaction shape.

    Args:
        num_transparent_inputs: Number of transparent inputs.
        num_transparent_outputs: Number of transparent outputs (change included).
        num_orchard_outputs: Number of Orchard payments.

    Returns:
        The fee in zatoshis.

    Raises:
        ValueError: If any count is negative.
    """
    counts = (num_transparent_inputs, num_transparent_outputs, num_orchard_outputs)
    if any(n < 0 for n in counts):
        msg = f"Counts must be non-negative, got {counts}"
        raise ValueError(msg)
    logical_actions = max(num_transparent_inputs, num_transparent_outputs) + orchard_action_count(
        num_orchard_outputs
    )
    return MARGINAL_FEE * max(GRACE_ACTIONS, logical_actions)
