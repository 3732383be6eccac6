"""CAT termination rules."""

from dataclasses import dataclass

from adaptive_cat.learning_engine.constants import StopReason


@dataclass(frozen=True)
class StopDecision:
    """Outcome of a stopping-rule check."""

    stop: bool
    reason: StopReason


def should_stop(
    items_answered: int,
    sem: float,
    min_items: int,
    max_items: int,
    target_sem: float,
) -> StopDecision:
    """
    Decide whether a session has observed enough responses.

    Order matters:
    1. items_answered >= max_items stops regardless of precision
    2. items_answered < min_items continues regardless of precision
    3. sem <= target_sem stops
    4. otherwise continue

    Pool exhaustion is handled by the caller before this check.
    """
    if items_answered >= max_items:
        return StopDecision(stop=True, reason=StopReason.MAX_ITEMS)

    if items_answered < min_items:
        return StopDecision(stop=False, reason=StopReason.MIN_ITEMS_NOT_REACHED)

    if sem <= target_sem:
        return StopDecision(stop=True, reason=StopReason.TARGET_PRECISION)

    return StopDecision(stop=False, reason=StopReason.CONTINUE)
