"""Tests for CAT termination rules."""

import pytest

from adaptive_cat.learning_engine.cat.stopping import should_stop
from adaptive_cat.learning_engine.constants import StopReason


@pytest.mark.parametrize(
    "answered, sem, expected_stop, expected_reason",
    [
        (20, 0.9, True, StopReason.MAX_ITEMS),
        (25, 0.1, True, StopReason.MAX_ITEMS),
        (5, 0.01, False, StopReason.MIN_ITEMS_NOT_REACHED),
        (9, 999.0, False, StopReason.MIN_ITEMS_NOT_REACHED),
        (10, 0.3, True, StopReason.TARGET_PRECISION),
        (15, 0.25, True, StopReason.TARGET_PRECISION),
        (15, 0.31, False, StopReason.CONTINUE),
        (12, 999.0, False, StopReason.CONTINUE),
    ],
)
def test_stopping_rule_order(answered, sem, expected_stop, expected_reason):
    decision = should_stop(answered, sem, min_items=10, max_items=20, target_sem=0.3)
    assert decision.stop is expected_stop
    assert decision.reason == expected_reason


def test_maximum_wins_over_precision():
    """Hitting the cap reports max items even when precision is also met."""
    decision = should_stop(20, 0.1, min_items=10, max_items=20, target_sem=0.3)
    assert decision.reason == StopReason.MAX_ITEMS


def test_minimum_blocks_precision_stop():
    decision = should_stop(3, 0.0001, min_items=4, max_items=10, target_sem=0.3)
    assert not decision.stop


def test_zero_minimum():
    decision = should_stop(0, 999.0, min_items=0, max_items=10, target_sem=0.3)
    assert decision == should_stop(0, 999.0, 0, 10, 0.3)
    assert decision.reason == StopReason.CONTINUE


def test_worked_example():
    decision = should_stop(15, 0.28, 10, 20, 0.3)
    assert decision.stop
    assert decision.reason.value == "target precision achieved"
