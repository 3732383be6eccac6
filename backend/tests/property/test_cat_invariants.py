"""Property-based tests for CAT engine invariants."""

import math
import random

from hypothesis import given, settings, strategies as st

from adaptive_cat.learning_engine.cat.domain import Item, ScoredResponse
from adaptive_cat.learning_engine.cat.estimation import estimate_ability
from adaptive_cat.learning_engine.cat.prob import information, probability
from adaptive_cat.learning_engine.cat.scoring import standard_error
from adaptive_cat.learning_engine.cat.selection import select_next_item
from adaptive_cat.learning_engine.cat.stopping import should_stop

finite = dict(allow_nan=False, allow_infinity=False)

thetas = st.floats(min_value=-3.0, max_value=3.0, **finite)
discriminations = st.floats(min_value=0.1, max_value=2.5, **finite)
difficulties = st.floats(min_value=-3.0, max_value=3.0, **finite)
guessing = st.floats(min_value=0.0, max_value=0.5, **finite)

scored_responses = st.lists(
    st.builds(
        ScoredResponse,
        is_correct=st.booleans(),
        a=discriminations,
        b=difficulties,
        c=guessing,
    ),
    min_size=1,
    max_size=15,
)


@settings(max_examples=200, deadline=None)
@given(
    theta=st.floats(min_value=-1000.0, max_value=1000.0, **finite),
    a=discriminations,
    b=difficulties,
    c=st.floats(min_value=-1.0, max_value=1.0, **finite),
)
def test_probability_bounded(theta: float, a: float, b: float, c: float) -> None:
    """
    Property: probability stays in [clamp(c), 1] and is finite.

    Invariants:
    - c is clamped to [0, 0.5] before use
    - Extreme exponents never overflow
    """
    p = probability(theta, a, b, c)
    clamped = max(0.0, min(0.5, c))

    assert math.isfinite(p)
    assert clamped <= p <= 1.0


@settings(max_examples=100, deadline=None)
@given(theta=thetas, a=discriminations, b=difficulties, c=guessing)
def test_probability_strictly_increasing(theta: float, a: float, b: float, c: float) -> None:
    """Property: a higher theta gives a strictly higher probability (a > 0)."""
    assert probability(theta + 0.05, a, b, c) > probability(theta, a, b, c)


@settings(max_examples=200, deadline=None)
@given(
    theta=st.floats(min_value=-1000.0, max_value=1000.0, **finite),
    a=discriminations,
    b=difficulties,
    c=guessing,
)
def test_information_positive(theta: float, a: float, b: float, c: float) -> None:
    """Property: information is never zero, negative or NaN."""
    info = information(theta, a, b, c)
    assert info > 0
    assert not math.isnan(info)


@settings(max_examples=100, deadline=None)
@given(responses=scored_responses, initial_theta=st.floats(min_value=-5.0, max_value=5.0, **finite))
def test_estimate_within_scale(responses, initial_theta: float) -> None:
    """
    Property: any non-empty history yields theta in [-3, 3] rounded to 4 decimals.
    """
    theta = estimate_ability(responses, initial_theta=initial_theta)

    assert -3.0 <= theta <= 3.0
    assert theta == round(theta, 4)


@settings(max_examples=100, deadline=None)
@given(
    items=st.lists(
        st.builds(Item, item_id=st.uuids(), a=discriminations, b=difficulties, c=guessing),
        min_size=1,
        max_size=20,
        unique_by=lambda item: item.item_id,
    ),
    theta=thetas,
    seed=st.integers(min_value=0, max_value=2**32 - 1),
)
def test_selection_returns_candidate(items, theta: float, seed: int) -> None:
    """Property: the selected item is always one of the candidates."""
    chosen = select_next_item(theta, items, rng=random.Random(seed))
    assert chosen in items


@settings(max_examples=100, deadline=None)
@given(
    items=st.lists(
        st.builds(Item, item_id=st.uuids(), a=discriminations, b=difficulties, c=guessing),
        min_size=1,
        max_size=20,
    ),
    theta=thetas,
)
def test_sem_positive_and_monotone(items, theta: float) -> None:
    """Property: SEM is non-negative and never grows when an item is added."""
    sem_all = standard_error(theta, items)
    sem_fewer = standard_error(theta, items[:-1])

    assert sem_all >= 0
    assert sem_all <= sem_fewer


@settings(max_examples=200, deadline=None)
@given(
    answered=st.integers(min_value=0, max_value=50),
    sem=st.floats(min_value=0.0, max_value=999.0, **finite),
    min_items=st.integers(min_value=0, max_value=25),
    extra=st.integers(min_value=0, max_value=25),
    target_sem=st.floats(min_value=0.01, max_value=2.0, **finite),
)
def test_stopping_bounds(answered: int, sem: float, min_items: int, extra: int, target_sem: float) -> None:
    """
    Property: sessions never stop before min_items and always stop at max_items.
    """
    max_items = max(1, min_items + extra)
    min_items = min(min_items, max_items)
    decision = should_stop(answered, sem, min_items, max_items, target_sem)

    if answered >= max_items:
        assert decision.stop
    elif answered < min_items:
        assert not decision.stop
    else:
        assert decision.stop == (sem <= target_sem)
