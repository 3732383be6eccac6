"""Precision, classification and reporting helpers for ability estimates."""

import math
from typing import Iterable, Sequence

from adaptive_cat.learning_engine.cat.prob import information, probability
from adaptive_cat.learning_engine.config import (
    ABILITY_CUT_POINTS,
    FEEDBACK_CHANGE_THRESHOLD,
    RECOMMENDED_DIFFICULTY_HALF_WIDTH,
    SEM_UNDEFINED,
    THETA_DECIMALS,
)
from adaptive_cat.learning_engine.constants import AbilityLevel


def standard_error(theta: float, items: Iterable) -> float:
    """
    Standard error of measurement: 1 / sqrt(total information).

    Args:
        theta: Ability at which precision is evaluated
        items: Administered items (objects exposing a, b, c)

    Returns:
        SEM rounded to 4 decimals, or the 999 sentinel when no items were
        administered or total information is not positive (undefined precision)
    """
    total = 0.0
    count = 0
    for item in items:
        total += information(theta, item.a, item.b, item.c)
        count += 1

    if count == 0 or total <= 0:
        return SEM_UNDEFINED.value

    return round(1.0 / math.sqrt(total), THETA_DECIMALS.value)


def is_sem_defined(sem: float) -> bool:
    """False for the 999 'no information' sentinel."""
    return sem < SEM_UNDEFINED.value


def classify_ability(theta: float) -> AbilityLevel:
    """
    Map theta to a proficiency band.

    theta < -1.0 Below Basic; < 0.5 Basic; < 1.5 Proficient; else Advanced.
    """
    cuts = ABILITY_CUT_POINTS.value
    if theta < cuts["below_basic"]:
        return AbilityLevel.BELOW_BASIC
    if theta < cuts["basic"]:
        return AbilityLevel.BASIC
    if theta < cuts["proficient"]:
        return AbilityLevel.PROFICIENT
    return AbilityLevel.ADVANCED


def recommended_difficulty_range(theta: float) -> tuple[float, float]:
    """Difficulty band (theta - 0.5, theta + 0.5) where items are most informative."""
    half = RECOMMENDED_DIFFICULTY_HALF_WIDTH.value
    return theta - half, theta + half


def reliability(items: Sequence, theta: float) -> float:
    """
    Marginal reliability estimate at theta.

    (total variance - error variance) / total variance, where total variance
    is the sum of item P*Q and error variance is SEM^2. Clamped to [0, 1];
    0 for fewer than two items.
    """
    if len(items) < 2:
        return 0.0

    total_variance = 0.0
    for item in items:
        p = probability(theta, item.a, item.b, item.c)
        total_variance += p * (1.0 - p)

    if total_variance == 0:
        return 0.0

    error_variance = standard_error(theta, items) ** 2
    true_variance = max(0.0, total_variance - error_variance)

    return max(0.0, min(1.0, true_variance / total_variance))


def feedback_message(is_correct: bool, theta_change: float) -> str:
    """Learner-facing feedback for one response."""
    threshold = FEEDBACK_CHANGE_THRESHOLD.value
    if is_correct:
        if theta_change > threshold:
            return "Excellent! That was a challenging question. Moving to a harder question."
        return "Correct! Next question coming up."
    if theta_change < -threshold:
        return "Not quite. Let's try an easier question."
    return "Incorrect. Keep going!"
