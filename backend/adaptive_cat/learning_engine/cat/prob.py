"""3PL response probability and Fisher information."""

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from adaptive_cat.learning_engine.config import (
    IRT_EXPONENT_LIMIT,
    IRT_GUESSING_MAX,
    IRT_GUESSING_MIN,
    IRT_INFORMATION_FLOOR,
    IRT_SCALING_D,
)

D = IRT_SCALING_D.value


def clamp_guessing(c: float) -> float:
    """Clamp guessing into [0, 0.5]."""
    return max(IRT_GUESSING_MIN.value, min(IRT_GUESSING_MAX.value, float(c)))


def probability(theta: float, a: float, b: float, c: float) -> float:
    """
    3PL: P = c + (1 - c) / (1 + exp(-D * a * (theta - b))).

    c is clamped to [0, 0.5]. Exponents past +/-700 short-circuit to c
    (theta far below b) or 1.0 (theta far above b). Result is in [c, 1].
    """
    c = clamp_guessing(c)
    exponent = -D * float(a) * (float(theta) - float(b))

    if exponent > IRT_EXPONENT_LIMIT.value:
        return c
    if exponent < -IRT_EXPONENT_LIMIT.value:
        return 1.0

    return c + (1.0 - c) / (1.0 + math.exp(exponent))


def information(theta: float, a: float, b: float, c: float) -> float:
    """
    Fisher information of a 3PL item at theta.

    I = D^2 a^2 (P - c)^2 / ((1 - c)^2 P Q)

    Never zero: degenerate points (P <= c, Q <= 0, P >= 1) return the floor.

    Note: this is the legacy expression. The textbook 3PL information has
    Q / P where this has 1 / (P Q), so values keep growing for theta above b
    until P rounds to 1. SEM and stopping thresholds are calibrated against it.
    """
    c = clamp_guessing(c)
    p = probability(theta, a, b, c)
    q = 1.0 - p

    if p <= c or q <= 0 or p >= 1:
        return IRT_INFORMATION_FLOOR.value

    denominator = (1.0 - c) ** 2 * p * q
    if denominator == 0:
        return IRT_INFORMATION_FLOOR.value

    info = (D**2) * (float(a) ** 2) * (p - c) ** 2 / denominator
    # (p - c)^2 can underflow when c == 0 and p is subnormal
    if not info > 0:
        return IRT_INFORMATION_FLOOR.value
    return info


def probability_batch(
    theta: float,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
) -> np.ndarray:
    """Vectorized `probability` over item parameter arrays."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    c = np.clip(np.asarray(c, dtype=np.float64), IRT_GUESSING_MIN.value, IRT_GUESSING_MAX.value)

    exponent = -D * a * (float(theta) - b)
    limit = IRT_EXPONENT_LIMIT.value
    safe = np.clip(exponent, -limit, limit)
    p = c + (1.0 - c) / (1.0 + np.exp(safe))

    p = np.where(exponent > limit, c, p)
    p = np.where(exponent < -limit, 1.0, p)
    return p


def information_batch(
    theta: float,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
) -> np.ndarray:
    """Vectorized `information` with the same floor semantics."""
    a = np.asarray(a, dtype=np.float64)
    c = np.clip(np.asarray(c, dtype=np.float64), IRT_GUESSING_MIN.value, IRT_GUESSING_MAX.value)
    p = probability_batch(theta, a, b, c)
    q = 1.0 - p

    degenerate = (p <= c) | (q <= 0) | (p >= 1)
    denominator = (1.0 - c) ** 2 * p * q
    # Placeholder denominator on degenerate entries; they are replaced by the floor
    safe_denominator = np.where(degenerate | (denominator == 0), 1.0, denominator)
    info = (D**2) * a**2 * (p - c) ** 2 / safe_denominator

    invalid = degenerate | (denominator == 0) | ~(info > 0)
    return np.where(invalid, IRT_INFORMATION_FLOOR.value, info)


def expected_score(theta: float, items: Iterable) -> float:
    """
    Expected number-correct score at theta.

    Args:
        theta: Ability
        items: Objects exposing a, b, c

    Returns:
        Sum of response probabilities
    """
    return sum(probability(theta, item.a, item.b, item.c) for item in items)
