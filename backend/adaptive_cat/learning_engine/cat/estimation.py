"""
Maximum-likelihood ability estimation for the 3PL model.

Implements:
- Newton-Raphson on the 3PL log-likelihood
- Closed-form estimates for all-correct / all-incorrect histories
- Start-point, step-clipping and flat-Hessian safeguards

Every safeguard is a separate function so it can be tested on its own.
All outputs stay in [THETA_MIN, THETA_MAX].
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from adaptive_cat.core.app_exceptions import AbilityEstimationError
from adaptive_cat.learning_engine.cat.domain import ScoredResponse
from adaptive_cat.learning_engine.cat.prob import D, clamp_guessing, probability
from adaptive_cat.learning_engine.config import (
    IRT_DISCRIMINATION_MIN,
    MLE_DEGENERATE_OFFSET,
    MLE_EXTREME_START,
    MLE_HESSIAN_EPSILON,
    MLE_MAX_ITER,
    MLE_MAX_STEP,
    MLE_PROB_EPSILON,
    MLE_RESTART,
    MLE_TOLERANCE,
    THETA_DECIMALS,
    THETA_MAX,
    THETA_MIN,
)

logger = logging.getLogger(__name__)


@dataclass
class NewtonTrace:
    """Diagnostics of one Newton-Raphson run."""

    start: float
    theta: float
    iterations: int = 0
    converged: bool = False
    fallback_steps: int = 0


def clamp_theta(theta: float) -> float:
    """Clamp theta into [-3, 3]."""
    return max(THETA_MIN.value, min(THETA_MAX.value, theta))


def starting_theta(initial_theta: float) -> float:
    """
    Pull extreme starting points inward.

    At |theta| >= 2.5 the likelihood derivatives are nearly flat, so Newton
    starts from +/-1.5 instead.
    """
    if initial_theta >= MLE_EXTREME_START.value:
        return MLE_RESTART.value
    if initial_theta <= -MLE_EXTREME_START.value:
        return -MLE_RESTART.value
    return initial_theta


def degenerate_estimate(responses: Sequence[ScoredResponse]) -> float | None:
    """
    Closed-form estimate for histories where MLE has no finite maximum.

    All correct: min(3, max(b) + 1.5). All incorrect: max(-3, min(b) - 1.5).
    The running max/min starts at the scale bounds, so the estimate for
    items calibrated outside [-3, 3] still lands inside the scale.

    Returns:
        Estimate, or None when the history is mixed
    """
    correct = sum(1 for r in responses if r.is_correct)

    if correct == len(responses):
        max_b = THETA_MIN.value
        for r in responses:
            max_b = max(max_b, r.b)
        return min(THETA_MAX.value, max_b + MLE_DEGENERATE_OFFSET.value)

    if correct == 0:
        min_b = THETA_MAX.value
        for r in responses:
            min_b = min(min_b, r.b)
        return max(THETA_MIN.value, min_b - MLE_DEGENERATE_OFFSET.value)

    return None


def log_likelihood_derivatives(
    theta: float,
    responses: Sequence[ScoredResponse],
) -> tuple[float, float]:
    """
    First and second derivative of the 3PL log-likelihood at theta.

    L'  = sum D a (u - P) P* / P
    L'' = sum -(D a)^2 P*^2 Q
    with P* = (P - c) / (1 - c).

    Returns:
        Tuple of (first, second)
    """
    first = 0.0
    second = 0.0

    for r in responses:
        u = 1.0 if r.is_correct else 0.0
        a = max(IRT_DISCRIMINATION_MIN.value, float(r.a))
        c = clamp_guessing(r.c)

        p = probability(theta, a, r.b, c)
        q = 1.0 - p

        eps = MLE_PROB_EPSILON.value
        p = max(eps, min(1.0 - eps, p))
        q = max(eps, min(1.0 - eps, q))

        if 1.0 - c == 0:
            continue
        p_star = (p - c) / (1.0 - c)

        first += D * a * (u - p) * p_star / p
        second -= (D * a) ** 2 * p_star * p_star * q

    return first, second


def newton_step(first: float, second: float) -> float:
    """
    Raw Newton-Raphson step, with a gradient fallback on a flat Hessian.

    |second| < 0.0001 gives a fixed +/-0.5 step in the sign of `first`.
    """
    if abs(second) < MLE_HESSIAN_EPSILON.value:
        return MLE_MAX_STEP.value if first > 0 else -MLE_MAX_STEP.value
    return -first / second


def clip_step(step: float) -> float:
    """Limit a step to +/-0.5 to prevent overshoot."""
    limit = MLE_MAX_STEP.value
    if abs(step) > limit:
        return limit if step > 0 else -limit
    return step


def newton_raphson(
    responses: Sequence[ScoredResponse],
    start: float,
    max_iter: int = MLE_MAX_ITER.value,
    tol: float = MLE_TOLERANCE.value,
) -> NewtonTrace:
    """
    Iterate Newton-Raphson from `start` on a mixed response history.

    Theta is clamped after every update. Stops when |step| < tol or after
    max_iter iterations.
    """
    trace = NewtonTrace(start=start, theta=start)
    theta = start

    for iteration in range(max_iter):
        first, second = log_likelihood_derivatives(theta, responses)
        if abs(second) < MLE_HESSIAN_EPSILON.value:
            trace.fallback_steps += 1

        step = clip_step(newton_step(first, second))
        theta = clamp_theta(theta + step)
        trace.iterations = iteration + 1

        if abs(step) < tol:
            trace.converged = True
            break

    trace.theta = theta
    return trace


def estimate_ability(
    responses: Sequence[ScoredResponse],
    initial_theta: float | None = 0.0,
    max_iter: int = MLE_MAX_ITER.value,
    tol: float = MLE_TOLERANCE.value,
) -> float:
    """
    Estimate ability by maximum likelihood.

    Args:
        responses: Scored responses (correctness + a, b, c)
        initial_theta: Starting estimate; returned unchanged for an empty history
        max_iter: Maximum Newton-Raphson iterations
        tol: Convergence threshold on |step|

    Returns:
        Theta in [-3, 3], rounded to 4 decimals

    Raises:
        AbilityEstimationError: No responses and no initial theta
    """
    if not responses:
        if initial_theta is None:
            raise AbilityEstimationError(
                "Cannot estimate ability without responses or an initial theta"
            )
        return initial_theta

    start = starting_theta(0.0 if initial_theta is None else initial_theta)

    shortcut = degenerate_estimate(responses)
    if shortcut is not None:
        return round(clamp_theta(shortcut), THETA_DECIMALS.value)

    trace = newton_raphson(responses, start, max_iter=max_iter, tol=tol)
    if not trace.converged:
        logger.debug(
            f"Newton-Raphson stopped after {trace.iterations} iterations without converging "
            f"(start={trace.start}, theta={trace.theta:.4f}, n={len(responses)}, "
            f"fallback_steps={trace.fallback_steps})"
        )

    return round(clamp_theta(trace.theta), THETA_DECIMALS.value)
