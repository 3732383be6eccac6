"""Tests for maximum-likelihood ability estimation."""

import logging

import pytest

from adaptive_cat.core.app_exceptions import AbilityEstimationError
from adaptive_cat.learning_engine.cat.estimation import (
    clamp_theta,
    clip_step,
    degenerate_estimate,
    estimate_ability,
    log_likelihood_derivatives,
    newton_raphson,
    newton_step,
    starting_theta,
)
from tests.helpers.items import responses

MIXED = responses(
    (True, 1.2, -0.5, 0.25),
    (True, 1.5, 0.0, 0.20),
    (False, 1.8, 0.5, 0.25),
    (True, 1.3, 0.3, 0.22),
    (False, 1.6, 1.0, 0.25),
    (True, 1.4, 0.2, 0.23),
)

# P ~ 1 everywhere on the scale: the Hessian stays below the flatness threshold
FLAT = responses((True, 0.5, -40.0, 0.2), (False, 0.5, -40.0, 0.2))


class TestEmptyHistory:
    def test_returns_initial_theta_unchanged(self):
        assert estimate_ability([], initial_theta=0.7) == 0.7
        # No clamping or rounding on the pass-through
        assert estimate_ability([], initial_theta=2.71828) == 2.71828

    def test_no_initial_theta_raises(self):
        with pytest.raises(AbilityEstimationError) as exc_info:
            estimate_ability([], initial_theta=None)
        assert exc_info.value.code == "ABILITY_ESTIMATION_ERROR"
        assert isinstance(exc_info.value, ValueError)


class TestStartingPoint:
    def test_extreme_starts_pulled_inward(self):
        assert starting_theta(2.5) == 1.5
        assert starting_theta(2.9) == 1.5
        assert starting_theta(-2.5) == -1.5
        assert starting_theta(-3.0) == -1.5

    def test_moderate_start_kept(self):
        assert starting_theta(1.0) == 1.0
        assert starting_theta(-2.4) == -2.4

    def test_extreme_start_matches_restart_point(self):
        assert estimate_ability(MIXED, initial_theta=2.9) == estimate_ability(MIXED, initial_theta=1.5)
        assert estimate_ability(MIXED, initial_theta=-2.7) == estimate_ability(MIXED, initial_theta=-1.5)


class TestDegenerateHistories:
    """All-correct and all-incorrect histories have no finite MLE."""

    def test_all_correct(self):
        history = responses((True, 1.0, -0.5, 0.2), (True, 1.0, 0.0, 0.2), (True, 1.0, 1.0, 0.2))
        assert estimate_ability(history) == 2.5

    def test_all_correct_offsets_hardest_item(self):
        history = responses((True, 1.0, -1.0, 0.2), (True, 1.0, 0.0, 0.2), (True, 1.0, 0.5, 0.2))
        assert estimate_ability(history) == 2.0

    def test_all_incorrect_offsets_easiest_item(self):
        history = responses((False, 1.0, -0.5, 0.2), (False, 1.0, 0.0, 0.2), (False, 1.0, 0.5, 0.2))
        assert estimate_ability(history) == -2.0

    def test_all_correct_capped(self):
        history = responses((True, 1.0, 2.0, 0.2))
        assert estimate_ability(history) == 3.0

    def test_all_incorrect(self):
        history = responses((False, 1.0, 0.5, 0.2), (False, 1.0, -1.0, 0.2))
        assert estimate_ability(history) == -2.5

    def test_all_incorrect_capped(self):
        history = responses((False, 1.0, -2.0, 0.2))
        assert estimate_ability(history) == -3.0

    def test_running_extreme_seeded_at_scale_bounds(self):
        """Items calibrated outside [-3, 3] cannot push the estimate past the offset."""
        assert degenerate_estimate(responses((True, 1.0, -4.0, 0.2))) == -1.5
        assert degenerate_estimate(responses((False, 1.0, 4.0, 0.2))) == 1.5

    def test_mixed_history_has_no_shortcut(self):
        assert degenerate_estimate(MIXED) is None

    def test_ignores_initial_theta(self):
        history = responses((True, 1.0, 0.0, 0.2))
        assert estimate_ability(history, initial_theta=-2.0) == estimate_ability(history, initial_theta=2.0)


class TestNewtonRaphson:
    def test_flat_hessian_falls_back_to_gradient_step(self):
        assert newton_step(0.3, -0.00001) == 0.5
        assert newton_step(-0.3, 0.0) == -0.5

    def test_regular_newton_step(self):
        assert newton_step(1.0, -2.0) == pytest.approx(0.5)
        assert newton_step(-0.4, -2.0) == pytest.approx(-0.2)

    def test_step_clipping(self):
        assert clip_step(2.0) == 0.5
        assert clip_step(-7.0) == -0.5
        assert clip_step(0.2) == 0.2

    def test_clamp_theta(self):
        assert clamp_theta(4.0) == 3.0
        assert clamp_theta(-4.0) == -3.0
        assert clamp_theta(0.25) == 0.25

    def test_second_derivative_non_positive(self):
        for theta in (-3.0, -1.0, 0.0, 1.0, 3.0):
            _, second = log_likelihood_derivatives(theta, MIXED)
            assert second <= 0

    def test_converges_on_mixed_history(self):
        trace = newton_raphson(MIXED, start=0.0)
        assert trace.converged
        assert trace.iterations <= 50
        assert -3.0 <= trace.theta <= 3.0

    def test_estimate_is_stationary_point(self):
        theta = estimate_ability(MIXED, initial_theta=0.0)
        first, _ = log_likelihood_derivatives(theta, MIXED)
        assert abs(first) < 0.02

    def test_estimate_rounded_to_four_decimals(self):
        theta = estimate_ability(MIXED, initial_theta=0.0)
        assert theta == round(theta, 4)

    def test_iteration_cap_respected(self):
        trace = newton_raphson(MIXED, start=-1.5, max_iter=1)
        assert trace.iterations == 1

    def test_flat_hessian_steps_counted(self):
        trace = newton_raphson(FLAT, start=0.0, max_iter=10)
        assert trace.fallback_steps == 10
        assert not trace.converged
        assert trace.theta == -3.0

    def test_non_convergence_logged_with_fallback_count(self, caplog):
        caplog.set_level(logging.DEBUG, logger="adaptive_cat.learning_engine.cat.estimation")
        assert estimate_ability(FLAT, initial_theta=0.0, max_iter=10) == -3.0
        assert any("fallback_steps=10" in record.getMessage() for record in caplog.records)


class TestEstimateOrdering:
    def test_more_correct_answers_give_higher_theta(self):
        low = responses(
            (True, 1.0, -1.0, 0.2),
            (False, 1.0, 0.0, 0.2),
            (False, 1.0, 1.0, 0.2),
            (False, 1.0, 2.0, 0.2),
        )
        high = responses(
            (True, 1.0, -1.0, 0.2),
            (True, 1.0, 0.0, 0.2),
            (True, 1.0, 1.0, 0.2),
            (False, 1.0, 2.0, 0.2),
        )
        assert estimate_ability(high) > estimate_ability(low)

    def test_result_within_scale(self):
        theta = estimate_ability(MIXED, initial_theta=0.0)
        assert -3.0 <= theta <= 3.0
