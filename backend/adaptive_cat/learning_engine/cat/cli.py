"""CLI for the CAT engine: worked example and simulated sessions."""

import logging
import random
import sys

import click
import numpy as np

from adaptive_cat.core.app_exceptions import AppError
from adaptive_cat.core.config import settings
from adaptive_cat.core.logging import setup_logging
from adaptive_cat.learning_engine.cat.domain import Item, ScoredResponse
from adaptive_cat.learning_engine.cat.estimation import estimate_ability
from adaptive_cat.learning_engine.cat.prob import expected_score, information, probability
from adaptive_cat.learning_engine.cat.repo import InMemoryCatRepository
from adaptive_cat.learning_engine.cat.scoring import (
    classify_ability,
    is_sem_defined,
    reliability,
    standard_error,
)
from adaptive_cat.learning_engine.cat.selection import create_seeded_rng
from adaptive_cat.learning_engine.cat.service import CatSessionService
from adaptive_cat.learning_engine.cat.stopping import should_stop
from adaptive_cat.schemas.cat import CatConfig

logger = logging.getLogger(__name__)

# (is_correct, a, b, c)
DEMO_RESPONSES = [
    (True, 1.5, -1.0, 0.25),
    (True, 1.3, -0.5, 0.25),
    (True, 1.4, 0.0, 0.25),
    (False, 1.6, 0.5, 0.25),
    (True, 1.5, 0.3, 0.25),
    (False, 1.8, 1.0, 0.25),
]


def build_synthetic_pool(
    target_distribution: dict[str, int],
    items_per_category: int,
    seed: int | None,
) -> list[Item]:
    """Random item bank: a ~ U(0.5, 2.0), b ~ N(0, 1) clipped to [-3, 3], c ~ U(0.1, 0.3)."""
    generator = np.random.default_rng(seed)
    categories = list(target_distribution) or ["General"]
    items = []
    for category in categories:
        a = generator.uniform(0.5, 2.0, items_per_category)
        b = np.clip(generator.normal(0.0, 1.0, items_per_category), -3.0, 3.0)
        c = generator.uniform(0.1, 0.3, items_per_category)
        for index in range(items_per_category):
            items.append(
                Item(
                    item_id=f"{category.lower()}-{index + 1:03d}",
                    a=round(float(a[index]), 3),
                    b=round(float(b[index]), 3),
                    c=round(float(c[index]), 3),
                    category=category,
                )
            )
    return items


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: str | None):
    """Computerized adaptive testing CLI."""
    setup_logging(log_level)


@cli.command()
def demo():
    """Walk through probability, estimation, precision and stopping on fixed data."""
    theta, a, b, c = 0.5, 1.5, 0.0, 0.25
    click.echo(f"P(theta={theta}, a={a}, b={b}, c={c}) = {probability(theta, a, b, c):.4f}")
    click.echo(f"I(theta={theta}, a={a}, b={b}, c={c}) = {information(theta, a, b, c):.4f}")
    click.echo("")

    responses = [ScoredResponse(is_correct=r[0], a=r[1], b=r[2], c=r[3]) for r in DEMO_RESPONSES]
    estimate = estimate_ability(responses, initial_theta=0.0)
    sem = standard_error(estimate, responses)

    click.echo(f"Responses: {sum(r.is_correct for r in responses)}/{len(responses)} correct")
    click.echo(f"Estimated theta: {estimate:.4f} ({classify_ability(estimate).value})")
    if is_sem_defined(sem):
        click.echo(f"Standard error: {sem:.4f}")
    else:
        click.echo("Standard error: undefined")
    click.echo(f"Reliability: {reliability(responses, estimate):.4f}")
    click.echo(f"Expected score: {expected_score(estimate, responses):.2f}")
    click.echo("")

    decision = should_stop(15, sem, 10, 20, 0.3)
    click.echo(f"Stop after 15 items (min=10, max=20, target SEM=0.3)? {decision.stop} ({decision.reason.value})")


@cli.command()
@click.option("--true-theta", type=float, default=0.0, help="Ability of the simulated learner")
@click.option("--seed", type=int, default=None, help="Random seed (defaults to CAT_RANDOM_SEED)")
@click.option("--items-per-category", type=int, default=25, help="Synthetic pool size per category")
@click.option("--min-items", type=int, default=None, help="Override CAT_MIN_ITEMS")
@click.option("--max-items", type=int, default=None, help="Override CAT_MAX_ITEMS")
@click.option("--target-sem", type=float, default=None, help="Override CAT_TARGET_SEM")
def simulate(
    true_theta: float,
    seed: int | None,
    items_per_category: int,
    min_items: int | None,
    max_items: int | None,
    target_sem: float | None,
):
    """
    Run one adaptive session against a simulated learner.

    Example:
        adaptive-cat simulate --true-theta 1.2 --seed 42 --target-sem 0.35
    """
    seed = settings.CAT_RANDOM_SEED if seed is None else seed
    overrides = {
        key: value
        for key, value in (("min_items", min_items), ("max_items", max_items), ("target_sem", target_sem))
        if value is not None
    }

    try:
        config = CatConfig.from_settings(settings).model_copy(update=overrides)
        config = CatConfig.model_validate(config.model_dump())
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    pool = build_synthetic_pool(config.target_distribution, items_per_category, seed)
    repository = InMemoryCatRepository(items=pool)
    service = CatSessionService(repository, config=config, rng=create_seeded_rng(seed))
    learner_rng = random.Random(seed)

    try:
        started = service.start_session("simulated-learner", initial_theta=0.0)
        click.echo(f"Session {started.session_id} (true theta={true_theta}, pool={len(pool)})")
        click.echo(f"{'#':<4} {'Item':<20} {'b':>7} {'Correct':<8} {'Theta':>7} {'SEM':>8}")
        click.echo("-" * 60)

        while True:
            step = service.next_item(started.session_id)
            if step.assessment_complete:
                summary = step.summary
                break

            item = step.item
            is_correct = learner_rng.random() < probability(true_theta, item.a, item.b, item.c)
            recorded = service.record_response(started.session_id, item.item_id, is_correct)
            click.echo(
                f"{recorded.total_responses:<4} {str(item.item_id):<20} {item.b:>7.3f} "
                f"{str(is_correct):<8} {recorded.new_theta:>7.3f} {recorded.standard_error:>8.3f}"
            )
    except AppError as e:
        logger.error(f"Simulation failed: {e.message}", exc_info=True)
        click.echo(f"Simulation failed: {e.message}", err=True)
        sys.exit(1)

    click.echo("")
    click.echo(f"{summary.message} ({summary.reason.value})")
    click.echo(f"Items: {summary.total_items}, correct: {summary.correct_answers}, accuracy: {summary.accuracy}%")
    click.echo(f"Final theta: {summary.final_theta:.4f} ({summary.classification.value})")
    click.echo(f"Error vs true theta: {summary.final_theta - true_theta:+.4f}")
    if summary.sem is not None:
        click.echo(f"SEM: {summary.sem}, reliability: {summary.reliability}")


if __name__ == "__main__":
    cli()
