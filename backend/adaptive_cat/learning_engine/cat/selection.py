"""
Next-item selection for adaptive sessions.

Implements:
- Maximum-information ranking at the current theta
- Near-tie randomization to spread item exposure
- Content balancing against a per-category target distribution
- Deterministic seeded RNG for reproducibility
"""

import hashlib
import logging
import random
from dataclasses import dataclass
from typing import Hashable, Mapping, Sequence

import numpy as np

from adaptive_cat.learning_engine.cat.domain import Item, normalize_category
from adaptive_cat.learning_engine.cat.prob import information_batch
from adaptive_cat.learning_engine.config import SELECTION_NEAR_TIE_RATIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredCandidate:
    """Candidate item with its information at the current theta."""

    item: Item
    information: float


def create_seeded_rng(seed: int | str | None = None) -> random.Random:
    """
    Create a random number generator for near-tie draws.

    Args:
        seed: Integer, string (hashed), or None for an unseeded generator

    Returns:
        Random instance
    """
    if seed is None or isinstance(seed, int):
        return random.Random(seed)
    seed_bytes = hashlib.sha256(str(seed).encode()).digest()
    return random.Random(int.from_bytes(seed_bytes[:8], byteorder="big"))


def score_candidates(theta: float, candidates: Sequence[Item]) -> list[ScoredCandidate]:
    """Information of every candidate at theta, sorted descending (stable)."""
    if not candidates:
        return []

    a = np.array([item.a for item in candidates], dtype=np.float64)
    b = np.array([item.b for item in candidates], dtype=np.float64)
    c = np.array([item.c for item in candidates], dtype=np.float64)
    info = information_batch(theta, a, b, c)

    scored = [ScoredCandidate(item=item, information=float(i)) for item, i in zip(candidates, info)]
    scored.sort(key=lambda s: s.information, reverse=True)
    return scored


def near_tie_set(
    scored: Sequence[ScoredCandidate],
    threshold_ratio: float = SELECTION_NEAR_TIE_RATIO.value,
) -> list[ScoredCandidate]:
    """
    Every candidate whose information is >= ratio * max information.

    Args:
        scored: Candidates sorted by information, descending
        threshold_ratio: Fraction of the best information still considered a tie

    Returns:
        Eligible candidates (never empty for a non-empty input)
    """
    if not scored:
        return []
    threshold = scored[0].information * threshold_ratio
    return [s for s in scored if s.information >= threshold]


def select_next_item(
    theta: float,
    candidates: Sequence[Item],
    rng: random.Random | None = None,
    threshold_ratio: float = SELECTION_NEAR_TIE_RATIO.value,
) -> Item | None:
    """
    Pick the next item by maximum information with randomized near-tie breaking.

    Steps:
    1. Compute information at theta for every candidate
    2. Sort descending
    3. Keep candidates within threshold_ratio of the best
    4. Draw one uniformly with rng

    Args:
        theta: Current ability estimate
        candidates: Items not yet administered
        rng: Randomness source (seed it for reproducible selection)
        threshold_ratio: Near-tie ratio (default 0.95)

    Returns:
        Selected item, or None when candidates is empty
    """
    if not candidates:
        return None

    rng = rng or random.Random()
    eligible = near_tie_set(score_candidates(theta, candidates), threshold_ratio)
    chosen = rng.choice(eligible)

    logger.debug(
        f"Selected item {chosen.item.item_id} (info={chosen.information:.4f}) "
        f"from {len(eligible)} near-tied of {len(candidates)} candidates at theta={theta:.3f}"
    )
    return chosen.item


def under_target_categories(
    category_counts: Mapping[str, int],
    target_distribution: Mapping[str, int],
) -> set[str]:
    """Categories whose administered count is below their target."""
    counts = {normalize_category(k): v for k, v in category_counts.items()}
    return {
        normalize_category(category)
        for category, target in target_distribution.items()
        if counts.get(normalize_category(category), 0) < target
    }


def balance_candidates(
    candidates: Sequence[Item],
    category_counts: Mapping[str, int],
    target_distribution: Mapping[str, int],
) -> list[Item]:
    """
    Restrict the pool to under-target categories when any exist.

    Falls back to the full pool when no under-target category has items left,
    so balancing never blocks selection.
    """
    prioritized = under_target_categories(category_counts, target_distribution)
    if not prioritized:
        return list(candidates)

    filtered = [item for item in candidates if normalize_category(item.category) in prioritized]
    if not filtered:
        return list(candidates)
    return filtered


def available_candidates(items: Sequence[Item], administered: set[Hashable]) -> list[Item]:
    """Active items not yet administered in the session."""
    return [item for item in items if item.is_active and item.item_id not in administered]
