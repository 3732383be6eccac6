"""Plain data structures shared by the CAT engine and its orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Hashable

from adaptive_cat.learning_engine.config import (
    IRT_DIFFICULTY_DEFAULT,
    IRT_DISCRIMINATION_DEFAULT,
    IRT_DISCRIMINATION_MIN,
    IRT_GUESSING_DEFAULT,
)
from adaptive_cat.learning_engine.cat.prob import clamp_guessing
from adaptive_cat.learning_engine.constants import SessionStatus, SessionType, StopReason


def normalize_category(category: str | None) -> str:
    """Canonical form of a content category ('  grammar ' -> 'Grammar')."""
    return (category or "").strip().capitalize()


@dataclass(frozen=True)
class Item:
    """
    Calibrated test item.

    Out-of-range parameters are clamped silently: a >= 0.1, c in [0, 0.5].
    """

    item_id: Hashable
    a: float = IRT_DISCRIMINATION_DEFAULT.value
    b: float = IRT_DIFFICULTY_DEFAULT.value
    c: float = IRT_GUESSING_DEFAULT.value
    category: str = ""
    is_active: bool = True
    content: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        a = IRT_DISCRIMINATION_DEFAULT.value if self.a is None else float(self.a)
        b = IRT_DIFFICULTY_DEFAULT.value if self.b is None else float(self.b)
        c = IRT_GUESSING_DEFAULT.value if self.c is None else float(self.c)
        object.__setattr__(self, "a", max(IRT_DISCRIMINATION_MIN.value, a))
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "c", clamp_guessing(c))


@dataclass(frozen=True)
class ScoredResponse:
    """Estimator input: correctness plus the item's calibration."""

    is_correct: bool
    a: float
    b: float
    c: float = IRT_GUESSING_DEFAULT.value


@dataclass(frozen=True)
class ResponseEvent:
    """One administered item and its outcome. Never mutated once recorded."""

    item: Item
    is_correct: bool
    theta_before: float
    theta_after: float | None = None
    time_spent: float = 0.0
    selected_option: str = ""
    answered_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_scored(self) -> ScoredResponse:
        return ScoredResponse(
            is_correct=self.is_correct,
            a=self.item.a,
            b=self.item.b,
            c=self.item.c,
        )


@dataclass(frozen=True)
class SessionSummary:
    """Final statistics of a completed session."""

    total_items: int
    correct_count: int
    accuracy: float
    final_theta: float
    sem: float | None
    reason: StopReason
    completed_at: datetime


@dataclass
class CatSession:
    """
    One learner's adaptive session.

    Mutated only by the orchestrator. `version` is bumped by the repository
    on every save and checked for optimistic concurrency.
    """

    session_id: Hashable
    learner_id: Hashable
    initial_theta: float
    current_theta: float
    session_type: SessionType = SessionType.PRE_ASSESSMENT
    status: SessionStatus = SessionStatus.ACTIVE
    responses: tuple[ResponseEvent, ...] = ()
    category_counts: dict[str, int] = field(default_factory=dict)
    offered_item_id: Hashable | None = None
    summary: SessionSummary | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    version: int = 0

    @property
    def items_answered(self) -> int:
        return len(self.responses)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.responses if r.is_correct)

    @property
    def administered_item_ids(self) -> set[Hashable]:
        return {r.item.item_id for r in self.responses}

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def scored_responses(self) -> list[ScoredResponse]:
        return [r.to_scored() for r in self.responses]

    def copy(self) -> CatSession:
        """Shallow copy safe to mutate without touching the stored record."""
        return replace(self, category_counts=dict(self.category_counts))
