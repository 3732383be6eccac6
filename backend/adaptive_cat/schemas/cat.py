"""Pydantic schemas for the CAT orchestrator (configuration and outputs)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from adaptive_cat.learning_engine.config import get_cat_defaults
from adaptive_cat.learning_engine.constants import AbilityLevel, SessionStatus, SessionType, StopReason

_DEFAULTS = get_cat_defaults()

# ============================================================================
# Configuration
# ============================================================================


class CatConfig(BaseModel):
    """Session policy knobs exposed by the orchestrator."""

    min_items: int = Field(_DEFAULTS["min_items"], ge=0, description="Items required before stopping")
    max_items: int = Field(_DEFAULTS["max_items"], ge=1, description="Hard cap on items per session")
    target_sem: float = Field(_DEFAULTS["target_sem"], gt=0, description="Stop once SEM <= target")
    target_distribution: dict[str, int] = Field(
        default_factory=lambda: dict(_DEFAULTS["target_distribution"]),
        description="Target item count per content category",
    )
    near_tie_ratio: float = Field(_DEFAULTS["near_tie_ratio"], gt=0, le=1)
    mle_max_iter: int = Field(_DEFAULTS["mle_max_iter"], ge=1)
    mle_tol: float = Field(_DEFAULTS["mle_tol"], gt=0)

    @model_validator(mode="after")
    def check_item_bounds(self):
        if self.min_items > self.max_items:
            raise ValueError("min_items must not exceed max_items")
        return self

    @classmethod
    def from_settings(cls, settings) -> "CatConfig":
        """Build from the application Settings (CAT_* environment variables)."""
        return cls(
            min_items=settings.CAT_MIN_ITEMS,
            max_items=settings.CAT_MAX_ITEMS,
            target_sem=settings.CAT_TARGET_SEM,
            target_distribution=settings.CAT_TARGET_DISTRIBUTION,
            near_tie_ratio=settings.CAT_NEAR_TIE_RATIO,
            mle_max_iter=settings.CAT_MLE_MAX_ITER,
            mle_tol=settings.CAT_MLE_TOL,
        )


# ============================================================================
# Session Schemas
# ============================================================================


class SessionStartOut(BaseModel):
    """Response after creating a session."""

    session_id: Any
    learner_id: Any
    session_type: SessionType
    initial_theta: float
    status: SessionStatus
    started_at: datetime


class ItemOut(BaseModel):
    """Item offered to the learner."""

    item_id: Any
    category: str
    a: float
    b: float
    c: float
    content: dict[str, Any] = Field(default_factory=dict)


class SessionSummaryOut(BaseModel):
    """Final statistics of a completed session."""

    session_id: Any
    total_items: int
    correct_answers: int
    accuracy: float = Field(..., description="Percentage correct, 2 decimals")
    final_theta: float
    classification: AbilityLevel
    sem: float | None = Field(None, description="999 means precision undefined")
    reliability: float
    reason: StopReason
    message: str
    completed_at: datetime


class NextItemOut(BaseModel):
    """Result of a 'give me the next item' request."""

    session_id: Any
    assessment_complete: bool
    item: ItemOut | None = None
    current_theta: float
    items_completed: int
    items_remaining: int = 0
    progress_percentage: float = 0.0
    recommended_difficulty: tuple[float, float] | None = None
    summary: SessionSummaryOut | None = None


# ============================================================================
# Response Schemas
# ============================================================================


class ResponseRecordedOut(BaseModel):
    """Result of recording one response."""

    session_id: Any
    item_id: Any
    is_correct: bool
    new_theta: float
    previous_theta: float
    theta_change: float
    classification: AbilityLevel
    standard_error: float
    feedback: str
    total_responses: int


class ResponseIn(BaseModel):
    """One response in a batch submission."""

    item_id: Any
    is_correct: bool
    time_spent: float = Field(0.0, ge=0, description="Seconds spent on the item")
    selected_option: str = ""


class ResponsesSubmittedOut(BaseModel):
    """Result of submitting a whole session's responses in one call."""

    session_id: Any
    total_responses: int
    correct_answers: int
    accuracy: float = Field(..., description="Percentage correct, 2 decimals")
    initial_theta: float
    final_theta: float
    change: float
    classification: AbilityLevel
    standard_error: float
    message: str


# ============================================================================
# Ability Schemas
# ============================================================================


class AbilityUpdateOut(BaseModel):
    """Result of recalculating a learner's stored ability."""

    learner_id: Any
    ability: float
    previous_ability: float
    change: float
    classification: AbilityLevel
    standard_error: float
    responses_analyzed: int


class AbilityResetOut(BaseModel):
    """Result of resetting a learner's stored ability."""

    learner_id: Any
    previous_ability: float
    new_ability: float


class RecentSessionOut(BaseModel):
    session_id: Any
    session_type: SessionType
    status: SessionStatus
    initial_theta: float
    final_theta: float | None
    total_questions: int
    correct_answers: int
    accuracy: float | None
    started_at: datetime


class AbilityDiagnosisOut(BaseModel):
    """Stored ability with ceiling/floor flags."""

    learner_id: Any
    current_ability: float
    classification: AbilityLevel
    is_at_ceiling: bool
    is_at_floor: bool
    needs_reset: bool
    recent_sessions: list[RecentSessionOut] = Field(default_factory=list)
