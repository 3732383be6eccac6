"""Constants for the CAT engine."""

from enum import Enum


class SessionStatus(str, Enum):
    """CAT session lifecycle state."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class SessionType(str, Enum):
    """Kind of session a learner is taking."""

    PRE_ASSESSMENT = "PreAssessment"
    LESSON = "Lesson"
    POST_ASSESSMENT = "PostAssessment"
    GAME = "Game"


class AbilityLevel(str, Enum):
    """Coarse classification label for an ability estimate."""

    BELOW_BASIC = "Below Basic"
    BASIC = "Basic"
    PROFICIENT = "Proficient"
    ADVANCED = "Advanced"


class StopReason(str, Enum):
    """Why a session stopped (or continued)."""

    MAX_ITEMS = "maximum items reached"
    MIN_ITEMS_NOT_REACHED = "minimum items not yet reached"
    TARGET_PRECISION = "target precision achieved"
    CONTINUE = "continue assessment"
    POOL_EXHAUSTED = "item pool exhausted"
    RESPONSES_SUBMITTED = "responses submitted"
