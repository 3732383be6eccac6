"""Application-specific exceptions for consistent error handling."""

from typing import Any


class AppError(Exception):
    """Application error with standardized error code."""

    code = "APP_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize application error."""
        super().__init__(message)
        self.code = code or self.code
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Error envelope: {error_code, message, details}."""
        return {
            "error_code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AbilityEstimationError(AppError, ValueError):
    """Estimator called with neither a response history nor an initial theta."""

    code = "ABILITY_ESTIMATION_ERROR"


class SessionNotFoundError(AppError, LookupError):
    code = "SESSION_NOT_FOUND"


class ItemNotFoundError(AppError, LookupError):
    code = "ITEM_NOT_FOUND"


class LearnerNotFoundError(AppError, LookupError):
    code = "LEARNER_NOT_FOUND"


class SessionCompletedError(AppError):
    """A completed session is immutable."""

    code = "SESSION_COMPLETED"


class DuplicateItemError(AppError):
    """An item can be administered at most once per session."""

    code = "DUPLICATE_ITEM"


class NoResponsesError(AppError):
    code = "NO_RESPONSES"


class StaleSessionError(AppError):
    """Session was modified by another request since it was read."""

    code = "STALE_SESSION"


class SessionLimitError(AppError):
    """Session already holds max_items responses."""

    code = "SESSION_LIMIT_REACHED"
