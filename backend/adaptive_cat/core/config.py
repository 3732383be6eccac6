"""Application settings and configuration."""

import json
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator  # type: ignore
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict  # type: ignore

from adaptive_cat.learning_engine.config import get_cat_defaults

_CAT_DEFAULTS = get_cat_defaults()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Adaptive CAT Engine")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # CAT session policy
    CAT_MIN_ITEMS: int = Field(default=_CAT_DEFAULTS["min_items"], ge=0)
    CAT_MAX_ITEMS: int = Field(default=_CAT_DEFAULTS["max_items"], ge=1)
    CAT_TARGET_SEM: float = Field(default=_CAT_DEFAULTS["target_sem"], gt=0)
    CAT_NEAR_TIE_RATIO: float = Field(default=_CAT_DEFAULTS["near_tie_ratio"], gt=0, le=1)
    CAT_MLE_MAX_ITER: int = Field(default=_CAT_DEFAULTS["mle_max_iter"], ge=1)
    CAT_MLE_TOL: float = Field(default=_CAT_DEFAULTS["mle_tol"], gt=0)
    # Accepts JSON ('{"Spelling": 5}') or 'Spelling:5,Grammar:5'
    CAT_TARGET_DISTRIBUTION: Annotated[dict[str, int], NoDecode] = Field(
        default_factory=lambda: dict(_CAT_DEFAULTS["target_distribution"])
    )
    CAT_RANDOM_SEED: int | None = Field(default=None)

    @field_validator("CAT_TARGET_DISTRIBUTION", mode="before")
    @classmethod
    def parse_target_distribution(cls, value):
        """Parse the content blueprint from JSON or 'Type:count' pairs."""
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return {}
            if value.startswith("{"):
                return json.loads(value)
            parsed: dict[str, int] = {}
            for pair in value.split(","):
                if not pair.strip():
                    continue
                category, _, count = pair.partition(":")
                parsed[category.strip()] = int(count.strip())
            return parsed
        return value

    @model_validator(mode="after")
    def check_item_bounds(self):
        """Minimum item count cannot exceed the maximum."""
        if self.CAT_MIN_ITEMS > self.CAT_MAX_ITEMS:
            raise ValueError(
                f"CAT_MIN_ITEMS ({self.CAT_MIN_ITEMS}) must not exceed CAT_MAX_ITEMS ({self.CAT_MAX_ITEMS})"
            )
        return self


# Global settings instance
settings = Settings()
