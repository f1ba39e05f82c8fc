"""
Configuration settings for the quizzer engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QUIZZER_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Session composition
    # ========================================
    max_problems: int = Field(
        default=0,
        ge=0,
        description="Session length cap (0 = unlimited)",
    )

    # ─── Per-type sampling weights ──────────────────────────────────────────────
    # Higher weight = type drawn earlier and more often. 0 excludes the type.
    type_weight_multiple_choice: float = Field(
        default=1.0,
        ge=0,
        description="Sampling weight for multiple-choice questions",
    )
    type_weight_numeric_input: float = Field(
        default=1.5,
        ge=0,
        description="Sampling weight for numeric-input questions",
    )
    type_weight_ordering: float = Field(
        default=2.0,
        ge=0,
        description="Sampling weight for ordering questions",
    )
    type_weight_multi_select: float = Field(
        default=1.5,
        ge=0,
        description="Sampling weight for multi-select questions",
    )
    type_weight_two_stage: float = Field(
        default=2.0,
        ge=0,
        description="Sampling weight for two-stage questions",
    )

    # ========================================
    # Proficiency model
    # ========================================
    proficiency_decay_rate: float = Field(
        default=0.1,
        ge=0,
        description="Per-day exponential decay of confidence in past accuracy",
    )
    unseen_problem_weight: float = Field(
        default=1.5,
        ge=1,
        le=2,
        description="Sampling weight for problems with no tracking history",
    )

    # ========================================
    # Reporting
    # ========================================
    most_missed_limit: int = Field(
        default=10,
        ge=1,
        description="Number of problems listed in the most-missed ranking",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Loguru level for the CLI stderr sink",
    )

    def get_type_weights(self) -> dict[str, float]:
        """Get per-type sampling weights keyed by question type name."""
        return {
            "multiple-choice": self.type_weight_multiple_choice,
            "numeric-input": self.type_weight_numeric_input,
            "ordering": self.type_weight_ordering,
            "multi-select": self.type_weight_multi_select,
            "two-stage": self.type_weight_two_stage,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
