"""
Configuration settings for the cadence scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
Every setting can be overridden with a ``CADENCE_`` prefixed variable, e.g.
``CADENCE_SESSION_LIMIT=30`` or ``CADENCE_FSRS_WEIGHTS='[1.0, 4.0, ...]'``.
"""
from __future__ import annotations

import random
from datetime import datetime
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters
from cadence.study.queue_builder import QueueOptions, QueueStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # FSRS
    # ========================================
    fsrs_weights: list[float] | None = Field(
        default=None,
        description="Custom 21-value FSRS weight vector (None for defaults)",
    )
    fsrs_desired_retention: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="Target retention for optimal-interval reporting",
    )
    fsrs_enable_fuzz: bool = Field(
        default=False,
        description="Add bounded random jitter to due dates",
    )

    # ========================================
    # Queue
    # ========================================
    queue_strategy: QueueStrategy = Field(
        default=QueueStrategy.BALANCED,
        description="Prioritization strategy",
    )
    queue_max_size: int | None = Field(
        default=50,
        description="Maximum queue size (None for unbounded)",
    )
    queue_new_card_ratio: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Target share of new items when balancing",
    )
    queue_balance_new_and_review: bool = Field(
        default=True,
        description="Cap new and review items to their shares",
    )
    queue_max_overdue_days: int | None = Field(
        default=30,
        description="Exclude items overdue by more than this many days",
    )

    # ========================================
    # Session
    # ========================================
    session_limit: int = Field(
        default=20,
        ge=0,
        description="Maximum items per session",
    )
    session_max_load_budget: float | None = Field(
        default=None,
        description="Optional cognitive load ceiling per session",
    )

    # ========================================
    # Interleaving
    # ========================================
    interleave_concept_window: int = Field(
        default=3,
        ge=0,
        description="Recent concepts to avoid repeating (0 disables)",
    )
    interleave_item_window: int = Field(
        default=5,
        ge=0,
        description="Recent items checked for similarity (0 disables)",
    )

    # ========================================
    # Similarity Service
    # ========================================
    similarity_base_url: str | None = Field(
        default=None,
        description="Similarity service base URL (None disables lookups)",
    )
    similarity_timeout_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Timeout for similarity lookups",
    )

    def get_fsrs_parameters(self) -> FSRSParameters:
        """Build and validate the configured FSRS parameters."""
        if self.fsrs_weights is None:
            return DEFAULT_PARAMETERS
        return FSRSParameters.from_list(self.fsrs_weights).ensure_valid()

    def get_queue_options(
        self,
        now: datetime | None = None,
        rng: random.Random | None = None,
    ) -> QueueOptions:
        """Queue options seeded from settings."""
        return QueueOptions(
            now=now,
            max_overdue_days=self.queue_max_overdue_days,
            params=self.get_fsrs_parameters(),
            max_size=self.queue_max_size,
            strategy=self.queue_strategy,
            balance_new_and_review=self.queue_balance_new_and_review,
            new_card_ratio=self.queue_new_card_ratio,
            rng=rng,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
