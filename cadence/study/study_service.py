"""
Study Service.

Orchestrates the two request flows of the scheduling core:

Review flow:
    rating -> FSRS update -> Mastery Boost (neighbours of the reviewed item)

Queue flow:
    schedules -> Eligibility -> Priority/Balance -> Interleaving -> Session

Each flow looks up similarity at most once, through a guard that turns
collaborator failures into "no similar items". Outputs are complete
replacement values for the persistence layer to apply.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from loguru import logger

from cadence.config import Settings, get_settings
from cadence.core.models import QueueItem, Rating, ScheduleState
from cadence.scheduler.fsrs import FSRSScheduler, ScheduleResult
from cadence.semantic.similarity import GuardedSimilarityIndex, SimilarityIndex
from cadence.study.interleaver import interleave
from cadence.study.mastery_boost import BoostUpdate, apply_boost, boost_magnitude
from cadence.study.queue_builder import QueueOptions, build_queue
from cadence.study.session import (
    HistoricalLoadProvider,
    SessionEntry,
    SessionResult,
    assemble_session,
    resolve_average_load,
)


@dataclass
class ReviewOutcome:
    """Replacement schedule for the reviewed item plus its boost batch."""
    result: ScheduleResult
    boost_updates: list[BoostUpdate] = field(default_factory=list)

    @property
    def state(self) -> ScheduleState:
        return self.result.state


class StudyService:
    """
    Entry point for reviews and session generation.

    Example:
        >>> service = StudyService(similarity_index=StaticSimilarityIndex(sim))
        >>> outcome = service.process_review(state, Rating.GOOD, 3500, neighbors)
        >>> session = service.generate_session(states)
    """

    def __init__(
        self,
        scheduler: Optional[FSRSScheduler] = None,
        similarity_index: Optional[SimilarityIndex] = None,
        load_provider: Optional[HistoricalLoadProvider] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.scheduler = scheduler or FSRSScheduler(
            params=self.settings.get_fsrs_parameters(),
            enable_fuzz=self.settings.fsrs_enable_fuzz,
        )
        self.similarity = GuardedSimilarityIndex(similarity_index)
        self.load_provider = load_provider

    # =========================================================================
    # Review flow
    # =========================================================================

    def process_review(
        self,
        state: ScheduleState,
        rating: Rating | str | int,
        response_time_ms: float = 0,
        neighbors: Optional[Mapping[str, ScheduleState]] = None,
        now: Optional[datetime] = None,
    ) -> ReviewOutcome:
        """
        Apply a review and compute its mastery boost.

        Args:
            state: Current schedule of the reviewed item
            rating: Grade (enum, score, name or learner-facing label)
            response_time_ms: Answer time in milliseconds
            neighbors: Current schedules of potentially similar items
            now: Review time (defaults to the scheduler clock)

        Returns:
            ReviewOutcome with the replacement state and boost updates
        """
        rating = Rating.from_label(rating)
        now = now or self.scheduler.clock()
        result = self.scheduler.next_schedule(state, rating, response_time_ms, now=now)

        updates: list[BoostUpdate] = []
        if neighbors and boost_magnitude(rating, result.state.state) > 0:
            similar = self.similarity.lookup_similar(state.item_id)
            updates = apply_boost(
                state.item_id,
                rating,
                result.state.state,
                similar,
                neighbors,
                now=now,
            )

        logger.info(
            f"Review {state.item_id} ({rating.label}): next due in {result.interval_days}d, "
            f"{len(updates)} boosted"
        )
        return ReviewOutcome(result=result, boost_updates=updates)

    # =========================================================================
    # Queue flow
    # =========================================================================

    def build_review_queue(
        self,
        states: Sequence[ScheduleState],
        options: Optional[QueueOptions] = None,
        concept_map: Optional[Mapping[str, Optional[str]]] = None,
        now: Optional[datetime] = None,
    ) -> list[QueueItem]:
        """Prioritized, balanced and interleaved queue with final positions."""
        options = options or self.settings.get_queue_options(now=now or self.scheduler.clock())
        queue = build_queue(list(states), options)
        if not queue:
            return []

        similarity = self.similarity.batch_query([item.item_id for item in queue])
        ordered = interleave(
            queue,
            concept_map=concept_map,
            similarity=similarity,
            concept_window=self.settings.interleave_concept_window,
            item_window=self.settings.interleave_item_window,
        )
        for index, item in enumerate(ordered, start=1):
            item.position = index
        return ordered

    def generate_session(
        self,
        states: Sequence[ScheduleState],
        learning_queue: Sequence[SessionEntry] = (),
        options: Optional[QueueOptions] = None,
        concept_map: Optional[Mapping[str, Optional[str]]] = None,
        learner_id: Optional[str] = None,
        now: Optional[datetime] = None,
        session_limit: Optional[int] = None,
        max_load_budget: Optional[float] = None,
    ) -> SessionResult:
        """
        Build the session for a learner.

        Args:
            states: Candidate schedules for the review queue
            learning_queue: Items to learn, placed ahead of reviews
            options: Queue options (defaults from settings)
            concept_map: item_id -> concept_id overrides
            learner_id: Key for the historical load provider
            now: Request time
            session_limit: Maximum items (defaults to settings)
            max_load_budget: Load ceiling for this request (defaults to settings)

        Returns:
            SessionResult with items and load report
        """
        review_queue = self.build_review_queue(states, options, concept_map, now)
        average = resolve_average_load(self.load_provider, learner_id)
        return assemble_session(
            learning_queue,
            review_queue,
            session_limit=self.settings.session_limit if session_limit is None else session_limit,
            max_load_budget=(
                self.settings.session_max_load_budget if max_load_budget is None else max_load_budget
            ),
            average_historical_load=average,
        )
