"""High level orchestration of lanes, progress and badges."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from ..models import (
    CandidateItem,
    EarnedBadge,
    GenerateLaneRequest,
    GeneratedLaneCandidate,
    LaneWithItems,
    LaneWithProgress,
    WatchRecord,
)
from .badges import BadgeEngine
from .lane_generator import LaneGenerator
from .progress import ProgressTracker, summarize_lane_progress
from .repository import LaneRepository

logger = logging.getLogger(__name__)

CONFIRMED_LANE_SORT_ORDER = 100


@dataclass
class ProgressOutcome:
    """What a playback sample changed for the profile."""

    record: WatchRecord | None = None
    newly_completed: bool = False
    new_badges: list[EarnedBadge] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "record": self.record.to_document() if self.record else None,
            "newlyCompleted": self.newly_completed,
            "newBadges": [badge.to_document() for badge in self.new_badges],
        }


class LearningService:
    """Coordinates the repository, progress tracker, badge engine and generator."""

    def __init__(
        self,
        repository: LaneRepository,
        tracker: ProgressTracker,
        badges: BadgeEngine,
        generator: LaneGenerator,
    ):
        self.repository = repository
        self.tracker = tracker
        self.badges = badges
        self._generator = generator

    async def generate_lane(self, request: GenerateLaneRequest) -> GeneratedLaneCandidate:
        return await self._generator.generate(request)

    async def confirm_generated_lane(
        self,
        profile_id: str,
        *,
        title: str,
        category: str,
        items: Sequence[CandidateItem],
    ) -> LaneWithItems:
        """Persist the parent's chosen subset of generated candidates."""

        lane = await self.repository.create_lane(
            profile_id,
            title=title,
            category=category,
            is_active=True,
            sort_order=CONFIRMED_LANE_SORT_ORDER,
        )
        for candidate in items:
            await self.repository.create_item(lane.id, candidate.to_draft())
        return await self.repository.get_lane_with_items(lane.id)

    async def save_watch_progress(
        self,
        profile_id: str,
        lane_id: str,
        item_id: str,
        position: float,
        duration: float | None,
    ) -> ProgressOutcome:
        """Record a playback sample and award badges on a completion transition.

        Failures are logged and reported as an empty outcome so playback is
        never interrupted by bookkeeping.
        """

        try:
            update = await self.tracker.record_progress(
                profile_id, lane_id, item_id, position, duration
            )
        except Exception:
            logger.exception("Failed to save watch progress for %s/%s", profile_id, item_id)
            return ProgressOutcome()
        if update is None:
            return ProgressOutcome()

        outcome = ProgressOutcome(record=update.record, newly_completed=update.newly_completed)
        if not update.newly_completed:
            return outcome

        try:
            history = await self.repository.list_watch_history(profile_id)
            lanes = await self.repository.list_lanes_with_items(
                profile_id, include_inactive=True
            )
            outcome.new_badges = await self.badges.evaluate(profile_id, history, lanes)
        except Exception:
            logger.exception("Badge evaluation failed for profile %s", profile_id)
        return outcome

    async def lanes_with_progress(
        self, profile_id: str, *, include_inactive: bool = False
    ) -> list[LaneWithProgress]:
        lanes = await self.repository.list_lanes_with_items(
            profile_id, include_inactive=include_inactive
        )
        history = await self.repository.list_watch_history(profile_id)
        result = []
        for lane in lanes:
            watched, progress = summarize_lane_progress(lane, history)
            result.append(
                LaneWithProgress(
                    **lane.model_dump(), watched_item_ids=watched, progress=progress
                )
            )
        return result
