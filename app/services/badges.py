"""Badge evaluation and idempotent awarding."""

from __future__ import annotations

import logging
from typing import Sequence

from ..models import (
    BADGE_DEFINITIONS,
    BadgeStatus,
    BadgeType,
    EarnedBadge,
    LaneWithItems,
    WatchRecord,
)
from .progress import Clock, utcnow
from .repository import LaneRepository, badge_id

logger = logging.getLogger(__name__)

COUNT_BADGES: tuple[tuple[int, BadgeType], ...] = (
    (1, "first_watch"),
    (5, "five_videos"),
    (10, "ten_videos"),
    (25, "twenty_five_videos"),
)
EXPLORER_CATEGORY_COUNT = 4


class BadgeEngine:
    """Derives unlocked achievements from completed watch records."""

    def __init__(self, repository: LaneRepository, clock: Clock = utcnow):
        self._repository = repository
        self._clock = clock

    async def award(
        self,
        profile_id: str,
        badge_type: BadgeType,
        metadata: dict[str, str] | None = None,
    ) -> EarnedBadge | None:
        """Store ``badge_type`` for the profile unless it is already earned.

        Returns the new badge, or ``None`` when nothing new was created.
        """

        existing = await self._repository.get_badge(profile_id, badge_type)
        if existing is not None:
            return None

        badge = EarnedBadge(
            id=badge_id(profile_id, badge_type),
            profile_id=profile_id,
            badge_type=badge_type,
            earned_at=self._clock(),
            metadata=metadata or None,
        )
        await self._repository.save_badge(badge)
        logger.info("Awarded %s badge to profile %s", badge_type, profile_id)
        return badge

    async def evaluate(
        self,
        profile_id: str,
        history: Sequence[WatchRecord],
        lanes: Sequence[LaneWithItems],
    ) -> list[EarnedBadge]:
        """Award every badge the profile qualifies for and return the new ones."""

        completed = [record for record in history if record.completed]
        completed_ids = {record.item_id for record in completed}
        logger.debug(
            "Badge check for %s: %s completed out of %s records",
            profile_id,
            len(completed),
            len(history),
        )

        new_badges: list[EarnedBadge] = []

        async def _grant(badge_type: BadgeType, metadata: dict[str, str] | None = None) -> None:
            badge = await self.award(profile_id, badge_type, metadata)
            if badge is not None:
                new_badges.append(badge)

        for threshold, badge_type in COUNT_BADGES:
            if len(completed) >= threshold:
                await _grant(badge_type)

        mastered = self._first_completed_lane(lanes, completed_ids)
        if mastered is not None:
            await _grant("lane_master", {"laneId": mastered.id, "laneTitle": mastered.title})

        if len(self._completed_categories(completed, lanes)) >= EXPLORER_CATEGORY_COUNT:
            await _grant("explorer")

        return new_badges

    async def badges_with_status(self, profile_id: str) -> list[BadgeStatus]:
        earned = {
            badge.badge_type: badge
            for badge in await self._repository.list_earned_badges(profile_id)
        }
        statuses = []
        for definition in BADGE_DEFINITIONS:
            badge = earned.get(definition.type)
            statuses.append(
                BadgeStatus(
                    **definition.model_dump(),
                    earned=badge is not None,
                    earned_at=badge.earned_at if badge else None,
                )
            )
        return statuses

    @staticmethod
    def _first_completed_lane(
        lanes: Sequence[LaneWithItems], completed_ids: set[str]
    ) -> LaneWithItems | None:
        for lane in lanes:
            if lane.items and all(item.id in completed_ids for item in lane.items):
                return lane
        return None

    @staticmethod
    def _completed_categories(
        completed: Sequence[WatchRecord], lanes: Sequence[LaneWithItems]
    ) -> set[str]:
        lane_categories = {lane.id: lane.category for lane in lanes}
        return {
            lane_categories[record.lane_id]
            for record in completed
            if record.lane_id in lane_categories
        }
