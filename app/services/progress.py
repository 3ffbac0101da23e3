"""Watch progress tracking."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable

from ..models import LaneProgress, LaneWithItems, WatchRecord
from .repository import LaneRepository, watch_record_id

logger = logging.getLogger(__name__)

COMPLETION_THRESHOLD = 90

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    # Halves go up (12.5 -> 13), unlike the built-in banker's rounding.
    return math.floor(value + 0.5)


def compute_progress_percent(position: float, duration: float | None) -> int:
    """Return the percentage rounded half up, or 0 without a duration."""

    if not duration or duration <= 0:
        return 0
    return round_half_up(100 * position / duration)


def is_completed(progress_percent: int) -> bool:
    return progress_percent >= COMPLETION_THRESHOLD


@dataclass(slots=True)
class ProgressUpdate:
    """Result of recording a playback sample."""

    record: WatchRecord
    newly_completed: bool


class ProgressTracker:
    """Converts playback samples into per-(profile, item) watch records."""

    def __init__(self, repository: LaneRepository, clock: Clock = utcnow):
        self._repository = repository
        self._clock = clock

    async def record_progress(
        self,
        profile_id: str,
        lane_id: str,
        item_id: str,
        position: float,
        duration: float | None,
    ) -> ProgressUpdate | None:
        """Store a playback sample.

        Samples without a positive duration are ignored and return ``None``.
        ``completed`` never reverts once set, and ``completed_at`` is written
        only on the first transition to completed, which is also the only
        time ``newly_completed`` is true.
        """

        if not duration or duration <= 0:
            logger.debug(
                "Ignoring progress sample without duration for %s/%s", profile_id, item_id
            )
            return None

        now = self._clock()
        progress_percent = compute_progress_percent(position, duration)
        reached = is_completed(progress_percent)
        existing = await self._repository.get_watch_record(profile_id, item_id)

        if existing is None:
            record = WatchRecord(
                id=watch_record_id(profile_id, item_id),
                profile_id=profile_id,
                lane_id=lane_id,
                item_id=item_id,
                last_position=position,
                duration=duration,
                progress_percent=progress_percent,
                completed=reached,
                started_at=now,
                updated_at=now,
                completed_at=now if reached else None,
            )
            newly_completed = reached
        else:
            was_completed = existing.completed
            newly_completed = reached and not was_completed
            record = existing.model_copy(
                update={
                    "lane_id": lane_id,
                    "last_position": position,
                    "duration": duration,
                    "progress_percent": progress_percent,
                    "completed": was_completed or reached,
                    "updated_at": now,
                    "completed_at": now if newly_completed else existing.completed_at,
                }
            )

        await self._repository.save_watch_record(record)
        if newly_completed:
            logger.info("Profile %s completed item %s", profile_id, item_id)
        return ProgressUpdate(record=record, newly_completed=newly_completed)


def summarize_lane_progress(
    lane: LaneWithItems, history: Iterable[WatchRecord]
) -> tuple[list[str], LaneProgress]:
    """Return completed item ids and a watched/total summary for ``lane``."""

    completed_ids = {record.item_id for record in history if record.completed}
    watched = [item.id for item in lane.items if item.id in completed_ids]
    total = len(lane.items)
    percentage = round_half_up(100 * len(watched) / total) if total else 0
    return watched, LaneProgress(watched=len(watched), total=total, percentage=percentage)
