"""Typed access to profiles, lanes, items, watch history and badges."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import ValidationError

from ..errors import NotFoundError
from ..models import (
    EarnedBadge,
    Lane,
    LaneItem,
    LaneItemDraft,
    LaneWithItems,
    Profile,
    WatchRecord,
)
from ..store import DocumentRef, DocumentStore

logger = logging.getLogger(__name__)

PROFILES = "profiles"
LANES = "lanes"
LANE_ITEMS = "laneItems"
WATCH_HISTORY = "watchHistory"
EARNED_BADGES = "earnedBadges"


def watch_record_id(profile_id: str, item_id: str) -> str:
    return f"{profile_id}_{item_id}"


def badge_id(profile_id: str, badge_type: str) -> str:
    return f"{profile_id}_{badge_type}"


class LaneRepository:
    """Maps application models onto the document store."""

    def __init__(self, store: DocumentStore):
        self._store = store

    # Profiles

    async def list_profiles(self) -> list[Profile]:
        documents = await self._store.list_collection(PROFILES)
        return self._validate_all(Profile, documents)

    async def get_profile(self, profile_id: str) -> Profile:
        document = await self._store.get(PROFILES, profile_id)
        if document is None:
            raise NotFoundError(f"Profile {profile_id} not found")
        return Profile.model_validate(document)

    async def profile_exists(self, profile_id: str) -> bool:
        return await self._store.get(PROFILES, profile_id) is not None

    async def create_profile(self, profile: Profile) -> Profile:
        """Store a new profile; an existing id raises ``ConflictError``."""

        await self._store.create(PROFILES, profile.id, profile.to_document())
        return profile

    # Lanes

    async def list_lanes(
        self, profile_id: str, *, include_inactive: bool = False
    ) -> list[Lane]:
        documents = await self._store.query_by_field(LANES, "profileId", profile_id)
        lanes = self._validate_all(Lane, documents)
        if not include_inactive:
            lanes = [lane for lane in lanes if lane.is_active]
        lanes.sort(key=lambda lane: lane.sort_order)
        return lanes

    async def get_lane(self, lane_id: str) -> Lane:
        document = await self._store.get(LANES, lane_id)
        if document is None:
            raise NotFoundError(f"Lane {lane_id} not found")
        return Lane.model_validate(document)

    async def get_lane_with_items(self, lane_id: str) -> LaneWithItems:
        lane = await self.get_lane(lane_id)
        items = await self.list_items(lane_id)
        return LaneWithItems(**lane.model_dump(), items=items)

    async def list_lanes_with_items(
        self, profile_id: str, *, include_inactive: bool = False
    ) -> list[LaneWithItems]:
        lanes = await self.list_lanes(profile_id, include_inactive=include_inactive)
        result: list[LaneWithItems] = []
        for lane in lanes:
            items = await self.list_items(lane.id)
            result.append(LaneWithItems(**lane.model_dump(), items=items))
        return result

    async def create_lane(
        self,
        profile_id: str,
        *,
        title: str,
        category: str = "Other",
        is_active: bool = True,
        sort_order: int = 0,
    ) -> Lane:
        await self.get_profile(profile_id)
        lane = Lane(
            id=f"lane-{uuid.uuid4()}",
            profile_id=profile_id,
            title=title,
            category=category,
            is_active=is_active,
            sort_order=sort_order,
        )
        await self._store.put(LANES, lane.id, lane.to_document())
        return lane

    async def update_lane(self, lane_id: str, updates: dict[str, Any]) -> Lane:
        lane = await self.get_lane(lane_id)
        protected = {"id", "profile_id"}
        changes = {key: value for key, value in updates.items() if key not in protected}
        updated = Lane.model_validate({**lane.model_dump(), **changes})
        await self._store.update(LANES, lane_id, updated.to_document())
        return updated

    async def delete_lane(self, lane_id: str) -> int:
        """Delete a lane together with all of its items in one batch."""

        await self.get_lane(lane_id)
        items = await self._store.query_by_field(LANE_ITEMS, "laneId", lane_id)
        refs = [DocumentRef(LANE_ITEMS, item["id"]) for item in items if "id" in item]
        refs.append(DocumentRef(LANES, lane_id))
        return await self._store.delete_batch(refs)

    # Items

    async def list_items(self, lane_id: str) -> list[LaneItem]:
        documents = await self._store.query_by_field(LANE_ITEMS, "laneId", lane_id)
        return self._validate_all(LaneItem, documents)

    async def get_item(self, lane_id: str, item_id: str) -> LaneItem:
        document = await self._store.get(LANE_ITEMS, item_id)
        if document is None or document.get("laneId") != lane_id:
            raise NotFoundError(f"Item {item_id} not found in lane {lane_id}")
        return LaneItem.model_validate(document)

    async def create_item(self, lane_id: str, draft: LaneItemDraft) -> LaneItem:
        await self.get_lane(lane_id)
        item = LaneItem(
            id=f"item-{uuid.uuid4()}",
            lane_id=lane_id,
            title=draft.title,
            thumbnail_url=draft.thumbnail_url,
            content=draft.content,
        )
        await self._store.put(LANE_ITEMS, item.id, item.to_document())
        return item

    async def update_item(
        self, lane_id: str, item_id: str, updates: dict[str, Any]
    ) -> LaneItem:
        item = await self.get_item(lane_id, item_id)
        protected = {"id", "lane_id"}
        changes = {key: value for key, value in updates.items() if key not in protected}
        updated = LaneItem.model_validate({**item.model_dump(), **changes})
        await self._store.put(LANE_ITEMS, item_id, updated.to_document())
        return updated

    async def delete_item(self, lane_id: str, item_id: str) -> None:
        await self.get_item(lane_id, item_id)
        await self._store.delete(LANE_ITEMS, item_id)

    # Watch history

    async def get_watch_record(self, profile_id: str, item_id: str) -> WatchRecord | None:
        document = await self._store.get(WATCH_HISTORY, watch_record_id(profile_id, item_id))
        if document is None:
            return None
        return WatchRecord.model_validate(document)

    async def save_watch_record(self, record: WatchRecord) -> None:
        await self._store.put(WATCH_HISTORY, record.id, record.to_document())

    async def list_watch_history(self, profile_id: str) -> list[WatchRecord]:
        documents = await self._store.query_by_field(WATCH_HISTORY, "profileId", profile_id)
        return self._validate_all(WatchRecord, documents)

    async def clear_watch_history(self, profile_id: str) -> int:
        documents = await self._store.query_by_field(WATCH_HISTORY, "profileId", profile_id)
        deleted = await self._store.delete_batch(
            DocumentRef(WATCH_HISTORY, document["id"]) for document in documents
        )
        logger.info("Cleared %s watch records for profile %s", deleted, profile_id)
        return deleted

    # Badges

    async def get_badge(self, profile_id: str, badge_type: str) -> EarnedBadge | None:
        document = await self._store.get(EARNED_BADGES, badge_id(profile_id, badge_type))
        if document is None:
            return None
        return EarnedBadge.model_validate(document)

    async def save_badge(self, badge: EarnedBadge) -> None:
        await self._store.put(EARNED_BADGES, badge.id, badge.to_document())

    async def list_earned_badges(self, profile_id: str) -> list[EarnedBadge]:
        documents = await self._store.query_by_field(EARNED_BADGES, "profileId", profile_id)
        return self._validate_all(EarnedBadge, documents)

    async def clear_badges(self, profile_id: str) -> int:
        documents = await self._store.query_by_field(EARNED_BADGES, "profileId", profile_id)
        deleted = await self._store.delete_batch(
            DocumentRef(EARNED_BADGES, document["id"]) for document in documents
        )
        logger.info("Cleared %s badges for profile %s", deleted, profile_id)
        return deleted

    @staticmethod
    def _validate_all(model, documents):
        results = []
        for document in documents:
            try:
                results.append(model.model_validate(document))
            except ValidationError as exc:
                logger.warning(
                    "Stored %s document %s could not be validated: %s",
                    model.__name__,
                    document.get("id"),
                    exc,
                )
        return results
