from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.models import (
    BADGE_DEFINITIONS,
    CandidateItem,
    EarnedBadge,
    GenerateLaneRequest,
    LaneItem,
    StaticImageContent,
    WatchRecord,
    WebLinkContent,
    YouTubeVideoContent,
)


def test_lane_item_content_is_discriminated_by_type():
    item = LaneItem.model_validate(
        {
            "id": "item-1",
            "laneId": "lane-1",
            "title": "PBS Kids Games",
            "content": {"type": "web_link", "url": "https://pbskids.org", "canEmbed": False},
        }
    )

    assert isinstance(item.content, WebLinkContent)
    assert item.type == "web_link"
    assert item.content.can_embed is False


def test_lane_item_rejects_unknown_content_type():
    with pytest.raises(ValidationError):
        LaneItem.model_validate(
            {
                "id": "item-1",
                "laneId": "lane-1",
                "title": "Mystery",
                "content": {"type": "audio", "url": "https://example.com"},
            }
        )


def test_lane_item_document_uses_camel_case():
    item = LaneItem(
        id="item-2",
        lane_id="lane-1",
        title="Rainbow",
        content=StaticImageContent(image_url="https://example.com/rainbow.png"),
    )

    document = item.to_document()

    assert document["laneId"] == "lane-1"
    assert document["content"] == {
        "type": "static_image",
        "imageUrl": "https://example.com/rainbow.png",
    }


def test_watch_record_timestamps_survive_storage_format():
    started = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    record = WatchRecord(
        id="p_i",
        profile_id="p",
        lane_id="l",
        item_id="i",
        last_position=30,
        duration=60,
        progress_percent=50,
        completed=False,
        started_at=started,
        updated_at=started,
    )

    document = record.to_document()

    assert isinstance(document["startedAt"], str)
    assert "completedAt" not in document
    restored = WatchRecord.model_validate(document)
    assert restored.started_at == started
    assert restored.completed_at is None


def test_earned_badge_metadata_is_optional():
    badge = EarnedBadge(
        id="p_first_watch",
        profile_id="p",
        badge_type="first_watch",
        earned_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    assert "metadata" not in badge.to_document()


def test_badge_definitions_cover_every_badge():
    assert [definition.type for definition in BADGE_DEFINITIONS] == [
        "first_watch",
        "five_videos",
        "ten_videos",
        "twenty_five_videos",
        "lane_master",
        "explorer",
    ]


def test_generate_lane_request_accepts_max_videos_alias():
    request = GenerateLaneRequest.model_validate(
        {"prompt": "  dinosaurs  ", "maxVideos": 5, "profileName": " "}
    )

    assert request.prompt == "dinosaurs"
    assert request.max_result_count == 5
    assert request.profile_name is None
    assert request.age_level is None


def test_candidate_item_converts_to_draft():
    candidate = CandidateItem(
        title="Counting to 10",
        thumbnail_url="https://example.com/t.jpg",
        content=YouTubeVideoContent(video_id="abc123"),
        relevance_score=91,
        reason="Clear counting song",
    )

    draft = candidate.to_draft()

    assert draft.title == "Counting to 10"
    assert draft.content.video_id == "abc123"
    assert draft.content.loop is False
