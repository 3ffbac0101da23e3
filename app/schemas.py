"""Request payloads accepted by the HTTP API."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator, model_validator

from .age_levels import AgeLevel
from .models import (
    CandidateItem,
    DocumentModel,
    LaneCategory,
    LaneContent,
    ProfileRole,
    YouTubeVideoContent,
)
from .utils import extract_youtube_video_id, youtube_thumbnail


class ProfileCreate(DocumentModel):
    id: str | None = None
    display_name: str = Field(min_length=1, max_length=120)
    avatar_url: str = ""
    role: ProfileRole = "child"
    pin: str | None = None
    age_level: AgeLevel = "elementary"


class LaneCreate(DocumentModel):
    """A new lane, optionally seeded with confirmed generated candidates."""

    title: str = Field(min_length=1, max_length=120)
    category: LaneCategory = "Other"
    is_active: bool = True
    sort_order: int | None = None
    items: list[CandidateItem] = Field(default_factory=list)


class LaneUpdate(DocumentModel):
    title: str | None = Field(default=None, min_length=1, max_length=120)
    category: LaneCategory | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class _VideoContentMixin(DocumentModel):
    """Accept pasted YouTube URLs and default the thumbnail for videos."""

    @model_validator(mode="after")
    def _normalise_video(self):
        content = getattr(self, "content", None)
        if isinstance(content, YouTubeVideoContent):
            video_id = extract_youtube_video_id(content.video_id)
            if video_id is None:
                raise ValueError("Unrecognised YouTube video id or URL")
            content.video_id = video_id
            if not self.thumbnail_url:
                self.thumbnail_url = youtube_thumbnail(video_id)
        return self


class ItemCreate(_VideoContentMixin):
    title: str = Field(min_length=1)
    thumbnail_url: str = ""
    content: LaneContent


class ItemUpdate(_VideoContentMixin):
    title: str | None = Field(default=None, min_length=1)
    thumbnail_url: str | None = None
    content: LaneContent | None = None


class ProgressSample(DocumentModel):
    lane_id: str
    item_id: str
    current_position: float = Field(
        validation_alias=AliasChoices("currentPosition", "position", "current_position"),
    )
    duration: float | None = None

    @field_validator("lane_id", "item_id")
    @classmethod
    def _require_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Identifier must not be blank")
        return value
