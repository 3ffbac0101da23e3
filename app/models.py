"""Pydantic models describing profiles, lanes, progress and badges."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .age_levels import AgeLevel

ProfileRole = Literal["admin", "child"]
LaneCategory = Literal[
    "School",
    "Music",
    "Fun",
    "Creativity",
    "Learning",
    "Entertainment",
    "Science",
    "Math",
    "Reading",
    "Other",
]
GENERATED_LANE_CATEGORIES: tuple[str, ...] = (
    "Learning",
    "Entertainment",
    "Creativity",
    "Music",
    "Science",
    "Math",
    "Reading",
    "Other",
)
ContentType = Literal["youtube_video", "web_link", "static_image"]
BadgeType = Literal[
    "first_watch",
    "five_videos",
    "ten_videos",
    "twenty_five_videos",
    "lane_master",
    "explorer",
]


class DocumentModel(BaseModel):
    """Base model serialised with camelCase keys for storage and the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Profile(DocumentModel):
    """A family member using the app."""

    id: str
    display_name: str
    avatar_url: str = ""
    role: ProfileRole = "child"
    pin: str | None = None
    age_level: AgeLevel = "elementary"


class Lane(DocumentModel):
    """A named, ordered collection of content for one profile."""

    id: str
    profile_id: str
    title: str
    category: LaneCategory = "Other"
    is_active: bool = True
    sort_order: int = 0


class YouTubeVideoContent(DocumentModel):
    type: Literal["youtube_video"] = "youtube_video"
    video_id: str
    start_time: int | None = None
    end_time: int | None = None
    loop: bool = False


class WebLinkContent(DocumentModel):
    type: Literal["web_link"] = "web_link"
    url: str
    allow_navigation: bool = False
    # Some sites refuse to be framed and must open outside the player.
    can_embed: bool = True


class StaticImageContent(DocumentModel):
    type: Literal["static_image"] = "static_image"
    image_url: str
    alt_text: str | None = None


LaneContent = Annotated[
    Union[YouTubeVideoContent, WebLinkContent, StaticImageContent],
    Field(discriminator="type"),
]


class LaneItem(DocumentModel):
    """A single playable or viewable unit inside a lane."""

    id: str
    lane_id: str
    title: str
    thumbnail_url: str = ""
    content: LaneContent

    @property
    def type(self) -> ContentType:
        return self.content.type


class LaneItemDraft(DocumentModel):
    """Fields supplied when creating a lane item."""

    title: str
    thumbnail_url: str = ""
    content: LaneContent


class LaneWithItems(Lane):
    items: list[LaneItem] = Field(default_factory=list)


class LaneProgress(DocumentModel):
    watched: int
    total: int
    percentage: int


class LaneWithProgress(LaneWithItems):
    watched_item_ids: list[str] = Field(default_factory=list)
    progress: LaneProgress


class WatchRecord(DocumentModel):
    """Durable progress state for a (profile, item) pair."""

    id: str
    profile_id: str
    lane_id: str
    item_id: str
    last_position: float
    duration: float
    progress_percent: int
    completed: bool
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class BadgeDefinition(DocumentModel):
    type: BadgeType
    name: str
    description: str
    icon: str


BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        type="first_watch",
        name="First Steps",
        description="Watched your first video",
        icon="🌟",
    ),
    BadgeDefinition(
        type="five_videos",
        name="Getting Started",
        description="Watched 5 videos",
        icon="📚",
    ),
    BadgeDefinition(
        type="ten_videos",
        name="Dedicated Learner",
        description="Watched 10 videos",
        icon="🎯",
    ),
    BadgeDefinition(
        type="twenty_five_videos",
        name="Knowledge Seeker",
        description="Watched 25 videos",
        icon="🏆",
    ),
    BadgeDefinition(
        type="lane_master",
        name="Lane Master",
        description="Completed all items in a lane",
        icon="⭐",
    ),
    BadgeDefinition(
        type="explorer",
        name="Explorer",
        description="Watched content from all categories",
        icon="🧭",
    ),
)


class EarnedBadge(DocumentModel):
    """A badge unlocked by a profile, stored at most once per type."""

    id: str
    profile_id: str
    badge_type: BadgeType
    earned_at: datetime
    metadata: dict[str, str] | None = None


class BadgeStatus(BadgeDefinition):
    earned: bool = False
    earned_at: datetime | None = None


class GenerateLaneRequest(DocumentModel):
    """Parameters for the AI lane generation pipeline."""

    prompt: str
    age_level: AgeLevel | None = None
    max_result_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("maxResultCount", "max_result_count", "maxVideos"),
    )
    profile_name: str | None = None
    target_age: int | None = None

    @field_validator("prompt", mode="before")
    @classmethod
    def _strip_prompt(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("profile_name", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class CandidateItem(DocumentModel):
    """A ranked video proposed for a generated lane."""

    title: str
    thumbnail_url: str = ""
    type: Literal["youtube_video"] = "youtube_video"
    content: YouTubeVideoContent
    relevance_score: float
    reason: str = ""
    duration: str = ""
    channel_title: str = ""

    def to_draft(self) -> LaneItemDraft:
        return LaneItemDraft(
            title=self.title,
            thumbnail_url=self.thumbnail_url,
            content=self.content,
        )


class GeneratedLaneCandidate(DocumentModel):
    """Ephemeral result of lane generation, persisted only on confirmation."""

    title: str
    description: str
    category: LaneCategory
    items: list[CandidateItem] = Field(default_factory=list)
