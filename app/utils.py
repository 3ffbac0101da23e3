"""Utility helpers for the Learning Lanes service."""

from __future__ import annotations

import json
import re
from typing import Any

from .errors import GenerationParseError


JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)
ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
YOUTUBE_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"^([a-zA-Z0-9_-]{11})$"),
)
THUMBNAIL_URL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"


def parse_structured_payload(content: str) -> Any:
    """Parse a model response as JSON, unwrapping a Markdown fence once."""

    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    match = JSON_FENCE_RE.search(content)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as exc:
            raise GenerationParseError(
                f"Failed to parse AI response as JSON: {content[:200]}"
            ) from exc
    raise GenerationParseError(f"Failed to parse AI response as JSON: {content[:200]}")


def parse_iso_duration(value: str | None) -> int:
    """Convert an ISO-8601 ``PT#H#M#S`` duration into seconds."""

    if not value:
        return 0
    match = ISO_DURATION_RE.search(value)
    if not match:
        return 0
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    """Render seconds as ``m:ss`` or ``h:mm:ss``."""

    seconds = max(int(seconds), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate(value: str, limit: int) -> str:
    """Trim ``value`` to at most ``limit`` characters."""

    value = value.strip()
    if len(value) <= limit:
        return value
    return value[:limit].rstrip()


def extract_youtube_video_id(url: str) -> str | None:
    """Return the video id from a YouTube URL or a bare id."""

    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(url.strip())
        if match:
            return match.group(1)
    return None


def youtube_thumbnail(video_id: str) -> str:
    return THUMBNAIL_URL_TEMPLATE.format(video_id=video_id)
