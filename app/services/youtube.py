"""Client for the YouTube Data API v3."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import httpx

from ..config import Settings
from ..errors import UpstreamServiceError
from ..utils import parse_iso_duration

logger = logging.getLogger(__name__)

SafeSearch = Literal["none", "moderate", "strict"]
VideoDuration = Literal["any", "short", "medium", "long"]
SearchOrder = Literal["relevance", "date", "rating", "viewCount", "title"]


@dataclass(slots=True)
class VideoSearchResult:
    """Normalized view of a YouTube search hit."""

    video_id: str
    title: str
    description: str
    channel_title: str
    channel_id: str
    thumbnail_url: str
    published_at: str


@dataclass(slots=True)
class VideoDetails:
    """Video metadata including duration and statistics."""

    video_id: str
    title: str
    description: str
    channel_title: str
    channel_id: str
    thumbnail_url: str
    iso_duration: str
    duration_seconds: int
    view_count: int
    like_count: int
    tags: list[str] = field(default_factory=list)


class YouTubeClient:
    """Thin wrapper around the YouTube search and videos endpoints."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def search(
        self,
        query: str,
        *,
        max_results: int = 10,
        safe_search: SafeSearch = "strict",
        duration: VideoDuration = "any",
        order: SearchOrder = "relevance",
        language: str = "en",
    ) -> list[VideoSearchResult]:
        """Search for videos matching ``query``."""

        params: dict[str, Any] = {
            "part": "snippet",
            "q": query,
            "key": self._api_key(),
            "type": "video",
            "maxResults": max_results,
            "safeSearch": safe_search,
            "relevanceLanguage": language,
            "order": order,
        }
        if duration != "any":
            params["videoDuration"] = duration

        data = await self._get("/search", params)
        results: list[VideoSearchResult] = []
        for entry in data.get("items", []) or []:
            if not isinstance(entry, dict):
                continue
            video_id = (entry.get("id") or {}).get("videoId")
            if not video_id:
                continue
            snippet = entry.get("snippet") or {}
            results.append(
                VideoSearchResult(
                    video_id=video_id,
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    channel_title=snippet.get("channelTitle", ""),
                    channel_id=snippet.get("channelId", ""),
                    thumbnail_url=self._pick_thumbnail(snippet),
                    published_at=snippet.get("publishedAt", ""),
                )
            )
        return results

    async def video_details(self, video_ids: Sequence[str]) -> list[VideoDetails]:
        """Fetch duration and statistics for the given video ids."""

        if not video_ids:
            return []

        params = {
            "part": "snippet,contentDetails,statistics",
            "id": ",".join(video_ids),
            "key": self._api_key(),
        }
        data = await self._get("/videos", params)
        details: list[VideoDetails] = []
        for entry in data.get("items", []) or []:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            snippet = entry.get("snippet") or {}
            content = entry.get("contentDetails") or {}
            stats = entry.get("statistics") or {}
            iso_duration = content.get("duration", "")
            details.append(
                VideoDetails(
                    video_id=entry["id"],
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    channel_title=snippet.get("channelTitle", ""),
                    channel_id=snippet.get("channelId", ""),
                    thumbnail_url=self._pick_thumbnail(snippet),
                    iso_duration=iso_duration,
                    duration_seconds=parse_iso_duration(iso_duration),
                    view_count=self._to_int(stats.get("viewCount")),
                    like_count=self._to_int(stats.get("likeCount")),
                    tags=list(snippet.get("tags") or []),
                )
            )
        return details

    async def search_with_details(self, query: str, **options: Any) -> list[VideoDetails]:
        """Search and resolve full details for every hit."""

        hits = await self.search(query, **options)
        return await self.video_details([hit.video_id for hit in hits])

    def _api_key(self) -> str:
        if not self._settings.youtube_api_key:
            raise UpstreamServiceError(
                "YouTube API key is required to search for videos", status_code=503
            )
        return self._settings.youtube_api_key

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(
                f"YouTube request failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400:
            raise UpstreamServiceError(
                f"YouTube API error: {self._error_message(response)}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamServiceError("YouTube API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamServiceError("YouTube API returned an unexpected payload")
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.reason_phrase or str(response.status_code)
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return response.reason_phrase or str(response.status_code)

    @staticmethod
    def _pick_thumbnail(snippet: dict[str, Any]) -> str:
        thumbnails = snippet.get("thumbnails") or {}
        for size in ("high", "medium", "default"):
            candidate = thumbnails.get(size) or {}
            url = candidate.get("url")
            if isinstance(url, str) and url:
                return url
        return ""

    @staticmethod
    def _to_int(value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0
