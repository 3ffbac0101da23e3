"""Tests for the YouTube Data API client."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from app.config import Settings
from app.errors import UpstreamServiceError
from app.services.youtube import YouTubeClient


def build_settings(**overrides: Any) -> Settings:
    base = {"YOUTUBE_API_KEY": "yt-key"}
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="https://www.googleapis.com/youtube/v3",
    )


SEARCH_PAYLOAD = {
    "items": [
        {
            "id": {"kind": "youtube#video", "videoId": "vid-1"},
            "snippet": {
                "title": "Solar System Song",
                "description": "Sing along with the planets",
                "channelTitle": "Kids Learning Tube",
                "channelId": "chan-1",
                "publishedAt": "2022-01-01T00:00:00Z",
                "thumbnails": {
                    "default": {"url": "https://i.ytimg.com/vi/vid-1/default.jpg"},
                    "high": {"url": "https://i.ytimg.com/vi/vid-1/hqdefault.jpg"},
                },
            },
        },
        {"id": {"kind": "youtube#channel", "channelId": "chan-2"}, "snippet": {}},
        {
            "id": {"kind": "youtube#video", "videoId": "vid-2"},
            "snippet": {"title": "Moon Facts", "channelTitle": "SciShow Kids"},
        },
    ]
}

DETAILS_PAYLOAD = {
    "items": [
        {
            "id": "vid-1",
            "snippet": {
                "title": "Solar System Song",
                "description": "Sing along with the planets",
                "channelTitle": "Kids Learning Tube",
                "channelId": "chan-1",
                "tags": ["space", "planets"],
                "thumbnails": {
                    "medium": {"url": "https://i.ytimg.com/vi/vid-1/mqdefault.jpg"}
                },
            },
            "contentDetails": {"duration": "PT4M13S"},
            "statistics": {"viewCount": "125000", "likeCount": "900"},
        },
        {
            "id": "vid-2",
            "snippet": {"title": "Moon Facts", "channelTitle": "SciShow Kids"},
            "contentDetails": {"duration": "PT1H2M3S"},
            "statistics": {},
        },
    ]
}


@pytest.mark.anyio("asyncio")
async def test_search_normalises_video_hits() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=SEARCH_PAYLOAD)

    async with _client(handler) as http:
        client = YouTubeClient(build_settings(), http)
        results = await client.search("planets", max_results=5, duration="medium")

    assert [result.video_id for result in results] == ["vid-1", "vid-2"]
    assert results[0].thumbnail_url == "https://i.ytimg.com/vi/vid-1/hqdefault.jpg"
    assert results[1].thumbnail_url == ""

    params = requests[0].url.params
    assert requests[0].url.path.endswith("/search")
    assert params["q"] == "planets"
    assert params["key"] == "yt-key"
    assert params["type"] == "video"
    assert params["maxResults"] == "5"
    assert params["safeSearch"] == "strict"
    assert params["videoDuration"] == "medium"


@pytest.mark.anyio("asyncio")
async def test_search_with_details_resolves_statistics() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json=SEARCH_PAYLOAD)
        assert request.url.params["id"] == "vid-1,vid-2"
        return httpx.Response(200, json=DETAILS_PAYLOAD)

    async with _client(handler) as http:
        client = YouTubeClient(build_settings(), http)
        details = await client.search_with_details("planets", duration="any")

    first, second = details
    assert first.duration_seconds == 253
    assert first.view_count == 125000
    assert first.like_count == 900
    assert first.tags == ["space", "planets"]
    assert first.thumbnail_url == "https://i.ytimg.com/vi/vid-1/mqdefault.jpg"
    assert second.duration_seconds == 3723
    assert second.view_count == 0


@pytest.mark.anyio("asyncio")
async def test_video_details_skips_request_without_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("No request expected")

    async with _client(handler) as http:
        client = YouTubeClient(build_settings(), http)
        assert await client.video_details([]) == []


@pytest.mark.anyio("asyncio")
async def test_api_error_message_is_surfaced() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403, json={"error": {"code": 403, "message": "quotaExceeded"}}
        )

    async with _client(handler) as http:
        client = YouTubeClient(build_settings(), http)
        with pytest.raises(UpstreamServiceError, match="quotaExceeded") as excinfo:
            await client.search("planets")

    assert excinfo.value.status_code == 403


@pytest.mark.anyio("asyncio")
async def test_transport_failure_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    async with _client(handler) as http:
        client = YouTubeClient(build_settings(), http)
        with pytest.raises(UpstreamServiceError, match="ConnectError"):
            await client.search("planets")


@pytest.mark.anyio("asyncio")
async def test_missing_api_key_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("No request expected")

    async with _client(handler) as http:
        client = YouTubeClient(Settings(_env_file=None, YOUTUBE_API_KEY=""), http)
        with pytest.raises(UpstreamServiceError) as excinfo:
            await client.search("planets")

    assert excinfo.value.status_code == 503
