"""Lane generation pipeline: planning, searching, ranking and assembly."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

from pydantic import BaseModel, Field, ValidationError

from ..age_levels import AgeLevelDefinition, age_level_for_age, get_age_level
from ..config import Settings
from ..errors import GenerationParseError, InputValidationError
from ..models import (
    GENERATED_LANE_CATEGORIES,
    CandidateItem,
    GenerateLaneRequest,
    GeneratedLaneCandidate,
    YouTubeVideoContent,
)
from ..utils import format_duration, truncate
from .youtube import VideoDetails

logger = logging.getLogger(__name__)

SEARCH_SUFFIX = "for kids educational"
TITLE_LIMIT = 30
DESCRIPTION_LIMIT = 100
CANDIDATE_DESCRIPTION_LIMIT = 200
TRUSTED_CHANNEL_HINT_LIMIT = 10

PLANNING_TEMPLATE = """You are helping create a curated educational video lane for a child{profile_clause}{age_clause}.

The parent's request is: "{prompt}"

Generate a JSON response with:
1. A catchy, kid-friendly title for this lane (max {title_limit} chars)
2. A brief description (max {description_limit} chars)
3. The best category from: {categories}
4. 3-5 YouTube search queries that would find high-quality, age-appropriate educational videos for this topic

Focus on:
- Educational value
- Age-appropriate content for the {age_title} bracket
- Engaging presentation for kids
- Variety within the topic

Respond with this exact JSON structure:
{{
  "title": "string",
  "description": "string",
  "category": "string",
  "searchQueries": ["query1", "query2", "query3"]
}}"""

RANKING_TEMPLATE = """You are filtering YouTube videos for a children's educational lane about: "{prompt}"

Here are the candidate videos:
{candidates}

Select the {max_results} best videos for this lane. Consider:
- Relevance to "{prompt}"
- Educational quality
- Age-appropriateness for the {age_title} bracket (avoid scary, violent, or inappropriate content)
- Production quality (prefer established educational channels)
- Variety (don't pick several videos on the exact same sub-topic)
- Duration (2-15 minutes is ideal for kids)

Trusted educational channels to prefer: {trusted_channels}

Respond with this exact JSON structure:
{{
  "selectedVideos": [
    {{
      "index": 1,
      "relevanceScore": 95,
      "reason": "One short sentence (max 15 words) why this is good"
    }}
  ]
}}

IMPORTANT: Keep each "reason" to ONE SHORT SENTENCE (max 15 words).
Only include videos that are truly appropriate and educational. If a video seems questionable, don't include it."""


class TextGenerator(Protocol):
    async def generate_structured(
        self,
        prompt: str,
        *,
        temperature: float = ...,
        max_tokens: int = ...,
        system_prompt: str | None = ...,
    ) -> Any: ...


class VideoSearcher(Protocol):
    async def search_with_details(self, query: str, **options: Any) -> list[VideoDetails]: ...


class LanePlan(BaseModel):
    """Shape expected from the planning prompt."""

    title: str
    description: str = ""
    category: str = "Other"
    search_queries: list[str] = Field(alias="searchQueries", min_length=1)


class RankedSelection(BaseModel):
    index: int
    relevance_score: float = Field(default=0, alias="relevanceScore")
    reason: str = ""


class LaneGenerator:
    """Turns a parent's prompt into a ranked, deduplicated candidate lane.

    The generator never persists anything; callers store a confirmed subset of
    the returned candidates themselves.
    """

    def __init__(
        self,
        settings: Settings,
        generator: TextGenerator,
        searcher: VideoSearcher,
    ):
        self._settings = settings
        self._ai = generator
        self._search = searcher

    async def generate(self, request: GenerateLaneRequest) -> GeneratedLaneCandidate:
        self._validate(request)
        age_level = self._resolve_age_level(request)
        limit = self._resolve_limit(request)

        plan = await self._plan(request, age_level)
        queries = plan.search_queries[: self._settings.search_query_limit]
        candidates = await self._collect_candidates(queries)
        logger.info(
            "Lane plan %r produced %s unique candidates from %s queries",
            plan.title,
            len(candidates),
            len(queries),
        )

        items: list[CandidateItem] = []
        if candidates:
            selections = await self._rank(request, age_level, candidates, limit)
            items = self._assemble(candidates, selections)
        else:
            logger.warning("No search candidates found for prompt %r", request.prompt)

        return GeneratedLaneCandidate(
            title=truncate(plan.title, TITLE_LIMIT),
            description=truncate(plan.description, DESCRIPTION_LIMIT),
            category=self._normalise_category(plan.category),
            items=items,
        )

    def _validate(self, request: GenerateLaneRequest) -> None:
        if not request.prompt or not request.prompt.strip():
            raise InputValidationError("Prompt is required")
        if request.max_result_count is not None and request.max_result_count < 1:
            raise InputValidationError("maxResultCount must be a positive integer")
        if request.target_age is not None and request.target_age < 0:
            raise InputValidationError("targetAge must not be negative")

    def _resolve_limit(self, request: GenerateLaneRequest) -> int:
        if request.max_result_count is not None:
            return request.max_result_count
        return self._settings.lane_item_count

    def _resolve_age_level(self, request: GenerateLaneRequest) -> AgeLevelDefinition:
        if request.age_level:
            return get_age_level(request.age_level)
        if request.target_age is not None:
            return age_level_for_age(request.target_age)
        return self._settings.default_age_level_definition

    async def _plan(
        self, request: GenerateLaneRequest, age_level: AgeLevelDefinition
    ) -> LanePlan:
        prompt = PLANNING_TEMPLATE.format(
            profile_clause=f" named {request.profile_name}" if request.profile_name else "",
            age_clause=(
                f" who is around {request.target_age} years old"
                if request.target_age is not None
                else ""
            ),
            prompt=request.prompt,
            title_limit=TITLE_LIMIT,
            description_limit=DESCRIPTION_LIMIT,
            categories=", ".join(GENERATED_LANE_CATEGORIES),
            age_title=age_level.title,
        )
        payload = await self._ai.generate_structured(prompt, temperature=0.7)
        if not isinstance(payload, dict):
            raise GenerationParseError("Lane plan must be a JSON object")
        try:
            plan = LanePlan.model_validate(payload)
        except ValidationError as exc:
            raise GenerationParseError(f"Lane plan has an unexpected shape: {exc}") from exc

        plan.search_queries = [
            query.strip() for query in plan.search_queries if query and query.strip()
        ]
        if not plan.search_queries:
            raise GenerationParseError("Lane plan did not include any search queries")
        return plan

    async def _collect_candidates(self, queries: Sequence[str]) -> list[VideoDetails]:
        """Run every search concurrently and merge hits in first-seen order."""

        results = await asyncio.gather(
            *(self._search_one(query) for query in queries),
            return_exceptions=True,
        )

        candidates: list[VideoDetails] = []
        seen: set[str] = set()
        for query, result in zip(queries, results):
            if isinstance(result, BaseException):
                logger.warning("Search failed for query %r: %s", query, result)
                continue
            for video in result:
                if video.video_id in seen:
                    continue
                seen.add(video.video_id)
                candidates.append(video)
        return candidates

    async def _search_one(self, query: str) -> list[VideoDetails]:
        return await asyncio.wait_for(
            self._search.search_with_details(
                f"{query} {SEARCH_SUFFIX}",
                max_results=self._settings.search_results_per_query,
                safe_search="strict",
                duration="medium",
                order="relevance",
            ),
            timeout=self._settings.search_timeout_seconds,
        )

    async def _rank(
        self,
        request: GenerateLaneRequest,
        age_level: AgeLevelDefinition,
        candidates: Sequence[VideoDetails],
        limit: int,
    ) -> list[RankedSelection]:
        prompt = RANKING_TEMPLATE.format(
            prompt=request.prompt,
            candidates="\n".join(
                self._describe_candidate(position, video)
                for position, video in enumerate(candidates, start=1)
            ),
            max_results=limit,
            age_title=age_level.title,
            trusted_channels=", ".join(
                age_level.trusted_channels[:TRUSTED_CHANNEL_HINT_LIMIT]
            ),
        )
        payload = await self._ai.generate_structured(prompt, temperature=0.3)
        if not isinstance(payload, dict):
            raise GenerationParseError("Ranking response must be a JSON object")
        raw_selections = payload.get("selectedVideos")
        if not isinstance(raw_selections, list):
            raise GenerationParseError("Ranking response is missing selectedVideos")

        selections: list[RankedSelection] = []
        seen: set[int] = set()
        for entry in raw_selections:
            if not isinstance(entry, dict):
                continue
            try:
                selection = RankedSelection.model_validate(entry)
            except ValidationError:
                logger.debug("Dropping malformed ranking entry: %s", entry)
                continue
            if not 1 <= selection.index <= len(candidates):
                logger.debug("Dropping out-of-range ranking index %s", selection.index)
                continue
            if selection.index in seen:
                continue
            seen.add(selection.index)
            selections.append(selection)
            if len(selections) >= limit:
                break
        return selections

    @staticmethod
    def _describe_candidate(position: int, video: VideoDetails) -> str:
        description = video.description[:CANDIDATE_DESCRIPTION_LIMIT]
        return (
            f'{position}. "{video.title}"\n'
            f"   Channel: {video.channel_title}\n"
            f"   Duration: {format_duration(video.duration_seconds)}\n"
            f"   Views: {video.view_count:,}\n"
            f"   Description: {description}..."
        )

    @staticmethod
    def _assemble(
        candidates: Sequence[VideoDetails], selections: Sequence[RankedSelection]
    ) -> list[CandidateItem]:
        items = []
        for selection in selections:
            video = candidates[selection.index - 1]
            items.append(
                CandidateItem(
                    title=video.title,
                    thumbnail_url=video.thumbnail_url,
                    content=YouTubeVideoContent(video_id=video.video_id),
                    relevance_score=selection.relevance_score,
                    reason=selection.reason.strip(),
                    duration=format_duration(video.duration_seconds),
                    channel_title=video.channel_title,
                )
            )
        # Stable sort keeps selection order for equal scores.
        items.sort(key=lambda item: item.relevance_score, reverse=True)
        return items

    @staticmethod
    def _normalise_category(value: str) -> str:
        cleaned = (value or "").strip().lower()
        for category in GENERATED_LANE_CATEGORIES:
            if category.lower() == cleaned:
                return category
        return "Other"
