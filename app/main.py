"""Entry point for the FastAPI-powered Learning Lanes service."""

from __future__ import annotations

import json
import logging
import re
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .config import settings
from .database import Database
from .errors import (
    ConflictError,
    InputValidationError,
    LanesError,
    NotFoundError,
    ParseError,
    UpstreamServiceError,
)
from .models import GenerateLaneRequest, LaneItemDraft, Profile
from .schemas import (
    ItemCreate,
    ItemUpdate,
    LaneCreate,
    LaneUpdate,
    ProfileCreate,
    ProgressSample,
)
from .services.badges import BadgeEngine
from .services.lane_generator import LaneGenerator
from .services.learning import LearningService
from .services.openrouter import OpenRouterClient
from .services.progress import ProgressTracker
from .services.repository import LaneRepository
from .services.youtube import YouTubeClient
from .store import DocumentStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    youtube_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.youtube_api_url),
            timeout=httpx.Timeout(settings.search_timeout_seconds, connect=10.0),
        )
    )
    openrouter_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.openrouter_api_url),
            timeout=httpx.Timeout(settings.generation_timeout_seconds, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    repository = LaneRepository(DocumentStore(database.session_factory))
    generator = LaneGenerator(
        settings,
        OpenRouterClient(settings, openrouter_http),
        YouTubeClient(settings, youtube_http),
    )
    fastapi_app.state.learning_service = LearningService(
        repository,
        ProgressTracker(repository),
        BadgeEngine(repository),
        generator,
    )
    fastapi_app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Family-safe media lanes with AI-assisted curation",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_learning_service(fastapi_app: FastAPI) -> LearningService:
    service = getattr(fastapi_app.state, "learning_service", None)
    if not isinstance(service, LearningService):
        raise RuntimeError("Learning service not initialised")
    return service


def _error_to_http(exc: LanesError) -> HTTPException:
    if isinstance(exc, InputValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, UpstreamServiceError):
        status = 503 if exc.status_code == 503 else 502
        return HTTPException(status_code=status, detail=str(exc))
    if isinstance(exc, ParseError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


async def _read_model(request: Request, model: type[BaseModel]) -> Any:
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        payload = None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail=json.loads(exc.json(include_url=False))
        ) from exc


def _coerce_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in {"1", "true", "yes", "on"}
    return False


def _profile_slug(display_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", display_name.lower()).strip("-")
    return f"profile-{slug or uuid.uuid4().hex[:8]}"


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/generate-lane")
    async def generate_lane(request: Request) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        lane_request = await _read_model(request, GenerateLaneRequest)
        try:
            candidate = await service.generate_lane(lane_request)
        except LanesError as exc:
            logger.error("Lane generation error: %s", exc)
            raise _error_to_http(exc) from exc
        return JSONResponse(candidate.to_document())

    @fastapi_app.get("/api/profiles")
    async def list_profiles() -> JSONResponse:
        service = get_learning_service(fastapi_app)
        profiles = await service.repository.list_profiles()
        return JSONResponse([profile.to_document() for profile in profiles])

    @fastapi_app.post("/api/profiles")
    async def create_profile(request: Request) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        payload: ProfileCreate = await _read_model(request, ProfileCreate)
        profile_id = payload.id
        if profile_id is None:
            profile_id = _profile_slug(payload.display_name)
            if await service.repository.profile_exists(profile_id):
                profile_id = f"{profile_id}-{uuid.uuid4().hex[:6]}"
        profile = Profile(**payload.model_dump(exclude={"id"}), id=profile_id)
        try:
            await service.repository.create_profile(profile)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(profile.to_document(), status_code=201)

    @fastapi_app.get("/api/profiles/{profile_id}")
    async def get_profile(profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        try:
            profile = await service.repository.get_profile(profile_id)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(profile.to_document())

    @fastapi_app.get("/api/profiles/{profile_id}/lanes")
    async def list_lanes(request: Request, profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        include_inactive = _coerce_bool(request.query_params.get("includeInactive"))
        lanes = await service.lanes_with_progress(
            profile_id, include_inactive=include_inactive
        )
        return JSONResponse([lane.to_document() for lane in lanes])

    @fastapi_app.post("/api/profiles/{profile_id}/lanes")
    async def create_lane(request: Request, profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        payload: LaneCreate = await _read_model(request, LaneCreate)
        try:
            if payload.items:
                lane = await service.confirm_generated_lane(
                    profile_id,
                    title=payload.title,
                    category=payload.category,
                    items=payload.items,
                )
            else:
                existing = await service.repository.list_lanes(
                    profile_id, include_inactive=True
                )
                created = await service.repository.create_lane(
                    profile_id,
                    title=payload.title,
                    category=payload.category,
                    is_active=payload.is_active,
                    sort_order=(
                        payload.sort_order
                        if payload.sort_order is not None
                        else len(existing) + 1
                    ),
                )
                lane = await service.repository.get_lane_with_items(created.id)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(lane.to_document(), status_code=201)

    @fastapi_app.get("/api/lanes/{lane_id}")
    async def get_lane(lane_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        try:
            lane = await service.repository.get_lane_with_items(lane_id)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(lane.to_document())

    @fastapi_app.patch("/api/lanes/{lane_id}")
    async def update_lane(request: Request, lane_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        payload: LaneUpdate = await _read_model(request, LaneUpdate)
        try:
            lane = await service.repository.update_lane(
                lane_id, payload.model_dump(exclude_unset=True, exclude_none=True)
            )
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(lane.to_document())

    @fastapi_app.delete("/api/lanes/{lane_id}")
    async def delete_lane(lane_id: str) -> dict[str, int]:
        service = get_learning_service(fastapi_app)
        try:
            deleted = await service.repository.delete_lane(lane_id)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return {"deleted": deleted}

    @fastapi_app.post("/api/lanes/{lane_id}/items")
    async def create_item(request: Request, lane_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        payload: ItemCreate = await _read_model(request, ItemCreate)
        draft = LaneItemDraft(
            title=payload.title,
            thumbnail_url=payload.thumbnail_url,
            content=payload.content,
        )
        try:
            item = await service.repository.create_item(lane_id, draft)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(item.to_document(), status_code=201)

    @fastapi_app.patch("/api/lanes/{lane_id}/items/{item_id}")
    async def update_item(request: Request, lane_id: str, item_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        payload: ItemUpdate = await _read_model(request, ItemUpdate)
        try:
            item = await service.repository.update_item(
                lane_id, item_id, payload.model_dump(exclude_unset=True, exclude_none=True)
            )
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return JSONResponse(item.to_document())

    @fastapi_app.delete("/api/lanes/{lane_id}/items/{item_id}")
    async def delete_item(lane_id: str, item_id: str) -> dict[str, bool]:
        service = get_learning_service(fastapi_app)
        try:
            await service.repository.delete_item(lane_id, item_id)
        except LanesError as exc:
            raise _error_to_http(exc) from exc
        return {"deleted": True}

    @fastapi_app.post("/api/profiles/{profile_id}/progress")
    async def save_progress(request: Request, profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        sample: ProgressSample = await _read_model(request, ProgressSample)
        outcome = await service.save_watch_progress(
            profile_id,
            sample.lane_id,
            sample.item_id,
            sample.current_position,
            sample.duration,
        )
        return JSONResponse(outcome.to_payload())

    @fastapi_app.get("/api/profiles/{profile_id}/progress")
    async def watch_history(profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        history = await service.repository.list_watch_history(profile_id)
        return JSONResponse([record.to_document() for record in history])

    @fastapi_app.get("/api/profiles/{profile_id}/badges")
    async def badges(profile_id: str) -> JSONResponse:
        service = get_learning_service(fastapi_app)
        statuses = await service.badges.badges_with_status(profile_id)
        return JSONResponse([status.to_document() for status in statuses])

    def _require_development() -> None:
        if settings.environment != "development":
            raise HTTPException(status_code=403, detail="Only available in development")

    @fastapi_app.delete("/api/profiles/{profile_id}/progress")
    async def clear_progress(profile_id: str) -> dict[str, int]:
        _require_development()
        service = get_learning_service(fastapi_app)
        return {"deleted": await service.repository.clear_watch_history(profile_id)}

    @fastapi_app.delete("/api/profiles/{profile_id}/badges")
    async def clear_badges(profile_id: str) -> dict[str, int]:
        _require_development()
        service = get_learning_service(fastapi_app)
        return {"deleted": await service.repository.clear_badges(profile_id)}


app = create_app()
