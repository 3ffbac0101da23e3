"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .age_levels import AGE_LEVEL_KEYS, DEFAULT_AGE_LEVEL, AgeLevelDefinition, get_age_level


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Learning Lanes", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    youtube_api_key: str | None = Field(default=None, alias="YOUTUBE_API_KEY")
    youtube_api_url: HttpUrl = Field(
        default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_URL"
    )

    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash", alias="OPENROUTER_MODEL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )

    default_age_level: str = Field(
        default=DEFAULT_AGE_LEVEL, alias="DEFAULT_AGE_LEVEL"
    )
    lane_item_count: int = Field(default=8, alias="LANE_ITEM_COUNT", ge=1, le=25)
    search_results_per_query: int = Field(
        default=5, alias="SEARCH_RESULTS_PER_QUERY", ge=1, le=25
    )
    search_query_limit: int = Field(
        default=4, alias="SEARCH_QUERY_LIMIT", ge=1, le=4
    )
    search_timeout_seconds: float = Field(
        default=20.0, alias="SEARCH_TIMEOUT", gt=0
    )
    generation_timeout_seconds: float = Field(
        default=60.0, alias="GENERATION_TIMEOUT", gt=0
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./learninglanes.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("default_age_level", mode="before")
    @classmethod
    def _parse_age_level(cls, value: object) -> str:
        """Normalise the configured age bracket."""

        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_AGE_LEVEL
        if not isinstance(value, str):
            raise TypeError("DEFAULT_AGE_LEVEL must be a string")
        slug = value.strip().replace("-", "_").replace(" ", "_").lower()
        if slug not in AGE_LEVEL_KEYS:
            raise ValueError("Unknown age level configured")
        return slug

    @property
    def default_age_level_definition(self) -> AgeLevelDefinition:
        return get_age_level(self.default_age_level)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
