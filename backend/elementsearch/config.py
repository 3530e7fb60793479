"""Application settings and environment configuration."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INDEX_PREFIX_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    env: str = "development"
    app_name: str = "Element Search Indexer"

    database_url: str = "sqlite:///./data/elementsearch.db"
    redis_url: str = "redis://localhost:6379/0"
    elasticsearch_url: str = Field(default="http://localhost:9200")
    elasticsearch_timeout_ms: int = Field(default=30000, ge=100, le=60000)
    elasticsearch_verify_certs: bool = False

    index_name_prefix: str = Field(default="datahub")
    rebuild_chunk_size: int = Field(default=100, ge=1, le=10000)
    root_element_id: int = Field(default=1, ge=0)
    index_tasks_use_celery: bool = False

    log_level: Literal["debug", "info", "warning", "error"] = "info"
    log_json: bool = True

    @field_validator("index_name_prefix")
    @classmethod
    def validate_index_name_prefix(cls, value: str) -> str:
        """Index prefixes must be valid lowercase index names without separators."""
        prefix = value.strip()
        if not _INDEX_PREFIX_PATTERN.match(prefix):
            raise ValueError("INDEX_NAME_PREFIX must be lowercase alphanumeric (plus '_' or '-').")
        if "__" in prefix:
            raise ValueError("INDEX_NAME_PREFIX must not contain the '__' separator.")
        return prefix


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
