"""Pydantic model for media manager settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from mediamanager.config.defaults import (
    DEFAULT_CACHE_ROOT,
    DEFAULT_CACHE_SUBDIR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DUMMY_URL_PREFIX,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_DOWNLOAD_MB,
    DEFAULT_TIMEOUT_SECONDS,
)


class MediaSettings(BaseModel):
    """Resolved settings for the cache store and loaders."""

    cache_root: Path = DEFAULT_CACHE_ROOT
    cache_subdir: str = Field(default=DEFAULT_CACHE_SUBDIR, min_length=1)
    dummy_url_prefix: str = Field(default=DEFAULT_DUMMY_URL_PREFIX, min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_download_mb: float = Field(default=DEFAULT_MAX_DOWNLOAD_MB, gt=0)
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("cache_root", mode="before")
    @classmethod
    def _expand_root(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Path(value).expanduser()
        if isinstance(value, Path):
            return value.expanduser()
        return value

    @field_validator("cache_subdir")
    @classmethod
    def _plain_subdir(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError(f"cache_subdir must be a single path component, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def max_download_bytes(self) -> int:
        return int(self.max_download_mb * 1024 * 1024)

    @property
    def cache_dir(self) -> Path:
        return self.cache_root / self.cache_subdir

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> MediaSettings:
        """Build settings from a merged config dict, ignoring unknown keys."""
        known = {k: v for k, v in raw.items() if k in cls.model_fields and v is not None}
        return cls(**known)
