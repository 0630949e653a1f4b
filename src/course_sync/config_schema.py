"""Unified configuration schema for course_sync.

Defines Pydantic models for the config file structure with dedicated
sections for the GitHub connection, the repository layout, sync
behaviour, the configured courses and logging.

Usage:
    from course_sync.config_loader import load_hierarchical_config
    from course_sync.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub API connection settings.

    ``token`` is optional here so the ``GITHUB_TOKEN`` env var can supply
    it at runtime instead.
    """

    token: str | None = Field(
        default=None, description="GitHub Personal Access Token"
    )
    api_base: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Per-request timeout in seconds",
    )

    model_config = {"frozen": True}


class LayoutConfig(BaseModel):
    """Repository layout conventions used by the tree classifier."""

    sections_dir: str = Field(default="sections")
    assets_dir: str = Field(default="assets")
    root_metadata: str = Field(default="course.yaml")
    section_metadata: str = Field(default="section.yaml")
    book_metadata: str = Field(default="book.yaml")
    lesson_metadata: str = Field(default="lesson.yaml")
    content_extensions: tuple[str, ...] = Field(default=(".html",))

    model_config = {"frozen": True}

    @field_validator("sections_dir", "assets_dir")
    @classmethod
    def _no_slashes(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "/" in value:
            raise ValueError(
                "directory names must be a single path segment"
            )
        return value


class SyncSettings(BaseModel):
    """Sync engine behaviour.

    Attributes:
        state_dir: Directory holding mapping state and history files.
        metadata_parser: ``yaml`` (PyYAML with flat fallback) or
            ``simple`` (flat key/value subset only).
        builder: Import path (``package.module:factory``) of the content
            builder factory used by the CLI.
    """

    state_dir: str = Field(default=".course_sync")
    metadata_parser: Literal["yaml", "simple"] = Field(default="yaml")
    builder: str | None = Field(default=None)

    model_config = {"frozen": True}


class CourseConfig(BaseModel):
    """One course kept in sync with one repository branch."""

    course_id: int = Field(ge=1)
    repo_url: str
    branch: str = Field(default="main")
    auto_sync: bool = Field(default=False)
    created_by: str | None = Field(default=None)

    model_config = {"frozen": True}

    @property
    def scope(self) -> str:
        """Scope key used by the mapping store and history."""
        return str(self.course_id)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid; it just has no courses to sync.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    courses: list[CourseConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    @field_validator("courses")
    @classmethod
    def _unique_courses(
        cls, courses: list[CourseConfig]
    ) -> list[CourseConfig]:
        seen: set[int] = set()
        for course in courses:
            if course.course_id in seen:
                raise ValueError(
                    f"course {course.course_id} is configured twice"
                )
            seen.add(course.course_id)
        return courses


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
