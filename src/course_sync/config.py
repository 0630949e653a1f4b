"""Runtime configuration for the course-sync CLI.

Combines the YAML config files with environment variables and CLI
arguments.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: GitHub personal access token (required to sync)
    COURSE_SYNC_STATE_DIR: Directory for mapping state and history
    LOG_LEVEL: Logging level (read by ``setup_logging``)
    LOG_FILE: Log file path
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from course_sync.config_loader import load_hierarchical_config
from course_sync.config_schema import (
    CourseConfig,
    LayoutConfig,
    UnifiedConfig,
    build_config,
)
from course_sync.errors import ConfigError
from course_sync.validators import (
    validate_branch,
    validate_repo_url,
    validate_token,
)

logger = logging.getLogger(__name__)


@dataclass
class Config:
    github_token: str
    api_base: str = "https://api.github.com"
    timeout: float = 30.0
    state_dir: Path = Path(".course_sync")
    metadata_parser: str = "yaml"
    builder: str | None = None
    log_file: str | None = None
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    courses: list[CourseConfig] = field(default_factory=list)


def validate_config(config: Config) -> None:
    """Validate the token and every configured course.

    Raises:
        ConfigError: On the first invalid value.
    """
    ok, message = validate_token(config.github_token)
    if not ok:
        raise ConfigError(message)

    for course in config.courses:
        ok, message = validate_repo_url(course.repo_url)
        if not ok:
            raise ConfigError(f"Course {course.course_id}: {message}")
        ok, message = validate_branch(course.branch)
        if not ok:
            raise ConfigError(f"Course {course.course_id}: {message}")


def load_unified_config() -> UnifiedConfig:
    """Load and validate the merged YAML config files.

    Raises:
        ConfigError: If the files do not match the schema.
    """
    try:
        return build_config(load_hierarchical_config())
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(
    token: str | None = None,
    state_dir: str | None = None,
    log_file: str | None = None,
    unified: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override GitHub token (CLI).
        state_dir: Override state directory (CLI).
        log_file: Override log file (CLI).
        unified: Parsed YAML config; loaded from disk when ``None``.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If the token is missing or any value is invalid.
    """
    unified = unified or load_unified_config()

    github_token = token or os.getenv("GITHUB_TOKEN") or unified.github.token
    if not github_token:
        raise ConfigError(
            "GitHub token not found. Set GITHUB_TOKEN environment variable "
            "or add 'token' to the github section of config.yml."
        )

    final_state_dir = (
        state_dir or os.getenv("COURSE_SYNC_STATE_DIR") or unified.sync.state_dir
    )
    final_log_file = log_file or os.getenv("LOG_FILE") or unified.logging.file

    config = Config(
        github_token=github_token.strip(),
        api_base=unified.github.api_base,
        timeout=unified.github.timeout,
        state_dir=Path(final_state_dir).expanduser(),
        metadata_parser=unified.sync.metadata_parser,
        builder=unified.sync.builder,
        log_file=final_log_file,
        layout=unified.layout,
        courses=list(unified.courses),
    )

    validate_config(config)

    return config
