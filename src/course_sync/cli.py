"""Command-line entry point: sync configured courses from GitHub."""

import argparse
import importlib
import json
import logging
import sys
from collections.abc import Callable

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config, load_unified_config
from .config_schema import CourseConfig
from .errors import ConfigError
from .github import GitHubClient
from .logger import setup_logging
from .sync import (
    ContentBuilder,
    JsonlHistoryStore,
    JsonMappingStore,
    Reconciler,
    create_metadata_parser,
    format_history,
    format_outcome,
    outcome_to_json,
    sync_courses,
)
from .sync.models import SyncOutcome

logger = logging.getLogger(__name__)

BuilderFactory = Callable[[CourseConfig, Config], ContentBuilder]


def load_builder_factory(import_path: str | None) -> BuilderFactory:
    """Import a content builder factory from ``package.module:callable``.

    Raises:
        ConfigError: If no path is configured or it cannot be imported.
    """
    if not import_path:
        raise ConfigError(
            "No content builder configured. Set 'builder' in the sync "
            "section of config.yml (package.module:factory)."
        )
    module_name, _, attr = import_path.partition(":")
    if not module_name or not attr:
        raise ConfigError(
            f"Invalid builder path '{import_path}': expected package.module:factory"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import builder module '{module_name}': {exc}") from exc
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ConfigError(f"Builder factory '{import_path}' is not callable")
    return factory


def make_engine_factory(config: Config) -> Callable[[CourseConfig], Reconciler]:
    """Build the per-course ``Reconciler`` factory used by the batch driver."""
    builder_factory = load_builder_factory(config.builder)
    parser = create_metadata_parser(config.metadata_parser)
    store = JsonMappingStore(config.state_dir)
    history = JsonlHistoryStore(config.state_dir)

    def factory(course: CourseConfig) -> Reconciler:
        client = GitHubClient(
            course.repo_url,
            config.github_token,
            branch=course.branch,
            api_base=config.api_base,
            timeout=config.timeout,
        )
        return Reconciler(
            scope=course.scope,
            repository=client,
            builder=builder_factory(course, config),
            store=store,
            history=history,
            parser=parser,
            layout=config.layout,
        )

    return factory


def select_courses(
    courses: list[CourseConfig],
    course_id: int | None = None,
    auto_only: bool = False,
) -> list[CourseConfig]:
    """Filter configured courses by ``--course`` and ``--auto-only``."""
    selected = courses
    if course_id is not None:
        selected = [c for c in selected if c.course_id == course_id]
    if auto_only:
        selected = [c for c in selected if c.auto_sync]
    return selected


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="course-sync",
        description="Sync courses from their GitHub repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync every configured course
  course-sync

  # Sync one course
  course-sync --course 9

  # Only courses with auto_sync enabled (for cron)
  course-sync --auto-only

  # Show the last runs of a course with their operation logs
  course-sync --history 9 --verbose
        """,
    )
    parser.add_argument("-c", "--course", type=int, help="Sync only this course ID")
    parser.add_argument(
        "-a",
        "--auto-only",
        action="store_true",
        help="Only sync courses with auto_sync enabled",
    )
    parser.add_argument(
        "--history",
        type=int,
        metavar="ID",
        help="Show sync history for a course instead of syncing",
    )
    parser.add_argument(
        "--limit", type=int, default=10, help="History entries to show (default: 10)"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Include operation logs in history"
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument(
        "--token",
        help="Override GitHub token (takes precedence over GITHUB_TOKEN env var and config files)",
    )
    parser.add_argument(
        "--state-dir",
        help="Override state directory (takes precedence over COURSE_SYNC_STATE_DIR)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"course-sync version {__version__}",
    )
    return parser


def _show_history(args: argparse.Namespace) -> int:
    unified = load_unified_config()
    state_dir = args.state_dir or unified.sync.state_dir
    records = JsonlHistoryStore(state_dir).list(str(args.history), limit=args.limit)
    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
    else:
        print(format_history(records, verbose=args.verbose))
    return 0


def _sync(args: argparse.Namespace) -> int:
    config = load_config(token=args.token, state_dir=args.state_dir)
    courses = select_courses(config.courses, args.course, args.auto_only)
    if not courses:
        suffix = " (with auto-sync enabled)" if args.auto_only else ""
        print(f"No courses configured for GitHub sync{suffix}.")
        return 0

    engine_factory = make_engine_factory(config)

    def report(course: CourseConfig, outcome: SyncOutcome) -> None:
        if not args.json:
            print(f"Course {course.course_id}: {format_outcome(outcome)}")

    if not args.json:
        print(f"GitHub Sync: Syncing {len(courses)} course(s)...")
        print()
    result = sync_courses(
        courses,
        engine_factory,
        triggered_by="cli",
        on_outcome=report,
        history=JsonlHistoryStore(config.state_dir),
    )

    if args.json:
        print(
            json.dumps(
                {
                    "outcomes": [outcome_to_json(o) for o in result.outcomes],
                    "synced": result.synced,
                    "up_to_date": result.up_to_date,
                    "failed": result.failed,
                },
                indent=2,
            )
        )
    else:
        print()
        print(result.tally())
    return 1 if result.failed else 0


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = _build_parser().parse_args(argv)

    load_dotenv()
    setup_logging(debug=args.debug, log_file=args.log_file)

    try:
        if args.history is not None:
            code = _show_history(args)
        else:
            code = _sync(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    run()
