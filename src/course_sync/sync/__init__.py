"""Repository-to-course reconciliation engine.

Public API for keeping a course (sections, pages, books, lessons and
assets) in step with a GitHub repository branch.

Architecture
------------
Every run compares the current repository tree against a persisted
path-to-entity mapping.  Content is compared by SHA-256 hash, never by
timestamp, so an unchanged file costs one fetch and no platform call.
Entities are never deleted: when a source file disappears the entity is
hidden and its mapping kept, so a file that comes back reuses its entity.

Modules:

- ``engine``      -- ``Reconciler``: one run for one course scope.
- ``classifier``  -- ``classify_tree``: flat listing to course hierarchy.
- ``frontmatter`` -- front matter parsers and metadata parser strategies.
- ``mapping``     -- ``JsonMappingStore`` / ``InMemoryMappingStore``.
- ``history``     -- ``JsonlHistoryStore`` / ``InMemoryHistoryStore``.
- ``builder``     -- ``ContentBuilder`` protocol and its value objects.
- ``models``      -- tree, record, counter and outcome models.
- ``batch``       -- ``sync_courses``: many courses, failures isolated.
- ``reporter``    -- text and JSON formatting of outcomes and history.

Usage example
-------------
::

    from pathlib import Path
    from course_sync.github import GitHubClient
    from course_sync.sync import JsonMappingStore, JsonlHistoryStore, Reconciler

    engine = Reconciler(
        scope="42",
        repository=GitHubClient(repo_url, token, branch="main"),
        builder=my_platform_builder,
        store=JsonMappingStore(Path(".course_sync")),
        history=JsonlHistoryStore(Path(".course_sync")),
    )
    outcome = engine.run(triggered_by="admin")
    print(outcome.summary)
"""

from .batch import BatchResult, sync_courses
from .builder import (
    AssetResult,
    BookCreation,
    ChapterSpec,
    ChapterUpsert,
    ContentBuilder,
    LessonCreation,
    LessonPageSpec,
    rewrite_asset_urls,
)
from .classifier import classify_tree, derive_activity_name
from .engine import Reconciler, RepositoryClient
from .frontmatter import (
    create_metadata_parser,
    parse_front_matter,
    parse_nested_front_matter,
)
from .history import InMemoryHistoryStore, JsonlHistoryStore
from .mapping import InMemoryMappingStore, JsonMappingStore, content_hash
from .models import (
    MappingRecord,
    SyncHistoryRecord,
    SyncOutcome,
    SyncStatus,
    TreeEntry,
)
from .reporter import format_history, format_outcome, outcome_to_json

__all__ = [
    "AssetResult",
    "BatchResult",
    "BookCreation",
    "ChapterSpec",
    "ChapterUpsert",
    "ContentBuilder",
    "InMemoryHistoryStore",
    "InMemoryMappingStore",
    "JsonMappingStore",
    "JsonlHistoryStore",
    "LessonCreation",
    "LessonPageSpec",
    "MappingRecord",
    "Reconciler",
    "RepositoryClient",
    "SyncHistoryRecord",
    "SyncOutcome",
    "SyncStatus",
    "TreeEntry",
    "classify_tree",
    "content_hash",
    "create_metadata_parser",
    "derive_activity_name",
    "format_history",
    "format_outcome",
    "outcome_to_json",
    "parse_front_matter",
    "parse_nested_front_matter",
    "rewrite_asset_urls",
    "sync_courses",
]
