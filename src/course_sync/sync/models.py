"""Pydantic models for the course sync engine.

Defines the data contracts shared by the sync modules:

- ``TreeEntry``: one path of the remote repository listing.
- ``StructuredTree`` / ``SectionTree`` / ``BookTree``: the classified
  course hierarchy.
- ``MappingRecord``: durable repo-path to platform-entity link.
- ``OperationLogEntry``: one line of a run's operation log.
- ``SyncCounters``: per-run create/update/hide tallies.
- ``SyncOutcome`` / ``SyncHistoryRecord``: run results.

Records crossing a persistence boundary are frozen.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Remote tree
# ---------------------------------------------------------------------------


class EntryKind(str, Enum):
    """Kind of a remote tree entry."""

    BLOB = "blob"
    TREE = "tree"


class TreeEntry(BaseModel):
    """One entry of the flat, recursive repository listing.

    Attributes:
        path: ``/``-separated path relative to the repository root.
        kind: ``blob`` for files, ``tree`` for directories.
        size: Size in bytes (0 for directories).
    """

    path: str
    kind: EntryKind
    size: int = 0

    model_config = {"frozen": True}


class ContainerKind(str, Enum):
    """Multi-page container types found below a section directory."""

    BOOK = "book"
    LESSON = "lesson"


class BookTree(BaseModel):
    """A book (or lesson) directory inside a section.

    Attributes:
        path: Repository path of the directory.
        kind: ``book`` unless the directory carries lesson metadata.
        metadata_path: Path of the book/lesson metadata file, if any.
        chapters: Ordered ``filename -> path`` map of chapter files.
    """

    path: str
    kind: ContainerKind = ContainerKind.BOOK
    metadata_path: str | None = None
    chapters: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


class SectionTree(BaseModel):
    """A section directory.

    Attributes:
        path: Repository path of the directory.
        metadata_path: Path of the section metadata file, if any.
        pages: Ordered ``filename -> path`` map of page files.
        books: Ordered ``dirname -> BookTree`` map.
    """

    path: str
    metadata_path: str | None = None
    pages: dict[str, str] = Field(default_factory=dict)
    books: dict[str, BookTree] = Field(default_factory=dict)

    model_config = {"frozen": True}


class StructuredTree(BaseModel):
    """The classified course hierarchy of one snapshot."""

    root_metadata_path: str | None = None
    sections: dict[str, SectionTree] = Field(default_factory=dict)
    assets: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Mapping store
# ---------------------------------------------------------------------------


class RecordKind(str, Enum):
    """What a mapping record's repo path stands for."""

    SECTION = "section"
    SECTION_METADATA = "section_metadata"
    PAGE = "page"
    BOOK = "book"
    BOOK_METADATA = "book_metadata"
    CHAPTER = "chapter"
    LESSON = "lesson"
    LESSON_METADATA = "lesson_metadata"
    LESSON_PAGE = "lesson_page"


class MappingRecord(BaseModel):
    """Durable link between one repository path and a platform entity.

    Attributes:
        scope: Course scope the record belongs to.
        repo_path: Repository path (unique within the scope).
        entity_id: Platform entity built from the path; ``None`` for pure
            container records such as sections.
        parent_entity_id: Entity containing ``entity_id`` (section id for
            pages and books, book id for chapters).
        content_hash: SHA-256 of the stored body or metadata file.
        kind: What the path stands for.
        import_key: Stable key of a chapter or lesson page, independent of
            its numeric filename prefix.
        position: Last known 1-based position inside the parent.
        hidden: ``True`` while the entity is hidden by a removal sweep.
        created_at: ISO 8601 creation timestamp.
        modified_at: ISO 8601 timestamp of the last upsert.
    """

    scope: str
    repo_path: str
    entity_id: int | None = None
    parent_entity_id: int | None = None
    content_hash: str | None = None
    kind: RecordKind | None = None
    import_key: str | None = None
    position: int | None = None
    hidden: bool = False
    created_at: str
    modified_at: str

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------------


class OperationLogEntry(BaseModel):
    """One line of a run's operation log (observability only)."""

    kind: str
    path: str
    detail: str
    timestamp: str = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class SyncStatus(str, Enum):
    """Terminal status of a sync run."""

    UP_TO_DATE = "uptodate"
    SUCCESS = "success"
    FAILED = "failed"


# (counter attribute, singular/plural label) in summary order.
_SUMMARY_PARTS: list[tuple[str, str]] = [
    ("sections_created", "section(s) created"),
    ("sections_updated", "section(s) updated"),
    ("activities_created", "activity/activities created"),
    ("activities_updated", "activity/activities updated"),
    ("activities_restored", "activity/activities restored"),
    ("activities_hidden", "activity/activities hidden (removed from repo)"),
    ("chapters_created", "chapter(s) created"),
    ("chapters_updated", "chapter(s) updated"),
    ("chapters_reordered", "chapter(s) reordered"),
    ("chapters_hidden", "chapter(s) hidden (removed from repo)"),
    ("lesson_pages_created", "lesson page(s) created"),
    ("lesson_pages_updated", "lesson page(s) updated"),
    ("lesson_pages_removed", "lesson page(s) removed"),
    ("assets_uploaded", "asset(s) uploaded"),
]


class SyncCounters(BaseModel):
    """Mutable per-run tallies; only non-zero ones reach the summary."""

    sections_created: int = 0
    sections_updated: int = 0
    activities_created: int = 0
    activities_updated: int = 0
    activities_skipped: int = 0
    activities_restored: int = 0
    activities_hidden: int = 0
    chapters_created: int = 0
    chapters_updated: int = 0
    chapters_reordered: int = 0
    chapters_hidden: int = 0
    lesson_pages_created: int = 0
    lesson_pages_updated: int = 0
    lesson_pages_removed: int = 0
    assets_uploaded: int = 0
    assets_skipped: int = 0

    @property
    def changes(self) -> int:
        """Total number of create/update/hide/reorder operations."""
        return sum(getattr(self, attr) for attr, _ in _SUMMARY_PARTS)

    def summary(self) -> str:
        """Join the non-zero counters into one human-readable sentence."""
        parts = [
            f"{getattr(self, attr)} {label}"
            for attr, label in _SUMMARY_PARTS
            if getattr(self, attr) > 0
        ]
        if not parts:
            return "No changes needed."
        return ", ".join(parts) + "."


class SyncOutcome(BaseModel):
    """Result of one run, as surfaced to callers.

    Attributes:
        scope: Course scope that was synced.
        status: ``uptodate``, ``success`` or ``failed``.
        snapshot_identity: Commit SHA observed by the run (empty when the
            run failed before resolving it).
        summary: Human-readable summary; redacted for failed runs.
        counters: Tallies for completed runs.
    """

    scope: str
    status: SyncStatus
    snapshot_identity: str = ""
    summary: str
    counters: SyncCounters | None = None

    model_config = {"frozen": True}


class SyncHistoryRecord(BaseModel):
    """Append-only history entry written once per run."""

    scope: str
    triggered_by: str | None = None
    snapshot_identity: str = ""
    status: SyncStatus
    summary: str
    operations: list[OperationLogEntry] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)

    model_config = {"frozen": True}
