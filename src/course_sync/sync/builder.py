"""Content builder contract.

The reconciler never talks to the learning platform directly; it drives a
``ContentBuilder`` supplied by the platform integration.  This module
defines that protocol, the small value objects passed across it, and
helpers builder implementations share.

All builder calls are expected to be locally atomic and idempotent when
given the same arguments twice.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, Field

_ASSET_URL_RE = re.compile(
    r"((?:src|href)\s*=\s*[\"'])(?:\.\./)*assets/", re.IGNORECASE
)

# Book ``numbering`` metadata values to platform numbering codes.
NUMBERING_STYLES: dict[str, int] = {
    "none": 0,
    "numbers": 1,
    "bullets": 2,
    "indented": 3,
}

ACTIVITY_TYPES: tuple[str, ...] = ("page", "label", "url")


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


class ChapterSpec(BaseModel):
    """One chapter of a book, as passed to the builder.

    Attributes:
        import_key: Stable chapter identity inside the book.
        title: Chapter title.
        content: Chapter HTML after asset URL rewriting.
        subchapter: Whether the chapter nests under the previous one.
            Always ``False`` for the first chapter.
    """

    import_key: str
    title: str
    content: str
    subchapter: bool = False

    model_config = {"frozen": True}


class BookCreation(BaseModel):
    """Result of ``create_book``.

    Attributes:
        book_id: New book entity id.
        chapters: ``import_key -> page number`` of the created chapters.
    """

    book_id: int
    chapters: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ChapterUpsert(str, Enum):
    """What ``upsert_chapter`` did."""

    CREATED = "created"
    UPDATED = "updated"


class LessonPageSpec(BaseModel):
    """One lesson page, as passed to the builder.

    Attributes:
        import_key: Stable page identity inside the lesson.
        title: Page title.
        content: Page HTML after asset URL rewriting.
        page_type: ``content``, ``truefalse`` or ``multichoice``.
        page_data: Full nested front matter (answers, feedback...).
    """

    import_key: str
    title: str
    content: str
    page_type: str = "content"
    page_data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class LessonCreation(BaseModel):
    """Result of ``create_lesson``.

    Attributes:
        lesson_id: New lesson entity id.
        pages: ``import_key -> page id`` of the created pages.
    """

    lesson_id: int
    pages: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}


class AssetResult(BaseModel):
    """Counts returned by ``process_assets``."""

    uploaded: int = 0
    skipped: int = 0

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ContentBuilder(Protocol):
    """Platform-side operations driven by the reconciler."""

    def rewrite_content(self, scope: str, body: str) -> str:
        """Return *body* with repository asset URLs made platform URLs."""
        ...  # pragma: no cover

    def process_assets(
        self, scope: str, paths: list[str], fetch: Callable[[str], bytes]
    ) -> AssetResult:
        """Store the asset files; *fetch* reads one path's bytes."""
        ...  # pragma: no cover

    def update_root_metadata(self, scope: str, metadata: dict) -> None:
        ...  # pragma: no cover

    def ensure_section(
        self, scope: str, position: int, metadata: dict
    ) -> int:
        """Create the section at *position* if absent; return its id."""
        ...  # pragma: no cover

    def create_typed_activity(
        self,
        scope: str,
        section_position: int,
        name: str,
        body: str,
        front_matter: dict,
    ) -> int:
        """Create an activity of type ``front_matter['type']``.

        Raises:
            UnsupportedActivityError: Unknown type or a missing required
                field (``url`` for url activities).
        """
        ...  # pragma: no cover

    def update_activity(self, entity_id: int, name: str, body: str) -> None:
        ...  # pragma: no cover

    def set_visible(self, entity_id: int, visible: bool) -> None:
        ...  # pragma: no cover

    def is_visible(self, entity_id: int) -> bool | None:
        """Current visibility, or ``None`` when the entity no longer exists."""
        ...  # pragma: no cover

    def create_book(
        self,
        scope: str,
        section_position: int,
        name: str,
        chapters: list[ChapterSpec],
        metadata: dict,
    ) -> BookCreation:
        """Create a book with all of its chapters, in list order."""
        ...  # pragma: no cover

    def update_book_metadata(self, book_id: int, metadata: dict) -> None:
        ...  # pragma: no cover

    def upsert_chapter(
        self, book_id: int, chapter: ChapterSpec, position: int
    ) -> ChapterUpsert:
        """Update the chapter with ``chapter.import_key`` or create it.

        Always sets the page number to *position* and un-hides the
        chapter.
        """
        ...  # pragma: no cover

    def hide_chapter(self, book_id: int, import_key: str) -> bool:
        """Hide a chapter; ``False`` when it was already hidden or gone."""
        ...  # pragma: no cover

    def create_lesson(
        self,
        scope: str,
        section_position: int,
        name: str,
        pages: list[LessonPageSpec],
        metadata: dict,
    ) -> LessonCreation:
        """Create a lesson with its pages linked in list order."""
        ...  # pragma: no cover

    def update_lesson_metadata(self, lesson_id: int, metadata: dict) -> None:
        ...  # pragma: no cover

    def create_lesson_page(
        self, lesson_id: int, page: LessonPageSpec
    ) -> int:
        ...  # pragma: no cover

    def update_lesson_page(self, page_id: int, page: LessonPageSpec) -> None:
        ...  # pragma: no cover

    def reorder_lesson_pages(self, lesson_id: int, page_ids: list[int]) -> None:
        """Relink previous/next pages in *page_ids* order.

        The last content page jumps to the end of the lesson; every other
        content page jumps to the next page.
        """
        ...  # pragma: no cover

    def remove_lesson_page(self, lesson_id: int, page_id: int) -> None:
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Helpers for builder implementations
# ---------------------------------------------------------------------------


def rewrite_asset_urls(html: str, base_url: str) -> str:
    """Point ``src``/``href`` references to ``assets/`` at *base_url*.

    Handles any number of leading ``../`` segments::

        <img src="../assets/img/a.png">  ->  <img src="{base_url}/img/a.png">
    """
    base = base_url.rstrip("/")
    return _ASSET_URL_RE.sub(lambda m: f"{m.group(1)}{base}/", html)


def book_numbering(metadata: dict) -> int:
    """Platform numbering code for book *metadata* (``none`` by default)."""
    return NUMBERING_STYLES.get(str(metadata.get("numbering", "")), 0)


def lesson_jumps(page_types: list[str]) -> list[str]:
    """Continue-button target per page: ``next`` or ``end`` of lesson.

    Question pages have no continue button and get ``""``.
    """
    jumps = []
    for index, page_type in enumerate(page_types):
        if page_type in ("truefalse", "multichoice"):
            jumps.append("")
        elif index == len(page_types) - 1:
            jumps.append("end")
        else:
            jumps.append("next")
    return jumps
