"""Shared pytest fixtures for course-sync tests."""

from __future__ import annotations

import pytest
from dotenv import load_dotenv

from course_sync.errors import UnsupportedActivityError
from course_sync.sync.builder import (
    ACTIVITY_TYPES,
    AssetResult,
    BookCreation,
    ChapterSpec,
    ChapterUpsert,
    LessonCreation,
    LessonPageSpec,
    lesson_jumps,
    rewrite_asset_urls,
)
from course_sync.sync.models import EntryKind, TreeEntry

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require live GitHub access",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring live GitHub access"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeRepository:
    """In-memory repository branch.

    Directory entries are derived from the file paths, the way GitHub's
    recursive tree listing reports them.
    """

    def __init__(self, files: dict | None = None, sha: str = "a" * 40) -> None:
        self.files: dict = dict(files or {})
        self.sha = sha
        self.fetched: list[str] = []
        self.error: Exception | None = None
        self.empty_dirs: set[str] = set()

    def commit(self, sha: str, files: dict | None = None, **changes) -> None:
        """Move the branch head, replacing or patching the files."""
        if files is not None:
            self.files = dict(files)
        for path, content in changes.get("update", {}).items():
            self.files[path] = content
        for path in changes.get("delete", ()):
            del self.files[path]
        self.sha = sha

    def get_snapshot_identity(self) -> str:
        if self.error is not None:
            raise self.error
        return self.sha

    def list_tree(self) -> list[TreeEntry]:
        directories = set(self.empty_dirs)
        for path in self.files:
            parts = path.split("/")
            for i in range(1, len(parts)):
                directories.add("/".join(parts[:i]))
        entries = [TreeEntry(path=d, kind=EntryKind.TREE) for d in directories]
        entries += [
            TreeEntry(path=p, kind=EntryKind.BLOB, size=len(c))
            for p, c in self.files.items()
        ]
        # GitHub does not promise any order.
        return sorted(entries, key=lambda e: e.path, reverse=True)

    def get_file_contents(self, path: str) -> bytes:
        self.fetched.append(path)
        content = self.files[path]
        return content if isinstance(content, bytes) else content.encode("utf-8")


class FakeBuilder:
    """In-memory content builder recording every call.

    ``entities`` maps ids to dicts describing activities, books and
    lessons; ``calls`` lists ``(method, args)`` tuples in call order.
    """

    ASSET_BASE = "https://lms.example.com/assets"

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.entities: dict[int, dict] = {}
        self.sections: dict[int, int] = {}
        self.section_metadata: dict[int, dict] = {}
        self.root_metadata: dict = {}
        self.fail_names: set[str] = set()
        self.visibility_errors: set[int] = set()
        self._next_id = 100

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, args))

    def called(self, method: str) -> list[tuple]:
        return [args for name, args in self.calls if name == method]

    def clear_calls(self) -> None:
        self.calls.clear()

    # -- content -------------------------------------------------------

    def rewrite_content(self, scope, body):
        return rewrite_asset_urls(body, f"{self.ASSET_BASE}/{scope}")

    def process_assets(self, scope, paths, fetch):
        self._record("process_assets", scope, tuple(paths))
        for path in paths:
            fetch(path)
        return AssetResult(uploaded=len(paths), skipped=0)

    def update_root_metadata(self, scope, metadata):
        self._record("update_root_metadata", scope, metadata)
        self.root_metadata = dict(metadata)

    def ensure_section(self, scope, position, metadata):
        self._record("ensure_section", scope, position, metadata)
        if position not in self.sections:
            self.sections[position] = self._new_id()
        self.section_metadata[position] = dict(metadata)
        return self.sections[position]

    # -- activities ----------------------------------------------------

    def create_typed_activity(self, scope, section_position, name, body, front_matter):
        self._record("create_typed_activity", scope, section_position, name, body)
        activity_type = front_matter.get("type", "page")
        if activity_type not in ACTIVITY_TYPES:
            raise UnsupportedActivityError(activity_type, "unknown activity type")
        if activity_type == "url" and not front_matter.get("url"):
            raise UnsupportedActivityError("url", "'url' is required in front matter")
        if name in self.fail_names:
            raise RuntimeError(f"platform refused {name}")
        entity_id = self._new_id()
        self.entities[entity_id] = {
            "type": activity_type,
            "name": str(front_matter.get("name") or name),
            "body": body,
            "section": section_position,
            "visible": True,
        }
        return entity_id

    def update_activity(self, entity_id, name, body):
        self._record("update_activity", entity_id, name, body)
        self.entities[entity_id].update(name=name, body=body)

    def set_visible(self, entity_id, visible):
        self._record("set_visible", entity_id, visible)
        self.entities[entity_id]["visible"] = visible

    def is_visible(self, entity_id):
        if entity_id in self.visibility_errors:
            raise RuntimeError(f"entity {entity_id} is locked")
        entity = self.entities.get(entity_id)
        return None if entity is None else entity["visible"]

    # -- books ---------------------------------------------------------

    def create_book(self, scope, section_position, name, chapters, metadata):
        self._record("create_book", scope, section_position, name, tuple(chapters))
        book_id = self._new_id()
        self.entities[book_id] = {
            "type": "book",
            "name": metadata.get("title") or name,
            "metadata": dict(metadata),
            "section": section_position,
            "visible": True,
            "chapters": {
                spec.import_key: self._chapter(spec, page)
                for page, spec in enumerate(chapters, start=1)
            },
        }
        return BookCreation(
            book_id=book_id,
            chapters={spec.import_key: i for i, spec in enumerate(chapters, start=1)},
        )

    @staticmethod
    def _chapter(spec: ChapterSpec, page: int) -> dict:
        return {
            "title": spec.title,
            "content": spec.content,
            "subchapter": spec.subchapter,
            "page": page,
            "hidden": False,
        }

    def update_book_metadata(self, book_id, metadata):
        self._record("update_book_metadata", book_id, metadata)
        self.entities[book_id]["metadata"] = dict(metadata)

    def upsert_chapter(self, book_id, chapter, position):
        self._record("upsert_chapter", book_id, chapter.import_key, position)
        chapters = self.entities[book_id]["chapters"]
        created = chapter.import_key not in chapters
        chapters[chapter.import_key] = self._chapter(chapter, position)
        return ChapterUpsert.CREATED if created else ChapterUpsert.UPDATED

    def hide_chapter(self, book_id, import_key):
        self._record("hide_chapter", book_id, import_key)
        chapter = self.entities[book_id]["chapters"].get(import_key)
        if chapter is None or chapter["hidden"]:
            return False
        chapter["hidden"] = True
        return True

    def chapter_order(self, book_id: int) -> list[str]:
        chapters = self.entities[book_id]["chapters"]
        visible = [k for k, c in chapters.items() if not c["hidden"]]
        return sorted(visible, key=lambda k: chapters[k]["page"])

    # -- lessons -------------------------------------------------------

    def create_lesson(self, scope, section_position, name, pages, metadata):
        self._record("create_lesson", scope, section_position, name, tuple(pages))
        lesson_id = self._new_id()
        page_ids = {spec.import_key: self._new_id() for spec in pages}
        self.entities[lesson_id] = {
            "type": "lesson",
            "name": metadata.get("title") or name,
            "metadata": dict(metadata),
            "visible": True,
            "pages": {page_ids[spec.import_key]: spec for spec in pages},
            "order": [page_ids[spec.import_key] for spec in pages],
        }
        return LessonCreation(lesson_id=lesson_id, pages=page_ids)

    def update_lesson_metadata(self, lesson_id, metadata):
        self._record("update_lesson_metadata", lesson_id, metadata)
        self.entities[lesson_id]["metadata"] = dict(metadata)

    def create_lesson_page(self, lesson_id, page: LessonPageSpec):
        self._record("create_lesson_page", lesson_id, page.import_key)
        page_id = self._new_id()
        self.entities[lesson_id]["pages"][page_id] = page
        return page_id

    def update_lesson_page(self, page_id, page):
        self._record("update_lesson_page", page_id, page.import_key)
        for entity in self.entities.values():
            if page_id in entity.get("pages", {}):
                entity["pages"][page_id] = page

    def reorder_lesson_pages(self, lesson_id, page_ids):
        self._record("reorder_lesson_pages", lesson_id, tuple(page_ids))
        self.entities[lesson_id]["order"] = list(page_ids)

    def remove_lesson_page(self, lesson_id, page_id):
        self._record("remove_lesson_page", lesson_id, page_id)
        del self.entities[lesson_id]["pages"][page_id]

    def lesson_jumps(self, lesson_id: int) -> list[str]:
        lesson = self.entities[lesson_id]
        return lesson_jumps([lesson["pages"][pid].page_type for pid in lesson["order"]])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_repository():
    """Factory for ``FakeRepository`` instances."""
    return FakeRepository


@pytest.fixture
def fake_builder():
    """A fresh ``FakeBuilder``."""
    return FakeBuilder()
