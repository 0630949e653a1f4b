"""Reconciler: one synchronization run for one course scope.

The ``Reconciler`` ties together the repository client, the tree
classifier, the front-matter parsers, the content builder, the mapping
store and the history store.  A run:

1. Resolves the snapshot identity; an unchanged identity ends the run as
   ``uptodate``.
2. Lists and classifies the repository tree.
3. Hands asset paths to the builder.
4. Forwards root metadata.
5. Walks sections in order: section container, pages, books, lessons.
6. Hides entities whose source paths disappeared.
7. Persists the snapshot identity and builds the summary.

Any exception in those steps fails the run.  Mapping records committed
before the failure stay valid; the next run picks up from them.  Exactly
one history record is written per run, whatever the outcome.
"""

from __future__ import annotations

import json
import logging
import threading
import warnings
import weakref
from dataclasses import dataclass
from typing import Any, Protocol

from course_sync.config_schema import LayoutConfig
from course_sync.errors import (
    EmptySnapshotError,
    ParseFallbackWarning,
    SyncInProgressError,
    UnsupportedActivityError,
)
from course_sync.sync.builder import (
    ChapterSpec,
    ChapterUpsert,
    ContentBuilder,
    LessonPageSpec,
)
from course_sync.sync.classifier import (
    assign_import_keys,
    classify_tree,
    derive_activity_name,
)
from course_sync.sync.frontmatter import (
    MetadataParser,
    YamlMetadataParser,
    parse_front_matter,
    parse_nested_front_matter,
)
from course_sync.sync.history import HistoryStore
from course_sync.sync.mapping import MappingStore, content_hash
from course_sync.sync.models import (
    BookTree,
    ContainerKind,
    MappingRecord,
    OperationLogEntry,
    RecordKind,
    SectionTree,
    SyncCounters,
    SyncHistoryRecord,
    SyncOutcome,
    SyncStatus,
    TreeEntry,
)

logger = logging.getLogger(__name__)

FAILED_SUMMARY = "Sync failed. Check the sync history for details."

# Record kinds the removal sweep may hide.  Chapters and lesson pages are
# swept per container; metadata records share their container's entity.
_SWEPT_KINDS = (None, RecordKind.PAGE, RecordKind.BOOK, RecordKind.LESSON)

# Entries vanish once no run holds a reference to the lock.
_scope_locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
_scope_locks_guard = threading.Lock()


def _scope_lock(scope: str) -> threading.Lock:
    with _scope_locks_guard:
        lock = _scope_locks.get(scope)
        if lock is None:
            lock = threading.Lock()
            _scope_locks[scope] = lock
        return lock


class RepositoryClient(Protocol):
    """Read access to one repository branch."""

    def get_snapshot_identity(self) -> str:
        ...  # pragma: no cover

    def list_tree(self) -> list[TreeEntry]:
        ...  # pragma: no cover

    def get_file_contents(self, path: str) -> bytes:
        ...  # pragma: no cover


@dataclass(frozen=True)
class _ContentFile:
    """A fetched chapter or lesson page."""

    path: str
    import_key: str
    digest: str
    spec: Any


class Reconciler:
    """Reconcile one course scope with its repository snapshot.

    Args:
        scope: Course scope key.
        repository: Client bound to the course's repository branch.
        builder: Platform content builder.
        store: Mapping store.
        history: History store; when ``None`` no history is written.
        parser: Metadata-file parser (defaults to ``YamlMetadataParser``).
        layout: Repository layout conventions.
    """

    def __init__(
        self,
        scope: str,
        repository: RepositoryClient,
        builder: ContentBuilder,
        store: MappingStore,
        history: HistoryStore | None = None,
        parser: MetadataParser | None = None,
        layout: LayoutConfig | None = None,
    ) -> None:
        self.scope = scope
        self.repository = repository
        self.builder = builder
        self.store = store
        self.history = history
        self.parser = parser or YamlMetadataParser()
        self.layout = layout or LayoutConfig()
        self._reset()

    def _reset(self) -> None:
        self.counters = SyncCounters()
        self.operations: list[OperationLogEntry] = []
        self._touched: set[str] = set()
        self._identity = ""
        self._failed_summary = FAILED_SUMMARY

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(
        self,
        triggered_by: str | None = None,
        failed_summary: str = FAILED_SUMMARY,
    ) -> SyncOutcome:
        """Execute one run and record it in the history.

        Args:
            triggered_by: Who or what started the run (user name,
                ``webhook``, ``cli``...), stored in the history.
            failed_summary: Redacted summary used when the run fails.

        Returns:
            The run's ``SyncOutcome``.  Failures are returned, not raised.
        """
        self._reset()
        self._failed_summary = failed_summary
        lock = _scope_lock(self.scope)
        if not lock.acquire(blocking=False):
            outcome = self._fail(SyncInProgressError(self.scope))
        else:
            try:
                outcome = self._run_guarded()
            finally:
                lock.release()

        self._write_history(outcome, triggered_by)
        return outcome

    def _run_guarded(self) -> SyncOutcome:
        try:
            return self._execute()
        except Exception as exc:
            return self._fail(exc)

    def _fail(self, exc: Exception) -> SyncOutcome:
        logger.error("Sync failed for course %s: %s", self.scope, exc)
        self._log("sync_error", "", f"{type(exc).__name__}: {exc}")
        return SyncOutcome(
            scope=self.scope,
            status=SyncStatus.FAILED,
            snapshot_identity=self._identity,
            summary=self._failed_summary,
        )

    def _execute(self) -> SyncOutcome:
        # 1. Snapshot identity
        identity = self.repository.get_snapshot_identity()
        self._identity = identity
        if identity and identity == self.store.get_snapshot(self.scope):
            logger.info("Course %s already at %s", self.scope, identity[:7])
            return SyncOutcome(
                scope=self.scope,
                status=SyncStatus.UP_TO_DATE,
                snapshot_identity=identity,
                summary=f"Already up to date (commit {identity[:7]}).",
            )

        # 2. Tree
        entries = self.repository.list_tree()
        if not entries:
            raise EmptySnapshotError(identity)
        tree = classify_tree(entries, self.layout)
        logger.info(
            "Course %s: %d section(s), %d asset(s) at %s",
            self.scope,
            len(tree.sections),
            len(tree.assets),
            identity[:7],
        )

        # 3. Assets
        if tree.assets:
            result = self.builder.process_assets(
                self.scope, list(tree.assets), self.repository.get_file_contents
            )
            self.counters.assets_uploaded += result.uploaded
            self.counters.assets_skipped += result.skipped
            self._log(
                "assets",
                f"{self.layout.assets_dir}/",
                f"{result.uploaded} uploaded, {result.skipped} skipped",
            )

        # 4. Root metadata
        if tree.root_metadata_path:
            metadata, _ = self._read_metadata(tree.root_metadata_path)
            if metadata:
                self.builder.update_root_metadata(self.scope, metadata)
                self._log("course_metadata", tree.root_metadata_path, "updated")

        # 5. Sections
        for position, (dirname, section) in enumerate(
            tree.sections.items(), start=1
        ):
            self._process_section(position, dirname, section)

        # 6. Removal sweep
        self._sweep_removed()

        # 7. Persist
        self.store.set_snapshot(self.scope, identity)
        summary = self.counters.summary()
        logger.info("Course %s synced to %s: %s", self.scope, identity[:7], summary)
        return SyncOutcome(
            scope=self.scope,
            status=SyncStatus.SUCCESS,
            snapshot_identity=identity,
            summary=summary,
            counters=self.counters,
        )

    # ------------------------------------------------------------------
    # Sections and pages
    # ------------------------------------------------------------------

    def _process_section(
        self, position: int, dirname: str, section: SectionTree
    ) -> None:
        self._touched.add(section.path)
        metadata, meta_hash = self._read_metadata(section.metadata_path)
        if not metadata.get("title"):
            metadata["title"] = derive_activity_name(dirname)

        prior = self.store.lookup(self.scope, section.path)
        meta_prior = (
            self.store.lookup(self.scope, section.metadata_path)
            if section.metadata_path
            else None
        )

        section_id = self.builder.ensure_section(self.scope, position, metadata)
        self.store.upsert(
            self.scope,
            section.path,
            parent_entity_id=section_id,
            kind=RecordKind.SECTION,
            position=position,
        )
        if section.metadata_path:
            self.store.upsert(
                self.scope,
                section.metadata_path,
                parent_entity_id=section_id,
                content_hash=meta_hash,
                kind=RecordKind.SECTION_METADATA,
            )

        if prior is None:
            self.counters.sections_created += 1
            self._log("section_create", section.path, f"position {position}")
        elif section.metadata_path and (
            meta_prior is None or meta_prior.content_hash != meta_hash
        ):
            self.counters.sections_updated += 1
            self._log("section_update", section.path, "metadata changed")

        for filename, path in section.pages.items():
            self._process_page(position, section_id, filename, path)

        for book_dir, book in section.books.items():
            if book.kind is ContainerKind.LESSON:
                self._process_lesson(position, section_id, book_dir, book)
            else:
                self._process_book(position, section_id, book_dir, book)

    def _process_page(
        self, section_position: int, section_id: int, filename: str, path: str
    ) -> None:
        self._touched.add(path)
        front, body = parse_front_matter(self._fetch_text(path))
        body = self.builder.rewrite_content(self.scope, body)
        digest = content_hash(body)
        name = str(front.get("name") or derive_activity_name(filename))

        record = self.store.lookup(self.scope, path)
        if record is None or record.entity_id is None:
            activity_type = str(front.get("type", "page"))
            try:
                entity_id = self.builder.create_typed_activity(
                    self.scope, section_position, name, body, front
                )
            except UnsupportedActivityError as exc:
                self._log("activity_error", path, str(exc))
                raise
            self.store.upsert(
                self.scope,
                path,
                entity_id,
                section_id,
                digest,
                kind=RecordKind.PAGE,
                hidden=False,
            )
            self.counters.activities_created += 1
            self._log(
                f"{activity_type}_create", path, f"created entity {entity_id}"
            )
            return

        if record.content_hash == digest:
            if record.hidden:
                self.builder.set_visible(record.entity_id, True)
                self.store.upsert(self.scope, path, hidden=False)
                self.counters.activities_restored += 1
                self._log("page_restore", path, f"shown entity {record.entity_id}")
            else:
                self.counters.activities_skipped += 1
                self._log("page_skip", path, "unchanged")
            return

        self.builder.update_activity(record.entity_id, name, body)
        if record.hidden:
            self.builder.set_visible(record.entity_id, True)
        self.store.upsert(
            self.scope,
            path,
            record.entity_id,
            section_id,
            digest,
            hidden=False,
        )
        self.counters.activities_updated += 1
        self._log("page_update", path, f"updated entity {record.entity_id}")

    # ------------------------------------------------------------------
    # Books
    # ------------------------------------------------------------------

    def _process_book(
        self, section_position: int, section_id: int, dirname: str, book: BookTree
    ) -> None:
        self._touched.add(book.path)
        metadata, meta_hash = self._read_metadata(book.metadata_path)
        keys = self._import_keys(book, RecordKind.CHAPTER)
        chapters = [
            self._read_chapter(filename, path, keys[filename])
            for filename, path in book.chapters.items()
        ]
        # The first chapter can never be a subchapter.
        if chapters and chapters[0].spec.subchapter:
            first = chapters[0]
            chapters[0] = _ContentFile(
                first.path,
                first.import_key,
                first.digest,
                first.spec.model_copy(update={"subchapter": False}),
            )

        record = self.store.lookup(self.scope, book.path)
        if record is None or record.entity_id is None:
            self._create_book(
                section_position, section_id, dirname, book, chapters, metadata, meta_hash
            )
            return

        book_id = record.entity_id
        self._restore_if_hidden(record)

        if book.metadata_path:
            meta_prior = self.store.lookup(self.scope, book.metadata_path)
            if meta_prior is None or meta_prior.content_hash != meta_hash:
                self.builder.update_book_metadata(book_id, metadata)
                self.counters.activities_updated += 1
                self._log("book_metadata", book.metadata_path, f"updated book {book_id}")
            self.store.upsert(
                self.scope,
                book.metadata_path,
                book_id,
                section_id,
                meta_hash,
                kind=RecordKind.BOOK_METADATA,
            )

        chapter_records = [
            r
            for r in self.store.list(self.scope)
            if r.kind is RecordKind.CHAPTER
            and r.entity_id == book_id
            and r.import_key
        ]
        by_key = {r.import_key: r for r in chapter_records}

        current_keys: set[str] = set()
        for position, chapter in enumerate(chapters, start=1):
            current_keys.add(chapter.import_key)
            self._sync_chapter(book_id, section_id, position, chapter, by_key)

        # Chapters whose import key disappeared are hidden, never deleted.
        for key in sorted(set(by_key) - current_keys):
            stale = [r for r in chapter_records if r.import_key == key]
            if all(r.hidden for r in stale):
                continue
            try:
                if self.builder.hide_chapter(book_id, key):
                    self.counters.chapters_hidden += 1
                    self._log("chapter_hide", stale[0].repo_path, f"hidden in book {book_id}")
            except Exception as exc:
                logger.warning("Could not hide chapter %s: %s", key, exc)
                self._log("chapter_hide_error", stale[0].repo_path, str(exc))
                continue
            for stale_record in stale:
                self.store.upsert(self.scope, stale_record.repo_path, hidden=True)

    def _create_book(
        self,
        section_position: int,
        section_id: int,
        dirname: str,
        book: BookTree,
        chapters: list[_ContentFile],
        metadata: dict,
        meta_hash: str | None,
    ) -> None:
        creation = self.builder.create_book(
            self.scope,
            section_position,
            derive_activity_name(dirname),
            [chapter.spec for chapter in chapters],
            metadata,
        )
        book_id = creation.book_id
        for position, chapter in enumerate(chapters, start=1):
            self.store.upsert(
                self.scope,
                chapter.path,
                book_id,
                section_id,
                chapter.digest,
                kind=RecordKind.CHAPTER,
                import_key=chapter.import_key,
                position=creation.chapters.get(chapter.import_key, position),
                hidden=False,
            )
        self.store.upsert(
            self.scope,
            book.path,
            book_id,
            section_id,
            kind=RecordKind.BOOK,
            hidden=False,
        )
        if book.metadata_path:
            self.store.upsert(
                self.scope,
                book.metadata_path,
                book_id,
                section_id,
                meta_hash,
                kind=RecordKind.BOOK_METADATA,
            )
        self.counters.activities_created += 1
        self.counters.chapters_created += len(chapters)
        self._log(
            "book_create",
            book.path,
            f"created book {book_id} with {len(chapters)} chapter(s)",
        )

    def _sync_chapter(
        self,
        book_id: int,
        section_id: int,
        position: int,
        chapter: _ContentFile,
        by_key: dict[str, MappingRecord],
    ) -> None:
        prior = self.store.lookup(self.scope, chapter.path)
        if (
            prior is None
            or prior.kind is not RecordKind.CHAPTER
            or prior.entity_id != book_id
        ):
            prior = by_key.get(chapter.import_key)

        if prior is None or prior.content_hash != chapter.digest:
            result = self.builder.upsert_chapter(book_id, chapter.spec, position)
            if result is ChapterUpsert.CREATED:
                self.counters.chapters_created += 1
            else:
                self.counters.chapters_updated += 1
            self._log(f"chapter_{result.value}", chapter.path, f"page {position}")
        elif prior.position != position or prior.hidden:
            self.builder.upsert_chapter(book_id, chapter.spec, position)
            if prior.hidden:
                self.counters.chapters_updated += 1
                self._log("chapter_restore", chapter.path, f"page {position}")
            else:
                self.counters.chapters_reordered += 1
                self._log(
                    "chapter_reorder",
                    chapter.path,
                    f"page {prior.position} -> {position}",
                )

        self.store.upsert(
            self.scope,
            chapter.path,
            book_id,
            section_id,
            chapter.digest,
            kind=RecordKind.CHAPTER,
            import_key=chapter.import_key,
            position=position,
            hidden=False,
        )

    def _import_keys(self, container: BookTree, kind: RecordKind) -> dict[str, str]:
        """Unique import keys for a container's files, keeping stored ones."""
        previous: dict[str, str] = {}
        for filename, path in container.chapters.items():
            record = self.store.lookup(self.scope, path)
            if record is not None and record.kind is kind and record.import_key:
                previous[filename] = record.import_key
        return assign_import_keys(container.path, container.chapters, previous)

    def _read_chapter(self, filename: str, path: str, key: str) -> _ContentFile:
        self._touched.add(path)
        front, body = parse_front_matter(self._fetch_text(path))
        body = self.builder.rewrite_content(self.scope, body)
        spec = ChapterSpec(
            import_key=key,
            title=str(front.get("title") or derive_activity_name(filename)),
            content=body,
            subchapter=front.get("subchapter") is True,
        )
        return _ContentFile(path, key, content_hash(body), spec)

    # ------------------------------------------------------------------
    # Lessons
    # ------------------------------------------------------------------

    def _process_lesson(
        self, section_position: int, section_id: int, dirname: str, lesson: BookTree
    ) -> None:
        self._touched.add(lesson.path)
        metadata, meta_hash = self._read_metadata(lesson.metadata_path)
        keys = self._import_keys(lesson, RecordKind.LESSON_PAGE)
        pages = [
            self._read_lesson_page(filename, path, keys[filename])
            for filename, path in lesson.chapters.items()
        ]

        record = self.store.lookup(self.scope, lesson.path)
        if record is None or record.entity_id is None:
            creation = self.builder.create_lesson(
                self.scope,
                section_position,
                derive_activity_name(dirname),
                [page.spec for page in pages],
                metadata,
            )
            lesson_id = creation.lesson_id
            for position, page in enumerate(pages, start=1):
                self.store.upsert(
                    self.scope,
                    page.path,
                    creation.pages.get(page.import_key),
                    lesson_id,
                    page.digest,
                    kind=RecordKind.LESSON_PAGE,
                    import_key=page.import_key,
                    position=position,
                    hidden=False,
                )
            self.store.upsert(
                self.scope,
                lesson.path,
                lesson_id,
                section_id,
                kind=RecordKind.LESSON,
                hidden=False,
            )
            if lesson.metadata_path:
                self.store.upsert(
                    self.scope,
                    lesson.metadata_path,
                    lesson_id,
                    section_id,
                    meta_hash,
                    kind=RecordKind.LESSON_METADATA,
                )
            self.counters.activities_created += 1
            self.counters.lesson_pages_created += len(pages)
            self._log(
                "lesson_create",
                lesson.path,
                f"created lesson {lesson_id} with {len(pages)} page(s)",
            )
            return

        lesson_id = record.entity_id
        self._restore_if_hidden(record)

        if lesson.metadata_path:
            meta_prior = self.store.lookup(self.scope, lesson.metadata_path)
            if meta_prior is None or meta_prior.content_hash != meta_hash:
                self.builder.update_lesson_metadata(lesson_id, metadata)
                self.counters.activities_updated += 1
                self._log(
                    "lesson_metadata", lesson.metadata_path, f"updated lesson {lesson_id}"
                )
            self.store.upsert(
                self.scope,
                lesson.metadata_path,
                lesson_id,
                section_id,
                meta_hash,
                kind=RecordKind.LESSON_METADATA,
            )

        page_records = [
            r
            for r in self.store.list(self.scope)
            if r.kind is RecordKind.LESSON_PAGE
            and r.parent_entity_id == lesson_id
            and not r.hidden
            and r.entity_id is not None
        ]
        by_key = {r.import_key: r for r in page_records if r.import_key}

        ordered_ids: list[int] = []
        relink = False
        current_keys: set[str] = set()
        for position, page in enumerate(pages, start=1):
            current_keys.add(page.import_key)
            prior = self.store.lookup(self.scope, page.path)
            if (
                prior is None
                or prior.kind is not RecordKind.LESSON_PAGE
                or prior.parent_entity_id != lesson_id
                or prior.hidden
                or prior.entity_id is None
            ):
                prior = by_key.get(page.import_key)

            if prior is None:
                page_id = self.builder.create_lesson_page(lesson_id, page.spec)
                self.counters.lesson_pages_created += 1
                self._log("lesson_page_create", page.path, f"created page {page_id}")
                relink = True
            else:
                page_id = prior.entity_id
                if prior.content_hash != page.digest:
                    self.builder.update_lesson_page(page_id, page.spec)
                    self.counters.lesson_pages_updated += 1
                    self._log("lesson_page_update", page.path, f"updated page {page_id}")
                if prior.position != position:
                    relink = True

            self.store.upsert(
                self.scope,
                page.path,
                page_id,
                lesson_id,
                page.digest,
                kind=RecordKind.LESSON_PAGE,
                import_key=page.import_key,
                position=position,
                hidden=False,
            )
            ordered_ids.append(page_id)

        # The platform has no hidden lesson pages: removed ones are deleted
        # and their records flagged.
        for stale in page_records:
            if stale.import_key in current_keys or stale.entity_id in ordered_ids:
                continue
            self.builder.remove_lesson_page(lesson_id, stale.entity_id)
            self.store.upsert(self.scope, stale.repo_path, hidden=True)
            self.counters.lesson_pages_removed += 1
            self._log("lesson_page_remove", stale.repo_path, f"removed page {stale.entity_id}")
            relink = True

        if relink:
            self.builder.reorder_lesson_pages(lesson_id, ordered_ids)
            self._log("lesson_relink", lesson.path, f"{len(ordered_ids)} page(s)")

    def _read_lesson_page(self, filename: str, path: str, key: str) -> _ContentFile:
        self._touched.add(path)
        front, body = parse_nested_front_matter(self._fetch_text(path))
        body = self.builder.rewrite_content(self.scope, body)
        spec = LessonPageSpec(
            import_key=key,
            title=str(front.get("title") or derive_activity_name(filename)),
            content=body,
            page_type=str(front.get("pagetype") or "content"),
            page_data=front,
        )
        # Question pages keep their answers in front matter, so it is part
        # of the hashed content.
        digest = content_hash(
            json.dumps(front, sort_keys=True, default=str) + "\n" + body
        )
        return _ContentFile(path, key, digest, spec)

    # ------------------------------------------------------------------
    # Removal sweep
    # ------------------------------------------------------------------

    def _sweep_removed(self) -> None:
        assets_prefix = f"{self.layout.assets_dir}/"
        for record in self.store.list(self.scope):
            if record.entity_id is None or record.repo_path in self._touched:
                continue
            if record.kind not in _SWEPT_KINDS:
                continue
            if record.repo_path.startswith(assets_prefix):
                continue
            try:
                visible = self.builder.is_visible(record.entity_id)
                if visible:
                    self.builder.set_visible(record.entity_id, False)
                    self.counters.activities_hidden += 1
                    self._log(
                        "page_hide", record.repo_path, f"hidden entity {record.entity_id}"
                    )
                elif visible is None:
                    self._log("page_hide_skip", record.repo_path, "entity no longer exists")
                if not record.hidden:
                    self.store.upsert(self.scope, record.repo_path, hidden=True)
            except Exception as exc:
                logger.warning("Could not hide %s: %s", record.repo_path, exc)
                self._log("page_hide_error", record.repo_path, str(exc))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _restore_if_hidden(self, record: MappingRecord) -> None:
        if not record.hidden:
            return
        self.builder.set_visible(record.entity_id, True)
        self.store.upsert(self.scope, record.repo_path, hidden=False)
        self.counters.activities_restored += 1
        self._log("activity_restore", record.repo_path, f"shown entity {record.entity_id}")

    def _fetch_text(self, path: str) -> str:
        return self.repository.get_file_contents(path).decode(
            "utf-8-sig", errors="replace"
        )

    def _read_metadata(self, path: str | None) -> tuple[dict, str | None]:
        """Fetch and parse a metadata file; ``({}, None)`` when absent."""
        if not path:
            return {}, None
        self._touched.add(path)
        text = self._fetch_text(path)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            metadata = dict(self.parser.parse(text, source=path))
        for warning in caught:
            if issubclass(warning.category, ParseFallbackWarning):
                self._log("metadata_fallback", path, str(warning.message))
            else:
                warnings.warn(warning.message, warning.category, stacklevel=2)
        return metadata, content_hash(text)

    def _log(self, kind: str, path: str, detail: str) -> None:
        logger.debug("[%s] %s %s: %s", self.scope, kind, path, detail)
        self.operations.append(
            OperationLogEntry(kind=kind, path=path, detail=detail)
        )

    def _write_history(self, outcome: SyncOutcome, triggered_by: str | None) -> None:
        if self.history is None:
            return
        self.history.append(
            SyncHistoryRecord(
                scope=self.scope,
                triggered_by=triggered_by,
                snapshot_identity=outcome.snapshot_identity,
                status=outcome.status,
                summary=outcome.summary,
                operations=list(self.operations),
            )
        )
