"""Classify a flat repository listing into the course hierarchy.

Repository layout (names are configurable via ``LayoutConfig``)::

    course.yaml                         root metadata
    assets/**                           shared assets
    sections/01-intro/                  section
    sections/01-intro/section.yaml      section metadata
    sections/01-intro/01-welcome.html   page
    sections/01-intro/02-guide/         book (or lesson)
    sections/01-intro/02-guide/book.yaml
    sections/01-intro/02-guide/01-start.html   chapter

Rules are tried in order against each entry; the first match wins and
unmatched paths are ignored:

1. root metadata file
2. blob under the assets directory
3. blob three levels below the sections directory whose parent is listed
   as a directory -> chapter or book/lesson metadata
4. blob two levels below -> page or section metadata
5. directory one or two levels below -> (empty) section or book container

Position is never stored: every level is sorted by ordinal comparison of
its own name, so authors order content with numeric filename prefixes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from course_sync.config_schema import LayoutConfig
from course_sync.sync.models import (
    BookTree,
    ContainerKind,
    EntryKind,
    SectionTree,
    StructuredTree,
    TreeEntry,
)

_ORDER_PREFIX_RE = re.compile(r"^\d+-")


def classify_tree(
    entries: Iterable[TreeEntry], layout: LayoutConfig | None = None
) -> StructuredTree:
    """Build a ``StructuredTree`` from an unordered tree listing.

    Args:
        entries: Flat, recursive repository listing.
        layout: Naming conventions; defaults to ``LayoutConfig()``.

    Returns:
        The classified, sorted hierarchy plus the asset path list.
    """
    layout = layout or LayoutConfig()
    entries = list(entries)
    directories = {
        e.path for e in entries if e.kind is EntryKind.TREE
    }
    assets_prefix = f"{layout.assets_dir}/"

    root_metadata: str | None = None
    assets: list[str] = []
    sections: dict[str, dict] = {}

    def section(name: str) -> dict:
        return sections.setdefault(
            name, {"metadata": None, "pages": {}, "books": {}}
        )

    def book(section_name: str, name: str) -> dict:
        return section(section_name)["books"].setdefault(
            name,
            {"metadata": None, "kind": ContainerKind.BOOK, "chapters": {}},
        )

    for entry in entries:
        path = entry.path
        is_blob = entry.kind is EntryKind.BLOB

        # 1. root metadata
        if is_blob and path == layout.root_metadata:
            root_metadata = path
            continue

        # 2. assets
        if is_blob and path.startswith(assets_prefix):
            if len(path) > len(assets_prefix):
                assets.append(path)
            continue

        parts = path.split("/")
        if parts[0] != layout.sections_dir or "" in parts:
            continue

        # 3. chapters and book/lesson metadata
        if (
            is_blob
            and len(parts) == 4
            and "/".join(parts[:3]) in directories
        ):
            _, section_name, book_name, filename = parts
            container = book(section_name, book_name)
            if filename == layout.lesson_metadata:
                container["metadata"] = path
                container["kind"] = ContainerKind.LESSON
            elif filename == layout.book_metadata:
                if container["kind"] is ContainerKind.BOOK:
                    container["metadata"] = path
            elif _is_content_file(filename, layout):
                container["chapters"][filename] = path
            continue

        # 4. pages and section metadata
        if is_blob and len(parts) == 3:
            _, section_name, filename = parts
            if filename == layout.section_metadata:
                section(section_name)["metadata"] = path
            elif _is_content_file(filename, layout):
                section(section_name)["pages"][filename] = path
            continue

        # 5. bare containers
        if not is_blob and len(parts) == 2:
            section(parts[1])
        elif not is_blob and len(parts) == 3:
            book(parts[1], parts[2])

    return StructuredTree(
        root_metadata_path=root_metadata,
        sections={
            name: _build_section(layout, name, data)
            for name, data in sorted(sections.items())
        },
        assets=assets,
    )


def _build_section(layout: LayoutConfig, name: str, data: dict) -> SectionTree:
    section_path = f"{layout.sections_dir}/{name}"
    return SectionTree(
        path=section_path,
        metadata_path=data["metadata"],
        pages=dict(sorted(data["pages"].items())),
        books={
            book_name: BookTree(
                path=f"{section_path}/{book_name}",
                kind=book["kind"],
                metadata_path=book["metadata"],
                chapters=dict(sorted(book["chapters"].items())),
            )
            for book_name, book in sorted(data["books"].items())
        },
    )


def _is_content_file(filename: str, layout: LayoutConfig) -> bool:
    return filename.endswith(tuple(layout.content_extensions))


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def derive_activity_name(filename: str) -> str:
    """Derive a display name from a file or directory name.

    Strips the extension and the numeric ordering prefix, turns hyphens
    and underscores into spaces and capitalises each word.

    >>> derive_activity_name("02-interactive-lesson.html")
    'Interactive Lesson'
    """
    name = PurePosixPath(filename).stem
    name = _ORDER_PREFIX_RE.sub("", name)
    name = name.replace("-", " ").replace("_", " ").strip()
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" "))


def strip_order_prefix(filename: str) -> str:
    """Remove the numeric ordering prefix (``"01-"``) from *filename*."""
    return _ORDER_PREFIX_RE.sub("", filename)


def import_key(container_path: str, filename: str) -> str:
    """Stable identity of a chapter or lesson page.

    The key ignores the numeric prefix so renumbering files to reorder
    them keeps each chapter's identity.
    """
    return f"{container_path}/{strip_order_prefix(filename)}"


def assign_import_keys(
    container_path: str,
    filenames: Iterable[str],
    previous: dict[str, str] | None = None,
) -> dict[str, str]:
    """Import keys for the files of one book or lesson, unique within it.

    A file keeps the key it was stored with (*previous*, by filename)
    unless a sibling already claimed it.  Other files get the
    prefix-free ``import_key``; when a sibling with the same stem holds
    that, the full repository path is used instead.
    """
    filenames = list(filenames)
    previous = previous or {}
    prefix = f"{container_path}/"
    keys: dict[str, str] = {}
    taken: set[str] = set()

    for filename in filenames:
        key = previous.get(filename)
        if key and key.startswith(prefix) and key not in taken:
            keys[filename] = key
            taken.add(key)

    for filename in filenames:
        if filename in keys:
            continue
        key = import_key(container_path, filename)
        if key in taken:
            key = f"{prefix}{filename}"
        keys[filename] = key
        taken.add(key)
    return keys
