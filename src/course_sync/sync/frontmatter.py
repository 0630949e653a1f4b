"""Front matter and metadata-file parsing.

Content files (``.html`` pages, chapters, lesson pages) may start with a
small metadata block::

    ---
    type: label
    visible: true
    ---
    <p>HTML content here</p>

Two block parsers are provided:

- ``parse_front_matter`` -- flat ``key: value`` pairs (strings and
  booleans).
- ``parse_nested_front_matter`` -- adds one level of lists (of mappings
  or scalars) and integer literals, as needed by question-style lesson
  pages.

Neither is a YAML implementation; anything outside the subset stays a
plain string and nothing ever raises.

Standalone metadata files (``course.yaml``, ``section.yaml``,
``book.yaml``, ``lesson.yaml``) are read through a ``MetadataParser``
strategy.  ``create_metadata_parser()`` maps the configured strategy name
to an implementation:

- ``yaml``   -- ``YamlMetadataParser`` (PyYAML ``safe_load``).  On a YAML
  syntax error it emits ``ParseFallbackWarning`` and returns the result of
  the flat parser instead.
- ``simple`` -- ``SimpleMetadataParser``, the flat subset only.
"""

from __future__ import annotations

import logging
import re
import warnings
from typing import Any, Protocol

import yaml

from course_sync.errors import ParseFallbackWarning

logger = logging.getLogger(__name__)

_FRONT_MATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*\r?\n", re.DOTALL
)
_KEY_VALUE_RE = re.compile(r"^([A-Za-z_]+)\s*:\s*(.*)$")
_LIST_ITEM_RE = re.compile(r"^\s+-\s+(.+)$")
_CONTINUATION_RE = re.compile(r"^\s{4,}([A-Za-z_]+)\s*:\s*(.*)$")

FrontMatter = dict[str, Any]


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def parse_scalar(value: str, integers: bool = True) -> Any:
    """Convert a raw scalar token into a Python value.

    Matching surrounding quotes are stripped (the result is always a
    string), ``true``/``false`` become booleans and, when *integers* is
    set, all-digit tokens become ``int``.
    """
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    if value == "true":
        return True
    if value == "false":
        return False
    if integers and value.isascii() and value.isdigit():
        return int(value)
    return value


def _split_block(text: str) -> tuple[str, str] | None:
    """Return ``(block, body)`` or ``None`` when there is no front matter."""
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return None
    return match.group(1), text[match.end() :]


def _parse_flat_lines(block: str, integers: bool) -> FrontMatter:
    result: FrontMatter = {}
    for line in block.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = _KEY_VALUE_RE.match(line)
        if match:
            result[match.group(1)] = parse_scalar(
                match.group(2).strip(), integers=integers
            )
    return result


# ---------------------------------------------------------------------------
# Flat variant
# ---------------------------------------------------------------------------


def parse_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Split *text* into flat front matter and body.

    Args:
        text: Raw file content.

    Returns:
        ``(metadata, body)``.  Without a leading ``---`` block the
        metadata is empty and the body is *text* unchanged.
    """
    split = _split_block(text)
    if split is None:
        return {}, text
    block, body = split
    return _parse_flat_lines(block, integers=False), body


# ---------------------------------------------------------------------------
# Nested-list variant
# ---------------------------------------------------------------------------


def parse_nested_front_matter(text: str) -> tuple[FrontMatter, str]:
    """Split *text* into front matter (with one level of lists) and body.

    A top-level ``key:`` with an empty value opens a list.  Inside it,
    ``- key: value`` starts a mapping item that further lines indented by
    four or more spaces extend, and ``- value`` adds a scalar item.  The
    next top-level key closes the list::

        pagetype: multichoice
        answers:
          - text: "A"
            correct: true
          - text: "B"
            correct: false

    Returns:
        ``(metadata, body)`` exactly like ``parse_front_matter``.
    """
    split = _split_block(text)
    if split is None:
        return {}, text
    block, body = split

    result: FrontMatter = {}
    state = "top"
    list_key = ""
    pending: Any = None

    for line in block.split("\n"):
        line = line.rstrip("\r")
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        item = _LIST_ITEM_RE.match(line)
        if item:
            if state == "list":
                if pending is not None:
                    result[list_key].append(pending)
                raw = item.group(1).strip()
                kv = _KEY_VALUE_RE.match(raw)
                if kv:
                    pending = {kv.group(1): parse_scalar(kv.group(2).strip())}
                else:
                    pending = parse_scalar(raw)
            continue

        if state == "list":
            continuation = _CONTINUATION_RE.match(line)
            if continuation:
                if isinstance(pending, dict):
                    pending[continuation.group(1)] = parse_scalar(
                        continuation.group(2).strip()
                    )
                continue

        kv = _KEY_VALUE_RE.match(stripped)
        if not kv:
            continue

        if state == "list" and pending is not None:
            result[list_key].append(pending)
            pending = None

        key, value = kv.group(1), kv.group(2).strip()
        if value == "":
            state = "list"
            list_key = key
            result[key] = []
            pending = None
        else:
            state = "top"
            result[key] = parse_scalar(value)

    if state == "list" and pending is not None:
        result[list_key].append(pending)

    return result, body


# ---------------------------------------------------------------------------
# Metadata file strategies
# ---------------------------------------------------------------------------


class MetadataParser(Protocol):
    """Protocol for metadata-file parsers."""

    name: str

    def parse(self, text: str, source: str = "") -> FrontMatter:
        """Parse a whole metadata file into a mapping.

        Args:
            text: File content.
            source: Repository path, used in log messages only.

        Returns:
            The parsed mapping; empty for blank or non-mapping input.
        """
        ...  # pragma: no cover


class SimpleMetadataParser:
    """Flat ``key: value`` parser for metadata files.

    Skips YAML document markers (``---`` and ``...``) so a file written
    for a full YAML parser still reads correctly.
    """

    name = "simple"

    def parse(self, text: str, source: str = "") -> FrontMatter:
        lines = [
            line
            for line in text.split("\n")
            if line.strip() not in ("---", "...")
        ]
        return _parse_flat_lines("\n".join(lines), integers=False)


class YamlMetadataParser:
    """PyYAML-backed metadata parser with a flat fallback.

    Args:
        fallback: Parser used when the document is not valid YAML.
            Defaults to ``SimpleMetadataParser``.
    """

    name = "yaml"

    def __init__(self, fallback: MetadataParser | None = None) -> None:
        self._fallback = fallback or SimpleMetadataParser()

    def parse(self, text: str, source: str = "") -> FrontMatter:
        if not text.strip():
            return {}
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            message = (
                f"YAML parse failed for {source or '<metadata>'}, "
                f"using flat parser: {exc}"
            )
            logger.warning(message)
            warnings.warn(message, ParseFallbackWarning, stacklevel=2)
            return self._fallback.parse(text, source)
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items()}


_STRATEGY_MAP: dict[str, type] = {
    "yaml": YamlMetadataParser,
    "simple": SimpleMetadataParser,
}


def create_metadata_parser(strategy: str) -> MetadataParser:
    """Create a metadata parser for the given strategy string.

    Args:
        strategy: One of ``"yaml"`` or ``"simple"``.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown metadata parser: '{strategy}'. Valid parsers: {sorted(_STRATEGY_MAP.keys())}"
        )
    return cls()  # type: ignore[return-value]
