"""Append-only sync history.

One ``SyncHistoryRecord`` is appended per run, whatever its outcome.
``JsonlHistoryStore`` writes one JSON line per record to
``history_{scope}.jsonl`` in the state directory; lines are never
rewritten.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from course_sync.sync.mapping import safe_scope
from course_sync.sync.models import SyncHistoryRecord

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    """Contract for run history persistence."""

    def append(self, record: SyncHistoryRecord) -> None:
        ...  # pragma: no cover

    def list(
        self, scope: str, limit: int | None = None
    ) -> list[SyncHistoryRecord]:
        ...  # pragma: no cover


class InMemoryHistoryStore:
    """History kept in a list; newest last internally."""

    def __init__(self) -> None:
        self._records: list[SyncHistoryRecord] = []

    def append(self, record: SyncHistoryRecord) -> None:
        self._records.append(record)

    def list(
        self, scope: str, limit: int | None = None
    ) -> list[SyncHistoryRecord]:
        """Records of *scope*, newest first."""
        matching = [r for r in reversed(self._records) if r.scope == scope]
        return matching[:limit] if limit is not None else matching


class JsonlHistoryStore:
    """History persisted as JSON Lines, one file per scope.

    Args:
        state_dir: Directory holding the history files.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    def append(self, record: SyncHistoryRecord) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        with open(self._path(record.scope), "a", encoding="utf-8") as fh:
            fh.write(record.model_dump_json() + "\n")

    def list(
        self, scope: str, limit: int | None = None
    ) -> list[SyncHistoryRecord]:
        """Records of *scope*, newest first.

        Lines that fail to decode are logged and skipped so one damaged
        line does not hide the rest of the history.
        """
        path = self._path(scope)
        if not path.exists():
            return []

        records: list[SyncHistoryRecord] = []
        with open(path, encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(SyncHistoryRecord.model_validate_json(line))
                except ValueError as exc:
                    logger.warning(
                        "Skipping unreadable history line %s:%d: %s",
                        path,
                        lineno,
                        exc,
                    )
        records.reverse()
        return records[:limit] if limit is not None else records

    def _path(self, scope: str) -> Path:
        return self._state_dir / f"history_{safe_scope(scope)}.jsonl"
