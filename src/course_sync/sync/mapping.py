"""Mapping store: durable repo-path to platform-entity links.

Each course scope owns a table of ``MappingRecord`` rows keyed by
repository path, plus the snapshot marker (last synced commit SHA and
timestamp).  ``JsonMappingStore`` keeps one JSON state file per scope in
the state directory (``mapping_{scope}.json``)::

    {
      "version": 1,
      "scope": "42",
      "snapshot": {"identity": "<sha>", "synced_at": "<iso8601>"},
      "records": {"sections/01-intro/01-welcome.html": {...}}
    }

Key design choices:

* **Atomic writes** -- every save writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Write-through** -- ``upsert()`` persists immediately, so records
  committed before a failed run stay valid for the next one.
* **Merge semantics** -- ``upsert()`` only overwrites fields passed as
  non-``None``; entity and parent links are never cleared.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol

from course_sync.sync.models import MappingRecord, RecordKind, utc_now

_SAFE_SCOPE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def content_hash(body: str) -> str:
    """SHA-256 hex digest of *body* encoded as UTF-8."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


class MappingStore(Protocol):
    """Persistence contract used by the reconciler."""

    def lookup(self, scope: str, repo_path: str) -> MappingRecord | None:
        ...  # pragma: no cover

    def upsert(
        self,
        scope: str,
        repo_path: str,
        entity_id: int | None = None,
        parent_entity_id: int | None = None,
        content_hash: str | None = None,
        **extras: Any,
    ) -> MappingRecord:
        ...  # pragma: no cover

    def list(self, scope: str) -> list[MappingRecord]:
        ...  # pragma: no cover

    def get_snapshot(self, scope: str) -> str | None:
        ...  # pragma: no cover

    def set_snapshot(self, scope: str, identity: str) -> None:
        ...  # pragma: no cover


class InMemoryMappingStore:
    """Mapping store held in process memory.

    Used by tests and as the base of ``JsonMappingStore``; subclasses
    persist by overriding ``_commit``.
    """

    def __init__(self) -> None:
        self._states: dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def lookup(self, scope: str, repo_path: str) -> MappingRecord | None:
        """Return the record for *repo_path* in *scope*, or ``None``."""
        raw = self._state(scope)["records"].get(repo_path)
        if raw is None:
            return None
        return MappingRecord(**raw)

    def upsert(
        self,
        scope: str,
        repo_path: str,
        entity_id: int | None = None,
        parent_entity_id: int | None = None,
        content_hash: str | None = None,
        *,
        kind: RecordKind | None = None,
        import_key: str | None = None,
        position: int | None = None,
        hidden: bool | None = None,
    ) -> MappingRecord:
        """Create or merge the record for (*scope*, *repo_path*).

        Only arguments that are not ``None`` overwrite stored values, so
        repeating a call with the same arguments is a no-op apart from
        ``modified_at``.

        Returns:
            The stored record.
        """
        state = self._state(scope)
        now = utc_now()
        current = state["records"].get(repo_path)
        if current is None:
            current = {
                "scope": scope,
                "repo_path": repo_path,
                "created_at": now,
            }

        updates = {
            "entity_id": entity_id,
            "parent_entity_id": parent_entity_id,
            "content_hash": content_hash,
            "kind": kind,
            "import_key": import_key,
            "position": position,
            "hidden": hidden,
        }
        merged = dict(current)
        for field, value in updates.items():
            if value is not None:
                merged[field] = value
        merged["modified_at"] = now

        record = MappingRecord(**merged)
        state["records"][repo_path] = record.model_dump(mode="json")
        self._commit(scope)
        return record

    def list(self, scope: str) -> list[MappingRecord]:
        """All records of *scope*, ordered by repository path."""
        records = self._state(scope)["records"]
        return [MappingRecord(**records[path]) for path in sorted(records)]

    # ------------------------------------------------------------------
    # Snapshot marker
    # ------------------------------------------------------------------

    def get_snapshot(self, scope: str) -> str | None:
        """Last successfully synced snapshot identity, if any."""
        snapshot = self._state(scope).get("snapshot") or {}
        return snapshot.get("identity")

    def get_synced_at(self, scope: str) -> str | None:
        """Timestamp of the last successful sync, if any."""
        snapshot = self._state(scope).get("snapshot") or {}
        return snapshot.get("synced_at")

    def set_snapshot(self, scope: str, identity: str) -> None:
        """Record *identity* as synced now."""
        state = self._state(scope)
        state["snapshot"] = {"identity": identity, "synced_at": utc_now()}
        self._commit(scope)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _state(self, scope: str) -> dict:
        if scope not in self._states:
            self._states[scope] = self._load(scope)
        return self._states[scope]

    def _load(self, scope: str) -> dict:
        return _empty_state(scope)

    def _commit(self, scope: str) -> None:
        pass


class JsonMappingStore(InMemoryMappingStore):
    """Mapping store persisted as one JSON file per scope.

    Args:
        state_dir: Directory where state files are stored (created on
            first write).
    """

    def __init__(self, state_dir: Path) -> None:
        super().__init__()
        self._state_dir = Path(state_dir)

    def _load(self, scope: str) -> dict:
        path = self._state_path(scope)
        if not path.exists():
            return _empty_state(scope)
        with open(path, encoding="utf-8") as fh:
            state = json.load(fh)
        state.setdefault("records", {})
        return state

    def _commit(self, scope: str) -> None:
        """Persist the scope's state to disk atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates ``state_dir`` if it does not exist.
        """
        self._state_dir.mkdir(parents=True, exist_ok=True)
        target = self._state_path(scope)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._states[scope], fh, indent=2)
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _state_path(self, scope: str) -> Path:
        return self._state_dir / f"mapping_{safe_scope(scope)}.json"


def safe_scope(scope: str) -> str:
    """Validate *scope* for use in a file name.

    Raises:
        ValueError: If *scope* contains anything but letters, digits,
            ``_``, ``.`` or ``-``.
    """
    if not _SAFE_SCOPE_RE.match(scope) or scope in (".", ".."):
        raise ValueError(f"Invalid scope for a state file name: {scope!r}")
    return scope


def _empty_state(scope: str) -> dict:
    return {"version": 1, "scope": scope, "snapshot": None, "records": {}}
