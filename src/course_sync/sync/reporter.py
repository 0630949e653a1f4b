"""Sync outcome and history formatting.

Provides human-readable and machine-readable output for sync runs:

- ``format_outcome`` -- one line per course, as printed by the CLI.
- ``format_history`` -- recent runs of a course, optionally with their
  operation logs.
- ``outcome_to_json`` -- structured dict for JSON output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import SyncStatus

if TYPE_CHECKING:
    from .models import SyncHistoryRecord, SyncOutcome


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_outcome(outcome: SyncOutcome) -> str:
    """Format one run outcome as a single line.

    Up-to-date runs print ``up to date``; failed runs print ``FAILED``
    followed by the redacted summary.
    """
    if outcome.status is SyncStatus.UP_TO_DATE:
        return "up to date"
    if outcome.status is SyncStatus.FAILED:
        return f"FAILED - {outcome.summary}"
    return outcome.summary


def format_history(
    records: list[SyncHistoryRecord], verbose: bool = False
) -> str:
    """Format history records (newest first) as text.

    Args:
        records: Records as returned by a history store.
        verbose: Include each run's operation log.

    Returns:
        Multi-line formatted string.
    """
    if not records:
        return "No sync history."

    lines: list[str] = []
    for record in records:
        sha = record.snapshot_identity[:7] or "-------"
        who = f" by {record.triggered_by}" if record.triggered_by else ""
        lines.append(
            f"{record.created_at}  {sha}  {record.status.value:<8}"
            f"{who}: {record.summary}"
        )
        if verbose:
            for op in record.operations:
                target = f" {op.path}" if op.path else ""
                lines.append(f"    [{op.kind}]{target}: {op.detail}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def outcome_to_json(outcome: SyncOutcome) -> dict:
    """Convert an outcome to a structured dict for JSON serialisation.

    Counters are only present for completed runs, and only the non-zero
    ones are included.
    """
    data: dict = {
        "course": outcome.scope,
        "status": outcome.status.value,
        "commit": outcome.snapshot_identity,
        "summary": outcome.summary,
    }
    if outcome.counters is not None:
        data["counts"] = {
            name: value
            for name, value in outcome.counters.model_dump().items()
            if value
        }
    return data
