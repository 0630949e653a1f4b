"""Batch driver: sync many courses, one failure never stops the rest."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field

from course_sync.config_schema import CourseConfig
from course_sync.sync.engine import FAILED_SUMMARY, Reconciler
from course_sync.sync.history import HistoryStore
from course_sync.sync.models import (
    OperationLogEntry,
    SyncHistoryRecord,
    SyncOutcome,
    SyncStatus,
)

logger = logging.getLogger(__name__)

EngineFactory = Callable[[CourseConfig], Reconciler]


class BatchResult(BaseModel):
    """Tallies and per-course outcomes of a batch run."""

    outcomes: list[SyncOutcome] = Field(default_factory=list)

    @property
    def synced(self) -> int:
        return self.count(SyncStatus.SUCCESS)

    @property
    def up_to_date(self) -> int:
        return self.count(SyncStatus.UP_TO_DATE)

    @property
    def failed(self) -> int:
        return self.count(SyncStatus.FAILED)

    def tally(self) -> str:
        """Final line printed after a batch run."""
        return (
            f"Done: {self.synced} synced, {self.up_to_date} up to date, "
            f"{self.failed} failed."
        )

    def count(self, status: SyncStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)


def sync_courses(
    courses: Iterable[CourseConfig],
    engine_factory: EngineFactory,
    triggered_by: str | None = None,
    on_outcome: Callable[[CourseConfig, SyncOutcome], None] | None = None,
    failed_summary: str = FAILED_SUMMARY,
    history: HistoryStore | None = None,
) -> BatchResult:
    """Run one reconciliation per course.

    The reconciler already turns run errors into ``failed`` outcomes;
    errors raised while *building* a reconciler (bad credentials, missing
    builder) are caught here and reported the same way, including
    the history record the reconciler would have written.

    Args:
        courses: Courses to sync, in order.
        engine_factory: Builds the ``Reconciler`` for one course.
        triggered_by: Stored in each history record.
        on_outcome: Called after each course, e.g. to print progress.
        failed_summary: Redacted summary for failed courses.
        history: Where failed reconciler construction is recorded.

    Returns:
        ``BatchResult`` with one outcome per course.
    """
    result = BatchResult()
    for course in courses:
        engine = None
        try:
            engine = engine_factory(course)
            outcome = engine.run(
                triggered_by=triggered_by, failed_summary=failed_summary
            )
        except Exception as exc:
            logger.error("Course %s: could not sync: %s", course.course_id, exc)
            outcome = SyncOutcome(
                scope=course.scope,
                status=SyncStatus.FAILED,
                summary=failed_summary,
            )
            # A built reconciler has already written its own record.
            if history is not None and engine is None:
                history.append(
                    SyncHistoryRecord(
                        scope=course.scope,
                        triggered_by=triggered_by,
                        status=SyncStatus.FAILED,
                        summary=failed_summary,
                        operations=[
                            OperationLogEntry(
                                kind="sync_error",
                                path="",
                                detail=f"{type(exc).__name__}: {exc}",
                            )
                        ],
                    )
                )
        result.outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(course, outcome)
    return result
