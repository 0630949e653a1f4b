"""Tests for sync outcome and history formatting."""

from course_sync.sync.models import (
    OperationLogEntry,
    SyncCounters,
    SyncHistoryRecord,
    SyncOutcome,
    SyncStatus,
)
from course_sync.sync.reporter import format_history, format_outcome, outcome_to_json


class TestSyncCounters:
    def test_no_changes(self):
        counters = SyncCounters(activities_skipped=4, assets_skipped=2)
        assert counters.summary() == "No changes needed."
        assert counters.changes == 0

    def test_summary_order_and_labels(self):
        counters = SyncCounters(
            assets_uploaded=2,
            sections_created=1,
            activities_hidden=1,
            chapters_reordered=3,
        )
        assert counters.summary() == (
            "1 section(s) created, "
            "1 activity/activities hidden (removed from repo), "
            "3 chapter(s) reordered, "
            "2 asset(s) uploaded."
        )
        assert counters.changes == 7


class TestFormatOutcome:
    def test_statuses(self):
        assert format_outcome(
            SyncOutcome(scope="9", status=SyncStatus.UP_TO_DATE, summary="Already up to date.")
        ) == "up to date"
        assert format_outcome(
            SyncOutcome(scope="9", status=SyncStatus.FAILED, summary="Sync failed.")
        ) == "FAILED - Sync failed."
        assert format_outcome(
            SyncOutcome(scope="9", status=SyncStatus.SUCCESS, summary="1 section(s) created.")
        ) == "1 section(s) created."


class TestFormatHistory:
    def test_empty(self):
        assert format_history([]) == "No sync history."

    def test_lines(self):
        records = [
            SyncHistoryRecord(
                scope="9",
                triggered_by="webhook",
                snapshot_identity="abcdef0123",
                status=SyncStatus.SUCCESS,
                summary="1 activity/activities updated.",
                operations=[
                    OperationLogEntry(kind="page_update", path="sections/a/p.html", detail="updated entity 5"),
                    OperationLogEntry(kind="sync_error", path="", detail="boom"),
                ],
                created_at="2026-01-02T03:04:05+00:00",
            ),
            SyncHistoryRecord(
                scope="9",
                status=SyncStatus.FAILED,
                summary="Sync failed.",
                created_at="2026-01-01T00:00:00+00:00",
            ),
        ]
        assert format_history(records).splitlines() == [
            "2026-01-02T03:04:05+00:00  abcdef0  success  by webhook: 1 activity/activities updated.",
            "2026-01-01T00:00:00+00:00  -------  failed  : Sync failed.",
        ]

        verbose = format_history(records[:1], verbose=True).splitlines()
        assert verbose[1:] == [
            "    [page_update] sections/a/p.html: updated entity 5",
            "    [sync_error]: boom",
        ]


class TestOutcomeToJson:
    def test_completed_run(self):
        outcome = SyncOutcome(
            scope="9",
            status=SyncStatus.SUCCESS,
            snapshot_identity="abc",
            summary="1 section(s) created.",
            counters=SyncCounters(sections_created=1),
        )
        assert outcome_to_json(outcome) == {
            "course": "9",
            "status": "success",
            "commit": "abc",
            "summary": "1 section(s) created.",
            "counts": {"sections_created": 1},
        }

    def test_failed_run_has_no_counts(self):
        outcome = SyncOutcome(scope="9", status=SyncStatus.FAILED, summary="Sync failed.")
        assert "counts" not in outcome_to_json(outcome)
