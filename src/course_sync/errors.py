"""Typed exception hierarchy for course-sync.

Every error raised deliberately by the package inherits from
``CourseSyncError`` so batch drivers can catch one type per scope.
``ParseFallbackWarning`` is a warning, not an error: metadata parse
problems never fail a sync.
"""

from __future__ import annotations


class CourseSyncError(Exception):
    """Base exception for all course-sync errors."""


class ConfigError(CourseSyncError):
    """Raised when configuration is missing or invalid."""


class TransportError(CourseSyncError):
    """Raised when talking to the remote repository host fails.

    Covers network failures, authentication problems and HTTP errors.
    Fatal for the current run; nothing is retried inside a run.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportError):
    """Raised when the remote host's API rate limit is exhausted."""

    def __init__(self, reset_at: int):
        super().__init__(
            f"GitHub API rate limit exceeded. Resets at {reset_at}",
            status_code=403,
        )
        self.reset_at = reset_at


class EmptySnapshotError(CourseSyncError):
    """Raised when the remote tree listing comes back empty."""

    def __init__(self, snapshot_identity: str = ""):
        detail = f" at {snapshot_identity[:7]}" if snapshot_identity else ""
        super().__init__(f"Empty repository tree{detail}")
        self.snapshot_identity = snapshot_identity


class UnsupportedActivityError(CourseSyncError):
    """Raised when front matter asks for an activity that cannot be built.

    Either the ``type`` is unknown to the content builder or a field the
    type requires (such as ``url``) is missing.
    """

    def __init__(self, activity_type: str, reason: str, path: str = ""):
        location = f" in {path}" if path else ""
        super().__init__(
            f"Cannot create '{activity_type}' activity{location}: {reason}"
        )
        self.activity_type = activity_type
        self.reason = reason
        self.path = path


class SyncInProgressError(CourseSyncError):
    """Raised when a run for the same scope is already in progress."""

    def __init__(self, scope: str):
        super().__init__(f"A sync for course {scope} is already running")
        self.scope = scope


class ConflictError(CourseSyncError):
    """Raised when a write-back finds the remote file changed underneath.

    Only meaningful for write-back to the repository; the reconciler never
    raises it.
    """

    def __init__(self, path: str):
        super().__init__(
            f"{path} has been modified by someone else; reload and retry"
        )
        self.path = path


class ParseFallbackWarning(UserWarning):
    """Emitted when a metadata file fell back to the flat parser."""


class WebhookError(CourseSyncError):
    """Raised when a webhook delivery is rejected.

    Carries the HTTP status code the receiving endpoint should answer with.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
