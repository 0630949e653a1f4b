"""GitHub push webhook handling.

Framework-free: ``handle_webhook`` takes the raw request pieces and
returns the status code and JSON body to answer with, so any web
framework can host it.

Deliveries must carry an ``X-Hub-Signature-256`` HMAC-SHA256 signature
of the raw body made with the shared secret.  ``ping`` events are
acknowledged; events other than ``push`` are ignored.  A push syncs every
configured course whose repository URL matches and whose branch equals
the pushed branch.  Failure details are never returned to the caller.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from course_sync.config_schema import CourseConfig
from course_sync.errors import WebhookError
from course_sync.sync.batch import EngineFactory, sync_courses
from course_sync.sync.history import HistoryStore

logger = logging.getLogger(__name__)

WEBHOOK_FAILED_SUMMARY = "Webhook sync failed"


@dataclass(frozen=True)
class PushEvent:
    """The parts of a push payload that select courses."""

    repo_url: str
    branch: str


def normalise_repo_url(url: str) -> str:
    """Strip trailing slashes and a ``.git`` suffix."""
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Check a ``sha256=<hex>`` signature header in constant time."""
    if not secret or not signature:
        return False
    expected = "sha256=" + hmac.new(
        secret.encode("utf-8"), payload, hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


def parse_push_event(payload: bytes) -> PushEvent:
    """Extract repository URL and branch from a push payload.

    Raises:
        WebhookError: 400 when the body is not JSON or has no repository
            URL.
    """
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise WebhookError(400, "Invalid JSON") from exc

    repository = data.get("repository") if isinstance(data, dict) else None
    repo_url = repository.get("html_url") if isinstance(repository, dict) else None
    if not isinstance(repo_url, str) or not repo_url:
        raise WebhookError(400, "Invalid payload")

    ref = data.get("ref")
    branch = ""
    if isinstance(ref, str) and ref:
        branch = ref.removeprefix("refs/heads/")
    return PushEvent(repo_url=normalise_repo_url(repo_url), branch=branch)


def match_courses(
    event: PushEvent, courses: Iterable[CourseConfig]
) -> list[CourseConfig]:
    """Courses configured for the pushed repository (and branch, if known)."""
    return [
        course
        for course in courses
        if normalise_repo_url(course.repo_url) == event.repo_url
        and (not event.branch or course.branch == event.branch)
    ]


def handle_webhook(
    event_name: str,
    payload: bytes,
    signature: str,
    secret: str | None,
    courses: Iterable[CourseConfig],
    engine_factory: EngineFactory,
    history: HistoryStore | None = None,
) -> tuple[int, dict]:
    """Process one webhook delivery.

    Args:
        event_name: ``X-GitHub-Event`` header.
        payload: Raw request body.
        signature: ``X-Hub-Signature-256`` header.
        secret: Shared webhook secret.
        courses: Configured courses.
        engine_factory: Builds the reconciler for a matched course.
        history: Records courses whose reconciler could not be built.

    Returns:
        ``(status_code, body)`` for the HTTP response.
    """
    try:
        if not secret:
            raise WebhookError(403, "Webhook not configured")
        if not payload:
            raise WebhookError(400, "Empty payload")
        if not signature:
            raise WebhookError(403, "Missing signature")
        if not verify_signature(payload, signature, secret):
            raise WebhookError(403, "Invalid signature")

        if event_name == "ping":
            return 200, {"status": "ok"}
        if event_name != "push":
            return 200, {"status": "ignored"}

        event = parse_push_event(payload)
    except WebhookError as exc:
        logger.warning("Webhook rejected (%d): %s", exc.status_code, exc)
        return exc.status_code, {"status": "error", "message": str(exc)}

    matched = match_courses(event, courses)
    if not matched:
        # Same answer as a sync, so callers cannot probe configured repos.
        return 200, {"status": "ok"}

    logger.info(
        "Push to %s@%s matches %d course(s)",
        event.repo_url,
        event.branch or "*",
        len(matched),
    )
    result = sync_courses(
        matched,
        engine_factory,
        triggered_by="webhook",
        failed_summary=WEBHOOK_FAILED_SUMMARY,
        history=history,
    )
    return 200, {"status": "ok", "synced": len(matched) - result.failed}
