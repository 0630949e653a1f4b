"""GitHub REST API client.

Reads repository content without a local git checkout: commit SHA of the
branch head, the recursive tree listing and individual file contents.
Also supports single-file write-back through the Contents API with
optimistic concurrency on the blob SHA.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import threading
from typing import Any
from urllib.parse import quote

import requests

from course_sync.errors import (
    ConfigError,
    ConflictError,
    RateLimitError,
    TransportError,
)
from course_sync.sync.models import EntryKind, TreeEntry

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
USER_AGENT = "course-sync/1.0"

_REPO_URL_RE = re.compile(r"^https://github\.com/([^/]+)/([^/]+)$")


def parse_repo_url(url: str) -> tuple[str, str]:
    """Split a GitHub repository URL into ``(owner, repo)``.

    Trailing slashes and a ``.git`` suffix are ignored.

    Raises:
        ConfigError: If *url* is not an ``https://github.com/owner/repo``
            URL.
    """
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]
    match = _REPO_URL_RE.match(url)
    if not match:
        raise ConfigError(f"Invalid GitHub repository URL: {url}")
    return match.group(1), match.group(2)


def _quote_path(path: str) -> str:
    # Encode each segment so directory separators survive.
    return "/".join(quote(segment, safe="") for segment in path.split("/"))


class GitHubClient:
    """Client bound to one repository branch.

    Args:
        repo_url: ``https://github.com/<owner>/<repo>`` URL.
        token: Personal access token.
        branch: Branch to read from and write to.
        api_base: REST API base URL (GitHub Enterprise or tests).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        repo_url: str,
        token: str,
        branch: str = "main",
        api_base: str = API_BASE,
        timeout: float = 30.0,
    ):
        self.owner, self.repo = parse_repo_url(repo_url)
        self.branch = branch
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._thread_local = threading.local()
        self.rate_limit_remaining = -1
        self.rate_limit_reset = 0

    @property
    def session(self) -> requests.Session:
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"token {self._token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            }
        )
        return session

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def test_connection(self) -> bool:
        """Return ``True`` when the repository is reachable with the token."""
        response = self._request("GET", self._repo_endpoint())
        return bool(response.get("id"))

    def get_snapshot_identity(self) -> str:
        """SHA of the latest commit on the branch."""
        response = self._request(
            "GET", self._repo_endpoint(f"/commits/{quote(self.branch, safe='')}")
        )
        return response["sha"]

    def list_tree(self) -> list[TreeEntry]:
        """Recursive tree listing of the branch head.

        An empty listing is returned as ``[]``; the reconciler decides
        that it is an error.  Entries of other kinds (submodule commits)
        are dropped.
        """
        response = self._request(
            "GET",
            self._repo_endpoint(f"/git/trees/{quote(self.branch, safe='')}"),
            params={"recursive": "1"},
        )
        if response.get("truncated"):
            logger.warning(
                "Tree listing for %s/%s was truncated by GitHub",
                self.owner,
                self.repo,
            )
        entries = []
        for item in response.get("tree") or []:
            if item.get("type") not in (EntryKind.BLOB.value, EntryKind.TREE.value):
                continue
            entries.append(
                TreeEntry(
                    path=item["path"],
                    kind=EntryKind(item["type"]),
                    size=item.get("size", 0),
                )
            )
        return entries

    def get_file_contents(self, path: str) -> bytes:
        """Decoded contents of *path* at the branch head.

        Raises:
            TransportError: When the file is empty, too large for the
                Contents API or cannot be decoded.
        """
        response = self._request(
            "GET",
            self._repo_endpoint(f"/contents/{_quote_path(path)}"),
            params={"ref": self.branch},
        )
        if not response.get("content"):
            raise TransportError(f"Empty file: {path}")
        return self._decode(response["content"], path)

    def get_file_with_sha(self, path: str) -> dict[str, Any]:
        """Contents plus blob SHA of *path*, as needed by ``update_file``.

        Returns:
            Dict with ``content`` (bytes), ``sha``, ``size``, ``name`` and
            ``path``.
        """
        response = self._request(
            "GET",
            self._repo_endpoint(f"/contents/{_quote_path(path)}"),
            params={"ref": self.branch},
        )
        if not response.get("content") and response.get("size", 0) > 0:
            raise TransportError(f"File too large for Contents API: {path}")
        content = (
            self._decode(response["content"], path)
            if response.get("content")
            else b""
        )
        return {
            "content": content,
            "sha": response["sha"],
            "size": response.get("size", len(content)),
            "name": response.get("name", path.rsplit("/", 1)[-1]),
            "path": path,
        }

    def get_changed_files(self, base_sha: str) -> list[dict]:
        """Files changed between *base_sha* and the branch head.

        Each entry carries ``filename`` and ``status`` (added, modified,
        removed, renamed).
        """
        response = self._request(
            "GET",
            self._repo_endpoint(
                f"/compare/{quote(base_sha, safe='')}...{quote(self.branch, safe='')}"
            ),
        )
        return response.get("files") or []

    def get_rate_limit_status(self) -> dict[str, int]:
        """Last seen ``remaining`` request count and ``reset`` timestamp."""
        return {
            "remaining": self.rate_limit_remaining,
            "reset": self.rate_limit_reset,
        }

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    def update_file(
        self, path: str, content: bytes, sha: str, message: str
    ) -> dict[str, str]:
        """Commit new *content* for *path* on the branch.

        Args:
            path: Repository path.
            content: New file content.
            sha: Blob SHA the edit was based on.
            message: Commit message.

        Returns:
            Dict with the new blob ``sha``, ``commit_sha`` and
            ``commit_message``.

        Raises:
            ConflictError: The file changed since *sha* was read.
        """
        response = self._request(
            "PUT",
            self._repo_endpoint(f"/contents/{_quote_path(path)}"),
            json={
                "message": message,
                "content": base64.b64encode(content).decode("ascii"),
                "sha": sha,
                "branch": self.branch,
            },
            conflict_path=path,
        )
        commit = response.get("commit") or {}
        return {
            "sha": (response.get("content") or {}).get("sha", ""),
            "commit_sha": commit.get("sha", ""),
            "commit_message": commit.get("message", message),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _repo_endpoint(self, suffix: str = "") -> str:
        return (
            f"/repos/{quote(self.owner, safe='')}/"
            f"{quote(self.repo, safe='')}{suffix}"
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict | None = None,
        json: dict | None = None,
        conflict_path: str | None = None,
    ) -> dict:
        """Make an authenticated API request and decode the JSON body.

        Raises:
            RateLimitError: 403 with no remaining requests.
            ConflictError: 409 on a write with *conflict_path* set.
            TransportError: Network failure, any other HTTP error or a
                body that is not JSON.
        """
        url = f"{self.api_base}{endpoint}"
        logger.debug("GitHub %s %s", method, url)
        try:
            response = self._get_session().request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"Connection to GitHub failed: {exc}") from exc

        self._track_rate_limit(response)
        status = response.status_code

        if status == 403 and self.rate_limit_remaining == 0:
            raise RateLimitError(self.rate_limit_reset)
        if status == 409 and conflict_path is not None:
            raise ConflictError(conflict_path)
        if status >= 400:
            raise TransportError(
                f"GitHub API error: {self._error_message(response)}",
                status_code=status,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("Invalid JSON response from GitHub") from exc

    def _track_rate_limit(self, response: requests.Response) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None and remaining.isdigit():
            self.rate_limit_remaining = int(remaining)
        if reset is not None and reset.isdigit():
            self.rate_limit_reset = int(reset)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}"

    @staticmethod
    def _decode(encoded: str, path: str) -> bytes:
        try:
            return base64.b64decode(encoded, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise TransportError(f"Failed to decode file: {path}") from exc
