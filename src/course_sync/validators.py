"""
Input validation functions for course-sync.

Validates repository settings before any API call is made.  Every
validator returns ``(is_valid, error_message)``; the message is empty for
valid input.
"""

import re

_GITHUB_URL_RE = re.compile(r"^https://github\.com/[^/\s]+/[^/\s]+$")
_TOKEN_PREFIXES = ("ghp_", "github_pat_")
# git check-ref-format, reduced to what matters for a branch name.
_BRANCH_FORBIDDEN_RE = re.compile(r"[\s~^:?*\[\\]|\.\.|@\{|//")


def format_validation_error(field_name: str, reason: str) -> str:
    """Generate a consistent error message for validation failures."""
    return f"{field_name} {reason}"


def validate_repo_url(url: str) -> tuple[bool, str]:
    """
    Validate a GitHub repository URL.

    Accepts ``https://github.com/<owner>/<repo>`` with an optional ``.git``
    suffix and trailing slash.
    """
    if not url or not url.strip():
        return False, format_validation_error("Repository URL", "cannot be empty")

    normalised = url.strip().rstrip("/")
    if normalised.endswith(".git"):
        normalised = normalised[: -len(".git")]

    if not _GITHUB_URL_RE.match(normalised):
        return (
            False,
            format_validation_error(
                "Repository URL",
                "must look like https://github.com/owner/repo",
            ),
        )
    return True, ""


def validate_branch(branch: str) -> tuple[bool, str]:
    """
    Validate a branch name.

    Rejects empty names, whitespace and the characters or sequences git
    does not allow in ref names.
    """
    if not branch or not branch.strip():
        return False, format_validation_error("Branch", "cannot be empty")

    if (
        _BRANCH_FORBIDDEN_RE.search(branch)
        or branch.startswith(("/", "-", "."))
        or branch.endswith(("/", ".", ".lock"))
    ):
        return (
            False,
            format_validation_error("Branch", f"'{branch}' is not a valid git branch name"),
        )
    return True, ""


def validate_token(token: str) -> tuple[bool, str]:
    """
    Validate the shape of a GitHub personal access token.

    Only classic (``ghp_``) and fine-grained (``github_pat_``) tokens are
    accepted.  Whether the token works is checked by the client.
    """
    if not token or not token.strip():
        return False, format_validation_error("GitHub token", "cannot be empty")

    if not token.strip().startswith(_TOKEN_PREFIXES):
        return (
            False,
            format_validation_error(
                "GitHub token", "must start with 'ghp_' or 'github_pat_'"
            ),
        )
    return True, ""
