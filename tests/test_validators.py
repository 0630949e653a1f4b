"""Tests for input validators."""

import pytest

from course_sync.validators import (
    format_validation_error,
    validate_branch,
    validate_repo_url,
    validate_token,
)


def test_format_validation_error():
    assert format_validation_error("Branch", "cannot be empty") == "Branch cannot be empty"


class TestValidateRepoUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/python-101",
            "https://github.com/acme/python-101.git",
            "https://github.com/acme/python-101/",
        ],
    )
    def test_valid(self, url):
        assert validate_repo_url(url) == (True, "")

    def test_empty(self):
        assert validate_repo_url("  ") == (False, "Repository URL cannot be empty")

    @pytest.mark.parametrize(
        "url",
        [
            "github.com/acme/x",
            "http://github.com/acme/x",
            "https://github.com/acme",
            "https://github.com/acme/x/tree/main",
        ],
    )
    def test_invalid(self, url):
        ok, message = validate_repo_url(url)
        assert not ok
        assert "must look like https://github.com/owner/repo" in message


class TestValidateBranch:
    @pytest.mark.parametrize("branch", ["main", "release/2.0", "feature-x", "v1.2"])
    def test_valid(self, branch):
        assert validate_branch(branch) == (True, "")

    def test_empty(self):
        assert validate_branch("") == (False, "Branch cannot be empty")

    @pytest.mark.parametrize(
        "branch",
        ["a b", "a..b", "a~1", "a^", "a:b", "a?", "a*", "a[b", "a\\b", "a@{1}", "a//b",
         "/a", "-a", ".a", "a/", "a.", "a.lock"],
    )
    def test_invalid(self, branch):
        ok, message = validate_branch(branch)
        assert not ok
        assert "not a valid git branch name" in message


class TestValidateToken:
    @pytest.mark.parametrize("token", ["ghp_abc", "github_pat_abc", "  ghp_abc  "])
    def test_valid(self, token):
        assert validate_token(token) == (True, "")

    def test_empty(self):
        assert validate_token("") == (False, "GitHub token cannot be empty")

    def test_wrong_prefix(self):
        assert validate_token("gho_abc") == (
            False,
            "GitHub token must start with 'ghp_' or 'github_pat_'",
        )
