"""Tests for the course-sync command-line entry point."""

import json
import textwrap
from unittest.mock import patch

import pytest

from course_sync import __version__
from course_sync.cli import load_builder_factory, run, select_courses
from course_sync.config_schema import CourseConfig
from course_sync.errors import ConfigError

TOKEN = "ghp_" + "t" * 36
FILES = {"sections/01-intro/01-welcome.html": "<p>Welcome</p>"}


@pytest.fixture
def cli_env(tmp_path, monkeypatch, fake_repository, fake_builder):
    """Config file, isolated env and fake GitHub/builder wiring."""
    config = tmp_path / "config.yml"
    config.write_text(
        textwrap.dedent(
            f"""
            github:
              token: {TOKEN}
            sync:
              state_dir: {tmp_path / "state"}
              builder: lms.integration:make_builder
            courses:
              - course_id: 9
                repo_url: https://github.com/acme/python-101
                auto_sync: true
              - course_id: 10
                repo_url: https://github.com/acme/python-201
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("COURSE_SYNC_CONFIG", str(config))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ("GITHUB_TOKEN", "COURSE_SYNC_STATE_DIR", "LOG_FILE"):
        monkeypatch.delenv(var, raising=False)

    repositories = {
        "python-101": fake_repository(FILES, "a" * 40),
        "python-201": fake_repository(FILES, "b" * 40),
    }

    def github_client(repo_url, token, **kwargs):
        assert token == TOKEN
        return repositories[repo_url.rsplit("/", 1)[-1]]

    with patch("course_sync.cli.load_dotenv"), patch("course_sync.cli.setup_logging"), patch(
        "course_sync.cli.GitHubClient", side_effect=github_client
    ), patch(
        "course_sync.cli.load_builder_factory",
        return_value=lambda course, config: fake_builder,
    ):
        yield repositories


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        run(argv)
    return exc_info.value.code


class TestSelectCourses:
    COURSES = [
        CourseConfig(course_id=1, repo_url="https://github.com/a/b", auto_sync=True),
        CourseConfig(course_id=2, repo_url="https://github.com/a/c"),
    ]

    def test_filters(self):
        assert select_courses(self.COURSES) == self.COURSES
        assert [c.course_id for c in select_courses(self.COURSES, course_id=2)] == [2]
        assert [c.course_id for c in select_courses(self.COURSES, auto_only=True)] == [1]
        assert select_courses(self.COURSES, course_id=2, auto_only=True) == []


class TestLoadBuilderFactory:
    def test_missing(self):
        with pytest.raises(ConfigError, match="No content builder configured"):
            load_builder_factory(None)

    def test_malformed(self):
        with pytest.raises(ConfigError, match="expected package.module:factory"):
            load_builder_factory("just.a.module")

    def test_unimportable(self):
        with pytest.raises(ConfigError, match="Cannot import builder module"):
            load_builder_factory("no_such_module_xyz:make")

    def test_not_callable(self):
        with pytest.raises(ConfigError, match="is not callable"):
            load_builder_factory("json:__name__")

    def test_resolves_callable(self):
        assert load_builder_factory("json:loads") is json.loads


class TestSyncCommand:
    def test_sync_all(self, cli_env, capsys):
        assert _run([]) == 0
        out = capsys.readouterr().out
        assert "GitHub Sync: Syncing 2 course(s)..." in out
        assert "Course 9: 1 section(s) created, 1 activity/activities created." in out
        assert "Course 10: 1 section(s) created, 1 activity/activities created." in out
        assert out.rstrip().endswith("Done: 2 synced, 0 up to date, 0 failed.")

    def test_second_run_is_up_to_date(self, cli_env, capsys):
        _run(["--course", "9"])
        capsys.readouterr()

        assert _run(["--course", "9"]) == 0
        out = capsys.readouterr().out
        assert "Course 9: up to date" in out
        assert "Done: 0 synced, 1 up to date, 0 failed." in out

    def test_auto_only(self, cli_env, capsys):
        assert _run(["--auto-only"]) == 0
        out = capsys.readouterr().out
        assert "Syncing 1 course(s)" in out
        assert "Course 10" not in out

    def test_no_matching_courses(self, cli_env, capsys):
        assert _run(["--course", "10", "--auto-only"]) == 0
        assert (
            capsys.readouterr().out.strip()
            == "No courses configured for GitHub sync (with auto-sync enabled)."
        )

    def test_failure_exit_code(self, cli_env, capsys):
        cli_env["python-201"].files = {}
        assert _run([]) == 1
        out = capsys.readouterr().out
        assert "Course 10: FAILED - Sync failed. Check the sync history for details." in out
        assert "Done: 1 synced, 0 up to date, 1 failed." in out

    def test_json_output(self, cli_env, capsys):
        assert _run(["--json", "--course", "9"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["synced"] == 1
        assert data["failed"] == 0
        assert data["outcomes"][0]["course"] == "9"
        assert data["outcomes"][0]["counts"] == {"sections_created": 1, "activities_created": 1}

    def test_history(self, cli_env, capsys):
        _run(["--course", "9"])
        capsys.readouterr()

        assert _run(["--history", "9", "--verbose"]) == 0
        out = capsys.readouterr().out
        assert "success  by cli: 1 section(s) created" in out
        assert "[page_create] sections/01-intro/01-welcome.html" in out

    def test_client_error_is_kept_in_history(self, cli_env, capsys):
        del cli_env["python-201"]
        assert _run([]) == 1
        capsys.readouterr()

        assert _run(["--history", "10", "--verbose"]) == 0
        out = capsys.readouterr().out
        assert "failed   by cli: Sync failed. Check the sync history for details." in out
        assert "[sync_error]: KeyError: 'python-201'" in out

    def test_history_empty(self, cli_env, capsys):
        assert _run(["--history", "10"]) == 0
        assert capsys.readouterr().out.strip() == "No sync history."


class TestErrors:
    def test_config_error(self, cli_env, monkeypatch, tmp_path, capsys):
        config = tmp_path / "bad.yml"
        config.write_text("courses:\n  - course_id: 9\n    repo_url: https://github.com/a/b\n")
        monkeypatch.setenv("COURSE_SYNC_CONFIG", str(config))

        assert _run([]) == 1
        assert "Configuration error: GitHub token not found" in capsys.readouterr().err

    def test_version(self, capsys):
        assert _run(["--version"]) == 0
        assert capsys.readouterr().out.strip() == f"course-sync version {__version__}"
