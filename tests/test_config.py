"""Tests for course_sync.config -- runtime config precedence and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models).
"""

from pathlib import Path

import pytest

from course_sync.config import Config, load_config, load_unified_config, validate_config
from course_sync.config_schema import CourseConfig, build_config
from course_sync.errors import ConfigError

TOKEN = "ghp_" + "x" * 36


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("GITHUB_TOKEN", "COURSE_SYNC_STATE_DIR", "LOG_FILE", "COURSE_SYNC_CONFIG"):
        monkeypatch.delenv(var, raising=False)


def _course(**overrides):
    data = {"course_id": 9, "repo_url": "https://github.com/acme/python-101"}
    data.update(overrides)
    return CourseConfig(**data)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config() -- token shape and course settings."""

    def test_valid_config(self):
        validate_config(Config(github_token=TOKEN, courses=[_course()]))

    def test_bad_token(self):
        with pytest.raises(ConfigError, match="must start with 'ghp_' or 'github_pat_'"):
            validate_config(Config(github_token="abc"))

    def test_bad_repo_url_names_course(self):
        config = Config(github_token=TOKEN, courses=[_course(repo_url="https://gitlab.com/a/b")])
        with pytest.raises(ConfigError, match="Course 9: Repository URL"):
            validate_config(config)

    def test_bad_branch(self):
        config = Config(github_token=TOKEN, courses=[_course(branch="feature..x")])
        with pytest.raises(ConfigError, match="not a valid git branch name"):
            validate_config(config)


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for CLI > env > YAML > default precedence."""

    def test_yaml_values(self):
        unified = build_config(
            {
                "github": {"token": TOKEN, "timeout": 5},
                "sync": {"state_dir": "/srv/state", "metadata_parser": "simple"},
                "logging": {"file": "/var/log/sync.log"},
                "courses": [{"course_id": 9, "repo_url": "https://github.com/acme/a"}],
            }
        )
        config = load_config(unified=unified)
        assert config.github_token == TOKEN
        assert config.timeout == 5
        assert config.state_dir == Path("/srv/state")
        assert config.metadata_parser == "simple"
        assert config.log_file == "/var/log/sync.log"
        assert [c.course_id for c in config.courses] == [9]

    def test_env_beats_yaml(self, monkeypatch):
        env_token = "github_pat_" + "y" * 20
        monkeypatch.setenv("GITHUB_TOKEN", env_token)
        monkeypatch.setenv("COURSE_SYNC_STATE_DIR", "/env/state")
        unified = build_config({"github": {"token": TOKEN}, "sync": {"state_dir": "/yaml"}})

        config = load_config(unified=unified)
        assert config.github_token == env_token
        assert config.state_dir == Path("/env/state")

    def test_cli_beats_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
        monkeypatch.setenv("LOG_FILE", "/env.log")
        config = load_config(
            token=TOKEN, state_dir="/cli/state", log_file="/cli.log", unified=build_config({})
        )
        assert config.github_token == TOKEN
        assert config.state_dir == Path("/cli/state")
        assert config.log_file == "/cli.log"

    def test_defaults(self):
        config = load_config(token=TOKEN, unified=build_config({}))
        assert config.state_dir == Path(".course_sync")
        assert config.api_base == "https://api.github.com"
        assert config.courses == []

    def test_missing_token(self):
        with pytest.raises(ConfigError, match="GitHub token not found"):
            load_config(unified=build_config({}))

    def test_token_whitespace_stripped(self):
        config = load_config(token=f"  {TOKEN}\n", unified=build_config({}))
        assert config.github_token == TOKEN


class TestLoadUnifiedConfig:
    def test_schema_error_becomes_config_error(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("courses:\n  - course_id: 0\n    repo_url: x\n", encoding="utf-8")
        monkeypatch.setenv("COURSE_SYNC_CONFIG", str(path))
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_unified_config()

    def test_reads_discovered_file(self, tmp_path, monkeypatch):
        project = tmp_path / ".course_sync" / "config.yml"
        project.parent.mkdir()
        project.write_text(
            "courses:\n  - course_id: 3\n    repo_url: https://github.com/acme/c\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        assert [c.course_id for c in load_unified_config().courses] == [3]
