"""Unit tests for taskboard.engine.config — TaskboardConfig, loading, env overrides."""

import pytest
from pathlib import Path

from taskboard.engine.config import (
    BackendConfig,
    TaskboardConfig,
    find_config_file,
    get_config,
    load_config,
    reset_config,
)
from taskboard.engine.errors import ConfigError


class TestTaskboardConfig:
    """Test the Pydantic models."""

    def test_defaults(self):
        cfg = TaskboardConfig()
        assert cfg.environment == "dev"
        assert cfg.backend.table == "tasks"
        assert cfg.backend.timeout == 30.0
        assert cfg.auth.organization_domain == "botnoigroup.com"
        assert cfg.auth.password_min_length == 6
        assert cfg.board.seed_on_failure is True
        assert cfg.logging.level == "INFO"
        assert cfg.logging.structured is False

    def test_valid_environments(self):
        for env in ("dev", "staging", "prod"):
            assert TaskboardConfig(app={"environment": env}).environment == env

    def test_invalid_environment(self):
        with pytest.raises(ValueError, match="dev/staging/prod"):
            TaskboardConfig(app={"environment": "test"})

    def test_backend_urls(self):
        backend = BackendConfig(url="https://xyz.supabase.co/")
        assert backend.url == "https://xyz.supabase.co"
        assert backend.rest_url == "https://xyz.supabase.co/rest/v1"
        assert backend.auth_url == "https://xyz.supabase.co/auth/v1"


class TestLoadConfig:
    def test_load_from_file(self, config_file):
        cfg = load_config(str(config_file))
        assert cfg.backend.url == "http://backend.test"
        assert cfg.backend.api_key == "anon-key"
        assert cfg.auth.token_path.endswith("session.json")

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_config(str(tmp_path / "nope.yaml"))
        assert cfg == TaskboardConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "taskboard.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)).backend.table == "tasks"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "taskboard.yaml"
        path.write_text("backend: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "taskboard.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(str(path))

    def test_validation_failure(self, tmp_path):
        path = tmp_path / "taskboard.yaml"
        path.write_text("app:\n  environment: qa\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(str(path))

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("TASKBOARD_BACKEND_URL", "https://prod.example.com")
        monkeypatch.setenv("TASKBOARD_API_KEY", "prod-key")
        monkeypatch.setenv("TASKBOARD_ENV", "prod")
        cfg = load_config(str(config_file))
        assert cfg.backend.url == "https://prod.example.com"
        assert cfg.backend.api_key == "prod-key"
        assert cfg.environment == "prod"

    def test_env_override_with_null_section(self, tmp_path, monkeypatch):
        path = tmp_path / "taskboard.yaml"
        path.write_text("backend:\n", encoding="utf-8")
        monkeypatch.setenv("TASKBOARD_API_KEY", "k")
        assert load_config(str(path)).backend.api_key == "k"


class TestDiscovery:
    def test_find_config_walks_up(self, tmp_path):
        (tmp_path / "taskboard.yaml").write_text("{}\n", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == tmp_path / "taskboard.yaml"

    def test_get_config_is_cached(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
