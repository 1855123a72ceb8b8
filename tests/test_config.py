"""Tests for configuration loading and environment overrides."""

import logging
from pathlib import Path

import pytest

from category_tree.utils import config as config_module
from category_tree.utils.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Tests for Config."""

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(config_module.DATABASE_URL_ENV_VAR, "sqlite:///:memory:")
        assert Config().database_url == "sqlite:///:memory:"

    def test_default_database_url_points_at_data_dir(self, monkeypatch):
        monkeypatch.delenv(config_module.DATABASE_URL_ENV_VAR, raising=False)
        cfg = Config("development")
        assert cfg.database_url.startswith("sqlite:///")
        assert cfg.database_url.endswith("/data/category_tree.db")
        assert cfg.is_development and not cfg.is_production

    def test_templates_path_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(config_module.TEMPLATES_PATH_ENV_VAR, str(tmp_path))
        assert Config().site_templates_path == Path(tmp_path)

    def test_templates_path_defaults_under_data_dir(self, monkeypatch):
        monkeypatch.delenv(config_module.TEMPLATES_PATH_ENV_VAR, raising=False)
        cfg = Config("development")
        assert cfg.site_templates_path == cfg.database_path.parent / "templates"


class TestGetConfig:
    """Tests for the get_config() singleton."""

    def test_environment_from_env_var(self, monkeypatch):
        monkeypatch.setenv(config_module.ENV_VAR, "development")
        assert get_config().is_development

    def test_singleton_keeps_first_environment(self, caplog):
        first = get_config("production")
        with caplog.at_level(logging.WARNING):
            second = get_config("development")

        assert second is first
        assert second.is_production
        assert "singleton already exists" in caplog.text
