"""
tests/test_config.py — Configuration Loader Tests
==================================================
Resolution order is env var → YAML file → default.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from retrocast.config import RetrocastConfig, load_config
from retrocast.errors import ConfigError

_KEYS = (
    "DATABASE_URL", "DB_POOL_SIZE", "DB_MAX_OVERFLOW", "DB_POOL_TIMEOUT",
    "DB_POOL_RECYCLE", "DB_ECHO", "LOG_LEVEL", "SNOWFLAKE_WORKER_ID",
    "SNOWFLAKE_PROCESS_ID", "RETROCAST_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env():
    """Strip every Retrocast variable for the duration of a test."""
    with patch.dict(os.environ, {}, clear=False):
        for key in _KEYS:
            os.environ.pop(key, None)
        yield


def _write(tmp_path, text: str):
    path = tmp_path / "retrocast.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_database_url_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="DATABASE_URL"):
            load_config(tmp_path / "absent.yaml")

    def test_defaults(self, tmp_path):
        os.environ["DATABASE_URL"] = "sqlite://"

        cfg = load_config(tmp_path / "absent.yaml")

        assert cfg == RetrocastConfig(database_url="sqlite://")
        assert cfg.pool_size == 5
        assert cfg.log_level == "INFO"

    def test_file_values(self, tmp_path):
        path = _write(tmp_path, (
            "database_url: postgresql://db/retrocast\n"
            "DB_POOL_SIZE: 20\n"
            "DB_ECHO: true\n"
            "LOG_LEVEL: debug\n"
            "SNOWFLAKE_WORKER_ID: 3\n"
        ))

        cfg = load_config(path)

        assert cfg.database_url == "postgresql://db/retrocast"
        assert cfg.pool_size == 20
        assert cfg.echo_sql is True
        assert cfg.log_level == "DEBUG"
        assert cfg.snowflake_worker_id == 3

    def test_env_beats_file(self, tmp_path):
        path = _write(tmp_path, "DATABASE_URL: sqlite:///file.db\nDB_POOL_SIZE: 20\n")
        os.environ["DATABASE_URL"] = "sqlite:///env.db"
        os.environ["DB_POOL_SIZE"] = "7"

        cfg = load_config(path)

        assert cfg.database_url == "sqlite:///env.db"
        assert cfg.pool_size == 7

    def test_config_path_from_env(self, tmp_path):
        path = _write(tmp_path, "DATABASE_URL: sqlite:///from-env-path.db\n")
        os.environ["RETROCAST_CONFIG"] = str(path)

        assert load_config().database_url == "sqlite:///from-env-path.db"

    def test_non_integer_rejected(self, tmp_path):
        os.environ["DATABASE_URL"] = "sqlite://"
        os.environ["DB_POOL_SIZE"] = "lots"

        with pytest.raises(ConfigError, match="DB_POOL_SIZE"):
            load_config(tmp_path / "absent.yaml")

    def test_non_mapping_file_rejected(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_unknown_log_level_falls_back_to_info(self, tmp_path):
        os.environ["DATABASE_URL"] = "sqlite://"
        os.environ["LOG_LEVEL"] = "chatty"

        assert load_config(tmp_path / "absent.yaml").log_level == "INFO"

    def test_config_is_frozen(self):
        cfg = RetrocastConfig(database_url="sqlite://")
        with pytest.raises(AttributeError):
            cfg.pool_size = 99
