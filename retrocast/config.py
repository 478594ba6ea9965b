"""
retrocast.config — YAML + Environment Configuration Loader
===========================================================

**Why this file exists:**
The persistence core needs a handful of infrastructure settings (database
URL, pool sizing, log level, snowflake node identity).  They resolve in
three tiers:

    1. Environment variables (highest priority, always win).
    2. Values from a YAML config file (optional).
    3. Hardcoded defaults.

The config file is searched in this order and a missing file is *not*
an error:

    * the path in ``$RETROCAST_CONFIG``
    * ``./retrocast.yaml``
    * ``/etc/retrocast/config.yaml``

Keys in the YAML file match environment variable names
(``DATABASE_URL``, ``DB_POOL_SIZE`` …).

Usage::

    from retrocast.config import load_config

    cfg = load_config()
    print(cfg.database_url)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from retrocast.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = ("retrocast.yaml", "/etc/retrocast/config.yaml")

_TRUTHY = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RetrocastConfig:
    """Immutable configuration for the persistence core."""

    database_url: str

    # Connection pool
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 10
    pool_recycle: int = 3600
    echo_sql: bool = False

    # Logging
    log_level: str = "INFO"

    # Snowflake node identity, each in [0, 31]
    snowflake_worker_id: int = 0
    snowflake_process_id: int = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _config_file_paths() -> list[Path]:
    paths: list[Path] = []
    env_path = os.getenv("RETROCAST_CONFIG")
    if env_path:
        paths.append(Path(env_path))
    paths.extend(Path(p) for p in DEFAULT_CONFIG_PATHS)
    return paths


def _read_config_file(path: str | Path | None) -> dict[str, Any]:
    """Return the parsed YAML mapping of the first config file found."""
    candidates = [Path(path)] if path is not None else _config_file_paths()
    for candidate in candidates:
        if not candidate.is_file():
            continue
        with open(candidate, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {candidate} must contain a mapping at top level.")
        logger.info("Loaded config file → %s", candidate)
        return {str(k).upper(): v for k, v in raw.items()}
    return {}


def _resolve(key: str, file_vals: dict[str, Any], default: Any = None) -> Any:
    """env var → config file → default."""
    env_val = os.getenv(key)
    if env_val not in (None, ""):
        return env_val
    file_val = file_vals.get(key)
    if file_val not in (None, ""):
        return file_val
    return default


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _as_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level == "WARN":
        level = "WARNING"
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return "INFO"
    return level


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> RetrocastConfig:
    """Resolve and return a :class:`RetrocastConfig`.

    Parameters
    ----------
    path:
        Explicit YAML file to read.  When omitted the default search
        paths are tried in order.

    Raises
    ------
    ConfigError
        If ``DATABASE_URL`` is not set anywhere, or a numeric key does
        not parse.
    """
    file_vals = _read_config_file(path)

    database_url = _resolve("DATABASE_URL", file_vals)
    if not database_url:
        raise ConfigError(
            "DATABASE_URL is not set.  "
            "Export it or add it to retrocast.yaml."
        )

    return RetrocastConfig(
        database_url=str(database_url),
        pool_size=_as_int("DB_POOL_SIZE", _resolve("DB_POOL_SIZE", file_vals, 5)),
        max_overflow=_as_int("DB_MAX_OVERFLOW", _resolve("DB_MAX_OVERFLOW", file_vals, 10)),
        pool_timeout=_as_int("DB_POOL_TIMEOUT", _resolve("DB_POOL_TIMEOUT", file_vals, 10)),
        pool_recycle=_as_int("DB_POOL_RECYCLE", _resolve("DB_POOL_RECYCLE", file_vals, 3600)),
        echo_sql=_as_bool(_resolve("DB_ECHO", file_vals, False)),
        log_level=_as_log_level(_resolve("LOG_LEVEL", file_vals, "INFO")),
        snowflake_worker_id=_as_int(
            "SNOWFLAKE_WORKER_ID", _resolve("SNOWFLAKE_WORKER_ID", file_vals, 0)
        ),
        snowflake_process_id=_as_int(
            "SNOWFLAKE_PROCESS_ID", _resolve("SNOWFLAKE_PROCESS_ID", file_vals, 0)
        ),
    )
