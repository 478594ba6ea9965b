"""
retrocast.__main__ — Admin CLI for ``python -m retrocast``
==========================================================

Commands::

    python -m retrocast init-db     # create any missing tables
    python -m retrocast seed        # init-db, then insert the demo community
    python -m retrocast version

Wiring:
1. Load .env (DATABASE_URL and friends).
2. Load retrocast.yaml / environment into a RetrocastConfig.
3. Configure logging at the configured level.
4. Create the engine and run the command.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from retrocast import __version__
from retrocast.config import load_config
from retrocast.database.engine import create_db_engine, init_db
from retrocast.database.seed import seed_demo_data
from retrocast.errors import ConfigError, StoreError
from retrocast.snowflake import SnowflakeGenerator

logger = logging.getLogger("retrocast")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="retrocast", description="Retrocast persistence admin tool",
    )
    parser.add_argument("--config", "-c", help="Path to a YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Create all tables that do not exist yet")
    subparsers.add_parser("seed", help="Create tables and insert demo data")
    subparsers.add_parser("version", help="Print the package version")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    if args.command == "version":
        print(__version__)
        return 0

    load_dotenv()
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        _configure_logging("INFO")
        logger.critical("%s", exc)
        return 1
    _configure_logging(cfg.log_level)

    engine = create_db_engine(cfg)
    try:
        init_db(engine)
        if args.command == "seed":
            generator = SnowflakeGenerator(cfg.snowflake_worker_id, cfg.snowflake_process_id)
            ids = seed_demo_data(engine, generator)
            if ids is not None:
                print(f"Demo guild id: {ids['guild']}")
    except StoreError as exc:
        logger.error("Command %s failed: %s", args.command, exc)
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
