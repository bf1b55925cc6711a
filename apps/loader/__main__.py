"""
Loader Module Entry Point

Allows execution via: python -m apps.loader --pattern '/data/appsinstalled/*.tsv.gz'

Command line flags override values from the environment and .env file.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from apps.loader.scheduler import LoadScheduler
from utils.config import Settings, get_settings
from utils.errors import ConfigurationError
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="appsinstalled-loader",
        description="Load installed-apps logs into the per-device-type stores.",
    )
    parser.add_argument("--pattern", help="Glob pattern for searching log files")
    parser.add_argument("--idfa", help="idfa store address (host:port)")
    parser.add_argument("--gaid", help="gaid store address (host:port)")
    parser.add_argument("--adid", help="adid store address (host:port)")
    parser.add_argument("--dvid", help="dvid store address (host:port)")
    parser.add_argument(
        "--dry",
        action="store_true",
        default=None,
        help="Dry run (log records without writing to the store)",
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Show debug messages")
    parser.add_argument("--workers", type=int, help="Number of files processed concurrently")
    parser.add_argument("--schedule", help="Cron expression; run periodically instead of once")
    return parser


def load_config(argv: Optional[Sequence[str]] = None) -> Settings:
    """
    Build settings from the environment with command line overrides.

    Raises:
        ConfigurationError: If the combined settings are invalid
    """
    args = build_parser().parse_args(argv)
    try:
        return get_settings().with_overrides(
            PATTERN=args.pattern,
            IDFA_ADDR=args.idfa,
            GAID_ADDR=args.gaid,
            ADID_ADDR=args.adid,
            DVID_ADDR=args.dvid,
            DRY_RUN=args.dry,
            DEBUG=args.debug,
            WORKERS=args.workers,
            LOAD_SCHEDULE_CRON=args.schedule,
        )
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    try:
        config = load_config(argv)
    except ConfigurationError as e:
        setup_logging()
        logger.error("Invalid configuration: %s", e)
        return 1

    setup_logging(level=config.effective_log_level(), format_type=config.LOG_FORMAT)

    try:
        scheduler = LoadScheduler(config)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    try:
        asyncio.run(scheduler.start())
    except Exception as e:
        logger.error("Loader failed", extra={"error": str(e)}, exc_info=True)
        return 1

    if any(result.status == "unreadable" for result in scheduler.last_results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
