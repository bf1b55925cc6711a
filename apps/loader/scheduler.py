"""
Load Scheduler - Cron and On-Demand Execution

Runs the loader over the configured pattern once, or periodically using
APScheduler when LOAD_SCHEDULE_CRON is set. Files marked by an earlier run are
skipped, so each tick only picks up new files.

Features:
- Cron-based scheduling (configurable via LOAD_SCHEDULE_CRON)
- Run-once mode when no schedule is configured
- Store clients built once and shared by every run
- Graceful shutdown handling
"""

import asyncio
import logging
import signal
from typing import Mapping, Optional

import redis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from apps.loader.dispatcher import dispatch
from apps.loader.writer import RetryPolicy
from utils.config import Settings
from utils.errors import ConfigurationError
from utils.schemas import FileResult
from utils.store import build_clients, close_clients

logger = logging.getLogger(__name__)


class LoadScheduler:
    """
    Scheduler for periodic or on-demand load runs.

    Handles:
    - Store client lifecycle
    - APScheduler setup and management
    - Signal handling for graceful shutdown
    """

    def __init__(
        self,
        config: Settings,
        clients: Optional[Mapping[str, redis.Redis]] = None,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            config: Validated settings for this process
            clients: Prebuilt store clients; built from config when omitted

        Raises:
            ConfigurationError: If the pattern, addresses or cron expression are invalid
        """
        if not config.PATTERN:
            raise ConfigurationError("Pattern for searching log files must be provided")

        self.config = config
        self.run_once = not config.LOAD_SCHEDULE_CRON
        self.trigger: Optional[CronTrigger] = None
        if not self.run_once:
            try:
                self.trigger = CronTrigger.from_crontab(config.LOAD_SCHEDULE_CRON)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid LOAD_SCHEDULE_CRON {config.LOAD_SCHEDULE_CRON!r}: {e}"
                ) from e

        self.clients = clients if clients is not None else build_clients(
            config.device_addresses(), config.STORE_SOCKET_TIMEOUT
        )
        self.policy = RetryPolicy.from_settings(config)
        self.scheduler: AsyncIOScheduler | None = None
        self.shutdown_event = asyncio.Event()
        self.last_results: list[FileResult] = []

        logger.info(
            "LoadScheduler initialized",
            extra={
                "pattern": config.PATTERN,
                "run_once": self.run_once,
                "cron_schedule": config.LOAD_SCHEDULE_CRON,
                "dry_run": config.DRY_RUN,
            },
        )

    def execute_load(self) -> list[FileResult]:
        """Run one pass over the pattern and return per-file results."""
        results = dispatch(
            self.config.PATTERN,
            self.clients,
            dry=self.config.DRY_RUN,
            workers=self.config.WORKERS,
            policy=self.policy,
            acceptable_error_rate=self.config.ACCEPTABLE_ERROR_RATE,
            mark_on_error_breach=self.config.MARK_ON_ERROR_BREACH,
            prefix=self.config.PROCESSED_PREFIX,
        )
        self.last_results = results

        unreadable = [r.path for r in results if r.status == "unreadable"]
        breached = [r.path for r in results if r.status == "error_rate_exceeded"]
        logger.info(
            "Load run complete: files=%d, unreadable=%d, error_rate_exceeded=%d",
            len(results),
            len(unreadable),
            len(breached),
        )
        return results

    async def _execute_load_async(self) -> None:
        try:
            await asyncio.to_thread(self.execute_load)
        except Exception as e:
            logger.error("Load run failed", extra={"error": str(e)}, exc_info=True)
            raise

    def setup_signal_handlers(self) -> None:
        """Setup handlers for graceful shutdown on SIGINT/SIGTERM."""

        def signal_handler(signum: int, frame: object) -> None:
            logger.info(f"Received signal {signum}, initiating graceful shutdown")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def start(self) -> None:
        """
        Execute once, or run on the cron schedule until a shutdown signal.
        """
        try:
            if self.run_once:
                logger.info("Running in run-once mode")
                await asyncio.to_thread(self.execute_load)
                return

            self.setup_signal_handlers()
            logger.info("Running in scheduled mode")

            self.scheduler = AsyncIOScheduler()
            self.scheduler.add_job(
                self._execute_load_async,
                trigger=self.trigger,
                id="load_job",
                name="Periodic Apps Installed Load",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            self.scheduler.start()

            job = self.scheduler.get_job("load_job")
            next_run = getattr(job, "next_run_time", None)
            logger.info(
                "Scheduled load job",
                extra={
                    "schedule": self.config.LOAD_SCHEDULE_CRON,
                    "next_run": str(next_run) if next_run is not None else None,
                },
            )

            await self.shutdown_event.wait()

            logger.info("Shutting down scheduler")
            self.scheduler.shutdown(wait=True)
            logger.info("Scheduler shutdown complete")

        finally:
            close_clients(self.clients)
