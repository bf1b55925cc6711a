"""
Dispatcher - runs the file processor over every matching log file.

Files are processed concurrently by a bounded thread pool, but completion
handling (marking) happens in file order: results are awaited through the
per-job futures list, index by index, regardless of which file finished first.
"""

import glob
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Mapping, Optional

import redis

from apps.loader.marker import PROCESSED_PREFIX, is_marked, mark_processed
from apps.loader.processor import ACCEPTABLE_ERROR_RATE, process_file
from apps.loader.writer import DEFAULT_RETRY_POLICY, RetryPolicy
from utils.schemas import FileJob, FileResult

logger = logging.getLogger(__name__)


def find_log_files(pattern: str, prefix: str = PROCESSED_PREFIX) -> list[str]:
    """
    Find log files matching a glob pattern, skipping already-marked ones.

    Returns:
        Sorted list of file paths
    """
    files = sorted(path for path in glob.glob(pattern) if not is_marked(path, prefix))
    logger.info("Found: %d files", len(files), extra={"pattern": pattern})
    return files


def default_workers(file_count: int, workers: Optional[int] = None) -> int:
    """Pool width: the configured size (or CPU count), never more than the file count."""
    width = workers or os.cpu_count() or 1
    return max(1, min(width, file_count))


class Dispatcher:
    """
    Process a set of files on a worker pool and mark them in file order.

    Handles:
    - Job creation with positional indexes
    - Bounded concurrent execution
    - Index-ordered completion handling and marking
    """

    def __init__(
        self,
        clients: Mapping[str, redis.Redis],
        dry: bool = False,
        workers: Optional[int] = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        acceptable_error_rate: float = ACCEPTABLE_ERROR_RATE,
        mark_on_error_breach: bool = True,
        prefix: str = PROCESSED_PREFIX,
    ) -> None:
        self.clients = clients
        self.dry = dry
        self.workers = workers
        self.policy = policy
        self.acceptable_error_rate = acceptable_error_rate
        self.mark_on_error_breach = mark_on_error_breach
        self.prefix = prefix

    def run(self, files: list[str]) -> list[FileResult]:
        """
        Process files and mark the completed ones.

        Args:
            files: Paths in the order completions should be handled

        Returns:
            One FileResult per file, in input order
        """
        if not files:
            return []

        jobs = [FileJob(index=i, path=path, dry=self.dry) for i, path in enumerate(files)]
        width = default_workers(len(jobs), self.workers)
        logger.debug("Starting %d workers for %d files", width, len(jobs))

        results: list[FileResult] = []
        with ThreadPoolExecutor(max_workers=width, thread_name_prefix="loader") as executor:
            slots: list[Future] = [executor.submit(self._process, job) for job in jobs]
            for slot in slots:
                result = slot.result()
                self._complete(result)
                results.append(result)

        return results

    def _process(self, job: FileJob) -> FileResult:
        return process_file(job, self.clients, self.policy, self.acceptable_error_rate)

    def should_mark(self, result: FileResult) -> bool:
        if result.status == "done":
            return True
        if result.status == "error_rate_exceeded":
            return self.mark_on_error_breach
        return False

    def _complete(self, result: FileResult) -> None:
        if not self.should_mark(result):
            logger.warning(
                "Leaving %s unmarked (status=%s)",
                result.path,
                result.status,
                extra={"index": result.index},
            )
            return

        logger.info("Renaming: %s", result.path)
        mark_processed(result.path, self.prefix)


def dispatch(
    pattern: str,
    clients: Mapping[str, redis.Redis],
    dry: bool = False,
    workers: Optional[int] = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    acceptable_error_rate: float = ACCEPTABLE_ERROR_RATE,
    mark_on_error_breach: bool = True,
    prefix: str = PROCESSED_PREFIX,
) -> list[FileResult]:
    """Find files for a pattern and process them; see Dispatcher.run."""
    files = find_log_files(pattern, prefix)
    dispatcher = Dispatcher(
        clients,
        dry=dry,
        workers=workers,
        policy=policy,
        acceptable_error_rate=acceptable_error_rate,
        mark_on_error_breach=mark_on_error_breach,
        prefix=prefix,
    )
    return dispatcher.run(files)
