"""
File processor - streams one gzip log file through the parser and the cache writer.

Line and write failures are counted, never raised. A file that cannot be opened
or decompressed is reported as "unreadable" so sibling files keep running.
"""

import gzip
import logging
import time
import zlib
from typing import Iterator, Mapping

import redis

from apps.loader.parser import parse_appsinstalled
from apps.loader.writer import DEFAULT_RETRY_POLICY, RetryPolicy, insert_appsinstalled
from utils.errors import RecordError
from utils.schemas import FileJob, FileResult

logger = logging.getLogger(__name__)

ACCEPTABLE_ERROR_RATE = 0.01

_READ_ERRORS = (OSError, EOFError, zlib.error)


def process_file(
    job: FileJob,
    clients: Mapping[str, redis.Redis],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    acceptable_error_rate: float = ACCEPTABLE_ERROR_RATE,
) -> FileResult:
    """
    Load every line of a gzip log file into the store.

    Args:
        job: File to process
        clients: Device type -> store client map (read-only)
        policy: Retry budget for each store write
        acceptable_error_rate: Highest failed/total ratio that still counts as done

    Returns:
        FileResult with line counts and status
    """
    start_time = time.time()
    total = 0
    failed = 0

    logger.info("Processing %s", job.path)

    try:
        for line in _read_lines(job.path):
            total += 1

            try:
                record = parse_appsinstalled(line)
            except RecordError as e:
                logger.warning("%s for: %r", e, line)
                failed += 1
                continue

            if not insert_appsinstalled(record, clients, job.dry, policy):
                failed += 1

    except _READ_ERRORS as e:
        logger.error(
            "Failed to read %s: %s",
            job.path,
            e,
            extra={"file_path": job.path, "lines_read": total},
        )
        return FileResult(
            index=job.index,
            path=job.path,
            status="unreadable",
            total=total,
            failed=failed,
            error=str(e) or type(e).__name__,
        )

    result = FileResult(index=job.index, path=job.path, status="done", total=total, failed=failed)
    elapsed_time = time.time() - start_time

    if result.error_rate > acceptable_error_rate:
        logger.error(
            "Too many invalid records in %s (Total: %d | Error: %d)",
            job.path,
            total,
            failed,
            extra={"error_rate": result.error_rate, "elapsed": round(elapsed_time, 3)},
        )
        return result.model_copy(update={"status": "error_rate_exceeded"})

    logger.info(
        "Done %s (Total: %d | Error: %d)",
        job.path,
        total,
        failed,
        extra={"error_rate": result.error_rate, "elapsed": round(elapsed_time, 3)},
    )
    return result


def _read_lines(path: str) -> Iterator[str]:
    """Yield decoded lines without their line terminators."""
    with gzip.open(path, "rt", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
        for line in f:
            if line.endswith("\n"):
                line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
            yield line
