"""Pytest configuration and shared fixtures."""

import gzip
import logging
from pathlib import Path
from typing import Callable

import pytest

from apps.loader.writer import RetryPolicy
from tests.fakes import FakeRedis, SleepRecorder, fake_clients


@pytest.fixture
def clients() -> dict[str, FakeRedis]:
    return fake_clients()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_policy(sleep_recorder: SleepRecorder) -> RetryPolicy:
    """Default retry budget without real sleeping."""
    return RetryPolicy(max_attempts=5, delay=0.2, sleep=sleep_recorder)


@pytest.fixture
def write_log(tmp_path: Path) -> Callable[[str, list[str]], str]:
    """Write lines to a gzip log file and return its path."""

    def _write(name: str, lines: list[str]) -> str:
        path = tmp_path / name
        with gzip.open(path, "wt", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return str(path)

    return _write



@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
