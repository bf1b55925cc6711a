"""Unit tests for file discovery and ordered dispatch."""

import logging
import threading
import time
from pathlib import Path

import pytest

from apps.loader import dispatcher as dispatcher_module
from apps.loader.dispatcher import Dispatcher, default_workers, find_log_files
from utils.schemas import FileJob, FileResult
from tests.fakes import make_line


def test_find_log_files_sorts_and_skips_marked(tmp_path: Path) -> None:
    for name in ("b.tsv.gz", "a.tsv.gz", ".c.tsv.gz", "c.txt"):
        (tmp_path / name).write_bytes(b"")

    files = find_log_files(str(tmp_path / "*.tsv.gz"))

    assert files == [str(tmp_path / "a.tsv.gz"), str(tmp_path / "b.tsv.gz")]


def test_find_log_files_with_no_matches(tmp_path: Path) -> None:
    assert find_log_files(str(tmp_path / "*.gz")) == []


@pytest.mark.parametrize(
    "file_count, workers, expected",
    [(3, 8, 3), (10, 4, 4), (1, None, 1), (5, 1, 1)],
)
def test_default_workers_is_bounded(file_count: int, workers, expected: int) -> None:
    assert default_workers(file_count, workers) == expected


class _SlowFirstDispatcher(Dispatcher):
    """Finishes jobs in reverse order and records the finishing order."""

    def __init__(self, count: int, statuses: dict[int, str] | None = None, **kwargs) -> None:
        super().__init__(clients={}, workers=count, **kwargs)
        self.count = count
        self.statuses = statuses or {}
        self.finished: list[int] = []
        self._lock = threading.Lock()
        self._all_started = threading.Barrier(count)

    def _process(self, job: FileJob) -> FileResult:
        self._all_started.wait(timeout=5)
        time.sleep(0.05 * (self.count - job.index))
        with self._lock:
            self.finished.append(job.index)
        return FileResult(index=job.index, path=job.path, status=self.statuses.get(job.index, "done"))


def test_completions_are_handled_in_file_order(monkeypatch) -> None:
    marked: list[str] = []
    monkeypatch.setattr(dispatcher_module, "mark_processed", lambda path, prefix: marked.append(path) or True)
    files = [f"/logs/{i}.tsv.gz" for i in range(4)]
    dispatcher = _SlowFirstDispatcher(len(files))

    results = dispatcher.run(files)

    assert dispatcher.finished == [3, 2, 1, 0]
    assert [r.index for r in results] == [0, 1, 2, 3]
    assert marked == files


def test_marking_follows_status(monkeypatch, caplog) -> None:
    marked: list[str] = []
    monkeypatch.setattr(dispatcher_module, "mark_processed", lambda path, prefix: marked.append(path) or True)
    files = ["/logs/a", "/logs/b", "/logs/c"]
    statuses = {1: "error_rate_exceeded", 2: "unreadable"}

    with caplog.at_level(logging.WARNING):
        _SlowFirstDispatcher(3, statuses, mark_on_error_breach=True).run(files)
    assert marked == ["/logs/a", "/logs/b"]
    assert "Leaving /logs/c unmarked" in caplog.text

    marked.clear()
    _SlowFirstDispatcher(3, statuses, mark_on_error_breach=False).run(files)
    assert marked == ["/logs/a"]


def test_run_with_no_files_returns_empty() -> None:
    assert Dispatcher(clients={}).run([]) == []


def test_unreadable_file_does_not_stop_siblings(write_log, tmp_path: Path, clients, fast_policy) -> None:
    good = write_log("a.tsv.gz", [make_line(dev_id="1")])
    bad = tmp_path / "b.tsv.gz"
    bad.write_text("not gzip")
    later = write_log("c.tsv.gz", [make_line(dev_id="3")])

    results = Dispatcher(clients, workers=2, policy=fast_policy).run([good, str(bad), later])

    assert [r.status for r in results] == ["done", "unreadable", "done"]
    assert set(clients["idfa"].data) == {"idfa:1", "idfa:3"}
    assert (tmp_path / ".a.tsv.gz").exists()
    assert bad.exists()
    assert (tmp_path / ".c.tsv.gz").exists()
