"""End-to-end runs: gzip log files through the dispatcher into fake stores."""

import logging
from pathlib import Path

from apps.loader.dispatcher import dispatch
from utils import codec
from tests.fakes import make_line


def _lines(count: int, bad: int = 0) -> list[str]:
    lines = [
        make_line(dev_type=("idfa", "gaid", "adid", "dvid")[i % 4], dev_id=f"dev{i}", apps=f"{i},{i + 1}")
        for i in range(count - bad)
    ]
    return lines + ["malformed\tline"] * bad


def test_clean_file_has_no_error_rate_breach(write_log, tmp_path: Path, clients, fast_policy, caplog) -> None:
    write_log("20170929000000.tsv.gz", _lines(100))

    with caplog.at_level(logging.INFO):
        results = dispatch(str(tmp_path / "*.tsv.gz"), clients, policy=fast_policy)

    assert len(results) == 1
    assert results[0].status == "done"
    assert results[0].error_rate == 0.0
    assert "Too many invalid records" not in caplog.text
    assert "Done" in caplog.text and "(Total: 100 | Error: 0)" in caplog.text
    assert sum(len(client.data) for client in clients.values()) == 100
    assert codec.decode(clients["gaid"].data["gaid:dev1"])[2] == [1, 2]
    assert (tmp_path / ".20170929000000.tsv.gz").exists()


def test_two_percent_bad_lines_breach_threshold(write_log, tmp_path: Path, clients, fast_policy, caplog) -> None:
    write_log("20170929000100.tsv.gz", _lines(100, bad=2))

    with caplog.at_level(logging.INFO):
        results = dispatch(str(tmp_path / "*.tsv.gz"), clients, policy=fast_policy)

    assert results[0].status == "error_rate_exceeded"
    assert results[0].error_rate == 0.02
    assert "Too many invalid records" in caplog.text
    assert "(Total: 100 | Error: 2)" in caplog.text
    # marked by default, matching the historical behaviour
    assert (tmp_path / ".20170929000100.tsv.gz").exists()


def test_breached_file_left_in_place_when_configured(write_log, tmp_path: Path, clients, fast_policy) -> None:
    path = write_log("bad.tsv.gz", _lines(100, bad=2))

    dispatch(str(tmp_path / "*.tsv.gz"), clients, policy=fast_policy, mark_on_error_breach=False)

    assert Path(path).exists()


def test_second_run_skips_marked_files(write_log, tmp_path: Path, clients, fast_policy) -> None:
    write_log("a.tsv.gz", _lines(10))
    write_log("b.tsv.gz", _lines(10))

    first = dispatch(str(tmp_path / "*.tsv.gz"), clients, policy=fast_policy, workers=2)
    second = dispatch(str(tmp_path / "*.tsv.gz"), clients, policy=fast_policy, workers=2)

    assert [Path(r.path).name for r in first] == ["a.tsv.gz", "b.tsv.gz"]
    assert second == []


def test_dry_run_marks_files_without_writing(write_log, tmp_path: Path, clients, fast_policy) -> None:
    write_log("a.tsv.gz", _lines(20))

    results = dispatch(str(tmp_path / "*.tsv.gz"), clients, dry=True, policy=fast_policy)

    assert results[0].status == "done"
    assert all(client.calls == 0 for client in clients.values())
    assert (tmp_path / ".a.tsv.gz").exists()
