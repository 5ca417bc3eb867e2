import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from pruner import scanner
from pruner.scanner import SECONDS_PER_DAY, TargetPathError, scan_directory

NOW = 1_700_000_000.0


def _touch(path: Path, age_days: float, atime_age_days: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x")
    mtime = NOW - age_days * SECONDS_PER_DAY
    atime = NOW - (age_days if atime_age_days is None else atime_age_days) * SECONDS_PER_DAY
    os.utime(path, (atime, mtime))
    return path


def test_scan_lists_regular_files_with_age_in_days(tmp_path):
    _touch(tmp_path / "a.log", 3.0)
    _touch(tmp_path / "b.log", 0.25)
    (tmp_path / "subdir").mkdir()

    result = scan_directory(tmp_path, now=NOW)

    ages = {e.path.name: e.age_days for e in result.entries}
    assert set(ages) == {"a.log", "b.log"}
    assert ages["a.log"] == pytest.approx(3.0, abs=1e-6)
    assert ages["b.log"] == pytest.approx(0.25, abs=1e-6)
    assert result.skipped == []


def test_scan_is_not_recursive_by_default(tmp_path):
    _touch(tmp_path / "top.log", 1.0)
    _touch(tmp_path / "nested" / "deep.log", 1.0)

    flat = scan_directory(tmp_path, now=NOW)
    assert [e.path.name for e in flat.entries] == ["top.log"]

    deep = scan_directory(tmp_path, recursive=True, now=NOW)
    assert sorted(e.path.name for e in deep.entries) == ["deep.log", "top.log"]


def test_scan_uses_requested_time_kind(tmp_path):
    _touch(tmp_path / "a.log", age_days=10.0, atime_age_days=2.0)

    by_mtime = scan_directory(tmp_path, time_kind="mtime", now=NOW)
    by_atime = scan_directory(tmp_path, time_kind="atime", now=NOW)

    assert by_mtime.entries[0].age_days == pytest.approx(10.0, abs=1e-6)
    assert by_atime.entries[0].age_days == pytest.approx(2.0, abs=1e-6)


def test_scan_rejects_unknown_time_kind(tmp_path):
    with pytest.raises(ValueError):
        scan_directory(tmp_path, time_kind="btime", now=NOW)


def test_future_dated_file_gets_age_zero(tmp_path):
    _touch(tmp_path / "future.log", -2.0)

    result = scan_directory(tmp_path, now=NOW)

    assert result.entries[0].age_days == 0.0
    assert result.future_dated == 1


def test_missing_path_is_fatal(tmp_path):
    with pytest.raises(TargetPathError, match="does not exist"):
        scan_directory(tmp_path / "nope", now=NOW)


def test_file_path_is_fatal(tmp_path):
    target = _touch(tmp_path / "a.log", 1.0)
    with pytest.raises(TargetPathError, match="not a directory"):
        scan_directory(target, now=NOW)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_unreadable_metadata_is_skipped_not_fatal(tmp_path):
    _touch(tmp_path / "ok.log", 5.0)
    os.symlink(tmp_path / "gone.log", tmp_path / "dangling.log")

    result = scan_directory(tmp_path, now=NOW)

    assert [e.path.name for e in result.entries] == ["ok.log"]
    assert [p.name for p in result.skipped] == ["dangling.log"]


def _walk_failing_on(monkeypatch, tmp_path, failing: Path):
    def fake_walk(top, onerror=None, **kwargs):
        onerror(PermissionError(13, "Permission denied", str(failing)))
        yield str(tmp_path), [], ["ok.log"]

    monkeypatch.setattr(scanner.os, "walk", fake_walk)


def test_unreadable_subdirectory_is_recorded(tmp_path, monkeypatch):
    _touch(tmp_path / "ok.log", 5.0)
    _walk_failing_on(monkeypatch, tmp_path, tmp_path / "locked")

    result = scan_directory(tmp_path, recursive=True, now=NOW)

    assert [e.path.name for e in result.entries] == ["ok.log"]
    assert result.unreadable_dirs == [tmp_path / "locked"]


def test_unreadable_root_is_fatal_in_recursive_mode(tmp_path, monkeypatch):
    _walk_failing_on(monkeypatch, tmp_path, tmp_path)

    with pytest.raises(TargetPathError, match="cannot list directory"):
        scan_directory(tmp_path, recursive=True, now=NOW)
