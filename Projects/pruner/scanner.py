import logging
import os
import stat
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from common.config import TIME_KINDS
from pruner.buckets import FileEntry

log = logging.getLogger("pruner.scanner")

SECONDS_PER_DAY = 86400.0


class PruneError(RuntimeError):
    pass


class TargetPathError(PruneError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


@dataclass
class ScanResult:
    entries: List[FileEntry] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    unreadable_dirs: List[Path] = field(default_factory=list)
    future_dated: int = 0


def file_timestamp(st: os.stat_result, time_kind: str) -> float:
    if time_kind == "mtime":
        return st.st_mtime
    if time_kind == "atime":
        return st.st_atime
    if time_kind == "ctime":
        # Birth time where the platform has it, inode change time otherwise.
        return float(getattr(st, "st_birthtime", st.st_ctime))
    raise ValueError(f"unknown time kind {time_kind!r}, expected one of {TIME_KINDS}")


def check_target(path: Path) -> Path:
    if not path.exists():
        raise TargetPathError(path, "path does not exist")
    if not path.is_dir():
        raise TargetPathError(path, "path is not a directory")
    return path


def _iter_candidates(root: Path, recursive: bool, result: ScanResult) -> Iterator[Path]:
    if not recursive:
        yield from sorted(root.iterdir())
        return

    def _walk_error(exc: OSError) -> None:
        failed = Path(exc.filename) if exc.filename else root
        if failed == root:
            raise TargetPathError(root, f"cannot list directory ({exc.strerror or exc})") from exc
        log.warning("scan_dir_unreadable path=%s error=%s", failed, exc)
        result.unreadable_dirs.append(failed)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(filenames):
            yield base / name


def scan_directory(
    path,
    time_kind: str = "mtime",
    recursive: bool = False,
    now: Optional[float] = None,
) -> ScanResult:
    if time_kind not in TIME_KINDS:
        raise ValueError(f"unknown time kind {time_kind!r}, expected one of {TIME_KINDS}")
    root = check_target(Path(path))
    now = time.time() if now is None else now
    result = ScanResult()

    try:
        candidates = list(_iter_candidates(root, recursive, result))
    except OSError as exc:
        raise TargetPathError(root, f"cannot list directory ({exc.strerror or exc})") from exc

    for candidate in candidates:
        try:
            # stat() follows symlinks, so a link to a regular file counts as a file.
            st = candidate.stat()
        except OSError as exc:
            log.warning("scan_skip path=%s error=%s", candidate, exc)
            result.skipped.append(candidate)
            continue
        if not stat.S_ISREG(st.st_mode):
            continue

        stamp = file_timestamp(st, time_kind)
        age_days = (now - stamp) / SECONDS_PER_DAY
        if age_days < 0:
            log.warning("scan_future_dated path=%s %s=%s, treating as age 0", candidate, time_kind, stamp)
            result.future_dated += 1
            age_days = 0.0
        result.entries.append(FileEntry(path=candidate, age_days=age_days, timestamp=stamp))

    log.debug("scan_done root=%s files=%s skipped=%s recursive=%s", root, len(result.entries), len(result.skipped), recursive)
    return result
