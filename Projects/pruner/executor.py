import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple

log = logging.getLogger("pruner.executor")


@dataclass
class DeletionReport:
    deleted: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_dict(self) -> dict:
        return {
            "deleted": [str(p) for p in self.deleted],
            "failed": [{"path": str(p), "error": err} for p, err in self.failed],
        }


def delete_files(paths: Iterable[Path]) -> DeletionReport:
    """Unlink every path, one at a time.

    A failure is logged and recorded but never stops the remaining deletions.
    There is no trash or undo.
    """
    report = DeletionReport()
    for path in paths:
        path = Path(path)
        try:
            path.unlink()
        except OSError as exc:
            err = exc.strerror or str(exc)
            log.error("delete_failed path=%s error=%s", path, err)
            report.failed.append((path, err))
            continue
        log.info("File deleted: %s", path)
        report.deleted.append(path)
    return report
