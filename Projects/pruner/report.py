from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pruner.buckets import BucketDecision, FileEntry, PrunePlan
from pruner.executor import DeletionReport
from pruner.scanner import ScanResult

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DELETE_MARK = " <-- to be deleted"


def _fmt_days(value: float) -> str:
    n = int(value)
    return f"{n} day" if n == 1 else f"{n} days"


def bucket_heading(decision: BucketDecision) -> str:
    lower, upper = decision.bounds
    if decision.index == 0:
        return f"Younger than {_fmt_days(upper)}:"
    return f"Younger than {_fmt_days(upper)} but at least {_fmt_days(lower)} old:"


def entry_line(entry: FileEntry, marked: bool = False) -> str:
    stamp = datetime.fromtimestamp(entry.timestamp).strftime(TIME_FORMAT)
    return f"{entry.path} | {stamp}{DELETE_MARK if marked else ''}"


def render_plan(plan: PrunePlan, root: Path, time_kind: str) -> List[str]:
    lines: List[str] = []
    current_group: Optional[Path] = None
    first = True
    for decision in plan.buckets:
        group = decision.group if decision.group is not None else root
        if first or group != current_group:
            lines.append("")
            lines.append(f"Opening {group}, sorting by {time_kind} and keeping {plan.keep_count} files")
            current_group = group
            first = False
        lines.append("")
        lines.append(bucket_heading(decision))
        if not decision.deleted:
            lines.append("No files to delete in this group.")
        lines.extend(entry_line(e) for e in decision.kept)
        lines.extend(entry_line(e, marked=True) for e in decision.deleted)
    return lines


def summary_dict(
    plan: PrunePlan,
    report: Optional[DeletionReport],
    scan: ScanResult,
    dry_run: bool,
    cancelled: bool = False,
) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "ok": report is None or report.ok,
        "dry_run": dry_run,
        "cancelled": cancelled,
        "kept": [str(e.path) for e in plan.kept],
        "to_delete": [str(e.path) for e in plan.deleted],
        "skipped": [str(p) for p in scan.skipped],
        "unreadable_dirs": [str(p) for p in scan.unreadable_dirs],
        "future_dated": scan.future_dated,
    }
    if report is not None:
        out.update(report.as_dict())
    return out


def render_summary(plan: PrunePlan, report: Optional[DeletionReport], scan: ScanResult) -> List[str]:
    lines = [f"Scanned {plan.total} files: {len(plan.kept)} kept, {len(plan.deleted)} selected for deletion."]
    if scan.skipped:
        lines.append(f"Skipped {len(scan.skipped)} files whose metadata could not be read:")
        lines.extend(f"  {p}" for p in scan.skipped)
    if scan.unreadable_dirs:
        lines.append(f"Could not read {len(scan.unreadable_dirs)} directories:")
        lines.extend(f"  {p}" for p in scan.unreadable_dirs)
    if scan.future_dated:
        lines.append(f"{scan.future_dated} files had a timestamp in the future and were treated as brand new.")
    if report is not None:
        lines.append(f"Deleted {len(report.deleted)} files, {len(report.failed)} failed.")
        lines.extend(f"  failed: {p} ({err})" for p, err in report.failed)
    return lines
