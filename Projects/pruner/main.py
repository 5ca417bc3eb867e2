import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from common.config import LOG_LEVELS, TIME_KINDS, normalize_settings
from common.logging_config import configure_logging
from pruner.buckets import PrunePlan, build_plan
from pruner.executor import DeletionReport, delete_files
from pruner.report import render_plan, render_summary, summary_dict
from pruner.scanner import PruneError, scan_directory

__version__ = "0.2.0"

log = logging.getLogger("pruner.main")


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"count must be >= 0, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exp-prune",
        description="Delete files exponentially by age: keep the N oldest files in every "
        "age bucket (<1 day, 1-2 days, 2-4 days, 4-8 days, ...) and delete the rest.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-p", "--path", help="Path to the directory (prompted for when omitted)")
    parser.add_argument("-k", "--keep", type=_non_negative_int, help="Number of files to keep per time bucket (prompted for when omitted)")
    parser.add_argument(
        "-s",
        "--sort",
        dest="time_kind",
        choices=TIME_KINDS,
        default=None,
        help="Timestamp to age files by: mtime (modification, default), ctime (creation), atime (access)",
    )
    parser.add_argument("-r", "--recursive", action="store_true", default=None, help="Also process files in subdirectories, each directory on its own")
    parser.add_argument("-o", "--print-only", action="store_true", default=None, help="Dry run: show what would be deleted and delete nothing")
    parser.add_argument("-f", "--force", action="store_true", default=None, help="Delete without asking for confirmation. Use with caution")
    parser.add_argument("-q", "--quiet", action="store_true", default=None, help="Only report errors; deletes without asking")
    parser.add_argument("--json", action="store_true", default=None, help="Print the final summary as JSON")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Logging verbosity")
    parser.add_argument("--log-file", type=Path, default=None, help="Optional rotating log file")
    return parser


def _interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def _ask(prompt: str, input_fn: Callable[[str], str], to_stderr: bool = False) -> Optional[str]:
    # input() writes its prompt to stdout, which must stay clean for --json.
    if to_stderr:
        sys.stderr.write(prompt)
        sys.stderr.flush()
        prompt = ""
    try:
        return input_fn(prompt).strip()
    except EOFError:
        return None


def _fill_missing(settings: Dict[str, Any], parser: argparse.ArgumentParser, input_fn: Callable[[str], str]) -> None:
    if not settings["path"]:
        if not _interactive():
            parser.error("the following arguments are required: -p/--path")
        settings["path"] = _ask("Path to the directory: ", input_fn)
        if not settings["path"]:
            parser.error("no path given")
    if settings["keep"] is None:
        if not _interactive():
            parser.error("the following arguments are required: -k/--keep")
        raw = _ask("Number of files to keep per time bucket: ", input_fn) or ""
        try:
            settings["keep"] = _non_negative_int(raw)
        except argparse.ArgumentTypeError as exc:
            parser.error(str(exc))


def confirm_deletion(plan: PrunePlan, input_fn: Callable[[str], str] = input, to_stderr: bool = False) -> bool:
    out = sys.stderr if to_stderr else sys.stdout
    if not plan.kept:
        print("WARNING! No files will be kept, you want ALL files to be deleted.", file=out)
    answer = _ask("\nDo you want to proceed with deletion? There is no undo. (yes/no) ", input_fn, to_stderr)
    return (answer or "").lower() == "yes"


def _emit(lines: List[str], enabled: bool) -> None:
    if enabled:
        for line in lines:
            print(line)


def run(settings: Dict[str, Any], input_fn: Callable[[str], str] = input) -> int:
    quiet = settings["quiet"]
    as_json = settings["json"]
    chatty = not quiet and not as_json
    root = Path(settings["path"]).expanduser()

    try:
        scan = scan_directory(root, time_kind=settings["time_kind"], recursive=settings["recursive"])
    except PruneError as exc:
        log.error("Error: %s", exc)
        return 1

    plan = build_plan(scan.entries, settings["keep"], per_directory=settings["recursive"])
    report: Optional[DeletionReport] = None
    cancelled = False

    if quiet and (scan.skipped or scan.unreadable_dirs):
        log.error(
            "could not read %s files and %s directories: %s",
            len(scan.skipped),
            len(scan.unreadable_dirs),
            ", ".join(str(p) for p in scan.skipped + scan.unreadable_dirs),
        )
    if not scan.entries:
        log.warning("No files found in %s. Only regular files are considered, not directories.", root)
    _emit(render_plan(plan, root, settings["time_kind"]), chatty)

    if not plan.deleted:
        _emit(["", "No files to delete."], chatty)
    elif settings["print_only"]:
        _emit(["", "Print-only enabled, no files were deleted."], chatty)
    elif not settings["force"] and not quiet and not confirm_deletion(plan, input_fn, to_stderr=as_json):
        cancelled = True
        _emit(["Operation cancelled."], not as_json)
    else:
        log.info("Deleting %s files...", len(plan.deleted))
        report = delete_files(e.path for e in plan.deleted)

    if as_json:
        print(json.dumps(summary_dict(plan, report, scan, settings["print_only"], cancelled), indent=2))
    else:
        _emit([""] + render_summary(plan, report, scan), not quiet)

    if report is not None and not report.ok:
        log.error("%s of %s deletions failed", len(report.failed), len(plan.deleted))
        return 1
    return 0


def main(argv: Optional[List[str]] = None, input_fn: Callable[[str], str] = input) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.print_only and args.quiet:
        parser.error("--quiet and --print-only cannot be used together")
    if args.print_only and args.force:
        parser.error("--print-only and --force cannot be used together")

    settings = normalize_settings(vars(args))
    configure_logging(
        settings["log_level"],
        console_level="error" if settings["quiet"] else None,
        log_file=settings["log_file"],
    )
    _fill_missing(settings, parser, input_fn)
    return run(settings, input_fn)


if __name__ == "__main__":
    raise SystemExit(main())
