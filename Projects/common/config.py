import logging
import os
from typing import Any, Dict, Optional

TIME_KINDS = ("mtime", "ctime", "atime")
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

DEFAULT_TIME_KIND = "mtime"
DEFAULT_LOG_LEVEL = "info"

log = logging.getLogger("pruner.config")


def env_defaults() -> Dict[str, Any]:
    return {
        "time_kind": os.getenv("EXP_PRUNE_TIME_KIND", DEFAULT_TIME_KIND),
        "keep": os.getenv("EXP_PRUNE_KEEP"),
        "log_level": os.getenv("EXP_PRUNE_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        "log_file": os.getenv("EXP_PRUNE_LOG_FILE") or None,
    }


def _as_int(src: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    val = src.get(key, default)
    try:
        return default if val is None or val == "" else int(val)
    except (TypeError, ValueError):
        log.warning("config_invalid_int key=%s value=%r, using %s", key, val, default)
        return default


def _as_count(src: Dict[str, Any], key: str) -> Optional[int]:
    v = _as_int(src, key, None)
    if v is not None and v < 0:
        log.warning("config_negative_count key=%s value=%s, ignoring it", key, v)
        return None
    return v


def _choice(src: Dict[str, Any], key: str, choices, default: str) -> str:
    raw = src.get(key)
    val = str(raw or default).strip().lower()
    if val not in choices:
        log.warning("config_invalid_choice key=%s value=%r, defaulting to %s", key, raw, default)
        return default
    return val


def normalize_settings(payload: Dict[str, Any] | None) -> Dict[str, Any]:
    """Merge a raw mapping over the environment defaults and validate it.

    Keys left as None in ``payload`` (argparse options the user did not pass)
    fall through to ``EXP_PRUNE_*`` environment variables.
    """
    src = dict(env_defaults())
    src.update({k: v for k, v in (payload or {}).items() if v is not None})

    log_file = src.get("log_file")
    return {
        "path": src.get("path"),
        "keep": _as_count(src, "keep"),
        "time_kind": _choice(src, "time_kind", TIME_KINDS, DEFAULT_TIME_KIND),
        "recursive": bool(src.get("recursive", False)),
        "print_only": bool(src.get("print_only", False)),
        "force": bool(src.get("force", False)),
        "quiet": bool(src.get("quiet", False)),
        "json": bool(src.get("json", False)),
        "log_level": _choice(src, "log_level", LOG_LEVELS, DEFAULT_LOG_LEVEL),
        "log_file": str(log_file) if log_file else None,
    }
