from __future__ import annotations

import datetime as dt
from pathlib import Path

DATETIME_FMT = "%Y-%m-%dT%H:%M:%SZ"


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base + "/"
    return f"{base}/{path}"


def format_datetime(value: dt.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc).strftime(DATETIME_FMT)


def utc_now() -> str:
    return format_datetime(dt.datetime.now(dt.timezone.utc))


def file_datetime(path: Path) -> str:
    """Modification time of ``path`` in the canonical timestamp format."""
    mtime = path.stat().st_mtime
    return format_datetime(dt.datetime.fromtimestamp(mtime, dt.timezone.utc))


def dir_name(path: Path) -> str:
    """Posix form of the parent of a relative path, "" for the top level."""
    parent = path.parent.as_posix()
    return "" if parent == "." else parent
