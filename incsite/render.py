from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import NamedTuple, Optional

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, select_autoescape

from .utils import file_datetime

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = Path(__file__).parent / "templates"


class Synced(NamedTuple):
    datetime: str
    update: bool


def make_environment(template_dir: Optional[Path] = None) -> Environment:
    loaders = []
    if template_dir is not None:
        loaders.append(FileSystemLoader(str(template_dir)))
    loaders.append(FileSystemLoader(str(DEFAULT_TEMPLATES)))
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml"]),
        keep_trailing_newline=True,
    )


def render_template(env: Environment, name: str, data: dict) -> str:
    return env.get_template(name).render(**data)


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _stale(action: str, label: str, src: Path, dst: Path, rebuild: bool) -> Optional[Synced]:
    if not src.exists() or not src.is_file():
        logger.warning("MISSING: %s (%s)", label, src)
        return None

    exists = dst.exists()
    if exists and not rebuild and dst.stat().st_mtime >= src.stat().st_mtime:
        logger.debug("SKIP: %s", label)
        return None

    logger.info("%s: %s", "UPDATE" if exists else action, label)
    return Synced(file_datetime(src), exists)


def sync_copy(label: str, src: Path, dst: Path, rebuild: bool = False) -> Optional[Synced]:
    """Copy ``src`` over ``dst`` when the destination is missing or older.

    Returns ``None`` when nothing was done.
    """
    synced = _stale("COPY", label, src, dst, rebuild)
    if synced is None:
        return None
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst)
    return synced


def sync_write(label: str, content: str, src: Path, dst: Path, rebuild: bool = False) -> Optional[Synced]:
    """Like :func:`sync_copy` but writes already rendered ``content``."""
    synced = _stale("CREATE", label, src, dst, rebuild)
    if synced is None:
        return None
    write_text(dst, content)
    return synced
