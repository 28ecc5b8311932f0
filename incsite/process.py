from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import yaml
from jinja2 import Environment

from .cache import Cache, Entry, EntryType
from .content import (
    ancestors,
    is_auto_page,
    join_front_matter,
    merge_files,
    meta_list,
    meta_str,
    parse_meta,
    slugify,
    split_front_matter,
)
from .errors import BoundaryError, DocumentError
from .markup import parse_document, safe_name
from .render import render_template, sync_copy, sync_write
from .utils import dir_name, file_datetime, join_url

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


@dataclass
class WalkResult:
    """Paths and tags touched by a document pass; input to the aggregation pass."""

    paths: set[str] = field(default_factory=set)
    tags: set[str] = field(default_factory=set)


def list_files(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return sorted((path for path in root.rglob("*") if path.is_file()), key=lambda p: p.as_posix())


def process_static(args: argparse.Namespace, cache: Cache) -> int:
    static_dir = Path(args.static)
    destination = Path(args.destination)
    changed = 0
    for src in list_files(static_dir):
        rel = src.relative_to(static_dir)
        synced = sync_copy(rel.as_posix(), src, destination / rel, args.rebuild)
        if synced is None:
            continue
        cache.add_entry(
            Entry(
                type=EntryType.STATIC,
                source=rel.as_posix(),
                path=cache.path_id(dir_name(rel)),
                file=rel.name,
                datetime=synced.datetime,
                update=synced.update,
            )
        )
        changed += 1
    return changed


def resolve_files(files: Iterable[str], source_dir: Path) -> list[Path]:
    """Absolute paths for explicitly named documents, all inside ``source_dir``."""
    root = source_dir.resolve()
    resolved = []
    for name in files:
        path = Path(name).resolve()
        if not path.is_relative_to(root):
            raise BoundaryError(f"File '{name}' is outside of the source directory '{root}'.")
        resolved.append(path)
    return resolved


def document_files(args: argparse.Namespace) -> list[Path]:
    source_dir = Path(args.source)
    if args.files:
        return resolve_files(args.files, source_dir)
    if not source_dir.exists():
        return []
    return sorted(source_dir.resolve().rglob(f"*{args.extension}"), key=lambda p: p.as_posix())


def process_documents(
    args: argparse.Namespace, cache: Cache, env: Environment, result: Optional[WalkResult] = None
) -> WalkResult:
    if result is None:
        result = WalkResult()
    for path in document_files(args):
        if not path.is_file():
            logger.warning("MISSING: %s", path)
            continue
        process_document(path, args, cache, env, result)
    return result


def read_document(path: Path, rel: Path) -> tuple[dict, str]:
    """Front matter and body of a document; unreadable input is fatal."""
    try:
        block, body = split_front_matter(path.read_text(encoding="utf-8"))
        meta = parse_meta(block) if block is not None else {}
    except (ValueError, yaml.YAMLError) as exc:
        raise DocumentError(f"Cannot read '{rel.as_posix()}': {exc}") from exc
    return meta, body


def process_document(
    path: Path, args: argparse.Namespace, cache: Cache, env: Environment, result: WalkResult
) -> None:
    source_root = Path(args.source).resolve()
    destination = Path(args.destination)
    site = args.site
    rel = path.relative_to(source_root)
    directory = dir_name(rel)

    meta, body = read_document(path, rel)

    is_page = meta_str(meta, "type") == "page" or is_auto_page(directory, site["pages"])

    doc = parse_document(body)
    title = meta_str(meta, "title") or doc.title or path.stem
    slug = meta_str(meta, "slug") or doc.slug or slugify(title)
    if not safe_name(slug):
        raise BoundaryError(f"Slug '{slug}' in '{rel.as_posix()}' would leave the destination directory.")

    datetime = file_datetime(path)
    created = meta_str(meta, "created")
    if created is None:
        meta["created"] = datetime
    elif created != datetime:
        meta["updated"] = datetime

    files = merge_files(meta, doc.files)
    tags = list(dict.fromkeys(meta_list(meta, "tags")))
    for tag in tags:
        if not safe_name(tag):
            raise BoundaryError(f"Tag '{tag}' in '{rel.as_posix()}' would leave the destination directory.")

    stat = path.stat()
    path.write_text(join_front_matter(meta, body), encoding="utf-8")
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns))

    base = f"{directory}/{slug}" if directory else slug
    data = dict(site)
    data.update({key: value for key, value in meta.items() if isinstance(key, str)})
    data.update(
        {
            "type": "page" if is_page else "entry",
            "title": title,
            "slug": slug,
            "path": directory,
            "url": join_url(site["base_url"], f"{base}/"),
            "content": doc.html,
            "date": meta_str(meta, "created") or "",
            "updated": meta_str(meta, "updated") or "",
            "files": files,
            "tags": [
                {"name": tag, "url": join_url(site["tags_url"], f"{tag}/")}
                for tag in tags
            ],
        }
    )
    html_doc = render_template(env, "page.html" if is_page else "entry.html", data)

    synced = sync_write(rel.as_posix(), html_doc, path, destination / base / INDEX_FILE, args.rebuild)
    if synced is not None:
        path_id = cache.path_id(directory)
        entry_id = cache.add_entry(
            Entry(
                type=EntryType.PAGE if is_page else EntryType.ENTRY,
                source=rel.as_posix(),
                path=path_id,
                slug=slug,
                file=INDEX_FILE,
                title=title,
                datetime=synced.datetime,
                update=synced.update,
            )
        )
        if not is_page:
            for name in ancestors(directory):
                cache.path_id(name)
                result.paths.add(name)
            for tag in tags:
                cache.add_tag(entry_id, tag)
                result.tags.add(tag)

    for name, code in doc.fragments:
        synced = sync_write(f"{base}/{name}", code, path, destination / base / name, args.rebuild)
        if synced is not None:
            add_child(cache, EntryType.SOURCE, rel, directory, slug, name, synced)

    for name in files:
        synced = sync_copy(f"{base}/{name}", path.parent / name, destination / base / name, args.rebuild)
        if synced is not None:
            add_child(cache, EntryType.FILE, rel, directory, slug, name, synced)


def add_child(cache: Cache, kind: EntryType, rel: Path, directory: str, slug: str, name: str, synced) -> int:
    return cache.add_entry(
        Entry(
            type=kind,
            source=rel.as_posix(),
            path=cache.path_id(directory),
            slug=slug,
            file=name,
            datetime=synced.datetime,
            update=synced.update,
        )
    )
