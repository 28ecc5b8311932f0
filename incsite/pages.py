from __future__ import annotations

import argparse
import logging
import sqlite3
from pathlib import Path
from typing import Iterable

from jinja2 import Environment

from .cache import Cache, Entry, EntryType
from .content import excerpt, split_front_matter
from .markup import parse_document
from .process import INDEX_FILE, WalkResult
from .render import render_template, write_text
from .utils import join_url

logger = logging.getLogger(__name__)

TAGS_DIR = "tags"
FEED_FILE = "feed.xml"


def entry_url(site: dict, row: sqlite3.Row) -> str:
    base = f"{row['path']}/{row['slug']}" if row["path"] else row["slug"]
    return join_url(site["base_url"], f"{base}/")


def path_url(site: dict, name: str) -> str:
    return join_url(site["base_url"], f"{name}/" if name else "")


def tag_url(site: dict, name: str) -> str:
    return join_url(site["tags_url"], f"{name}/")


def entry_item(site: dict, row: sqlite3.Row) -> dict:
    return {
        "title": row["title"] or row["slug"],
        "url": entry_url(site, row),
        "date": row["date"],
        "created": row["created"],
        "updated": row["updated"] or "",
    }


def write_generated(
    cache: Cache, output_dir: Path, kind: EntryType, path: str, file: str, text: str, now: str, title=None
) -> int:
    rel = f"{path}/{file}" if path else file
    dst = output_dir / rel
    exists = dst.exists()
    logger.info("%s: %s", "UPDATE" if exists else "CREATE", rel)
    write_text(dst, text)
    return cache.add_entry(
        Entry(type=kind, path=cache.path_id(path), file=file, title=title, datetime=now, update=exists)
    )


def build_listing(name: str, args: argparse.Namespace, cache: Cache, env: Environment) -> None:
    site = args.site
    path_id = cache.path_id(name)
    parent = name.rsplit("/", 1)[0] if "/" in name else ""
    title = name.rsplit("/", 1)[-1]
    data = dict(site)
    data.update(
        {
            "name": name,
            "title": title,
            "url": path_url(site, name),
            "parent_url": path_url(site, parent),
            "paths": [
                {"name": row["name"], "title": row["name"].rsplit("/", 1)[-1], "url": path_url(site, row["name"])}
                for row in cache.subpaths(path_id)
            ],
            "entries": [entry_item(site, row) for row in cache.entries_under_path(path_id)],
        }
    )
    html_doc = render_template(env, "list.html", data)
    write_generated(cache, Path(args.destination), EntryType.LISTING, name, INDEX_FILE, html_doc, site["now"], title)


def build_listings(paths: Iterable[str], args: argparse.Namespace, cache: Cache, env: Environment) -> None:
    for name in paths:
        if name:
            build_listing(name, args, cache, env)


def build_tags(tags: Iterable[str], args: argparse.Namespace, cache: Cache, env: Environment) -> None:
    site = args.site
    output_dir = Path(args.destination)

    data = dict(site)
    data.update(
        {
            "title": site["tags_name"],
            "url": site["tags_url"],
            "tags": [{"name": row["name"], "url": tag_url(site, row["name"])} for row in cache.all_tags()],
        }
    )
    html_doc = render_template(env, "tags.html", data)
    write_generated(
        cache, output_dir, EntryType.LISTING, TAGS_DIR, INDEX_FILE, html_doc, site["now"], site["tags_name"]
    )

    for tag in tags:
        data = dict(site)
        data.update(
            {
                "title": tag,
                "tag": tag,
                "url": tag_url(site, tag),
                "entries": [entry_item(site, row) for row in cache.entries_for_tag(cache.tag_id(tag))],
            }
        )
        html_doc = render_template(env, "tag.html", data)
        write_generated(
            cache, output_dir, EntryType.LISTING, f"{TAGS_DIR}/{tag}", INDEX_FILE, html_doc, site["now"], tag
        )


def read_excerpt(path: Path, short_size: int) -> str:
    if not path.is_file():
        logger.warning("MISSING: %s", path)
        return ""
    _, body = split_front_matter(path.read_text(encoding="utf-8"))
    return excerpt(body, short_size)


def build_home(args: argparse.Namespace, cache: Cache, env: Environment) -> None:
    site = args.site
    output_dir = Path(args.destination)
    source_dir = Path(args.source)

    home_entries = []
    feed_entries = []
    for row in cache.most_recent_entries(site["num_entries"]):
        text = read_excerpt(source_dir / row["source"], site["short_size"])
        excerpt_html = parse_document(text).html if text.strip() else ""
        item = entry_item(site, row)
        item["tags"] = [{"name": tag["name"], "url": tag_url(site, tag["name"])} for tag in cache.entry_tags(row["id"])]
        item["excerpt"] = excerpt_html
        home_entries.append(item)
        feed_entries.append(
            {
                "title": item["title"],
                "url": item["url"],
                "id": item["url"],
                "updated": row["date"],
                "excerpt": excerpt_html,
            }
        )

    data = dict(site)
    data.update({"title": site["home_name"], "url": site["home_url"], "entries": home_entries})
    html_doc = render_template(env, "home.html", data)
    write_generated(cache, output_dir, EntryType.HOME, "", INDEX_FILE, html_doc, site["now"], site["home_name"])

    data = dict(site)
    data.update(
        {
            "title": site["home_name"],
            "url": join_url(site["base_url"], FEED_FILE),
            "updated": feed_entries[0]["updated"] if feed_entries else site["now"],
            "entries": feed_entries,
        }
    )
    feed = render_template(env, "feed.xml", data)
    write_generated(cache, output_dir, EntryType.FEED, "", FEED_FILE, feed, site["now"], site["home_name"])


def aggregate(result: WalkResult, args: argparse.Namespace, cache: Cache, env: Environment) -> bool:
    """Rebuild listings, tag pages, home page and feed for a finished document pass."""
    if not result.paths:
        return False
    build_listings(sorted(result.paths), args, cache, env)
    if result.tags:
        build_tags(sorted(result.tags), args, cache, env)
    build_home(args, cache, env)
    return True
