from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .cache import Cache
from .config import find_config, load_config, resolve_config
from .errors import SiteError
from .pages import aggregate
from .process import WalkResult, process_documents, process_static
from .render import make_environment

logger = logging.getLogger("incsite")


def parse_args(argv: Optional[Sequence[str]] = None, cwd: Optional[Path] = None) -> argparse.Namespace:
    cwd = cwd or Path.cwd()
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("-c", "--config", "--conf", default=None)
    pre_parser.add_argument("-r", "--root", default=None)
    pre_args, _ = pre_parser.parse_known_args(argv)

    if pre_args.config:
        config_path: Optional[Path] = Path(pre_args.config)
        if not config_path.is_absolute():
            config_path = cwd / config_path
        config = load_config(config_path)
    else:
        config_path = find_config(cwd)
        config = load_config(config_path) if config_path else {}
    site = resolve_config(config, config_path, cwd, pre_args.root)

    parser = argparse.ArgumentParser(prog="incsite", description="Incremental Markdown site builder.")
    parser.add_argument(
        "-c", "--config", "--conf", default=pre_args.config, help="Site config file (disables searching for site.toml)."
    )
    parser.add_argument("-r", "--root", default=site["root"], help="Root directory.")
    parser.add_argument("-C", "--cache", default=site["cache"], help="Cache database file.")
    parser.add_argument("-s", "--source", "--src", default=site["source"], help="Directory containing Markdown documents.")
    parser.add_argument(
        "-d", "--destination", "--dest", default=site["destination"], help="Output directory for the site."
    )
    parser.add_argument("-f", "--static", "--files", default=site["static"], help="Directory containing static assets.")
    parser.add_argument("-t", "--template", "--tmpl", default=site["template"], help="Directory with templates.")
    parser.add_argument("-R", "--rebuild", action="store_true", help="Ignore the cache and recreate everything.")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Verbose output (repeat for more: up to -vv)."
    )
    parser.add_argument("-V", "--version", action="version", version=f"incsite v{__version__}")
    parser.add_argument("files", nargs="*", help="Only process these documents.")
    args = parser.parse_args(argv)

    for key in ("root", "cache", "source", "destination", "static", "template"):
        value = Path(getattr(args, key))
        if not value.is_absolute():
            value = cwd / value
        setattr(args, key, str(value))
        site[key] = str(value)
    args.extension = site["extension"]
    args.site = site
    return args


def setup_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(level)


def build_site(args: argparse.Namespace) -> WalkResult:
    cache_path = Path(args.cache)
    if args.rebuild and cache_path.exists():
        logger.info("REBUILD: removing %s", cache_path)
        cache_path.unlink()

    env = make_environment(Path(args.template))
    with Cache(cache_path) as cache:
        if cache.created:
            logger.debug("CACHE: created %s", cache_path)
        process_static(args, cache)
        result = process_documents(args, cache, env)
        aggregate(result, args, cache, env)
        logger.debug(
            "CACHE: %s",
            ", ".join(f"{table}={count}" for table, count in cache.counts().items()),
        )
    return result


def main(argv: Optional[Sequence[str]] = None) -> None:
    start = time.perf_counter()
    try:
        args = parse_args(argv)
        setup_logging(args.verbose)
        result = build_site(args)
    except SiteError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    if result.paths:
        print(f"Site generated in: {args.destination}")
