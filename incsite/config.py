from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError
from .utils import parse_int, utc_now

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

CONFIG_NAMES = ("site.toml", "site.yaml", "site.yml", "site.json")

DEFAULTS = {
    "extension": ".md",
    "base_url": "/",
    "author": "Unknown",
    "home_name": "Home",
    "tags_name": "Tags",
    "num_entries": 5,
    "short_size": 200,
}

DIRECTORIES = {
    "cache": "cache.db",
    "source": "content",
    "destination": "public",
    "static": "static",
    "template": "template",
}


def load_config(path: Path) -> dict:
    if not path.exists():
        raise ConfigError(f"Configuration file '{path}' does not exist.")
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return data


def find_config(start: Path) -> Optional[Path]:
    """Nearest site config in ``start`` or one of its parents."""
    for directory in (start, *start.parents):
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [item.strip() for item in str(value).split(",") if item.strip()]


def resolve_config(config: dict, config_path: Optional[Path], cwd: Path, root: Optional[str] = None) -> dict:
    """Fill in defaults and absolute directories.

    Relative ``root`` values are taken from the config file's directory (or
    ``cwd`` without one); the other directories are relative to ``root``.
    """
    origin = config_path.resolve().parent if config_path else cwd
    root_path = Path(root if root is not None else config.get("root", origin))
    if not root_path.is_absolute():
        root_path = origin / root_path
    root_path = root_path.resolve()

    site = dict(config)
    site["root"] = str(root_path)
    for key, default in DIRECTORIES.items():
        value = Path(str(config.get(key) or default))
        site[key] = str(value if value.is_absolute() else root_path / value)

    for key, default in DEFAULTS.items():
        if site.get(key) is None:
            site[key] = default
    site["num_entries"] = max(0, parse_int(site["num_entries"], DEFAULTS["num_entries"]))
    site["short_size"] = max(0, parse_int(site["short_size"], DEFAULTS["short_size"]))
    site["pages"] = _as_list(config.get("pages"))

    base_url = str(site["base_url"])
    if not base_url.endswith("/"):
        base_url += "/"
    site["base_url"] = base_url
    site["home_url"] = base_url
    site["tags_url"] = base_url + "tags/"
    site["now"] = utc_now()
    return site
