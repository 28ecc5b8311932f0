from __future__ import annotations

import re
from typing import Optional

import yaml

DELIMITER = "---"
CUT_MARKER = "<!--more-->"
BLANK_AFTER_RE = re.compile(r"\n[ \t]*(?:\n|$)")
FENCE_RE = re.compile(r"^[ \t]{0,3}(?:`{3,}|~{3,})", re.MULTILINE)
INDENTED_CODE_RE = re.compile(r"(?:^|\n)[ \t]*\n((?: {4}|\t)\S)")
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class MetaLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as plain strings."""


MetaLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "post"


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [item.strip().strip("'\"") for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def _scalar(value: object) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_meta(block: str) -> dict:
    """Parse a front matter block, keeping every value as YAML produced it.

    Raises ``ValueError`` when the block is not a mapping and
    ``yaml.YAMLError`` when it is not valid YAML.
    """
    data = yaml.load(block, Loader=MetaLoader)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("front matter is not a mapping")
    return data


def dump_meta(meta: dict) -> str:
    return yaml.safe_dump(meta, sort_keys=False, allow_unicode=True, default_flow_style=False)


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    """Split ``text`` into its front matter block and body.

    Returns ``(None, text)`` when the text does not open with a complete
    ``---`` delimited block.
    """
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines(keepends=True)
    if not lines or lines[0].strip() != DELIMITER:
        return None, clean_text
    for i in range(1, len(lines)):
        if lines[i].strip() == DELIMITER:
            return "".join(lines[1:i]), "".join(lines[i + 1 :])
    return None, clean_text


def join_front_matter(meta: dict, body: str) -> str:
    return f"{DELIMITER}\n{dump_meta(meta)}{DELIMITER}\n{body}"


def meta_str(meta: dict, key: str) -> Optional[str]:
    value = _scalar(meta.get(key))
    if value is None:
        return None
    value = value.strip()
    return value or None


def meta_list(meta: dict, key: str) -> list[str]:
    value = meta.get(key)
    if isinstance(value, (list, tuple)):
        items = [_scalar(item) for item in value]
        return [item.strip() for item in items if item and item.strip()]
    value = _scalar(value)
    if value is None:
        return []
    return parse_list(value)


def merge_files(meta: dict, found: list[str]) -> list[str]:
    """Add ``found`` to the ``files`` list in ``meta``, sorted and unique."""
    names = [*meta_list(meta, "files"), *found]
    files = sorted({name for name in names if name and not name.endswith("/")})
    meta["files"] = files
    return files


def is_auto_page(directory: str, page_dirs: list[str]) -> bool:
    target = "/" + directory.strip("/")
    return any("/" + item.strip("/") == target for item in page_dirs)


def ancestors(path: str) -> list[str]:
    """``a/b/c`` -> ``["a/b/c", "a/b", "a"]``; the root is never included."""
    parts = [part for part in path.split("/") if part]
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]


def excerpt(body: str, short_size: int) -> str:
    marker = body.find(CUT_MARKER)
    if marker >= 0:
        return body[:marker]

    cut = len(body)
    match = BLANK_AFTER_RE.search(body, max(0, short_size))
    if match:
        cut = match.start()
    fence = FENCE_RE.search(body)
    if fence and fence.start() < cut:
        cut = fence.start()
    indented = INDENTED_CODE_RE.search(body)
    if indented and indented.start(1) < cut:
        cut = indented.start(1)
    return body[:cut]
