from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import unquote

import markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor
from pygments.lexers import get_lexer_for_filename
from pygments.util import ClassNotFound

FENCE_OPEN_RE = re.compile(r"^(?P<indent>[ \t]{0,3})(?P<fence>`{3,}|~{3,})[ \t]*(?P<info>[^`]*?)[ \t]*$")
EXTERNAL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


@dataclass
class Document:
    html: str
    title: Optional[str] = None
    slug: Optional[str] = None
    files: list[str] = field(default_factory=list)
    fragments: list[tuple[str, str]] = field(default_factory=list)


def guess_lang(name: str) -> str:
    try:
        lexer = get_lexer_for_filename(name)
    except ClassNotFound:
        return ""
    return lexer.aliases[0] if lexer.aliases else ""


def fragment_name(info: str) -> tuple[str, Optional[str]]:
    """Split a fence info string into ``(lang, file name)``.

    ``python hello.py`` and ``hello.py`` both name a file; ``python`` alone
    does not.
    """
    tokens = info.split()
    if len(tokens) == 1 and "." in tokens[0] and not tokens[0].startswith((".", "{")):
        return guess_lang(tokens[0]), tokens[0]
    if len(tokens) == 2 and "." in tokens[1] and not tokens[1].startswith((".", "{")):
        return tokens[0], tokens[1]
    return info, None


def safe_name(name: str) -> bool:
    """True for a relative posix path with no empty, ``.`` or ``..`` segment."""
    if not name or name.startswith("/") or "\\" in name:
        return False
    parts = name.split("/")
    return not any(part in ("", ".", "..") for part in parts)


def local_reference(ref: Optional[str]) -> Optional[str]:
    if not ref:
        return None
    ref = ref.split("#", 1)[0].split("?", 1)[0]
    if not ref or ref.startswith(("/", "\\")) or EXTERNAL_RE.match(ref):
        return None
    ref = unquote(ref)
    while ref.startswith("./"):
        ref = ref[2:]
    if not ref or ".." in ref.split("/"):
        return None
    return ref


class FragmentPreprocessor(Preprocessor):
    def __init__(self, md, ext: "SiteExtension"):
        super().__init__(md)
        self.ext = ext

    def run(self, lines):
        out = []
        i = 0
        while i < len(lines):
            match = FENCE_OPEN_RE.match(lines[i])
            if not match:
                out.append(lines[i])
                i += 1
                continue
            fence = match.group("fence")
            close_re = re.compile(rf"^[ \t]{{0,3}}{fence[0]}{{{len(fence)},}}[ \t]*$")
            end = i + 1
            while end < len(lines) and not close_re.match(lines[end]):
                end += 1
            lang, name = fragment_name(match.group("info"))
            if name and safe_name(name):
                code = lines[i + 1 : end]
                self.ext.fragments.append((name, "\n".join(code) + "\n"))
                out.append(f"{match.group('indent')}{fence}{lang}")
            else:
                out.append(lines[i])
            out.extend(lines[i + 1 : end + 1])
            i = end + 1
        return out


class DocumentTreeprocessor(Treeprocessor):
    def __init__(self, md, ext: "SiteExtension"):
        super().__init__(md)
        self.ext = ext

    def run(self, root):
        children = list(root)
        if children and children[0].tag == "h1":
            heading = children[0]
            self.ext.title = "".join(heading.itertext()).strip() or None
            self.ext.slug = heading.get("id")
            root.remove(heading)

        for el in root.iter():
            if el.tag == "img":
                ref = local_reference(el.get("src"))
            elif el.tag == "a":
                ref = local_reference(el.get("href"))
            else:
                continue
            if ref and ref not in self.ext.files:
                self.ext.files.append(ref)
        return None


class SiteExtension(Extension):
    """Collects title, slug, attachments and named code blocks while converting."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.reset()

    def reset(self):
        self.title: Optional[str] = None
        self.slug: Optional[str] = None
        self.files: list[str] = []
        self.fragments: list[tuple[str, str]] = []

    def extendMarkdown(self, md):
        md.registerExtension(self)
        # after normalize_whitespace (30), before fenced_code_block (25)
        md.preprocessors.register(FragmentPreprocessor(md, self), "fragments", 28)
        # after attr_list (8), before toc (5)
        md.treeprocessors.register(DocumentTreeprocessor(md, self), "document", 6)


def parse_document(text: str) -> Document:
    ext = SiteExtension()
    md = markdown.Markdown(
        extensions=["fenced_code", "tables", "attr_list", "toc", "codehilite", ext],
        extension_configs={"codehilite": {"css_class": "codehilite", "guess_lang": False}},
    )
    html_content = md.convert(text)
    fragment_names = {name for name, _ in ext.fragments}
    files = [name for name in ext.files if name not in fragment_names]
    return Document(
        html=html_content,
        title=ext.title,
        slug=ext.slug,
        files=files,
        fragments=list(ext.fragments),
    )
