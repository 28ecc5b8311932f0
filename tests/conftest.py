"""Shared fixtures: a small site tree and parsed build arguments."""

import logging

import pytest

from incsite.cache import Cache
from incsite.cli import parse_args


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI attaches so captured streams do not leak between tests."""
    yield
    logger = logging.getLogger("incsite")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def site_root(tmp_path):
    """A site directory with a config file and empty content/static folders."""
    (tmp_path / "content").mkdir()
    (tmp_path / "static").mkdir()
    (tmp_path / "site.toml").write_text(
        'base_url = "https://example.org"\n'
        'author = "Tester"\n'
        'pages = ["about"]\n',
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def make_args(site_root):
    """Build arguments the way the command line would."""

    def factory(*extra):
        return parse_args(["--config", str(site_root / "site.toml"), *extra], cwd=site_root)

    return factory


@pytest.fixture
def write_doc(site_root):
    def factory(rel, text):
        path = site_root / "content" / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return factory


@pytest.fixture
def cache(tmp_path):
    with Cache(tmp_path / "test-cache.db") as db:
        yield db
