"""Tests for config loading, discovery and the command line."""

from pathlib import Path

import pytest

from incsite.cli import main, parse_args
from incsite.config import find_config, load_config, resolve_config
from incsite.errors import ConfigError


class TestLoadConfig:
    def test_toml(self, tmp_path):
        path = tmp_path / "site.toml"
        path.write_text('author = "A"\nnum_entries = 3\n', encoding="utf-8")
        assert load_config(path) == {"author": "A", "num_entries": 3}

    def test_yaml(self, tmp_path):
        path = tmp_path / "site.yaml"
        path.write_text("pages:\n  - about\n  - /docs\n", encoding="utf-8")
        assert load_config(path) == {"pages": ["about", "/docs"]}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "site.yml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == {}

    def test_json(self, tmp_path):
        path = tmp_path / "site.json"
        path.write_text('{"base_url": "/blog"}', encoding="utf-8")
        assert load_config(path) == {"base_url": "/blog"}

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.toml")

    def test_invalid_file_is_fatal(self, tmp_path):
        path = tmp_path / "site.toml"
        path.write_text("this is = = not toml", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping_is_fatal(self, tmp_path):
        path = tmp_path / "site.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(path)


class TestFindConfig:
    def test_walks_up(self, tmp_path):
        (tmp_path / "site.toml").write_text("", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == tmp_path / "site.toml"


class TestResolveConfig:
    def test_defaults(self, tmp_path):
        site = resolve_config({}, None, tmp_path)
        root = tmp_path.resolve()
        assert site["root"] == str(root)
        assert site["cache"] == str(root / "cache.db")
        assert site["source"] == str(root / "content")
        assert site["destination"] == str(root / "public")
        assert site["base_url"] == "/"
        assert site["tags_url"] == "/tags/"
        assert site["num_entries"] == 5
        assert site["short_size"] == 200
        assert site["pages"] == []
        assert site["author"] == "Unknown"
        assert site["now"].endswith("Z")

    def test_relative_root_from_config_directory(self, tmp_path):
        config_path = tmp_path / "conf" / "site.toml"
        site = resolve_config({"root": "..", "source": "docs", "base_url": "/x"}, config_path, Path("/elsewhere"))
        assert site["root"] == str(tmp_path.resolve())
        assert site["source"] == str(tmp_path.resolve() / "docs")
        assert site["base_url"] == "/x/"
        assert site["home_url"] == "/x/"

    def test_scalar_pages(self, tmp_path):
        assert resolve_config({"pages": "about, docs"}, None, tmp_path)["pages"] == ["about", "docs"]


class TestCommandLine:
    def test_arguments_override_config(self, site_root):
        args = parse_args(
            ["--config", str(site_root / "site.toml"), "-d", "out", "-R", "-vv", "a.md"], cwd=site_root
        )
        assert args.destination == str(site_root / "out")
        assert args.rebuild is True
        assert args.verbose == 2
        assert args.files == ["a.md"]
        assert args.site["author"] == "Tester"

    def test_missing_config_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.toml")])
        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_boundary_violation_exits(self, site_root, capsys, monkeypatch):
        monkeypatch.chdir(site_root)
        (site_root / "stray.md").write_text("# Stray\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["stray.md"])
        assert exc_info.value.code == 1
        assert "outside of the source directory" in capsys.readouterr().err

    def test_bad_front_matter_exits(self, site_root, capsys, monkeypatch):
        monkeypatch.chdir(site_root)
        (site_root / "content" / "bad.md").write_text("---\ntitle: [unclosed\n---\n# Bad\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert err.startswith("error: Cannot read 'bad.md'")

    def test_successful_build(self, site_root, capsys, monkeypatch):
        monkeypatch.chdir(site_root)
        (site_root / "content" / "blog").mkdir()
        (site_root / "content" / "blog" / "hello.md").write_text("# Hi\n", encoding="utf-8")

        main(["-v"])

        out = capsys.readouterr().out
        assert "CREATE: blog/hello.md" in out
        assert "Build completed" in out
        assert (site_root / "public" / "blog" / "hi" / "index.html").is_file()
