"""Tests for front matter handling, slugs and excerpts."""

import pytest
import yaml

from incsite.content import (
    ancestors,
    excerpt,
    is_auto_page,
    join_front_matter,
    merge_files,
    meta_list,
    meta_str,
    parse_meta,
    slugify,
    split_front_matter,
)


class TestFrontMatter:
    def test_split_with_block(self):
        block, body = split_front_matter("---\ntitle: Hello\n---\n# Body\ntext\n")
        assert block == "title: Hello\n"
        assert body == "# Body\ntext\n"

    def test_split_without_block(self):
        block, body = split_front_matter("# Body\n")
        assert block is None
        assert body == "# Body\n"

    def test_unterminated_block_is_body(self):
        block, body = split_front_matter("---\ntitle: x\n")
        assert block is None
        assert body == "---\ntitle: x\n"

    def test_timestamps_stay_strings(self):
        meta = parse_meta("created: 2024-01-02T03:04:05Z\ncount: 3\ndraft: true\n")
        assert meta == {"created": "2024-01-02T03:04:05Z", "count": 3, "draft": True}

    def test_nested_values_are_kept(self):
        block = "author:\n  name: Ann\n  mail: a@b\nempty:\n"
        meta = parse_meta(block)
        assert meta == {"author": {"name": "Ann", "mail": "a@b"}, "empty": None}
        assert parse_meta(split_front_matter(join_front_matter(meta, ""))[0]) == meta

    def test_non_mapping_block_is_rejected(self):
        with pytest.raises(ValueError):
            parse_meta("- a\n- b\n")

    def test_invalid_yaml_is_rejected(self):
        with pytest.raises(yaml.YAMLError):
            parse_meta("title: [unclosed\n")

    def test_round_trip_keeps_arrays_and_body(self):
        meta = {"title": "Hi", "created": "2024-01-02T03:04:05Z", "files": ["a.png"], "tags": ["x", "y"]}
        text = join_front_matter(meta, "body\n")
        block, body = split_front_matter(text)
        assert parse_meta(block) == meta
        assert body == "body\n"

    def test_empty_block(self):
        block, body = split_front_matter("---\n---\n# Hi\nHello")
        assert parse_meta(block) == {}
        assert body == "# Hi\nHello"


class TestMetaValues:
    def test_meta_str_ignores_arrays(self):
        assert meta_str({"title": ["a"]}, "title") is None
        assert meta_str({"title": {"a": 1}}, "title") is None
        assert meta_str({"draft": 5}, "draft") == "5"
        assert meta_str({"draft": False}, "draft") == "false"
        assert meta_str({"title": "  "}, "title") is None
        assert meta_str({"title": " T "}, "title") == "T"

    def test_meta_list_splits_scalars(self):
        assert meta_list({"tags": "a, b"}, "tags") == ["a", "b"]
        assert meta_list({"tags": ["a", " ", "b"]}, "tags") == ["a", "b"]
        assert meta_list({}, "tags") == []

    def test_merge_files(self):
        meta = {"files": ["b.png", "a.png"]}
        assert merge_files(meta, ["c.png", "a.png", "img/"]) == ["a.png", "b.png", "c.png"]
        assert meta["files"] == ["a.png", "b.png", "c.png"]

    def test_merge_files_splits_a_scalar(self):
        meta = {"files": "b.png, a.png"}
        assert merge_files(meta, []) == ["a.png", "b.png"]
        assert meta["files"] == ["a.png", "b.png"]


class TestPaths:
    def test_slugify(self):
        assert slugify("Hello, World!") == "hello-world"
        assert slugify("!!!") == "post"

    def test_ancestors_exclude_root(self):
        assert ancestors("a/b/c") == ["a/b/c", "a/b", "a"]
        assert ancestors("") == []

    def test_auto_page_matches_with_leading_slash(self):
        assert is_auto_page("about", ["/about"])
        assert is_auto_page("about", ["about/"])
        assert is_auto_page("", ["/"])
        assert not is_auto_page("", ["about"])
        assert not is_auto_page("about/team", ["about"])


class TestExcerpt:
    def test_cuts_at_blank_line_after_short_size(self):
        head = "para1\n\npara2\n\n" + "x" * 210
        body = head + "\n\nmore\n```code\n...\n```"
        result = excerpt(body, 200)
        assert result == head
        assert "```" not in result

    def test_cut_marker_wins(self):
        body = "intro\n<!--more-->\n" + "x" * 500 + "\n\nrest"
        assert excerpt(body, 200) == "intro\n"

    def test_earlier_fence_wins(self):
        body = "intro\n\n```\ncode\n```\n" + "x" * 300 + "\n\nrest"
        assert excerpt(body, 200) == "intro\n\n"

    def test_earlier_indented_code_wins(self):
        body = "intro\n\n    code\n\n" + "x" * 300 + "\n\nrest"
        assert excerpt(body, 200) == "intro\n\n"

    def test_short_body_is_kept(self):
        assert excerpt("short text", 200) == "short text"
