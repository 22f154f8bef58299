"""Unit tests for the local file index, ignore rules and same-content checks."""

import hashlib
import json
import os
import time

import pytest

from shopctl.exceptions import FileOperationError
from shopctl.sync.compare import canonical_json, compact_json_size, is_asset_same, is_same
from shopctl.sync.files import (
    LocalFileIndex,
    glob_to_regex,
    md5_file,
    read_file,
    save_file,
)


class TestGlobToRegex:
    """Test cases for ignore pattern translation."""

    @pytest.mark.parametrize("pattern,path,expected", [
        ("*.map", "assets/theme.js.map", True),
        ("*.map", "assets/theme.js", False),
        ("config/settings_data.json", "config/settings_data.json", True),
        ("config/settings_data.json", "x/config/settings_data.json", False),
        ("settings_data.json", "config/settings_data.json", True),
        ("/assets", "assets/logo.png", True),
        ("/assets", "theme/assets/logo.png", False),
        ("assets/*.png", "assets/logo.png", True),
        ("assets/*.png", "assets/img/logo.png", False),
        ("assets/**/*.png", "assets/img/logo.png", True),
        ("assets/**/*.png", "assets/logo.png", True),
        ("locales/??.json", "locales/en.json", True),
        ("locales/??.json", "locales/en-US.json", False),
    ])
    def test_matching(self, pattern, path, expected):
        assert bool(glob_to_regex(pattern).search(path)) is expected


class TestLocalFileIndex:
    """Test cases for LocalFileIndex."""

    @pytest.fixture
    def tree(self, tmp_path):
        for relative in [
            "assets/theme.css",
            "assets/theme.js.map",
            "layout/theme.liquid",
            "config/settings_data.json",
            "notes.txt",
        ]:
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")
        (tmp_path / ".shopifyignore").write_text("# comment\n\n*.map\nconfig/settings_data.json\n")
        return tmp_path

    def test_list_files_applies_ignore_rules(self, tree):
        index = LocalFileIndex()

        assert index.list_files(tree, ["assets", "layout", "config"]) == {"assets/theme.css", "layout/theme.liquid"}

    def test_list_whole_tree(self, tree):
        files = LocalFileIndex().list_files(tree)

        assert "notes.txt" in files
        assert ".shopifyignore" not in files

    def test_missing_sub_dir(self, tree):
        assert LocalFileIndex().list_files(tree, ["snippets"]) == set()

    def test_suffix_filter(self, tree):
        assert LocalFileIndex().list_files(tree, suffix=".liquid") == {"layout/theme.liquid"}

    def test_is_ignored_with_absolute_path(self, tree):
        index = LocalFileIndex()

        assert index.is_ignored(tree, tree / "assets" / "theme.js.map") is True
        assert index.is_ignored(tree, "assets/theme.css") is False

    def test_rules_are_cached_until_cleared(self, tree):
        index = LocalFileIndex()
        index.list_files(tree)
        (tree / ".shopifyignore").write_text("*.css\n")

        assert index.is_ignored(tree, "assets/theme.css") is False
        index.clear()
        assert index.is_ignored(tree, "assets/theme.css") is True

    def test_no_ignore_file(self, tmp_path):
        assert LocalFileIndex().ignore_rules(tmp_path) == []


class TestFileHelpers:
    """Test cases for reading and writing files."""

    def test_text_files_are_read_as_str(self, tmp_path):
        save_file(tmp_path / "a" / "b.liquid", "{{ x }}")

        assert read_file(tmp_path / "a" / "b.liquid") == "{{ x }}"

    def test_binary_files_are_read_as_bytes(self, tmp_path):
        save_file(tmp_path / "logo.png", b"\x89PNG")

        assert read_file(tmp_path / "logo.png") == b"\x89PNG"

    def test_missing_files(self, tmp_path):
        assert read_file(tmp_path / "missing.css") is None
        assert md5_file(tmp_path / "missing.css") is None

    def test_newlines_are_preserved(self, tmp_path):
        save_file(tmp_path / "a.txt", "one\r\ntwo\n")

        assert (tmp_path / "a.txt").read_bytes() == b"one\r\ntwo\n"

    def test_write_failure(self, tmp_path):
        (tmp_path / "blocker").write_text("file, not a directory")

        with pytest.raises(FileOperationError):
            save_file(tmp_path / "blocker" / "a.txt", "x")


class TestIsAssetSame:
    """Test cases for the same-content predicate."""

    def test_missing_file(self, tmp_path):
        assert is_asset_same(tmp_path / "missing.css", checksum="abc", size=3) is False

    def test_checksum_match_wins(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_text("body{}")
        checksum = hashlib.md5(b"body{}").hexdigest()

        # size and update time disagree, the checksum still decides
        assert is_asset_same(path, checksum=checksum, updated_at="2999-01-01T00:00:00Z", size=999) is True

    def test_without_checksum_or_size(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_text("body{}")

        assert is_asset_same(path) is False

    def test_size_mismatch(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_text("body{}")

        assert is_asset_same(path, checksum="other", size=100) is False

    def test_size_match_without_time(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_text("body{}")

        assert is_asset_same(path, checksum="other", size=6) is True

    def test_stale_local_file(self, tmp_path):
        path = tmp_path / "a.css"
        path.write_text("body{}")
        old = time.time() - 3600
        os.utime(path, (old, old))

        assert is_asset_same(path, size=6, updated_at="2999-01-01T00:00:00Z") is False
        assert is_asset_same(path, size=6, updated_at="2000-01-01T00:00:00Z") is True

    def test_json_is_measured_compact(self, tmp_path):
        path = tmp_path / "settings_data.json"
        value = {"current": {"url": "/collections/all"}}
        path.write_text(canonical_json(value))
        compact = json.dumps(value, separators=(",", ":")).replace("/", "\\/")

        assert is_asset_same(path, size=len(compact)) is True


class TestCanonicalJson:
    """Test cases for canonical JSON."""

    def test_sorted_and_slash_escaped(self):
        assert canonical_json({"b": "/x", "a": 1}) == '{\n  "a": 1,\n  "b": "\\/x"\n}'

    def test_compact_size_of_invalid_json(self):
        assert compact_json_size("{") is None

    def test_is_same_ignores_attributes(self):
        left = {"id": 1, "title": "About", "updated_at": "x"}
        right = {"id": 2, "title": "About", "updated_at": "y"}

        assert is_same(left, right, ["id", "updated_at"]) is True
        assert is_same(left, right, ["id"]) is False
