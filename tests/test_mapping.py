"""Tests for the ``mapping`` module."""

import errno
import os
from pathlib import Path

import pytest

from mkimg.base import PathOperationError, TraversalError, ValidationError
from mkimg.mapping import (
    PathMapping,
    canonicalize,
    create_mappings,
    mappings_from_pairs,
    pairs_from_flat,
    reroot_path,
)
from mkimg.progress import MappingVisited


def internal_paths(mappings):
    return [mapping.internal for mapping in mappings]


class TestCreateMappings:
    """Tests for ``create_mappings()``."""

    def test_exclude_root(self, source_tree):
        mappings = create_mappings(source_tree, exclude_root=True)
        assert internal_paths(mappings) == ["file1.txt", "sub", "sub/file2.bin"]
        assert mappings[0] == PathMapping(source_tree / "file1.txt", "file1.txt")
        assert mappings[2].external == source_tree / "sub" / "file2.bin"

    def test_include_root(self, source_tree):
        mappings = create_mappings(source_tree)
        assert internal_paths(mappings) == [
            "root",
            "root/file1.txt",
            "root/sub",
            "root/sub/file2.bin",
        ]

    @pytest.mark.parametrize("exclude_root", [False, True])
    def test_root_prefix(self, source_tree, exclude_root):
        """Test that internal paths start with the name of the root directory if
        and only if the root is not excluded.
        """
        for mapping in create_mappings(source_tree, exclude_root):
            assert mapping.internal
            assert not mapping.internal.startswith("/")
            assert (mapping.internal.split("/")[0] == "root") is not exclude_root

    def test_relative_root(self, source_tree, monkeypatch):
        monkeypatch.chdir(source_tree.parent)
        assert internal_paths(create_mappings("root", exclude_root=True)) == [
            "file1.txt",
            "sub",
            "sub/file2.bin",
        ]

    def test_progress(self, source_tree, events):
        create_mappings(source_tree, exclude_root=True, progress=events.append)
        assert events[0] == MappingVisited(
            source_tree.stat().st_size, os.fsdecode(source_tree), ""
        )
        assert events[1] == MappingVisited(
            2, os.fsdecode(source_tree / "file1.txt"), "file1.txt"
        )
        assert [event.internal for event in events[2:]] == ["sub", "sub/file2.bin"]
        assert events[-1].size == 2

    def test_empty_directory(self, tempdir):
        assert create_mappings(tempdir, exclude_root=True) == []
        assert internal_paths(create_mappings(tempdir)) == [tempdir.name]

    def test_fail_file(self, source_tree):
        with pytest.raises(ValidationError, match=".*must be a directory"):
            create_mappings(source_tree / "file1.txt")

    def test_fail_missing(self, tempdir):
        with pytest.raises(ValidationError):
            create_mappings(tempdir / "missing")

    def test_fail_unreadable_directory(self, source_tree, monkeypatch):
        """Test that a directory which cannot be listed aborts the scan."""
        unreadable = os.fspath(source_tree / "sub")
        scandir = os.scandir

        def failing_scandir(path="."):
            if os.fspath(path) == unreadable:
                raise PermissionError(errno.EACCES, "Permission denied", unreadable)
            return scandir(path)

        monkeypatch.setattr(os, "scandir", failing_scandir)
        with pytest.raises(TraversalError) as exc_info:
            create_mappings(source_tree)
        assert exc_info.value.filename == unreadable
        assert exc_info.value.errno == errno.EACCES
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_fail_broken_symlink(self, source_tree):
        """Test that a symbolic link pointing nowhere aborts the scan."""
        (source_tree / "dangling").symlink_to(source_tree / "nowhere")
        with pytest.raises(PathOperationError) as exc_info:
            create_mappings(source_tree)
        assert exc_info.value.operation == "canonicalize"

    def test_fail_escaping_symlink(self, source_tree, tempdir):
        """Test that a symbolic link resolving outside of the base directory aborts
        the scan.
        """
        outside = tempdir / "outside.txt"
        outside.write_bytes(b"x")
        (source_tree / "link").symlink_to(outside)
        with pytest.raises(PathOperationError) as exc_info:
            create_mappings(source_tree, exclude_root=True)
        assert exc_info.value.operation == "strip_prefix"


def test_canonicalize(source_tree, monkeypatch):
    monkeypatch.chdir(source_tree)
    assert canonicalize("sub/../file1.txt") == (source_tree / "file1.txt").resolve()


def test_canonicalize_fail(tempdir):
    with pytest.raises(PathOperationError) as exc_info:
        canonicalize(tempdir / "missing")
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


def test_reroot_path(source_tree):
    base = source_tree.resolve()
    assert reroot_path(base, source_tree) == ""
    assert reroot_path(base, source_tree / "sub" / "file2.bin") == "sub/file2.bin"
    assert reroot_path(base.parent, source_tree) == "root"


class TestMappingsFromPairs:
    """Tests for ``mappings_from_pairs()``."""

    def test_pairs(self, source_tree):
        file1 = source_tree / "file1.txt"
        file2 = source_tree / "sub" / "file2.bin"
        mappings = mappings_from_pairs([(file1, "a/b"), (os.fspath(file2), "a/c")])
        assert mappings == [PathMapping(file1, "a/b"), PathMapping(file2, "a/c")]

    @pytest.mark.parametrize(
        "internal, expected",
        [
            ("x/y.txt", "x/y.txt"),
            ("/x/y.txt", "x/y.txt"),
            ("x//y.txt/", "x/y.txt"),
            ("EFI\\boot\\a.efi", "EFI/boot/a.efi"),
        ],
    )
    def test_normalize(self, source_tree, internal, expected):
        (mapping,) = mappings_from_pairs([(source_tree / "file1.txt", internal)])
        assert mapping.internal == expected

    @pytest.mark.parametrize("internal", ["", "/", "//", "\\"])
    def test_fail_empty(self, source_tree, internal):
        with pytest.raises(ValidationError, match=".*must not be empty"):
            mappings_from_pairs([(source_tree / "file1.txt", internal)])

    @pytest.mark.parametrize("pair", [(), ("a",), ("a", "b", "c")])
    def test_fail_malformed(self, pair):
        with pytest.raises(ValidationError):
            mappings_from_pairs([pair])

    def test_fail_missing(self, tempdir):
        with pytest.raises(FileNotFoundError):
            mappings_from_pairs([(tempdir / "missing", "a")])


class TestPairsFromFlat:
    """Tests for ``pairs_from_flat()``."""

    def test_pairs(self):
        assert pairs_from_flat(["a", "x/a", "b", "x/b"]) == [
            ("a", "x/a"),
            ("b", "x/b"),
        ]

    def test_empty(self):
        assert pairs_from_flat([]) == []

    @pytest.mark.parametrize("values", [["a"], ["a", "b", "c"]])
    def test_fail_odd(self, values):
        with pytest.raises(ValidationError, match="Expected pairs.*"):
            pairs_from_flat(values)


def test_path_mapping_fields():
    mapping = PathMapping(Path("host.txt"), "image.txt")
    assert mapping.external == Path("host.txt")
    assert mapping.internal == "image.txt"
