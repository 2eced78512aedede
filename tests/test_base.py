"""Tests for the ``base`` module."""

import errno
import os

import pytest

from mkimg.base import (
    InvalidPathError,
    MkimgError,
    PathOperationError,
    TraversalError,
    ValidationError,
    VolumeError,
    path_to_str,
    round_up,
)


@pytest.mark.parametrize(
    "value, multiple, expected",
    [
        (0, 512, 0),
        (1, 512, 512),
        (511, 512, 512),
        (512, 512, 512),
        (513, 512, 1024),
        (524289, 512, 524800),
        (7, 1, 7),
    ],
)
def test_round_up(value, multiple, expected):
    assert round_up(value, multiple) == expected


@pytest.mark.parametrize("multiple", [0, -1, -512])
def test_round_up_fail(multiple):
    """Test ``round_up()`` against parameters ``multiple`` which are expected to
    fail.
    """
    with pytest.raises(ValueError):
        round_up(1, multiple)


@pytest.mark.parametrize("path", ["a/b.txt", "EFI/boot/bootx64.efi", "Ünïcödé"])
def test_path_to_str(path):
    assert path_to_str(path) == path


def test_path_to_str_pathlike(tempdir):
    assert path_to_str(tempdir) == os.fspath(tempdir)


def test_path_to_str_fail():
    """Test that paths carrying undecodable bytes are rejected."""
    path = os.fsdecode(b"bad\xff")
    with pytest.raises(InvalidPathError) as exc_info:
        path_to_str(path)
    assert exc_info.value.path == path
    assert "invalid UTF-8" in exc_info.value.message


@pytest.mark.parametrize(
    "exception, builtin",
    [
        (ValidationError("x"), ValueError),
        (InvalidPathError("x", "y"), ValueError),
        (PathOperationError("canonicalize", "x", "y"), OSError),
        (VolumeError("x.img", "y"), OSError),
    ],
)
def test_hierarchy(exception, builtin):
    """Test that errors can be caught both as ``MkimgError`` and as the built-in
    exception they represent.
    """
    assert isinstance(exception, MkimgError)
    assert isinstance(exception, builtin)


def test_path_operation_error():
    reason = FileNotFoundError(errno.ENOENT, "No such file or directory")
    e = PathOperationError("canonicalize", "missing", reason)
    assert e.operation == "canonicalize"
    assert e.path == "missing"
    assert e.errno == errno.ENOENT
    assert "canonicalize" in str(e)
    assert "'missing'" in str(e)


def test_traversal_error():
    cause = PermissionError(errno.EACCES, "Permission denied", "/secret")
    e = TraversalError(cause)
    assert isinstance(e, MkimgError)
    assert isinstance(e, OSError)
    assert e.errno == errno.EACCES
    assert e.filename == "/secret"
