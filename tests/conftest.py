"""Fixtures used across the test suite."""

import os
from pathlib import Path
from shutil import rmtree
from tempfile import mkdtemp, mkstemp

import pytest


@pytest.fixture
def tempdir():
    """Empty temporary directory, removed with its contents afterwards."""
    path = Path(mkdtemp(prefix="mkimg-"))
    yield path
    rmtree(path)


@pytest.fixture
def tempfile():
    """Empty temporary file, used as a stand-in image."""
    fd, name = mkstemp(suffix=".img")
    os.close(fd)
    path = Path(name)
    yield path
    path.unlink(missing_ok=True)


@pytest.fixture
def source_tree(tempdir):
    """Fixture providing a small directory tree to place in an image::

        root/
            file1.txt     "hi"
            sub/
                file2.bin b"\\x00\\x01"

    Returns a ``pathlib.Path`` object representing the path of ``root``.
    """
    root = tempdir / "root"
    (root / "sub").mkdir(parents=True)
    (root / "file1.txt").write_bytes(b"hi")
    (root / "sub" / "file2.bin").write_bytes(b"\x00\x01")
    return root


@pytest.fixture
def events():
    """Fixture providing a list which collects progress events.

    The list's ``append`` method is passed as ``progress`` callback.
    """
    return []
