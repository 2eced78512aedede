"""Exception classes, constants and helper functions used across ``mkimg``."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .typing_ import StrPath

__all__ = [
    "MkimgError",
    "ValidationError",
    "InvalidPathError",
    "PathOperationError",
    "TraversalError",
    "VolumeError",
    "SECTOR_SIZE",
    "KIB",
    "MIB",
    "round_up",
    "path_to_str",
]


SECTOR_SIZE = 512
KIB = 1024
MIB = 1024 * KIB


class MkimgError(Exception):
    """Base class of all errors raised by ``mkimg`` itself.

    Every subclass also derives from the built-in exception that best describes
    it, so callers may catch either.
    """


class ValidationError(MkimgError, ValueError):
    """Exception raised if an argument -- for example the root of a directory tree
    or a list of explicit path pairs -- does not have the form required by the
    operation it is passed to.
    """


class InvalidPathError(MkimgError, ValueError):
    """Exception raised if a path cannot be represented as text."""

    def __init__(self, path: StrPath | bytes, message: str):
        super().__init__(f"Invalid path {os.fsdecode(path)!r}: {message}")
        self.path = path
        self.message = message


class PathOperationError(MkimgError, OSError):
    """Exception raised if an operation on a host path failed.

    ``operation`` names the failed operation (e.g. ``'canonicalize'``), ``path``
    is the offending path. The underlying exception is available as
    ``__cause__``.
    """

    def __init__(self, operation: str, path: StrPath, reason: object):
        super().__init__(
            f"Path {operation} failed for {os.fsdecode(path)!r}: {reason}"
        )
        self.errno = getattr(reason, "errno", None)
        self.operation = operation
        self.path = path


class TraversalError(MkimgError, OSError):
    """Exception raised if an entry of a directory tree could not be read while
    walking the tree.
    """

    def __init__(self, error: OSError):
        super().__init__(error.errno, f"Directory traversal error: {error}")
        self.filename = error.filename


class VolumeError(MkimgError, OSError):
    """Exception raised if an image does not hold a usable FAT volume, or if the
    FAT engine failed while formatting or accessing it.

    The exception raised by the engine is available as ``__cause__``.
    """

    def __init__(self, image: StrPath, reason: object):
        super().__init__(f"Invalid FAT volume {os.fsdecode(image)!r}: {reason}")
        self.errno = getattr(reason, "errno", None)
        self.image = image


def round_up(value: int, multiple: int) -> int:
    """Round ``value`` up to the next multiple of ``multiple``.

    ``multiple`` must be an ``int`` greater than zero.
    """
    if multiple <= 0:
        raise ValueError("Multiple must be greater than 0")
    return -(-value // multiple) * multiple


def path_to_str(path: StrPath) -> str:
    """Return ``path`` as a ``str`` which is guaranteed to be encodable as UTF-8.

    Paths containing bytes which could not be decoded by the file system encoding
    are represented by Python using surrogate escapes; these cannot be stored in a
    FAT directory entry, so ``InvalidPathError`` is raised for them.
    """
    text = os.fspath(path)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPathError(
            path, "path contains invalid UTF-8 characters"
        ) from e
    return text
