"""Placement plans mapping host files to paths inside an image.

A plan is a list of ``PathMapping`` objects. It can either be derived from a
directory tree on the host (``create_mappings()``) or be given explicitly as
pairs of host path and image path (``mappings_from_pairs()``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Iterable, Iterator, NamedTuple, Sequence

from .base import (
    PathOperationError,
    TraversalError,
    ValidationError,
    path_to_str,
)
from .progress import MappingVisited, emit

if TYPE_CHECKING:
    from .progress import ProgressCallback
    from .typing_ import StrPath

__all__ = [
    "PathMapping",
    "create_mappings",
    "mappings_from_pairs",
    "pairs_from_flat",
    "canonicalize",
    "reroot_path",
]


log = logging.getLogger(__name__)


class PathMapping(NamedTuple):
    """Item to place in an image.

    - ``external``: Path of an existing file or directory on the host.
    - ``internal``: Slash-separated path relative to the image root at which the
      item appears inside the image. Never empty.
    """

    external: Path
    internal: str


def canonicalize(path: StrPath) -> Path:
    """Return the absolute path of ``path`` with all symbolic links resolved.

    Raises ``PathOperationError`` if ``path`` does not exist or cannot be
    resolved, e.g. because it is a broken symbolic link.
    """
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise PathOperationError("canonicalize", path, e) from e


def reroot_path(base: Path, target: StrPath) -> str:
    """Return the canonical form of ``target`` relative to ``base`` as a
    slash-separated ``str``.

    ``base`` must already be canonical. Returns an empty ``str`` if ``target``
    is ``base`` itself.
    """
    canonical = canonicalize(target)
    try:
        relative = canonical.relative_to(base)
    except ValueError as e:
        raise PathOperationError("strip_prefix", canonical, e) from e
    if relative == Path("."):
        return ""
    return path_to_str(PurePosixPath(*relative.parts))


def _walk(root: Path) -> Iterator[Path]:
    """Yield ``root`` and every entry below it, parents before children.

    Entries of a directory are yielded sorted by name.
    """

    def onerror(error: OSError) -> None:
        raise TraversalError(error) from error

    yield root
    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        dirnames.sort()
        for name in sorted(dirnames + filenames):
            yield Path(dirpath, name)


def create_mappings(
    root: StrPath,
    exclude_root: bool = False,
    *,
    progress: ProgressCallback | None = None,
) -> list[PathMapping]:
    """Scan the directory tree at ``root`` and create a mapping for each entry.

    :param root: Directory to scan.
    :param exclude_root: If ``True``, the contents of ``root`` are placed directly
        in the image root. If ``False``, ``root`` itself becomes the single
        top-level directory of the image.
    :param progress: Callback receiving a ``MappingVisited`` event per entry.
    """
    root = Path(root)
    if not root.is_dir():
        raise ValidationError(f"Root {os.fsdecode(root)!r} must be a directory")

    base = canonicalize(root)
    if not exclude_root:
        base = base.parent

    mappings = []
    for entry in _walk(root):
        internal = reroot_path(base, entry)
        size = entry.stat().st_size
        log.debug(f"{internal!r} {os.fsdecode(entry)!r} {size}")
        emit(progress, MappingVisited(size, os.fsdecode(entry), internal))
        if internal:
            mappings.append(PathMapping(entry, internal))
    return mappings


def _normalize_internal(internal: str) -> str:
    return "/".join(part for part in internal.replace("\\", "/").split("/") if part)


def mappings_from_pairs(pairs: Iterable[Sequence[StrPath]]) -> list[PathMapping]:
    """Create mappings from explicit pairs of (host path, path inside the image).

    Redundant slashes in the path inside the image are removed. Each host path
    must exist.
    """
    mappings = []
    for pair in pairs:
        if len(pair) != 2:
            raise ValidationError(
                f"Mapping must consist of a host path and an image path, got {pair!r}"
            )
        external, internal = Path(pair[0]), path_to_str(pair[1])
        internal = _normalize_internal(internal)
        if not internal:
            raise ValidationError(
                f"Image path for {os.fsdecode(external)!r} must not be empty"
            )
        if not external.exists():
            raise FileNotFoundError(
                f"Host path {os.fsdecode(external)!r} of mapping does not exist"
            )
        path_to_str(external)
        mappings.append(PathMapping(external, internal))
    return mappings


def pairs_from_flat(values: Sequence[str]) -> list[tuple[str, str]]:
    """Group a flat sequence ``[ext, int, ext, int, ...]`` into pairs."""
    if len(values) % 2:
        raise ValidationError(
            f"Expected pairs of host path and image path, got {len(values)} values"
        )
    return list(zip(values[::2], values[1::2]))
