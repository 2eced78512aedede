"""Human-readable listings of the contents of an image."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator, NamedTuple, Optional

from fs.errors import FSError

from .engine import EngineError, open_volume

if TYPE_CHECKING:
    from pyfatfs.PyFatFS import PyFatFS

    from .typing_ import StrPath

__all__ = [
    "ListingEntry",
    "MAX_DEPTH",
    "PREVIEW_LIMIT",
    "iter_listing",
    "format_listing",
    "examine",
    "preview",
]


log = logging.getLogger(__name__)


MAX_DEPTH = 5
PREVIEW_LIMIT = 200_000  # bytes
PRINTABLE_CONTROL = frozenset(b"\n\r\t")
SPECIAL_NAMES = (".", "..")


class ListingEntry(NamedTuple):
    """Directory entry found while walking an image.

    ``depth`` is 0 for entries of the root directory. ``parent`` is the name of
    the directory containing the entry (empty for the root directory).
    ``preview`` is ``None`` for directories, for files larger than
    ``PREVIEW_LIMIT`` and for files which could not be read.
    """

    depth: int
    parent: str
    name: str
    size: int
    is_dir: bool
    preview: Optional[str]


def _descends(entry: ListingEntry) -> bool:
    """Whether the listing continues with the contents of ``entry``."""
    return (
        entry.is_dir and entry.name not in SPECIAL_NAMES and entry.depth < MAX_DEPTH
    )


def _is_printable(content: bytes) -> bool:
    return all(0x20 <= b < 0x7F or b in PRINTABLE_CONTROL for b in content)


def preview(content: bytes) -> str:
    """Describe ``content`` as text if it consists of printable ASCII only."""
    if _is_printable(content):
        return content.decode("ascii")
    return f"{len(content)} bytes of binary data"


def _read_preview(filesystem: PyFatFS, path: str, size: int) -> str | None:
    if size > PREVIEW_LIMIT:
        return None
    try:
        content = filesystem.readbytes(path)
    except (FSError, OSError, EngineError) as e:
        log.debug(f"Could not read {path!r} for preview: {e}")
        return None
    return preview(content)


def _walk(
    filesystem: PyFatFS, path: str, parent: str, depth: int
) -> Iterator[ListingEntry]:
    for info in filesystem.scandir(path, namespaces=["details"]):
        name = info.name
        child = f"{path.rstrip('/')}/{name}"
        if info.is_dir:
            entry = ListingEntry(depth, parent, name, 0, True, None)
            yield entry
            if _descends(entry):
                yield from _walk(filesystem, child, name, depth + 1)
        else:
            size = info.size
            content = _read_preview(filesystem, child, size)
            yield ListingEntry(depth, parent, name, size, False, content)


def iter_listing(filesystem: PyFatFS) -> Iterator[ListingEntry]:
    """Walk the open volume ``filesystem`` recursively, root directory first.

    Subdirectories are descended into up to ``MAX_DEPTH`` levels below the root
    directory.
    """
    yield from _walk(filesystem, "/", "", 0)


def format_listing(entries: Iterable[ListingEntry]) -> Iterator[str]:
    """Render ``entries`` as produced by ``iter_listing()`` line by line."""
    for entry in entries:
        tag = "(DIR)" if entry.is_dir else "(FILE)"
        if entry.depth == 0:
            line_indent = ""
        else:
            line_indent = "  " * (entry.depth + 1) + "  "
        yield f"{line_indent}{entry.name} {entry.size} bytes {tag}"
        if entry.preview is not None:
            yield f"{line_indent}  Content: {entry.preview!r}"
        if _descends(entry):
            yield f"{'  ' * (entry.depth + 2)}Contents of {entry.name}:"


def examine(image: StrPath) -> list[str]:
    """Return a listing of the contents of ``image``, including the contents of
    small text files.
    """
    with open_volume(image) as filesystem:
        return list(format_listing(iter_listing(filesystem)))
