"""Progress events emitted by the image operations.

Operations never print. Instead, they accept an optional ``progress`` callback
which is called with one of the events below whenever something noteworthy
happens; it is up to the caller to display, collect or ignore them.
"""

from __future__ import annotations

from typing import Callable, NamedTuple, Optional, Union

from typing_extensions import TypeAlias

__all__ = [
    "MappingVisited",
    "DirectoryCreated",
    "FileWritten",
    "HeaderInflated",
    "ImageShrunk",
    "DeceptionApplied",
    "ProgressEvent",
    "ProgressCallback",
    "emit",
]


class MappingVisited(NamedTuple):
    """An entry of a directory tree was visited while creating mappings."""

    size: int
    external: str
    internal: str


class DirectoryCreated(NamedTuple):
    """A directory was created inside the volume."""

    path: str


class FileWritten(NamedTuple):
    """A file was created inside the volume and filled with ``size`` bytes."""

    path: str
    size: int


class HeaderInflated(NamedTuple):
    """The size-reporting fields of a volume were rewritten.

    ``original_free`` and ``declared_free`` are ``None`` if the volume has no FS
    information sector.
    """

    original_sectors: int
    declared_sectors: int
    original_free: Optional[int]
    declared_free: Optional[int]


class ImageShrunk(NamedTuple):
    """The backing file of a volume was truncated to ``length`` bytes."""

    length: int


class DeceptionApplied(NamedTuple):
    """A deceptive image was completed."""

    path: str
    declared_size: int
    actual_size: int


ProgressEvent: TypeAlias = Union[
    MappingVisited,
    DirectoryCreated,
    FileWritten,
    HeaderInflated,
    ImageShrunk,
    DeceptionApplied,
]
ProgressCallback: TypeAlias = Callable[[ProgressEvent], None]


def emit(progress: ProgressCallback | None, event: ProgressEvent) -> None:
    """Pass ``event`` to ``progress`` unless no callback was given."""
    if progress is not None:
        progress(event)
