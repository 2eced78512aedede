"""Creation of FAT images from a placement plan.

An image is a regular file holding a single FAT volume which spans the whole
file. Its size and FAT type are given by an ``ImageProfile``.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, NamedTuple, Sequence

from .base import MIB, SECTOR_SIZE
from .deception import deceive
from .engine import FatType, format_volume, open_volume
from .progress import DeceptionApplied, DirectoryCreated, FileWritten, emit

if TYPE_CHECKING:
    from pyfatfs.PyFatFS import PyFatFS

    from .mapping import PathMapping
    from .progress import ProgressCallback
    from .typing_ import StrPath

__all__ = [
    "ImageProfile",
    "PLAIN_PROFILE",
    "DECEPTIVE_PROFILE",
    "write_volume",
    "create",
    "create_deceptive",
]


log = logging.getLogger(__name__)


class ImageProfile(NamedTuple):
    """Size of an image before any shrinking and type of the FAT it holds."""

    size: int
    fat_type: FatType


PLAIN_PROFILE = ImageProfile(6 * MIB, FatType.FAT_16)
# FAT32 requires at least 65525 clusters, which 32 MiB cannot hold with 512
# byte clusters once the FATs are accounted for.
DECEPTIVE_PROFILE = ImageProfile(64 * MIB, FatType.FAT_32)


def _allocate(image: StrPath, size: int) -> None:
    """Create ``image`` or discard its contents, then set its length to
    ``size`` bytes.
    """
    if size <= 0 or size % SECTOR_SIZE:
        raise ValueError(f"Image size must be a positive multiple of {SECTOR_SIZE}")

    flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
    fd = os.open(image, flags, 0o666)
    try:
        os.ftruncate(fd, 0)
        os.ftruncate(fd, size)
    finally:
        os.close(fd)


def _ensure_directory(
    filesystem: PyFatFS, path: str, progress: ProgressCallback | None
) -> None:
    """Open the directory at ``path``, creating it if it does not exist yet."""
    if filesystem.isdir(path):
        return
    filesystem.makedir(path)
    log.debug(f"Created directory {path!r}")
    emit(progress, DirectoryCreated(path))


def _place(
    filesystem: PyFatFS, mapping: PathMapping, progress: ProgressCallback | None
) -> None:
    *parents, filename = mapping.internal.split("/")

    # Directories are resolved from the root again for every file.
    current = ""
    for part in parents:
        if not part:
            continue
        current = f"{current}/{part}" if current else part
        _ensure_directory(filesystem, current, progress)

    if not filename:
        log.debug(f"Skipping mapping without file name {mapping.internal!r}")
        return

    content = mapping.external.read_bytes()
    path = f"{current}/{filename}" if current else filename
    with filesystem.openbin(path, "w") as file:
        file.write(content)
        file.flush()
    log.debug(f"Wrote {len(content)} bytes to {path!r}")
    emit(progress, FileWritten(path, len(content)))


def write_volume(
    image: StrPath,
    mappings: Sequence[PathMapping],
    profile: ImageProfile,
    *,
    progress: ProgressCallback | None = None,
) -> None:
    """Format ``image`` according to ``profile`` and copy the files of
    ``mappings`` into it.

    Mappings of host directories are skipped; the directories leading to a file
    are created as needed. The first error aborts the operation, leaving a
    partially populated volume behind.
    """
    _allocate(image, profile.size)
    format_volume(image, profile.fat_type, profile.size)

    with open_volume(image, readonly=False) as filesystem:
        for mapping in mappings:
            if mapping.external.is_dir():
                continue
            _place(filesystem, mapping, progress)
    log.info(f"Wrote {len(mappings)} mappings to {os.fsdecode(image)!r}")


def create(
    image: StrPath,
    mappings: Sequence[PathMapping],
    *,
    progress: ProgressCallback | None = None,
) -> None:
    """Create a plain FAT16 image."""
    write_volume(image, mappings, PLAIN_PROFILE, progress=progress)


def create_deceptive(
    image: StrPath,
    mappings: Sequence[PathMapping],
    *,
    progress: ProgressCallback | None = None,
) -> None:
    """Create a FAT32 image which reports a larger size than it occupies.

    The image is written like a plain one, then its header is inflated to claim
    1.5 times the sector count and 3 times the free clusters, and finally the
    backing file is shrunk to the part actually holding data.
    """
    write_volume(image, mappings, DECEPTIVE_PROFILE, progress=progress)
    inflated, length = deceive(image, progress=progress)
    emit(
        progress,
        DeceptionApplied(
            os.fsdecode(image), inflated.declared_sectors * SECTOR_SIZE, length
        ),
    )
