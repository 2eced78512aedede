"""Access to the FAT file system engine.

Encoding and decoding of FAT structures is left to ``pyfatfs``. This module is
the only place talking to it directly: it formats volumes of an explicitly
requested FAT type and opens them as PyFilesystem2 file systems.
"""

from __future__ import annotations

import errno
import logging
import os
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Iterator

from fs.errors import DirectoryExpected, FileExpected, ResourceNotFound
from pyfatfs._exceptions import PyFATException
from pyfatfs.PyFat import PyFat
from pyfatfs.PyFatFS import PyFatFS

from .base import VolumeError

if TYPE_CHECKING:
    from .typing_ import StrPath

__all__ = [
    "FatType",
    "format_volume",
    "open_volume",
    "engine_errors",
    "translate_errors",
    "EngineError",
]


log = logging.getLogger(__name__)


# Failures the engine reports outside of the PyFilesystem2 error hierarchy
EngineError = PyFATException


class FatType(Enum):
    """FAT file system type."""

    FAT_16 = 16
    FAT_32 = 32

    @property
    def engine_type(self) -> int:
        """Constant identifying the FAT type in ``pyfatfs``."""
        return {
            FatType.FAT_16: PyFat.FAT_TYPE_FAT16,
            FatType.FAT_32: PyFat.FAT_TYPE_FAT32,
        }[self]


def format_volume(image: StrPath, fat_type: FatType, size: int) -> None:
    """Create a new, empty file system of type ``fat_type`` spanning the first
    ``size`` bytes of the existing file ``image``.

    **Caution:** Any file system already residing in ``image`` is overwritten.
    """
    log.info(f"Formatting {os.fsdecode(image)!r} as {fat_type.name} ({size} bytes)")
    pf = PyFat()
    with engine_errors(image):
        try:
            pf.mkfs(os.fsdecode(image), fat_type=fat_type.engine_type, size=size)
        finally:
            # mkfs() leaves the image open once the file system is initialized
            if pf.initialized:
                pf.close()


@contextmanager
def open_volume(image: StrPath, *, readonly: bool = True) -> Iterator[PyFatFS]:
    """Open the FAT file system in ``image``.

    All pending metadata is written back to ``image`` when the context is left.
    Raises ``VolumeError`` if ``image`` holds no FAT volume the engine can read.
    """
    with engine_errors(image):
        filesystem = PyFatFS(os.fsdecode(image), read_only=readonly)
        try:
            yield filesystem
        finally:
            filesystem.close()


@contextmanager
def engine_errors(image: StrPath) -> Iterator[None]:
    """Re-raise failures reported by the engine itself as ``VolumeError``."""
    try:
        yield
    except EngineError as e:
        raise VolumeError(image, e) from e


@contextmanager
def translate_errors(path: str) -> Iterator[None]:
    """Re-raise lookup errors of the engine as ``OSError`` with the matching
    ``errno``, with ``path`` shown as a hint.
    """
    try:
        yield
    except ResourceNotFound as e:
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path) from e
    except DirectoryExpected as e:
        raise NotADirectoryError(
            errno.ENOTDIR, os.strerror(errno.ENOTDIR), path
        ) from e
    except FileExpected as e:
        raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path) from e
