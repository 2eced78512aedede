"""Misreporting the size of a FAT volume.

A deceptive image claims more sectors and more free clusters in its header than
it has, while its backing file is cut down to the part actually holding data.
Readers trusting the header without comparing it against the length of the file
perceive a larger, emptier volume.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import TYPE_CHECKING, BinaryIO, NamedTuple

from .base import KIB, SECTOR_SIZE, ValidationError, round_up
from .header import BOOT_SECTOR, FS_INFO_SECTOR, BootSector, FsInfo
from .progress import HeaderInflated, ImageShrunk, emit

if TYPE_CHECKING:
    from .progress import ProgressCallback
    from .typing_ import StrPath

__all__ = [
    "SHRINK_FLOOR",
    "inflate_boot_sector",
    "inflate_fsinfo",
    "shrunk_length",
    "apply_size_deception",
    "shrink_after_deception",
    "deceive",
]


log = logging.getLogger(__name__)


SHRINK_FLOOR = 512 * KIB
MAX_SECTORS = 0xFFFFFFFF
MAX_FREE_CLUSTERS = 0xFFFFFFFE  # one below the "unknown" value


class _Patch(NamedTuple):
    """Sectors to overwrite (sector number mapped to contents)."""

    sectors: dict[int, bytes]
    inflated: HeaderInflated


def inflate_boot_sector(sector: bytes) -> bytes:
    """Return ``sector`` with its total sector count raised by half."""
    boot_sector = BootSector.from_bytes(sector)
    original = boot_sector.total_sectors
    declared = min(original + original // 2, MAX_SECTORS)
    return bytes(replace(boot_sector, total_sectors=declared))


def inflate_fsinfo(sector: bytes) -> bytes | None:
    """Return ``sector`` with its free cluster count tripled.

    Returns ``None`` if ``sector`` is no FS information sector. An unknown free
    cluster count stays unknown.
    """
    if not FsInfo.present(sector):
        return None
    fs_info = FsInfo.from_bytes(sector)
    if not fs_info.free_clusters_known:
        return bytes(fs_info)
    declared = min(fs_info.free_clusters * 3, MAX_FREE_CLUSTERS)
    return bytes(replace(fs_info, free_clusters=declared))


def shrunk_length(content: bytes, floor: int = SHRINK_FLOOR) -> int:
    """Return the smallest length, in whole sectors and not below ``floor``, which
    still covers every non-zero byte of ``content`` at or beyond ``floor``.
    """
    end = len(content.rstrip(b"\x00"))
    if end > floor:
        return round_up(end, SECTOR_SIZE)
    return floor


def _sector(content: bytes, index: int) -> bytes:
    start = index * SECTOR_SIZE
    sector = content[start : start + SECTOR_SIZE]
    if len(sector) != SECTOR_SIZE:
        raise ValidationError(f"Image too small to contain sector {index}")
    return sector


def _plan_patch(content: bytes) -> _Patch:
    """Compute the inflated header sectors of the volume in ``content``."""
    boot_bytes = _sector(content, BOOT_SECTOR)
    fs_info_bytes = _sector(content, FS_INFO_SECTOR)
    boot_sector = BootSector.from_bytes(boot_bytes)

    inflated_boot = inflate_boot_sector(boot_bytes)
    sectors = {BOOT_SECTOR: inflated_boot}
    original_free = declared_free = None

    inflated_fs_info = inflate_fsinfo(fs_info_bytes)
    if inflated_fs_info is not None:
        sectors[FS_INFO_SECTOR] = inflated_fs_info
        original_free = FsInfo.from_bytes(fs_info_bytes).free_clusters
        declared_free = FsInfo.from_bytes(inflated_fs_info).free_clusters
    else:
        log.debug("No FS information sector found, leaving free cluster count")

    # Keep backup copies consistent with the primary ones.
    if boot_sector.backup_available:
        backup = boot_sector.backup_sector
        if _sector(content, backup) == boot_bytes:
            sectors[backup] = inflated_boot
        if (
            inflated_fs_info is not None
            and _sector(content, backup + FS_INFO_SECTOR) == fs_info_bytes
        ):
            sectors[backup + FS_INFO_SECTOR] = inflated_fs_info

    inflated = HeaderInflated(
        boot_sector.total_sectors,
        BootSector.from_bytes(inflated_boot).total_sectors,
        original_free,
        declared_free,
    )
    return _Patch(sectors, inflated)


def _write_sectors(file: BinaryIO, sectors: dict[int, bytes]) -> None:
    for index, sector in sorted(sectors.items()):
        file.seek(index * SECTOR_SIZE)
        file.write(sector)


def apply_size_deception(
    image: StrPath, *, progress: ProgressCallback | None = None
) -> HeaderInflated:
    """Inflate the size-reporting fields in the header of the volume in
    ``image``.
    """
    with open(image, "r+b") as file:
        content = file.read()
        patch = _plan_patch(content)
        _write_sectors(file, patch.sectors)
        file.flush()
    log.info("Applied size deception - image now claims to be 1.5x its actual size")
    emit(progress, patch.inflated)
    return patch.inflated


def shrink_after_deception(
    image: StrPath, *, progress: ProgressCallback | None = None
) -> int:
    """Truncate ``image`` to the part actually holding data.

    Returns the new length of ``image`` in bytes.
    """
    with open(image, "r+b") as file:
        length = shrunk_length(file.read())
        file.truncate(length)
    log.info(f"Shrunk {os.fsdecode(image)!r} to {length} bytes")
    emit(progress, ImageShrunk(length))
    return length


def deceive(
    image: StrPath, *, progress: ProgressCallback | None = None
) -> tuple[HeaderInflated, int]:
    """Inflate the header of the volume in ``image`` and shrink ``image``.

    Both steps are computed from a single read of ``image`` before anything is
    written, so that a failure while reading or planning leaves ``image``
    untouched.

    Returns the ``HeaderInflated`` event and the new length of ``image``.
    """
    with open(image, "r+b") as file:
        content = file.read()
        patch = _plan_patch(content)
        length = shrunk_length(content)
        _write_sectors(file, patch.sectors)
        file.truncate(length)
        file.flush()
        os.fsync(file.fileno())

    log.info(
        f"Deceived {os.fsdecode(image)!r}: claims {patch.inflated.declared_sectors} "
        f"sectors, occupies {length} bytes"
    )
    emit(progress, patch.inflated)
    emit(progress, ImageShrunk(length))
    return patch.inflated, length
