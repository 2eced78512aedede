"""Builders for synthetic reserved-region sectors."""

import struct
from typing import Dict, Optional

from mkimg.base import SECTOR_SIZE


def boot_sector_bytes(
    total_sectors: int, *, fat_32: bool = True, backup_sector: int = 6
) -> bytes:
    """Return a minimal boot sector claiming ``total_sectors`` sectors."""
    sector = bytearray(SECTOR_SIZE)
    sector[0:3] = b"\xEB\x58\x90"
    sector[3:11] = b"MKIMGTST"
    struct.pack_into("<HBHB", sector, 0x0B, SECTOR_SIZE, 1, 32, 2)
    struct.pack_into("<B", sector, 0x15, 0xF8)
    if fat_32:
        struct.pack_into(
            "<IIHHIHH", sector, 0x20, total_sectors, 1009, 0, 0, 2, 1, backup_sector
        )
    else:
        struct.pack_into("<HH", sector, 0x11, 512, 0)
        struct.pack_into("<H", sector, 0x16, 48)
        struct.pack_into("<I", sector, 0x20, total_sectors)
    sector[510:512] = b"\x55\xAA"
    return bytes(sector)


def fsinfo_bytes(free_clusters: int) -> bytes:
    """Return an FS information sector reporting ``free_clusters`` free clusters."""
    sector = bytearray(SECTOR_SIZE)
    sector[0:4] = b"RRaA"
    sector[484:488] = b"rrAa"
    struct.pack_into("<II", sector, 0x1E8, free_clusters, 3)
    sector[508:512] = b"\x00\x00\x55\xAA"
    return bytes(sector)


def image_bytes(
    total_sectors: int,
    free_clusters: int = 1000,
    *,
    fs_info: bool = True,
    backup_sector: int = 6,
    data: Optional[Dict[int, bytes]] = None,
    length: int = 1024 * 1024,
) -> bytes:
    """Return a synthetic FAT32 image of ``length`` bytes.

    The boot and FS information sectors are duplicated at ``backup_sector``.
    ``data`` maps offsets to bytes written into the image.
    """
    image = bytearray(length)
    boot = boot_sector_bytes(total_sectors, backup_sector=backup_sector)
    info = fsinfo_bytes(free_clusters) if fs_info else bytes(SECTOR_SIZE)
    image[0:SECTOR_SIZE] = boot
    image[SECTOR_SIZE : 2 * SECTOR_SIZE] = info
    if backup_sector not in (0, 0xFFFF):
        start = backup_sector * SECTOR_SIZE
        image[start : start + SECTOR_SIZE] = boot
        image[start + SECTOR_SIZE : start + 2 * SECTOR_SIZE] = info
    for offset, content in (data or {}).items():
        image[offset : offset + len(content)] = content
    return bytes(image)
