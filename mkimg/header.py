"""Views of the size-reporting structures in the reserved region of a FAT volume.

Only the fields relevant for reporting the size of a volume are broken out; all
other bytes are carried along unchanged, so that parsing a sector and packing it
again yields the original sector.
"""

from __future__ import annotations

from dataclasses import dataclass

from typing_extensions import Annotated

from .base import SECTOR_SIZE, ValidationError
from .bytestruct import ByteStruct

__all__ = [
    "BootSector",
    "FsInfo",
    "BOOT_SECTOR",
    "FS_INFO_SECTOR",
    "FS_INFO_SIGNATURE_1",
    "FS_INFO_UNKNOWN",
    "SECTOR_NUMBERS_UNUSED",
    "TOTAL_SECTORS_OFFSET",
    "FREE_CLUSTERS_OFFSET",
]


BOOT_SECTOR = 0
FS_INFO_SECTOR = 1
SECTOR_NUMBERS_UNUSED = (0, 0xFFFF)

TOTAL_SECTORS_OFFSET = 0x20
FREE_CLUSTERS_OFFSET = 0x1E8

FS_INFO_SIGNATURE_1 = b"RRaA"
FS_INFO_UNKNOWN = 0xFFFFFFFF


@dataclass(frozen=True)
class BootSector(ByteStruct):
    """First sector of a FAT volume.

    ``total_sectors`` is the 32-bit total sector count at offset 0x20. The FAT32
    specific fields ``fs_info_sector`` and ``backup_sector`` are only meaningful
    for FAT32 volumes; on FAT12/16 volumes these bytes belong to the extended
    BIOS parameter block and must not be interpreted.
    """

    start: Annotated[bytes, 11]  # jump instruction, OEM name
    lss: Annotated[int, 2]
    cluster_size: Annotated[int, 1]
    reserved_size: Annotated[int, 2]
    fat_count: Annotated[int, 1]
    rootdir_entries: Annotated[int, 2]
    total_sectors_16: Annotated[int, 2]
    media_type: Annotated[int, 1]
    fat_size_16: Annotated[int, 2]
    geometry: Annotated[bytes, 8]  # sectors per track, heads, hidden sectors
    total_sectors: Annotated[int, 4]
    fat_size_32: Annotated[int, 4]
    flags_and_version: Annotated[bytes, 4]
    rootdir_cluster: Annotated[int, 4]
    fs_info_sector: Annotated[int, 2]
    backup_sector: Annotated[int, 2]
    rest: Annotated[bytes, 460]

    def validate(self) -> None:
        if self.lss != SECTOR_SIZE:
            raise ValidationError(
                f"Unsupported logical sector size {self.lss}, expected {SECTOR_SIZE}"
            )

    @property
    def fat_32(self) -> bool:
        """Whether the sector describes a FAT32 volume.

        FAT32 volumes have neither a fixed root directory nor a 16-bit FAT size.
        """
        return self.rootdir_entries == 0 and self.fat_size_16 == 0

    @property
    def backup_available(self) -> bool:
        return self.fat_32 and self.backup_sector not in SECTOR_NUMBERS_UNUSED


@dataclass(frozen=True)
class FsInfo(ByteStruct):
    """FS information sector (FAT32 only)."""

    signature_1: Annotated[bytes, 4]
    reserved_1: Annotated[bytes, 480]
    signature_2: Annotated[bytes, 4]
    free_clusters: Annotated[int, 4]
    last_allocated_cluster: Annotated[int, 4]
    reserved_2: Annotated[bytes, 12]
    signature_3: Annotated[bytes, 4]

    def validate(self) -> None:
        if self.signature_1 != FS_INFO_SIGNATURE_1:
            raise ValidationError(
                f"Invalid first FS information sector signature {self.signature_1!r}"
            )

    @staticmethod
    def present(sector: bytes) -> bool:
        """Check whether ``sector`` carries the leading FS information sector
        signature.
        """
        return sector[:4] == FS_INFO_SIGNATURE_1

    @property
    def free_clusters_known(self) -> bool:
        return self.free_clusters != FS_INFO_UNKNOWN
