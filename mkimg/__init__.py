"""Creation, inspection and extraction of FAT disk images.

Images are either plain or deceptive. A deceptive image reports a larger size in
its header than its backing file actually occupies.
"""

from .engine import FatType
from .extract import extract
from .inspector import examine
from .mapping import PathMapping, create_mappings, mappings_from_pairs
from .volume import create, create_deceptive, write_volume

__all__ = [
    "FatType",
    "PathMapping",
    "create",
    "create_deceptive",
    "create_mappings",
    "examine",
    "extract",
    "mappings_from_pairs",
    "write_volume",
]
