"""Extraction of single files from an image."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from .base import ValidationError, path_to_str
from .engine import open_volume, translate_errors

if TYPE_CHECKING:
    from .typing_ import StrPath

__all__ = ["extract", "extract_to"]


log = logging.getLogger(__name__)


def extract(image: StrPath, target: StrPath) -> bytes:
    """Read the file at the slash-separated path ``target`` inside ``image``.

    The directory containing the file is resolved in a single lookup. Raises
    ``FileNotFoundError`` if any component of ``target`` does not exist,
    ``NotADirectoryError`` if a file is used as a directory and
    ``IsADirectoryError`` if ``target`` is a directory.
    """
    target = path_to_str(target)
    *parents, filename = [part for part in target.split("/") if part] or [""]
    if not filename:
        raise ValidationError("Path of the file to extract must not be empty")

    directory = "/".join(parents)
    with open_volume(image) as filesystem:
        with translate_errors(target):
            parent = filesystem.opendir(directory) if directory else filesystem
            content = parent.readbytes(filename)

    log.debug(f"Extracted {len(content)} bytes from {target!r}")
    return content


def extract_to(image: StrPath, target: StrPath, output: StrPath) -> int:
    """Extract the file at ``target`` inside ``image`` to the host path ``output``.

    Returns the number of bytes written.
    """
    content = extract(image, target)
    Path(output).write_bytes(content)
    log.info(f"Extracted {target!r} to {os.fsdecode(output)!r}")
    return len(content)
