"""Command line interface.

Usage::

    mkimg create [--plain] [--exclude-root] --root DIR [IMG]
    mkimg create [--plain] --map EXT INT [EXT INT ...] [IMG]
    mkimg examine IMG
    mkimg extract IMG INTERNAL OUTPUT
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from fs.errors import FSError

from .base import MkimgError
from .engine import EngineError
from .extract import extract_to
from .inspector import examine
from .mapping import create_mappings, mappings_from_pairs, pairs_from_flat
from .progress import (
    DeceptionApplied,
    DirectoryCreated,
    FileWritten,
    HeaderInflated,
    ImageShrunk,
    MappingVisited,
    ProgressEvent,
)
from .volume import create, create_deceptive

__all__ = ["main", "build_parser"]


log = logging.getLogger(__name__)


DEFAULT_IMAGE_PLAIN = "disk.img"
DEFAULT_IMAGE_DECEPTIVE = "deceptive.img"


def report(event: ProgressEvent) -> None:
    """Render progress events of the image operations as log records."""
    if isinstance(event, MappingVisited):
        log.info(f"{event.internal!r} {event.external!r} {event.size}")
    elif isinstance(event, DirectoryCreated):
        log.info(f"Created directory {event.path}")
    elif isinstance(event, FileWritten):
        log.info(f"Wrote {event.path} ({event.size} bytes)")
    elif isinstance(event, HeaderInflated):
        log.info(
            f"Applied size deception - image now claims {event.declared_sectors} "
            f"sectors instead of {event.original_sectors}"
        )
    elif isinstance(event, ImageShrunk):
        log.info(f"Shrunk file to {event.length} bytes while maintaining deception")
    elif isinstance(event, DeceptionApplied):
        log.info(
            f"Deceptive image {event.path} created successfully: claims "
            f"{event.declared_size} bytes, occupies {event.actual_size} bytes"
        )


def _create(args: argparse.Namespace) -> None:
    image = args.img_path
    if args.root is not None:
        mappings = create_mappings(args.root, args.exclude_root, progress=report)
    else:
        values = list(args.map)
        # An image path following --map ends up among its values.
        if image is None and len(values) % 2:
            image = values.pop()
        mappings = mappings_from_pairs(pairs_from_flat(values))

    if image is None:
        image = DEFAULT_IMAGE_PLAIN if args.plain else DEFAULT_IMAGE_DECEPTIVE
    if args.plain:
        create(image, mappings, progress=report)
    else:
        create_deceptive(image, mappings, progress=report)


def _examine(args: argparse.Namespace) -> None:
    for line in examine(args.img_path):
        print(line)


def _extract(args: argparse.Namespace) -> None:
    extract_to(args.img_path, args.file_path, args.output_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mkimg", description="Create, examine and extract from FAT disk images"
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="show more output"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="only show errors"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create_parser = commands.add_parser(
        "create", help="create a disk image (deceptive by default)"
    )
    source = create_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--root", help="directory to place in the image")
    source.add_argument(
        "--map",
        nargs="+",
        metavar="PATH",
        help="pairs of host path and path inside the image",
    )
    create_parser.add_argument(
        "img_path",
        nargs="?",
        help=(
            f"output path of the image (default: {DEFAULT_IMAGE_DECEPTIVE}, "
            f"or {DEFAULT_IMAGE_PLAIN} with --plain)"
        ),
    )
    create_parser.add_argument(
        "--plain",
        action="store_true",
        help="create a plain (non-deceptive) image instead",
    )
    create_parser.add_argument(
        "-e",
        "--exclude-root",
        action="store_true",
        help=(
            "only place the contents of the root directory in the image instead "
            "of the root directory itself"
        ),
    )
    create_parser.set_defaults(handler=_create)

    examine_parser = commands.add_parser("examine", help="examine a disk image")
    examine_parser.add_argument("img_path", help="path of the disk image")
    examine_parser.set_defaults(handler=_examine)

    extract_parser = commands.add_parser(
        "extract", help="extract a file from a disk image"
    )
    extract_parser.add_argument("img_path", help="path of the disk image")
    extract_parser.add_argument(
        "file_path", help='path of the file inside the image (e.g. "EFI/boot/a.efi")'
    )
    extract_parser.add_argument("output_path", help="output path of the file")
    extract_parser.set_defaults(handler=_extract)

    return parser


def _log_level(args: argparse.Namespace) -> int:
    if args.quiet:
        return logging.ERROR
    if args.verbose > 1:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    return logging.WARNING


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=_log_level(args), format="%(message)s")
    # Progress is always shown unless asked to be quiet.
    if not args.quiet:
        log.setLevel(logging.INFO)

    try:
        args.handler(args)
    except (MkimgError, OSError, FSError, EngineError) as e:
        log.error(f"error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
