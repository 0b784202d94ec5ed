from __future__ import annotations

import argparse
import sys
import time
from typing import List, Optional

from slorpit.catalog import FileEntry
from slorpit.constants import DEFAULT_COMPRESSION_LEVEL
from slorpit.errors import (
    ArchiveIOError,
    ContainerError,
    CorruptPayload,
    InvalidCatalog,
    MissingCatalog,
    SlorpitError,
)
from slorpit.listing import format_size, format_timestamp
from slorpit.reader import ArchiveReader, extract_archive
from slorpit.writer import build_archive


def _warn(exc: BaseException) -> None:
    print(f"Warning: {exc}", file=sys.stderr)


def cmd_build(
    output: str,
    inputs: list[str],
    *,
    level: int = DEFAULT_COMPRESSION_LEVEL,
    object_streams: bool = True,
    listing: bool = True,
    quiet: bool = False,
) -> bool:
    """Build (create) a new PDF archive from filesystem paths.

    Args:
        output: Path to the output .pdf file to write.
        inputs: List of file or directory paths to store.
        level: Deflate level for payloads and catalog (0-9).
        object_streams: Pack structural objects into object streams.
        listing: Add human-readable listing page(s).
    """
    print(f"Creating PDF archive: {output}")

    def _progress(entry: FileEntry) -> None:
        if not quiet:
            print(f"  Adding: {entry.path}")

    t0 = time.time()
    report = build_archive(
        output,
        inputs,
        compression_level=level,
        object_streams=object_streams,
        listing=listing,
        on_entry=_progress,
    )
    for w in report.warnings:
        _warn(w)
    dt = max(0.000001, time.time() - t0)
    total = report.catalog.total_size()
    print(
        f"Successfully archived {len(report.catalog.files)} files to {output} "
        f"({format_size(total)} in {dt:.1f}s)"
    )
    return True


def cmd_extract(archive: str, *, outdir: str = ".", keep_going: bool = False, quiet: bool = False) -> bool:
    """Extract every file of an archive into ``outdir``; skipped entries are printed as warnings."""
    print(f"Extracting PDF archive: {archive}")

    def _progress(entry: FileEntry) -> None:
        if not quiet:
            print(f"  Extracting: {entry.path}")

    report = extract_archive(archive, outdir, strict=not keep_going, on_entry=_progress)
    for w in report.warnings:
        _warn(w)
    print(f"Successfully extracted {len(report.extracted)} files to {outdir}")
    return True


def cmd_list(archive: str) -> bool:
    """List archive entries (size, modified time, path)."""
    with ArchiveReader(archive) as r:
        entries = r.list()
        for e, stream in r.pairs:
            marker = "" if stream is not None else "\t(missing payload)"
            print(f"{e.size}\t{format_timestamp(e.modified)}\t{e.path}{marker}")
        print(f"{len(entries)} files, catalog version {r.catalog.version}, {r.correlation} correlation")
    return True


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="slorpit",
        description="Pack files into a PDF container and restore them",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_build = sub.add_parser("build", help="Build archive")
    ap_build.add_argument("output", help="Output .pdf path")
    ap_build.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_build.add_argument(
        "--level",
        type=int,
        choices=range(0, 10),
        default=DEFAULT_COMPRESSION_LEVEL,
        metavar="0-9",
        help=f"Deflate level (default {DEFAULT_COMPRESSION_LEVEL})",
    )
    ap_build.add_argument("--no-object-streams", action="store_true", help="Do not pack objects into object streams")
    ap_build.add_argument("--no-listing", action="store_true", help="Omit the file listing page")
    ap_build.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_extract = sub.add_parser("extract", help="Extract files")
    ap_extract.add_argument("archive", help="Archive path")
    ap_extract.add_argument("outdir", nargs="?", default=".", help="Output directory (default: .)")
    ap_extract.add_argument(
        "--keep-going",
        action="store_true",
        help="Skip entries whose payload is corrupt instead of aborting",
    )
    ap_extract.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")
    return ap


def _run(args: argparse.Namespace) -> None:
    if args.cmd == "build":
        cmd_build(
            args.output,
            args.inputs,
            level=args.level,
            object_streams=not args.no_object_streams,
            listing=not args.no_listing,
            quiet=args.quiet,
        )
    elif args.cmd == "extract":
        cmd_extract(args.archive, outdir=args.outdir, keep_going=args.keep_going, quiet=args.quiet)
    elif args.cmd == "list":
        cmd_list(args.archive)
    else:
        raise RuntimeError("Unknown command")


def main(argv: List[str] | None = None):
    ap = _build_parser()
    args = ap.parse_args(argv)
    try:
        _run(args)
    except MissingCatalog as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Hint: the file is a PDF but was not created by slorpit.", file=sys.stderr)
        sys.exit(2)
    except CorruptPayload as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.cmd == "extract":
            print("Hint: rerun with --keep-going to skip damaged entries.", file=sys.stderr)
        sys.exit(2)
    except (ArchiveIOError, ContainerError, InvalidCatalog, SlorpitError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


def slorp_main(argv: Optional[List[str]] = None):
    """``slorp <output.pdf> <files...>``"""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 2:
        print("Usage: slorp <output.pdf> <files...>", file=sys.stderr)
        sys.exit(1)
    main(["build"] + list(argv))


def unslorp_main(argv: Optional[List[str]] = None):
    """``unslorp <archive.pdf> [output_directory]``"""
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) < 1 or len(argv) > 2:
        print("Usage: unslorp <archive.pdf> [output_directory]", file=sys.stderr)
        sys.exit(1)
    main(["extract"] + list(argv))


if __name__ == "__main__":
    main()
