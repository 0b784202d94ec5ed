from __future__ import annotations

import argparse
import sys
from typing import List, Optional

import pikepdf
from pikepdf import Array, Name

from slorpit.catalog import ArchiveCatalog
from slorpit.codec import Codec
from slorpit.constants import CATALOG_KEY, CODEC_DEFLATE, LEGACY_FORMAT_VERSION, PAYLOADS_KEY
from slorpit.errors import SlorpitError


def _save(pdf: pikepdf.Pdf, out: str) -> None:
    # Keep damaged payload bytes exactly as written
    pdf.save(out, stream_decode_level=pikepdf.StreamDecodeLevel.none)


def truncate_payload(archive: str, out: str, index: int, drop: int = 16) -> None:
    """Cut ``drop`` bytes off the end of the encoded payload of entry ``index``."""
    with pikepdf.open(archive) as pdf:
        catalog = ArchiveCatalog.loads(
            Codec(CODEC_DEFLATE).decompress(pdf.Root[CATALOG_KEY].read_raw_bytes())
        )
        if index < 0 or index >= len(catalog.files):
            raise ValueError(f"Entry index out of range (0..{len(catalog.files) - 1})")
        slot = catalog.files[index].payload
        if slot is None:
            raise ValueError("Archive has no payload indices; use a current archive")
        stream = pdf.Root[CATALOG_KEY][PAYLOADS_KEY][slot]
        raw = stream.read_raw_bytes()
        stream.write(raw[: max(0, len(raw) - drop)], filter=Name.FlateDecode)
        _save(pdf, out)


def legacy_copy(archive: str, out: str, *, order: Optional[List[int]] = None, keep: Optional[int] = None) -> None:
    """Rewrite an archive in the legacy positional form.

    Payload indices are dropped from the catalog, so readers must fall back to
    object-number order. ``order`` permutes the payload streams (simulating a
    writer that appended them out of catalog order) and ``keep`` discards all
    payloads after the first ``keep``.
    """
    with pikepdf.open(archive) as pdf:
        cat_stream = pdf.Root[CATALOG_KEY]
        codec = Codec(CODEC_DEFLATE)
        catalog = ArchiveCatalog.loads(codec.decompress(cat_stream.read_raw_bytes()))
        streams = list(cat_stream[PAYLOADS_KEY])
        if order is not None:
            if sorted(order) != list(range(len(streams))):
                raise ValueError("--order must be a permutation of the payload positions")
            streams = [streams[i] for i in order]
        if keep is not None:
            # Retag as well as unlink so no scan can still find them
            for dropped in streams[keep:]:
                dropped[Name.Type] = Name.Unused
            streams = streams[:keep]
        for e in catalog.files:
            e.payload = None
        catalog.version = LEGACY_FORMAT_VERSION
        cat_stream.write(codec.compress(catalog.dumps()), filter=Name.FlateDecode)
        # Still referenced so the objects survive the save, numbered in this order
        cat_stream[PAYLOADS_KEY] = Array(streams)
        _save(pdf, out)


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="slorpit.tamper", description="Damage Slorpit archives for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_trunc = sub.add_parser("truncate", help="Truncate the payload of one entry")
    ap_trunc.add_argument("archive")
    ap_trunc.add_argument("output")
    ap_trunc.add_argument("--index", type=int, default=0, help="Catalog entry index (default 0)")
    ap_trunc.add_argument("--drop", type=int, default=16, help="Bytes to cut (default 16)")

    ap_legacy = sub.add_parser("legacy", help="Rewrite without payload indices (positional form)")
    ap_legacy.add_argument("archive")
    ap_legacy.add_argument("output")
    ap_legacy.add_argument("--order", help="Comma-separated payload permutation, e.g. 1,0,2")
    ap_legacy.add_argument("--keep", type=int, help="Keep only the first N payloads")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "truncate":
            truncate_payload(args.archive, args.output, args.index, args.drop)
            print(f"Truncated payload of entry {args.index} by {args.drop} byte(s)")
        else:
            order = [int(x) for x in args.order.split(",")] if args.order else None
            legacy_copy(args.archive, args.output, order=order, keep=args.keep)
            print(f"Wrote positional-form copy to {args.output}")
    except (SlorpitError, ValueError, OSError, pikepdf.PdfError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
