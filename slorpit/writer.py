from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

import pikepdf
from pikepdf import Array, Dictionary, Name, String

from .catalog import ArchiveCatalog, FileEntry
from .codec import Codec
from .constants import (
    CATALOG_KEY,
    CATALOG_SUBTYPE,
    CATALOG_TYPE,
    CODEC_DEFLATE,
    DEFAULT_COMPRESSION_LEVEL,
    LISTING_FONT,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PAYLOADS_KEY,
    PAYLOAD_TYPE,
    PDF_MIN_VERSION,
)
from .errors import ArchiveIOError, DuplicatePath, SlorpitError
from .listing import build_listing_pages
from .pathutil import norm_path, text_path
from .sources import collect_sources


class ArchiveWriter:
    """Builds a PDF container holding one compressed stream per file plus a catalog."""

    def __init__(
        self,
        out_path: str,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        object_streams: bool = True,
        listing: bool = True,
    ):
        self.out_path = out_path
        self.codec = Codec(CODEC_DEFLATE, compression_level)
        self.object_streams = object_streams
        self.listing = listing
        self.pdf: Optional[pikepdf.Pdf] = None
        self.catalog = ArchiveCatalog()
        self.payloads: List[pikepdf.Stream] = []
        self.warnings: List[SlorpitError] = []
        self._seen: Set[str] = set()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.pdf is not None:
            return
        self.pdf = pikepdf.Pdf.new()

    def close(self):
        if self.pdf is not None:
            self.pdf.close()
            self.pdf = None

    def add_file(self, arc_path: str, fs_path: str) -> FileEntry:
        """Compress one filesystem file into a new payload stream and catalog it."""
        if self.pdf is None:
            raise RuntimeError("Archive not open")
        arc_path = norm_path(arc_path) or text_path(os.path.basename(fs_path))
        try:
            with open(fs_path, "rb") as f:
                content = f.read()
            st = os.stat(fs_path)
        except OSError as exc:
            raise ArchiveIOError("read", fs_path, exc) from exc
        compressed = self.codec.compress(content)
        stream = self.pdf.make_stream(compressed)
        stream[Name.Type] = Name(PAYLOAD_TYPE)
        stream[Name.Filter] = self.codec.pdf_filter
        stream[Name.FileName] = String(arc_path)
        stream[Name.Params] = Dictionary(Size=len(content))
        self.payloads.append(stream)
        if arc_path in self._seen:
            self.warnings.append(DuplicatePath(f"{arc_path} is stored more than once"))
        self._seen.add(arc_path)
        entry = FileEntry(
            path=arc_path,
            size=len(content),
            modified=int(st.st_mtime) if st.st_mtime >= 0 else None,
            payload=len(self.payloads) - 1,
        )
        self.catalog.files.append(entry)
        return entry

    def finalize(self):
        """
        Completes the archive and writes it to ``out_path``.

        1.  Serializes and compresses the catalog into its own stream, with a
            /Payloads array referencing every file stream in append order.
        2.  Links the catalog stream from the document root under the reserved key.
        3.  Adds the human-readable listing page(s).
        4.  Saves with object streams; payload streams are written as encoded.
        """
        if self.pdf is None:
            raise RuntimeError("Archive not open")
        pdf = self.pdf
        catalog_stream = pdf.make_stream(self.codec.compress(self.catalog.dumps()))
        catalog_stream[Name.Type] = Name(CATALOG_TYPE)
        catalog_stream[Name.Subtype] = Name(CATALOG_SUBTYPE)
        catalog_stream[Name.Filter] = self.codec.pdf_filter
        catalog_stream[Name(PAYLOADS_KEY)] = Array(self.payloads)
        pdf.Root[Name(CATALOG_KEY)] = catalog_stream

        if self.listing:
            self._add_listing_pages()

        save_kwargs = dict(
            min_version=PDF_MIN_VERSION,
            compress_streams=True,
            stream_decode_level=pikepdf.StreamDecodeLevel.none,
            object_stream_mode=(
                pikepdf.ObjectStreamMode.generate if self.object_streams else pikepdf.ObjectStreamMode.disable
            ),
        )
        try:
            pdf.save(self.out_path, **save_kwargs)
        except OSError as exc:
            raise ArchiveIOError("save", self.out_path, exc) from exc

    # internals
    def _add_listing_pages(self):
        assert self.pdf is not None
        font = self.pdf.make_indirect(
            Dictionary(Type=Name.Font, Subtype=Name.Type1, BaseFont=Name(LISTING_FONT))
        )
        for content in build_listing_pages(self.catalog):
            page = self.pdf.add_blank_page(page_size=(PAGE_WIDTH, PAGE_HEIGHT))
            page.obj[Name.Contents] = self.pdf.make_stream(content)
            page.obj[Name.Resources] = Dictionary(Font=Dictionary(F1=font))


@dataclass
class BuildReport:
    catalog: ArchiveCatalog
    warnings: List[SlorpitError] = field(default_factory=list)


def build_archive(
    out_path: str,
    inputs: List[str],
    *,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    object_streams: bool = True,
    listing: bool = True,
    on_entry: Optional[Callable[[FileEntry], None]] = None,
) -> BuildReport:
    """Archive files and directory trees from ``inputs`` into ``out_path``.

    Inputs that are neither regular files nor directories are skipped and
    reported in ``BuildReport.warnings``; read or save failures raise
    ``ArchiveIOError``.
    """
    found = collect_sources(inputs)
    with ArchiveWriter(
        out_path,
        compression_level=compression_level,
        object_streams=object_streams,
        listing=listing,
    ) as w:
        for src in found.sources:
            entry = w.add_file(src.arc_path, src.fs_path)
            if on_entry is not None:
                on_entry(entry)
        w.finalize()
        return BuildReport(catalog=w.catalog, warnings=found.warnings + w.warnings)
