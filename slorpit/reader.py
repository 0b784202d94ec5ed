from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import pikepdf
from pikepdf import Name

from .catalog import ArchiveCatalog, FileEntry
from .codec import Codec
from .constants import CATALOG_KEY, MAX_CATALOG_UNCOMPRESSED, PAYLOADS_KEY, PAYLOAD_TYPE
from .errors import (
    ArchiveIOError,
    ContainerError,
    CorruptPayload,
    InvalidCatalog,
    MissingCatalog,
    MissingPayload,
    SlorpitError,
    TimestampNotRestored,
    UnsafePath,
)
from .pathutil import safe_join


CORRELATION_INDEXED = "indexed"
CORRELATION_POSITIONAL = "positional"


def is_file_payload(obj) -> bool:
    return isinstance(obj, pikepdf.Stream) and obj.get("/Type") == Name(PAYLOAD_TYPE)


def find_file_streams(pdf: pikepdf.Pdf) -> List[pikepdf.Stream]:
    """Every file payload stream in the container, in (object number, generation) order."""
    found = [obj for obj in pdf.objects if is_file_payload(obj)]
    found.sort(key=lambda s: s.objgen)
    return found


@dataclass
class ExtractReport:
    extracted: List[FileEntry] = field(default_factory=list)
    warnings: List[SlorpitError] = field(default_factory=list)


class ArchiveReader:
    def __init__(self, path: str):
        self.path = path
        self.pdf: Optional[pikepdf.Pdf] = None
        self.catalog: Optional[ArchiveCatalog] = None
        self.correlation: str = CORRELATION_POSITIONAL
        # (entry, payload stream or None), in catalog order
        self.pairs: List[Tuple[FileEntry, Optional[pikepdf.Stream]]] = []

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.pdf is not None:
            return
        try:
            self.pdf = pikepdf.open(self.path)
        except OSError as exc:
            raise ArchiveIOError("open", self.path, exc) from exc
        except pikepdf.PdfError as exc:
            raise ContainerError(f"{self.path} is not a readable PDF container: {exc}") from exc
        try:
            catalog_stream = self._find_catalog_stream()
            self.catalog = self._load_catalog(catalog_stream)
            self._correlate(catalog_stream)
        except SlorpitError:
            # Ensure file handle is closed on failure to avoid leaks
            self.close()
            raise
        except pikepdf.PdfError as exc:
            self.close()
            raise ContainerError(f"{self.path} has a damaged object structure: {exc}") from exc

    def close(self):
        if self.pdf is not None:
            self.pdf.close()
            self.pdf = None

    def list(self) -> List[FileEntry]:
        if self.catalog is None:
            raise RuntimeError("Archive not open")
        return self.catalog.files

    def read(self, index: int) -> bytes:
        """Return the decompressed content of catalog entry ``index``."""
        if self.pdf is None:
            raise RuntimeError("Archive not open")
        entry, stream = self.pairs[index]
        if stream is None:
            raise MissingPayload(f"Missing stream for {entry.path}")
        try:
            codec = Codec.for_filter(stream.get("/Filter"))
            data = codec.decompress(stream.read_raw_bytes(), limit=entry.size)
        except (CorruptPayload, pikepdf.PdfError) as exc:
            raise CorruptPayload(f"Failed to decompress stream {stream.objgen} for {entry.path}: {exc}") from exc
        if len(data) != entry.size:
            raise CorruptPayload(
                f"Length mismatch for {entry.path}: catalog says {entry.size}, payload has {len(data)}"
            )
        return data

    def extract(self, index: int, out_path: str) -> None:
        data = self.read(index)
        try:
            os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
            with open(out_path, "wb") as wf:
                wf.write(data)
        except OSError as exc:
            raise ArchiveIOError("write", out_path, exc) from exc

    def extract_all(
        self,
        outdir: str = ".",
        *,
        strict: bool = True,
        on_entry: Optional[Callable[[FileEntry], None]] = None,
    ) -> ExtractReport:
        """Extract every catalog entry below ``outdir``.

        Missing payloads and unsafe paths are recorded as warnings and skipped.
        A corrupt payload aborts the run when ``strict`` is set, otherwise it is
        recorded and skipped as well.
        """
        if self.catalog is None:
            raise RuntimeError("Archive not open")
        report = ExtractReport()
        try:
            os.makedirs(outdir, exist_ok=True)
        except OSError as exc:
            raise ArchiveIOError("create directory", outdir, exc) from exc
        for i, (entry, stream) in enumerate(self.pairs):
            if on_entry is not None:
                on_entry(entry)
            try:
                dst = safe_join(outdir, entry.path)
            except UnsafePath as exc:
                report.warnings.append(exc)
                continue
            if stream is None:
                report.warnings.append(MissingPayload(f"Missing stream for {entry.path}"))
                continue
            try:
                self.extract(i, dst)
            except CorruptPayload as exc:
                if strict:
                    raise
                report.warnings.append(exc)
                continue
            if entry.modified is not None:
                warn = _set_mtime(dst, entry.modified)
                if warn is not None:
                    report.warnings.append(warn)
            report.extracted.append(entry)
        return report

    # internals
    def _find_catalog_stream(self) -> pikepdf.Stream:
        assert self.pdf is not None
        root = self.pdf.trailer.get("/Root")
        if not isinstance(root, pikepdf.Dictionary):
            raise ContainerError(f"{self.path} has no document root")
        ref = root.get(CATALOG_KEY)
        if ref is None:
            raise MissingCatalog(f"No Slorpit catalog found in {self.path}")
        if not isinstance(ref, pikepdf.Stream):
            raise InvalidCatalog(f"Catalog in {self.path} is not a stream")
        return ref

    def _load_catalog(self, stream: pikepdf.Stream) -> ArchiveCatalog:
        try:
            codec = Codec.for_filter(stream.get("/Filter"))
            raw = codec.decompress(stream.read_raw_bytes(), limit=MAX_CATALOG_UNCOMPRESSED)
        except (CorruptPayload, pikepdf.PdfError) as exc:
            raise InvalidCatalog(f"Catalog stream in {self.path} cannot be decoded: {exc}") from exc
        return ArchiveCatalog.loads(raw)

    def _correlate(self, catalog_stream: pikepdf.Stream) -> None:
        """
        Pairs every catalog entry with its payload stream.

        Catalogs that carry payload indices are resolved through the catalog
        stream's /Payloads array, which is immune to object renumbering.
        Older catalogs fall back to positional matching: the n-th entry takes
        the n-th EmbeddedFile stream in object-number order, which is only
        correct while the container preserved the writer's append order.
        """
        assert self.catalog is not None and self.pdf is not None
        files = self.catalog.files
        table = catalog_stream.get(PAYLOADS_KEY)
        if isinstance(table, pikepdf.Array) and any(e.payload is not None for e in files):
            self.correlation = CORRELATION_INDEXED
            slots = list(table)
            self.pairs = []
            for e in files:
                stream = None
                if e.payload is not None and e.payload < len(slots) and is_file_payload(slots[e.payload]):
                    stream = slots[e.payload]
                self.pairs.append((e, stream))
            return
        self.correlation = CORRELATION_POSITIONAL
        streams = find_file_streams(self.pdf)
        self.pairs = [(e, streams[i] if i < len(streams) else None) for i, e in enumerate(files)]


def _set_mtime(path: str, mtime: int) -> Optional[SlorpitError]:
    """Best-effort mtime restore; the access time is left as it is."""
    try:
        atime = os.stat(path).st_atime
        os.utime(path, (atime, mtime))
    except (OSError, OverflowError, ValueError) as exc:
        return TimestampNotRestored(f"failed to set timestamps on {path}: {exc}")
    return None


def extract_archive(
    path: str,
    outdir: str = ".",
    *,
    strict: bool = True,
    on_entry: Optional[Callable[[FileEntry], None]] = None,
) -> ExtractReport:
    with ArchiveReader(path) as r:
        return r.extract_all(outdir, strict=strict, on_entry=on_entry)
