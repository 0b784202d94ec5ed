from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import FORMAT_VERSION, MAX_ENTRY_SIZE
from .errors import InvalidCatalog


_ENTRY_FIELDS = ("path", "size", "modified", "payload")
_CATALOG_FIELDS = ("files", "version")


@dataclass
class FileEntry:
    path: str
    size: int
    modified: Optional[int] = None
    # Index into the catalog stream's /Payloads array; None for legacy catalogs
    payload: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "size": self.size,
            "modified": self.modified,
        }
        if self.payload is not None:
            d["payload"] = self.payload
        for k, v in self.extra.items():
            d.setdefault(k, v)
        return d

    @classmethod
    def from_dict(cls, ent: Any, pos: int = 0) -> "FileEntry":
        if not isinstance(ent, dict):
            raise InvalidCatalog(f"files[{pos}] is not an object")
        path = ent.get("path")
        if not isinstance(path, str) or not path:
            raise InvalidCatalog(f"files[{pos}] has a missing or empty path")
        size = ent.get("size")
        if not _is_uint(size) or size > MAX_ENTRY_SIZE:
            raise InvalidCatalog(f"files[{pos}] ({path}) has an invalid size: {size!r}")
        modified = ent.get("modified")
        if modified is not None and not _is_uint(modified):
            raise InvalidCatalog(f"files[{pos}] ({path}) has an invalid modified time: {modified!r}")
        payload = ent.get("payload")
        if payload is not None and not _is_uint(payload):
            raise InvalidCatalog(f"files[{pos}] ({path}) has an invalid payload index: {payload!r}")
        extra = {k: v for k, v in ent.items() if k not in _ENTRY_FIELDS}
        return cls(path=path, size=size, modified=modified, payload=payload, extra=extra)


@dataclass
class ArchiveCatalog:
    """Ordered manifest of the files in one archive.

    ``files`` order is the order payload streams were appended in. ``version`` is
    advisory; unknown fields from newer writers are carried in ``extra`` so a
    catalog survives a load/dump cycle unchanged.
    """

    files: List[FileEntry] = field(default_factory=list)
    version: str = FORMAT_VERSION
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "files": [e.to_dict() for e in self.files],
            "version": self.version,
        }
        for k, v in self.extra.items():
            d.setdefault(k, v)
        return d

    def dumps(self) -> bytes:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_dict(cls, doc: Any) -> "ArchiveCatalog":
        if not isinstance(doc, dict):
            raise InvalidCatalog("Catalog is not a JSON object")
        if "files" not in doc:
            raise InvalidCatalog("Catalog has no 'files' field")
        files = doc["files"]
        if not isinstance(files, list):
            raise InvalidCatalog("Catalog 'files' is not a list")
        version = doc.get("version", "")
        if not isinstance(version, str):
            version = str(version)
        entries = [FileEntry.from_dict(ent, i) for i, ent in enumerate(files)]
        extra = {k: v for k, v in doc.items() if k not in _CATALOG_FIELDS}
        return cls(files=entries, version=version, extra=extra)

    @classmethod
    def loads(cls, data: bytes) -> "ArchiveCatalog":
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidCatalog(f"Catalog is not valid UTF-8: {e}") from e
        try:
            doc = json.loads(text)
        except ValueError as e:
            raise InvalidCatalog(f"Failed to parse catalog JSON: {e}") from e
        return cls.from_dict(doc)

    def total_size(self) -> int:
        return sum(e.size for e in self.files)


def _is_uint(v: Any) -> bool:
    # bool is an int subclass but never a valid size or timestamp
    return isinstance(v, int) and not isinstance(v, bool) and v >= 0
