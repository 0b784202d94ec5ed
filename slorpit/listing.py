from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from .catalog import ArchiveCatalog
from .constants import LISTING_ROWS_PER_PAGE


def escape_pdf_string(s: str) -> str:
    """Escape text for a PDF literal string, keeping printable ASCII only."""
    s = s.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return "".join(c for c in s if c.isascii() and c.isprintable())


def format_size(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    if n < 1024 * 1024:
        return f"{n / 1024.0:.1f} KB"
    return f"{n / (1024.0 * 1024.0):.1f} MB"


def format_timestamp(ts: Optional[int]) -> str:
    if ts is None:
        return "N/A"
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "N/A"


def build_listing_pages(catalog: ArchiveCatalog, rows_per_page: int = LISTING_ROWS_PER_PAGE) -> List[bytes]:
    """Render the catalog as one or more Courier text content streams.

    The first page carries the title and file count; every page repeats the
    column header. An empty archive still gets a single page.
    """
    files = catalog.files
    chunks = [files[i : i + rows_per_page] for i in range(0, len(files), rows_per_page)] or [[]]
    pages: List[bytes] = []
    for page_no, rows in enumerate(chunks):
        lines = ["BT", "/F1 12 Tf", "50 750 Td"]
        if page_no == 0:
            lines += [
                "(SLORPIT PDF Archive) Tj",
                "0 -20 Td",
                "/F1 10 Tf",
                f"(Archive contains {len(files)} files) Tj",
                "0 -25 Td",
            ]
        else:
            lines += [f"(SLORPIT PDF Archive, continued \\({page_no + 1}/{len(chunks)}\\)) Tj", "0 -25 Td"]
        lines += [
            "/F1 9 Tf",
            "(Filename) Tj",
            "300 0 Td",
            "(Size) Tj",
            "100 0 Td",
            "(Modified) Tj",
            "-400 -15 Td",
        ]
        for e in rows:
            lines += [
                f"({escape_pdf_string(e.path)}) Tj",
                "300 0 Td",
                f"({format_size(e.size)}) Tj",
                "100 0 Td",
                f"({format_timestamp(e.modified)}) Tj",
                "-400 -12 Td",
            ]
        lines.append("ET")
        pages.append(("\n".join(lines) + "\n").encode("ascii"))
    return pages
