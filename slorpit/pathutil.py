from __future__ import annotations

import os

from .errors import UnsafePath


def text_path(p: str) -> str:
    """Return ``p`` as valid Unicode text.

    Filenames that are not valid UTF-8 come back from ``os`` with
    surrogate-escaped bytes; each undecodable byte becomes U+FFFD.
    """
    try:
        raw = p.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        # lone surrogates outside the escape range, e.g. from a JSON catalog
        raw = p.encode("utf-8", "surrogatepass")
    return raw.decode("utf-8", "replace")


def norm_path(p: str) -> str:
    """Normalize archive paths to a canonical forward-slash form.

    Rules:
    - Replace undecodable bytes with U+FFFD
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = text_path(p).replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise UnsafePath(f"Path may not contain '..': {p}")
        if "\x00" in q:
            raise UnsafePath("Path may not contain NUL")
    return "/".join(parts)


def safe_join(outdir: str, arc_path: str) -> str:
    """Join an untrusted archive path onto ``outdir`` and enforce containment.

    The result is guaranteed to resolve inside ``outdir`` even when parts of the
    existing tree are symlinks pointing elsewhere.
    """
    rel = norm_path(arc_path)
    if not rel:
        raise UnsafePath(f"Path resolves to the output directory itself: {arc_path!r}")
    root = os.path.realpath(outdir)
    dst = os.path.realpath(os.path.join(root, *rel.split("/")))
    try:
        inside = os.path.commonpath([root, dst]) == root
    except ValueError:  # different drives
        inside = False
    if not inside or dst == root:
        raise UnsafePath(f"Path escapes the output directory: {arc_path}")
    return dst
