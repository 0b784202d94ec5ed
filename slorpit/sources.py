from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from typing import List

from .errors import SkippedInput, SlorpitError, UnsafePath
from .pathutil import norm_path, text_path


@dataclass
class Source:
    arc_path: str
    fs_path: str


@dataclass
class SourceSet:
    sources: List[Source] = field(default_factory=list)
    warnings: List[SlorpitError] = field(default_factory=list)


def _arc_path(fs_path: str, base: str) -> str:
    rel = os.path.relpath(fs_path, start=base)
    try:
        arc = norm_path(rel)
    except UnsafePath:
        arc = ""
    # A file relative to itself has no meaningful prefix; use its name
    if not arc:
        arc = text_path(os.path.basename(os.path.normpath(fs_path))) or "unknown"
    return arc


def collect_sources(inputs: List[str]) -> SourceSet:
    """Expand input files and directories into (archive path, filesystem path) pairs.

    Discovery order is the order inputs are given, and within a directory a
    sorted pre-order walk. That order becomes the catalog order, so it must
    not be changed after collection.
    """
    out = SourceSet()
    for p in inputs:
        try:
            st = os.lstat(p)
        except OSError as exc:
            out.warnings.append(SkippedInput(f"{p} is neither a file nor directory, skipping ({exc.strerror})"))
            continue
        if stat.S_ISREG(st.st_mode):
            out.sources.append(Source(_arc_path(p, p), p))
        elif stat.S_ISDIR(st.st_mode):
            _walk_dir(p, out)
        else:
            out.warnings.append(SkippedInput(f"{p} is neither a file nor directory, skipping"))
    return out


def _walk_dir(base: str, out: SourceSet) -> None:
    def _onerror(exc: OSError) -> None:
        out.warnings.append(SkippedInput(f"cannot read directory {exc.filename}: {exc.strerror}"))

    for root, dirnames, filenames in os.walk(base, onerror=_onerror):
        # prune symlinked directories; they are reported like any other non-regular member
        kept = []
        for d in sorted(dirnames):
            sub = os.path.join(root, d)
            if os.path.islink(sub):
                out.warnings.append(SkippedInput(f"{sub} is a symbolic link, skipping"))
                continue
            kept.append(d)
        dirnames[:] = kept
        for f in sorted(filenames):
            full = os.path.join(root, f)
            try:
                st = os.lstat(full)
            except OSError as exc:
                out.warnings.append(SkippedInput(f"{full}: {exc.strerror}, skipping"))
                continue
            if not stat.S_ISREG(st.st_mode):
                out.warnings.append(SkippedInput(f"{full} is not a regular file, skipping"))
                continue
            out.sources.append(Source(_arc_path(full, base), full))
