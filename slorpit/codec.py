from __future__ import annotations

from typing import Optional

import sys
import zlib

import pikepdf

from .constants import CODEC_NONE, CODEC_DEFLATE, DEFAULT_CODEC_ID, DEFAULT_COMPRESSION_LEVEL
from .errors import CorruptPayload


class Codec:
    def __init__(self, codec_id: int, level: Optional[int] = None):
        self.codec_id = codec_id
        self.level = level

    @classmethod
    def for_filter(cls, pdf_filter) -> "Codec":
        """Map a stream's /Filter value onto a codec.

        Only FlateDecode (bare or as a one-element array) is understood; any other
        filter chain is reported as a corrupt payload rather than guessed at.
        """
        if pdf_filter is None:
            return cls(CODEC_NONE)
        if isinstance(pdf_filter, pikepdf.Array):
            if len(pdf_filter) == 0:
                return cls(CODEC_NONE)
            if len(pdf_filter) == 1:
                pdf_filter = pdf_filter[0]
        if pdf_filter == pikepdf.Name.FlateDecode:
            return cls(CODEC_DEFLATE)
        raise CorruptPayload(f"unsupported stream filter: {pdf_filter}")

    @property
    def pdf_filter(self) -> Optional[pikepdf.Name]:
        if self.codec_id == CODEC_DEFLATE:
            return pikepdf.Name.FlateDecode
        return None

    def compress(self, data: bytes) -> bytes:
        if self.codec_id == CODEC_NONE:
            return data
        if self.codec_id == CODEC_DEFLATE:
            return zlib.compress(data, self.level if self.level is not None else DEFAULT_COMPRESSION_LEVEL)
        # Unknown/unsupported codec: fail fast
        raise RuntimeError(f"unsupported codec id: {self.codec_id}")

    def decompress(self, data: bytes, limit: Optional[int] = None) -> bytes:
        """Inflate ``data``; with ``limit``, refuse output longer than ``limit`` bytes."""
        if self.codec_id == CODEC_NONE:
            if limit is not None and len(data) > limit:
                raise CorruptPayload(f"payload exceeds expected length ({len(data)} > {limit})")
            return data
        if self.codec_id != CODEC_DEFLATE:
            raise RuntimeError(f"unsupported codec id: {self.codec_id}")
        d = zlib.decompressobj()
        try:
            # max_length=0 means unbounded
            out = d.decompress(data, 0 if limit is None else min(limit + 1, sys.maxsize))
        except zlib.error as e:
            raise CorruptPayload(f"deflate stream is malformed: {e}") from e
        if limit is not None and len(out) > limit:
            raise CorruptPayload(f"payload inflates beyond expected length {limit}")
        if not d.eof:
            raise CorruptPayload("deflate stream is truncated")
        return out


_default = Codec(DEFAULT_CODEC_ID, DEFAULT_COMPRESSION_LEVEL)


def compress(data: bytes) -> bytes:
    return _default.compress(data)


def decompress(data: bytes) -> bytes:
    return _default.decompress(data)
