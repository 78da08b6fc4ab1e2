"""Pluggable byte codecs used for compressed cache values.

A codec is anything with ``compress(bytes) -> bytes`` and
``decompress(bytes) -> bytes``; decompress must exactly invert compress.
"""

import zlib
from typing import Protocol

from kvstash.shared.errors import CodecError


class Codec(Protocol):
    name: str

    def compress(self, data: bytes) -> bytes: ...

    def decompress(self, data: bytes) -> bytes: ...


class ZlibCodec:
    """Default codec, no extra dependency."""

    name = "zlib"

    def __init__(self, level: int = 6):
        self._level = level

    def compress(self, data: bytes) -> bytes:
        try:
            return zlib.compress(data, self._level)
        except zlib.error as e:
            raise CodecError(f"zlib compress failed: {e}") from e

    def decompress(self, data: bytes) -> bytes:
        try:
            return zlib.decompress(data)
        except zlib.error as e:
            raise CodecError(f"zlib decompress failed: {e}") from e


class SnappyCodec:
    """Snappy codec backed by the ``python-snappy`` package (``snappy`` extra)."""

    name = "snappy"

    def __init__(self):
        import snappy

        self._snappy = snappy

    def compress(self, data: bytes) -> bytes:
        try:
            return self._snappy.compress(data)
        except Exception as e:
            raise CodecError(f"snappy compress failed: {e}") from e

    def decompress(self, data: bytes) -> bytes:
        try:
            return self._snappy.uncompress(data)
        except Exception as e:
            raise CodecError(f"snappy decompress failed: {e}") from e


CODECS = {
    "zlib": ZlibCodec,
    "snappy": SnappyCodec,
}


def get_codec(name: str) -> Codec:
    """Return a codec instance by name. Raises ValueError for unknown names."""
    try:
        cls = CODECS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown compression algorithm: {name}") from None
    return cls()
