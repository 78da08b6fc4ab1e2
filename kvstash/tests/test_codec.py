"""Tests for compression codecs."""

import pytest

from kvstash.shared.codec import ZlibCodec, get_codec
from kvstash.shared.errors import CodecError


def test_zlib_round_trip():
    codec = ZlibCodec()
    data = b"hello world " * 100
    packed = codec.compress(data)
    assert len(packed) < len(data)
    assert codec.decompress(packed) == data


def test_zlib_corrupt_input_raises_codec_error():
    with pytest.raises(CodecError):
        ZlibCodec().decompress(b"not compressed")


def test_get_codec_by_name():
    assert get_codec("zlib").name == "zlib"
    assert get_codec("ZLIB").name == "zlib"


def test_get_codec_unknown():
    with pytest.raises(ValueError):
        get_codec("brotli")


def test_snappy_round_trip():
    pytest.importorskip("snappy")
    codec = get_codec("snappy")
    assert codec.decompress(codec.compress(b"payload" * 50)) == b"payload" * 50
