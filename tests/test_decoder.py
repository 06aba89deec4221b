import gzip
import io

import pytest
import zstandard

from ocimage.decoder import (
    DEFAULT_COMPRESSION,
    ERR_BAD_MEDIA_TYPE,
    IMAGE_DOCKER_LAYER_GZIP_MEDIA_TYPE,
    IMAGE_LAYER_GZIP_MEDIA_TYPE,
    IMAGE_LAYER_MEDIA_TYPE,
    Compression,
    compression_for_media_type,
)

DATA = b"This is some text!"


def _gzip_bytes() -> bytes:
    return gzip.compress(DATA)


def _zstd_bytes() -> bytes:
    return zstandard.ZstdCompressor(level=1).compress(DATA)


def test_uncompressed_decode():
    with pytest.raises(ValueError, match="uncompressed input data"):
        Compression.UNCOMPRESSED.decompress(b"")


def test_gzip_decode():
    data = _gzip_bytes()
    with pytest.raises(ValueError):
        Compression.UNCOMPRESSED.decompress(data)
    assert DEFAULT_COMPRESSION.decompress(data) == DATA


def test_default_is_gzip():
    assert compression_for_media_type(IMAGE_LAYER_GZIP_MEDIA_TYPE) is DEFAULT_COMPRESSION
    assert str(DEFAULT_COMPRESSION) == "gzip"


def test_zstd_decode():
    assert Compression.ZSTD.decompress(_zstd_bytes()) == DATA


def test_zstd_decode_multiple_frames():
    data = _zstd_bytes() + _zstd_bytes()
    assert Compression.ZSTD.decompress(data) == DATA + DATA


def test_stream_gzip_decode():
    reader = Compression.GZIP.stream_decompress(io.BytesIO(_gzip_bytes()))
    assert reader.read() == DATA


def test_stream_zstd_decode():
    reader = Compression.ZSTD.stream_decompress(io.BytesIO(_zstd_bytes()))
    assert reader.read() == DATA


def test_stream_uncompressed_passes_through():
    reader = Compression.UNCOMPRESSED.stream_decompress(io.BytesIO(DATA))
    assert reader.read() == DATA


@pytest.mark.parametrize(
    "member, text",
    [
        (Compression.UNCOMPRESSED, "uncompressed"),
        (Compression.GZIP, "gzip"),
        (Compression.ZSTD, "zstd"),
    ],
)
def test_display(member, text):
    assert str(member) == text


@pytest.mark.parametrize(
    "name, member",
    [
        ("Uncompressed", Compression.UNCOMPRESSED),
        ("Gzip", Compression.GZIP),
        ("zstd", Compression.ZSTD),
    ],
)
def test_from_name(name, member):
    assert Compression(name) is member


def test_from_unknown_name():
    with pytest.raises(ValueError):
        Compression("lz4")


@pytest.mark.parametrize("media_type", ["", "foo", "foo/ bar"])
def test_media_type_rejected(media_type):
    with pytest.raises(ValueError) as excinfo:
        compression_for_media_type(media_type)
    assert str(excinfo.value) == f"{ERR_BAD_MEDIA_TYPE}: {media_type}"


@pytest.mark.parametrize(
    "media_type, expected",
    [
        (IMAGE_LAYER_MEDIA_TYPE, Compression.UNCOMPRESSED),
        (
            "application/vnd.oci.image.layer.nondistributable.v1.tar",
            Compression.UNCOMPRESSED,
        ),
        (IMAGE_DOCKER_LAYER_GZIP_MEDIA_TYPE, Compression.GZIP),
        (IMAGE_LAYER_GZIP_MEDIA_TYPE, Compression.GZIP),
        (
            "application/vnd.oci.image.layer.nondistributable.v1.tar+gzip",
            Compression.GZIP,
        ),
        ("application/vnd.oci.image.layer.v1.tar+gzip", Compression.GZIP),
        ("application/vnd.oci.image.layer.v1.tar+zstd", Compression.ZSTD),
        (
            "application/vnd.oci.image.layer.nondistributable.v1.tar+zstd",
            Compression.ZSTD,
        ),
    ],
)
def test_media_type_accepted(media_type, expected):
    assert compression_for_media_type(media_type) is expected