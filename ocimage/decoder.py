"""Layer compression types and decompression of layer data."""

from __future__ import annotations

import gzip
import io
from enum import Enum
from typing import BinaryIO

import zstandard

#: Error message prefix for a media type that has no known compression.
ERR_BAD_MEDIA_TYPE = "unhandled media type"

IMAGE_LAYER_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar"
IMAGE_LAYER_GZIP_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar+gzip"
IMAGE_LAYER_ZSTD_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar+zstd"
IMAGE_LAYER_NONDISTRIBUTABLE_MEDIA_TYPE = (
    "application/vnd.oci.image.layer.nondistributable.v1.tar"
)
IMAGE_LAYER_NONDISTRIBUTABLE_GZIP_MEDIA_TYPE = (
    "application/vnd.oci.image.layer.nondistributable.v1.tar+gzip"
)
IMAGE_LAYER_NONDISTRIBUTABLE_ZSTD_MEDIA_TYPE = (
    "application/vnd.oci.image.layer.nondistributable.v1.tar+zstd"
)
IMAGE_DOCKER_LAYER_GZIP_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar.gzip"


class Compression(Enum):
    """Compression algorithm of an image layer."""

    UNCOMPRESSED = "uncompressed"
    GZIP = "gzip"
    ZSTD = "zstd"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def _missing_(cls, value: object) -> Compression | None:
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    def decompress(self, data: bytes) -> bytes:
        """Return the decompressed form of ``data``.

        Uncompressed data is rejected with ``ValueError``.
        """
        if self is Compression.UNCOMPRESSED:
            raise ValueError("uncompressed input data")
        with self.stream_decompress(io.BytesIO(data)) as reader:
            return reader.read()

    def stream_decompress(self, reader: BinaryIO) -> BinaryIO:
        """Wrap ``reader`` in a reader yielding the decompressed stream.

        Uncompressed input is returned unchanged.
        """
        if self is Compression.GZIP:
            return gzip.GzipFile(fileobj=reader, mode="rb")
        if self is Compression.ZSTD:
            return zstandard.ZstdDecompressor().stream_reader(
                reader, read_across_frames=True
            )
        return reader


#: Compression assumed when none is recorded.
DEFAULT_COMPRESSION = Compression.GZIP

_MEDIA_TYPE_COMPRESSION = {
    IMAGE_LAYER_MEDIA_TYPE: Compression.UNCOMPRESSED,
    IMAGE_LAYER_NONDISTRIBUTABLE_MEDIA_TYPE: Compression.UNCOMPRESSED,
    IMAGE_LAYER_GZIP_MEDIA_TYPE: Compression.GZIP,
    IMAGE_LAYER_NONDISTRIBUTABLE_GZIP_MEDIA_TYPE: Compression.GZIP,
    IMAGE_LAYER_ZSTD_MEDIA_TYPE: Compression.ZSTD,
    IMAGE_LAYER_NONDISTRIBUTABLE_ZSTD_MEDIA_TYPE: Compression.ZSTD,
}


def compression_for_media_type(media_type: str) -> Compression:
    """Return the compression used by a layer of the given media type.

    Docker gzip layers are treated as OCI gzip layers. Any other media type
    that is not an image layer raises ``ValueError``.
    """
    if media_type == IMAGE_DOCKER_LAYER_GZIP_MEDIA_TYPE:
        media_type = IMAGE_LAYER_GZIP_MEDIA_TYPE
    try:
        return _MEDIA_TYPE_COMPRESSION[media_type]
    except KeyError:
        raise ValueError(f"{ERR_BAD_MEDIA_TYPE}: {media_type}") from None