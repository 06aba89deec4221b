"""Fetching resources by URI from the local filesystem or a key broker."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit

from ocimage.kbs import SecureChannel


def get_resource(uri: str, secure_channel: SecureChannel | None = None) -> bytes:
    """Return the content of the resource at ``uri``.

    ``kbs://`` URIs are fetched through ``secure_channel``; ``file://`` URIs
    and URIs without a scheme are read from the local filesystem.
    """
    if "://" not in uri:
        uri = "file://" + uri
    scheme = urlsplit(uri).scheme
    if scheme == "kbs":
        if secure_channel is None:
            raise RuntimeError("Uninitialized secure channel")
        return secure_channel.get_resource(uri)
    if scheme == "file":
        return Path(urlsplit(uri).path).read_bytes()
    raise ValueError(f"not support scheme {scheme}")