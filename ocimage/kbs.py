"""Fetching confidential resources from a key broker service.

Fetched resources are cached under the storage path, in a file named by the
SHA-256 of the resource URI.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

#: Default directory holding downloaded resources.
STORAGE_PATH = "/run/image-security/kbs/"


class ResourceClient(Protocol):
    """A service that hands out resources from a key broker."""

    def get_resource(self, kbc_name: str, resource_path: str, kbs_uri: str) -> bytes:
        """Return the resource at ``resource_path``."""
        ...


def get_resource_path(uri: str) -> str:
    """Return the path component of a resource URI."""
    parts = urlsplit(uri)
    if not parts.scheme:
        raise ValueError(f"relative URL without a base: {uri!r}")
    return parts.path


class SecureChannel:
    """Channel to a key broker service, with a local cache of resources."""

    def __init__(
        self,
        aa_kbc_params: str,
        client: ResourceClient,
        storage_path: str | os.PathLike[str] = STORAGE_PATH,
    ) -> None:
        """Set up a channel from ``aa_kbc_params`` of the form ``<kbc_name>::<kbs_uri>``."""
        kbc_name, sep, kbs_uri = aa_kbc_params.partition("::")
        if not sep:
            raise ValueError("aa_kbc_params: KBC/KBS pair not found")
        if not kbc_name:
            raise ValueError("aa_kbc_params: missing KBC name")
        if not kbs_uri:
            raise ValueError("aa_kbc_params: missing KBS URI")

        self.storage_path = os.fspath(storage_path)
        os.makedirs(self.storage_path, exist_ok=True)

        if kbs_uri == "null":
            logger.warning("detected kbs uri `null`, use localhost to be placeholder")
            kbs_uri = "localhost"

        self.client = client
        self.kbc_name = kbc_name
        self.kbs_uri = kbs_uri

    def get_filepath(self, uri: str) -> str:
        """Return the local path caching the resource at ``uri``."""
        digest = hashlib.sha256(uri.encode()).hexdigest()
        return f"{self.storage_path}/{digest}"

    def check_local(self, uri: str) -> bytes | None:
        """Return the cached resource at ``uri``, or None if not downloaded."""
        path = Path(self.get_filepath(uri))
        if path.exists():
            return path.read_bytes()
        return None

    def get_resource(self, resource_uri: str) -> bytes:
        """Return the resource at ``resource_uri``, downloading it if needed.

        The KBS URI of the channel is used rather than the one in the
        resource URI.
        """
        cached = self.check_local(resource_uri)
        if cached is not None:
            return cached
        resource_path = get_resource_path(resource_uri)
        data = self.client.get_resource(self.kbc_name, resource_path, self.kbs_uri)
        Path(self.get_filepath(resource_uri)).write_bytes(data)
        return data