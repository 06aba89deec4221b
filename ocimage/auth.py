"""Registry credentials for image references, read from ``auth.json`` files."""

from __future__ import annotations

import base64
import binascii
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ocimage.kbs import SecureChannel
from ocimage.resource import get_resource

#: Resource description of ``auth.json``.
RESOURCE_DESCRIPTION = "Credential"

DOCKER_HUB_DOMAIN = "docker.io"
DOCKER_HUB_LEGACY_DOMAIN = "index.docker.io"
DOCKER_HUB_OFFICIAL_REPO = "library"

NAME_TOTAL_LENGTH_MAX = 255

_COMPONENT_RE = re.compile(r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*")
_DOMAIN_RE = re.compile(
    r"(?:\[[a-fA-F0-9:]+\]"
    r"|[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)*)"
    r"(?::[0-9]+)?"
)
_TAG_RE = re.compile(r"[\w][\w.-]{0,127}")
_DIGEST_RE = re.compile(
    r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"
)


@dataclass(frozen=True)
class Reference:
    """A parsed image reference."""

    registry: str
    repository: str
    tag: str | None = None
    digest: str | None = None

    def resolve_registry(self) -> str:
        """Return the registry host to contact, mapping Docker Hub to its index."""
        if self.registry == DOCKER_HUB_DOMAIN:
            return DOCKER_HUB_LEGACY_DOMAIN
        return self.registry

    def full_name(self) -> str:
        """Return the registry and repository joined by a slash."""
        if not self.registry:
            return self.repository
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        text = self.full_name()
        if self.tag is not None:
            text += f":{self.tag}"
        if self.digest is not None:
            text += f"@{self.digest}"
        return text


@dataclass(frozen=True)
class RegistryAuth:
    """Credentials for a registry: HTTP basic, or anonymous when empty."""

    username: str | None = None
    password: str | None = None

    @classmethod
    def anonymous(cls) -> RegistryAuth:
        """Return anonymous credentials."""
        return cls()

    @classmethod
    def basic(cls, username: str, password: str) -> RegistryAuth:
        """Return HTTP basic credentials."""
        return cls(username, password)

    @property
    def is_anonymous(self) -> bool:
        """Whether these are anonymous credentials."""
        return self.username is None


def _split_domain(name: str) -> tuple[str, str]:
    first, sep, rest = name.partition("/")
    if not sep or (
        "." not in first
        and ":" not in first
        and first != "localhost"
        and first.lower() == first
    ):
        registry, remainder = DOCKER_HUB_DOMAIN, name
    else:
        registry, remainder = first, rest
    if registry == DOCKER_HUB_LEGACY_DOMAIN:
        registry = DOCKER_HUB_DOMAIN
    if registry == DOCKER_HUB_DOMAIN and "/" not in remainder:
        remainder = f"{DOCKER_HUB_OFFICIAL_REPO}/{remainder}"
    return registry, remainder


def parse_reference(text: str) -> Reference:
    """Parse an image reference such as ``quay.io/org/image:tag``.

    Short Docker Hub names are expanded, so ``mysql`` becomes
    ``docker.io/library/mysql``. Raises ``ValueError`` on a malformed reference.
    """
    if not text:
        raise ValueError("repository name must have at least one component")

    name, at, digest_text = text.partition("@")
    digest: str | None = None
    if at:
        if not _DIGEST_RE.fullmatch(digest_text):
            raise ValueError(f"invalid digest format: {digest_text!r}")
        digest = digest_text

    tag: str | None = None
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        name, tag = name[:colon], name[colon + 1:]
        if not _TAG_RE.fullmatch(tag):
            raise ValueError(f"invalid tag format: {tag!r}")

    if not name:
        raise ValueError("repository name must have at least one component")

    registry, repository = _split_domain(name)
    if not _DOMAIN_RE.fullmatch(registry):
        raise ValueError(f"invalid registry: {registry!r}")
    for component in repository.split("/"):
        if not _COMPONENT_RE.fullmatch(component):
            if component.lower() != component:
                raise ValueError("repository name must be lowercase")
            raise ValueError(f"invalid reference format: {text!r}")
    if len(f"{registry}/{repository}") > NAME_TOTAL_LENGTH_MAX:
        raise ValueError(
            f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )
    return Reference(registry, repository, tag, digest)


def decode_auth(auth: str) -> tuple[str, str]:
    """Decode base64 ``<username>:<password>`` into its two parts.

    Newlines around the password are dropped. Raises ``ValueError`` if the
    value is not base64 of UTF-8 text holding a colon.
    """
    try:
        decoded = base64.b64decode(auth, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 auth: {exc}") from exc
    text = decoded.decode("utf-8")
    username, sep, rest = text.partition(":")
    if not sep:
        raise ValueError(f"Illegal auth content: {text}")
    return username, rest.strip("\n")


def auth_keys_for_key(key: str) -> list[str]:
    """Return the auth file keys matching ``key``, from best to worst.

    ``quay.io/org/image`` gives ``quay.io/org/image``, ``quay.io/org`` and
    ``quay.io``.
    """
    keys = [key]
    while (cut := key.rfind("/")) != -1:
        key = key[:cut]
        keys.append(key)
    return keys


def normalize_registry(registry: str) -> str:
    """Map the known Docker Hub hosts to ``index.docker.io``."""
    if registry in ("registry-1.docker.io", DOCKER_HUB_DOMAIN):
        return DOCKER_HUB_LEGACY_DOMAIN
    return registry


def normalize_key_to_registry(key: str) -> str:
    """Reduce an auth file key, possibly a URL, to its registry host."""
    stripped = key.removeprefix("http://")
    if key.startswith("https://"):
        stripped = key.removeprefix("https://")
    if stripped != key:
        stripped = stripped.split("/", 1)[0]
    return normalize_registry(stripped)


def parse_docker_config(data: bytes | str) -> dict[str, str]:
    """Parse an ``auth.json`` document into a map of key to base64 auth."""
    try:
        document: Any = json.loads(data)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid auth file: {exc}") from exc
    if not isinstance(document, dict) or "auths" not in document:
        raise ValueError("missing field `auths`")
    auths = document["auths"]
    if not isinstance(auths, dict):
        raise ValueError("invalid value for `auths`: expected object")
    result: dict[str, str] = {}
    for key, entry in auths.items():
        if not isinstance(entry, dict) or "auth" not in entry:
            raise ValueError(f"missing field `auth` for {key!r}")
        if not isinstance(entry["auth"], str):
            raise ValueError(f"invalid value for `auth` of {key!r}: expected string")
        result[key] = entry["auth"]
    return result


def credential_from_auth_config(
    reference: Reference, auths: Mapping[str, str]
) -> RegistryAuth:
    """Find credentials for ``reference`` among ``auths``.

    Keys are first matched against the reference's name and its prefixes,
    then by normalised registry. Returns anonymous credentials if none match.
    """
    for key in auth_keys_for_key(reference.full_name()):
        if key in auths:
            return RegistryAuth.basic(*decode_auth(auths[key]))

    registry = normalize_registry(reference.resolve_registry())
    for key, auth in auths.items():
        if normalize_key_to_registry(key) == registry:
            return RegistryAuth.basic(*decode_auth(auth))

    return RegistryAuth.anonymous()


def credential_for_reference(
    reference: Reference,
    auth_file_path: str,
    secure_channel: SecureChannel | None = None,
) -> RegistryAuth:
    """Load the auth file at ``auth_file_path`` and find credentials in it.

    The path may be a local path, a ``file://`` URI or a ``kbs://`` URI read
    through ``secure_channel``.
    """
    data = get_resource(auth_file_path, secure_channel)
    return credential_from_auth_config(reference, parse_docker_config(data))