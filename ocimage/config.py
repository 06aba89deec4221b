"""Configuration of the image client."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

#: Environment variable naming the work directory.
CC_IMAGE_WORK_DIR = "CC_IMAGE_WORK_DIR"

DEFAULT_WORK_DIR = "/var/lib/image-rs/"

#: Default policy file location.
POLICY_FILE_PATH = "kbs:///default/security-policy/test"

#: Directory of the sigstore configuration; ``/run`` is normally a tmpfs in a TEE.
SIG_STORE_CONFIG_DIR = "/run/image-security/simple_signing/sigstore_config"

SIG_STORE_CONFIG_DEFAULT_FILE = "kbs:///default/sigstore-config/test"

#: Path to the gpg public key ring for signatures.
GPG_KEY_RING = "/run/image-security/simple_signing/pubkey.gpg"

#: Default location of the ``auth.json`` file.
AUTH_FILE_PATH = "kbs:///default/credential/test"

DEFAULT_MAX_CONCURRENT_DOWNLOAD = 3

DEFAULT_SNAPSHOT = "overlay"


def _default_work_dir() -> Path:
    return Path(os.environ.get(CC_IMAGE_WORK_DIR, DEFAULT_WORK_DIR))


@dataclass
class Paths:
    """Configurable file locations."""

    sigstore_config: str = SIG_STORE_CONFIG_DEFAULT_FILE
    policy_path: str = POLICY_FILE_PATH
    auth_file: str = AUTH_FILE_PATH


@dataclass
class ImageConfig:
    """Settings of the image client."""

    work_dir: Path = field(default_factory=_default_work_dir)
    default_snapshot: str = DEFAULT_SNAPSHOT
    security_validate: bool = False
    auth: bool = False
    file_paths: Paths = field(default_factory=Paths)
    max_concurrent_download: int = DEFAULT_MAX_CONCURRENT_DOWNLOAD


def _field(data: dict[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}` in {where}")
    value = data[key]
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"invalid value for `{key}`: expected unsigned integer")
    elif not isinstance(value, kind):
        raise ValueError(f"invalid value for `{key}`: expected {kind.__name__}")
    return value


def _parse_paths(value: Any) -> Paths:
    if value is None:
        return Paths()
    if not isinstance(value, dict):
        raise ValueError("invalid value for `file_paths`: expected object")
    return Paths(
        sigstore_config=_field(value, "sigstore_config", str, "file_paths"),
        policy_path=_field(value, "policy_path", str, "file_paths"),
        auth_file=_field(value, "auth_file", str, "file_paths"),
    )


def _parse_config(data: Any) -> ImageConfig:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return ImageConfig(
        work_dir=Path(_field(data, "work_dir", str, "config")),
        default_snapshot=_field(data, "default_snapshot", str, "config"),
        security_validate=_field(data, "security_validate", bool, "config"),
        auth=_field(data, "auth", bool, "config"),
        file_paths=_parse_paths(data.get("file_paths")),
        max_concurrent_download=_field(data, "max_concurrent_download", int, "config"),
    )


def load_image_config(config_path: str | os.PathLike[str]) -> ImageConfig:
    """Load an :class:`ImageConfig` from a JSON file.

    Raises ``OSError`` if the file cannot be opened and ``ValueError`` if it
    does not hold a valid configuration.
    """
    try:
        with open(config_path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise OSError(f"failed to open config file {exc}") from exc
    try:
        return _parse_config(json.loads(text))
    except ValueError as exc:
        raise ValueError(f"failed to parse config file {exc}") from exc