"""Metadata records for pulled images and layers, and their store."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

from ocimage.decoder import DEFAULT_COMPRESSION, Compression

#: File name of the metadata store.
METAFILE = "meta_store.json"


@dataclass
class LayerMeta:
    """Metadata of one image layer."""

    decoder: Compression = DEFAULT_COMPRESSION
    encrypted: bool = False
    compressed_digest: str = ""
    uncompressed_digest: str = ""
    store_path: str = ""


@dataclass
class ImageMeta:
    """Metadata of one pulled image."""

    id: str = ""
    digest: str = ""
    reference: str = ""
    image_config: dict[str, Any] = field(default_factory=dict)
    signed: bool = False
    layer_metas: list[LayerMeta] = field(default_factory=list)


@dataclass
class MetaStore:
    """Metadata database of images, layers and snapshot indexes."""

    image_db: dict[str, ImageMeta] = field(default_factory=dict)
    layer_db: dict[str, LayerMeta] = field(default_factory=dict)
    snapshot_db: dict[str, int] = field(default_factory=dict)


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ValueError(f"missing field `{key}` in {where}")
    return data[key]


def _typed(data: dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = _require(data, key, where)
    if kind is bool:
        if not isinstance(value, bool):
            raise ValueError(f"invalid value for `{key}`: expected bool")
    elif not isinstance(value, kind) or isinstance(value, bool):
        raise ValueError(f"invalid value for `{key}`: expected {kind.__name__}")
    return value


def _object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"invalid value for `{what}`: expected object")
    return value


def _parse_compression(value: Any) -> Compression:
    if not isinstance(value, str):
        raise ValueError("invalid value for `decoder`: expected string")
    try:
        return Compression(value)
    except ValueError:
        raise ValueError(f"unknown variant `{value}` for `decoder`") from None


def _parse_layer(value: Any) -> LayerMeta:
    data = _object(value, "layer meta")
    where = "layer meta"
    return LayerMeta(
        decoder=_parse_compression(_require(data, "decoder", where)),
        encrypted=_typed(data, "encrypted", bool, where),
        compressed_digest=_typed(data, "compressed_digest", str, where),
        uncompressed_digest=_typed(data, "uncompressed_digest", str, where),
        store_path=_typed(data, "store_path", str, where),
    )


def _parse_image(value: Any) -> ImageMeta:
    data = _object(value, "image meta")
    where = "image meta"
    layers = _typed(data, "layer_metas", list, where)
    return ImageMeta(
        id=_typed(data, "id", str, where),
        digest=_typed(data, "digest", str, where),
        reference=_typed(data, "reference", str, where),
        image_config=_object(_require(data, "image_config", where), "image_config"),
        signed=_typed(data, "signed", bool, where),
        layer_metas=[_parse_layer(layer) for layer in layers],
    )


def _parse_index(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("invalid value in `snapshot_db`: expected unsigned integer")
    return value


def _parse_store(data: Any) -> MetaStore:
    root = _object(data, "metastore")
    images = _object(_require(root, "image_db", "metastore"), "image_db")
    layers = _object(_require(root, "layer_db", "metastore"), "layer_db")
    snapshots = _object(_require(root, "snapshot_db", "metastore"), "snapshot_db")
    return MetaStore(
        image_db={key: _parse_image(value) for key, value in images.items()},
        layer_db={key: _parse_layer(value) for key, value in layers.items()},
        snapshot_db={key: _parse_index(value) for key, value in snapshots.items()},
    )


def load_meta_store(path: str | os.PathLike[str]) -> MetaStore:
    """Load a :class:`MetaStore` from a JSON file.

    Raises ``OSError`` if the file cannot be opened and ``ValueError`` if it
    does not hold a valid store.
    """
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise OSError(f"failed to open metastore file {exc}") from exc
    try:
        return _parse_store(json.loads(text))
    except ValueError as exc:
        raise ValueError(f"failed to parse metastore file {exc}") from exc