import json

import pytest

from ocimage.decoder import Compression
from ocimage.meta_store import (
    METAFILE,
    ImageMeta,
    LayerMeta,
    MetaStore,
    load_meta_store,
)


def _layer(digest, decoder="Gzip", path="/layers/a"):
    return {
        "decoder": decoder,
        "encrypted": False,
        "compressed_digest": digest,
        "uncompressed_digest": digest,
        "store_path": path,
    }


def _store_data():
    layer = _layer("sha256:aaa")
    return {
        "image_db": {
            "sha256:cfg": {
                "id": "sha256:cfg",
                "digest": "sha256:img",
                "reference": "docker.io/library/busybox:latest",
                "image_config": {"os": "linux", "architecture": "amd64"},
                "signed": True,
                "layer_metas": [layer],
            }
        },
        "layer_db": {"sha256:aaa": layer},
        "snapshot_db": {"overlay": 4},
    }


def _write(tmp_path, data):
    path = tmp_path / METAFILE
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults():
    layer = LayerMeta()
    assert layer.decoder is Compression.GZIP
    assert layer.encrypted is False
    assert ImageMeta().layer_metas == []
    store = MetaStore()
    assert (store.image_db, store.layer_db, store.snapshot_db) == ({}, {}, {})


def test_default_instances_do_not_share_state():
    first = MetaStore()
    first.snapshot_db["overlay"] = 1
    assert MetaStore().snapshot_db == {}


def test_load_full_store(tmp_path):
    store = load_meta_store(_write(tmp_path, _store_data()))
    image = store.image_db["sha256:cfg"]
    assert image.reference == "docker.io/library/busybox:latest"
    assert image.signed is True
    assert image.image_config == {"os": "linux", "architecture": "amd64"}
    assert image.layer_metas == [
        LayerMeta(
            decoder=Compression.GZIP,
            encrypted=False,
            compressed_digest="sha256:aaa",
            uncompressed_digest="sha256:aaa",
            store_path="/layers/a",
        )
    ]
    assert store.layer_db["sha256:aaa"] == image.layer_metas[0]
    assert store.snapshot_db == {"overlay": 4}


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Uncompressed", Compression.UNCOMPRESSED),
        ("Gzip", Compression.GZIP),
        ("Zstd", Compression.ZSTD),
    ],
)
def test_decoder_variants(tmp_path, name, expected):
    data = {"image_db": {}, "layer_db": {"d": _layer("d", decoder=name)}, "snapshot_db": {}}
    store = load_meta_store(_write(tmp_path, data))
    assert store.layer_db["d"].decoder is expected


def test_unknown_decoder_rejected(tmp_path):
    data = {"image_db": {}, "layer_db": {"d": _layer("d", decoder="bzip2")}, "snapshot_db": {}}
    with pytest.raises(ValueError, match="failed to parse metastore file"):
        load_meta_store(_write(tmp_path, data))


def test_missing_file(tmp_path):
    with pytest.raises(OSError, match="failed to open metastore file"):
        load_meta_store(tmp_path / "does-not-exist")


def test_invalid_json(tmp_path):
    path = tmp_path / METAFILE
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="failed to parse metastore file"):
        load_meta_store(path)


@pytest.mark.parametrize("missing", ["image_db", "layer_db", "snapshot_db"])
def test_missing_top_level_field(tmp_path, missing):
    data = _store_data()
    del data[missing]
    with pytest.raises(ValueError, match=missing):
        load_meta_store(_write(tmp_path, data))


def test_missing_layer_field(tmp_path):
    data = _store_data()
    del data["layer_db"]["sha256:aaa"]["store_path"]
    with pytest.raises(ValueError, match="store_path"):
        load_meta_store(_write(tmp_path, data))


def test_negative_snapshot_index_rejected(tmp_path):
    data = _store_data()
    data["snapshot_db"]["overlay"] = -1
    with pytest.raises(ValueError, match="snapshot_db"):
        load_meta_store(_write(tmp_path, data))


def test_wrong_type_rejected(tmp_path):
    data = _store_data()
    data["image_db"]["sha256:cfg"]["signed"] = "yes"
    with pytest.raises(ValueError, match="signed"):
        load_meta_store(_write(tmp_path, data))


def test_empty_store_loads(tmp_path):
    store = load_meta_store(
        _write(tmp_path, {"image_db": {}, "layer_db": {}, "snapshot_db": {}})
    )
    assert store == MetaStore()