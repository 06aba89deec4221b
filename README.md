# ocimage

Building blocks for handling OCI container images on the host that runs them.

## What it provides

- **Layer decompression** (`ocimage.decoder`):
  - `compression_for_media_type(media_type)` maps an image layer media type to
    a `Compression` member: `UNCOMPRESSED`, `GZIP` or `ZSTD`.
  - Docker gzip layers count as OCI gzip layers.
  - Any other media type raises `ValueError`.
  - `Compression.decompress(data)` returns the decompressed bytes. It raises
    `ValueError` for `UNCOMPRESSED`.
  - `Compression.stream_decompress(reader)` wraps a binary reader in one that
    yields the decompressed stream. Uncompressed input is returned unchanged.
- **Configuration** (`ocimage.config`):
  - `ImageConfig` and `Paths` are dataclasses with the client's settings.
  - The default work directory comes from the `CC_IMAGE_WORK_DIR` environment
    variable. Without it, the default is `/var/lib/image-rs/`.
  - `load_image_config(path)` reads the settings from a JSON file. It raises
    `OSError` if the file cannot be opened and `ValueError` if the content is
    invalid.
- **Metadata store** (`ocimage.meta_store`):
  - `LayerMeta`, `ImageMeta` and `MetaStore` record pulled images, their
    layers and snapshot indexes.
  - `load_meta_store(path)` reads a store from a JSON file.
- **Runtime bundles** (`ocimage.bundle`):
  - `create_runtime_config(image_config, bundle_path)` takes an OCI image
    configuration as a dict and writes a runtime `config.json` into an
    existing bundle directory.
  - Working directory, environment, entrypoint and command go into the
    process.
  - Volumes become tmpfs mounts.
  - Labels, OS, architecture and related fields become annotations. Labels
    win over the implicit annotations.
  - It raises `FileExistsError` if the bundle already has a `config.json`.
  - `default_spec()` returns the default runtime specification it starts from.
- **Resources** (`ocimage.resource`, `ocimage.kbs`):
  - `get_resource(uri, secure_channel=None)` reads `file://` URIs and bare
    paths from disk.
  - `kbs://` URIs are passed to a `SecureChannel`.
  - `SecureChannel(aa_kbc_params, client, storage_path)` takes parameters of
    the form `<kbc_name>::<kbs_uri>` and a client that satisfies the
    `ResourceClient` protocol.
  - It caches each fetched resource under `storage_path`, in a file named by
    the SHA-256 of the resource URI.
- **Registry credentials** (`ocimage.auth`):
  - `parse_reference` parses image references into a `Reference`, expanding
    short Docker Hub names: `mysql` becomes `docker.io/library/mysql`.
  - `parse_docker_config` reads the `auths` map of an `auth.json` document.
  - `credential_from_auth_config` picks the matching `RegistryAuth` for a
    reference. It tries the reference's name and its prefixes first, then the
    normalised registry host. It falls back to anonymous.
  - `credential_for_reference` does all of this starting from a file path or
    URI.

## Installation

```
pip install ocimage
```

## Example

```python
from pathlib import Path

from ocimage.auth import parse_reference
from ocimage.bundle import create_runtime_config
from ocimage.decoder import compression_for_media_type

compression = compression_for_media_type("application/vnd.oci.image.layer.v1.tar+gzip")
layer_tar = compression.decompress(Path("layer.tar.gz").read_bytes())

bundle = Path("bundle")
bundle.mkdir(exist_ok=True)
image_config = {"architecture": "amd64", "os": "linux", "config": {"Cmd": ["sh"]}}
config_path = create_runtime_config(image_config, bundle)

reference = parse_reference("quay.io/org/image:latest")
print(reference.full_name())  # quay.io/org/image
```

## What it does not do

- It does not talk to container registries. Pulling manifests and layer
  blobs, and checking image signatures, are left to the caller.
- It does not unpack layers or mount them into a root filesystem.
- It has no network client for a key broker service. A `SecureChannel` needs
  a `ResourceClient` object supplied by the caller.
- It has no command-line program.

## Running the tests

```
pip install -e ".[test]"
pytest
```