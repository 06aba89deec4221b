"""Conversion of an OCI image configuration into a runtime bundle config."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

BUNDLE_CONFIG = "config.json"
BUNDLE_ROOTFS = "rootfs"
BUNDLE_HOSTNAME = "image-rs"

ANNOTATION_OS = "org.opencontainers.image.os"
ANNOTATION_OS_VERSION = "org.opencontainers.image.os.version"
ANNOTATION_OS_FEATURES = "org.opencontainers.image.os.features"
ANNOTATION_ARCH = "org.opencontainers.image.architecture"
ANNOTATION_VARIANT = "org.opencontainers.image.variant"
ANNOTATION_AUTHOR = "org.opencontainers.image.author"
ANNOTATION_CREATED = "org.opencontainers.image.created"
ANNOTATION_STOP_SIGNAL = "org.opencontainers.image.stopSignal"
ANNOTATION_EXPOSED_PORTS = "org.opencontainers.image.exposedPorts"

#: Values assumed for an image configuration that leaves them out.
DEFAULT_OS = "linux"
DEFAULT_ARCHITECTURE = "amd64"

#: Mount options of the tmpfs mounts created for image volumes.
VOLUME_MOUNT_OPTIONS = ("nosuid", "noexec", "nodev", "relatime", "rw")

_DEFAULT_CAPABILITIES = ["CAP_AUDIT_WRITE", "CAP_KILL", "CAP_NET_BIND_SERVICE"]


def _default_process() -> dict[str, Any]:
    return {
        "terminal": False,
        "user": {"uid": 0, "gid": 0},
        "args": ["sh"],
        "env": [
            "PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
            "TERM=xterm",
        ],
        "cwd": "/",
        "capabilities": {
            kind: list(_DEFAULT_CAPABILITIES)
            for kind in ("bounding", "effective", "inheritable", "permitted", "ambient")
        },
        "rlimits": [{"type": "RLIMIT_NOFILE", "hard": 1024, "soft": 1024}],
        "noNewPrivileges": True,
    }


def _mount(destination: str, kind: str, source: str | None, options: list[str]) -> dict[str, Any]:
    mount: dict[str, Any] = {"destination": destination, "type": kind}
    if source is not None:
        mount["source"] = source
    mount["options"] = options
    return mount


def _default_mounts() -> list[dict[str, Any]]:
    return [
        _mount("/proc", "proc", "proc", []),
        _mount("/dev", "tmpfs", "tmpfs", ["nosuid", "strictatime", "mode=755", "size=65536k"]),
        _mount(
            "/dev/pts",
            "devpts",
            "devpts",
            ["nosuid", "noexec", "newinstance", "ptmxmode=0666", "mode=0620", "gid=5"],
        ),
        _mount("/dev/shm", "tmpfs", "shm", ["nosuid", "noexec", "nodev", "mode=1777", "size=65536k"]),
        _mount("/dev/mqueue", "mqueue", "mqueue", ["nosuid", "noexec", "nodev"]),
        _mount("/sys", "sysfs", "sysfs", ["nosuid", "noexec", "nodev", "ro"]),
        _mount("/sys/fs/cgroup", "cgroup", "cgroup", ["nosuid", "noexec", "nodev", "relatime", "ro"]),
    ]


def default_spec() -> dict[str, Any]:
    """Return a default OCI runtime specification."""
    return {
        "ociVersion": "1.0.2-dev",
        "root": {"path": BUNDLE_ROOTFS, "readonly": True},
        "mounts": _default_mounts(),
        "process": _default_process(),
        "hostname": "youki",
        "linux": {
            "namespaces": [
                {"type": kind}
                for kind in ("pid", "network", "ipc", "uts", "mount", "cgroup")
            ],
            "maskedPaths": [
                "/proc/acpi",
                "/proc/asound",
                "/proc/kcore",
                "/proc/keys",
                "/proc/latency_stats",
                "/proc/timer_list",
                "/proc/timer_stats",
                "/proc/sched_debug",
                "/sys/firmware",
                "/proc/scsi",
            ],
            "readonlyPaths": [
                "/proc/bus",
                "/proc/fs",
                "/proc/irq",
                "/proc/sys",
                "/proc/sysrq-trigger",
            ],
        },
    }


def _names(value: Any) -> list[str]:
    """Return the entries of a JSON set, given as an object or a list."""
    if value is None:
        return []
    if isinstance(value, dict):
        return list(value)
    return list(value)


def create_runtime_config(
    image_config: dict[str, Any], bundle_path: str | os.PathLike[str]
) -> Path:
    """Write ``config.json`` for ``image_config`` into ``bundle_path``.

    ``image_config`` is an ``application/vnd.oci.image.config.v1+json``
    document. Raises ``FileExistsError`` if the bundle already has a config.
    Returns the path of the written file.
    """
    spec = default_spec()
    annotations: dict[str, str] = {}
    labels: dict[str, str] = {}

    spec["hostname"] = BUNDLE_HOSTNAME

    config = image_config.get("config")
    if config is not None:
        process = _default_process()
        if config.get("WorkingDir") is not None:
            process["cwd"] = config["WorkingDir"]
        if config.get("Env") is not None:
            process["env"] = list(config["Env"])
        args = [*(config.get("Entrypoint") or []), *(config.get("Cmd") or [])]
        if args:
            process["args"] = args
        spec["process"] = process

        if config.get("Labels") is not None:
            labels = dict(config["Labels"])
            annotations.update(labels)
        if ANNOTATION_STOP_SIGNAL not in labels and config.get("StopSignal") is not None:
            annotations[ANNOTATION_STOP_SIGNAL] = config["StopSignal"]

        if config.get("ExposedPorts") is not None:
            annotations[ANNOTATION_EXPOSED_PORTS] = ",".join(_names(config["ExposedPorts"]))

        if config.get("Volumes") is not None:
            mounts = [
                _mount(volume, "tmpfs", None, list(VOLUME_MOUNT_OPTIONS))
                for volume in _names(config["Volumes"])
            ]
            if mounts:
                spec["mounts"] = mounts + spec.get("mounts", [])

    optional = {
        ANNOTATION_OS_VERSION: image_config.get("os.version"),
        ANNOTATION_VARIANT: image_config.get("variant"),
        ANNOTATION_AUTHOR: image_config.get("author"),
        ANNOTATION_CREATED: image_config.get("created"),
    }
    if ANNOTATION_OS not in labels:
        annotations[ANNOTATION_OS] = image_config.get("os") or DEFAULT_OS
    if ANNOTATION_OS_VERSION not in labels and optional[ANNOTATION_OS_VERSION] is not None:
        annotations[ANNOTATION_OS_VERSION] = optional[ANNOTATION_OS_VERSION]
    features = image_config.get("os.features")
    if ANNOTATION_OS_FEATURES not in labels and features is not None:
        annotations[ANNOTATION_OS_FEATURES] = json.dumps(features, separators=(",", ":"))
    if ANNOTATION_ARCH not in labels:
        annotations[ANNOTATION_ARCH] = image_config.get("architecture") or DEFAULT_ARCHITECTURE
    for key in (ANNOTATION_VARIANT, ANNOTATION_AUTHOR, ANNOTATION_CREATED):
        if key not in labels and optional[key] is not None:
            annotations[key] = optional[key]

    spec["annotations"] = annotations
    bundle_config = Path(bundle_path) / BUNDLE_CONFIG
    try:
        with open(bundle_config, "x", encoding="utf-8") as handle:
            json.dump(spec, handle)
    except FileExistsError:
        raise FileExistsError(f"OCI config file already exists: {bundle_config}") from None
    return bundle_config