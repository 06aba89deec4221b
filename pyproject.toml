[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ocimage"
version = "0.1.0"
description = "OCI image layer decompression, metadata records, runtime bundle configuration and registry credential lookup"
requires-python = ">=3.10"
keywords = ["oci", "container", "image", "bundle", "registry", "credentials", "zstd", "gzip"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
    "Typing :: Typed",
]
dependencies = [
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ocimage"]

[tool.pytest.ini_options]
addopts = "-ra"
