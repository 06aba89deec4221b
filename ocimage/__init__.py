"""OCI image layer decompression, metadata, runtime bundles, resources and registry credentials."""

__version__ = "0.1.0"
__all__ = ["auth", "bundle", "config", "decoder", "kbs", "meta_store", "resource"]