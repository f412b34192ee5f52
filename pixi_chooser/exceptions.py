from __future__ import annotations


class PackageProviderError(Exception):
    """Raised by a package provider when the feed cannot be read."""
