"""Utilities for accessing the installed smartchunk version."""

from __future__ import annotations

from functools import lru_cache
from importlib import metadata


_DISTRIBUTION_NAME = "smartchunk"


@lru_cache(maxsize=1)
def get_version() -> str:
    """Return the current smartchunk version string."""
    try:
        return metadata.version(_DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


__all__ = ["get_version", "__version__"]

__version__ = get_version()
