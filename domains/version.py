from __future__ import annotations

"""
domains.version: the package version string.

Resolution order:
1. $DOMAINS_VERSION, for builds that stamp their own version;
2. the installed distribution metadata (`pip install` / `pip install -e .`);
3. BASE_VERSION, for a plain source checkout on sys.path.
"""

import os
from importlib import metadata

BASE_VERSION = "0.1.0"
DIST_NAME = "domains"


def build_version() -> str:
    env = os.getenv("DOMAINS_VERSION", "").strip()
    if env:
        return env
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return BASE_VERSION


__version__ = build_version()


def get_version() -> str:
    return __version__


__all__ = ["__version__", "get_version", "BASE_VERSION"]
