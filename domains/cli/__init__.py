"""Command-line interface for a locally persisted registry (`domains --help`)."""

from .main import app, main

__all__ = ["app", "main"]
