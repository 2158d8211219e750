# src/__init__.py — v1
"""revycore — orchestration core for the Revy AI assistant."""

from revycore.version import __version__

__all__ = ["__version__"]
