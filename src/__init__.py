# src/__init__.py — v1
"""treescan — resumable, time-sliced tree traversal into tabular outputs."""

from treescan.version import __version__

__all__ = ["__version__"]
