"""Local file-based depot implementation."""

from certdepot.infrastructure.implementations.local.depot import FileDepot

__all__ = [
    "FileDepot",
]
