"""Core types shared across the package."""

from .types import ArchiveConfig

__all__ = ["ArchiveConfig"]
