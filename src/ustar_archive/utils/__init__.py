"""Utility functions for ustar archives."""

from .fs import LocalFileSystem
from .validator import is_valid_archive, verify_checksum

__all__ = ["LocalFileSystem", "is_valid_archive", "verify_checksum"]
