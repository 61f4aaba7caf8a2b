"""ustar header codec and entry model."""

from .entry import ArchiveEntry
from .models import EntryKind, Owner

__all__ = ["ArchiveEntry", "EntryKind", "Owner"]
