"""Data models for ustar archive entries."""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


class EntryKind(IntEnum):
    """Type flag of a ustar member (header byte 156)."""

    FILE = 0
    HARD_LINK = 1
    SYMLINK = 2
    CHAR_DEVICE = 3
    BLOCK_DEVICE = 4
    DIRECTORY = 5
    FIFO = 6

    @property
    def flag(self) -> bytes:
        """Single ASCII digit written to the header."""
        return str(self.value).encode("ascii")

    @property
    def is_device(self) -> bool:
        return self in (EntryKind.CHAR_DEVICE, EntryKind.BLOCK_DEVICE)


@dataclass(frozen=True)
class Owner:
    """Numeric ids and resolved names of an entry's owner."""

    user_id: int
    user_name: str
    group_id: int
    group_name: str


@dataclass
class EntrySummary:
    """Listing information for one archive member."""

    name: str
    kind: EntryKind
    size: int
    mode: str
    owner: str
    modified: datetime
    link_name: str = ""
