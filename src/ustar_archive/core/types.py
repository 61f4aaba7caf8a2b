"""Configuration types for archive operations."""

from dataclasses import dataclass


@dataclass
class ArchiveConfig:
    """Behavior switches for an Archive.

    Attributes:
        sort_entries: Sort entries by encoded header bytes before building
        end_of_archive: Append two zero blocks after the last entry
        set_permissions: Default for ``extract(set_permissions=...)``
        set_owner: Default for ``extract(set_owner=...)``
        chunk_size: Read size used by the async helpers
    """

    sort_entries: bool = False
    end_of_archive: bool = False
    set_permissions: bool = True
    set_owner: bool = False
    chunk_size: int = 65536

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
