"""ustar-archive - read, extract and build POSIX ustar tar archives."""

__version__ = "0.1.0"

from .archive import Archive
from .core.types import ArchiveConfig
from .exceptions import (
    AccessDeniedError,
    ArchiveError,
    ArchiveIOError,
    ArchiveNotADirectoryError,
    EntryIndexError,
    FormatError,
    MissingPathError,
    NotFoundError,
    UnknownTypeError,
)
from .tar.entry import ArchiveEntry
from .tar.models import EntryKind, EntrySummary, Owner
from .utils.inspect import inspect_archive

__all__ = [
    "Archive",
    "ArchiveConfig",
    "ArchiveEntry",
    "EntryKind",
    "EntrySummary",
    "Owner",
    "inspect_archive",
    "ArchiveError",
    "NotFoundError",
    "AccessDeniedError",
    "ArchiveIOError",
    "ArchiveNotADirectoryError",
    "FormatError",
    "EntryIndexError",
    "UnknownTypeError",
    "MissingPathError",
]
