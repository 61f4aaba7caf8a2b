"""Custom exceptions for ustar archive handling."""


class ArchiveError(Exception):
    """Base exception for all archive-related errors."""

    pass


class NotFoundError(ArchiveError, FileNotFoundError):
    """Raised when an archive or a path to add does not exist."""

    pass


class AccessDeniedError(ArchiveError, PermissionError):
    """Raised when a path cannot be read or written."""

    pass


class ArchiveIOError(ArchiveError, OSError):
    """Raised when opening, reading, writing or creating a path fails."""

    pass


class ArchiveNotADirectoryError(ArchiveError, NotADirectoryError):
    """Raised when an extraction parent exists but is not a directory."""

    pass


class FormatError(ArchiveError, ValueError):
    """Raised when a header carries an unknown type flag."""

    pass


class EntryIndexError(ArchiveError, IndexError):
    """Raised when an entry index is out of range."""

    pass


class UnknownTypeError(ArchiveError, ValueError):
    """Raised when a filesystem path is not one of the seven entry kinds."""

    pass


class MissingPathError(ArchiveError, ValueError):
    """Raised when saving without a target path."""

    pass
