"""ustar archive reading, extraction and building."""

import io
import logging
import os
from typing import BinaryIO, Iterator, Optional

from .core.types import ArchiveConfig
from .exceptions import (
    AccessDeniedError,
    ArchiveIOError,
    ArchiveNotADirectoryError,
    EntryIndexError,
    MissingPathError,
    NotFoundError,
)
from .tar.entry import ArchiveEntry
from .tar.header import BLOCK_SIZE, is_header_block, normalize_name, padded_size
from .tar.models import EntryKind
from .utils.fs import LocalFileSystem

logger = logging.getLogger(__name__)

END_OF_ARCHIVE = b"\x00" * (2 * BLOCK_SIZE)


def pad_block(data: bytes) -> bytes:
    """NUL-pad data to the next block boundary."""
    return data.ljust(padded_size(len(data)), b"\x00")


def wrap_os_error(e: OSError, message: str) -> Exception:
    """Translate an OSError into the matching archive exception."""
    if isinstance(e, FileNotFoundError):
        return NotFoundError(f"{message}: {e}")
    if isinstance(e, PermissionError):
        return AccessDeniedError(f"{message}: {e}")
    return ArchiveIOError(f"{message}: {e}")


class Archive:
    """An ordered, mutable collection of ustar entries.

    File entries loaded from an archive keep the offset of their payload.
    Payloads are read back from the backing file, or from the in-memory
    image after ``build()`` or ``load_bytes()``, one read per access.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        config: Optional[ArchiveConfig] = None,
        fs: Optional[LocalFileSystem] = None,
    ) -> None:
        """Initialize an archive, loading it when a path is given.

        Args:
            path: Archive file to load
            config: Behavior switches, defaults to ArchiveConfig()
            fs: Filesystem capability, defaults to LocalFileSystem()
        """
        self.config = config or ArchiveConfig()
        self.fs = fs or LocalFileSystem()
        self.path: Optional[str] = None
        self.entries: list[ArchiveEntry] = []
        # image that loaded or built offsets point into, when not on disk
        self._data: Optional[bytes] = None

        if path is not None:
            self.load(path)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> ArchiveEntry:
        return self._entry_at(index)

    @property
    def has_image(self) -> bool:
        """Whether payload reads are served from memory instead of the backing file."""
        return self._data is not None

    def _entry_at(self, index: int) -> ArchiveEntry:
        if not 0 <= index < len(self.entries):
            raise EntryIndexError(f"Index {index} does not exist")
        return self.entries[index]

    def _scan(self, handle: BinaryIO) -> list[ArchiveEntry]:
        """Read header blocks from a stream, skipping file payloads by position."""
        entries = []
        while True:
            block = handle.read(BLOCK_SIZE)
            if len(block) < BLOCK_SIZE:
                break
            if not is_header_block(block):
                continue

            entry = ArchiveEntry.from_header(block)
            if entry.kind is EntryKind.FILE:
                entry.offset = handle.tell()
                handle.seek(padded_size(entry.size), os.SEEK_CUR)
            entries.append(entry)
        return entries

    def load(self, path: str) -> None:
        """Load the entry list from an archive file.

        Args:
            path: Archive file path

        Raises:
            NotFoundError: If the file does not exist
            AccessDeniedError: If the file is not readable
            ArchiveIOError: If the file cannot be opened or read
            FormatError: If a header has an unknown type flag
        """
        if not self.fs.exists(path):
            raise NotFoundError(f"Archive not found: {path}")
        if not self.fs.is_readable(path):
            raise AccessDeniedError(f"Cannot read archive: {path}")

        try:
            with self.fs.open_for_read(path) as handle:
                entries = self._scan(handle)
        except OSError as e:
            raise ArchiveIOError(f"Failed to read archive {path}: {e}") from e

        self.entries = entries
        self.path = path
        self._data = None
        logger.debug(f"Loaded {len(entries)} entries from {path}")

    def load_bytes(self, data: bytes, path: Optional[str] = None) -> None:
        """Load the entry list from an in-memory archive image.

        Args:
            data: Archive bytes
            path: Backing path to remember for ``save()``

        Raises:
            FormatError: If a header has an unknown type flag
        """
        self.entries = self._scan(io.BytesIO(data))
        self.path = path
        self._data = bytes(data)
        logger.debug(f"Loaded {len(self.entries)} entries from memory")

    def has_entry(self, name: str) -> bool:
        """Check whether an entry with exactly this name exists."""
        return any(entry.name == name for entry in self.entries)

    def extract_data(self, index: int) -> Optional[bytes]:
        """Return the payload of a file entry.

        Args:
            index: Entry index

        Returns:
            Payload bytes, or None for entries that are not regular files

        Raises:
            EntryIndexError: If the index is out of range
            NotFoundError: If the backing file or live path is gone
            ArchiveIOError: If reading fails
        """
        return self._read_payload(self._entry_at(index))

    def _read_payload(self, entry: ArchiveEntry) -> Optional[bytes]:
        if entry.kind is not EntryKind.FILE:
            return None

        if entry.offset is not None and self._data is not None:
            data = self._data[entry.offset : entry.offset + entry.size]
        else:
            if entry.offset is None:
                source, offset = entry.name, 0
            elif self.path is None:
                raise MissingPathError(f"Entry {entry.name} has an offset but no backing archive")
            else:
                source, offset = self.path, entry.offset

            try:
                data = self.fs.read_bytes(source, entry.size, offset)
            except OSError as e:
                raise wrap_os_error(e, f"Cannot read {source}") from e

        if len(data) != entry.size:
            raise ArchiveIOError(
                f"Short read for {entry.name}: expected {entry.size} bytes, got {len(data)}"
            )
        return data

    def _target_path(self, name: str, target_dir: str) -> str:
        target = f"{target_dir.rstrip('/')}/{name}".rstrip("/")
        root = os.path.abspath(target_dir)
        resolved = os.path.abspath(target)
        if resolved != root and not resolved.startswith(root.rstrip("/") + "/"):
            raise AccessDeniedError(f"{name} resolves outside {target_dir}")
        return target

    def _prepare_parent(self, target: str) -> None:
        parent = os.path.dirname(target)
        if not parent:
            return
        if self.fs.exists(parent):
            if not self.fs.is_directory(parent):
                raise ArchiveNotADirectoryError(f"{parent} is not a directory")
            if not self.fs.is_writable(parent):
                raise AccessDeniedError(f"{parent} is not writable")
            return
        try:
            self.fs.create_directory(parent, recursive=True)
        except OSError as e:
            raise wrap_os_error(e, f"Cannot create {parent}") from e

    def _create(
        self, entry: ArchiveEntry, target: str, link_source: Optional[str], data: Optional[bytes]
    ) -> None:
        fs = self.fs
        kind = entry.kind
        if kind is EntryKind.FILE:
            fs.write_bytes(target, data or b"")
        elif kind is EntryKind.HARD_LINK:
            fs.create_hard_link(link_source, target)
        elif kind is EntryKind.SYMLINK:
            fs.create_symlink(entry.link_name, target)
        elif kind.is_device:
            fs.create_device_node(target, kind, entry.permissions, entry.dev_major, entry.dev_minor)
        elif kind is EntryKind.DIRECTORY:
            if not fs.is_directory(target):
                fs.create_directory(target, entry.permissions)
        elif kind is EntryKind.FIFO:
            fs.create_fifo(target, entry.permissions)

    def extract(
        self,
        index: int,
        target_dir: str = ".",
        set_permissions: Optional[bool] = None,
        set_owner: Optional[bool] = None,
    ) -> str:
        """Recreate one entry below a target directory.

        Args:
            index: Entry index
            target_dir: Directory the entry name is resolved against
            set_permissions: Apply the entry's mode bits (config default: True)
            set_owner: Apply the entry's uid/gid (config default: False)

        Returns:
            Path of the created filesystem object

        Raises:
            EntryIndexError: If the index is out of range
            ArchiveNotADirectoryError: If the parent path is not a directory
            AccessDeniedError: If the parent directory is not writable, or the
                entry or its hard-link source resolves outside target_dir
            ArchiveIOError: If the object cannot be created
        """
        entry = self._entry_at(index)
        if set_permissions is None:
            set_permissions = self.config.set_permissions
        if set_owner is None:
            set_owner = self.config.set_owner

        target = self._target_path(entry.name, target_dir)
        link_source = None
        if entry.kind is EntryKind.HARD_LINK:
            link_source = self._target_path(entry.link_name, target_dir)
        self._prepare_parent(target)
        data = self.extract_data(index)

        try:
            self._create(entry, target, link_source, data)
        except OSError as e:
            raise ArchiveIOError(f"Cannot create {target}: {e}") from e

        if entry.kind in (
            EntryKind.FILE,
            EntryKind.HARD_LINK,
            EntryKind.SYMLINK,
            EntryKind.DIRECTORY,
        ):
            follow = entry.kind is not EntryKind.SYMLINK
            if set_permissions:
                try:
                    self.fs.set_permissions(target, entry.permissions, follow_symlinks=follow)
                except OSError as e:
                    logger.warning(f"Failed to set {target} to {entry.permissions:o}: {e}")
            if set_owner:
                try:
                    self.fs.set_owner(
                        target,
                        entry.owner.user_id,
                        entry.owner.group_id,
                        follow_symlinks=follow,
                    )
                except OSError as e:
                    raise wrap_os_error(e, f"Cannot change owner of {target}") from e

        logger.debug(f"Extracted {entry.name} to {target}")
        return target

    def extract_all(
        self,
        target_dir: str = ".",
        set_permissions: Optional[bool] = None,
        set_owner: Optional[bool] = None,
    ) -> list[str]:
        """Extract every entry in order.

        Returns:
            Created paths, in entry order
        """
        paths = [
            self.extract(index, target_dir, set_permissions, set_owner)
            for index in range(len(self.entries))
        ]
        logger.info(f"Extracted {len(paths)} entries to {target_dir}")
        return paths

    def add(self, path: str, recursive: bool = True) -> None:
        """Add a filesystem path to the archive.

        Adding a name that is already present does nothing.

        Args:
            path: File, directory, link, device or FIFO path
            recursive: Also add the contents of directories

        Raises:
            NotFoundError: If the path does not exist
            UnknownTypeError: If the path is not a supported file type
            FormatError: If mtime or an id does not fit its header field
            ArchiveIOError: If a directory cannot be listed
        """
        path = path.rstrip("/") or "/"
        if self.has_entry(path):
            return

        entry = ArchiveEntry.from_path(path, self.fs)
        self.entries.append(entry)

        if entry.kind is EntryKind.DIRECTORY and recursive:
            try:
                children = self.fs.list_directory(path)
            except OSError as e:
                raise wrap_os_error(e, f"Cannot list {path}") from e
            for child in children:
                self.add(f"{path.rstrip('/')}/{child}", True)

    def remove(self, index: int) -> None:
        """Remove an entry, keeping the order of the others.

        Raises:
            EntryIndexError: If the index is out of range
        """
        self._entry_at(index)
        del self.entries[index]

    def build(self) -> bytes:
        """Serialize all entries into an archive image.

        File entries get their ``offset`` pointed at their payload in the
        returned image, and later ``extract_data`` calls read from it.
        Nothing on the archive changes unless every payload is read and
        every header encoded, so a failed build can be retried.

        Returns:
            Archive bytes

        Raises:
            NotFoundError: If a live file disappeared
            ArchiveIOError: If a payload cannot be read in full
            FormatError: If a value does not fit its header field
        """
        entries = list(self.entries)
        if self.config.sort_entries:
            entries.sort(
                key=lambda entry: entry.header if entry.header is not None else entry.to_header()
            )

        chunks = []
        offsets = []
        headers = []
        position = 0
        for entry in entries:
            payload = b""
            offset = entry.offset
            if entry.kind is EntryKind.FILE:
                payload = pad_block(self._read_payload(entry) or b"")
                offset = position + BLOCK_SIZE

            header = entry.header if entry.header is not None else entry.to_header()

            offsets.append(offset)
            headers.append(header)
            chunks.append(header)
            chunks.append(payload)
            position += BLOCK_SIZE + len(payload)

        if self.config.end_of_archive:
            chunks.append(END_OF_ARCHIVE)

        data = b"".join(chunks)

        for entry, offset, header in zip(entries, offsets, headers):
            if entry.header is None:
                entry.name = normalize_name(entry.name)
                entry.header = header
            entry.offset = offset
        self.entries = entries
        self._data = data
        return data

    def save(self, path: Optional[str] = None) -> str:
        """Build the archive and write it to disk.

        Args:
            path: Target file, defaults to the remembered backing path

        Returns:
            Path written to

        Raises:
            MissingPathError: If no path is given and none is remembered
            AccessDeniedError: If the target cannot be written
            ArchiveIOError: If writing fails
        """
        target = path if path is not None else self.path
        if target is None:
            raise MissingPathError("A path is required to save a new archive")

        data = self.build()
        try:
            self.fs.write_bytes(target, data)
        except OSError as e:
            raise wrap_os_error(e, f"Cannot write {target}") from e

        self.mark_saved(target)
        return target

    def mark_saved(self, path: str) -> None:
        """Record that the last built image was written to ``path``.

        Payload reads go to that file from now on.
        """
        self.path = path
        self._data = None
        logger.info(f"Saved {len(self.entries)} entries to {path}")
