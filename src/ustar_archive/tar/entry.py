"""Archive entry model."""

import stat
from datetime import datetime
from typing import Any, Optional

from ..exceptions import NotFoundError, UnknownTypeError
from ..utils.fs import LocalFileSystem
from .header import RawHeader, decode_header, encode_header, normalize_name, parse_mtime
from .models import EntryKind, Owner


class HeaderField:
    """Attribute that invalidates the entry's cached header when assigned."""

    def __set_name__(self, owner: type, name: str) -> None:
        self.attr = f"_{name}"

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return getattr(instance, self.attr)

    def __set__(self, instance: Any, value: Any) -> None:
        setattr(instance, self.attr, value)
        instance.header = None


class ArchiveEntry:
    """A single member of a ustar archive.

    ``header`` holds the 512-byte record this entry was decoded from or last
    encoded to. Assigning any field that appears in the header clears it, so
    a non-None header always matches the fields.
    """

    name = HeaderField()
    permissions = HeaderField()
    modified = HeaderField()
    size = HeaderField()
    owner = HeaderField()
    link_name = HeaderField()
    dev_major = HeaderField()
    dev_minor = HeaderField()
    prefix = HeaderField()

    def __init__(
        self,
        name: str,
        kind: EntryKind,
        permissions: int = 0o644,
        modified: Optional[datetime] = None,
        size: int = 0,
        owner: Optional[Owner] = None,
        link_name: str = "",
        dev_major: int = 0,
        dev_minor: int = 0,
        prefix: str = "",
        offset: Optional[int] = None,
    ) -> None:
        """Initialize an entry.

        Args:
            name: Member path
            kind: Entry type; must be an EntryKind or one of its values
            permissions: Mode bits, e.g. ``0o644``
            modified: Modification time, defaults to now
            size: Payload length; forced to 0 for non-file kinds
            owner: Owner ids and names, defaults to root
            link_name: Target for hard and symbolic links
            dev_major: Device major number
            dev_minor: Device minor number
            prefix: ustar prefix field as decoded
            offset: Payload offset within the backing archive

        Raises:
            UnknownTypeError: If kind is not one of the seven entry kinds
        """
        self.header: Optional[bytes] = None
        self.kind = kind
        self.name = name
        self.permissions = permissions
        self.modified = modified if modified is not None else datetime.now()
        self.size = size if self.kind is EntryKind.FILE else 0
        self.owner = owner if owner is not None else Owner(0, "root", 0, "root")
        self.link_name = link_name
        self.dev_major = dev_major
        self.dev_minor = dev_minor
        self.prefix = prefix
        self.offset = offset

    @property
    def kind(self) -> EntryKind:
        return self._kind

    @kind.setter
    def kind(self, value: EntryKind) -> None:
        try:
            self._kind = EntryKind(value)
        except ValueError as e:
            raise UnknownTypeError(f"Unknown type {value!r}") from e
        self.header = None

    @classmethod
    def from_header(cls, block: bytes) -> "ArchiveEntry":
        """Decode an entry from a 512-byte header block.

        Args:
            block: Raw header record

        Returns:
            ArchiveEntry with ``header`` set to ``block``

        Raises:
            FormatError: If the type flag is unknown
        """
        raw = decode_header(block)
        entry = cls(
            name=raw.name,
            kind=raw.kind,
            permissions=raw.mode,
            modified=parse_mtime(raw.mtime),
            size=raw.size,
            owner=Owner(raw.uid, raw.user_name, raw.gid, raw.group_name),
            link_name=raw.link_name,
            dev_major=raw.dev_major,
            dev_minor=raw.dev_minor,
            prefix=raw.prefix,
        )
        entry.header = bytes(block)
        return entry

    @classmethod
    def from_path(cls, path: str, fs: Optional[LocalFileSystem] = None) -> "ArchiveEntry":
        """Build an entry from live filesystem metadata.

        The entry has no header and no offset; its payload is read from
        ``path`` when the archive is built.

        Args:
            path: Filesystem path, stored verbatim as the entry name
            fs: Filesystem capability, defaults to LocalFileSystem

        Raises:
            NotFoundError: If the path does not exist
            UnknownTypeError: If the path is a socket or another unsupported type
            FormatError: If mtime or an id does not fit its header field
        """
        fs = fs or LocalFileSystem()
        if not fs.exists(path):
            raise NotFoundError(f"Path not found: {path}")

        kind = fs.classify_file_type(path)
        if kind is None:
            raise UnknownTypeError(f"Unsupported file type: {path}")

        info = fs.stat(path)
        entry = cls(
            name=path,
            kind=kind,
            permissions=stat.S_IMODE(info.st_mode),
            modified=datetime.fromtimestamp(int(info.st_mtime)),
            size=info.st_size if kind is EntryKind.FILE else 0,
            owner=Owner(
                info.st_uid,
                fs.lookup_user_name(info.st_uid),
                info.st_gid,
                fs.lookup_group_name(info.st_gid),
            ),
        )

        if kind is EntryKind.SYMLINK:
            entry.link_name = fs.read_link(path)
        elif kind.is_device:
            entry.dev_major, entry.dev_minor = fs.stat_device(path)

        # numeric fields must fit their octal width
        entry.to_header()
        return entry

    def to_raw(self) -> RawHeader:
        return RawHeader(
            name=self.name,
            mode=self.permissions,
            uid=self.owner.user_id,
            gid=self.owner.group_id,
            size=self.size,
            mtime=int(self.modified.timestamp()),
            kind=self.kind,
            link_name=self.link_name,
            user_name=self.owner.user_name,
            group_name=self.owner.group_name,
            dev_major=self.dev_major,
            dev_minor=self.dev_minor,
            prefix=self.prefix,
        )

    def to_header(self) -> bytes:
        """Encode the current fields without touching the cached header."""
        return encode_header(self.to_raw())

    def update_header(self) -> bytes:
        """Regenerate and store the 512-byte header record."""
        header = encode_header(self.to_raw())
        self.name = normalize_name(self.name)
        self.header = header
        return header

    @property
    def mode_string(self) -> str:
        """``ls -l`` style type and permission string."""
        type_char = {
            EntryKind.FILE: "-",
            EntryKind.HARD_LINK: "h",
            EntryKind.SYMLINK: "l",
            EntryKind.CHAR_DEVICE: "c",
            EntryKind.BLOCK_DEVICE: "b",
            EntryKind.DIRECTORY: "d",
            EntryKind.FIFO: "p",
        }[self.kind]
        return type_char + stat.filemode(self.permissions)[1:]

    def __repr__(self) -> str:
        return (
            f"ArchiveEntry(name={self.name!r}, kind={self.kind.name}, "
            f"size={self.size}, permissions={self.permissions:o})"
        )
