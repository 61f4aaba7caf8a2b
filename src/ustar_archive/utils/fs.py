"""Host filesystem operations used by archives and entries.

Archive and ArchiveEntry never touch ``os`` directly; they go through a
``LocalFileSystem`` so tests can substitute the parts they need (device
nodes, ownership) without root privileges.
"""

import grp
import logging
import os
import pwd
import stat
from typing import BinaryIO

from ..tar.models import EntryKind

logger = logging.getLogger(__name__)

# mode bits or'ed with the permission bits when creating device nodes
DEVICE_MODE_BITS = {
    EntryKind.CHAR_DEVICE: stat.S_IFCHR,
    EntryKind.BLOCK_DEVICE: stat.S_IFBLK,
}


class LocalFileSystem:
    """Filesystem capability backed by the ``os`` module."""

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_readable(self, path: str) -> bool:
        return os.access(path, os.R_OK)

    def is_writable(self, path: str) -> bool:
        return os.access(path, os.W_OK)

    def create_directory(self, path: str, mode: int = 0o777, recursive: bool = False) -> None:
        if recursive:
            os.makedirs(path, mode)
        else:
            os.mkdir(path, mode)

    def open_for_read(self, path: str) -> BinaryIO:
        return open(path, "rb")

    def open_for_write(self, path: str) -> BinaryIO:
        return open(path, "wb")

    def read_bytes(self, path: str, size: int, offset: int = 0) -> bytes:
        """Read up to ``size`` bytes of a file starting at ``offset``."""
        with self.open_for_read(path) as handle:
            handle.seek(offset)
            return handle.read(size)

    def write_bytes(self, path: str, data: bytes) -> None:
        with self.open_for_write(path) as handle:
            handle.write(data)

    def create_hard_link(self, target: str, path: str) -> None:
        os.link(target, path)

    def create_symlink(self, target: str, path: str) -> None:
        os.symlink(target, path)

    def create_device_node(
        self, path: str, kind: EntryKind, mode: int, major: int, minor: int
    ) -> None:
        os.mknod(path, DEVICE_MODE_BITS[kind] | mode, os.makedev(major, minor))

    def create_fifo(self, path: str, mode: int) -> None:
        os.mkfifo(path, mode)

    def set_permissions(self, path: str, mode: int, follow_symlinks: bool = True) -> None:
        if follow_symlinks:
            os.chmod(path, mode)
        elif os.chmod in os.supports_follow_symlinks:
            os.chmod(path, mode, follow_symlinks=False)
        else:
            logger.debug(f"Cannot change mode of symlink {path} on this platform")

    def set_owner(self, path: str, uid: int, gid: int, follow_symlinks: bool = True) -> None:
        os.chown(path, uid, gid, follow_symlinks=follow_symlinks)

    def stat(self, path: str) -> os.stat_result:
        return os.lstat(path)

    def classify_file_type(self, path: str) -> EntryKind | None:
        """Map a path's lstat mode to an EntryKind, or None for sockets and the like."""
        mode = self.stat(path).st_mode
        if stat.S_ISLNK(mode):
            return EntryKind.SYMLINK
        if stat.S_ISREG(mode):
            return EntryKind.FILE
        if stat.S_ISDIR(mode):
            return EntryKind.DIRECTORY
        if stat.S_ISCHR(mode):
            return EntryKind.CHAR_DEVICE
        if stat.S_ISBLK(mode):
            return EntryKind.BLOCK_DEVICE
        if stat.S_ISFIFO(mode):
            return EntryKind.FIFO
        return None

    def read_link(self, path: str) -> str:
        return os.readlink(path)

    def list_directory(self, path: str) -> list[str]:
        """Child names, sorted, without ``.`` and ``..``."""
        return sorted(os.listdir(path))

    def lookup_user_name(self, uid: int) -> str:
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            logger.warning(f"No user name for uid {uid}")
            return str(uid)

    def lookup_group_name(self, gid: int) -> str:
        try:
            return grp.getgrgid(gid).gr_name
        except KeyError:
            logger.warning(f"No group name for gid {gid}")
            return str(gid)

    def stat_device(self, path: str) -> tuple[int, int]:
        rdev = self.stat(path).st_rdev
        return os.major(rdev), os.minor(rdev)
