"""Test helpers for building fixture archives."""

import io
import tarfile

from ustar_archive.utils.fs import LocalFileSystem


def file_member(name: str, data: bytes, mode: int = 0o644) -> tuple[tarfile.TarInfo, bytes]:
    """Regular file member for make_ustar."""
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    info.mtime = 1700000000
    return info, data


def special_member(name: str, type_flag: bytes, **attrs) -> tuple[tarfile.TarInfo, None]:
    """Directory, link, device or FIFO member for make_ustar."""
    info = tarfile.TarInfo(name)
    info.type = type_flag
    info.mode = attrs.pop("mode", 0o755)
    info.mtime = 1700000000
    for key, value in attrs.items():
        setattr(info, key, value)
    return info, None


def make_ustar(tar_path, members) -> None:
    """Write a ustar archive with the standard library tarfile module."""
    with tarfile.open(tar_path, "w", format=tarfile.USTAR_FORMAT) as tar:
        for info, data in members:
            tar.addfile(info, fileobj=io.BytesIO(data) if data is not None else None)


class RecordingFileSystem(LocalFileSystem):
    """LocalFileSystem that records privileged calls instead of making them."""

    def __init__(self, fail_chmod: bool = False) -> None:
        self.fail_chmod = fail_chmod
        self.device_nodes: list[tuple] = []
        self.owners: list[tuple] = []

    def create_device_node(self, path, kind, mode, major, minor) -> None:
        self.device_nodes.append((path, kind, mode, major, minor))

    def set_owner(self, path, uid, gid, follow_symlinks=True) -> None:
        self.owners.append((path, uid, gid))

    def set_permissions(self, path, mode, follow_symlinks=True) -> None:
        if self.fail_chmod:
            raise PermissionError(1, "Operation not permitted", path)
        super().set_permissions(path, mode, follow_symlinks)
