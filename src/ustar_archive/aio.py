"""Async helpers for loading and saving archives."""

import asyncio
import logging
from typing import Optional

import aiofiles

from .archive import Archive
from .core.types import ArchiveConfig
from .exceptions import AccessDeniedError, ArchiveIOError, MissingPathError, NotFoundError
from .tar.models import EntryKind

logger = logging.getLogger(__name__)


async def _read_file(path: str, chunk_size: int) -> bytes:
    chunks = []
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


async def load_archive(path: str, config: Optional[ArchiveConfig] = None) -> Archive:
    """Read an archive file without blocking the event loop.

    Args:
        path: Archive file path
        config: Behavior switches for the returned archive

    Returns:
        Archive whose payload reads are served from the loaded image

    Raises:
        NotFoundError: If the file does not exist
        AccessDeniedError: If the file is not readable
        ArchiveIOError: If reading fails
        FormatError: If a header has an unknown type flag

    Examples:
        archive = await load_archive("backup.tar")
        for entry in archive:
            print(entry.name, entry.size)
    """
    archive = Archive(config=config)
    try:
        data = await _read_file(path, archive.config.chunk_size)
    except FileNotFoundError as e:
        raise NotFoundError(f"Archive not found: {path}") from e
    except PermissionError as e:
        raise AccessDeniedError(f"Cannot read archive: {path}") from e
    except OSError as e:
        raise ArchiveIOError(f"Failed to read archive {path}: {e}") from e

    archive.load_bytes(data, path)
    return archive


async def save_archive(archive: Archive, path: Optional[str] = None) -> str:
    """Build an archive and write it without blocking the event loop.

    Args:
        archive: Archive to serialize
        path: Target file, defaults to the archive's backing path

    Returns:
        Path written to

    Raises:
        MissingPathError: If no path is given and none is remembered
        ArchiveIOError: If writing fails
    """
    target = path if path is not None else archive.path
    if target is None:
        raise MissingPathError("A path is required to save a new archive")

    # building reads live files, keep it off the loop
    loop = asyncio.get_event_loop()
    data = await loop.run_in_executor(None, archive.build)

    try:
        async with aiofiles.open(target, "wb") as f:
            await f.write(data)
    except PermissionError as e:
        raise AccessDeniedError(f"Cannot write {target}: {e}") from e
    except OSError as e:
        raise ArchiveIOError(f"Cannot write {target}: {e}") from e

    archive.mark_saved(target)
    return target


async def read_entry_data(archive: Archive, index: int) -> Optional[bytes]:
    """Async counterpart of ``Archive.extract_data``.

    Payloads stored in the backing file are read with aiofiles; everything
    else is delegated to ``extract_data`` in a worker thread.
    """
    entry = archive[index]
    if entry.kind is not EntryKind.FILE:
        return None

    if entry.offset is None or archive.path is None or archive.has_image:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, archive.extract_data, index)

    try:
        async with aiofiles.open(archive.path, "rb") as f:
            await f.seek(entry.offset)
            data = await f.read(entry.size)
    except OSError as e:
        raise ArchiveIOError(f"Cannot read {archive.path}: {e}") from e

    if len(data) != entry.size:
        raise ArchiveIOError(
            f"Short read for {entry.name}: expected {entry.size} bytes, got {len(data)}"
        )
    return data
