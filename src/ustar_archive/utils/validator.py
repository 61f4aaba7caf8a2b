"""Validation utilities for ustar archive files."""

import os
from pathlib import Path

from ..exceptions import ArchiveIOError, NotFoundError
from ..tar.header import (
    BLOCK_SIZE,
    CHECKSUM,
    SIZE,
    compute_checksum,
    field,
    is_header_block,
    padded_size,
    parse_octal,
)


def is_path_exists(path: Path) -> bool:
    """Check if file path exists."""
    return path.exists()


def is_zero_block(block: bytes) -> bool:
    """Check if a block is an end-of-archive marker."""
    return len(block) == BLOCK_SIZE and not any(block)


def stored_checksum(block: bytes) -> int:
    """Checksum value written in the header's checksum field."""
    return parse_octal(field(block, CHECKSUM))


def verify_checksum(block: bytes) -> bool:
    """Check a header block's stored checksum against its contents."""
    if not is_header_block(block):
        return False
    return stored_checksum(block) == compute_checksum(block)


def is_valid_archive(tar_path: Path) -> bool:
    """Check that a file is a sequence of checksummed ustar headers.

    Payload blocks are skipped by the size recorded in each header. The
    archive must contain at least one header and every header must carry a
    valid checksum.

    Args:
        tar_path: Archive path

    Returns:
        bool: True if every header is valid

    Raises:
        NotFoundError: If the file does not exist
        ArchiveIOError: If the file cannot be read

    Examples:
        from pathlib import Path

        if not is_valid_archive(Path("backup.tar")):
            print("corrupt archive")
    """
    tar_path = Path(tar_path)
    if not is_path_exists(tar_path):
        raise NotFoundError(f"Archive does not exist: {tar_path}")

    headers = 0
    try:
        with open(tar_path, "rb") as f:
            while True:
                block = f.read(BLOCK_SIZE)
                if len(block) < BLOCK_SIZE or is_zero_block(block):
                    break
                if not verify_checksum(block):
                    return False
                headers += 1
                f.seek(padded_size(parse_octal(field(block, SIZE))), os.SEEK_CUR)
    except OSError as e:
        raise ArchiveIOError(f"Error reading archive: {e}") from e

    return headers > 0
