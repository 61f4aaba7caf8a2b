"""ustar header block encoding and decoding.

A header is a single 512-byte block of fixed-width fields. Numeric fields
are octal text, string fields are NUL padded. The checksum covers the whole
block with its own field read as eight spaces.
"""

import logging
import re
from datetime import datetime
from typing import NamedTuple

from ..exceptions import FormatError
from .models import EntryKind

logger = logging.getLogger(__name__)

BLOCK_SIZE = 512
MAGIC = b"ustar"
# magic plus version, as written by GNU tar in its ustar-compatible mode
MAGIC_FIELD = b"ustar  \x00"
CHECKSUM_PLACEHOLDER = b" " * 8

# (offset, length)
NAME = (0, 100)
MODE = (100, 8)
UID = (108, 8)
GID = (116, 8)
SIZE = (124, 12)
MTIME = (136, 12)
CHECKSUM = (148, 8)
TYPE_FLAG = (156, 1)
LINK_NAME = (157, 100)
MAGIC_AREA = (257, 5)
USER_NAME = (265, 32)
GROUP_NAME = (297, 32)
DEV_MAJOR = (329, 8)
DEV_MINOR = (337, 8)
PREFIX = (345, 155)

OCTAL_DIGITS = re.compile(rb"[0-7]*")


class RawHeader(NamedTuple):
    """Field values decoded from a header block."""

    name: str
    mode: int
    uid: int
    gid: int
    size: int
    mtime: int
    kind: EntryKind
    link_name: str
    user_name: str
    group_name: str
    dev_major: int
    dev_minor: int
    prefix: str


def field(block: bytes, span: tuple[int, int]) -> bytes:
    """Slice a field out of a header block."""
    offset, length = span
    return block[offset : offset + length]


def parse_text(raw: bytes) -> str:
    """Decode a NUL padded text field."""
    return raw.split(b"\x00", 1)[0].decode("utf-8", "surrogateescape").strip()


def parse_octal(raw: bytes) -> int:
    """Decode an octal text field, ignoring NUL and space padding.

    Only the leading run of octal digits is used; an empty field is 0.
    """
    digits = OCTAL_DIGITS.match(raw.strip(b"\x00 ")).group(0)
    return int(digits, 8) if digits else 0


def parse_type_flag(raw: bytes) -> EntryKind:
    """Map the type flag byte to an EntryKind.

    Raises:
        FormatError: If the flag is not one of ``0`` to ``6``
    """
    try:
        return EntryKind(int(raw))
    except ValueError:
        raise FormatError(f"Unknown type flag {raw!r}") from None


def parse_mtime(seconds: int) -> datetime:
    """Turn unix seconds into a datetime, falling back to now.

    A header with an unrepresentable timestamp must still load.
    """
    try:
        return datetime.fromtimestamp(seconds)
    except (OverflowError, OSError, ValueError) as e:
        logger.warning(f"Invalid modification time {seconds}: {e}")
        return datetime.now()


def pad_text(value: str, width: int) -> bytes:
    """Encode text NUL padded to width, truncating silently."""
    return value.encode("utf-8", "surrogateescape")[:width].ljust(width, b"\x00")


def pad_octal(value: int, width: int) -> bytes:
    """Encode an octal number zero padded to ``width - 1`` digits plus NUL.

    Raises:
        FormatError: If the value needs more than ``width - 1`` digits
    """
    digits = f"{value:o}"
    if value < 0 or len(digits) > width - 1:
        raise FormatError(f"Value {value} does not fit in a {width}-byte field")
    return digits.rjust(width - 1, "0").encode("ascii") + b"\x00"


def pad_device(value: int, width: int) -> bytes:
    """Encode a device number as octal text right-padded with NUL.

    Device fields are padded differently from the other numeric fields.
    """
    return f"{value:o}".encode("ascii")[:width].ljust(width, b"\x00")


def render_checksum(value: int) -> bytes:
    """Six octal digits, NUL, space."""
    return f"{value:o}".rjust(6, "0").encode("ascii") + b"\x00 "


def compute_checksum(block: bytes) -> int:
    """Sum of all unsigned bytes with the checksum field read as spaces."""
    offset, length = CHECKSUM
    blanked = block[:offset] + CHECKSUM_PLACEHOLDER + block[offset + length :]
    return sum(blanked.ljust(BLOCK_SIZE, b"\x00")[:BLOCK_SIZE])


def padded_size(size: int) -> int:
    """Round a payload length up to a whole number of blocks."""
    return -(-size // BLOCK_SIZE) * BLOCK_SIZE


def is_header_block(block: bytes) -> bool:
    """Check whether a block carries the ustar magic."""
    return len(block) == BLOCK_SIZE and field(block, MAGIC_AREA) == MAGIC


def normalize_name(name: str) -> str:
    """Strip every leading ``./`` or ``/`` from a member name.

    A name consisting only of such a prefix is left as it is.
    """
    while True:
        if name.startswith("./") and len(name) > 2:
            name = name[2:]
        elif name.startswith("/") and len(name) > 1:
            name = name[1:]
        else:
            return name


def decode_header(block: bytes) -> RawHeader:
    """Decode a 512-byte header block.

    The checksum is not verified.

    Raises:
        FormatError: If the block is short or the type flag is unknown
    """
    if len(block) != BLOCK_SIZE:
        raise FormatError(f"Header block must be {BLOCK_SIZE} bytes, got {len(block)}")

    return RawHeader(
        name=parse_text(field(block, NAME)),
        mode=parse_octal(field(block, MODE)),
        uid=parse_octal(field(block, UID)),
        gid=parse_octal(field(block, GID)),
        size=parse_octal(field(block, SIZE)),
        mtime=parse_octal(field(block, MTIME)),
        kind=parse_type_flag(field(block, TYPE_FLAG)),
        link_name=parse_text(field(block, LINK_NAME)),
        user_name=parse_text(field(block, USER_NAME)),
        group_name=parse_text(field(block, GROUP_NAME)),
        dev_major=parse_octal(field(block, DEV_MAJOR)),
        dev_minor=parse_octal(field(block, DEV_MINOR)),
        prefix=parse_text(field(block, PREFIX)),
    )


def encode_header(raw: RawHeader) -> bytes:
    """Encode field values into a 512-byte header block with checksum."""

    def assemble(checksum: bytes) -> bytes:
        return b"".join(
            [
                pad_text(normalize_name(raw.name), NAME[1]),
                pad_octal(raw.mode, MODE[1]),
                pad_octal(raw.uid, UID[1]),
                pad_octal(raw.gid, GID[1]),
                pad_octal(raw.size, SIZE[1]),
                pad_octal(raw.mtime, MTIME[1]),
                checksum,
                raw.kind.flag,
                pad_text(raw.link_name, LINK_NAME[1]),
                MAGIC_FIELD,
                pad_text(raw.user_name, USER_NAME[1]),
                pad_text(raw.group_name, GROUP_NAME[1]),
                pad_device(raw.dev_major, DEV_MAJOR[1]),
                pad_device(raw.dev_minor, DEV_MINOR[1]),
                # prefix is reserved; long names are not split on encode
                b"\x00" * PREFIX[1],
            ]
        ).ljust(BLOCK_SIZE, b"\x00")

    checksum = compute_checksum(assemble(CHECKSUM_PLACEHOLDER))
    return assemble(render_checksum(checksum))
