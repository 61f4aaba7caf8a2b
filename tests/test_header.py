"""Tests for the ustar header codec."""

import tarfile
import time
from datetime import datetime

import pytest

from ustar_archive.exceptions import FormatError
from ustar_archive.tar.header import (
    BLOCK_SIZE,
    CHECKSUM,
    RawHeader,
    compute_checksum,
    decode_header,
    encode_header,
    field,
    is_header_block,
    normalize_name,
    pad_device,
    pad_octal,
    pad_text,
    padded_size,
    parse_mtime,
    parse_octal,
    parse_text,
    parse_type_flag,
    render_checksum,
)
from ustar_archive.tar.models import EntryKind


def make_raw(**overrides) -> RawHeader:
    values = dict(
        name="docs/readme.txt",
        mode=0o644,
        uid=1000,
        gid=100,
        size=10,
        mtime=1700000000,
        kind=EntryKind.FILE,
        link_name="",
        user_name="alice",
        group_name="users",
        dev_major=0,
        dev_minor=0,
        prefix="",
    )
    values.update(overrides)
    return RawHeader(**values)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("./a.txt", "a.txt"),
        ("/etc/passwd", "etc/passwd"),
        ("././x", "x"),
        (".//./a", "a"),
        ("///abs", "abs"),
        ("a/./b", "a/./b"),
        ("relative", "relative"),
        ("/", "/"),
    ],
)
def test_normalize_name(name, expected):
    """Leading ./ and / are stripped repeatedly."""
    assert normalize_name(name) == expected


def test_pad_octal():
    """Numeric fields are zero padded octal with a NUL terminator."""
    assert pad_octal(0o644, 8) == b"0000644\x00"
    assert pad_octal(10, 12) == b"00000000012\x00"
    assert pad_octal(0, 8) == b"0000000\x00"


def test_pad_octal_overflow():
    """Values wider than the field are rejected."""
    with pytest.raises(FormatError):
        pad_octal(8**11, 12)
    with pytest.raises(FormatError):
        pad_octal(-1, 8)


def test_pad_device_is_nul_padded():
    """Device numbers are right padded with NUL, not left padded with zero."""
    assert pad_device(0, 8) == b"0" + b"\x00" * 7
    assert pad_device(8, 8) == b"10" + b"\x00" * 6


def test_pad_text_truncates():
    """Text longer than the field is truncated silently."""
    assert pad_text("x" * 40, 32) == b"x" * 32
    assert pad_text("root", 8) == b"root\x00\x00\x00\x00"


def test_render_checksum():
    """Checksum is six octal digits, NUL and a space."""
    assert render_checksum(0o4567) == b"004567\x00 "
    assert len(render_checksum(0o177777)) == 8


def test_parse_octal():
    """Octal fields tolerate NUL and space padding."""
    assert parse_octal(b"0000644\x00") == 0o644
    assert parse_octal(b"\x00" * 8) == 0
    assert parse_octal(b"  644 \x00\x00") == 0o644
    assert parse_octal(b"12\x00\x00\x00\x00\x00\x00") == 0o12


def test_parse_text():
    """Text stops at the first NUL."""
    assert parse_text(b"name\x00garbage") == "name"
    assert parse_text(b"\x00" * 10) == ""


def test_parse_type_flag():
    """Only the digits 0 to 6 are accepted."""
    assert parse_type_flag(b"5") is EntryKind.DIRECTORY
    assert parse_type_flag(b"0") is EntryKind.FILE
    for flag in (b"7", b"\x00", b"L", b"x"):
        with pytest.raises(FormatError):
            parse_type_flag(flag)


def test_parse_mtime_falls_back_to_now():
    """An unrepresentable timestamp becomes the current time."""
    before = datetime.now()
    result = parse_mtime(8**11 - 1 + 10**20)
    assert result >= before.replace(microsecond=0)


def test_parse_mtime_valid():
    assert parse_mtime(0) == datetime.fromtimestamp(0)


def test_padded_size():
    assert padded_size(0) == 0
    assert padded_size(1) == 512
    assert padded_size(512) == 512
    assert padded_size(513) == 1024


def test_encode_layout():
    """Encoded fields land at their fixed offsets."""
    block = encode_header(make_raw())

    assert len(block) == BLOCK_SIZE
    assert block[0:100] == b"docs/readme.txt".ljust(100, b"\x00")
    assert block[100:108] == b"0000644\x00"
    assert block[108:116] == b"0001750\x00"
    assert block[116:124] == b"0000144\x00"
    assert block[124:136] == b"00000000012\x00"
    assert block[136:148] == f"{1700000000:011o}".encode() + b"\x00"
    assert block[156:157] == b"0"
    assert block[257:265] == b"ustar  \x00"
    assert block[265:297] == b"alice".ljust(32, b"\x00")
    assert block[297:329] == b"users".ljust(32, b"\x00")
    assert block[329:337] == b"0" + b"\x00" * 7
    assert block[345:512] == b"\x00" * 167


def test_encode_normalizes_name():
    block = encode_header(make_raw(name="/tmp/./x"))
    assert parse_text(block[0:100]) == "tmp/./x"


def test_encode_ignores_prefix():
    """The prefix field is always written empty."""
    block = encode_header(make_raw(prefix="some/dir"))
    assert block[345:500] == b"\x00" * 155


def test_checksum_is_self_consistent():
    """Recomputing the checksum over the block matches the stored value."""
    for kind in EntryKind:
        block = encode_header(make_raw(kind=kind, size=0, link_name="target"))
        stored = parse_octal(field(block, CHECKSUM))
        assert stored == compute_checksum(block)
        assert block[148:156].endswith(b"\x00 ")


def test_tarfile_accepts_encoded_header():
    """The standard library validates the checksum and reads the fields."""
    block = encode_header(make_raw(kind=EntryKind.SYMLINK, size=0, link_name="../target"))
    info = tarfile.TarInfo.frombuf(block, "utf-8", "surrogateescape")

    assert info.name == "docs/readme.txt"
    assert info.issym()
    assert info.linkname == "../target"
    assert info.mode == 0o644
    assert info.uid == 1000
    assert info.uname == "alice"


def test_decode_tarfile_header():
    """Headers written by tarfile decode field by field."""
    info = tarfile.TarInfo("dir/file.txt")
    info.size = 1234
    info.mode = 0o600
    info.uid = 42
    info.gid = 7
    info.uname = "bob"
    info.gname = "staff"
    info.mtime = 1600000000
    block = info.tobuf(format=tarfile.USTAR_FORMAT)

    raw = decode_header(block)

    assert is_header_block(block)
    assert raw.name == "dir/file.txt"
    assert raw.size == 1234
    assert raw.mode == 0o600
    assert (raw.uid, raw.gid) == (42, 7)
    assert (raw.user_name, raw.group_name) == ("bob", "staff")
    assert raw.mtime == 1600000000
    assert raw.kind is EntryKind.FILE


def test_decode_encode_preserves_fields():
    raw = make_raw(kind=EntryKind.CHAR_DEVICE, size=0, dev_major=1, dev_minor=3)
    assert decode_header(encode_header(raw)) == raw


def test_decode_rejects_unknown_type():
    block = bytearray(encode_header(make_raw()))
    block[156:157] = b"7"
    with pytest.raises(FormatError, match="Unknown type flag"):
        decode_header(bytes(block))


def test_decode_rejects_short_block():
    with pytest.raises(FormatError):
        decode_header(b"\x00" * 100)


def test_is_header_block():
    assert is_header_block(encode_header(make_raw()))
    assert not is_header_block(b"\x00" * BLOCK_SIZE)
    assert not is_header_block(b"ustar")


def test_mtime_round_trip():
    now = int(time.time())
    raw = decode_header(encode_header(make_raw(mtime=now)))
    assert raw.mtime == now
