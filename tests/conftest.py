"""Test configuration and fixtures."""

import os

import pytest

from tests.helpers import file_member, make_ustar, special_member


@pytest.fixture
def source_tree(tmp_path):
    """Small directory tree to add to archives.

    Layout::

        src/
            a.txt      (10 bytes)
            sub/
                b.bin  (700 bytes)
    """
    root = tmp_path / "src"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"0123456789")
    (root / "sub" / "b.bin").write_bytes(bytes(range(256)) * 2 + b"x" * 188)
    return root


@pytest.fixture
def ustar_file(tmp_path):
    """Archive written by tarfile holding a directory and a file."""
    tar_path = tmp_path / "fixture.tar"
    make_ustar(
        tar_path,
        [
            special_member("data/", b"5", mode=0o755),
            file_member("data/hello.txt", b"hello, world\n", mode=0o640),
        ],
    )
    return tar_path


@pytest.fixture
def is_root():
    return hasattr(os, "geteuid") and os.geteuid() == 0


def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "posix_special: needs privileges to create device nodes"
    )
