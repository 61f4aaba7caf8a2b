"""Example usage of the archive API, sync and async."""

import asyncio
import logging
import sys
import tempfile
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, "src")

from ustar_archive import Archive, ArchiveError, inspect_archive
from ustar_archive.aio import load_archive, read_entry_data, save_archive
from ustar_archive.utils.inspect import format_summary

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_example(workdir: Path) -> Path:
    """Archive a small tree and list it."""
    source = workdir / "source"
    (source / "docs").mkdir(parents=True)
    (source / "docs" / "readme.txt").write_text("hello from ustar-archive\n")
    (source / "link").symlink_to("docs/readme.txt")

    tar_path = workdir / "example.tar"
    archive = Archive()
    archive.add(str(source))
    archive.save(str(tar_path))
    logger.info(f"Wrote {len(archive)} entries to {tar_path}")

    for summary in inspect_archive(tar_path):
        logger.info(format_summary(summary))
    return tar_path


async def async_example(tar_path: Path, workdir: Path) -> None:
    """Reload the archive without blocking and copy it."""
    archive = await load_archive(str(tar_path))
    for index, entry in enumerate(archive):
        data = await read_entry_data(archive, index)
        if data is not None:
            logger.info(f"{entry.name}: {data!r}")

    copy_path = await save_archive(archive, str(workdir / "copy.tar"))
    logger.info(f"Copied archive to {copy_path}")


def main():
    with tempfile.TemporaryDirectory() as tmp:
        workdir = Path(tmp)
        try:
            tar_path = build_example(workdir)
            Archive(str(tar_path)).extract_all(str(workdir / "restore"))
            logger.info(f"Extracted to {workdir / 'restore'}")
            asyncio.run(async_example(tar_path, workdir))
        except ArchiveError as e:
            logger.error(f"Archive error: {e}")


if __name__ == "__main__":
    main()
