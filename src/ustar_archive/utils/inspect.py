"""Archive inspection utilities."""

from pathlib import Path

from ..archive import Archive
from ..tar.entry import ArchiveEntry
from ..tar.models import EntryKind, EntrySummary


def summarize_entry(entry: ArchiveEntry) -> EntrySummary:
    """Build the listing line data for an entry."""
    owner = entry.owner
    return EntrySummary(
        name=entry.name,
        kind=entry.kind,
        size=entry.size,
        mode=entry.mode_string,
        owner=f"{owner.user_name or owner.user_id}/{owner.group_name or owner.group_id}",
        modified=entry.modified,
        link_name=entry.link_name,
    )


def format_summary(summary: EntrySummary) -> str:
    """Render a summary like ``tar -tv`` does."""
    if summary.kind in (EntryKind.SYMLINK, EntryKind.HARD_LINK):
        arrow = " -> " if summary.kind is EntryKind.SYMLINK else " link to "
        name = f"{summary.name}{arrow}{summary.link_name}"
    else:
        name = summary.name
    return (
        f"{summary.mode} {summary.owner} {summary.size:>10} "
        f"{summary.modified:%Y-%m-%d %H:%M} {name}"
    )


def inspect_archive(tar_path: Path) -> list[EntrySummary]:
    """
    List the members of an archive.

    Args:
        tar_path: Path to the archive

    Returns:
        One EntrySummary per member, in archive order

    Raises:
        NotFoundError: If the archive does not exist
        AccessDeniedError: If the archive is not readable
        FormatError: If a header has an unknown type flag
    """
    archive = Archive(str(tar_path))
    return [summarize_entry(entry) for entry in archive]
