"""ZIP container extraction for bundles, APK sets and APKs."""

import logging
from pathlib import Path
from zipfile import BadZipFile, ZipFile

from aabconv.exceptions import ArchiveError

logger = logging.getLogger(__name__)

# ZIP file magic header (AABs, APKS and APKs are all ZIPs)
ZIP_FILE_HEADER = b"PK\x03\x04"


def is_zip_file(path: Path) -> bool:
    """Check if a file starts with the ZIP local file header."""
    try:
        with path.open("rb") as f:
            return f.read(len(ZIP_FILE_HEADER)) == ZIP_FILE_HEADER
    except OSError:
        return False


def list_entries(archive: Path) -> list[str]:
    """List entry names of a ZIP container.

    Raises:
        ArchiveError: If the archive cannot be read.
    """
    try:
        with ZipFile(archive) as zf:
            return zf.namelist()
    except (BadZipFile, OSError) as e:
        raise ArchiveError(f"Failed to read archive {archive}: {e}") from e


def _check_member(destination: Path, name: str) -> None:
    target = (destination / name).resolve()
    if target != destination and destination not in target.parents:
        raise ArchiveError(f"Archive entry escapes destination: {name}")


def extract_archive(archive: Path, destination: Path) -> list[str]:
    """Extract every entry of a ZIP container, preserving relative paths.

    Args:
        archive: Path to the ZIP container.
        destination: Target directory, created if absent.

    Returns:
        Names of the extracted entries, in archive order.

    Raises:
        ArchiveError: If the archive is corrupt, contains unsafe paths or
            cannot be written out.
    """
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()

    try:
        with ZipFile(archive) as zf:
            names = zf.namelist()
            for name in names:
                _check_member(root, name)
            zf.extractall(root)
    except ArchiveError:
        raise
    except (BadZipFile, OSError) as e:
        raise ArchiveError(f"Failed to extract {archive.name}: {e}") from e

    logger.debug("Extracted %d entries from %s to %s", len(names), archive, root)
    return names
