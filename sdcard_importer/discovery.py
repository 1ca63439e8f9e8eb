"""Media file discovery on a source volume."""

import logging
import os
from pathlib import Path
from typing import AbstractSet, Generator

logger = logging.getLogger(__name__)


def is_media_file(file_path: Path, formats: AbstractSet[str]) -> bool:
    """
    Check if a file name carries one of the wanted extensions.

    Args:
        file_path: Path to file
        formats: Extensions, lower case without the dot

    Returns:
        True if the extension is in the set, ignoring case
    """
    extension = file_path.suffix.lower().lstrip('.')
    return bool(extension) and extension in formats


def discover(
    volume_path: Path,
    formats: AbstractSet[str],
    ignore_folders: AbstractSet[str],
) -> Generator[Path, None, None]:
    """
    Walk a volume and yield media files.

    Folders named in ``ignore_folders`` are pruned before descending.
    Directories that cannot be listed are skipped so a damaged card
    still yields everything that is readable.

    Args:
        volume_path: Mount point to scan
        formats: Extensions to import, lower case without the dot
        ignore_folders: Folder names to prune

    Yields:
        Paths of matching files in traversal order
    """
    formats = {ext.lower().lstrip('.') for ext in formats}

    def _on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(volume_path, onerror=_on_error):
        dirnames[:] = [name for name in dirnames if name not in ignore_folders]

        for filename in filenames:
            file_path = Path(dirpath) / filename
            if is_media_file(file_path, formats):
                yield file_path
