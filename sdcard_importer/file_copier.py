"""File copying with timestamp preservation and progress reporting."""

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .utils import ensure_directory, format_bytes, get_available_space

logger = logging.getLogger(__name__)


class CopyOutcome(Enum):
    COPIED = 'copied'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class CopyResult:
    """Result of copying a single file."""
    outcome: CopyOutcome
    target: Path
    bytes_copied: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not CopyOutcome.FAILED


class FileCopier:
    """Copies one file at a time into a destination directory."""

    CHUNK_SIZE = 1024 * 1024

    def __init__(self, progress: bool = False):
        """
        Args:
            progress: Show a byte progress bar per file
        """
        self.progress = progress

    def copy(
        self,
        source: Path,
        target_dir: Path,
        target_name: Optional[str] = None,
        overwrite: bool = False,
        progress_position: int = 0,
    ) -> CopyResult:
        """
        Copy ``source`` into ``target_dir`` and keep its modification time.

        The directory is created first. A partially written file is left in
        place if the copy fails.

        Args:
            source: File on the card
            target_dir: Destination directory, created if missing
            target_name: File name at the destination (defaults to source name)
            overwrite: Replace an existing destination file
            progress_position: tqdm line used for the progress bar

        Returns:
            CopyResult describing what happened
        """
        target_dir = Path(target_dir)
        target = target_dir / (target_name or source.name)

        if not ensure_directory(target_dir):
            return CopyResult(CopyOutcome.FAILED, target, error=f"Cannot create directory {target_dir}")

        if target.exists() and not overwrite:
            logger.debug(f"Skip (exists): {target}")
            return CopyResult(CopyOutcome.SKIPPED, target)

        try:
            size = source.stat().st_size
        except OSError as e:
            return CopyResult(CopyOutcome.FAILED, target, error=f"Cannot read source: {e}")

        available = get_available_space(target_dir)
        if 0 <= available < size:
            msg = f"Insufficient space: need {format_bytes(size)}, have {format_bytes(available)}"
            return CopyResult(CopyOutcome.FAILED, target, error=msg)

        try:
            copied = self._copy_bytes(source, target, size, progress_position)
        except OSError as e:
            return CopyResult(CopyOutcome.FAILED, target, error=f"Copy failed: {e}")

        self._preserve_timestamps(source, target)
        logger.debug(f"Copied {source} -> {target} ({format_bytes(copied)})")
        return CopyResult(CopyOutcome.COPIED, target, bytes_copied=copied)

    def _copy_bytes(self, source: Path, target: Path, size: int, position: int) -> int:
        written = 0
        with open(source, 'rb') as src, open(target, 'wb') as dst, tqdm(
            total=size,
            unit='B',
            unit_scale=True,
            unit_divisor=1024,
            desc=source.name,
            position=position,
            leave=False,
            disable=not self.progress,
        ) as pbar:
            while True:
                chunk = src.read(self.CHUNK_SIZE)
                if not chunk:
                    break
                dst.write(chunk)
                written += len(chunk)
                pbar.update(len(chunk))
        return written

    def _preserve_timestamps(self, source: Path, target: Path) -> None:
        """Copy stat info; FAT/exFAT targets may refuse permission bits."""
        try:
            shutil.copystat(source, target)
            return
        except OSError as e:
            logger.debug(f"copystat failed for {target}: {e}")

        try:
            stat = source.stat()
            os.utime(target, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        except OSError as e:
            logger.warning(f"Could not preserve timestamps on {target}: {e}")

    def apply_capture_time(self, target: Path, timestamp: datetime) -> bool:
        """
        Set the destination's access and modification time to the capture time.

        Returns:
            True if the timestamps were updated
        """
        seconds = timestamp.timestamp()
        try:
            os.utime(target, (seconds, seconds))
        except OSError as e:
            logger.warning(f"Could not set capture time on {target}: {e}")
            return False
        logger.debug(f"Set capture time {timestamp.isoformat()} on {target}")
        return True
