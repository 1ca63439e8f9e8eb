"""Utility functions for SD card imports."""

import logging
from datetime import datetime
from pathlib import Path

import psutil

logger = logging.getLogger(__name__)


def get_file_size(file_path: Path) -> int:
    """
    Get file size in bytes.

    Args:
        file_path: Path to file

    Returns:
        File size in bytes, 0 if error
    """
    try:
        return file_path.stat().st_size
    except OSError as e:
        logger.error(f"Failed to get size for {file_path}: {e}")
        return 0


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.

    Args:
        bytes_value: Size in bytes

    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.1f}{units[unit_index]}"


def format_elapsed(total_seconds: float) -> str:
    """Format a duration as '1h 2m 3s', '2m 3s' or '3s'."""
    total = int(total_seconds)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    The nearest existing ancestor is measured when the path itself
    has not been created yet.

    Args:
        path: Path to check

    Returns:
        Available space in bytes, -1 if it cannot be determined
    """
    probe = Path(path)
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent

    try:
        usage = psutil.disk_usage(str(probe))
        return usage.free
    except OSError as e:
        logger.warning(f"Failed to get disk space for {path}: {e}")
        return -1


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it if necessary.

    Concurrent workers may create the same directory; an existing
    directory counts as success.

    Args:
        path: Directory path to ensure

    Returns:
        True if directory exists or was created successfully
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def get_current_timestamp() -> str:
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat(timespec='seconds')
