"""Platform adapters for volume UUIDs, labels and ejection.

Each adapter wraps one system utility and does all of the output parsing
for it, so the import pipeline only ever sees plain strings and booleans.
Tools are probed once, when ``SystemTools.detect`` runs.
"""

import logging
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil

from .metadata import MetadataExtractor, select_metadata_extractor

logger = logging.getLogger(__name__)

TOOL_TIMEOUT = 15


class IdentityLookup:
    """Returns the UUID of the volume mounted at a path."""

    def get_identifier(self, mount_path: Path) -> Optional[str]:
        raise NotImplementedError


class LabelLookup:
    """Returns the filesystem label of the volume mounted at a path."""

    def get_label(self, mount_path: Path) -> Optional[str]:
        raise NotImplementedError


class Ejector:
    """Unmounts a volume. Best effort only."""

    def eject(self, mount_path: Path) -> bool:
        raise NotImplementedError


def _run(cmd: List[str]) -> Optional[subprocess.CompletedProcess]:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=TOOL_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"{cmd[0]} failed: {e}")
        return None


def _first_line(cmd: List[str]) -> Optional[str]:
    result = _run(cmd)
    if result is None or result.returncode != 0:
        return None
    for line in result.stdout.splitlines():
        if line.strip():
            return line.strip()
    return None


def find_mount_device(mount_path: Path) -> Optional[str]:
    """
    Find the block device backing a path, like ``df <path>`` does.

    Args:
        mount_path: Mount point or any path inside it

    Returns:
        Device path such as /dev/sdb1, or None
    """
    path = os.path.realpath(str(mount_path))
    best = None
    for partition in psutil.disk_partitions(all=True):
        mountpoint = partition.mountpoint
        inside = path == mountpoint or path.startswith(mountpoint.rstrip(os.sep) + os.sep)
        if inside and (best is None or len(mountpoint) > len(best.mountpoint)):
            best = partition

    if best is None or not best.device.startswith('/dev/'):
        logger.debug(f"No block device found for {mount_path}")
        return None
    return best.device


class LsblkLookup(IdentityLookup, LabelLookup):
    """UUID and label from lsblk (Linux)."""

    def __init__(self, executable: str = 'lsblk'):
        self.executable = executable

    def _query(self, mount_path: Path, column: str) -> Optional[str]:
        device = find_mount_device(mount_path)
        if device is None:
            return None
        return _first_line([self.executable, '-n', '-o', column, device])

    def get_identifier(self, mount_path: Path) -> Optional[str]:
        return self._query(mount_path, 'UUID')

    def get_label(self, mount_path: Path) -> Optional[str]:
        return self._query(mount_path, 'LABEL')


class BlkidLookup(IdentityLookup, LabelLookup):
    """UUID and label from blkid (Linux without lsblk)."""

    def __init__(self, executable: str = 'blkid'):
        self.executable = executable

    def _query(self, mount_path: Path, tag: str) -> Optional[str]:
        device = find_mount_device(mount_path)
        if device is None:
            return None
        return _first_line([self.executable, '-s', tag, '-o', 'value', device])

    def get_identifier(self, mount_path: Path) -> Optional[str]:
        return self._query(mount_path, 'UUID')

    def get_label(self, mount_path: Path) -> Optional[str]:
        return self._query(mount_path, 'LABEL')


def parse_diskutil_info(output: str) -> Dict[str, str]:
    """Turn ``diskutil info`` output into a dict of 'Key: value' pairs."""
    info = {}
    for line in output.splitlines():
        key, sep, value = line.partition(':')
        if sep and key.strip():
            info[key.strip()] = value.strip()
    return info


class DiskutilLookup(IdentityLookup, LabelLookup):
    """UUID and volume name from diskutil (macOS)."""

    def __init__(self, executable: str = 'diskutil'):
        self.executable = executable

    def _info(self, target: str) -> Dict[str, str]:
        result = _run([self.executable, 'info', target])
        if result is None or result.returncode != 0:
            return {}
        return parse_diskutil_info(result.stdout)

    def get_identifier(self, mount_path: Path) -> Optional[str]:
        info = self._info(str(mount_path))
        uuid = info.get('Volume UUID') or info.get('Disk / Partition UUID')
        if uuid:
            return uuid

        # FAT32 volumes sometimes only report the UUID on the device node
        device = info.get('Device Node')
        if device:
            return self._info(device).get('Volume UUID') or None
        return None

    def get_label(self, mount_path: Path) -> Optional[str]:
        return self._info(str(mount_path)).get('Volume Name') or None


class UmountEjector(Ejector):
    """Unmount with umount (Linux)."""

    def __init__(self, executable: str = 'umount'):
        self.executable = executable

    def eject(self, mount_path: Path) -> bool:
        result = _run([self.executable, str(mount_path)])
        return result is not None and result.returncode == 0


class DiskutilEjector(Ejector):
    """Unmount with diskutil (macOS)."""

    def __init__(self, executable: str = 'diskutil'):
        self.executable = executable

    def eject(self, mount_path: Path) -> bool:
        result = _run([self.executable, 'unmount', str(mount_path)])
        return result is not None and result.returncode == 0


@dataclass
class SystemTools:
    """Adapters available on this machine."""
    identity_lookup: Optional[IdentityLookup] = None
    label_lookup: Optional[LabelLookup] = None
    ejector: Optional[Ejector] = None
    metadata_extractor: Optional[MetadataExtractor] = None

    @classmethod
    def detect(
        cls,
        platform: Optional[str] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> 'SystemTools':
        """Probe the system for every tool the importer can use."""
        platform = platform or sys.platform
        lookup = None
        ejector = None

        if platform == 'darwin':
            diskutil = which('diskutil')
            if diskutil:
                lookup = DiskutilLookup(diskutil)
                ejector = DiskutilEjector(diskutil)
        else:
            lsblk = which('lsblk')
            blkid = which('blkid')
            if lsblk:
                lookup = LsblkLookup(lsblk)
            elif blkid:
                lookup = BlkidLookup(blkid)
            umount = which('umount')
            if umount:
                ejector = UmountEjector(umount)

        tools = cls(
            identity_lookup=lookup,
            label_lookup=lookup,
            ejector=ejector,
            metadata_extractor=select_metadata_extractor(which),
        )
        logger.debug(f"Detected tools: {tools}")
        return tools
