"""Volume identification: UUID canonicalization and display names."""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import (
    ConfigError,
    IdentityUnavailableError,
    MissingDependencyError,
    UnknownCardError,
)

logger = logging.getLogger(__name__)

LONG_UUID = re.compile(
    r'^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$'
)
SHORT_UUID = re.compile(r'^[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}$')
UNSAFE_NAME_CHARS = re.compile(r'[^A-Za-z0-9_-]')


def short_identifier(identifier: str) -> str:
    """
    Reduce a volume UUID to the 4-4 form FAT32/exFAT cards report.

    ``XXXXXXXX-XXXX-AAAA-XXXX-BBBBXXXXXXXX`` becomes ``AAAA-BBBB``
    (upper case). Short identifiers and anything unrecognised are
    returned unchanged.

    Args:
        identifier: UUID as reported by the platform

    Returns:
        Short form of the identifier
    """
    if SHORT_UUID.match(identifier):
        return identifier

    if LONG_UUID.match(identifier):
        groups = identifier.split('-')
        return f"{groups[-3][-4:]}-{groups[-1][:4]}".upper()

    return identifier


def sanitize_name(name: str) -> str:
    """Strip everything except letters, digits, underscore and hyphen."""
    return UNSAFE_NAME_CHARS.sub('', name)


@dataclass(frozen=True)
class Volume:
    """A mounted source card, resolved once per run."""
    path: Path
    display_name: str
    identifier: Optional[str] = None
    short_identifier: Optional[str] = None
    label: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.display_name} ({self.path})"


class IdentityResolver:
    """Resolves mount paths to volumes using the mapping or the volume label."""

    def __init__(self, config, identity_lookup=None, label_lookup=None):
        """
        Args:
            config: Loaded Config; its mapping decides the naming mode
            identity_lookup: Adapter returning the UUID of a mount path
            label_lookup: Adapter returning the filesystem label of a mount path
        """
        self.config = config
        self.identity_lookup = identity_lookup
        self.label_lookup = label_lookup

    def resolve_identity(self, mount_path: Path) -> Optional[str]:
        """Return the device identifier for a mount path, or None if not found."""
        if self.identity_lookup is None:
            return None
        identifier = self.identity_lookup.get_identifier(Path(mount_path))
        return identifier.strip() if identifier and identifier.strip() else None

    def resolve_volume(self, mount_path: Path) -> Volume:
        """
        Build the Volume for a mount path.

        Raises:
            MissingDependencyError: mapping configured but no lookup tool exists
            IdentityUnavailableError: the identifier could not be read
            UnknownCardError: the identifier is not in the mapping
        """
        mount_path = Path(mount_path)

        if not self.config.has_mapping():
            label = self._volume_label(mount_path)
            name = display_name_from_label(mount_path, label)
            logger.debug(f"Using volume name for {mount_path}: {name}")
            return Volume(path=mount_path, display_name=name, label=label)

        if self.identity_lookup is None:
            raise MissingDependencyError(
                "No UUID detection tool available "
                "(diskutil on macOS, lsblk or blkid on Linux)"
            )

        identifier = self.resolve_identity(mount_path)
        if identifier is None:
            raise IdentityUnavailableError(
                f"Could not determine UUID for: {mount_path}. This may not be a "
                "mounted volume or the system lacks permission to read it"
            )

        short = short_identifier(identifier)
        if short != identifier:
            logger.debug(f"Detected UUID for {mount_path}: {identifier} (short: {short})")
        else:
            logger.debug(f"Detected UUID for {mount_path}: {identifier}")

        match = self.config.lookup(identifier)
        if match is None:
            raise UnknownCardError(mount_path, identifier, short, self.config.config_path)

        key, name = match
        logger.info(f"Found mapping: {key} -> {name}")
        return Volume(
            path=mount_path,
            display_name=name,
            identifier=identifier,
            short_identifier=short,
        )

    def resolve_volumes(self, mount_paths: Iterable[Path]) -> List[Volume]:
        """
        Resolve every source before any work starts.

        Raises:
            ConfigError: two sources resolve to the same display name
        """
        volumes = [self.resolve_volume(path) for path in mount_paths]

        counts = Counter(volume.display_name for volume in volumes)
        clashes = sorted(name for name, count in counts.items() if count > 1)
        if clashes:
            raise ConfigError(
                f"Several sources resolve to the same card name: {', '.join(clashes)}. "
                "Each source must map to a distinct name"
            )
        return volumes

    def _volume_label(self, mount_path: Path) -> Optional[str]:
        if self.label_lookup is None:
            return None
        label = self.label_lookup.get_label(mount_path)
        return label.strip() if label and label.strip() else None


def display_name_from_label(mount_path: Path, label: Optional[str] = None) -> str:
    """
    Derive a folder-safe display name for a volume without a mapping.

    Args:
        mount_path: Mount point of the volume
        label: Filesystem label, if one could be read

    Returns:
        Sanitized label or mount point name; never empty
    """
    basename = Path(mount_path).name
    name = sanitize_name(label or basename)
    if name:
        return name
    return basename or 'volume'
