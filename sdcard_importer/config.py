"""Configuration management for SD card imports."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import yaml

from .exceptions import ConfigError, SourcePathError
from .identity import short_identifier

logger = logging.getLogger(__name__)

DEFAULT_FORMATS: FrozenSet[str] = frozenset({
    'mp4', 'mov', 'wav', 'lrv', 'insv',
    'jpg', 'jpeg', 'heic', 'dng',
})

DEFAULT_IGNORE_FOLDERS: FrozenSet[str] = frozenset({
    '.Trashes', '.Spotlight-V100', '.fseventsd',
    'System Volume Information', '$RECYCLE.BIN', 'MISC',
})

CARDS_SECTION = '[cards]'
YAML_SUFFIXES = ('.yml', '.yaml')


@dataclass(frozen=True)
class ImportOptions:
    """Run-wide options shared read-only by every volume worker."""
    target_root: Path
    dry_run: bool = False
    eject: bool = False
    verbose: bool = False
    interactive: bool = False
    set_capture_time: bool = False
    progress: bool = False


class Config:
    """Identity mapping and file selection settings loaded from an optional file.

    Two formats are understood. The line format holds ``UUID=owner/card``
    entries, optional ``FORMATS=`` and ``IGNORE_FOLDERS=`` overrides and an
    optional ``[cards]`` marker; once the marker is present, card entries
    must follow it. Files ending in ``.yml``/``.yaml`` hold the same data
    under ``cards``, ``formats`` and ``ignore_folders`` keys.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to mapping file. If None, no mapping is in
                effect and volumes are named after their labels.
        """
        self.config_path = str(config_path) if config_path else None
        self.card_names: Dict[str, str] = {}
        self.formats: FrozenSet[str] = DEFAULT_FORMATS
        self.ignore_folders: FrozenSet[str] = DEFAULT_IGNORE_FOLDERS

        if self.config_path:
            self._load_config()

    def _load_config(self) -> None:
        """Load the mapping definition from disk."""
        path = Path(self.config_path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {self.config_path}")
        if not os.access(path, os.R_OK):
            raise ConfigError(f"Config file is not readable: {self.config_path}")

        try:
            text = path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Failed to read config file {self.config_path}: {e}") from e

        if path.suffix.lower() in YAML_SUFFIXES:
            self._parse_yaml(text)
        else:
            self._parse_lines(text)

        if self.card_names:
            logger.info(f"Loaded {len(self.card_names)} SD card mapping(s) from {self.config_path}")
        else:
            logger.info(f"No SD card mappings in {self.config_path}, using volume names")

    def _parse_lines(self, text: str) -> None:
        lines = text.splitlines()
        has_section = any(line.strip().lower() == CARDS_SECTION for line in lines)
        in_cards = not has_section

        for number, raw_line in enumerate(lines, 1):
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue

            if line.lower() == CARDS_SECTION:
                in_cards = True
                continue

            key, sep, value = line.partition('=')
            key = key.strip()
            value = value.strip()
            if not sep or not key or not value:
                logger.warning(f"Ignoring malformed line {number} in {self.config_path}: {raw_line!r}")
                continue

            setting = key.upper()
            if setting == 'FORMATS':
                self.formats = self._parse_formats(value.split(','), f"line {number}")
            elif setting == 'IGNORE_FOLDERS':
                self.ignore_folders = self._parse_folders(value.split(','), f"line {number}")
            elif not in_cards:
                raise ConfigError(
                    f"Line {number} of {self.config_path}: mapping entry '{key}' "
                    f"must appear after the {CARDS_SECTION} section marker"
                )
            else:
                self._add_card(key, value, f"line {number}")

    def _parse_yaml(self, text: str) -> None:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {self.config_path}")

        cards = data.get('cards') or {}
        if not isinstance(cards, dict):
            raise ConfigError(f"'cards' in {self.config_path} must map UUIDs to names")
        for key, value in cards.items():
            self._add_card(str(key), str(value), f"cards.{key}")

        if data.get('formats') is not None:
            self.formats = self._parse_formats(_as_list(data['formats']), 'formats')
        if data.get('ignore_folders') is not None:
            self.ignore_folders = self._parse_folders(_as_list(data['ignore_folders']), 'ignore_folders')

    def _add_card(self, identifier: str, name: str, where: str) -> None:
        name = name.strip()
        parts = PurePosixPath(name).parts
        if not name or name.startswith('/') or '..' in parts:
            raise ConfigError(
                f"Invalid card name {name!r} at {where} of {self.config_path}: "
                "names must be relative folder paths"
            )

        key = identifier.strip().upper()
        if key in self.card_names and self.card_names[key] != name:
            logger.warning(f"Duplicate mapping for {key} at {where}, using {name}")
        self.card_names[key] = name
        logger.debug(f"Loaded mapping: {key} -> {name}")

    def _parse_formats(self, values: Iterable[str], where: str) -> FrozenSet[str]:
        formats = frozenset(str(v).strip().lstrip('.').lower() for v in values if str(v).strip())
        if not formats:
            raise ConfigError(f"Empty format list at {where} of {self.config_path}")
        return formats

    def _parse_folders(self, values: Iterable[str], where: str) -> FrozenSet[str]:
        folders = frozenset(str(v).strip() for v in values if str(v).strip())
        if not folders:
            raise ConfigError(f"Empty ignore folder list at {where} of {self.config_path}")
        return folders

    def has_mapping(self) -> bool:
        """Check whether identity mapping is in effect."""
        return bool(self.card_names)

    def get_card_names(self) -> Dict[str, str]:
        """Get a copy of the UUID to display name mapping."""
        return dict(self.card_names)

    def get_formats(self) -> FrozenSet[str]:
        """Get the extensions (lower case, no dot) to import."""
        return self.formats

    def get_ignore_folders(self) -> FrozenSet[str]:
        """Get the folder names pruned from discovery."""
        return self.ignore_folders

    def lookup(self, identifier: str) -> Optional[Tuple[str, str]]:
        """
        Find the display name for a device identifier.

        The short form is tried first, then the identifier as observed.

        Returns:
            (matched key, display name) or None when the card is unknown
        """
        for key in (short_identifier(identifier).upper(), identifier.upper()):
            if key in self.card_names:
                return key, self.card_names[key]
        return None

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, cards={len(self.card_names)})"


def validate_paths(sources: Iterable[Path], target: Path) -> None:
    """
    Check source and target paths before any work starts.

    Nothing is created here; see prepare_target.

    Raises:
        SourcePathError: a source is unusable or the target is not a directory
    """
    for source in sources:
        if not Path(source).is_dir():
            raise SourcePathError(f"Source path does not exist or is not a directory: {source}")
        if not os.access(source, os.R_OK | os.X_OK):
            raise SourcePathError(f"Source path is not readable: {source}")

    target = Path(target)
    if target.exists() and not target.is_dir():
        raise SourcePathError(f"Target path is not a directory: {target}")


def prepare_target(target: Path) -> None:
    """
    Create the target directory and check that it is writable.

    Raises:
        SourcePathError: the target cannot be created or written
    """
    target = Path(target)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SourcePathError(f"Cannot create target directory: {target} ({e})") from e

    if not os.access(target, os.W_OK):
        raise SourcePathError(f"Target path is not writable: {target}")


def _as_list(value) -> List[str]:
    if isinstance(value, str):
        return value.split(',')
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    raise ConfigError(f"Expected a list, got {type(value).__name__}")
