"""Exceptions raised before an import starts.

Every exception carries the process exit code the CLI terminates with.
Per-file problems are never raised through here; they are recorded in the
volume statistics instead.
"""

from pathlib import Path
from typing import Optional


class ImporterError(Exception):
    """Base class for errors that abort a run before any file is copied."""

    exit_code = 1


class ConfigError(ImporterError):
    """Mapping definition is missing, unreadable or malformed."""

    exit_code = 4


class SourcePathError(ImporterError):
    """Source or target path cannot be used."""

    exit_code = 4


class IdentityUnavailableError(ImporterError):
    """No device identifier could be determined for a mounted volume."""

    exit_code = 4


class MissingDependencyError(ImporterError):
    """A tool the run cannot do without is not installed."""

    exit_code = 3


class UnknownCardError(ImporterError):
    """Volume identifier has no entry in a non-empty mapping."""

    exit_code = 4

    def __init__(self, mount_path: Path, identifier: str, short_identifier: str,
                 config_path: Optional[str] = None):
        self.mount_path = mount_path
        self.identifier = identifier
        self.short_identifier = short_identifier
        self.config_path = config_path
        super().__init__(f"Unknown SD card detected at: {mount_path}")

    @property
    def remediation_line(self) -> str:
        """Line to append to the mapping definition for this card."""
        return f"{self.short_identifier}=owner/cardname"

    def details(self):
        """Lines explaining the failure, ending with the line to add."""
        lines = [
            f"Unknown SD card detected at: {self.mount_path}",
            f"Full UUID: {self.identifier}",
        ]
        if self.short_identifier != self.identifier:
            lines.append(f"Short UUID: {self.short_identifier}")
        target = f" ({self.config_path})" if self.config_path else ""
        lines.append(f"Add this line to your config file{target}:")
        lines.append(f"  {self.remediation_line}")
        return lines
