"""
SD Card Media Importer

Copies media files from one or more SD cards into a date-organized tree,
naming each card by its UUID mapping or its volume label.
"""

__version__ = "1.0.0"

from .config import Config, ImportOptions
from .identity import IdentityResolver, Volume, short_identifier
from .metadata import extract_date
from .discovery import discover
from .duplicates import DuplicateResolver
from .file_copier import FileCopier
from .importer import ImportCoordinator, ImportSummary, VolumeImporter
from .reporter import ImportReporter
from .system_tools import SystemTools

__all__ = [
    'Config',
    'ImportOptions',
    'IdentityResolver',
    'Volume',
    'short_identifier',
    'extract_date',
    'discover',
    'DuplicateResolver',
    'FileCopier',
    'ImportCoordinator',
    'ImportSummary',
    'VolumeImporter',
    'ImportReporter',
    'SystemTools',
]
