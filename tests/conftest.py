"""Shared fixtures for SD card importer tests."""

import os
from pathlib import Path

import pytest

from sdcard_importer.config import ImportOptions
from sdcard_importer.metadata import MetadataExtractor
from sdcard_importer.system_tools import Ejector, IdentityLookup, LabelLookup, SystemTools


class FakeLookup(IdentityLookup, LabelLookup):
    """Identifier and label lookups answered from dicts keyed by mount path."""

    def __init__(self, identifiers=None, labels=None):
        self.identifiers = {str(k): v for k, v in (identifiers or {}).items()}
        self.labels = {str(k): v for k, v in (labels or {}).items()}

    def get_identifier(self, mount_path):
        return self.identifiers.get(str(mount_path))

    def get_label(self, mount_path):
        return self.labels.get(str(mount_path))


class FakeExtractor(MetadataExtractor):
    """Capture times keyed by file name; unknown files have no metadata."""

    name = 'fake'
    description = 'fake metadata'

    def __init__(self, dates=None):
        self.dates = dates or {}
        self.calls = []

    def capture_datetime(self, file_path):
        self.calls.append(Path(file_path).name)
        return self.dates.get(Path(file_path).name)


class FakeEjector(Ejector):
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.ejected = []

    def eject(self, mount_path):
        self.ejected.append(Path(mount_path))
        return self.succeed


def set_mtime(path, when):
    """Set a file's access and modification time to a local datetime."""
    seconds = when.timestamp()
    os.utime(path, (seconds, seconds))


@pytest.fixture
def make_card(tmp_path):
    """Factory fixture: build a fake card mount with the given files."""

    def _make(name='CARD', files=None):
        root = tmp_path / 'mnt' / name
        root.mkdir(parents=True, exist_ok=True)
        for relative_path, content in (files or {}).items():
            full_path = root / relative_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(content)
        return root

    return _make


@pytest.fixture
def target_root(tmp_path):
    """Destination library root (not created up front)."""
    return tmp_path / 'library'


@pytest.fixture
def write_config(tmp_path):
    """Factory fixture: write a mapping definition and return its path."""

    def _write(content, filename='sdcard-uuids.conf'):
        config_path = tmp_path / filename
        config_path.write_text(content, encoding='utf-8')
        return str(config_path)

    return _write


@pytest.fixture
def options(target_root):
    """Factory fixture: ImportOptions rooted at the temp library."""

    def _options(**overrides):
        return ImportOptions(target_root=target_root, **overrides)

    return _options


@pytest.fixture
def fake_tools():
    """Factory fixture: SystemTools built from fakes."""

    def _tools(identifiers=None, labels=None, dates=None, eject_succeeds=True):
        lookup = FakeLookup(identifiers, labels)
        return SystemTools(
            identity_lookup=lookup,
            label_lookup=lookup,
            ejector=FakeEjector(eject_succeeds),
            metadata_extractor=FakeExtractor(dates),
        )

    return _tools
