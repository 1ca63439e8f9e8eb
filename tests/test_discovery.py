"""Tests for media file discovery."""

import os
from pathlib import Path
from unittest.mock import patch

from sdcard_importer.config import DEFAULT_FORMATS, DEFAULT_IGNORE_FOLDERS
from sdcard_importer.discovery import discover, is_media_file


def _names(paths):
    return sorted(p.name for p in paths)


class TestIsMediaFile:
    def test_extension_case_ignored(self):
        assert is_media_file(Path('GX010001.MP4'), {'mp4'})
        assert is_media_file(Path('photo.Jpg'), {'jpg'})

    def test_other_extensions_rejected(self):
        assert not is_media_file(Path('notes.txt'), {'mp4'})
        assert not is_media_file(Path('README'), {'mp4'})


class TestDiscover:
    """Test walking a card."""

    def test_finds_media_recursively(self, make_card):
        card = make_card(files={
            'DCIM/100GOPRO/GX010001.MP4': b'a',
            'DCIM/100GOPRO/GX010001.LRV': b'b',
            'DCIM/100GOPRO/GX010001.THM': b'c',
            'audio/take1.wav': b'd',
            'notes.txt': b'e',
        })

        found = list(discover(card, DEFAULT_FORMATS, DEFAULT_IGNORE_FOLDERS))

        assert _names(found) == ['GX010001.LRV', 'GX010001.MP4', 'take1.wav']
        assert all(p.is_absolute() for p in found)

    def test_prunes_ignored_folders(self, make_card):
        card = make_card(files={
            'MISC/old.mp4': b'a',
            '.Trashes/501/deleted.mp4': b'b',
            'DCIM/MISC/nested.mp4': b'c',
            'DCIM/keep.mp4': b'd',
        })

        found = list(discover(card, {'mp4'}, DEFAULT_IGNORE_FOLDERS))

        assert _names(found) == ['keep.mp4']

    def test_ignore_matches_exact_names_only(self, make_card):
        card = make_card(files={'MISCELLANEOUS/clip.mp4': b'a'})

        found = list(discover(card, {'mp4'}, {'MISC'}))

        assert _names(found) == ['clip.mp4']

    def test_custom_formats(self, make_card):
        card = make_card(files={'a.mp4': b'a', 'b.wav': b'b'})

        found = list(discover(card, {'.WAV'}, set()))

        assert _names(found) == ['b.wav']

    def test_unreadable_folder_skipped(self, make_card):
        card = make_card(files={'a.mp4': b'a', 'bad/b.mp4': b'b'})
        real_scandir = os.scandir

        def scandir(path='.'):
            if os.path.basename(os.fspath(path)) == 'bad':
                raise PermissionError(13, 'Permission denied', os.fspath(path))
            return real_scandir(path)

        with patch('os.scandir', side_effect=scandir):
            found = list(discover(card, {'mp4'}, set()))

        assert _names(found) == ['a.mp4']

    def test_missing_volume_yields_nothing(self, tmp_path):
        assert list(discover(tmp_path / 'gone', {'mp4'}, set())) == []
