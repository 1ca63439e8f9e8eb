#!/usr/bin/env python3
"""Tests for SD card importer utilities using should/when pattern."""

from collections import namedtuple
from unittest.mock import patch

from sdcard_importer.utils import (
    ensure_directory,
    format_bytes,
    format_elapsed,
    get_available_space,
    get_current_timestamp,
    get_file_size,
)


def test_should_format_bytes_as_human_readable_when_size_provided():
    """Should format bytes as human-readable string when size is provided."""
    test_cases = [
        (0, "0B"),
        (500, "500.0B"),
        (1024, "1.0KB"),
        (1536, "1.5KB"),
        (1024 * 1024, "1.0MB"),
        (2048 * 1024 * 1024, "2.0GB"),
    ]

    for byte_value, expected_format in test_cases:
        result = format_bytes(byte_value)
        assert result == expected_format, f"Expected {expected_format}, got {result} for {byte_value}"


def test_should_format_elapsed_time_when_duration_provided():
    """Should print only the units that are needed."""
    assert format_elapsed(0) == "0s"
    assert format_elapsed(42.9) == "42s"
    assert format_elapsed(125) == "2m 5s"
    assert format_elapsed(3600) == "1h 0m 0s"
    assert format_elapsed(3723) == "1h 2m 3s"


def test_should_return_size_when_file_exists(tmp_path):
    """Should return the byte size of an existing file."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'x' * 123)

    assert get_file_size(path) == 123


def test_should_return_zero_size_when_file_missing(tmp_path):
    assert get_file_size(tmp_path / 'missing.mp4') == 0


def test_should_create_nested_directory_when_missing(tmp_path):
    """Should create parents and accept an existing directory."""
    target = tmp_path / '20251008' / 'chad' / 'Hero12'

    assert ensure_directory(target)
    assert target.is_dir()
    assert ensure_directory(target), "Existing directory should count as success"


def test_should_fail_when_directory_blocked_by_file(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('x')

    assert not ensure_directory(blocker / 'child')


def test_should_measure_nearest_existing_parent_when_path_missing(tmp_path):
    """Should report free space for a target that does not exist yet."""
    usage = namedtuple('usage', 'total used free percent')(100, 40, 60, 40.0)

    with patch('sdcard_importer.utils.psutil.disk_usage', return_value=usage) as disk_usage:
        free = get_available_space(tmp_path / 'not' / 'yet')

    assert free == 60
    disk_usage.assert_called_once_with(str(tmp_path))


def test_should_return_minus_one_when_space_unknown(tmp_path):
    with patch('sdcard_importer.utils.psutil.disk_usage', side_effect=OSError('boom')):
        assert get_available_space(tmp_path) == -1


def test_should_return_iso_timestamp_when_requested():
    timestamp = get_current_timestamp()

    assert 'T' in timestamp
    assert len(timestamp) == len('2025-10-08T14:30:00')
