"""Capture date extraction with a fallback to file modification time."""

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import exifread

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r'^[0-9]{8}$')


@dataclass(frozen=True)
class CaptureDate:
    """Date folder for a file and where it came from."""
    value: str  # YYYYMMDD
    timestamp: Optional[datetime]  # only set when read from metadata
    source: str


class MetadataExtractor:
    """Reads the capture time embedded in a media file."""

    name = 'none'
    description = 'file modification times'

    def capture_datetime(self, file_path: Path) -> Optional[datetime]:
        """Return the embedded capture time, or None if there is none."""
        raise NotImplementedError


class ExiftoolExtractor(MetadataExtractor):
    """CreateDate / MediaCreateDate / DateTimeOriginal via exiftool."""

    name = 'exiftool'
    description = 'exiftool (preferred)'
    TAGS = ('CreateDate', 'MediaCreateDate', 'DateTimeOriginal')
    DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

    def __init__(self, executable: str = 'exiftool', timeout: int = 30):
        self.executable = executable
        self.timeout = timeout

    def capture_datetime(self, file_path: Path) -> Optional[datetime]:
        cmd = [self.executable, '-j', '-d', self.DATE_FORMAT]
        cmd += [f'-{tag}' for tag in self.TAGS]
        cmd.append(str(file_path))

        output = _run_tool(cmd, self.timeout)
        if not output:
            return None

        try:
            entries = json.loads(output)
        except ValueError:
            logger.debug(f"Unparsable exiftool output for {file_path}")
            return None

        entry = entries[0] if entries else {}
        for tag in self.TAGS:
            value = entry.get(tag)
            if not value:
                continue
            try:
                return datetime.strptime(str(value).strip(), self.DATE_FORMAT)
            except ValueError:
                logger.debug(f"Ignoring {tag}={value!r} from {file_path}")
        return None


class FfprobeExtractor(MetadataExtractor):
    """creation_time stream or container tag via ffprobe."""

    name = 'ffprobe'
    description = 'ffprobe (fallback, exiftool preferred)'

    def __init__(self, executable: str = 'ffprobe', timeout: int = 30):
        self.executable = executable
        self.timeout = timeout

    def capture_datetime(self, file_path: Path) -> Optional[datetime]:
        cmd = [
            self.executable, '-v', 'quiet', '-print_format', 'json',
            '-select_streams', 'v:0',
            '-show_entries', 'stream_tags=creation_time:format_tags=creation_time',
            str(file_path),
        ]
        output = _run_tool(cmd, self.timeout)
        if not output:
            return None

        try:
            data = json.loads(output)
        except ValueError:
            logger.debug(f"Unparsable ffprobe output for {file_path}")
            return None

        candidates = [s.get('tags', {}).get('creation_time') for s in data.get('streams', [])]
        candidates.append(data.get('format', {}).get('tags', {}).get('creation_time'))
        for value in candidates:
            if value:
                parsed = parse_creation_time(value)
                if parsed is not None:
                    return parsed
        return None


class ExifreadExtractor(MetadataExtractor):
    """EXIF date tags read in-process with exifread."""

    name = 'exifread'
    description = 'exifread (exiftool/ffprobe not found, EXIF tags only)'
    TAGS = ('EXIF DateTimeOriginal', 'EXIF DateTimeDigitized', 'Image DateTime')

    def capture_datetime(self, file_path: Path) -> Optional[datetime]:
        try:
            with open(file_path, 'rb') as f:
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logger.debug(f"Could not read EXIF from {file_path}: {e}")
            return None

        for tag_name in self.TAGS:
            tag = tags.get(tag_name)
            if tag:
                # Format: "2020:07:28 11:49:03"
                try:
                    return datetime.strptime(str(tag).strip(), '%Y:%m:%d %H:%M:%S')
                except ValueError:
                    continue
        return None


def _run_tool(cmd, timeout: int) -> str:
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"{cmd[0]} failed: {e}")
        return ''
    return result.stdout.strip()


def parse_creation_time(value: str) -> Optional[datetime]:
    """Parse an ffprobe creation_time such as 2025-10-08T12:34:56.000000Z."""
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.strptime(text[:19], '%Y-%m-%dT%H:%M:%S').replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def select_metadata_extractor(which: Callable[[str], Optional[str]] = shutil.which) -> MetadataExtractor:
    """Pick the best metadata tool available; probed once per run."""
    exiftool = which('exiftool')
    if exiftool:
        return ExiftoolExtractor(exiftool)

    ffprobe = which('ffprobe')
    if ffprobe:
        return FfprobeExtractor(ffprobe)

    return ExifreadExtractor()


def modification_date(file_path: Path) -> str:
    """Local date of the file's modification time as YYYYMMDD."""
    return datetime.fromtimestamp(Path(file_path).stat().st_mtime).strftime('%Y%m%d')


def extract_capture_date(file_path: Path, extractor: Optional[MetadataExtractor]) -> CaptureDate:
    """
    Determine the date folder for a file.

    The extractor's value is used only if it formats to exactly eight
    digits; anything else falls back to the modification time.

    Args:
        file_path: Media file on the source volume
        extractor: Tool selected for this run, or None

    Returns:
        CaptureDate for the file
    """
    if extractor is not None:
        timestamp = extractor.capture_datetime(file_path)
        if timestamp is not None:
            value = timestamp.strftime('%Y%m%d')
            if DATE_PATTERN.match(value):
                return CaptureDate(value=value, timestamp=timestamp, source=extractor.name)
            logger.debug(f"Rejected date {value!r} from {extractor.name} for {file_path}")

    return CaptureDate(value=modification_date(file_path), timestamp=None, source='mtime')


def extract_date(file_path: Path, extractor: Optional[MetadataExtractor]) -> str:
    """Capture date of a file as YYYYMMDD."""
    return extract_capture_date(file_path, extractor).value
