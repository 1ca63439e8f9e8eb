"""Per-volume import and multi-volume coordination."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from .config import Config, ImportOptions
from .discovery import discover
from .duplicates import DecisionSource, DuplicateAction, DuplicateResolver, unique_target_path
from .file_copier import CopyOutcome, FileCopier
from .identity import Volume
from .metadata import MetadataExtractor, extract_capture_date
from .system_tools import Ejector
from .utils import format_bytes, get_file_size

logger = logging.getLogger(__name__)


class VolumeState(Enum):
    START = 'start'
    DISCOVERING = 'discovering'
    IMPORTING = 'importing'
    EJECTING = 'ejecting'
    DONE = 'done'


@dataclass
class ImportEntry:
    """What happened (or would happen, in a dry run) to one source file."""
    source: Path
    target: Optional[Path]
    date: Optional[str]
    outcome: CopyOutcome
    bytes_copied: int = 0
    renamed: bool = False
    error: Optional[str] = None
    dry_run: bool = False


@dataclass
class VolumeStats:
    """Counters for one volume, written only by that volume's importer."""
    volume: Volume
    dry_run: bool = False
    files_found: int = 0
    files_copied: int = 0
    bytes_copied: int = 0
    files_skipped: int = 0
    files_renamed: int = 0
    files_errored: int = 0
    elapsed: float = 0.0
    ejected: Optional[bool] = None
    skipped_files: List[str] = field(default_factory=list)
    errored_files: List[Tuple[str, str]] = field(default_factory=list)
    entries: List[ImportEntry] = field(default_factory=list)

    def record(self, entry: ImportEntry) -> None:
        self.entries.append(entry)
        if entry.outcome is CopyOutcome.COPIED:
            self.files_copied += 1
            self.bytes_copied += entry.bytes_copied
            if entry.renamed:
                self.files_renamed += 1
        elif entry.outcome is CopyOutcome.SKIPPED:
            self.files_skipped += 1
            self.skipped_files.append(entry.source.name)
        else:
            self.files_errored += 1
            self.errored_files.append((entry.source.name, entry.error or 'unknown error'))


class VolumeImporter:
    """Imports every media file of one volume into the date tree.

    Files land in ``<target>/<YYYYMMDD>/<display name>/<file name>``.
    A failure on one file is recorded and the loop moves on.
    """

    def __init__(
        self,
        volume: Volume,
        options: ImportOptions,
        config: Config,
        extractor: Optional[MetadataExtractor] = None,
        copier: Optional[FileCopier] = None,
        resolver: Optional[DuplicateResolver] = None,
        ejector: Optional[Ejector] = None,
        position: int = 0,
    ):
        self.volume = volume
        self.options = options
        self.config = config
        self.extractor = extractor
        self.copier = copier or FileCopier(progress=options.progress)
        self.resolver = resolver or DuplicateResolver(interactive=options.interactive)
        self.ejector = ejector
        self.position = position
        self.state = VolumeState.START
        self._planned: Set[Path] = set()

    def _transition(self, state: VolumeState) -> None:
        logger.debug(f"{self.volume.display_name}: {self.state.value} -> {state.value}")
        self.state = state

    def target_directory(self, date: str) -> Path:
        return self.options.target_root / date / self.volume.display_name

    def run(self) -> VolumeStats:
        """Discover, import and optionally eject; returns this volume's statistics."""
        start_time = time.time()
        stats = VolumeStats(volume=self.volume, dry_run=self.options.dry_run)
        self._planned = set()
        name = self.volume.display_name

        logger.info(f"Processing SD Card: {self.volume}")

        self._transition(VolumeState.DISCOVERING)
        candidates = list(discover(
            self.volume.path, self.config.get_formats(), self.config.get_ignore_folders()
        ))
        stats.files_found = len(candidates)

        if candidates:
            logger.info(f"{name}: found {len(candidates)} media file(s)")
        else:
            logger.warning(f"No media files found in {self.volume.path}")

        self._transition(VolumeState.IMPORTING)
        total = len(candidates)
        with tqdm(
            candidates,
            desc=name,
            unit='files',
            position=self.position * 2,
            disable=not self.options.progress,
        ) as pbar:
            for index, source in enumerate(pbar, 1):
                try:
                    entry = self._import_file(source, index, total)
                except Exception as e:
                    logger.error(f"{name}: failed to import {source}: {e}")
                    entry = ImportEntry(source, None, None, CopyOutcome.FAILED, error=str(e))
                stats.record(entry)

        if self.options.eject and not self.options.dry_run:
            self._transition(VolumeState.EJECTING)
            stats.ejected = self._eject()

        self._transition(VolumeState.DONE)
        stats.elapsed = time.time() - start_time
        logger.info(
            f"{'DRY RUN: ' if self.options.dry_run else ''}{name} complete: "
            f"{stats.files_copied:,} copied, {stats.files_skipped:,} skipped, "
            f"{stats.files_errored:,} failed, {format_bytes(stats.bytes_copied)}"
        )
        return stats

    def _import_file(self, source: Path, index: int, total: int) -> ImportEntry:
        name = self.volume.display_name
        capture = extract_capture_date(source, self.extractor)
        target_dir = self.target_directory(capture.value)
        target = target_dir / source.name
        logger.debug(f"{name}: [{index}/{total}] {source.name} dated {capture.value} ({capture.source})")

        overwrite = False
        renamed = False
        if self._occupied(target):
            if self.options.dry_run and self.resolver.interactive:
                logger.warning(f"[DRY RUN] File exists: {target}")
                return ImportEntry(source, target, capture.value, CopyOutcome.SKIPPED, dry_run=True)

            decision = self.resolver.resolve(source, target)
            if decision.action is DuplicateAction.SKIP:
                logger.info(f"{name}: skipped {source.name} (exists at {target_dir})")
                return ImportEntry(source, target, capture.value, CopyOutcome.SKIPPED,
                                   dry_run=self.options.dry_run)
            if decision.action is DuplicateAction.OVERWRITE:
                logger.debug(f"Overwriting: {target}")
                overwrite = True
            else:
                target = unique_target_path(target, self._planned)
                renamed = True
                logger.info(f"{name}: renaming {source.name} to {target.name}")

        if self.options.dry_run:
            size = get_file_size(source)
            self._planned.add(target)
            logger.info(f"[DRY RUN] Would copy {source} -> {target} ({format_bytes(size)})")
            return ImportEntry(source, target, capture.value, CopyOutcome.COPIED,
                               bytes_copied=size, renamed=renamed, dry_run=True)

        result = self.copier.copy(
            source,
            target.parent,
            target_name=target.name,
            overwrite=overwrite,
            progress_position=self.position * 2 + 1,
        )

        if result.outcome is CopyOutcome.FAILED:
            logger.error(f"{name}: failed to copy {source.name}: {result.error}")
        elif result.outcome is CopyOutcome.COPIED:
            logger.info(
                f"{name}: [{index}/{total}] copied {source.name} -> {target_dir} "
                f"({format_bytes(result.bytes_copied)})"
            )
            if self.options.set_capture_time and capture.timestamp is not None:
                self.copier.apply_capture_time(result.target, capture.timestamp)

        return ImportEntry(
            source,
            result.target,
            capture.value,
            result.outcome,
            bytes_copied=result.bytes_copied,
            renamed=renamed and result.outcome is CopyOutcome.COPIED,
            error=result.error,
        )

    def _occupied(self, target: Path) -> bool:
        # A dry run writes nothing, so earlier planned copies count as present
        return target.exists() or target in self._planned

    def _eject(self) -> bool:
        name = self.volume.display_name
        if self.ejector is None:
            logger.warning(f"No eject tool available - eject {name} manually")
            return False

        logger.info(f"Ejecting {name}...")
        if self.ejector.eject(self.volume.path):
            logger.info(f"Successfully ejected {name}")
            return True

        logger.warning(f"Failed to eject {name} - you may need to eject manually")
        return False


@dataclass
class ImportSummary:
    """Totals across all volumes, built once every volume has finished."""
    dry_run: bool
    volumes: List[VolumeStats]
    failed_volumes: List[Tuple[str, str]]
    elapsed: float
    files_found: int = 0
    files_copied: int = 0
    bytes_copied: int = 0
    files_skipped: int = 0
    files_renamed: int = 0
    files_errored: int = 0
    skipped_files: List[str] = field(default_factory=list)
    errored_files: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def merge(
        cls,
        results: Sequence[VolumeStats],
        failed_volumes: Sequence[Tuple[str, str]] = (),
        dry_run: bool = False,
        elapsed: float = 0.0,
    ) -> 'ImportSummary':
        summary = cls(dry_run=dry_run, volumes=list(results),
                      failed_volumes=list(failed_volumes), elapsed=elapsed)
        for stats in results:
            summary.files_found += stats.files_found
            summary.files_copied += stats.files_copied
            summary.bytes_copied += stats.bytes_copied
            summary.files_skipped += stats.files_skipped
            summary.files_renamed += stats.files_renamed
            summary.files_errored += stats.files_errored
            summary.skipped_files.extend(stats.skipped_files)
            summary.errored_files.extend(stats.errored_files)
        return summary

    @property
    def success(self) -> bool:
        return self.files_errored == 0 and not self.failed_volumes

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


class ImportCoordinator:
    """Runs one VolumeImporter per volume and merges their statistics.

    A single volume is imported inline. Several volumes get one worker
    thread each; statistics are only merged after all of them finished,
    and a worker that dies does not stop its siblings.
    """

    def __init__(
        self,
        options: ImportOptions,
        config: Config,
        tools=None,
        decision_source: Optional[DecisionSource] = None,
    ):
        self.options = options
        self.config = config
        self.tools = tools
        self.decision_source = decision_source

    def run(self, volumes: Sequence[Volume]) -> ImportSummary:
        """
        Import all volumes.

        Raises:
            ValueError: interactive duplicate handling with several volumes
        """
        if self.options.interactive and len(volumes) > 1:
            raise ValueError("Interactive duplicate handling supports a single source only")

        if not volumes:
            return ImportSummary.merge([], dry_run=self.options.dry_run)

        start_time = time.time()
        results: Dict[int, VolumeStats] = {}
        failures: List[Tuple[str, str]] = []

        if len(volumes) == 1:
            try:
                results[0] = self._run_volume(volumes[0], 0)
            except Exception as e:
                logger.error(f"Import of {volumes[0]} failed: {e}")
                failures.append((volumes[0].display_name, str(e)))
        else:
            logger.info(f"Importing {len(volumes)} volumes in parallel")
            with ThreadPoolExecutor(max_workers=len(volumes)) as executor:
                futures = {
                    executor.submit(self._run_volume, volume, position): position
                    for position, volume in enumerate(volumes)
                }
                for future in as_completed(futures):
                    position = futures[future]
                    try:
                        results[position] = future.result()
                    except Exception as e:
                        logger.error(f"Import of {volumes[position]} failed: {e}")
                        failures.append((volumes[position].display_name, str(e)))

        ordered = [results[position] for position in sorted(results)]
        return ImportSummary.merge(
            ordered,
            failures,
            dry_run=self.options.dry_run,
            elapsed=time.time() - start_time,
        )

    def _run_volume(self, volume: Volume, position: int) -> VolumeStats:
        resolver = DuplicateResolver(self.options.interactive, self.decision_source)
        resolver.reset()
        importer = VolumeImporter(
            volume,
            self.options,
            self.config,
            extractor=getattr(self.tools, 'metadata_extractor', None),
            copier=FileCopier(progress=self.options.progress),
            resolver=resolver,
            ejector=getattr(self.tools, 'ejector', None),
            position=position,
        )
        return importer.run()
