#!/usr/bin/env python3
"""
SD Card Media Importer CLI

Copies media files from one or more SD cards into a date-organized tree:
<target>/<YYYYMMDD>/<card name>/<file>. Cards are named through a UUID
mapping file when --config is given, otherwise by their volume label.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from colorama import init, Fore, Style

from sdcard_importer import (
    Config,
    IdentityResolver,
    ImportCoordinator,
    ImportOptions,
    ImportReporter,
    SystemTools,
)
from sdcard_importer.config import prepare_target, validate_paths
from sdcard_importer.exceptions import ImporterError, UnknownCardError

# Initialize colorama for cross-platform colored output
init()

_console_handler = None
_file_handler = None

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: str = 'INFO', log_dir: Optional[Path] = None):
    """Set up logging configuration."""
    global _console_handler, _file_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Replace handlers from a previous invocation in the same process
    for handler in (_console_handler, _file_handler):
        if handler is not None:
            root_logger.removeHandler(handler)
            handler.close()
    _file_handler = None

    _console_handler = logging.StreamHandler(sys.stdout)
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        _file_handler = logging.FileHandler(log_dir / 'sdimport.log', encoding='utf-8')
        _file_handler.setFormatter(formatter)
        root_logger.addHandler(_file_handler)

    # Reduce noise from libraries
    logging.getLogger('exifread').setLevel(logging.ERROR)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")
    sys.stdout.flush()


def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}", err=True)
    sys.stderr.flush()


def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")
    sys.stdout.flush()


def print_metadata_method(extractor):
    """Tell the user where capture dates will come from."""
    if extractor.name == 'exiftool':
        print_info(f"Metadata extraction: {extractor.description}")
    else:
        print_warning(f"Metadata extraction: {extractor.description}")


def report_unknown_card(error: UnknownCardError):
    """Explain an unmapped card and show the line that fixes it."""
    lines = error.details()
    click.echo(err=True)
    for line in lines[:-2]:
        print_error(line)
    click.echo(err=True)
    click.echo(lines[-2], err=True)
    click.echo(lines[-1], err=True)
    click.echo(err=True)


@click.command(
    context_settings={'help_option_names': ['-h', '--help']},
    no_args_is_help=True,
)
@click.option('--source', 'sources', multiple=True, required=True,
              help='SD card mount point (repeat for several cards)')
@click.option('--target', required=True, help='Destination directory for organized files')
@click.option('--config', 'config_path', default=None,
              help='UUID mapping file (UUID=owner/card lines or YAML)')
@click.option('--eject', is_flag=True, help='Unmount the SD cards after importing')
@click.option('--dry-run', is_flag=True, help='Preview operations without copying files')
@click.option('--verbose', is_flag=True, help='Show detailed progress information')
@click.option('--interactive', is_flag=True,
              help='Ask what to do with duplicates instead of skipping them (single source only)')
@click.option('--set-capture-time', is_flag=True,
              help='Set copied files\' modification time to the extracted capture time')
@click.option('--progress', is_flag=True, help='Show progress bars')
@click.option('--log-dir', default=None, help='Also write logs to <dir>/sdimport.log')
@click.option('--report', 'report_path', default=None, help='Save the summary report to this file')
def cli(sources, target, config_path, eject, dry_run, verbose, interactive,
        set_capture_time, progress, log_dir, report_path):
    """SD Card Media Importer - copy media from SD cards into <target>/<YYYYMMDD>/<card>/."""

    setup_logging('DEBUG' if verbose else 'INFO', Path(log_dir) if log_dir else None)

    if interactive and len(sources) > 1:
        raise click.UsageError(
            "--interactive cannot be combined with several --source options; "
            "duplicates are always skipped when cards are imported in parallel"
        )

    print_header("SDCARD MEDIA IMPORTER")

    source_paths = [Path(source).expanduser() for source in sources]
    options = ImportOptions(
        target_root=Path(target).expanduser(),
        dry_run=dry_run,
        eject=eject,
        verbose=verbose,
        interactive=interactive,
        set_capture_time=set_capture_time,
        progress=progress,
    )

    # Everything that can abort the run is checked before the first copy
    try:
        validate_paths(source_paths, options.target_root)
        config = Config(config_path)
        tools = SystemTools.detect()

        if config.has_mapping():
            print_info("Validating SD card UUIDs...")
        else:
            print_info("No SD card mapping in effect - using volume names")

        resolver = IdentityResolver(config, tools.identity_lookup, tools.label_lookup)
        volumes = resolver.resolve_volumes(source_paths)

        if not dry_run:
            prepare_target(options.target_root)

    except UnknownCardError as e:
        report_unknown_card(e)
        sys.exit(e.exit_code)
    except ImporterError as e:
        print_error(str(e))
        sys.exit(e.exit_code)

    for volume in volumes:
        print_success(f"{volume.path} -> {volume.display_name}")

    print_info(f"Target Directory: {options.target_root}")
    print_info(f"Number of source paths: {len(volumes)}")
    print_metadata_method(tools.metadata_extractor)
    if dry_run:
        print_warning("DRY RUN MODE - No files will be copied")

    try:
        coordinator = ImportCoordinator(options, config, tools)
        summary = coordinator.run(volumes)
    except Exception as e:
        print_error(f"Import failed: {e}")
        sys.exit(1)

    reporter = ImportReporter()
    text = reporter.generate_summary_report(summary)
    click.echo("\n" + text)

    if report_path:
        try:
            reporter.save_report(summary, Path(report_path), text)
        except OSError as e:
            print_warning(f"Could not save report to {report_path}: {e}")

    if summary.errored_files:
        print_error(f"{summary.files_errored:,} file(s) failed to copy")
    sys.stdout.flush()
    sys.exit(summary.exit_code)


if __name__ == '__main__':
    cli()
