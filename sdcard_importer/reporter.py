"""Summary reports for SD card imports."""

import logging
from pathlib import Path
from typing import List, Optional

from .importer import ImportSummary
from .utils import format_bytes, format_elapsed, get_current_timestamp

logger = logging.getLogger(__name__)


class ImportReporter:
    """Generates the end-of-run summary."""

    def generate_summary_report(self, summary: ImportSummary) -> str:
        """
        Generate human-readable summary report.

        Args:
            summary: Merged statistics of the run

        Returns:
            Formatted summary report
        """
        report: List[str] = []
        report.append("=" * 50)
        report.append("SD CARD IMPORT SUMMARY")
        report.append("=" * 50)
        report.append(f"Completed: {get_current_timestamp()}")
        report.append(f"Mode: {'DRY RUN' if summary.dry_run else 'LIVE RUN'}")
        report.append("")

        copied_label = "Files to copy" if summary.dry_run else "Files copied"
        report.append("=== VOLUMES ===")
        for stats in summary.volumes:
            line = (
                f"• {stats.volume.display_name} ({stats.volume.path}): "
                f"{stats.files_found:,} found, {stats.files_copied:,} copied, "
                f"{stats.files_skipped:,} skipped, {stats.files_errored:,} failed, "
                f"{format_bytes(stats.bytes_copied)} in {format_elapsed(stats.elapsed)}"
            )
            if stats.ejected is not None:
                line += ", ejected" if stats.ejected else ", eject failed"
            report.append(line)
        for name, error in summary.failed_volumes:
            report.append(f"• {name}: ABORTED ({error})")
        report.append("")

        report.append("=== FILE STATISTICS ===")
        report.append(f"{copied_label}: {summary.files_copied:,} ({format_bytes(summary.bytes_copied)})")
        if summary.files_renamed:
            report.append(f"Files renamed: {summary.files_renamed:,}")
        if summary.files_skipped:
            report.append(f"Files skipped: {summary.files_skipped:,}")
        if summary.files_errored:
            report.append(f"Files with errors: {summary.files_errored:,}")
        report.append(f"Total time: {format_elapsed(summary.elapsed)}")

        if summary.errored_files:
            report.append("")
            report.append("=== ERRORS ENCOUNTERED ===")
            for name, error in summary.errored_files:
                report.append(f"❌ {name}: {error}")

        report.append("")
        if summary.dry_run:
            report.append("STATUS: DRY RUN COMPLETED (no files were copied)")
        elif summary.success:
            report.append("STATUS: ✅ COMPLETE SUCCESS")
        else:
            report.append("STATUS: ⚠️ COMPLETED WITH ISSUES")
        report.append("=" * 50)

        return "\n".join(report)

    def save_report(self, summary: ImportSummary, report_file: Path, content: Optional[str] = None) -> str:
        """
        Save the summary report to a file.

        Args:
            summary: Merged statistics of the run
            report_file: Destination file
            content: Pre-rendered report, generated if None

        Returns:
            Path to saved report file
        """
        report_file = Path(report_file)
        report_file.parent.mkdir(parents=True, exist_ok=True)
        if content is None:
            content = self.generate_summary_report(summary)

        try:
            report_file.write_text(content + "\n", encoding='utf-8')
        except OSError as e:
            logger.error(f"Failed to save report: {e}")
            raise

        logger.info(f"Report saved: {report_file}")
        return str(report_file)
