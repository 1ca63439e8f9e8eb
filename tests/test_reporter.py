"""Tests for the end-of-run summary report."""

from pathlib import Path

from sdcard_importer.identity import Volume
from sdcard_importer.importer import ImportSummary, VolumeStats
from sdcard_importer.reporter import ImportReporter


def _stats(name, **counters):
    stats = VolumeStats(volume=Volume(path=Path(f'/media/{name}'), display_name=name))
    for key, value in counters.items():
        setattr(stats, key, value)
    return stats


class TestImportReporter:
    """Test summary report content."""

    def test_successful_run(self):
        summary = ImportSummary.merge(
            [_stats('GOPRO1', files_found=3, files_copied=3, bytes_copied=3 * 1024 * 1024, ejected=True)],
            elapsed=125,
        )

        report = ImportReporter().generate_summary_report(summary)

        assert 'SD CARD IMPORT SUMMARY' in report
        assert 'Mode: LIVE RUN' in report
        assert 'GOPRO1 (/media/GOPRO1): 3 found, 3 copied' in report
        assert 'ejected' in report
        assert 'Files copied: 3 (3.0MB)' in report
        assert 'Total time: 2m 5s' in report
        assert 'Files skipped' not in report
        assert 'COMPLETE SUCCESS' in report

    def test_failures_listed(self):
        stats = _stats('CAM', files_found=2, files_copied=1, files_errored=1,
                       errored_files=[('bad.mp4', 'Copy failed: I/O error')])
        summary = ImportSummary.merge([stats], failed_volumes=[('OTHER', 'card vanished')])

        report = ImportReporter().generate_summary_report(summary)

        assert 'Files with errors: 1' in report
        assert 'ERRORS ENCOUNTERED' in report
        assert 'bad.mp4: Copy failed: I/O error' in report
        assert 'OTHER: ABORTED (card vanished)' in report
        assert 'COMPLETED WITH ISSUES' in report

    def test_dry_run_wording(self):
        summary = ImportSummary.merge([_stats('CAM', files_found=1, files_copied=1)], dry_run=True)

        report = ImportReporter().generate_summary_report(summary)

        assert 'Mode: DRY RUN' in report
        assert 'Files to copy: 1' in report
        assert 'no files were copied' in report

    def test_renamed_and_skipped_shown(self):
        summary = ImportSummary.merge([_stats('CAM', files_copied=2, files_renamed=1, files_skipped=4)])

        report = ImportReporter().generate_summary_report(summary)

        assert 'Files renamed: 1' in report
        assert 'Files skipped: 4' in report

    def test_save_report(self, tmp_path):
        summary = ImportSummary.merge([_stats('CAM', files_copied=1)])
        report_file = tmp_path / 'reports' / 'summary.txt'

        saved = ImportReporter().save_report(summary, report_file)

        assert saved == str(report_file)
        assert 'Files copied: 1' in report_file.read_text(encoding='utf-8')
