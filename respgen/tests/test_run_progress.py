"""Tests for RunProgress class."""

import logging

import pytest

from respgen.output_paths import OutputPathResolver
from respgen.planner import NEEDED, Job
from respgen.run_progress import RunProgress
from respgen.run_stats import RunStats
from respgen.source_image import SourceImage


@pytest.fixture
def job(config):
    source = SourceImage(
        path='/src/photo.jpg', hash='abc123', basename='photo', extname='.jpg',
        format='jpeg', size=50000, width=2000, height=1250, has_alpha=False,
    )
    task = config.tasks[0]
    return Job(source, task, OutputPathResolver(config).resolve(source, task, 480), NEEDED)


class TestRunProgress:
    """Tests for RunProgress class."""

    def test_init_defaults(self, logger):
        """Test default initialization."""
        progress = RunProgress(logger=logger)

        assert progress.show_files is False
        assert progress.log_interval == 100

    def test_on_job_done_success_show_files(self, logger, job, capsys):
        """Test show_files output for a produced output."""
        progress = RunProgress(show_files=True, logger=logger)

        progress.on_job_done(job, success=True, size=5000)

        captured = capsys.readouterr()
        assert '[OK]' in captured.out
        assert '/images/abc123_480.jpg 480w' in captured.out
        assert '4.9 KB' in captured.out

    def test_on_job_done_error_show_files(self, logger, job, capsys):
        """Test show_files output for a failed job."""
        progress = RunProgress(show_files=True, logger=logger)

        progress.on_job_done(job, success=False, error='test error')

        captured = capsys.readouterr()
        assert '[ERROR]' in captured.out
        assert 'test error' in captured.out

    def test_quiet_without_show_files(self, logger, job, capsys):
        """Test nothing is printed per job by default."""
        RunProgress(logger=logger).on_job_done(job, success=True, size=1)
        assert capsys.readouterr().out == ''

    def test_on_dry_run_show_files(self, logger, job, capsys):
        """Test show_files output for dry run."""
        RunProgress(show_files=True, logger=logger).on_dry_run(job)

        captured = capsys.readouterr()
        assert 'DRY RUN' in captured.out
        assert 'needed' in captured.out

    def test_periodic_summary(self, logger, caplog):
        """Test a summary is logged every log_interval jobs."""
        progress = RunProgress(log_interval=5, logger=logger)
        stats = RunStats(total_to_process=20)

        with caplog.at_level(logging.INFO, logger='test'):
            for i in range(1, 11):
                stats.processed = i
                progress.on_progress_update(stats)

        assert len([r for r in caplog.records if 'Progress:' in r.getMessage()]) == 2
