"""
RunProgress - Tracks and displays job progress.
"""

import logging
from typing import Optional

from .planner import Job
from .run_stats import RunStats


class RunProgress:
    """
    Tracks and displays job progress with optional per-output lines.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 100,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each output as it is produced
            log_interval: Log a summary every N jobs (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_job_done(
        self,
        job: Job,
        success: bool,
        size: Optional[int] = None,
        error: Optional[str] = None
    ) -> None:
        """Called when a job finishes."""
        if not self.show_files:
            return
        if success:
            size_str = self._format_bytes(size) if size else "unknown"
            print(f"  [OK] {job.describe()} ({size_str})")
        else:
            print(f"  [ERROR] {job.describe()} -> {error or 'failed'}")

    def on_dry_run(self, job: Job) -> None:
        if self.show_files:
            print(f"  [DRY RUN] {job.describe()} -> would generate ({job.reason})")

    def on_progress_update(self, stats: RunStats) -> None:
        """Log a periodic summary line."""
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done
            eta_minutes = stats.estimated_remaining_seconds / 60
            self.logger.info(
                f"Progress: {stats.processed} generated, {stats.errors} errors "
                f"({stats.rate_per_minute:.1f}/min, "
                f"~{eta_minutes:.0f}m remaining, {stats.remaining_count} left)"
            )

    @staticmethod
    def _format_bytes(bytes_val: Optional[int]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"
