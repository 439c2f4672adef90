"""
Reporter - Human-readable plan, cache and run reports.
"""

import logging
import sys
from typing import Dict, List, Optional, Sequence, TextIO

from .cache_record import CacheRecord
from .planner import Plan
from .run_stats import RunStats


class Reporter:
    """
    Prints reports about plans, cache contents and finished runs.
    """

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_bytes(self, bytes_val: int) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} PB"

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def report_plan(self, plan: Plan, show_jobs: bool = False) -> None:
        """Print what a run would do."""
        self._print("=" * 70)
        self._print("DERIVATION PLAN")
        self._print("=" * 70)
        self._print()

        self._print(f"  Sources:          {plan.sources:>10,}")
        self._print(f"  Outputs required: {plan.total_outputs:>10,}")
        self._print(f"  Satisfied:        {plan.satisfied:>10,}")
        self._print(f"  Stale:            {plan.stale:>10,}")
        self._print(f"  Needed:           {plan.needed:>10,}")
        self._print()

        if not plan.jobs:
            self._print("  Nothing to do: every output is up to date.")
            self._print()
            return

        self._print("  Jobs by task:")
        for task_name, count in plan.jobs_by_task().items():
            self._print(f"    {task_name:<20} {count:>8,}")
        self._print()

        if show_jobs:
            self._print("  Jobs:")
            for job in plan.jobs:
                self._print(f"    {job.describe()} ({job.reason})")
            self._print()

    def report_cache(self, records: Dict[str, CacheRecord], checksum: str) -> None:
        """Print a summary of the cache contents."""
        current = [r for r in records.values() if r.checksum == checksum]
        outdated = len(records) - len(current)
        outputs = sum(len(r.outputs) for r in records.values())
        inline = sum(1 for r in records.values() if r.is_inline)
        total_bytes = sum(r.total_bytes for r in records.values())

        self._print("=" * 70)
        self._print("CACHE SUMMARY")
        self._print("=" * 70)
        self._print()
        self._print(f"  Checksum:         {checksum}")
        self._print(f"  Records:          {len(records):>10,}")
        self._print(f"  Current config:   {len(current):>10,}")
        self._print(f"  Older config:     {outdated:>10,}")
        self._print(f"  Inline sources:   {inline:>10,}")
        self._print(f"  Outputs:          {outputs:>10,}")
        self._print(f"  Total size:       {self._format_bytes(total_bytes):>10}")
        self._print()

    def report_stale(self, records: Dict[str, CacheRecord], keys: Sequence[str]) -> None:
        """List records that reference missing or malformed outputs."""
        if not keys:
            self._print("All cached outputs are present.")
            return

        self._print(f"{len(keys)} cache records reference missing or invalid outputs:")
        for key in keys:
            record = records.get(key)
            if record is None:
                continue
            stale: List[str] = [
                r.output_path or f"{r.task}@{r.target_width} (inline)"
                for r in record.stale_outputs()
            ]
            self._print(f"  {key} ({record.source.source_name})")
            for item in stale:
                self._print(f"    - {item}")

    def report_run(self, stats: RunStats) -> None:
        """Print the outcome of a run."""
        self._print()
        self._print(f"Generated: {stats.processed} ({stats.inline_generated} inline)")
        self._print(f"Cached:    {stats.skipped}")
        self._print(f"Errors:    {stats.errors}")
        self._print(f"Size:      {self._format_bytes(stats.bytes_generated)}")
        self._print(f"Time:      {self._format_duration(stats.elapsed_seconds)}")
        self._print(f"Rate:      {stats.rate_per_minute:.1f}/min")
        for task_name, count in sorted(stats.by_task.items()):
            self._print(f"  {task_name:<20} {count:>8,}")
        for detail in stats.error_details:
            self._print(f"  {detail}")
