"""
RunStats - Counters for one derivation run.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List


@dataclass
class RunStats:
    """
    Counters for one derivation run.

    Attributes:
        total_to_process: Jobs in the plan
        processed: Outputs produced (or, in a dry run, that would be)
        skipped: Outputs the plan found already satisfied
        errors: Jobs whose transcode failed
        bytes_generated: Encoded bytes of everything produced
        inline_generated: Produced outputs that are data URIs
        by_task: Produced outputs per task name
        start_time: Start timestamp
        error_details: One message per failed job
    """
    total_to_process: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    bytes_generated: int = 0
    inline_generated: int = 0
    by_task: Counter = field(default_factory=Counter)
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    def record_output(self, task: str, size: int, inline: bool = False) -> None:
        self.processed += 1
        self.bytes_generated += size
        self.by_task[task] += 1
        if inline:
            self.inline_generated += 1

    def record_failure(self, message: str) -> None:
        self.errors += 1
        self.error_details.append(message)

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    @property
    def rate_per_minute(self) -> float:
        """Outputs produced per minute."""
        elapsed = self.elapsed_seconds
        if elapsed > 0:
            return self.processed / elapsed * 60
        return 0.0

    @property
    def completed_count(self) -> int:
        """Jobs finished, produced or failed. Satisfied outputs are not jobs."""
        return self.processed + self.errors

    @property
    def remaining_count(self) -> int:
        return max(0, self.total_to_process - self.completed_count)

    @property
    def estimated_remaining_seconds(self) -> float:
        rate = self.rate_per_minute / 60
        if rate > 0:
            return self.remaining_count / rate
        return 0.0

    def summary(self) -> str:
        """One-line outcome, e.g. '6 generated (0 inline), 3 cached, 0 errors'."""
        return (
            f"{self.processed} generated ({self.inline_generated} inline), "
            f"{self.skipped} cached, {self.errors} errors"
        )
