"""
JobRunner - Executes planned jobs and persists each result as it completes.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

from .cache_store import CacheStore
from .errors import TranscodeFailure, UnsupportedFormat
from .output_record import OutputResult
from .planner import Job, Plan
from .run_progress import RunProgress
from .run_stats import RunStats
from .transcoder import Transcoder, TranscodeResult


class CancellationToken:
    """Cooperative stop signal, checked between jobs."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class JobRunner:
    """
    Runs jobs through the transcoder in plan order.

    Each successful result is written to the cache store before the next job
    starts, so an interrupted run leaves exactly the completed jobs recorded.
    With workers > 1, transcodes run in a thread pool in batches of `workers`
    jobs, but results are still persisted by the calling thread in plan order.
    """

    def __init__(
        self,
        store: CacheStore,
        transcoder: Transcoder,
        cancel_token: Optional[CancellationToken] = None,
        workers: int = 1,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize runner.

        Args:
            store: Cache store receiving each result
            transcoder: Transcode adapter
            cancel_token: Optional token; cancellation is honored between jobs
            workers: Concurrent transcodes (1 = sequential)
            dry_run: If True, don't actually transcode anything
            logger: Optional logger instance
        """
        self.store = store
        self.transcoder = transcoder
        self.cancel_token = cancel_token or CancellationToken()
        self.workers = max(1, workers)
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)
        self.stats = RunStats()
        self.results: List[Tuple[Job, OutputResult]] = []

    def stop(self) -> None:
        """Request the runner to stop after the current job."""
        self.cancel_token.cancel()

    def run(self, plan: Plan, progress: Optional[RunProgress] = None) -> RunStats:
        """
        Execute every job in the plan.

        Args:
            plan: Planned jobs, in execution order
            progress: Optional progress tracker

        Returns:
            RunStats with results
        """
        self.stats = RunStats(total_to_process=len(plan.jobs), skipped=plan.satisfied)
        self.results = []

        if self.cancel_token.cancelled:
            self.logger.info("Stop was requested before the run started")
            return self.stats

        mode_str = " [DRY RUN]" if self.dry_run else ""
        self.logger.info(f"Starting run: {len(plan.jobs)} outputs to generate{mode_str}")

        if self.dry_run:
            for job in plan.jobs:
                self._dry_run_job(job, progress)
        elif self.workers == 1:
            for job in plan.jobs:
                if self.cancel_token.cancelled:
                    self.logger.info("Stop requested, halting run")
                    break
                self._complete(job, self._transcode(job), progress)
        else:
            self._run_pooled(plan.jobs, progress)

        self.logger.info(f"Run complete: {self.stats.summary()} ({self.stats.elapsed_seconds:.1f}s)")
        return self.stats

    def _run_pooled(self, jobs: Sequence[Job], progress: Optional[RunProgress]) -> None:
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            for start in range(0, len(jobs), self.workers):
                if self.cancel_token.cancelled:
                    self.logger.info("Stop requested, halting run")
                    break
                batch = jobs[start:start + self.workers]
                futures = [executor.submit(self._transcode, job) for job in batch]
                for job, future in zip(batch, futures):
                    self._complete(job, future.result(), progress)

    def _transcode(self, job: Job) -> Union[TranscodeResult, TranscodeFailure]:
        """Run one transcode; failures are returned rather than raised."""
        try:
            return self.transcoder.transcode(
                job.source.path,
                job.width,
                job.height,
                job.task.options,
                None if job.task.is_inline else job.descriptor.output_path,
            )
        except TranscodeFailure as e:
            return e

    def _complete(
        self,
        job: Job,
        outcome: Union[TranscodeResult, TranscodeFailure],
        progress: Optional[RunProgress]
    ) -> Optional[OutputResult]:
        """Record one job's outcome; successes are persisted immediately."""
        if isinstance(outcome, TranscodeFailure):
            kind = 'Unsupported format' if isinstance(outcome, UnsupportedFormat) else 'Error'
            error_msg = f"{kind} for {job.describe()}: {outcome}"
            self.logger.error(error_msg, extra={'event': 'job-failed'})
            self.stats.record_failure(error_msg)
            if progress:
                progress.on_job_done(job, success=False, error=str(outcome))
                progress.on_progress_update(self.stats)
            return None

        result = self._to_output_result(job, outcome)
        self.store.record_output(job.source, result)
        self.results.append((job, result))

        self.stats.record_output(job.task.name, result.size, inline=result.is_inline)

        self.logger.info(
            f"Generated: {job.describe()} ({result.size} bytes) "
            f"[{self.stats.completed_count}/{self.stats.total_to_process}]",
            extra={'event': 'job-done'},
        )
        if progress:
            progress.on_job_done(job, success=True, size=result.size)
            progress.on_progress_update(self.stats)
        return result

    def _dry_run_job(self, job: Job, progress: Optional[RunProgress]) -> None:
        if progress:
            progress.on_dry_run(job)
        else:
            self.logger.info(f"[DRY RUN] Would generate: {job.describe()}")
        self.stats.processed += 1
        self.stats.by_task[job.task.name] += 1

    @staticmethod
    def _to_output_result(job: Job, outcome: TranscodeResult) -> OutputResult:
        descriptor = job.descriptor
        return OutputResult(
            task=job.task.name,
            format=outcome.format,
            target_width=job.width,
            width=outcome.width,
            height=outcome.height,
            size=outcome.size,
            has_alpha=outcome.has_alpha,
            output_path=outcome.output_path,
            url=None if outcome.data is not None else descriptor.url,
            srcset=None if outcome.data is not None else descriptor.srcset,
            data=outcome.data,
        )
