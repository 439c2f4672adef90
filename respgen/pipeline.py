"""
Pipeline - Wires discovery, planning, execution and publishing together.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .aggregator import ImageInfo, InfoWriter, ResultAggregator
from .cache_store import CacheStore
from .config import PipelineConfig
from .errors import ConfigurationError, DiscoveryEmpty, DownloadError, PersistenceFailure
from .output_paths import OutputPathResolver
from .planner import JobPlanner, Plan
from .remote import RemoteFetcher
from .run_log import RunLog
from .run_progress import RunProgress
from .run_stats import RunStats
from .runner import CancellationToken, JobRunner
from .scanner import Scanner
from .source_image import SourceImage
from .transcoder import Transcoder


@dataclass
class PipelineResult:
    """
    Outcome of one pipeline run.

    Attributes:
        plan: The executed plan
        stats: Job statistics
        sources: Sources that were processed
        infos: Published ImageInfo lists keyed by source name
        skipped: Sources that could not be fetched or read
        log_path: Run log file, if written
    """
    plan: Plan
    stats: RunStats
    sources: List[SourceImage] = field(default_factory=list)
    infos: Dict[str, List[ImageInfo]] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    log_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.stats.errors == 0


class Pipeline:
    """
    One derivation run over a configuration.

    The cache file is owned by a single run at a time: run() holds the
    store's lock for its whole duration.
    """

    def __init__(
        self,
        config: PipelineConfig,
        transcoder: Optional[Transcoder] = None,
        store: Optional[CacheStore] = None,
        fetcher: Optional[RemoteFetcher] = None,
        scanner: Optional[Scanner] = None,
        cancel_token: Optional[CancellationToken] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            config: Pipeline configuration
            transcoder: Transcode adapter (default: Pillow transcoder)
            store: Cache store (default: created on first use)
            fetcher: Remote fetcher (default: created when remote sources exist)
            scanner: Local file scanner
            cancel_token: Optional token to stop between jobs
            logger: Optional logger instance, shared with every component
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.transcoder = transcoder or Transcoder(logger=self.logger)
        self._store = store
        self._fetcher = fetcher
        self.scanner = scanner or Scanner(config, logger=self.logger)
        self.cancel_token = cancel_token or CancellationToken()
        self.resolver = OutputPathResolver(config)

    @property
    def store(self) -> CacheStore:
        if self._store is None:
            self._store = CacheStore(self.config, logger=self.logger)
        return self._store

    @property
    def fetcher(self) -> RemoteFetcher:
        if self._fetcher is None:
            self._fetcher = RemoteFetcher(self.config.output_path, logger=self.logger)
        return self._fetcher

    @property
    def log_dir(self) -> Path:
        return Path(self.config.output_path) / self.config.base_url.strip('/')

    def stop(self) -> None:
        """Request the run to stop after the current job."""
        self.cancel_token.cancel()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: With one message per violated rule
        """
        errors = self.config.validate()
        if errors:
            for i, error in enumerate(errors, 1):
                self.logger.error(f"{i} - {error}")
            raise ConfigurationError(errors)

    def discover(self) -> Tuple[List[SourceImage], List[str]]:
        """
        Find, fetch and read all sources.

        Sources sharing a cache key or an output name token with an earlier
        one are dropped, so each output file has exactly one source.

        Returns:
            (sources, skipped origins)

        Raises:
            DiscoveryEmpty: If no source could be found or read
        """
        candidates: List[Tuple[str, Optional[str]]] = [
            (path, None) for path in self.scanner.scan()
        ]
        skipped = []

        for url in self.config.remote_sources:
            try:
                candidates.append((self.fetcher.fetch(url), url))
            except (DownloadError, PersistenceFailure) as e:
                self.logger.error(f"Skipping {url}: {e}", extra={'event': 'skipped'})
                skipped.append(url)

        if not candidates:
            raise DiscoveryEmpty('No files found. Check "search_paths" and "file_extensions" options.')

        self.logger.info(f"{len(candidates)} files found. Processing ...", extra={'event': 'processing'})

        sources = []
        seen = set()
        tokens = set()
        for path, url in candidates:
            try:
                source = SourceImage.from_path(path, url=url)
            except OSError as e:
                self.logger.warning(f"Skipping unreadable source {path}: {e}", extra={'event': 'skipped'})
                skipped.append(url or path)
                continue

            key = self.resolver.cache_key(source)
            token = self.resolver.name_token(source)
            if key in seen or token in tokens:
                self.logger.warning(
                    f"Skipping {source.origin}: same output name as an earlier source ({token})",
                    extra={'event': 'skipped'},
                )
                skipped.append(source.origin)
                continue
            seen.add(key)
            tokens.add(token)

            self.logger.debug(
                f"{source.source_name}: {source.format_info()}",
                extra={'event': 'source-info'},
            )
            sources.append(source)

        if not sources:
            raise DiscoveryEmpty('None of the discovered files could be read.')
        return sources, skipped

    def plan(self) -> Plan:
        """Validate, discover and plan without executing anything."""
        self.validate()
        sources, _ = self.discover()
        return JobPlanner(self.store, self.resolver, logger=self.logger).plan(sources)

    def run(self, progress: Optional[RunProgress] = None, dry_run: bool = False) -> PipelineResult:
        """
        Run the full pipeline.

        Args:
            progress: Optional progress tracker
            dry_run: Plan and report, but transcode and publish nothing

        Returns:
            PipelineResult

        Raises:
            ConfigurationError: Before any file I/O, if the config is invalid
            DiscoveryEmpty: If no sources were found
            CacheLocked: If another run owns the cache
        """
        self.validate()

        run_log = RunLog()
        self.logger.addHandler(run_log)
        try:
            with self.store.lock():
                result = self._run_locked(progress, dry_run)
        finally:
            self.logger.removeHandler(run_log)

        if not dry_run:
            result.log_path = run_log.save(str(self.log_dir))
        return result

    def _run_locked(self, progress: Optional[RunProgress], dry_run: bool) -> PipelineResult:
        sources, skipped = self.discover()

        planner = JobPlanner(self.store, self.resolver, logger=self.logger)
        plan = planner.plan(sources)

        runner = JobRunner(
            self.store,
            self.transcoder,
            cancel_token=self.cancel_token,
            workers=self.config.workers,
            dry_run=dry_run,
            logger=self.logger,
        )
        stats = runner.run(plan, progress)

        result = PipelineResult(plan=plan, stats=stats, sources=sources, skipped=skipped)
        if not dry_run:
            result.infos = self.publish(sources)

        self.logger.info(
            f"Done! {stats.processed} files created, {stats.errors} errors "
            f"-- {stats.elapsed_seconds:.1f}s",
            extra={'event': 'done'},
        )
        return result

    def publish(self, sources: List[SourceImage]) -> Dict[str, List[ImageInfo]]:
        """Aggregate each source's current record and write its info file."""
        aggregator = ResultAggregator(self.config)
        writer = InfoWriter(self.config, logger=self.logger)
        published = {}

        for source in sources:
            record = self.store.current_record(source)
            if record is None or not record.outputs:
                continue
            infos = aggregator.aggregate(source, record)
            if not infos:
                continue
            writer.write(source, infos)
            published[source.source_name] = infos

        self.logger.info(f"Saving resizing data for {len(published)} images")
        return published

    def verify(self) -> List[str]:
        """Keys of cache records referencing missing or malformed outputs."""
        return sorted(self.store.verify())

    def rebuild(self, progress: Optional[RunProgress] = None) -> PipelineResult:
        """Drop every record that fails verification, then run."""
        self.validate()
        with self.store.lock():
            for key in self.verify():
                self.store.remove(key)
        return self.run(progress)
