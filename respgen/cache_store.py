"""
CacheStore - File-backed record of previously derived outputs.
"""

import logging
import os
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Set

from .cache_record import CacheRecord
from .config import PipelineConfig
from .errors import CacheCorruption, CacheLocked, PersistenceFailure
from .fileio import read_json, write_json_atomic
from .output_paths import OutputPathResolver
from .output_record import OutputResult
from .requirements import is_inline_source, required_outputs
from .source_image import SourceImage


class CacheStore:
    """
    One JSON file per output tree: a top-level 'checksum' plus one record per
    source image.

    Every record carries the checksum it was produced under. When the active
    configuration checksum changes, the stored top-level checksum is updated
    and existing records are kept on disk, but a record whose checksum differs
    from the active one is never valid, so its source is reprocessed.
    """

    CHECKSUM_KEY = 'checksum'

    def __init__(self, config: PipelineConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize the store and reconcile the stored checksum.

        Args:
            config: Active pipeline configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.cache_file = config.cache_file_path
        self.lock_file = self.cache_file.with_name(self.cache_file.name + '.lock')
        self.checksum = config.checksum()
        self.resolver = OutputPathResolver(config)
        self._records: Optional[Dict[str, CacheRecord]] = None
        self._sync_checksum()

    def _sync_checksum(self) -> None:
        raw = self._read_raw()
        stored = raw.get(self.CHECKSUM_KEY)
        if stored == self.checksum:
            return
        if not isinstance(stored, str):
            stored = None
        if stored:
            self.logger.info(
                f"Configuration changed (checksum {stored[:8]} -> {self.checksum[:8]}); "
                f"outputs from the previous configuration will be rebuilt"
            )
        raw[self.CHECKSUM_KEY] = self.checksum
        try:
            write_json_atomic(self.cache_file, raw)
        except PersistenceFailure as e:
            self.logger.error(f"Error saving cache: {e}", extra={'event': 'persist-failed'})

    def _read_raw(self) -> dict:
        """Read the cache file as a plain dict; missing or corrupt means empty."""
        try:
            data = read_json(self.cache_file)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logger.warning(
                f"Cache file {self.cache_file} is unreadable, starting cold: {e}",
                extra={'event': 'cache-corrupt'},
            )
            return {}
        if not isinstance(data, dict):
            self.logger.warning(
                f"Cache file {self.cache_file} is not a JSON object, starting cold",
                extra={'event': 'cache-corrupt'},
            )
            return {}
        return data

    @property
    def records(self) -> Dict[str, CacheRecord]:
        """In-memory view of the records, loaded on first access."""
        if self._records is None:
            self._records = self.load()
        return self._records

    def load(self) -> Dict[str, CacheRecord]:
        """
        Read all records from disk.

        Never raises: a missing or corrupt file yields an empty mapping and a
        corrupt entry is skipped.
        """
        raw = self._read_raw()
        records = {}
        for key, data in raw.items():
            if key == self.CHECKSUM_KEY:
                continue
            try:
                records[key] = CacheRecord.from_dict(key, data)
            except CacheCorruption as e:
                self.logger.warning(f"Ignoring cache entry: {e}", extra={'event': 'cache-corrupt'})
        self._records = records
        return records

    def save(self, partial: Dict[str, CacheRecord]) -> bool:
        """
        Merge records into the cache file and write it back whole.

        The in-memory view is always updated; a write failure is logged and
        only loses persistence.

        Returns:
            True if the file was written
        """
        raw = self._read_raw()
        for key, record in partial.items():
            raw[key] = record.to_dict()
            self.records[key] = record
        raw[self.CHECKSUM_KEY] = self.checksum

        try:
            write_json_atomic(self.cache_file, raw)
            return True
        except PersistenceFailure as e:
            self.logger.error(f"Error saving cache: {e}", extra={'event': 'persist-failed'})
            return False

    def add(self, key: str, record: CacheRecord) -> bool:
        """Upsert a single record."""
        return self.save({key: record})

    def remove(self, key: str) -> bool:
        """Delete a record."""
        self.logger.info(f"Removing \"{key}\" from cache")
        self.records.pop(key, None)
        raw = self._read_raw()
        raw.pop(key, None)
        raw[self.CHECKSUM_KEY] = self.checksum
        try:
            write_json_atomic(self.cache_file, raw)
            return True
        except PersistenceFailure as e:
            self.logger.error(f"Error saving cache: {e}", extra={'event': 'persist-failed'})
            return False

    def record_output(self, source: SourceImage, result: OutputResult) -> CacheRecord:
        """
        Append one produced output to its source's record and persist it.

        A record from another checksum or another version of the source is
        replaced rather than extended.
        """
        key = self.resolver.cache_key(source)
        record = self.records.get(key)
        if (
            record is None
            or record.checksum != self.checksum
            or record.source.hash != source.hash
        ):
            record = CacheRecord(
                key=key,
                checksum=self.checksum,
                source=source,
                is_inline=is_inline_source(source, self.config.tasks),
            )
        record.add_output(result)
        self.add(key, record)
        return record

    def current_record(self, source: SourceImage) -> Optional[CacheRecord]:
        """The record for this exact source under the active checksum, if any."""
        record = self.records.get(self.resolver.cache_key(source))
        if record is None:
            return None
        if record.checksum != self.checksum or record.source.hash != source.hash:
            return None
        return record

    def is_valid(self, source: SourceImage) -> bool:
        """
        True if the source's record can be used without reprocessing.

        The record must match the active checksum and the source hash; every
        width a file-backed task requires must have at least as many outputs
        as tasks requiring it; an inline output must exist when one is
        required; and no required output may be stale.
        """
        record = self.current_record(source)
        if record is None:
            return False

        required = required_outputs(source, self.config.tasks)
        expected: Dict[int, Set[str]] = {}
        inline_required = False
        for task, width in required:
            if task.is_inline:
                inline_required = True
            else:
                expected.setdefault(width, set()).add(task.name)

        for width, task_names in expected.items():
            present = [r for r in record.for_width(width) if r.task in task_names]
            if len(present) < len(task_names):
                return False

        if inline_required and not record.inline_outputs:
            return False

        for task, width in required:
            result = record.get(task.name, width)
            if result is None or result.is_stale():
                return False

        return True

    def read(self, source: SourceImage) -> Optional[CacheRecord]:
        """The source's record if valid, else None (must reprocess)."""
        if not self.is_valid(source):
            return None
        return self.current_record(source)

    def verify(self) -> Set[str]:
        """Keys of records referencing at least one missing or malformed output."""
        invalid = set()
        for key, record in self.records.items():
            if record.stale_outputs():
                invalid.add(key)
        return invalid

    @contextmanager
    def lock(self) -> Iterator[None]:
        """
        Hold exclusive ownership of the cache file for the duration.

        Raises:
            CacheLocked: If another run holds the lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(str(self.lock_file), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as e:
            raise CacheLocked(
                f"Cache {self.cache_file} is in use (remove {self.lock_file} if no run is active)"
            ) from e
        try:
            os.write(fd, str(os.getpid()).encode())
            os.close(fd)
            yield
        finally:
            if self.lock_file.exists():
                os.remove(self.lock_file)
