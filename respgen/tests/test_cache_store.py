"""Tests for CacheStore."""

import json
import logging
import os

import pytest

from respgen.cache_store import CacheStore
from respgen.errors import CacheLocked
from respgen.output_paths import OutputPathResolver
from respgen.output_record import OutputResult
from respgen.requirements import required_outputs
from respgen.source_image import SourceImage
from respgen.tasks import JpegOptions, Task


def _fill(store, source):
    """Record every required output for a source, writing real files."""
    resolver = OutputPathResolver(store.config)
    for task, width in required_outputs(source, store.config.tasks):
        descriptor = resolver.resolve(source, task, width)
        if task.is_inline:
            result = OutputResult(task.name, 'png', width, width, width, 10,
                                  data='data:image/png;base64,AAAA')
        else:
            path = descriptor.output_path
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as f:
                f.write(b'x')
            result = OutputResult(task.name, task.format.value, width, width, width, 1,
                                  output_path=path, url=descriptor.url, srcset=descriptor.srcset)
        store.record_output(source, result)


@pytest.fixture
def photo(photo_path):
    return SourceImage.from_path(photo_path)


@pytest.fixture
def icon(icon_path):
    return SourceImage.from_path(icon_path)


class TestCacheStoreLoad:
    """Tests for loading and saving."""

    def test_missing_file_is_empty(self, config, logger):
        """Test a missing cache file loads as empty."""
        store = CacheStore(config, logger)
        assert store.load() == {}

    def test_construction_writes_checksum(self, config, logger):
        """Test the active checksum is stored on construction."""
        store = CacheStore(config, logger)
        with open(config.cache_file_path) as f:
            assert json.load(f) == {'checksum': store.checksum}

    def test_corrupt_file_is_empty(self, config, logger, caplog):
        """Test an unparseable cache file is treated as cold, not fatal."""
        config.cache_file_path.parent.mkdir(parents=True)
        config.cache_file_path.write_text('{truncated')

        with caplog.at_level(logging.WARNING, logger='test'):
            store = CacheStore(config, logger)
            assert store.load() == {}
        assert 'unreadable' in caplog.text

    def test_corrupt_entry_skipped(self, config, logger, photo):
        """Test one bad entry does not hide the others."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        data = json.loads(config.cache_file_path.read_text())
        data['broken'] = {'checksum': store.checksum}
        config.cache_file_path.write_text(json.dumps(data))

        records = CacheStore(config, logger).load()

        assert list(records) == [photo.hash]

    def test_non_string_checksum_is_replaced(self, config, logger):
        """Test a numeric stored checksum is overwritten instead of failing."""
        config.cache_file_path.parent.mkdir(parents=True)
        config.cache_file_path.write_text(json.dumps({'checksum': 12345}))

        store = CacheStore(config, logger)

        assert store.load() == {}
        assert json.loads(config.cache_file_path.read_text()) == {'checksum': store.checksum}

    def test_malformed_outputs_entry_skipped(self, config, logger, photo):
        """Test an entry whose outputs is not a list is dropped, not fatal."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        data = json.loads(config.cache_file_path.read_text())
        data['broken'] = {'source': photo.to_dict(), 'outputs': 5}
        config.cache_file_path.write_text(json.dumps(data))

        records = CacheStore(config, logger).load()

        assert list(records) == [photo.hash]

    def test_save_merges(self, config, logger, photo, icon):
        """Test records written separately all persist."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        _fill(store, icon)

        records = CacheStore(config, logger).load()

        assert set(records) == {photo.hash, icon.hash}
        assert len(records[photo.hash].outputs) == 6
        assert records[icon.hash].is_inline is True

    def test_save_failure_keeps_memory(self, config, logger, photo, mocker):
        """Test a write failure is logged and the in-memory view survives."""
        from respgen.errors import PersistenceFailure

        store = CacheStore(config, logger)
        mocker.patch('respgen.cache_store.write_json_atomic', side_effect=PersistenceFailure('disk full'))
        _fill(store, photo)

        assert store.is_valid(photo) is True
        assert json.loads(config.cache_file_path.read_text()) == {'checksum': store.checksum}

    def test_remove(self, config, logger, photo, icon):
        """Test removing a record."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        _fill(store, icon)

        store.remove(photo.hash)

        assert set(CacheStore(config, logger).load()) == {icon.hash}


class TestCacheStoreValidity:
    """Tests for is_valid / read / verify."""

    def test_complete_record_valid(self, config, logger, photo):
        """Test a fully recorded source is valid and readable."""
        store = CacheStore(config, logger)
        assert store.is_valid(photo) is False
        assert store.read(photo) is None

        _fill(store, photo)

        assert store.is_valid(photo) is True
        assert store.read(photo).key == photo.hash

    def test_missing_width_invalid(self, config, logger, photo):
        """Test a record lacking one required width is invalid."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        del store.records[photo.hash].outputs[('webp', 1920)]
        assert store.is_valid(photo) is False

    def test_inline_source_valid(self, config, logger, icon):
        """Test an inline source needs its inline output."""
        store = CacheStore(config, logger)
        _fill(store, icon)

        record = store.read(icon)

        assert record.is_inline is True
        assert len(record.outputs) == 1
        assert record.inline_outputs

    def test_deleted_file_invalid(self, config, logger, photo):
        """Test deleting a backing file invalidates the record."""
        store = CacheStore(config, logger)
        _fill(store, photo)
        os.remove(store.records[photo.hash].get('jpeg', 768).output_path)

        assert store.is_valid(photo) is False
        assert store.verify() == {photo.hash}

    def test_corrupt_inline_invalid(self, config, logger, icon):
        """Test a corrupted inline payload invalidates the record."""
        store = CacheStore(config, logger)
        _fill(store, icon)
        store.records[icon.hash].inline_outputs[0].data = 'not-a-data-uri'

        assert store.is_valid(icon) is False
        assert store.verify() == {icon.hash}

    def test_checksum_change_invalidates(self, config, logger, photo):
        """Test records from another configuration are never reused."""
        store = CacheStore(config, logger)
        _fill(store, photo)

        config.tasks[0] = Task('jpeg', JpegOptions(quality=90), sizes=(480, 768, 1920))
        changed = CacheStore(config, logger)

        assert changed.checksum != store.checksum
        assert photo.hash in changed.records
        assert changed.is_valid(photo) is False
        assert json.loads(config.cache_file_path.read_text())['checksum'] == changed.checksum

    def test_changed_source_invalid(self, config, logger, photo, make_image):
        """Test a record keyed by name is invalid once the file content changes."""
        config.preserve_names = True
        store = CacheStore(config, logger)
        _fill(store, photo)
        assert store.is_valid(photo) is True

        changed = SourceImage.from_path(make_image('photo.jpg', size=(2000, 1250), noisy=True, fmt='JPEG'))

        assert changed.hash != photo.hash
        assert store.is_valid(changed) is False


class TestCacheStoreLock:
    """Tests for cache ownership."""

    def test_lock_exclusive(self, config, logger):
        """Test a second lock holder is refused."""
        store = CacheStore(config, logger)
        other = CacheStore(config, logger)

        with store.lock():
            assert store.lock_file.exists()
            with pytest.raises(CacheLocked):
                with other.lock():
                    pass

        assert not store.lock_file.exists()
        with other.lock():
            pass
