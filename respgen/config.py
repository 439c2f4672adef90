"""
PipelineConfig - Configuration for a derivation run.
"""

import hashlib
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ConfigurationError
from .tasks import Task

# (source_path, base_url, output_root, output_file) -> output file path
OutputPathFn = Callable[[str, str, str, str], str]


@dataclass
class PipelineConfig:
    """
    Configuration for a derivation run.

    Attributes:
        search_paths: Directories searched for source images
        file_extensions: Accepted source file extensions (without dot)
        cache_path: Directory holding the cache file
        output_path: Root directory for derived images and info records
        base_url: Public URL segment, also the sub-directory under output_path
        preserve_names: Name outputs after the source basename instead of its hash
        cache_file: Cache file name inside cache_path
        remote_sources: http(s):// or s3:// URLs fetched before processing
        workers: Concurrent transcodes (1 = strictly sequential)
        tasks: Output tasks, in declaration order
        output_path_fn: Optional override for output file placement
    """
    search_paths: List[str] = field(default_factory=list)
    file_extensions: List[str] = field(
        default_factory=lambda: ['png', 'jpg', 'jpeg', 'raw', 'tiff']
    )
    cache_path: str = ''
    output_path: str = ''
    base_url: str = ''
    preserve_names: bool = False
    cache_file: str = '.images.json'
    remote_sources: List[str] = field(default_factory=list)
    workers: int = 1
    tasks: List[Task] = field(default_factory=list)
    output_path_fn: Optional[OutputPathFn] = None

    @property
    def cache_file_path(self) -> Path:
        """Full path of the cache file."""
        return Path(self.cache_path) / self.cache_file

    @property
    def inline_task(self) -> Optional[Task]:
        """The first inline task, if any."""
        for task in self.tasks:
            if task.is_inline:
                return task
        return None

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.search_paths and not self.remote_sources:
            errors.append('Specify where to look for images in "search_paths".')
        if not self.cache_path:
            errors.append('Specify where to save processed data in "cache_path".')
        if not self.output_path:
            errors.append('Specify where to save processed images in "output_path".')
        if not self.file_extensions:
            errors.append('Specify what files to search for in "file_extensions".')
        if self.workers < 1:
            errors.append(f'"workers" must be at least 1 (got {self.workers}).')
        if not self.tasks:
            errors.append('No resize tasks found.')

        seen = set()
        for task in self.tasks:
            errors.extend(task.validate())
            if task.name in seen:
                errors.append(f'Duplicate task name "{task.name}".')
            seen.add(task.name)

        return errors

    def checksum(self) -> str:
        """
        Checksum over everything that affects output bytes or identity.

        Search paths, remote sources and worker count are excluded.
        """
        data = {
            'tasks': [task.to_dict() for task in self.tasks],
            'base_url': self.base_url,
            'output_path': self.output_path,
            'preserve_names': self.preserve_names,
        }
        encoded = json.dumps(data, sort_keys=True).encode('utf-8')
        return hashlib.md5(encoded).hexdigest()

    @classmethod
    def from_dict(cls, data: dict) -> 'PipelineConfig':
        """Create from dictionary. Keys may be snake_case or camelCase."""
        def get(snake: str, camel: str, default=None):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        tasks = []
        errors = []
        for i, task_data in enumerate(data.get('tasks', [])):
            try:
                tasks.append(Task.from_dict(task_data))
            except (KeyError, TypeError, ValueError) as e:
                errors.append(f"Task #{i + 1} is invalid: {e}")
        if errors:
            raise ConfigurationError(errors)

        defaults = cls()
        return cls(
            search_paths=list(get('search_paths', 'searchPaths', [])),
            file_extensions=list(get('file_extensions', 'fileExtensions', defaults.file_extensions)),
            cache_path=get('cache_path', 'cachePath', ''),
            output_path=get('output_path', 'outputPath', ''),
            base_url=get('base_url', 'baseUrl', ''),
            preserve_names=bool(get('preserve_names', 'preserveNames', False)),
            cache_file=get('cache_file', 'cacheFile', defaults.cache_file),
            remote_sources=list(get('remote_sources', 'remoteSources', [])),
            workers=int(get('workers', 'workers', 1)),
            tasks=tasks,
        )

    @classmethod
    def from_file(cls, filepath: str) -> 'PipelineConfig':
        """Load configuration from a JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class S3Settings:
    """Credentials for s3:// remote sources, read from the environment."""
    endpoint: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'S3Settings':
        return cls(
            endpoint=os.getenv('S3_ENDPOINT'),
            access_key=os.getenv('S3_ACCESS_KEY'),
            secret_key=os.getenv('S3_SECRET_KEY'),
            region=os.getenv('S3_REGION'),
        )
