"""
OutputPathResolver - Maps (source, task, width) to a stable output identity.
"""

import os
from pathlib import Path

from .config import PipelineConfig
from .output_record import OutputDescriptor
from .source_image import SourceImage
from .tasks import Task


class OutputPathResolver:
    """
    Single place where output names, paths and URLs are derived.

    Layout: <output_path>/<base_url>/<name_token>_<width>.<ext>, where the
    name token is the content hash, or the source basename when
    preserve_names is set. The public URL is the same relative path without
    the filesystem root.
    """

    def __init__(self, config: PipelineConfig):
        self.config = config

    def name_token(self, source: SourceImage) -> str:
        """Hash or basename, depending on preserve_names."""
        return source.basename if self.config.preserve_names else source.hash

    def cache_key(self, source: SourceImage) -> str:
        """Key of the source's record in the cache file."""
        if self.config.preserve_names:
            return source.source_name
        return source.hash

    def output_file(self, source: SourceImage, task: Task, width: int) -> str:
        return f"{self.name_token(source)}_{width}.{task.format.value}"

    def url_for(self, output_file: str) -> str:
        base = self.config.base_url.rstrip('/')
        return f"{base}/{output_file}" if base else output_file

    def resolve(self, source: SourceImage, task: Task, width: int) -> OutputDescriptor:
        """
        Compute the descriptor for one (source, task, width).

        Args:
            source: Source image
            task: Output task
            width: Target width

        Returns:
            OutputDescriptor (no side effects)
        """
        output_file = self.output_file(source, task, width)
        output_path = self._output_path(source, output_file)

        if task.is_inline:
            url = None
            srcset = None
        elif self.config.output_path_fn:
            url = self._url_from_path(output_path)
            srcset = f"{url} {width}w"
        else:
            url = self.url_for(output_file)
            srcset = f"{url} {width}w"

        return OutputDescriptor(
            source_key=self.cache_key(source),
            source_name=source.source_name,
            task=task.name,
            format=task.format.value,
            width=width,
            height=task.height_for(width),
            output_path=output_path,
            url=url,
            srcset=srcset,
            is_inline=task.is_inline,
        )

    def _output_path(self, source: SourceImage, output_file: str) -> str:
        if self.config.output_path_fn:
            return str(self.config.output_path_fn(
                source.path, self.config.base_url, self.config.output_path, output_file
            ))
        base_dir = self.config.base_url.strip('/')
        return str(Path(self.config.output_path) / base_dir / output_file)

    def _url_from_path(self, output_path: str) -> str:
        """URL for a custom output path: its location relative to output_path."""
        rel = os.path.relpath(output_path, self.config.output_path)
        rel = rel.replace(os.sep, '/')
        if self.config.base_url.startswith('/'):
            return f"/{rel}"
        return rel
