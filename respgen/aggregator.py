"""
ResultAggregator - Regroups per-output results into publishable image info.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .cache_record import CacheRecord
from .config import PipelineConfig
from .errors import PersistenceFailure
from .fileio import read_json, write_json_atomic
from .output_record import OutputResult
from .source_image import SourceImage
from .tasks import Task


@dataclass
class ImageInfo:
    """
    Published descriptor of one task's outputs for one source image.

    Attributes:
        name: Task name
        format: Task output format value
        url: Logical URL of the source image (the real file URL for 'fallback')
        srcset: Comma-joined '<url> <w>w' list, ascending by width
        sizes: Parallel '(max-width: Npx) Npx' media conditions
        data: Inline data URI (inline tasks only)
        metadata: Observed output metadata keyed by target width string
    """
    name: str
    format: str
    url: str
    srcset: Optional[str] = None
    sizes: Optional[str] = None
    data: Optional[str] = None
    metadata: Dict[str, dict] = field(default_factory=dict)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {'name': self.name, 'format': self.format, 'url': self.url}
        if self.srcset is not None:
            result['srcset'] = self.srcset
        if self.sizes is not None:
            result['sizes'] = self.sizes
        if self.data is not None:
            result['data'] = self.data
        result['metadata'] = self.metadata
        return result


class ResultAggregator:
    """Builds the ordered ImageInfo list for a source from its cache record."""

    def __init__(self, config: PipelineConfig):
        self.config = config

    def logical_url(self, source: SourceImage) -> str:
        base = self.config.base_url.rstrip('/')
        return f"{base}/{source.source_name}"

    def aggregate(self, source: SourceImage, record: CacheRecord) -> List[ImageInfo]:
        """
        Produce one ImageInfo per task that has results, in task order, with
        inline entries moved last.

        Args:
            source: Source image
            record: The source's cache record

        Returns:
            Ordered list of ImageInfo
        """
        infos = []
        for task in self.config.tasks:
            results = record.for_task(task.name)
            if results:
                infos.append(self.transform(source, task, results))
        return self.rearrange(infos)

    def transform(self, source: SourceImage, task: Task, results: Sequence[OutputResult]) -> ImageInfo:
        """Collapse one task's results (any order) into an ImageInfo."""
        ordered = sorted(results, key=lambda r: r.target_width)
        metadata = {
            str(r.target_width): {
                'format': r.format,
                'size': r.size,
                'width': r.width,
                'height': r.height,
                'hasAlpha': r.has_alpha,
            }
            for r in ordered
        }
        fmt = task.format.value
        url = self.logical_url(source)

        inline = [r for r in ordered if r.is_inline]
        if task.is_inline or inline:
            return ImageInfo(
                name=task.name, format=fmt, url=url,
                data=inline[0].data if inline else None, metadata=metadata
            )

        if task.is_fallback:
            return ImageInfo(name=task.name, format=fmt, url=ordered[0].url or url, metadata=metadata)

        srcset = ', '.join(r.srcset for r in ordered if r.srcset)
        sizes = ', '.join(
            f"(max-width: {r.target_width}px) {r.target_width}px" for r in ordered
        )
        return ImageInfo(
            name=task.name, format=fmt, url=url,
            srcset=srcset, sizes=sizes, metadata=metadata
        )

    @staticmethod
    def rearrange(infos: Sequence[ImageInfo]) -> List[ImageInfo]:
        """Stable reorder putting inline-data entries after all others."""
        others = [i for i in infos if not i.is_inline]
        inline = [i for i in infos if i.is_inline]
        return others + inline


class InfoWriter:
    """Writes one <source_name>.json info file per source under output_path."""

    def __init__(self, config: PipelineConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def path_for(self, source: SourceImage) -> Path:
        return Path(self.config.output_path) / f"{source.source_name}.json"

    def write(self, source: SourceImage, infos: Sequence[ImageInfo]) -> bool:
        """
        Write the info file for one source.

        Returns:
            True if written; a write failure is logged and returns False
        """
        path = self.path_for(source)
        data = [info.to_dict() for info in infos]
        if self._unchanged(path, data):
            return True
        try:
            write_json_atomic(path, data)
        except PersistenceFailure as e:
            self.logger.error(f"Error saving image info: {e}", extra={'event': 'persist-failed'})
            return False
        self.logger.debug(f"Wrote {path}", extra={'event': 'info-written'})
        return True

    @staticmethod
    def _unchanged(path: Path, data: list) -> bool:
        """True if the file already holds exactly this content."""
        try:
            return read_json(path) == data
        except (OSError, ValueError):
            return False
