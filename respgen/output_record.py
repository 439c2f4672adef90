"""
OutputDescriptor / OutputResult - One derived artifact, planned and produced.
"""

import os
import re
from dataclasses import dataclass, asdict
from typing import Optional

from .errors import CacheCorruption

DATA_URI_PATTERN = re.compile(r'^data:image/[a-z0-9.+-]+;base64,[A-Za-z0-9+/]+={0,2}$')


def is_data_uri(value: Optional[str]) -> bool:
    """True if value looks like a base64 image data URI."""
    return bool(value) and DATA_URI_PATTERN.match(value) is not None


@dataclass(frozen=True)
class OutputDescriptor:
    """
    Identity of one derived artifact for (source, task, width).

    Deterministic; recomputing it has no side effects.

    Attributes:
        source_key: Cache key of the source image
        source_name: Source file name
        task: Task name
        format: Task output format value
        width: Target width
        height: Target height, if the task fixes an aspect ratio
        output_path: File path for file-backed outputs; identity only for inline
        url: Public URL (None for inline outputs)
        srcset: '<url> <width>w' fragment (None for inline outputs)
        is_inline: True for inline-data outputs
    """
    source_key: str
    source_name: str
    task: str
    format: str
    width: int
    height: Optional[int]
    output_path: str
    url: Optional[str]
    srcset: Optional[str]
    is_inline: bool = False

    @property
    def identity(self) -> tuple:
        return (self.task, self.width)


@dataclass
class OutputResult:
    """
    A produced artifact: descriptor identity plus observed outcome.

    Exactly one of output_path / data is set.

    Attributes:
        task: Task name
        format: Task output format value
        target_width: Width that was requested
        width: Actual encoded width
        height: Actual encoded height
        size: Encoded size in bytes
        has_alpha: Whether the output has an alpha channel
        output_path: Written file (file-backed outputs)
        url: Public URL (file-backed outputs)
        srcset: srcset fragment (file-backed outputs)
        data: Data URI payload (inline outputs)
    """
    task: str
    format: str
    target_width: int
    width: int
    height: int
    size: int
    has_alpha: bool = False
    output_path: Optional[str] = None
    url: Optional[str] = None
    srcset: Optional[str] = None
    data: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    @property
    def identity(self) -> tuple:
        return (self.task, self.target_width)

    def is_stale(self) -> bool:
        """
        True if the artifact behind this result is gone or malformed.

        File-backed: the file no longer exists. Inline: the payload is not a
        data URI.
        """
        if self.output_path is None and self.data is None:
            return True
        if self.is_inline:
            return not is_data_uri(self.data)
        return not os.path.exists(self.output_path)

    def to_dict(self) -> dict:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> 'OutputResult':
        """
        Create from dictionary.

        Raises:
            CacheCorruption: If required fields are missing or malformed
        """
        try:
            return cls(
                task=str(data['task']),
                format=str(data['format']),
                target_width=int(data['target_width']),
                width=int(data['width']),
                height=int(data['height']),
                size=int(data['size']),
                has_alpha=bool(data.get('has_alpha', False)),
                output_path=data.get('output_path'),
                url=data.get('url'),
                srcset=data.get('srcset'),
                data=data.get('data'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CacheCorruption(f"Malformed output entry: {e}") from e
