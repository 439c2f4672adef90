"""
CacheRecord - Persisted outputs for one source image.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import CacheCorruption
from .output_record import OutputResult
from .source_image import SourceImage


@dataclass
class CacheRecord:
    """
    Outputs produced so far for one source, under one configuration checksum.

    Attributes:
        key: Cache key (content hash or source name)
        checksum: Configuration checksum the outputs were produced under
        source: The source image the outputs were derived from
        is_inline: True if the source is small enough to be inlined
        outputs: Results keyed by (task name, target width)
    """
    key: str
    checksum: str
    source: SourceImage
    is_inline: bool = False
    outputs: Dict[Tuple[str, int], OutputResult] = field(default_factory=dict)

    def add_output(self, result: OutputResult) -> None:
        """Add or replace the result for its (task, width)."""
        self.outputs[result.identity] = result

    def get(self, task: str, width: int) -> Optional[OutputResult]:
        return self.outputs.get((task, width))

    def for_task(self, task: str) -> List[OutputResult]:
        """Results of one task, ascending by target width."""
        results = [r for r in self.outputs.values() if r.task == task]
        return sorted(results, key=lambda r: r.target_width)

    def for_width(self, width: int) -> List[OutputResult]:
        """File-backed results at a target width."""
        return [
            r for r in self.outputs.values()
            if r.target_width == width and not r.is_inline
        ]

    @property
    def inline_outputs(self) -> List[OutputResult]:
        return [r for r in self.outputs.values() if r.is_inline]

    @property
    def total_bytes(self) -> int:
        return sum(r.size for r in self.outputs.values())

    def stale_outputs(self) -> List[OutputResult]:
        """Results whose file is missing or whose payload is malformed."""
        return [r for r in self.outputs.values() if r.is_stale()]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        ordered = sorted(self.outputs.values(), key=lambda r: (r.task, r.target_width))
        return {
            'key': self.key,
            'checksum': self.checksum,
            'source': self.source.to_dict(),
            'is_inline': self.is_inline,
            'outputs': [r.to_dict() for r in ordered],
        }

    @classmethod
    def from_dict(cls, key: str, data: dict) -> 'CacheRecord':
        """
        Create from dictionary.

        Raises:
            CacheCorruption: If the entry cannot be decoded
        """
        if not isinstance(data, dict):
            raise CacheCorruption(f"Cache entry '{key}' is not an object")
        try:
            source = SourceImage.from_dict(data['source'])
        except (KeyError, TypeError, ValueError) as e:
            raise CacheCorruption(f"Cache entry '{key}' has no usable source: {e}") from e

        record = cls(
            key=key,
            checksum=str(data.get('checksum', '')),
            source=source,
            is_inline=bool(data.get('is_inline', False)),
        )
        outputs = data.get('outputs', [])
        if not isinstance(outputs, list):
            raise CacheCorruption(f"Cache entry '{key}' has malformed outputs")
        for output_data in outputs:
            record.add_output(OutputResult.from_dict(output_data))
        return record
