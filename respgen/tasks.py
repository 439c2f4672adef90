"""
Task definitions - named output specifications with per-format encode options.
"""

import re
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, Union


class OutputFormat(str, Enum):
    """Output formats a task can produce."""
    JPEG = 'jpg'
    PNG = 'png'
    WEBP = 'webp'
    INLINE = 'base64'

    @classmethod
    def parse(cls, value: str) -> 'OutputFormat':
        """Parse a format name, accepting common aliases ('jpeg', 'inline')."""
        aliases = {'jpeg': cls.JPEG, 'inline': cls.INLINE}
        key = str(value).lower()
        if key in aliases:
            return aliases[key]
        return cls(key)


def _snake(name: str) -> str:
    """Convert camelCase option keys to snake_case."""
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def _check_int(label: str, value: Any, low: int, high: Optional[int] = None) -> List[str]:
    """Messages for a value that is not an int within [low, high]."""
    if isinstance(value, bool) or not isinstance(value, int):
        return [f"{label} must be an integer (got {value!r})"]
    if value < low or (high is not None and value > high):
        if high is None:
            return [f"{label} must be at least {low} (got {value})"]
        return [f"{label} must be between {low} and {high} (got {value})"]
    return []


def _check_flag(label: str, value: Any) -> List[str]:
    if not isinstance(value, bool):
        return [f"{label} must be true or false (got {value!r})"]
    return []


@dataclass(frozen=True)
class JpegOptions:
    """Lossy raster encode options."""
    FORMAT: ClassVar[OutputFormat] = OutputFormat.JPEG

    quality: int = 80
    progressive: bool = False

    def validate(self) -> List[str]:
        return (_check_int("jpg quality", self.quality, 1, 100)
                + _check_flag("jpg progressive", self.progressive))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PngOptions:
    """Lossless raster encode options (keeps transparency)."""
    FORMAT: ClassVar[OutputFormat] = OutputFormat.PNG

    compression_level: int = 8

    def validate(self) -> List[str]:
        return _check_int("png compression_level", self.compression_level, 0, 9)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WebpOptions:
    """Next-gen encode options."""
    FORMAT: ClassVar[OutputFormat] = OutputFormat.WEBP

    quality: int = 75
    lossless: bool = False

    def validate(self) -> List[str]:
        return (_check_int("webp quality", self.quality, 1, 100)
                + _check_flag("webp lossless", self.lossless))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class InlineOptions:
    """
    Inline data options.

    Attributes:
        inline_below: Sources at or below this byte size are inlined instead
            of being written as files
        placeholder: Also emit an inline preview for sources above the threshold
    """
    FORMAT: ClassVar[OutputFormat] = OutputFormat.INLINE

    inline_below: int = 10000
    placeholder: bool = False

    def validate(self) -> List[str]:
        return (_check_int("inline_below", self.inline_below, 0)
                + _check_flag("placeholder", self.placeholder))

    def to_dict(self) -> dict:
        return asdict(self)


EncodeOptions = Union[JpegOptions, PngOptions, WebpOptions, InlineOptions]

OPTIONS_BY_FORMAT: Dict[OutputFormat, Type] = {
    OutputFormat.JPEG: JpegOptions,
    OutputFormat.PNG: PngOptions,
    OutputFormat.WEBP: WebpOptions,
    OutputFormat.INLINE: InlineOptions,
}


def parse_options(fmt: OutputFormat, data: Optional[Dict[str, Any]]) -> EncodeOptions:
    """
    Build the options object for a format from a plain dict.

    Keys may be camelCase or snake_case. Keys that belong to another format
    raise ValueError.
    """
    options_cls = OPTIONS_BY_FORMAT[fmt]
    allowed = set(options_cls.__dataclass_fields__)
    kwargs = {}
    for key, value in (data or {}).items():
        name = _snake(key)
        if name not in allowed:
            raise ValueError(f"Option '{key}' is not valid for format '{fmt.value}'")
        kwargs[name] = value
    return options_cls(**kwargs)


@dataclass(frozen=True)
class Task:
    """
    A named transformation: target format, widths, optional aspect ratio.

    Attributes:
        name: Task name, unique within a configuration
        options: Format-specific encode options; the task format follows from
            their type
        sizes: Target widths in pixels
        aspect_ratio: width / height; when set, height is derived from width
    """
    name: str
    options: EncodeOptions
    sizes: Tuple[int, ...] = field(default_factory=tuple)
    aspect_ratio: Optional[float] = None

    FALLBACK_NAME: ClassVar[str] = 'fallback'

    def __post_init__(self):
        object.__setattr__(self, 'sizes', tuple(self.sizes))

    @property
    def format(self) -> OutputFormat:
        return self.options.FORMAT

    @property
    def is_inline(self) -> bool:
        return self.format == OutputFormat.INLINE

    @property
    def is_fallback(self) -> bool:
        return self.name == self.FALLBACK_NAME

    @property
    def widths(self) -> List[int]:
        """Distinct target widths, ascending."""
        return sorted(set(self.sizes))

    def height_for(self, width: int) -> Optional[int]:
        """Height for a target width, or None when the aspect ratio is free."""
        if not self.aspect_ratio:
            return None
        return max(1, round(width / self.aspect_ratio))

    def validate(self) -> List[str]:
        """Return one message per problem with this task."""
        errors = []
        label = self.name or '<unnamed>'
        if not self.name:
            errors.append("Task is missing a \"name\".")
        if not self.is_inline and not self.sizes:
            errors.append(f"Task \"{label}\" has no sizes.")
        for size in self.sizes:
            if not isinstance(size, int) or size <= 0:
                errors.append(f"Task \"{label}\" has an invalid size: {size!r}")
        if self.aspect_ratio is not None and self.aspect_ratio <= 0:
            errors.append(f"Task \"{label}\" has an invalid aspect ratio: {self.aspect_ratio}")
        errors.extend(f"Task \"{label}\": {e}" for e in self.options.validate())
        return errors

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'format': self.format.value,
            'sizes': list(self.sizes),
            'aspect_ratio': self.aspect_ratio,
            'options': self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Task':
        """Create from dictionary (config file form)."""
        fmt = OutputFormat.parse(data['format'])
        aspect_ratio = data.get('aspect_ratio', data.get('aspectRatio'))
        return cls(
            name=data.get('name', ''),
            options=parse_options(fmt, data.get('options')),
            sizes=tuple(data.get('sizes', [])),
            aspect_ratio=float(aspect_ratio) if aspect_ratio else None,
        )
