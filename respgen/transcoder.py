"""
Transcoder - Resizes and encodes source images using Pillow.
"""

import base64
import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError, features

from .errors import PersistenceFailure, TranscodeFailure, UnsupportedFormat
from .fileio import write_bytes_atomic
from .tasks import (
    EncodeOptions,
    InlineOptions,
    JpegOptions,
    OutputFormat,
    PngOptions,
    WebpOptions,
)


@dataclass
class TranscodeResult:
    """
    Observed outcome of one transcode.

    Width, height and alpha are read back from the encoded bytes, not taken
    from the request. Exactly one of output_path / data is set.
    """
    format: str
    width: int
    height: int
    size: int
    has_alpha: bool
    output_path: Optional[str] = None
    data: Optional[str] = None


class Transcoder:
    """
    Produces resized outputs from source files.

    Never enlarges: a target larger than the source is clamped to the
    source dimensions.
    """

    PIL_FORMATS = {
        OutputFormat.JPEG: 'JPEG',
        OutputFormat.PNG: 'PNG',
        OutputFormat.WEBP: 'WEBP',
        OutputFormat.INLINE: 'PNG',
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def transcode(
        self,
        source_path: str,
        width: int,
        height: Optional[int],
        options: EncodeOptions,
        output_path: Optional[str] = None
    ) -> TranscodeResult:
        """
        Resize and encode one output.

        Args:
            source_path: Source image file
            width: Target width
            height: Target height, or None to keep the aspect ratio
            options: Encode options; their type selects the format
            output_path: Destination file (ignored for inline output)

        Returns:
            TranscodeResult with observed metadata

        Raises:
            UnsupportedFormat: If the format cannot be encoded here
            TranscodeFailure: If decoding, encoding or writing fails
        """
        fmt = self._check_format(options)

        if fmt != OutputFormat.INLINE and not output_path:
            raise TranscodeFailure(f"No output path for {fmt.value} output", source_path)

        try:
            with Image.open(source_path) as img:
                img.load()
                resized = self._resize(img, width, height)
                encoded = self._encode(resized, options)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            self.logger.error(f"Error transcoding {source_path}: {e}")
            raise TranscodeFailure(f"Cannot transcode {source_path}: {e}", source_path) from e

        out_format, out_width, out_height, has_alpha = self._inspect(encoded)

        if fmt == OutputFormat.INLINE:
            payload = base64.b64encode(encoded).decode('ascii')
            return TranscodeResult(
                format=out_format,
                width=out_width,
                height=out_height,
                size=len(encoded),
                has_alpha=has_alpha,
                data=f"data:image/png;base64,{payload}",
            )

        try:
            write_bytes_atomic(output_path, encoded)
        except PersistenceFailure as e:
            raise TranscodeFailure(str(e), source_path) from e

        return TranscodeResult(
            format=out_format,
            width=out_width,
            height=out_height,
            size=len(encoded),
            has_alpha=has_alpha,
            output_path=output_path,
        )

    def _check_format(self, options: EncodeOptions) -> OutputFormat:
        fmt = getattr(options, 'FORMAT', None)
        if fmt not in self.PIL_FORMATS:
            raise UnsupportedFormat(f"Unsupported output options: {type(options).__name__}")
        if fmt == OutputFormat.WEBP and not features.check('webp'):
            raise UnsupportedFormat("This Pillow build cannot encode WebP")
        return fmt

    def _resize(self, img: Image.Image, width: int, height: Optional[int]) -> Image.Image:
        """Resize to width (and height, cropping to cover) without enlarging."""
        src_w, src_h = img.size

        if height is None:
            if width >= src_w:
                return img.copy()
            new_h = max(1, round(src_h * width / src_w))
            return img.resize((width, new_h), Image.Resampling.LANCZOS)

        factor = min(1.0, src_w / width, src_h / height)
        box = (max(1, round(width * factor)), max(1, round(height * factor)))
        return ImageOps.fit(img, box, Image.Resampling.LANCZOS)

    def _encode(self, img: Image.Image, options: EncodeOptions) -> bytes:
        output = io.BytesIO()

        if isinstance(options, JpegOptions):
            img = self._flatten(img)
            img.save(
                output, format='JPEG', quality=options.quality,
                optimize=True, progressive=options.progressive
            )
        elif isinstance(options, PngOptions):
            img = self._keep_alpha(img)
            img.save(output, format='PNG', compress_level=options.compression_level)
        elif isinstance(options, WebpOptions):
            img = self._keep_alpha(img)
            img.save(output, format='WEBP', quality=options.quality, lossless=options.lossless)
        elif isinstance(options, InlineOptions):
            img = self._keep_alpha(img)
            img.save(output, format='PNG', optimize=True)
        else:
            raise UnsupportedFormat(f"Unsupported output options: {type(options).__name__}")

        return output.getvalue()

    def _flatten(self, img: Image.Image) -> Image.Image:
        """Convert to RGB, compositing transparency onto white."""
        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img

    def _keep_alpha(self, img: Image.Image) -> Image.Image:
        """Convert to RGB or RGBA, preserving transparency."""
        if img.mode in ('RGB', 'RGBA'):
            return img
        if img.mode in ('LA', 'PA') or 'transparency' in img.info:
            return img.convert('RGBA')
        return img.convert('RGB')

    @staticmethod
    def _inspect(data: bytes) -> Tuple[str, int, int, bool]:
        """Decode encoded bytes and report (format, width, height, has_alpha)."""
        with Image.open(io.BytesIO(data)) as out:
            has_alpha = out.mode in ('RGBA', 'LA', 'PA') or 'transparency' in out.info
            return (out.format or '').lower(), out.width, out.height, has_alpha
