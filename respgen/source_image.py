"""
SourceImage - One input image and its intrinsic metadata.
"""

import hashlib
import os
from dataclasses import dataclass, asdict
from typing import Optional

from PIL import Image, UnidentifiedImageError


@dataclass(frozen=True)
class SourceImage:
    """
    One input image, identified by its content hash.

    Attributes:
        path: Local path the bytes were read from
        hash: MD5 of the file bytes
        basename: File name without extension
        extname: Extension including the dot (e.g. '.jpg')
        format: Decoded format as reported by Pillow (lowercase)
        size: File size in bytes
        width: Intrinsic width in pixels
        height: Intrinsic height in pixels
        has_alpha: True if the image carries transparency
        url: Originating remote URL, if the file was downloaded
    """
    path: str
    hash: str
    basename: str
    extname: str
    format: str
    size: int
    width: int
    height: int
    has_alpha: bool
    url: Optional[str] = None

    @property
    def source_name(self) -> str:
        """File name with extension."""
        return f"{self.basename}{self.extname}"

    @property
    def origin(self) -> str:
        """Where the image came from: the remote URL or the local path."""
        return self.url or self.path

    @classmethod
    def from_path(cls, path: str, url: Optional[str] = None) -> 'SourceImage':
        """
        Read a source file and its metadata.

        Args:
            path: Local file path
            url: Originating URL for downloaded sources

        Raises:
            OSError: If the file cannot be read or decoded
        """
        with open(path, 'rb') as f:
            data = f.read()

        try:
            with Image.open(path) as img:
                width, height = img.size
                fmt = (img.format or '').lower()
                has_alpha = (
                    img.mode in ('RGBA', 'LA', 'PA')
                    or 'transparency' in img.info
                )
        except UnidentifiedImageError as e:
            raise OSError(f"Cannot decode image {path}: {e}") from e

        filename = os.path.basename(path)
        basename, extname = os.path.splitext(filename)

        return cls(
            path=path,
            hash=hashlib.md5(data).hexdigest(),
            basename=basename,
            extname=extname,
            format=fmt,
            size=len(data),
            width=width,
            height=height,
            has_alpha=has_alpha,
            url=url,
        )

    def format_info(self) -> str:
        """Human-readable summary, e.g. 'transparent PNG; 4000 bytes; 64x64px'."""
        alpha = 'transparent ' if self.has_alpha else ''
        return f"{alpha}{self.format.upper()}; {self.size} bytes; {self.width}x{self.height}px"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'SourceImage':
        return cls(
            path=data['path'],
            hash=data['hash'],
            basename=data['basename'],
            extname=data['extname'],
            format=data.get('format', ''),
            size=int(data['size']),
            width=int(data['width']),
            height=int(data['height']),
            has_alpha=bool(data.get('has_alpha', False)),
            url=data.get('url'),
        )
