"""
Pytest fixtures for respgen tests.
"""

import logging
import os

import pytest
from PIL import Image

from respgen.config import PipelineConfig
from respgen.tasks import InlineOptions, JpegOptions, PngOptions, Task, WebpOptions
from respgen.transcoder import TranscodeResult


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    logger = logging.getLogger('test')
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def src_dir(tmp_path):
    """Directory holding source images."""
    path = tmp_path / 'src'
    path.mkdir()
    return path


@pytest.fixture
def make_image(src_dir):
    """
    Factory writing a real image file.

    noisy=True produces incompressible content, so the file is large.
    """
    def _make(name, size=(100, 100), mode='RGB', fmt=None, noisy=False, color='red', directory=None):
        directory = directory or src_dir
        path = os.path.join(str(directory), name)
        if noisy:
            img = Image.effect_noise(size, 100).convert(mode)
        else:
            img = Image.new(mode, size, color=color)
        img.save(path, format=fmt)
        return path
    return _make


@pytest.fixture
def photo_path(make_image):
    """2000px wide JPEG well above the inline threshold."""
    return make_image('photo.jpg', size=(2000, 1250), noisy=True, fmt='JPEG')


@pytest.fixture
def icon_path(make_image):
    """Small transparent PNG below the inline threshold."""
    return make_image('icon.png', size=(64, 64), mode='RGBA', color=(255, 0, 0, 128), fmt='PNG')


@pytest.fixture
def responsive_tasks():
    """jpeg + webp at three widths, plus inline below 10000 bytes."""
    return [
        Task('jpeg', JpegOptions(), sizes=(480, 768, 1920)),
        Task('webp', WebpOptions(), sizes=(480, 768, 1920)),
        Task('inline', InlineOptions(inline_below=10000), sizes=(480, 768, 1920)),
    ]


@pytest.fixture
def config(tmp_path, src_dir, responsive_tasks):
    """Fixture providing a valid pipeline configuration."""
    return PipelineConfig(
        search_paths=[str(src_dir)],
        cache_path=str(tmp_path / 'cache'),
        output_path=str(tmp_path / 'out'),
        base_url='/images',
        tasks=responsive_tasks,
    )


@pytest.fixture
def png_task():
    return Task('png', PngOptions(), sizes=(32,))


@pytest.fixture
def fake_transcoder(mocker):
    """
    Transcoder stand-in that writes a small file (or returns a data URI)
    and echoes the requested dimensions.
    """
    from respgen.transcoder import Transcoder

    def _transcode(source_path, width, height, options, output_path=None):
        if output_path is None:
            return TranscodeResult(
                format='png', width=width, height=height or width, size=10,
                has_alpha=False, data='data:image/png;base64,AAAA',
            )
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        with open(output_path, 'wb') as f:
            f.write(b'x' * width)
        return TranscodeResult(
            format=options.FORMAT.value, width=width, height=height or width,
            size=width, has_alpha=False, output_path=output_path,
        )

    transcoder = mocker.MagicMock(spec=Transcoder)
    transcoder.transcode.side_effect = _transcode
    return transcoder


@pytest.fixture
def config_file(tmp_path, src_dir):
    """Fixture providing a JSON configuration file in camelCase form."""
    import json

    data = {
        'searchPaths': [str(src_dir)],
        'cachePath': str(tmp_path / 'cache'),
        'outputPath': str(tmp_path / 'out'),
        'baseUrl': '/images',
        'tasks': [
            {'format': 'jpg', 'name': 'fallback', 'sizes': [64], 'options': {'quality': 70}},
            {'format': 'webp', 'name': 'modern', 'sizes': [32, 64]},
        ],
    }
    path = tmp_path / 'images.json'
    path.write_text(json.dumps(data))
    return str(path)
