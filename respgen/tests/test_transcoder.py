"""Tests for the Pillow transcoder."""

import base64
import io
import os

import pytest
from PIL import Image, features

from respgen.errors import TranscodeFailure, UnsupportedFormat
from respgen.output_record import is_data_uri
from respgen.tasks import InlineOptions, JpegOptions, PngOptions, WebpOptions
from respgen.transcoder import Transcoder


class TestTranscoder:
    """Tests for Transcoder."""

    def test_jpeg_file(self, make_image, tmp_path, logger):
        """Test a JPEG output is written with its real dimensions."""
        source = make_image('a.png', size=(400, 200))
        target = str(tmp_path / 'out' / 'a_100.jpg')

        result = Transcoder(logger).transcode(source, 100, None, JpegOptions(quality=70), target)

        assert os.path.exists(target)
        assert result.output_path == target
        assert result.data is None
        assert (result.format, result.width, result.height) == ('jpeg', 100, 50)
        assert result.size == os.path.getsize(target)

    def test_never_enlarges(self, make_image, tmp_path, logger):
        """Test a target above the source width keeps the source size."""
        source = make_image('a.png', size=(80, 40))
        target = str(tmp_path / 'a_480.png')

        result = Transcoder(logger).transcode(source, 480, None, PngOptions(), target)

        assert (result.width, result.height) == (80, 40)

    def test_aspect_ratio_crop(self, make_image, tmp_path, logger):
        """Test a fixed height crops to cover."""
        source = make_image('a.jpg', size=(400, 400))
        target = str(tmp_path / 'a_160.jpg')

        result = Transcoder(logger).transcode(source, 160, 100, JpegOptions(), target)

        assert (result.width, result.height) == (160, 100)

    def test_jpeg_flattens_alpha(self, icon_path, tmp_path, logger):
        """Test transparency is composited away for JPEG."""
        target = str(tmp_path / 'icon_32.jpg')

        result = Transcoder(logger).transcode(icon_path, 32, None, JpegOptions(), target)

        assert result.has_alpha is False
        with Image.open(target) as img:
            assert img.mode == 'RGB'

    def test_png_keeps_alpha(self, icon_path, tmp_path, logger):
        """Test PNG output keeps transparency."""
        target = str(tmp_path / 'icon_32.png')

        result = Transcoder(logger).transcode(icon_path, 32, None, PngOptions(compression_level=9), target)

        assert result.has_alpha is True
        assert result.format == 'png'

    @pytest.mark.skipif(not features.check('webp'), reason="Pillow built without WebP")
    def test_webp(self, make_image, tmp_path, logger):
        """Test WebP output."""
        source = make_image('a.jpg', size=(200, 100))
        target = str(tmp_path / 'a_100.webp')

        result = Transcoder(logger).transcode(source, 100, None, WebpOptions(quality=50), target)

        assert result.format == 'webp'
        assert (result.width, result.height) == (100, 50)

    def test_inline_writes_nothing(self, icon_path, tmp_path, logger):
        """Test inline output is a PNG data URI and touches no file."""
        result = Transcoder(logger).transcode(icon_path, 16, None, InlineOptions())

        assert result.output_path is None
        assert is_data_uri(result.data)
        payload = base64.b64decode(result.data.split(',', 1)[1])
        with Image.open(io.BytesIO(payload)) as img:
            assert img.format == 'PNG'
            assert img.size == (16, 16)
        assert result.size == len(payload)

    def test_file_output_needs_path(self, icon_path, logger):
        """Test file formats require an output path."""
        with pytest.raises(TranscodeFailure):
            Transcoder(logger).transcode(icon_path, 16, None, PngOptions())

    def test_unsupported_options(self, icon_path, tmp_path, logger):
        """Test unknown option types are rejected as unsupported."""
        with pytest.raises(UnsupportedFormat):
            Transcoder(logger).transcode(icon_path, 16, None, object(), str(tmp_path / 'x'))

    def test_webp_unavailable(self, icon_path, tmp_path, logger, mocker):
        """Test a Pillow build without WebP reports UnsupportedFormat."""
        mocker.patch('respgen.transcoder.features.check', return_value=False)
        with pytest.raises(UnsupportedFormat):
            Transcoder(logger).transcode(icon_path, 16, None, WebpOptions(), str(tmp_path / 'x.webp'))

    def test_undecodable_source(self, src_dir, tmp_path, logger):
        """Test a broken source raises TranscodeFailure."""
        path = src_dir / 'broken.jpg'
        path.write_bytes(b'nope')

        with pytest.raises(TranscodeFailure) as exc_info:
            Transcoder(logger).transcode(str(path), 16, None, JpegOptions(), str(tmp_path / 'x.jpg'))
        assert exc_info.value.source_path == str(path)

    def test_write_failure(self, icon_path, logger, mocker, tmp_path):
        """Test a write failure becomes TranscodeFailure."""
        from respgen.errors import PersistenceFailure

        mocker.patch('respgen.transcoder.write_bytes_atomic', side_effect=PersistenceFailure('disk full'))
        with pytest.raises(TranscodeFailure, match='disk full'):
            Transcoder(logger).transcode(icon_path, 16, None, PngOptions(), str(tmp_path / 'x.png'))
