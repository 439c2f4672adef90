"""Tests for task definitions."""

import pytest

from respgen.tasks import (
    InlineOptions,
    JpegOptions,
    OutputFormat,
    PngOptions,
    Task,
    WebpOptions,
    parse_options,
)


class TestOutputFormat:
    """Tests for OutputFormat parsing."""

    def test_parse_values(self):
        """Test parsing canonical format names."""
        assert OutputFormat.parse('jpg') == OutputFormat.JPEG
        assert OutputFormat.parse('png') == OutputFormat.PNG
        assert OutputFormat.parse('webp') == OutputFormat.WEBP
        assert OutputFormat.parse('base64') == OutputFormat.INLINE

    def test_parse_aliases(self):
        """Test common aliases are accepted."""
        assert OutputFormat.parse('JPEG') == OutputFormat.JPEG
        assert OutputFormat.parse('inline') == OutputFormat.INLINE

    def test_parse_unknown(self):
        """Test unknown formats are rejected."""
        with pytest.raises(ValueError):
            OutputFormat.parse('gif')


class TestOptions:
    """Tests for per-format encode options."""

    def test_defaults(self):
        """Test defaults match the documented values."""
        assert JpegOptions().quality == 80
        assert PngOptions().compression_level == 8
        assert WebpOptions().quality == 75
        assert WebpOptions().lossless is False
        assert InlineOptions().inline_below == 10000

    def test_validate_ranges(self):
        """Test out-of-range values are reported."""
        assert JpegOptions(quality=0).validate()
        assert PngOptions(compression_level=10).validate()
        assert WebpOptions(quality=101).validate()
        assert InlineOptions(inline_below=-1).validate()
        assert JpegOptions(quality=100).validate() == []

    def test_parse_camel_case(self):
        """Test camelCase keys map to option fields."""
        options = parse_options(OutputFormat.PNG, {'compressionLevel': 3})
        assert options == PngOptions(compression_level=3)

    def test_validate_types(self):
        """Test values of the wrong type are reported instead of raising."""
        options = parse_options(OutputFormat.JPEG, {'quality': '80'})

        errors = options.validate()

        assert errors == ["jpg quality must be an integer (got '80')"]
        assert WebpOptions(lossless='yes').validate()
        assert InlineOptions(inline_below=None).validate()
        assert PngOptions(compression_level=True).validate()

    def test_parse_rejects_force(self):
        """Test 'force' is rejected like any other unknown key."""
        with pytest.raises(ValueError, match='force'):
            parse_options(OutputFormat.JPEG, {'quality': 60, 'force': True})

    def test_parse_rejects_foreign_key(self):
        """Test a key from another format is rejected."""
        with pytest.raises(ValueError, match='lossless'):
            parse_options(OutputFormat.JPEG, {'lossless': True})


class TestTask:
    """Tests for Task."""

    def test_format_follows_options(self):
        """Test the task format is derived from its options type."""
        assert Task('a', WebpOptions(), sizes=(100,)).format == OutputFormat.WEBP
        assert Task('b', InlineOptions()).is_inline is True

    def test_widths_sorted_distinct(self):
        """Test widths are distinct and ascending."""
        task = Task('a', JpegOptions(), sizes=[768, 480, 768])
        assert task.widths == [480, 768]

    def test_height_for(self):
        """Test height derivation from aspect ratio."""
        task = Task('a', JpegOptions(), sizes=(768,), aspect_ratio=16 / 10)
        assert task.height_for(768) == 480
        assert Task('b', JpegOptions(), sizes=(768,)).height_for(768) is None

    def test_is_fallback(self):
        """Test the fallback task is recognized by name."""
        assert Task('fallback', JpegOptions(), sizes=(768,)).is_fallback is True
        assert Task('other', JpegOptions(), sizes=(768,)).is_fallback is False

    def test_validate(self):
        """Test validation messages."""
        task = Task('', JpegOptions(quality=500), sizes=(0,), aspect_ratio=-1)
        errors = task.validate()
        assert len(errors) == 4

    def test_validate_missing_sizes(self):
        """Test file tasks need sizes but inline tasks do not."""
        assert Task('a', JpegOptions()).validate()
        assert Task('b', InlineOptions()).validate() == []

    def test_from_dict(self):
        """Test parsing the config-file form."""
        task = Task.from_dict({
            'format': 'jpg',
            'name': 'fallback',
            'sizes': [768],
            'aspectRatio': 1.6,
            'options': {'quality': 75, 'progressive': True},
        })
        assert task.name == 'fallback'
        assert task.sizes == (768,)
        assert task.aspect_ratio == 1.6
        assert task.options == JpegOptions(quality=75, progressive=True)

    def test_to_dict_changes_with_options(self):
        """Test encode options are part of the serialized task."""
        a = Task('a', JpegOptions(quality=80), sizes=(100,))
        b = Task('a', JpegOptions(quality=81), sizes=(100,))
        assert a.to_dict() != b.to_dict()
