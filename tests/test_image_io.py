"""Tests for image decoding and encoding."""

import io

import numpy as np
import pytest
from PIL import Image

from coverscan.geometry import Frame
from coverscan.image_io import decode_image, encode_jpeg, load_image

from .helpers import make_cover_frame


def jpeg_bytes(width, height, orientation=None):
    img = Image.new('RGB', (width, height), (200, 40, 40))
    buffer = io.BytesIO()
    if orientation is None:
        img.save(buffer, format='JPEG')
    else:
        exif = Image.Exif()
        exif[0x0112] = orientation
        img.save(buffer, format='JPEG', exif=exif)
    return buffer.getvalue()


class TestDecodeImage:
    """Bytes to frame."""

    def test_decodes_to_bgr(self):
        """Decoded frames are BGR with the image's size."""
        frame = decode_image(jpeg_bytes(40, 20))
        assert frame.size == (40, 20)
        assert frame.channels == 3
        b, g, r = frame.pixels[10, 20].astype(int)
        assert r > 150 and b < 100

    def test_applies_exif_orientation(self):
        """A rotated phone photo comes out upright."""
        frame = decode_image(jpeg_bytes(40, 20, orientation=6))
        assert frame.size == (20, 40)

    def test_grayscale_is_converted(self):
        """Single-channel files become three-channel frames."""
        buffer = io.BytesIO()
        Image.new('L', (16, 8), 128).save(buffer, format='PNG')
        frame = decode_image(buffer.getvalue())
        assert frame.pixels.shape == (8, 16, 3)

    def test_garbage(self):
        """Undecodable bytes raise ValueError."""
        with pytest.raises(ValueError):
            decode_image(b'not an image')

    def test_load_from_path(self, tmp_path):
        """Files are read and decoded."""
        path = tmp_path / 'cover.jpg'
        path.write_bytes(jpeg_bytes(30, 50))
        assert load_image(path).size == (30, 50)


class TestEncodeJpeg:
    """Frame to upload-ready JPEG."""

    def test_round_trip_size(self):
        """Encoded covers decode to the same dimensions."""
        data = encode_jpeg(make_cover_frame())
        assert data[:2] == b'\xff\xd8'
        assert decode_image(data).size == (800, 600)

    def test_quality_changes_size(self):
        """Lower quality produces smaller files."""
        rng = np.random.default_rng(3)
        frame = Frame(rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8))
        assert len(encode_jpeg(frame, quality=30)) < len(encode_jpeg(frame, quality=95))
