"""
Conversions between encoded images and frames.

Picked files arrive as encoded bytes and the finished cover leaves as a JPEG;
everything in between works on BGR ``Frame`` objects.
"""

import io
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image, ImageOps

from .geometry import Frame


def fix_orientation_from_exif(image: Image.Image) -> Image.Image:
    """
    Fix image orientation based on EXIF data.

    Args:
        image: PIL Image

    Returns:
        Rotated image if EXIF orientation found
    """
    return ImageOps.exif_transpose(image)


def pil_to_frame(image: Image.Image) -> Frame:
    """Convert a PIL image to a BGR frame."""
    if image.mode != 'RGB':
        image = image.convert('RGB')
    return Frame(cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR))


def decode_image(data: bytes) -> Frame:
    """
    Decode image bytes into an upright BGR frame.

    Args:
        data: Encoded image (JPEG, PNG, ...)

    Returns:
        Frame with EXIF orientation applied

    Raises:
        ValueError: If the bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return pil_to_frame(fix_orientation_from_exif(img))
    except (OSError, Image.DecompressionBombError) as e:
        raise ValueError(f"Could not decode image: {e}") from e


def load_image(path: Union[str, Path]) -> Frame:
    """Read and decode an image file."""
    return decode_image(Path(path).read_bytes())


def encode_jpeg(frame: Frame, quality: int = 95) -> bytes:
    """Encode a frame as JPEG bytes for upload."""
    ok, buffer = cv2.imencode('.jpg', frame.pixels, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError(f"Could not encode {frame.width}x{frame.height} frame as JPEG")
    return buffer.tobytes()
