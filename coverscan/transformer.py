"""Perspective rectification of a captured cover."""

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from .detector import DetectionBackend
from .errors import InvalidQuad, RectificationFailed
from .geometry import Frame, Quad, quad_to_array

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_output_dimensions(quad: Quad) -> Tuple[int, int]:
    """Compute output dimensions preserving aspect ratio.

    Args:
        quad: Ordered corners (TL, TR, BR, BL).

    Returns:
        Tuple of (width, height) for the output image.

    Raises:
        InvalidQuad: A coordinate is not finite, or a side rounds to 0.
    """
    if len(quad) != 4:
        raise InvalidQuad(f"expected 4 corners, got {len(quad)}")
    if not all(p.is_finite() for p in quad):
        raise InvalidQuad("corner coordinates must be finite")

    tl, tr, br, bl = quad

    # Width is the longer of the top and bottom edges
    width = _round_half_up(max(tl.distance_to(tr), bl.distance_to(br)))

    # Height is the longer of the left and right edges
    height = _round_half_up(max(tl.distance_to(bl), tr.distance_to(br)))

    if width < 1 or height < 1:
        raise InvalidQuad(f"quad collapses to a {width}x{height} image")

    return width, height


def destination_rect(width: int, height: int) -> np.ndarray:
    return np.array([
        [0, 0],               # Top-left
        [width, 0],           # Top-right
        [width, height],      # Bottom-right
        [0, height],          # Bottom-left
    ], dtype=np.float32)


class Rectifier(ABC):
    """Flattens the region inside a quad into a width x height image."""

    name = "rectifier"

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    def warp(self, frame: Frame, quad: Quad, size: Tuple[int, int]) -> Frame:
        """Warp ``quad`` of ``frame`` to an image of ``size`` (width, height)."""


class MatrixRectifier(Rectifier):
    """True homography through the detection backend's matrix transform."""

    name = "matrix"

    def __init__(self, backend: DetectionBackend):
        self.backend = backend

    @property
    def available(self) -> bool:
        return self.backend.ready

    def warp(self, frame: Frame, quad: Quad, size: Tuple[int, int]) -> Frame:
        width, height = size
        warped = self.backend.warp_perspective(
            frame.pixels, quad_to_array(quad), destination_rect(width, height), (width, height)
        )
        return Frame(warped)


class BilinearRectifier(Rectifier):
    """Approximate rectification without a matrix backend.

    Each destination pixel is mapped back by interpolating linearly along
    the quad's edges instead of solving a homography, then sampled
    bilinearly. Exact for rectangles; skewed quads come out slightly
    distorted.
    """

    name = "bilinear"

    def warp(self, frame: Frame, quad: Quad, size: Tuple[int, int]) -> Frame:
        width, height = size
        src = frame.pixels
        src_h, src_w = src.shape[:2]
        tl, tr, br, bl = (np.array([p.x, p.y], dtype=np.float64) for p in quad)

        xs, ys = np.meshgrid(np.arange(width, dtype=np.float64), np.arange(height, dtype=np.float64))
        xs = xs[..., None]
        ys = ys[..., None]

        # u = x / width, v = y / height; multiplied first so integer
        # coordinates of an upright quad map back exactly
        top = tl + (tr - tl) * xs / width
        bottom = bl + (br - bl) * xs / width
        mapped = top + (bottom - top) * ys / height
        src_x = mapped[..., 0]
        src_y = mapped[..., 1]

        # Pixels that map outside the source are left blank
        inside = (src_x >= 0) & (src_x <= src_w - 1) & (src_y >= 0) & (src_y <= src_h - 1)

        sx = src_x[inside]
        sy = src_y[inside]
        x0 = np.floor(sx).astype(np.intp)
        y0 = np.floor(sy).astype(np.intp)
        x1 = np.minimum(x0 + 1, src_w - 1)
        y1 = np.minimum(y0 + 1, src_h - 1)
        fx = sx - x0
        fy = sy - y0

        if src.ndim == 3:
            fx = fx[:, None]
            fy = fy[:, None]

        values = src.astype(np.float64)
        top_row = values[y0, x0] * (1 - fx) + values[y0, x1] * fx
        bottom_row = values[y1, x0] * (1 - fx) + values[y1, x1] * fx
        sampled = top_row * (1 - fy) + bottom_row * fy

        out = np.zeros((height, width) + src.shape[2:], dtype=src.dtype)
        if np.issubdtype(src.dtype, np.integer):
            info = np.iinfo(src.dtype)
            sampled = np.clip(np.rint(sampled), info.min, info.max)
        out[inside] = sampled.astype(src.dtype)

        return Frame(out)


class PerspectiveTransformer:
    """Applies perspective transformation to flatten a skewed cover.

    Uses the matrix rectifier when the backend is ready and falls back to
    the bilinear rectifier if it is unavailable or raises.
    """

    def __init__(
        self,
        primary: Optional[Rectifier] = None,
        fallback: Optional[Rectifier] = None,
    ):
        self.primary = primary
        self.fallback = fallback or BilinearRectifier()

    @classmethod
    def for_backend(cls, backend: DetectionBackend) -> "PerspectiveTransformer":
        return cls(primary=MatrixRectifier(backend))

    def rectify(self, frame: Frame, quad: Quad) -> Frame:
        """Flatten the region of ``frame`` inside ``quad``.

        Args:
            frame: Source image.
            quad: Ordered corners (TL, TR, BR, BL) in natural coordinates.

        Returns:
            The rectified image.

        Raises:
            InvalidQuad: The quad is degenerate.
            RectificationFailed: Both paths failed.
        """
        size = compute_output_dimensions(quad)

        if self.primary is not None and self.primary.available:
            try:
                return self.primary.warp(frame, quad, size)
            except Exception as e:
                logger.warning(
                    f"{self.primary.name} rectifier failed ({e}); "
                    f"retrying with {self.fallback.name}"
                )

        try:
            return self.fallback.warp(frame, quad, size)
        except Exception as e:
            logger.error(f"{self.fallback.name} rectifier failed: {e}")
            raise RectificationFailed(str(e)) from e
