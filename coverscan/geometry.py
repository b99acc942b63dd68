"""Plain data carried through the scanning pipeline."""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from .errors import ErrorKind


@dataclass(frozen=True)
class Point:
    """A point in the natural (full-resolution) coordinates of an image."""

    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def clamp(self, width: float, height: float) -> "Point":
        return Point(min(max(self.x, 0.0), width), min(max(self.y, 0.0), height))

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


# Corners in order: top-left, top-right, bottom-right, bottom-left.
Quad = Tuple[Point, Point, Point, Point]


def quad_to_array(quad: Iterable[Point]) -> np.ndarray:
    """Return the quad as a float32 (4, 2) array, the layout cv2 expects."""
    return np.array([[p.x, p.y] for p in quad], dtype=np.float32)


def default_quad(width: int, height: int, margin: float = 0.01) -> Quad:
    """
    Generate default corner positions with a margin from edges.

    Args:
        width: Image width
        height: Image height
        margin: Margin as fraction of dimensions

    Returns:
        Default corner positions
    """
    mx = width * margin
    my = height * margin

    return (
        Point(mx, my),                    # Top-left
        Point(width - mx, my),            # Top-right
        Point(width - mx, height - my),   # Bottom-right
        Point(mx, height - my),           # Bottom-left
    )


def scale_quad(quad: Quad, sx: float, sy: float) -> Quad:
    return tuple(Point(p.x * sx, p.y * sy) for p in quad)


def clamp_quad(quad: Quad, width: float, height: float) -> Quad:
    return tuple(p.clamp(width, height) for p in quad)


@dataclass
class Frame:
    """A pixel buffer and its dimensions.

    Attributes:
        pixels: numpy array shaped (height, width) or (height, width, channels).
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim not in (2, 3):
            raise ValueError(f"pixels must be 2- or 3-dimensional, got shape {self.pixels.shape}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    def copy(self) -> "Frame":
        return Frame(self.pixels.copy())


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detection pass over one frame.

    Attributes:
        quad: Ordered corners of the best candidate, or None when no usable
            contour was found.
        area_ratio: Area of the largest contour over the frame area.
        corner_count: Vertex count of the contour's polygon approximation.
        frame_size: (width, height) of the frame the result was computed on.
        error: Set when detection could not run at all.
    """

    quad: Optional[Quad] = None
    area_ratio: float = 0.0
    corner_count: int = 0
    frame_size: Tuple[int, int] = (0, 0)
    error: Optional[ErrorKind] = None

    @classmethod
    def empty(cls, frame_size: Tuple[int, int] = (0, 0)) -> "DetectionResult":
        return cls(frame_size=frame_size)

    @classmethod
    def unavailable(cls, frame_size: Tuple[int, int] = (0, 0)) -> "DetectionResult":
        return cls(frame_size=frame_size, error=ErrorKind.DETECTION_UNAVAILABLE)

