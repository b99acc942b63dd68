"""Cover boundary detection on live frames and still images."""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import cv2
import numpy as np

from .config import ScannerConfig
from .geometry import DetectionResult, Frame, Point, Quad, clamp_quad
from .ordering import order_corners

logger = logging.getLogger(__name__)


class DetectionBackend(ABC):
    """Image-processing capability the detector and the primary rectifier need.

    A backend starts uninitialized; callers must call ``initialize()`` and
    check ``ready`` before relying on it.
    """

    @property
    @abstractmethod
    def ready(self) -> bool:
        """Whether ``initialize()`` has completed successfully."""

    @abstractmethod
    def initialize(self) -> bool:
        """Prepare the backend. Returns the new ``ready`` state."""

    @abstractmethod
    def largest_contour(self, image: np.ndarray) -> Optional[np.ndarray]:
        """Return the largest closed contour in ``image``, or None."""

    @abstractmethod
    def contour_area(self, contour: np.ndarray) -> float:
        pass

    @abstractmethod
    def approximate_polygon(self, contour: np.ndarray, epsilon_factor: float) -> np.ndarray:
        """Approximate ``contour`` with epsilon = ``epsilon_factor`` * perimeter.

        Returns an (N, 2) array of vertices.
        """

    @abstractmethod
    def bounding_rect(self, contour: np.ndarray) -> Tuple[int, int, int, int]:
        """Return (x, y, width, height) of the upright bounding box."""

    @abstractmethod
    def warp_perspective(
        self, image: np.ndarray, src: np.ndarray, dst: np.ndarray, size: Tuple[int, int]
    ) -> np.ndarray:
        """Map the ``src`` quad onto ``dst`` and sample a ``size`` (w, h) image."""


class OpenCVBackend(DetectionBackend):
    """Detection backend built on OpenCV.

    Combines Gaussian smoothing, Canny edge detection and morphological
    dilation to find the outline of a cover against its background.
    """

    REQUIRED_FUNCTIONS = (
        "cvtColor",
        "GaussianBlur",
        "Canny",
        "dilate",
        "findContours",
        "contourArea",
        "arcLength",
        "approxPolyDP",
        "boundingRect",
        "getPerspectiveTransform",
        "warpPerspective",
    )

    def __init__(self, canny_thresholds: Tuple[int, int] = (50, 150), blur_kernel: int = 5):
        """Initialize the backend settings.

        Args:
            canny_thresholds: Low/high thresholds for Canny edge detection.
            blur_kernel: Side of the Gaussian blur kernel (odd).
        """
        self.canny_thresholds = canny_thresholds
        self.blur_kernel = blur_kernel
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> bool:
        missing = [name for name in self.REQUIRED_FUNCTIONS if not hasattr(cv2, name)]
        if missing:
            logger.error(f"OpenCV build is missing {', '.join(missing)}; detection disabled")
            self._ready = False
        else:
            cv2.setUseOptimized(True)
            self._ready = True
            logger.info(f"OpenCV {cv2.__version__} detection backend ready")
        return self._ready

    def edge_map(self, image: np.ndarray) -> np.ndarray:
        """Grayscale, blur, Canny, then dilate to connect nearby edges."""
        if image.ndim == 3:
            code = cv2.COLOR_BGRA2GRAY if image.shape[2] == 4 else cv2.COLOR_BGR2GRAY
            gray = cv2.cvtColor(image, code)
        else:
            gray = image
        if gray.dtype != np.uint8:
            gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

        k = self.blur_kernel
        blurred = cv2.GaussianBlur(gray, (k, k), 0)

        low, high = self.canny_thresholds
        edges = cv2.Canny(blurred, low, high)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
        return cv2.dilate(edges, kernel, iterations=2)

    def largest_contour(self, image: np.ndarray) -> Optional[np.ndarray]:
        edges = self.edge_map(image)
        contours, _ = cv2.findContours(edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        if not contours:
            return None
        return max(contours, key=cv2.contourArea)

    def contour_area(self, contour: np.ndarray) -> float:
        return float(cv2.contourArea(contour))

    def approximate_polygon(self, contour: np.ndarray, epsilon_factor: float) -> np.ndarray:
        perimeter = cv2.arcLength(contour, True)
        approx = cv2.approxPolyDP(contour, epsilon_factor * perimeter, True)
        return approx.reshape(-1, 2)

    def bounding_rect(self, contour: np.ndarray) -> Tuple[int, int, int, int]:
        x, y, w, h = cv2.boundingRect(contour)
        return int(x), int(y), int(w), int(h)

    def warp_perspective(
        self, image: np.ndarray, src: np.ndarray, dst: np.ndarray, size: Tuple[int, int]
    ) -> np.ndarray:
        matrix = cv2.getPerspectiveTransform(
            src.astype(np.float32), dst.astype(np.float32)
        )
        return cv2.warpPerspective(
            image, matrix, size,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )


class ContourDetector:
    """Finds the best quadrilateral candidate for a book cover in a frame.

    Detection problems never raise: they are reported through the returned
    ``DetectionResult`` so the live loop keeps running.
    """

    def __init__(self, backend: DetectionBackend, config: Optional[ScannerConfig] = None):
        self.backend = backend
        self.config = config or ScannerConfig()

    def detect(self, frame: Frame) -> DetectionResult:
        """Detect the cover boundary in ``frame``.

        Args:
            frame: Frame to inspect.

        Returns:
            DetectionResult with an ordered quad, or with ``quad=None`` when
            no usable contour exists.
        """
        size = frame.size
        if not self.backend.ready:
            return DetectionResult.unavailable(size)

        try:
            return self._detect(frame)
        except Exception as e:
            logger.debug(f"Detection failed on {size[0]}x{size[1]} frame: {e}")
            return DetectionResult.empty(size)

    def _detect(self, frame: Frame) -> DetectionResult:
        size = frame.size
        contour = self.backend.largest_contour(frame.pixels)
        if contour is None:
            return DetectionResult.empty(size)

        frame_area = float(frame.width * frame.height)
        area_ratio = self.backend.contour_area(contour) / frame_area if frame_area else 0.0
        corner_count = len(
            self.backend.approximate_polygon(contour, self.config.readiness_epsilon_factor)
        )

        low, high = self.config.contour_accept_ratio_range
        if not low <= area_ratio <= high:
            logger.debug(f"Largest contour covers {area_ratio:.2f} of frame, outside [{low}, {high}]")
            return DetectionResult(
                quad=None, area_ratio=area_ratio, corner_count=corner_count, frame_size=size
            )

        quad = self._quad_from_contour(contour)
        if quad is not None:
            quad = clamp_quad(quad, frame.width, frame.height)

        return DetectionResult(
            quad=quad, area_ratio=area_ratio, corner_count=corner_count, frame_size=size
        )

    def _quad_from_contour(self, contour: np.ndarray) -> Optional[Quad]:
        """Collapse a contour to four ordered corners."""
        approx = self.backend.approximate_polygon(
            contour, self.config.polygon_approx_epsilon_factor
        )

        if len(approx) >= 4:
            points = [Point(float(x), float(y)) for x, y in approx[:4]]
            return order_corners(points)

        if len(approx) > 0:
            # Not enough vertices: fall back to the upright bounding box
            x, y, w, h = self.backend.bounding_rect(contour)
            return (
                Point(x, y),
                Point(x + w, y),
                Point(x + w, y + h),
                Point(x, y + h),
            )

        return None
