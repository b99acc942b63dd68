"""
Configuration for the cover scanner.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class ScannerConfig:
    """Tunable options for detection, auto-capture, editing and output.

    Attributes:
        contour_accept_ratio_range: Contour area over frame area must fall in
            this band for the contour to be used as a quad at all.
        auto_capture_ready_ratio_range: Narrower band a detection must fall in
            to count towards auto-capture.
        auto_capture_debounce_ms: How long readiness must hold before capture.
        polygon_approx_epsilon_factor: Fraction of the contour perimeter used
            as epsilon when approximating corners.
        readiness_epsilon_factor: Tighter epsilon used to count corners for
            the readiness check.
        canny_thresholds: Low/high hysteresis thresholds for edge detection.

        # Corner editing
        corner_hit_radius_px: Pointer hit radius in natural-resolution pixels.
        corner_touch_hit_radius_px: Hit radius for touch input.
        default_quad_margin: Margin of the default quad, as a fraction of size.

        # Output
        jpeg_quality: Quality used by ScanSession.output_jpeg for the rectified cover.
    """

    contour_accept_ratio_range: Tuple[float, float] = (0.2, 0.98)
    auto_capture_ready_ratio_range: Tuple[float, float] = (0.3, 0.95)
    auto_capture_debounce_ms: int = 1000
    polygon_approx_epsilon_factor: float = 0.03
    readiness_epsilon_factor: float = 0.02
    canny_thresholds: Tuple[int, int] = (50, 150)

    # Corner editing
    corner_hit_radius_px: float = 30.0
    corner_touch_hit_radius_px: float = 40.0
    default_quad_margin: float = 0.01

    # Output
    jpeg_quality: int = 95

    def __post_init__(self) -> None:
        """Validate ranges and thresholds."""
        self.contour_accept_ratio_range = tuple(self.contour_accept_ratio_range)
        self.auto_capture_ready_ratio_range = tuple(self.auto_capture_ready_ratio_range)

        for name in ("contour_accept_ratio_range", "auto_capture_ready_ratio_range"):
            low, high = getattr(self, name)
            if not 0 <= low <= high <= 1:
                raise ValueError(f"{name} must satisfy 0 <= low <= high <= 1, got {(low, high)}")

        if self.auto_capture_debounce_ms < 0:
            raise ValueError(
                f"auto_capture_debounce_ms must be >= 0, got {self.auto_capture_debounce_ms}"
            )

        if not 0.02 <= self.polygon_approx_epsilon_factor <= 0.03:
            raise ValueError(
                "polygon_approx_epsilon_factor must be in [0.02, 0.03], "
                f"got {self.polygon_approx_epsilon_factor}"
            )

        if not 0 < self.readiness_epsilon_factor < 1:
            raise ValueError(
                f"readiness_epsilon_factor must be in (0, 1), got {self.readiness_epsilon_factor}"
            )

        if self.corner_hit_radius_px <= 0 or self.corner_touch_hit_radius_px <= 0:
            raise ValueError("corner hit radii must be positive")

        if not 0 <= self.default_quad_margin < 0.5:
            raise ValueError(
                f"default_quad_margin must be in [0, 0.5), got {self.default_quad_margin}"
            )

        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}")

    @property
    def auto_capture_debounce_s(self) -> float:
        """Debounce window in seconds."""
        return self.auto_capture_debounce_ms / 1000.0
