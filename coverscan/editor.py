"""
Corner editor for manual refinement of an auto-detected cover boundary.

Pointer positions arrive in display coordinates (the rendered size of the
image on screen) and are mapped to the image's natural resolution before
hit-testing or moving a corner.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .config import ScannerConfig
from .geometry import Point, Quad


class EditorState(Enum):
    IDLE = "idle"
    SELECTED = "selected"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class CornerEditor:
    """Immutable corner-editing state; every transition returns a new editor.

    Attributes:
        quad: Corners in natural coordinates (TL, TR, BR, BL).
        natural_size: (width, height) of the image at full resolution.
        display_size: (width, height) the image is rendered at.
        selected: Index of the selected corner, if any.
        state: Idle, Selected or Dragging.
    """

    quad: Quad
    natural_size: Tuple[int, int]
    display_size: Tuple[float, float]
    selected: Optional[int] = None
    state: EditorState = EditorState.IDLE
    hit_radius: float = 30.0
    touch_hit_radius: float = 40.0

    @classmethod
    def create(
        cls,
        quad: Quad,
        natural_size: Tuple[int, int],
        display_size: Optional[Tuple[float, float]] = None,
        config: Optional[ScannerConfig] = None,
    ) -> "CornerEditor":
        config = config or ScannerConfig()
        editor = cls(
            quad=tuple(quad),
            natural_size=natural_size,
            display_size=natural_size,
            hit_radius=config.corner_hit_radius_px,
            touch_hit_radius=config.corner_touch_hit_radius_px,
        )
        if display_size is not None:
            editor = editor.with_display_size(*display_size)
        return editor

    @property
    def scale(self) -> Tuple[float, float]:
        """Natural pixels per display pixel, per axis."""
        nw, nh = self.natural_size
        dw, dh = self.display_size
        return nw / dw, nh / dh

    def with_display_size(self, width: float, height: float) -> "CornerEditor":
        # Use natural dimensions if display dimensions are not laid out yet
        if width <= 0 or height <= 0:
            width, height = self.natural_size
        return replace(self, display_size=(width, height))

    def with_quad(self, quad: Quad) -> "CornerEditor":
        width, height = self.natural_size
        return replace(self, quad=tuple(p.clamp(width, height) for p in quad))

    def to_natural(self, display_point: Point) -> Point:
        sx, sy = self.scale
        return Point(display_point.x * sx, display_point.y * sy)

    def to_display(self, point: Point) -> Point:
        sx, sy = self.scale
        return Point(point.x / sx, point.y / sy)

    def hit_test(self, display_point: Point, touch: bool = False) -> Optional[int]:
        """Return the index of the first corner near ``display_point``, or None.

        The radius is given in natural pixels and scaled by the horizontal
        display scale, so the target grows when the image is shown smaller.
        """
        point = self.to_natural(display_point)
        radius = (self.touch_hit_radius if touch else self.hit_radius) * self.scale[0]

        for i, corner in enumerate(self.quad):
            if point.distance_to(corner) < radius:
                return i
        return None

    def select_corner(self, display_point: Point, touch: bool = False) -> "CornerEditor":
        index = self.hit_test(display_point, touch=touch)
        if index is None:
            return replace(self, selected=None, state=EditorState.IDLE)
        return replace(self, selected=index, state=EditorState.SELECTED)

    def drag_to(self, display_point: Point, index: Optional[int] = None) -> "CornerEditor":
        """Move a corner to ``display_point``, clamped to the image bounds.

        Args:
            display_point: Pointer position in display coordinates.
            index: Corner to move; defaults to the selected corner.

        Returns:
            Editor in the Dragging state with the corner updated.
        """
        if index is None:
            index = self.selected
        if index is None:
            return self
        if not 0 <= index < 4:
            raise IndexError(f"corner index must be in [0, 3], got {index}")

        width, height = self.natural_size
        point = self.to_natural(display_point).clamp(width, height)

        corners = list(self.quad)
        corners[index] = point
        return replace(self, quad=tuple(corners), selected=index, state=EditorState.DRAGGING)

    def release(self) -> "CornerEditor":
        return replace(self, selected=None, state=EditorState.IDLE)
