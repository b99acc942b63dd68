"""Tests for the corner editor."""

import pytest

from coverscan.config import ScannerConfig
from coverscan.editor import CornerEditor, EditorState
from coverscan.geometry import Point, default_quad


@pytest.fixture
def editor():
    """800x600 image rendered at half size."""
    return CornerEditor.create(default_quad(800, 600), (800, 600), display_size=(400, 300))


class TestCoordinateMapping:
    """Display to natural coordinate conversion."""

    def test_scale(self, editor):
        """Half-size display doubles coordinates."""
        assert editor.scale == (2.0, 2.0)
        assert editor.to_natural(Point(100, 50)) == Point(200, 100)
        assert editor.to_display(Point(200, 100)) == Point(100, 50)

    def test_unlaid_out_display_uses_natural_size(self):
        """A zero display size falls back to the natural size."""
        editor = CornerEditor.create(default_quad(800, 600), (800, 600), display_size=(0, 0))
        assert editor.display_size == (800, 600)
        assert editor.scale == (1.0, 1.0)


class TestHitTest:
    """Corner selection by pointer position."""

    def test_hits_nearest_corner(self, editor):
        """A click near the top-left handle selects corner 0."""
        # natural (20, 20) is ~19px from the top-left corner at (8, 6)
        assert editor.hit_test(Point(10, 10)) == 0

    def test_each_corner(self, editor):
        """Every corner is reachable at its own display position."""
        for i, corner in enumerate(editor.quad):
            assert editor.hit_test(editor.to_display(corner)) == i

    def test_miss(self, editor):
        """A click in the middle selects nothing."""
        assert editor.hit_test(Point(200, 150)) is None

    def test_radius_scales_with_display(self):
        """Hit radius is 30 natural px times the horizontal scale."""
        quad = default_quad(800, 600)
        full = CornerEditor.create(quad, (800, 600))
        half = CornerEditor.create(quad, (800, 600), display_size=(400, 300))
        # 45 natural px right of the top-left corner
        natural = Point(quad[0].x + 45, quad[0].y)
        assert full.hit_test(natural) is None
        assert half.hit_test(half.to_display(natural)) == 0

    def test_touch_radius_is_larger(self):
        """Touch input gets a 40px target, pointer input 30px."""
        quad = default_quad(800, 600)
        editor = CornerEditor.create(quad, (800, 600))
        point = Point(quad[0].x + 35, quad[0].y)
        assert editor.hit_test(point) is None
        assert editor.hit_test(point, touch=True) == 0

    def test_radius_from_config(self):
        """Hit radius comes from configuration."""
        quad = default_quad(800, 600)
        config = ScannerConfig(corner_hit_radius_px=50)
        editor = CornerEditor.create(quad, (800, 600), config=config)
        assert editor.hit_test(Point(quad[0].x + 45, quad[0].y)) == 0


class TestDragging:
    """Moving corners and the Idle -> Selected -> Dragging -> Idle cycle."""

    def test_state_cycle(self, editor):
        """Select, drag and release walk through every state."""
        assert editor.state is EditorState.IDLE

        selected = editor.select_corner(Point(10, 10))
        assert selected.state is EditorState.SELECTED
        assert selected.selected == 0

        dragged = selected.drag_to(Point(50, 40))
        assert dragged.state is EditorState.DRAGGING
        assert dragged.quad[0] == Point(100, 80)

        released = dragged.release()
        assert released.state is EditorState.IDLE
        assert released.selected is None
        assert released.quad[0] == Point(100, 80)

    def test_transitions_do_not_mutate(self, editor):
        """Each transition returns a new editor."""
        original = editor.quad
        editor.select_corner(Point(10, 10)).drag_to(Point(50, 40))
        assert editor.quad == original
        assert editor.state is EditorState.IDLE

    def test_miss_keeps_state(self, editor):
        """Selecting empty space from Idle leaves the editor as it was."""
        missed = editor.select_corner(Point(200, 150))
        assert missed == editor
        assert missed.selected is None

    def test_miss_clears_previous_selection(self, editor):
        """A click away from every corner drops the earlier selection."""
        selected = editor.select_corner(Point(10, 10))
        assert selected.selected == 0

        missed = selected.select_corner(Point(200, 150))
        assert missed.selected is None
        assert missed.state is EditorState.IDLE
        assert missed.drag_to(Point(50, 40)).quad == editor.quad

    def test_drag_without_selection_is_noop(self, editor):
        """Nothing moves when no corner is selected."""
        assert editor.drag_to(Point(50, 40)) is editor

    def test_clamped_far_outside(self, editor):
        """Scenario: dragging BR to natural (10000, 10000) clamps to (800, 600)."""
        moved = editor.drag_to(Point(5000, 5000), index=2)
        assert moved.quad[2] == Point(800, 600)

    @pytest.mark.parametrize("display_point", [
        Point(-100, -100), Point(10000, -5), Point(-3, 900), Point(401, 301),
    ])
    def test_clamping(self, editor, display_point):
        """Corners never leave the image."""
        for index in range(4):
            corner = editor.drag_to(display_point, index=index).quad[index]
            assert 0 <= corner.x <= 800
            assert 0 <= corner.y <= 600

    def test_bad_index(self, editor):
        """Only corners 0-3 exist."""
        with pytest.raises(IndexError):
            editor.drag_to(Point(10, 10), index=4)

    def test_with_quad_clamps(self, editor):
        """Replacing the quad keeps it inside the image."""
        quad = (Point(-5, -5), Point(900, 0), Point(800, 700), Point(0, 600))
        replaced = editor.with_quad(quad)
        assert replaced.quad == (Point(0, 0), Point(800, 0), Point(800, 600), Point(0, 600))
