"""Tests for corner ordering."""

from itertools import permutations

import pytest

from coverscan.geometry import Point
from coverscan.ordering import order_corners


CONVEX_QUADS = [
    [Point(10, 10), Point(500, 10), Point(500, 700), Point(10, 700)],
    [Point(40, 60), Point(610, 20), Point(650, 470), Point(15, 430)],
    [Point(120, 80), Point(700, 95), Point(680, 560), Point(100, 540)],
    [Point(0, 0), Point(800, 0), Point(800, 600), Point(0, 600)],
]


class TestOrderCorners:
    """Canonical TL, TR, BR, BL ordering."""

    def test_rectangle(self):
        """Scenario: shuffled rectangle comes back in canonical order."""
        shuffled = [Point(500, 700), Point(10, 10), Point(10, 700), Point(500, 10)]
        assert order_corners(shuffled) == (
            Point(10, 10), Point(500, 10), Point(500, 700), Point(10, 700)
        )

    def test_same_result_for_any_input_order(self):
        """Every permutation of the same points orders identically."""
        quad = CONVEX_QUADS[1]
        expected = order_corners(quad)
        for perm in permutations(quad):
            assert order_corners(list(perm)) == expected

    @pytest.mark.parametrize("quad", CONVEX_QUADS)
    def test_ordering_stability(self, quad):
        """Sum of TL <= sum of BR and diff of TR >= diff of BL."""
        for perm in permutations(quad):
            tl, tr, br, bl = order_corners(list(perm))
            assert tl.x + tl.y <= br.x + br.y
            assert tr.x - tr.y >= bl.x - bl.y

    def test_skewed_quad(self):
        """A perspective-skewed cover keeps its corner roles."""
        tl, tr, br, bl = order_corners(
            [Point(650, 470), Point(15, 430), Point(610, 20), Point(40, 60)]
        )
        assert tl == Point(40, 60)
        assert tr == Point(610, 20)
        assert br == Point(650, 470)
        assert bl == Point(15, 430)

    def test_wrong_count(self):
        """Anything but four points is rejected."""
        with pytest.raises(ValueError):
            order_corners([Point(0, 0), Point(1, 0), Point(1, 1)])
