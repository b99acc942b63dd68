"""Canonical corner ordering."""

from typing import Sequence

from .geometry import Point, Quad


def order_corners(points: Sequence[Point]) -> Quad:
    """
    Order corner points consistently: top-left, top-right, bottom-right, bottom-left.

    Valid for convex, roughly axis-aligned quads such as a photographed
    cover; it is not a general polygon orientation solver.

    Args:
        points: 4 corner points in any order

    Returns:
        Ordered corner points
    """
    if len(points) != 4:
        raise ValueError(f"expected 4 points, got {len(points)}")

    # Sum of coordinates: smallest = top-left, largest = bottom-right
    by_sum = sorted(points, key=lambda p: p.x + p.y)

    # Difference: largest x - y = top-right, smallest = bottom-left
    by_diff = sorted(points, key=lambda p: p.x - p.y, reverse=True)

    return (by_sum[0], by_diff[0], by_sum[-1], by_diff[-1])
