"""
Geometry Primitives
===================
Edge accessors and comparisons over BoundingQuad.
Undefined for degenerate quads; blocks without geometry are dropped upstream.
"""

from __future__ import annotations

from .models import BoundingQuad


def left(quad: BoundingQuad) -> float:
    return quad.left


def right(quad: BoundingQuad) -> float:
    return quad.right


def top(quad: BoundingQuad) -> float:
    return quad.top


def bottom(quad: BoundingQuad) -> float:
    return quad.bottom


def edges(quad: BoundingQuad) -> tuple[float, float, float, float]:
    """(left, right, top, bottom)"""
    return (left(quad), right(quad), top(quad), bottom(quad))


def vertical_overlap(a: BoundingQuad, b: BoundingQuad) -> bool:
    """True when the vertical spans of a and b intersect (touching counts)."""
    return a.top <= b.bottom and a.bottom >= b.top


def exact_match(
    a: BoundingQuad, b: BoundingQuad, tolerance: float = 0.0
) -> bool:
    """
    True when all four derived edges of a and b are equal.

    With tolerance > 0 each edge may differ by at most `tolerance`;
    the default compares exactly.
    """
    if tolerance <= 0:
        return edges(a) == edges(b)
    return all(
        abs(ea - eb) <= tolerance
        for ea, eb in zip(edges(a), edges(b))
    )
