"""
Connection point resolution.

Maps a (shape, side, fraction) triple to an absolute point on the shape's
outline, picks a starting side for new connectors and lays out the
connection handles shown on hover.
"""

from typing import List, Optional, Sequence
import math

from ..core.geometry import (
    SIDES,
    Ellipse,
    Point,
    Polygon,
    Shape,
    Side,
    distance,
    offset_point,
    validate_side,
)
from ..core.interaction import Handle
from ..core.models import ConnectionPoint


class ConnectionPointResolver:
    """
    Resolves normalised connection points against current shape geometry.

    Points are recomputed on every call, so they follow the shape as it
    moves or resizes.
    """

    def __init__(self, handle_offset: float = 15.0, handle_fractions: Sequence[float] = (0.25, 0.5, 0.75)):
        """
        Args:
            handle_offset: Distance of handle markers outside the shape edge
            handle_fractions: Handle positions along each side of rectangles and ellipses
        """
        self.handle_offset = handle_offset
        self.handle_fractions = tuple(handle_fractions)

    def resolve(self, shape: Shape, side: str, fraction: float = 0.5) -> Point:
        """
        Point on the shape's boundary at a side and fractional position

        Args:
            shape: Shape to resolve against
            side: 'top', 'right', 'bottom' or 'left'
            fraction: Position along the side, 0.0-1.0 (0.5 = midpoint)

        Returns:
            (x, y) point on the outline

        Raises:
            ValueError: If side is unknown or fraction is outside [0, 1]
        """
        side = validate_side(side)
        if not 0.0 <= fraction <= 1.0:
            raise ValueError(f"Fraction must be between 0 and 1, got {fraction}")

        if isinstance(shape.geometry, Polygon):
            hit = self._resolve_polygon(shape, side, fraction)
            if hit is not None:
                return hit
        elif isinstance(shape.geometry, Ellipse):
            return self._resolve_ellipse(shape, side, fraction)

        return self._resolve_box(shape, side, fraction)

    def resolve_point(self, shape: Shape, point: ConnectionPoint) -> Point:
        """Resolve a stored ConnectionPoint"""
        return self.resolve(shape, point.side, point.fraction)

    def choose_initial_side(self, shape: Shape, other_center: Point) -> Side:
        """
        Side whose midpoint is closest to the other shape's center

        Ties go to the first side in top, right, bottom, left order.
        """
        best_side: Side = 'right'
        min_distance = math.inf

        for side in SIDES:
            d = distance(self.resolve(shape, side, 0.5), other_center)
            if d < min_distance:
                min_distance = d
                best_side = side

        return best_side

    def nearest_side(self, shape: Shape, pointer: Point) -> Side:
        """Side whose midpoint is nearest to a pointer position (drop targets)"""
        return self.choose_initial_side(shape, pointer)

    def handle_points(self, shape: Shape) -> List[Handle]:
        """
        Connection handles for a hovered shape

        Rectangles and ellipses get one handle per configured fraction on each
        side; polygons get a single handle per side at the outline's extreme.
        """
        fractions = (0.5,) if isinstance(shape.geometry, Polygon) else self.handle_fractions

        handles = []
        for side in SIDES:
            for fraction in fractions:
                anchor = self.resolve(shape, side, fraction)
                handles.append(Handle(
                    shape_id=shape.id,
                    side=side,
                    fraction=fraction,
                    anchor=anchor,
                    position=offset_point(anchor, side, self.handle_offset),
                ))
        return handles

    # Geometry-specific resolution

    @staticmethod
    def _resolve_box(shape: Shape, side: str, fraction: float) -> Point:
        if side == 'top':
            return (shape.left + shape.width * fraction, shape.top)
        elif side == 'right':
            return (shape.right, shape.top + shape.height * fraction)
        elif side == 'bottom':
            return (shape.left + shape.width * fraction, shape.bottom)
        return (shape.left, shape.top + shape.height * fraction)

    @staticmethod
    def _resolve_ellipse(shape: Shape, side: str, fraction: float) -> Point:
        cx, cy = shape.center
        rx = shape.width / 2
        ry = shape.height / 2

        if side in ('top', 'bottom'):
            x = shape.left + shape.width * fraction
            u = (x - cx) / rx if rx else 0.0
            dy = ry * math.sqrt(max(0.0, 1.0 - u * u))
            return (x, cy - dy if side == 'top' else cy + dy)

        y = shape.top + shape.height * fraction
        v = (y - cy) / ry if ry else 0.0
        dx = rx * math.sqrt(max(0.0, 1.0 - v * v))
        return (cx + dx if side == 'right' else cx - dx, y)

    @staticmethod
    def _resolve_polygon(shape: Shape, side: str, fraction: float) -> Optional[Point]:
        """Outermost intersection of the side's scan line with the polygon edges"""
        vertices = shape.vertices()
        vertical_scan = side in ('top', 'bottom')
        scan = (shape.left + shape.width * fraction) if vertical_scan else (shape.top + shape.height * fraction)

        hits = []
        for i in range(len(vertices)):
            x1, y1 = vertices[i]
            x2, y2 = vertices[(i + 1) % len(vertices)]

            # Work in (along, across) coordinates so one loop serves both scans
            a1, c1, a2, c2 = (x1, y1, x2, y2) if vertical_scan else (y1, x1, y2, x2)

            if not min(a1, a2) <= scan <= max(a1, a2):
                continue
            if a1 == a2:
                hits.extend([c1, c2])
            elif scan == a2:
                hits.append(c2)
            else:
                t = (scan - a1) / (a2 - a1)
                hits.append(c1 + t * (c2 - c1))

        if not hits:
            return None

        across = min(hits) if side in ('top', 'left') else max(hits)
        return (scan, across) if vertical_scan else (across, scan)
