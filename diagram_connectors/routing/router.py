"""
Orthogonal connector routing.

Routes between two resolved connection points through stubs that leave
and enter the shapes perpendicular to their sides. The policy, in order:
straighten nearly aligned opposite pairs, run opposite pairs through the
midline, try the two corners for same-side pairs and use an L for mixed
directions. Every candidate is checked against obstacles.
"""

from typing import Iterable, List, Optional, Tuple
import logging
import math

from ..core.geometry import Point, is_horizontal_side, is_opposite_pair, offset_point, validate_side
from ..core.models import RoutedPath
from .obstacles import ObstacleAvoider
from .path_optimizer import simplify_path

logger = logging.getLogger(__name__)

# Arrow angle (degrees) for each entry side
ARROW_ANGLES = {
    'top': 90.0,
    'right': 180.0,
    'bottom': -90.0,
    'left': 0.0,
}


def _segment_angle(p1: Point, p2: Point) -> float:
    return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))


class PathRouter:
    """Computes connector paths for the three routing styles"""

    def __init__(
        self,
        avoider: Optional[ObstacleAvoider] = None,
        stub_length: float = 20.0,
        alignment_tolerance: float = 30.0,
    ):
        """
        Args:
            avoider: Obstacle checker; without one every candidate is accepted
            stub_length: Straight run leaving/entering a shape before any turn
            alignment_tolerance: Perpendicular offset below which endpoints count as aligned
        """
        self.avoider = avoider
        self.stub_length = stub_length
        self.alignment_tolerance = alignment_tolerance

    # ------------------------------------------------------------------
    # Orthogonal routing
    # ------------------------------------------------------------------

    def route(
        self,
        start: Point,
        end: Point,
        from_dir: str,
        to_dir: Optional[str] = None,
        exclude_ids: Iterable[str] = (),
    ) -> RoutedPath:
        """
        Orthogonal path from start to end

        Args:
            start: Resolved start connection point
            end: Resolved end point (connection point, or pointer for a free end)
            from_dir: Side the connector leaves through
            to_dir: Side the connector enters through; None routes a free end
            exclude_ids: Shapes not treated as obstacles

        Returns:
            RoutedPath whose first and last points are start and end
        """
        from_dir = validate_side(from_dir)
        exclude_ids = tuple(exclude_ids)

        if to_dir is None:
            points = simplify_path(self._free_end(start, end, from_dir))
            angle = _segment_angle(points[-2], points[-1]) if len(points) > 1 else ARROW_ANGLES['left']
            return RoutedPath(points=points, end_angle=angle)

        to_dir = validate_side(to_dir)
        start_stub = offset_point(start, from_dir, self.stub_length)
        end_stub = offset_point(end, to_dir, self.stub_length)

        if is_opposite_pair(from_dir, to_dir):
            if self._misalignment(start, end, from_dir) < self.alignment_tolerance:
                logger.debug(f"Straightening aligned {from_dir}->{to_dir} connection")
                candidate = self._aligned(start, start_stub, end_stub, end, from_dir)
            else:
                candidate = self._midline(start, start_stub, end_stub, end, from_dir)
        elif from_dir == to_dir:
            candidate = self._same_side(start, start_stub, end_stub, end, from_dir, exclude_ids)
        else:
            candidate = self._mixed(start, start_stub, end_stub, end, from_dir)

        candidate = simplify_path(candidate)
        collides = False

        if self.avoider is not None:
            candidate, collides = self.avoider.find_alternate(
                start, end, from_dir, candidate, exclude_ids, to_dir=to_dir
            )

        return RoutedPath(points=simplify_path(candidate), end_angle=ARROW_ANGLES[to_dir], collides=collides)

    @staticmethod
    def _misalignment(start: Point, end: Point, from_dir: str) -> float:
        """Offset perpendicular to the connection direction"""
        if is_horizontal_side(from_dir):
            return abs(start[1] - end[1])
        return abs(start[0] - end[0])

    @staticmethod
    def _aligned(start: Point, start_stub: Point, end_stub: Point, end: Point, from_dir: str) -> List[Point]:
        """Single run at the averaged coordinate, joined to the stubs by half-offset jogs"""
        if is_horizontal_side(from_dir):
            shared = (start[1] + end[1]) / 2
            return [start, start_stub, (start_stub[0], shared), (end_stub[0], shared), end_stub, end]
        shared = (start[0] + end[0]) / 2
        return [start, start_stub, (shared, start_stub[1]), (shared, end_stub[1]), end_stub, end]

    @staticmethod
    def _midline(start: Point, start_stub: Point, end_stub: Point, end: Point, from_dir: str) -> List[Point]:
        """Three-segment path turning on the line halfway between the stubs"""
        if is_horizontal_side(from_dir):
            mid_x = (start_stub[0] + end_stub[0]) / 2
            return [start, start_stub, (mid_x, start_stub[1]), (mid_x, end_stub[1]), end_stub, end]
        mid_y = (start_stub[1] + end_stub[1]) / 2
        return [start, start_stub, (start_stub[0], mid_y), (end_stub[0], mid_y), end_stub, end]

    def _same_side(
        self,
        start: Point,
        start_stub: Point,
        end_stub: Point,
        end: Point,
        side: str,
        exclude_ids: Tuple[str, ...],
    ) -> List[Point]:
        """Hold the start coordinate, else switch to the end coordinate, else the midline

        Both candidates turn at the outermost of the two stubs so neither
        path doubles back through a shape.
        """
        if is_horizontal_side(side):
            outer = max(start_stub[0], end_stub[0]) if side == 'right' else min(start_stub[0], end_stub[0])
            hold = [(outer, start_stub[1]), (outer, end_stub[1])]
            switch = [(start_stub[0], end_stub[1]), (outer, end_stub[1])]
        else:
            outer = max(start_stub[1], end_stub[1]) if side == 'bottom' else min(start_stub[1], end_stub[1])
            hold = [(start_stub[0], outer), (end_stub[0], outer)]
            switch = [(end_stub[0], start_stub[1]), (end_stub[0], outer)]

        for name, corners in (('hold', hold), ('switch', switch)):
            candidate = [start, start_stub] + corners + [end_stub, end]
            if self.avoider is None or not self.avoider.path_collides(candidate, exclude_ids):
                logger.debug(f"Same-side {side} connection uses the {name} corner")
                return candidate

        logger.debug(f"Same-side {side} corners blocked, falling back to midline")
        return self._midline(start, start_stub, end_stub, end, side)

    @staticmethod
    def _mixed(start: Point, start_stub: Point, end_stub: Point, end: Point, from_dir: str) -> List[Point]:
        """L-shaped path, first leg along the start direction"""
        if is_horizontal_side(from_dir):
            corner = (end_stub[0], start_stub[1])
        else:
            corner = (start_stub[0], end_stub[1])
        return [start, start_stub, corner, end_stub, end]

    def _free_end(self, start: Point, end: Point, from_dir: str) -> List[Point]:
        """Preview path from the start stub to a pointer over empty canvas"""
        start_stub = offset_point(start, from_dir, self.stub_length)
        if is_horizontal_side(from_dir):
            mid_x = (start_stub[0] + end[0]) / 2
            return [start, start_stub, (mid_x, start_stub[1]), (mid_x, end[1]), end]
        mid_y = (start_stub[1] + end[1]) / 2
        return [start, start_stub, (start_stub[0], mid_y), (end[0], mid_y), end]

    # ------------------------------------------------------------------
    # Simple styles
    # ------------------------------------------------------------------

    def route_straight(self, start: Point, end: Point, exclude_ids: Iterable[str] = ()) -> RoutedPath:
        """Direct line; collides is reported but never avoided"""
        points = [start, end]
        collides = self.avoider.path_collides(points, exclude_ids) if self.avoider is not None else False
        return RoutedPath(points=points, end_angle=_segment_angle(start, end), collides=collides)

    @staticmethod
    def route_curved(start: Point, end: Point) -> RoutedPath:
        """Cubic curve with both control points halfway across in x"""
        sx, sy = start
        ex, ey = end
        dx = ex - sx

        cp1 = (sx + dx * 0.5, sy)
        cp2 = (sx + dx * 0.5, ey)

        angle = math.degrees(math.atan2(ey - cp2[1], ex - cp2[0]))
        return RoutedPath(points=[start, cp1, cp2, end], end_angle=angle, kind='cubic')

    def route_for_style(
        self,
        style: str,
        start: Point,
        end: Point,
        from_dir: str,
        to_dir: Optional[str] = None,
        exclude_ids: Iterable[str] = (),
    ) -> RoutedPath:
        """Dispatch on a connector's routing style"""
        if style == 'straight':
            return self.route_straight(start, end, exclude_ids)
        elif style == 'curved':
            return self.route_curved(start, end)
        elif style == 'orthogonal':
            return self.route(start, end, from_dir, to_dir, exclude_ids)
        raise ValueError(f"Unknown routing style '{style}'")
