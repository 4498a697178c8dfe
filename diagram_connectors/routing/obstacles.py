"""
Obstacle detection and detour candidates for connector paths.

Every shape other than a connector's own endpoints is an obstacle, grown by
a margin. Rectangles and ellipses are tested as their expanded bounding box,
polygons as their actual outline pushed outward from the centroid.
"""

from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union
from dataclasses import dataclass
from itertools import islice
import logging

from ..core.geometry import SIDE_VECTORS, Point, Polygon, Shape, is_horizontal_side, offset_point
from ..core.notifier import ShapeQuery
from .path_optimizer import simplify_path

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 5

CandidateGenerator = Callable[[Point, Point, str, Optional[str]], Iterable[List[Point]]]


# ============================================================================
# Expanded obstacle geometry
# ============================================================================

@dataclass(frozen=True)
class ObstacleBox:
    """Axis-aligned obstacle (rectangles and ellipses)"""
    shape_id: str
    left: float
    top: float
    right: float
    bottom: float

    def contains(self, point: Point) -> bool:
        return self.left <= point[0] <= self.right and self.top <= point[1] <= self.bottom


@dataclass(frozen=True)
class ObstaclePolygon:
    """Polygon obstacle with vertices already expanded by the margin"""
    shape_id: str
    vertices: Tuple[Point, ...]

    def contains(self, point: Point) -> bool:
        return point_in_polygon(point, self.vertices)


Obstacle = Union[ObstacleBox, ObstaclePolygon]


def expand_obstacle(shape: Shape, margin: float) -> Obstacle:
    """
    Grow a shape's geometry by margin

    Polygon vertices move outward along the centroid→vertex direction;
    everything else becomes its bounding box grown on every side.
    """
    if isinstance(shape.geometry, Polygon):
        vertices = shape.vertices()
        cx = sum(v[0] for v in vertices) / len(vertices)
        cy = sum(v[1] for v in vertices) / len(vertices)

        expanded = []
        for vx, vy in vertices:
            dx = vx - cx
            dy = vy - cy
            length = (dx * dx + dy * dy) ** 0.5
            if length == 0:
                expanded.append((vx, vy))
            else:
                expanded.append((vx + dx / length * margin, vy + dy / length * margin))
        return ObstaclePolygon(shape.id, tuple(expanded))

    return ObstacleBox(
        shape.id,
        shape.left - margin,
        shape.top - margin,
        shape.right + margin,
        shape.bottom + margin,
    )


# ============================================================================
# Intersection primitives
# ============================================================================

def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Proper or touching intersection of segments p1-p2 and p3-p4 (parallel segments never intersect)"""
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = p3
    x4, y4 = p4

    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < 1e-12:
        return False

    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom

    return 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0


def point_in_polygon(point: Point, vertices: Sequence[Point]) -> bool:
    """Ray-casting inside test"""
    x, y = point
    inside = False
    j = len(vertices) - 1

    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i

    return inside


def segment_intersects_box(p1: Point, p2: Point, box: ObstacleBox) -> bool:
    """Check if line segment intersects axis-aligned bounding box."""
    # Check if segment endpoints are inside box
    if box.contains(p1) or box.contains(p2):
        return True

    seg_x1, seg_y1 = p1
    seg_x2, seg_y2 = p2

    # For a vertical segment
    if abs(seg_x2 - seg_x1) < 0.1:
        if box.left <= seg_x1 <= box.right:
            y_min = min(seg_y1, seg_y2)
            y_max = max(seg_y1, seg_y2)
            # Check if box y-range overlaps segment y-range
            return not (y_max < box.top or y_min > box.bottom)
        return False

    # For a horizontal segment
    if abs(seg_y2 - seg_y1) < 0.1:
        if box.top <= seg_y1 <= box.bottom:
            x_min = min(seg_x1, seg_x2)
            x_max = max(seg_x1, seg_x2)
            # Check if box x-range overlaps segment x-range
            return not (x_max < box.left or x_min > box.right)
        return False

    # Diagonal segment: test the four box edges
    corners = [(box.left, box.top), (box.right, box.top), (box.right, box.bottom), (box.left, box.bottom)]
    return any(segments_intersect(p1, p2, corners[i], corners[(i + 1) % 4]) for i in range(4))


def segment_intersects_polygon(p1: Point, p2: Point, polygon: ObstaclePolygon) -> bool:
    """Edge-by-edge intersection plus containment of either endpoint"""
    vertices = polygon.vertices
    for i in range(len(vertices)):
        if segments_intersect(p1, p2, vertices[i], vertices[(i + 1) % len(vertices)]):
            return True
    return polygon.contains(p1) or polygon.contains(p2)


def segment_hits_obstacle(p1: Point, p2: Point, obstacle: Obstacle) -> bool:
    """Collision test dispatching on the obstacle variant"""
    if isinstance(obstacle, ObstaclePolygon):
        return segment_intersects_polygon(p1, p2, obstacle)
    return segment_intersects_box(p1, p2, obstacle)


# ============================================================================
# Detour candidates
# ============================================================================

_SWAPPED_SIDES = {'top': 'left', 'left': 'top', 'bottom': 'right', 'right': 'bottom'}


def _swap(point: Point) -> Point:
    return (point[1], point[0])


def detour_candidates(
    start: Point,
    end: Point,
    from_dir: str,
    to_dir: Optional[str] = None,
    stub_length: float = 20.0,
    offset: float = 50.0,
) -> Iterator[List[Point]]:
    """
    Ordered detour paths tried when the default route collides

    1. Run out from the start stub by offset, then 1.5x offset, before turning
    2. Approach the destination from the lateral side facing the start,
       offset and 1.5x offset before its stub
    3. Swing wide past both endpoints on the destination's side

    Vertical departures are computed in swapped (y, x) coordinates.
    """
    if not is_horizontal_side(from_dir):
        swapped_to = _SWAPPED_SIDES[to_dir] if to_dir else None
        for path in detour_candidates(_swap(start), _swap(end), _SWAPPED_SIDES[from_dir],
                                      swapped_to, stub_length, offset):
            yield [_swap(p) for p in path]
        return

    start_stub = offset_point(start, from_dir, stub_length)
    end_stub = offset_point(end, to_dir, stub_length) if to_dir else end
    sx, sy = start_stub
    ex, ey = end_stub
    outward = SIDE_VECTORS[from_dir][0]

    for factor in (1.0, 1.5):
        x = sx + outward * offset * factor
        yield [start, start_stub, (x, sy), (x, ey), end_stub, end]

    toward = 1 if ex >= sx else -1
    for factor in (1.0, 1.5):
        x = ex - toward * offset * factor
        yield [start, start_stub, (x, sy), (x, ey), end_stub, end]

    y = max(sy, ey) + offset if ey >= sy else min(sy, ey) - offset
    yield [start, start_stub, (sx, y), (ex, y), end_stub, end]


# ============================================================================
# ObstacleAvoider
# ============================================================================

class ObstacleAvoider:
    """Tests connector paths against the other shapes on the canvas"""

    def __init__(
        self,
        shape_query: ShapeQuery,
        margin: float = 10.0,
        offset: float = 50.0,
        stub_length: float = 20.0,
    ):
        """
        Args:
            shape_query: Source of the current shapes
            margin: Buffer added around every obstacle
            offset: Standard detour distance
            stub_length: Stub length used when building detours
        """
        self.shape_query = shape_query
        self.margin = margin
        self.offset = offset
        self.stub_length = stub_length

    def obstacles(self, exclude_ids: Iterable[str] = ()) -> List[Obstacle]:
        """Expanded geometry of every shape not in exclude_ids"""
        excluded = set(exclude_ids)
        return [
            expand_obstacle(shape, self.margin)
            for shape in self.shape_query.list_shapes()
            if shape.id not in excluded
        ]

    def collides(self, segment: Tuple[Point, Point], exclude_ids: Iterable[str] = ()) -> bool:
        """True if the segment touches any obstacle"""
        p1, p2 = segment
        return any(segment_hits_obstacle(p1, p2, obstacle) for obstacle in self.obstacles(exclude_ids))

    def path_collides(self, points: Sequence[Point], exclude_ids: Iterable[str] = ()) -> bool:
        """True if any segment of the polyline touches an obstacle"""
        obstacles = self.obstacles(exclude_ids)
        for i in range(len(points) - 1):
            if any(segment_hits_obstacle(points[i], points[i + 1], obstacle) for obstacle in obstacles):
                return True
        return False

    def colliding_shapes(self, points: Sequence[Point], exclude_ids: Iterable[str] = ()) -> List[str]:
        """Ids of the shapes a polyline runs into, in canvas order"""
        hits = []
        for obstacle in self.obstacles(exclude_ids):
            for i in range(len(points) - 1):
                if segment_hits_obstacle(points[i], points[i + 1], obstacle):
                    hits.append(obstacle.shape_id)
                    break
        return hits

    def find_alternate(
        self,
        start: Point,
        end: Point,
        from_dir: str,
        default_path: List[Point],
        exclude_ids: Iterable[str] = (),
        candidate_generator: Optional[CandidateGenerator] = None,
        to_dir: Optional[str] = None,
    ) -> Tuple[List[Point], bool]:
        """
        Clear path between start and end, preferring the default path

        Args:
            start: Resolved start point
            end: Resolved end point
            from_dir: Side the connector leaves through
            default_path: Path proposed by the router
            exclude_ids: Shapes ignored as obstacles (the connector's own endpoints)
            candidate_generator: Replacement for detour_candidates; at most
                MAX_CANDIDATES of its paths are tried
            to_dir: Side the connector enters through, None for a free end

        Returns:
            Tuple of (path, collides); collides is True when no candidate was
            clear and the default path is returned unchanged
        """
        exclude_ids = tuple(exclude_ids)
        if not self.path_collides(default_path, exclude_ids):
            return default_path, False

        if candidate_generator is None:
            candidates = detour_candidates(start, end, from_dir, to_dir, self.stub_length, self.offset)
        else:
            candidates = candidate_generator(start, end, from_dir, to_dir)

        for index, candidate in enumerate(islice(candidates, MAX_CANDIDATES)):
            candidate = simplify_path(candidate)
            if not self.path_collides(candidate, exclude_ids):
                logger.debug(f"Using detour candidate {index} for path from {start} to {end}")
                return candidate, False

        logger.debug(f"No clear detour from {start} to {end}, keeping default path")
        return default_path, True
