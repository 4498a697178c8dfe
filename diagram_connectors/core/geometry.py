"""
Geometry primitives for shapes and connector paths.

Shapes carry a bounding box plus a tagged geometry variant
(Rectangle, Ellipse or Polygon). Polygon vertices are normalised to the
bounding box so that moving or resizing the box moves the outline with it.
"""

from typing import Dict, List, Literal, Optional, Tuple, Union, Any
from dataclasses import dataclass, field
import math


Point = Tuple[float, float]
Side = Literal['top', 'right', 'bottom', 'left']
Orientation = Literal['horizontal', 'vertical']

SIDES: Tuple[Side, ...] = ('top', 'right', 'bottom', 'left')

# Outward unit vector for each side (screen coordinates, y grows downwards)
SIDE_VECTORS: Dict[str, Tuple[int, int]] = {
    'top': (0, -1),
    'right': (1, 0),
    'bottom': (0, 1),
    'left': (-1, 0),
}

_OPPOSITE_SIDES = {'top': 'bottom', 'bottom': 'top', 'left': 'right', 'right': 'left'}


def validate_side(side: str) -> Side:
    """Return side unchanged, raising ValueError for anything but the four sides"""
    if side not in SIDE_VECTORS:
        raise ValueError(f"Unknown side '{side}', expected one of {', '.join(SIDES)}")
    return side  # type: ignore[return-value]


def is_horizontal_side(side: str) -> bool:
    """True when a connection leaves the side along the x axis (left/right)"""
    return side in ('left', 'right')


def opposite_side(side: str) -> Side:
    """Side facing the given one"""
    return _OPPOSITE_SIDES[validate_side(side)]  # type: ignore[return-value]


def is_opposite_pair(from_side: str, to_side: str) -> bool:
    """True for top/bottom and left/right pairs in either order"""
    return _OPPOSITE_SIDES.get(from_side) == to_side


def offset_point(point: Point, side: str, distance: float) -> Point:
    """Move a point outward from a side by distance"""
    vx, vy = SIDE_VECTORS[validate_side(side)]
    return (point[0] + vx * distance, point[1] + vy * distance)


def distance(p1: Point, p2: Point) -> float:
    """Euclidean distance between two points"""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


# ============================================================================
# Geometry variants
# ============================================================================

@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned box filling the shape's bounding box"""
    kind: Literal['rectangle'] = 'rectangle'


@dataclass(frozen=True)
class Ellipse:
    """Ellipse inscribed in the shape's bounding box"""
    kind: Literal['ellipse'] = 'ellipse'


@dataclass(frozen=True)
class Polygon:
    """Polygon with vertices normalised to the bounding box (0..1 on each axis)"""
    vertices: Tuple[Point, ...]
    kind: Literal['polygon'] = 'polygon'

    def __post_init__(self):
        if len(self.vertices) < 3:
            raise ValueError(f"Polygon needs at least 3 vertices, got {len(self.vertices)}")
        object.__setattr__(self, 'vertices', tuple((float(x), float(y)) for x, y in self.vertices))

    @classmethod
    def diamond(cls) -> 'Polygon':
        return cls(((0.5, 0.0), (1.0, 0.5), (0.5, 1.0), (0.0, 0.5)))

    @classmethod
    def triangle(cls) -> 'Polygon':
        return cls(((0.5, 0.0), (1.0, 1.0), (0.0, 1.0)))


Geometry = Union[Rectangle, Ellipse, Polygon]


def geometry_from_dict(data: Optional[Dict[str, Any]]) -> Geometry:
    """
    Build a geometry variant from a plain dictionary

    Accepts the variant names plus the editor's shape-type aliases
    ('circle' → Ellipse, 'diamond'/'triangle' → Polygon).

    Args:
        data: Dictionary with a 'kind' key and, for polygons, 'vertices'

    Returns:
        Geometry variant instance
    """
    if not data:
        return Rectangle()

    kind = str(data.get('kind', 'rectangle')).lower()

    if kind == 'rectangle':
        return Rectangle()
    elif kind in ('ellipse', 'circle'):
        return Ellipse()
    elif kind == 'diamond':
        return Polygon.diamond()
    elif kind == 'triangle':
        return Polygon.triangle()
    elif kind == 'polygon':
        vertices = data.get('vertices')
        if not vertices:
            raise ValueError("Polygon geometry requires 'vertices'")
        return Polygon(tuple((v[0], v[1]) if not isinstance(v, dict) else (v['x'], v['y']) for v in vertices))
    else:
        raise ValueError(f"Unknown geometry kind '{kind}'")


# ============================================================================
# Shape
# ============================================================================

@dataclass
class Shape:
    """A host-owned shape as seen by the connector engine"""
    id: str
    left: float
    top: float
    width: float
    height: float
    geometry: Geometry = field(default_factory=Rectangle)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return (self.left + self.width / 2, self.top + self.height / 2)

    @property
    def kind(self) -> str:
        return self.geometry.kind

    def box(self) -> Tuple[float, float, float, float]:
        """(left, top, right, bottom) of the bounding box"""
        return (self.left, self.top, self.right, self.bottom)

    def vertices(self) -> List[Point]:
        """Absolute polygon vertices (box corners for non-polygon shapes)"""
        if isinstance(self.geometry, Polygon):
            return [
                (self.left + self.width * vx, self.top + self.height * vy)
                for vx, vy in self.geometry.vertices
            ]
        return [
            (self.left, self.top),
            (self.right, self.top),
            (self.right, self.bottom),
            (self.left, self.bottom),
        ]

    def side_midpoint(self, side: str) -> Point:
        """Midpoint of a bounding box side"""
        cx, cy = self.center
        side = validate_side(side)
        if side == 'top':
            return (cx, self.top)
        elif side == 'right':
            return (self.right, cy)
        elif side == 'bottom':
            return (cx, self.bottom)
        return (self.left, cy)

    def translate(self, dx: float, dy: float) -> None:
        """Move the shape by (dx, dy)"""
        self.left += dx
        self.top += dy

    def to_dict(self) -> Dict[str, Any]:
        geometry: Dict[str, Any] = {'kind': self.geometry.kind}
        if isinstance(self.geometry, Polygon):
            geometry['vertices'] = [list(v) for v in self.geometry.vertices]
        return {
            'id': self.id,
            'left': self.left,
            'top': self.top,
            'width': self.width,
            'height': self.height,
            'geometry': geometry,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shape':
        """Build a shape from a scene-file dictionary"""
        geometry = data.get('geometry')
        if geometry is None and 'kind' in data:
            geometry = {'kind': data['kind'], 'vertices': data.get('vertices')}
        return cls(
            id=str(data['id']),
            left=float(data['left']),
            top=float(data['top']),
            width=float(data['width']),
            height=float(data['height']),
            geometry=geometry_from_dict(geometry),
        )


# ============================================================================
# Segments
# ============================================================================

@dataclass(frozen=True)
class Segment:
    """A line segment between two points of a connector path"""
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def between(cls, p1: Point, p2: Point) -> 'Segment':
        return cls(p1[0], p1[1], p2[0], p2[1])

    @property
    def start(self) -> Point:
        return (self.x1, self.y1)

    @property
    def end(self) -> Point:
        return (self.x2, self.y2)

    def is_vertical(self) -> bool:
        """Check if segment is vertical."""
        return abs(self.x1 - self.x2) < 0.1  # Tolerance for floating point

    def is_horizontal(self) -> bool:
        """Check if segment is horizontal."""
        return abs(self.y1 - self.y2) < 0.1

    def orientation(self) -> Orientation:
        """Classify by comparing endpoints: the dominant axis wins, ties count as horizontal"""
        if abs(self.x2 - self.x1) >= abs(self.y2 - self.y1):
            return 'horizontal'
        return 'vertical'

    def length(self) -> float:
        """Calculate segment length."""
        return math.sqrt((self.x2 - self.x1)**2 + (self.y2 - self.y1)**2)

    def midpoint(self) -> Point:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)


def path_segments(points: List[Point]) -> List[Segment]:
    """Split a polyline into its consecutive segments"""
    return [Segment.between(points[i], points[i + 1]) for i in range(len(points) - 1)]
