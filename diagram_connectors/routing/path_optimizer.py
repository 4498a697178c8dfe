"""
Path post-processing for connector routing.

Cleans raw router output and prepares it for rendering:
- Remove duplicate points
- Compress collinear segments
- Smooth corners into an SVG path
- Locate the label anchor and the arrow head
"""

from typing import List, Optional, Tuple
import math

Point = Tuple[float, float]


def remove_duplicate_points(points: List[Point], tolerance: float = 1e-9) -> List[Point]:
    """
    Remove consecutive duplicate points.

    The first and last points are always kept exactly; a duplicate of the
    last point that precedes it is dropped instead.

    Args:
        points: List of (x, y) coordinates
        tolerance: Distance threshold for considering points duplicate

    Returns:
        Deduplicated point list
    """
    if len(points) <= 1:
        return list(points)

    cleaned = [points[0]]

    for i in range(1, len(points)):
        x1, y1 = cleaned[-1]
        x2, y2 = points[i]

        distance = math.sqrt((x2 - x1)**2 + (y2 - y1)**2)

        if distance > tolerance:
            cleaned.append(points[i])
        elif i == len(points) - 1 and len(cleaned) > 1:
            cleaned[-1] = points[i]

    if len(cleaned) == 1:
        cleaned.append(points[-1])

    return cleaned


def compress_path(points: List[Point], tolerance: float = 1e-9) -> List[Point]:
    """
    Compress path by merging collinear segments.

    Removes waypoints where the path continues in the same direction;
    reversals are kept.

    Args:
        points: Polyline points

    Returns:
        Compressed path with minimal waypoints
    """
    if len(points) <= 2:
        return list(points)

    compressed = [points[0]]  # Start with first point

    for i in range(1, len(points) - 1):
        prev_point = compressed[-1]
        curr_point = points[i]
        next_point = points[i + 1]

        dx1 = curr_point[0] - prev_point[0]
        dy1 = curr_point[1] - prev_point[1]
        dx2 = next_point[0] - curr_point[0]
        dy2 = next_point[1] - curr_point[1]

        cross = dx1 * dy2 - dy1 * dx2
        dot = dx1 * dx2 + dy1 * dy2

        # Keep waypoint if direction changes
        if abs(cross) > tolerance or dot < 0:
            compressed.append(curr_point)

    # Always keep last point
    compressed.append(points[-1])

    return compressed


def simplify_path(points: List[Point]) -> List[Point]:
    """Duplicate removal followed by collinear compression"""
    return compress_path(remove_duplicate_points(points))


def smooth_corners(points: List[Point], radius: float = 4.0) -> str:
    """
    Generate SVG path with smoothed corners.

    Args:
        points: List of (x, y) waypoints
        radius: Corner radius for smoothing

    Returns:
        SVG path string
    """
    if len(points) < 2:
        return ""

    path = f"M {points[0][0]},{points[0][1]}"

    for i in range(1, len(points)):
        curr = points[i]

        # Check if we can add rounded corner
        if i < len(points) - 1 and radius > 0:
            prev = points[i - 1]
            next_pt = points[i + 1]

            dx_in = curr[0] - prev[0]
            dy_in = curr[1] - prev[1]
            dx_out = next_pt[0] - curr[0]
            dy_out = next_pt[1] - curr[1]

            len_in = math.sqrt(dx_in*dx_in + dy_in*dy_in)
            len_out = math.sqrt(dx_out*dx_out + dy_out*dy_out)

            # Only round if segments are long enough
            if len_in > radius * 2 and len_out > radius * 2:
                corner_start_x = curr[0] - (dx_in / len_in) * radius
                corner_start_y = curr[1] - (dy_in / len_in) * radius
                corner_end_x = curr[0] + (dx_out / len_out) * radius
                corner_end_y = curr[1] + (dy_out / len_out) * radius

                # Line to corner start, arc to corner end
                path += f" L {corner_start_x},{corner_start_y}"
                path += f" Q {curr[0]},{curr[1]} {corner_end_x},{corner_end_y}"
                continue

        # No rounding - straight line
        path += f" L {curr[0]},{curr[1]}"

    return path


def cubic_svg_path(points: List[Point]) -> str:
    """SVG path for a [start, control1, control2, end] cubic curve"""
    (sx, sy), (c1x, c1y), (c2x, c2y), (ex, ey) = points
    return f"M {sx},{sy} C {c1x},{c1y} {c2x},{c2y} {ex},{ey}"


def path_midpoint(points: List[Point]) -> Optional[Point]:
    """
    Point halfway along a polyline, used to anchor connector labels

    Args:
        points: Polyline points

    Returns:
        (x, y) midpoint by arc length, or None for an empty path
    """
    if not points:
        return None
    if len(points) == 1:
        return points[0]

    lengths = []
    for i in range(len(points) - 1):
        x1, y1 = points[i]
        x2, y2 = points[i + 1]
        lengths.append(math.sqrt((x2 - x1)**2 + (y2 - y1)**2))

    half = sum(lengths) / 2
    travelled = 0.0

    for i, length in enumerate(lengths):
        if travelled + length >= half and length > 0:
            t = (half - travelled) / length
            x1, y1 = points[i]
            x2, y2 = points[i + 1]
            return (x1 + (x2 - x1) * t, y1 + (y2 - y1) * t)
        travelled += length

    return points[0]


def cubic_midpoint(points: List[Point]) -> Point:
    """Curve point at t=0.5 for a [start, control1, control2, end] cubic"""
    (x0, y0), (x1, y1), (x2, y2), (x3, y3) = points
    return ((x0 + 3 * x1 + 3 * x2 + x3) / 8, (y0 + 3 * y1 + 3 * y2 + y3) / 8)


def arrow_head(tip: Point, angle: float, size: float = 10.0) -> List[Point]:
    """
    Triangle for an arrow head pointing along angle with its tip at tip

    Args:
        tip: Arrow tip (the connector's end point)
        angle: Direction in degrees, 0 along +x
        size: Arrow length; the base is half as wide

    Returns:
        Three (x, y) vertices: tip, then the two base corners
    """
    rad = math.radians(angle)
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)

    triangle = []
    for lx, ly in ((0.0, 0.0), (-size, -size / 2), (-size, size / 2)):
        triangle.append((
            tip[0] + lx * cos_a - ly * sin_a,
            tip[1] + lx * sin_a + ly * cos_a,
        ))
    return triangle
