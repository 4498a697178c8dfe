"""
Manual waypoint adjustments.

A user drag on a connector's adjustable segment is stored as an offset
perpendicular to that segment and reapplied every time the path is
recomputed, for as long as the segment still exists with the same
orientation.
"""

from typing import Dict, List, Optional
import logging

from ..core.geometry import Point, Segment, path_segments
from ..core.models import WaypointAdjustment

logger = logging.getLogger(__name__)


def _is_turn_bounded(segments: List[Segment], index: int) -> bool:
    """True if the segment is interior and perpendicular to both of its neighbours"""
    if not 1 <= index <= len(segments) - 2:
        return False
    orientation = segments[index].orientation()
    return (
        segments[index - 1].orientation() != orientation
        and segments[index + 1].orientation() != orientation
    )


def capture_adjustment(segment_index: int, dragged_point: Point, original_segment: Segment) -> WaypointAdjustment:
    """
    Record a drag of one segment as a perpendicular offset

    Args:
        segment_index: Index of the dragged segment (kept for logging)
        dragged_point: Where the segment's control was dropped
        original_segment: The segment as routed, before any adjustment

    Returns:
        y offset for a horizontal segment, x offset for a vertical one
    """
    if original_segment.orientation() == 'horizontal':
        adjustment = WaypointAdjustment(axis='y', offset=dragged_point[1] - original_segment.y1)
    else:
        adjustment = WaypointAdjustment(axis='x', offset=dragged_point[0] - original_segment.x1)

    logger.debug(f"Captured {adjustment.axis} offset {adjustment.offset} for segment {segment_index}")
    return adjustment


def apply_adjustments(fresh_path: List[Point], adjustments: Dict[int, WaypointAdjustment]) -> List[Point]:
    """
    Reapply stored adjustments to a freshly routed path

    An adjustment applies only while its index names an interior segment
    whose orientation matches the one it was captured on and which turns at
    both ends; anything else is skipped. The input list is left untouched.

    Args:
        fresh_path: Router output
        adjustments: Segment index → adjustment

    Returns:
        New point list with the applicable shifts
    """
    points = list(fresh_path)
    segments = path_segments(fresh_path)

    for index in sorted(adjustments):
        adjustment = adjustments[index]

        if not 1 <= index <= len(segments) - 2:
            logger.debug(f"Dropping adjustment for segment {index}: not an interior segment of {len(segments)}")
            continue
        if segments[index].orientation() != adjustment.orientation:
            logger.debug(f"Dropping adjustment for segment {index}: orientation changed")
            continue
        if not _is_turn_bounded(segments, index):
            logger.debug(f"Dropping adjustment for segment {index}: it continues a neighbouring segment")
            continue

        for i in (index, index + 1):
            x, y = points[i]
            if adjustment.axis == 'y':
                points[i] = (x, y + adjustment.offset)
            else:
                points[i] = (x + adjustment.offset, y)

    return points


def adjustable_segment(points: List[Point]) -> Optional[int]:
    """
    Index of the single user-adjustable segment

    The longest segment strictly between the first and last ones that turns
    at both ends; ties go to the earliest. A segment continuing a stub past
    a reversal point never qualifies, since moving it would bend the stub.
    None when no segment qualifies.
    """
    segments = path_segments(points)

    best_index = None
    best_length = 0.0
    for i in range(1, len(segments) - 1):
        if not _is_turn_bounded(segments, i):
            continue
        length = segments[i].length()
        if best_index is None or length > best_length:
            best_index = i
            best_length = length

    return best_index
