"""
Connector routing: connection points, orthogonal paths, obstacle
avoidance and manual waypoint adjustments.
"""

from .connection_points import ConnectionPointResolver
from .router import PathRouter, ARROW_ANGLES
from .obstacles import ObstacleAvoider, detour_candidates
from .waypoints import capture_adjustment, apply_adjustments, adjustable_segment
from .path_optimizer import simplify_path, smooth_corners, path_midpoint, arrow_head

__all__ = [
    'ConnectionPointResolver',
    'PathRouter',
    'ARROW_ANGLES',
    'ObstacleAvoider',
    'detour_candidates',
    'capture_adjustment',
    'apply_adjustments',
    'adjustable_segment',
    'simplify_path',
    'smooth_corners',
    'path_midpoint',
    'arrow_head',
]
