"""
Interaction states and decorations produced for the host during
hover, drag and waypoint editing.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass
from enum import Enum

from .geometry import Point, Side
from .models import RoutedPath


class InteractionState(str, Enum):
    """States of the connector creation state machine"""
    IDLE = 'idle'
    HOVER = 'hover'
    DRAGGING = 'dragging'


@dataclass(frozen=True)
class Handle:
    """Connection handle marker shown on a hovered shape"""
    shape_id: str
    side: Side
    fraction: float
    anchor: Point     # point on the shape boundary
    position: Point   # where the marker is drawn, offset outward from the anchor

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shapeId': self.shape_id,
            'side': self.side,
            'fraction': self.fraction,
            'x': self.position[0],
            'y': self.position[1],
        }


@dataclass(frozen=True)
class WaypointControl:
    """The single draggable control of a connector's adjustable segment"""
    connector_id: str
    segment_index: int
    start: Point
    end: Point

    @property
    def position(self) -> Point:
        return ((self.start[0] + self.end[0]) / 2, (self.start[1] + self.end[1]) / 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'connectorId': self.connector_id,
            'segmentIndex': self.segment_index,
            'start': {'x': self.start[0], 'y': self.start[1]},
            'end': {'x': self.end[0], 'y': self.end[1]},
            'position': {'x': self.position[0], 'y': self.position[1]},
        }


@dataclass
class DragSession:
    """Book-keeping for one in-progress connector drag"""
    source_handle: Handle
    target_shape_id: Optional[str] = None
    target_side: Optional[Side] = None
    target_fraction: float = 0.5
    preview: Optional[RoutedPath] = None
