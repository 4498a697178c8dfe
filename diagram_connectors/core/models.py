"""
Pydantic models for connectors, connection points and routed paths
"""

from typing import Dict, List, Literal, Optional, Tuple, Any
from uuid import uuid4
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .geometry import Point, Side, Segment, path_segments


RoutingStyle = Literal['straight', 'orthogonal', 'curved']
PathKind = Literal['polyline', 'cubic']
Axis = Literal['x', 'y']

ROUTING_STYLES: Tuple[str, ...] = ('straight', 'orthogonal', 'curved')


def generate_connector_id() -> str:
    """Generate a unique connector id"""
    return f"connector_{uuid4().hex[:12]}"


def _point_dict(point: Point) -> Dict[str, float]:
    return {'x': point[0], 'y': point[1]}


class ConnectionPoint(BaseModel):
    """Normalised attachment location on a shape's boundary

    Attributes:
        shape_id: Id of the shape owning the point
        side: Side of the shape the connector leaves/enters through
        fraction: Position along that side (0.5 = midpoint)
    """
    model_config = ConfigDict(frozen=True)

    shape_id: str = Field(..., min_length=1)
    side: Side
    fraction: float = Field(0.5, ge=0.0, le=1.0)


class WaypointAdjustment(BaseModel):
    """Manual offset applied to one interior path segment

    A horizontal segment is shifted along y, a vertical one along x.
    """
    model_config = ConfigDict(frozen=True)

    axis: Axis
    offset: float

    @property
    def orientation(self) -> str:
        return 'horizontal' if self.axis == 'y' else 'vertical'


class Connector(BaseModel):
    """A persisted connector between two distinct shapes"""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_connector_id, min_length=1)
    from_point: ConnectionPoint
    to_point: ConnectionPoint
    routing_style: RoutingStyle = 'orthogonal'
    waypoint_adjustments: Dict[int, WaypointAdjustment] = Field(default_factory=dict)
    stroke_color: str = '#2c3e50'
    stroke_width: float = Field(2.0, gt=0)
    arrow_size: float = Field(10.0, gt=0)
    label: str = ''

    @model_validator(mode='after')
    def validate_distinct_endpoints(self):
        """A connector never loops back onto its own shape"""
        if self.from_point.shape_id == self.to_point.shape_id:
            raise ValueError(
                f"Connector endpoints must reference distinct shapes, "
                f"got '{self.from_point.shape_id}' twice"
            )
        return self

    @property
    def from_shape_id(self) -> str:
        return self.from_point.shape_id

    @property
    def to_shape_id(self) -> str:
        return self.to_point.shape_id

    def references(self, shape_id: str) -> bool:
        return shape_id in (self.from_shape_id, self.to_shape_id)


# ============================================================================
# Persisted record shape
# ============================================================================

class PointRecord(BaseModel):
    """Serialised connection point: {side, fraction}"""
    side: Side
    fraction: float = Field(0.5, ge=0.0, le=1.0)

    @model_validator(mode='before')
    @classmethod
    def accept_normalised_coordinates(cls, data: Any) -> Any:
        """Accept the older {x, y} normalised-coordinate form, e.g. {x: 1, y: 0.5} → right side"""
        if not isinstance(data, dict) or 'side' in data or 'x' not in data:
            return data

        x = float(data['x'])
        y = float(data.get('y', 0.5))
        if y == 0:
            return {'side': 'top', 'fraction': x}
        elif y == 1:
            return {'side': 'bottom', 'fraction': x}
        elif x == 0:
            return {'side': 'left', 'fraction': y}
        elif x == 1:
            return {'side': 'right', 'fraction': y}
        raise ValueError(f"Point ({x}, {y}) does not lie on a shape side")


class ConnectorRecord(BaseModel):
    """JSON-compatible connector record used by the host's save/load"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str = Field(..., min_length=1)
    from_shape_id: str = Field(..., min_length=1, alias='fromShapeId')
    to_shape_id: str = Field(..., min_length=1, alias='toShapeId')
    from_point: PointRecord = Field(..., alias='fromPoint')
    to_point: PointRecord = Field(..., alias='toPoint')
    routing_style: RoutingStyle = Field('orthogonal', alias='routingStyle')
    waypoint_adjustments: Dict[int, WaypointAdjustment] = Field(
        default_factory=dict, alias='waypointAdjustments'
    )
    stroke_color: str = Field('#2c3e50', alias='strokeColor')
    stroke_width: float = Field(2.0, gt=0, alias='strokeWidth')
    arrow_size: float = Field(10.0, gt=0, alias='arrowSize')
    label: str = Field('', validation_alias=AliasChoices('label', 'text'))

    @classmethod
    def from_connector(cls, connector: Connector) -> 'ConnectorRecord':
        return cls(
            id=connector.id,
            from_shape_id=connector.from_shape_id,
            to_shape_id=connector.to_shape_id,
            from_point=PointRecord(side=connector.from_point.side, fraction=connector.from_point.fraction),
            to_point=PointRecord(side=connector.to_point.side, fraction=connector.to_point.fraction),
            routing_style=connector.routing_style,
            waypoint_adjustments=dict(connector.waypoint_adjustments),
            stroke_color=connector.stroke_color,
            stroke_width=connector.stroke_width,
            arrow_size=connector.arrow_size,
            label=connector.label,
        )

    def to_connector(self) -> Connector:
        """Build the live connector (raises ValidationError for self-loops)"""
        return Connector(
            id=self.id,
            from_point=ConnectionPoint(
                shape_id=self.from_shape_id, side=self.from_point.side, fraction=self.from_point.fraction
            ),
            to_point=ConnectionPoint(
                shape_id=self.to_shape_id, side=self.to_point.side, fraction=self.to_point.fraction
            ),
            routing_style=self.routing_style,
            waypoint_adjustments=dict(self.waypoint_adjustments),
            stroke_color=self.stroke_color,
            stroke_width=self.stroke_width,
            arrow_size=self.arrow_size,
            label=self.label,
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json')


# ============================================================================
# Routing output
# ============================================================================

class RoutedPath(BaseModel):
    """Result of routing one connector

    Attributes:
        points: Polyline (or cubic start, controls, end for kind='cubic')
        end_angle: Arrow angle at the destination in degrees (0 along +x)
        kind: 'polyline' or 'cubic'
        collides: True when no collision-free route was found
    """
    points: List[Tuple[float, float]]
    end_angle: float
    kind: PathKind = 'polyline'
    collides: bool = False

    @property
    def start(self) -> Point:
        return self.points[0]

    @property
    def end(self) -> Point:
        return self.points[-1]

    def segments(self) -> List[Segment]:
        return path_segments(self.points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': [_point_dict(p) for p in self.points],
            'endAngle': self.end_angle,
            'kind': self.kind,
            'collides': self.collides,
        }


class ConnectorRender(BaseModel):
    """Everything the host needs to draw one connector"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connector_id: str
    points: List[Tuple[float, float]]
    end_angle: float
    kind: PathKind = 'polyline'
    svg_path: str
    arrow_head: List[Tuple[float, float]]
    stroke_color: str
    stroke_width: float
    label: str = ''
    label_position: Optional[Tuple[float, float]] = None
    collides: bool = False

    @field_serializer('points', 'arrow_head')
    def serialize_points(self, points: List[Tuple[float, float]]):
        return [_point_dict(p) for p in points]

    @field_serializer('label_position')
    def serialize_label_position(self, point: Optional[Tuple[float, float]]):
        return _point_dict(point) if point is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
