"""
Tests for connector models and persisted records
"""

import pytest
from pydantic import ValidationError

from diagram_connectors.core.models import (
    ConnectionPoint,
    Connector,
    ConnectorRecord,
    ConnectorRender,
    PointRecord,
    RoutedPath,
)


def make_connector(**overrides):
    fields = {
        'from_point': ConnectionPoint(shape_id='a', side='right'),
        'to_point': ConnectionPoint(shape_id='b', side='left', fraction=0.25),
    }
    fields.update(overrides)
    return Connector(**fields)


class TestConnector:
    """Test suite for Connector validation"""

    def test_defaults(self):
        connector = make_connector()
        assert connector.id.startswith('connector_')
        assert connector.routing_style == 'orthogonal'
        assert connector.stroke_color == '#2c3e50'
        assert connector.stroke_width == 2.0
        assert connector.arrow_size == 10.0
        assert connector.from_shape_id == 'a'
        assert connector.references('b')
        assert not connector.references('c')

    def test_self_loop_rejected(self):
        with pytest.raises(ValidationError, match='distinct shapes'):
            make_connector(to_point=ConnectionPoint(shape_id='a', side='top'))

    def test_fraction_bounds(self):
        with pytest.raises(ValidationError):
            ConnectionPoint(shape_id='a', side='top', fraction=1.2)

    def test_unknown_style_rejected(self):
        with pytest.raises(ValidationError):
            make_connector(routing_style='zigzag')

    def test_assignment_validated(self):
        connector = make_connector()
        with pytest.raises(ValidationError):
            connector.stroke_width = -1


class TestConnectorRecord:
    """Test suite for the persisted record format"""

    def test_camel_case_keys(self):
        record = ConnectorRecord.from_connector(make_connector(label='yes')).to_dict()
        assert record['fromShapeId'] == 'a'
        assert record['toShapeId'] == 'b'
        assert record['fromPoint'] == {'side': 'right', 'fraction': 0.5}
        assert record['toPoint'] == {'side': 'left', 'fraction': 0.25}
        assert record['routingStyle'] == 'orthogonal'
        assert record['strokeColor'] == '#2c3e50'
        assert record['label'] == 'yes'

    def test_record_back_to_connector(self):
        connector = make_connector(waypoint_adjustments={1: {'axis': 'x', 'offset': 12}})
        restored = ConnectorRecord.model_validate(ConnectorRecord.from_connector(connector).to_dict()).to_connector()
        assert restored == connector

    def test_legacy_point_and_text_label(self):
        record = ConnectorRecord.model_validate({
            'id': 'c1',
            'fromShapeId': 'a',
            'toShapeId': 'b',
            'fromPoint': {'x': 1, 'y': 0.5},
            'toPoint': {'x': 0.25, 'y': 0},
            'text': 'legacy',
        })
        connector = record.to_connector()
        assert connector.from_point.side == 'right'
        assert connector.to_point.side == 'top'
        assert connector.to_point.fraction == 0.25
        assert connector.label == 'legacy'

    def test_interior_legacy_point_rejected(self):
        with pytest.raises(ValidationError, match='does not lie on a shape side'):
            PointRecord.model_validate({'x': 0.5, 'y': 0.5})


class TestRenderModels:
    """Test suite for host-facing output"""

    def test_routed_path_dict(self):
        path = RoutedPath(points=[(0, 0), (10, 0)], end_angle=0.0)
        assert path.to_dict() == {
            'points': [{'x': 0, 'y': 0}, {'x': 10, 'y': 0}],
            'endAngle': 0.0,
            'kind': 'polyline',
            'collides': False,
        }
        assert path.start == (0, 0)
        assert path.end == (10, 0)

    def test_render_dict_uses_camel_case(self):
        render = ConnectorRender(
            connector_id='c1',
            points=[(0, 0), (10, 0)],
            end_angle=0.0,
            svg_path='M 0,0 L 10,0',
            arrow_head=[(10, 0), (0, -5), (0, 5)],
            stroke_color='#000',
            stroke_width=1,
        )
        data = render.to_dict()
        assert data['connectorId'] == 'c1'
        assert data['svgPath'] == 'M 0,0 L 10,0'
        assert data['arrowHead'][1] == {'x': 0, 'y': -5}
        assert data['labelPosition'] is None
