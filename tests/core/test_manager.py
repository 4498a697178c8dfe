"""
Tests for ConnectionManager: lifecycle, shape tracking, snapping,
waypoints, rendering and persistence
"""

import json
import logging

import pytest

from diagram_connectors.core.exceptions import InvalidConnectorError
from diagram_connectors.core.manager import ConnectionManager
from diagram_connectors.core.models import ConnectionPoint
from diagram_connectors.core.notifier import InMemoryShapeStore
from tests.conftest import assert_orthogonal, assert_points_equal, make_shape


class TestCreateConnector:
    """Test suite for programmatic creation"""

    def test_auto_sides_face_each_other(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        connector = manager.create_connector('a', 'b')

        assert connector.from_point.side == 'right'
        assert connector.to_point.side == 'left'
        assert connector.from_point.fraction == 0.5
        assert_points_equal(manager.path(connector.id).points, [(100, 50), (120, 50), (120, 55), (280, 55), (280, 60), (300, 60)])

    def test_explicit_points_and_style(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        connector = manager.create_connector(
            'a', 'b',
            ConnectionPoint(shape_id='a', side='bottom'),
            ConnectionPoint(shape_id='b', side='bottom'),
            stroke_color='#ff0000',
            label='flows to',
        )
        assert connector.from_point.side == 'bottom'
        assert connector.stroke_color == '#ff0000'
        assert connector.label == 'flows to'
        assert manager.path(connector.id).end_angle == -90.0

    def test_config_defaults_applied(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store, connectors={'routing_style': 'curved', 'arrow_size': 14})
        connector = manager.create_connector('a', 'b')
        assert connector.routing_style == 'curved'
        assert connector.arrow_size == 14
        assert manager.path(connector.id).kind == 'cubic'

    @pytest.mark.parametrize('from_id,to_id', [('a', 'a'), ('a', 'missing'), ('', 'b'), (None, 'b')])
    def test_invalid_endpoints_are_noops(self, aligned_store, manager_factory, from_id, to_id):
        manager = manager_factory(aligned_store)
        assert manager.create_connector(from_id, to_id) is None
        assert len(manager) == 0
        assert aligned_store.subscriber_count('a') == 0

    def test_point_for_other_shape_rejected(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        with pytest.raises(InvalidConnectorError, match='do not match'):
            manager.create_connector('a', 'b', ConnectionPoint(shape_id='b', side='left'))

    def test_invalid_style_rejected(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        with pytest.raises(InvalidConnectorError, match='Invalid connector attributes'):
            manager.create_connector('a', 'b', stroke_width=0)

    def test_subscribes_once_per_shape(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        manager.create_connector('a', 'b')
        manager.create_connector('b', 'a')
        assert aligned_store.subscriber_count('a') == 1
        assert len(manager.connectors_for_shape('a')) == 2


class TestShapeChanges:
    """Test suite for recomputation on shape movement and deletion"""

    def test_move_recomputes_with_fixed_sides(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        connector = manager.create_connector('a', 'b')

        aligned_store.translate_shape('b', 0, 200)

        assert connector.to_point.side == 'left'
        assert_points_equal(manager.path(connector.id).points, [(100, 50), (200, 50), (200, 260), (300, 260)])

    def test_endpoints_follow_shapes(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        offset_store.update_shape('a', left=-50, top=30)

        path = manager.path(connector.id)
        a = offset_store.get_shape('a')
        assert path.start == manager.resolver.resolve_point(a, connector.from_point)
        assert path.end == manager.resolver.resolve_point(offset_store.get_shape('b'), connector.to_point)

    def test_recompute_is_idempotent(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.drag_waypoint(connector.id, (230, 150))

        first = manager.path(connector.id)
        manager.on_shape_changed('a')
        manager.on_shape_changed('a')
        manager.on_shape_changed('b')
        assert manager.path(connector.id) == first

    def test_deleting_shape_removes_connectors(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, 0), make_shape('c', 0, 300)])
        manager = manager_factory(store)
        ab = manager.create_connector('a', 'b')
        ac = manager.create_connector('a', 'c')
        events = []
        manager.add_listener(lambda cid, path: events.append((cid, path)))

        store.remove_shape('b')

        assert ab.id not in manager
        assert ac.id in manager
        assert [c.id for c in manager.connectors_for_shape('a')] == [ac.id]
        assert manager.connectors_for_shape('b') == []
        assert events == [(ab.id, None)]
        assert store.subscriber_count('a') == 1

    def test_nearest_policy_reselects_sides(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, 0)])
        manager = manager_factory(store, connection_policy='nearest')
        connector = manager.create_connector('a', 'b')

        store.translate_shape('b', -300, 300)

        assert connector.from_point.side == 'bottom'
        assert connector.to_point.side == 'top'
        assert_points_equal(manager.path(connector.id).points, [(50, 100), (50, 300)])

    def test_fixed_policy_keeps_sides(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, 0)])
        manager = manager_factory(store)
        connector = manager.create_connector('a', 'b')

        store.translate_shape('b', -300, 300)

        assert connector.from_point.side == 'right'
        assert connector.to_point.side == 'left'

    def test_unresolvable_route_logs_warning(self, manager_factory, caplog):
        store = InMemoryShapeStore([
            make_shape('a', 0, 0),
            make_shape('b', 400, 0),
            make_shape('wall', 200, -300, 60, 700),
        ])
        manager = manager_factory(store)

        with caplog.at_level(logging.WARNING, logger='diagram_connectors.core.manager'):
            connector = manager.create_connector('a', 'b')

        assert connector is not None
        assert manager.path(connector.id).collides
        assert manager.path(connector.id).points == [(100, 50), (400, 50)]
        assert 'No collision-free route' in caplog.text


class TestRemove:
    """Test suite for explicit removal"""

    def test_remove_releases_everything(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.select(connector.id)

        assert manager.remove(connector.id)

        assert len(manager) == 0
        assert manager.path(connector.id) is None
        assert manager.selected_id is None
        assert manager.waypoint_control(connector.id) is None
        assert offset_store.subscriber_count('a') == 0
        assert offset_store.subscriber_count('b') == 0

    def test_remove_unknown(self, offset_store, manager_factory):
        assert not manager_factory(offset_store).remove('nope')

    def test_clear(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        manager.create_connector('a', 'b')
        manager.create_connector('b', 'a')
        manager.clear()
        assert len(manager) == 0
        assert offset_store.subscriber_count('a') == 0


class TestAlignSnap:
    """Test suite for alignment snapping"""

    def test_snap_removes_misalignment(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, 25)])
        manager = manager_factory(store)
        a, b = store.get_shape('a'), store.get_shape('b')

        assert manager.align_snap(a, b, 'right', 'left') == (0.0, -25.0)

        start = manager.resolver.resolve(a, 'right')
        end = manager.resolver.resolve(store.get_shape('b'), 'left')
        assert start[1] == end[1]
        assert store.get_shape('b').top == 0

    def test_vertical_snap(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 12, 300)])
        manager = manager_factory(store)
        assert manager.align_snap(store.get_shape('a'), store.get_shape('b'), 'bottom', 'top') == (-12.0, 0.0)
        assert store.get_shape('b').left == 0

    def test_snap_notifies_existing_connectors(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, 25), make_shape('c', 300, 300)])
        manager = manager_factory(store)
        bc = manager.create_connector('b', 'c')
        before = manager.path(bc.id)

        manager.align_snap(store.get_shape('a'), store.get_shape('b'), 'right', 'left')

        assert manager.path(bc.id) != before
        assert manager.path(bc.id).start == manager.resolver.resolve_point(store.get_shape('b'), bc.from_point)

    @pytest.mark.parametrize('b_top,from_dir,to_dir', [
        (40, 'right', 'left'),   # beyond tolerance
        (25, 'right', 'top'),    # not an opposite pair
        (25, 'right', 'right'),  # same side
        (0, 'right', 'left'),    # already aligned
    ])
    def test_no_snap(self, manager_factory, b_top, from_dir, to_dir):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', 300, b_top)])
        manager = manager_factory(store)
        assert manager.align_snap(store.get_shape('a'), store.get_shape('b'), from_dir, to_dir) is None
        assert store.get_shape('b').top == b_top


class TestWaypoints:
    """Test suite for waypoint controls and manual adjustments"""

    def test_control_on_adjustable_segment(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')

        control = manager.waypoint_control(connector.id)

        assert control.segment_index == 1
        assert control.start == (200, 50)
        assert control.end == (200, 250)
        assert control.position == (200, 150)

    def test_no_control_on_short_path(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        connector = manager.create_connector('a', 'b')
        aligned_store.translate_shape('b', 0, -10)
        assert manager.waypoint_control(connector.id) is None
        assert manager.drag_waypoint(connector.id, (200, 0)) is None

    def test_drag_moves_segment_exactly(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')

        adjustment = manager.drag_waypoint(connector.id, (230, 150))

        assert adjustment.axis == 'x'
        assert adjustment.offset == 30
        assert connector.waypoint_adjustments[1] == adjustment
        assert_points_equal(manager.path(connector.id).points, [(100, 50), (230, 50), (230, 250), (300, 250)])

    def test_adjustment_survives_movement(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.drag_waypoint(connector.id, (230, 150))

        offset_store.translate_shape('b', 0, 20)
        assert_points_equal(manager.path(connector.id).points, [(100, 50), (230, 50), (230, 270), (300, 270)])

        offset_store.translate_shape('b', 40, 0)
        # Fresh midline moves to x=220, the stored offset keeps +30
        assert manager.path(connector.id).points[1][0] == 250

    def test_second_drag_measures_from_unadjusted_route(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.drag_waypoint(connector.id, (230, 150))
        adjustment = manager.drag_waypoint(connector.id, (180, 150))

        assert adjustment.offset == -20
        assert manager.path(connector.id).points[1][0] == 180

    def test_vanished_segment_adjustment_not_applied(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.drag_waypoint(connector.id, (230, 150))

        offset_store.translate_shape('b', 0, -200)

        assert manager.path(connector.id).points == [(100, 50), (300, 50)]

    def test_reset(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        manager.drag_waypoint(connector.id, (230, 150))

        assert manager.reset_waypoints(connector.id)
        assert connector.waypoint_adjustments == {}
        assert manager.path(connector.id).points[1][0] == 200

    def test_curved_connectors_have_no_control(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b', routing_style='curved')
        assert manager.waypoint_control(connector.id) is None
        assert manager.drag_waypoint(connector.id, (230, 150)) is None

    def test_destination_behind_source_keeps_stubs_straight(self, manager_factory):
        store = InMemoryShapeStore([make_shape('a', 0, 0), make_shape('b', -300, 40)])
        manager = manager_factory(store)
        connector = manager.create_connector(
            'a', 'b',
            ConnectionPoint(shape_id='a', side='right'),
            ConnectionPoint(shape_id='b', side='left'),
        )

        control = manager.waypoint_control(connector.id)
        assert control.segment_index == 2
        assert control.position == (-100, 70)

        manager.drag_waypoint(connector.id, (-60, 110))

        points = manager.path(connector.id).points
        assert_points_equal(points, [(100, 50), (120, 50), (-60, 50), (-60, 90), (-320, 90), (-300, 90)])
        assert_orthogonal(points)


class TestSelection:
    """Test suite for connector selection"""

    def test_single_selection(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        first = manager.create_connector('a', 'b')
        second = manager.create_connector('b', 'a')

        assert manager.select(first.id).connector_id == first.id
        manager.select(second.id)
        assert manager.selected_id == second.id

        manager.clear_selection()
        assert manager.selected_id is None

    def test_select_unknown(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        assert manager.select('nope') is None
        assert manager.selected_id is None


class TestRendering:
    """Test suite for render output"""

    def test_orthogonal_render(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b', label='next')

        render = manager.render(connector.id)

        assert render.connector_id == connector.id
        assert render.svg_path.startswith('M ')
        assert ' Q ' in render.svg_path
        assert render.arrow_head[0] == pytest.approx(render.points[-1])
        assert render.label_position == pytest.approx((200, 150))
        assert render.stroke_color == '#2c3e50'

    def test_label_position_only_with_label(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b')
        assert manager.render(connector.id).label_position is None

    def test_curved_render(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b', routing_style='curved')
        render = manager.render(connector.id)
        assert render.kind == 'cubic'
        assert ' C ' in render.svg_path

    def test_render_all(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        manager.create_connector('a', 'b')
        manager.create_connector('b', 'a', routing_style='straight')
        renders = manager.render_all()
        assert len(renders) == 2
        assert json.dumps([r.to_dict() for r in renders])

    def test_render_unknown(self, offset_store, manager_factory):
        assert manager_factory(offset_store).render('nope') is None


class TestListeners:
    """Test suite for path listeners"""

    def test_listener_receives_paths(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        events = []
        manager.add_listener(lambda cid, path: events.append((cid, path)))

        connector = manager.create_connector('a', 'b')
        offset_store.translate_shape('a', 0, 10)
        manager.update_all()

        assert [cid for cid, _ in events] == [connector.id] * 3
        assert all(path is not None for _, path in events)

    def test_remove_listener(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        events = []

        def listener(cid, path):
            events.append(cid)

        manager.add_listener(listener)
        manager.remove_listener(listener)
        manager.create_connector('a', 'b')
        assert events == []


class TestPersistence:
    """Test suite for serialize/deserialize"""

    def test_roundtrip(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        connector = manager.create_connector('a', 'b', label='x')
        manager.drag_waypoint(connector.id, (230, 150))
        records = json.loads(json.dumps(manager.serialize()))

        restored = manager_factory(offset_store)
        loaded = restored.deserialize(records)

        assert [c.id for c in loaded] == [connector.id]
        assert restored.get(connector.id) == connector
        assert restored.path(connector.id) == manager.path(connector.id)

    def test_record_format(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        manager.create_connector('a', 'b')
        record = manager.serialize()[0]
        assert set(record) == {
            'id', 'fromShapeId', 'toShapeId', 'fromPoint', 'toPoint', 'routingStyle',
            'waypointAdjustments', 'strokeColor', 'strokeWidth', 'arrowSize', 'label',
        }

    def test_bad_records_skipped(self, offset_store, manager_factory, caplog):
        manager = manager_factory(offset_store)
        good = {
            'id': 'good', 'fromShapeId': 'a', 'toShapeId': 'b',
            'fromPoint': {'side': 'right', 'fraction': 0.5}, 'toPoint': {'side': 'left', 'fraction': 0.5},
        }
        records = [
            good,
            dict(good, id='orphan', toShapeId='gone'),
            dict(good, id='loop', toShapeId='a'),
            {'id': 'broken'},
        ]

        with caplog.at_level(logging.WARNING):
            loaded = manager.deserialize(records)

        assert [c.id for c in loaded] == ['good']
        assert 'endpoint shape not found' in caplog.text
        assert 'invalid connector record' in caplog.text

    def test_deserialize_replaces_registry(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        old = manager.create_connector('a', 'b')
        manager.deserialize([])
        assert old.id not in manager
        assert offset_store.subscriber_count('a') == 0

    def test_deserialize_does_not_snap(self, aligned_store, manager_factory):
        manager = manager_factory(aligned_store)
        manager.deserialize([{
            'id': 'c1', 'fromShapeId': 'a', 'toShapeId': 'b',
            'fromPoint': {'side': 'right'}, 'toPoint': {'side': 'left'},
        }])
        assert aligned_store.get_shape('b').top == 10

    def test_lookup_shape_missing_from_store_not_reported(self, manager_factory, caplog):
        store = InMemoryShapeStore([make_shape('a', 0, 0)])
        known = {'a': make_shape('a', 0, 0), 'b': make_shape('b', 300, 0)}
        manager = manager_factory(store)

        with caplog.at_level(logging.INFO, logger='diagram_connectors.core.manager'):
            loaded = manager.deserialize(
                [{'id': 'c1', 'fromShapeId': 'a', 'toShapeId': 'b',
                  'fromPoint': {'side': 'right'}, 'toPoint': {'side': 'left'}}],
                shape_lookup=known.get,
            )

        assert loaded == []
        assert len(manager) == 0
        assert store.subscriber_count('a') == 0
        assert 'Loaded 0 connectors (1 skipped)' in caplog.text

    def test_custom_shape_lookup(self, offset_store, manager_factory):
        manager = manager_factory(offset_store)
        loaded = manager.deserialize(
            [{'id': 'c1', 'fromShapeId': 'a', 'toShapeId': 'b',
              'fromPoint': {'side': 'right'}, 'toPoint': {'side': 'left'}}],
            shape_lookup=lambda shape_id: None,
        )
        assert loaded == []
