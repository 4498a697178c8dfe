"""
Connection manager: connector registry, shape-change tracking, persistence
and the interaction state machine for drawing new connectors
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Any

from pydantic import ValidationError

from .config import EngineConfig
from .exceptions import InvalidConnectorError
from .geometry import Point, Shape, is_horizontal_side, is_opposite_pair
from .interaction import DragSession, Handle, InteractionState, WaypointControl
from .models import ConnectionPoint, Connector, ConnectorRecord, ConnectorRender, RoutedPath, WaypointAdjustment
from .notifier import ShapeStore
from ..routing.connection_points import ConnectionPointResolver
from ..routing.obstacles import ObstacleAvoider
from ..routing.path_optimizer import arrow_head, cubic_midpoint, cubic_svg_path, path_midpoint, smooth_corners
from ..routing.router import PathRouter
from ..routing.waypoints import adjustable_segment, apply_adjustments, capture_adjustment

# Setup module logger
logger = logging.getLogger(__name__)

PathListener = Callable[[str, Optional[RoutedPath]], None]


class ConnectionManager:
    """
    Owns the connectors of one canvas.

    Connectors are recomputed from their stored connection points whenever
    one of their shapes changes; shape deletion removes them. Listeners are
    told about every new path (or None when a connector goes away).
    """

    def __init__(self, store: ShapeStore, config: Optional[EngineConfig] = None):
        """
        Args:
            store: Host shape query and change notifier
            config: Engine configuration (defaults when omitted)
        """
        self.store = store
        self.config = config or EngineConfig()

        self.resolver = ConnectionPointResolver(
            handle_offset=self.config.handle_offset,
            handle_fractions=self.config.handle_fractions,
        )
        self.avoider = ObstacleAvoider(
            store,
            margin=self.config.obstacle_margin,
            offset=self.config.avoidance_offset,
            stub_length=self.config.stub_length,
        )
        self.router = PathRouter(
            self.avoider,
            stub_length=self.config.stub_length,
            alignment_tolerance=self.config.alignment_tolerance,
        )

        self.connectors: Dict[str, Connector] = {}
        self._paths: Dict[str, RoutedPath] = {}
        self._shape_refs: Dict[str, List[str]] = {}
        self._listeners: List[PathListener] = []
        self.selected_id: Optional[str] = None

        # Interaction state
        self.state = InteractionState.IDLE
        self.hover_shape_id: Optional[str] = None
        self.drag: Optional[DragSession] = None
        self.candidate_handles: List[Handle] = []

    # ========================================================================
    # Registry
    # ========================================================================

    def __len__(self) -> int:
        return len(self.connectors)

    def __contains__(self, connector_id: str) -> bool:
        return connector_id in self.connectors

    def get(self, connector_id: str) -> Optional[Connector]:
        return self.connectors.get(connector_id)

    def connectors_for_shape(self, shape_id: str) -> List[Connector]:
        """Connectors with an endpoint on the shape, in creation order"""
        return [self.connectors[cid] for cid in self._shape_refs.get(shape_id, []) if cid in self.connectors]

    def create_connector(
        self,
        from_shape_id: str,
        to_shape_id: str,
        from_point: Optional[ConnectionPoint] = None,
        to_point: Optional[ConnectionPoint] = None,
        **style: Any
    ) -> Optional[Connector]:
        """
        Create and route a connector between two shapes

        Missing connection points face the other shape's center.

        Args:
            from_shape_id: Source shape
            to_shape_id: Destination shape
            from_point: Connection point on the source, or None to choose one
            to_point: Connection point on the destination, or None to choose one
            **style: Connector attributes (routing_style, stroke_color, label, ...)
                overriding the configured defaults

        Returns:
            The new connector, or None when an endpoint is missing, unknown or
            both endpoints are the same shape

        Raises:
            InvalidConnectorError: If a given point belongs to another shape or
                the style attributes are invalid
        """
        if not from_shape_id or not to_shape_id or from_shape_id == to_shape_id:
            logger.debug(f"Ignoring connector request {from_shape_id!r} -> {to_shape_id!r}")
            return None

        from_shape = self.store.get_shape(from_shape_id)
        to_shape = self.store.get_shape(to_shape_id)
        if from_shape is None or to_shape is None:
            logger.debug(f"Ignoring connector request {from_shape_id!r} -> {to_shape_id!r}: unknown shape")
            return None

        if from_point is None:
            side = self.resolver.choose_initial_side(from_shape, to_shape.center)
            from_point = ConnectionPoint(shape_id=from_shape_id, side=side)
        if to_point is None:
            side = self.resolver.choose_initial_side(to_shape, from_shape.center)
            to_point = ConnectionPoint(shape_id=to_shape_id, side=side)

        if from_point.shape_id != from_shape_id or to_point.shape_id != to_shape_id:
            raise InvalidConnectorError(
                f"Connection points ({from_point.shape_id}, {to_point.shape_id}) do not match "
                f"shapes ({from_shape_id}, {to_shape_id})"
            )

        attributes = {**self.config.connector_defaults(), **style}
        try:
            connector = Connector(from_point=from_point, to_point=to_point, **attributes)
        except ValidationError as e:
            raise InvalidConnectorError(f"Invalid connector attributes: {str(e)}") from e

        if connector.id in self.connectors:
            raise InvalidConnectorError(f"Connector '{connector.id}' already exists")

        self._register(connector)
        logger.info(
            f"Created connector {connector.id} "
            f"({from_shape_id}.{from_point.side} -> {to_shape_id}.{to_point.side})"
        )
        return connector

    def remove(self, connector_id: str) -> bool:
        """
        Delete a connector and release everything attached to it

        Returns:
            True if the connector existed
        """
        connector = self.connectors.pop(connector_id, None)
        if connector is None:
            return False

        self._paths.pop(connector_id, None)
        self._detach(connector)
        if self.selected_id == connector_id:
            self.selected_id = None

        logger.info(f"Removed connector {connector_id}")
        self._notify(connector_id, None)
        return True

    def clear(self) -> None:
        """Remove every connector and reset the interaction state"""
        for connector_id in list(self.connectors):
            self.remove(connector_id)
        self.selected_id = None
        self._end_drag()

    def _register(self, connector: Connector) -> None:
        self.connectors[connector.id] = connector
        for shape_id in (connector.from_shape_id, connector.to_shape_id):
            refs = self._shape_refs.setdefault(shape_id, [])
            if not refs:
                self.store.subscribe(shape_id, self.on_shape_changed)
            refs.append(connector.id)
        self._update(connector.id)

    def _detach(self, connector: Connector) -> None:
        for shape_id in (connector.from_shape_id, connector.to_shape_id):
            refs = self._shape_refs.get(shape_id)
            if refs is None:
                continue
            if connector.id in refs:
                refs.remove(connector.id)
            if not refs:
                del self._shape_refs[shape_id]
                self.store.unsubscribe(shape_id, self.on_shape_changed)

    # ========================================================================
    # Listeners
    # ========================================================================

    def add_listener(self, callback: PathListener) -> None:
        """Register a callback receiving (connector_id, RoutedPath or None)"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: PathListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, connector_id: str, path: Optional[RoutedPath]) -> None:
        for callback in list(self._listeners):
            callback(connector_id, path)

    # ========================================================================
    # Routing
    # ========================================================================

    def _route(self, connector: Connector, adjusted: bool = True) -> Optional[RoutedPath]:
        """Route a connector from its stored points; None if a shape is gone"""
        from_shape = self.store.get_shape(connector.from_shape_id)
        to_shape = self.store.get_shape(connector.to_shape_id)
        if from_shape is None or to_shape is None:
            return None

        start = self.resolver.resolve_point(from_shape, connector.from_point)
        end = self.resolver.resolve_point(to_shape, connector.to_point)

        path = self.router.route_for_style(
            connector.routing_style,
            start,
            end,
            connector.from_point.side,
            connector.to_point.side,
            exclude_ids=(connector.from_shape_id, connector.to_shape_id),
        )

        if adjusted and connector.routing_style == 'orthogonal' and connector.waypoint_adjustments:
            points = apply_adjustments(path.points, connector.waypoint_adjustments)
            path = path.model_copy(update={'points': points})

        return path

    def _update(self, connector_id: str) -> Optional[RoutedPath]:
        connector = self.connectors.get(connector_id)
        if connector is None:
            return None

        path = self._route(connector)
        if path is None:
            logger.info(f"Connector {connector_id} lost an endpoint shape, removing it")
            self.remove(connector_id)
            return None

        if path.collides:
            logger.warning(f"No collision-free route for connector {connector_id}, using default path")

        self._paths[connector_id] = path
        self._notify(connector_id, path)
        return path

    def update_all(self) -> None:
        """Recompute every connector"""
        for connector_id in list(self.connectors):
            self._update(connector_id)

    def path(self, connector_id: str) -> Optional[RoutedPath]:
        """Current routed path of a connector"""
        return self._paths.get(connector_id)

    def render(self, connector_id: str) -> Optional[ConnectorRender]:
        """Drawing instructions for one connector"""
        connector = self.connectors.get(connector_id)
        path = self._paths.get(connector_id)
        if connector is None or path is None:
            return None

        if path.kind == 'cubic':
            svg_path = cubic_svg_path(path.points)
            label_position = cubic_midpoint(path.points)
        else:
            svg_path = smooth_corners(path.points, self.config.corner_radius)
            label_position = path_midpoint(path.points)

        return ConnectorRender(
            connector_id=connector_id,
            points=path.points,
            end_angle=path.end_angle,
            kind=path.kind,
            svg_path=svg_path,
            arrow_head=arrow_head(path.end, path.end_angle, connector.arrow_size),
            stroke_color=connector.stroke_color,
            stroke_width=connector.stroke_width,
            label=connector.label,
            label_position=label_position if connector.label else None,
            collides=path.collides,
        )

    def render_all(self) -> List[ConnectorRender]:
        renders = []
        for connector_id in self.connectors:
            render = self.render(connector_id)
            if render is not None:
                renders.append(render)
        return renders

    # ========================================================================
    # Shape changes
    # ========================================================================

    def on_shape_changed(self, shape_id: str) -> None:
        """
        Recompute every connector attached to a shape

        Safe to call on every movement tick: each call routes from the stored
        connection points and adjustments, nothing accumulates.
        """
        if self.store.get_shape(shape_id) is None:
            self.on_shape_removed(shape_id)
            return

        for connector_id in list(self._shape_refs.get(shape_id, [])):
            connector = self.connectors.get(connector_id)
            if connector is None:
                continue
            if self.config.connection_policy == 'nearest':
                self._reselect_sides(connector)
            self._update(connector_id)

    def on_shape_removed(self, shape_id: str) -> None:
        """Drop every connector attached to a deleted shape"""
        for connector_id in list(self._shape_refs.get(shape_id, [])):
            self.remove(connector_id)

        if self.hover_shape_id == shape_id:
            self.pointer_leave()
        if self.drag is not None and self.drag.source_handle.shape_id == shape_id:
            self.cancel()

    def _reselect_sides(self, connector: Connector) -> None:
        """Move both connection points to the sides facing each other"""
        from_shape = self.store.get_shape(connector.from_shape_id)
        to_shape = self.store.get_shape(connector.to_shape_id)
        if from_shape is None or to_shape is None:
            return

        from_side = self.resolver.choose_initial_side(from_shape, to_shape.center)
        to_side = self.resolver.choose_initial_side(to_shape, from_shape.center)
        if (from_side, to_side) == (connector.from_point.side, connector.to_point.side):
            return

        logger.debug(f"Connector {connector.id} re-attached to {from_side}/{to_side}")
        connector.from_point = ConnectionPoint(shape_id=from_shape.id, side=from_side)
        connector.to_point = ConnectionPoint(shape_id=to_shape.id, side=to_side)
        connector.waypoint_adjustments = {}

    def align_snap(
        self,
        from_shape: Shape,
        to_shape: Shape,
        from_dir: str,
        to_dir: str,
        from_fraction: float = 0.5,
        to_fraction: float = 0.5,
    ) -> Optional[Tuple[float, float]]:
        """
        Nudge to_shape so a nearly straight connection becomes exactly straight

        Only opposite side pairs qualify, and only when the perpendicular
        misalignment of the two connection points is below the alignment
        tolerance. The shape is moved through the store, which notifies.

        Returns:
            The applied (dx, dy), or None when nothing moved
        """
        if not is_opposite_pair(from_dir, to_dir):
            return None

        start = self.resolver.resolve(from_shape, from_dir, from_fraction)
        end = self.resolver.resolve(to_shape, to_dir, to_fraction)

        if is_horizontal_side(from_dir):
            delta = (0.0, start[1] - end[1])
        else:
            delta = (start[0] - end[0], 0.0)

        misalignment = abs(delta[0]) + abs(delta[1])
        if misalignment == 0 or misalignment >= self.config.alignment_tolerance:
            return None

        logger.debug(f"Snapping {to_shape.id} by {delta} to align with {from_shape.id}")
        self.store.translate_shape(to_shape.id, delta[0], delta[1])
        return delta

    # ========================================================================
    # Waypoints and selection
    # ========================================================================

    def _adjustable_index(self, connector: Connector) -> Optional[int]:
        """Adjustable segment, located on the unadjusted route so it never jumps"""
        if connector.routing_style != 'orthogonal':
            return None
        fresh = self._route(connector, adjusted=False)
        if fresh is None:
            return None
        return adjustable_segment(fresh.points)

    def waypoint_control(self, connector_id: str) -> Optional[WaypointControl]:
        """Draggable control of the connector's adjustable segment"""
        connector = self.connectors.get(connector_id)
        path = self._paths.get(connector_id)
        if connector is None or path is None:
            return None

        index = self._adjustable_index(connector)
        if index is None or index + 1 >= len(path.points):
            return None
        return WaypointControl(connector_id, index, path.points[index], path.points[index + 1])

    def drag_waypoint(self, connector_id: str, point: Point) -> Optional[WaypointAdjustment]:
        """
        Move the adjustable segment so it passes through point

        The offset is measured against the unadjusted route and stored on the
        connector, so it survives every later recomputation.
        """
        connector = self.connectors.get(connector_id)
        if connector is None or connector.routing_style != 'orthogonal':
            return None

        fresh = self._route(connector, adjusted=False)
        index = adjustable_segment(fresh.points) if fresh is not None else None
        if index is None:
            return None

        adjustment = capture_adjustment(index, point, fresh.segments()[index])

        adjustments = dict(connector.waypoint_adjustments)
        adjustments[index] = adjustment
        connector.waypoint_adjustments = adjustments

        self._update(connector_id)
        return adjustment

    def reset_waypoints(self, connector_id: str) -> bool:
        """Forget every manual adjustment of a connector"""
        connector = self.connectors.get(connector_id)
        if connector is None:
            return False
        connector.waypoint_adjustments = {}
        self._update(connector_id)
        return True

    def select(self, connector_id: str) -> Optional[WaypointControl]:
        """Select a connector; returns its waypoint control if it has one"""
        if connector_id not in self.connectors:
            return None
        self.selected_id = connector_id
        return self.waypoint_control(connector_id)

    def clear_selection(self) -> None:
        self.selected_id = None

    # ========================================================================
    # Interaction state machine
    # ========================================================================

    def pointer_enter(self, shape_id: str) -> List[Handle]:
        """Pointer entered a shape: show its connection handles"""
        if self.state == InteractionState.DRAGGING:
            return []

        shape = self.store.get_shape(shape_id)
        if shape is None:
            return []

        self.state = InteractionState.HOVER
        self.hover_shape_id = shape_id
        return self.resolver.handle_points(shape)

    def pointer_leave(self) -> None:
        if self.state == InteractionState.HOVER:
            self.state = InteractionState.IDLE
            self.hover_shape_id = None

    def pointer_down(self, handle: Handle) -> bool:
        """Start dragging a new connector out of a handle"""
        if self.state == InteractionState.DRAGGING:
            return False
        if self.store.get_shape(handle.shape_id) is None:
            return False

        self.state = InteractionState.DRAGGING
        self.hover_shape_id = None
        self.drag = DragSession(source_handle=handle)
        logger.debug(f"Started connector drag from {handle.shape_id}.{handle.side}")
        return True

    def pointer_move(
        self,
        pointer: Point,
        over_shape_id: Optional[str] = None,
        over_handle: Optional[Handle] = None,
    ) -> Optional[RoutedPath]:
        """
        Recompute the drag preview

        Over a shape other than the source, the preview ends at the hovered
        handle or the shape's nearest side; elsewhere it ends at the pointer.
        """
        if self.state != InteractionState.DRAGGING or self.drag is None:
            return None

        source = self.drag.source_handle
        source_shape = self.store.get_shape(source.shape_id)
        if source_shape is None:
            self.cancel()
            return None

        start = self.resolver.resolve(source_shape, source.side, source.fraction)
        target = self._drop_target(pointer, over_shape_id, over_handle)

        if target is None:
            self.drag.target_shape_id = None
            self.drag.target_side = None
            self.drag.target_fraction = 0.5
            self.candidate_handles = []
            preview = self.router.route(start, pointer, source.side, None)
        else:
            shape, side, fraction = target
            self.drag.target_shape_id = shape.id
            self.drag.target_side = side
            self.drag.target_fraction = fraction
            self.candidate_handles = self.resolver.handle_points(shape)
            end = self.resolver.resolve(shape, side, fraction)
            preview = self.router.route(start, end, source.side, side, exclude_ids=(source_shape.id, shape.id))

        self.drag.preview = preview
        return preview

    def pointer_up(
        self,
        pointer: Point,
        over_shape_id: Optional[str] = None,
        over_handle: Optional[Handle] = None,
    ) -> Optional[Connector]:
        """Finish a drag: commit onto a distinct shape, otherwise cancel"""
        if self.state != InteractionState.DRAGGING or self.drag is None:
            return None

        source = self.drag.source_handle
        target = self._drop_target(pointer, over_shape_id, over_handle)
        self._end_drag()

        source_shape = self.store.get_shape(source.shape_id)
        if target is None or source_shape is None:
            logger.debug("Connector drag cancelled: no target shape")
            return None

        shape, side, fraction = target
        self.align_snap(source_shape, shape, source.side, side, source.fraction, fraction)

        return self.create_connector(
            source_shape.id,
            shape.id,
            ConnectionPoint(shape_id=source_shape.id, side=source.side, fraction=source.fraction),
            ConnectionPoint(shape_id=shape.id, side=side, fraction=fraction),
        )

    def cancel(self) -> None:
        """Abort a drag in progress"""
        if self.state == InteractionState.DRAGGING:
            logger.debug("Connector drag cancelled")
        self._end_drag()

    def key_press(self, key: str) -> bool:
        """Handle a key; Escape cancels a drag. Returns True if consumed"""
        if key == 'Escape' and self.state == InteractionState.DRAGGING:
            self.cancel()
            return True
        return False

    def _end_drag(self) -> None:
        self.state = InteractionState.IDLE
        self.hover_shape_id = None
        self.drag = None
        self.candidate_handles = []

    def _drop_target(
        self,
        pointer: Point,
        over_shape_id: Optional[str],
        over_handle: Optional[Handle],
    ) -> Optional[Tuple[Shape, str, float]]:
        """Shape, side and fraction under the pointer, excluding the drag source"""
        source_id = self.drag.source_handle.shape_id if self.drag else None

        if over_handle is not None and over_handle.shape_id != source_id:
            shape = self.store.get_shape(over_handle.shape_id)
            if shape is not None:
                return shape, over_handle.side, over_handle.fraction

        if over_shape_id and over_shape_id != source_id:
            shape = self.store.get_shape(over_shape_id)
            if shape is not None:
                return shape, self.resolver.nearest_side(shape, pointer), 0.5

        return None

    # ========================================================================
    # Persistence
    # ========================================================================

    def serialize(self) -> List[Dict[str, Any]]:
        """JSON-compatible records for every connector"""
        return [ConnectorRecord.from_connector(c).to_dict() for c in self.connectors.values()]

    def deserialize(
        self,
        records: Iterable[Dict[str, Any]],
        shape_lookup: Optional[Callable[[str], Optional[Shape]]] = None,
    ) -> List[Connector]:
        """
        Replace the registry with connectors loaded from records

        Records that fail validation or reference missing shapes are skipped
        with a warning. Shapes are not snapped.

        Args:
            records: Output of serialize() (camelCase keys)
            shape_lookup: Resolves shape ids; defaults to the store

        Returns:
            The connectors that were loaded
        """
        lookup = shape_lookup or self.store.get_shape
        self.clear()

        loaded = []
        skipped = 0
        for raw in records:
            try:
                connector = ConnectorRecord.model_validate(raw).to_connector()
            except ValidationError as e:
                logger.warning(f"Skipping invalid connector record: {e.error_count()} validation error(s)")
                skipped += 1
                continue

            if lookup(connector.from_shape_id) is None or lookup(connector.to_shape_id) is None:
                logger.warning(f"Skipping connector {connector.id}: endpoint shape not found")
                skipped += 1
                continue

            if connector.id in self.connectors:
                logger.warning(f"Skipping duplicate connector {connector.id}")
                skipped += 1
                continue

            self._register(connector)
            # Routing goes through the store, which may not know a shape the lookup accepted
            if connector.id not in self.connectors:
                logger.warning(f"Skipping connector {connector.id}: endpoint shape not in the store")
                skipped += 1
                continue
            loaded.append(connector)

        logger.info(f"Loaded {len(loaded)} connectors ({skipped} skipped)")
        return loaded
