"""
Host-facing shape interfaces: geometry queries and change notifications

The engine never installs handlers on host shape objects. It subscribes
per shape id through a ShapeChangeNotifier and reads geometry through a
ShapeQuery. InMemoryShapeStore implements both for hosts without their
own object model (and for tests and the CLI).
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional

from .geometry import Shape


ShapeCallback = Callable[[str], None]


class ShapeQuery(ABC):
    """Read access to host shapes, plus the one mutation the engine performs (alignment snap)"""

    @abstractmethod
    def get_shape(self, shape_id: str) -> Optional[Shape]:
        """Return the shape with this id, or None if it no longer exists"""
        pass

    @abstractmethod
    def list_shapes(self) -> List[Shape]:
        """Return every shape currently on the canvas (obstacle candidates)"""
        pass

    @abstractmethod
    def translate_shape(self, shape_id: str, dx: float, dy: float) -> None:
        """Move a shape by (dx, dy) and fire its change notification"""
        pass


class ShapeChangeNotifier(ABC):
    """Per-shape 'changed' signal fired on move/resize/rotate/delete"""

    @abstractmethod
    def subscribe(self, shape_id: str, callback: ShapeCallback) -> None:
        pass

    @abstractmethod
    def unsubscribe(self, shape_id: str, callback: ShapeCallback) -> None:
        pass


class ShapeStore(ShapeQuery, ShapeChangeNotifier):
    """Combined interface the ConnectionManager is constructed with"""
    pass


class InMemoryShapeStore(ShapeStore):
    """
    Dictionary-backed shape store.

    Fires the change signal for a shape id whenever it is updated, moved or
    removed; subscribers of a removed shape see get_shape() return None.
    """

    def __init__(self, shapes: Iterable[Shape] = ()):
        self._shapes: Dict[str, Shape] = {}
        self._subscribers: Dict[str, List[ShapeCallback]] = {}
        for shape in shapes:
            self.add_shape(shape)

    def __contains__(self, shape_id: str) -> bool:
        return shape_id in self._shapes

    def __len__(self) -> int:
        return len(self._shapes)

    def list_shapes(self) -> List[Shape]:
        return list(self._shapes.values())

    def get_shape(self, shape_id: str) -> Optional[Shape]:
        return self._shapes.get(shape_id)

    def add_shape(self, shape: Shape) -> Shape:
        if shape.id in self._shapes:
            raise ValueError(f"Shape '{shape.id}' already exists")
        self._shapes[shape.id] = shape
        return shape

    def update_shape(self, shape_id: str, **attrs) -> Shape:
        """
        Update bounding box attributes (left, top, width, height) or geometry

        Raises:
            KeyError: If the shape does not exist
        """
        shape = self._shapes[shape_id]
        for name, value in attrs.items():
            if name not in ('left', 'top', 'width', 'height', 'geometry'):
                raise AttributeError(f"Cannot update shape attribute '{name}'")
            setattr(shape, name, value)
        self.notify(shape_id)
        return shape

    def translate_shape(self, shape_id: str, dx: float, dy: float) -> None:
        self._shapes[shape_id].translate(dx, dy)
        self.notify(shape_id)

    def remove_shape(self, shape_id: str) -> Optional[Shape]:
        """Delete a shape and fire its change signal so subscribers can clean up"""
        shape = self._shapes.pop(shape_id, None)
        if shape is not None:
            self.notify(shape_id)
            self._subscribers.pop(shape_id, None)
        return shape

    def subscribe(self, shape_id: str, callback: ShapeCallback) -> None:
        callbacks = self._subscribers.setdefault(shape_id, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self, shape_id: str, callback: ShapeCallback) -> None:
        callbacks = self._subscribers.get(shape_id)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)
            if not callbacks:
                del self._subscribers[shape_id]

    def subscriber_count(self, shape_id: str) -> int:
        return len(self._subscribers.get(shape_id, []))

    def notify(self, shape_id: str) -> None:
        """Fire the change signal for one shape"""
        # Callbacks may unsubscribe while we iterate
        for callback in list(self._subscribers.get(shape_id, [])):
            callback(shape_id)
