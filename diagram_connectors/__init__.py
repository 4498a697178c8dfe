"""
Diagram Connectors - connection points and orthogonal routing for diagram editors
Keeps connectors attached, straight and clear of other shapes as shapes move
"""

from importlib.metadata import version, PackageNotFoundError

from .core.config import EngineConfig
from .core.geometry import Shape, Rectangle, Ellipse, Polygon
from .core.manager import ConnectionManager
from .core.models import ConnectionPoint, Connector, RoutedPath
from .core.notifier import InMemoryShapeStore

try:
    __version__ = version("diagram-connectors")
except PackageNotFoundError:
    # Package not installed (development mode)
    __version__ = "0.0.0.dev"

__all__ = [
    "ConnectionManager",
    "EngineConfig",
    "InMemoryShapeStore",
    "Shape",
    "Rectangle",
    "Ellipse",
    "Polygon",
    "ConnectionPoint",
    "Connector",
    "RoutedPath",
]
