"""
Shared pytest fixtures and utilities for testing
"""

import pytest

from diagram_connectors.core.config import EngineConfig
from diagram_connectors.core.geometry import Shape, geometry_from_dict
from diagram_connectors.core.manager import ConnectionManager
from diagram_connectors.core.notifier import InMemoryShapeStore


def make_shape(shape_id, left, top, width=100, height=100, kind='rectangle'):
    """Build a shape from a bounding box and a geometry kind name"""
    return Shape(shape_id, left, top, width, height, geometry_from_dict({'kind': kind}))


@pytest.fixture
def aligned_store():
    """Two boxes side by side, 10 units out of vertical alignment"""
    return InMemoryShapeStore([
        make_shape('a', 0, 0),
        make_shape('b', 300, 10),
    ])


@pytest.fixture
def offset_store():
    """Two boxes far enough apart vertically to need a three-segment route"""
    return InMemoryShapeStore([
        make_shape('a', 0, 0),
        make_shape('b', 300, 200),
    ])


@pytest.fixture
def manager_factory():
    """Create a ConnectionManager for a store, optionally with config overrides"""
    def _create(store, **config):
        return ConnectionManager(store, EngineConfig(config) if config else None)
    return _create


# Helper functions for assertions
def assert_orthogonal(points, tolerance=1e-6):
    """Every segment must be horizontal or vertical"""
    for i in range(len(points) - 1):
        (x1, y1), (x2, y2) = points[i], points[i + 1]
        assert abs(x1 - x2) <= tolerance or abs(y1 - y2) <= tolerance, \
            f"Segment {i} {points[i]} -> {points[i + 1]} is diagonal"


def assert_alternating(points):
    """Adjacent segments must switch between horizontal and vertical"""
    orientations = []
    for i in range(len(points) - 1):
        (x1, y1), (x2, y2) = points[i], points[i + 1]
        orientations.append('h' if abs(y1 - y2) < 1e-9 else 'v')
    for i in range(len(orientations) - 1):
        assert orientations[i] != orientations[i + 1], f"Segments {i} and {i + 1} share orientation in {points}"


def assert_points_equal(actual, expected, tolerance=1e-9):
    assert len(actual) == len(expected), f"Expected {expected}, got {actual}"
    for a, e in zip(actual, expected):
        assert a == pytest.approx(e, abs=tolerance), f"Expected {expected}, got {actual}"
