"""
CLI utilities for the diagram-connectors command
"""

from .argument_parser import setup_argument_parser
from .scene import load_scene, populate_manager
from .output import format_renders

__all__ = [
    'setup_argument_parser',
    'load_scene',
    'populate_manager',
    'format_renders',
]
