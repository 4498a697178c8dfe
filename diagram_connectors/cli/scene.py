"""
Scene files: shapes plus connectors, in YAML or JSON
"""

from typing import Any, Dict, List, Tuple, Union
from pathlib import Path
import json
import logging

import yaml

from ..core.exceptions import InvalidConnectorError
from ..core.geometry import Shape
from ..core.manager import ConnectionManager

logger = logging.getLogger(__name__)


def load_scene(scene_path: Union[str, Path]) -> Tuple[List[Shape], List[Dict[str, Any]]]:
    """
    Read a scene file

    Args:
        scene_path: .json files are parsed as JSON, anything else as YAML

    Returns:
        Tuple of (shapes, connector entries)

    Raises:
        FileNotFoundError: If the scene file does not exist
        InvalidConnectorError: If the file is not a valid scene
    """
    scene_path = Path(scene_path)
    if not scene_path.exists():
        raise FileNotFoundError(f"Scene file not found: {scene_path}")

    with open(scene_path, 'r', encoding='utf-8') as f:
        try:
            if scene_path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise InvalidConnectorError(f"Failed to parse scene file: {str(e)}") from e

    if not isinstance(data, dict):
        raise InvalidConnectorError("Scene root must be a mapping with 'shapes' and 'connectors'")

    try:
        shapes = [Shape.from_dict(entry) for entry in data.get('shapes') or []]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidConnectorError(f"Invalid shape in scene: {str(e)}") from e

    connectors = data.get('connectors') or []
    if not isinstance(connectors, list):
        raise InvalidConnectorError("Scene 'connectors' must be a list")

    return shapes, connectors


def populate_manager(manager: ConnectionManager, entries: List[Dict[str, Any]]) -> int:
    """
    Add scene connectors to a manager

    Full records (with fromPoint/toPoint) are loaded as saved; short entries
    ({from, to, ...style}) are created with automatically chosen sides.

    Returns:
        Number of connectors in the manager afterwards
    """
    records = [entry for entry in entries if 'fromPoint' in entry]
    manager.deserialize(records)

    for entry in entries:
        if 'fromPoint' in entry:
            continue
        style = {k: v for k, v in entry.items() if k not in ('from', 'to')}
        connector = manager.create_connector(str(entry.get('from', '')), str(entry.get('to', '')), **style)
        if connector is None:
            logger.warning(f"Skipping connector {entry.get('from')!r} -> {entry.get('to')!r}")

    return len(manager)
