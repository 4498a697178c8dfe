"""
Output formatting for routed connectors
"""

from typing import List
import json

from ..core.models import ConnectorRender


def format_renders(renders: List[ConnectorRender], output_format: str = 'json') -> str:
    """
    Format routed connectors for printing

    Args:
        renders: Render output of the connection manager
        output_format: 'json' or 'svg-paths'

    Returns:
        Text ready to print
    """
    if output_format == 'svg-paths':
        return "\n".join(f"{render.connector_id}\t{render.svg_path}" for render in renders)

    return json.dumps({'connectors': [render.to_dict() for render in renders]}, indent=2)
