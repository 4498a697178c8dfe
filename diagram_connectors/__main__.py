"""
Command-line entry point
Usage: diagram-connectors route SCENE [--config FILE] [--format json|svg-paths]
"""

import sys
import logging
from typing import List, Optional

from .cli import setup_argument_parser, load_scene, populate_manager, format_renders
from .core.config import EngineConfig
from .core.exceptions import ConnectorError
from .core.manager import ConnectionManager
from .core.notifier import InMemoryShapeStore


def setup_logging(log_level: str = 'WARNING') -> None:
    """
    Configure console logging on stderr, keeping stdout for results

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)


def run_route_command(scene_file: str, config_file: Optional[str], output_format: str) -> str:
    """
    Load a scene, route its connectors and format the result

    Raises:
        FileNotFoundError: If the scene or config file is missing
        ConnectorError: If the scene or config is invalid
    """
    logger = logging.getLogger(__name__)

    config = EngineConfig.from_yaml(config_file) if config_file else EngineConfig()
    shapes, entries = load_scene(scene_file)
    logger.info(f"Loaded {len(shapes)} shapes and {len(entries)} connector entries from {scene_file}")

    manager = ConnectionManager(InMemoryShapeStore(shapes), config)
    populate_manager(manager, entries)

    return format_renders(manager.render_all(), output_format)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the diagram-connectors CLI"""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    try:
        output = run_route_command(args.scene_file, args.config, args.format)
    except (FileNotFoundError, ConnectorError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
