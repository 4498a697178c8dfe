"""
Command-line argument parser configuration with subcommands
"""

import argparse


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure and return the argument parser with subcommands (route)

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='diagram-connectors',
        description='Route diagram connectors between shapes',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  diagram-connectors route scene.yaml                      # Print routed connectors as JSON
  diagram-connectors route scene.json --format svg-paths   # One SVG path per connector
  diagram-connectors route scene.yaml --config engine.yaml # Custom routing parameters
  diagram-connectors route scene.yaml --log-level DEBUG    # Show routing decisions
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        help='Command to execute'
    )

    # ========================================================================
    # ROUTE SUBCOMMAND
    # ========================================================================
    route_parser = subparsers.add_parser(
        'route',
        help='Route every connector of a scene file',
        description='Load shapes and connectors from a YAML or JSON scene and print the routed paths'
    )

    route_parser.add_argument(
        'scene_file',
        help='Path to the scene file (YAML or JSON)'
    )

    route_parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to an engine configuration YAML file'
    )

    route_parser.add_argument(
        '--format', '-f',
        choices=['json', 'svg-paths'],
        default='json',
        help='Output format (default: json)'
    )

    route_parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Set logging level (default: WARNING). Use DEBUG to see routing decisions.'
    )

    return parser
