"""
Lyrion MPRIS Bridge CLI entry point.

Provides command-line interface for running the bridge and listing players.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from lyrion_mpris import __version__
from lyrion_mpris.app import LyrionMprisBridge
from lyrion_mpris.config import Config, ConfigError, load_config
from lyrion_mpris.lms import LmsClient, LmsError

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_NETWORK_ERROR = 3


def setup_logging(level: str = "info") -> None:
    """Configure logging to stdout."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="lyrion-mpris",
        description="Export a Lyrion Music Server player as an MPRIS media player",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lyrion-mpris --server 192.168.1.10 --list-players
  lyrion-mpris --server 192.168.1.10 --list-players --json
  lyrion-mpris --config config.yaml
  lyrion-mpris --server lms.local --player aa:bb:cc:dd:ee:ff --poll-interval 2

Environment Variables:
  LYRION_SERVER_SCHEME, LYRION_SERVER_ADDRESS, LYRION_SERVER_PORT
  LYRION_SERVER_USERNAME, LYRION_SERVER_PASSWORD
  LYRION_PLAYER_ID, LYRION_POLL_INTERVAL, LYRION_SHUFFLE_MODE
  LYRION_ALLOW_ARTWORK_CREDENTIALS, LYRION_LOG_LEVEL
""",
    )

    # General
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Player discovery
    parser.add_argument(
        "--list-players",
        action="store_true",
        help="List players known to the server and exit",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON (used with --list-players)",
    )

    # Configuration
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("./config.yaml"),
        metavar="PATH",
        help="Path to config file (default: ./config.yaml)",
    )

    # Server
    server_group = parser.add_argument_group("Server")
    server_group.add_argument(
        "--scheme",
        choices=["http", "https"],
        help="Server URL scheme (default: http)",
    )
    server_group.add_argument(
        "--server",
        metavar="HOST",
        help="Server address",
    )
    server_group.add_argument(
        "--port",
        type=int,
        metavar="INT",
        help="Server port (default: 9000)",
    )
    server_group.add_argument(
        "--username",
        metavar="TEXT",
        help="Server username",
    )
    server_group.add_argument(
        "--password",
        metavar="TEXT",
        help="Server password",
    )

    # Player
    player_group = parser.add_argument_group("Player")
    player_group.add_argument(
        "--player",
        metavar="ID",
        help="Player id (MAC address) to follow",
    )
    player_group.add_argument(
        "--poll-interval",
        type=int,
        metavar="SECONDS",
        help="Status poll interval in seconds (default: 5)",
    )
    player_group.add_argument(
        "--shuffle-mode",
        choices=["track", "album"],
        help="Shuffle granularity used when shuffle is turned on (default: track)",
    )

    # Artwork
    parser.add_argument(
        "--artwork-credentials",
        action="store_true",
        help="Embed server credentials in artwork URLs",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        metavar="LEVEL",
        help="Log level: debug, info, warning, error",
    )

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def args_to_dict(args: argparse.Namespace) -> dict:
    """Convert argparse namespace to nested config dict."""
    result: dict = {}

    # Map CLI args to config paths
    mappings = {
        "scheme": ("server", "scheme"),
        "server": ("server", "address"),
        "port": ("server", "port"),
        "username": ("server", "username"),
        "password": ("server", "password"),
        "player": ("player", "id"),
        "poll_interval": ("player", "poll_interval"),
        "shuffle_mode": ("player", "shuffle_mode"),
        "artwork_credentials": ("artwork", "allow_credentials"),
        "log_level": ("logging", "level"),
    }

    for arg_name, path in mappings.items():
        value = getattr(args, arg_name, None)
        if value is None:
            continue
        # Flags only override when explicitly set
        if arg_name == "artwork_credentials" and not value:
            continue
        _set_nested(result, path, value)

    return result


def log_config(config: Config) -> None:
    """Log configuration summary (without credentials)."""
    connection = config.connection()
    logger.info(f"Server: {connection.base_url if connection.host else '(not configured)'}")
    logger.info(f"Player: {connection.player_id or '(not configured)'}")
    logger.info(f"Poll interval: {connection.poll_interval}s")
    if connection.has_credentials:
        logger.info(f"Authentication: enabled (user {connection.username or '(none)'})")
    if connection.allow_artwork_credentials:
        logger.info("Artwork URLs: credentials embedded")


async def run_list_players(config: Config, json_output: bool) -> int:
    """
    List players known to the server.

    Args:
        config: Loaded configuration (server section is used)
        json_output: Output as JSON if True

    Returns:
        Exit code
    """
    connection = config.connection()
    if not connection.host:
        logger.error("No server address configured (use --server or LYRION_SERVER_ADDRESS)")
        return EXIT_CONFIG_ERROR

    client = LmsClient()
    try:
        players = await client.list_players(connection)
    except LmsError as e:
        logger.error(f"Failed to list players from {connection.base_url}: {e}")
        return EXIT_NETWORK_ERROR
    finally:
        await client.close()

    if json_output:
        output = {
            "players": [p.to_dict() for p in players],
            "count": len(players),
        }
        print(json.dumps(output, indent=2))
        return EXIT_SUCCESS

    if not players:
        print(f"\nNo players found on {connection.base_url}.")
        return EXIT_SUCCESS

    print(f"\nFound {len(players)} player(s) on {connection.base_url}:\n")
    for p in players:
        print(f"  {p.name or '(unnamed)'}")
        print(f"    ID: {p.id}")
        print()

    # Show config example using first player
    first = players[0]
    print("Config example (add to config.yaml):")
    print("  player:")
    print(f'    id: "{first.id}"')

    return EXIT_SUCCESS


def run_bridge(config: Config, args: argparse.Namespace, cli_config: dict) -> int:
    """
    Run the bridge until interrupted.

    Returns:
        Exit code
    """
    try:
        app = LyrionMprisBridge(config, config_path=args.config, cli_args=cli_config)
        asyncio.run(app.run())
        return EXIT_SUCCESS

    except (ConnectionError, OSError) as e:
        logger.error(f"Network error: {e}")
        return EXIT_NETWORK_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS

    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return EXIT_NETWORK_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0=success, 1=config error, 3=network error
    """
    args = parse_args(argv)

    # Setup basic logging first (will be reconfigured after config load)
    setup_logging("info")

    try:
        cli_config = args_to_dict(args)
        config = load_config(args.config, cli_config)
        setup_logging(config.logging.level)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    if args.list_players:
        return asyncio.run(run_list_players(config, args.json_output))

    logger.info(f"Lyrion MPRIS bridge v{__version__}")
    log_config(config)
    return run_bridge(config, args, cli_config)


if __name__ == "__main__":
    sys.exit(main())
