"""
Lyrion MPRIS Bridge Configuration System.

Priority order (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Configuration file (YAML)
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


# Valid URL schemes for the LMS server
VALID_SCHEMES = {"http", "https"}

# Valid shuffle preference names
VALID_SHUFFLE_MODES = {"track", "album"}

# Valid log levels
VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}

# Minimum poll interval in seconds
MIN_POLL_INTERVAL = 1

# Environment variable mappings
ENV_MAPPINGS = {
    # Server
    "LYRION_SERVER_SCHEME": ("server", "scheme"),
    "LYRION_SERVER_ADDRESS": ("server", "address"),
    "LYRION_SERVER_PORT": ("server", "port"),
    "LYRION_SERVER_USERNAME": ("server", "username"),
    "LYRION_SERVER_PASSWORD": ("server", "password"),
    # Player
    "LYRION_PLAYER_ID": ("player", "id"),
    "LYRION_POLL_INTERVAL": ("player", "poll_interval"),
    "LYRION_SHUFFLE_MODE": ("player", "shuffle_mode"),
    # Artwork
    "LYRION_ALLOW_ARTWORK_CREDENTIALS": ("artwork", "allow_credentials"),
    # Logging
    "LYRION_LOG_LEVEL": ("logging", "level"),
}

_INT_ENV_VARS = ("LYRION_SERVER_PORT", "LYRION_POLL_INTERVAL")
_BOOL_ENV_VARS = ("LYRION_ALLOW_ARTWORK_CREDENTIALS",)


class ConfigError(Exception):
    """Configuration error."""

    pass


class ShuffleMode(IntEnum):
    """
    LMS shuffle modes.

    Values match the `playlist shuffle` command argument.
    """

    OFF = 0
    BY_TRACK = 1
    BY_ALBUM = 2


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable connection snapshot used by one poll cycle.

    Replaced wholesale whenever the configuration changes.
    """

    scheme: str = "http"
    host: str = ""
    port: int = 9000
    player_id: str = ""
    username: str = ""
    password: str = ""
    poll_interval: int = 5
    shuffle_mode: ShuffleMode = ShuffleMode.BY_TRACK
    allow_artwork_credentials: bool = False

    @property
    def is_usable(self) -> bool:
        """Check if there is enough information to talk to a player."""
        return bool(self.host and self.player_id)

    @property
    def has_credentials(self) -> bool:
        """Check if a username or password is configured."""
        return bool(self.username or self.password)

    @property
    def base_url(self) -> str:
        """Server base URL without credentials."""
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def control_url(self) -> str:
        """JSON-RPC control endpoint."""
        return f"{self.base_url}/jsonrpc.js"


@dataclass
class ServerConfig:
    """LMS server configuration."""

    scheme: str = "http"
    address: str = ""
    port: int = 9000
    username: str = ""
    password: str = ""


@dataclass
class PlayerConfig:
    """Target player configuration."""

    id: str = ""
    poll_interval: int = 5
    shuffle_mode: str = "track"  # "track" or "album"


@dataclass
class ArtworkConfig:
    """Artwork URL configuration."""

    # Embed server credentials in artwork URLs (they become visible to
    # whoever reads the exported metadata)
    allow_credentials: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class Config:
    """Complete bridge configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    artwork: ArtworkConfig = field(default_factory=ArtworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def connection(self) -> ConnectionConfig:
        """Build the immutable connection snapshot from this configuration."""
        shuffle_mode = (
            ShuffleMode.BY_ALBUM
            if self.player.shuffle_mode.lower() == "album"
            else ShuffleMode.BY_TRACK
        )
        return ConnectionConfig(
            scheme=self.server.scheme.lower(),
            host=self.server.address.strip(),
            port=self.server.port,
            player_id=self.player.id.strip(),
            username=self.server.username,
            password=self.server.password,
            poll_interval=max(MIN_POLL_INTERVAL, self.player.poll_interval),
            shuffle_mode=shuffle_mode,
            allow_artwork_credentials=self.artwork.allow_credentials,
        )


def validate_port(port: int) -> bool:
    """Validate port number."""
    return 1 <= port <= 65535


def validate_config(config: Config) -> None:
    """
    Validate configuration.

    A missing server address or player id is not an error: the bridge runs
    and reports a disconnected player until both are configured.

    Raises:
        ConfigError: If configuration is invalid
    """
    errors = []

    # Server
    if config.server.scheme.lower() not in VALID_SCHEMES:
        errors.append(
            f"Invalid server scheme: {config.server.scheme}. "
            f"Valid values: {sorted(VALID_SCHEMES)}"
        )
    if not isinstance(config.server.port, int) or not validate_port(config.server.port):
        errors.append(f"Invalid server port: {config.server.port}")
    if ":" in config.server.username:
        errors.append("Server username must not contain ':'")

    # Player
    if (
        not isinstance(config.player.poll_interval, int)
        or config.player.poll_interval < MIN_POLL_INTERVAL
    ):
        errors.append(
            f"Invalid poll_interval: {config.player.poll_interval}. "
            f"Must be an integer >= {MIN_POLL_INTERVAL}"
        )
    if config.player.shuffle_mode.lower() not in VALID_SHUFFLE_MODES:
        errors.append(
            f"Invalid shuffle_mode: {config.player.shuffle_mode}. "
            f"Valid values: {sorted(VALID_SHUFFLE_MODES)}"
        )

    # Logging
    if config.logging.level.lower() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid log level: {config.logging.level}. "
            f"Valid values: {sorted(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))


def load_yaml_config(path: Path) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
            return data if data else {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config: {e}")
    except IOError as e:
        raise ConfigError(f"Error reading config file: {e}")


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value using a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def load_env_config() -> dict:
    """
    Load configuration from environment variables.

    Returns:
        Configuration dictionary with values from environment
    """
    result: dict = {}

    for env_var, path in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        if env_var in _INT_ENV_VARS:
            try:
                value = int(value)
            except ValueError:
                logger.warning(f"Invalid integer for {env_var}: {value}")
                continue
        elif env_var in _BOOL_ENV_VARS:
            value = value.lower() in ("true", "1", "yes", "on")

        _set_nested(result, path, value)

    return result


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def merge_configs(*configs: dict) -> dict:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result: dict = {}
    for config in configs:
        _deep_merge(result, config)
    return result


def dict_to_config(d: dict) -> Config:
    """Convert a dictionary to Config dataclass."""
    config = Config()

    # Server
    if "server" in d:
        s = d["server"] or {}
        config.server.scheme = str(s.get("scheme", config.server.scheme))
        config.server.address = str(s.get("address", config.server.address) or "")
        config.server.port = s.get("port", config.server.port)
        config.server.username = str(s.get("username", config.server.username) or "")
        config.server.password = str(s.get("password", config.server.password) or "")

    # Player
    if "player" in d:
        p = d["player"] or {}
        config.player.id = str(p.get("id", config.player.id) or "")
        config.player.poll_interval = p.get("poll_interval", config.player.poll_interval)
        shuffle_mode = p.get("shuffle_mode", config.player.shuffle_mode)
        # Accept the LMS numeric codes as well as names
        if shuffle_mode == ShuffleMode.BY_ALBUM:
            shuffle_mode = "album"
        elif shuffle_mode == ShuffleMode.BY_TRACK:
            shuffle_mode = "track"
        config.player.shuffle_mode = str(shuffle_mode)

    # Artwork
    if "artwork" in d:
        a = d["artwork"] or {}
        config.artwork.allow_credentials = bool(
            a.get("allow_credentials", config.artwork.allow_credentials)
        )

    # Logging
    if "logging" in d:
        config.logging.level = str((d["logging"] or {}).get("level", config.logging.level))

    return config


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict] = None,
) -> Config:
    """
    Load configuration from all sources.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults

    Args:
        config_path: Path to YAML config file
        cli_args: Dictionary of CLI arguments

    Returns:
        Merged Config object

    Raises:
        ConfigError: If configuration is invalid
    """
    configs = []

    # 1. Load from file (lowest priority of explicit configs)
    if config_path:
        file_config = load_yaml_config(config_path)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_path}")

    # 2. Load from environment
    env_config = load_env_config()
    if env_config:
        configs.append(env_config)
        logger.debug("Loaded config from environment variables")

    # 3. Load from CLI (highest priority)
    if cli_args:
        configs.append(cli_args)
        logger.debug("Loaded config from CLI arguments")

    merged = merge_configs(*configs) if configs else {}

    # Convert to Config object (fills in defaults)
    config = dict_to_config(merged)

    validate_config(config)

    return config
