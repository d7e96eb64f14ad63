"""
Lyrion MPRIS Bridge - Lyrion Music Server now-playing over MPRIS.

Polls a Lyrion Music Server player and exports its state as an MPRIS media
player, relaying transport controls back to the server.
"""

__version__ = "0.1.0"

from .app import LyrionMprisBridge
from .config import Config, ConfigError, load_config

__all__ = [
    "__version__",
    "LyrionMprisBridge",
    "Config",
    "load_config",
    "ConfigError",
]
