"""Lyrion Music Server JSON-RPC client module."""

from .artwork import resolve_artwork_url
from .client import LmsClient, get_player_name
from .transport import AiohttpTransport, HttpTransport
from .types import (
    STATUS_REQUEST,
    EmptyResponseError,
    HttpStatusError,
    LmsError,
    MalformedResponseError,
    NetworkError,
    PlayerInfo,
    ProtocolError,
    RawStatus,
)

__all__ = [
    # Client
    "LmsClient",
    "get_player_name",
    "resolve_artwork_url",
    # Transport
    "AiohttpTransport",
    "HttpTransport",
    # Types
    "PlayerInfo",
    "RawStatus",
    "STATUS_REQUEST",
    # Errors
    "EmptyResponseError",
    "HttpStatusError",
    "LmsError",
    "MalformedResponseError",
    "NetworkError",
    "ProtocolError",
]
