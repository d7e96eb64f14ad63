"""
Lyrion Music Server protocol types, constants and errors.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# https://lyrion.org/reference/cli/playlist/#mode
LMS_MODE_PLAY = "play"
LMS_MODE_STOP = "stop"
LMS_MODE_PAUSE = "pause"

# https://lyrion.org/reference/cli/playlist/#playlist-repeat
LMS_REPEAT_OFF = 0
LMS_REPEAT_TRACK = 1
LMS_REPEAT_PLAYLIST = 2

# Status tags: a=artist, l=album, c=cover id, o=track URL, J=artwork URL,
# t=title, j=artwork track id, d=duration
STATUS_TAGS = "tags:alcoJtjd"
STATUS_REQUEST: list[Any] = ["status", "-", 1, STATUS_TAGS]

# Player enumeration page size
MAX_PLAYERS = 200


class LmsError(Exception):
    """Base class for LMS protocol errors."""

    pass


class NetworkError(LmsError):
    """Transport-level failure (connection refused, timeout, aborted)."""

    pass


class HttpStatusError(LmsError):
    """Server answered with a non-success HTTP status."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"LMS HTTP {status}")
        self.status = status
        self.body = body


class EmptyResponseError(LmsError):
    """Server answered with an empty body."""

    def __init__(self) -> None:
        super().__init__("Empty LMS response")


class ProtocolError(LmsError):
    """Server reported an error envelope."""

    def __init__(self, message: str, code: Optional[Any] = None):
        text = f"LMS error {code}: {message}" if code is not None else f"LMS error: {message}"
        super().__init__(text)
        self.code = code
        self.message = message


class MalformedResponseError(LmsError):
    """Body is not JSON or carries no result."""

    pass


@dataclass
class PlayerInfo:
    """A player known to the server."""

    id: str
    name: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name}


@dataclass
class RawStatus:
    """
    Literal `result` object of a `status` request.

    Only used as input to the state mapper; discarded afterwards.
    """

    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def track(self) -> Optional[dict[str, Any]]:
        """Current track block (first entry of `playlist_loop`)."""
        loop = self.payload.get("playlist_loop")
        if isinstance(loop, list) and loop and isinstance(loop[0], dict):
            return loop[0]
        return None

    @property
    def remote_meta(self) -> Optional[dict[str, Any]]:
        """Remote stream metadata block, if any."""
        meta = self.payload.get("remoteMeta")
        return meta if isinstance(meta, dict) else None

    @property
    def mode(self) -> Optional[str]:
        """Playback mode string (play/pause/stop)."""
        mode = self.payload.get("mode")
        return mode if isinstance(mode, str) else None

    def get(self, key: str, default: Any = None) -> Any:
        """Read a top-level status field."""
        return self.payload.get(key, default)
