"""
LMS status -> MPRIS state mapping.

Pure functions: no I/O, no clock, no mutation of the inputs. The same server
field shows up under several spellings depending on the LMS version and
endpoint, so every lookup goes through an explicit, ordered alias table.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from lyrion_mpris.config import ConnectionConfig
from lyrion_mpris.lms.artwork import resolve_artwork_url
from lyrion_mpris.lms.client import get_player_name
from lyrion_mpris.lms.types import (
    LMS_MODE_PAUSE,
    LMS_MODE_PLAY,
    LMS_REPEAT_OFF,
    LMS_REPEAT_PLAYLIST,
    LMS_REPEAT_TRACK,
    RawStatus,
)

from .types import (
    NO_TRACK_ID,
    TRACK_ID_PREFIX,
    LoopStatus,
    PlaybackStatus,
    TrackMetadata,
    seconds_to_us,
)

# Source names for alias tables
TRACK = "track"
STATUS = "status"
REMOTE = "remote"

# Ordered (source, field) lookups; first usable value wins
DURATION_FIELDS = (
    (TRACK, "duration"),
    (STATUS, "duration"),
    (REMOTE, "duration"),
    (STATUS, "playlist_duration"),
    (STATUS, "playlistDuration"),
    (STATUS, "playlist duration"),
)
SHUFFLE_FIELDS = (
    (STATUS, "playlist shuffle"),
    (STATUS, "playlist_shuffle"),
    (STATUS, "playlistShuffle"),
)
REPEAT_FIELDS = (
    (STATUS, "playlist repeat"),
    (STATUS, "playlist_repeat"),
    (STATUS, "playlistRepeat"),
)
VOLUME_FIELDS = (
    (STATUS, "mixer.volume"),
    (STATUS, "mixer volume"),
    (STATUS, "volume"),
)
TRACK_ID_FIELDS = (
    (TRACK, "id"),
    (STATUS, "id"),
)
TITLE_FIELDS = ((TRACK, "title"), (REMOTE, "title"), (STATUS, "title"))
ARTIST_FIELDS = ((TRACK, "artist"), (REMOTE, "artist"), (STATUS, "artist"))
ALBUM_FIELDS = ((TRACK, "album"), (REMOTE, "album"), (STATUS, "album"))

PLAYBACK_STATUS_BY_MODE = {
    LMS_MODE_PLAY: PlaybackStatus.PLAYING,
    LMS_MODE_PAUSE: PlaybackStatus.PAUSED,
}
LOOP_STATUS_BY_REPEAT = {
    LMS_REPEAT_OFF: LoopStatus.NONE,
    LMS_REPEAT_TRACK: LoopStatus.TRACK,
    LMS_REPEAT_PLAYLIST: LoopStatus.PLAYLIST,
}

UNKNOWN_TITLE = "Unknown track"
UNKNOWN_ARTIST = "Unknown artist"

_INVALID_TRACK_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class MappedStatus:
    """Normalized view of one status poll."""

    playback_status: PlaybackStatus
    metadata: TrackMetadata
    position_us: int
    loop_status: LoopStatus
    shuffle: bool
    volume: Optional[float]  # None: unknown, keep the previous value
    can_seek: bool
    identity: Optional[str]  # None: server didn't report a name

    @property
    def duration_us(self) -> Optional[int]:
        return self.metadata.length_us


class StatusSources:
    """Named lookup over the three blocks a status payload carries."""

    def __init__(self, status: RawStatus):
        self._sources: dict[str, Mapping[str, Any]] = {
            TRACK: status.track or {},
            STATUS: status.payload,
            REMOTE: status.remote_meta or {},
        }

    def lookup(self, source: str, name: str) -> Any:
        block = self._sources[source]
        # Dotted names address nested objects (mixer.volume)
        if "." in name:
            head, tail = name.split(".", 1)
            nested = block.get(head)
            return nested.get(tail) if isinstance(nested, Mapping) else None
        return block.get(name)

    def values(self, fields: tuple[tuple[str, str], ...]) -> list[Any]:
        """All present values for `fields`, in precedence order."""
        found = []
        for source, name in fields:
            value = self.lookup(source, name)
            if value is not None:
                found.append(value)
        return found


def parse_number(value: Any) -> Optional[float]:
    """Parse an LMS numeric field (number or numeric string)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _first_number(sources: StatusSources, fields: tuple[tuple[str, str], ...]) -> Optional[float]:
    for value in sources.values(fields):
        number = parse_number(value)
        if number is not None:
            return number
    return None


def _first_text(sources: StatusSources, fields: tuple[tuple[str, str], ...]) -> Optional[str]:
    for value in sources.values(fields):
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value).strip()
            if text:
                return text
    return None


# =========================================================================
# Field mappings
# =========================================================================


def map_playback_status(mode: Optional[str]) -> PlaybackStatus:
    """LMS mode -> MPRIS PlaybackStatus; anything unknown is Stopped."""
    return PLAYBACK_STATUS_BY_MODE.get(mode or "", PlaybackStatus.STOPPED)


def map_loop_status(repeat: Optional[float]) -> LoopStatus:
    """LMS repeat code -> MPRIS LoopStatus; unknown codes map to None."""
    if repeat is None or repeat != int(repeat):
        return LoopStatus.NONE
    return LOOP_STATUS_BY_REPEAT.get(int(repeat), LoopStatus.NONE)


def map_shuffle(shuffle: Optional[float]) -> bool:
    """Any non-zero LMS shuffle mode (by track or by album) is shuffle on."""
    return shuffle is not None and shuffle != 0


def map_volume(volume_percent: Optional[float]) -> Optional[float]:
    """Clamp an LMS volume percent and scale to [0, 1]."""
    if volume_percent is None:
        return None
    return max(0.0, min(100.0, volume_percent)) / 100


def map_duration(sources: StatusSources) -> Optional[float]:
    """First finite, positive duration in seconds; None for streams/unknown."""
    for value in sources.values(DURATION_FIELDS):
        number = parse_number(value)
        if number is not None and number > 0:
            return number
    return None


def sanitize_track_id(raw_id: Any) -> str:
    """Replace everything outside [A-Za-z0-9_] with underscores."""
    return _INVALID_TRACK_ID_CHARS.sub("_", str(raw_id))


def build_track_id(raw_id: Optional[Any]) -> str:
    """Build the MPRIS track object path for a server track id."""
    if raw_id is None or raw_id == "":
        return f"{TRACK_ID_PREFIX}0"
    return f"{TRACK_ID_PREFIX}{sanitize_track_id(raw_id)}"


def correct_position(position_us: int, status: PlaybackStatus, can_seek: bool) -> int:
    """
    Avoid reporting exactly zero while playing.

    Some consumers treat position 0 as "not progressing" and hide the
    progress bar; a 1us position keeps them extrapolating.
    """
    position_us = max(0, position_us)
    if status == PlaybackStatus.PLAYING and can_seek and position_us <= 0:
        return 1
    return position_us


# =========================================================================
# Status mapping
# =========================================================================


def map_status(status: RawStatus, config: ConnectionConfig) -> MappedStatus:
    """
    Map a raw status payload to normalized MPRIS state.

    Args:
        status: Raw `status` result
        config: Connection snapshot (artwork URLs, player id)

    Returns:
        MappedStatus
    """
    sources = StatusSources(status)
    track = status.track
    remote_meta = status.remote_meta
    has_track = track is not None or remote_meta is not None

    playback_status = map_playback_status(status.mode)

    duration_s = map_duration(sources)
    can_seek = duration_s is not None
    length_us = seconds_to_us(duration_s) if duration_s is not None else None

    if has_track:
        raw_id = next(iter(sources.values(TRACK_ID_FIELDS)), None)
        metadata = TrackMetadata(
            track_id=build_track_id(raw_id),
            title=_first_text(sources, TITLE_FIELDS) or UNKNOWN_TITLE,
            artist=_first_text(sources, ARTIST_FIELDS) or UNKNOWN_ARTIST,
            album=_first_text(sources, ALBUM_FIELDS),
            art_url=resolve_artwork_url(track, remote_meta, status.payload, config),
            length_us=length_us,
        )
    else:
        metadata = TrackMetadata(track_id=NO_TRACK_ID, length_us=length_us)

    position_s = parse_number(status.get("time"))
    position_us = seconds_to_us(position_s) if position_s is not None else 0

    return MappedStatus(
        playback_status=playback_status,
        metadata=metadata,
        position_us=correct_position(position_us, playback_status, can_seek),
        loop_status=map_loop_status(_first_number(sources, REPEAT_FIELDS)),
        shuffle=map_shuffle(_first_number(sources, SHUFFLE_FIELDS)),
        volume=map_volume(_first_number(sources, VOLUME_FIELDS)),
        can_seek=can_seek,
        identity=get_player_name(status.payload),
    )
