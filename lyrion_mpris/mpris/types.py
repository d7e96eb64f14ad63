"""
MPRIS types and enumerations.

https://specifications.freedesktop.org/mpris/latest/
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .clock import PositionClock

MPRIS_ROOT_INTERFACE = "org.mpris.MediaPlayer2"
MPRIS_PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
MPRIS_OBJECT_PATH = "/org/mpris/MediaPlayer2"

TRACK_ID_PREFIX = "/org/mpris/MediaPlayer2/Track/"
# Reserved by MPRIS; never produced from a server track id
NO_TRACK_ID = "/org/mpris/MediaPlayer2/TrackList/NoTrack"

DEFAULT_IDENTITY = "Lyrion Now Playing"

MICROSECONDS_PER_SECOND = 1_000_000


class PlaybackStatus(str, Enum):
    """MPRIS Playback_Status."""

    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


class LoopStatus(str, Enum):
    """MPRIS Loop_Status."""

    NONE = "None"
    TRACK = "Track"
    PLAYLIST = "Playlist"


def seconds_to_us(seconds: float) -> int:
    """Convert seconds to whole microseconds (floored)."""
    return math.floor(seconds * MICROSECONDS_PER_SECOND)


def us_to_seconds(microseconds: float) -> float:
    """Convert microseconds to seconds."""
    return microseconds / MICROSECONDS_PER_SECOND


@dataclass
class TrackMetadata:
    """
    Normalized track metadata.

    Optional fields are omitted from the exported map when unknown.
    """

    track_id: str = NO_TRACK_ID
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    art_url: Optional[str] = None
    length_us: Optional[int] = None

    def to_mpris(self) -> dict[str, Any]:
        """Convert to the MPRIS `Metadata` map."""
        metadata: dict[str, Any] = {"mpris:trackid": self.track_id}
        if self.title:
            metadata["xesam:title"] = self.title
        if self.artist:
            metadata["xesam:artist"] = [self.artist]
        if self.album:
            metadata["xesam:album"] = self.album
        if self.art_url:
            metadata["mpris:artUrl"] = self.art_url
        if self.length_us is not None:
            metadata["mpris:length"] = self.length_us
        return metadata


@dataclass
class MprisSnapshot:
    """
    The single normalized player state exposed to the export layer.

    Mutated in place by polls and by optimistic local updates.
    """

    playback_status: PlaybackStatus = PlaybackStatus.STOPPED
    metadata: TrackMetadata = field(default_factory=TrackMetadata)
    clock: PositionClock = field(default_factory=PositionClock)
    loop_status: LoopStatus = LoopStatus.NONE
    shuffle: bool = False
    volume: float = 1.0
    can_seek: bool = False
    can_control: bool = False
    identity: str = DEFAULT_IDENTITY

    @property
    def track_id(self) -> str:
        """Opaque identity of the current track."""
        return self.metadata.track_id

    @property
    def rate(self) -> float:
        """Playback rate."""
        return self.clock.rate

    def position(self, now_us: int) -> int:
        """Extrapolated position in microseconds."""
        return self.clock.extrapolate(now_us)

    def set_playback_status(self, status: PlaybackStatus, now_us: int) -> None:
        """Change playback status, re-anchoring the clock first."""
        self.playback_status = status
        self.clock.set_playing(status == PlaybackStatus.PLAYING, now_us)

    def set_volume(self, volume: float) -> None:
        """Store a volume, clamped to [0, 1]."""
        self.volume = max(0.0, min(1.0, float(volume)))

    def reset_disconnected(self, now_us: int) -> None:
        """Reset to the "no player" state."""
        self.set_playback_status(PlaybackStatus.STOPPED, now_us)
        self.metadata = TrackMetadata()
        self.clock.set_position(0, now_us)
        self.loop_status = LoopStatus.NONE
        self.shuffle = False
        self.volume = 1.0
        self.can_seek = False
        self.can_control = False
