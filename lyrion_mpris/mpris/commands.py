"""
MPRIS -> LMS command translation.

Translates inbound MPRIS method calls and property writes into LMS command
arrays plus the local state change to apply optimistically. Nothing here
sends or mutates anything; the engine executes the returned plan.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from lyrion_mpris.config import ConnectionConfig, ShuffleMode
from lyrion_mpris.lms.types import LMS_REPEAT_OFF, LMS_REPEAT_PLAYLIST, LMS_REPEAT_TRACK

from .types import (
    MICROSECONDS_PER_SECOND,
    LoopStatus,
    MprisSnapshot,
    us_to_seconds,
)

logger = logging.getLogger(__name__)

# LMS command arrays
CMD_TOGGLE_PAUSE = ["pause"]
CMD_PLAY = ["play"]
CMD_PAUSE = ["pause", 1]
CMD_STOP = ["stop"]
CMD_NEXT = ["playlist", "jump", "+1"]
CMD_PREVIOUS = ["playlist", "jump", "-1"]

REPEAT_BY_LOOP_STATUS = {
    LoopStatus.NONE: LMS_REPEAT_OFF,
    LoopStatus.TRACK: LMS_REPEAT_TRACK,
    LoopStatus.PLAYLIST: LMS_REPEAT_PLAYLIST,
}


@dataclass(frozen=True)
class CommandPlan:
    """
    Result of translating one inbound call.

    Attributes:
        command: LMS command to send, or None
        position_us: New absolute position to anchor (and announce via Seeked)
        shuffle: Optimistic shuffle value
        loop_status: Optimistic loop status
        volume: Optimistic volume in [0, 1]
        refresh_after_send: Poll out-of-band once the command completes
    """

    command: Optional[list[Any]] = None
    position_us: Optional[int] = None
    shuffle: Optional[bool] = None
    loop_status: Optional[LoopStatus] = None
    volume: Optional[float] = None
    refresh_after_send: bool = False

    @property
    def is_noop(self) -> bool:
        return (
            self.command is None
            and self.position_us is None
            and self.shuffle is None
            and self.loop_status is None
            and self.volume is None
        )


NOOP = CommandPlan()


# =========================================================================
# Transport controls
# =========================================================================


def play_pause() -> CommandPlan:
    """
    Toggle pause on the server.

    The toggle is unconditional (no branching on the cached status) and is
    followed by a poll so the real state shows up quickly.
    """
    return CommandPlan(command=list(CMD_TOGGLE_PAUSE), refresh_after_send=True)


def play() -> CommandPlan:
    return CommandPlan(command=list(CMD_PLAY))


def pause() -> CommandPlan:
    return CommandPlan(command=list(CMD_PAUSE))


def stop() -> CommandPlan:
    return CommandPlan(command=list(CMD_STOP))


def next_track() -> CommandPlan:
    return CommandPlan(command=list(CMD_NEXT))


def previous_track() -> CommandPlan:
    return CommandPlan(command=list(CMD_PREVIOUS))


# =========================================================================
# Position
# =========================================================================


def seek(offset_us: Any, current_position_us: int) -> CommandPlan:
    """
    Relative seek.

    LMS seeks in whole seconds, so the offset is rounded and the local
    position moves by the rounded amount.

    Args:
        offset_us: Signed offset in microseconds
        current_position_us: Extrapolated position now
    """
    if not _is_finite_number(offset_us):
        return NOOP
    seconds = round_half_up(us_to_seconds(offset_us))
    if not seconds:
        return NOOP
    formatted = f"+{seconds}" if seconds > 0 else str(seconds)
    current_s = us_to_seconds(current_position_us)
    new_position_s = max(0, round_half_up(current_s + seconds))
    return CommandPlan(
        command=["time", formatted],
        position_us=new_position_s * MICROSECONDS_PER_SECOND,
    )


def set_position(track_id: Any, position_us: Any, snapshot: MprisSnapshot) -> CommandPlan:
    """
    Absolute seek within the current track.

    Calls that name a different track are stale (the track changed after the
    caller read it) and are dropped without sending anything.
    """
    if not _is_finite_number(position_us):
        return NOOP
    if track_id != snapshot.track_id:
        logger.debug(f"SetPosition ignored trackId={track_id} current={snapshot.track_id}")
        return NOOP
    seconds = max(0, math.floor(us_to_seconds(position_us)))
    return CommandPlan(
        command=["time", seconds],
        position_us=seconds * MICROSECONDS_PER_SECOND,
    )


# =========================================================================
# Property writes
# =========================================================================


def set_shuffle(value: Any, config: ConnectionConfig) -> CommandPlan:
    """Shuffle on uses the preferred granularity (by track or by album)."""
    enabled = bool(value)
    if enabled:
        mode = (
            ShuffleMode.BY_ALBUM
            if config.shuffle_mode == ShuffleMode.BY_ALBUM
            else ShuffleMode.BY_TRACK
        )
    else:
        mode = ShuffleMode.OFF
    return CommandPlan(command=["playlist", "shuffle", int(mode)], shuffle=enabled)


def set_loop_status(value: Any) -> CommandPlan:
    """Values outside the MPRIS enum are ignored."""
    try:
        loop_status = LoopStatus(value)
    except ValueError:
        logger.debug(f"LoopStatus ignored value={value!r}")
        return NOOP
    return CommandPlan(
        command=["playlist", "repeat", REPEAT_BY_LOOP_STATUS[loop_status]],
        loop_status=loop_status,
    )


def set_volume(value: Any) -> CommandPlan:
    """Volume in [0, 1] -> LMS mixer percent."""
    if not _is_finite_number(value):
        return NOOP
    volume = max(0.0, min(1.0, float(value)))
    percent = max(0, min(100, round_half_up(float(value) * 100)))
    return CommandPlan(command=["mixer", "volume", percent], volume=volume)


def set_rate(value: Any) -> CommandPlan:
    """LMS has no variable-rate playback; the write is ignored."""
    logger.debug(f"Rate ignored value={value!r}")
    return NOOP


def open_uri(uri: Any) -> CommandPlan:
    """Opening URIs is not supported."""
    logger.debug(f"OpenUri ignored uri={uri!r}")
    return NOOP


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
