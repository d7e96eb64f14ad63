"""
MPRIS state module.

Normalized player snapshot, position extrapolation, status mapping, command
translation and the export surface.
"""

from .clock import PositionClock, TimeSource, monotonic_us
from .commands import CommandPlan
from .export import (
    ExportSink,
    LoggingExportSink,
    MprisExport,
    PlayerControl,
    PlayerInterface,
    ReadOnlyPropertyError,
    RootInterface,
    UnknownMemberError,
)
from .mapper import MappedStatus, map_status
from .types import (
    DEFAULT_IDENTITY,
    MPRIS_PLAYER_INTERFACE,
    MPRIS_ROOT_INTERFACE,
    NO_TRACK_ID,
    LoopStatus,
    MprisSnapshot,
    PlaybackStatus,
    TrackMetadata,
)

__all__ = [
    # State
    "MprisSnapshot",
    "TrackMetadata",
    "PlaybackStatus",
    "LoopStatus",
    "PositionClock",
    "TimeSource",
    "monotonic_us",
    # Mapping
    "MappedStatus",
    "map_status",
    "CommandPlan",
    # Export
    "ExportSink",
    "LoggingExportSink",
    "MprisExport",
    "PlayerControl",
    "PlayerInterface",
    "RootInterface",
    "ReadOnlyPropertyError",
    "UnknownMemberError",
    # Constants
    "DEFAULT_IDENTITY",
    "MPRIS_PLAYER_INTERFACE",
    "MPRIS_ROOT_INTERFACE",
    "NO_TRACK_ID",
]
