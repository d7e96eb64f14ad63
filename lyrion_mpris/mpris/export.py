"""
MPRIS export surface.

The root and player interfaces are independent capability objects, each an
explicit table of property name -> (getter, optional setter) and method name
-> handler. `MprisExport` composes them and talks to the IPC collaborator
through an `ExportSink`.

Inbound calls never raise into the IPC layer for engine failures: handler
errors are logged and swallowed. Only contract violations (unknown member,
write to a read-only property) raise.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .clock import TimeSource, monotonic_us
from .types import (
    MPRIS_PLAYER_INTERFACE,
    MPRIS_ROOT_INTERFACE,
    MprisSnapshot,
)

logger = logging.getLogger(__name__)

MINIMUM_RATE = 1.0
MAXIMUM_RATE = 1.0


class ExportError(Exception):
    """Invalid request from the IPC layer."""

    pass


class UnknownMemberError(ExportError):
    """No such interface, property or method."""

    pass


class ReadOnlyPropertyError(ExportError):
    """Write to a read-only property."""

    pass


@dataclass(frozen=True)
class PropertySpec:
    """A readable (optionally writable) exported property."""

    getter: Callable[[], Any]
    setter: Optional[Callable[[Any], None]] = None

    @property
    def writable(self) -> bool:
        return self.setter is not None


class ExportSink(ABC):
    """
    IPC collaborator.

    Registers the exported object on a bus and broadcasts change
    notifications. Implementations must tolerate repeated unregister().
    """

    @abstractmethod
    def register(self, export: "MprisExport") -> None:
        """Publish `export` on the bus."""
        ...

    @abstractmethod
    def unregister(self) -> None:
        """Withdraw the exported object."""
        ...

    @abstractmethod
    def properties_changed(self, interface: str, changed: dict[str, Any]) -> None:
        """Broadcast PropertiesChanged for `interface`."""
        ...

    @abstractmethod
    def seeked(self, position_us: int) -> None:
        """Broadcast the player's Seeked signal."""
        ...


class PlayerControl(ABC):
    """Inbound player operations, implemented by the engine."""

    @abstractmethod
    def play_pause(self) -> None: ...

    @abstractmethod
    def play(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @abstractmethod
    def next(self) -> None: ...

    @abstractmethod
    def previous(self) -> None: ...

    @abstractmethod
    def seek(self, offset_us: int) -> None: ...

    @abstractmethod
    def set_position(self, track_id: str, position_us: int) -> None: ...

    @abstractmethod
    def open_uri(self, uri: str) -> None: ...

    @abstractmethod
    def set_shuffle(self, value: bool) -> None: ...

    @abstractmethod
    def set_loop_status(self, value: str) -> None: ...

    @abstractmethod
    def set_volume(self, value: float) -> None: ...

    @abstractmethod
    def set_rate(self, value: float) -> None: ...


class ExportedInterface:
    """An interface: a name plus property and method tables."""

    name: str = ""

    def __init__(self) -> None:
        self.properties: dict[str, PropertySpec] = {}
        self.methods: dict[str, Callable[..., None]] = {}


class RootInterface(ExportedInterface):
    """org.mpris.MediaPlayer2"""

    name = MPRIS_ROOT_INTERFACE

    def __init__(self, snapshot: MprisSnapshot):
        super().__init__()
        self._snapshot = snapshot
        self.properties = {
            "CanRaise": PropertySpec(lambda: False),
            "CanQuit": PropertySpec(lambda: False),
            "HasTrackList": PropertySpec(lambda: False),
            "Identity": PropertySpec(lambda: self._snapshot.identity),
            "DesktopEntry": PropertySpec(lambda: ""),
            "SupportedUriSchemes": PropertySpec(lambda: []),
            "SupportedMimeTypes": PropertySpec(lambda: []),
        }
        # Raise/Quit are unsupported (CanRaise/CanQuit are false)
        self.methods = {
            "Raise": lambda: None,
            "Quit": lambda: None,
        }


class PlayerInterface(ExportedInterface):
    """org.mpris.MediaPlayer2.Player"""

    name = MPRIS_PLAYER_INTERFACE

    def __init__(
        self,
        snapshot: MprisSnapshot,
        control: PlayerControl,
        time_source: TimeSource = monotonic_us,
    ):
        super().__init__()
        s = snapshot
        self._snapshot = snapshot
        self._now = time_source
        self.properties = {
            "PlaybackStatus": PropertySpec(lambda: s.playback_status.value),
            "Metadata": PropertySpec(lambda: s.metadata.to_mpris()),
            "Position": PropertySpec(lambda: s.position(self._now())),
            "LoopStatus": PropertySpec(lambda: s.loop_status.value, control.set_loop_status),
            "Shuffle": PropertySpec(lambda: s.shuffle, control.set_shuffle),
            "Rate": PropertySpec(lambda: s.rate, control.set_rate),
            "MinimumRate": PropertySpec(lambda: MINIMUM_RATE),
            "MaximumRate": PropertySpec(lambda: MAXIMUM_RATE),
            "Volume": PropertySpec(lambda: s.volume, control.set_volume),
            "CanGoNext": PropertySpec(lambda: s.can_control),
            "CanGoPrevious": PropertySpec(lambda: s.can_control),
            "CanPlay": PropertySpec(lambda: s.can_control),
            "CanPause": PropertySpec(lambda: s.can_control),
            "CanSeek": PropertySpec(lambda: s.can_seek),
            "CanControl": PropertySpec(lambda: s.can_control),
        }
        self.methods = {
            "PlayPause": control.play_pause,
            "Play": control.play,
            "Pause": control.pause,
            "Stop": control.stop,
            "Next": control.next,
            "Previous": control.previous,
            "Seek": control.seek,
            "SetPosition": control.set_position,
            "OpenUri": control.open_uri,
        }


class MprisExport:
    """
    Export registrar composing the MPRIS interfaces.

    Usage:
        export = MprisExport([RootInterface(snapshot), PlayerInterface(...)], sink)
        export.register()
        export.publish(MPRIS_PLAYER_INTERFACE)
        export.unregister()
    """

    def __init__(
        self,
        interfaces: list[ExportedInterface],
        sink: ExportSink,
        logger: Optional[logging.Logger] = None,
    ):
        self._interfaces = {iface.name: iface for iface in interfaces}
        self._sink = sink
        self._log = logger or logging.getLogger(__name__)
        self._registered = False

    @property
    def is_registered(self) -> bool:
        return self._registered

    @property
    def interface_names(self) -> list[str]:
        return list(self._interfaces)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self) -> None:
        """Register with the sink and publish the initial state."""
        if self._registered:
            return
        self._sink.register(self)
        self._registered = True
        for name in self._interfaces:
            self.publish(name)

    def unregister(self) -> None:
        """Withdraw the export. Safe to call more than once."""
        if not self._registered:
            return
        self._registered = False
        try:
            self._sink.unregister()
        except Exception as e:
            self._log.warning(f"Error unregistering export: {e}")

    # =========================================================================
    # Inbound
    # =========================================================================

    def _interface(self, interface: str) -> ExportedInterface:
        try:
            return self._interfaces[interface]
        except KeyError:
            raise UnknownMemberError(f"No such interface: {interface}") from None

    def _property(self, interface: str, name: str) -> PropertySpec:
        spec = self._interface(interface).properties.get(name)
        if spec is None:
            raise UnknownMemberError(f"No such property: {interface}.{name}")
        return spec

    def get(self, interface: str, name: str) -> Any:
        """Read one property."""
        return self._property(interface, name).getter()

    def get_all(self, interface: str) -> dict[str, Any]:
        """Read every property of an interface."""
        return {
            name: spec.getter() for name, spec in self._interface(interface).properties.items()
        }

    def set(self, interface: str, name: str, value: Any) -> None:
        """
        Write a property.

        Raises:
            UnknownMemberError: No such property
            ReadOnlyPropertyError: Property is not writable
        """
        spec = self._property(interface, name)
        if spec.setter is None:
            raise ReadOnlyPropertyError(f"Property is read-only: {interface}.{name}")
        self._log.debug(f"MPRIS set {name}={value!r}")
        try:
            spec.setter(value)
        except Exception as e:
            self._log.error(f"Error setting {name}: {e}", exc_info=True)

    def call(self, interface: str, method: str, *args: Any) -> None:
        """
        Invoke a method.

        Raises:
            UnknownMemberError: No such method
        """
        handler = self._interface(interface).methods.get(method)
        if handler is None:
            raise UnknownMemberError(f"No such method: {interface}.{method}")
        self._log.debug(f"MPRIS {method}{args if args else ''}")
        try:
            handler(*args)
        except Exception as e:
            self._log.error(f"Error handling {method}: {e}", exc_info=True)

    # =========================================================================
    # Outbound
    # =========================================================================

    def publish(self, interface: str) -> None:
        """Broadcast the current properties of `interface`."""
        if not self._registered:
            return
        self._sink.properties_changed(interface, self.get_all(interface))

    def emit_seeked(self, position_us: int) -> None:
        """Broadcast Seeked."""
        if not self._registered:
            return
        self._log.debug(f"MPRIS Seeked position={position_us}")
        self._sink.seeked(position_us)


class LoggingExportSink(ExportSink):
    """
    ExportSink that renders state changes to the log.

    Used when running headless (no session bus binding).
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)
        self._export: Optional[MprisExport] = None
        self._last_summary: Optional[str] = None

    @property
    def export(self) -> Optional[MprisExport]:
        return self._export

    def register(self, export: MprisExport) -> None:
        self._export = export
        self._log.info(f"Exported MPRIS player ({', '.join(export.interface_names)})")

    def unregister(self) -> None:
        if self._export is None:
            return
        self._export = None
        self._log.info("MPRIS player withdrawn")

    def properties_changed(self, interface: str, changed: dict[str, Any]) -> None:
        if interface == MPRIS_ROOT_INTERFACE:
            self._log.info(f"Player: {changed.get('Identity')}")
            return

        metadata = changed.get("Metadata") or {}
        artists = ", ".join(metadata.get("xesam:artist", []))
        title = metadata.get("xesam:title", "")
        summary = f"[{changed.get('PlaybackStatus')}] {artists} - {title}".rstrip(" -")
        # Only log when what a listener would notice changes
        if summary != self._last_summary:
            self._last_summary = summary
            self._log.info(summary)
        self._log.debug(f"{interface} changed: {changed}")

    def seeked(self, position_us: int) -> None:
        self._log.info(f"Seeked to {position_us / 1_000_000:.1f}s")
