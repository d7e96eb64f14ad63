"""
Bridge engine.

Owns the MPRIS snapshot and wires the poll scheduler, status mapper, command
translator, LMS client and export surface together.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

from lyrion_mpris.config import ConnectionConfig
from lyrion_mpris.lms import LmsClient, RawStatus
from lyrion_mpris.mpris import commands
from lyrion_mpris.mpris.clock import TimeSource, monotonic_us
from lyrion_mpris.mpris.commands import CommandPlan
from lyrion_mpris.mpris.export import (
    ExportSink,
    MprisExport,
    PlayerControl,
    PlayerInterface,
    RootInterface,
)
from lyrion_mpris.mpris.mapper import MappedStatus, map_status
from lyrion_mpris.mpris.types import (
    DEFAULT_IDENTITY,
    MPRIS_PLAYER_INTERFACE,
    MPRIS_ROOT_INTERFACE,
    MprisSnapshot,
)

from .scheduler import PollScheduler

logger = logging.getLogger(__name__)


class BridgeEngine(PlayerControl):
    """
    LMS <-> MPRIS synchronization engine.

    Usage:
        engine = BridgeEngine(client, sink, config)
        await engine.start()
        engine.update_config(new_config)
        await engine.close()
    """

    def __init__(
        self,
        client: LmsClient,
        sink: ExportSink,
        config: ConnectionConfig,
        time_source: TimeSource = monotonic_us,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize engine.

        Args:
            client: LMS client (the engine takes ownership and closes it)
            sink: IPC collaborator for the export
            config: Initial connection snapshot
            time_source: Monotonic microsecond clock
            logger: Logger for engine diagnostics
        """
        self._client = client
        self._config = config
        self._now = time_source
        self._log = logger or logging.getLogger(__name__)

        self._snapshot = MprisSnapshot()
        self._export = MprisExport(
            [
                RootInterface(self._snapshot),
                PlayerInterface(self._snapshot, self, time_source),
            ],
            sink,
            logger=self._log,
        )
        self._scheduler = PollScheduler(
            client,
            self._apply_status,
            self._apply_disconnected,
            logger=self._log,
        )

        self._command_tasks: set[asyncio.Task] = set()
        self._started = False
        self._closed = False

    @property
    def snapshot(self) -> MprisSnapshot:
        return self._snapshot

    @property
    def export(self) -> MprisExport:
        return self._export

    @property
    def scheduler(self) -> PollScheduler:
        return self._scheduler

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Register the export and start polling."""
        if self._started or self._closed:
            return
        self._started = True
        self._export.register()
        self._scheduler.restart(self._config)
        self._log.info(f"Bridge started for player {self._config.player_id or '(none)'}")

    def update_config(self, config: ConnectionConfig) -> None:
        """
        Switch to a new connection snapshot.

        Any in-flight poll for the old configuration is discarded.
        """
        if self._closed:
            return
        self._config = config
        self._log.info(f"Configuration updated: {config.base_url} player={config.player_id}")
        if self._started:
            self._scheduler.restart(config)

    async def close(self) -> None:
        """
        Tear down: stop polling, cancel pending sends, close the client and
        withdraw the export. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True

        try:
            await self._scheduler.stop()
        except Exception as e:
            self._log.warning(f"Error stopping poll scheduler: {e}")

        tasks = list(self._command_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._command_tasks.clear()

        try:
            await self._client.close()
        except Exception as e:
            self._log.warning(f"Error closing LMS client: {e}")

        self._export.unregister()
        self._log.info("Bridge stopped")

    # =========================================================================
    # Poll results
    # =========================================================================

    def _apply_status(self, status: RawStatus, config: ConnectionConfig) -> None:
        """Apply a current status poll to the snapshot and publish it."""
        self.apply_mapped(map_status(status, config))

    def apply_mapped(self, mapped: MappedStatus) -> None:
        """Apply mapped status to the snapshot."""
        now = self._now()
        snapshot = self._snapshot

        # Status first: re-anchoring must happen before the new position lands
        snapshot.set_playback_status(mapped.playback_status, now)
        snapshot.clock.set_position(mapped.position_us, now)
        snapshot.metadata = mapped.metadata
        snapshot.loop_status = mapped.loop_status
        snapshot.shuffle = mapped.shuffle
        if mapped.volume is not None:
            snapshot.set_volume(mapped.volume)
        snapshot.can_seek = mapped.can_seek
        snapshot.can_control = True

        self._set_identity(mapped.identity or DEFAULT_IDENTITY)
        self._export.publish(MPRIS_PLAYER_INTERFACE)

    def _apply_disconnected(
        self, config: ConnectionConfig, error: Optional[Exception]
    ) -> None:
        """Publish the "no player" state."""
        self._snapshot.reset_disconnected(self._now())
        if not config.is_usable:
            self._set_identity(DEFAULT_IDENTITY)
        self._export.publish(MPRIS_PLAYER_INTERFACE)

    def _set_identity(self, identity: str) -> None:
        if identity == self._snapshot.identity:
            return
        self._snapshot.identity = identity
        self._export.publish(MPRIS_ROOT_INTERFACE)

    # =========================================================================
    # Inbound calls
    # =========================================================================

    def play_pause(self) -> None:
        self._execute(commands.play_pause())

    def play(self) -> None:
        self._execute(commands.play())

    def pause(self) -> None:
        self._execute(commands.pause())

    def stop(self) -> None:
        self._execute(commands.stop())

    def next(self) -> None:
        self._execute(commands.next_track())

    def previous(self) -> None:
        self._execute(commands.previous_track())

    def seek(self, offset_us: int) -> None:
        self._execute(commands.seek(offset_us, self._snapshot.position(self._now())))

    def set_position(self, track_id: str, position_us: int) -> None:
        self._execute(commands.set_position(track_id, position_us, self._snapshot))

    def open_uri(self, uri: str) -> None:
        self._execute(commands.open_uri(uri))

    def set_shuffle(self, value: bool) -> None:
        self._execute(commands.set_shuffle(value, self._config))

    def set_loop_status(self, value: str) -> None:
        self._execute(commands.set_loop_status(value))

    def set_volume(self, value: float) -> None:
        self._execute(commands.set_volume(value))

    def set_rate(self, value: float) -> None:
        self._execute(commands.set_rate(value))

    def _execute(self, plan: CommandPlan) -> None:
        """Send the plan's command and apply its local effects."""
        if plan.is_noop or self._closed:
            return

        config = self._config
        if not config.is_usable:
            self._log.debug("Ignoring command: no server address or player id configured")
            return

        if plan.command is not None:
            self._spawn(self._send(config, plan.command, plan.refresh_after_send))

        now = self._now()
        snapshot = self._snapshot
        changed = False
        if plan.position_us is not None:
            snapshot.clock.set_position(plan.position_us, now)
            changed = True
        if plan.shuffle is not None:
            snapshot.shuffle = plan.shuffle
            changed = True
        if plan.loop_status is not None:
            snapshot.loop_status = plan.loop_status
            changed = True
        if plan.volume is not None:
            snapshot.set_volume(plan.volume)
            changed = True

        if changed:
            self._export.publish(MPRIS_PLAYER_INTERFACE)
        if plan.position_us is not None:
            self._export.emit_seeked(snapshot.position(now))

    async def _send(
        self, config: ConnectionConfig, command: list[Any], refresh_after: bool
    ) -> None:
        await self._client.send_command(config, config.player_id, command)
        if refresh_after and not self._closed:
            self._scheduler.refresh()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._command_tasks.add(task)
        task.add_done_callback(self._command_tasks.discard)
