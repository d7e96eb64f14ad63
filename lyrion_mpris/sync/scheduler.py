"""
Status poll scheduling.

One poll in flight at most. A refresh requested while a poll is running is
coalesced into exactly one follow-up poll. Every poll carries a request id;
a result whose id is no longer current (the schedule was restarted while it
ran) is discarded. Restart cancels the superseded poll, and the replacement
request is only issued once the superseded one has unwound.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from lyrion_mpris.config import ConnectionConfig
from lyrion_mpris.lms import LmsClient, LmsError, RawStatus

logger = logging.getLogger(__name__)

StatusCallback = Callable[[RawStatus, ConnectionConfig], None]
DisconnectedCallback = Callable[[ConnectionConfig, Optional[Exception]], None]


class PollCycle(Enum):
    """Poll scheduler states."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    IN_FLIGHT_PENDING = "in_flight_pending"


class PollScheduler:
    """
    Periodic status poller with coalescing and stale-result rejection.

    Usage:
        scheduler = PollScheduler(client, on_status, on_disconnected)
        scheduler.restart(config)   # poll now, then every poll_interval
        scheduler.refresh()         # out-of-band poll
        await scheduler.stop()
    """

    def __init__(
        self,
        client: LmsClient,
        on_status: StatusCallback,
        on_disconnected: DisconnectedCallback,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize scheduler.

        Args:
            client: LMS client used for status requests
            on_status: Called with each current (non-stale) status
            on_disconnected: Called when the config is unusable or a poll fails
            logger: Logger for poll diagnostics
        """
        self._client = client
        self._on_status = on_status
        self._on_disconnected = on_disconnected
        self._log = logger or logging.getLogger(__name__)

        self._config: Optional[ConnectionConfig] = None
        self._request_id = 0
        self._in_flight = False
        self._pending = False
        self._closed = False
        self._failing = False

        self._timer_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._retired: set[asyncio.Task] = set()

    @property
    def state(self) -> PollCycle:
        if not self._in_flight:
            return PollCycle.IDLE
        return PollCycle.IN_FLIGHT_PENDING if self._pending else PollCycle.IN_FLIGHT

    @property
    def request_id(self) -> int:
        return self._request_id

    @property
    def config(self) -> Optional[ConnectionConfig]:
        return self._config

    @property
    def is_closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Scheduling
    # =========================================================================

    def restart(self, config: ConnectionConfig) -> None:
        """
        Replace the connection config and restart the schedule.

        Any in-flight poll becomes stale. An immediate poll runs, then one
        every `config.poll_interval` seconds.
        """
        if self._closed:
            return

        self._config = config
        self._cancel_timer()

        if self._in_flight:
            self._request_id += 1
            self._in_flight = False
            self._pending = False
            self._retire_poll()

        self.refresh()
        self._timer_task = asyncio.create_task(self._timer_loop(config.poll_interval))
        self._log.debug(f"Poll schedule restarted interval={config.poll_interval}s")

    def refresh(self) -> None:
        """Request a poll now (coalesced with any poll already running)."""
        if self._closed or self._config is None:
            return

        if self._in_flight:
            self._pending = True
            return

        config = self._config
        if not config.is_usable:
            self._log.debug("No server address or player id configured; skipping poll")
            self._on_disconnected(config, None)
            return

        self._request_id += 1
        self._in_flight = True
        self._poll_task = asyncio.create_task(self._poll(self._request_id, config))

    async def stop(self) -> None:
        """Stop polling. In-flight results are discarded. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._pending = False
        self._request_id += 1

        self._cancel_timer()
        if self._timer_task:
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

        poll_task = self._poll_task
        if poll_task and not poll_task.done():
            poll_task.cancel()
            try:
                await poll_task
            except asyncio.CancelledError:
                pass
        self._poll_task = None

        retired = list(self._retired)
        for task in retired:
            task.cancel()
        if retired:
            await asyncio.gather(*retired, return_exceptions=True)
        self._retired.clear()
        self._log.debug("Poll scheduler stopped")

    def _retire_poll(self) -> None:
        """Cancel the running poll; it is tracked until it has unwound."""
        task = self._poll_task
        self._poll_task = None
        if task is None or task.done():
            return
        task.cancel()
        self._retired.add(task)
        task.add_done_callback(self._retired.discard)

    def _cancel_timer(self) -> None:
        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()

    async def _timer_loop(self, interval: float) -> None:
        """Trigger a refresh every `interval` seconds."""
        try:
            while True:
                await asyncio.sleep(interval)
                self.refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.error(f"Poll timer error: {e}", exc_info=True)

    # =========================================================================
    # Polling
    # =========================================================================

    async def _poll(self, request_id: int, config: ConnectionConfig) -> None:
        """Run one status request and deliver its result if still current."""
        status: Optional[RawStatus] = None
        error: Optional[Exception] = None
        try:
            if self._retired:
                # Wait for superseded requests so only one is ever outstanding
                await asyncio.wait(set(self._retired))
            if request_id != self._request_id:
                return

            try:
                status = await self._client.fetch_status(config)
            except LmsError as e:
                error = e
            except Exception as e:
                self._log.debug(f"Unexpected poll failure: {e!r}")
                error = e

            if request_id != self._request_id:
                self._log.debug(f"Discarding stale poll result id={request_id}")
                return

            if error is not None:
                self._report_failure(config, error)
                self._on_disconnected(config, error)
            elif status is not None:
                if self._failing:
                    self._log.info(f"Reconnected to LMS at {config.base_url}")
                    self._failing = False
                try:
                    self._on_status(status, config)
                except Exception as e:
                    self._log.error(f"Error applying status: {e}", exc_info=True)
        finally:
            if request_id == self._request_id:
                self._in_flight = False
                self._poll_task = None
                if self._pending and not self._closed:
                    self._pending = False
                    self.refresh()

    def _report_failure(self, config: ConnectionConfig, error: Exception) -> None:
        # Log the first failure of an outage loudly, repeats quietly
        if self._failing:
            self._log.debug(f"LMS status failed: {error}")
            return
        self._failing = True
        self._log.error(f"LMS status failed for {config.base_url}: {error}")
