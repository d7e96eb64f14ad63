"""
Lyrion MPRIS Bridge Application.

Wires the LMS client, bridge engine and export sink together and manages
lifecycle.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

from lyrion_mpris.config import Config, ConfigError, load_config
from lyrion_mpris.lms import LmsClient
from lyrion_mpris.mpris.export import ExportSink, LoggingExportSink
from lyrion_mpris.sync import BridgeEngine

logger = logging.getLogger(__name__)


class LyrionMprisBridge:
    """
    Main bridge application.

    Orchestrates:
    - LMS client (JSON-RPC over aiohttp)
    - Bridge engine (polling, mapping, command translation)
    - Export sink (MPRIS IPC collaborator)

    Usage:
        config = load_config(...)
        app = LyrionMprisBridge(config)
        await app.run()
    """

    def __init__(
        self,
        config: Config,
        config_path: Optional[Path] = None,
        cli_args: Optional[dict] = None,
        sink: Optional[ExportSink] = None,
        client: Optional[LmsClient] = None,
    ):
        """
        Initialize the bridge.

        Args:
            config: Validated configuration
            config_path: YAML file to re-read on reload
            cli_args: CLI overrides to re-apply on reload
            sink: Export sink (defaults to logging the exported state)
            client: LMS client (defaults to an aiohttp-backed client)
        """
        self._config = config
        self._config_path = config_path
        self._cli_args = cli_args or {}
        self._sink = sink or LoggingExportSink()
        self._client = client
        self._is_running = False
        self._stopped = False
        self._shutdown_event = asyncio.Event()

        self._engine: Optional[BridgeEngine] = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def engine(self) -> Optional[BridgeEngine]:
        return self._engine

    async def start(self) -> None:
        """
        Start the engine: register the export, then begin polling.

        A bridge built without a client gets a fresh one on every start. An
        injected client is closed by stop() and cannot be started again.

        Raises:
            RuntimeError: If restarted after stop() with an injected client
        """
        if self._is_running:
            return
        if self._stopped and self._client is not None:
            raise RuntimeError(
                "The injected LMS client was closed by stop(); it cannot be restarted"
            )

        logger.info("Starting Lyrion MPRIS bridge...")
        connection = self._config.connection()
        if not connection.is_usable:
            logger.warning(
                "No server address or player id configured; "
                "exporting an idle player until the configuration is reloaded"
            )

        self._engine = BridgeEngine(
            self._client or LmsClient(),
            self._sink,
            connection,
        )
        await self._engine.start()
        self._is_running = True
        logger.info("Lyrion MPRIS bridge running")

    def reload(self) -> bool:
        """
        Re-read the configuration and restart polling with it.

        Returns:
            True if the new configuration was applied
        """
        try:
            config = load_config(self._config_path, self._cli_args)
        except ConfigError as e:
            logger.error(f"Reload failed, keeping current configuration: {e}")
            return False

        self._config = config
        logging.getLogger().setLevel(getattr(logging, config.logging.level.upper(), logging.INFO))
        if self._engine:
            self._engine.update_config(config.connection())
        logger.info("Configuration reloaded")
        return True

    async def stop(self) -> None:
        """Stop the engine. Safe to call more than once."""
        if not self._is_running:
            return

        logger.info("Stopping Lyrion MPRIS bridge...")
        self._is_running = False
        self._stopped = True

        if self._engine:
            try:
                await self._engine.close()
            except Exception as e:
                logger.warning(f"Error stopping bridge engine: {e}")

        logger.info("Lyrion MPRIS bridge stopped")

    async def run(self) -> None:
        """
        Run the bridge until interrupted.

        SIGINT/SIGTERM shut down gracefully; SIGHUP reloads the configuration.
        """
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Shutdown signal received")
            self._shutdown_event.set()

        def handle_reload() -> None:
            logger.info("Reload signal received")
            self.reload()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_signal)
        loop.add_signal_handler(signal.SIGHUP, handle_reload)

        try:
            await self.start()

            # Wait for shutdown signal
            await self._shutdown_event.wait()

        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        """Ask `run()` to return."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Check if the bridge is running."""
        return self._is_running
