"""
Lyrion Music Server JSON-RPC client.

Issues `slim.request` calls against `/jsonrpc.js` and normalizes the
different ways a request can fail.
"""

import json
import logging
import time
from typing import Any, Mapping, Optional

import aiohttp

from lyrion_mpris.config import ConnectionConfig

from .artwork import resolve_artwork_url
from .transport import AiohttpTransport, HttpTransport
from .types import (
    MAX_PLAYERS,
    STATUS_REQUEST,
    EmptyResponseError,
    HttpStatusError,
    LmsError,
    MalformedResponseError,
    PlayerInfo,
    ProtocolError,
    RawStatus,
)

logger = logging.getLogger(__name__)

JSONRPC_METHOD = "slim.request"

# Truncate logged response bodies
MAX_LOGGED_BODY = 500


def build_request_body(player_id: str, request: list[Any]) -> bytes:
    """Encode a `slim.request` envelope."""
    envelope = {
        "id": 1,
        "method": JSONRPC_METHOD,
        "params": [player_id, request],
    }
    return json.dumps(envelope).encode("utf-8")


def build_auth_headers(config: ConnectionConfig) -> dict[str, str]:
    """Build the Basic auth header for the control endpoint, if configured."""
    if not config.has_credentials:
        return {}
    auth = aiohttp.BasicAuth(config.username, config.password)
    return {"Authorization": auth.encode()}


def get_player_name(status: Mapping[str, Any]) -> Optional[str]:
    """Read the player's display name (spelled differently across versions)."""
    for key in ("player_name", "playername", "player name"):
        candidate = status.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


class LmsClient:
    """
    JSON-RPC client for a Lyrion Music Server.

    Handles:
    - Status polling with typed failure modes
    - Fire-and-forget player commands
    - Player enumeration
    - Artwork URL resolution

    No retries happen here; the poll scheduler's next tick is the retry.
    """

    def __init__(
        self,
        transport: Optional[HttpTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize client.

        Args:
            transport: HTTP transport (defaults to an aiohttp transport)
            logger: Logger for request diagnostics
        """
        self._transport = transport or AiohttpTransport()
        self._log = logger or logging.getLogger(__name__)

    async def close(self) -> None:
        """Abort outstanding requests and close the transport."""
        await self._transport.close()

    # =========================================================================
    # Requests
    # =========================================================================

    async def _request(
        self, config: ConnectionConfig, player_id: str, request: list[Any]
    ) -> dict[str, Any]:
        """
        Send a request and return the decoded envelope.

        Raises:
            NetworkError: Transport failure
            HttpStatusError: Non-200 status
            EmptyResponseError: Zero-length body
            MalformedResponseError: Body is not a JSON object
            ProtocolError: Server error envelope
        """
        body = build_request_body(player_id, request)
        status, data = await self._transport.post_json(
            config.control_url, body, build_auth_headers(config)
        )

        text = data.decode("utf-8", errors="replace")
        if status != 200:
            self._log.debug(f"LMS HTTP {status} for {config.control_url}")
            self._log.debug(f"LMS response body: {text[:MAX_LOGGED_BODY]}")
            raise HttpStatusError(status, text)
        if not text.strip():
            raise EmptyResponseError()

        try:
            envelope = json.loads(text)
        except ValueError as e:
            self._log.debug(f"LMS response body: {text[:MAX_LOGGED_BODY]}")
            raise MalformedResponseError(f"Failed to parse LMS response: {e}") from e
        if not isinstance(envelope, dict):
            raise MalformedResponseError("LMS response is not a JSON object")

        error = envelope.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or "Unknown LMS error"
                raise ProtocolError(message, error.get("code"))
            raise ProtocolError(str(error))

        return envelope

    async def fetch_status(
        self,
        config: ConnectionConfig,
        player_id: Optional[str] = None,
        request: Optional[list[Any]] = None,
    ) -> RawStatus:
        """
        Fetch the player's status.

        Args:
            config: Connection snapshot
            player_id: Player to query (defaults to config.player_id)
            request: Status request array (defaults to STATUS_REQUEST)

        Returns:
            Raw status payload

        Raises:
            LmsError: On any failure
        """
        player_id = player_id if player_id is not None else config.player_id
        request = request if request is not None else STATUS_REQUEST
        started_at = time.monotonic()
        self._log.debug(f"LMS status request url={config.control_url} playerId={player_id}")

        envelope = await self._request(config, player_id, request)

        result = envelope.get("result")
        if not isinstance(result, dict):
            raise MalformedResponseError("Unexpected LMS response: no result")

        elapsed_ms = round((time.monotonic() - started_at) * 1000)
        self._log.debug(
            f"LMS status ok in {elapsed_ms}ms mode={result.get('mode')} "
            f"time={result.get('time')} duration={result.get('duration')}"
        )
        return RawStatus(result)

    async def send_command(
        self,
        config: ConnectionConfig,
        player_id: Optional[str],
        command: list[Any],
    ) -> None:
        """
        Send a player command without waiting on its outcome.

        Failures are logged and swallowed; callers must not depend on
        completion.

        Args:
            config: Connection snapshot
            player_id: Target player (defaults to config.player_id)
            command: Command array, e.g. ["mixer", "volume", 42]
        """
        player_id = player_id if player_id is not None else config.player_id
        self._log.debug(f"LMS command {command} url={config.control_url} playerId={player_id}")
        try:
            await self._request(config, player_id, command)
            self._log.debug("LMS command ok")
        except EmptyResponseError:
            self._log.debug("LMS command empty response")
        except HttpStatusError as e:
            self._log.warning(f"LMS command HTTP {e.status} for {config.control_url}")
        except ProtocolError as e:
            self._log.error(f"LMS command {command} failed: {e}")
        except LmsError as e:
            self._log.warning(f"LMS command {command} failed: {e}")

    async def list_players(self, config: ConnectionConfig) -> list[PlayerInfo]:
        """
        Enumerate players known to the server.

        Entries without a player id are dropped.

        Raises:
            LmsError: On any failure
        """
        self._log.debug(f"LMS players request url={config.control_url}")
        envelope = await self._request(config, "", ["players", 0, MAX_PLAYERS])

        result = envelope.get("result") or {}
        if not isinstance(result, dict):
            raise MalformedResponseError("Unexpected LMS response: result is not an object")

        players = []
        for entry in result.get("players_loop") or []:
            if not isinstance(entry, dict):
                continue
            player_id = entry.get("playerid") or ""
            if not player_id:
                continue
            players.append(PlayerInfo(id=str(player_id), name=str(entry.get("name") or "")))

        self._log.debug(f"LMS players loaded count={len(players)}")
        return players

    # =========================================================================
    # Artwork
    # =========================================================================

    def resolve_artwork_url(
        self,
        status: RawStatus,
        config: ConnectionConfig,
        include_icon_fallback: bool = True,
    ) -> Optional[str]:
        """Resolve the artwork URL for a status payload."""
        return resolve_artwork_url(
            status.track,
            status.remote_meta,
            status.payload,
            config,
            include_icon_fallback=include_icon_fallback,
        )
