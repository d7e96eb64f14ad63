"""
Artwork URL resolution.

LMS exposes cover art in several ways depending on the source: an explicit
artwork URL (absolute or server-relative), a cover/artwork track id served
from `/music/<id>/cover.jpg`, the "current track" cover endpoint, or a
plugin icon. Artwork URLs are fetched by the desktop without custom headers,
so when credential sharing is enabled the server credentials are embedded as
URL user-info instead.
"""

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from lyrion_mpris.config import ConnectionConfig

logger = logging.getLogger(__name__)

# Explicit artwork fields, in precedence order
ARTWORK_URL_FIELD = "artwork_url"
ICON_FIELD = "icon"

# Artwork id fields, in precedence order
ARTWORK_ID_FIELDS = ("artwork_track_id", "coverid")

# Values meaning "no artwork"
NO_ARTWORK_IDS = (0, "0")

DEFAULT_PORTS = {"http": 80, "https": 443}


def build_auth_segment(username: str, password: str) -> str:
    """
    Build the URL user-info segment for the given credentials.

    Either part may be empty: `user@`, `:pass@` or `user:pass@`.
    """
    if not username and not password:
        return ""
    safe_user = quote(username, safe="")
    safe_pass = quote(password, safe="")
    separator = ":" if (not username or password) else ""
    return f"{safe_user}{separator}{safe_pass}@"


def artwork_base_url(config: ConnectionConfig) -> str:
    """Server base URL for artwork, with user-info when sharing is enabled."""
    if not config.allow_artwork_credentials:
        return config.base_url
    auth = build_auth_segment(config.username, config.password)
    if not auth:
        return config.base_url
    return f"{config.scheme}://{auth}{config.host}:{config.port}"


def _explicit_artwork_url(
    sources: tuple[Optional[Mapping[str, Any]], ...],
    field_name: str,
    config: ConnectionConfig,
) -> Optional[str]:
    """Normalize the first non-empty string found in `field_name`."""
    base_url = config.base_url
    base_with_auth = artwork_base_url(config)

    for source in sources:
        if not source:
            continue
        candidate = source.get(field_name)
        if not isinstance(candidate, str) or not candidate:
            continue
        if candidate.startswith(("http://", "https://")):
            # Re-attach credentials only for our own server
            if base_with_auth != base_url and is_server_url(candidate, config):
                parts = urlsplit(candidate)
                auth = build_auth_segment(config.username, config.password)
                return urlunsplit(parts._replace(netloc=f"{auth}{parts.netloc}"))
            return candidate
        return f"{base_with_auth}/{candidate.lstrip('/')}"

    return None


def is_server_url(url: str, config: ConnectionConfig) -> bool:
    """Check `url` points at the configured server (scheme, host and port)."""
    parts = urlsplit(url)
    try:
        port = parts.port or DEFAULT_PORTS.get(parts.scheme)
    except ValueError:
        return False
    return (
        parts.scheme == config.scheme
        and parts.hostname == config.host.lower()
        and port == config.port
        and parts.username is None
    )


def _artwork_id(
    track: Optional[Mapping[str, Any]],
    remote_meta: Optional[Mapping[str, Any]],
    status: Optional[Mapping[str, Any]],
) -> Optional[Any]:
    """Find the first artwork id that isn't the "no artwork" sentinel."""
    for field_name in ARTWORK_ID_FIELDS:
        for source in (track, status, remote_meta):
            if not source:
                continue
            value = source.get(field_name)
            if value is None or value in NO_ARTWORK_IDS or value == "":
                continue
            return value
    return None


def is_stream_artwork_id(artwork_id: Any) -> bool:
    """Negative ids are placeholders for remote streams, not real covers."""
    try:
        return float(artwork_id) < 0
    except (TypeError, ValueError):
        return False


def build_cover_url(artwork_id: Any, config: ConnectionConfig) -> Optional[str]:
    """Build the `/music/<id>/cover.jpg` URL for a cover id."""
    if not config.player_id:
        return None
    safe_artwork = quote(str(artwork_id), safe="")
    safe_player = quote(config.player_id, safe="")
    return f"{artwork_base_url(config)}/music/{safe_artwork}/cover.jpg?player={safe_player}"


def build_current_cover_url(config: ConnectionConfig) -> Optional[str]:
    """Build the "now playing" cover URL, keyed only by player id."""
    if not config.player_id:
        return None
    safe_player = quote(config.player_id, safe="")
    return f"{artwork_base_url(config)}/music/current/cover.jpg?player={safe_player}"


def resolve_artwork_url(
    track: Optional[Mapping[str, Any]],
    remote_meta: Optional[Mapping[str, Any]],
    status: Optional[Mapping[str, Any]],
    config: ConnectionConfig,
    include_icon_fallback: bool = True,
) -> Optional[str]:
    """
    Resolve the best artwork URL for the current track.

    Precedence:
    1. Explicit `artwork_url` on track, remote metadata or status
    2. Artwork/cover id, unless it is a negative stream placeholder
    3. The player's "current cover" endpoint
    4. Plugin icons (only if include_icon_fallback)

    Args:
        track: Current track block
        remote_meta: Remote stream metadata block
        status: Top-level status fields
        config: Connection snapshot
        include_icon_fallback: Allow icon fields as a last resort

    Returns:
        Artwork URL, or None if nothing resolves
    """
    url = _explicit_artwork_url((track, remote_meta, status), ARTWORK_URL_FIELD, config)
    if url:
        return url

    artwork_id = _artwork_id(track, remote_meta, status)
    if artwork_id is not None and not is_stream_artwork_id(artwork_id):
        url = build_cover_url(artwork_id, config)
        if url:
            return url

    url = build_current_cover_url(config)
    if url:
        return url

    if include_icon_fallback:
        return _explicit_artwork_url((remote_meta, status), ICON_FIELD, config)

    return None
