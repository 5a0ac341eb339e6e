"""Configuration settings for lyricsync."""

from __future__ import annotations

import logging
import os

from lyricsync.exceptions import ConfigError

# Engine timing (can be overridden via environment variables)
TICK_MS = int(os.getenv("LYRICSYNC_TICK_MS", "200"))
POLL_MS = int(os.getenv("LYRICSYNC_POLL_MS", "500"))

# A fresh sample is published when the player position drifts this far
# from the extrapolated one (seek detection).
SEEK_TOLERANCE_MS = 1000

# Lyric offset step for the +/- keys
OFFSET_STEP_MS = 250

# Providers
DEFAULT_PROVIDER = os.getenv("LYRICSYNC_PROVIDER", "lrclib")
TRANSLATION_LANG = os.getenv("LYRICSYNC_TRANSLATION_LANG", "en")
LRCLIB_API = os.getenv("LYRICSYNC_LRCLIB_URL", "https://lrclib.net/api")
USER_AGENT = "lyricsync/1.0.0 (https://github.com/lyricsync)"
HTTP_TIMEOUT = float(os.getenv("LYRICSYNC_HTTP_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("LYRICSYNC_LOG_LEVEL", "WARNING")

# Snapshot texts
IDLE_TITLE = "Listening for music..."
NOT_FOUND_TEXT = "Song not found."


def validate_config(
    tick_ms: int | None = None,
    poll_ms: int | None = None,
    provider: str | None = None,
    log_level: str | None = None,
) -> None:
    """Validate configuration values, falling back to the module defaults."""
    from lyricsync.models import Provider

    tick_ms = TICK_MS if tick_ms is None else tick_ms
    poll_ms = POLL_MS if poll_ms is None else poll_ms
    provider = DEFAULT_PROVIDER if provider is None else provider
    log_level = LOG_LEVEL if log_level is None else log_level

    if tick_ms <= 0:
        raise ConfigError(f"Invalid tick interval: {tick_ms} ms")

    if poll_ms <= 0:
        raise ConfigError(f"Invalid poll interval: {poll_ms} ms")

    if HTTP_TIMEOUT <= 0:
        raise ConfigError("Invalid HTTP timeout")

    try:
        Provider(provider.lower())
    except ValueError:
        raise ConfigError(
            f"Unknown provider: {provider}. "
            f"Use one of: {', '.join(p.value for p in Provider)}"
        ) from None

    if not isinstance(logging.getLevelName(log_level.upper()), int):
        raise ConfigError(f"Invalid log level: {log_level}")
