"""Try relaxed queries against a lyrics service until one yields lines."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Protocol, Sequence

from lyricsync.lyrics import parse_lrc
from lyricsync.models import FetchOptions, LyricLine, Provider, SongMatch

logger = logging.getLogger(__name__)


class LyricsCapability(Protocol):
    def lookup(
        self, title: str, artist: str, page_offset: int, provider: Provider
    ) -> SongMatch | None: ...

    def fetch_transcript_text(
        self, match: SongMatch, options: FetchOptions
    ) -> str | None: ...


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    # Blocking provider clients run in a worker thread.
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)


async def resolve(
    candidates: Sequence[tuple[str, str]],
    page_offset: int,
    provider: Provider,
    service: LyricsCapability,
    options: FetchOptions = FetchOptions(),
    parse: Callable[[str], list[LyricLine]] = parse_lrc,
) -> list[LyricLine] | None:
    """
    Return the first non-empty transcript, or ``None`` when nothing matched.

    With ``page_offset > 0`` the user is paging through alternatives for the
    exact query, so only the verbatim candidate is searched.
    """
    if page_offset > 0:
        candidates = candidates[:1]

    for title, artist in candidates:
        try:
            match = await _call(service.lookup, title, artist, page_offset, provider)
            if match is None:
                logger.debug("No %s match for %r / %r", provider.value, title, artist)
                continue

            raw = await _call(service.fetch_transcript_text, match, options)
            if not raw:
                logger.debug("No lyrics text for %r / %r", match.title, match.artist)
                continue

            lines = parse(raw)
        except Exception as e:
            logger.warning(
                "Lyrics search failed for %r / %r on %s: %s",
                title, artist, provider.value, e,
            )
            continue

        if lines:
            logger.info(
                "Found %d lines for %r / %r on %s (offset %d)",
                len(lines), title, artist, provider.value, page_offset,
            )
            return lines

    return None
