"""Fetch synced (LRC) lyrics from LRCLIB and the syncedlyrics providers."""

from __future__ import annotations

import logging
import re
from typing import Any

import requests
import syncedlyrics

from lyricsync.config import HTTP_TIMEOUT, LRCLIB_API, USER_AGENT
from lyricsync.exceptions import ProviderError
from lyricsync.models import FetchOptions, LyricLine, Provider, SongMatch

logger = logging.getLogger(__name__)

# syncedlyrics provider names
_SYNCEDLYRICS_NAMES = {
    Provider.NETEASE: "NetEase",
    Provider.MUSIXMATCH: "Musixmatch",
    Provider.MEGALOBIZ: "Megalobiz",
}

_TAG_RE = re.compile(r"\[(\d{1,3}):(\d{1,2})(?:[.:](\d{1,3}))?\]")
_WORD_TAG_RE = re.compile(r"<\d{1,3}:\d{1,2}(?:[.:]\d{1,3})?>")
_META_RE = re.compile(r"^\[(ar|ti|al|au|by|length|offset|re|ve|#):", re.IGNORECASE)


def _tag_to_ms(minutes: str, seconds: str, frac: str | None) -> int:
    # Normalise fraction to milliseconds
    frac_str = (frac or "0").ljust(3, "0")[:3]
    return (int(minutes) * 60 + int(seconds)) * 1000 + int(frac_str)


def parse_lrc(lrc_text: str | None) -> list[LyricLine]:
    """
    Parse an LRC string into a sorted list of LyricLine objects.

    Supports ``[mm:ss.xx] text`` with optional fraction, several tags on one
    line and enhanced ``<mm:ss.xx>`` word tags (dropped). Metadata tags are
    ignored. Lines with a tag but no text are kept as instrumental gaps.
    Never raises; unusable input yields an empty list.
    """
    lines: list[LyricLine] = []
    if not lrc_text or not isinstance(lrc_text, str):
        return lines

    for raw_line in lrc_text.splitlines():
        line = raw_line.strip()
        if not line or _META_RE.match(line):
            continue

        stamps: list[int] = []
        pos = 0
        while True:
            m = _TAG_RE.match(line, pos)
            if not m:
                break
            stamps.append(_tag_to_ms(m.group(1), m.group(2), m.group(3)))
            pos = m.end()
        if not stamps:
            continue

        text = _WORD_TAG_RE.sub("", line[pos:])
        text = re.sub(r"\s+", " ", text).strip()
        for ts in stamps:
            lines.append(LyricLine(timestamp=ts, text=text))

    # sort() is stable: equal timestamps keep file order
    lines.sort(key=lambda l: l.timestamp)
    return lines


class LrcLibClient:
    """Minimal LRCLIB API client."""

    def __init__(
        self,
        base_url: str = LRCLIB_API,
        user_agent: str = USER_AGENT,
        timeout: float = HTTP_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = self.session.get(
                f"{self.base_url}{path}", params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderError(f"LRCLIB request failed: {e}") from e
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise ProviderError(f"LRCLIB answered HTTP {resp.status_code} for {path}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"LRCLIB sent invalid JSON for {path}") from e

    def search(self, title: str, artist: str) -> list[dict]:
        # GET /api/search?track_name=&artist_name=
        results = self._get("/search", {"track_name": title, "artist_name": artist})
        return results if isinstance(results, list) else []

    def get_by_id(self, record_id: int) -> dict | None:
        data = self._get(f"/get/{record_id}")
        return data if isinstance(data, dict) else None


class LyricsService:
    """
    Lookup + fetch capability used by the search resolver.

    LRCLIB returns a ranked list per query, so ``page_offset`` walks through
    alternatives. The syncedlyrics providers give one answer per query.
    """

    def __init__(self, lrclib: LrcLibClient | None = None):
        self.lrclib = lrclib or LrcLibClient()
        self._warned_romanization = False

    def lookup(
        self, title: str, artist: str, page_offset: int, provider: Provider
    ) -> SongMatch | None:
        if provider is Provider.LRCLIB:
            # Synced records first; plain-only ones only display with
            # FetchOptions.unsynced_fallback, so they page last.
            records = self.lrclib.search(title, artist)
            usable = [r for r in records if r.get("syncedLyrics")]
            usable += [r for r in records if not r.get("syncedLyrics") and r.get("plainLyrics")]
            if page_offset >= len(usable):
                logger.debug(
                    "LRCLIB: %d usable results for %r / %r, offset %d",
                    len(usable), title, artist, page_offset,
                )
                return None
            record = usable[page_offset]
            return SongMatch(
                title=str(record.get("trackName") or title),
                artist=str(record.get("artistName") or artist),
                provider=provider,
                key=record.get("id"),
            )

        if page_offset > 0:
            return None
        return SongMatch(title=title, artist=artist, provider=provider)

    def fetch_transcript_text(self, match: SongMatch, options: FetchOptions) -> str | None:
        if options.include_romanization and not self._warned_romanization:
            logger.warning("Romanized lyrics are not offered by any provider; showing originals")
            self._warned_romanization = True

        if match.provider is Provider.LRCLIB:
            if match.key is None:
                return None
            record = self.lrclib.get_by_id(match.key)
            if not record:
                return None
            synced = (record.get("syncedLyrics") or "").strip()
            if synced:
                return synced
            plain = (record.get("plainLyrics") or "").strip()
            if plain and options.unsynced_fallback:
                return _plain_as_lrc(plain)
            return None

        name = _SYNCEDLYRICS_NAMES[match.provider]
        result = syncedlyrics.search(
            f"{match.title} {match.artist}",
            providers=[name],
            synced_only=not options.unsynced_fallback,
            enhanced=options.multi_person_word_by_word,
            lang=options.translation_lang if options.include_translation else None,
        )
        if not result:
            return None
        if options.unsynced_fallback and not _TAG_RE.search(result):
            return _plain_as_lrc(result)
        return result


def _plain_as_lrc(plain: str) -> str:
    """Unsynced lyrics as one block at 00:00 so they still display."""
    text = " / ".join(l.strip() for l in plain.splitlines() if l.strip())
    return f"[00:00.00]{text}"
