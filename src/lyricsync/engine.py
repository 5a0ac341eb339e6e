"""Keep a lyric snapshot in sync with what the player is doing.

The engine consumes the two bridge signals on their own tasks:

  * song changes start a lyrics search (cancelling any search in flight)
  * playback samples start or stop the tick loop, which extrapolates the
    position and moves the active line

Everything it knows is published as an immutable ``SyncSnapshot``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import AsyncIterator, Callable

from lyricsync.bridge import PlaybackBridge, StateCell
from lyricsync.clock import extrapolate, now_ms
from lyricsync.config import NOT_FOUND_TEXT, TICK_MS
from lyricsync.lyrics import parse_lrc
from lyricsync.models import (
    EngineState,
    FetchOptions,
    LyricLine,
    PlaybackSample,
    Provider,
    SongIdentity,
    SyncSnapshot,
)
from lyricsync.query import candidates
from lyricsync.resolver import LyricsCapability, resolve
from lyricsync.timeline import active_index

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(
        self,
        bridge: PlaybackBridge,
        service: LyricsCapability,
        provider: Provider = Provider.LRCLIB,
        options: FetchOptions = FetchOptions(),
        tick_interval: float = TICK_MS / 1000,
        clock: Callable[[], int] = now_ms,
        parse: Callable[[str], list[LyricLine]] = parse_lrc,
    ):
        self._bridge = bridge
        self._service = service
        self._provider = provider
        self._options = options
        self._tick_interval = tick_interval
        self._clock = clock
        self._parse = parse

        self._cell: StateCell[SyncSnapshot] = StateCell(SyncSnapshot(provider=provider))

        self._song: SongIdentity | None = None
        self._query: tuple[str, str] | None = None
        self._page_offset = 0
        self._last_not_found = False
        self._lyric_offset = 0

        self._fetch_task: asyncio.Task | None = None
        self._fetch_generation = 0
        self._tick_task: asyncio.Task | None = None
        self._tick_generation = 0
        self._watchers: list[asyncio.Task] = []

    # ── Published state ──────────────────────────────────────────────────────

    @property
    def snapshot(self) -> SyncSnapshot:
        return self._cell.value

    def watch(self) -> AsyncIterator[SyncSnapshot]:
        return self._cell.watch()

    def _publish(self, **changes) -> None:
        self._cell.set(replace(self._cell.value, **changes))

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start consuming the bridge. Must be awaited on the running loop."""
        if self._watchers:
            return
        self._watchers = [
            asyncio.create_task(self._watch_songs()),
            asyncio.create_task(self._watch_playback()),
        ]

    async def run(self) -> None:
        """Start and keep running until :meth:`stop` is called."""
        await self.start()
        try:
            await asyncio.gather(*self._watchers)
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        tasks = [*self._watchers, self._fetch_task, self._tick_task]
        self._watchers = []
        self._cancel_fetch()
        self._cancel_ticker()
        pending = [t for t in tasks if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _watch_songs(self) -> None:
        async for song in self._bridge.song.watch():
            self._on_song(song)

    async def _watch_playback(self) -> None:
        async for sample in self._bridge.playback.watch():
            self._on_playback(sample)

    # ── User operations ──────────────────────────────────────────────────────

    def refresh(self) -> None:
        """Search again, moving on to the next alternative result."""
        if self._song is None:
            logger.debug("Refresh ignored: no song")
            return
        if self._last_not_found:
            self._page_offset = 0
        else:
            self._page_offset += 1
        self._start_fetch()

    def set_query(self, title: str, artist: str) -> None:
        """Search with a hand-edited title and artist."""
        if self._song is None:
            logger.debug("Query ignored: no song")
            return
        self._query = (title, artist)
        self._page_offset = 0
        self._start_fetch()

    def set_provider(self, provider: Provider | str) -> None:
        try:
            provider = Provider(provider)
        except ValueError:
            logger.warning("Unknown provider %r", provider)
            return
        if provider is self._provider:
            return
        self._provider = provider
        self._publish(provider=provider)
        if self._song is not None:
            self._page_offset = 0
            self._start_fetch()

    def set_lyric_offset(self, offset_ms: int) -> None:
        """Shift the lyrics; a positive offset shows each line later."""
        self._lyric_offset = int(offset_ms)
        self._publish(lyric_offset_ms=self._lyric_offset)
        self._update_position(self._position())

    # ── Song changes and searching ───────────────────────────────────────────

    def _on_song(self, song: SongIdentity | None) -> None:
        if song is None:
            self._song = None
            self._query = None
            self._cancel_fetch()
            self._cancel_ticker()
            self._cell.set(SyncSnapshot(provider=self._provider))
            logger.info("No song, engine idle")
            return

        if song.same_song(self._song):
            self._song = song
            if self.snapshot.cover_art != song.art:
                self._publish(cover_art=song.art)
            return

        logger.info("Song changed: %r by %r", song.title, song.artist)
        self._song = song
        self._query = (song.title, song.artist)
        self._page_offset = 0
        self._lyric_offset = 0
        self._last_not_found = False
        sample = self._bridge.playback.value
        self._cell.set(
            SyncSnapshot(
                song_title=song.title,
                song_artist=song.artist,
                cover_art=song.art,
                is_playing=bool(sample and sample.is_playing),
                current_timestamp=self._position(),
                provider=self._provider,
            )
        )
        self._start_fetch()
        if sample is not None and sample.is_playing and not self._ticking():
            self._start_ticker()

    def _cancel_fetch(self) -> None:
        self._fetch_generation += 1
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None

    def _start_fetch(self) -> None:
        self._cancel_fetch()
        generation = self._fetch_generation
        title, artist = self._query
        self._publish(
            state=EngineState.FETCHING,
            is_loading=True,
            transcript=(),
            active_line_index=-1,
            active_line_text="",
            page_offset=self._page_offset,
        )
        self._fetch_task = asyncio.create_task(
            self._fetch(generation, title, artist, self._page_offset, self._provider)
        )

    async def _fetch(
        self, generation: int, title: str, artist: str, page_offset: int, provider: Provider
    ) -> None:
        try:
            lines = await resolve(
                candidates(title, artist),
                page_offset,
                provider,
                self._service,
                self._options,
                self._parse,
            )
        except Exception:
            logger.exception("Lyrics search crashed for %r / %r", title, artist)
            lines = None

        if generation != self._fetch_generation:
            # superseded while the search was running
            return

        if not lines:
            self._last_not_found = True
            self._publish(
                state=EngineState.SYNCED,
                is_loading=False,
                transcript=(),
                active_line_index=-1,
                active_line_text=NOT_FOUND_TEXT,
            )
            return

        self._last_not_found = False
        transcript = tuple(lines)
        position = self._position()
        index = active_index(transcript, position, self._lyric_offset)
        self._publish(
            state=EngineState.SYNCED,
            is_loading=False,
            transcript=transcript,
            active_line_index=index,
            active_line_text=transcript[index].text if index >= 0 else "",
            current_timestamp=position,
        )

    # ── Playback and the tick loop ───────────────────────────────────────────

    def _position(self) -> int:
        sample = self._bridge.playback.value
        if sample is None:
            return self.snapshot.current_timestamp
        return extrapolate(sample, self._clock())

    def _on_playback(self, sample: PlaybackSample | None) -> None:
        if self._song is None:
            # idle keeps the default snapshot; _on_song starts the ticker
            self._cancel_ticker()
            return
        if sample is None:
            self._cancel_ticker()
            self._publish(is_playing=False)
            return

        self._publish(is_playing=sample.is_playing)
        if sample.is_playing:
            self._start_ticker()
        else:
            self._cancel_ticker()
            # land on the exact paused line
            self._update_position(sample.position)

    def _ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def _cancel_ticker(self) -> None:
        self._tick_generation += 1
        if self._tick_task is not None and not self._tick_task.done():
            self._tick_task.cancel()
        self._tick_task = None

    def _start_ticker(self) -> None:
        self._cancel_ticker()
        self._tick_task = asyncio.create_task(self._tick_loop(self._tick_generation))

    async def _tick_loop(self, generation: int) -> None:
        while generation == self._tick_generation:
            sample = self._bridge.playback.value
            if sample is None or not sample.is_playing:
                break
            self._update_position(extrapolate(sample, self._clock()), generation)
            await asyncio.sleep(self._tick_interval)

    def _update_position(self, position: int, generation: int | None = None) -> None:
        if generation is not None and generation != self._tick_generation:
            return
        snap = self.snapshot
        changes: dict = {"current_timestamp": position}
        if snap.transcript:
            index = active_index(snap.transcript, position, self._lyric_offset)
            if index != snap.active_line_index:
                changes["active_line_index"] = index
                changes["active_line_text"] = snap.transcript[index].text if index >= 0 else ""
        self._publish(**changes)
