"""Last-value-wins state shared between the player observer and the engine."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Generic, TypeVar

from lyricsync.models import PlaybackSample, SongIdentity

T = TypeVar("T")


class StateCell(Generic[T]):
    """
    Holds one value and wakes watchers when it changes.

    Setting a value equal to the current one is a no-op. Watchers only see
    the newest value: anything written between two reads is skipped. Meant
    to be used from a single event loop.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def value(self) -> T:
        return self._value

    @property
    def version(self) -> int:
        return self._version

    def set(self, value: T) -> bool:
        """Store *value*; returns False when nothing changed."""
        if value == self._value:
            return False
        self._value = value
        self._version += 1
        # Wake everyone waiting on the old event, then hand out a fresh one.
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        return True

    async def watch(self) -> AsyncIterator[T]:
        """Yield the current value, then every newer value."""
        seen = self._version
        yield self._value
        while True:
            if self._version == seen:
                await self._changed.wait()
            seen = self._version
            yield self._value


class PlaybackBridge:
    """
    The two signals a player observer publishes.

    Constructed once and passed to both the observer (the only writer) and
    the engine.
    """

    def __init__(self) -> None:
        self.song: StateCell[SongIdentity | None] = StateCell(None)
        self.playback: StateCell[PlaybackSample | None] = StateCell(None)

    def update_song(self, song: SongIdentity | None) -> None:
        self.song.set(song)

    def update_playback(self, sample: PlaybackSample | None) -> None:
        self.playback.set(sample)

    def clear(self) -> None:
        self.song.set(None)
        self.playback.set(None)
