"""Follow an MPRIS2 player over the D-Bus session bus.

Player properties are polled; the observer turns each reading into a
song identity and, when playback jumped, a fresh playback sample.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Mapping

import dbus

from lyricsync.bridge import PlaybackBridge
from lyricsync.clock import extrapolate, now_ms
from lyricsync.config import POLL_MS, SEEK_TOLERANCE_MS
from lyricsync.models import PlaybackSample, SongIdentity, Uri

logger = logging.getLogger(__name__)

MPRIS_PREFIX = "org.mpris.MediaPlayer2."
MPRIS_PATH = "/org/mpris/MediaPlayer2"
PLAYER_IFACE = "org.mpris.MediaPlayer2.Player"
PROPS_IFACE = "org.freedesktop.DBus.Properties"

_INSTANCE_RE = re.compile(r"\.instance\d+$")


@dataclass
class NowPlaying:
    """One reading of a player's properties."""

    title: str
    artist: str
    album: str
    art_url: str
    duration_us: int
    position_us: int
    rate: float
    player_name: str
    is_playing: bool

    @property
    def duration_ms(self) -> int:
        return self.duration_us // 1000

    @property
    def position_ms(self) -> int:
        return max(0, self.position_us // 1000)

    def song(self) -> SongIdentity:
        return SongIdentity(
            title=self.title,
            artist=self.artist,
            art=Uri(self.art_url) if self.art_url else None,
        )

    def sample(self, timestamp: int) -> PlaybackSample:
        # Some players report Rate 0 while paused
        speed = self.rate if self.rate > 0 else 1.0
        return PlaybackSample(
            is_playing=self.is_playing,
            position=self.position_ms,
            sample_timestamp=timestamp,
            speed=speed,
        )


def _friendly_name(bus_name: str) -> str:
    """spotify / vlc / ... out of the full bus name, instance suffix dropped."""
    return _INSTANCE_RE.sub("", bus_name.removeprefix(MPRIS_PREFIX)).capitalize()


def read_properties(bus_name: str, props: Mapping) -> NowPlaying | None:
    """Build a reading from Player properties; None for a track without a title."""
    metadata = props.get("Metadata", {})
    title = str(metadata.get("xesam:title", ""))
    if not title:
        return None
    artists = metadata.get("xesam:artist") or [""]
    rate = props.get("Rate", 1.0)
    return NowPlaying(
        title=title,
        artist=str(artists[0]),
        album=str(metadata.get("xesam:album", "")),
        art_url=str(metadata.get("mpris:artUrl", "")),
        duration_us=int(metadata.get("mpris:length", 0)),
        position_us=int(props.get("Position", 0)),
        rate=float(rate),
        player_name=_friendly_name(bus_name),
        is_playing=str(props.get("PlaybackStatus", "")) == "Playing",
    )


def list_players() -> list[str]:
    """Return a list of running MPRIS2 player bus names."""
    return [str(n) for n in dbus.SessionBus().list_names() if n.startswith(MPRIS_PREFIX)]


def _read_player(bus: dbus.SessionBus, bus_name: str) -> NowPlaying | None:
    try:
        proxy = bus.get_object(bus_name, MPRIS_PATH)
        # GetAll: Rate and Position are optional and may be missing
        props = dbus.Interface(proxy, PROPS_IFACE).GetAll(PLAYER_IFACE)
    except dbus.DBusException as e:
        logger.debug("Could not query %s: %s", bus_name, e)
        return None
    return read_properties(bus_name, props)


def get_now_playing(player_bus: str | None = None) -> NowPlaying | None:
    """
    Read the track of *player_bus*, or of the best running player.

    Without a bus name, a playing player wins over a paused one; among
    equals the first listed is used.
    """
    bus = dbus.SessionBus()
    if player_bus is not None:
        return _read_player(bus, player_bus)

    fallback = None
    for name in list_players():
        info = _read_player(bus, name)
        if info is None:
            continue
        if info.is_playing:
            return info
        fallback = fallback or info
    return fallback


def is_discontinuity(
    previous: PlaybackSample | None, current: PlaybackSample, now: int
) -> bool:
    """
    True when *current* cannot be predicted from *previous*.

    Re-publishing every poll would restart the engine's tick loop for
    nothing; only play/pause, rate changes and seeks matter.
    """
    if previous is None:
        return True
    if previous.is_playing != current.is_playing or previous.speed != current.speed:
        return True
    drift = abs(extrapolate(previous, now) - current.position)
    return drift > SEEK_TOLERANCE_MS


class MprisObserver:
    """Poll an MPRIS2 player and feed the bridge."""

    def __init__(
        self,
        bridge: PlaybackBridge,
        player_bus: str | None = None,
        poll_interval: float = POLL_MS / 1000,
        query: Callable[[str | None], NowPlaying | None] = get_now_playing,
        clock: Callable[[], int] = now_ms,
    ):
        self.bridge = bridge
        self.player_bus = player_bus
        self.poll_interval = poll_interval
        self._query = query
        self._clock = clock

    def publish(self, info: NowPlaying | None) -> None:
        if info is None:
            self.bridge.clear()
            return

        song = info.song()
        previous_song = self.bridge.song.value
        self.bridge.update_song(song)

        now = self._clock()
        sample = info.sample(now)
        previous = self.bridge.playback.value
        if not song.same_song(previous_song):
            previous = None
        if is_discontinuity(previous, sample, now):
            self.bridge.update_playback(sample)

    async def poll_once(self) -> None:
        try:
            info = await asyncio.to_thread(self._query, self.player_bus)
        except dbus.DBusException as e:
            logger.warning("D-Bus query failed: %s", e)
            info = None
        self.publish(info)

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)
