import asyncio

import pytest

dbus = pytest.importorskip("dbus")

from lyricsync.bridge import PlaybackBridge  # noqa: E402
from lyricsync.media import (  # noqa: E402
    MprisObserver,
    NowPlaying,
    _friendly_name,
    is_discontinuity,
    read_properties,
)
from lyricsync.models import PlaybackSample, SongIdentity, Uri  # noqa: E402

from conftest import FakeClock  # noqa: E402


def _now_playing(**overrides):
    fields = dict(
        title="Bohemian Rhapsody",
        artist="Queen",
        album="A Night at the Opera",
        art_url="https://i.scdn.co/image/abc",
        duration_us=354_000_000,
        position_us=500_000,
        rate=1.0,
        player_name="Spotify",
        is_playing=True,
    )
    fields.update(overrides)
    return NowPlaying(**fields)


def test_friendly_name():
    assert _friendly_name("org.mpris.MediaPlayer2.spotify") == "Spotify"
    assert _friendly_name("org.mpris.MediaPlayer2.vlc.instance4242") == "Vlc"


def test_now_playing_conversions():
    info = _now_playing(position_us=-3, rate=0.0)
    assert info.song() == SongIdentity("Bohemian Rhapsody", "Queen", Uri("https://i.scdn.co/image/abc"))
    sample = info.sample(1234)
    assert sample == PlaybackSample(True, 0, 1234, 1.0)
    assert _now_playing(art_url="").song().art is None
    assert info.duration_ms == 354_000


def test_is_discontinuity():
    previous = PlaybackSample(True, 0, 1000)
    assert is_discontinuity(None, previous, 1000)
    # on schedule
    assert not is_discontinuity(previous, PlaybackSample(True, 1200, 2000), 2000)
    # seek
    assert is_discontinuity(previous, PlaybackSample(True, 30_000, 2000), 2000)
    # pause
    assert is_discontinuity(previous, PlaybackSample(False, 1000, 2000), 2000)
    # rate change
    assert is_discontinuity(previous, PlaybackSample(True, 1000, 2000, 1.5), 2000)


def test_publish_only_forwards_discontinuities():
    async def scenario():
        clock = FakeClock(10_000)
        bridge = PlaybackBridge()
        observer = MprisObserver(bridge, clock=clock)

        observer.publish(_now_playing(position_us=500_000))
        assert bridge.song.value.title == "Bohemian Rhapsody"
        assert bridge.playback.value == PlaybackSample(True, 500, 10_000)
        version = bridge.playback.version

        clock.advance(500)
        observer.publish(_now_playing(position_us=1_000_000))
        assert bridge.playback.version == version

        clock.advance(500)
        observer.publish(_now_playing(position_us=90_000_000))
        assert bridge.playback.value.position == 90_000

        clock.advance(100)
        observer.publish(_now_playing(title="Another One Bites the Dust", position_us=90_000_000))
        assert bridge.song.value.title == "Another One Bites the Dust"
        assert bridge.playback.version == version + 2

        observer.publish(None)
        assert bridge.song.value is None
        assert bridge.playback.value is None

    asyncio.run(scenario())


def test_poll_once_uses_query_and_survives_dbus_errors():
    calls = []

    def query(player_bus):
        calls.append(player_bus)
        if len(calls) > 1:
            raise dbus.exceptions.DBusException("player went away")
        return _now_playing()

    async def scenario():
        bridge = PlaybackBridge()
        observer = MprisObserver(bridge, "org.mpris.MediaPlayer2.spotify", query=query, clock=FakeClock(0))
        await observer.poll_once()
        assert bridge.song.value is not None
        await observer.poll_once()
        assert bridge.song.value is None

    asyncio.run(scenario())
    assert calls == ["org.mpris.MediaPlayer2.spotify"] * 2


def test_read_properties():
    props = {
        "Metadata": {
            "xesam:title": "Bohemian Rhapsody",
            "xesam:artist": ["Queen", "Freddie Mercury"],
            "mpris:artUrl": "file:///tmp/cover.jpg",
            "mpris:length": 354_000_000,
        },
        "PlaybackStatus": "Paused",
        "Position": 61_000_000,
    }
    info = read_properties("org.mpris.MediaPlayer2.vlc", props)
    assert info.artist == "Queen"
    assert info.player_name == "Vlc"
    assert info.rate == 1.0
    assert info.sample(5).position == 61_000
    assert not info.is_playing

    assert read_properties("org.mpris.MediaPlayer2.vlc", {"Metadata": {}}) is None
    no_artist = read_properties("x", {"Metadata": {"xesam:title": "Intro", "xesam:artist": []}})
    assert no_artist.artist == ""
