"""Value types shared by the bridge, the resolver and the engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lyricsync.config import IDLE_TITLE


class Provider(str, Enum):
    LRCLIB = "lrclib"
    NETEASE = "netease"
    MUSIXMATCH = "musixmatch"
    MEGALOBIZ = "megalobiz"

    def next(self) -> "Provider":
        members = list(Provider)
        return members[(members.index(self) + 1) % len(members)]


class EngineState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SYNCED = "synced"


@dataclass(frozen=True)
class Uri:
    """Album art addressed by URL (``file://``, ``https://``…)."""

    url: str


@dataclass(frozen=True)
class RawImage:
    """Album art handed over as encoded image bytes."""

    data: bytes

    def __repr__(self) -> str:
        return f"RawImage({len(self.data)} bytes)"


ArtRef = Uri | RawImage | None


@dataclass(frozen=True)
class SongIdentity:
    """The track the player reports. Only title and artist identify it."""

    title: str
    artist: str
    art: ArtRef = None

    def same_song(self, other: SongIdentity | None) -> bool:
        return (
            other is not None
            and self.title == other.title
            and self.artist == other.artist
        )


@dataclass(frozen=True)
class PlaybackSample:
    """Player position read at ``sample_timestamp`` (both in milliseconds)."""

    is_playing: bool
    position: int
    sample_timestamp: int
    speed: float = 1.0

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError(f"position must be >= 0, got {self.position}")
        if not self.speed > 0:
            raise ValueError(f"speed must be positive, got {self.speed}")


@dataclass(frozen=True)
class LyricLine:
    """A single timed lyric line."""

    timestamp: int  # milliseconds from track start
    text: str

    def __repr__(self) -> str:
        mins, ms = divmod(self.timestamp, 60_000)
        return f"[{mins:02d}:{ms / 1000:05.2f}] {self.text}"


@dataclass(frozen=True)
class SongMatch:
    """A provider hit that can be turned into transcript text."""

    title: str
    artist: str
    provider: Provider
    key: int | None = None  # provider record id, when it has one


@dataclass(frozen=True)
class FetchOptions:
    include_translation: bool = False
    include_romanization: bool = False
    multi_person_word_by_word: bool = False
    unsynced_fallback: bool = False
    translation_lang: str = "en"


@dataclass(frozen=True)
class SyncSnapshot:
    """Everything a renderer needs. Replaced whole, never mutated."""

    song_title: str = IDLE_TITLE
    song_artist: str = ""
    cover_art: ArtRef = None
    transcript: tuple[LyricLine, ...] = ()
    active_line_text: str = ""
    active_line_index: int = -1
    is_loading: bool = False
    is_playing: bool = False
    current_timestamp: int = 0
    lyric_offset_ms: int = 0
    state: EngineState = EngineState.IDLE
    provider: Provider = Provider.LRCLIB
    page_offset: int = 0
