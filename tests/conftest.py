"""Test configuration and fixtures.

Provides reusable fixtures for:
- A manual millisecond clock
- An in-memory lyrics service with optional gates to hold a search open
- Polling until the engine reaches a condition
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from lyricsync.models import FetchOptions, Provider, SongMatch

BOHEMIAN_LRC = "[00:00.00]Is this the real life?\n[00:01.00]Is this just fantasy?\n[00:02.00]Caught in a landslide\n"


class FakeClock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeService:
    """
    Async lookup/fetch backed by a dict.

    ``texts[(title, artist)]`` is a list of LRC strings, one per result page.
    A title listed in ``gates`` blocks its lookup until the gate is set.
    """

    def __init__(self, texts: Optional[Dict[Tuple[str, str], List[str]]] = None):
        self.texts = texts or {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.lookups: List[Tuple[str, str, int, Provider]] = []
        self.fetches: List[SongMatch] = []
        self.fail_titles: set = set()

    async def lookup(self, title, artist, page_offset, provider):
        self.lookups.append((title, artist, page_offset, provider))
        gate = self.gates.get(title)
        if gate is not None:
            await gate.wait()
        if title in self.fail_titles:
            raise RuntimeError("connection reset")
        pages = self.texts.get((title, artist), [])
        if page_offset >= len(pages):
            return None
        return SongMatch(title=title, artist=artist, provider=provider, key=page_offset)

    async def fetch_transcript_text(self, match: SongMatch, options: FetchOptions):
        self.fetches.append(match)
        return self.texts[(match.title, match.artist)][match.key]


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def clock():
    return FakeClock(10_000)


@pytest.fixture
def service():
    return FakeService({("Bohemian Rhapsody", "Queen"): [BOHEMIAN_LRC]})


@pytest.fixture
def wait_for():
    return _wait_for
