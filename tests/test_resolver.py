import asyncio

from lyricsync.models import FetchOptions, LyricLine, Provider, SongMatch
from lyricsync.query import candidates
from lyricsync.resolver import resolve

from conftest import FakeService


def _run(coro):
    return asyncio.run(coro)


def test_first_successful_candidate_wins():
    service = FakeService({
        ("Song", "Band"): ["[00:01.00]clean hit"],
        ("Song (Official Video)", "Band"): [],
    })
    cands = candidates("Song (Official Video)", "Band")

    lines = _run(resolve(cands, 0, Provider.LRCLIB, service))

    assert lines == [LyricLine(1000, "clean hit")]
    assert [l[0] for l in service.lookups] == ["Song (Official Video)", "Song"]


def test_later_candidates_not_tried_after_hit():
    service = FakeService({
        ("Song (Live)", "Band"): ["[00:01.00]verbatim"],
        ("Song", "Band"): ["[00:01.00]clean"],
    })
    lines = _run(resolve(candidates("Song (Live)", "Band"), 0, Provider.LRCLIB, service))
    assert lines[0].text == "verbatim"
    assert len(service.lookups) == 1


def test_paging_only_uses_verbatim_candidate():
    service = FakeService({("Song", "Band"): ["[00:01.00]a", "[00:01.00]b"]})
    cands = candidates("Song (Official Video)", "Band")
    assert len(cands) > 1

    lines = _run(resolve(cands, 1, Provider.LRCLIB, service))

    assert lines is None
    assert service.lookups == [("Song (Official Video)", "Band", 1, Provider.LRCLIB)]


def test_failures_advance_to_next_candidate():
    service = FakeService({("Song", "Band"): ["[00:01.00]ok"]})
    service.fail_titles.add("Song [HD]")

    lines = _run(resolve(candidates("Song [HD]", "Band"), 0, Provider.LRCLIB, service))
    assert lines == [LyricLine(1000, "ok")]


def test_unparseable_text_counts_as_not_found():
    service = FakeService({
        ("Song [HD]", "Band"): ["plain words, no tags"],
        ("Song", "Band"): ["[00:02.00]tagged"],
    })
    lines = _run(resolve(candidates("Song [HD]", "Band"), 0, Provider.LRCLIB, service))
    assert lines == [LyricLine(2000, "tagged")]


def test_exhausted_candidates_return_none():
    service = FakeService()
    assert _run(resolve(candidates("Song (Audio)", "Band"), 0, Provider.LRCLIB, service)) is None
    assert len(service.lookups) == 2


class BlockingService:
    """Plain (non-async) capability, like the real provider clients."""

    def __init__(self):
        self.calls = []

    def lookup(self, title, artist, page_offset, provider):
        self.calls.append(("lookup", title))
        return SongMatch(title, artist, provider, key=1)

    def fetch_transcript_text(self, match, options):
        self.calls.append(("fetch", match.title))
        if options.include_translation:
            raise ConnectionError("translation endpoint down")
        return "[00:00.10]threaded"


def test_plain_functions_run_in_threads():
    service = BlockingService()
    lines = _run(resolve([("Song", "Band")], 0, Provider.NETEASE, service))
    assert lines == [LyricLine(100, "threaded")]
    assert service.calls == [("lookup", "Song"), ("fetch", "Song")]


def test_fetch_exception_is_not_fatal():
    service = BlockingService()
    options = FetchOptions(include_translation=True)
    assert _run(resolve([("Song", "Band")], 0, Provider.NETEASE, service, options)) is None
