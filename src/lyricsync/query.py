"""Derive relaxed (title, artist) search queries from player metadata.

Players report titles the way the upload was named: ``Song (Official
Video)``, ``Song [4K Remaster]``, ``Song (feat. Someone)``. Lyric providers
index the bare song name, so the search falls back through progressively
cleaner variants:

  1. verbatim
  2. noise-only brackets and ``feat.`` suffixes removed
  3. every bracketed span removed from the title
"""

from __future__ import annotations

import re
from typing import Iterable

NOISE_KEYWORDS = (
    "official", "video", "lyrics", "lyric", "visualizer", "visualiser",
    "audio", "remastered", "remaster", "live", "remix", "instrumental",
    "karaoke", "version", "hd", "hq", "4k", "mv",
    "feat", "ft", "featuring",
)

# Innermost () or [] pair; an unmatched bracket never matches.
_BRACKET_RE = re.compile(r"\(([^()\[\]]*)\)|\[([^()\[\]]*)\]")
_FEAT_RE = re.compile(r"\s+(?:(?:feat|ft)(?:\.\s*|\s+)|featuring\s+).*$", re.IGNORECASE)
_SPACES_RE = re.compile(r"\s+")
_TRAILING_SEP_RE = re.compile(r"[\s\-–—|/:,]+$")


def _noise_pattern(keywords: Iterable[str]) -> re.Pattern[str]:
    words = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?<![\w])(?:{words})(?![\w])", re.IGNORECASE)


_NOISE_RE = _noise_pattern(NOISE_KEYWORDS)


def _tidy(text: str) -> str:
    text = _SPACES_RE.sub(" ", text).strip()
    return _TRAILING_SEP_RE.sub("", text)


def _strip_noise_brackets(text: str, noise: re.Pattern[str]) -> str:
    def _drop(m: re.Match[str]) -> str:
        inner = m.group(1) if m.group(1) is not None else m.group(2)
        return " " if noise.search(inner) else m.group(0)

    return _BRACKET_RE.sub(_drop, text)


def _strip_feat(text: str) -> str:
    return _FEAT_RE.sub("", text)


def _strip_all_brackets(text: str) -> str:
    # Repeat so nested spans like "(a (b) c)" unwind from the inside out.
    previous = None
    while previous != text:
        previous = text
        text = _BRACKET_RE.sub(" ", text)
    return text


def clean(title: str, artist: str, extra_keywords: Iterable[str] = ()) -> tuple[str, str]:
    """Second-tier query: drop noise brackets and featured artists."""
    extra = tuple(extra_keywords)
    noise = _noise_pattern(NOISE_KEYWORDS + extra) if extra else _NOISE_RE
    clean_title = _tidy(_strip_feat(_tidy(_strip_noise_brackets(title, noise))))
    clean_artist = _tidy(_strip_feat(_tidy(_strip_noise_brackets(artist, noise))))
    return clean_title, clean_artist


def candidates(
    title: str, artist: str, extra_keywords: Iterable[str] = ()
) -> list[tuple[str, str]]:
    """
    Ordered search queries for one track, verbatim first.

    Returns between one and three ``(title, artist)`` pairs; later tiers are
    only added when they differ from every earlier one and keep a title.
    """
    result = [(title, artist)]

    cleaned = clean(title, artist, extra_keywords)
    if cleaned[0] and cleaned not in result:
        result.append(cleaned)

    aggressive = (_tidy(_strip_all_brackets(cleaned[0])), cleaned[1])
    if aggressive[0] and aggressive not in result:
        result.append(aggressive)

    return result
