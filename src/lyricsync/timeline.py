"""Map a playback position to the lyric line being sung."""

from __future__ import annotations

import math
import re
from typing import Sequence

from lyricsync.models import LyricLine

_TS_STR_RE = re.compile(r"^\[?(\d+):(\d{1,2})(?:[.:](\d{1,3}))?\]?$")


def _timestamp_ms(line: LyricLine) -> int | None:
    """Line timestamp in ms, or ``None`` when it cannot be read."""
    ts = getattr(line, "timestamp", None)
    if isinstance(ts, bool):
        return None
    if isinstance(ts, int):
        return ts
    if isinstance(ts, float):
        return int(ts) if math.isfinite(ts) else None
    if isinstance(ts, str):
        m = _TS_STR_RE.match(ts.strip())
        if not m:
            return None
        frac = (m.group(3) or "0").ljust(3, "0")
        return (int(m.group(1)) * 60 + int(m.group(2))) * 1000 + int(frac)
    return None


def active_index(
    transcript: Sequence[LyricLine], position_ms: int, offset_ms: int = 0
) -> int:
    """
    Index of the last line whose timestamp is at or before the position.

    A positive *offset_ms* delays the lyrics. Returns -1 for an empty
    transcript or a position before the first line. Lines with unreadable
    timestamps never match.
    """
    effective = position_ms - offset_ms
    for idx in range(len(transcript) - 1, -1, -1):
        ts = _timestamp_ms(transcript[idx])
        if ts is not None and ts <= effective:
            return idx
    return -1
