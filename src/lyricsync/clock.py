"""Extrapolate the player position between sparse samples."""

from __future__ import annotations

import time

from lyricsync.models import PlaybackSample


def now_ms() -> int:
    """Shared millisecond clock for sample timestamps and extrapolation."""
    return time.monotonic_ns() // 1_000_000


def extrapolate(sample: PlaybackSample, now: int) -> int:
    """
    Estimate the position at *now* from a sample taken earlier.

    A paused sample is a frozen clock. A timestamp in the future (clock
    skew between producer and reader) counts as zero elapsed time.
    """
    if not sample.is_playing:
        return sample.position
    elapsed = max(0, now - sample.sample_timestamp)
    return sample.position + round(elapsed * sample.speed)
