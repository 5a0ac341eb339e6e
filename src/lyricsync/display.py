"""Render sync snapshots in the terminal using ANSI escape codes.

Frames are plain lists of rows. Only rows that differ from the previous
frame are rewritten, inside a synchronized-output block (?2026) so the
terminal never shows a half-drawn frame. Colours are the basic 16 so the
user's theme decides what they look like.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
import termios
import tty
from typing import Iterator, Sequence

from lyricsync.config import OFFSET_STEP_MS
from lyricsync.engine import SyncEngine
from lyricsync.models import EngineState, LyricLine, SyncSnapshot

_CSI = "\033["
_EL = f"{_CSI}K"  # erase to end of line

# SGR parameters
_RESET, _BOLD, _DIM = 0, 1, 2
_YELLOW, _BLUE, _MAGENTA, _CYAN, _WHITE = 33, 34, 35, 36, 37
_GREY, _BRIGHT_WHITE = 90, 97
_ON_BLUE = 44

# Styles for lines by distance from the active one
_FADE = (
    (_BOLD, _WHITE),
    (_WHITE,),
    (_CYAN,),
    (_BLUE,),
    (_GREY,),
    (_DIM, _GREY),
)

_REFRESH_DT = 0.05  # seconds between frames

_HELP = "r next match · p provider · +/- offset · 0 reset · q quit"


def _paint(text: str, *codes: int) -> str:
    sgr = ";".join(str(c) for c in codes)
    return f"{_CSI}{sgr}m{text}{_CSI}{_RESET}m"


def _fit(text: str, width: int) -> str:
    """Left-pad *text* so it sits in the middle of *width* columns."""
    if len(text) >= width:
        return text[:width]
    return " " * ((width - len(text)) // 2) + text


def _clock_text(ms: int) -> str:
    minutes, seconds = divmod(max(0, ms) // 1000, 60)
    return f"{minutes}:{seconds:02d}"


def _screen_size() -> tuple[int, int]:
    try:
        size = os.get_terminal_size()
    except OSError:
        return 80, 24
    return size.columns, size.lines


# ── Frames ───────────────────────────────────────────────────────────────────

def _header(snap: SyncSnapshot, w: int) -> str:
    tags = [snap.provider.value]
    if snap.page_offset:
        tags.append(f"#{snap.page_offset + 1}")
    if snap.lyric_offset_ms:
        tags.append(f"{snap.lyric_offset_ms:+d}ms")
    position = _clock_text(snap.current_timestamp)
    status = f"[{' '.join(tags)}]"

    width = len(snap.song_title) + len(snap.song_artist) + len(position) + len(status) + 7
    return (
        " " * max(0, (w - width) // 2)
        + _paint(snap.song_title, _BOLD, _MAGENTA)
        + _paint(" — ", _GREY)
        + _paint(snap.song_artist, _CYAN)
        + _paint(f"  {position}", _YELLOW)
        + _paint(f"  {status}", _GREY)
    )


def _layout(header: str, body: Sequence[str], w: int, h: int) -> list[str]:
    """Header, blank row, body, help row; padded or cut to *h* rows."""
    rows = [header, "", *body, _paint(_fit(_HELP, w), _DIM)]
    rows += [""] * (h - len(rows))
    return [row + _EL for row in rows[:h]]


def _lyrics_body(lines: Sequence[LyricLine], active: int, w: int, height: int) -> list[str]:
    # Keep the active line in the middle row; before the first line, the
    # first line takes that place.
    first = max(active, 0) - height // 2
    body = []
    for idx in range(first, first + height):
        if not 0 <= idx < len(lines):
            body.append("")
            continue
        text = lines[idx].text or "♪"
        distance = abs(idx - active) if active >= 0 else idx + 1
        if distance == 0:
            body.append(_paint(text.center(w), _BOLD, _ON_BLUE, _BRIGHT_WHITE))
        else:
            style = _FADE[min(distance - 1, len(_FADE) - 1)]
            body.append(_paint(_fit(text, w), *style))
    return body


def _message_body(message: str, w: int, height: int) -> list[str]:
    body = [""] * height
    if height > 0:
        body[height // 2] = _paint(_fit(message, w), _GREY)
    return body


def render_snapshot(snap: SyncSnapshot, w: int, h: int) -> list[str]:
    """Pick the frame for the current engine state."""
    height = max(0, h - 3)

    if snap.state is EngineState.IDLE:
        header = _paint(_fit("lyricsync", w), _GREY)
        return _layout(header, _message_body(snap.song_title, w, height), w, h)

    if snap.is_loading or not snap.transcript:
        header = _paint(
            _fit(
                f"{snap.song_title} — {snap.song_artist}  {_clock_text(snap.current_timestamp)}",
                w,
            ),
            _GREY,
        )
        if snap.is_loading:
            message = "Fetching lyrics…"
        else:
            message = snap.active_line_text or "No synced lyrics found."
        return _layout(header, _message_body(message, w, height), w, h)

    body = _lyrics_body(snap.transcript, snap.active_line_index, w, height)
    return _layout(_header(snap, w), body, w, h)


def _diff(prev: list[str], cur: list[str], force: bool = False) -> str:
    """Escape sequence that turns *prev* into *cur* on screen; '' if equal."""
    dirty = [
        f"{_CSI}{row + 1};1H{line}"
        for row, line in enumerate(cur)
        if force or row >= len(prev) or prev[row] != line
    ]
    if not dirty:
        return ""
    return "\033[?2026h" + "".join(dirty) + "\033[?2026l"


# ── Keys ─────────────────────────────────────────────────────────────────────

def handle_key(engine: SyncEngine, key: str, stop: asyncio.Event) -> None:
    snap = engine.snapshot
    if key in ("q", "Q"):
        stop.set()
    elif key == "r":
        engine.refresh()
    elif key == "p":
        engine.set_provider(snap.provider.next())
    elif key in ("+", "="):
        engine.set_lyric_offset(snap.lyric_offset_ms + OFFSET_STEP_MS)
    elif key in ("-", "_"):
        engine.set_lyric_offset(snap.lyric_offset_ms - OFFSET_STEP_MS)
    elif key == "0":
        engine.set_lyric_offset(0)


# ── Pipe mode ────────────────────────────────────────────────────────────────

async def display_pipe(engine: SyncEngine, stop: asyncio.Event, out=None) -> None:
    """Print each new active line (or status text) on its own line."""
    out = out or sys.stdout
    previous: tuple | None = None
    while not stop.is_set():
        snap = engine.snapshot
        key = (snap.song_title, snap.song_artist, snap.active_line_index, snap.active_line_text)
        if key != previous and not snap.is_loading:
            if snap.active_line_text:
                print(snap.active_line_text, file=out, flush=True)
            previous = key
        await asyncio.sleep(_REFRESH_DT)


# ── Full-screen mode ─────────────────────────────────────────────────────────

@contextlib.contextmanager
def _keyboard(fd: int) -> Iterator[bool]:
    """cbreak mode on *fd* for the duration; yields False when it is no tty."""
    try:
        saved = termios.tcgetattr(fd)
    except termios.error:
        yield False
        return
    tty.setcbreak(fd)
    try:
        yield True
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


async def display_lyrics(engine: SyncEngine, stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    out = sys.stdout
    fd = sys.stdin.fileno()
    resized = True

    def _on_resize():
        nonlocal resized
        resized = True

    def _on_key():
        for key in os.read(fd, 32).decode(errors="ignore"):
            handle_key(engine, key, stop)

    loop.add_signal_handler(signal.SIGWINCH, _on_resize)
    loop.add_signal_handler(signal.SIGINT, stop.set)
    with _keyboard(fd) as interactive:
        if interactive:
            loop.add_reader(fd, _on_key)
        out.write(f"{_CSI}?25l{_CSI}2J{_CSI}H")
        out.flush()
        shown: list[str] = []
        try:
            while not stop.is_set():
                w, h = _screen_size()
                frame = render_snapshot(engine.snapshot, w, h)
                patch = _diff(shown, frame, force=resized)
                if patch:
                    out.write(patch)
                    out.flush()
                shown, resized = frame, False
                await asyncio.sleep(_REFRESH_DT)
        finally:
            out.write(f"{_CSI}?25h{_CSI}2J{_CSI}H")
            out.flush()
            if interactive:
                loop.remove_reader(fd)
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGWINCH)
