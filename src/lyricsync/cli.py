"""CLI entry point for lyricsync."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from pathlib import Path

from lyricsync import config
from lyricsync.bridge import PlaybackBridge
from lyricsync.display import display_lyrics, display_pipe
from lyricsync.engine import SyncEngine
from lyricsync.exceptions import ConfigError
from lyricsync.log import setup_logging
from lyricsync.lyrics import LyricsService
from lyricsync.media import MprisObserver, list_players
from lyricsync.models import FetchOptions, Provider

logger = logging.getLogger(__name__)

_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lyricsync",
        description="Display synced lyrics in the terminal for the currently playing song.",
    )
    parser.add_argument(
        "--player",
        type=str,
        default=None,
        help="MPRIS2 bus name of the player to use (e.g. org.mpris.MediaPlayer2.spotify)",
    )
    parser.add_argument(
        "--list-players",
        action="store_true",
        help="List available MPRIS2 players and exit.",
    )
    parser.add_argument(
        "--pipe",
        action="store_true",
        help="Plain text mode: output only the current lyric line to stdout (pipeable).",
    )
    parser.add_argument(
        "--provider",
        type=str.lower,
        default=config.DEFAULT_PROVIDER,
        choices=[p.value for p in Provider],
        help="Lyrics provider to search first (default: %(default)s).",
    )
    parser.add_argument(
        "--tick-ms",
        type=int,
        default=config.TICK_MS,
        metavar="MS",
        help="Interval between line re-evaluations (default: %(default)s).",
    )
    parser.add_argument("--translation", action="store_true", help="Ask for translated lyrics.")
    parser.add_argument(
        "--romanization",
        action="store_true",
        help="Ask for romanized lyrics (no provider offers them; a warning is logged).",
    )
    parser.add_argument(
        "--word-by-word",
        action="store_true",
        help="Prefer word-by-word (enhanced LRC) lyrics for multi-singer tracks.",
    )
    parser.add_argument(
        "--unsynced-fallback",
        action="store_true",
        help="Show unsynced lyrics when no synced ones exist.",
    )
    parser.add_argument("--log-level", type=str, default=config.LOG_LEVEL)
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


async def _run(args: argparse.Namespace) -> None:
    bridge = PlaybackBridge()
    options = FetchOptions(
        include_translation=args.translation,
        include_romanization=args.romanization,
        multi_person_word_by_word=args.word_by_word,
        unsynced_fallback=args.unsynced_fallback,
        translation_lang=config.TRANSLATION_LANG,
    )
    engine = SyncEngine(
        bridge,
        LyricsService(),
        provider=Provider(args.provider),
        options=options,
        tick_interval=args.tick_ms / 1000,
    )
    observer = MprisObserver(bridge, args.player)
    logger.debug("Starting on %s with provider %s", args.player or "any player", args.provider)
    stop = asyncio.Event()

    await engine.start()
    observer_task = asyncio.create_task(observer.run())
    try:
        if args.pipe:
            await display_pipe(engine, stop)
        else:
            await display_lyrics(engine, stop)
    finally:
        observer_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await observer_task
        await engine.stop()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config.validate_config(
            tick_ms=args.tick_ms, provider=args.provider, log_level=args.log_level
        )
    except ConfigError as e:
        print(f"lyricsync: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(args.log_level, log_file=args.log_file, console=args.pipe)

    if args.list_players:
        players = list_players()
        if not players:
            print("No MPRIS2 players found.")
        else:
            print(f"{_BOLD}Available players:{_RESET}")
            for p in players:
                print(f"  • {p}")
        return

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass
    if not args.pipe:
        print(f"{_DIM}Bye!{_RESET}")


if __name__ == "__main__":
    main()
