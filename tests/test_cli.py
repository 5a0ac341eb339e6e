import pytest

pytest.importorskip("dbus")

from lyricsync import cli  # noqa: E402


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.player is None
    assert not args.pipe
    assert args.provider == "lrclib"
    assert args.tick_ms == 200
    assert not args.translation
    assert not args.unsynced_fallback


def test_provider_is_case_insensitive():
    args = cli.build_parser().parse_args(["--provider", "MusixMatch"])
    assert args.provider == "musixmatch"


def test_unknown_provider_is_rejected():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--provider", "genius"])


def test_bad_tick_interval_exits_with_usage_error(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--tick-ms", "0"])
    assert exc.value.code == 2
    assert "tick interval" in capsys.readouterr().err


def test_list_players(monkeypatch, capsys):
    monkeypatch.setattr(cli, "list_players", lambda: ["org.mpris.MediaPlayer2.spotify"])
    cli.main(["--list-players"])
    assert "org.mpris.MediaPlayer2.spotify" in capsys.readouterr().out


def test_list_players_none_found(monkeypatch, capsys):
    monkeypatch.setattr(cli, "list_players", lambda: [])
    cli.main(["--list-players"])
    assert "No MPRIS2 players found." in capsys.readouterr().out
