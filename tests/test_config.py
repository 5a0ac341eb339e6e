import logging

import pytest

from lyricsync.config import validate_config
from lyricsync.exceptions import ConfigError, LyricSyncError
from lyricsync.log import setup_logging


def test_defaults_are_valid():
    validate_config()
    validate_config(tick_ms=50, poll_ms=250, provider="NetEase", log_level="debug")


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"tick_ms": 0}, "tick interval"),
        ({"poll_ms": -5}, "poll interval"),
        ({"provider": "genius"}, "Unknown provider"),
        ({"log_level": "chatty"}, "log level"),
    ],
)
def test_invalid_values_raise_config_error(kwargs, message):
    with pytest.raises(ConfigError, match=message):
        validate_config(**kwargs)


def test_config_error_is_a_lyricsync_error():
    assert issubclass(ConfigError, LyricSyncError)


def test_setup_logging_without_sinks_stays_quiet():
    logger = setup_logging("INFO")
    assert logger.level == logging.INFO
    assert not logger.propagate
    assert all(isinstance(h, logging.NullHandler) for h in logger.handlers)


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "lyricsync.log"
    logger = setup_logging("DEBUG", log_file=log_file)
    logging.getLogger("lyricsync.engine").debug("Song changed")
    for handler in logger.handlers:
        handler.flush()
        handler.close()
    logger.handlers.clear()
    assert "DEBUG: Song changed" in log_file.read_text()
