"""Custom exceptions for lyricsync."""


class LyricSyncError(Exception):
    """Base exception for lyricsync."""
    pass


class ConfigError(LyricSyncError):
    """Invalid configuration value."""
    pass


class ProviderError(LyricSyncError):
    """A lyrics provider could not be reached or answered with an error."""
    pass
