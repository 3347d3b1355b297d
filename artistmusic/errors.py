"""Exception types shared across ArtistMusic.

Nothing in the library is fatal: callers catch these, log them and keep the
previous state. They exist so failures can be reported to the user instead of
only ending up in the log.
"""


class ArtistMusicError(Exception):
    """Base class for all ArtistMusic errors."""


class ValidationError(ArtistMusicError):
    """Input rejected before any state was touched (empty title, bad type)."""


class PersistenceError(ArtistMusicError):
    """A JSON document could not be written; in-memory state was rolled back."""


class ImportFailed(ArtistMusicError):
    """A file could not be copied into managed storage."""


class PlaybackError(ArtistMusicError):
    """An audio source could not be bound to the media backend."""
