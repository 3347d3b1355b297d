"""Locations and user settings for ArtistMusic.

All persistent state lives in one per-user data directory:

    <data dir>/
        artists.json, songs.json, playlists.json, collaborators.json
        settings.json
        artistmusic.log
        AudioFiles/  ArtistAudio/  ArtistArtworks/  SongArtworks/  PlaylistArtworks/

``ARTISTMUSIC_HOME`` (environment or ``.env``) overrides the location.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

# Managed storage folders (created on demand by the importer)
AUDIO_FOLDER = "AudioFiles"
ARTIST_AUDIO_FOLDER = "ArtistAudio"
ARTIST_ARTWORK_FOLDER = "ArtistArtworks"
SONG_ARTWORK_FOLDER = "SongArtworks"
PLAYLIST_ARTWORK_FOLDER = "PlaylistArtworks"

MANAGED_FOLDERS = (
    AUDIO_FOLDER,
    ARTIST_AUDIO_FOLDER,
    ARTIST_ARTWORK_FOLDER,
    SONG_ARTWORK_FOLDER,
    PLAYLIST_ARTWORK_FOLDER,
)

SETTINGS_FILE = "settings.json"


def load_environment(path: Optional[os.PathLike | str] = None) -> bool:
    """Load a ``.env`` file into ``os.environ``.

    ``path`` defaults to the nearest ``.env`` above the working directory.
    Variables already set in the environment win. Returns True when a file
    was loaded; read errors propagate.
    """
    dotenv_path = str(path) if path else find_dotenv(usecwd=True)
    if not dotenv_path:
        return False
    return load_dotenv(dotenv_path=dotenv_path)


def _config_dir() -> Path:
    override = os.getenv("ARTISTMUSIC_HOME")
    if override:
        base = Path(os.path.expanduser(override))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / "ArtistMusic"
    elif os.name == "nt":
        base = Path(os.path.expanduser(os.getenv("APPDATA", "~"))) / "ArtistMusic"
    else:
        base = Path.home() / ".config" / "artistmusic"
    base.mkdir(parents=True, exist_ok=True)
    return base


def data_dir() -> Path:
    """Return the per-user data directory (created if missing)."""
    return _config_dir()


class Settings:
    """Small set of user preferences persisted next to the library.

    Attributes:
        auto_play: Start playing imported/queued songs immediately
        show_artwork: Whether views should render artwork
        volume: Last used playback volume (0.0-1.0)
    """

    DEFAULTS = {
        "auto_play": True,
        "show_artwork": True,
        "volume": 1.0,
    }

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else data_dir() / SETTINGS_FILE
        self.auto_play = self.DEFAULTS["auto_play"]
        self.show_artwork = self.DEFAULTS["show_artwork"]
        self.volume = self.DEFAULTS["volume"]
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            # Corrupt settings are not worth failing startup over
            return
        if not isinstance(data, dict):
            return
        self.auto_play = bool(data.get("auto_play", self.auto_play))
        self.show_artwork = bool(data.get("show_artwork", self.show_artwork))
        try:
            self.volume = max(0.0, min(1.0, float(data.get("volume", self.volume))))
        except (TypeError, ValueError):
            pass

    def to_dict(self) -> dict:
        return {
            "auto_play": self.auto_play,
            "show_artwork": self.show_artwork,
            "volume": self.volume,
        }

    def save(self) -> bool:
        """Write settings to disk.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
            return True
        except OSError:
            return False
