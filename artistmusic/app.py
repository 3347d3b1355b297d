"""Application wiring for ArtistMusic.

``LibrarySession`` is the object views talk to: it owns the store, the
playback controller, the importer and the user settings, and keeps them in
step (deleted songs leave the queue, volume changes are remembered, durations
learned during playback are written back to the library).

``main`` runs a headless session: audio files given on the command line are
imported into the library and played, and the process exits when playback
stops.
"""

import sys
from pathlib import Path
from typing import Iterable, List, Optional

from PySide6.QtCore import QCoreApplication

from . import config
from .errors import ArtistMusicError
from .importer import AudioImporter
from .logging_config import configure_logging, get_logger
from .models import Artist, PlaybackState, Playlist, Song
from .player import PlaybackController
from .store import ArtistStore

logger = get_logger(__name__)


class LibrarySession:
    """Store + controller + importer for one library directory."""

    def __init__(self, data_dir: Optional[Path] = None, backend=None,
                 store: Optional[ArtistStore] = None,
                 controller: Optional[PlaybackController] = None,
                 settings: Optional[config.Settings] = None):
        self.data_dir = Path(data_dir) if data_dir else config.data_dir()
        self.settings = settings or config.Settings(self.data_dir / config.SETTINGS_FILE)
        self.store = store or ArtistStore(self.data_dir)
        self.controller = controller or PlaybackController(backend=backend)
        self.importer = AudioImporter(self.store, self.data_dir)

        self.controller.set_volume(self.settings.volume)

        self.store.on_songs_removed = self.controller.remove_songs
        self.controller.volumeChanged.connect(self._on_volume_changed)
        self.controller.durationResolved.connect(self._on_duration_resolved)
        self.controller.errorOccurred.connect(self._on_playback_error)

    # ------------------------------------------------------------------
    # Playback entry points
    # ------------------------------------------------------------------
    def play_playlist(self, playlist: Playlist) -> bool:
        """Play All: queue the playlist in its stored order."""
        current = self.store.get_playlist(playlist.id) or playlist
        if not current.songs:
            logger.info(f"Playlist {current.name!r} is empty")
            return False
        return self.controller.set_queue(current.songs)

    def play_artist(self, artist: Artist) -> bool:
        songs = self.store.songs_for_artist(artist.id)
        if not songs:
            logger.info(f"Artist {artist.name!r} has no songs")
            return False
        return self.controller.set_queue(songs)

    def play_library(self, text: str = "") -> bool:
        """Queue every library song matching ``text`` (sorted by title)."""
        songs = self.store.search_songs(text)
        if not songs:
            return False
        return self.controller.set_queue(songs)

    def import_and_play(self, paths: Iterable, artist: Optional[Artist] = None) -> List[Song]:
        """Import dropped files, then play them (auto-play) or append them to the queue."""
        songs = self.importer.import_dropped(paths, artist=artist)
        if not songs:
            return songs
        if self.settings.auto_play:
            self.controller.set_queue(songs)
        else:
            self.controller.enqueue(songs)
        return songs

    def reset_library(self):
        """Stop playback and remove everything from the library."""
        self.controller.clear_queue()
        self.store.reset_library()

    def shutdown(self):
        self.controller.shutdown()
        self.settings.save()

    # ------------------------------------------------------------------
    # Signal handlers
    # ------------------------------------------------------------------
    def _on_volume_changed(self, volume: float):
        self.settings.volume = volume
        if not self.settings.save():
            logger.warning(f"Could not save settings to {self.settings.path}")

    def _on_duration_resolved(self, song: Song, seconds: float):
        stored = self.store.get_song(song.id)
        if stored is None or stored.duration:
            return
        try:
            self.store.update_song(stored.copy(duration=seconds))
        except ArtistMusicError as e:
            logger.warning(f"Could not store duration of {song.title!r}: {e}")

    def _on_playback_error(self, message: str):
        logger.warning(f"Playback: {message}")


def main(argv=None):
    """App entry point: configure environment, import command-line files, play them."""
    argv = list(sys.argv if argv is None else argv)

    config.load_environment()
    configure_logging()

    app = QCoreApplication.instance() or QCoreApplication(argv)
    app.setApplicationName("ArtistMusic")

    session = LibrarySession()
    app.aboutToQuit.connect(session.shutdown)
    logger.info(f"Library at {session.data_dir}: {session.store!r}")

    files = argv[1:]
    if files:
        songs = session.import_and_play(files)
        logger.info(f"Imported {len(songs)} of {len(files)} file(s)")

    if not session.controller.is_playing:
        session.shutdown()
        return 0

    def _quit_when_stopped(state):
        if state == PlaybackState.STOPPED:
            app.quit()

    session.controller.stateChanged.connect(_quit_when_stopped)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
