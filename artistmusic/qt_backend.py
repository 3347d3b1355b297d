"""QtMultimedia implementation of ``MediaBackend``.

Wraps one ``QMediaPlayer`` + ``QAudioOutput`` pair for the lifetime of the
controller; switching songs only swaps the source.
"""

from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer

from .backends import MediaBackend
from .logging_config import get_logger

logger = get_logger(__name__)


class QtMediaBackend(MediaBackend):
    """Local-file playback through QMediaPlayer."""

    def __init__(self):
        super().__init__()
        self._audio_output = QAudioOutput()
        self._player = QMediaPlayer()
        self._player.setAudioOutput(self._audio_output)

        self._player.mediaStatusChanged.connect(self._on_media_status)
        self._player.errorOccurred.connect(self._on_player_error)

        self._audio_output.setVolume(1.0)

    def _on_media_status(self, status):
        if status == QMediaPlayer.MediaStatus.EndOfMedia:
            self._emit_finished()
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._emit_error(f"Invalid media: {self._player.source().toLocalFile()}")

    def _on_player_error(self, error, error_string):
        logger.error(f"QMediaPlayer error: {error} - {error_string}")
        self._emit_error(error_string or str(error))

    def load(self, path: str) -> bool:
        url = QUrl.fromLocalFile(str(path))
        if not url.isValid():
            logger.error(f"Cannot build a URL for {path}")
            return False
        self._player.stop()
        logger.debug(f"Loading {Path(path).name} via QMediaPlayer")
        self._player.setSource(url)
        return True

    def play(self):
        self._player.play()

    def pause(self):
        self._player.pause()

    def stop(self):
        self._player.stop()
        self._player.setSource(QUrl())

    def seek(self, seconds: float):
        self._player.setPosition(int(seconds * 1000))

    def position(self) -> float:
        return self._player.position() / 1000.0

    def duration(self) -> float:
        return max(0, self._player.duration()) / 1000.0

    def set_volume(self, volume: float):
        self._audio_output.setVolume(max(0.0, min(1.0, float(volume))))

    def has_media(self) -> bool:
        return not self._player.source().isEmpty()
