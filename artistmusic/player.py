"""Playback queue controller for ArtistMusic.

``PlaybackController`` owns the play queue and a cursor into it, drives a
single ``MediaBackend`` and publishes transport state as Qt signals so views
can bind to it.

Skip behaviour:
    skip_forward / skip_backward   manual buttons, stop at the queue ends
    play_next                      end of track, follows ``mode``
                                   (REPEAT_ALL wraps around by default)
    play_previous                  wraps around
"""

import math
import os
import random
from typing import Iterable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .backends import MediaBackend
from .errors import PlaybackError
from .logging_config import get_logger
from .models import PlaybackMode, PlaybackState, Song, strip_file_scheme

logger = get_logger(__name__)


class PlaybackController(QObject):
    currentSongChanged = Signal(object)      # Song or None
    stateChanged = Signal(object)            # PlaybackState
    positionChanged = Signal(float)          # seconds
    durationChanged = Signal(float)          # seconds
    durationResolved = Signal(object, float)  # song whose stored duration was 0, real length
    volumeChanged = Signal(float)
    queueChanged = Signal()
    errorOccurred = Signal(str)

    # Backend callbacks may arrive on other threads; these hop to ours
    _trackFinished = Signal()
    _backendError = Signal(str)

    POSITION_INTERVAL_MS = 100

    def __init__(self, backend: Optional[MediaBackend] = None, parent=None, rng=None):
        super().__init__(parent)

        if backend is None:
            from .qt_backend import QtMediaBackend
            backend = QtMediaBackend()
        self._backend = backend
        self._backend.finished_callback = self._trackFinished.emit
        self._backend.error_callback = self._backendError.emit
        self._trackFinished.connect(self._on_track_finished)
        self._backendError.connect(self._on_backend_error)

        self._queue: List[Song] = []
        self._current_index: Optional[int] = None
        self._current_song: Optional[Song] = None
        self._state = PlaybackState.STOPPED
        self._current_time = 0.0
        self._duration = 0.0
        self._duration_reported = False
        self._volume = 1.0
        self._mode = PlaybackMode.REPEAT_ALL
        self._rng = rng or random.Random()

        # Periodic time observer; replaced implicitly on every song switch
        self._position_timer = QTimer(self)
        self._position_timer.setInterval(self.POSITION_INTERVAL_MS)
        self._position_timer.timeout.connect(self._update_position)

        self._backend.set_volume(self._volume)

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------
    @property
    def queue(self) -> List[Song]:
        return list(self._queue)

    @property
    def current_index(self) -> Optional[int]:
        return self._current_index

    @property
    def current_song(self) -> Optional[Song]:
        return self._current_song

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, v: float):
        self.set_volume(v)

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    @mode.setter
    def mode(self, mode: PlaybackMode):
        self._mode = PlaybackMode(mode)

    def _set_state(self, state: PlaybackState):
        if state != self._state:
            self._state = state
            self.stateChanged.emit(state)

    def _set_position(self, seconds: float):
        self._current_time = seconds
        self.positionChanged.emit(seconds)

    def _set_duration(self, seconds: float):
        if seconds != self._duration:
            self._duration = seconds
            self.durationChanged.emit(seconds)

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------
    def _playable_path(self, song: Song) -> str:
        """Return the local file behind ``song``.

        Raises:
            PlaybackError: if the file is missing or unreadable
        """
        path = strip_file_scheme(song.audio_url)
        if not path:
            raise PlaybackError(f"'{song.title}' has no audio file")
        if not os.path.isfile(path):
            raise PlaybackError(f"Audio file not found: {path}")
        if not os.access(path, os.R_OK):
            raise PlaybackError(f"Audio file is not readable: {path}")
        return path

    def _report(self, song: Song, error: PlaybackError):
        logger.error(f"Cannot play {song.title!r}: {error}")
        self.errorOccurred.emit(str(error))

    def _start(self, song: Song, index: int, queue: Optional[List[Song]] = None) -> bool:
        """Bind and play ``song`` at ``index`` (of ``queue`` when replacing it).

        Nothing changes unless the new source was accepted by the backend.
        """
        try:
            path = self._playable_path(song)
        except PlaybackError as e:
            self._report(song, e)
            return False

        # load() replaces the previous source only when it succeeds
        if not self._backend.load(path):
            self._report(song, PlaybackError(f"Could not load {os.path.basename(path)}"))
            return False

        # Previous time observer goes with the previous source
        self._position_timer.stop()
        self._backend.set_volume(self._volume)
        self._backend.play()

        if queue is not None:
            self._queue = queue
            self.queueChanged.emit()
        self._current_index = index
        self._current_song = song
        self.currentSongChanged.emit(song)
        self._set_position(0.0)
        self._set_duration(float(song.duration or 0.0))
        self._duration_reported = bool(song.duration)
        self._set_state(PlaybackState.PLAYING)
        self._position_timer.start()

        logger.info(f"Playing {song.title!r} ({index + 1}/{len(self._queue)})")
        return True

    def play_song(self, song: Song) -> bool:
        """Play ``song`` now.

        If the song is in the queue the cursor jumps to it; otherwise the
        queue is replaced by just this song.

        Returns:
            True if playback started. On failure the previous playback is
            left untouched and ``errorOccurred`` is emitted.
        """
        index = self._index_of(song.id)
        if index is not None:
            return self._start(song, index)
        return self._start(song, 0, queue=[song])

    def set_queue(self, songs: Iterable[Song]) -> bool:
        """Replace the queue and start playing its first song.

        If the first song cannot be played the old queue and playback are
        kept. An empty queue stops playback.
        """
        songs = list(songs)
        if not songs:
            self.stop()
            if self._queue:
                self._queue = []
                self.queueChanged.emit()
            return False
        return self._start(songs[0], 0, queue=songs)

    def pause(self):
        if self._state != PlaybackState.PLAYING:
            return
        self._backend.pause()
        self._position_timer.stop()
        self._set_state(PlaybackState.PAUSED)

    def resume(self) -> bool:
        """Continue from the current position; no-op without bound media."""
        if self._current_song is None or not self._backend.has_media():
            return False
        if self._state == PlaybackState.PLAYING:
            return True
        self._backend.play()
        self._position_timer.start()
        self._set_state(PlaybackState.PLAYING)
        return True

    def toggle_play_pause(self):
        if self._state == PlaybackState.PLAYING:
            self.pause()
        else:
            self.resume()

    def _clear_current(self):
        self._position_timer.stop()
        self._current_index = None
        if self._current_song is not None:
            self._current_song = None
            self.currentSongChanged.emit(None)
        self._set_position(0.0)
        self._set_duration(0.0)
        self._set_state(PlaybackState.STOPPED)

    def stop(self):
        """Stop playback and unbind the current song (the queue is kept)."""
        self._backend.stop()
        self._clear_current()

    def seek(self, seconds: float):
        """Jump to ``seconds``, clamped to the track length.

        ``current_time`` is updated right away instead of waiting for the
        next position tick.
        """
        if self._current_song is None:
            return
        t = max(0.0, float(seconds))
        if self._duration > 0:
            t = min(t, self._duration)
        self._set_position(t)
        self._backend.seek(t)

    def seek_relative(self, delta: float):
        """Jump ``delta`` seconds forward (negative: back) within the current song."""
        if self._current_song is None:
            return
        self.seek(self._current_time + float(delta))

    def set_volume(self, v: float):
        """Set volume. Accepts 0.0-1.0 or 0-100."""
        if v is None:
            return
        v = float(v)
        if v > 1.5:  # assume 0-100
            v = max(0.0, min(100.0, v)) / 100.0
        v = max(0.0, min(1.0, v))
        self._backend.set_volume(v)
        if v != self._volume:
            self._volume = v
            self.volumeChanged.emit(v)

    # ------------------------------------------------------------------
    # Queue navigation
    # ------------------------------------------------------------------
    def skip_forward(self) -> bool:
        """Manual skip to the next song; does nothing on the last one."""
        if self._current_index is None or not self._queue:
            return False
        if self._current_index >= len(self._queue) - 1:
            logger.info("Cannot skip forward: already at the end of the queue")
            return False
        i = self._current_index + 1
        return self._start(self._queue[i], i)

    def skip_backward(self) -> bool:
        """Manual skip to the previous song; on the first one, rewind instead."""
        if self._current_index is None or not self._queue:
            return False
        if self._current_index <= 0:
            logger.info("Cannot skip backward: already at the beginning of the queue")
            self.seek(0.0)
            return False
        i = self._current_index - 1
        return self._start(self._queue[i], i)

    def _next_index(self) -> Optional[int]:
        count = len(self._queue)
        if self._current_index is None:
            return 0
        if self._mode == PlaybackMode.REPEAT_ONE:
            return self._current_index
        if self._mode == PlaybackMode.SHUFFLE:
            if count == 1:
                return 0
            others = [i for i in range(count) if i != self._current_index]
            return self._rng.choice(others)
        if self._mode == PlaybackMode.SEQUENTIAL and self._current_index >= count - 1:
            return None
        return (self._current_index + 1) % count

    def play_next(self) -> bool:
        """Advance after a track ends, according to ``mode``."""
        if not self._queue:
            return False
        i = self._next_index()
        if i is None:
            logger.info("Reached the end of the queue")
            self.stop()
            return False
        return self._start(self._queue[i], i)

    def play_previous(self) -> bool:
        if not self._queue:
            return False
        if self._current_index is None:
            i = len(self._queue) - 1
        else:
            i = (self._current_index - 1) % len(self._queue)
        return self._start(self._queue[i], i)

    # ------------------------------------------------------------------
    # Queue editing
    # ------------------------------------------------------------------
    def _index_of(self, song_id: str) -> Optional[int]:
        if (self._current_index is not None
                and self._current_index < len(self._queue)
                and self._queue[self._current_index].id == song_id):
            return self._current_index
        for i, song in enumerate(self._queue):
            if song.id == song_id:
                return i
        return None

    def enqueue(self, songs: Iterable[Song]):
        """Append songs to the end of the queue without interrupting playback."""
        added = list(songs)
        if added:
            self._queue.extend(added)
            self.queueChanged.emit()

    def move(self, source: int, destination: int) -> bool:
        """Reorder the queue; the cursor keeps pointing at the same song."""
        count = len(self._queue)
        if not (0 <= source < count) or not (0 <= destination < count) or source == destination:
            return False
        self._queue.insert(destination, self._queue.pop(source))

        cur = self._current_index
        if cur is not None:
            if cur == source:
                cur = destination
            elif source < cur <= destination:
                cur -= 1
            elif destination <= cur < source:
                cur += 1
            self._current_index = cur
        self.queueChanged.emit()
        return True

    def remove_songs(self, song_ids: Iterable[str]) -> int:
        """Drop songs from the queue, e.g. after they were deleted from the store.

        If the current song is among them playback stops and the current
        song is cleared.

        Returns:
            Number of queue entries removed
        """
        ids = set(song_ids)
        current_removed = self._current_song is not None and self._current_song.id in ids

        kept = []
        new_index = None
        for i, song in enumerate(self._queue):
            if song.id in ids:
                continue
            if i == self._current_index:
                new_index = len(kept)
            kept.append(song)
        removed = len(self._queue) - len(kept)

        if removed:
            self._queue = kept
            self._current_index = new_index
            self.queueChanged.emit()
        if current_removed:
            logger.info("Current song was removed from the library, stopping playback")
            self.stop()
        return removed

    def clear_queue(self):
        self.stop()
        if self._queue:
            self._queue = []
            self.queueChanged.emit()

    # ------------------------------------------------------------------
    # Backend events
    # ------------------------------------------------------------------
    def _update_position(self):
        if self._state != PlaybackState.PLAYING:
            return
        self._set_position(self._backend.position())

        dur = self._backend.duration()
        if dur and math.isfinite(dur) and dur > 0:
            if self._current_song is not None and not self._duration_reported:
                self._duration_reported = True
                self.durationResolved.emit(self._current_song, dur)
            self._set_duration(dur)

    def _on_track_finished(self):
        """Advance after a natural end of track, skipping unplayable songs.

        The old source has already ended, so if nothing further can be
        played the controller stops instead of staying in PLAYING.
        """
        logger.debug("Track finished")
        for _ in range(len(self._queue)):
            i = self._next_index()
            if i is None:
                break
            if self._start(self._queue[i], i):
                return
            # Move the cursor onto the failed song so the next pick skips it
            self._current_index = i
        self.stop()

    def _on_backend_error(self, message: str):
        logger.error(f"Playback error: {message}")
        self.errorOccurred.emit(message)
        self._position_timer.stop()
        self._set_state(PlaybackState.STOPPED)

    def shutdown(self):
        """Stop playback and the position timer (call before exit)."""
        self._position_timer.stop()
        self._backend.stop()
