"""Test configuration for pytest."""

import sys
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

# Ensure artistmusic module is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from artistmusic.backends import MediaBackend
from artistmusic.models import Song
from artistmusic.store import ArtistStore


class FakeBackend(MediaBackend):
    """In-memory MediaBackend that records calls instead of playing audio."""

    def __init__(self):
        super().__init__()
        self.loaded = None
        self.playing = False
        self.pos = 0.0
        self.length = 0.0
        self.volume = 1.0
        self.load_ok = True
        self.calls = []

    def load(self, path):
        self.calls.append(("load", path))
        if not self.load_ok:
            return False
        self.loaded = path
        self.pos = 0.0
        return True

    def play(self):
        self.calls.append(("play",))
        self.playing = True

    def pause(self):
        self.calls.append(("pause",))
        self.playing = False

    def stop(self):
        self.calls.append(("stop",))
        self.playing = False
        self.loaded = None
        self.pos = 0.0

    def seek(self, seconds):
        self.calls.append(("seek", seconds))
        self.pos = seconds

    def position(self):
        return self.pos

    def duration(self):
        return self.length

    def set_volume(self, volume):
        self.volume = volume

    def has_media(self):
        return self.loaded is not None

    # Test helpers
    def finish(self):
        self._emit_finished()

    def fail(self, message="decode error"):
        self._emit_error(message)


@pytest.fixture(scope="session")
def qapp():
    """Create QCoreApplication instance for Qt tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv)
    yield app
    # Don't quit - other tests might need it


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Isolated library directory (also used as ARTISTMUSIC_HOME)."""
    home = tmp_path / "library"
    home.mkdir()
    monkeypatch.setenv("ARTISTMUSIC_HOME", str(home))
    return home


@pytest.fixture
def store(data_dir):
    return ArtistStore(data_dir)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_song(tmp_path):
    """Factory creating Songs backed by real (tiny) files on disk."""
    audio_dir = tmp_path / "audio"
    audio_dir.mkdir()

    def _make(title, duration=0.0, **fields):
        path = audio_dir / f"{title.replace(' ', '_')}.mp3"
        path.write_bytes(b"\x00" * 16)
        return Song.create(title=title, audio_url=str(path), duration=duration, **fields)

    return _make
