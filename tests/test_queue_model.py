"""Unit tests for the queue table model."""

import pytest
from PySide6.QtCore import QModelIndex, Qt

from artistmusic.models import Artist
from artistmusic.player import PlaybackController
from artistmusic.queue_model import COLUMNS, QueueModel, format_time


@pytest.fixture
def controller(qapp, backend):
    c = PlaybackController(backend=backend)
    yield c
    c.shutdown()


def _text(model, row, column):
    return model.data(model.index(row, COLUMNS.index(column)), Qt.DisplayRole)


def test_format_time():
    assert format_time(0) == "0:00"
    assert format_time(59.9) == "0:59"
    assert format_time(61) == "1:01"
    assert format_time(3600) == "60:00"
    assert format_time(-5) == "0:00"
    assert format_time(None) == "0:00"


class TestQueueModel:
    """The model mirrors the controller's queue."""

    def test_rows_follow_queue(self, controller, make_song):
        model = QueueModel(controller)
        assert model.rowCount() == 0

        controller.set_queue([make_song("One", 65.0), make_song("Two", version="Live")])
        assert model.rowCount() == 2
        assert model.columnCount() == len(COLUMNS)
        assert _text(model, 0, "Title") == "One"
        assert _text(model, 0, "Duration") == "1:05"
        assert _text(model, 1, "Version") == "Live"
        assert _text(model, 1, "Duration") == ""

    def test_status_marks_current_row(self, controller, make_song):
        model = QueueModel(controller)
        controller.set_queue([make_song("One"), make_song("Two")])

        assert _text(model, 0, "Status") == "▶"
        assert _text(model, 1, "Status") == ""

        controller.pause()
        assert _text(model, 0, "Status") == "⏸"

    def test_artist_column_uses_store(self, controller, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        song = make_song("One")
        store.add_song(song, to=artist)

        model = QueueModel(controller, store=store)
        controller.set_queue([song])
        assert _text(model, 0, "Artist") == "Nova"

    def test_user_role_returns_song(self, controller, make_song):
        song = make_song("One")
        model = QueueModel(controller)
        controller.set_queue([song])
        assert model.data(model.index(0, 1), Qt.UserRole) is song

    def test_header(self, controller):
        model = QueueModel(controller)
        assert model.headerData(1, Qt.Horizontal) == "Title"
        assert model.headerData(0, Qt.Vertical) == "1"

    def test_drag_reorder_moves_controller_queue(self, controller, make_song):
        songs = [make_song("One"), make_song("Two"), make_song("Three")]
        model = QueueModel(controller)
        controller.set_queue(songs)

        # Drop row 0 below the last row
        assert model.moveRows(QModelIndex(), 0, 1, QModelIndex(), 3) is True
        assert controller.queue == [songs[1], songs[2], songs[0]]
        assert controller.current_index == 2
        assert _text(model, 2, "Title") == "One"

    def test_drop_onto_itself_is_noop(self, controller, make_song):
        model = QueueModel(controller)
        controller.set_queue([make_song("One"), make_song("Two")])
        assert model.moveRows(QModelIndex(), 0, 1, QModelIndex(), 1) is False
        assert model.moveRows(QModelIndex(), 0, 2, QModelIndex(), 2) is False
