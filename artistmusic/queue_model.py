from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from .logging_config import get_logger
from .models import PlaybackState

logger = get_logger(__name__)

COLUMNS = [
    "Status",      # Play status indicator
    "Title",
    "Version",
    "Artist",
    "Duration",
]

STATUS_COL, TITLE_COL, VERSION_COL, ARTIST_COL, DURATION_COL = range(len(COLUMNS))


def format_time(seconds) -> str:
    """Format seconds as ``m:ss`` (``0:00`` for unknown/negative values)."""
    try:
        total = int(float(seconds))
    except (TypeError, ValueError):
        return "0:00"
    if total < 0:
        total = 0
    return f"{total // 60}:{total % 60:02d}"


class QueueModel(QAbstractTableModel):
    """Table view of a ``PlaybackController``'s queue.

    The controller owns the queue; this model only mirrors it and forwards
    drag-reorders back through ``PlaybackController.move``.
    """

    def __init__(self, controller, store=None, parent=None):
        super().__init__(parent)
        self._controller = controller
        self._store = store  # optional, used to resolve artist names
        self._songs = controller.queue
        self._moving = False

        controller.queueChanged.connect(self._on_queue_changed)
        controller.currentSongChanged.connect(self._on_current_changed)
        controller.stateChanged.connect(self._on_current_changed)

    # --- Qt model API ---
    def rowCount(self, parent=QModelIndex()):
        if parent.isValid():
            return 0
        return len(self._songs)

    def columnCount(self, parent=QModelIndex()):
        return len(COLUMNS)

    def _artist_name(self, song) -> str:
        if not song.artist_id or self._store is None:
            return ""
        artist = self._store.get_artist(song.artist_id)
        return artist.name if artist else ""

    def _status(self, row: int) -> str:
        if row != self._controller.current_index:
            return ""
        state = self._controller.state
        if state == PlaybackState.PLAYING:
            return "▶"
        if state == PlaybackState.PAUSED:
            return "⏸"
        return ""

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid() or not (0 <= index.row() < len(self._songs)):
            return None

        song = self._songs[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == STATUS_COL:
                return self._status(index.row())
            elif col == TITLE_COL:
                return song.title
            elif col == VERSION_COL:
                return song.version or ""
            elif col == ARTIST_COL:
                return self._artist_name(song)
            elif col == DURATION_COL:
                return format_time(song.duration) if song.duration else ""

        # UserRole returns the song itself (for internal use)
        elif role == Qt.UserRole:
            return song

        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return COLUMNS[section]
        return str(section + 1)

    def flags(self, index):
        default = super().flags(index)
        return default | Qt.ItemIsDragEnabled | Qt.ItemIsDropEnabled

    def supportedDropActions(self):
        return Qt.MoveAction

    def moveRows(self, sourceParent, sourceRow, count, destinationParent, destinationChild):
        """Move one row to reorder the queue via drag & drop.

        destinationChild is the row the item is dropped in front of, as Qt
        reports it (so moving down is offset by one).
        """
        total = len(self._songs)
        if count != 1:
            logger.warning(f"moveRows: only single-row moves are supported (count={count})")
            return False
        if sourceRow < 0 or sourceRow >= total:
            logger.warning(f"moveRows: invalid sourceRow {sourceRow} (total: {total})")
            return False
        if destinationChild < 0 or destinationChild > total:
            logger.warning(f"moveRows: invalid destinationChild {destinationChild} (total: {total})")
            return False
        # Dropping onto itself or right after itself is a no-op
        if destinationChild in (sourceRow, sourceRow + 1):
            return False

        actual_dest = destinationChild - 1 if destinationChild > sourceRow else destinationChild

        self.beginMoveRows(sourceParent, sourceRow, sourceRow, destinationParent, destinationChild)
        # Block the reset from queueChanged; begin/endMoveRows covers it
        self._moving = True
        try:
            moved = self._controller.move(sourceRow, actual_dest)
            self._songs = self._controller.queue
        finally:
            self._moving = False
        self.endMoveRows()
        logger.debug(f"Moved queue row {sourceRow} -> {actual_dest}")
        return moved

    # --- Helpers ---
    def song_at(self, row: int):
        if 0 <= row < len(self._songs):
            return self._songs[row]
        return None

    def _on_queue_changed(self):
        if self._moving:
            return
        self.beginResetModel()
        self._songs = self._controller.queue
        self.endResetModel()

    def _on_current_changed(self, *_):
        if not self._songs:
            return
        top_left = self.index(0, 0)
        bottom_right = self.index(len(self._songs) - 1, len(COLUMNS) - 1)
        self.dataChanged.emit(top_left, bottom_right, [Qt.DisplayRole])
