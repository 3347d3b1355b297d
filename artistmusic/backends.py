"""Media backend interface used by the playback controller.

The controller never talks to a platform media API directly. A backend binds
one audio source at a time and reports back through two callback attributes:

    finished_callback()      natural end of the current track
    error_callback(message)  asynchronous decode/output failure

Backends may call these from any thread; the controller redispatches them
onto its own thread before touching state.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional


class MediaBackend(ABC):
    """Single-source audio output (decode + play) behind the controller."""

    def __init__(self):
        self.finished_callback: Optional[Callable[[], None]] = None
        self.error_callback: Optional[Callable[[str], None]] = None

    @abstractmethod
    def load(self, path: str) -> bool:
        """Bind ``path`` as the current source, replacing any previous one.

        A rejected source must leave the previous one bound.

        Returns:
            True if the source was accepted
        """

    @abstractmethod
    def play(self):
        ...

    @abstractmethod
    def pause(self):
        ...

    @abstractmethod
    def stop(self):
        """Stop output and release the current source."""

    @abstractmethod
    def seek(self, seconds: float):
        ...

    @abstractmethod
    def position(self) -> float:
        """Current playback position in seconds."""

    @abstractmethod
    def duration(self) -> float:
        """Length of the bound source in seconds, 0 while unknown."""

    @abstractmethod
    def set_volume(self, volume: float):
        """Set output volume (0.0 to 1.0)."""

    @abstractmethod
    def has_media(self) -> bool:
        """Whether a source is currently bound."""

    def _emit_finished(self):
        if self.finished_callback:
            self.finished_callback()

    def _emit_error(self, message: str):
        if self.error_callback:
            self.error_callback(message)
