"""Library records for ArtistMusic.

Songs, artists, playlists and collaborators are plain dataclasses. Each one
knows how to turn itself into the dict stored in the JSON documents and back:

    artists.json       [Artist, ...]   (songs/playlists embedded)
    songs.json         [Song, ...]
    playlists.json     [Playlist, ...] (songs embedded, in playback order)
    collaborators.json [Collaborator, ...]

JSON keys keep the camelCase names used by existing library files
(``artworkURL``, ``audioURL``, ``artistID``...).
"""

import os
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# Seconds between the Unix epoch and 2001-01-01, the epoch older library
# files used for dates.
_REFERENCE_EPOCH = 978307200


def new_id() -> str:
    """Return a fresh opaque record id."""
    return str(uuid.uuid4()).upper()


def strip_file_scheme(raw: Optional[str]) -> Optional[str]:
    """Turn ``file:///x/y`` into ``/x/y``; plain paths pass through."""
    if not raw:
        return None
    if raw.startswith("file://"):
        raw = raw[len("file://"):]
    return raw or None


def artwork_to_json(path: Optional[str]) -> Optional[str]:
    """Encode an artwork reference: a plain path, or None if the file is gone."""
    if path and os.path.exists(path):
        return str(path)
    return None


def artwork_from_json(raw: Any) -> Optional[str]:
    """Decode an artwork reference, dropping it if the file no longer exists."""
    if not isinstance(raw, str):
        return None
    path = strip_file_scheme(raw)
    if path and os.path.exists(path):
        return path
    return None


def _date_from_json(raw: Any) -> Optional[str]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        stamp = datetime.fromtimestamp(raw + _REFERENCE_EPOCH, tz=timezone.utc)
        return stamp.date().isoformat()
    return str(raw)


def _float_or_none(raw: Any) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


class PlaybackState(Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


class PlaybackMode(Enum):
    """How the controller picks the next song when one finishes."""
    SEQUENTIAL = "sequential"   # stop after the last song
    SHUFFLE = "shuffle"         # random other song
    REPEAT_ALL = "repeatAll"    # wrap to the first song
    REPEAT_ONE = "repeatOne"    # replay the current song


@dataclass
class Collaborator:
    """A named person (producer, writer, featured artist...)."""
    id: str
    name: str
    role: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}

    @staticmethod
    def from_dict(data: dict) -> 'Collaborator':
        return Collaborator(
            id=str(data["id"]),
            name=str(data["name"]),
            role=data.get("role"),
        )


@dataclass
class SongCollaborator:
    """Link between a song and a Collaborator, with an optional role override."""
    id: str
    collaborator_id: str
    role: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "collaboratorID": self.collaborator_id, "role": self.role}

    @staticmethod
    def from_dict(data: dict) -> 'SongCollaborator':
        return SongCollaborator(
            id=str(data["id"]),
            collaborator_id=str(data["collaboratorID"]),
            role=data.get("role"),
        )


@dataclass
class Song:
    """A single track in the library.

    Attributes:
        id: Opaque unique id
        title: Song title
        audio_url: Path of the audio file in managed storage (always set)
        version: Subtitle such as "feat. X" or "Radio Edit"
        artwork_url: Path of the cover image, if any
        duration: Length in seconds; 0 until the player or importer knows it
        artist_id: Id of the owning Artist, if any
        collaborators: Per-song collaborator links
    """
    id: str
    title: str
    audio_url: str
    version: str = ""
    artwork_url: Optional[str] = None
    duration: float = 0.0
    artist_id: Optional[str] = None
    album: Optional[str] = None
    composer: Optional[str] = None
    grouping: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[str] = None
    release_date: Optional[str] = None
    bpm: Optional[float] = None
    isrc: Optional[str] = None
    comments: Optional[str] = None
    collaborators: Optional[List[SongCollaborator]] = None

    @classmethod
    def create(cls, title: str, audio_url: str, **fields) -> 'Song':
        """Create a song with a freshly generated id."""
        return cls(id=new_id(), title=title, audio_url=str(audio_url), **fields)

    def copy(self, **changes) -> 'Song':
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "version": self.version,
            "artworkURL": artwork_to_json(self.artwork_url),
            "audioURL": self.audio_url,
            "duration": self.duration,
            "artistID": self.artist_id,
            "album": self.album,
            "composer": self.composer,
            "grouping": self.grouping,
            "genre": self.genre,
            "year": self.year,
            "releaseDate": self.release_date,
            "bpm": self.bpm,
            "isrc": self.isrc,
            "comments": self.comments,
            "collaborators": (
                [c.to_dict() for c in self.collaborators]
                if self.collaborators is not None else None
            ),
        }

    @staticmethod
    def from_dict(data: dict) -> 'Song':
        """Deserialize a song.

        Raises:
            KeyError: if ``id``, ``title`` or ``audioURL`` is missing
            ValueError: if ``audioURL`` is empty
        """
        audio_url = strip_file_scheme(data["audioURL"])
        if not audio_url:
            raise ValueError(f"Song {data.get('id')} has no audio source")

        collaborators = data.get("collaborators")
        if collaborators is not None:
            collaborators = [SongCollaborator.from_dict(c) for c in collaborators]

        year = data.get("year")
        return Song(
            id=str(data["id"]),
            title=str(data["title"]),
            audio_url=audio_url,
            version=data.get("version") or "",
            artwork_url=artwork_from_json(data.get("artworkURL")),
            duration=_float_or_none(data.get("duration")) or 0.0,
            artist_id=data.get("artistID"),
            album=data.get("album"),
            composer=data.get("composer"),
            grouping=data.get("grouping"),
            genre=data.get("genre"),
            year=str(year) if year is not None else None,
            release_date=_date_from_json(data.get("releaseDate")),
            bpm=_float_or_none(data.get("bpm")),
            isrc=data.get("isrc"),
            comments=data.get("comments"),
            collaborators=collaborators,
        )

    def __repr__(self):
        return f"Song('{self.title}', {os.path.basename(self.audio_url)})"


@dataclass
class Playlist:
    """An ordered list of songs; order is playback order."""
    id: str
    name: str
    artwork_url: Optional[str] = None
    songs: List[Song] = field(default_factory=list)
    artist_id: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None

    @classmethod
    def create(cls, name: str, **fields) -> 'Playlist':
        return cls(id=new_id(), name=name, **fields)

    def copy(self, **changes) -> 'Playlist':
        changes.setdefault("songs", list(self.songs))
        return replace(self, **changes)

    @property
    def total_duration(self) -> float:
        return sum(song.duration for song in self.songs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "artworkURL": artwork_to_json(self.artwork_url),
            "songs": [song.to_dict() for song in self.songs],
            "artistID": self.artist_id,
            "description": self.description,
            "genre": self.genre,
        }

    @staticmethod
    def from_dict(data: dict) -> 'Playlist':
        return Playlist(
            id=str(data["id"]),
            name=str(data["name"]),
            artwork_url=artwork_from_json(data.get("artworkURL")),
            songs=[Song.from_dict(s) for s in data.get("songs", [])],
            artist_id=data.get("artistID"),
            description=data.get("description"),
            genre=data.get("genre"),
        )

    def __repr__(self):
        return f"Playlist('{self.name}', {len(self.songs)} songs)"


@dataclass
class Artist:
    """An artist owning its songs and playlists.

    The nested lists are copies of records that also live in the store's
    global collections; ``ArtistStore`` keeps the two in sync.
    """
    id: str
    name: str
    artwork_url: Optional[str] = None
    songs: List[Song] = field(default_factory=list)
    playlists: List[Playlist] = field(default_factory=list)

    @classmethod
    def create(cls, name: str, **fields) -> 'Artist':
        return cls(id=new_id(), name=name, **fields)

    def copy(self, **changes) -> 'Artist':
        changes.setdefault("songs", list(self.songs))
        changes.setdefault("playlists", list(self.playlists))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "artworkURL": artwork_to_json(self.artwork_url),
            "songs": [song.to_dict() for song in self.songs],
            "playlists": [pl.to_dict() for pl in self.playlists],
        }

    @staticmethod
    def from_dict(data: dict) -> 'Artist':
        return Artist(
            id=str(data["id"]),
            name=str(data["name"]),
            artwork_url=artwork_from_json(data.get("artworkURL")),
            songs=[Song.from_dict(s) for s in data["songs"]],
            playlists=[Playlist.from_dict(p) for p in data["playlists"]],
        )

    def __repr__(self):
        return f"Artist('{self.name}', {len(self.songs)} songs, {len(self.playlists)} playlists)"


def records_to_json(records: List[Any]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
