"""Persistent library store for ArtistMusic.

``ArtistStore`` owns four collections and writes each of them to its own JSON
document in the data directory after every successful mutation:

    artists        -> artists.json        (songs/playlists embedded per artist)
    all_songs      -> songs.json
    all_playlists  -> playlists.json
    collaborators  -> collaborators.json

Songs and playlists that belong to an artist are stored twice: in the global
collection and nested inside the artist. Every mutating method leaves both
views consistent:

- every song/playlist nested in an artist is also in the global collection;
- every global song/playlist whose ``artist_id`` names a known artist is
  nested in that artist.

Mutations are all-or-nothing: if the documents cannot be written the
in-memory collections are rolled back and ``PersistenceError`` is raised.
"""

import json
import os
import threading
from contextlib import contextmanager
from itertools import chain
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from . import config
from .errors import PersistenceError, ValidationError
from .logging_config import get_logger
from .models import Artist, Collaborator, Playlist, Song, records_to_json

logger = get_logger(__name__)


ARTISTS_FILE = "artists.json"
SONGS_FILE = "songs.json"
PLAYLISTS_FILE = "playlists.json"
COLLABORATORS_FILE = "collaborators.json"


def _index_of(items, record_id: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.id == record_id:
            return i
    return None


def _replace_or_append(items, record) -> None:
    i = _index_of(items, record.id)
    if i is None:
        items.append(record)
    else:
        items[i] = record


def _require_text(value: Optional[str], what: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(f"{what} must not be empty")


class ArtistStore:
    """Single source of truth for artists, songs, playlists and collaborators.

    Not meant to be shared across threads without care: all access is
    serialized through an internal lock, but callers are expected to use the
    store from the UI thread.

    Attributes:
        data_dir: Directory holding the JSON documents
        artists: All artists, each with its nested songs and playlists
        all_songs: Global song collection
        all_playlists: Global playlist collection
        collaborators: Known collaborators
        on_songs_removed: Optional callback(list_of_song_ids) fired after a
            delete (song, artist or reset) has been persisted
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else config.data_dir()
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.artists: List[Artist] = []
        self.all_songs: List[Song] = []
        self.all_playlists: List[Playlist] = []
        self.collaborators: List[Collaborator] = []

        self.on_songs_removed: Optional[Callable[[List[str]], None]] = None

        self._lock = threading.RLock()
        self._removed_song_ids: List[str] = []

        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _path(self, filename: str) -> Path:
        return self.data_dir / filename

    def _load_collection(self, filename: str, factory) -> list:
        path = self._path(filename)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            records = [factory(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading {filename}: {e}")
            return []
        logger.info(f"Loaded {len(records)} records from {path}")
        return records

    def _load(self):
        """Read the four documents; missing or broken files load as empty."""
        with self._lock:
            self.artists = self._load_collection(ARTISTS_FILE, Artist.from_dict)
            self.all_songs = self._load_collection(SONGS_FILE, Song.from_dict)
            self.all_playlists = self._load_collection(PLAYLISTS_FILE, Playlist.from_dict)
            self.collaborators = self._load_collection(COLLABORATORS_FILE, Collaborator.from_dict)
            self._reconcile()

    def _reconcile(self):
        """Repair nested/global drift left behind by older library files.

        Nested records are re-pointed at the global objects so both views
        share one instance per id.
        """
        repaired = 0
        for artist in self.artists:
            for attr, collection in (("songs", self.all_songs), ("playlists", self.all_playlists)):
                nested = getattr(artist, attr)
                for i, record in enumerate(nested):
                    record.artist_id = artist.id
                    g = _index_of(collection, record.id)
                    if g is None:
                        collection.append(record)
                        repaired += 1
                    else:
                        collection[g].artist_id = artist.id
                        nested[i] = collection[g]
                for record in collection:
                    if record.artist_id == artist.id and _index_of(nested, record.id) is None:
                        nested.append(record)
                        repaired += 1
        if repaired:
            logger.info(f"Reconciled {repaired} nested/global library records")

    def _write_json(self, filename: str, payload) -> Path:
        path = self._path(filename)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return tmp

    def save(self):
        """Re-serialize every collection to disk.

        Documents are written to temporary files first and only renamed into
        place once all four encoded successfully.

        Raises:
            PersistenceError: if any document could not be written
        """
        with self._lock:
            pending = []
            try:
                pending.append((self._write_json(ARTISTS_FILE, records_to_json(self.artists)), ARTISTS_FILE))
                pending.append((self._write_json(SONGS_FILE, records_to_json(self.all_songs)), SONGS_FILE))
                pending.append((self._write_json(PLAYLISTS_FILE, records_to_json(self.all_playlists)), PLAYLISTS_FILE))
                pending.append((self._write_json(COLLABORATORS_FILE, records_to_json(self.collaborators)), COLLABORATORS_FILE))
                for tmp, filename in pending:
                    os.replace(tmp, self._path(filename))
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error saving library to {self.data_dir}: {e}")
                for tmp, _ in pending:
                    try:
                        tmp.unlink()
                    except OSError:
                        pass
                raise PersistenceError(f"Could not save library: {e}") from e
            logger.debug(
                f"Saved {len(self.artists)} artists, {len(self.all_songs)} songs, "
                f"{len(self.all_playlists)} playlists, {len(self.collaborators)} collaborators"
            )

    def _records(self, extra=()) -> list:
        """Every record object reachable from the store and ``extra``, once each."""
        seen = {}

        def visit(record):
            if record is None or id(record) in seen:
                return
            seen[id(record)] = record
            for child in getattr(record, "songs", ()):
                visit(child)
            for child in getattr(record, "playlists", ()):
                visit(child)

        for record in chain(self.artists, self.all_songs, self.all_playlists, self.collaborators, extra):
            visit(record)
        return list(seen.values())

    @contextmanager
    def _transaction(self, *touched):
        """Apply a mutation, persist it, and roll back if the save fails.

        Rollback restores the records in place, including ``touched``
        objects handed in by the caller, so no reference held outside the
        store keeps a half-applied change.
        """
        with self._lock:
            collections = (
                list(self.artists), list(self.all_songs),
                list(self.all_playlists), list(self.collaborators),
            )
            states = [
                (record, {k: list(v) if isinstance(v, list) else v for k, v in vars(record).items()})
                for record in self._records(touched)
            ]
            self._removed_song_ids = []
            try:
                yield
                self.save()
            except Exception:
                self.artists, self.all_songs, self.all_playlists, self.collaborators = collections
                for record, state in states:
                    vars(record).clear()
                    vars(record).update(state)
                self._removed_song_ids = []
                raise
            removed = self._removed_song_ids
            self._removed_song_ids = []
        if removed:
            self._notify_songs_removed(removed)

    def _notify_songs_removed(self, song_ids: List[str]):
        if not self.on_songs_removed:
            return
        try:
            self.on_songs_removed(list(song_ids))
        except Exception:
            logger.exception("on_songs_removed callback failed")

    # ------------------------------------------------------------------
    # Internal helpers (call with the lock held)
    # ------------------------------------------------------------------
    def _find_artist(self, artist_id: Optional[str]) -> Optional[Artist]:
        if not artist_id:
            return None
        i = _index_of(self.artists, artist_id)
        return self.artists[i] if i is not None else None

    def _all_playlist_copies(self):
        """Every playlist object, global and nested (may repeat shared objects)."""
        yield from self.all_playlists
        for artist in self.artists:
            yield from artist.playlists

    def _purge_songs(self, song_ids: Iterable[str]) -> List[str]:
        """Remove songs everywhere: global, nested and inside playlists."""
        ids = set(song_ids)
        removed = [s.id for s in self.all_songs if s.id in ids]
        self.all_songs = [s for s in self.all_songs if s.id not in ids]
        for artist in self.artists:
            removed += [s.id for s in artist.songs if s.id in ids and s.id not in removed]
            artist.songs = [s for s in artist.songs if s.id not in ids]
        for playlist in self._all_playlist_copies():
            playlist.songs = [s for s in playlist.songs if s.id not in ids]
        self._removed_song_ids.extend(removed)
        return removed

    def _purge_playlists(self, playlist_ids: Iterable[str]) -> bool:
        ids = set(playlist_ids)
        before = len(self.all_playlists) + sum(len(a.playlists) for a in self.artists)
        self.all_playlists = [p for p in self.all_playlists if p.id not in ids]
        for artist in self.artists:
            artist.playlists = [p for p in artist.playlists if p.id not in ids]
        after = len(self.all_playlists) + sum(len(a.playlists) for a in self.artists)
        return after < before

    def _place_song(self, song: Song):
        """Put ``song`` in the global list and in exactly its artist's list."""
        _replace_or_append(self.all_songs, song)
        for artist in self.artists:
            if artist.id == song.artist_id:
                _replace_or_append(artist.songs, song)
            else:
                artist.songs = [s for s in artist.songs if s.id != song.id]
        for playlist in self._all_playlist_copies():
            for i, entry in enumerate(playlist.songs):
                if entry.id == song.id:
                    playlist.songs[i] = song

    def _place_playlist(self, playlist: Playlist):
        _replace_or_append(self.all_playlists, playlist)
        for artist in self.artists:
            if artist.id == playlist.artist_id:
                _replace_or_append(artist.playlists, playlist)
            else:
                artist.playlists = [p for p in artist.playlists if p.id != playlist.id]

    # ------------------------------------------------------------------
    # Artists
    # ------------------------------------------------------------------
    def add_artist(self, artist: Artist) -> bool:
        """Add an artist together with any songs/playlists it already owns.

        Returns:
            False if an artist with the same id already exists
        """
        _require_text(artist.name, "Artist name")
        with self._lock:
            if _index_of(self.artists, artist.id) is not None:
                return False
            with self._transaction(artist):
                self.artists.append(artist)
                self._adopt_children(artist, drop_unlisted=False)
            logger.info(f"Added artist {artist.name!r}")
            return True

    def _adopt_children(self, artist: Artist, drop_unlisted: bool):
        """Cascade an artist's nested lists into the global collections.

        Global records that point at the artist but are missing from its
        nested lists are removed when ``drop_unlisted`` is set (update), and
        nested into the artist otherwise (add).
        """
        owned_songs = {s.id for s in artist.songs}
        unlisted_songs = [s for s in self.all_songs if s.artist_id == artist.id and s.id not in owned_songs]
        owned_playlists = {p.id for p in artist.playlists}
        unlisted_playlists = [
            p for p in self.all_playlists
            if p.artist_id == artist.id and p.id not in owned_playlists
        ]
        if drop_unlisted:
            self._purge_songs(s.id for s in unlisted_songs)
            self._purge_playlists(p.id for p in unlisted_playlists)
        else:
            artist.songs.extend(unlisted_songs)
            artist.playlists.extend(unlisted_playlists)

        for song in list(artist.songs):
            song.artist_id = artist.id
            self._place_song(song)
        for playlist in list(artist.playlists):
            playlist.artist_id = artist.id
            self._place_playlist(playlist)

    def update_artist(self, artist: Artist) -> bool:
        """Replace an artist and resync the global collections with its lists.

        Songs/playlists that previously belonged to the artist but are no
        longer nested in it are removed from the library.

        Returns:
            False if the artist is unknown
        """
        _require_text(artist.name, "Artist name")
        with self._lock:
            i = _index_of(self.artists, artist.id)
            if i is None:
                logger.warning(f"update_artist: unknown artist {artist.id}")
                return False
            with self._transaction(artist):
                self.artists[i] = artist
                self._adopt_children(artist, drop_unlisted=True)
            return True

    def delete_artist(self, artist: Artist) -> bool:
        """Delete an artist and every song and playlist it owns (no undo)."""
        with self._lock:
            existing = self._find_artist(artist.id)
            if existing is None:
                return False
            with self._transaction():
                song_ids = {s.id for s in existing.songs}
                song_ids.update(s.id for s in self.all_songs if s.artist_id == artist.id)
                playlist_ids = {p.id for p in existing.playlists}
                playlist_ids.update(p.id for p in self.all_playlists if p.artist_id == artist.id)

                self.artists = [a for a in self.artists if a.id != artist.id]
                self._purge_songs(song_ids)
                self._purge_playlists(playlist_ids)
            logger.info(
                f"Deleted artist {existing.name!r} with {len(song_ids)} songs "
                f"and {len(playlist_ids)} playlists"
            )
            return True

    # ------------------------------------------------------------------
    # Songs
    # ------------------------------------------------------------------
    def add_song(self, song: Song, to: Optional[Artist] = None) -> bool:
        """Add a song to the library, optionally under an artist.

        A song whose id is already present is left alone (no error). When an
        artist is given, or the song already names one, it is also nested in
        that artist.

        Returns:
            True if the library changed
        """
        _require_text(song.title, "Song title")
        _require_text(song.audio_url, "Song audio source")
        with self._lock:
            owner_id = song.artist_id
            if to is not None:
                if self._find_artist(to.id) is None:
                    logger.warning(f"add_song: unknown artist {to.id}, adding {song.title!r} to library only")
                else:
                    owner_id = to.id

            in_global = _index_of(self.all_songs, song.id) is not None
            owner = self._find_artist(owner_id)
            nested = owner is not None and _index_of(owner.songs, song.id) is not None
            if in_global and (owner is None or nested):
                logger.debug(f"add_song: {song.title!r} already in library")
                return False

            with self._transaction(song, to):
                if in_global:
                    # Keep the stored record, just nest it
                    song = self.all_songs[_index_of(self.all_songs, song.id)]
                if owner is not None:
                    song.artist_id = owner.id
                self._place_song(song)
            logger.info(f"Added song {song.title!r} ({song.audio_url})")
            return True

    def update_song(self, song: Song) -> bool:
        """Replace a song everywhere it appears (global, artist, playlists).

        Changing ``artist_id`` moves the song between artists.

        Returns:
            False if the song is unknown
        """
        _require_text(song.title, "Song title")
        _require_text(song.audio_url, "Song audio source")
        with self._lock:
            if self.get_song(song.id) is None:
                logger.warning(f"update_song: unknown song {song.id}")
                return False
            with self._transaction(song):
                if song.artist_id and self._find_artist(song.artist_id) is None:
                    logger.warning(f"update_song: unknown artist {song.artist_id}, detaching")
                    song.artist_id = None
                self._place_song(song)
            return True

    def delete_song(self, song: Song, from_: Optional[Artist] = None) -> bool:
        """Delete a song from the library, its artist and every playlist.

        ``from_`` is accepted for callers that delete from an artist view;
        the song is removed from every artist regardless.
        """
        with self._lock:
            if self.get_song(song.id) is None:
                return False
            with self._transaction():
                self._purge_songs([song.id])
            logger.info(f"Deleted song {song.title!r}")
            return True

    # ------------------------------------------------------------------
    # Playlists
    # ------------------------------------------------------------------
    def add_playlist(self, playlist: Playlist, to: Optional[Artist] = None) -> bool:
        _require_text(playlist.name, "Playlist name")
        with self._lock:
            owner_id = playlist.artist_id
            if to is not None:
                if self._find_artist(to.id) is None:
                    logger.warning(f"add_playlist: unknown artist {to.id}")
                else:
                    owner_id = to.id

            in_global = _index_of(self.all_playlists, playlist.id) is not None
            owner = self._find_artist(owner_id)
            nested = owner is not None and _index_of(owner.playlists, playlist.id) is not None
            if in_global and (owner is None or nested):
                return False

            with self._transaction(playlist, to):
                if in_global:
                    playlist = self.all_playlists[_index_of(self.all_playlists, playlist.id)]
                if owner is not None:
                    playlist.artist_id = owner.id
                self._place_playlist(playlist)
            logger.info(f"Added playlist {playlist.name!r}")
            return True

    def update_playlist(self, playlist: Playlist) -> bool:
        _require_text(playlist.name, "Playlist name")
        with self._lock:
            if self.get_playlist(playlist.id) is None:
                logger.warning(f"update_playlist: unknown playlist {playlist.id}")
                return False
            with self._transaction(playlist):
                if playlist.artist_id and self._find_artist(playlist.artist_id) is None:
                    playlist.artist_id = None
                self._place_playlist(playlist)
            return True

    def delete_playlist(self, playlist: Playlist, from_: Optional[Artist] = None) -> bool:
        with self._lock:
            if self.get_playlist(playlist.id) is None:
                return False
            with self._transaction():
                self._purge_playlists([playlist.id])
            logger.info(f"Deleted playlist {playlist.name!r}")
            return True

    def add_song_to_playlist(self, playlist_id: str, song: Song) -> bool:
        """Append a song to a playlist; songs appear at most once."""
        with self._lock:
            playlist = self.get_playlist(playlist_id)
            if playlist is None or any(s.id == song.id for s in playlist.songs):
                return False
            return self.update_playlist(playlist.copy(songs=playlist.songs + [song]))

    def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> bool:
        with self._lock:
            playlist = self.get_playlist(playlist_id)
            if playlist is None:
                return False
            songs = [s for s in playlist.songs if s.id != song_id]
            if len(songs) == len(playlist.songs):
                return False
            return self.update_playlist(playlist.copy(songs=songs))

    def move_playlist_song(self, playlist_id: str, source: int, destination: int) -> bool:
        """Move the song at ``source`` so that it ends up at ``destination``."""
        with self._lock:
            playlist = self.get_playlist(playlist_id)
            if playlist is None:
                return False
            songs = list(playlist.songs)
            if not (0 <= source < len(songs)) or not (0 <= destination < len(songs)):
                return False
            if source == destination:
                return False
            songs.insert(destination, songs.pop(source))
            return self.update_playlist(playlist.copy(songs=songs))

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def add_collaborator(self, collaborator: Collaborator) -> bool:
        _require_text(collaborator.name, "Collaborator name")
        with self._lock:
            if _index_of(self.collaborators, collaborator.id) is not None:
                return False
            with self._transaction():
                self.collaborators.append(collaborator)
            return True

    def update_collaborator(self, collaborator: Collaborator) -> bool:
        _require_text(collaborator.name, "Collaborator name")
        with self._lock:
            i = _index_of(self.collaborators, collaborator.id)
            if i is None:
                return False
            with self._transaction():
                self.collaborators[i] = collaborator
            return True

    def delete_collaborator(self, collaborator: Collaborator) -> bool:
        """Delete a collaborator and strip its links from every song."""
        with self._lock:
            if _index_of(self.collaborators, collaborator.id) is None:
                return False
            with self._transaction():
                self.collaborators = [c for c in self.collaborators if c.id != collaborator.id]
                for song in self._every_song_copy():
                    if song.collaborators:
                        song.collaborators = [
                            link for link in song.collaborators
                            if link.collaborator_id != collaborator.id
                        ]
            return True

    def _every_song_copy(self):
        yield from self.all_songs
        for artist in self.artists:
            yield from artist.songs
        for playlist in self._all_playlist_copies():
            yield from playlist.songs

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_artist(self, artist_id: str) -> Optional[Artist]:
        with self._lock:
            return self._find_artist(artist_id)

    def get_song(self, song_id: str) -> Optional[Song]:
        with self._lock:
            i = _index_of(self.all_songs, song_id)
            if i is not None:
                return self.all_songs[i]
            for artist in self.artists:
                j = _index_of(artist.songs, song_id)
                if j is not None:
                    return artist.songs[j]
            return None

    def get_playlist(self, playlist_id: str) -> Optional[Playlist]:
        with self._lock:
            i = _index_of(self.all_playlists, playlist_id)
            if i is not None:
                return self.all_playlists[i]
            for artist in self.artists:
                j = _index_of(artist.playlists, playlist_id)
                if j is not None:
                    return artist.playlists[j]
            return None

    def songs_for_artist(self, artist_id: str) -> List[Song]:
        with self._lock:
            artist = self._find_artist(artist_id)
            return list(artist.songs) if artist else []

    def search_songs(self, text: str = "") -> List[Song]:
        """Songs whose title contains ``text`` (case-insensitive), sorted by title.

        Global and nested songs are merged and de-duplicated by id.
        """
        with self._lock:
            merged = {}
            for song in self.all_songs + [s for a in self.artists for s in a.songs]:
                merged.setdefault(song.id, song)
        needle = text.strip().casefold()
        matches = [s for s in merged.values() if not needle or needle in s.title.casefold()]
        return sorted(matches, key=lambda s: s.title.casefold())

    def search_playlists(self, text: str = "") -> List[Playlist]:
        with self._lock:
            merged = {}
            for playlist in self._all_playlist_copies():
                merged.setdefault(playlist.id, playlist)
        needle = text.strip().casefold()
        matches = [p for p in merged.values() if not needle or needle in p.name.casefold()]
        return sorted(matches, key=lambda p: p.name.casefold())

    # ------------------------------------------------------------------
    # Library-wide
    # ------------------------------------------------------------------
    def reset_library(self):
        """Remove every artist, song, playlist and collaborator."""
        with self._lock:
            with self._transaction():
                self._purge_songs([s.id for s in self._every_song_copy()])
                self.artists = []
                self.all_playlists = []
                self.collaborators = []
            logger.info("Library reset")

    @property
    def total_songs(self) -> int:
        return len(self.all_songs)

    def __repr__(self):
        return (
            f"ArtistStore({len(self.artists)} artists, {len(self.all_songs)} songs, "
            f"{len(self.all_playlists)} playlists)"
        )
