"""Unit tests for the persistent library store."""

import json
import random

import pytest

from artistmusic.errors import PersistenceError, ValidationError
from artistmusic.models import Artist, Collaborator, Playlist, Song, SongCollaborator
from artistmusic.store import ARTISTS_FILE, SONGS_FILE, ArtistStore


def assert_consistent(store):
    """Nested records are global, and owned global records are nested."""
    global_songs = {s.id for s in store.all_songs}
    global_playlists = {p.id for p in store.all_playlists}
    artist_ids = {a.id for a in store.artists}
    for artist in store.artists:
        assert {s.id for s in artist.songs} <= global_songs
        assert {p.id for p in artist.playlists} <= global_playlists
    for song in store.all_songs:
        if song.artist_id in artist_ids:
            owners = [a for a in store.artists if any(s.id == song.id for s in a.songs)]
            assert [a.id for a in owners] == [song.artist_id]
    for playlist in store.all_playlists:
        if playlist.artist_id in artist_ids:
            owner = store.get_artist(playlist.artist_id)
            assert any(p.id == playlist.id for p in owner.playlists)


class TestArtists:
    """Artist CRUD and cascades."""

    def test_add_artist_persists(self, store, data_dir):
        artist = Artist.create("Nova")
        assert store.add_artist(artist) is True

        data = json.loads((data_dir / ARTISTS_FILE).read_text())
        assert data[0]["name"] == "Nova"

    def test_blank_name_rejected_before_mutation(self, store):
        with pytest.raises(ValidationError):
            store.add_artist(Artist.create("   "))
        assert store.artists == []

    def test_duplicate_id_is_noop(self, store):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        assert store.add_artist(artist) is False
        assert len(store.artists) == 1

    def test_add_artist_with_nested_songs_cascades(self, store, make_song):
        song = make_song("Intro")
        artist = Artist.create("Nova", songs=[song])
        store.add_artist(artist)

        assert store.get_song(song.id).artist_id == artist.id
        assert [s.id for s in store.all_songs] == [song.id]
        assert_consistent(store)

    def test_delete_artist_cascades(self, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        s1, s2 = make_song("One"), make_song("Two")
        store.add_song(s1, to=artist)
        store.add_song(s2, to=artist)
        store.add_playlist(Playlist.create("Live", songs=[s1]), to=artist)
        loose = make_song("Loose")
        store.add_song(loose)

        removed = []
        store.on_songs_removed = removed.extend
        assert store.delete_artist(artist) is True

        assert store.artists == []
        assert [s.id for s in store.all_songs] == [loose.id]
        assert store.all_playlists == []
        assert set(removed) == {s1.id, s2.id}

    def test_update_artist_drops_unlisted_songs(self, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        keep, drop = make_song("Keep"), make_song("Drop")
        store.add_song(keep, to=artist)
        store.add_song(drop, to=artist)

        updated = store.get_artist(artist.id).copy(name="Nova X")
        updated.songs = [s for s in updated.songs if s.id == keep.id]
        assert store.update_artist(updated) is True

        assert store.get_artist(artist.id).name == "Nova X"
        assert store.get_song(drop.id) is None
        assert_consistent(store)


class TestSongs:
    """Song CRUD keeps both views in step."""

    def test_add_song_to_artist(self, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        song = make_song("Skyline")
        store.add_song(song, to=artist)

        assert store.songs_for_artist(artist.id)[0].id == song.id
        assert store.get_song(song.id).artist_id == artist.id
        assert_consistent(store)

    def test_duplicate_song_is_noop(self, store, make_song):
        song = make_song("Skyline")
        assert store.add_song(song) is True
        assert store.add_song(song) is False
        assert store.total_songs == 1

    def test_blank_title_rejected(self, store, make_song):
        with pytest.raises(ValidationError):
            store.add_song(make_song("x").copy(title=""))
        assert store.all_songs == []

    def test_update_moves_song_between_artists(self, store, make_song):
        a, b = Artist.create("A"), Artist.create("B")
        store.add_artist(a)
        store.add_artist(b)
        song = make_song("Wander")
        store.add_song(song, to=a)

        store.update_song(store.get_song(song.id).copy(artist_id=b.id))

        assert store.songs_for_artist(a.id) == []
        assert [s.id for s in store.songs_for_artist(b.id)] == [song.id]
        assert_consistent(store)

    def test_update_propagates_into_playlists(self, store, make_song):
        song = make_song("Old Title")
        store.add_song(song)
        playlist = Playlist.create("Mix", songs=[song])
        store.add_playlist(playlist)

        store.update_song(song.copy(title="New Title"))
        assert store.get_playlist(playlist.id).songs[0].title == "New Title"

    def test_delete_song_removes_it_from_playlists(self, store, make_song):
        s1, s2 = make_song("One"), make_song("Two")
        store.add_song(s1)
        store.add_song(s2)
        playlist = Playlist.create("Mix", songs=[s1, s2])
        store.add_playlist(playlist)

        removed = []
        store.on_songs_removed = removed.extend
        store.delete_song(s1)

        assert [s.id for s in store.get_playlist(playlist.id).songs] == [s2.id]
        assert removed == [s1.id]

    def test_random_add_delete_sequence(self, store, make_song):
        """Global set equals added minus deleted; artist lists match artist ids."""
        rng = random.Random(7)
        artists = [Artist.create(f"Artist {i}") for i in range(3)]
        for artist in artists:
            store.add_artist(artist)

        alive = {}
        for step in range(40):
            if alive and rng.random() < 0.35:
                song_id = rng.choice(sorted(alive))
                store.delete_song(alive.pop(song_id))
            else:
                song = make_song(f"Song {step}")
                owner = rng.choice(artists + [None])
                store.add_song(song, to=owner)
                alive[song.id] = song

        assert {s.id for s in store.all_songs} == set(alive)
        for artist in store.artists:
            expected = {s.id for s in alive.values() if s.artist_id == artist.id}
            assert {s.id for s in artist.songs} == expected
        assert_consistent(store)


class TestPlaylists:
    """Playlist CRUD and editing."""

    def test_add_playlist_to_artist(self, store):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        playlist = Playlist.create("Live")
        store.add_playlist(playlist, to=artist)

        assert store.get_artist(artist.id).playlists[0].id == playlist.id
        assert_consistent(store)

    def test_blank_playlist_name_rejected(self, store):
        with pytest.raises(ValidationError):
            store.add_playlist(Playlist.create(""))

    def test_edit_songs_in_playlist(self, store, make_song):
        s1, s2, s3 = make_song("One"), make_song("Two"), make_song("Three")
        playlist = Playlist.create("Mix")
        store.add_playlist(playlist)

        for s in (s1, s2, s3):
            assert store.add_song_to_playlist(playlist.id, s) is True
        assert store.add_song_to_playlist(playlist.id, s1) is False

        assert store.move_playlist_song(playlist.id, 0, 2) is True
        assert [s.title for s in store.get_playlist(playlist.id).songs] == ["Two", "Three", "One"]

        assert store.remove_song_from_playlist(playlist.id, s3.id) is True
        assert [s.title for s in store.get_playlist(playlist.id).songs] == ["Two", "One"]

    def test_delete_playlist(self, store):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        playlist = Playlist.create("Live")
        store.add_playlist(playlist, to=artist)

        assert store.delete_playlist(playlist) is True
        assert store.all_playlists == []
        assert store.get_artist(artist.id).playlists == []


class TestCollaborators:
    def test_delete_strips_links(self, store, make_song):
        collab = Collaborator(id="C1", name="Sam")
        store.add_collaborator(collab)
        link = SongCollaborator(id="L1", collaborator_id="C1", role="Producer")
        song = make_song("Joint", collaborators=[link])
        store.add_song(song)

        assert store.delete_collaborator(collab) is True
        assert store.collaborators == []
        assert store.get_song(song.id).collaborators == []


class TestQueries:
    def test_search_songs_sorted_and_filtered(self, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        store.add_song(make_song("beta"))
        store.add_song(make_song("Alpha"), to=artist)
        store.add_song(make_song("Gamma"))

        assert [s.title for s in store.search_songs()] == ["Alpha", "beta", "Gamma"]
        assert [s.title for s in store.search_songs("AL")] == ["Alpha"]

    def test_search_playlists(self, store):
        store.add_playlist(Playlist.create("Road Trip"))
        store.add_playlist(Playlist.create("Demos"))
        assert [p.name for p in store.search_playlists("trip")] == ["Road Trip"]


class TestPersistence:
    """Load/save behaviour."""

    def test_reload_restores_library(self, store, data_dir, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        song = make_song("Skyline", duration=200.0)
        store.add_song(song, to=artist)
        store.add_playlist(Playlist.create("Live", songs=[song]), to=artist)
        store.add_collaborator(Collaborator(id="C1", name="Sam"))

        reloaded = ArtistStore(data_dir)
        assert [a.name for a in reloaded.artists] == ["Nova"]
        assert reloaded.get_song(song.id).duration == 200.0
        assert reloaded.get_playlist(store.all_playlists[0].id).songs[0].id == song.id
        assert len(reloaded.collaborators) == 1
        assert_consistent(reloaded)

    def test_missing_files_load_empty(self, data_dir):
        store = ArtistStore(data_dir)
        assert store.artists == []
        assert store.all_songs == []

    def test_corrupt_file_loads_empty(self, data_dir):
        (data_dir / SONGS_FILE).write_text("{not json")
        store = ArtistStore(data_dir)
        assert store.all_songs == []

    def test_save_failure_rolls_back(self, store, make_song, monkeypatch):
        song = make_song("Kept")
        store.add_song(song)

        def broken_write(filename, payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_json", broken_write)
        with pytest.raises(PersistenceError):
            store.add_song(make_song("Lost"))

        assert [s.title for s in store.all_songs] == ["Kept"]

    def test_failed_add_leaves_caller_records_untouched(self, store, make_song, monkeypatch):
        """A rolled-back add must not come back through the caller's objects."""
        artist = Artist.create("Band")
        store.add_artist(artist)
        song = make_song("Phantom")

        def broken_write(filename, payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_json", broken_write)
        with pytest.raises(PersistenceError):
            store.add_song(song, to=artist)
        monkeypatch.undo()

        assert artist.songs == []
        assert song.artist_id is None
        assert store.all_songs == []

        store.update_artist(artist.copy(name="Band (renamed)"))
        assert store.all_songs == []
        assert store.songs_for_artist(artist.id) == []
        assert_consistent(store)

    def test_failed_update_restores_records_in_place(self, store, make_song, monkeypatch):
        a, b = Artist.create("A"), Artist.create("B")
        store.add_artist(a)
        store.add_artist(b)
        song = make_song("Wander")
        store.add_song(song, to=a)
        stored_a = store.get_artist(a.id)

        def broken_write(filename, payload):
            raise OSError("disk full")

        monkeypatch.setattr(store, "_write_json", broken_write)
        moved = store.get_song(song.id).copy(artist_id=b.id)
        with pytest.raises(PersistenceError):
            store.update_song(moved)
        monkeypatch.undo()

        assert [s.id for s in stored_a.songs] == [song.id]
        assert store.get_artist(b.id).songs == []
        assert store.get_song(song.id).artist_id == a.id
        assert_consistent(store)

    def test_failed_delete_keeps_song_and_skips_callback(self, store, make_song, monkeypatch):
        song = make_song("Kept")
        store.add_song(song)
        removed = []
        store.on_songs_removed = removed.extend

        def broken_write(filename, payload):
            raise OSError("read-only")

        monkeypatch.setattr(store, "_write_json", broken_write)
        with pytest.raises(PersistenceError):
            store.delete_song(song)

        assert store.get_song(song.id) is not None
        assert removed == []

    def test_reset_library(self, store, make_song):
        artist = Artist.create("Nova")
        store.add_artist(artist)
        store.add_song(make_song("One"), to=artist)
        store.add_collaborator(Collaborator(id="C1", name="Sam"))

        store.reset_library()
        assert store.artists == []
        assert store.all_songs == []
        assert store.collaborators == []
