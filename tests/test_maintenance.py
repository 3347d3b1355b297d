"""Unit tests for artwork path cleanup."""

import json

from artistmusic.maintenance import clean_artwork_paths
from artistmusic.store import ARTISTS_FILE, PLAYLISTS_FILE, SONGS_FILE


def _song(song_id, artwork):
    return {"id": song_id, "title": song_id, "audioURL": f"/music/{song_id}.mp3", "artworkURL": artwork}


def test_cleans_stale_and_file_urls(tmp_path):
    cover = tmp_path / "cover.png"
    cover.write_bytes(b"png")
    (tmp_path / SONGS_FILE).write_text(json.dumps([
        _song("S1", f"file://{cover}"),
        _song("S2", "/nowhere/missing.png"),
        _song("S3", None),
    ]))

    results = clean_artwork_paths(tmp_path)

    songs = json.loads((tmp_path / SONGS_FILE).read_text())
    assert songs[0]["artworkURL"] == str(cover)
    assert songs[1]["artworkURL"] is None
    assert songs[2]["artworkURL"] is None
    assert results[SONGS_FILE] == 2


def test_nested_records_are_cleaned(tmp_path):
    artists = [{
        "id": "A1",
        "name": "Nova",
        "artworkURL": "/gone/artist.png",
        "songs": [_song("S1", "/gone/song.png")],
        "playlists": [{
            "id": "P1",
            "name": "Live",
            "artworkURL": None,
            "songs": [_song("S1", "/gone/song.png")],
        }],
    }]
    (tmp_path / ARTISTS_FILE).write_text(json.dumps(artists))

    results = clean_artwork_paths(tmp_path)

    data = json.loads((tmp_path / ARTISTS_FILE).read_text())
    assert data[0]["artworkURL"] is None
    assert data[0]["songs"][0]["artworkURL"] is None
    assert data[0]["playlists"][0]["songs"][0]["artworkURL"] is None
    assert results[ARTISTS_FILE] == 3


def test_clean_documents_are_not_rewritten(tmp_path):
    path = tmp_path / PLAYLISTS_FILE
    original = json.dumps([{"id": "P1", "name": "Live", "artworkURL": None, "songs": []}])
    path.write_text(original)

    results = clean_artwork_paths(tmp_path)

    assert results[PLAYLISTS_FILE] == 0
    assert path.read_text() == original


def test_missing_and_corrupt_documents_are_skipped(tmp_path):
    (tmp_path / SONGS_FILE).write_text("not json")
    results = clean_artwork_paths(tmp_path)
    assert results == {ARTISTS_FILE: 0, SONGS_FILE: 0, PLAYLISTS_FILE: 0}
    assert (tmp_path / SONGS_FILE).read_text() == "not json"
