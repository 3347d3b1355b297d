"""Import pipeline: dropped or picked files -> managed storage -> library records.

Audio and artwork are always copied into the app's own folders under the data
directory before anything is registered, so the library never points at the
user's original files:

    AudioFiles/        library-wide audio
    ArtistAudio/       audio imported for a specific artist
    ArtistArtworks/    ArtistArtwork_<artist id>.<ext> (one per artist)
    SongArtworks/      <uuid>.<ext>
    PlaylistArtworks/  PlaylistCover_<uuid>.<ext>

A name collision never overwrites: ``track.mp3`` becomes ``track_1.mp3``,
``track_2.mp3`` and so on.
"""

import shutil
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

from . import config
from .errors import ArtistMusicError, ImportFailed, ValidationError
from .logging_config import get_logger
from .metadata import read_tags
from .models import Artist, Playlist, Song, strip_file_scheme

logger = get_logger(__name__)


# Accepted by extension only, no content sniffing
AUDIO_EXTS = {".mp3", ".m4a", ".wav", ".aiff", ".aif", ".flac", ".ogg", ".aac"}
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".gif", ".heic", ".tif", ".tiff", ".bmp", ".webp"}


def _as_path(source) -> Path:
    return Path(strip_file_scheme(str(source)) or "")


def is_supported_audio(path) -> bool:
    return _as_path(path).suffix.lower() in AUDIO_EXTS


def is_supported_image(path) -> bool:
    return _as_path(path).suffix.lower() in IMAGE_EXTS


def copy_into_managed(source, folder: Path, overwrite: bool = False,
                      filename: Optional[str] = None) -> Path:
    """Copy ``source`` into ``folder`` (created if needed) and return the new path.

    Args:
        source: File to copy
        folder: Destination folder
        overwrite: Replace an existing file instead of picking a new name
        filename: Destination name, defaults to the source's name

    Raises:
        ImportFailed: if the folder cannot be created or the copy fails
    """
    src = _as_path(source)
    folder = Path(folder)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ImportFailed(f"Cannot create {folder}: {e}") from e

    dest = folder / (filename or src.name)
    if not overwrite:
        base, ext = dest.stem, dest.suffix
        counter = 1
        while dest.exists():
            dest = folder / f"{base}_{counter}{ext}"
            counter += 1

    try:
        shutil.copyfile(src, dest)
    except OSError as e:
        raise ImportFailed(f"Cannot copy {src.name} to {folder.name}/: {e}") from e
    return dest


class AudioImporter:
    """Copies user files into managed storage and registers them with the store.

    Attributes:
        store: ArtistStore receiving the new records
        documents_dir: Root of the managed folders
    """

    def __init__(self, store, documents_dir: Optional[Path] = None):
        self.store = store
        self.documents_dir = Path(documents_dir) if documents_dir else config.data_dir()

    def folder(self, name: str) -> Path:
        return self.documents_dir / name

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------
    def import_audio(self, source, artist: Optional[Artist] = None, title: str = "",
                     version: str = "", artwork_url: Optional[str] = None) -> Optional[Song]:
        """Copy one audio file into managed storage and add it as a Song.

        The song is only created after the copy succeeded. Its title falls
        back to the stored file's name; duration and descriptive tags are
        read from the copy.

        Returns:
            The new Song, or None if the file was rejected or the import
            failed (the reason is logged)
        """
        src = _as_path(source)
        if not is_supported_audio(src):
            logger.warning(f"Rejected unsupported audio file: {src.name}")
            return None
        if not src.is_file():
            logger.error(f"Audio file not found: {src}")
            return None

        folder_name = config.ARTIST_AUDIO_FOLDER if artist else config.AUDIO_FOLDER
        try:
            dest = copy_into_managed(src, self.folder(folder_name))
        except ImportFailed as e:
            logger.error(f"Import of {src.name} aborted: {e}")
            return None

        tags = read_tags(dest)
        duration = tags.pop("duration") or 0.0
        song = Song.create(
            title=title.strip() or dest.stem,
            audio_url=str(dest),
            version=version,
            artwork_url=artwork_url,
            duration=duration,
            **tags,
        )

        try:
            self.store.add_song(song, to=artist)
        except ArtistMusicError as e:
            # Don't leave an orphaned copy behind
            logger.error(f"Could not add {dest.name} to the library: {e}")
            dest.unlink(missing_ok=True)
            return None

        logger.info(f"Imported {src.name} as {dest.name}")
        return song

    def import_dropped(self, sources: Iterable, artist: Optional[Artist] = None) -> List[Song]:
        """Import several dropped files, skipping the ones that fail.

        Returns:
            The songs that were created, in drop order
        """
        songs = []
        for source in sources:
            song = self.import_audio(source, artist=artist)
            if song is not None:
                songs.append(song)
        return songs

    # ------------------------------------------------------------------
    # Artwork
    # ------------------------------------------------------------------
    def _check_image(self, image) -> Path:
        src = _as_path(image)
        if not is_supported_image(src):
            raise ValidationError(f"Unsupported image file: {src.name}")
        if not src.is_file():
            raise ImportFailed(f"Image not found: {src}")
        return src

    def import_song_artwork(self, image) -> str:
        """Copy a cover image for a song that is about to be created."""
        src = self._check_image(image)
        dest = copy_into_managed(
            src,
            self.folder(config.SONG_ARTWORK_FOLDER),
            filename=f"{str(uuid.uuid4()).upper()}{src.suffix.lower()}",
        )
        return str(dest)

    def set_artist_artwork(self, artist: Artist, image) -> Artist:
        """Store ``image`` as the artist's artwork and persist the artist.

        Returns:
            The updated artist record
        """
        src = self._check_image(image)
        dest = copy_into_managed(
            src,
            self.folder(config.ARTIST_ARTWORK_FOLDER),
            overwrite=True,
            filename=f"ArtistArtwork_{artist.id}{src.suffix.lower()}",
        )
        updated = artist.copy(artwork_url=str(dest))
        self.store.update_artist(updated)
        return updated

    def set_playlist_artwork(self, playlist: Playlist, image) -> Playlist:
        src = self._check_image(image)
        dest = copy_into_managed(
            src,
            self.folder(config.PLAYLIST_ARTWORK_FOLDER),
            filename=f"PlaylistCover_{str(uuid.uuid4()).upper()}{src.suffix.lower()}",
        )
        updated = playlist.copy(artwork_url=str(dest))
        self.store.update_playlist(updated)
        return updated
