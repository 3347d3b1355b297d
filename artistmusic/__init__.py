"""ArtistMusic: artist-centric music library with an in-app player."""

__version__ = "1.0.0"
