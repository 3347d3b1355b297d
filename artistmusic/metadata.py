# Offline-only tag reader used when audio is imported: mutagen easy tags + stream length.
from pathlib import Path

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .logging_config import get_logger

logger = get_logger(__name__)

# Song field -> easy-tag keys to try, in order
_TAG_KEYS = {
    "album": ("album",),
    "composer": ("composer",),
    "grouping": ("grouping", "contentgroup"),
    "genre": ("genre",),
    "year": ("date", "originaldate", "year"),
    "bpm": ("bpm",),
    "isrc": ("isrc",),
    "comments": ("comment", "description"),
}


def _first(v):
    return (v[0] if isinstance(v, list) and v else v) or None


def _tag(tags, keys):
    for key in keys:
        try:
            value = _first(tags.get(key))
        except (KeyError, ValueError):
            continue
        if value:
            return str(value).strip() or None
    return None


def _to_bpm(raw):
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def read_tags(path) -> dict:
    """Read duration and descriptive tags from an audio file.

    Missing or unreadable tags simply come back as None; duration is 0.0
    when mutagen cannot parse the stream.
    """
    info = {field: None for field in _TAG_KEYS}
    info["duration"] = 0.0

    try:
        audio = MutagenFile(str(path), easy=True)
    except (MutagenError, OSError) as e:
        logger.debug(f"No tags for {Path(path).name}: {e}")
        return info
    if audio is None:
        return info

    length = getattr(getattr(audio, "info", None), "length", None)
    if length:
        info["duration"] = float(length)

    tags = getattr(audio, "tags", None)
    if tags:
        for field, keys in _TAG_KEYS.items():
            info[field] = _tag(tags, keys)
        year = info["year"]
        if year and len(year) >= 4 and year[:4].isdigit():
            info["year"] = year[:4]
        info["bpm"] = _to_bpm(info["bpm"])

    return info
