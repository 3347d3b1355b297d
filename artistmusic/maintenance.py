"""One-off maintenance for library files written by older versions.

``clean_artwork_paths`` rewrites the ``artworkURL`` entries of the library
documents in place:

- ``file:///x/cover.png`` becomes ``/x/cover.png``
- references to files that no longer exist become ``null``

Records nested in artists and playlists are cleaned as well. Documents with
nothing to fix are not rewritten.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional

from . import config
from .logging_config import get_logger
from .models import strip_file_scheme
from .store import ARTISTS_FILE, PLAYLISTS_FILE, SONGS_FILE

logger = get_logger(__name__)

ARTWORK_KEY = "artworkURL"
DOCUMENTS = (ARTISTS_FILE, SONGS_FILE, PLAYLISTS_FILE)


def _clean_record(record) -> int:
    """Clean one record and everything nested in it; return the number of fixes."""
    if not isinstance(record, dict):
        return 0

    fixes = 0
    if ARTWORK_KEY in record:
        raw = record[ARTWORK_KEY]
        cleaned = None
        if isinstance(raw, str):
            path = strip_file_scheme(raw)
            if path and os.path.exists(path):
                cleaned = path
        if cleaned != raw:
            if cleaned is None:
                logger.info(f"Removing missing artwork: {raw}")
            record[ARTWORK_KEY] = cleaned
            fixes += 1

    for key in ("songs", "playlists"):
        nested = record.get(key)
        if isinstance(nested, list):
            for child in nested:
                fixes += _clean_record(child)
    return fixes


def clean_document(path: Path) -> int:
    """Clean one JSON document in place.

    Returns:
        Number of artwork references that were fixed (0 if the file is
        missing, unreadable or already clean)
    """
    path = Path(path)
    if not path.exists():
        return 0
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Skipping {path.name}: {e}")
        return 0
    if not isinstance(data, list):
        logger.error(f"Skipping {path.name}: expected a JSON array")
        return 0

    fixes = sum(_clean_record(record) for record in data)
    if not fixes:
        logger.info(f"{path.name}: nothing to clean")
        return 0

    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)
    logger.info(f"{path.name}: fixed {fixes} artwork reference(s)")
    return fixes


def clean_artwork_paths(data_dir: Optional[Path] = None) -> Dict[str, int]:
    """Clean the artist, song and playlist documents in ``data_dir``.

    Returns:
        Mapping of document name -> number of fixes
    """
    data_dir = Path(data_dir) if data_dir else config.data_dir()
    return {name: clean_document(data_dir / name) for name in DOCUMENTS}
