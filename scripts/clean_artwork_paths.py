#!/usr/bin/env python3
"""Strip stale artwork references from an ArtistMusic library.

Usage:
    python scripts/clean_artwork_paths.py [DATA_DIR]

Without DATA_DIR the default library location (or $ARTISTMUSIC_HOME) is used.
"""

import argparse
import sys
from pathlib import Path

# Add the repository root to path so we can import artistmusic
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from artistmusic.config import data_dir, load_environment
from artistmusic.logging_config import configure_logging
from artistmusic.maintenance import clean_artwork_paths


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("data_dir", nargs="?", type=Path, help="Library folder to clean")
    args = parser.parse_args(argv)

    load_environment()
    configure_logging(log_to_file=False)

    target = args.data_dir or data_dir()
    results = clean_artwork_paths(target)

    print(f"Cleaned library at {target}")
    for name, fixes in results.items():
        print(f"  {name}: {fixes} fix(es)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
