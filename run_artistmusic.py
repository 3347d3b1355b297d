#!/usr/bin/env python3
"""Entry point for the ArtistMusic player.

Imports the audio files given on the command line into the library and plays
them. It can be run directly or used as the entry point for frozen builds.
"""

import sys
from pathlib import Path

# Add the parent directory to path so we can import artistmusic
sys.path.insert(0, str(Path(__file__).parent))

from artistmusic.app import main

if __name__ == "__main__":
    sys.exit(main())
