#!/usr/bin/env python3
"""
Run the WebSocket relay server for live audio.

This script starts the relay that accepts one audio source and fans its
stream out to every connected listener.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from audio_relay.cli import main

if __name__ == "__main__":
    sys.exit(main())
