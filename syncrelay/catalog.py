"""
Track catalog: the audio files available in the music directory
"""
import os
from pathlib import Path
from typing import List, Union

AUDIO_EXTENSION = ".mp3"


def list_tracks(directory: Union[str, Path], extension: str = AUDIO_EXTENSION) -> List[str]:
    """List audio file names in `directory` (non-recursive, sorted).

    OSError (missing or unreadable directory) propagates to the caller.
    """
    with os.scandir(directory) as entries:
        songs = [
            entry.name for entry in entries
            if entry.is_file() and entry.name.endswith(extension)
        ]
    return sorted(songs)
