"""Media files: type detection, loading from disk and opening with the system player."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_EXTENSION_TYPES: dict[str, str] = {
    **dict.fromkeys(("mp4", "avi", "mkv", "mov", "webm"), "video"),
    **dict.fromkeys(("mp3", "wav", "flac", "ogg", "aac"), "audio"),
    **dict.fromkeys(("jpg", "jpeg", "png", "gif", "bmp", "webp"), "image"),
}

PLAYABLE_TYPES = frozenset(("video", "audio", "image"))


@dataclass
class MediaFile:
    """A media file held in memory."""

    filename: str
    data: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def media_type_from_filename(filename: str | os.PathLike) -> str | None:
    """Return "video", "audio" or "image" for a supported extension, else None."""
    suffix = Path(filename).suffix
    if not suffix:
        return None
    return _EXTENSION_TYPES.get(suffix[1:].lower())


def load_media_file(path: str | os.PathLike) -> MediaFile | None:
    """Read a supported media file; return None if its type is not supported.

    Errors reading the file propagate as OSError.
    """
    path = Path(path)
    media_type = media_type_from_filename(path.name)
    if media_type is None:
        return None
    data = path.read_bytes()
    logger.info("Loaded media file: %s (%d bytes)", path.name, len(data))
    return MediaFile(filename=path.name, data=data, media_type=media_type)


def open_with_default_app(path: str | os.PathLike) -> subprocess.Popen | None:
    """Open a file with the platform's default application.

    Returns the started process, or None on platforms without a known opener.
    """
    target = str(path)
    if sys.platform.startswith("win"):
        command = ["cmd", "/C", "start", "", target]
    elif sys.platform == "darwin":
        command = ["open", target]
    elif sys.platform.startswith("linux"):
        command = ["xdg-open", target]
    else:
        return None
    return subprocess.Popen(command)


def write_and_open(temp_name: str | os.PathLike, data: bytes, media_type: str) -> Path:
    """Write data to temp_name and open it if the media type is playable."""
    path = Path(temp_name)
    path.write_bytes(data)
    if media_type in PLAYABLE_TYPES:
        logger.info("Playing %s: %s (%d bytes)", media_type, path.name, len(data))
        open_with_default_app(path)
    else:
        logger.warning("Unknown media type: %s", media_type)
    return path