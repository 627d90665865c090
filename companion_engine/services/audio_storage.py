"""
Audio Storage Service
Holds synthesized speech in a scratch directory and hands out handles that
own their files.
"""

import base64
import hashlib
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class AudioHandle:
    """
    A generated audio blob on disk.

    The handle owns its file: ``release()`` deletes it. The audio cache
    calls ``release()`` when the entry expires, is evicted or is cleared.
    """
    path: Path
    size_bytes: int
    content_type: str = "audio/mpeg"
    released: bool = False

    def read_bytes(self) -> bytes:
        if self.released:
            raise FileNotFoundError(f"Audio handle already released: {self.path.name}")
        return self.path.read_bytes()

    def to_base64(self) -> str:
        return base64.b64encode(self.read_bytes()).decode("ascii")

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.path.unlink(missing_ok=True)
        logger.debug(f"[TTS] Released audio file {self.path.name}")


class AudioStorageService:
    """
    Service for managing scratch audio files.

    Responsibilities:
    - Save audio bytes under unique filenames
    - Clean up files left over from previous runs
    """

    EXTENSIONS = {"audio/mpeg": "mp3", "audio/wav": "wav", "audio/ogg": "ogg", "audio/flac": "flac"}

    def __init__(self, audio_folder: Path = Path("data/audio")):
        """Initialize the audio storage service."""
        self.audio_folder = Path(audio_folder)
        self.audio_folder.mkdir(parents=True, exist_ok=True)

    def save_audio(self, audio_data: bytes, key: str, content_type: str = "audio/mpeg") -> AudioHandle:
        """
        Save audio bytes to disk.

        Args:
            audio_data: Raw audio file bytes
            key: Cache key the audio was generated for (hashed into the name)
            content_type: MIME type of the audio

        Returns:
            AudioHandle owning the new file
        """
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        extension = self.EXTENSIONS.get(content_type, "bin")
        file_path = self.audio_folder / f"tts_{digest}_{timestamp}.{extension}"

        with open(file_path, 'wb') as f:
            f.write(audio_data)

        return AudioHandle(path=file_path, size_bytes=len(audio_data), content_type=content_type)

    def cleanup_stale_audio(self, max_age_seconds: float = 0) -> int:
        """
        Delete scratch files older than ``max_age_seconds``.

        Returns:
            Number of files deleted
        """
        cutoff = time.time() - max_age_seconds
        deleted_count = 0
        for audio_file in self.audio_folder.glob("tts_*"):
            if audio_file.is_file() and audio_file.stat().st_mtime <= cutoff:
                audio_file.unlink(missing_ok=True)
                deleted_count += 1
        return deleted_count
