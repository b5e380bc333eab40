"""Object storage for generated artifacts and handle-to-URL resolution."""

import asyncio
import logging
import uuid
from pathlib import Path

from .interfaces import ObjectStorage
from .models import AudioData, VoiceResult

logger = logging.getLogger(__name__)

HANDLE_SCHEME = "local://"

# content type -> (directory, extension)
CONTENT_TYPES = {
    "image/png": ("images", ".png"),
    "image/jpeg": ("images", ".jpg"),
    "image/webp": ("images", ".webp"),
    "audio/mpeg": ("audio", ".mp3"),
    "audio/wav": ("audio", ".wav"),
    "video/mp4": ("videos", ".mp4"),
}
MAX_FILE_SIZE_MB = 500


class LocalObjectStorage:
    """Stores artifacts on the local filesystem behind opaque handles."""

    def __init__(self, storage_dir: Path, public_base_url: str = "http://localhost:8000/media"):
        self.storage_dir = storage_dir
        self.public_base_url = public_base_url.rstrip("/")

        for directory, _ in set(CONTENT_TYPES.values()):
            (self.storage_dir / directory).mkdir(parents=True, exist_ok=True)

    async def upload(self, data: bytes, content_type: str) -> str:
        """Store bytes and return a handle for them.

        Args:
            data: File contents
            content_type: MIME type of the contents

        Returns:
            Opaque handle such as ``local://videos/<id>.mp4``
        """
        self._validate_upload(data, content_type)

        directory, ext = CONTENT_TYPES[content_type]
        key = f"{directory}/{uuid.uuid4().hex}{ext}"

        await asyncio.to_thread(self._write_file, self.storage_dir / key, data)
        logger.info(f"Stored {len(data)} bytes as {key}")

        return f"{HANDLE_SCHEME}{key}"

    def resolve_url(self, handle: str) -> str:
        """Convert a handle into a fetchable URL."""
        return f"{self.public_base_url}/{self._key(handle)}"

    def _key(self, handle: str) -> str:
        if not handle.startswith(HANDLE_SCHEME):
            raise ValueError(f"Invalid storage handle: {handle}")
        return handle[len(HANDLE_SCHEME):]

    def _validate_upload(self, data: bytes, content_type: str) -> None:
        """Validate content type and size."""
        if content_type not in CONTENT_TYPES:
            raise ValueError(
                f"Invalid content type: {content_type}. Allowed: {sorted(CONTENT_TYPES)}"
            )
        if not data:
            raise ValueError("Cannot store an empty file")
        if len(data) > MAX_FILE_SIZE_MB * 1024 * 1024:
            raise ValueError(f"File exceeds {MAX_FILE_SIZE_MB}MB limit")

    def _write_file(self, dest_path: Path, data: bytes) -> None:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(dest_path, "wb") as dest:
            dest.write(data)


class ArtifactResolver:
    """Turns storage handles produced by one stage into URLs for the next."""

    def __init__(self, storage: ObjectStorage):
        self.storage = storage

    def resolve(self, handle: str) -> str:
        return self.storage.resolve_url(handle)

    def resolve_images(self, handles: list[str | None]) -> list[str]:
        """Resolve image handles in order, dropping failed prompts."""
        return [self.resolve(h) for h in handles if h is not None]

    def resolve_audio(self, voice: VoiceResult) -> AudioData | None:
        """Resolve narration, or None when voice was skipped."""
        if voice.status != "ok" or not voice.audio_handle:
            return None

        return AudioData(
            audio_url=self.resolve(voice.audio_handle),
            duration=voice.duration or 0.0,
            words=voice.words,
        )
