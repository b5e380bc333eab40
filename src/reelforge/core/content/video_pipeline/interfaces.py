"""Interfaces of the external services the pipeline depends on."""

from pathlib import Path
from typing import Protocol

from .models import AspectRatio, SpeechResult


class TextGenerator(Protocol):
    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.5,
    ) -> str: ...


class ImageService(Protocol):
    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> str | None: ...


class SpeechService(Protocol):
    async def synthesize(self, text: str, voice_id: str) -> SpeechResult | None: ...


class VoiceCatalog(Protocol):
    async def voice_exists(self, voice_id: str) -> bool: ...


class RenderEngine(Protocol):
    async def render(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame_range: tuple[int, int],
        width: int,
        height: int,
        fps: int,
    ) -> Path: ...

    async def render_still(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame: int,
        width: int,
        height: int,
        fps: int,
    ) -> Path: ...


class ObjectStorage(Protocol):
    async def upload(self, data: bytes, content_type: str) -> str: ...

    def resolve_url(self, handle: str) -> str: ...
