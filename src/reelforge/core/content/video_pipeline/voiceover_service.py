"""Voiceover generation using Eleven Labs API."""

import asyncio
import base64
import logging

from elevenlabs import ElevenLabs

from .interfaces import ObjectStorage, SpeechService
from .models import SpeechResult, VoiceResult, WordTimestamp

logger = logging.getLogger(__name__)


def _field(obj, name: str):
    """Read a response field from either an SDK model or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def words_from_alignment(
    characters: list[str],
    starts: list[float],
    ends: list[float],
) -> list[WordTimestamp]:
    """Group character-level alignment into word timestamps."""
    words: list[WordTimestamp] = []
    current = ""
    word_start = 0.0
    word_end = 0.0

    for char, start, end in zip(characters, starts, ends):
        if char.isspace():
            if current:
                words.append(WordTimestamp(word=current, start=word_start, end=word_end))
                current = ""
            continue
        if not current:
            word_start = start
        current += char
        word_end = end

    if current:
        words.append(WordTimestamp(word=current, start=word_start, end=word_end))

    return words


class VoiceoverService:
    """Generates narration with timestamps using Eleven Labs API."""

    def __init__(
        self,
        api_key: str,
        storage: ObjectStorage,
        model_id: str = "eleven_multilingual_v2",
    ):
        self.client = ElevenLabs(api_key=api_key)
        self.storage = storage
        self.model_id = model_id
        self._voice_ids: set[str] | None = None

    async def synthesize(self, text: str, voice_id: str) -> SpeechResult | None:
        """Convert text to speech with word timings.

        Args:
            text: The full narration
            voice_id: Eleven Labs voice ID

        Returns:
            SpeechResult with stored audio, or None if no audio came back
        """
        logger.info(f"Generating voiceover ({len(text)} chars) with voice {voice_id}")

        response = await asyncio.to_thread(
            self.client.text_to_speech.convert_with_timestamps,
            voice_id=voice_id,
            text=text,
            model_id=self.model_id,
        )

        audio_b64 = _field(response, "audio_base_64") or _field(response, "audio_base64")
        if not audio_b64:
            return None

        audio = base64.b64decode(audio_b64)
        handle = await self.storage.upload(audio, "audio/mpeg")

        words: list[WordTimestamp] = []
        duration = 0.0
        alignment = _field(response, "alignment")
        if alignment is not None:
            ends = list(_field(alignment, "character_end_times_seconds") or [])
            words = words_from_alignment(
                list(_field(alignment, "characters") or []),
                list(_field(alignment, "character_start_times_seconds") or []),
                ends,
            )
            duration = max(ends) if ends else 0.0

        return SpeechResult(audio_handle=handle, duration=duration, words=words)

    async def list_voices(self) -> list[dict]:
        """List available voices from Eleven Labs.

        Returns:
            List of voice dictionaries with id, name, and preview_url
        """
        response = await asyncio.to_thread(self.client.voices.get_all)
        voices = [
            {
                "id": voice.voice_id,
                "name": voice.name,
                "preview_url": voice.preview_url,
            }
            for voice in response.voices
        ]
        self._voice_ids = {v["id"] for v in voices}
        return voices

    async def voice_exists(self, voice_id: str) -> bool:
        if self._voice_ids is None or voice_id not in self._voice_ids:
            await self.list_voices()
        return voice_id in self._voice_ids


class VoiceSynthesizer:
    """Voice stage. Narration is optional, so every failure degrades to skipped."""

    def __init__(self, speech_service: SpeechService | None):
        self.speech_service = speech_service

    async def synthesize(self, text: str, voice_id: str | None) -> VoiceResult:
        if not voice_id:
            return VoiceResult.skipped("no voice configured")
        if self.speech_service is None:
            return VoiceResult.skipped("speech service unavailable")
        if not text.strip():
            return VoiceResult.skipped("script has no narration")

        try:
            speech = await self.speech_service.synthesize(text, voice_id)
        except Exception as e:
            logger.warning(f"Voice synthesis failed, continuing without audio: {e}")
            return VoiceResult.skipped(f"speech synthesis failed: {e}")

        if speech is None:
            return VoiceResult.skipped("speech service returned no audio")

        logger.info(f"Voiceover generated: {speech.duration:.1f}s, {len(speech.words)} words")
        return VoiceResult(
            status="ok",
            audio_handle=speech.audio_handle,
            duration=speech.duration,
            words=speech.words,
        )
