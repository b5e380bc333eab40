"""Thumbnail, subtitle and caption derivation for finished videos."""

import asyncio
import logging
import re
from pathlib import Path

from .interfaces import ObjectStorage, RenderEngine
from .models import (
    AspectRatio,
    DerivedArtifact,
    PostProcessResult,
    VideoScript,
    WordTimestamp,
)
from .remotion_renderer import dimensions_for

logger = logging.getLogger(__name__)

THUMBNAIL_POSITION = 0.3
WORDS_PER_CUE = 7
MAX_CAPTION_BULLETS = 3
MAX_HASHTAGS = 15
BULLET_SCENE_IDS = ("solution", "features")

# Keyword -> hashtags, matched in order against the narration
HASHTAG_TABLE: list[tuple[tuple[str, ...], tuple[str, ...]]] = [
    (("music production", "producer", "producing"), ("#musicproduction", "#producer", "#producerlife")),
    (("beat", "beats", "beatmaking"), ("#beatmaker", "#beats")),
    (("mixing", "mix"), ("#mixing", "#mixingengineer")),
    (("mastering", "master"), ("#mastering", "#audioengineering")),
    (("synth", "synthesis", "sound design"), ("#sounddesign", "#synthesizer")),
    (("ableton",), ("#ableton", "#abletonlive")),
    (("fl studio",), ("#flstudio",)),
    (("logic pro",), ("#logicpro",)),
    (("hip hop", "rap", "trap"), ("#hiphop", "#trapbeats")),
    (("edm", "house", "techno"), ("#edm", "#electronicmusic")),
    (("vocal", "vocals", "singing"), ("#vocals", "#singer")),
    (("sample", "samples", "sample pack"), ("#samples", "#samplepack")),
    (("course", "lesson", "lessons", "learn"), ("#onlinecourse", "#learnonline")),
    (("tutorial", "tips", "how to"), ("#tutorial", "#tips")),
    (("marketing", "brand", "audience"), ("#marketing", "#branding")),
    (("business", "income", "sales", "revenue"), ("#business", "#entrepreneur")),
    (("creator", "content"), ("#creator", "#contentcreator")),
    (("ai", "artificial intelligence", "automation"), ("#ai", "#automation")),
    (("fitness", "workout", "training"), ("#fitness", "#workout")),
    (("design", "designer"), ("#design",)),
]


def format_srt_timestamp(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def build_srt(words: list[WordTimestamp], words_per_cue: int = WORDS_PER_CUE) -> str:
    """Group word timestamps into numbered subtitle cues.

    Each cue spans from its first word's start to its last word's end.
    """
    if words_per_cue < 1:
        raise ValueError("words_per_cue must be at least 1")

    cues = []
    for index, offset in enumerate(range(0, len(words), words_per_cue), start=1):
        chunk = words[offset:offset + words_per_cue]
        start = format_srt_timestamp(chunk[0].start)
        end = format_srt_timestamp(chunk[-1].end)
        text = " ".join(w.word for w in chunk)
        cues.append(f"{index}\n{start} --> {end}\n{text}\n")

    return "\n".join(cues)


def _first_sentence(text: str) -> str:
    text = text.strip()
    if not text:
        return ""
    return re.split(r"(?<=[.!?])\s+", text, maxsplit=1)[0]


def select_hashtags(text: str, limit: int = MAX_HASHTAGS) -> list[str]:
    """Pick hashtags whose keywords appear in text, in table order."""
    lowered = text.lower()
    tags: list[str] = []

    for keywords, hashtags in HASHTAG_TABLE:
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            tags.extend(t for t in hashtags if t not in tags)

    return tags[:limit]


def generate_caption(script: VideoScript) -> str:
    """Build a social caption from the script text alone.

    Deterministic: the same script always yields the same caption.
    """
    scenes = script.scenes
    first = scenes[0]
    opening = first.on_screen_text.headline or _first_sentence(first.voiceover)

    bullets: list[str] = []
    bullet_scene = next((s for s in scenes if s.id.lower() in BULLET_SCENE_IDS), None)
    if bullet_scene:
        bullets = bullet_scene.on_screen_text.bullet_points[:MAX_CAPTION_BULLETS]

    cta = None
    if len(scenes) > 1:
        cta = scenes[-1].on_screen_text.headline

    blocks = []
    if opening:
        blocks.append(opening)
    if bullets:
        blocks.append("\n".join(f"✅ {b}" for b in bullets))
    if cta:
        blocks.append(f"👉 {cta}")

    hashtags = select_hashtags(script.voiceover_text)
    if hashtags:
        blocks.append(" ".join(hashtags))

    return "\n\n".join(blocks)


class PostProcessor:
    """Derives thumbnail, subtitles and caption; each is best-effort."""

    def __init__(
        self,
        engine: RenderEngine,
        storage: ObjectStorage,
        fps: int = 30,
        words_per_cue: int = WORDS_PER_CUE,
    ):
        self.engine = engine
        self.storage = storage
        self.fps = fps
        self.words_per_cue = words_per_cue

    async def generate_thumbnail(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame_count: int,
        aspect_ratio: AspectRatio | str,
    ) -> str:
        """Render a still 30% into the timeline and store it."""
        width, height = dimensions_for(aspect_ratio)
        frame = int(frame_count * THUMBNAIL_POSITION)

        still_path = await self.engine.render_still(
            code, image_urls, audio_url, frame, width, height, self.fps
        )
        try:
            data = await asyncio.to_thread(Path(still_path).read_bytes)
            return await self.storage.upload(data, "image/png")
        finally:
            Path(still_path).unlink(missing_ok=True)

    async def run(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame_count: int,
        aspect_ratio: AspectRatio | str,
        script: VideoScript,
        words: list[WordTimestamp],
    ) -> PostProcessResult:
        try:
            thumbnail = DerivedArtifact(
                value=await self.generate_thumbnail(
                    code, image_urls, audio_url, frame_count, aspect_ratio
                )
            )
        except Exception as e:
            logger.warning(f"Thumbnail generation failed: {e}")
            thumbnail = DerivedArtifact(error=str(e))

        if not words:
            subtitles = DerivedArtifact(skipped=True)
        else:
            try:
                subtitles = DerivedArtifact(value=build_srt(words, self.words_per_cue))
            except Exception as e:
                logger.warning(f"Subtitle generation failed: {e}")
                subtitles = DerivedArtifact(error=str(e))

        try:
            caption = DerivedArtifact(value=generate_caption(script))
        except Exception as e:
            logger.warning(f"Caption generation failed: {e}")
            caption = DerivedArtifact(error=str(e))

        return PostProcessResult(thumbnail=thumbnail, subtitles=subtitles, caption=caption)
