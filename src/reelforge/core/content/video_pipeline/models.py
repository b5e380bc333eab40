"""Pydantic models for the video pipeline."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AspectRatio(str, Enum):
    """Output aspect ratio of a video."""

    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"
    SQUARE = "1:1"


class VideoJobStatus(str, Enum):
    """Status of a video job through the pipeline."""

    PENDING = "pending"
    GATHERING_CONTEXT = "gathering_context"
    GENERATING_SCRIPT = "generating_script"
    GENERATING_ASSETS = "generating_assets"
    GENERATING_VOICE = "generating_voice"
    GENERATING_CODE = "generating_code"
    RENDERING = "rendering"
    POST_PROCESSING = "post_processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Stage order and the progress written when a stage is entered
STATUS_PROGRESS: dict[VideoJobStatus, int] = {
    VideoJobStatus.PENDING: 0,
    VideoJobStatus.GATHERING_CONTEXT: 10,
    VideoJobStatus.GENERATING_SCRIPT: 25,
    VideoJobStatus.GENERATING_ASSETS: 40,
    VideoJobStatus.GENERATING_VOICE: 55,
    VideoJobStatus.GENERATING_CODE: 70,
    VideoJobStatus.RENDERING: 75,
    VideoJobStatus.POST_PROCESSING: 95,
    VideoJobStatus.COMPLETED: 100,
}

STATUS_ORDER: list[VideoJobStatus] = list(STATUS_PROGRESS)


# =============================================================================
# Script
# =============================================================================


class OnScreenText(BaseModel):
    """Text shown on screen during a scene."""

    headline: str | None = None
    subhead: str | None = None
    bullet_points: list[str] = Field(default_factory=list)
    emphasis: list[str] = Field(default_factory=list)


class Scene(BaseModel):
    """A single scene of the video script."""

    id: str
    duration: float = Field(gt=0)
    voiceover: str = ""
    on_screen_text: OnScreenText = Field(default_factory=OnScreenText)
    visual_direction: str = ""
    mood: str = "educational"
    image_prompt: str | None = None


class ColorPalette(BaseModel):
    """Colors chosen for the video."""

    primary: str = "#6366f1"
    secondary: str = "#7c3aed"
    accent: str = "#22d3ee"
    background: str = "#0a0a0a"


class VideoScript(BaseModel):
    """Complete scene-by-scene script for a video."""

    scenes: list[Scene]
    total_duration: float
    color_palette: ColorPalette = Field(default_factory=ColorPalette)

    @field_validator("scenes")
    @classmethod
    def _require_scenes(cls, scenes: list[Scene]) -> list[Scene]:
        if not scenes:
            raise ValueError("script must contain at least one scene")
        return scenes

    @property
    def voiceover_text(self) -> str:
        """Full narration: every scene's voiceover line in order."""
        return " ".join(s.voiceover.strip() for s in self.scenes if s.voiceover.strip())

    @property
    def image_prompts(self) -> list[str]:
        return [s.image_prompt for s in self.scenes if s.image_prompt]


class WordTimestamp(BaseModel):
    """A spoken word with its start and end time in seconds."""

    word: str
    start: float = Field(ge=0)
    end: float = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "WordTimestamp":
        if self.end < self.start:
            raise ValueError("word end must not precede its start")
        return self


# =============================================================================
# Stage payloads
# =============================================================================


class SourceSummary(BaseModel):
    """Product or course data the script may reference."""

    title: str
    description: str | None = None
    price: float | None = None
    category: str | None = None
    highlights: list[str] = Field(default_factory=list)
    store_name: str | None = None


class VideoContext(BaseModel):
    """Everything the stages of one job need, resolved up front."""

    job_id: int
    prompt: str
    target_duration: int = Field(ge=5, le=180)
    aspect_ratio: AspectRatio
    voice_id: str | None = None
    style: str | None = None
    source: SourceSummary | None = None
    parent_job_id: int | None = None
    iteration_feedback: str | None = None


class ScriptResult(BaseModel):
    """Output of the script generator."""

    script_id: int
    script: VideoScript
    image_prompts: list[str]
    voiceover_text: str


class ImageFailure(BaseModel):
    """A single image prompt that produced no image."""

    index: int
    prompt: str
    reason: str


class ImageResult(BaseModel):
    """Output of the image generator; holes mark failed prompts."""

    handles: list[str | None]
    failures: list[ImageFailure] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for h in self.handles if h is not None)

    @property
    def is_degraded(self) -> bool:
        return bool(self.failures)


class SpeechResult(BaseModel):
    """Raw output of a speech synthesis service."""

    audio_handle: str
    duration: float
    words: list[WordTimestamp] = Field(default_factory=list)


class VoiceResult(BaseModel):
    """Output of the voice synthesizer; skipped voice is not an error."""

    status: Literal["ok", "skipped"]
    audio_handle: str | None = None
    duration: float | None = None
    words: list[WordTimestamp] = Field(default_factory=list)
    reason: str | None = None

    @classmethod
    def skipped(cls, reason: str) -> "VoiceResult":
        return cls(status="skipped", reason=reason)

    @property
    def is_degraded(self) -> bool:
        return self.status == "skipped"


class AudioData(BaseModel):
    """Resolved narration handed to code generation and rendering."""

    audio_url: str
    duration: float
    words: list[WordTimestamp] = Field(default_factory=list)


class CodeResult(BaseModel):
    """Output of the code generator."""

    code: str = Field(min_length=1)
    used_fallback: bool
    attempts: int = 0


class RenderResult(BaseModel):
    """Result of video rendering."""

    video_handle: str
    duration_seconds: float
    width: int
    height: int
    frame_count: int
    file_size_bytes: int
    rendered_at: datetime = Field(default_factory=datetime.utcnow)


class DerivedArtifact(BaseModel):
    """Outcome of one post-processing derivation."""

    value: str | None = None
    error: str | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.value is not None


class PostProcessResult(BaseModel):
    """Outcome of the three post-processing derivations."""

    thumbnail: DerivedArtifact
    subtitles: DerivedArtifact
    caption: DerivedArtifact


# =============================================================================
# API models
# =============================================================================


class VideoJobCreate(BaseModel):
    """Request model for submitting a video job."""

    prompt: str = Field(min_length=1, max_length=2000)
    target_duration: int = Field(default=30, ge=5, le=180)
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    voice_id: str | None = None
    style: str | None = None
    source_content_id: int | None = None
    parent_job_id: int | None = None
    iteration_feedback: str | None = None

    @model_validator(mode="after")
    def _check_iteration(self) -> "VideoJobCreate":
        if self.iteration_feedback and self.parent_job_id is None:
            raise ValueError("iteration_feedback requires parent_job_id")
        return self


class IterationRequest(BaseModel):
    """Request model for revising a completed job."""

    feedback: str = Field(min_length=1, max_length=2000)


class SourceContentCreate(BaseModel):
    """Request model for registering source content."""

    title: str
    description: str | None = None
    price: float | None = None
    category: str | None = None
    highlights: list[str] = Field(default_factory=list)
    store_name: str | None = None


class VideoJobView(BaseModel):
    """Read model for a video job, detached from the database session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    status: VideoJobStatus
    progress: int
    prompt: str
    style: str | None = None
    target_duration: int
    aspect_ratio: AspectRatio
    voice_id: str | None = None
    source_content_id: int | None = None
    retry_count: int
    last_error: str | None = None
    generated_code: str | None = None
    used_fallback_code: bool = False
    video_handle: str | None = None
    duration_seconds: float | None = None
    thumbnail_handle: str | None = None
    subtitle_text: str | None = None
    caption_text: str | None = None
    parent_job_id: int | None = None
    iteration_feedback: str | None = None
    version: int = 1
    completed_at: datetime | None = None
    next_attempt_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
