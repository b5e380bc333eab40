"""Video pipeline for turning a creative brief into a rendered short-form video.

The orchestrator (``pipeline.VideoPipeline``) and context gatherer depend on
the database layer and are imported from their modules directly.
"""

from .models import (
    AspectRatio,
    CodeResult,
    ImageResult,
    RenderResult,
    ScriptResult,
    VideoContext,
    VideoJobStatus,
    VideoScript,
    VoiceResult,
    WordTimestamp,
)
from .exceptions import (
    ContextError,
    PipelineError,
    RenderError,
    ScriptGenerationError,
)
from .script_generator import ScriptGenerator
from .image_generator import FalImageService, ImageGenerator
from .voiceover_service import VoiceoverService, VoiceSynthesizer
from .code_generator import CodeGenerator
from .remotion_renderer import RemotionEngine, VideoRenderer, dimensions_for
from .post_processor import PostProcessor, build_srt, generate_caption
from .storage import ArtifactResolver, LocalObjectStorage

__all__ = [
    "AspectRatio",
    "CodeResult",
    "ImageResult",
    "RenderResult",
    "ScriptResult",
    "VideoContext",
    "VideoJobStatus",
    "VideoScript",
    "VoiceResult",
    "WordTimestamp",
    "ContextError",
    "PipelineError",
    "RenderError",
    "ScriptGenerationError",
    "ScriptGenerator",
    "FalImageService",
    "ImageGenerator",
    "VoiceoverService",
    "VoiceSynthesizer",
    "CodeGenerator",
    "RemotionEngine",
    "VideoRenderer",
    "dimensions_for",
    "PostProcessor",
    "build_srt",
    "generate_caption",
    "ArtifactResolver",
    "LocalObjectStorage",
]
