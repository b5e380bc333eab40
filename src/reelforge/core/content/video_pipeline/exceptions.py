"""Exceptions raised by the video pipeline."""


class PipelineError(Exception):
    """Base class for video pipeline errors."""


class JobNotFoundError(PipelineError):
    """The requested job does not exist."""

    def __init__(self, job_id: int):
        super().__init__(f"Video job {job_id} not found")
        self.job_id = job_id


class InvalidTransitionError(PipelineError):
    """A status change would skip or reverse a pipeline stage."""


class ContextError(PipelineError):
    """A job references inputs that do not exist. Never retried."""


class ScriptGenerationError(PipelineError):
    """Script generation failed after all attempts."""


class ImageGenerationError(PipelineError):
    """The image stage failed as a whole."""


class RenderError(PipelineError):
    """The rendering engine failed to produce output."""
