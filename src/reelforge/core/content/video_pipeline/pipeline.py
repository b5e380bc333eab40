"""Video pipeline orchestrator."""

import asyncio
import logging
from datetime import datetime, timedelta

from ....database.repositories.video_job import JobStore
from .code_generator import CodeGenerator
from .context_gatherer import ContextGatherer
from .exceptions import ContextError, ImageGenerationError
from .image_generator import ImageGenerator
from .job_queue import JobQueue
from .models import (
    ImageResult,
    ScriptResult,
    VideoContext,
    VideoJobCreate,
    VideoJobStatus,
    VoiceResult,
)
from .post_processor import PostProcessor
from .remotion_renderer import VideoRenderer
from .script_generator import ScriptGenerator
from .storage import ArtifactResolver
from .voiceover_service import VoiceSynthesizer

logger = logging.getLogger(__name__)


class VideoPipeline:
    """Orchestrates the video generation pipeline for one job at a time.

    Pipeline flow:
    1. Gather context -> GATHERING_CONTEXT (10%)
    2. Generate script (LLM) -> GENERATING_SCRIPT (25%)
    3. Images and voice in parallel -> GENERATING_ASSETS (40%) / GENERATING_VOICE (55%)
    4. Generate composition code (LLM, fallback template) -> GENERATING_CODE (70%)
    5. Render video (Remotion) -> RENDERING (75%)
    6. Thumbnail, subtitles, caption -> POST_PROCESSING (95%)
    7. COMPLETED (100%)

    Each status is written before its stage runs. Fatal errors mark the job
    FAILED and schedule a fresh attempt until max_retries is reached.
    """

    def __init__(
        self,
        job_store: JobStore,
        context_gatherer: ContextGatherer,
        script_generator: ScriptGenerator,
        image_generator: ImageGenerator,
        voice_synthesizer: VoiceSynthesizer,
        code_generator: CodeGenerator,
        renderer: VideoRenderer,
        post_processor: PostProcessor,
        resolver: ArtifactResolver,
        queue: JobQueue | None = None,
        max_retries: int = 3,
        retry_delay: float = 5.0,
    ):
        self.job_store = job_store
        self.context_gatherer = context_gatherer
        self.script_generator = script_generator
        self.image_generator = image_generator
        self.voice_synthesizer = voice_synthesizer
        self.code_generator = code_generator
        self.renderer = renderer
        self.post_processor = post_processor
        self.resolver = resolver
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.queue = queue or JobQueue(self.run, default_delay=retry_delay)

    async def submit(self, request: VideoJobCreate) -> int:
        """Create a job and start processing it.

        Raises:
            ValueError: if the request revises a job that cannot be revised
        """
        job_id = await asyncio.to_thread(self.job_store.create, request)
        self.queue.submit(job_id)
        logger.info(f"Job {job_id} submitted (parent={request.parent_job_id})")
        return job_id

    async def run(self, job_id: int) -> None:
        """Run one attempt of a job, recording failures and scheduling retries."""
        job = await asyncio.to_thread(self.job_store.get, job_id)
        if job.status == VideoJobStatus.COMPLETED:
            logger.info(f"Job {job_id} already completed, nothing to do")
            return
        if job.status == VideoJobStatus.FAILED and job.retry_count >= self.max_retries:
            logger.info(f"Job {job_id} permanently failed, not running again")
            return

        try:
            await self._execute(job_id)
        except ContextError as e:
            await asyncio.to_thread(
                self.job_store.append_error, job_id, f"Invalid job context: {e}"
            )
            logger.error(f"Job {job_id} failed with invalid context, not retrying: {e}")
        except Exception as e:
            await self._handle_failure(job_id, e)

    async def _handle_failure(self, job_id: int, error: Exception) -> int:
        """Record a failed attempt and schedule the next one while retries remain."""
        message = str(error) or type(error).__name__
        due = datetime.utcnow() + timedelta(seconds=self.retry_delay)
        retry_count = await asyncio.to_thread(self.job_store.append_error, job_id, message, due)

        if retry_count < self.max_retries:
            self.queue.schedule(job_id, self.retry_delay)
            logger.error(
                f"Job {job_id} failed (attempt {retry_count}/{self.max_retries}), "
                f"retrying in {self.retry_delay:.0f}s: {message}"
            )
        else:
            logger.error(
                f"Job {job_id} permanently failed after {retry_count} attempts: {message}"
            )
        return retry_count

    async def resume_interrupted(self) -> int:
        """Re-enqueue jobs left unfinished by a previous process.

        A job caught mid-stage counts as a failed attempt and goes through the
        normal retry policy.
        """
        resumed = 0
        for job in await asyncio.to_thread(self.job_store.list_resumable):
            if job.status == VideoJobStatus.PENDING:
                self.queue.submit(job.id)
            elif job.status == VideoJobStatus.FAILED:
                delay = 0.0
                if job.next_attempt_at:
                    delay = (job.next_attempt_at - datetime.utcnow()).total_seconds()
                self.queue.schedule(job.id, delay)
            else:
                retry_count = await self._handle_failure(
                    job.id, RuntimeError(f"Interrupted during {job.status.value}")
                )
                if retry_count >= self.max_retries:
                    continue
            resumed += 1

        if resumed:
            logger.info(f"Resumed {resumed} interrupted video jobs")
        return resumed

    async def _execute(self, job_id: int) -> None:
        await self._set_status(job_id, VideoJobStatus.GATHERING_CONTEXT)
        context = await self.context_gatherer.gather(job_id)

        await self._set_status(job_id, VideoJobStatus.GENERATING_SCRIPT)
        script_result = await self.script_generator.generate(job_id, context)

        images, voice = await self._generate_assets(job_id, context, script_result)

        image_urls = self.resolver.resolve_images(images.handles)
        audio = self.resolver.resolve_audio(voice)
        audio_url = audio.audio_url if audio else None

        previous_code, feedback = await self._iteration_inputs(context)

        await self._set_status(job_id, VideoJobStatus.GENERATING_CODE)
        code_result = await self.code_generator.generate(
            script=script_result.script,
            image_urls=image_urls,
            audio=audio,
            aspect_ratio=context.aspect_ratio,
            target_duration=context.target_duration,
            previous_code=previous_code,
            iteration_feedback=feedback,
        )
        await self._set_result(job_id, "generated_code", code_result.code)
        await self._set_result(job_id, "used_fallback_code", code_result.used_fallback)

        await self._set_status(job_id, VideoJobStatus.RENDERING)
        render_result = await self.renderer.render(
            code=code_result.code,
            image_urls=image_urls,
            audio_url=audio_url,
            duration=context.target_duration,
            aspect_ratio=context.aspect_ratio,
        )
        await self._set_result(job_id, "video_handle", render_result.video_handle)
        await self._set_result(job_id, "duration_seconds", render_result.duration_seconds)

        await self._set_status(job_id, VideoJobStatus.POST_PROCESSING)
        post = await self.post_processor.run(
            code=code_result.code,
            image_urls=image_urls,
            audio_url=audio_url,
            frame_count=render_result.frame_count,
            aspect_ratio=context.aspect_ratio,
            script=script_result.script,
            words=voice.words,
        )
        if post.thumbnail.ok:
            await self._set_result(job_id, "thumbnail_handle", post.thumbnail.value)
        if post.subtitles.ok:
            await self._set_result(job_id, "subtitle_text", post.subtitles.value)
        if post.caption.ok:
            await self._set_result(job_id, "caption_text", post.caption.value)

        await asyncio.to_thread(self.job_store.mark_completed, job_id)
        logger.info(
            f"Job {job_id} completed: {render_result.duration_seconds:.1f}s video, "
            f"{images.success_count}/{len(images.handles)} images, voice={voice.status}, "
            f"fallback_code={code_result.used_fallback}"
        )

    async def _set_status(self, job_id: int, status: VideoJobStatus) -> None:
        await asyncio.to_thread(self.job_store.update_status, job_id, status)

    async def _set_result(self, job_id: int, field: str, value) -> None:
        await asyncio.to_thread(self.job_store.set_result, job_id, field, value)

    async def _generate_assets(
        self,
        job_id: int,
        context: VideoContext,
        script_result: ScriptResult,
    ) -> tuple[ImageResult, VoiceResult]:
        """Run image and voice generation concurrently and wait for both.

        Only an image-stage exception is fatal; voice always degrades.
        """
        await self._set_status(job_id, VideoJobStatus.GENERATING_ASSETS)
        image_task = asyncio.create_task(
            self.image_generator.generate(script_result.image_prompts, context.aspect_ratio)
        )

        await self._set_status(job_id, VideoJobStatus.GENERATING_VOICE)
        voice_task = asyncio.create_task(
            self.voice_synthesizer.synthesize(script_result.voiceover_text, context.voice_id)
        )

        images, voice = await asyncio.gather(image_task, voice_task, return_exceptions=True)

        if isinstance(voice, BaseException):
            logger.warning(f"Voice stage raised for job {job_id}, continuing without audio: {voice}")
            voice = VoiceResult.skipped(f"voice stage error: {voice}")
        if isinstance(images, BaseException):
            raise ImageGenerationError(f"Image generation failed: {images}") from images

        if images.is_degraded:
            logger.warning(
                f"Job {job_id}: {len(images.failures)} of {len(images.handles)} images failed"
            )
        if voice.is_degraded:
            logger.warning(f"Job {job_id}: voice skipped ({voice.reason})")

        return images, voice

    async def _iteration_inputs(self, context: VideoContext) -> tuple[str | None, str | None]:
        """Previous code and feedback when this job revises another."""
        if context.parent_job_id is None:
            return None, None

        parent = await asyncio.to_thread(self.job_store.get, context.parent_job_id)
        logger.info(
            f"Job {context.job_id} revises job {parent.id} "
            f"({len(parent.generated_code or '')} chars of code)"
        )
        return parent.generated_code, context.iteration_feedback
