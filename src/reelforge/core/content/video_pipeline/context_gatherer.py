"""Resolve a job's declarative inputs into a VideoContext."""

import asyncio
import logging

from sqlalchemy.orm import sessionmaker

from ....database.repositories.video_job import JobStore, SourceContentRepository
from .exceptions import ContextError
from .interfaces import VoiceCatalog
from .models import SourceSummary, VideoContext

logger = logging.getLogger(__name__)


class ContextGatherer:
    """Assembles the inputs every later stage of a job reads."""

    def __init__(
        self,
        job_store: JobStore,
        session_factory: sessionmaker,
        voice_catalog: VoiceCatalog | None = None,
    ):
        self.job_store = job_store
        self.session_factory = session_factory
        self.voice_catalog = voice_catalog

    async def gather(self, job_id: int) -> VideoContext:
        """Build the context for a job.

        Raises:
            ContextError: if the job references source content that does not
                exist, or a voice the voice catalog reports as unknown.
        """
        job = await asyncio.to_thread(self.job_store.get, job_id)

        if job.voice_id:
            await self._check_voice(job.voice_id)

        source = None
        if job.source_content_id is not None:
            source = await asyncio.to_thread(self._load_source, job.source_content_id)

        context = VideoContext(
            job_id=job.id,
            prompt=job.prompt,
            target_duration=job.target_duration,
            aspect_ratio=job.aspect_ratio,
            voice_id=job.voice_id,
            style=job.style,
            source=source,
            parent_job_id=job.parent_job_id,
            iteration_feedback=job.iteration_feedback,
        )

        logger.info(
            f"Context gathered for job {job_id}: {context.target_duration}s "
            f"{context.aspect_ratio.value}, voice={context.voice_id or 'none'}"
        )
        return context

    def _load_source(self, source_id: int) -> SourceSummary:
        with self.session_factory() as session:
            source = SourceContentRepository(session).get_by_id(source_id)
            if source is None:
                raise ContextError(f"Source content {source_id} does not exist")

            return SourceSummary(
                title=source.title,
                description=source.description,
                price=source.price,
                category=source.category,
                highlights=list(source.highlights or []),
                store_name=source.store_name,
            )

    async def _check_voice(self, voice_id: str) -> None:
        """Reject voices the catalog says do not exist.

        An unreachable or unconfigured catalog is not the job's fault; the
        voice stage degrades to no narration instead.
        """
        if self.voice_catalog is None:
            logger.warning(f"Voice '{voice_id}' requested but no voice service is configured")
            return

        try:
            exists = await self.voice_catalog.voice_exists(voice_id)
        except Exception as e:
            logger.warning(f"Could not verify voice '{voice_id}', continuing: {e}")
            return

        if not exists:
            raise ContextError(f"Voice '{voice_id}' does not exist")
