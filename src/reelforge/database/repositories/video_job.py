"""Repository for video job data access."""

from datetime import datetime
from sqlalchemy import select, or_, and_
from sqlalchemy.orm import Session, sessionmaker

from ..models import SourceContent, VideoJob, VideoScriptRecord
from ...core.content.video_pipeline.exceptions import (
    InvalidTransitionError,
    JobNotFoundError,
)
from ...core.content.video_pipeline.models import (
    STATUS_ORDER,
    STATUS_PROGRESS,
    SourceContentCreate,
    VideoJobCreate,
    VideoJobStatus,
    VideoJobView,
    VideoScript,
)

# Fields stages may write incrementally through set_result
RESULT_FIELDS = frozenset({
    "generated_code",
    "used_fallback_code",
    "video_handle",
    "duration_seconds",
    "thumbnail_handle",
    "subtitle_text",
    "caption_text",
})


def check_transition(current: VideoJobStatus, new: VideoJobStatus) -> None:
    """Raise InvalidTransitionError unless current -> new is a legal step."""
    if new == current:
        return
    if current == VideoJobStatus.COMPLETED:
        raise InvalidTransitionError(f"Job already completed, cannot move to {new.value}")
    if new == VideoJobStatus.FAILED:
        return
    if new == VideoJobStatus.GATHERING_CONTEXT and current in (
        VideoJobStatus.PENDING,
        VideoJobStatus.FAILED,
    ):
        return
    if current != VideoJobStatus.FAILED and new in STATUS_ORDER:
        if STATUS_ORDER.index(new) == STATUS_ORDER.index(current) + 1:
            return
    raise InvalidTransitionError(f"Cannot move from {current.value} to {new.value}")


class VideoJobRepository:
    """Data access layer for video jobs."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, request: VideoJobCreate) -> VideoJob:
        """Create a new video job in PENDING status.

        Revisions must reference a job that has completed and produced code.
        """
        version = 1
        if request.parent_job_id is not None:
            parent = self.get_by_id(request.parent_job_id)
            if not parent:
                raise ValueError(f"Parent job {request.parent_job_id} not found")
            if parent.completed_at is None or not parent.generated_code:
                raise ValueError(
                    f"Parent job {request.parent_job_id} has not completed"
                )
            version = parent.version + 1

        job = VideoJob(
            prompt=request.prompt,
            style=request.style,
            target_duration=request.target_duration,
            aspect_ratio=request.aspect_ratio,
            voice_id=request.voice_id,
            source_content_id=request.source_content_id,
            parent_job_id=request.parent_job_id,
            iteration_feedback=request.iteration_feedback,
            version=version,
            status=VideoJobStatus.PENDING,
            progress=0,
            retry_count=0,
        )
        self.session.add(job)
        self.session.commit()
        self.session.refresh(job)
        return job

    def get_by_id(self, job_id: int) -> VideoJob | None:
        """Get a video job by ID."""
        return self.session.get(VideoJob, job_id)

    def require(self, job_id: int) -> VideoJob:
        job = self.get_by_id(job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(
        self,
        status: VideoJobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[VideoJob]:
        """List video jobs with optional filtering."""
        stmt = select(VideoJob).order_by(VideoJob.created_at.desc(), VideoJob.id.desc())

        if status:
            stmt = stmt.where(VideoJob.status == status)

        stmt = stmt.limit(limit).offset(offset)
        return list(self.session.execute(stmt).scalars().all())

    def list_resumable(self, max_retries: int) -> list[VideoJob]:
        """Jobs that were interrupted or still owe a retry."""
        stmt = (
            select(VideoJob)
            .where(
                or_(
                    VideoJob.status.not_in([VideoJobStatus.COMPLETED, VideoJobStatus.FAILED]),
                    and_(
                        VideoJob.status == VideoJobStatus.FAILED,
                        VideoJob.next_attempt_at.is_not(None),
                        VideoJob.retry_count < max_retries,
                    ),
                )
            )
            .order_by(VideoJob.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_versions(self, job_id: int) -> list[VideoJob]:
        """Return the revision chain ending at job_id, oldest first."""
        chain = []
        job = self.get_by_id(job_id)
        while job is not None:
            chain.append(job)
            job = self.get_by_id(job.parent_job_id) if job.parent_job_id else None
        return list(reversed(chain))

    def update_status(
        self,
        job_id: int,
        status: VideoJobStatus,
        progress: int | None = None,
    ) -> VideoJob:
        """Move a job to a new status.

        Repeating the current status is a no-op apart from progress, which
        never decreases within an attempt.
        """
        job = self.require(job_id)
        check_transition(job.status, status)

        if progress is None:
            progress = STATUS_PROGRESS.get(status, job.progress)

        new_attempt = status == VideoJobStatus.GATHERING_CONTEXT and job.status in (
            VideoJobStatus.PENDING,
            VideoJobStatus.FAILED,
        )
        if new_attempt:
            job.progress = progress
            job.next_attempt_at = None
        elif status != VideoJobStatus.FAILED:
            job.progress = max(job.progress, progress)

        if job.status != status:
            job.status = status
            job.updated_at = datetime.utcnow()

        self.session.commit()
        self.session.refresh(job)
        return job

    def append_error(
        self,
        job_id: int,
        message: str,
        retry_at: datetime | None = None,
        max_retries: int | None = None,
    ) -> int:
        """Record a failed attempt and return the new retry count.

        When retry_at is given and retries remain, the due time is written in
        the same commit so a crash right after still leaves the retry owed.
        """
        job = self.require(job_id)
        check_transition(job.status, VideoJobStatus.FAILED)

        job.status = VideoJobStatus.FAILED
        job.last_error = message[:4000]
        job.retry_count = (job.retry_count or 0) + 1
        retry_owed = max_retries is None or job.retry_count < max_retries
        job.next_attempt_at = retry_at if retry_owed else None
        job.updated_at = datetime.utcnow()

        self.session.commit()
        self.session.refresh(job)
        return job.retry_count

    def set_result(self, job_id: int, field: str, value) -> VideoJob:
        """Write one output artifact onto the job."""
        if field not in RESULT_FIELDS:
            raise ValueError(f"Unknown result field: {field}")

        job = self.require(job_id)
        if getattr(job, field) != value:
            setattr(job, field, value)
            job.updated_at = datetime.utcnow()
            self.session.commit()
            self.session.refresh(job)
        return job

    def mark_completed(self, job_id: int) -> VideoJob:
        """Mark a job completed at 100% progress."""
        job = self.require(job_id)
        if job.status == VideoJobStatus.COMPLETED:
            return job
        check_transition(job.status, VideoJobStatus.COMPLETED)

        job.status = VideoJobStatus.COMPLETED
        job.progress = 100
        job.completed_at = job.completed_at or datetime.utcnow()
        job.updated_at = datetime.utcnow()

        self.session.commit()
        self.session.refresh(job)
        return job

    def store_script(self, job_id: int, script: VideoScript) -> VideoScriptRecord:
        """Create or replace the script of a job."""
        self.require(job_id)

        record = self.session.execute(
            select(VideoScriptRecord).where(VideoScriptRecord.job_id == job_id)
        ).scalar_one_or_none()

        if record is None:
            record = VideoScriptRecord(job_id=job_id)
            self.session.add(record)

        record.script_json = script.model_dump(mode="json")
        record.voiceover_text = script.voiceover_text
        record.updated_at = datetime.utcnow()

        self.session.commit()
        self.session.refresh(record)
        return record

    def get_script(self, job_id: int) -> VideoScript | None:
        """Get the script generated for a job."""
        record = self.session.execute(
            select(VideoScriptRecord).where(VideoScriptRecord.job_id == job_id)
        ).scalar_one_or_none()
        if record is None:
            return None
        return VideoScript.model_validate(record.script_json)


class SourceContentRepository:
    """Data access layer for source content."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, request: SourceContentCreate) -> SourceContent:
        """Register source content."""
        source = SourceContent(**request.model_dump())
        self.session.add(source)
        self.session.commit()
        self.session.refresh(source)
        return source

    def get_by_id(self, source_id: int) -> SourceContent | None:
        return self.session.get(SourceContent, source_id)

    def list_sources(self) -> list[SourceContent]:
        stmt = select(SourceContent).order_by(SourceContent.id)
        return list(self.session.execute(stmt).scalars().all())


class JobStore:
    """Job Store used by the pipeline; one short-lived session per call.

    Returns detached VideoJobView snapshots so concurrent jobs never share
    ORM state.
    """

    def __init__(self, session_factory: sessionmaker, max_retries: int = 3):
        self.session_factory = session_factory
        self.max_retries = max_retries

    def create(self, request: VideoJobCreate) -> int:
        with self.session_factory() as session:
            return VideoJobRepository(session).create(request).id

    def get(self, job_id: int) -> VideoJobView:
        with self.session_factory() as session:
            return VideoJobView.model_validate(VideoJobRepository(session).require(job_id))

    def update_status(
        self,
        job_id: int,
        status: VideoJobStatus,
        progress: int | None = None,
    ) -> VideoJobView:
        with self.session_factory() as session:
            job = VideoJobRepository(session).update_status(job_id, status, progress)
            return VideoJobView.model_validate(job)

    def append_error(self, job_id: int, message: str, retry_at: datetime | None = None) -> int:
        with self.session_factory() as session:
            return VideoJobRepository(session).append_error(
                job_id, message, retry_at, self.max_retries
            )

    def set_result(self, job_id: int, field: str, value) -> None:
        with self.session_factory() as session:
            VideoJobRepository(session).set_result(job_id, field, value)

    def mark_completed(self, job_id: int) -> VideoJobView:
        with self.session_factory() as session:
            return VideoJobView.model_validate(VideoJobRepository(session).mark_completed(job_id))

    def store_script(self, job_id: int, script: VideoScript) -> int:
        with self.session_factory() as session:
            return VideoJobRepository(session).store_script(job_id, script).id

    def get_script(self, job_id: int) -> VideoScript | None:
        with self.session_factory() as session:
            return VideoJobRepository(session).get_script(job_id)

    def list_resumable(self) -> list[VideoJobView]:
        with self.session_factory() as session:
            jobs = VideoJobRepository(session).list_resumable(self.max_retries)
            return [VideoJobView.model_validate(j) for j in jobs]
