"""FastAPI router for video job endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from ...core.content.video_pipeline.models import (
    IterationRequest,
    SourceContentCreate,
    VideoJobCreate,
    VideoJobStatus,
    VideoJobView,
    VideoScript,
)
from ...core.content.video_pipeline.pipeline import VideoPipeline
from ...core.content.video_pipeline.voiceover_service import VoiceoverService
from ...database.repositories.video_job import (
    SourceContentRepository,
    VideoJobRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/video", tags=["video"])


# Dependency placeholders - overridden by the application
def get_db() -> Session:
    """Get database session dependency."""
    raise NotImplementedError("Database session dependency not configured")


def get_pipeline() -> VideoPipeline:
    """Get the configured video pipeline."""
    raise HTTPException(
        status_code=503,
        detail="Video pipeline not configured. Set CLAUDE_API_KEY to enable generation.",
    )


def get_voiceover_service() -> VoiceoverService:
    """Get the voiceover service."""
    raise HTTPException(
        status_code=503,
        detail="Eleven Labs API key not configured. Set VIDEO_ELEVENLABS_API_KEY environment variable.",
    )


def _require_job(repo: VideoJobRepository, job_id: int):
    job = repo.get_by_id(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


# =============================================================================
# Job Endpoints
# =============================================================================


@router.post("/jobs", response_model=VideoJobView, status_code=status.HTTP_201_CREATED)
async def submit_job(
    request: VideoJobCreate,
    db: Session = Depends(get_db),
    pipeline: VideoPipeline = Depends(get_pipeline),
):
    """Submit a brief (or a revision of a completed job) for generation."""
    if request.source_content_id is not None:
        if not SourceContentRepository(db).get_by_id(request.source_content_id):
            raise HTTPException(status_code=400, detail="Source content not found")

    try:
        job_id = await pipeline.submit(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Job {job_id} queued")
    return VideoJobView.model_validate(_require_job(VideoJobRepository(db), job_id))


@router.post(
    "/jobs/{job_id}/iterate",
    response_model=VideoJobView,
    status_code=status.HTTP_201_CREATED,
)
async def iterate_job(
    job_id: int,
    request: IterationRequest,
    db: Session = Depends(get_db),
    pipeline: VideoPipeline = Depends(get_pipeline),
):
    """Create a revision of a completed job using feedback."""
    repo = VideoJobRepository(db)
    parent = _require_job(repo, job_id)

    revision = VideoJobCreate(
        prompt=parent.prompt,
        target_duration=parent.target_duration,
        aspect_ratio=parent.aspect_ratio,
        voice_id=parent.voice_id,
        style=parent.style,
        source_content_id=parent.source_content_id,
        parent_job_id=parent.id,
        iteration_feedback=request.feedback,
    )
    try:
        revision_id = await pipeline.submit(revision)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Revision job {revision_id} of job {parent.id} queued")
    return VideoJobView.model_validate(_require_job(repo, revision_id))


@router.get("/jobs", response_model=list[VideoJobView])
async def list_jobs(
    status: VideoJobStatus | None = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    """List video jobs."""
    repo = VideoJobRepository(db)
    jobs = repo.list_jobs(status=status, limit=limit, offset=offset)
    return [VideoJobView.model_validate(j) for j in jobs]


@router.get("/jobs/{job_id}", response_model=VideoJobView)
async def get_job(
    job_id: int,
    db: Session = Depends(get_db),
):
    """Get a video job for status polling."""
    repo = VideoJobRepository(db)
    return VideoJobView.model_validate(_require_job(repo, job_id))


@router.get("/jobs/{job_id}/script", response_model=VideoScript)
async def get_job_script(
    job_id: int,
    db: Session = Depends(get_db),
):
    """Get the script generated for a job."""
    repo = VideoJobRepository(db)
    _require_job(repo, job_id)

    script = repo.get_script(job_id)
    if script is None:
        raise HTTPException(status_code=404, detail="Script not generated yet")
    return script


@router.get("/jobs/{job_id}/subtitles", response_class=PlainTextResponse)
async def get_job_subtitles(
    job_id: int,
    db: Session = Depends(get_db),
):
    """Download the SRT subtitles of a job."""
    repo = VideoJobRepository(db)
    job = _require_job(repo, job_id)

    if not job.subtitle_text:
        raise HTTPException(status_code=404, detail="No subtitles for this job")

    return PlainTextResponse(
        content=job.subtitle_text,
        media_type="application/x-subrip",
        headers={"Content-Disposition": f'attachment; filename="job_{job_id}.srt"'},
    )


@router.get("/jobs/{job_id}/versions", response_model=list[VideoJobView])
async def list_job_versions(
    job_id: int,
    db: Session = Depends(get_db),
):
    """List the revision chain ending at a job, oldest first."""
    repo = VideoJobRepository(db)
    _require_job(repo, job_id)
    return [VideoJobView.model_validate(j) for j in repo.list_versions(job_id)]


# =============================================================================
# Source Content Endpoints
# =============================================================================


@router.post("/sources", status_code=status.HTTP_201_CREATED)
async def create_source(
    request: SourceContentCreate,
    db: Session = Depends(get_db),
):
    """Register product or course data a brief can reference."""
    source = SourceContentRepository(db).create(request)
    return {"id": source.id, "title": source.title}


@router.get("/sources")
async def list_sources(db: Session = Depends(get_db)):
    """List source content."""
    sources = SourceContentRepository(db).list_sources()
    return [
        {"id": s.id, "title": s.title, "category": s.category, "price": s.price}
        for s in sources
    ]


# =============================================================================
# Voice Endpoints
# =============================================================================


@router.get("/voices")
async def list_voices(
    voiceover_service: VoiceoverService = Depends(get_voiceover_service),
):
    """List available Eleven Labs voices."""
    try:
        return await voiceover_service.list_voices()
    except Exception as e:
        logger.error(f"Failed to list voices: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to list voices: {e}")
