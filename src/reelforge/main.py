"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import settings
from .core.content.video_pipeline.code_generator import CodeGenerator
from .core.content.video_pipeline.context_gatherer import ContextGatherer
from .core.content.video_pipeline.image_generator import FalImageService, ImageGenerator
from .core.content.video_pipeline.llm_client import ClaudeTextGenerator
from .core.content.video_pipeline.pipeline import VideoPipeline
from .core.content.video_pipeline.post_processor import PostProcessor
from .core.content.video_pipeline.remotion_renderer import RemotionEngine, VideoRenderer
from .core.content.video_pipeline.script_generator import ScriptGenerator
from .core.content.video_pipeline.storage import ArtifactResolver, LocalObjectStorage
from .core.content.video_pipeline.voiceover_service import VoiceoverService, VoiceSynthesizer
from .database.models import Base
from .database.repositories.video_job import JobStore
from .dashboard.routers import video_jobs

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Database setup
connect_args = {"check_same_thread": False} if settings.database.url.startswith("sqlite") else {}
engine = create_engine(settings.database.url, echo=settings.debug, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def build_pipeline(
    storage: LocalObjectStorage,
    voiceover_service: VoiceoverService | None,
) -> VideoPipeline | None:
    """Wire the pipeline stages from settings; None when Claude is not configured."""
    if not settings.claude.api_key:
        logger.warning("CLAUDE_API_KEY not set, video generation disabled")
        return None

    text_generator = ClaudeTextGenerator(
        api_key=settings.claude.api_key,
        model=settings.claude.model,
        timeout=settings.claude.timeout,
    )

    image_service = None
    if settings.image.fal_api_key:
        image_service = FalImageService(
            api_key=settings.image.fal_api_key,
            storage=storage,
            model_url=settings.image.model_url,
            timeout=settings.image.timeout,
        )
    else:
        logger.warning("IMAGE_FAL_API_KEY not set, videos will be rendered without images")

    if voiceover_service is None:
        logger.warning("VIDEO_ELEVENLABS_API_KEY not set, videos will be rendered without voice")

    job_store = JobStore(SessionLocal, max_retries=settings.pipeline.max_retries)
    render_engine = RemotionEngine(
        remotion_dir=settings.video.remotion_dir,
        work_dir=settings.video.render_work_dir,
        timeout=settings.video.render_timeout,
    )

    return VideoPipeline(
        job_store=job_store,
        context_gatherer=ContextGatherer(job_store, SessionLocal, voiceover_service),
        script_generator=ScriptGenerator(
            text_generator,
            job_store,
            max_attempts=settings.pipeline.script_max_attempts,
        ),
        image_generator=ImageGenerator(
            image_service, max_concurrency=settings.image.max_concurrency
        ),
        voice_synthesizer=VoiceSynthesizer(voiceover_service),
        code_generator=CodeGenerator(
            text_generator,
            max_attempts=settings.pipeline.code_max_attempts,
            fps=settings.video.fps,
            max_tokens=settings.claude.code_max_tokens,
        ),
        renderer=VideoRenderer(render_engine, storage, fps=settings.video.fps),
        post_processor=PostProcessor(
            render_engine,
            storage,
            fps=settings.video.fps,
            words_per_cue=settings.pipeline.words_per_cue,
        ),
        resolver=ArtifactResolver(storage),
        max_retries=settings.pipeline.max_retries,
        retry_delay=settings.pipeline.retry_delay_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    # Create database tables
    if engine.url.get_backend_name() == "sqlite" and engine.url.database:
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    # Ensure data directories exist
    settings.video.render_work_dir.mkdir(parents=True, exist_ok=True)
    storage = LocalObjectStorage(settings.video.storage_dir, settings.video.public_base_url)
    logger.info("Data directories initialized")

    voiceover_service = None
    if settings.video.elevenlabs_api_key:
        voiceover_service = VoiceoverService(
            api_key=settings.video.elevenlabs_api_key,
            storage=storage,
            model_id=settings.video.elevenlabs_model,
        )
        app.dependency_overrides[video_jobs.get_voiceover_service] = lambda: voiceover_service

    pipeline = build_pipeline(storage, voiceover_service)
    if pipeline is not None:
        app.dependency_overrides[video_jobs.get_pipeline] = lambda: pipeline
        await pipeline.resume_interrupted()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    if pipeline is not None:
        await pipeline.queue.shutdown()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Automated short-form video generation from creative briefs",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(video_jobs.router)

# Override the database dependency
app.dependency_overrides[video_jobs.get_db] = get_db

# Serve stored artifacts under the public base URL
settings.video.storage_dir.mkdir(parents=True, exist_ok=True)
app.mount("/media", StaticFiles(directory=str(settings.video.storage_dir)), name="media")


@app.get("/api")
async def api_info():
    """API info endpoint."""
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    uvicorn.run(
        "reelforge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
