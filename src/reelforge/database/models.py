"""SQLAlchemy database models."""

from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from ..core.content.video_pipeline.models import AspectRatio, VideoJobStatus

Base = declarative_base()


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class SourceContent(Base):
    """Product or course data a video brief can reference."""

    __tablename__ = "source_contents"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True)
    category = Column(String(100), nullable=True)
    highlights = Column(JSON, nullable=False, default=list)
    store_name = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class VideoJob(Base):
    """One end-to-end video generation request and its durable state."""

    __tablename__ = "video_jobs"

    id = Column(Integer, primary_key=True)

    # Inputs
    prompt = Column(Text, nullable=False)
    style = Column(String(100), nullable=True)
    target_duration = Column(Integer, nullable=False, default=30)
    aspect_ratio = Column(
        Enum(AspectRatio, values_callable=_enum_values),
        nullable=False,
        default=AspectRatio.PORTRAIT,
    )
    voice_id = Column(String(100), nullable=True)
    source_content_id = Column(Integer, ForeignKey("source_contents.id"), nullable=True)

    # Iteration
    parent_job_id = Column(Integer, ForeignKey("video_jobs.id"), nullable=True)
    iteration_feedback = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    # Workflow
    status = Column(
        Enum(VideoJobStatus, values_callable=_enum_values),
        nullable=False,
        default=VideoJobStatus.PENDING,
    )
    progress = Column(Integer, nullable=False, default=0)
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    next_attempt_at = Column(DateTime, nullable=True)

    # Output
    generated_code = Column(Text, nullable=True)
    used_fallback_code = Column(Boolean, nullable=False, default=False)
    video_handle = Column(String(500), nullable=True)
    duration_seconds = Column(Float, nullable=True)
    thumbnail_handle = Column(String(500), nullable=True)
    subtitle_text = Column(Text, nullable=True)
    caption_text = Column(Text, nullable=True)

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    source_content = relationship("SourceContent")
    parent = relationship("VideoJob", remote_side=[id])
    script = relationship("VideoScriptRecord", back_populates="job", uselist=False)


class VideoScriptRecord(Base):
    """Script generated for a job (one-to-one)."""

    __tablename__ = "video_scripts"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("video_jobs.id"), nullable=False, unique=True)
    script_json = Column(JSON, nullable=False)
    voiceover_text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    job = relationship("VideoJob", back_populates="script")
