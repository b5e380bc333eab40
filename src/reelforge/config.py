"""Application configuration."""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    url: str = "sqlite:///./data/reelforge.db"

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ClaudeSettings(BaseSettings):
    """Claude API configuration."""

    api_key: str = ""
    model: str = "claude-sonnet-4-20250514"
    code_max_tokens: int = 12000
    timeout: float = 180.0

    model_config = SettingsConfigDict(
        env_prefix="CLAUDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ImageSettings(BaseSettings):
    """Image generation configuration."""

    fal_api_key: str = ""
    model_url: str = "https://fal.run/fal-ai/flux/schnell"
    max_concurrency: int = 4
    timeout: float = 120.0

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class VideoSettings(BaseSettings):
    """Voice, storage and rendering configuration."""

    # Eleven Labs
    elevenlabs_api_key: str = ""
    elevenlabs_model: str = "eleven_multilingual_v2"

    # Storage
    storage_dir: Path = Path("data/storage")
    public_base_url: str = "http://localhost:8000/media"

    # Rendering
    fps: int = 30
    remotion_dir: Path = Path("remotion-video")
    render_work_dir: Path = Path("data/renders")
    render_timeout: int = 600

    model_config = SettingsConfigDict(
        env_prefix="VIDEO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class PipelineSettings(BaseSettings):
    """Orchestrator retry and stage configuration."""

    max_retries: int = 3
    retry_delay_seconds: float = 5.0
    words_per_cue: int = 7
    script_max_attempts: int = 3
    code_max_attempts: int = 3

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class Settings(BaseSettings):
    """Main application settings."""

    app_name: str = "ReelForge"
    debug: bool = False

    database: DatabaseSettings = DatabaseSettings()
    claude: ClaudeSettings = ClaudeSettings()
    image: ImageSettings = ImageSettings()
    video: VideoSettings = VideoSettings()
    pipeline: PipelineSettings = PipelineSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
