"""Remotion-based rendering of generated composition code."""

import asyncio
import json
import logging
import subprocess
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import RenderError
from .interfaces import ObjectStorage, RenderEngine
from .models import AspectRatio, RenderResult

logger = logging.getLogger(__name__)

ASPECT_RATIO_DIMENSIONS: dict[str, tuple[int, int]] = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
    "1:1": (1080, 1080),
}
DEFAULT_DIMENSIONS = ASPECT_RATIO_DIMENSIONS["9:16"]


def dimensions_for(aspect_ratio: AspectRatio | str) -> tuple[int, int]:
    """(width, height) for an aspect ratio; unknown ratios get 9:16."""
    key = aspect_ratio.value if isinstance(aspect_ratio, AspectRatio) else str(aspect_ratio)
    return ASPECT_RATIO_DIMENSIONS.get(key, DEFAULT_DIMENSIONS)


class RemotionEngine:
    """Runs the Remotion render script out of process."""

    def __init__(
        self,
        remotion_dir: Path,
        work_dir: Path,
        timeout: int = 600,
        command: tuple[str, ...] = ("npx", "ts-node", "render.ts"),
    ):
        self.remotion_dir = remotion_dir
        self.work_dir = work_dir
        self.timeout = timeout
        self.command = command

    async def render(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame_range: tuple[int, int],
        width: int,
        height: int,
        fps: int,
    ) -> Path:
        """Render frames [start, end] to an mp4 and return its path."""
        output_path = self._output_path(".mp4")
        config = self._build_config(code, image_urls, audio_url, width, height, fps, output_path)
        config.update({"mode": "video", "frameRange": list(frame_range)})

        await asyncio.to_thread(self._run, config, output_path)
        return output_path

    async def render_still(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        frame: int,
        width: int,
        height: int,
        fps: int,
    ) -> Path:
        """Render a single frame to a png and return its path."""
        output_path = self._output_path(".png")
        config = self._build_config(code, image_urls, audio_url, width, height, fps, output_path)
        config.update({"mode": "still", "frame": frame})

        await asyncio.to_thread(self._run, config, output_path)
        return output_path

    def _output_path(self, suffix: str) -> Path:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        return (self.work_dir / f"render_{uuid.uuid4().hex}{suffix}").absolute()

    def _build_config(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        width: int,
        height: int,
        fps: int,
        output_path: Path,
    ) -> dict[str, Any]:
        """Build Remotion render configuration."""
        return {
            "code": code,
            "images": image_urls,
            "audioUrl": audio_url,
            "width": width,
            "height": height,
            "fps": fps,
            "outputPath": str(output_path),
        }

    def _run(self, config: dict[str, Any], output_path: Path) -> None:
        config_path = output_path.with_suffix(".json")
        with open(config_path, "w") as f:
            json.dump(config, f, indent=2)

        logger.info(f"Rendering Remotion {config['mode']}: {output_path}")

        try:
            result = subprocess.run(
                [*self.command, str(config_path)],
                cwd=str(self.remotion_dir),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RenderError(f"Remotion rendering timed out after {self.timeout}s") from e
        except OSError as e:
            raise RenderError(f"Could not start Remotion: {e}") from e
        finally:
            config_path.unlink(missing_ok=True)

        if result.returncode != 0:
            logger.error(f"Remotion error: {result.stderr}")
            raise RenderError(f"Remotion rendering failed: {result.stderr.strip()[-2000:]}")

        if not output_path.exists():
            raise RenderError(f"Remotion reported success but wrote no file at {output_path}")


class VideoRenderer:
    """Render stage: renders the composition and stores the video."""

    def __init__(self, engine: RenderEngine, storage: ObjectStorage, fps: int = 30):
        self.engine = engine
        self.storage = storage
        self.fps = fps

    def frame_count(self, duration: int | float) -> int:
        return int(round(duration * self.fps))

    async def render(
        self,
        code: str,
        image_urls: list[str],
        audio_url: str | None,
        duration: int | float,
        aspect_ratio: AspectRatio | str,
    ) -> RenderResult:
        """Render the final video.

        Raises:
            RenderError: on any engine or upload failure
        """
        width, height = dimensions_for(aspect_ratio)
        frame_count = self.frame_count(duration)

        output_path = None
        try:
            output_path = await self.engine.render(
                code,
                image_urls,
                audio_url,
                (0, frame_count - 1),
                width,
                height,
                self.fps,
            )
            data = await asyncio.to_thread(Path(output_path).read_bytes)
            handle = await self.storage.upload(data, "video/mp4")
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Rendering failed: {e}") from e
        finally:
            if output_path is not None:
                Path(output_path).unlink(missing_ok=True)

        result = RenderResult(
            video_handle=handle,
            duration_seconds=frame_count / self.fps,
            width=width,
            height=height,
            frame_count=frame_count,
            file_size_bytes=len(data),
            rendered_at=datetime.utcnow(),
        )
        logger.info(
            f"Video rendered: {result.duration_seconds:.1f}s, "
            f"{result.file_size_bytes / 1024 / 1024:.1f}MB"
        )
        return result
