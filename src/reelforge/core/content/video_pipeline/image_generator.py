"""Image generation for scene backgrounds via fal.ai."""

import asyncio
import logging

import httpx

from .interfaces import ImageService, ObjectStorage
from .models import AspectRatio, ImageFailure, ImageResult

logger = logging.getLogger(__name__)

FAL_IMAGE_SIZES = {
    AspectRatio.PORTRAIT: "portrait_16_9",
    AspectRatio.LANDSCAPE: "landscape_16_9",
    AspectRatio.SQUARE: "square_hd",
}


class FalImageService:
    """Generates one image per prompt and stores it."""

    def __init__(
        self,
        api_key: str,
        storage: ObjectStorage,
        model_url: str = "https://fal.run/fal-ai/flux/schnell",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("fal.ai API key not configured")
        self.api_key = api_key
        self.storage = storage
        self.model_url = model_url
        self.timeout = timeout
        self.transport = transport

    async def generate(self, prompt: str, aspect_ratio: AspectRatio) -> str | None:
        """Generate a single image.

        Returns:
            Storage handle of the image, or None if the service returned none
        """
        headers = {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "prompt": prompt,
            "image_size": FAL_IMAGE_SIZES.get(aspect_ratio, "portrait_16_9"),
            "num_images": 1,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.model_url, headers=headers, json=payload)
            response.raise_for_status()

            images = response.json().get("images") or []
            if not images or not images[0].get("url"):
                logger.warning(f"No image returned for prompt: {prompt[:60]}...")
                return None

            download = await client.get(images[0]["url"])
            download.raise_for_status()

        content_type = images[0].get("content_type") or download.headers.get("content-type", "image/jpeg")
        content_type = content_type.split(";")[0].strip()
        return await self.storage.upload(download.content, content_type)


class ImageGenerator:
    """Best-effort image stage: a failed prompt leaves a hole, not an error."""

    def __init__(self, image_service: ImageService | None, max_concurrency: int = 4):
        self.image_service = image_service
        self.max_concurrency = max(1, max_concurrency)

    async def generate(self, prompts: list[str], aspect_ratio: AspectRatio) -> ImageResult:
        """Generate images for prompts, keeping their order.

        Args:
            prompts: Image prompts in scene order
            aspect_ratio: Target aspect ratio of the video

        Returns:
            ImageResult with one handle (or None) per prompt
        """
        if self.image_service is None:
            logger.warning(f"No image service configured, skipping {len(prompts)} images")
            return ImageResult(
                handles=[None] * len(prompts),
                failures=[
                    ImageFailure(index=i, prompt=p, reason="image service unavailable")
                    for i, p in enumerate(prompts)
                ],
            )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        failures: list[ImageFailure] = []

        async def generate_one(index: int, prompt: str) -> str | None:
            async with semaphore:
                try:
                    handle = await self.image_service.generate(prompt, aspect_ratio)
                except Exception as e:
                    logger.warning(f"Image {index + 1}/{len(prompts)} failed: {e}")
                    failures.append(ImageFailure(index=index, prompt=prompt, reason=str(e)))
                    return None

            if handle is None:
                failures.append(ImageFailure(index=index, prompt=prompt, reason="no image returned"))
            return handle

        handles = await asyncio.gather(*(generate_one(i, p) for i, p in enumerate(prompts)))

        result = ImageResult(
            handles=list(handles),
            failures=sorted(failures, key=lambda f: f.index),
        )
        logger.info(f"Generated {result.success_count}/{len(prompts)} images")
        return result
