"""Animation code generation with validation, iteration and fallback."""

import logging

from .code_validator import extract_code, validate_all, validate_security
from .fallback_template import build_fallback_code
from .interfaces import TextGenerator
from .models import AspectRatio, AudioData, CodeResult, VideoScript
from .prompts import (
    CODE_SYSTEM_PROMPT,
    build_code_prompt,
    build_fix_section,
    build_iteration_section,
)
from .remotion_renderer import dimensions_for

logger = logging.getLogger(__name__)


class CodeGenerator:
    """Writes renderable composition code for a script.

    Always returns code: when every attempt fails, a deterministic template
    built from the script is used instead.
    """

    def __init__(
        self,
        text_generator: TextGenerator,
        max_attempts: int = 3,
        fps: int = 30,
        max_tokens: int = 12000,
    ):
        self.text_generator = text_generator
        self.max_attempts = max_attempts
        self.fps = fps
        self.max_tokens = max_tokens

    async def generate(
        self,
        script: VideoScript,
        image_urls: list[str],
        audio: AudioData | None,
        aspect_ratio: AspectRatio | str,
        target_duration: int,
        previous_code: str | None = None,
        iteration_feedback: str | None = None,
    ) -> CodeResult:
        """Generate composition code.

        Args:
            script: The video script
            image_urls: Resolved image URLs, in scene order
            audio: Resolved narration, if any
            aspect_ratio: Output aspect ratio
            target_duration: Video length in seconds
            previous_code: Code of the version being revised
            iteration_feedback: Requested changes to previous_code

        Returns:
            CodeResult with the code and whether the fallback was used
        """
        total_frames = target_duration * self.fps
        width, height = dimensions_for(aspect_ratio)

        system = CODE_SYSTEM_PROMPT.format(width=width, height=height, fps=self.fps)
        prompt = build_code_prompt(script, image_urls, audio, total_frames, self.fps, width, height)

        if previous_code and iteration_feedback:
            prompt += build_iteration_section(previous_code, iteration_feedback)
            logger.info("Code generation is revising a previous version")

        last_errors: list[str] = []
        attempt = 0
        while attempt < self.max_attempts:
            attempt += 1
            attempt_prompt = prompt + build_fix_section(last_errors) if last_errors else prompt

            try:
                raw = await self.text_generator.generate(
                    attempt_prompt,
                    system=system,
                    max_tokens=self.max_tokens,
                    temperature=0.3,
                )
            except Exception as e:
                # Service errors say nothing about the code; keep the last validation errors
                logger.warning(f"Code generation attempt {attempt}/{self.max_attempts} failed: {e}")
                continue

            code = extract_code(raw)
            errors = validate_all(code)
            if not errors:
                logger.info(f"Code generated and validated ({len(code)} chars, attempt {attempt})")
                return CodeResult(code=code, used_fallback=False, attempts=attempt)

            logger.warning(f"Validation failed (attempt {attempt}): {errors}")
            last_errors = errors

            # Security violations are suspicious; stop asking
            if validate_security(code):
                logger.error("Security violations detected in generated code, skipping retries")
                break

        logger.warning("Falling back to template code")
        code = build_fallback_code(script, image_urls, audio, total_frames, self.fps)
        return CodeResult(code=code, used_fallback=True, attempts=attempt)
