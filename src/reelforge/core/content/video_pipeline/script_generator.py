"""Script generation using an LLM."""

import asyncio
import json
import logging

from pydantic import ValidationError

from .exceptions import ScriptGenerationError
from .interfaces import TextGenerator
from .llm_client import is_transient
from .models import ScriptResult, VideoContext, VideoScript
from .prompts import SCRIPT_SYSTEM_PROMPT, build_script_prompt, build_simplified_script_prompt

logger = logging.getLogger(__name__)


class ScriptGenerator:
    """Generates scene-by-scene video scripts."""

    def __init__(
        self,
        text_generator: TextGenerator,
        job_store,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self.text_generator = text_generator
        self.job_store = job_store
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def generate(self, job_id: int, context: VideoContext) -> ScriptResult:
        """Generate and persist the script for a job.

        Args:
            job_id: ID of the video job
            context: Resolved job context

        Returns:
            ScriptResult with the stored script, image prompts and narration

        Raises:
            ScriptGenerationError: if no attempt produced a valid script
        """
        script = await self._generate_with_retries(context)

        script_id = await asyncio.to_thread(self.job_store.store_script, job_id, script)

        logger.info(
            f"Script generated with {len(script.scenes)} scenes "
            f"({len(script.image_prompts)} image prompts) for job {job_id}"
        )
        return ScriptResult(
            script_id=script_id,
            script=script,
            image_prompts=script.image_prompts,
            voiceover_text=script.voiceover_text,
        )

    async def _generate_with_retries(self, context: VideoContext) -> VideoScript:
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            prompt = (
                build_script_prompt(context)
                if attempt == 1
                else build_simplified_script_prompt(context)
            )
            try:
                response_text = await self.text_generator.generate(
                    prompt,
                    system=SCRIPT_SYSTEM_PROMPT,
                    max_tokens=4000,
                    temperature=0.6,
                )
                return self.parse_script(response_text, context.target_duration)
            except (ValueError, ValidationError) as e:
                last_error = e
                logger.warning(f"Script attempt {attempt}/{self.max_attempts} unusable: {e}")
            except Exception as e:
                if not is_transient(e):
                    raise ScriptGenerationError(f"Script generation failed: {e}") from e
                last_error = e
                logger.warning(f"Script attempt {attempt}/{self.max_attempts} failed: {e}")

            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay * attempt)

        raise ScriptGenerationError(
            f"Script generation failed after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    def parse_script(self, response_text: str, target_duration: int) -> VideoScript:
        """Parse and validate a script from an LLM response."""
        data = self._parse_response(response_text)
        if not isinstance(data, dict):
            raise ValueError("Script response is not a JSON object")

        scenes = data.get("scenes")
        if not isinstance(scenes, list) or not all(isinstance(s, dict) for s in scenes):
            raise ValueError("Script response needs a list of scene objects")

        try:
            total = sum(float(s.get("duration", 0)) for s in scenes)
        except (TypeError, ValueError):
            raise ValueError("Scene durations must be numbers")
        data.setdefault("total_duration", total or target_duration)
        return VideoScript.model_validate(data)

    def _parse_response(self, response_text: str) -> dict:
        """Parse JSON from LLM response, handling markdown code blocks."""
        text = response_text.strip()

        # Remove markdown code blocks if present
        if text.startswith("```"):
            lines = text.split("\n")
            # Remove first line (```json) and last line (```)
            text = "\n".join(lines[1:-1])

        return json.loads(text)
