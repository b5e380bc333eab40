"""LLM prompt templates for script and code generation."""

from .models import AudioData, VideoContext, VideoScript

SCRIPT_SYSTEM_PROMPT = """You are a scriptwriter for short promotional videos. You write structured, scene-by-scene scripts that will be turned into animated videos.

OUTPUT FORMAT (JSON only, no commentary):
{
    "total_duration": <seconds>,
    "scenes": [
        {
            "id": "<scene name: hook, problem, solution, features, proof or cta>",
            "duration": <seconds>,
            "voiceover": "<narration for this scene>",
            "on_screen_text": {
                "headline": "<main text on screen>",
                "subhead": "<secondary text>",
                "bullet_points": ["<optional bullet points>"],
                "emphasis": ["<words to emphasize>"]
            },
            "visual_direction": "<what the scene should look like>",
            "mood": "<intrigue, frustration, excitement, authority, urgency, celebration or educational>",
            "image_prompt": "<image generation prompt, or null for text-only scenes>"
        }
    ],
    "color_palette": {
        "primary": "<hex>",
        "secondary": "<hex>",
        "accent": "<hex>",
        "background": "<hex, usually dark>"
    }
}

SCENE PACING:
- hook (3-5s): bold claim or provocative question, always first
- problem (5-10s): the pain the viewer feels
- solution (8-15s): the product as the answer, with bullet points
- features or proof (5-15s): key features, numbers, reviews
- cta (5-8s): clear call to action, always last

IMAGE PROMPTS:
- At most one per scene; skip text-only scenes
- Cinematic, high quality, dark moody lighting, no text in the image

WRITING STYLE:
- Direct, confident, short punchy sentences
- Voiceover lines must read naturally when spoken back to back"""


SCRIPT_USER_PROMPT = """Write a video script for the following brief.

BRIEF: "{prompt}"
TARGET DURATION: {target_duration} seconds
ASPECT RATIO: {aspect_ratio}
{style_section}{source_section}
Scene durations must add up to approximately {target_duration} seconds.
Generate the script now:"""


SIMPLIFIED_SCRIPT_PROMPT = """Write a simple {target_duration}-second promo video script for "{title}". Use 4-5 scenes: hook, problem, solution, proof, cta. Keep it concise. Return valid JSON matching the required format."""


CODE_SYSTEM_PROMPT = """You are a Remotion video composition code generator.

Output ONLY a JavaScript function body (no markdown, no explanation).
The code is executed as:
    new Function("React", "Remotion", "Components", "Theme", "images", "audioUrl", code)
and must RETURN a React component rendering the whole video.

RULES:
1. Use React.createElement, never JSX and never import or require anything
2. One Sequence per scene, in script order, using the given frame offsets
3. Use images[i] only for indexes that exist; text-only scenes use CenterScene
4. When audioUrl is provided, play it with Remotion.Audio from frame 0
5. Each scene fades out during its last 20-25 frames
6. Dimensions: {width}x{height} at {fps}fps
7. Never access window, document, fetch, eval, process or the network"""


def build_script_prompt(context: VideoContext) -> str:
    """Build the user prompt for script generation."""
    style_section = f"STYLE: {context.style}\n" if context.style else ""

    source_section = ""
    if context.source:
        s = context.source
        lines = ["", "SOURCE CONTENT:", f"- Title: {s.title}"]
        if s.description:
            lines.append(f"- Description: {s.description[:2000]}")
        if s.price is not None:
            lines.append(f"- Price: ${s.price:.2f}")
        if s.category:
            lines.append(f"- Category: {s.category}")
        for highlight in s.highlights[:10]:
            lines.append(f"- Highlight: {highlight}")
        if s.store_name:
            lines.append(f"- Store: {s.store_name}")
        source_section = "\n".join(lines) + "\n"

    return SCRIPT_USER_PROMPT.format(
        prompt=context.prompt,
        target_duration=context.target_duration,
        aspect_ratio=context.aspect_ratio.value,
        style_section=style_section,
        source_section=source_section,
    )


def build_simplified_script_prompt(context: VideoContext) -> str:
    """Shorter prompt used when the full prompt did not produce a usable script."""
    title = context.source.title if context.source else context.prompt[:100]
    return SIMPLIFIED_SCRIPT_PROMPT.format(
        target_duration=context.target_duration,
        title=title,
    )


def build_code_prompt(
    script: VideoScript,
    image_urls: list[str],
    audio: AudioData | None,
    total_frames: int,
    fps: int,
    width: int,
    height: int,
) -> str:
    """Build the user prompt for code generation."""
    parts = [
        "Generate a Remotion video composition for the following script.",
        "",
        "## VIDEO SPECS",
        f"- Total duration: {total_frames} frames ({total_frames / fps:.1f}s at {fps}fps)",
        f"- Dimensions: {width}x{height}",
        "",
        "## COLOR PALETTE",
        f"- Primary: {script.color_palette.primary}",
        f"- Secondary: {script.color_palette.secondary}",
        f"- Accent: {script.color_palette.accent}",
        f"- Background: {script.color_palette.background}",
        "",
        "## SCENES",
    ]

    frame_offset = 0
    for scene in script.scenes:
        frames = int(round(scene.duration * fps))
        parts.append(f'### Scene "{scene.id}" ({frames} frames, from={frame_offset}, mood: {scene.mood})')
        text = scene.on_screen_text
        if text.headline:
            parts.append(f'  Headline: "{text.headline}"')
        if text.subhead:
            parts.append(f'  Subhead: "{text.subhead}"')
        if text.bullet_points:
            parts.append("  Bullets:")
            parts.extend(f'    - "{b}"' for b in text.bullet_points)
        if text.emphasis:
            parts.append(f"  Emphasis words: {', '.join(text.emphasis)}")
        if scene.visual_direction:
            parts.append(f"  Visual direction: {scene.visual_direction}")
        if scene.voiceover:
            parts.append(f'  Voiceover: "{scene.voiceover}"')
        parts.append("")
        frame_offset += frames

    parts.append(f"## AVAILABLE IMAGES ({len(image_urls)} total)")
    for i, url in enumerate(image_urls):
        parts.append(f"  images[{i}]: {url}")
    parts.append("")

    parts.append("## AUDIO")
    if audio:
        parts.append("audioUrl is available; play it from frame 0.")
        parts.append(f"Audio duration: {audio.duration:.1f}s")
        if audio.words:
            first = ", ".join(f'"{w.word}" @{w.start:.2f}s' for w in audio.words[:10])
            parts.append(f"Word timestamps available for sync ({len(audio.words)} words).")
            parts.append(f"First words: {first}")
    else:
        parts.append("No audio. This is a text-only video.")

    return "\n".join(parts)


def build_iteration_section(previous_code: str, feedback: str) -> str:
    """Instructions for revising a previous version instead of starting over."""
    return (
        "\n\n## ITERATION: MODIFY PREVIOUS VERSION\n"
        f'The creator wants these changes: "{feedback}"\n\n'
        "Here is the previous version of the video code. Modify it to apply the "
        "requested changes. Keep everything else the same.\n\n"
        f"```\n{previous_code}\n```\n"
        "\nOutput the FULL modified code (not a diff). Apply ONLY the requested changes."
    )


def build_fix_section(errors: list[str]) -> str:
    """Feedback appended after an attempt failed validation."""
    listed = "\n".join(f"- {e}" for e in errors)
    return (
        "\n\n## IMPORTANT: Fix These Issues From Previous Attempt\n"
        f"Your previous code had these problems:\n{listed}\n\n"
        "Fix ALL of these issues and output corrected code."
    )
