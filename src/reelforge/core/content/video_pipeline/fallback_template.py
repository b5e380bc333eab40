"""Deterministic animation code used when code generation fails."""

import json

from .models import AudioData, VideoScript

HEADLINE_STYLE = (
    '{ fontSize: 44, fontWeight: 900, fontFamily: F, lineHeight: 1.15, '
    'color: "#ffffff", textShadow: "0 2px 20px rgba(0,0,0,0.8)" }'
)
SUBHEAD_STYLE = '{ fontSize: 22, color: "#94a3b8", fontFamily: F, fontWeight: 500, marginTop: 16 }'
BULLET_STYLE = '{ fontSize: 18, color: "#ffffff", fontFamily: F, fontWeight: 500, marginTop: 8 }'


def scene_frames(script: VideoScript, total_frames: int, fps: int) -> list[tuple[int, int]]:
    """(from, durationInFrames) per scene; the last scene fills any remainder."""
    frames = [max(1, int(round(scene.duration * fps))) for scene in script.scenes]
    shortfall = total_frames - sum(frames)
    if shortfall > 0:
        frames[-1] += shortfall

    layout = []
    offset = 0
    for count in frames:
        layout.append((offset, count))
        offset += count
    return layout


def _text_children(script_scene, indent: str) -> list[str]:
    text = script_scene.on_screen_text
    headline = text.headline or ""
    children = [
        f"React.createElement(FadeUp, {{ delay: 8 }}, "
        f"React.createElement(\"div\", {{ style: {HEADLINE_STYLE} }}, {json.dumps(headline)}))"
    ]
    if text.subhead:
        children.append(
            f"React.createElement(FadeUp, {{ delay: 25, style: {SUBHEAD_STYLE} }}, "
            f"{json.dumps(text.subhead)})"
        )
    for i, bullet in enumerate(text.bullet_points):
        children.append(
            f"React.createElement(FadeUp, {{ delay: {30 + i * 15}, style: {BULLET_STYLE} }}, "
            f"{json.dumps('→ ' + bullet)})"
        )
    return [indent + child for child in children]


def build_fallback_code(
    script: VideoScript,
    image_urls: list[str],
    audio: AudioData | None,
    total_frames: int,
    fps: int,
) -> str:
    """Build a simple but renderable composition straight from the script."""
    layout = scene_frames(script, total_frames, fps)
    palette = script.color_palette

    # Hand out available images to scenes that asked for one, in order
    image_index: dict[int, int] = {}
    next_image = 0
    for i, scene in enumerate(script.scenes):
        if scene.image_prompt and next_image < len(image_urls):
            image_index[i] = next_image
            next_image += 1

    components = []
    for i, (scene, (_, frames)) in enumerate(zip(script.scenes, layout)):
        is_last = i == len(layout) - 1
        opacity = "1" if is_last else "exit.op"
        offset_y = "0" if is_last else "exit.y"
        exit_line = "" if is_last else f"    var exit = useExit({max(0, frames - 25)}, {frames});\n"

        if i in image_index:
            children = ",\n".join(_text_children(scene, "        "))
            body = (
                f"    return React.createElement(AbsoluteFill, {{ style: {{ opacity: {opacity}, "
                f"transform: \"translateY(\" + {offset_y} + \"px)\" }} }},\n"
                f"      React.createElement(CinematicBG, {{ src: images[{image_index[i]}], overlayOpacity: 0.6 }}),\n"
                f"      React.createElement(Content, null,\n{children}\n      )\n"
                f"    );\n"
            )
        else:
            children = ",\n".join(_text_children(scene, "      "))
            body = (
                f"    return React.createElement(CenterScene, {{ opacity: {opacity}, translateY: {offset_y}, "
                f"seed: {i}, tint: {json.dumps(palette.primary)} }},\n{children}\n    );\n"
            )

        components.append(f"  var Scene{i} = function() {{\n{exit_line}{body}  }};")

    sequences = [
        f"      React.createElement(Sequence, {{ from: {start}, durationInFrames: {frames} }}, "
        f"React.createElement(Scene{i}, null))"
        for i, (start, frames) in enumerate(layout)
    ]
    if audio:
        sequences.insert(
            0,
            f"      React.createElement(Sequence, {{ from: 0, durationInFrames: {total_frames} }}, "
            f"React.createElement(Audio, {{ src: audioUrl }}))",
        )

    return (
        "var AbsoluteFill = Remotion.AbsoluteFill;\n"
        "var Sequence = Remotion.Sequence;\n"
        "var Audio = Remotion.Audio;\n"
        "var CenterScene = Components.CenterScene;\n"
        "var Content = Components.Content;\n"
        "var CinematicBG = Components.CinematicBG;\n"
        "var FadeUp = Components.FadeUp;\n"
        "var useExit = Components.useExit;\n"
        "var F = Theme.F;\n\n"
        + "\n\n".join(components)
        + "\n\n  var FallbackVideo = function() {\n"
        f"    return React.createElement(AbsoluteFill, {{ style: {{ backgroundColor: {json.dumps(palette.background)} }} }},\n"
        + ",\n".join(sequences)
        + "\n    );\n  };\n\n"
        "return FallbackVideo;\n"
    )
