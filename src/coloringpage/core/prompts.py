"""Fixed prompt text sent to the AI service.

Two prompts drive the whole transformation:

- :data:`DESCRIBE_PROMPT` accompanies the uploaded photo on the vision
  call and asks for a description that is useful for drawing an outline.
- :func:`build_outline_prompt` wraps that description in the instructions
  for the image generation call.

These are constants rather than configuration because they define what a
"coloring page" is for this application.

Template Structure::

    [Fixed: line-art framing, with the description quoted]

    [Fixed: linework constraints]

    [Fixed: facial detail requirement]
"""

from __future__ import annotations

DESCRIBE_PROMPT = (
    "Analyze this image and describe what you see in detail. Focus on the main subjects, "
    "objects, shapes, and composition. Pay particular attention to any people or animals: "
    "describe their faces, expressions, eyes, noses, mouths, hair, and poses. This "
    "description will be used to create a coloring book outline."
)

_LINEWORK_BOILERPLATE = (
    "The result must be pure black line art on a pure white background. Use bold, clean, "
    "continuous black outlines only. No colors, no shading, no grayscale, no gradients, no "
    "filled or solid black areas, no textures, and no cross-hatching. Every region must be an "
    "empty white shape that a child could color in. Make it look exactly like a traditional "
    "coloring book page with clean, simple shapes."
)

_FACIAL_DETAIL_BOILERPLATE = (
    "Faces must be drawn with clear outlined features: eyes, eyebrows, nose, mouth, and ears "
    "where visible, so the characters stay recognisable and expressive."
)


def build_outline_prompt(description: str) -> str:
    """Compile the image generation prompt from a vision description.

    Args:
        description: Text returned by the describe call.  Surrounding
            whitespace is stripped and embedded double quotes are replaced
            with single quotes so the quoted block stays well formed.

    Returns:
        The full prompt with sections separated by double newlines.
    """
    cleaned = description.strip().replace('"', "'")

    parts = [
        "Create a black and white line drawing outline for a children's coloring book "
        f'based on this description: "{cleaned}".',
        _LINEWORK_BOILERPLATE,
        _FACIAL_DETAIL_BOILERPLATE,
    ]
    return "\n\n".join(parts)
