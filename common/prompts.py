"""Quick prompt suggestions shown under the prompt box."""
from typing import List


# ---------- Suggested edits (shown when a source image is selected) ----------
SUGGESTED_EDITS = [
    "Add a retro 70s film filter",
    "Remove the background",
    "Turn it into a watercolor painting",
    "Make it look like a cinematic night scene",
    "Add a pair of sunglasses",
    "Change the season to winter",
]

# ---------- Example for pure generation (no source image) ----------
COMPLEX_PROMPT_EXAMPLE = (
    "A photorealistic close-up of a ripe banana wearing tiny aviator sunglasses, "
    "lounging on a striped beach towel. Golden-hour lighting, shallow depth of "
    "field, 85mm lens, turquoise sea softly blurred in the background, "
    "playful and warm color grading."
)


def get_suggestions(has_source_image: bool) -> List[str]:
    """Edits when there is an image to edit, otherwise the generation example."""
    if has_source_image:
        return list(SUGGESTED_EDITS)
    return [COMPLEX_PROMPT_EXAMPLE]
