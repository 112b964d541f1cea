from typing import List, Literal

Intensity = Literal["natural", "strong"]

PRESERVE_POSE = (
    "Strictly preserve the original pose, gesture, facial expression, and body "
    "structure of the subject (person or pet). Do not change the action, angle, "
    "or composition"
)
CHRISTMAS_BASE = (
    "Convert the input photo into a Christmas atmosphere image, realistic photo style"
)
SANTA_HATS = (
    "Place red Santa hats on all visible heads, including both people and "
    "pets/animals. Ensure each hat fits the original head pose naturally, do not "
    "alter the face or hair structure"
)
FESTIVE_BACKGROUND = (
    "Add warm festive elements to the background: string lights, garlands, "
    "wreaths, gentle snowfall, red green gold palette"
)
STRONG_AMBIANCE = "Strong holiday ambiance while strictly maintaining subject identity"
NATURAL_AMBIANCE = "Subtle holiday ambiance, keep natural look"


def build_prompt(
    add_hats: bool = True,
    enhance_env: bool = True,
    intensity: Intensity = "natural",
) -> str:
    """Compose the Christmas transformation prompt from the user's options."""
    parts: List[str] = [PRESERVE_POSE, CHRISTMAS_BASE]
    if add_hats:
        parts.append(SANTA_HATS)
    if enhance_env:
        parts.append(FESTIVE_BACKGROUND)
    parts.append(STRONG_AMBIANCE if intensity == "strong" else NATURAL_AMBIANCE)
    return ". ".join(parts)
