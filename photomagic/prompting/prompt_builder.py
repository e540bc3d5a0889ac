"""Prompt assembly helpers used by the generation pipeline.

This module only builds prompt strings from already collected inputs. Input
validation and model invocation happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed template text; inputs are interpolated verbatim inside quotes.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - Description and instruction are interpolated as raw strings, without
      escaping embedded quotes.
"""


# =========================================================
# DESCRIPTION PROMPT
# =========================================================
# Instruction sent with the uploaded image to the vision model.

DESCRIPTION_PROMPT = (
    "Describe this image in vivid detail for an AI image generator. "
    "Focus on the subject, setting, composition, colors, lighting, and overall mood. "
    "Be descriptive and evocative."
)


# =========================================================
# SYNTHESIS PROMPT
# =========================================================
# Prompt component order:
#   1) Derived description of the uploaded photo
#   2) User creative direction
#   3) Closing combination cue

SYNTHESIS_TEMPLATE = (
    'A stunning, high-resolution photograph based on this description: "{description}". '
    'Now, apply this creative direction: "{instruction}". '
    "Combine them to create a new, masterpiece image."
)


def compose(description: str, instruction: str) -> str:
    """Build the synthesis prompt from a description and a user instruction.

    Args:
        description: Text returned by the vision model.
        instruction: Creative direction typed by the user.

    Returns:
        Prompt string for the image-generation model.

    Edge cases:
        - Empty description is accepted and simply yields a weaker prompt.
        - Inputs are not stripped; they appear in the output exactly as given.
    """
    return SYNTHESIS_TEMPLATE.format(description=description, instruction=instruction)
