"""Provider/runtime configuration for the model clients.

Architectural role:
    Centralizes model names, endpoint templates and credential lookup for
    `photomagic.llm` (description) and `photomagic.image` (synthesis).

Configuration surface:
    Model names and request parameters are fixed constants. The only
    environment-driven value is the API credential.

Determinism:
    Deterministic for a fixed process environment and key file. Values are
    resolved at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    `load_key` returns `None` for missing material; `require_api_key` turns that
    into a `ConfigurationError` so callers fail at construction time.
"""

import os
from dotenv import load_dotenv

from photomagic.core.errors import ConfigurationError

load_dotenv()

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

GEMINI_URL_TEMPLATE = GEMINI_BASE_URL + "/models/{model}:generateContent"
IMAGEN_URL_TEMPLATE = GEMINI_BASE_URL + "/models/{model}:predict"

# Vision-capable model used for the description stage.
DESCRIPTION_MODEL = "gemini-2.5-flash"

# Image-generation model and its fixed request parameters.
IMAGE_MODEL = "imagen-3.0-generate-002"
IMAGE_COUNT = 1
IMAGE_ASPECT_RATIO = "1:1"
IMAGE_OUTPUT_MIME_TYPE = "image/png"

REQUEST_TIMEOUT_SECONDS = 120

KEY_FILE = "config/gemini.key"

# Checked in order before the key file.
KEY_ENV_VARS = ("API_KEY", "GEMINI_API_KEY")


def load_key(path=KEY_FILE):
    """Load the API key from the environment or a key file.

    Resolution order:
        1. `API_KEY`, then `GEMINI_API_KEY`.
        2. Raw file contents at `path`.

    Args:
        path: Key file path or `None` to only consult the environment.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - Blank values (env or file) count as missing.
        - Missing file returns `None`.
    """
    for name in KEY_ENV_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    if not path or not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def require_api_key(path=KEY_FILE) -> str:
    """Return the API key or raise `ConfigurationError` when absent."""
    api_key = load_key(path)
    if not api_key:
        raise ConfigurationError(
            "API key not configured",
            details={"env": list(KEY_ENV_VARS), "key_file": path},
        )
    return api_key
