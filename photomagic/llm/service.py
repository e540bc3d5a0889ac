"""Image + instruction to description adapter.

Architectural role:
    Implements the description stage of the pipeline. Builds a single
    multimodal `generateContent` payload (inline image part followed by a text
    part), hands it to `photomagic.llm.client.send_request`, and extracts the
    free-text answer.

Model call flow:
    raw base64 payload + mime + instruction -> payload -> `client.send_request`
    -> first candidate text.

Statelessness:
    No conversation history is kept; every call is an independent single-turn
    request. Exactly one network call per `describe`.

Failure scenarios:
    `ServiceUnavailable` (transport) and `EmptyResponse` (no usable text) are
    both re-raised as `DescriptionFailed`; the cause code is kept in `reason`.
"""

import logging

from photomagic.core.errors import (
    ConfigurationError,
    DescriptionFailed,
    EmptyResponse,
    ServiceUnavailable,
)
from photomagic.llm import client
from photomagic.llm.provider_config import DESCRIPTION_MODEL


logger = logging.getLogger(__name__)


def build_description_payload(image_payload: str, mime_type: str, instruction_prompt: str) -> dict:
    """Return the Gemini request body for one image + one instruction."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": image_payload}},
                    {"text": instruction_prompt},
                ],
            }
        ]
    }


def extract_text(data: dict) -> str:
    """Concatenate text parts of the first candidate.

    Raises:
        EmptyResponse: no candidates, no parts, or only blank text.
    """
    if not isinstance(data, dict):
        raise EmptyResponse("Model response is not a JSON object")

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        raise EmptyResponse("Model returned no candidates")
    first = candidates[0]

    content = first.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        parts = []
    text = "".join(
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )

    if not text.strip():
        raise EmptyResponse(
            "Model returned no text",
            details={"finish_reason": first.get("finishReason")},
        )
    return text.strip()


class VisionDescriber:
    """Description Service client backed by a Gemini vision model."""

    def __init__(self, api_key: str, model: str = DESCRIPTION_MODEL):
        if not api_key:
            raise ConfigurationError("VisionDescriber requires an API key")
        self._api_key = api_key
        self.model = model

    def describe(self, image_payload: str, mime_type: str, instruction_prompt: str) -> str:
        """Describe an image.

        Args:
            image_payload: Raw base64 image data, envelope already stripped.
            mime_type: Declared media type of the image.
            instruction_prompt: Text guiding the description.

        Returns:
            Non-empty description text.

        Raises:
            DescriptionFailed: on any transport or empty-response failure.
        """
        payload = build_description_payload(image_payload, mime_type, instruction_prompt)

        try:
            data = client.send_request(payload, self._api_key, model=self.model)
            description = extract_text(data)
        except (ServiceUnavailable, EmptyResponse) as exc:
            logger.error("Image description failed (%s): %s", exc.code, exc)
            raise DescriptionFailed(
                "Failed to get image description from API.",
                reason=exc.code,
                details=exc.to_dict(),
            ) from exc

        logger.info("Received image description (%d chars)", len(description))
        return description
