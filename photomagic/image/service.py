"""Text-to-image synthesis used by the pipeline's final stage.

Role in pipeline:
    - Receives the composed synthesis prompt from the session.
    - Sends one Imagen request with fixed parameters.
    - Returns the first generated image as a raw base64 payload; the caller
      re-attaches the display envelope.

Fixed parameters:
    One image, PNG output, 1:1 aspect ratio. These are not caller-tunable.

Error handling strategy:
    `ServiceUnavailable` and `NoImageReturned` are collapsed into
    `GenerationFailed` with the cause code in `reason`.
"""

import logging

from photomagic.core.errors import (
    ConfigurationError,
    GenerationFailed,
    NoImageReturned,
    ServiceUnavailable,
)
from photomagic.image.client import send_image_request
from photomagic.llm.provider_config import (
    IMAGE_ASPECT_RATIO,
    IMAGE_COUNT,
    IMAGE_MODEL,
    IMAGE_OUTPUT_MIME_TYPE,
)


logger = logging.getLogger(__name__)


def build_generation_payload(prompt: str) -> dict:
    return {
        "instances": [{"prompt": prompt}],
        "parameters": {
            "sampleCount": IMAGE_COUNT,
            "aspectRatio": IMAGE_ASPECT_RATIO,
            "outputOptions": {"mimeType": IMAGE_OUTPUT_MIME_TYPE},
        },
    }


def extract_first_image(data: dict) -> str:
    """Return `bytesBase64Encoded` of the first prediction.

    Raises:
        NoImageReturned: when the response holds no usable image.
    """
    predictions = data.get("predictions") if isinstance(data, dict) else None
    if not isinstance(predictions, list) or not predictions:
        raise NoImageReturned("API did not return any images.")
    if not isinstance(predictions[0], dict):
        raise NoImageReturned("API returned a malformed prediction.")

    image_bytes = predictions[0].get("bytesBase64Encoded")
    if not isinstance(image_bytes, str) or not image_bytes:
        raise NoImageReturned(
            "API returned a prediction without image bytes.",
            details={"filtered_reason": predictions[0].get("raiFilteredReason")},
        )
    return image_bytes


class ImageSynthesizer:
    """Synthesis Service client backed by an Imagen model."""

    def __init__(self, api_key: str, model: str = IMAGE_MODEL):
        if not api_key:
            raise ConfigurationError("ImageSynthesizer requires an API key")
        self._api_key = api_key
        self.model = model

    def generate(self, prompt: str) -> str:
        """Generate one PNG image for `prompt` and return its base64 payload."""
        payload = build_generation_payload(prompt)

        try:
            data = send_image_request(payload, self._api_key, model=self.model)
            image_bytes = extract_first_image(data)
        except (ServiceUnavailable, NoImageReturned) as exc:
            logger.error("Image generation failed (%s): %s", exc.code, exc)
            raise GenerationFailed(
                "Failed to generate image from API.",
                reason=exc.code,
                details=exc.to_dict(),
            ) from exc

        logger.info("Received generated image (%d base64 chars)", len(image_bytes))
        return image_bytes
