"""Imagen `predict` HTTP client.

Processing flow:
    1. Resolve endpoint for the requested model.
    2. Submit JSON payload with the API key header.
    3. Return parsed JSON response or raise on failure.

Base64 and temporary files:
    - This module does not decode Base64 content.
    - This module does not create or manage temporary files.

Error handling strategy:
    - Missing key, transport, status and decoding failures raise
      `ServiceUnavailable` for upstream handling.
"""

import requests

from photomagic.core.errors import ServiceUnavailable
from photomagic.llm.provider_config import (
    IMAGE_MODEL,
    IMAGEN_URL_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
)


def send_image_request(payload: dict, api_key: str, model: str = IMAGE_MODEL) -> dict:
    """Send an image-generation request to the Imagen endpoint.

    Args:
        payload: Imagen JSON payload (`instances` + `parameters`).
        api_key: Credential sent as `x-goog-api-key`.
        model: Model name interpolated into the endpoint URL.

    Returns:
        Parsed JSON response from the provider.

    Error handling:
        - Missing API key -> `ServiceUnavailable`
        - Transport failure or non-2xx response -> `ServiceUnavailable`
        - Non-JSON body -> `ServiceUnavailable`
    """
    if not api_key:
        raise ServiceUnavailable("IMAGEN KEY NOT FOUND", details={"model": model})

    url = IMAGEN_URL_TEMPLATE.format(model=model)
    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as err:
        raise ServiceUnavailable.from_request_error("imagen", err, details={"model": model}) from err
    except ValueError as err:
        raise ServiceUnavailable("IMAGEN RESPONSE NOT JSON", details={"model": model}) from err
