"""Transport client for Gemini `generateContent` requests.

Architectural role:
    Executes one HTTP request against the vision-capable model and returns the
    parsed JSON body. Request assembly and response interpretation live in
    `photomagic.llm.service`.

Model invocation flow:
    `service.VisionDescriber.describe` -> `send_request(payload, api_key)` ->
    parsed JSON response.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with
    `REQUEST_TIMEOUT_SECONDS`.

Failure handling model:
    Every transport, timeout, status and JSON-decoding failure is raised as
    `ServiceUnavailable`. The message is provider-labeled and never contains
    the credential or the request payload; the original exception is chained.
"""

import logging

import requests

from photomagic.core.errors import ServiceUnavailable
from photomagic.llm.provider_config import (
    DESCRIPTION_MODEL,
    GEMINI_URL_TEMPLATE,
    REQUEST_TIMEOUT_SECONDS,
)


logger = logging.getLogger(__name__)


def send_request(payload: dict, api_key: str, model: str = DESCRIPTION_MODEL) -> dict:
    """Send one `generateContent` request and return the decoded JSON body.

    Args:
        payload: Gemini request body (`contents`, optional `generationConfig`).
        api_key: Credential sent as `x-goog-api-key`.
        model: Model name interpolated into the endpoint URL.

    Returns:
        Parsed JSON response.

    Error handling:
        - Missing key -> `ServiceUnavailable`
        - Transport/timeout/non-2xx -> `ServiceUnavailable` with status code
        - Undecodable body -> `ServiceUnavailable`
    """
    if not api_key:
        raise ServiceUnavailable("GEMINI KEY NOT FOUND", details={"model": model})

    url = GEMINI_URL_TEMPLATE.format(model=model)

    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            url,
            headers=headers,
            json=payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as err:
        raise ServiceUnavailable.from_request_error("gemini", err, details={"model": model}) from err
    except ValueError as err:
        raise ServiceUnavailable(
            "GEMINI RESPONSE NOT JSON",
            details={"model": model},
        ) from err

    logger.debug("Gemini %s responded (%s)", model, type(data).__name__)
    return data
