"""Error taxonomy for the generation pipeline.

Architectural role:
    Defines every failure kind raised by the codec, the service clients and the
    session, plus the single function that turns an error into the text shown
    to the user.

Error model:
    - Internal causes (`ServiceUnavailable`, `EmptyResponse`, `NoImageReturned`)
      are raised by transport/service layers.
    - Service layers collapse causes into one stage error (`DescriptionFailed`,
      `GenerationFailed`) that keeps the cause code in `reason`.
    - `public_message` maps every pipeline failure to one generic string so
      service internals never reach the presentation surface.
"""

from typing import Any, Dict, Optional


GENERIC_FAILURE_MESSAGE = "Failed to generate image. Please check your API key and try again."
MISSING_INPUT_MESSAGE = "Please upload an image and provide an editing prompt."
BUSY_MESSAGE = "A generation is already in progress."


class PhotoMagicError(Exception):
    """Base exception for all pipeline errors."""

    code = "UNKNOWN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a log/transport friendly dict."""
        return {
            "code": self.code,
            "message": str(self),
            "details": self.details,
        }


class ConfigurationError(PhotoMagicError):
    """Raised when a required setting (the API credential) is missing."""

    code = "CONFIGURATION_ERROR"


class ValidationError(PhotoMagicError):
    """Raised when a submission lacks an image or an instruction."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = MISSING_INPUT_MESSAGE, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class PipelineBusyError(PhotoMagicError):
    """Raised when a submission arrives while a run is in flight."""

    code = "PIPELINE_BUSY"

    def __init__(self, message: str = BUSY_MESSAGE, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class CodecError(PhotoMagicError):
    code = "CODEC_ERROR"


class ServiceUnavailable(PhotoMagicError):
    """Transport, HTTP status or credential failure talking to a model API."""

    code = "SERVICE_UNAVAILABLE"

    @classmethod
    def from_request_error(cls, provider_name: str, err: BaseException, details: Optional[Dict[str, Any]] = None):
        """Build a provider-labeled error that exposes only the HTTP status code."""
        response = getattr(err, "response", None)
        status_code = getattr(response, "status_code", None) if response is not None else None

        label = str(provider_name or "provider").upper()
        message = f"{label} HTTP ERROR ({status_code})" if status_code else f"{label} HTTP ERROR"
        return cls(message, details=details)


class EmptyResponse(PhotoMagicError):
    code = "EMPTY_RESPONSE"


class NoImageReturned(PhotoMagicError):
    code = "NO_IMAGE_RETURNED"


class _StageError(PhotoMagicError):
    """Stage failure that remembers which internal cause produced it."""

    def __init__(self, message: str, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class DescriptionFailed(_StageError):
    code = "DESCRIPTION_FAILED"


class GenerationFailed(_StageError):
    code = "GENERATION_FAILED"


def public_message(error: BaseException) -> str:
    """Return the user-facing text for `error`.

    Validation and busy errors keep their own message because they describe
    what the user has to do. Everything else collapses to
    `GENERIC_FAILURE_MESSAGE`.
    """
    if isinstance(error, (ValidationError, PipelineBusyError)):
        return str(error)
    return GENERIC_FAILURE_MESSAGE
