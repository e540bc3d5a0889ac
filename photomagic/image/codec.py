"""Binary image codec for uploaded photos.

Architectural role:
    Converts an in-memory upload into a transfer-ready base64 payload and
    separates the data-URI envelope (`data:<mime>;base64,`) from the raw text
    sent to the description model.

Fidelity:
    Transcoding is lossless: `decode(encode(image).payload)` returns the
    original bytes.

Side effects:
    None beyond reading a caller-provided binary file object. No network or
    disk access is performed here.

Error handling strategy:
    Unreadable input raises `CodecError`; the session treats it as a pipeline
    failure and does not retry.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import BinaryIO, Union

from photomagic.core.errors import CodecError


DATA_URI_PREFIX = "data:"
BASE64_MARKER = ";base64"


@dataclass(frozen=True)
class UploadedImage:
    """User-selected image: raw bytes (or a binary file object) and media type."""

    data: Union[bytes, BinaryIO]
    mime_type: str


@dataclass(frozen=True)
class EncodedPayload:
    """Base64 text of an image, kept apart from its display envelope."""

    mime_type: str
    payload: str

    @property
    def envelope(self) -> str:
        return f"{DATA_URI_PREFIX}{self.mime_type}{BASE64_MARKER},"

    @property
    def data_uri(self) -> str:
        return self.envelope + self.payload


def _read_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        content = bytes(data)
    else:
        read = getattr(data, "read", None)
        if read is None:
            raise CodecError(f"Unsupported image input type: {type(data).__name__}")

        try:
            # Rewind so every run reads the whole image.
            if getattr(data, "seekable", None) and data.seekable():
                data.seek(0)
            content = read()
        except (OSError, ValueError) as exc:
            raise CodecError(f"Could not read image input: {exc}") from exc

        if not isinstance(content, (bytes, bytearray)):
            raise CodecError("Image input is not a binary stream")

    if not content:
        raise CodecError("Image input is empty")
    return bytes(content)


def encode(image: UploadedImage) -> EncodedPayload:
    """Encode an uploaded image into an `EncodedPayload`.

    Raises:
        CodecError: when the data cannot be read as bytes or is empty.
    """
    raw = _read_bytes(image.data)
    return EncodedPayload(
        mime_type=image.mime_type,
        payload=base64.b64encode(raw).decode("ascii"),
    )


def strip_envelope(encoded: Union[EncodedPayload, str]) -> str:
    """Return only the raw base64 text.

    Accepts an `EncodedPayload` or a string. A `data:` URI is split on its
    first comma; any other string is assumed to be a bare payload already.
    """
    if isinstance(encoded, EncodedPayload):
        return encoded.payload

    if encoded.startswith(DATA_URI_PREFIX):
        header, sep, payload = encoded.partition(",")
        if not sep:
            raise CodecError("Malformed data URI: missing payload separator")
        return payload
    return encoded


def wrap_envelope(payload: str, mime_type: str) -> str:
    """Build a display data URI from a raw base64 payload."""
    return EncodedPayload(mime_type=mime_type, payload=payload).data_uri


def decode(payload: str) -> bytes:
    """Strictly decode a base64 payload (envelope allowed) back to bytes."""
    try:
        return base64.b64decode(strip_envelope(payload), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CodecError(f"Invalid base64 payload: {exc}") from exc
