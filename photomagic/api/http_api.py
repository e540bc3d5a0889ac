"""
HTTP API adapter for the PhotoMagic pipeline.

Architectural role:
- Acts as the upload widget, instruction input and presentation surface.
- Translates HTTP requests into the session commands `set_image`,
  `set_instruction` and `submit`.
- Renders read-only session snapshots as JSON.

Endpoint responsibilities:
- `GET /health`: liveness probe.
- `GET /v1/session`: current snapshot.
- `PUT /v1/session/image`: validate and stage an uploaded photo.
- `DELETE /v1/session/image`: clear the staged photo.
- `PUT /v1/session/instruction`: update the creative instruction.
- `POST /v1/session/generate`: run the pipeline and return the final snapshot.

Input validation behavior:
- Upload content type outside png/jpeg/webp -> HTTP 400.
- Upload bytes that Pillow cannot identify as an image -> HTTP 400.
- Missing image or blank instruction on generate -> HTTP 422.
- Generate while a run is in flight -> HTTP 409.

Error handling strategy:
- Pipeline failures are not HTTP errors: the snapshot reports `failed` with
  the generic public message.
- Missing API credential fails `create_app()` itself (startup failure).
"""

import io
import logging
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError
from pydantic import BaseModel

from photomagic.core.engine import PipelineSession, build_session
from photomagic.core.errors import PipelineBusyError, ValidationError
from photomagic.core.session_types import Running, SessionSnapshot
from photomagic.image.codec import UploadedImage


logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/png", "image/jpeg", "image/webp"}

# Pillow format name -> declared media type
_PIL_FORMATS = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


# ============================================================
# Schemas
# ============================================================

class InstructionRequest(BaseModel):
    instruction: str


class SessionResponse(BaseModel):
    """Presentation view of a session snapshot."""

    status: str
    stage: Optional[str] = None
    image_src: Optional[str] = None
    error: Optional[str] = None
    has_image: bool
    instruction: str
    can_submit: bool


def snapshot_to_response(snapshot: SessionSnapshot) -> SessionResponse:
    state = snapshot.state
    return SessionResponse(
        status=state.status,
        stage=state.stage.value if isinstance(state, Running) else None,
        image_src=snapshot.image_src,
        error=snapshot.error,
        has_image=snapshot.has_image,
        instruction=snapshot.instruction,
        can_submit=snapshot.can_submit,
    )


# ============================================================
# Upload validation
# ============================================================

def validate_upload(content: bytes, content_type: Optional[str]) -> UploadedImage:
    """
    Check an upload the way the browser widget did before handing it over.

    The declared type must be one of `ALLOWED_MIME_TYPES` and the bytes must
    open as an image of that same format.
    """
    if content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Expected a PNG, JPEG or WEBP image")

    try:
        with Image.open(io.BytesIO(content)) as img:
            detected = _PIL_FORMATS.get(img.format or "")
            img.verify()
    except (UnidentifiedImageError, DecompressionBombError, OSError, SyntaxError) as exc:
        logger.info("Rejected upload that is not a readable image: %s", exc)
        raise HTTPException(status_code=400, detail="Uploaded file is not a readable image")

    if detected != content_type:
        raise HTTPException(status_code=400, detail="Image content does not match declared type")

    return UploadedImage(data=content, mime_type=content_type)


# ============================================================
# Application factory
# ============================================================

def create_app(session: Optional[PipelineSession] = None) -> FastAPI:
    """
    Build the FastAPI application around one editing session.

    When `session` is omitted the default Gemini/Imagen session is built, which
    raises `ConfigurationError` if no API key is configured.
    """
    session = session or build_session()

    app = FastAPI(title="AI Photo Magic")
    app.state.session = session

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/v1/session", response_model=SessionResponse)
    async def get_session():
        return snapshot_to_response(session.snapshot())

    @app.put("/v1/session/image", response_model=SessionResponse)
    async def upload_image(file: UploadFile = File(...)):
        content = await file.read()
        image = validate_upload(content, file.content_type)
        session.set_image(image)
        logger.info("Staged upload %r (%s, %d bytes)", file.filename, image.mime_type, len(content))
        return snapshot_to_response(session.snapshot())

    @app.delete("/v1/session/image", response_model=SessionResponse)
    async def clear_image():
        session.set_image(None)
        return snapshot_to_response(session.snapshot())

    @app.put("/v1/session/instruction", response_model=SessionResponse)
    async def update_instruction(body: InstructionRequest):
        session.set_instruction(body.instruction)
        return snapshot_to_response(session.snapshot())

    @app.post("/v1/session/generate", response_model=SessionResponse)
    async def generate():
        try:
            await session.submit()
        except ValidationError as exc:
            return JSONResponse(status_code=422, content={"error": str(exc)})
        except PipelineBusyError as exc:
            return JSONResponse(status_code=409, content={"error": str(exc)})
        return snapshot_to_response(session.snapshot())

    return app
