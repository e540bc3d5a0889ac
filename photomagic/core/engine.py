"""Pipeline orchestration for one photo editing session.

Architectural role:
    Owns the request lifecycle state machine and sequences the four pipeline
    stages used by the HTTP adapter to turn an uploaded photo plus a creative
    instruction into a newly generated image.

Control-flow model:
    1. Guard: reject the submission when a run is in flight, when no image is
       staged, or when the instruction is blank.
    2. Enter `Running` and clear any previous output.
    3. Encode the image, describe it, compose the synthesis prompt, generate.
    4. Land in `Succeeded` with the image, or `Failed` with the public message.

Sequencing:
    Each stage is awaited before the next one starts. Blocking service calls run
    through `asyncio.to_thread`, so the event loop stays responsive while the
    run is suspended on the network.

State ownership:
    The session is the only writer of its state. Readers get immutable
    snapshots (`snapshot()`) or are notified through listeners.

Error handling strategy:
    Every stage failure is logged with full detail and collapsed into one
    generic user-facing message via `public_message`. Nothing is retried.

Re-entrancy:
    A submission while `Running` raises `PipelineBusyError` and leaves the
    in-flight run untouched. There is no cancellation.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

from photomagic.core.errors import (
    PhotoMagicError,
    PipelineBusyError,
    ValidationError,
    GENERIC_FAILURE_MESSAGE,
    public_message,
)
from photomagic.core.session_types import (
    Failed,
    GeneratedImage,
    Idle,
    PipelineStage,
    PipelineState,
    Running,
    SessionSnapshot,
    Succeeded,
)
from photomagic.image import codec
from photomagic.image.codec import UploadedImage
from photomagic.image.service import ImageSynthesizer
from photomagic.llm.provider_config import require_api_key
from photomagic.llm.service import VisionDescriber
from photomagic.prompting.prompt_builder import DESCRIPTION_PROMPT, compose


logger = logging.getLogger(__name__)

StateListener = Callable[[PipelineState], None]


class DescriptionService(Protocol):
    """Minimal interface required for the description stage."""

    def describe(self, image_payload: str, mime_type: str, instruction_prompt: str) -> str:
        ...


class SynthesisService(Protocol):
    """Minimal interface required for the generation stage."""

    def generate(self, prompt: str) -> str:
        ...


async def _call_stage(func: Callable[..., Any], *args: Any) -> Any:
    """Await `func(*args)`, moving synchronous callables off the event loop."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)


class PipelineSession:
    """State machine for one editing session.

    Accepts only three commands: `set_image`, `set_instruction` and `submit`.
    """

    def __init__(
        self,
        describer: DescriptionService,
        synthesizer: SynthesisService,
        description_prompt: str = DESCRIPTION_PROMPT,
    ):
        self._describer = describer
        self._synthesizer = synthesizer
        self._description_prompt = description_prompt

        self._state: PipelineState = Idle()
        self._image: Optional[UploadedImage] = None
        self._instruction = ""
        self._validation_message: Optional[str] = None
        self._listeners: list[StateListener] = []

    # -----------------------------------------------------
    # Read side
    # -----------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            has_image=self._image is not None,
            instruction=self._instruction,
            validation_message=self._validation_message,
        )

    def add_listener(self, listener: StateListener) -> None:
        """Register a callable invoked with every new state."""
        self._listeners.append(listener)

    def _transition(self, state: PipelineState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    # -----------------------------------------------------
    # Commands
    # -----------------------------------------------------

    def set_image(self, image: Optional[UploadedImage]) -> None:
        """Stage a new upload (or clear it with `None`).

        Outside a run, any previous output is discarded by moving straight to
        `Idle`. During a run only the staged image changes; the in-flight run
        keeps the image it started with.
        """
        self._image = image
        if isinstance(self._state, (Succeeded, Failed)):
            self._transition(Idle())

    def set_instruction(self, instruction: Optional[str]) -> None:
        self._instruction = instruction or ""

    async def submit(self) -> PipelineState:
        """Run the full pipeline once and return the final state.

        Raises:
            PipelineBusyError: a run is already in flight.
            ValidationError: no image staged or blank instruction. No network
                call is made and the state is left as it was.
        """
        if isinstance(self._state, Running):
            raise PipelineBusyError()

        if self._image is None or not self._instruction.strip():
            error = ValidationError()
            self._validation_message = str(error)
            logger.info(
                "Submission rejected: has_image=%s instruction_blank=%s",
                self._image is not None,
                not self._instruction.strip(),
            )
            raise error

        image = self._image
        instruction = self._instruction

        self._validation_message = None
        self._transition(Running(stage=PipelineStage.ENCODE))

        try:
            generated = await self._run(image, instruction)
        except asyncio.CancelledError:
            self._transition(Failed(GENERIC_FAILURE_MESSAGE, "CANCELLED"))
            raise
        except PhotoMagicError as exc:
            logger.error(
                "Pipeline failed during %s: %s",
                self._current_stage(),
                exc.to_dict(),
                exc_info=exc,
            )
            self._transition(Failed(public_message(exc), exc.code))
        except Exception as exc:
            logger.exception("Pipeline failed during %s with unexpected error", self._current_stage())
            self._transition(Failed(public_message(exc), "UNEXPECTED_ERROR"))
        else:
            logger.info("Pipeline run succeeded")
            self._transition(Succeeded(generated))

        return self._state

    # -----------------------------------------------------
    # Pipeline
    # -----------------------------------------------------

    def _current_stage(self) -> Optional[str]:
        if isinstance(self._state, Running):
            return self._state.stage.value
        return None

    def _enter(self, stage: PipelineStage) -> None:
        logger.debug("Entering stage %s", stage.value)
        self._transition(Running(stage=stage))

    async def _run(self, image: UploadedImage, instruction: str) -> GeneratedImage:
        encoded = await _call_stage(codec.encode, image)

        self._enter(PipelineStage.DESCRIBE)
        description = await _call_stage(
            self._describer.describe,
            codec.strip_envelope(encoded),
            encoded.mime_type,
            self._description_prompt,
        )

        self._enter(PipelineStage.COMPOSE)
        prompt = compose(description, instruction)

        self._enter(PipelineStage.GENERATE)
        payload = await _call_stage(self._synthesizer.generate, prompt)

        return GeneratedImage(payload=payload)


def build_session(api_key: Optional[str] = None) -> PipelineSession:
    """Create a session wired to the Gemini and Imagen clients.

    Raises:
        ConfigurationError: when no API key is given or configured.
    """
    api_key = api_key or require_api_key()
    return PipelineSession(VisionDescriber(api_key), ImageSynthesizer(api_key))
