"""State and snapshot contracts for `photomagic.core.engine`.

Architectural role:
    Defines the tagged union of pipeline states owned by `PipelineSession` and
    the read-only snapshot handed to presentation.

Control-flow interaction:
    The session replaces its state object on every transition; instances are
    frozen and never mutated in place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from photomagic.image.codec import wrap_envelope


class PipelineStage(str, Enum):
    """Ordered steps of one pipeline run."""

    ENCODE = "encode"
    DESCRIBE = "describe"
    COMPOSE = "compose"
    GENERATE = "generate"


@dataclass(frozen=True)
class GeneratedImage:
    payload: str
    mime_type: str = "image/png"

    @property
    def data_uri(self) -> str:
        return wrap_envelope(self.payload, self.mime_type)


@dataclass(frozen=True)
class Idle:
    status: str = "idle"


@dataclass(frozen=True)
class Running:
    stage: PipelineStage = PipelineStage.ENCODE
    status: str = "running"


@dataclass(frozen=True)
class Succeeded:
    image: GeneratedImage
    status: str = "succeeded"


@dataclass(frozen=True)
class Failed:
    message: str
    error_code: str = "UNKNOWN_ERROR"
    status: str = "failed"


PipelineState = Union[Idle, Running, Succeeded, Failed]


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of one editing session.

    Attributes:
        state: Current pipeline state.
        has_image: Whether an upload is staged for the next submission.
        instruction: Current instruction text.
        validation_message: Message from the last rejected submission, if any.
    """

    state: PipelineState
    has_image: bool
    instruction: str
    validation_message: Optional[str] = None

    @property
    def can_submit(self) -> bool:
        return (
            self.has_image
            and bool(self.instruction.strip())
            and not isinstance(self.state, Running)
        )

    @property
    def image_src(self) -> Optional[str]:
        if isinstance(self.state, Succeeded):
            return self.state.image.data_uri
        return None

    @property
    def error(self) -> Optional[str]:
        if self.validation_message:
            return self.validation_message
        if isinstance(self.state, Failed):
            return self.state.message
        return None
