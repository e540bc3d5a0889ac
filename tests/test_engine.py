import asyncio
import io
import logging

import pytest

from photomagic.core.engine import PipelineSession, build_session
from photomagic.core.errors import (
    ConfigurationError,
    DescriptionFailed,
    GenerationFailed,
    GENERIC_FAILURE_MESSAGE,
    MISSING_INPUT_MESSAGE,
    PipelineBusyError,
    ValidationError,
)
from photomagic.core.session_types import (
    Failed,
    Idle,
    PipelineStage,
    Running,
    Succeeded,
)
from photomagic.image.codec import UploadedImage
from photomagic.image.service import ImageSynthesizer
from photomagic.llm.service import VisionDescriber
from photomagic.prompting.prompt_builder import DESCRIPTION_PROMPT

from conftest import PNG_SIGNATURE, FakeDescriber, FakeSynthesizer, SlowAsyncDescriber


EXPECTED_PROMPT = (
    'A stunning, high-resolution photograph based on this description: '
    '"a red bicycle on a beach". Now, apply this creative direction: '
    '"vintage polaroid". Combine them to create a new, masterpiece image.'
)


def test_end_to_end_success(session, describer, synthesizer, uploaded_image):
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    state = asyncio.run(session.submit())

    assert isinstance(state, Succeeded)
    assert state.image.data_uri == "data:image/png;base64,AAAA"
    assert session.snapshot().image_src == "data:image/png;base64,AAAA"
    assert synthesizer.calls == [EXPECTED_PROMPT]

    payload, mime_type, prompt = describer.calls[0]
    assert payload == "iVBORw0KGgo="
    assert not payload.startswith("data:")
    assert mime_type == "image/png"
    assert prompt == DESCRIPTION_PROMPT


def test_single_running_entry_and_stage_order(session, uploaded_image):
    seen = []
    session.add_listener(seen.append)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    asyncio.run(session.submit())

    running = [s for s in seen if isinstance(s, Running)]
    assert [s.stage for s in running] == [
        PipelineStage.ENCODE,
        PipelineStage.DESCRIBE,
        PipelineStage.COMPOSE,
        PipelineStage.GENERATE,
    ]
    # Exactly one entry into Running from a non-running state.
    entries = [
        i for i, s in enumerate(seen)
        if isinstance(s, Running) and (i == 0 or not isinstance(seen[i - 1], Running))
    ]
    assert len(entries) == 1
    assert isinstance(seen[-1], Succeeded)


def test_generation_waits_for_description(events, uploaded_image):
    describer = SlowAsyncDescriber(events=events)
    synthesizer = FakeSynthesizer(events=events)
    session = PipelineSession(describer, synthesizer)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    asyncio.run(session.submit())

    assert events == ["describe:start", "describe:end", "generate:start", "generate:end"]


def test_state_is_running_while_description_in_flight(uploaded_image):
    observed = {}

    class ObservingDescriber:
        async def describe(self, image_payload, mime_type, instruction_prompt):
            observed["state"] = session.state
            observed["can_submit"] = session.snapshot().can_submit
            return "a lighthouse"

    session = PipelineSession(ObservingDescriber(), FakeSynthesizer())
    session.set_image(uploaded_image)
    session.set_instruction("at dusk")

    asyncio.run(session.submit())

    assert observed["state"] == Running(stage=PipelineStage.DESCRIBE)
    assert observed["can_submit"] is False


@pytest.mark.parametrize("image,instruction", [
    (None, "vintage polaroid"),
    (UploadedImage(data=PNG_SIGNATURE, mime_type="image/png"), ""),
    (UploadedImage(data=PNG_SIGNATURE, mime_type="image/png"), "   \n\t"),
])
def test_invalid_submission_makes_no_calls(session, describer, synthesizer, image, instruction):
    session.set_image(image)
    session.set_instruction(instruction)

    with pytest.raises(ValidationError):
        asyncio.run(session.submit())

    assert describer.calls == []
    assert synthesizer.calls == []
    assert isinstance(session.state, Idle)
    assert session.snapshot().error == MISSING_INPUT_MESSAGE


def test_validation_rejection_keeps_previous_result(session, uploaded_image):
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")
    asyncio.run(session.submit())
    previous = session.state

    session.set_instruction("")
    with pytest.raises(ValidationError):
        asyncio.run(session.submit())

    assert session.state is previous


def test_description_failure_short_circuits(events, uploaded_image, caplog):
    describer = FakeDescriber(
        error=DescriptionFailed("boom", reason="SERVICE_UNAVAILABLE"),
        events=events,
    )
    synthesizer = FakeSynthesizer(events=events)
    session = PipelineSession(describer, synthesizer)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    with caplog.at_level(logging.ERROR, logger="photomagic.core.engine"):
        state = asyncio.run(session.submit())

    assert synthesizer.calls == []
    assert isinstance(state, Failed)
    assert state.message == GENERIC_FAILURE_MESSAGE
    assert state.error_code == "DESCRIPTION_FAILED"
    assert "describe" in caplog.text
    assert "SERVICE_UNAVAILABLE" in caplog.text


def test_unexpected_description_error_is_collapsed(uploaded_image):
    synthesizer = FakeSynthesizer()
    session = PipelineSession(FakeDescriber(error=RuntimeError("socket closed")), synthesizer)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    state = asyncio.run(session.submit())

    assert synthesizer.calls == []
    assert state == Failed(GENERIC_FAILURE_MESSAGE, "UNEXPECTED_ERROR")


def test_generation_failure_sets_no_image(uploaded_image):
    session = PipelineSession(
        FakeDescriber(),
        FakeSynthesizer(error=GenerationFailed("none", reason="NO_IMAGE_RETURNED")),
    )
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    state = asyncio.run(session.submit())

    assert isinstance(state, Failed)
    assert session.snapshot().image_src is None
    assert session.snapshot().error == GENERIC_FAILURE_MESSAGE


def test_unreadable_image_fails_before_description(describer, synthesizer):
    class BrokenFile:
        def read(self):
            raise OSError("device not ready")

    session = PipelineSession(describer, synthesizer)
    session.set_image(UploadedImage(data=BrokenFile(), mime_type="image/jpeg"))
    session.set_instruction("vintage polaroid")

    state = asyncio.run(session.submit())

    assert state.error_code == "CODEC_ERROR"
    assert describer.calls == []


def test_file_object_image_is_read(describer, synthesizer):
    session = PipelineSession(describer, synthesizer)
    session.set_image(UploadedImage(data=io.BytesIO(PNG_SIGNATURE), mime_type="image/png"))
    session.set_instruction("vintage polaroid")

    asyncio.run(session.submit())

    assert describer.calls[0][0] == "iVBORw0KGgo="


def test_resubmission_after_failure(uploaded_image):
    synthesizer = FakeSynthesizer(error=GenerationFailed("x", reason="SERVICE_UNAVAILABLE"))
    session = PipelineSession(FakeDescriber(), synthesizer)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")
    assert isinstance(asyncio.run(session.submit()), Failed)

    synthesizer.error = None
    state = asyncio.run(session.submit())

    assert isinstance(state, Succeeded)
    assert session.snapshot().error is None


def test_reupload_after_success_clears_image_without_running(session, uploaded_image):
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")
    asyncio.run(session.submit())

    seen = []
    session.add_listener(seen.append)
    session.set_image(UploadedImage(data=b"\xff\xd8\xff", mime_type="image/jpeg"))

    assert seen == [Idle()]
    assert session.snapshot().image_src is None
    assert session.snapshot().has_image is True


def test_upload_while_idle_does_not_transition(session, uploaded_image):
    seen = []
    session.add_listener(seen.append)

    session.set_image(uploaded_image)
    session.set_image(None)

    assert seen == []
    assert session.snapshot().has_image is False


def test_submission_while_running_is_rejected(uploaded_image, events):
    describer = SlowAsyncDescriber(events=events, delay=0.05)
    synthesizer = FakeSynthesizer(events=events)
    session = PipelineSession(describer, synthesizer)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    async def scenario():
        first = asyncio.create_task(session.submit())
        await asyncio.sleep(0.01)
        with pytest.raises(PipelineBusyError):
            await session.submit()
        return await first

    state = asyncio.run(scenario())

    assert isinstance(state, Succeeded)
    assert len(describer.calls) == 1
    assert len(synthesizer.calls) == 1


def test_upload_during_run_keeps_in_flight_image(uploaded_image):
    session = None

    class SwappingDescriber:
        def __init__(self):
            self.payloads = []

        async def describe(self, image_payload, mime_type, instruction_prompt):
            self.payloads.append(image_payload)
            session.set_image(UploadedImage(data=b"other", mime_type="image/webp"))
            return "a cat"

    describer = SwappingDescriber()
    session = PipelineSession(describer, FakeSynthesizer())
    session.set_image(uploaded_image)
    session.set_instruction("as a watercolor")

    state = asyncio.run(session.submit())

    assert describer.payloads == ["iVBORw0KGgo="]
    assert isinstance(state, Succeeded)


def test_listener_errors_do_not_break_pipeline(session, uploaded_image):
    def bad_listener(state):
        raise RuntimeError("render failed")

    session.add_listener(bad_listener)
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")

    assert isinstance(asyncio.run(session.submit()), Succeeded)


def test_build_session_requires_key(no_api_key):
    with pytest.raises(ConfigurationError):
        build_session()


def test_build_session_with_key(no_api_key, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")

    session = build_session()

    assert isinstance(session._describer, VisionDescriber)
    assert isinstance(session._synthesizer, ImageSynthesizer)


def test_validation_message_replaces_failure_message(uploaded_image):
    session = PipelineSession(
        FakeDescriber(),
        FakeSynthesizer(error=GenerationFailed("x", reason="SERVICE_UNAVAILABLE")),
    )
    session.set_image(uploaded_image)
    session.set_instruction("vintage polaroid")
    asyncio.run(session.submit())
    assert session.snapshot().error == GENERIC_FAILURE_MESSAGE

    session.set_instruction("  ")
    with pytest.raises(ValidationError):
        asyncio.run(session.submit())

    assert isinstance(session.state, Failed)
    assert session.snapshot().error == MISSING_INPUT_MESSAGE


def test_retry_rereads_file_object_image():
    describer = FakeDescriber()
    synthesizer = FakeSynthesizer(error=GenerationFailed("x", reason="SERVICE_UNAVAILABLE"))
    session = PipelineSession(describer, synthesizer)
    session.set_image(UploadedImage(data=io.BytesIO(PNG_SIGNATURE), mime_type="image/png"))
    session.set_instruction("vintage polaroid")
    assert isinstance(asyncio.run(session.submit()), Failed)

    synthesizer.error = None
    state = asyncio.run(session.submit())

    assert isinstance(state, Succeeded)
    assert [call[0] for call in describer.calls] == ["iVBORw0KGgo=", "iVBORw0KGgo="]


def test_empty_image_fails_before_description(describer, synthesizer):
    session = PipelineSession(describer, synthesizer)
    session.set_image(UploadedImage(data=io.BytesIO(b""), mime_type="image/png"))
    session.set_instruction("vintage polaroid")

    state = asyncio.run(session.submit())

    assert state.error_code == "CODEC_ERROR"
    assert describer.calls == []
