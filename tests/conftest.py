import asyncio
import io

import pytest
from PIL import Image

from photomagic.core.engine import PipelineSession
from photomagic.image.codec import UploadedImage


PNG_SIGNATURE = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])


class FakeDescriber:
    """Synchronous description client that records calls."""

    def __init__(self, result="a red bicycle on a beach", error=None, events=None):
        self.result = result
        self.error = error
        self.events = events if events is not None else []
        self.calls = []

    def describe(self, image_payload, mime_type, instruction_prompt):
        self.calls.append((image_payload, mime_type, instruction_prompt))
        self.events.append("describe:start")
        if self.error is not None:
            raise self.error
        self.events.append("describe:end")
        return self.result


class FakeSynthesizer:
    def __init__(self, result="AAAA", error=None, events=None):
        self.result = result
        self.error = error
        self.events = events if events is not None else []
        self.calls = []

    def generate(self, prompt):
        self.calls.append(prompt)
        self.events.append("generate:start")
        if self.error is not None:
            raise self.error
        self.events.append("generate:end")
        return self.result


class SlowAsyncDescriber(FakeDescriber):
    """Async description client that suspends before resolving."""

    def __init__(self, *args, delay=0.02, **kwargs):
        super().__init__(*args, **kwargs)
        self.delay = delay

    async def describe(self, image_payload, mime_type, instruction_prompt):
        self.calls.append((image_payload, mime_type, instruction_prompt))
        self.events.append("describe:start")
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.events.append("describe:end")
        return self.result


@pytest.fixture
def events():
    return []


@pytest.fixture
def describer(events):
    return FakeDescriber(events=events)


@pytest.fixture
def synthesizer(events):
    return FakeSynthesizer(events=events)


@pytest.fixture
def session(describer, synthesizer):
    return PipelineSession(describer, synthesizer)


@pytest.fixture
def uploaded_image():
    return UploadedImage(data=PNG_SIGNATURE, mime_type="image/png")


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def no_api_key(monkeypatch, tmp_path):
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
