"""Unit tests for the session state machine and the session registry."""
import asyncio

import pytest

from common.error_messages import ErrorCode
from database.db import SessionStore
from image.errors import (
    EmptyPromptError,
    InvalidTransitionError,
    ModelRefusalError,
    RequestInFlightError,
)
from image.models import AppStatus, EncodedImage, GeneratedImage
from image.session import GenerationSession

from conftest import FakeImageClient


def encoded(data: str = "BBBB") -> EncodedImage:
    return EncodedImage(mime_type="image/jpeg", data=data, preview_url=f"data:image/jpeg;base64,{data}")


class GatedClient:
    """Client whose response is held until the test releases it."""

    def __init__(self, image: GeneratedImage):
        self.image = image
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, request):
        self.started.set()
        await self.release.wait()
        return self.image


class TestSubmit:
    """Tests for GenerationSession.submit."""

    def test_success_moves_to_success(self, fake_client):
        session = GenerationSession("s1")
        result = asyncio.run(session.submit("a cat wearing sunglasses", fake_client))

        assert result.ok
        assert session.status == AppStatus.SUCCESS
        assert session.result is result
        assert session.prompt == "a cat wearing sunglasses"

    def test_passes_source_image(self, fake_client):
        session = GenerationSession("s1")
        session.finish_ingest(session.begin_ingest(), encoded())
        asyncio.run(session.submit("remove background", fake_client))

        request = fake_client.requests[0]
        assert request.prompt == "remove background"
        assert request.source_image.data == "BBBB"

    def test_failure_moves_to_error(self):
        session = GenerationSession("s1")
        client = FakeImageClient(ModelRefusalError("I cannot do that."))

        result = asyncio.run(session.submit("something", client))

        assert not result.ok
        assert result.error == "I cannot do that."
        assert result.error_code == ErrorCode.MODEL_REFUSAL
        assert session.status == AppStatus.ERROR

    @pytest.mark.parametrize("prompt", ["", "   ", None])
    def test_blank_prompt_keeps_status(self, prompt, fake_client):
        session = GenerationSession("s1")
        with pytest.raises(EmptyPromptError) as exc_info:
            asyncio.run(session.submit(prompt, fake_client))

        assert "Please enter a prompt" in exc_info.value.message
        assert session.status == AppStatus.IDLE
        assert fake_client.requests == []

    def test_resubmit_after_success(self, fake_client):
        session = GenerationSession("s1")
        asyncio.run(session.submit("first", fake_client))
        asyncio.run(session.submit("second", fake_client))

        assert session.status == AppStatus.SUCCESS
        assert len(fake_client.requests) == 2

    def test_overlapping_submission_refused(self):
        image = GeneratedImage(data="AAAA")

        async def scenario():
            session = GenerationSession("s1")
            client = GatedClient(image)
            first = asyncio.create_task(session.submit("first", client))
            await client.started.wait()
            assert session.status == AppStatus.LOADING

            with pytest.raises(RequestInFlightError):
                await session.submit("second", client)

            client.release.set()
            await first
            return session

        session = asyncio.run(scenario())
        assert session.status == AppStatus.SUCCESS

    def test_clear_discards_in_flight_result(self):
        image = GeneratedImage(data="AAAA")

        async def scenario():
            session = GenerationSession("s1")
            client = GatedClient(image)
            pending = asyncio.create_task(session.submit("slow one", client))
            await client.started.wait()

            session.clear()
            client.release.set()
            result = await pending
            return session, result

        session, result = asyncio.run(scenario())
        assert result.ok
        assert session.status == AppStatus.IDLE
        assert session.result is None

    def test_cancelled_request_does_not_stay_loading(self, fake_client):
        async def scenario():
            session = GenerationSession("s1")
            client = GatedClient(GeneratedImage(data="AAAA"))
            pending = asyncio.create_task(session.submit("a cat", client))
            await client.started.wait()

            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending
            return session

        session = asyncio.run(scenario())
        assert session.status == AppStatus.ERROR
        assert session.result.error_code == ErrorCode.GEMINI_API_ERROR

        session.dismiss()
        assert session.status == AppStatus.IDLE
        asyncio.run(session.submit("a cat", fake_client))
        assert session.status == AppStatus.SUCCESS

    def test_cancel_after_clear_stays_idle(self):
        async def scenario():
            session = GenerationSession("s1")
            client = GatedClient(GeneratedImage(data="AAAA"))
            pending = asyncio.create_task(session.submit("a cat", client))
            await client.started.wait()

            session.clear()
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending
            return session

        session = asyncio.run(scenario())
        assert session.status == AppStatus.IDLE
        assert session.result is None

    def test_unexpected_client_error_becomes_transport_error(self):
        session = GenerationSession("s1")
        result = asyncio.run(session.submit("a cat", FakeImageClient(RuntimeError("socket closed"))))

        assert not result.ok
        assert result.error == "Failed to generate image"
        assert result.error_code == ErrorCode.GEMINI_API_ERROR
        assert session.status == AppStatus.ERROR


class TestTransitions:
    """Tests for dismiss, clear and illegal transitions."""

    def test_dismiss_error(self):
        session = GenerationSession("s1")
        asyncio.run(session.submit("x", FakeImageClient(ModelRefusalError("no"))))

        session.dismiss()

        assert session.status == AppStatus.IDLE
        assert session.result is None

    def test_dismiss_idle_is_noop(self):
        session = GenerationSession("s1")
        session.dismiss()
        assert session.status == AppStatus.IDLE

    def test_dismiss_while_loading_rejected(self):
        session = GenerationSession("s1")
        session.status = AppStatus.LOADING
        with pytest.raises(InvalidTransitionError):
            session.dismiss()

    def test_idle_cannot_jump_to_success(self):
        session = GenerationSession("s1")
        with pytest.raises(InvalidTransitionError):
            session._transition(AppStatus.SUCCESS)

    def test_clear_keeps_prompt(self, fake_client):
        session = GenerationSession("s1")
        session.finish_ingest(session.begin_ingest(), encoded())
        asyncio.run(session.submit("keep me", fake_client))

        session.clear()

        assert session.status == AppStatus.IDLE
        assert session.source_image is None
        assert session.result is None
        assert session.prompt == "keep me"

    def test_newer_upload_wins(self):
        session = GenerationSession("s1")
        older = session.begin_ingest()
        newer = session.begin_ingest()

        assert session.finish_ingest(newer, encoded("NEW="))
        assert not session.finish_ingest(older, encoded("OLD="))
        assert session.source_image.data == "NEW="

    def test_snapshot(self, fake_client):
        session = GenerationSession("s1")
        session.finish_ingest(session.begin_ingest(), encoded())
        asyncio.run(session.submit("a cat wearing sunglasses", fake_client))

        state = session.snapshot()

        assert state.status == AppStatus.SUCCESS
        assert state.has_source_image
        assert state.source_image.preview_url == "data:image/jpeg;base64,BBBB"
        assert state.result.ok
        assert state.result.image_url == "data:image/png;base64,AAAA"
        assert state.result.download_filename.startswith("banana-edit-")
        assert state.result.download_filename.endswith(".png")


class TestSessionStore:
    """Tests for the in-memory session registry."""

    def test_get_or_create_reuses_session(self):
        store = SessionStore(ttl_seconds=60)
        session = store.get_or_create(None)

        assert store.get_or_create(session.session_id) is session
        assert len(store) == 1

    def test_unknown_id_is_honoured(self):
        store = SessionStore(ttl_seconds=60)
        session = store.get_or_create("abc123")
        assert session.session_id == "abc123"

    def test_prune_idle_sessions(self):
        store = SessionStore(ttl_seconds=60)
        idle = store.get_or_create("idle")
        busy = store.get_or_create("busy")
        busy.status = AppStatus.LOADING

        removed = store.prune(now=idle.last_active + 120)

        assert removed == 1
        assert store.get("idle") is None
        assert store.get("busy") is busy

    def test_remove(self):
        store = SessionStore(ttl_seconds=60)
        store.get_or_create("gone")
        assert store.remove("gone") is not None
        assert store.get("gone") is None
