"""Shared fakes for the unit tests."""

import uuid
from typing import Any, Optional

import pytest

from watchgpt.errors import ChatAPIError
from watchgpt.transport.base import TransportDelegate


class FakeChatAPI:
    """Stands in for ChatAPI; records requests and replays canned results."""

    def __init__(self, reply: str = "Hi there", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.requests: list[list[dict[str, str]]] = []
        self.tts_requests: list[str] = []
        self.tts_error: Optional[Exception] = None
        self.gate = None  # optional asyncio.Event awaited before answering

    async def complete(self, messages, model, temperature=None, max_tokens=None) -> str:
        self.requests.append(list(messages))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply

    async def text_to_speech(self, text, voice=None, response_format=None) -> bytes:
        self.tts_requests.append(text)
        if self.tts_error is not None:
            raise self.tts_error
        return b"audio-bytes"


class FakePlayer:
    """Reports playing for ``polls`` checks after each play."""

    def __init__(self, polls: int = 2):
        self.polls = polls
        self.played: list[tuple[bytes, uuid.UUID]] = []
        self.stops = 0
        self._current: Optional[uuid.UUID] = None
        self._remaining = 0

    def play(self, data: bytes, message_id: uuid.UUID) -> None:
        self.played.append((data, message_id))
        self._current = message_id
        self._remaining = self.polls

    def stop(self) -> None:
        self.stops += 1
        self._current = None
        self._remaining = 0

    def is_playing(self, message_id: uuid.UUID) -> bool:
        if self._current != message_id or self._remaining <= 0:
            return False
        self._remaining -= 1
        return True


class RecordingDelegate(TransportDelegate):
    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def activation_did_complete(self, state, error) -> None:
        self.events.append(("activation", state))

    def session_did_become_inactive(self) -> None:
        self.events.append(("inactive", None))

    def session_did_deactivate(self) -> None:
        self.events.append(("deactivate", None))

    def did_receive_application_context(self, payload) -> None:
        self.events.append(("context", payload))

    def did_receive_user_info(self, payload) -> None:
        self.events.append(("user_info", payload))

    def did_receive_message(self, payload, reply_handler=None) -> None:
        self.events.append(("message", payload))
        if reply_handler is not None:
            reply_handler({"ok": True})


@pytest.fixture
def fake_api() -> FakeChatAPI:
    return FakeChatAPI()


@pytest.fixture
def network_error() -> ChatAPIError:
    return ChatAPIError("Network error: connection reset", code="network_error")
