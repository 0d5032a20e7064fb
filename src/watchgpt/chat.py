"""
Chat session. Binds a Conversation to the remote chat API.

Working list vs. storage:
- ``messages`` holds everything the user sees, including the mode's welcome
  message and synthetic error replies.
- Only the durable subset (user messages and real assistant replies) is ever
  written back to the conversation.

The remote context (prior turns replayed on each request) is owned here and is
rebuilt from the durable messages on every ``bind``.
"""

import asyncio
import logging
import uuid
from typing import Callable, Optional

from watchgpt.api import ChatAPI
from watchgpt.audio import AudioPlayer
from watchgpt.config import Settings
from watchgpt.conversations import ConversationStore
from watchgpt.errors import WatchGPTError
from watchgpt.history import trim
from watchgpt.models.conversation import Conversation, durable_subset
from watchgpt.models.message import Message, Role
from watchgpt.models.mode import ModeProfile
from watchgpt.state import Observable

logger = logging.getLogger(__name__)

PLAYBACK_POLL_INTERVAL_S = 0.1


class ChatSession(Observable):
    def __init__(
        self,
        api: ChatAPI,
        settings: Optional[Settings] = None,
        store: Optional[ConversationStore] = None,
        player: Optional[AudioPlayer] = None,
        poll_interval_s: float = PLAYBACK_POLL_INTERVAL_S,
    ):
        super().__init__()
        self._api = api
        self._settings = settings or Settings()
        self._store = store
        self._player = player
        self._poll_interval_s = poll_interval_s

        self.messages: list[Message] = []
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.input_text = ""

        self._context: list[Message] = []
        self._conversation: Optional[Conversation] = None
        self._on_messages_changed: Optional[Callable[[list[Message]], None]] = None

    @property
    def conversation(self) -> Optional[Conversation]:
        return self._conversation

    @property
    def context(self) -> list[Message]:
        """Prior turns replayed to the API, oldest first."""
        return list(self._context)

    @property
    def profile(self) -> ModeProfile:
        if self._conversation is None:
            raise WatchGPTError("session_error", "No conversation bound. Call bind() first.")
        return self._conversation.profile

    def bind(
        self,
        conversation: Conversation,
        on_messages_changed: Optional[Callable[[list[Message]], None]] = None,
    ) -> None:
        """Load a conversation's durable messages and rebuild the remote context."""
        self._conversation = conversation
        self._on_messages_changed = on_messages_changed

        stored = conversation.messages
        durable = durable_subset(stored, conversation.profile)
        if len(durable) != len(stored):
            logger.info(f"Dropping {len(stored) - len(durable)} non-durable messages from {conversation.id}")
            conversation.messages = durable
            self._write_through(durable)

        self.messages = list(durable)
        self.error_message = None
        self._context = [m for m in durable if m.role != Role.SYSTEM]
        if not self.messages:
            self._add_welcome_message()
        self._notify("messages")

    async def send_message(self, content: str) -> None:
        """Append the user message, then request and append the reply.

        The user message is appended and persisted before the first suspension
        point. Overlapping calls are not serialized.
        """
        trimmed = content.strip()
        if not trimmed:
            return
        profile = self.profile

        user_message = Message.user(trimmed)
        self.messages.append(user_message)
        self._save_messages()
        self.input_text = ""
        self.is_loading = True
        self.error_message = None
        self._notify("messages")

        self._context.append(user_message)
        request = [{"role": "system", "content": profile.system_prompt}]
        request.extend(m.api_format() for m in trim(self._context, self._settings.max_history_messages))

        try:
            reply = await self._api.complete(
                request,
                model=self._settings.chat_model,
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_tokens,
            )
        except WatchGPTError as e:
            logger.warning(f"Chat request failed ({e.code}): {e}")
            if e.code == "empty_response" and user_message in self._context:
                self._context.remove(user_message)
            self.is_loading = False
            self.error_message = str(e)
            self.messages.append(Message.assistant(f"{profile.error_prefix} {e}"))
            self._save_messages()
            self._notify("messages")
            return

        assistant_message = Message.assistant(reply)
        self._context.append(assistant_message)
        self.messages.append(assistant_message)
        self.is_loading = False
        self._save_messages()
        self._notify("messages")

    async def toggle_audio(self, message: Message) -> None:
        """Play ``message`` as speech, or stop it if it is already playing.

        Returns once playback has finished or failed.
        """
        if not message.is_assistant or self._player is None:
            return

        if self._player.is_playing(message.id):
            self._player.stop()
            self._set_playing(message.id, False)
            return

        self.stop_audio()
        self._set_playing(message.id, True)
        try:
            audio = await self._api.text_to_speech(message.content)
            self._player.play(audio, message.id)
        except WatchGPTError as e:
            self._set_playing(message.id, False)
            self.error_message = f"Audio playback failed: {e}"
            self._notify("error_message")
            return
        await self._monitor_playback(message.id)

    def stop_audio(self) -> None:
        if self._player is not None:
            self._player.stop()
        for m in self.messages:
            m.is_playing = False
        self._notify("messages")

    def clear_conversation(self) -> None:
        """Drop every message, reset the remote context and start over with a welcome."""
        self.stop_audio()
        self._context.clear()
        self.messages = []
        self.error_message = None
        self._save_messages()
        self._add_welcome_message()
        self._notify("messages")

    async def _monitor_playback(self, message_id: uuid.UUID) -> None:
        while self._player is not None and self._player.is_playing(message_id):
            await asyncio.sleep(self._poll_interval_s)
        self._set_playing(message_id, False)

    def _add_welcome_message(self) -> None:
        self.messages.append(Message.assistant(self.profile.welcome_text))
        self._save_messages()

    def _set_playing(self, message_id: uuid.UUID, playing: bool) -> None:
        for m in self.messages:
            if m.id == message_id:
                m.is_playing = playing
        self._notify("messages")

    def _save_messages(self) -> None:
        if self._conversation is None:
            return
        durable = durable_subset(self.messages, self._conversation.profile)
        if [m.id for m in durable] == [m.id for m in self._conversation.messages]:
            return
        self._conversation.messages = durable
        self._write_through(durable)

    def _write_through(self, durable: list[Message]) -> None:
        if self._store is not None and self._conversation is not None:
            self._store.save(self._conversation)
        if self._on_messages_changed is not None:
            self._on_messages_changed(durable)
