"""
WatchGPT. Application session wiring settings, credentials, storage and the chat API.

Components are constructed explicitly and owned by one WatchGPT instance;
nothing here is a process-wide singleton.
"""

from typing import Optional

import httpx

from watchgpt.api import ChatAPI
from watchgpt.audio import AudioPlayer, SubprocessAudioPlayer
from watchgpt.chat import ChatSession
from watchgpt.config import Settings, load_settings
from watchgpt.conversations import ConversationStore
from watchgpt.credentials import CredentialStore, FileCredentialStore
from watchgpt.models.conversation import Conversation
from watchgpt.models.mode import ConversationMode
from watchgpt.transport.http import HttpClient


class WatchGPT:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialStore] = None,
        store: Optional[ConversationStore] = None,
        player: Optional[AudioPlayer] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or load_settings()
        self.credentials = credentials or FileCredentialStore(self.settings.credentials_path)
        self.store = store or ConversationStore(self.settings.db_path)
        self.store.init()
        self.player = player or SubprocessAudioPlayer(
            self.settings.audio_command, suffix=f".{self.settings.tts_format}",
        )
        self.http = HttpClient(
            token_provider=self.credentials.get,
            base_url=self.settings.base_url,
            timeout=self.settings.request_timeout,
            transport=http_transport,
        )
        self.api = ChatAPI(
            self.http,
            tts_model=self.settings.tts_model,
            tts_voice=self.settings.tts_voice,
            tts_format=self.settings.tts_format,
        )

    def new_conversation(self, mode: Optional[ConversationMode] = None) -> Conversation:
        conversation = Conversation(mode=mode or self.settings.default_mode)
        self.store.insert(conversation)
        return conversation

    def open_session(self, conversation: Conversation) -> ChatSession:
        """Create a chat session bound to ``conversation`` that writes through to the store."""
        session = ChatSession(self.api, settings=self.settings, store=self.store, player=self.player)
        session.bind(conversation)
        return session

    def delete_conversation(self, conversation: Conversation) -> None:
        self.store.delete(conversation)

    async def close(self) -> None:
        self.player.stop()
        await self.api.close()
        self.store.close()
