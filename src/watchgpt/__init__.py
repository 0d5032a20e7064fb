"""
watchgpt. Chat client for an OpenAI-compatible API.

Conversation persistence with durable/transient message handling, and
companion-to-watch API key sync over pluggable transports.
"""

from watchgpt.client import WatchGPT
from watchgpt.api import ChatAPI
from watchgpt.chat import ChatSession
from watchgpt.companion import KeySender
from watchgpt.receiver import KeyReceiver
from watchgpt.conversations import ConversationStore
from watchgpt.credentials import CredentialStore, FileCredentialStore, MemoryCredentialStore
from watchgpt.errors import (
    WatchGPTError,
    ChatAPIError,
    CredentialStoreError,
    KeyTransferError,
    AudioPlayerError,
    ConnectionError,
)
from watchgpt.history import trim
from watchgpt.models.conversation import Conversation
from watchgpt.models.message import Message, Role
from watchgpt.models.mode import ConversationMode

__version__ = "0.1.0"
__all__ = [
    "WatchGPT",
    "ChatAPI",
    "ChatSession",
    "KeySender",
    "KeyReceiver",
    "ConversationStore",
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "WatchGPTError",
    "ChatAPIError",
    "CredentialStoreError",
    "KeyTransferError",
    "AudioPlayerError",
    "ConnectionError",
    "trim",
    "Conversation",
    "Message",
    "Role",
    "ConversationMode",
]
