"""
Conversation entity. An ordered, serialized list of durable messages plus a mode tag.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import TypeAdapter, ValidationError

from watchgpt.models.message import Message, Role
from watchgpt.models.mode import ConversationMode, ModeProfile, profile_for

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 30
PLACEHOLDER_TITLE = "New Chat"

_MESSAGE_LIST = TypeAdapter(list[Message])

# (upper bound in seconds, unit length in seconds, abbreviation)
_RELATIVE_UNITS = [
    (60, 1, "sec."),
    (3600, 60, "min."),
    (86400, 3600, "hr."),
    (7 * 86400, 86400, "day"),
    (30 * 86400, 7 * 86400, "wk."),
    (365 * 86400, 30 * 86400, "mo."),
]


def is_durable(message: Message, profile: ModeProfile) -> bool:
    """User messages and real assistant replies survive; welcome and error placeholders do not."""
    if message.role == Role.USER:
        return True
    if message.role == Role.ASSISTANT:
        return message.content != profile.welcome_text and not message.content.startswith(profile.error_prefix)
    return False


def durable_subset(messages: list[Message], profile: ModeProfile) -> list[Message]:
    return [m for m in messages if is_durable(m, profile)]


def encode_messages(messages: list[Message]) -> bytes:
    return _MESSAGE_LIST.dump_json(messages)


def decode_messages(data: Optional[bytes]) -> list[Message]:
    if not data:
        return []
    try:
        return _MESSAGE_LIST.validate_json(data)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable message data ({len(data)} bytes): {e.error_count()} errors")
        return []


def relative_description(moment: datetime, now: Optional[datetime] = None) -> str:
    """Abbreviated relative time, e.g. ``"5 min. ago"``."""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())
    if seconds < 1:
        return "now"
    for bound, unit, label in _RELATIVE_UNITS:
        if seconds < bound:
            count = seconds // unit
            if label == "day" and count != 1:
                label = "days"
            return f"{count} {label} ago"
    return f"{seconds // (365 * 86400)} yr. ago"


class Conversation:
    def __init__(
        self,
        id: Optional[uuid.UUID] = None,
        messages: Optional[list[Message]] = None,
        mode: Union[ConversationMode, str] = ConversationMode.GENERAL,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        now = datetime.now(timezone.utc)
        self.id = id or uuid.uuid4()
        self.messages_data = encode_messages(messages or [])
        self.mode = ConversationMode(mode).value if isinstance(mode, ConversationMode) else mode
        self.created_at = created_at or now
        self.updated_at = updated_at or now

    @classmethod
    def from_storage(
        cls,
        id: uuid.UUID,
        messages_data: bytes,
        mode: str,
        created_at: datetime,
        updated_at: datetime,
    ) -> "Conversation":
        """Rehydrate without re-encoding; the stored bytes are kept as they are."""
        conversation = cls(id=id, mode=mode, created_at=created_at, updated_at=updated_at)
        conversation.messages_data = messages_data
        return conversation

    @property
    def messages(self) -> list[Message]:
        return decode_messages(self.messages_data)

    @messages.setter
    def messages(self, value: list[Message]) -> None:
        self.messages_data = encode_messages(value)
        self.updated_at = datetime.now(timezone.utc)

    @property
    def profile(self) -> ModeProfile:
        return profile_for(self.mode)

    @property
    def title(self) -> str:
        first_user = next((m.content for m in self.messages if m.role == Role.USER), None)
        if first_user is None:
            return PLACEHOLDER_TITLE
        if len(first_user) > TITLE_MAX_LENGTH:
            return first_user[:TITLE_MAX_LENGTH] + "…"
        return first_user

    @property
    def preview_timestamp(self) -> str:
        return relative_description(self.updated_at)

    def __repr__(self) -> str:
        return f"Conversation(id={str(self.id)!r}, mode={self.mode!r}, title={self.title!r})"
