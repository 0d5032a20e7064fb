"""
Chat message model.

``id``, ``role``, ``content`` and ``timestamp`` are frozen once constructed.
``is_playing`` is presentation state and is excluded from serialization.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, frozen=True)
    role: Role = Field(frozen=True)
    content: str = Field(frozen=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), frozen=True)
    is_playing: bool = Field(default=False, exclude=True)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @property
    def is_user(self) -> bool:
        return self.role == Role.USER

    @property
    def is_assistant(self) -> bool:
        return self.role == Role.ASSISTANT

    def api_format(self) -> dict[str, str]:
        """Chat-completions wire shape."""
        return {"role": self.role.value, "content": self.content}
