"""
Conversation modes. Each mode carries its own welcome text and system prompt.
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel

ERROR_PREFIX = "Sorry, I couldn't respond."


class ConversationMode(str, Enum):
    GENERAL = "general"
    STUDY = "study"


class ModeProfile(BaseModel):
    mode: ConversationMode
    welcome_text: str
    system_prompt: str
    error_prefix: str = ERROR_PREFIX


_PROFILES = {
    ConversationMode.GENERAL: ModeProfile(
        mode=ConversationMode.GENERAL,
        welcome_text="Hello! How can I help you today?",
        system_prompt=(
            "You are a helpful assistant on Apple Watch. "
            "Keep responses concise and clear due to the small screen size."
        ),
    ),
    ConversationMode.STUDY: ModeProfile(
        mode=ConversationMode.STUDY,
        welcome_text="Ready to study. What topic should we work through?",
        system_prompt=(
            "You are a patient tutor on Apple Watch. Explain one idea at a time, "
            "check understanding with a short question, and keep answers brief."
        ),
    ),
}


def profile_for(mode: Union[ConversationMode, str]) -> ModeProfile:
    """Look up a mode profile. Unknown tags fall back to the general profile."""
    try:
        return _PROFILES[ConversationMode(mode)]
    except ValueError:
        return _PROFILES[ConversationMode.GENERAL]
