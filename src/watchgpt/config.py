"""
Settings. Persisted as JSON under ~/.watchgpt (override with WATCHGPT_HOME).
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from watchgpt.models.mode import ConversationMode

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def config_dir() -> Path:
    env = os.environ.get("WATCHGPT_HOME")
    return Path(env).expanduser() if env else Path.home() / ".watchgpt"


class Settings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    chat_model: str = "gpt-5.2"
    temperature: float = 0.7
    max_tokens: int = 1024
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    tts_format: str = "aac"
    max_history_messages: int = 16
    request_timeout: float = 30.0
    default_mode: ConversationMode = ConversationMode.GENERAL
    relay_url: Optional[str] = None
    audio_command: str = "ffplay -nodisp -autoexit -loglevel quiet"

    @property
    def db_path(self) -> Path:
        return config_dir() / "conversations.db"

    @property
    def credentials_path(self) -> Path:
        return config_dir() / "credentials.json"

    @property
    def outbox_path(self) -> Path:
        return config_dir() / "keysync_outbox.json"


def config_file() -> Path:
    return config_dir() / "config.json"


def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or config_file()
    try:
        return Settings.model_validate(json.loads(path.read_text()))
    except FileNotFoundError:
        return Settings()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable config at {path}: {e}")
        return Settings()


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    path = path or config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(indent=2))
