"""
Key-transfer payload and reply.
"""

from typing import Optional

from pydantic import BaseModel

API_KEY_FIELD = "api_key"
SENT_AT_FIELD = "sent_at"


class KeyTransferPayload(BaseModel):
    api_key: str
    sent_at: float  # epoch seconds


class KeyTransferReply(BaseModel):
    ok: bool
    error: Optional[str] = None  # "missing_api_key" | "empty_api_key" | "save_failed"
