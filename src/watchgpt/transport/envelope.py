"""
Key-transfer payload construction and fingerprinting.
"""

import json
import time
from typing import Any, Optional

from watchgpt.models.payload import KeyTransferPayload


def build_payload(api_key: str, sent_at: Optional[float] = None) -> dict[str, Any]:
    """Build a transfer payload as a plain dict ready for any channel."""
    payload = KeyTransferPayload(api_key=api_key, sent_at=sent_at if sent_at is not None else time.time())
    return payload.model_dump()


def fingerprint(payload: dict[str, Any]) -> str:
    """Content identity used to drop duplicate queued transfers."""
    return json.dumps(payload, sort_keys=True, default=str)
