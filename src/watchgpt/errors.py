"""
WatchGPT error types.
"""

from typing import Any, Optional


class WatchGPTError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ChatAPIError(WatchGPTError):
    """Remote chat / TTS failure. ``code`` is one of the API error categories."""

    def __init__(self, message: str, code: str = "api_error", status_code: Optional[int] = None):
        super().__init__(code, message, {"status_code": status_code} if status_code is not None else None)
        self.status_code = status_code


class CredentialStoreError(WatchGPTError):
    def __init__(self, message: str, code: str = "credential_error"):
        super().__init__(code, message)


class KeyTransferError(WatchGPTError):
    def __init__(self, message: str, code: str = "key_transfer_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class AudioPlayerError(WatchGPTError):
    def __init__(self, message: str = "Failed to play audio."):
        super().__init__("playback_failed", message)


class ConnectionError(WatchGPTError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
