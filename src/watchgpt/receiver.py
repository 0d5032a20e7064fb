"""
Watch side of key sync. Validates incoming payloads and stores the key.

Every channel (context, queued transfer, direct message with or without a
reply) funnels into ``save_payload``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from watchgpt.credentials import CredentialStore
from watchgpt.errors import CredentialStoreError
from watchgpt.models.payload import API_KEY_FIELD, KeyTransferReply
from watchgpt.state import Observable
from watchgpt.transport.base import ActivationState, KeyTransport, ReplyHandler, TransportDelegate

logger = logging.getLogger(__name__)

STATUS_INITIAL = "Open the companion app to send your API key."
STATUS_MISSING_KEY = "Received payload missing API key."
STATUS_EMPTY_KEY = "Received an empty API key."
STATUS_SYNCED = "API key synced from companion."

_ACTIVATION_STATUS = {
    ActivationState.ACTIVATED: "Companion connection ready.",
    ActivationState.INACTIVE: "Companion connection inactive.",
    ActivationState.NOT_ACTIVATED: "Connecting to companion app...",
}


class KeyReceiver(Observable, TransportDelegate):
    def __init__(
        self,
        transport: KeyTransport,
        credentials: CredentialStore,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        activate: bool = True,
    ):
        super().__init__(loop)
        self._transport = transport
        self._transport.delegate = self
        self._credentials = credentials
        self.status_message = STATUS_INITIAL
        self.last_received_at: Optional[datetime] = None
        self.activation_state = ActivationState.NOT_ACTIVATED
        if activate:
            self.activate()

    def activate(self) -> None:
        self._transport.activate()

    def save_payload(self, payload: dict[str, Any], reply_handler: Optional[ReplyHandler] = None) -> KeyTransferReply:
        reply = self._save(payload)
        if reply_handler is not None:
            reply_handler(reply.model_dump(exclude_none=True))
        return reply

    def _save(self, payload: dict[str, Any]) -> KeyTransferReply:
        raw_key = payload.get(API_KEY_FIELD)
        if not isinstance(raw_key, str):
            self._set_status(STATUS_MISSING_KEY)
            return KeyTransferReply(ok=False, error="missing_api_key")

        key = raw_key.strip()
        if not key:
            self._set_status(STATUS_EMPTY_KEY)
            return KeyTransferReply(ok=False, error="empty_api_key")

        try:
            self._credentials.set(key)
        except CredentialStoreError as e:
            logger.warning(f"Could not store synced key: {e}")
            self._set_status(f"Failed to save key: {e}")
            return KeyTransferReply(ok=False, error="save_failed")

        self.last_received_at = datetime.now(timezone.utc)
        self._notify("last_received_at")
        logger.info("API key received from companion")
        self._set_status(STATUS_SYNCED)
        return KeyTransferReply(ok=True)

    def _set_status(self, message: str) -> None:
        self.status_message = message
        self._notify("status_message")

    def _apply_activation(self, state: ActivationState, error: Optional[Exception]) -> None:
        self.activation_state = state
        self._notify("activation_state")
        if error is not None:
            self._set_status(f"Companion connection error: {error}")
            return
        self._set_status(_ACTIVATION_STATUS.get(state, "Companion connection state unknown."))

    def _reactivate(self) -> None:
        self._set_status("Companion session deactivated. Reconnecting...")
        self._transport.activate()

    # --- TransportDelegate ---

    def activation_did_complete(self, state: ActivationState, error: Optional[Exception]) -> None:
        self._dispatch(self._apply_activation, state, error)

    def session_did_become_inactive(self) -> None:
        self._dispatch(self._set_status, "Companion connection inactive.")

    def session_did_deactivate(self) -> None:
        self._dispatch(self._reactivate)

    def did_receive_application_context(self, payload: dict[str, Any]) -> None:
        self._dispatch(self.save_payload, payload)

    def did_receive_user_info(self, payload: dict[str, Any]) -> None:
        self._dispatch(self.save_payload, payload)

    def did_receive_message(self, payload: dict[str, Any], reply_handler: Optional[ReplyHandler] = None) -> None:
        self._dispatch(self.save_payload, payload, reply_handler)
