"""
Companion side of key sync. Pushes an API key to the paired watch.

Preconditions are checked in order and each failure only updates the status.
Once they pass, the key goes out on all three channels independently: the
application context, the queued transfer, and (only if the watch is reachable
right now) a direct message with a reply.
"""

import asyncio
import logging
from typing import Any, Optional

from watchgpt.errors import KeyTransferError
from watchgpt.state import Observable
from watchgpt.transport.base import ActivationState, KeyTransport, TransportDelegate
from watchgpt.transport.envelope import build_payload

logger = logging.getLogger(__name__)

STATUS_INITIAL = "Paste your OpenAI API key, then send it to your watch."
STATUS_ENTER_KEY = "Enter a valid API key first."
STATUS_CONNECTING = "Still connecting to the watch. Try again in a moment."
STATUS_NOT_PAIRED = "No paired watch found."
STATUS_NOT_INSTALLED = "Install WatchGPT on your watch first."
STATUS_QUEUED = "Key queued. It will sync when watch is reachable."
STATUS_SENDING = "Sending key to watch..."
STATUS_SYNCED = "API key synced to watch."

_ACTIVATION_STATUS = {
    ActivationState.ACTIVATED: "Connected. Paste your API key and send.",
    ActivationState.INACTIVE: "Companion connection inactive.",
    ActivationState.NOT_ACTIVATED: "Connecting to the watch...",
}


class KeySender(Observable, TransportDelegate):
    def __init__(
        self,
        transport: KeyTransport,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        activate: bool = True,
    ):
        super().__init__(loop)
        self._transport = transport
        self._transport.delegate = self
        self.api_key_input = ""
        self.status_message = STATUS_INITIAL
        self.activation_state = ActivationState.NOT_ACTIVATED
        if activate:
            self.activate()

    def activate(self) -> None:
        self._transport.activate()

    def send_to_target(self) -> bool:
        """Push the current input to the watch. Returns False if a precondition failed."""
        key = self.api_key_input.strip()
        if not key:
            self._set_status(STATUS_ENTER_KEY)
            return False

        transport = self._transport
        if transport.activation_state != ActivationState.ACTIVATED:
            self._set_status(STATUS_CONNECTING)
            return False
        if not transport.is_paired:
            self._set_status(STATUS_NOT_PAIRED)
            return False
        if not transport.is_app_installed:
            self._set_status(STATUS_NOT_INSTALLED)
            return False

        payload = build_payload(key)
        try:
            transport.update_application_context(payload)
        except KeyTransferError as e:
            logger.warning(f"Context update failed: {e}")
            self._set_status(f"Failed to queue context update: {e}")
        transport.transfer_user_info(payload)

        if not transport.is_reachable:
            self._set_status(STATUS_QUEUED)
            return True

        self._set_status(STATUS_SENDING)
        transport.send_message(
            payload,
            reply_handler=lambda reply: self._dispatch(self._handle_reply, reply),
            error_handler=lambda error: self._dispatch(
                self._set_status, f"Queued, but immediate send failed: {error}",
            ),
        )
        return True

    def _handle_reply(self, reply: dict[str, Any]) -> None:
        if reply.get("ok", True):
            self._set_status(STATUS_SYNCED)
        else:
            self._set_status(f"Watch could not save the key ({reply.get('error', 'unknown')}).")

    def _set_status(self, message: str) -> None:
        self.status_message = message
        self._notify("status_message")

    def _apply_activation(self, state: ActivationState, error: Optional[Exception]) -> None:
        self.activation_state = state
        self._notify("activation_state")
        if error is not None:
            self._set_status(f"Companion activation error: {error}")
            return
        self._set_status(_ACTIVATION_STATUS.get(state, "Companion connection state unknown."))

    def _reactivate(self) -> None:
        self._set_status("Companion session deactivated. Reconnecting...")
        self._transport.activate()

    # --- TransportDelegate ---

    def activation_did_complete(self, state: ActivationState, error: Optional[Exception]) -> None:
        self._dispatch(self._apply_activation, state, error)

    def session_did_become_inactive(self) -> None:
        self._dispatch(self._set_status, "Companion session became inactive.")

    def session_did_deactivate(self) -> None:
        self._dispatch(self._reactivate)
