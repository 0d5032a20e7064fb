"""
In-process transport. Two paired endpoints sharing one process.

Undelivered context and queued transfers wait on the sending endpoint until
the peer is activated.
"""

import logging
from typing import Any, Optional

from watchgpt.errors import KeyTransferError
from watchgpt.transport.base import ActivationState, ErrorHandler, KeyTransport, ReplyHandler
from watchgpt.transport.envelope import fingerprint

logger = logging.getLogger(__name__)


class LoopbackTransport(KeyTransport):
    def __init__(self, name: str = "loopback", app_installed: bool = True):
        super().__init__()
        self.name = name
        self.app_installed = app_installed
        self._peer: Optional["LoopbackTransport"] = None
        self._pending_context: Optional[dict[str, Any]] = None
        self._pending_queue: list[dict[str, Any]] = []

    @classmethod
    def pair(cls) -> tuple["LoopbackTransport", "LoopbackTransport"]:
        """Create a (companion, target) pair."""
        companion, target = cls("companion"), cls("target")
        companion._peer = target
        target._peer = companion
        return companion, target

    @property
    def is_paired(self) -> bool:
        return self._peer is not None

    @property
    def is_app_installed(self) -> bool:
        return self._peer is not None and self._peer.app_installed

    @property
    def is_reachable(self) -> bool:
        return self._peer is not None and self._peer.activation_state == ActivationState.ACTIVATED

    @property
    def pending_context(self) -> Optional[dict[str, Any]]:
        return self._pending_context

    @property
    def pending_queue(self) -> list[dict[str, Any]]:
        return list(self._pending_queue)

    def activate(self) -> None:
        self._activation_state = ActivationState.ACTIVATING
        self._finish_activation()

    def _finish_activation(self) -> None:
        self._activation_state = ActivationState.ACTIVATED
        logger.debug(f"{self.name} activated")
        self.delegate.activation_did_complete(ActivationState.ACTIVATED, None)
        self._flush()
        if self._peer is not None:
            self._peer._flush()

    def deactivate(self) -> None:
        """Simulate the session going away; the delegate decides whether to re-activate."""
        self._activation_state = ActivationState.INACTIVE
        self.delegate.session_did_become_inactive()
        self.delegate.session_did_deactivate()

    def update_application_context(self, payload: dict[str, Any]) -> None:
        if self._activation_state != ActivationState.ACTIVATED:
            raise KeyTransferError("Session is not activated.", code="not_activated")
        self._pending_context = dict(payload)
        self._flush()

    def transfer_user_info(self, payload: dict[str, Any]) -> None:
        fp = fingerprint(payload)
        if any(fingerprint(p) == fp for p in self._pending_queue):
            return
        self._pending_queue.append(dict(payload))
        self._flush()

    def send_message(
        self,
        payload: dict[str, Any],
        reply_handler: Optional[ReplyHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        if not self.is_reachable:
            if error_handler is not None:
                error_handler(KeyTransferError("Counterpart is not reachable.", code="not_reachable"))
            return
        self._peer.delegate.did_receive_message(dict(payload), reply_handler)  # type: ignore[union-attr]

    def _flush(self) -> None:
        if not self.is_reachable:
            return
        peer = self._peer
        if self._pending_context is not None:
            context, self._pending_context = self._pending_context, None
            peer.delegate.did_receive_application_context(context)  # type: ignore[union-attr]
        while self._pending_queue:
            peer.delegate.did_receive_user_info(self._pending_queue.pop(0))  # type: ignore[union-attr]
