"""
Key-transfer transport interface.

A transport offers three independent channels to the paired peer:

- application context: last write wins, delivered when the peer next runs
- user-info transfer: FIFO queue, each payload delivered once, survives restarts
- message: immediate, only while the peer is reachable, answered by a reply or an error

Transports report lifecycle and inbound payloads to a ``TransportDelegate``.
Delegate methods may be called from any thread.
"""

from enum import Enum
from typing import Any, Callable, Optional

ReplyHandler = Callable[[dict[str, Any]], None]
ErrorHandler = Callable[[Exception], None]


class ActivationState(str, Enum):
    NOT_ACTIVATED = "not_activated"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    INACTIVE = "inactive"


class TransportDelegate:
    """No-op delegate; owners override what they care about."""

    def activation_did_complete(self, state: ActivationState, error: Optional[Exception]) -> None:
        pass

    def session_did_become_inactive(self) -> None:
        pass

    def session_did_deactivate(self) -> None:
        pass

    def did_receive_application_context(self, payload: dict[str, Any]) -> None:
        pass

    def did_receive_user_info(self, payload: dict[str, Any]) -> None:
        pass

    def did_receive_message(self, payload: dict[str, Any], reply_handler: Optional[ReplyHandler] = None) -> None:
        pass


class KeyTransport:
    def __init__(self) -> None:
        self.delegate: TransportDelegate = TransportDelegate()
        self._activation_state = ActivationState.NOT_ACTIVATED

    @property
    def activation_state(self) -> ActivationState:
        return self._activation_state

    @property
    def is_paired(self) -> bool:
        raise NotImplementedError

    @property
    def is_app_installed(self) -> bool:
        raise NotImplementedError

    @property
    def is_reachable(self) -> bool:
        raise NotImplementedError

    def activate(self) -> None:
        raise NotImplementedError

    def update_application_context(self, payload: dict[str, Any]) -> None:
        """Replace any undelivered context with ``payload``. May raise KeyTransferError."""
        raise NotImplementedError

    def transfer_user_info(self, payload: dict[str, Any]) -> None:
        raise NotImplementedError

    def send_message(
        self,
        payload: dict[str, Any],
        reply_handler: Optional[ReplyHandler] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        raise NotImplementedError
