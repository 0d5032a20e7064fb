"""
Socket.IO key-transfer transport.

Both endpoints connect to a relay with auth={device_id, role}. The relay
forwards keysync:* events to the paired device and pushes keysync:peer
status ({paired, installed, reachable}) whenever the counterpart changes.

Outbound context and queued transfers are kept in an outbox (optionally
persisted as JSON) and drained in order once the peer is reachable. An entry
leaves the outbox only after the peer acknowledges it.
"""

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

import socketio
from socketio.exceptions import ConnectionError as RelayConnectionError, SocketIOError
from pydantic import BaseModel, ValidationError

from watchgpt.errors import ConnectionError, KeyTransferError
from watchgpt.history import trim
from watchgpt.transport.base import ActivationState, ErrorHandler, KeyTransport, ReplyHandler
from watchgpt.transport.envelope import fingerprint

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"
CONTEXT_EVENT = "keysync:context"
USER_INFO_EVENT = "keysync:user_info"
MESSAGE_EVENT = "keysync:message"
PEER_EVENT = "keysync:peer"

APPLIED_HISTORY = 64


class Outbox(BaseModel):
    context: Optional[dict[str, Any]] = None
    queue: list[dict[str, Any]] = []


class PeerStatus(BaseModel):
    paired: bool = False
    installed: bool = False
    reachable: bool = False


def _default_client() -> socketio.AsyncClient:
    # Reconnection is driven by the delegate re-activating the transport.
    return socketio.AsyncClient(reconnection=False)


class SocketIOKeyTransport(KeyTransport):
    def __init__(
        self,
        relay_url: str,
        role: str = "companion",
        device_id: Optional[str] = None,
        outbox_path: Optional[Path] = None,
        transports: Optional[list[str]] = None,
        ack_timeout: float = 10.0,
        client_factory: Callable[[], Any] = _default_client,
    ):
        super().__init__()
        self._relay_url = relay_url
        self._role = role
        self._device_id = device_id or str(uuid.uuid4())
        self._outbox_path = Path(outbox_path) if outbox_path else None
        self._transports = transports or ["websocket"]
        self._ack_timeout = ack_timeout
        self._client_factory = client_factory

        self._sio: Optional[Any] = None
        self._peer = PeerStatus()
        self._outbox = self._load_outbox()
        self._applied: list[str] = []
        self._tasks: set[asyncio.Task] = set()
        self._flushing = False
        self._flush_again = False
        self._closing = False

    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def connected(self) -> bool:
        return self._sio is not None and self._sio.connected

    @property
    def outbox(self) -> Outbox:
        return self._outbox.model_copy(deep=True)

    @property
    def is_paired(self) -> bool:
        return self._peer.paired

    @property
    def is_app_installed(self) -> bool:
        return self._peer.installed

    @property
    def is_reachable(self) -> bool:
        return self.connected and self._peer.reachable

    def activate(self) -> None:
        self._spawn(self.connect())

    async def connect(self) -> None:
        """Connect to the relay. Outcome is reported through the delegate."""
        if self.connected:
            return
        self._activation_state = ActivationState.ACTIVATING
        self._closing = False
        self._sio = self._client_factory()
        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)
        self._sio.on(PEER_EVENT, self._on_peer)
        self._sio.on(CONTEXT_EVENT, self._on_context)
        self._sio.on(USER_INFO_EVENT, self._on_user_info)
        self._sio.on(MESSAGE_EVENT, self._on_message)

        try:
            await self._sio.connect(
                self._relay_url,
                auth={"device_id": self._device_id, "role": self._role},
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
            )
        except RelayConnectionError as e:
            logger.warning(f"Relay connection failed: {e}")
            self._activation_state = ActivationState.INACTIVE
            self.delegate.activation_did_complete(
                ActivationState.INACTIVE, ConnectionError(f"Could not reach relay {self._relay_url}: {e}"),
            )

    async def disconnect(self) -> None:
        self._closing = True
        if self._sio is not None:
            await self._sio.disconnect()
            self._sio = None
        self._activation_state = ActivationState.INACTIVE

    def update_application_context(self, payload: dict[str, Any]) -> None:
        if self._activation_state != ActivationState.ACTIVATED:
            raise KeyTransferError("Session is not activated.", code="not_activated")
        self._outbox.context = dict(payload)
        self._save_outbox()
        self._spawn(self.flush())

    def transfer_user_info(self, payload: dict[str, Any]) -> None:
        fp = fingerprint(payload)
        if any(fingerprint(p) == fp for p in self._outbox.queue):
            return
        self._outbox.queue.append(dict(payload))
        self._save_outbox()
        self._spawn(self.flush())

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
        if not self._spawn(self._send(dict(payload), reply_handler, error_handler)) and error_handler is not None:
            error_handler(KeyTransferError("No running event loop.", code="no_event_loop"))

    async def flush(self) -> None:
        """Drain the outbox to the peer: latest context first, then the queue in order."""
        if self._flushing:
            self._flush_again = True
            return
        self._flushing = True
        try:
            while True:
                self._flush_again = False
                await self._drain()
                if not self._flush_again:
                    break
        finally:
            self._flushing = False

    async def _drain(self) -> None:
        if not self.is_reachable:
            return
        context = self._outbox.context
        if context is not None:
            try:
                await self._sio.call(CONTEXT_EVENT, context, timeout=self._ack_timeout)  # type: ignore[union-attr]
            except SocketIOError as e:
                logger.warning(f"Context delivery failed, will retry: {e!r}")
                return
            # A newer context may have replaced this one while in flight.
            if self._outbox.context == context:
                self._outbox.context = None
                self._save_outbox()

        while self._outbox.queue and self.is_reachable:
            item = self._outbox.queue[0]
            try:
                await self._sio.call(USER_INFO_EVENT, item, timeout=self._ack_timeout)  # type: ignore[union-attr]
            except SocketIOError as e:
                logger.warning(f"Queued transfer delivery failed, will retry: {e!r}")
                return
            self._outbox.queue.pop(0)
            self._save_outbox()

    async def _send(
        self,
        payload: dict[str, Any],
        reply_handler: Optional[ReplyHandler],
        error_handler: Optional[ErrorHandler],
    ) -> None:
        if self._sio is None:
            if error_handler is not None:
                error_handler(KeyTransferError("Disconnected before sending.", code="not_reachable"))
            return
        try:
            response = await self._sio.call(MESSAGE_EVENT, payload, timeout=self._ack_timeout)
        except SocketIOError as e:
            if error_handler is not None:
                error_handler(e)
            return
        if reply_handler is not None:
            reply_handler(response if isinstance(response, dict) else {"ok": bool(response)})

    # --- Socket.IO handlers ---

    async def _on_connect(self) -> None:
        self._activation_state = ActivationState.ACTIVATED
        logger.info(f"Connected to relay as {self._role} ({self._device_id})")
        self.delegate.activation_did_complete(ActivationState.ACTIVATED, None)
        self._spawn(self.flush())

    async def _on_disconnect(self, _reason: str = "") -> None:
        self._activation_state = ActivationState.INACTIVE
        self._peer = PeerStatus()
        self.delegate.session_did_become_inactive()
        if not self._closing:
            self.delegate.session_did_deactivate()

    async def _on_peer(self, data: Any) -> None:
        try:
            self._peer = PeerStatus.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed peer status: {e.error_count()} errors")
            return
        if self._peer.reachable:
            self._spawn(self.flush())

    async def _on_context(self, data: Any) -> dict[str, Any]:
        self.delegate.did_receive_application_context(data if isinstance(data, dict) else {})
        return {"ok": True}

    async def _on_user_info(self, data: Any) -> dict[str, Any]:
        payload = data if isinstance(data, dict) else {}
        fp = fingerprint(payload)
        if fp in self._applied:
            return {"ok": True}
        self._applied = list(trim(self._applied + [fp], APPLIED_HISTORY))
        self.delegate.did_receive_user_info(payload)
        return {"ok": True}

    async def _on_message(self, data: Any) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def resolve(response: dict[str, Any]) -> None:
            if not future.done():
                future.set_result(response)

        def reply(response: dict[str, Any]) -> None:
            loop.call_soon_threadsafe(resolve, response)

        self.delegate.did_receive_message(data if isinstance(data, dict) else {}, reply)
        try:
            return await asyncio.wait_for(future, timeout=self._ack_timeout)
        except asyncio.TimeoutError:
            return {"ok": False, "error": "no_reply"}

    # --- helpers ---

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop; deferring until the next activation")
            return False
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def _load_outbox(self) -> Outbox:
        if self._outbox_path is None:
            return Outbox()
        try:
            return Outbox.model_validate(json.loads(self._outbox_path.read_text()))
        except FileNotFoundError:
            return Outbox()
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable outbox {self._outbox_path}: {e}")
            return Outbox()

    def _save_outbox(self) -> None:
        if self._outbox_path is None:
            return
        self._outbox_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._outbox_path.with_name(f".{self._outbox_path.name}.tmp")
        tmp_path.write_text(self._outbox.model_dump_json(indent=2))
        os.replace(tmp_path, self._outbox_path)
