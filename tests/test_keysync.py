"""Key sync between KeySender and KeyReceiver over the in-process transport."""

import asyncio

import pytest

from conftest import RecordingDelegate
from watchgpt import companion, receiver
from watchgpt.companion import KeySender
from watchgpt.credentials import MemoryCredentialStore
from watchgpt.errors import CredentialStoreError, KeyTransferError
from watchgpt.receiver import KeyReceiver
from watchgpt.transport.base import ActivationState, TransportDelegate
from watchgpt.transport.envelope import build_payload, fingerprint
from watchgpt.transport.loopback import LoopbackTransport


class FailingCredentialStore(MemoryCredentialStore):
    def _write(self, secret: str) -> None:
        raise CredentialStoreError("disk full", code="write_failed")


class NoContextTransport(LoopbackTransport):
    def update_application_context(self, payload):
        raise KeyTransferError("context too large", code="context_failed")


class BrokenMessageTransport(LoopbackTransport):
    def send_message(self, payload, reply_handler=None, error_handler=None):
        if error_handler is not None:
            error_handler(KeyTransferError("boom"))


class RejectingDelegate(TransportDelegate):
    def did_receive_message(self, payload, reply_handler=None):
        if reply_handler is not None:
            reply_handler({"ok": False, "error": "save_failed"})


def record(observable) -> list[str]:
    statuses: list[str] = []
    observable.subscribe(
        lambda field: statuses.append(observable.status_message) if field == "status_message" else None
    )
    return statuses


class TestPayload:
    def test_build_payload_fields(self):
        payload = build_payload("sk-abc", sent_at=12.5)
        assert payload == {"api_key": "sk-abc", "sent_at": 12.5}

    def test_build_payload_stamps_time(self):
        assert build_payload("sk-abc")["sent_at"] > 0

    def test_fingerprint_ignores_key_order(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})
        assert fingerprint({"a": 1}) != fingerprint({"a": 2})


class TestEndToEnd:
    def test_reachable_watch_syncs_immediately(self):
        companion_side, watch_side = LoopbackTransport.pair()
        credentials = MemoryCredentialStore()
        sender = KeySender(companion_side)
        key_receiver = KeyReceiver(watch_side, credentials)

        sender.api_key_input = "  sk-test123  "
        assert sender.send_to_target() is True

        assert credentials.get() == "sk-test123"
        assert sender.status_message == companion.STATUS_SYNCED
        assert key_receiver.status_message == receiver.STATUS_SYNCED
        assert key_receiver.last_received_at is not None

    def test_unreachable_watch_queues_then_delivers(self):
        companion_side, watch_side = LoopbackTransport.pair()
        credentials = MemoryCredentialStore()
        sender = KeySender(companion_side)
        key_receiver = KeyReceiver(watch_side, credentials, activate=False)

        sender.api_key_input = "sk-later"
        assert sender.send_to_target() is True

        assert sender.status_message == companion.STATUS_QUEUED
        assert credentials.get() is None
        assert companion_side.pending_context is not None
        assert len(companion_side.pending_queue) == 1

        key_receiver.activate()

        assert credentials.get() == "sk-later"
        assert companion_side.pending_context is None
        assert companion_side.pending_queue == []

    def test_status_sequence_for_immediate_send(self):
        companion_side, watch_side = LoopbackTransport.pair()
        sender = KeySender(companion_side)
        KeyReceiver(watch_side, MemoryCredentialStore())
        statuses = record(sender)

        sender.api_key_input = "sk-test"
        sender.send_to_target()

        assert statuses == [companion.STATUS_SENDING, companion.STATUS_SYNCED]


class TestSenderPreconditions:
    def test_blank_input_touches_no_channel(self):
        companion_side, watch_side = LoopbackTransport.pair()
        sender = KeySender(companion_side)
        watch_side.delegate = RecordingDelegate()
        watch_side.activate()

        sender.api_key_input = "   "
        assert sender.send_to_target() is False

        assert sender.status_message == companion.STATUS_ENTER_KEY
        assert companion_side.pending_context is None
        assert companion_side.pending_queue == []
        assert [e for e in watch_side.delegate.events if e[0] != "activation"] == []

    def test_not_activated(self):
        companion_side, _ = LoopbackTransport.pair()
        sender = KeySender(companion_side, activate=False)
        sender.api_key_input = "sk-test"

        assert sender.send_to_target() is False
        assert sender.status_message == companion.STATUS_CONNECTING

    def test_not_paired(self):
        sender = KeySender(LoopbackTransport("solo"))
        sender.api_key_input = "sk-test"

        assert sender.send_to_target() is False
        assert sender.status_message == companion.STATUS_NOT_PAIRED

    def test_app_not_installed(self):
        companion_side, watch_side = LoopbackTransport.pair()
        watch_side.app_installed = False
        sender = KeySender(companion_side)
        sender.api_key_input = "sk-test"

        assert sender.send_to_target() is False
        assert sender.status_message == companion.STATUS_NOT_INSTALLED
        assert companion_side.pending_queue == []


class TestSenderFailures:
    def test_context_failure_still_queues_transfer(self):
        companion_side = NoContextTransport("companion")
        watch_side = LoopbackTransport("target")
        companion_side._peer, watch_side._peer = watch_side, companion_side
        sender = KeySender(companion_side)
        statuses = record(sender)

        sender.api_key_input = "sk-test"
        assert sender.send_to_target() is True

        assert statuses == [
            "Failed to queue context update: context too large",
            companion.STATUS_QUEUED,
        ]
        assert len(companion_side.pending_queue) == 1

    def test_direct_send_error_is_reported(self):
        companion_side = BrokenMessageTransport("companion")
        watch_side = LoopbackTransport("target")
        companion_side._peer, watch_side._peer = watch_side, companion_side
        credentials = MemoryCredentialStore()
        sender = KeySender(companion_side)
        KeyReceiver(watch_side, credentials)

        sender.api_key_input = "sk-test"
        sender.send_to_target()

        assert sender.status_message == "Queued, but immediate send failed: boom"
        # The other channels still carried the key.
        assert credentials.get() == "sk-test"

    def test_rejected_reply_is_not_reported_as_synced(self):
        companion_side, watch_side = LoopbackTransport.pair()
        sender = KeySender(companion_side)
        watch_side.delegate = RejectingDelegate()
        watch_side.activate()

        sender.api_key_input = "sk-test"
        sender.send_to_target()

        assert sender.status_message == "Watch could not save the key (save_failed)."


class TestReceiver:
    def make_receiver(self, credentials=None) -> KeyReceiver:
        _, watch_side = LoopbackTransport.pair()
        return KeyReceiver(watch_side, credentials or MemoryCredentialStore(), activate=False)

    @pytest.mark.parametrize("payload", [{}, {"api_key": 42}, {"sent_at": 1.0}])
    def test_missing_key(self, payload):
        key_receiver = self.make_receiver()
        replies = []

        reply = key_receiver.save_payload(payload, replies.append)

        assert reply.ok is False
        assert replies == [{"ok": False, "error": "missing_api_key"}]
        assert key_receiver.status_message == receiver.STATUS_MISSING_KEY

    def test_empty_key(self):
        credentials = MemoryCredentialStore("sk-old")
        key_receiver = self.make_receiver(credentials)
        replies = []

        key_receiver.save_payload({"api_key": "  \n "}, replies.append)

        assert replies == [{"ok": False, "error": "empty_api_key"}]
        assert key_receiver.status_message == receiver.STATUS_EMPTY_KEY
        assert credentials.get() == "sk-old"

    def test_store_failure(self):
        key_receiver = self.make_receiver(FailingCredentialStore())
        replies = []

        key_receiver.save_payload({"api_key": "sk-test"}, replies.append)

        assert replies == [{"ok": False, "error": "save_failed"}]
        assert key_receiver.status_message == "Failed to save key: disk full"
        assert key_receiver.last_received_at is None

    def test_success_trims_and_notifies_listeners(self):
        credentials = MemoryCredentialStore()
        changes = []
        credentials.add_listener(lambda: changes.append(credentials.get()))
        key_receiver = self.make_receiver(credentials)
        replies = []

        key_receiver.save_payload({"api_key": " sk-new \n"}, replies.append)

        assert replies == [{"ok": True}]
        assert changes == ["sk-new"]

    def test_delivery_on_every_channel_is_idempotent(self):
        credentials = MemoryCredentialStore()
        key_receiver = self.make_receiver(credentials)
        payload = build_payload("sk-same")

        key_receiver.did_receive_application_context(payload)
        key_receiver.did_receive_user_info(payload)
        key_receiver.did_receive_message(payload)

        assert credentials.get() == "sk-same"
        assert key_receiver.status_message == receiver.STATUS_SYNCED


class TestLoopbackChannels:
    def test_context_requires_activation(self):
        companion_side, _ = LoopbackTransport.pair()
        with pytest.raises(KeyTransferError) as exc_info:
            companion_side.update_application_context({"api_key": "x"})
        assert exc_info.value.code == "not_activated"

    def test_latest_context_wins_and_queue_is_fifo_without_duplicates(self):
        companion_side, watch_side = LoopbackTransport.pair()
        delegate = RecordingDelegate()
        watch_side.delegate = delegate
        companion_side.activate()

        first, second = build_payload("sk-1", sent_at=1.0), build_payload("sk-2", sent_at=2.0)
        companion_side.update_application_context(first)
        companion_side.update_application_context(second)
        companion_side.transfer_user_info(first)
        companion_side.transfer_user_info(first)
        companion_side.transfer_user_info(second)

        assert companion_side.pending_context == second
        assert companion_side.pending_queue == [first, second]

        watch_side.activate()

        assert delegate.events == [
            ("activation", ActivationState.ACTIVATED),
            ("context", second),
            ("user_info", first),
            ("user_info", second),
        ]

    def test_send_to_unreachable_peer_calls_error_handler(self):
        companion_side, _ = LoopbackTransport.pair()
        companion_side.activate()
        errors = []

        companion_side.send_message({"api_key": "x"}, error_handler=errors.append)

        assert len(errors) == 1
        assert errors[0].code == "not_reachable"


class TestLifecycle:
    def test_deactivation_reactivates(self):
        companion_side, _ = LoopbackTransport.pair()
        sender = KeySender(companion_side)
        statuses = record(sender)

        companion_side.deactivate()

        assert statuses == [
            "Companion session became inactive.",
            "Companion session deactivated. Reconnecting...",
            "Connected. Paste your API key and send.",
        ]
        assert sender.activation_state == ActivationState.ACTIVATED

    def test_activation_error_status(self):
        sender = KeySender(LoopbackTransport("solo"), activate=False)
        sender.activation_did_complete(ActivationState.INACTIVE, RuntimeError("relay down"))

        assert sender.activation_state == ActivationState.INACTIVE
        assert sender.status_message == "Companion activation error: relay down"

    def test_receiver_activation_statuses(self):
        _, watch_side = LoopbackTransport.pair()
        key_receiver = KeyReceiver(watch_side, MemoryCredentialStore(), activate=False)
        assert key_receiver.status_message == receiver.STATUS_INITIAL

        key_receiver.activate()
        assert key_receiver.status_message == "Companion connection ready."


class TestLoopDispatch:
    def test_callbacks_wait_for_the_owner_loop(self):
        loop = asyncio.new_event_loop()
        try:
            credentials = MemoryCredentialStore()
            _, watch_side = LoopbackTransport.pair()
            key_receiver = KeyReceiver(watch_side, credentials, loop=loop, activate=False)

            key_receiver.did_receive_user_info(build_payload("sk-deferred"))
            assert credentials.get() is None

            loop.run_until_complete(asyncio.sleep(0))
            assert credentials.get() == "sk-deferred"
        finally:
            loop.close()

    @pytest.mark.asyncio
    async def test_callbacks_from_another_thread(self):
        credentials = MemoryCredentialStore()
        _, watch_side = LoopbackTransport.pair()
        key_receiver = KeyReceiver(
            watch_side, credentials, loop=asyncio.get_running_loop(), activate=False,
        )

        await asyncio.to_thread(key_receiver.did_receive_user_info, build_payload("sk-threaded"))
        await asyncio.sleep(0)

        assert credentials.get() == "sk-threaded"
        assert key_receiver.status_message == receiver.STATUS_SYNCED
