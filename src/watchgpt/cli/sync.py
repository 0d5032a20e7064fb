"""CLI: watchgpt sync push|listen"""

import asyncio
from typing import Optional

import click
from rich.console import Console

from watchgpt.companion import STATUS_SENDING, KeySender
from watchgpt.credentials import FileCredentialStore
from watchgpt.receiver import KeyReceiver
from watchgpt.transport.socketio import SocketIOKeyTransport

console = Console()

PEER_WAIT_S = 3.0
ACK_WAIT_S = 10.0


def _load_settings():
    from watchgpt.cli.main import _load_settings
    return _load_settings()


def _run(coro):
    from watchgpt.cli.main import _run
    return _run(coro)


def _relay(relay_url: Optional[str]) -> str:
    url = relay_url or _load_settings().relay_url
    if not url:
        console.print("[red]No relay configured. Pass --relay or set relay_url in ~/.watchgpt/config.json.[/red]")
        raise SystemExit(1)
    return url


async def _wait_for(predicate, timeout: float) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate() and loop.time() < deadline:
        await asyncio.sleep(0.1)


@click.group()
def sync():
    """Sync the API key between companion and watch."""


@sync.command("push")
@click.option("--relay", "relay_url", default=None, help="Relay Socket.IO URL")
def sync_push(relay_url: Optional[str]):
    """Companion: send an API key to the paired watch."""
    url = _relay(relay_url)
    api_key = click.prompt("OpenAI API key", hide_input=True)

    async def _push():
        settings = _load_settings()
        transport = SocketIOKeyTransport(url, role="companion", outbox_path=settings.outbox_path)
        sender = KeySender(transport, loop=asyncio.get_running_loop(), activate=False)
        sender.api_key_input = api_key
        with console.status("Connecting to relay..."):
            await transport.connect()
            await _wait_for(lambda: transport.is_paired, PEER_WAIT_S)
        try:
            if sender.send_to_target():
                with console.status(STATUS_SENDING):
                    await _wait_for(lambda: sender.status_message != STATUS_SENDING, ACK_WAIT_S)
                    await transport.flush()
            console.print(sender.status_message)
            pending = transport.outbox
            if pending.context is not None or pending.queue:
                console.print(f"[dim]{len(pending.queue)} transfer(s) waiting in {settings.outbox_path}[/dim]")
        finally:
            await transport.disconnect()

    _run(_push())


@sync.command("listen")
@click.option("--relay", "relay_url", default=None, help="Relay Socket.IO URL")
def sync_listen(relay_url: Optional[str]):
    """Watch: wait for keys from the companion and store them."""
    url = _relay(relay_url)

    async def _listen():
        settings = _load_settings()
        transport = SocketIOKeyTransport(url, role="target")
        receiver = KeyReceiver(
            transport, FileCredentialStore(settings.credentials_path),
            loop=asyncio.get_running_loop(), activate=False,
        )
        def show(field: str) -> None:
            if field == "status_message":
                console.print(receiver.status_message)

        receiver.subscribe(show)
        await transport.connect()
        console.print("[cyan]Waiting for the companion (Ctrl+C to stop)[/cyan]")
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            await transport.disconnect()

    try:
        _run(_listen())
    except KeyboardInterrupt:
        pass


@sync.command("local")
def sync_local():
    """Companion and watch on this machine: hand a key over the in-process transport."""
    from watchgpt.transport.loopback import LoopbackTransport

    api_key = click.prompt("OpenAI API key", hide_input=True)
    settings = _load_settings()
    companion_side, watch_side = LoopbackTransport.pair()
    receiver = KeyReceiver(watch_side, FileCredentialStore(settings.credentials_path))
    sender = KeySender(companion_side)
    sender.api_key_input = api_key
    ok = sender.send_to_target()
    console.print(sender.status_message)
    console.print(f"[dim]Watch: {receiver.status_message}[/dim]")
    if not ok or receiver.last_received_at is None:
        raise SystemExit(1)
