"""CLI: watchgpt key set|status|clear"""

import click
from rich.console import Console

from watchgpt.errors import CredentialStoreError

console = Console()


def _get_client():
    from watchgpt.cli.main import _get_client
    return _get_client()


@click.group()
def key():
    """API key commands."""


@key.command("set")
def key_set():
    """Store an OpenAI API key on this device."""
    value = click.prompt("OpenAI API key", hide_input=True).strip()
    if not value:
        console.print("[red]Enter a valid API key.[/red]")
        raise SystemExit(1)
    client = _get_client()
    try:
        client.credentials.set(value)
    except CredentialStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print("[green]API key saved.[/green]")


@key.command("status")
def key_status():
    """Show whether an API key is stored."""
    client = _get_client()
    secret = client.credentials.get()
    if client.credentials.has_api_key():
        console.print(f"[green]API key set[/green] (…{secret[-4:]})")  # type: ignore[index]
    else:
        console.print("[yellow]No API key. Run `watchgpt key set` or `watchgpt sync listen`.[/yellow]")


@key.command("clear")
def key_clear():
    """Delete the stored API key."""
    client = _get_client()
    try:
        client.credentials.delete()
    except CredentialStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print("[green]API key removed.[/green]")
