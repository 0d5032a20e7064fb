"""CLI: watchgpt conversations list|new|show|delete"""

import json

import click
from rich.console import Console
from rich.table import Table

from watchgpt.models.mode import ConversationMode

console = Console()


def _get_client():
    from watchgpt.cli.main import _get_client
    return _get_client()


def _find(client, conversation_id: str):
    """Resolve a full id or a unique id prefix."""
    matches = [c for c in client.store.list() if str(c.id).startswith(conversation_id)]
    if len(matches) != 1:
        console.print(f"[red]No unique conversation matches {conversation_id!r}.[/red]")
        raise SystemExit(1)
    return matches[0]


@click.group()
def conversations():
    """Conversation management."""


@conversations.command("list")
@click.option("--json-output", "--json", is_flag=True)
def conversations_list(json_output):
    """List conversations, most recent first."""
    client = _get_client()
    items = client.store.list()
    if json_output:
        click.echo(json.dumps([
            {"id": str(c.id), "title": c.title, "mode": c.mode, "updated_at": c.updated_at.isoformat()}
            for c in items
        ], indent=2))
        return
    table = Table(title=f"Conversations ({len(items)} total)")
    table.add_column("ID", style="bold")
    table.add_column("Mode")
    table.add_column("Title")
    table.add_column("Updated")
    for c in items:
        table.add_row(str(c.id)[:8], c.mode, c.title, c.preview_timestamp)
    console.print(table)


@conversations.command("new")
@click.option("--mode", type=click.Choice([m.value for m in ConversationMode]), default=None)
def conversations_new(mode):
    """Start a new conversation."""
    client = _get_client()
    conversation = client.new_conversation(ConversationMode(mode) if mode else None)
    console.print(f"[green]Conversation created: {conversation.id}[/green]")


@conversations.command("show")
@click.argument("conversation_id")
def conversations_show(conversation_id):
    """Print a conversation's stored messages."""
    client = _get_client()
    conversation = _find(client, conversation_id)
    console.print(f"[bold]{conversation.title}[/bold] [dim]({conversation.mode}, {conversation.preview_timestamp})[/dim]")
    for m in conversation.messages:
        style = "cyan" if m.is_user else "green"
        console.print(f"[{style}]{m.role.value}:[/{style}] {m.content}")


@conversations.command("delete")
@click.argument("conversation_id")
def conversations_delete(conversation_id):
    """Delete a conversation."""
    client = _get_client()
    conversation = _find(client, conversation_id)
    client.delete_conversation(conversation)
    console.print(f"[green]Conversation {conversation.id} deleted.[/green]")
