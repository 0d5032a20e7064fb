"""CLI: watchgpt chat, watchgpt send"""

import json
from typing import Optional

import click
from rich.console import Console

from watchgpt.models.mode import ConversationMode

console = Console()

HELP = "Commands: /clear resets the chat, /speak reads the last reply aloud, /quit exits."


def _get_client():
    from watchgpt.cli.main import _get_client
    return _get_client()


def _run(coro):
    from watchgpt.cli.main import _run
    return _run(coro)


def _open(client, conversation_id: Optional[str], mode: Optional[str]):
    if conversation_id:
        from watchgpt.cli.conversations import _find
        return _find(client, conversation_id)
    return client.new_conversation(ConversationMode(mode) if mode else None)


@click.command("chat")
@click.argument("conversation_id", required=False)
@click.option("--mode", type=click.Choice([m.value for m in ConversationMode]), default=None)
def chat_cmd(conversation_id: Optional[str], mode: Optional[str]):
    """Interactive chat."""

    async def _chat():
        client = _get_client()
        conversation = _open(client, conversation_id, mode)
        session = client.open_session(conversation)
        console.print(f"[dim]Conversation: {conversation.id}[/dim]")
        console.print(f"[dim]{HELP}[/dim]\n")
        for m in session.messages:
            console.print(f"[{'cyan' if m.is_user else 'green'}]{'You' if m.is_user else 'WatchGPT'}:[/] {m.content}")
        try:
            while True:
                msg = click.prompt("You", prompt_suffix=": ")
                if msg.lower() in ("/quit", "/exit"):
                    break
                if msg.lower() == "/clear":
                    session.clear_conversation()
                    console.print(f"[green]WatchGPT:[/green] {session.messages[-1].content}")
                    continue
                if msg.lower() == "/speak":
                    replies = [m for m in session.messages if m.is_assistant]
                    if replies:
                        with console.status("Speaking..."):
                            await session.toggle_audio(replies[-1])
                        if session.error_message:
                            console.print(f"[red]{session.error_message}[/red]")
                    continue
                with console.status("Thinking..."):
                    await session.send_message(msg)
                reply = session.messages[-1]
                color = "red" if session.error_message else "green"
                console.print(f"[{color}]WatchGPT:[/{color}] {reply.content}")
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.close()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("-c", "--conversation", "conversation_id", default=None)
@click.option("--mode", type=click.Choice([m.value for m in ConversationMode]), default=None)
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, conversation_id: Optional[str], mode: Optional[str], json_output: bool):
    """Send a one-shot message."""

    async def _send():
        client = _get_client()
        try:
            conversation = _open(client, conversation_id, mode)
            session = client.open_session(conversation)
            await session.send_message(message)
            reply = session.messages[-1]
            if json_output:
                click.echo(json.dumps({
                    "conversation_id": str(conversation.id),
                    "content": reply.content,
                    "error": session.error_message,
                }))
            elif session.error_message:
                console.print(f"[red]{reply.content}[/red]")
            else:
                console.print(f"[green]WatchGPT:[/green] {reply.content}")
        finally:
            await client.close()
        if session.error_message:
            raise SystemExit(1)

    _run(_send())
