"""
WatchGPT CLI — `watchgpt` command.

Commands:
  watchgpt key set|status|clear           Manage the stored API key
  watchgpt models [use <id>]              List or choose the chat model
  watchgpt conversations <cmd>            Conversation list/new/show/delete
  watchgpt chat [conversation-id]         Interactive REPL chat
  watchgpt send <message>                 One-shot message
  watchgpt sync push|listen|local         Companion/watch key sync
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install watchgpt[cli]")

from watchgpt import __version__
from watchgpt.client import WatchGPT
from watchgpt.config import Settings, load_settings, save_settings

console = Console()


def _load_settings() -> Settings:
    return load_settings()


def _save_settings(settings: Settings) -> None:
    save_settings(settings)


def _get_client() -> WatchGPT:
    return WatchGPT(settings=_load_settings())


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """WatchGPT CLI — chat from your terminal, sync your key to your watch."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# Register subcommands from separate modules
from watchgpt.cli.key import key
from watchgpt.cli.models import models
from watchgpt.cli.conversations import conversations
from watchgpt.cli.chat import chat_cmd, send_cmd
from watchgpt.cli.sync import sync

main.add_command(key)
main.add_command(models)
main.add_command(conversations)
main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(sync)


if __name__ == "__main__":
    main()
