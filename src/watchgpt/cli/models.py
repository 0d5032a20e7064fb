"""CLI: watchgpt models [use <id>]"""

import click
from rich.console import Console
from rich.table import Table

from watchgpt.models.completion import AIModel

console = Console()


def _load_settings():
    from watchgpt.cli.main import _load_settings
    return _load_settings()


def _save_settings(settings) -> None:
    from watchgpt.cli.main import _save_settings
    _save_settings(settings)


@click.group(invoke_without_command=True)
@click.pass_context
def models(ctx):
    """List available chat models."""
    if ctx.invoked_subcommand is not None:
        return
    selected = _load_settings().chat_model
    table = Table(title="Models")
    table.add_column("")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Cost")
    table.add_column("Notes")
    for model in AIModel:
        table.add_row("*" if model.value == selected else "", model.value, model.display_name,
                      model.cost_indicator, model.description)
    console.print(table)


@models.command("use")
@click.argument("model_id", type=click.Choice([m.value for m in AIModel]))
def models_use(model_id: str):
    """Select the chat model."""
    settings = _load_settings()
    settings.chat_model = model_id
    _save_settings(settings)
    console.print(f"[green]Using {AIModel(model_id).display_name}.[/green]")
