"""Main CLI for taskpilot."""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..core.config import DebugLevel, default_config_path, load_config
from ..core.config_store import ConfigStore
from ..core.engine import Engine
from ..errors import ErrorTranslator, SkillCompositionError, TaskpilotError, format_error_message
from ..interaction import ScriptedPrompter
from ..skills.expander import expand_skill
from ..skills.library import SkillLibrary
from ..utils.rich_logging import setup_logging
from .render import TimelineRenderer


console = Console()


@click.group()
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration file (default: $TASKPILOT_CONFIG or ~/.taskpilotrc)",
)
@click.pass_context
def cli(ctx, config_path):
    """Taskpilot - plan, confirm and run tasks from plain-language requests."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or default_config_path()


@cli.command()
@click.argument("request", nargs=-1, required=True)
@click.option("--dry-run", is_flag=True, help="Show commands without running them")
@click.option(
    "--debug", "-d",
    type=click.Choice([level.value for level in DebugLevel]),
    default=None,
    help="Log level (overrides settings.debug)",
)
@click.option("--yes", "-y", is_flag=True, help="Confirm plans without asking")
@click.pass_context
def run(ctx, request, dry_run, debug, yes):
    """Plan REQUEST, ask for confirmation and carry it out."""
    config_path = ctx.obj["config_path"]
    config = load_config(config_path)
    level = DebugLevel(debug) if debug else DebugLevel(config.settings.debug)
    config = config.model_copy(update={"settings": config.settings.model_copy(update={"debug": level})})
    setup_logging(level, config.log_dir)

    prompter = ScriptedPrompter(default_confirm=True) if yes else None
    engine = Engine(config, config_path=config_path, prompter=prompter, dry_run=dry_run)
    renderer = TimelineRenderer(console, debug=level)

    if dry_run:
        console.print("[dim]Dry run: commands are not executed[/]")

    try:
        code = asyncio.run(engine.run(" ".join(request), on_change=renderer))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/]")
        code = 0
    except TaskpilotError as e:
        translator = ErrorTranslator()
        console.print(translator.format_for_cli(translator.translate(e)))
        code = 1
    sys.exit(code)


@cli.group()
def skills():
    """Inspect the skill library."""


def _load_library(ctx) -> SkillLibrary:
    config = load_config(ctx.obj["config_path"])
    return SkillLibrary.from_directory(config.skills_dir)


@skills.command("list")
@click.pass_context
def skills_list(ctx):
    """List every skill with its validity and step count."""
    library = _load_library(ctx)
    if not len(library):
        console.print("[yellow]No skills found[/]")
        return

    table = Table()
    table.add_column("Name")
    table.add_column("Key")
    table.add_column("Valid")
    table.add_column("Steps")
    table.add_column("Description")

    for skill in library:
        valid = "[green]yes[/]" if skill.is_valid else f"[red]no[/] ({skill.validation_error})"
        name = skill.name + (" [yellow](INCOMPLETE)[/]" if skill.is_incomplete else "")
        table.add_row(name, skill.key, valid, str(len(skill.steps)), skill.description)

    console.print(table)


@skills.command("show")
@click.argument("name")
@click.pass_context
def skills_show(ctx, name):
    """Show a skill's expanded commands and the config it needs."""
    library = _load_library(ctx)
    skill = library.lookup(name)
    if skill is None:
        console.print(f"[red]Error: skill '{name}' not found[/]")
        sys.exit(1)

    console.print(f"[bold]{skill.name}[/] [dim]({skill.key})[/]")
    if skill.description:
        console.print(skill.description)
    if not skill.is_valid:
        console.print(f"[red]Invalid: {skill.validation_error}[/]")
        sys.exit(1)

    try:
        expanded = expand_skill(skill, library)
    except SkillCompositionError as e:
        console.print(f"[red]{format_error_message(e)}[/]")
        sys.exit(1)

    console.print("\n[bold]Commands:[/]")
    for i, command in enumerate(expanded.commands, 1):
        console.print(f"  {i}. {command}", markup=False)
    if expanded.config:
        console.print("\n[bold]Config:[/]")
        for path in expanded.config:
            console.print(f"  - {path}", markup=False)


@cli.group("config")
def config_group():
    """Read and write configuration values."""


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key, value):
    """Set dotted KEY (e.g. project.alpha.repo) to VALUE."""
    store = ConfigStore(ctx.obj["config_path"])
    try:
        store.save_flat({key: value})
    except TaskpilotError as e:
        console.print(f"[red]Error: {format_error_message(e)}[/]")
        sys.exit(1)
    console.print(f"[green]✓ {key} saved[/]")


@config_group.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx, key):
    """Print the value of dotted KEY."""
    store = ConfigStore(ctx.obj["config_path"])
    value = store.get_value(key)
    if value is None:
        console.print(f"[yellow]{key} is not set[/]")
        sys.exit(1)
    if isinstance(value, bool):
        value = str(value).lower()
    click.echo(value)


if __name__ == "__main__":
    cli()
