"""CLI entry point for DeskCrew."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deskcrew import __version__
from deskcrew.config import Settings, create_default_config, get_settings, load_settings
from deskcrew.errors import ConfigurationError
from deskcrew.utils.logging import setup_logging

app = typer.Typer(
    name="deskcrew",
    help="Construction help desk - a receptionist, a stock manager and an expert in one group chat",
    add_completion=True,
    no_args_is_help=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]DeskCrew[/bold] version {__version__}")
        raise typer.Exit()


def _load(config: Optional[Path]) -> Settings:
    """Load settings, turning configuration errors into a clean exit."""
    try:
        if config:
            return load_settings(config_path=config, force_reload=True)
        create_default_config()
        return get_settings()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Write debug logs to this file",
    ),
    max_rounds: Optional[int] = typer.Option(
        None,
        "--max-rounds",
        min=1,
        help="Override the maximum number of agent rounds per question",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """DeskCrew - construction help desk group chat.

    Ask a question; the receptionist routes it to the stock manager or the
    expert and relays the answer.
    """
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.obj = {"config": config}

    # If a subcommand is being invoked, don't enter interactive mode
    if ctx.invoked_subcommand is not None:
        return

    settings = _load(config)
    asyncio.run(start_interactive(settings, max_rounds=max_rounds, verbose=verbose))


async def start_interactive(
    settings: Settings,
    max_rounds: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """Start the interactive chat session."""
    if not settings.has_api_key():
        console.print(
            Panel(
                "[yellow]No API key configured![/yellow]\n\n"
                "Set one of:\n"
                "  • AZURE_OPENAI_API_KEY and AZURE_OPENAI_ENDPOINT for Azure OpenAI\n"
                "  • OPENAI_API_KEY for OpenAI\n\n"
                "Or configure them in ~/.deskcrew/config.yaml",
                title="Configuration Required",
                border_style="yellow",
            )
        )
        raise typer.Exit(1)

    from deskcrew.models import create_model_client
    from deskcrew.orchestrator import create_group_chat
    from deskcrew.ui import ChatSession

    try:
        client = create_model_client(settings)
        chat = create_group_chat(settings, client, maximum_iterations=max_rounds)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e.message}[/red]")
        raise typer.Exit(1)

    console.print("Ready!")
    session = ChatSession(chat)
    try:
        await session.run()
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


def _print_section(title: str, rows: list[tuple[str, object]]) -> None:
    console.print(f"\n[bold]{title}:[/bold]")
    for label, value in rows:
        console.print(f"  {label}: {value}")


def _is_set(value: Optional[str]) -> str:
    return "✓ Set" if value else "✗ Not set"


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    settings = _load((ctx.obj or {}).get("config"))
    model = settings.model
    chat = settings.chat

    console.print(Panel("[bold]Current Configuration[/bold]", border_style="blue"))

    if settings.uses_azure:
        _print_section("Provider", [
            ("Azure OpenAI endpoint", settings.azure_openai_endpoint),
            ("Azure OpenAI key", _is_set(settings.azure_openai_api_key)),
        ])
    else:
        _print_section("Provider", [("OpenAI key", _is_set(settings.openai_api_key))])

    model_rows: list[tuple[str, object]] = [("Model ID", model.model_id)]
    if settings.uses_azure:
        model_rows.append(("API version", model.api_version))
    model_rows += [("Max tokens", model.max_tokens), ("Temperature", model.temperature)]
    _print_section("Model", model_rows)

    _print_section("Chat", [
        ("Initial agent", chat.initial_agent),
        ("Evaluated agents", ", ".join(chat.evaluated_agents)),
        ("Selection", chat.selection_strategy),
        ("Termination", f"{chat.termination_strategy} (token '{chat.termination_token}')"),
        ("Maximum rounds", chat.maximum_iterations),
        ("History depth", chat.history_depth),
    ])

    _print_section("Tools", [
        ("Clipboard", "enabled" if settings.tools.clipboard else "disabled"),
        ("Timeout", f"{settings.tools.timeout}s"),
    ])


@app.command()
def agents(ctx: typer.Context) -> None:
    """Show the agent pool."""
    settings = _load((ctx.obj or {}).get("config"))
    chat = settings.chat

    table = Table(title="Agents")
    table.add_column("Agent", style="bold")
    table.add_column("Tools")
    table.add_column("Enabled", justify="center")
    table.add_column("Role")

    for agent in settings.agents:
        roles = []
        if agent.name == chat.initial_agent:
            roles.append("initial")
        if agent.name in chat.evaluated_agents:
            roles.append("evaluated")
        table.add_row(
            agent.name,
            ", ".join(agent.tools) or "-",
            "[green]✓[/green]" if agent.enabled else "[red]✗[/red]",
            ", ".join(roles) or "-",
        )

    console.print(table)


if __name__ == "__main__":
    app()
