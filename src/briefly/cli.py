"""Briefly command line interface."""

from __future__ import annotations

import asyncio
from typing import Any

import typer
from rich.console import Console
from rich.markdown import Markdown

from briefly.app.bootstrap import build_runtime
from briefly.config import get_settings
from briefly.core.orchestrator import Orchestrator
from briefly.errors import ConfigurationError
from briefly.logging_utils import LogProfile, configure_logging
from briefly.streaming.emitter import StreamEmitter
from briefly.streaming.events import Error, TextDelta, ToolInvoked, ToolResult
from briefly.types import USER_ROLE, ChatRequest, Turn

app = typer.Typer(name="briefly", help="Briefly - a streaming content co-pilot.", add_completion=False)
console = Console()


def _load_orchestrator(*, profile: LogProfile = "default") -> Orchestrator:
    settings = get_settings()
    configure_logging(profile=profile, level=settings.log_level)
    try:
        return build_runtime(settings).orchestrator
    except ConfigurationError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from briefly.app.server import create_app

    orchestrator = _load_orchestrator(profile="server")
    uvicorn.run(create_app(orchestrator), host=host, port=port)


@app.command()
def chat(
    message: str = typer.Argument(..., help="User message"),
    owner: str | None = typer.Option(None, "--owner", help="Owner id for profile and memory"),
    pretty: bool = typer.Option(False, "--pretty", help="Render the answer instead of raw frames"),
) -> None:
    """Run one turn and print the stream."""
    orchestrator = _load_orchestrator()
    request = ChatRequest(history=[Turn(role=USER_ROLE, content=message)], owner_id=owner)
    failed = asyncio.run(_print_turn(orchestrator, request, pretty=pretty))
    if failed:
        raise typer.Exit(1)


@app.command()
def tools(
    name: str | None = typer.Argument(None, help="Show the full contract of one tool"),
    for_model: bool = typer.Option(False, "--model-names", help="Use the names the model sees"),
) -> None:
    """List the registered tools."""
    registry = _load_orchestrator().registry
    if name is None:
        for row in registry.compact_rows(for_model=for_model):
            typer.echo(row)
        return
    try:
        typer.echo(registry.detail(name, for_model=for_model))
    except KeyError as exc:
        console.print(f"[bold red]Error:[/bold red] unknown tool {name}")
        raise typer.Exit(1) from exc

async def _print_turn(orchestrator: Orchestrator, request: ChatRequest, *, pretty: bool) -> bool:
    emitter = StreamEmitter()
    if not pretty:
        async for frame in emitter.frames(orchestrator.run(request)):
            typer.echo(frame, nl=False)
        return False

    failed = False
    parts: list[str] = []
    async for event in emitter.events(orchestrator.run(request)):
        if isinstance(event, TextDelta):
            parts.append(event.text)
        elif isinstance(event, ToolInvoked):
            console.print(f"[dim]tool {event.name} {_brief(event.input)}[/dim]")
        elif isinstance(event, ToolResult):
            console.print(f"[green]{event.name}[/green] {_brief(event.payload()['output'])}")
        elif isinstance(event, Error):
            console.print(f"[bold red]Error:[/bold red] {event.message}")
            failed = True
    if parts:
        console.print(Markdown("".join(parts)))
    return failed


def _brief(value: Any, width: int = 160) -> str:
    text = str(value)
    return text if len(text) <= width else f"{text[: width - 3]}..."


if __name__ == "__main__":
    app()
