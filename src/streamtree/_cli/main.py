import asyncio
import logging
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from streamtree._debug import DebugTree, debug
from streamtree._node import create_element
from streamtree._render import create_render_context

from .config import (
    ConfigError,
    ModuleSource,
    ScriptSource,
    StreamTreeConfig,
    TargetSource,
    get_config,
    parse_target,
)
from .discover import load_target

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Streamtree CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _fail(e: ConfigError) -> typer.Exit:
    err_console.print(f"[red]Error: {escape(str(e))}[/red]")
    return typer.Exit(code=1)


def _load_config() -> StreamTreeConfig:
    try:
        return get_config()
    except ConfigError as e:
        raise _fail(e) from e


def _resolve_source(target: str | None, name: str | None) -> TargetSource:
    """Resolve the target from the command line, falling back to [tool.streamtree]."""
    if target is not None:
        try:
            return parse_target(target, name=name)
        except ConfigError as e:
            raise _fail(e) from e

    config = _load_config()
    if config.target is None:
        err_console.print(f"[red]Error: No target given and no {escape('[tool.streamtree]')}.target configured[/red]")
        raise typer.Exit(code=1)
    return config.target


def _load(target: str | None, name: str | None) -> Any:
    source = _resolve_source(target, name)
    match source:
        case ModuleSource(module_path=module_path):
            err_console.print(f"[cyan]Loading tree from module:[/cyan] {module_path}")
        case ScriptSource(script=script):
            err_console.print(f"[cyan]Loading tree from script:[/cyan] {script}")
    return load_target(source)


async def _render_text(renderable: Any, *, append_only: bool) -> str:
    return await create_render_context().render(renderable, append_only=append_only)


async def _print_stream(renderable: Any, *, append_only: bool) -> str:
    """Write progressive output to stdout, as deltas when a frame extends the previous one."""
    previous = ""
    async for frame in create_render_context().render(renderable, append_only=append_only):
        if frame.startswith(previous):
            out_console.out(frame[len(previous) :], end="", highlight=False)
        else:
            out_console.out("\n" + frame, end="", highlight=False)
        previous = frame
    out_console.out("")
    return previous


async def _print_steps(renderable: Any) -> None:
    step = 0
    async for frame in create_render_context().render(create_element(DebugTree, renderable)):
        err_console.print(Panel(escape(frame), title=f"[bold]Step {step}[/bold]", border_style="cyan"))
        step += 1


@app.command("render")
def render_command(
    target: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., examples.greeting:page)"),
    ] = None,
    *,
    name: Annotated[
        str | None,
        typer.Option("--name", help="Name of the variable holding the node (for script paths only)"),
    ] = None,
    stream: Annotated[
        bool,
        typer.Option("--stream", help="Print output progressively as it is rendered"),
    ] = False,
    steps: Annotated[
        bool,
        typer.Option("--steps", help="Expand the tree one element at a time, printing every step"),
    ] = False,
    append_only: Annotated[
        bool | None,
        typer.Option("--append-only/--no-append-only", help="Only report output that extends earlier output"),
    ] = None,
) -> None:
    """Render a node tree and print the result."""
    renderable = _load(target, name)
    if append_only is None:
        append_only = _load_config().append_only

    try:
        if steps:
            asyncio.run(_print_steps(renderable))
        elif stream:
            asyncio.run(_print_stream(renderable, append_only=append_only))
        else:
            out_console.out(asyncio.run(_render_text(renderable, append_only=append_only)), highlight=False)
    except Exception as e:
        logger.exception("Rendering failed")
        raise typer.Exit(code=1) from e


@app.command("tree")
def tree_command(
    target: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., examples.greeting:page)"),
    ] = None,
    *,
    name: Annotated[
        str | None,
        typer.Option("--name", help="Name of the variable holding the node (for script paths only)"),
    ] = None,
) -> None:
    """Print a node tree without rendering it."""
    renderable = _load(target, name)
    out_console.out(debug(renderable), highlight=False)


def main() -> None:
    app()
