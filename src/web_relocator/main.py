"""
Web Relocator - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--timeout, --retries, etc.)
    2. Environment variables (WEB_RELOCATOR__RESOLVER__TIMEOUT_MS, etc.)
    3. Config file (--config, WEB_RELOCATOR_CONFIG or config.yaml)

Usage:
    web-relocator resolve target.json --html page.html
    web-relocator resolve target.json --url https://example.com --visible
    web-relocator score target.json --html page.html --top 5
    web-relocator playback guide.json --html page.html
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from web_relocator import __version__
from web_relocator.config import get_settings
from web_relocator.config.settings import ResolverSettings, Settings
from web_relocator.dom.document import DocumentTreeProvider
from web_relocator.engine.descriptor import TargetDescriptor
from web_relocator.engine.frame_scanner import FrameScanner
from web_relocator.engine.fingerprint import iter_elements, node_text, tag_of
from web_relocator.engine.playback import (
    Guide,
    NextStep,
    PlaybackFinished,
    PlaybackSession,
    StartPlayback,
    StepNotFound,
    StepReady,
)
from web_relocator.engine.scorer import explain_score
from web_relocator.engine.target_resolver import ResolutionResult, TargetResolver
from web_relocator.exceptions import RelocatorError
from web_relocator.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="web-relocator",
    help="Re-locate recorded UI elements in live or saved pages",
    add_completion=False,
)

console = Console()


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file (YAML or JSON)"),
):
    """
    Re-locate recorded UI elements in live or saved pages.
    """
    # A missing or broken config file is a usage error
    try:
        get_settings(config)
    except RelocatorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2)


def _load_json(path: str, what: str) -> Any:
    file = Path(path)
    if not file.exists():
        console.print(f"[red]✗ {what} not found: {path}[/red]")
        raise typer.Exit(2)
    try:
        return json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]✗ Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(2)


def _read_html(path: str) -> str:
    file = Path(path)
    if not file.exists():
        console.print(f"[red]✗ HTML file not found: {path}[/red]")
        raise typer.Exit(2)
    return file.read_text(encoding="utf-8")


def _resolver_settings(settings: Settings, timeout: Optional[int], retries: Optional[int]) -> ResolverSettings:
    overrides: Dict[str, Any] = {}
    if timeout is not None:
        overrides["timeout_ms"] = timeout
    if retries is not None:
        overrides["retries"] = retries
    return settings.resolver.model_copy(update=overrides)


def _print_result(result: ResolutionResult) -> None:
    if result.is_resolved:
        summary = result.to_dict()["element"]
        console.print(f"\n[green]✓ Resolved[/green] <{summary['tag']}> in frame {result.frame.index}")
        console.print(f"  Path: {summary['path']}")
        if summary["text"]:
            console.print(f"  Text: {summary['text']}")
        console.print(f"  Score: {result.score:.2f} via {', '.join(result.why)}")
    else:
        console.print(f"\n[red]✗ Not found[/red]")
        console.print(f"  Error: {result.error}")
    console.print(f"  Attempts: {result.attempts}  Elapsed: {result.elapsed_ms:.0f}ms")

    if result.debug:
        console.print("\n[bold]Debug trace:[/bold]")
        styles = {"info": "dim", "warn": "yellow", "error": "red"}
        for entry in result.debug:
            style = styles.get(entry.type, "dim")
            console.print(f"  [{style}]{entry.type:5}[/{style}] {entry.message}")


@app.command()
def resolve(
    descriptor: str = typer.Argument(..., help="Path to the target descriptor (.json)"),
    html: Optional[str] = typer.Option(None, "--html", help="Resolve against a saved HTML file"),
    url: Optional[str] = typer.Option(None, "--url", help="Resolve against a live page"),
    base_href: str = typer.Option("", "--href", help="Document URL to assume for --html"),
    timeout: Optional[int] = typer.Option(None, "--timeout", "-t", help="Budget in ms (default: from config)"),
    retries: Optional[int] = typer.Option(None, "--retries", "-r", help="Extra attempts (default: from config)"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Resolve a recorded target against a page.

    Examples:
        web-relocator resolve save-button.json --html board.html
        web-relocator resolve save-button.json --url https://app.test/board --json
    """
    settings = get_settings()
    setup_logging(settings.logging, verbose=verbose)

    if (html is None) == (url is None):
        console.print("[red]Error: pass exactly one of --html or --url[/red]")
        raise typer.Exit(2)

    data = _load_json(descriptor, "Descriptor")
    resolver_settings = _resolver_settings(settings, timeout, retries)

    if not as_json:
        console.print(Panel.fit(
            f"[bold blue]Web Relocator[/bold blue]\n"
            f"[dim]Target:[/dim] {Path(descriptor).name}\n"
            f"[dim]Page:[/dim] {html or url}\n"
            f"[dim]Budget:[/dim] {resolver_settings.timeout_ms}ms, {resolver_settings.retries} retries",
            border_style="blue",
        ))

    try:
        if html is not None:
            provider = DocumentTreeProvider(_read_html(html), href=base_href)
            result = asyncio.run(TargetResolver(provider, settings=resolver_settings).resolve(data))
        else:
            browser_settings = settings.browser.model_copy(update={"headless": not visible})
            result = asyncio.run(_resolve_live(url, data, resolver_settings, browser_settings))
    except RelocatorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2)

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
    else:
        _print_result(result)

    if not result.is_resolved:
        raise typer.Exit(1)


async def _resolve_live(url, data, resolver_settings, browser_settings) -> ResolutionResult:
    # Imported lazily so --html runs never load the Playwright driver
    from web_relocator.dom.playwright_provider import (
        PlaywrightStabilityWaiter,
        PlaywrightTreeProvider,
        launch_page,
    )

    async with launch_page(url, browser_settings) as page:
        resolver = TargetResolver(
            PlaywrightTreeProvider(page),
            waiter=PlaywrightStabilityWaiter(page, resolver_settings.quiet_window_ms),
            settings=resolver_settings,
        )
        return await resolver.resolve(data)


@app.command()
def score(
    descriptor: str = typer.Argument(..., help="Path to the target descriptor (.json)"),
    html: str = typer.Option(..., "--html", help="Saved HTML file to score"),
    base_href: str = typer.Option("", "--href", help="Document URL to assume"),
    top: int = typer.Option(10, "--top", "-n", help="Rows to show per frame"),
):
    """
    Show the best-scoring nodes of every frame, without locators.

    Useful to see why a target was (or was not) accepted.
    """
    try:
        target = TargetDescriptor.parse(_load_json(descriptor, "Descriptor"))
    except RelocatorError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2)

    provider = DocumentTreeProvider(_read_html(html), href=base_href)
    frames = asyncio.run(FrameScanner(provider).scan())
    if not frames:
        console.print("[yellow]⚠ No readable frames[/yellow]")
        raise typer.Exit(1)

    for frame in frames:
        rows: List[tuple] = []
        for node in iter_elements(frame.body):
            signals = explain_score(node, target, frame)
            if signals:
                rows.append((sum(signals.values()), node, signals))
        rows.sort(key=lambda row: row[0], reverse=True)

        table = Table(title=f"Frame {frame.index} {frame.href}", show_header=True, header_style="bold cyan")
        table.add_column("Score", justify="right", width=6)
        table.add_column("Element")
        table.add_column("Signals", style="dim")
        for total, node, signals in rows[:top]:
            text = node_text(node)
            label = f"<{tag_of(node)}> {text[:40]}" if text else f"<{tag_of(node)}>"
            detail = ", ".join(f"{name} {value:.1f}" for name, value in signals.items())
            table.add_row(f"{total:.2f}", label, detail)
        console.print(table)


@app.command()
def playback(
    guide: str = typer.Argument(..., help="Path to a recorded guide (.json)"),
    html: str = typer.Option(..., "--html", help="Saved HTML file to play the guide against"),
    base_href: str = typer.Option("", "--href", help="Document URL to assume"),
):
    """
    Walk a guide's steps against a saved page and report each target.
    """
    settings = get_settings()
    setup_logging(settings.logging)

    try:
        parsed = Guide.parse(_load_json(guide, "Guide"))
    except RelocatorError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(2)

    provider = DocumentTreeProvider(_read_html(html), href=base_href)
    session = PlaybackSession(TargetResolver(provider, settings=settings.resolver))
    missing = asyncio.run(_play_all(session, parsed))
    if missing:
        raise typer.Exit(1)


async def _play_all(session: PlaybackSession, guide: Guide) -> int:
    await session.handle(StartPlayback(guide))
    console.print(f"[bold]{guide.title}[/bold] ({len(guide.steps)} steps)")

    missing = 0
    while True:
        response = await session.handle(NextStep())
        if isinstance(response, StepReady):
            path = response.result.frame.path_of(response.result.node)
            console.print(
                f"  [green]✓[/green] Step {response.step_index + 1}: "
                f"{response.step.instruction} [dim]{path}[/dim]"
            )
        elif isinstance(response, StepNotFound):
            missing += 1
            console.print(
                f"  [red]✗[/red] Step {response.step_index + 1}: "
                f"{response.step.instruction} [dim]({response.error})[/dim]"
            )
            # A static page will not change, so move past the step
            session.skip()
        elif isinstance(response, PlaybackFinished):
            break
        else:
            break
    return missing


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]Web Relocator[/bold] v{__version__}")


if __name__ == "__main__":
    app()
