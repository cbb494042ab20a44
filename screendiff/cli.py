"""CLI entry point for screendiff."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from screendiff.data import browsers as browser_data
from screendiff.data import sizes as size_data
from screendiff.errors import ScreendiffError
from screendiff.models.config import CONFIG_ENV_VAR, ScreendiffConfig
from screendiff.models.result import RunSummary
from screendiff.models.task import CaptureSpec
from screendiff.orchestrator import Orchestrator

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str | None) -> ScreendiffConfig:
    try:
        if path:
            return ScreendiffConfig.load(path)
        return ScreendiffConfig.from_env()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run 'screendiff init' to create a default config.")
        sys.exit(1)


def capture_options(f):
    """Options shared by every capture command."""
    browser_choices = browser_data.available_browsers() + list(browser_data.ALIASES)
    options = [
        click.option("--browsers", "-b", multiple=True, type=click.Choice(browser_choices),
                     help="Browser to capture with; repeatable. Aliases: desktop, mobile, all"),
        click.option("--sizes", "-s", multiple=True, type=click.Choice(size_data.available_sizes()),
                     help="Viewport size for desktop browsers; repeatable"),
        click.option("--landscape", "-l", is_flag=True, help="Landscape orientation on mobile browsers"),
        click.option("--max-parallel-tasks", "-m", type=click.IntRange(min=1), default=None,
                     help="Maximum number of batches to run at once"),
        click.option("--diff", "-d", is_flag=True, help="Diff two hosts (or one host against this machine)"),
        click.option("--action", "-a", default=None, help="Name of a pre-capture action file"),
        click.option("--qs", default=None, help="Extra query string to append, e.g. 'kp=-1'"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _print_summary(summary: RunSummary, reports: dict[str, str]) -> None:
    console.print("\n[bold green]Run Complete[/bold green]")
    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", summary.run_id)
    table.add_row("Command", f"{summary.command} {summary.command_value}")
    table.add_row("Duration", f"{summary.duration_seconds}s")
    table.add_row("Screenshots", str(summary.total_tasks))
    table.add_row("Batches", str(summary.total_batches))
    table.add_row("Captured", f"[green]{summary.captured}[/green]")
    table.add_row("Errors", f"[red]{summary.errors}[/red]")
    if summary.diff_mode:
        different = sum(1 for d in summary.diffs if d.equal is False)
        table.add_row("Diffs", str(len(summary.diffs)))
        table.add_row("Different", f"[yellow]{different}[/yellow]")
        if summary.diff_error:
            table.add_row("Diff error", f"[red]{summary.diff_error}[/red]")
    console.print(table)

    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")


def _run(ctx: click.Context, command: str, command_value: str, hosts: tuple[str, ...],
         browsers: tuple[str, ...], sizes: tuple[str, ...], landscape: bool,
         max_parallel_tasks: int | None, diff: bool, action: str | None, qs: str | None,
         query: str | None = None, extension_path: str | None = None) -> None:
    cfg = _load_config(ctx.obj.get("config_path"))
    if max_parallel_tasks is not None:
        cfg = cfg.model_copy(update={"max_parallel_tasks": max_parallel_tasks})

    spec = CaptureSpec(
        command=command,
        command_value=command_value,
        query=query,
        hosts=list(hosts),
        browsers=browser_data.expand_browsers(list(browsers)) or [browser_data.LOCAL_BROWSER],
        sizes=list(dict.fromkeys(sizes)) or ["m"],
        landscape=landscape,
        action=action,
        qs=qs,
        diff=diff,
        extension_path=extension_path,
    )

    orchestrator = Orchestrator(cfg)
    try:
        summary = orchestrator.run(spec)
    except ScreendiffError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    _print_summary(summary, orchestrator.reports)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "-c", default=None,
              help=f"Config file path (defaults to ${CONFIG_ENV_VAR}, then built-in defaults)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """Visual regression screenshots across browsers, sizes and hosts."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


@cli.command()
@click.argument("query")
@click.argument("hosts", nargs=-1)
@capture_options
@click.pass_context
def search(ctx: click.Context, query: str, hosts: tuple[str, ...], **opts) -> None:
    """Screenshot the results page for QUERY on each host."""
    _run(ctx, "search", query, hosts, **opts)


@cli.command()
@click.argument("path")
@click.argument("hosts", nargs=-1)
@capture_options
@click.pass_context
def path(ctx: click.Context, path: str, hosts: tuple[str, ...], **opts) -> None:
    """Screenshot PATH (e.g. /about) on each host."""
    _run(ctx, "path", path, hosts, **opts)


@cli.command()
@click.argument("url")
@click.option("--diff-ext", "diff_ext", type=click.Path(exists=True, file_okay=False),
              default=None, help="Unpacked extension to diff against a clean browser")
@capture_options
@click.pass_context
def url(ctx: click.Context, url: str, diff_ext: str | None, **opts) -> None:
    """Screenshot a full URL as-is."""
    extension_path = str(Path(diff_ext).resolve()) if diff_ext else None
    _run(ctx, "url", url, (), extension_path=extension_path, **opts)


@cli.command()
@click.argument("name")
@click.argument("hosts", nargs=-1)
@click.option("--query", "-q", default=None, help="Query to use instead of the example query")
@capture_options
@click.pass_context
def ia(ctx: click.Context, name: str, hosts: tuple[str, ...], query: str | None, **opts) -> None:
    """Screenshot the instant answer NAME on its own tab."""
    _run(ctx, "ia", name, hosts, query=query, **opts)


@cli.command()
@click.argument("name")
@click.argument("hosts", nargs=-1)
@capture_options
@click.pass_context
def group(ctx: click.Context, name: str, hosts: tuple[str, ...], **opts) -> None:
    """Screenshot every item of the group NAME."""
    _run(ctx, "group", name, hosts, **opts)


@cli.command()
@click.option("--output", "-o", default="screendiff-config.json", help="Where to write the config")
def init(output: str) -> None:
    """Create a default configuration file."""
    config_path = Path(output)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    ScreendiffConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print(f"  [blue]screendiff --config {config_path} search cats[/blue]")


if __name__ == "__main__":
    cli()
