"""CLI entry point for the OUI table generator."""

import dataclasses
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cache.refresh import ensure_current
from .core.config import Config, get_config, set_config
from .core.exceptions import OuiTableError
from .core.utils import ensure_directory
from .pipeline import cache_store_for, generate
from .registry.encoder import iter_table, read_generation_time

console = Console()


def print_error(message: str) -> None:
    """Print error message in red."""
    console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print success message in green."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print warning message in yellow."""
    console.print(f"[yellow]Warning:[/yellow] {message}")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # urllib3 connection chatter is only useful with -v
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _apply_overrides(config: Config, **overrides) -> Config:
    for key, value in overrides.items():
        if value is None:
            continue
        if key in ("storage_root", "output_dir"):
            value = Path(value)
        setattr(config, key, value)
    return config


@click.group()
@click.version_option(version=__version__, prog_name="ouitable")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="JSON configuration file (default: $OUITABLE_CONFIG or .ouitable.json)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """OUI Table - cache the IEEE vendor registry and build a binary lookup table."""
    ctx.ensure_object(dict)
    if config_path:
        set_config(Config.from_file(Path(config_path)))
    config = dataclasses.replace(get_config())
    config.verbose = config.verbose or verbose
    setup_logging(config.verbose)
    ctx.obj["config"] = config


@main.command("generate")
@click.option("--url", help="Registry source URL")
@click.option("--storage-root", type=click.Path(file_okay=False), help="Cache directory")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Output directory")
@click.option("--output-file", help="Output file name (default: oui.dat)")
@click.option("--offline/--online", default=None, help="Use cached data without fetching")
@click.option("--force/--no-force", default=None, help="Regenerate even if up to date")
@click.option("--timeout", type=float, help="HTTP timeout in seconds")
@click.pass_context
def generate_cmd(ctx: click.Context, **overrides) -> None:
    """Refresh the cache and generate the binary OUI table."""
    config = _apply_overrides(ctx.obj["config"], **overrides)

    try:
        result = generate(
            config.url,
            config.storage_root,
            config.output_dir,
            output_file=config.output_file,
            offline=config.offline,
            force=config.force,
            timeout=config.timeout,
        )
    except OuiTableError as e:
        print_error(str(e))
        sys.exit(1)

    if result.skipped:
        print_warning(f"{result.output_path} is up to date (use --force to rebuild)")
    else:
        print_success(f"Wrote {result.record_count} OUIs to {result.output_path}")


@main.command()
@click.option("--url", help="Registry source URL")
@click.option("--storage-root", type=click.Path(file_okay=False), help="Cache directory")
@click.option("--timeout", type=float, help="HTTP timeout in seconds")
@click.pass_context
def refresh(ctx: click.Context, **overrides) -> None:
    """Bring the cached registry up to date without generating a table."""
    config = _apply_overrides(ctx.obj["config"], **overrides)

    try:
        store = cache_store_for(config.url, ensure_directory(config.storage_root))
        path = ensure_current(config.url, store, timeout=config.timeout)
    except OuiTableError as e:
        print_error(str(e))
        sys.exit(1)

    print_success(f"Cache current at {path}")


@main.command("cache-info")
@click.option("--url", help="Registry source URL")
@click.option("--storage-root", type=click.Path(file_okay=False), help="Cache directory")
@click.pass_context
def cache_info(ctx: click.Context, **overrides) -> None:
    """Show the cache artifact and its stored validators."""
    config = _apply_overrides(ctx.obj["config"], **overrides)
    store = cache_store_for(config.url, config.storage_root)

    if not store.exists():
        console.print(f"[yellow]No cache for {config.url} at {store.path}[/yellow]")
        return

    stat = store.path.stat()
    modified = datetime.fromtimestamp(stat.st_mtime).isoformat(timespec="seconds")
    console.print(f"[bold]Cache:[/bold] {store.path} ({stat.st_size} bytes, {modified})")

    validators = store.read_validators()
    table = Table(title=f"Validators ({len(validators)})")
    table.add_column("Header", style="cyan")
    table.add_column("Value", style="green")
    for name, value in validators.items():
        table.add_row(escape(name), escape(value))
    console.print(table)


@main.command()
@click.argument("table_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", "-n", type=int, default=20, help="Records to show (0 for none)")
def inspect(table_file: str, limit: int) -> None:
    """Decode a binary OUI table and show a summary."""
    try:
        with open(table_file, "rb") as f:
            generated_at = read_generation_time(f)
            shown = []
            count = 0
            for record in iter_table(f):
                if count < limit:
                    shown.append(record)
                count += 1
    except OuiTableError as e:
        print_error(str(e))
        sys.exit(1)

    generated = datetime.fromtimestamp(generated_at / 1000, tz=timezone.utc)
    console.print(f"[bold]Generated:[/bold] {generated.isoformat(timespec='seconds')}")
    console.print(f"[bold]Records:[/bold] {count}")

    if shown:
        table = Table(title=f"First {len(shown)} records")
        table.add_column("OUI", style="cyan")
        table.add_column("Organization", style="magenta")
        for record in shown:
            table.add_row(record.oui, escape(record.organization))
        console.print(table)


if __name__ == "__main__":
    main()
