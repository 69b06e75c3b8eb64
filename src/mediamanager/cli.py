"""Click CLI for mediamanager — fetch pictures and manage the picture cache."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mediamanager.config.hierarchy import load_settings
from mediamanager.core import MediaManager
from mediamanager.errors.exceptions import MediaError, TransportError
from mediamanager.utils.image import encode_image

console = Console()
error_console = Console(stderr=True)


def _log_level(verbosity: int, base: str = "WARNING") -> int:
    """Resolve the root level: the configured level, lowered by each -v."""
    level = logging.getLevelNamesMapping().get(base.upper(), logging.WARNING)
    if verbosity == 1:
        level = min(level, logging.INFO)
    elif verbosity >= 2:
        level = logging.DEBUG
    return level


def _setup_logging(verbosity: int, base: str = "WARNING") -> None:
    """Configure logging based on the configured level and verbosity."""
    level = _log_level(verbosity, base)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _parse_bound(value: str | None) -> tuple[int, int] | None:
    if not value:
        return None
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError as e:
        raise click.BadParameter(f"expected WIDTHxHEIGHT, got {value!r}") from e
    if width < 0 or height < 0:
        raise click.BadParameter("bound dimensions must not be negative")
    return width, height


def _manager(cache_root: str | None, timeout: float | None = None) -> MediaManager:
    settings = load_settings(cache_root=cache_root, timeout_seconds=timeout)
    return MediaManager(settings)


@click.group()
@click.version_option(package_name="mediamanager")
def cli() -> None:
    """mediamanager — picture loader with a local disk cache."""


@cli.command()
@click.argument("url")
@click.option("-o", "--output", type=click.Path(), help="Write the picture to this file.")
@click.option("--max-size", type=str, default=None, help="Bounding size, e.g. 200x200.")
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds.")
@click.option("--cache-root", type=click.Path(), default=None, help="Override the cache root.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def fetch(
    url: str,
    output: str | None,
    max_size: str | None,
    timeout: float | None,
    cache_root: str | None,
    verbose: int,
) -> None:
    """Load a picture through the cache, downloading it on a miss."""
    bound = _parse_bound(max_size)
    manager = _manager(cache_root, timeout)
    _setup_logging(verbose, manager.settings.log_level)
    was_cached = manager.store.contains(url)

    async def _run():
        try:
            return await manager.fetch_picture(url)
        finally:
            await manager.close()

    try:
        image = asyncio.run(_run())
    except TransportError as e:
        status = f" (HTTP {e.http_status})" if e.http_status else ""
        error_console.print(f"[red]Download failed{status}:[/red] {e.message}")
        sys.exit(1)
    except MediaError as e:
        error_console.print(f"[red]Error:[/red] {e.message or type(e).__name__}")
        sys.exit(1)

    if bound:
        image = manager.resize(image, bound)

    if output:
        out_path = Path(output)
        fmt = image.format or "PNG"
        if out_path.suffix.lower() in {".jpg", ".jpeg"}:
            fmt = "JPEG"
        elif out_path.suffix.lower() == ".png":
            fmt = "PNG"
        out_path.write_bytes(encode_image(image, fmt))
        console.print(f"[green]Written to {out_path}[/green]")

    table = Table(title="Picture", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", url)
    table.add_row("Source", "cache" if was_cached else "network")
    table.add_row("Size", f"{image.width}x{image.height}")
    table.add_row("Mode", image.mode)
    console.print(table)


@cli.command()
@click.argument("url")
@click.argument("picture", type=click.Path(exists=True, dir_okay=False))
@click.option("--cache-root", type=click.Path(), default=None, help="Override the cache root.")
def seed(url: str, picture: str, cache_root: str | None) -> None:
    """Pre-seed the cache entry for URL with a local PICTURE file."""
    manager = _manager(cache_root)
    written = manager.cache_picture(url, Path(picture).read_bytes())
    if written is None:
        error_console.print(f"[red]Could not cache picture for {url}[/red]")
        sys.exit(1)
    console.print(f"[green]Cached {url} -> {written}[/green]")


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
@click.option("--cache-root", type=click.Path(), default=None, help="Override the cache root.")
def cache_stats(cache_root: str | None) -> None:
    """Show picture cache statistics."""
    manager = _manager(cache_root)

    table = Table(title="Picture Cache", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    stats = manager.stats()
    table.add_row("Directory", str(manager.store.directory.peek()))
    table.add_row("Entries", str(stats.entries))
    table.add_row("Size (MB)", f"{stats.size_mb:.1f}")
    table.add_row("Dummy URL prefix", manager.settings.dummy_url_prefix)
    table.add_row("Timeout (s)", f"{manager.settings.timeout_seconds:g}")

    console.print(table)


@cache.command("invalidate")
@click.argument("url")
@click.option("--cache-root", type=click.Path(), default=None, help="Override the cache root.")
def cache_invalidate(url: str, cache_root: str | None) -> None:
    """Remove the cached picture for URL."""
    manager = _manager(cache_root)
    if manager.invalidate(url):
        console.print(f"[green]Removed cached picture for {url}[/green]")
    else:
        console.print(f"[yellow]No cached picture for {url}[/yellow]")


@cache.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear the picture cache?")
@click.option("--cache-root", type=click.Path(), default=None, help="Override the cache root.")
def cache_clear(cache_root: str | None) -> None:
    """Delete every cached picture."""
    manager = _manager(cache_root)
    if not manager.clear_cache():
        error_console.print("[red]Failed to clear the picture cache.[/red]")
        sys.exit(1)
    console.print("[green]Cache cleared.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
