"""Main CLI application for gemfetch."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from gemfetch import __version__
from gemfetch.config.parser import ConfigError, load_config
from gemfetch.config.schemas import FetcherConfig
from gemfetch.core.spec import PackageIdentity
from gemfetch.core.spec_cache import SpecCache
from gemfetch.registry.common import mask_credentials
from gemfetch.registry.dependency_api import PayloadError, SpecFormatError
from gemfetch.registry.factory import (
    UnsupportedProtocolError,
    create_archive_fetcher,
    create_fetcher,
    create_transport,
)
from gemfetch.registry.transport import TransportError
from gemfetch.utils.filesystem import FilesystemError
from gemfetch.utils.ui import UI
from gemfetch.utils.version import RequirementError

# Create the main Typer app
app = typer.Typer(
    name="gemfetch",
    help="Fetch package specs and archives from gem registries",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the gemfetch package
logger = logging.getLogger("gemfetch")

FETCH_ERRORS = (
    TransportError,
    SpecFormatError,
    PayloadError,
    RequirementError,
    UnsupportedProtocolError,
    FilesystemError,
)


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def get_config(path: Path | None, disable_endpoint: bool = False) -> FetcherConfig:
    """Load configuration, exiting on errors."""
    try:
        config = load_config(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if disable_endpoint:
        config = config.model_copy(update={"disable_endpoint": True})
    return config


@app.callback()
def callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug)",
        ),
    ] = 0,
) -> None:
    """gemfetch - fetch package specs and archives from gem registries."""
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show the gemfetch version."""
    console.print(f"gemfetch {__version__}")


@app.command()
def specs(
    names: Annotated[
        list[str] | None,
        typer.Argument(help="Packages to fetch, with their dependencies"),
    ] = None,
    source: Annotated[
        str,
        typer.Option("--source", "-s", help="Registry URL or local path"),
    ] = "https://rubygems.org/",
    full: Annotated[
        bool,
        typer.Option("--full", help="Fetch the full index instead of named packages"),
    ] = False,
    disable_endpoint: Annotated[
        bool,
        typer.Option("--disable-endpoint", help="Never use the dependency API"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to gemfetch.yaml"),
    ] = None,
) -> None:
    """List the specs a registry serves for the given packages.

    Without names (or with --full), lists every spec in the registry.
    """
    config = get_config(config_path, disable_endpoint)
    requested = None if full or not names else names
    transport = create_transport(config)

    try:
        fetcher = create_fetcher(source, config, transport=transport, ui=UI())
        index = fetcher.specs(requested, source)
    except FETCH_ERRORS as e:
        print_error(str(e).strip())
        raise typer.Exit(1) from e
    finally:
        transport.close()

    table = Table(title=f"Specs from {mask_credentials(source)}")
    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Platform")
    table.add_column("Dependencies")

    for name in index.names():
        for spec in index.search(name):
            deps = ", ".join(str(d) for d in spec.dependencies) if spec.kind == "endpoint" else "-"
            table.add_row(spec.name, str(spec.version), spec.platform, deps or "-")

    console.print(table)
    print_success(f"{len(index)} specs")


@app.command()
def fetch(
    name: Annotated[str, typer.Argument(help="Package name")],
    version: Annotated[str, typer.Argument(help="Exact package version")],
    source: Annotated[
        str,
        typer.Option("--source", "-s", help="Registry URL or local path"),
    ] = "https://rubygems.org/",
    platform: Annotated[
        str | None,
        typer.Option("--platform", "-p", help="Package platform (default: ruby)"),
    ] = None,
    disable_endpoint: Annotated[
        bool,
        typer.Option("--disable-endpoint", help="Never use the dependency API"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to gemfetch.yaml"),
    ] = None,
) -> None:
    """Download the archive for one package version."""
    config = get_config(config_path, disable_endpoint)
    spec_cache = SpecCache()

    try:
        identity = PackageIdentity.of(name, version, platform)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    transport = create_transport(config)
    try:
        fetcher = create_fetcher(
            source, config, transport=transport, spec_cache=spec_cache, ui=UI()
        )
        index = fetcher.specs([name], source)
        spec = index.get(identity)
        if spec is None:
            print_error(f"Could not find {identity.full_name} in {mask_credentials(source)}")
            raise typer.Exit(1)

        archive_fetcher = create_archive_fetcher(config, transport=transport, spec_cache=spec_cache)
        path = archive_fetcher.download(spec)
    except FETCH_ERRORS as e:
        print_error(str(e).strip())
        raise typer.Exit(1) from e
    finally:
        transport.close()

    if path is None:
        print_error(f"No registry recorded for {identity.full_name}")
        raise typer.Exit(1)

    print_success(f"Fetched {identity.full_name}")
    console.print(f"  {path}")


if __name__ == "__main__":
    app()
