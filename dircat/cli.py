import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install

from .config import get_config_path, load_config, update_config
from .decorators import handle_errors
from .storage import NodeKind

# Initialize Rich Traceback for better error messages
install()

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,  # DEBUG with --verbose
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Serve a directory of ebooks as an OPDS catalog")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    dircat - OPDS catalog for a directory of ebooks.

    The directory tree is the catalog: folders of folders become navigation
    feeds, folders of books become acquisition feeds.
    """
    if verbose:
        logging.getLogger("dircat").setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


def _resolve_root(root: Optional[Path]) -> Path:
    if root is not None:
        return root
    return Path(load_config().catalog.root).expanduser()


def _parse_extra_types(values: List[str]) -> Dict[str, str]:
    """Parse repeated ext=mime options into an extension map."""
    types = {}
    for value in values:
        ext, sep, mime = value.partition("=")
        ext, mime = ext.strip().lower(), mime.strip()
        if not sep or not ext.strip(".") or not mime:
            raise ValueError(f"Expected ext=mime, got {value!r}")
        types["." + ext.lstrip(".")] = mime
    return types


@app.command()
@handle_errors
def serve(
    root: Optional[Path] = typer.Argument(None, help="Catalog root (defaults from config)"),
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to (defaults from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to (defaults from config)"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="URL prefix of the catalog (defaults from config)"),
):
    """
    Start the OPDS server.

    Point your e-reader at http://<host>:<port>/opds/v1 (or the configured
    prefix).

    Examples:
        # Serve the configured root
        dircat serve

        # Serve another directory on another port
        dircat serve ~/books --port 9000
    """
    import uvicorn

    from .server import create_app

    config = load_config()
    if host is not None:
        config.server.host = host
    if port is not None:
        config.server.port = port
    if prefix is not None:
        config.server.prefix = prefix

    catalog_root = _resolve_root(root)
    app_instance = create_app(catalog_root, catalog=config.catalog, server=config.server)

    console.print("[blue]Starting dircat server...[/blue]")
    console.print(f"[blue]Catalog: {catalog_root}[/blue]")
    console.print(
        f"[green]Catalog at http://{config.server.host}:{config.server.port}{config.server.prefix}[/green]"
    )
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    uvicorn.run(
        app_instance,
        host=config.server.host,
        port=config.server.port,
        log_level="info",
    )


@app.command(name="ls")
@handle_errors
def list_path(
    path: str = typer.Argument("/", help="Catalog path to list"),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Catalog root (defaults from config)"),
):
    """List a catalog directory the way clients see it."""
    from .server import create_store

    store = create_store(load_config().catalog, _resolve_root(root))
    kind = store.node_kind(path)

    if kind is NodeKind.NOT_EXISTS:
        console.print(f"[red]Not found: {path}[/red]")
        raise typer.Exit(code=1)
    if kind is NodeKind.LEAF:
        console.print(f"[yellow]{path} is a file[/yellow]")
        return

    entries = store.list(path)
    title = "Navigation" if kind is NodeKind.NAVIGATION else "Acquisition"
    table = Table(title=f"{title}: {path}")
    table.add_column("Name", style="cyan")
    table.add_column("Title", style="green")
    table.add_column("Author", style="blue")
    table.add_column("Type", style="magenta")

    for entry in entries:
        table.add_row(
            entry.filename,
            entry.title[:50],
            entry.creator or "-",
            entry.mime_type,
        )

    console.print(table)
    console.print(f"[dim]{len(entries)} entries[/dim]")


@app.command()
@handle_errors
def feed(
    path: str = typer.Argument("/", help="Catalog path to render"),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Catalog root (defaults from config)"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="URL prefix used in links"),
):
    """Print the OPDS feed XML of a catalog directory."""
    from .opds.builder import CatalogBuilder
    from .server import create_store, normalize_prefix

    config = load_config()
    store = create_store(config.catalog, _resolve_root(root))
    kind = store.node_kind(path)

    if not kind.is_directory:
        console.print(f"[red]Not a catalog directory: {path}[/red]")
        raise typer.Exit(code=1)

    builder = CatalogBuilder(normalize_prefix(prefix or config.server.prefix), title=config.catalog.title)
    document = builder.build(kind, path, store.list(path))
    typer.echo(document.to_xml(pretty_print=True).decode("utf-8"))


@app.command()
@handle_errors
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    set_root: Optional[str] = typer.Option(None, "--root", help="Set catalog root directory"),
    set_title: Optional[str] = typer.Option(None, "--title", help="Set feed title prefix"),
    set_host: Optional[str] = typer.Option(None, "--host", help="Set server host"),
    set_port: Optional[int] = typer.Option(None, "--port", help="Set server port"),
    set_prefix: Optional[str] = typer.Option(None, "--prefix", help="Set catalog URL prefix"),
    extra_types: Optional[List[str]] = typer.Option(
        None, "--extra-type", help="Add a book format as ext=mime, e.g. azw3=application/vnd.amazon.ebook (repeatable)"
    ),
):
    """
    View or edit dircat configuration.

    Configuration is stored at ~/.config/dircat/config.json (or ~/.dircat/config.json).

    Examples:
        # Show current configuration
        dircat config --show

        # Set default catalog root
        dircat config --root ~/books

        # Set several values
        dircat config --host 127.0.0.1 --port 9000

        # Serve another book format
        dircat config --extra-type azw3=application/vnd.amazon.ebook
    """
    has_settings = any([
        set_root, set_title, set_host, set_port is not None, set_prefix, extra_types,
    ])

    if has_settings:
        update_config(
            server_host=set_host,
            server_port=set_port,
            server_prefix=set_prefix,
            catalog_root=set_root,
            catalog_title=set_title,
            catalog_extra_types=_parse_extra_types(extra_types) if extra_types else None,
        )
        console.print(f"[green]Configuration updated at {get_config_path()}[/green]")
        if not show:
            return

    cfg = load_config()
    console.print("\n[bold]dircat Configuration[/bold]")
    console.print(f"[dim]Location: {get_config_path()}[/dim]\n")

    console.print("[bold cyan]Catalog Settings:[/bold cyan]")
    console.print(f"  Root:        {cfg.catalog.root}")
    console.print(f"  Title:       {cfg.catalog.title}")
    if cfg.catalog.extra_types:
        for ext, mime in sorted(cfg.catalog.extra_types.items()):
            console.print(f"  Extra type:  {ext} -> {mime}")

    console.print("\n[bold cyan]Server Settings:[/bold cyan]")
    console.print(f"  Host:        {cfg.server.host}")
    console.print(f"  Port:        {cfg.server.port}")
    console.print(f"  Prefix:      {cfg.server.prefix}")


if __name__ == "__main__":
    app()
