"""Typer-based CLI for docsearch."""

import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .access_control import DEFAULT_GROUPS_HEADER
from .bridge.codec import encode_file_url, extract_file_url
from .bridge.links import hit_href, link_title
from .config import CONFIG_FILE_INIT_PARAM, ServerSettings
from .errors import DocSearchError
from .request import RequestSearchContext, SimplePageRequest
from .search.access import allow_file_access
from .search.results import get_search_results
from .web.server import render_error, serve

app = typer.Typer(
    name="docsearch",
    help="docsearch - search front end with access control and a file-to-HTTP bridge",
    add_completion=False,
)

console = Console()


@app.callback()
def main_options(
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
    ),
):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _split_pairs(values: Optional[List[str]], option: str) -> list[tuple[str, str]]:
    pairs = []
    for value in values or []:
        name, sep, field_value = value.partition("=")
        if not sep or not name:
            console.print(f"[red]Error: {option} expects name=value, got '{value}'[/red]")
            raise typer.Exit(code=1)
        pairs.append((name, field_value))
    return pairs


def _init_params(config_path: Optional[str]) -> dict[str, str]:
    return {CONFIG_FILE_INIT_PARAM: config_path} if config_path else {}


@app.command()
def search(
    query: Optional[List[str]] = typer.Argument(
        None,
        help="Free-text query fragments",
    ),
    index: Optional[List[str]] = typer.Option(
        None,
        "--index",
        "-i",
        help="Index to search (repeatable; default: configured default indexes)",
    ),
    field: Optional[List[str]] = typer.Option(
        None,
        "--field",
        "-f",
        help="Quoted field filter name=value (repeatable)",
    ),
    field_literal: Optional[List[str]] = typer.Option(
        None,
        "--field-literal",
        help="Unquoted field filter name=value, e.g. year=[2000 TO 2010] (repeatable)",
    ),
    max_results: int = typer.Option(
        25,
        "--max-results",
        "-n",
        help="Maximum number of hits to show",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Search configuration file (default: DOCSEARCH_CONFIG env or .docsearch/config.toml)",
    ),
):
    """Search the configured indexes."""
    params: list[tuple[str, str]] = [("query", q) for q in query or []]
    params.extend(("index", name) for name in index or [])
    params.extend((f"field.{n}", v) for n, v in _split_pairs(field, "--field"))
    params.extend((f"fieldNoString.{n}", v) for n, v in _split_pairs(field_literal, "--field-literal"))
    params.append(("maxresults", str(max_results)))

    request = SimplePageRequest(params, init_params=_init_params(config_path))
    try:
        results = get_search_results(RequestSearchContext(), request)
    except DocSearchError as e:
        console.print(f"[red]{render_error(e)}[/red]")
        raise typer.Exit(code=1)

    if not results.hits:
        console.print(f"[dim]No hits for '{results.query}'[/dim]")
        return

    table = Table(title=f"{results.total_hits} hit(s) for '{results.query}' ({results.search_time_ms} ms)")
    table.add_column("Score", style="cyan", no_wrap=True)
    table.add_column("Index", style="magenta")
    table.add_column("Title")
    table.add_column("Link", style="dim")
    for hit in results.hits:
        table.add_row(
            f"{hit.score:.3f}",
            hit.index_name,
            link_title(hit.title, hit.url),
            hit_href(hit.url, hit.use_file_to_http_bridge),
        )
    console.print(table)


@app.command("check-access")
def check_access(
    url: str = typer.Argument(..., help="file:// URL as shown to users"),
    index: Optional[List[str]] = typer.Option(
        None,
        "--index",
        "-i",
        help="Index to check (repeatable; default: configured default indexes)",
    ),
    groups: Optional[str] = typer.Option(
        None,
        "--groups",
        help=f"Comma-separated groups, sent as the {DEFAULT_GROUPS_HEADER} header",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Search configuration file",
    ),
):
    """Check whether a file would be delivered through the file bridge."""
    headers = {DEFAULT_GROUPS_HEADER: groups} if groups is not None else {}
    request = SimplePageRequest(
        [("index", name) for name in index or []],
        headers=headers,
        init_params=_init_params(config_path),
    )
    try:
        allowed = allow_file_access(RequestSearchContext(), request, url)
    except DocSearchError as e:
        console.print(f"[red]{render_error(e)}[/red]")
        raise typer.Exit(code=1)

    if allowed:
        console.print(f"[green]Allowed:[/green] {url}")
    else:
        console.print(f"[yellow]Denied:[/yellow] {url}")
        raise typer.Exit(code=2)


@app.command("encode-url")
def encode_url(
    url: str = typer.Argument(..., help="file:// URL"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Page encoding"),
):
    """Print the file-bridge path for a file:// URL."""
    try:
        console.print(encode_file_url(url, encoding), soft_wrap=True, highlight=False)
    except DocSearchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command("decode-url")
def decode_url(
    path: str = typer.Argument(..., help="Request path containing file/..."),
    encoding: str = typer.Option("utf-8", "--encoding", help="Page encoding"),
):
    """Print the file:// URL addressed by a file-bridge path."""
    try:
        console.print(extract_file_url(path, encoding), soft_wrap=True, highlight=False)
    except DocSearchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: DOCSEARCH_HOST or 127.0.0.1)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: DOCSEARCH_PORT or 8080)"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Search configuration file",
    ),
):
    """Run the HTTP front end."""
    settings = ServerSettings.from_env(config_path)
    if host:
        settings.host = host
    if port is not None:
        settings.port = port
    console.print(f"[bold]docsearch[/bold] serving on http://{settings.host}:{settings.port}")
    serve(settings)


@app.command()
def version():
    """Show docsearch version."""
    from . import __version__
    console.print(f"docsearch v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
