"""routegraph CLI: which routes does a change affect?"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from routegraph import __version__
from routegraph.config.settings import AnalyzerConfig, parse_alias_list
from routegraph.errors import ConfigError

console = Console()

app = typer.Typer(
    name="routegraph",
    help="routegraph: map changed files to the routes they affect.",
    no_args_is_help=True,
)

_REPO_OPTION = typer.Option(Path("."), "--repo", "-r", help="Project root to analyse.")

def _version_callback(value: bool) -> None:
    """Print the version and exit."""
    if value:
        console.print(f"routegraph v{__version__}")
        raise typer.Exit()

@app.callback()
def main(
    version: Optional[bool] = typer.Option(  # noqa: N803
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log progress to stderr."),
) -> None:
    """routegraph: map changed files to the routes they affect."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

def _load_config(
    aliases: list[str] | None = None,
    early_stop_depth: int | None = None,
    exhaustive: bool = False,
    prune_stale_edges: bool = False,
) -> AnalyzerConfig:
    """Build a config from ``ROUTEGRAPH_*`` variables plus CLI overrides."""
    try:
        config = AnalyzerConfig.from_env()
        if aliases:
            extra: dict[str, str] = {}
            for entry in aliases:
                extra.update(parse_alias_list(entry))
            config = replace(config, aliases={**config.aliases, **extra})
        if exhaustive:
            config = replace(config, early_stop_depth=None)
        elif early_stop_depth is not None:
            config = replace(config, early_stop_depth=early_stop_depth)
        if prune_stale_edges:
            config = replace(config, prune_stale_edges=True)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    return config

def _make_analyzer(repo: Path, config: AnalyzerConfig | None = None) -> RouteAnalyzer:  # noqa: F821
    from routegraph.core.analyzer import RouteAnalyzer

    repo_path = repo.resolve()
    if not repo_path.is_dir():
        console.print(f"[red]Error:[/red] {repo_path} is not a directory.")
        raise typer.Exit(code=1)
    return RouteAnalyzer(repo_path, config or _load_config())

def _print_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))

@app.command()
def analyze(
    repo: Path = typer.Argument(Path("."), help="Project root to analyse."),
    force: bool = typer.Option(False, "--force", "-f", help="Ignore the persisted graph and rebuild."),
    alias: Optional[List[str]] = typer.Option(None, "--alias", "-a", help="Import alias, e.g. '~/=src/'."),
    prune_stale_edges: bool = typer.Option(
        False, "--prune-stale-edges", help="Remove reverse edges of dropped imports on update."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print metrics as JSON."),
) -> None:
    """Build (or load) the import graph of a project and persist it."""
    config = _load_config(aliases=alias, prune_stale_edges=prune_stale_edges)
    analyzer = _make_analyzer(repo, config)

    if not as_json:
        console.print(f"[bold]Analysing[/bold] {analyzer.root}")

    async def run() -> None:
        await analyzer.initialize(force_rebuild=force)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
        disable=as_json,
    ) as progress:
        progress.add_task("Building import graph...", total=None)
        asyncio.run(run())

    metrics = asyncio.run(analyzer.get_metrics())
    if as_json:
        _print_json({"framework": analyzer.framework, **asdict(metrics)})
        return

    source = "rebuilt" if analyzer.last_build is not None else "loaded from cache"
    console.print()
    console.print(f"[bold green]Import graph {source}.[/bold green]")
    console.print(f"  Framework:      {analyzer.framework}")
    console.print(f"  Files:          {metrics.total_files}")
    console.print(f"  Route files:    {metrics.route_files}")
    console.print(f"  Entry points:   {metrics.entry_points}")
    console.print(f"  Import edges:   {metrics.import_edges}")
    if analyzer.last_build is not None:
        console.print(f"  Duration:       {analyzer.last_build.duration_seconds:.2f}s")

@app.command()
def routes(
    files: List[str] = typer.Argument(..., help="Changed files, relative to the project root."),
    repo: Path = _REPO_OPTION,
    precise: bool = typer.Option(
        False, "--precise", help="Prefer routes that render a component imported from the file."
    ),
    exhaustive: bool = typer.Option(
        False, "--exhaustive", help="Disable early termination of the impact search."
    ),
    depth: Optional[int] = typer.Option(
        None, "--early-stop-depth", help="Stop searching this deep once a route is found."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Show the routes affected by changes to FILES."""
    analyzer = _make_analyzer(repo, _load_config(early_stop_depth=depth, exhaustive=exhaustive))

    async def run() -> dict[str, list[str]]:
        result = await analyzer.detect_routes(files, precise=precise)
        await analyzer.persist()
        return result

    results = asyncio.run(run())
    if as_json:
        _print_json(results)
        return

    if not results:
        console.print("No routes affected.")
        return
    for path in files:
        affected = results.get(path)
        if not affected:
            continue
        console.print(f"[bold]{path}[/bold]")
        for route in affected:
            console.print(f"  {route}")

@app.command()
def info(
    files: List[str] = typer.Argument(..., help="Changed files, relative to the project root."),
    repo: Path = _REPO_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Show affected routes and route-file classification for FILES."""
    analyzer = _make_analyzer(repo)
    results = asyncio.run(analyzer.get_route_info(files))

    if as_json:
        _print_json({path: asdict(entry) for path, entry in results.items()})
        return

    table = Table(title="Route info")
    table.add_column("File")
    table.add_column("Declares routes")
    table.add_column("Type")
    table.add_column("Routes")
    for path, entry in results.items():
        table.add_row(
            path,
            "yes" if entry.is_route_definer else "no",
            entry.route_file_type or "-",
            ", ".join(entry.routes) or "-",
        )
    console.print(table)

@app.command()
def serving(
    component: str = typer.Argument(..., help="Component file, relative to the project root."),
    repo: Path = _REPO_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON."),
) -> None:
    """Show the routes that render COMPONENT."""
    analyzer = _make_analyzer(repo)
    found = asyncio.run(analyzer.find_routes_serving_component(component))

    if as_json:
        _print_json([asdict(route) for route in found])
        return
    if not found:
        console.print(f"No route renders {component}.")
        return
    for route in found:
        console.print(f"  {route.route_path}  {route.component}  [dim]{route.route_file}:{route.line}[/dim]")

@app.command()
def metrics(
    repo: Path = _REPO_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print metrics as JSON."),
) -> None:
    """Show import graph statistics."""
    analyzer = _make_analyzer(repo)
    result = asyncio.run(analyzer.get_metrics())
    if as_json:
        _print_json(asdict(result))
        return
    console.print(f"[bold]Import graph for[/bold] {analyzer.root}")
    console.print(f"  Files:          {result.total_files}")
    console.print(f"  Route files:    {result.route_files}")
    console.print(f"  Entry points:   {result.entry_points}")
    console.print(f"  Import edges:   {result.import_edges}")

@app.command()
def clean(
    repo: Path = _REPO_OPTION,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt."),
) -> None:
    """Delete the persisted graph of a project."""
    analyzer = _make_analyzer(repo)
    cache_dir = analyzer.root / analyzer.config.cache_dir

    if not cache_dir.exists():
        console.print(f"[red]Error:[/red] No cache found at {cache_dir}. Nothing to clean.")
        raise typer.Exit(code=1)

    if not force:
        confirm = typer.confirm(f"Delete cached graph at {cache_dir}?")
        if not confirm:
            console.print("Aborted.")
            raise typer.Exit()

    asyncio.run(analyzer.clear_cache())
    console.print(f"[green]Deleted[/green] {analyzer.graph_store.key}")

@app.command()
def watch(repo: Path = _REPO_OPTION) -> None:
    """Watch mode: refresh facts and the persisted graph on file changes."""
    from routegraph.core.ingestion.watcher import watch_repo

    analyzer = _make_analyzer(repo)
    console.print(f"[bold]Watching[/bold] {analyzer.root} for changes (Ctrl+C to stop)")

    try:
        asyncio.run(watch_repo(analyzer))
    except KeyboardInterrupt:
        console.print("\n[bold]Watch stopped.[/bold]")

@app.command()
def mcp(
    watch: bool = typer.Option(False, "--watch", "-w", help="Refresh the graph on file changes."),
) -> None:
    """Start MCP server (stdio transport)."""
    from routegraph.mcp.server import main as mcp_main

    if not watch:
        asyncio.run(mcp_main())
        return

    from routegraph.core.ingestion.watcher import watch_repo
    from routegraph.mcp.server import server as mcp_server
    from routegraph.mcp.server import set_analyzer, set_lock

    analyzer = _make_analyzer(Path.cwd())
    lock = asyncio.Lock()
    set_analyzer(analyzer)
    set_lock(lock)

    async def _run() -> None:
        from mcp.server.stdio import stdio_server

        stop = asyncio.Event()

        async with stdio_server() as (read, write):

            async def _mcp_then_stop() -> None:
                await mcp_server.run(read, write, mcp_server.create_initialization_options())
                stop.set()

            await asyncio.gather(
                _mcp_then_stop(),
                watch_repo(analyzer, stop_event=stop, lock=lock),
            )

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass
