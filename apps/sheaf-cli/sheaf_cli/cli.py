"""Sheaf CLI commands."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

import dotenv
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sheaf_core import (
    ConfigError,
    FormatDescriptor,
    ParseError,
    SheafError,
    SiteConfig,
    load_site_config,
    parse,
    serialize,
    unflatten,
)
from sheaf_core.config import DEFAULT_CONFIG_PATH, CollectionConfigCache
from sheaf_sync import (
    ContentLoader,
    JsonFileStore,
    LocalBackend,
    SyncCache,
    SyncResult,
    create_file_list,
    get_all_asset_folders,
    get_all_entry_folders,
)

dotenv.load_dotenv()

# Initialize
app = typer.Typer(help="Sheaf - Sync Git-backed CMS content into localized entries")
cache_app = typer.Typer(help="Inspect or clear the local content cache")
app.add_typer(cache_app, name="cache")
console = Console()

# Configure logging (default to WARNING, can be lowered to INFO in debug mode)
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M",
)
logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = ".sheaf/cache.json"


def _set_debug(debug: bool) -> None:
    level = logging.INFO if debug else logging.WARNING
    logging.getLogger().setLevel(level)
    logging.getLogger("sheaf_sync").setLevel(level)


def _root(root: str) -> Path:
    path = Path(root).expanduser().resolve()
    if not path.is_dir():
        console.print(f"[red]Error: Content root not found: {path}[/red]")
        raise typer.Exit(2)
    return path


def _load_site(root: Path, config: str | None) -> SiteConfig:
    config_path = Path(config) if config else root / DEFAULT_CONFIG_PATH
    try:
        return load_site_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e


def _cache_path(root: Path, cache: str | None) -> Path:
    """Cache file: --cache, then SHEAF_CACHE, then .sheaf/cache.json under the root."""
    value = cache or os.environ.get("SHEAF_CACHE")
    return Path(value).expanduser() if value else root / DEFAULT_CACHE_PATH


def _run_sync(root: Path, site: SiteConfig, cache: str | None, branch: str | None) -> SyncResult:
    loader = ContentLoader(
        site,
        LocalBackend(root),
        JsonFileStore(_cache_path(root, cache)),
        branch=branch,
    )
    try:
        return asyncio.run(loader.load())
    except SheafError as e:
        console.print(f"[red]Sync failed:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e


def _result_json(result: SyncResult) -> dict[str, Any]:
    return {
        "branch": result.branch,
        "commit": result.commit_hash,
        "stats": {
            "files": result.file_list.count,
            "fetched": result.fetched,
            "reused": result.reused,
            "evicted": result.evicted,
            "file_list_from_cache": result.file_list_from_cache,
        },
        "entries": [
            {
                "id": e.id,
                "collection": e.collection_name,
                "file": e.file_name,
                "slug": e.slug,
                "sub_path": e.sub_path,
                "commit_date": e.commit_date,
                "locales": {
                    loc: {"slug": le.slug, "path": le.path, "content": le.content}
                    for loc, le in e.locales.items()
                },
            }
            for e in result.entries
        ],
        "assets": [
            {
                "path": a.path,
                "kind": a.kind,
                "size": a.size,
                "collection": a.folder.collection_name if a.folder else None,
            }
            for a in result.assets
        ],
        "errors": [{"path": err.path, "message": err.message} for err in result.errors],
    }


def _print_errors(result: SyncResult) -> None:
    for err in result.errors:
        console.print(f"  - {err.path}: {escape(err.message)}")


@app.command()
def sync(
    root: str = typer.Argument(".", help="Content root (repository working tree)"),
    config: str | None = typer.Option(
        None, "--config", "-c", help=f"Site config file (default: {DEFAULT_CONFIG_PATH})"
    ),
    cache: str | None = typer.Option(None, "--cache", help="Cache file (or set SHEAF_CACHE)"),
    branch: str | None = typer.Option(None, "--branch", help="Branch name (default: detected)"),
    json_out: bool = typer.Option(False, "--json", help="Output entries as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Show INFO logs from the sync engine"),
):
    """
    Sync the content root and list the resulting entries.

    Exit codes: 0 on success, 1 when some files failed to parse, 2 on errors.
    """
    _set_debug(debug)
    root_path = _root(root)
    site = _load_site(root_path, config)
    result = _run_sync(root_path, site, cache, branch)

    if json_out:
        print(json.dumps(_result_json(result), indent=2, ensure_ascii=False, default=str))
    else:
        if not result.entries:
            console.print("[yellow]No entries found[/yellow]")
        else:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Collection")
            table.add_column("Slug")
            table.add_column("Locales")
            table.add_column("Path", style="dim")
            for entry in sorted(result.entries, key=lambda e: (e.collection_name, e.slug)):
                collection = entry.collection_name
                if entry.file_name:
                    collection = f"{collection}/{entry.file_name}"
                paths = sorted({le.path for le in entry.locales.values()})
                table.add_row(collection, entry.slug, ", ".join(entry.locales), "\n".join(paths))
            console.print(table)

        console.print(
            f"[cyan]{len(result.entries)} entries, {len(result.assets)} assets[/cyan] "
            f"[dim](fetched {result.fetched}, reused {result.reused}, evicted {result.evicted})[/dim]"
        )
        if result.errors:
            console.print("[yellow]Some files could not be parsed:[/yellow]")
            _print_errors(result)
        else:
            console.print("[green]Sync completed successfully[/green]")

    raise typer.Exit(1 if result.errors else 0)


@app.command()
def files(
    root: str = typer.Argument(".", help="Content root (repository working tree)"),
    config: str | None = typer.Option(None, "--config", "-c", help="Site config file"),
    show_all: bool = typer.Option(False, "--all", help="List every classified file"),
):
    """Classify the files of the content root into entries, assets and config files."""
    root_path = _root(root)
    site = _load_site(root_path, config)
    try:
        configs = CollectionConfigCache(site)
        backend = LocalBackend(root_path)
        raw_files = asyncio.run(backend.fetch_file_list("local"))
        file_list = create_file_list(
            raw_files, get_all_entry_folders(site, configs), get_all_asset_folders(site)
        )
    except SheafError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e

    table = Table(show_header=True, header_style="bold")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    if show_all:
        table.add_column("Files", style="dim")
    for label, items in (
        ("entry", file_list.entry_files),
        ("asset", file_list.asset_files),
        ("config", file_list.config_files),
    ):
        row = [label, str(len(items))]
        if show_all:
            row.append("\n".join(f.path for f in items))
        table.add_row(*row)
    console.print(table)
    console.print(f"[dim]{file_list.count} of {len(raw_files)} files classified[/dim]")


@app.command("parse")
def parse_cmd(
    file: str = typer.Argument(..., help="File to parse"),
    format: str | None = typer.Option(None, "--format", "-f", help="Format (default: from extension)"),
    delimiter: str | None = typer.Option(None, "--delimiter", help="Front matter delimiter"),
):
    """Parse a single content file and print it as JSON."""
    path = Path(file)
    if not path.exists():
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(2)

    descriptor = FormatDescriptor(format=format, extension=path.suffix, delimiter=delimiter)
    try:
        content = parse(path.read_text(encoding="utf-8"), descriptor, path=str(path))
    except ParseError as e:
        console.print(f"[red]Parse failed:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    print(json.dumps(content, indent=2, ensure_ascii=False, default=str))


@app.command()
def i18n(
    collection: str = typer.Argument(..., help="Collection name"),
    file: str | None = typer.Option(None, "--file", help="File name within a file collection"),
    root: str = typer.Option(".", "--root", help="Content root"),
    config: str | None = typer.Option(None, "--config", "-c", help="Site config file"),
):
    """Print the effective i18n configuration of a collection or collection file."""
    root_path = _root(root)
    site = _load_site(root_path, config)
    try:
        resolved = CollectionConfigCache(site).get_i18n_config(collection, file)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e
    print(json.dumps(resolved.model_dump(mode="json"), indent=2))


@app.command()
def show(
    collection: str = typer.Argument(..., help="Collection name"),
    slug: str = typer.Argument(..., help="Entry slug (or file name in a file collection)"),
    locale: str | None = typer.Option(None, "--locale", "-l", help="Only show this locale"),
    root: str = typer.Option(".", "--root", help="Content root"),
    config: str | None = typer.Option(None, "--config", "-c", help="Site config file"),
    cache: str | None = typer.Option(None, "--cache", help="Cache file (or set SHEAF_CACHE)"),
):
    """Sync, then print one entry's content as YAML."""
    root_path = _root(root)
    site = _load_site(root_path, config)
    result = _run_sync(root_path, site, cache, None)

    entry = next(
        (e for e in result.entries if e.collection_name == collection and e.slug == slug), None
    )
    if entry is None:
        console.print(f"[red]No entry '{slug}' in collection '{collection}'[/red]")
        raise typer.Exit(1)

    yaml_format = FormatDescriptor(format="yaml")
    for loc, localized in entry.locales.items():
        if locale and loc != locale:
            continue
        console.print(f"[cyan]# {loc}: {localized.path}[/cyan]")
        print(serialize(unflatten(localized.content), yaml_format), end="")


@cache_app.command("info")
def cache_info(
    root: str = typer.Argument(".", help="Content root"),
    cache: str | None = typer.Option(None, "--cache", help="Cache file (or set SHEAF_CACHE)"),
):
    """Show what the cache holds."""
    root_path = _root(root)
    path = _cache_path(root_path, cache)
    sync_cache = SyncCache(JsonFileStore(path))
    records = sync_cache.load_records()
    with_text = sum(1 for r in records.values() if r.text is not None)
    console.print(f"Cache: {path}")
    console.print(f"  Last commit: {sync_cache.last_commit_hash() or '-'}")
    console.print(f"  Records: {len(records)} ({with_text} with content)")


@cache_app.command("clear")
def cache_clear(
    root: str = typer.Argument(".", help="Content root"),
    cache: str | None = typer.Option(None, "--cache", help="Cache file (or set SHEAF_CACHE)"),
):
    """Drop all cached records so the next sync fetches everything."""
    root_path = _root(root)
    path = _cache_path(root_path, cache)
    SyncCache(JsonFileStore(path)).clear()
    console.print(f"[green]Cache cleared: {path}[/green]")


if __name__ == "__main__":
    app()
