"""CLI commands for entry files.

Show how each collection's files are laid out, and convert entries between
structured data and file text.
"""

from __future__ import annotations

import json as json_module
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

console = Console()


def _load_site(ctx: Any) -> tuple[Path, dict[str, Any]]:
    from gitcms.core.config import ConfigError, resolve_site_config

    try:
        return resolve_site_config(ctx.config_path if ctx else None)
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


def _file_config_for(site_config: dict[str, Any], collection_name: str, file_name: str | None):
    from gitcms.core.i18n import get_i18n_options
    from gitcms.files.config import get_collection, get_file_config

    collection = get_collection(site_config, collection_name)
    if collection is None:
        console.print(f"[red]Collection not found: {collection_name}[/red]")
        raise SystemExit(1)

    if file_name is None:
        if "files" in collection:
            console.print(f"[red]{collection_name} is a file collection; pass --file[/red]")
            raise SystemExit(1)
        return get_file_config(collection, get_i18n_options(site_config, collection))

    for file in collection.get("files") or []:
        if file.get("name") == file_name:
            return get_file_config(
                collection, get_i18n_options(site_config, collection, file), file
            )

    console.print(f"[red]File not found in {collection_name}: {file_name}[/red]")
    raise SystemExit(1)


@click.group(name="files")
def files() -> None:
    """Entry file layout and conversion."""
    pass


@files.command(name="resolve")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def resolve_cmd(ctx: Any, as_json: bool) -> None:
    """Show the resolved file config of every collection."""
    from gitcms.files.config import iter_file_configs

    _, site_config = _load_site(ctx)
    rows = [
        {
            "collection": collection_name,
            "file": file_name,
            "extension": fc.extension,
            "format": fc.format,
            "path": fc.full_path or (fc.full_path_regex.pattern if fc.full_path_regex else None),
            "delimiters": list(fc.fm_delimiters) if fc.fm_delimiters else None,
        }
        for collection_name, file_name, fc in iter_file_configs(site_config)
    ]

    if as_json:
        click.echo(json_module.dumps(rows, indent=2))
        return

    if not rows:
        console.print("[yellow]No collections found.[/yellow]")
        return

    table = Table(title=f"File Configs ({len(rows)})")
    table.add_column("Collection", style="cyan")
    table.add_column("File", style="dim")
    table.add_column("Format")
    table.add_column("Ext", style="dim")
    table.add_column("Path / Pattern", no_wrap=False)

    for row in rows:
        table.add_row(
            row["collection"], row["file"] or "", row["format"], row["extension"], row["path"] or ""
        )

    console.print(table)


@files.command(name="format")
@click.argument("collection")
@click.argument("source", type=click.File("r"), default="-")
@click.option("--file", "file_name", help="File name, for file collections")
@click.pass_obj
def format_cmd(ctx: Any, collection: str, source: Any, file_name: str | None) -> None:
    """Serialize entry content (YAML or JSON from SOURCE) as an entry file.

    \\b
    Examples:
        gitcms files format posts entry.json
        cat entry.yml | gitcms files format pages --file about
    """
    from gitcms.core.config import OutputOptions
    from gitcms.files.format import format_entry_file

    _, site_config = _load_site(ctx)
    file_config = _file_config_for(site_config, collection, file_name)

    try:
        content = yaml.safe_load(source.read())
    except yaml.YAMLError as e:
        console.print(f"[red]Invalid entry content: {e}[/red]")
        raise SystemExit(1) from e

    if not isinstance(content, dict):
        console.print("[red]Entry content must be a mapping[/red]")
        raise SystemExit(1)

    text = format_entry_file(content, file_config, OutputOptions.from_site_config(site_config))
    if not text:
        console.print(f"[red]Could not format entry as {file_config.format}[/red]")
        raise SystemExit(1)

    click.echo(text, nl=False)


@files.command(name="parse")
@click.argument("collection")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--file", "file_name", help="File name, for file collections")
@click.pass_obj
def parse_cmd(ctx: Any, collection: str, path: Path, file_name: str | None) -> None:
    """Parse an entry file and print its content as JSON."""
    from gitcms.files.parse import parse_entry_file

    _, site_config = _load_site(ctx)
    file_config = _file_config_for(site_config, collection, file_name)

    content = parse_entry_file(path.read_text(encoding="utf-8"), file_config)
    if not content:
        console.print(f"[red]Could not parse {path} as {file_config.format}[/red]")
        raise SystemExit(1)

    click.echo(json_module.dumps(content, indent=2, ensure_ascii=False, default=str))
