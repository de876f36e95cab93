"""CLI commands for site config checks."""

from __future__ import annotations

import json as json_module
from pathlib import Path
from typing import Any

import click
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


@click.group(name="config")
def config() -> None:
    """Inspect and validate the site config."""
    pass


@config.command(name="path")
@click.pass_obj
def path_cmd(ctx: Any) -> None:
    """Print the site config file in use."""
    path, _ = _load_site(ctx)
    click.echo(str(path))


@config.command(name="validate")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def validate_cmd(ctx: Any, as_json: bool) -> None:
    """Validate the site config.

    Reports errors and warnings, and lists the media and relation fields
    found in each collection. Exits with status 1 if there are errors.
    """
    from gitcms.parser import ConfigParserCollectors, parse_site_config

    path, site_config = _load_site(ctx)
    collectors = ConfigParserCollectors()
    parse_site_config(site_config, collectors)

    if as_json:
        click.echo(
            json_module.dumps(
                {
                    "config": str(path),
                    "errors": sorted(collectors.errors),
                    "warnings": sorted(collectors.warnings),
                    "media_fields": [f.key_path for f in collectors.media_fields],
                    "relation_fields": [f.key_path for f in collectors.relation_fields],
                },
                indent=2,
            )
        )
    else:
        console.print(f"[dim]Config: {path}[/dim]")

        for error in sorted(collectors.errors):
            console.print(f"[red]Error:[/red] {error}")
        for warning in sorted(collectors.warnings):
            console.print(f"[yellow]Warning:[/yellow] {warning}")

        collected = [("media", f) for f in collectors.media_fields] + [
            ("relation", f) for f in collectors.relation_fields
        ]
        if collected:
            table = Table(title=f"Collected Fields ({len(collected)})")
            table.add_column("Kind", style="dim")
            table.add_column("Collection", style="cyan")
            table.add_column("Key Path")
            for kind, f in collected:
                collection = f.context.collection or {}
                table.add_row(kind, str(collection.get("name", "")), f.key_path)
            console.print(table)

        if not collectors.errors:
            console.print("[green]Config is valid.[/green]")

    if collectors.errors:
        raise SystemExit(1)
