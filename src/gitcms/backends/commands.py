"""CLI commands for the Git backend.

Sync repository contents, build commit messages and manage the cached
sign-in record.
"""

from __future__ import annotations

import json as json_module
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

console = Console()


def _load_site(ctx: Any) -> tuple[Path, dict[str, Any]]:
    from gitcms.core.config import ConfigError, resolve_site_config

    try:
        return resolve_site_config(ctx.config_path if ctx else None)
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


def _create_fetcher(site_config: dict[str, Any], token: str | None):
    from gitcms.backends import BackendError, create_fetcher

    try:
        return create_fetcher(site_config.get("backend") or {}, token=token)
    except (BackendError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@click.group(name="backend")
def backend() -> None:
    """Repository sync and commit helpers."""
    pass


@backend.command(name="sync")
@click.option("--token", envvar="GITCMS_TOKEN", help="Access token (default: env or cached)")
@click.option("--all-files", is_flag=True, help="Download every file, not only entries/assets")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write downloaded text files under this directory",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def sync_cmd(
    ctx: Any, token: str | None, all_files: bool, output: Path | None, as_json: bool
) -> None:
    """Download entry and asset files from the repository."""
    from gitcms.backends import BackendError
    from gitcms.files.config import (
        iter_file_configs,
        iter_locale_file_paths,
        make_path_filter,
        match_entry_path,
    )

    _, site_config = _load_site(ctx)
    fetcher = _create_fetcher(site_config, token)

    file_configs = list(iter_file_configs(site_config))
    locale_file_paths = {path: name for name, path in iter_locale_file_paths(site_config)}
    path_filter = None
    if not all_files:
        path_filter = make_path_filter(
            [fc for _, _, fc in file_configs],
            extra_paths=locale_file_paths,
            media_folders=[str(site_config.get("media_folder") or "")],
        )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        disable=as_json,
    ) as progress:
        task = progress.add_task(
            f"[cyan]Fetching {fetcher.repository.full_path}...", total=100
        )

        def on_progress(value: int | None) -> None:
            if value is not None:
                progress.update(task, completed=value)

        try:
            contents = fetcher.fetch_files(path_filter=path_filter, on_progress=on_progress)
        except BackendError as e:
            console.print(f"[red]Sync failed: {e}[/red]")
            raise SystemExit(1) from e

    if output is not None:
        for path, file in contents.items():
            if file.text is None:
                continue
            target = output / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(file.text, encoding="utf-8")

    if as_json:
        click.echo(
            json_module.dumps(
                {
                    "branch": fetcher.repository.branch,
                    "last_commit": fetcher.last_commit_hash,
                    "files": {
                        path: {
                            "sha": file.sha,
                            "size": file.size,
                            "committed_date": (
                                file.meta.committed_date.isoformat()
                                if file.meta.committed_date
                                else None
                            ),
                            "author": (
                                file.meta.commit_author.login
                                if file.meta.commit_author
                                else None
                            ),
                        }
                        for path, file in contents.items()
                    },
                },
                indent=2,
            )
        )
        return

    counts: dict[str, int] = {}
    for path in contents:
        if path in locale_file_paths:
            name = locale_file_paths[path]
            counts[name] = counts.get(name, 0) + 1
            continue
        for collection_name, _, fc in file_configs:
            if path == fc.full_path or match_entry_path(path, fc):
                counts[collection_name] = counts.get(collection_name, 0) + 1
                break
        else:
            counts["(assets/other)"] = counts.get("(assets/other)", 0) + 1

    table = Table(title=f"Synced {len(contents)} files from {fetcher.repository.branch}")
    table.add_column("Collection", style="cyan")
    table.add_column("Files", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))

    console.print(table)
    if fetcher.last_commit_hash:
        console.print(f"[dim]Last commit: {fetcher.last_commit_hash}[/dim]")


@backend.command(name="commit-message")
@click.argument(
    "commit_type",
    type=click.Choice(
        ["create", "update", "delete", "uploadMedia", "deleteMedia", "openAuthoring"]
    ),
)
@click.option("--collection", "collection_name", help="Collection of the entry")
@click.option("--slug", help="Entry slug")
@click.option("--path", "paths", multiple=True, help="Changed file path (repeatable)")
@click.option("--skip-ci/--no-skip-ci", default=None, help="Force or suppress [skip ci]")
@click.pass_obj
def commit_message_cmd(
    ctx: Any,
    commit_type: str,
    collection_name: str | None,
    slug: str | None,
    paths: tuple[str, ...],
    skip_ci: bool | None,
) -> None:
    """Print the commit message for a change."""
    from gitcms.backends.commits import FileChange, create_commit_message
    from gitcms.files.config import get_collection

    _, site_config = _load_site(ctx)

    collection = None
    if collection_name:
        collection = get_collection(site_config, collection_name)
        if collection is None:
            console.print(f"[red]Collection not found: {collection_name}[/red]")
            raise SystemExit(1)

    changes = [FileChange(path=path, slug=slug) for path in paths] or [
        FileChange(path="", slug=slug)
    ]
    click.echo(
        create_commit_message(
            changes,
            commit_type=commit_type,
            collection=collection,
            skip_ci=skip_ci,
            backend_config=site_config.get("backend") or {},
        )
    )


@backend.command(name="whoami")
@click.option("--token", envvar="GITCMS_TOKEN", help="Access token (default: env or cached)")
@click.pass_obj
def whoami_cmd(ctx: Any, token: str | None) -> None:
    """Show the user the access token belongs to."""
    from gitcms.backends import BackendError

    _, site_config = _load_site(ctx)
    fetcher = _create_fetcher(site_config, token)

    try:
        user = fetcher.fetch_user_profile()
    except BackendError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    console.print(f"[cyan]{user.login}[/cyan] ({user.name or 'no name'}) on {fetcher.label}")


@backend.command(name="blob")
@click.argument("path")
@click.option("--token", envvar="GITCMS_TOKEN", help="Access token (default: env or cached)")
@click.option("--no-lfs", is_flag=True, help="Return LFS pointers as-is")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Where to write the file",
)
@click.pass_obj
def blob_cmd(ctx: Any, path: str, token: str | None, no_lfs: bool, output: Path) -> None:
    """Download one file from the repository."""
    from gitcms.backends import BackendError

    _, site_config = _load_site(ctx)
    fetcher = _create_fetcher(site_config, token)

    try:
        if not fetcher.repository.branch:
            fetcher.repository.branch = fetcher.fetch_default_branch_name()
        data = fetcher.fetch_blob(path, lfs=not no_lfs)
    except BackendError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    output.write_bytes(data)
    console.print(f"[green]Saved[/green] {path} -> {output} ({len(data)} bytes)")


@backend.command(name="login")
@click.option("--token", prompt=True, hide_input=True, help="Personal access token")
@click.pass_obj
def login_cmd(ctx: Any, token: str) -> None:
    """Verify a personal access token and cache it for later commands."""
    from gitcms.backends import BackendError
    from gitcms.core.storage import write_cached_user

    _, site_config = _load_site(ctx)
    fetcher = _create_fetcher(site_config, token)

    try:
        user = fetcher.fetch_user_profile()
    except BackendError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    write_cached_user(token, fetcher.name, login=user.login, name=user.name)
    console.print(f"[green]Signed in as[/green] {user.login} on {fetcher.label}")


@backend.command(name="logout")
def logout_cmd() -> None:
    """Clear the cached sign-in record."""
    from gitcms.core.storage import clear_cached_user

    clear_cached_user()
    console.print("[green]Signed out.[/green]")
