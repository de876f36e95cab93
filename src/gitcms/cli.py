"""
Main CLI dispatcher for gitcms.

Usage:
    gitcms config validate                 # Check admin/config.yml
    gitcms files resolve                   # Show each collection's file layout
    gitcms files format posts entry.json   # Serialize an entry
    gitcms backend sync                    # Download entry and asset files
    gitcms backend commit-message update --collection posts --slug hello
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from gitcms import __version__

console = Console()


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False, config_path: Path | None = None):
        self.verbose = verbose
        self.config_path = config_path
        self.console = console


@click.group()
@click.version_option(version=__version__, prog_name="gitcms")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Site config file (default: discovered from cwd)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """Git-backed CMS content tools.

    Validate a site config, inspect how entry files are laid out, format
    entries and sync repository contents.
    """
    ctx.obj = Context(verbose=verbose, config_path=config_path)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


# Import and register command groups (imports after main definition intentional)
from gitcms.backends.commands import backend  # noqa: E402
from gitcms.files.commands import files  # noqa: E402
from gitcms.parser.commands import config  # noqa: E402

main.add_command(config)
main.add_command(files)
main.add_command(backend)


if __name__ == "__main__":
    main()
