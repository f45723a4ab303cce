import sys

from rich.console import Console

from ._version import __version__
from .cli import cli as app

__all__ = ("__version__", "entrypoint")

console = Console(stderr=True)


def run_cli() -> None:
    args = sys.argv[1:]

    if not args:
        sys.argv.append("--help")

    app()


def entrypoint() -> None:
    """Run the command line interface."""

    console.print(f"[cyan]dedupstore {__version__}[/cyan]")

    run_cli()
