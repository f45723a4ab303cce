import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from dedupstore.config import AppConfig
from dedupstore.lib.log import configure_logging
from dedupstore.store import DeduplicationStore, DeduplicationStoreError

console = Console()

store_click = typer.Typer(
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def get_store() -> DeduplicationStore:
    """Build the store from the application configuration."""

    config = AppConfig.get_config()
    configure_logging(config.logging)
    return DeduplicationStore.from_config(config.store)


@store_click.command("gc")
def store_garbage_collect(
    now: int | None = typer.Option(None, help="Epoch seconds to use as the current time."),
) -> None:
    """Delete the keys of expired messages."""

    console.print("[cyan]Collecting expired messages...[/cyan]")

    store = get_store()
    try:
        deleted = store.garbage_collect_keys(now)
    except DeduplicationStoreError as e:
        console.print(f"[red]Garbage collection failed: {e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    console.print(f"[green]Deleted {deleted} expired messages.[/green]")


@store_click.command("master")
def store_show_master() -> None:
    """Show the instance currently acting as master."""

    store = get_store()
    try:
        endpoint, _ = store.manager.discover_master()
    except DeduplicationStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    console.print(f"[green]Master: {endpoint}[/green]")


@store_click.command("inspect")
def store_inspect(msg_id: str) -> None:
    """Show every tracked attribute of a message."""

    store = get_store()
    try:
        snapshot = store.snapshot(msg_id)
    except DeduplicationStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    table = Table(title=Text(msg_id))
    table.add_column("attribute", style="cyan")
    table.add_column("value")
    for suffix, value in snapshot.items():
        table.add_row(suffix, Text("-", style="dim") if value is None else Text(value))

    console.print(table)


@store_click.command("flush")
def store_flush(
    yes: bool = typer.Option(False, "--yes", help="Confirm flushing the database."),
) -> None:
    """Flush the configured database. Every tracked message is lost."""

    if not yes:
        console.print("[yellow]Refusing to flush without --yes.[/yellow]")
        raise typer.Exit(1)

    store = get_store()
    try:
        store.flushdb()
    except DeduplicationStoreError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    console.print("[green]Database flushed.[/green]")


@store_click.command("config")
def store_show_config() -> None:
    """Print the resolved configuration."""

    console.print_json(AppConfig.get_config().redacted().to_json())
