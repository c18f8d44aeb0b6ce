"""
floatwatch command-line interface.
"""

import asyncio
import sys
from typing import Tuple

import click
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from floatwatch.api.listing_client import ListingClient
from floatwatch.api.proxy_pool import ProxyPool
from floatwatch.config import Config
from floatwatch.errors import FloatWatchError
from floatwatch.models import MonitorEvent, MonitorStatus
from floatwatch.monitoring.supervisor import MonitorSupervisor
from floatwatch.registration import register_item
from floatwatch.storage.image_cache import ImageCache
from floatwatch.storage.settings import apply_settings, load_settings
from floatwatch.storage.watchlist import WatchlistStore
from floatwatch.utils.notifications import NotificationService

console = Console()

STATUS_COLORS = {
    MonitorStatus.IDLE: "dim",
    MonitorStatus.POLLING: "cyan",
    MonitorStatus.MATCHED: "bold green",
    MonitorStatus.FAILED: "red",
    MonitorStatus.STOPPED: "yellow",
}


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
    )
    logger.add(
        "logs/floatwatch_{time:YYYY-MM-DD}.log",
        level="DEBUG",
        rotation="1 day",
        retention="7 days",
    )


def load_config() -> Config:
    """Environment config with the saved worker settings applied on top."""
    config = Config()
    settings = load_settings(config.storage.settings_path, config)
    return apply_settings(config, settings)


def load_watchlist(config: Config) -> WatchlistStore:
    store = WatchlistStore(config.storage.watchlist_path)
    store.load()
    return store


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """Watch Steam market listings for a target float and price."""
    config = load_config()
    setup_logging("DEBUG" if debug else config.monitoring.log_level)
    ctx.obj = config


@cli.command()
@click.argument("link")
@click.option("--float", "target_float", required=True, help="Target float (0-1)")
@click.option("--price", "target_price", required=True, help="Target price, e.g. 12.00")
@click.pass_obj
def add(config: Config, link: str, target_float: str, target_price: str):
    """Resolve LINK and add the item to the watchlist."""
    store = load_watchlist(config)

    async def run_add():
        client = ListingClient(config)
        try:
            item = await register_item(
                link,
                target_float,
                target_price,
                client=client,
                watchlist=store,
                image_cache=ImageCache(config.storage.image_cache_dir),
            )
            await NotificationService(config.notification).send_registration(item)
            return item
        finally:
            await client.close()

    try:
        item = asyncio.run(run_add())
    except FloatWatchError as e:
        console.print(f"[red]Could not add item: {e}[/red]")
        sys.exit(1)

    console.print(
        f"[green]Added[/green] [{item.rarity_color}]{item.label}[/{item.rarity_color}] "
        f"float {item.target_float} @ ${item.target_price}"
    )


@cli.command()
@click.argument("label")
@click.pass_obj
def remove(config: Config, label: str):
    """Remove LABEL from the watchlist."""
    store = load_watchlist(config)
    if not store.remove(label):
        console.print(f"[yellow]{label} is not on the watchlist[/yellow]")
        sys.exit(1)
    store.persist()
    console.print(f"[green]Removed {label}[/green]")


@cli.command(name="list")
@click.pass_obj
def list_items(config: Config):
    """Show the watchlist."""
    store = load_watchlist(config)
    cache = ImageCache(config.storage.image_cache_dir)

    if not len(store):
        console.print("[yellow]Watchlist is empty. Use 'add' to register an item.[/yellow]")
        return

    table = Table(title=f"Watchlist ({len(store)} items)")
    table.add_column("#", justify="right")
    table.add_column("Item", max_width=50)
    table.add_column("Target Float", justify="right")
    table.add_column("Target Price", style="green", justify="right")
    table.add_column("Image", justify="center")

    for i, item in enumerate(store.all(), 1):
        table.add_row(
            str(i),
            f"[{item.rarity_color}]{item.label}[/{item.rarity_color}]",
            f"{item.target_float}",
            f"${item.target_price}",
            "yes" if cache.contains(item.label) else "-",
        )

    console.print(table)


@cli.command()
@click.option("--label", "labels", multiple=True, help="Only watch these items (repeatable)")
@click.option("--interval", type=float, default=None, help="Override poll interval in seconds")
@click.pass_obj
def watch(config: Config, labels: Tuple[str, ...], interval: float):
    """Monitor watchlist items until each one matches, fails or is stopped."""
    if interval is not None:
        config.monitoring.poll_interval = interval

    if not config.validate():
        console.print("[red]Invalid configuration, see log for details[/red]")
        sys.exit(1)

    store = load_watchlist(config)
    items = store.all()
    if labels:
        items = [item for item in items if item.label in labels]
        missing = set(labels) - {item.label for item in items}
        for label in sorted(missing):
            console.print(f"[yellow]{label} is not on the watchlist[/yellow]")

    if not items:
        console.print("[yellow]Nothing to watch.[/yellow]")
        return

    console.print(Panel.fit(
        f"[bold green]Watching {len(items)} items[/bold green]\n"
        f"Proxies: {'ON (' + str(len(config.proxy.get_addresses())) + ')' if config.proxy.enabled else 'OFF'}\n"
        f"Poll interval: {config.monitoring.poll_interval}s\n"
        f"Match: float {config.monitoring.match_float_mode}, price {config.monitoring.match_price_mode}",
        title="floatwatch"
    ))

    def on_status(label: str, status: MonitorStatus, text: str):
        color = STATUS_COLORS[status]
        console.print(f"[{color}]{status.value.upper():<8}[/{color}] {label}: {text}")

    async def run_watch():
        client = ListingClient(config)
        supervisor = MonitorSupervisor(
            client,
            config,
            notifier=NotificationService(config.notification),
            on_status=on_status,
        )
        try:
            supervisor.start_all(items)
            await supervisor.wait_all()
        finally:
            await supervisor.stop_all()
            await client.close()
        return supervisor.events

    try:
        events = asyncio.run(run_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
        return

    _print_summary(events)


def _print_summary(events: list):
    table = Table(title="Results")
    table.add_column("Item", max_width=50)
    table.add_column("Status", justify="center")
    table.add_column("Float", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Reason")

    event: MonitorEvent
    for event in events:
        color = STATUS_COLORS[event.status]
        table.add_row(
            event.label,
            f"[{color}]{event.status.value}[/{color}]",
            f"{event.snapshot.float_value:.10f}" if event.snapshot else "-",
            f"${event.snapshot.price}" if event.snapshot else "-",
            event.reason or "",
        )

    console.print(table)


@cli.command()
@click.pass_obj
def proxies(config: Config):
    """Show the configured proxy pool."""
    pool = ProxyPool.from_addresses(config.proxy.get_addresses())
    console.print(f"Proxy mode: {'[green]enabled[/green]' if config.proxy.enabled else '[yellow]disabled[/yellow]'}")

    if not len(pool):
        console.print("[dim]No proxies configured (PROXY_LIST or settings file).[/dim]")
        return

    table = Table(title=f"{len(pool)} proxies")
    table.add_column("#", justify="right")
    table.add_column("Address")
    for i, entry in enumerate(pool.snapshot(), 1):
        table.add_row(str(i), str(entry["address"]))
    console.print(table)


@cli.command()
@click.pass_obj
def check(config: Config):
    """Check configuration and marketplace connectivity."""
    console.print("[bold blue]Checking configuration and connectivity...[/bold blue]")
    config.log_config()

    console.print("\n[cyan]Configuration:[/cyan]")
    if config.validate():
        console.print("  [green]Valid[/green]")
    else:
        console.print("  [red]Invalid, see log[/red]")

    console.print("\n[cyan]Marketplace:[/cyan]")
    client = ListingClient(config)
    if client.check_connection():
        console.print(f"  [green]{config.api.market_host}: reachable[/green]")
    else:
        console.print(f"  [red]{config.api.market_host}: unreachable[/red]")


if __name__ == "__main__":
    cli()
