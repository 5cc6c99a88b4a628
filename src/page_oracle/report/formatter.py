"""Rich console formatter for price snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..domain import ChainId, PriceSnapshot


def _format_usd(value: Decimal) -> str:
    """Format a USD amount; sub-cent prices keep significant digits."""
    if abs(value) >= 1:
        return f"${value:,.2f}"
    return f"${value:.8f}"


def _format_share(value: Decimal | None) -> str:
    if value is None:
        return "[dim]-[/]"
    return f"{value * 100:.2f}%"


def _format_timestamp(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S UTC"
    )


def build_snapshot_panel(snapshot: PriceSnapshot) -> Panel:
    """Build the dashboard renderable for ``snapshot``."""
    summary_table = Table(show_header=False, box=None, padding=(0, 1))
    summary_table.add_column("Key", style="dim")
    summary_table.add_column("Value", style="green")
    summary_table.add_row("Weighted Price", _format_usd(snapshot.weighted_price))
    summary_table.add_row("Total TVL", _format_usd(snapshot.total_tvl))
    summary_table.add_row(
        "ETH/USD",
        _format_usd(snapshot.reference_price_usd)
        if snapshot.reference_price_usd is not None
        else "[dim]<N/A>[/]",
    )
    summary_table.add_row("Updated", _format_timestamp(snapshot.timestamp))

    summary_panel = Panel(summary_table, title="[bold]Summary[/]", border_style="green")

    chain_table = Table(title=None, expand=True, show_lines=False)
    chain_table.add_column("Chain", style="cyan", no_wrap=True)
    chain_table.add_column("Price", justify="right", style="yellow")
    chain_table.add_column("TVL", justify="right", style="green")
    chain_table.add_column("TVL Share", justify="right")
    chain_table.add_column("Weight", justify="right", style="magenta")
    chain_table.add_column("Status", style="dim")

    shares = snapshot.tvl_shares
    for chain in ChainId:
        price = snapshot.price(chain)
        tvl = snapshot.tvl.get(chain)
        if price is None and chain not in snapshot.failures:
            continue
        chain_table.add_row(
            chain.value,
            _format_usd(price) if price is not None else "[dim]<N/A>[/]",
            _format_usd(tvl) if tvl is not None else "[dim]<N/A>[/]",
            _format_share(shares.get(chain)),
            _format_share(snapshot.weights.get(chain)),
            Text(snapshot.failures[chain], style="red")
            if chain in snapshot.failures
            else "ok",
        )

    chain_panel = Panel(
        chain_table, title="[bold]Per-Chain Prices[/]", border_style="cyan"
    )

    return Panel(
        Group(Columns([summary_panel], expand=True), "", chain_panel),
        title="[bold white]PAGE Price Oracle[/]",
        border_style="white",
        padding=(1, 2),
    )


def format_snapshot_table(
    snapshot: PriceSnapshot, console: Console | None = None
) -> None:
    """Print a rich formatted dashboard of ``snapshot`` to stdout."""
    console = console or Console()
    console.print()
    console.print(build_snapshot_panel(snapshot))
    console.print()
