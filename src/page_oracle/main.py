"""CLI entrypoint for the PAGE price oracle."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any

import typer

from .domain import ChainId, PriceSnapshot
from .errors import AggregateError, ChainUnavailable, NoEligiblePrices, describe_error
from .logger import setup_logging
from .oracle import PriceOracle
from .report import format_snapshot_table
from .settings import CONFIG_ENV_VAR, OracleSettings

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Multi-chain PAGE price and TVL oracle.",
)


async def _collect(
    oracle: PriceOracle, chain: ChainId | None
) -> tuple[PriceSnapshot, dict[str, Any] | None]:
    snapshot = await oracle.get_snapshot()
    if chain is None:
        return snapshot, None
    price = await oracle.get_price(chain)
    tvl = snapshot.tvl.get(chain)
    return snapshot, {
        "chain": chain.value,
        "price_usd": str(price),
        "tvl_usd": str(tvl) if tvl is not None else None,
        "timestamp": snapshot.timestamp,
    }


@app.callback(invoke_without_command=True)
def prices(
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [page_oracle] table).",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    chain: Annotated[
        ChainId | None,
        typer.Option(
            "--chain",
            help="Only print the price and TVL of this chain.",
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print JSON instead of a table."),
    ] = False,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with credentials redacted) and exit.",
        ),
    ] = False,
):
    """Fetch PAGE prices from every configured chain and print them.

    Exits with status 1 when no chain could be priced, or when the chain
    selected with --chain is unavailable.
    """
    if config_path:
        os.environ[CONFIG_ENV_VAR] = str(config_path)

    overrides = {"log_level": log_level} if log_level else {}
    settings = OracleSettings(**overrides)
    setup_logging(settings.log_level)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    logger.debug("Configuration: %s", settings.as_safe_dict())
    oracle = PriceOracle(settings)

    try:
        snapshot, chain_view = asyncio.run(_collect(oracle, chain))
    except AggregateError as exc:
        typer.echo("All chains failed:", err=True)
        for failed_chain, error in exc.failures.items():
            typer.echo(f"  {failed_chain.value}: {describe_error(error)}", err=True)
        raise typer.Exit(code=1) from exc
    except (ChainUnavailable, NoEligiblePrices) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    if chain_view is not None:
        if as_json:
            typer.echo(json.dumps(chain_view, indent=2))
        else:
            typer.echo(f"{chain_view['chain']}: ${chain_view['price_usd']}")
            typer.echo(f"TVL: ${chain_view['tvl_usd'] or 'N/A'}")
        return

    if as_json:
        typer.echo(json.dumps(snapshot.as_dict(), indent=2))
    else:
        format_snapshot_table(snapshot)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
