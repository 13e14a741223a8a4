"""CLI entry point for mev_share_analysis."""

from __future__ import annotations

import asyncio
import logging
import sys
import time

import click

from mev_share_analysis.config import load_config
from mev_share_analysis.errors import ConfigError
from mev_share_analysis.models.config import AnalysisConfig, default_workers
from mev_share_analysis.runner import read_stats, run_scan, run_sync


def _cfg(ctx: click.Context) -> AnalysisConfig:
    return ctx.obj["config"]


@click.group(invoke_without_command=True)
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """mev-share-analysis - MEV-Share hint landing and refund analysis."""
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    ctx.obj["config"] = cfg

    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if ctx.invoked_subcommand is None:
        click.echo("No command provided")


# ── Ingestion ──────────────────────────────────────────


@cli.command()
@click.option("--block-start", type=int, default=None, help="First block (default: API min block)")
@click.option("--block-end", type=int, default=None, help="Last block (default: follow the head)")
@click.option("--offset", type=int, default=0, show_default=True, help="Skip this many events")
@click.pass_context
def events(
    ctx: click.Context,
    block_start: int | None,
    block_end: int | None,
    offset: int,
) -> None:
    """Retrieve MEV-Share events from the history API and save them to the db."""
    cfg = _cfg(ctx)
    click.echo(f"Syncing MEV-Share history from {cfg.api.history_url}")

    start = time.monotonic()
    cursor = asyncio.run(
        run_sync(cfg, block_start=block_start, block_end=block_end, offset=offset)
    )
    elapsed = time.monotonic() - start

    click.echo(f"Took {elapsed:.1f}s to fetch events")
    if cursor is not None:
        click.echo(
            f"Stored {cursor.inserted} events in {cursor.pages} pages "
            f"(offset {cursor.offset}, blocks {cursor.block_start}-{cursor.block_end})"
        )


# ── Scanning ───────────────────────────────────────────


@cli.command("scan-refunds")
@click.pass_context
def scan_refunds(ctx: click.Context) -> None:
    """Scan all existing events in the db for landings and refunds on-chain."""
    cfg = _cfg(ctx)
    click.echo("Retrieving refunds for events in db...")

    report = asyncio.run(run_scan(cfg))

    click.echo(f"Took {report.duration_ms / 1000:.1f}s to scan {report.iterations} events")
    click.echo(
        f"Total landings: {report.landings} | Total refunds: {report.refunds} "
        f"| Total refunded: {report.refunded} wei"
    )
    if report.skipped or report.failed:
        click.echo(f"Skipped: {report.skipped} | Failed: {report.failed}")
    if report.uncovered:
        click.echo(
            f"Not assigned to any of {report.workers} partitions: {report.uncovered} events"
        )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and store statistics."""
    cfg = _cfg(ctx)
    click.echo(f"History API:  {cfg.api.history_url}")
    click.echo(f"RPC URL:      {cfg.chain.rpc_url}")
    click.echo(f"DB path:      {cfg.storage.db_path}")
    click.echo(f"Table:        {cfg.storage.table}")
    click.echo(f"Backoff:      {cfg.sync.backoff_seconds}s")
    click.echo(f"Scan workers: {default_workers()}")

    stats = asyncio.run(read_stats(cfg))
    click.echo("")
    click.echo("Events")
    click.echo(f"  Total:          {stats.total}")
    click.echo(f"  Scanned:        {stats.scanned}")
    click.echo(f"  Landed:         {stats.landed}")
    click.echo(f"  Refunds:        {stats.refunds}")
    click.echo(f"  Total refunded: {stats.total_refunded} wei")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
