"""CLI command for reclaiming chunks left behind by aborted uploads.

Usage:
    audiovault sweep
    audiovault sweep --dry-run
    audiovault sweep --grace-seconds 0 --database-url sqlite+aiosqlite:///audio.db
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from audiovault.config import settings
from audiovault.errors import AudioStoreError
from audiovault.storage.chunked import ChunkedBlobStore
from audiovault.storage.reconcile import OrphanSweeper, SweepReport

app = typer.Typer(help="Delete orphaned audio chunks")


@app.callback(invoke_without_command=True)
def sweep(
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Report orphaned chunks without deleting them",
    ),
    grace_seconds: int = typer.Option(
        settings.orphan_grace_seconds,
        "--grace-seconds",
        "-g",
        min=0,
        help="Leave chunks newer than this alone (uploads may still be running)",
    ),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        "-d",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """Run one orphan reconciliation pass."""
    console = Console()
    try:
        report = asyncio.run(_sweep(database_url, grace_seconds, dry_run))
    except AudioStoreError as e:
        console.print(f"[red]Sweep failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    verb = "Would delete" if report.dry_run else "Deleted"
    console.print(
        f"[bold]{verb}[/bold] chunks of {len(report.orphaned_ids)} orphaned upload(s)"
        f" older than {report.cutoff.isoformat()}"
    )
    for blob_id in report.orphaned_ids:
        console.print(f"  [cyan]{blob_id}[/cyan]")
    if not report.dry_run:
        console.print(f"[green]{report.chunks_deleted} chunk(s) removed[/green]")


async def _sweep(database_url: str | None, grace_seconds: int, dry_run: bool) -> SweepReport:
    store = ChunkedBlobStore()
    handle = await store.initialize(database_url)
    try:
        return await OrphanSweeper(store, grace_seconds=grace_seconds).sweep(dry_run=dry_run)
    finally:
        await handle.close()
