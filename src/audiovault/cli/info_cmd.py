"""CLI command for inspecting stored audio.

Usage:
    audiovault info <id>
    audiovault info --database-url sqlite+aiosqlite:///audio.db <id>
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from audiovault.models import BlobMetadata
from audiovault.storage.chunked import ChunkedBlobStore
from audiovault.storage.resolver import resolve_address

app = typer.Typer(help="Show metadata for stored audio")


@app.callback(invoke_without_command=True)
def info(
    blob_id: str = typer.Argument(..., help="Audio file id"),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        "-d",
        help="Database URL (defaults to DATABASE_URL)",
    ),
) -> None:
    """Print metadata and the public address of one audio file."""
    console = Console()
    metadata = asyncio.run(_lookup(database_url, blob_id))
    if metadata is None:
        console.print(f"[yellow]Audio file not found:[/yellow] {blob_id}")
        raise typer.Exit(code=1)

    table = Table(title=f"Audio file {metadata.id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("filename", metadata.filename)
    table.add_row("contentType", metadata.content_type)
    table.add_row("length", str(metadata.length))
    table.add_row("chunks", f"{metadata.chunk_count} x {metadata.chunk_size}")
    table.add_row("createdAt", metadata.created_at.isoformat())
    for key, value in sorted(metadata.tags.items()):
        table.add_row(f"tag:{key}", value)
    table.add_row("url", resolve_address(metadata.id))
    console.print(table)


async def _lookup(database_url: str | None, blob_id: str) -> BlobMetadata | None:
    store = ChunkedBlobStore()
    handle = await store.initialize(database_url)
    try:
        return await store.get_metadata(blob_id)
    finally:
        await handle.close()
