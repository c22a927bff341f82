"""CLI command for running the audio API.

Usage:
    audiovault serve
    audiovault serve --port 5000 --reload
"""

from __future__ import annotations

import typer
from rich.console import Console
from sqlalchemy.engine import make_url

from audiovault.config import settings

app = typer.Typer(help="Run the audiovault API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Bind address"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Listen port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Restart on code changes"),
    workers: int = typer.Option(1, "--workers", "-w", min=1, help="Worker processes"),
    log_level: str = typer.Option("info", "--log-level", "-l", help="uvicorn log level"),
) -> None:
    """Serve /api/chat/audio with uvicorn.

    Each worker builds its own app through the factory, so every process
    gets its own engine and orphan sweeper.
    """
    import uvicorn

    if reload and workers > 1:
        typer.echo("--reload runs a single worker; ignoring --workers")
        workers = 1

    console = Console()
    console.print(f"[bold]audiovault[/bold] on http://{host}:{port}")
    console.print(f"  database:   {make_url(settings.database_url).render_as_string(hide_password=True)}")
    console.print(f"  links:      {settings.api_url}")
    console.print(f"  chunk size: {settings.chunk_size} bytes")
    sweep = (
        f"every {settings.sweep_interval_seconds}s" if settings.sweep_interval_seconds else "disabled"
    )
    console.print(f"  orphan sweep: {sweep} (grace {settings.orphan_grace_seconds}s)")

    uvicorn.run(
        "audiovault.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level.lower(),
    )
