"""CLI commands for audiovault.

Provides command-line interface using Typer:
- audiovault serve: Run the API server
- audiovault sweep: Delete chunks left behind by aborted uploads
- audiovault info: Show metadata for one audio file

Usage:
    audiovault --help
    audiovault serve --port 5000
    audiovault sweep --dry-run
    audiovault info 3f0c1a2b-...
"""

import typer

from audiovault.cli.info_cmd import app as info_app
from audiovault.cli.serve import app as serve_app
from audiovault.cli.sweep_cmd import app as sweep_app
from audiovault.config import settings
from audiovault.observability import configure_logging

app = typer.Typer(
    name="audiovault",
    help="audiovault: chunked storage for chat voice-message audio",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(sweep_app, name="sweep")
app.add_typer(info_app, name="info")


@app.callback()
def callback() -> None:
    """audiovault: chunked storage for chat voice-message audio."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    configure_logging(json_format=False, level=settings.log_level)
    app()


if __name__ == "__main__":
    main()
