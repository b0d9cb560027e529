"""CLI entry point for claude-session-viewer."""

import logging

import click
import uvicorn

from .trash import TrashManager


@click.group()
def main():
    """Browse, search and tidy up Claude Code session logs."""
    pass


@main.command()
@click.option("--port", default=3456, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    help="Log level for the server and the viewer.",
)
def serve(port: int, host: str, log_level: str):
    """Start the web interface."""
    # uvicorn only configures its own loggers
    logging.basicConfig(
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("claude_session_viewer").setLevel(log_level.upper())
    click.echo(f"Starting claude-session-viewer on http://{host}:{port}")
    uvicorn.run(
        "claude_session_viewer.server:app",
        host=host,
        port=port,
        reload=False,
        log_level=log_level,
    )


@main.command()
def cleanup():
    """Delete trashed sessions past their retention period."""
    result = TrashManager().cleanup_expired()
    click.echo(f"Deleted {result.deleted_count} expired sessions, {result.remaining_count} remain in trash")
