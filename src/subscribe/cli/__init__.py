"""CLI commands using Typer."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from subscribe.config import ConfigError, Settings, describe_settings, load_settings

console = Console()
app = typer.Typer(name="subscribe", help="Mailing list subscription server")

logger = logging.getLogger("subscribe.cli")


def _load(config: Path | None, **overrides) -> Settings:
    try:
        return load_settings(config, **overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def version():
    """Show version information."""
    from subscribe import __version__

    typer.echo(f"subscribe v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on"),
    base_path: str | None = typer.Option(
        None, "--base-path", "-b", help="Path prefix, e.g. /subscribe"
    ),
    base_url: str | None = typer.Option(
        None, "--base-url", "-u", help="Public base URL used in confirmation links"
    ),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Logging level"),
    config: Path | None = typer.Option(None, "--config", "-C", help="JSON configuration file"),
    log_file: str | None = typer.Option(None, "--log-file", "-L", help="Also log to this file"),
):
    """Run the subscription server."""
    import uvicorn

    from subscribe.logging import get_uvicorn_log_config, setup_logging
    from subscribe.main import create_app

    settings = _load(
        config,
        port=port,
        base_path=base_path,
        base_url=base_url,
        log_level=log_level,
        log_file=log_file,
    )
    setup_logging(settings)

    for name, value in describe_settings(settings).items():
        logger.info(f"{name}={value}")

    if not settings.mailgun_api_key:
        logger.error("MAILGUN_API_KEY is not set")
        raise typer.Exit(1)
    if not settings.mailgun_list_id:
        logger.error("MAILGUN_LIST_ID is not set")
        raise typer.Exit(1)
    if settings.email_backend == "smtp" and not settings.smtp_configured:
        logger.warning("SMTP is not fully configured; confirmation emails will fail")

    logger.info(f"Starting server on http://{host}:{settings.port}{settings.base_path}")
    uvicorn.run(
        create_app(settings),
        host=host,
        port=settings.port,
        log_config=get_uvicorn_log_config(settings),
    )


@app.command("show-config")
def show_config(
    config: Path | None = typer.Option(None, "--config", "-C", help="JSON configuration file"),
):
    """Print the effective configuration with secrets masked."""
    settings = _load(config)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for name, value in describe_settings(settings).items():
        table.add_row(name, value or "[dim]-[/dim]")

    console.print(table)
