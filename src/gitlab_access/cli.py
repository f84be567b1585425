"""Command line entry point for gitlab-access."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import uvicorn

from .config import settings
from .errors import ConfigError
from .logging_config import configure_logging
from .main import create_app
from .routing import FileConfigSource, build_demux, validate

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="gitlab-access")
def cli():
    """gitlab-access - forwards GitLab webhooks to plugin endpoints."""


@cli.command()
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the routing configuration file.",
)
@click.option("--host", type=str, default=None, help="Address to listen on.")
@click.option("--port", type=int, default=None, help="Port to listen on.")
@click.option(
    "--user-agent",
    type=str,
    default=None,
    help="The value for header of User-Agent sent in the event request.",
)
@click.option("--enable-debug", is_flag=True, help="Whether to enable debug mode.")
@click.option(
    "--grace-period",
    type=int,
    default=None,
    help="Seconds to wait for open connections when shutting down.",
)
def serve(
    config_file: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    user_agent: Optional[str],
    enable_debug: bool,
    grace_period: Optional[int],
):
    """Run the webhook receiver."""
    overrides = {
        "config_file": config_file,
        "host": host,
        "port": port,
        "user_agent": user_agent,
        "grace_period": grace_period,
    }
    run_settings = settings.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )
    if enable_debug:
        run_settings = run_settings.model_copy(update={"enable_debug": True})

    configure_logging(run_settings.log_level, run_settings.enable_debug)
    logger.info(f"Starting gitlab-access with routing file {run_settings.config_file}")

    uvicorn.run(
        create_app(run_settings),
        host=run_settings.host,
        port=run_settings.port,
        timeout_graceful_shutdown=run_settings.grace_period,
        log_config=None,
    )


@cli.command("check-config")
@click.argument(
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=False,
)
def check_config(config_file: Optional[Path]):
    """Validate a routing file and print the resulting routing table."""
    path = config_file or settings.config_file

    try:
        version, config = FileConfigSource(path).fetch()
        validate(config.plugins)
    except ConfigError as e:
        click.echo(f"Invalid configuration {path}: {e}", err=True)
        sys.exit(1)

    demux = build_demux(config.plugins)
    click.echo(f"{path} is valid ({len(config.plugins)} plugins, version {version[:12]})\n")

    for event in sorted(demux):
        click.echo(f"  {event}")
        for endpoint in demux[event]:
            click.echo(f"    -> {endpoint}")

    idle = [p.name for p in config.plugins if not p.events]
    if idle:
        click.echo(f"\nPlugins without events (receive nothing): {', '.join(idle)}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
