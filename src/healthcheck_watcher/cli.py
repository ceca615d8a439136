"""CLI for healthcheck-watcher.

Usage:
    healthcheck-watcher run /etc/watcher.env
    healthcheck-watcher test
    healthcheck-watcher send "Deploy finished" --ok
"""

from pathlib import Path

import click

from healthcheck_watcher.config import Config, load_env_files
from healthcheck_watcher.errors import ConfigError, WatcherError
from healthcheck_watcher.logging import configure_logging, get_logger
from healthcheck_watcher.metrics import start_metrics_server
from healthcheck_watcher.watcher import (
    Severity,
    TeamsClient,
    WatcherDaemon,
    build_card,
)

log = get_logger(__name__)


def load_config(ctx: click.Context) -> Config:
    """Build config from the --config file and the environment, or exit."""
    try:
        return Config.from_file(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2) from None


def get_teams_client(config: Config) -> TeamsClient:
    """Get a Teams client from config or exit with error."""
    if not config.teams.webhook_url:
        click.echo("Error: MS_TEAMS_WEBHOOK environment variable not set", err=True)
        raise SystemExit(1)
    return TeamsClient(config.teams.webhook_url, timeout=config.teams.timeout_seconds)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=Path("/etc/healthcheck-watcher/config.yaml"),
    help="Config file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Alert on Docker container deaths, health checks and stderr."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


@main.command("run")
@click.argument(
    "env_files",
    nargs=-1,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.pass_context
def run(ctx: click.Context, env_files: tuple[Path, ...]) -> None:
    """Run the watcher daemon.

    ENV_FILES are KEY=VALUE files loaded into the environment before the
    configuration is read. The process exits non-zero when the Docker event
    stream fails; rely on a supervisor to restart it.
    """
    try:
        load_env_files(env_files)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2) from None

    config = load_config(ctx)
    configure_logging("healthcheck-watcher", "DEBUG" if ctx.obj["verbose"] else config.log_level)

    if config.metrics_port:
        start_metrics_server(port=config.metrics_port)

    try:
        daemon = WatcherDaemon(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2) from None

    try:
        daemon.run()
    except WatcherError as e:
        log.error("Watcher stopped", error=str(e))
        daemon.stop()
        raise SystemExit(1) from None


@main.command("test")
@click.pass_context
def test_alert(ctx: click.Context) -> None:
    """Send a test card to verify the Teams webhook."""
    config = load_config(ctx)
    client = get_teams_client(config)
    card = build_card(
        Severity.OK,
        "healthcheck-watcher",
        "test alert",
        {"stderr_service": config.watch.stderr_service or "(disabled)"},
        summary=config.teams.card_subject,
    )
    if client.send(card):
        click.echo("Test alert sent successfully!")
    else:
        click.echo("Failed to send test alert")
        raise SystemExit(1)


@main.command("send")
@click.argument("message")
@click.option("--title", default="healthcheck-watcher", help="Card title")
@click.option("--ok", "is_ok", is_flag=True, help="Send with the recovered (green) colour")
@click.pass_context
def send(ctx: click.Context, message: str, title: str, is_ok: bool) -> None:
    """Send a custom card to Teams."""
    config = load_config(ctx)
    client = get_teams_client(config)
    severity = Severity.OK if is_ok else Severity.ALERT
    card = build_card(severity, title, message, {}, summary=config.teams.card_subject)
    if client.send(card):
        click.echo("Message sent!")
    else:
        click.echo("Failed to send message")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
