"""Command-line interface for the notification service."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from qa_notify.app.runner import ApplicationRunner
from qa_notify.config import (
    ConfigError,
    load_config,
    log_config_error,
    suggest_config_fix,
)
from qa_notify.config.models import AppConfig
from qa_notify.notifications.exceptions import NotificationError
from qa_notify.notifications.models import ChannelType, NotificationPayload
from qa_notify.notifications.templates import load_builtin_templates
from qa_notify.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("qa-notify")
except PackageNotFoundError:
    __version__ = "unknown"


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Reject directories and non-YAML files.

    Raises:
        click.BadParameter: If validation fails
    """
    if value is None:
        return value
    if value.exists() and value.is_dir():
        raise click.BadParameter("Configuration path must be a file, not a directory")
    if value.suffix.lower() not in {".yaml", ".yml"}:
        raise click.BadParameter("Configuration file must have a .yaml or .yml extension")
    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Normalize the log level to uppercase.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value
    normalized = value.upper().strip()
    if normalized not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(VALID_LOG_LEVELS)}'
        )
    return normalized


def _load_app_config(ctx: click.Context) -> AppConfig:
    """Load config for a subcommand and set up logging from it."""
    config_path: Path | None = ctx.obj.get("config_path")
    log_level: str | None = ctx.obj.get("log_level")
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        log_config_error(exc, level=logging.DEBUG)
        message = f"Configuration error: {exc}"
        suggestion = suggest_config_fix(exc)
        if suggestion:
            message = f"{message}\nHint: {suggestion}"
        raise click.ClickException(message) from exc

    configure_logging(
        log_level=log_level or config.logging.level,
        log_format=config.logging.format,
        enable_console=config.logging.console,
    )
    return config


@click.group()
@click.option(
    "--config", "-c",
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help="YAML configuration file. Environment variables override its values.",
)
@click.option(
    "--log-level", "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Override the configured log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.version_option(version=__version__, prog_name="qa-notify")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """QA notification service.

    Dispatches notifications over email, SMS, push and webhooks, either
    directly or through RabbitMQ.

    Examples:

        # Run the queue consumer
        qa-notify --config config.yaml worker

        # Show queue depth
        qa-notify queue-status

        # Send one email
        qa-notify send --channel email --to user@example.com --subject Hi --message Hello
    """
    _ = ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level


@cli.command()
@click.pass_context
def worker(ctx: click.Context) -> None:
    """Consume the notification queue until SIGINT or SIGTERM."""
    config = _load_app_config(ctx)
    runner = ApplicationRunner(config)
    try:
        asyncio.run(runner.run_worker())
    except KeyboardInterrupt:
        click.echo("\nShutting down gracefully...")
    except NotificationError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("queue-status")
@click.pass_context
def queue_status(ctx: click.Context) -> None:
    """Print primary and dead-letter queue counts as JSON."""
    config = _load_app_config(ctx)

    async def run() -> dict[str, int]:
        runner = ApplicationRunner(config)
        try:
            status = await runner.dispatcher.get_queue_status()
        finally:
            await runner.close()
        return status.to_dict()

    try:
        counts = asyncio.run(run())
    except NotificationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(counts, indent=2))


@cli.command()
@click.option(
    "--channel",
    type=click.Choice([channel.value for channel in ChannelType]),
    required=True,
    help="Channel to send on",
)
@click.option("--to", "to", required=True, help="Destination address, number, token or URL")
@click.option("--subject", default="", help="Subject or title")
@click.option("--message", required=True, help="Plain-text body")
@click.option(
    "--priority",
    type=click.Choice(["urgent", "high", "normal", "low"]),
    default="normal",
    show_default=True,
    help="Notification priority",
)
@click.option(
    "--type", "notification_type",
    type=click.Choice(["CRITICAL", "HIGH", "NORMAL", "LOW"], case_sensitive=False),
    default="NORMAL",
    show_default=True,
    help="Notification type considered by the strategy",
)
@click.pass_context
def send(
    ctx: click.Context,
    channel: str,
    to: str,
    subject: str,
    message: str,
    priority: str,
    notification_type: str,
) -> None:
    """Dispatch one notification through the smart dispatcher."""
    config = _load_app_config(ctx)
    payload = NotificationPayload(
        channel=channel,
        to=to,
        subject=subject,
        message=message,
        data={"priority": priority, "type": notification_type.upper()},
    )

    async def run() -> tuple[str, str | None]:
        runner = ApplicationRunner(config)
        async with runner:
            receipt = await runner.dispatcher.notify(payload)
        return receipt.strategy.value, receipt.message_id

    try:
        strategy, message_id = asyncio.run(run())
    except NotificationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Dispatched via {strategy} (message id: {message_id})")


@cli.command()
@click.option("--locale", default="en", show_default=True, help="Locale used for the subject column")
def templates(locale: str) -> None:
    """List the built-in notification templates."""
    for template in load_builtin_templates():
        subject = template.localized("subject", locale) or ""
        click.echo(f"{template.name:<22} {template.category:<13} {template.priority.value:<7} {subject}")
