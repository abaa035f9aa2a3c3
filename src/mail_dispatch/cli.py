"""Command-line interface for mail-dispatch.

Usage:
    mail-dispatch send --to a@example.com --subject "Hi" --body "Hello"
    mail-dispatch send -c /etc/mail-dispatch/config.ini --to a@example.com \\
        --cc b@example.com --attach report.pdf --subject "Report" --body "See attached"
    mail-dispatch show-config -c /etc/mail-dispatch/config.ini

Settings come from the ``[mail]`` section of the config file with
``MAIL_SMTP_*`` environment variables as fallbacks. Without any setting the
host is ``mock`` and the message is printed to the log instead of being sent.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mail_dispatch.config_loader import load_settings
from mail_dispatch.errors import MailError
from mail_dispatch.models import MailRequest
from mail_dispatch.service import MailTransportService

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def _configure_logging() -> None:
    log_level = os.getenv("MAIL_DISPATCH_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_service(config_path: str | None) -> MailTransportService:
    return MailTransportService(loader=lambda: load_settings(config_path))


@click.group()
@click.version_option(package_name="mail-dispatch")
def main() -> None:
    """mail-dispatch CLI - compose and send mail over SMTP."""
    _configure_logging()


@main.command("send")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="INI file with a [mail] section (default: $MAIL_DISPATCH_CONFIG or config.ini).")
@click.option("--to", "to", multiple=True, required=True, help="Recipient address (repeatable).")
@click.option("--cc", "cc", multiple=True, help="Carbon-copy address (repeatable).")
@click.option("--from", "sender", default=None, help="Sender address (default: mail.smtp.from).")
@click.option("--from-name", default=None, help="Sender display name.")
@click.option("--subject", "-s", default="", help="Subject line.")
@click.option("--body", "-b", default="", help="Message body.")
@click.option("--html", is_flag=True, help="Send the body as text/html.")
@click.option("--charset", default="utf-8", show_default=True, help="Body charset.")
@click.option("--attach", "-a", "attachments", multiple=True, type=click.Path(dir_okay=False),
              help="File to attach (repeatable).")
def send_cmd(
    config_path: str | None,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    sender: str | None,
    from_name: str | None,
    subject: str,
    body: str,
    html: bool,
    charset: str,
    attachments: tuple[str, ...],
) -> None:
    """Send a single mail.

    Example:

        mail-dispatch send --to a@example.com --subject Hi --body Hello
    """
    try:
        service = _build_service(config_path)
        request = MailRequest(
            to=list(to),
            cc=list(cc),
            from_=sender,
            from_display_name=from_name,
            subject=subject,
            body=body,
            charset=charset,
            sub_type="html" if html else "plain",
            attachments=list(attachments),
        )
        run_async(service.send_mail(request))
    except MailError as exc:
        print_error(str(exc))
        sys.exit(1)

    target = "logged (mock mode)" if service.use_mock else f"sent via {service.config.host}:{service.config.port}"
    print_success(f"Mail to {', '.join(to)} {target} at {request.sent_at.isoformat()}")


@main.command("show-config")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), default=None,
              help="INI file with a [mail] section (default: $MAIL_DISPATCH_CONFIG or config.ini).")
def show_config_cmd(config_path: str | None) -> None:
    """Show the resolved transport configuration."""
    try:
        service = _build_service(config_path)
    except MailError as exc:
        print_error(str(exc))
        sys.exit(1)

    config = service.config
    rows: dict[str, Any] = {
        "connection": config.connection.value,
        "mock": config.use_mock,
        **config.as_properties(),
        "username": config.username or "-",
        "password": "********" if config.password else "-",
        "from": config.default_from,
        "from.name": config.default_from_name or "-",
        "debug": config.debug,
    }
    table = Table(title="Mail transport")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in rows.items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    main()
