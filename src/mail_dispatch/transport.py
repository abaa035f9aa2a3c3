# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Scoped SMTP transport acquisition.

:func:`open_transport` creates an aiosmtplib client for a
:class:`~mail_dispatch.transport_config.TransportConfig`, connects and
authenticates it according to the connection mode, and always releases it
when the ``async with`` block exits, whether the block succeeded or raised.

Connection behaviour per mode:

- ``NO_AUTH``: connect, no credential exchange.
- ``TLS``: connect (STARTTLS when the server offers it), then an explicit
  ``login`` with the configured username and password.
- ``SSL``: implicit TLS using the prebuilt SSL context; the credentials are
  bound to the client at construction and the login happens inside
  ``connect()``.

Example:
    Sending through a scoped transport::

        async with open_transport(config) as smtp:
            await smtp.send_message(message, recipients=["a@example.com"])
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import aiosmtplib

from .logger import get_logger
from .models import ConnectionMode
from .transport_config import TransportConfig

logger = get_logger("MailTransport")


def trace(config: TransportConfig, message: str, *args: object) -> None:
    """Log a transport trace line when ``mail.smtp.debug`` is enabled."""
    if config.debug:
        logger.info("[smtp-debug] " + message, *args)


def create_client(config: TransportConfig) -> aiosmtplib.SMTP:
    """Create an unconnected SMTP client for ``config``. No network I/O."""
    options = config.options
    kwargs: dict[str, object] = {
        "hostname": config.host,
        "port": config.port,
        "use_tls": options.use_tls,
        "start_tls": options.start_tls,
    }
    if options.tls_context is not None:
        kwargs["tls_context"] = options.tls_context
    if options.bind_credentials:
        kwargs["username"] = config.username
        kwargs["password"] = config.password
    return aiosmtplib.SMTP(**kwargs)


async def _connect_plain(smtp: aiosmtplib.SMTP, config: TransportConfig) -> None:
    await smtp.connect()


async def _connect_starttls(smtp: aiosmtplib.SMTP, config: TransportConfig) -> None:
    await smtp.connect()
    if config.username is not None:
        trace(config, "Authenticating as %s", config.username)
        await smtp.login(config.username, config.password or "")


async def _connect_smtps(smtp: aiosmtplib.SMTP, config: TransportConfig) -> None:
    # login is performed by connect() with the constructor-bound credentials
    await smtp.connect()


_CONNECTORS: dict[ConnectionMode, Callable[[aiosmtplib.SMTP, TransportConfig], Awaitable[None]]] = {
    ConnectionMode.NO_AUTH: _connect_plain,
    ConnectionMode.TLS: _connect_starttls,
    ConnectionMode.SSL: _connect_smtps,
}


async def release(smtp: aiosmtplib.SMTP, config: TransportConfig) -> None:
    """Close ``smtp``; failures are logged and never raised.

    With ``mail.smtp.quitwait`` the client sends QUIT and waits for the server
    reply, otherwise the connection is dropped.
    """
    try:
        if config.quit_wait and smtp.is_connected:
            await smtp.quit()
        else:
            smtp.close()
        trace(config, "Connection to %s:%s closed", config.host, config.port)
    except Exception as exc:
        logger.warning("Failed to close SMTP connection to %s:%s: %s", config.host, config.port, exc)


@asynccontextmanager
async def open_transport(config: TransportConfig) -> AsyncIterator[aiosmtplib.SMTP]:
    """Yield a connected, authenticated SMTP client released on exit.

    Raises:
        aiosmtplib.SMTPException: If connecting or authenticating fails.
        OSError: On network errors.
    """
    smtp = create_client(config)
    try:
        trace(
            config,
            "Connecting to %s:%s (connection=%s, implicit_tls=%s)",
            config.host,
            config.port,
            config.connection.value,
            config.options.use_tls,
        )
        await _CONNECTORS[config.connection](smtp, config)
        yield smtp
    finally:
        await release(smtp, config)
