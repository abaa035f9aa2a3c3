# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Transport configuration snapshot for the mail dispatcher.

A :class:`TransportConfig` is built from the flat ``mail.*`` settings when the
service starts and rebuilt from scratch on every reconfiguration. It is never
mutated: a new snapshot replaces the old one.

The low-level transport parameters (authentication, STARTTLS, implicit TLS)
are derived from the connection mode by one handler per mode, collected in
``_OPTION_HANDLERS``.

Example:
    Building a snapshot from settings::

        config = TransportConfig.from_settings({
            "mail.smtp.host": "smtp.example.com",
            "mail.smtp.connection": "SSL",
        })
        config.port            # 465
        config.options.use_tls # True
"""

from __future__ import annotations

import ssl
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .config_loader import (
    CONF_CONNECTION,
    CONF_DEBUG,
    CONF_FROM,
    CONF_FROM_NAME,
    CONF_HOST,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_QUITWAIT,
    CONF_SMTPS,
    CONF_USERNAME,
    MailSettings,
)
from .errors import ConfigurationError
from .models import ConnectionMode

MOCK_SERVER_NAME = "mock"
DEFAULT_FROM = "mock-mailer@mail-dispatch.org"
DEFAULT_PORT = 25
DEFAULT_SSL_PORT = 465


@dataclass(frozen=True)
class TransportOptions:
    """Low-level SMTP client parameters derived from the connection mode.

    Attributes:
        auth: Whether the mode authenticates against the server.
        start_tls: aiosmtplib ``start_tls`` value. ``None`` upgrades the
            connection when the server offers STARTTLS.
        use_tls: Implicit TLS from the first byte (SMTPS).
        tls_context: SSL context used for implicit TLS, created up front.
        bind_credentials: Hand username/password to the client at construction
            so that it logs in as part of ``connect()``.
    """

    auth: bool
    start_tls: bool | None
    use_tls: bool
    tls_context: ssl.SSLContext | None = None
    bind_credentials: bool = False


def _implicit_tls_context(use_tls: bool) -> ssl.SSLContext | None:
    return ssl.create_default_context() if use_tls else None


def _no_auth_options(use_smtps: bool) -> TransportOptions:
    return TransportOptions(
        auth=False,
        start_tls=False,
        use_tls=use_smtps,
        tls_context=_implicit_tls_context(use_smtps),
    )


def _tls_options(use_smtps: bool) -> TransportOptions:
    # STARTTLS and implicit TLS are mutually exclusive
    return TransportOptions(
        auth=True,
        start_tls=False if use_smtps else None,
        use_tls=use_smtps,
        tls_context=_implicit_tls_context(use_smtps),
    )


def _ssl_options(use_smtps: bool) -> TransportOptions:
    return TransportOptions(
        auth=True,
        start_tls=False,
        use_tls=True,
        tls_context=_implicit_tls_context(True),
        bind_credentials=True,
    )


_OPTION_HANDLERS: dict[ConnectionMode, Callable[[bool], TransportOptions]] = {
    ConnectionMode.NO_AUTH: _no_auth_options,
    ConnectionMode.TLS: _tls_options,
    ConnectionMode.SSL: _ssl_options,
}


def parse_connection_mode(value: Any) -> ConnectionMode:
    """Convert a configuration value into a :class:`ConnectionMode`.

    Raises:
        ConfigurationError: If the value names no known mode.
    """
    if isinstance(value, ConnectionMode):
        return value
    try:
        return ConnectionMode(str(value).strip().upper())
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in ConnectionMode)
        raise ConfigurationError(CONF_CONNECTION, value, f"expected one of {allowed}") from exc


def default_port(connection: ConnectionMode, use_smtps: bool = False) -> int:
    """Return the port used when none is configured."""
    if connection is ConnectionMode.SSL or use_smtps:
        return DEFAULT_SSL_PORT
    return DEFAULT_PORT


@dataclass(frozen=True)
class TransportConfig:
    """Immutable snapshot of the SMTP transport configuration.

    ``options`` is derived from ``connection`` and ``use_smtps`` whenever a
    snapshot is created, including through :func:`dataclasses.replace`.
    """

    host: str = MOCK_SERVER_NAME
    port: int = DEFAULT_PORT
    connection: ConnectionMode = ConnectionMode.NO_AUTH
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    default_from: str = DEFAULT_FROM
    default_from_name: str | None = None
    debug: bool = False
    use_smtps: bool = False
    quit_wait: bool = False
    use_mock: bool = True
    options: TransportOptions = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "connection", parse_connection_mode(self.connection))
        handler = _OPTION_HANDLERS[self.connection]
        object.__setattr__(self, "options", handler(self.use_smtps))

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any] | MailSettings | None) -> TransportConfig:
        """Build a snapshot from the flat ``mail.*`` settings.

        Raises:
            ConfigurationError: If the connection mode, port or a boolean flag
                cannot be interpreted.
        """
        if not isinstance(settings, MailSettings):
            settings = MailSettings(settings)

        host = settings.get(CONF_HOST, MOCK_SERVER_NAME)
        connection = parse_connection_mode(settings.get(CONF_CONNECTION, ConnectionMode.NO_AUTH.value))
        use_smtps = settings.get_bool(CONF_SMTPS, False)
        port = settings.get_int(CONF_PORT, default_port(connection, use_smtps))

        return cls(
            host=host,
            port=port,
            connection=connection,
            username=settings.get(CONF_USERNAME),
            password=settings.get(CONF_PASSWORD),
            default_from=settings.get(CONF_FROM, DEFAULT_FROM),
            default_from_name=settings.get(CONF_FROM_NAME),
            debug=settings.get_bool(CONF_DEBUG, False),
            use_smtps=use_smtps,
            quit_wait=settings.get_bool(CONF_QUITWAIT, False),
            use_mock=host == MOCK_SERVER_NAME,
        )

    def as_properties(self) -> dict[str, str]:
        """Return the transport parameters as flat ``mail.smtp.*`` properties.

        Credentials are not included.
        """
        options = self.options
        properties = {
            CONF_HOST: self.host,
            CONF_PORT: str(self.port),
            "mail.smtps.quitwait": str(self.quit_wait).lower(),
            "mail.smtp.auth": str(options.auth).lower(),
        }
        if options.start_tls is None:
            properties["mail.smtp.starttls.enable"] = "true"
        if options.use_tls:
            properties["mail.smtp.socketFactory.port"] = str(self.port)
            properties["mail.smtp.socketFactory.class"] = "ssl.SSLContext"
        return properties
