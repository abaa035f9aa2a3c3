# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail transport service: configuration state, strategy selection, delivery.

:class:`MailTransportService` owns the current
:class:`~mail_dispatch.transport_config.TransportConfig` snapshot and sends
:class:`~mail_dispatch.models.MailRequest` objects with one of four delivery
strategies:

===========  ========  ===================================
connection   use_mock  strategy
===========  ========  ===================================
any          True      log the rendered message (mock)
NO_AUTH      False     plain SMTP
TLS          False     SMTP + STARTTLS + explicit login
SSL          False     implicit TLS, bound credentials
===========  ========  ===================================

The mock strategy is selected by configuring the sentinel host ``"mock"``,
which is also the default; it lets application code exercise the whole send
pipeline where no mail server is available.

Example:
    Sending a mail::

        service = MailTransportService(load_settings())
        await service.send(["a@example.com"], [], "Hi", "Hello")

        # after the configuration source changed
        service.reconfigure(load_settings())
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import aiosmtplib

from .builder import MessageBuilder, RenderedMessage
from .config_loader import MailSettings
from .errors import SendError
from .logger import get_logger
from .models import MailRequest
from .prometheus import MailMetrics
from .transport import open_transport, trace
from .transport_config import TransportConfig

SEPARATOR = "\t----"

SettingsSource = Mapping[str, Any] | MailSettings


class MailTransportService:
    """Compose and send mails according to the current transport configuration.

    The configuration snapshot is replaced, never mutated: a send reads the
    snapshot once when it starts and uses it to the end, so sends started
    after :meth:`reconfigure` returns observe the new configuration while
    in-flight sends finish with the old one.

    Attributes:
        logger: Logger receiving configuration dumps and mock messages.
        metrics: Prometheus counters for send outcomes.
    """

    def __init__(
        self,
        settings: SettingsSource | None = None,
        *,
        loader: Callable[[], SettingsSource] | None = None,
        metrics: MailMetrics | None = None,
        logger: logging.Logger | None = None,
    ):
        """Build the initial configuration snapshot.

        Args:
            settings: Flat ``mail.*`` settings. When omitted, ``loader`` is
                called; with neither, every key takes its default (mock mode).
            loader: Callable returning fresh settings, used by
                :meth:`reconfigure` when it is called without arguments.
            metrics: Metrics collector. A private one is created if omitted.
            logger: Custom logger instance. If None, uses default logger.

        Raises:
            ConfigurationError: If a setting cannot be interpreted.
        """
        self.logger = logger or get_logger("MailTransportService")
        self.metrics = metrics or MailMetrics()
        self._loader = loader
        if settings is None and loader is not None:
            settings = loader()
        self._settings = settings
        self._config = self._configure(settings)

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def use_mock(self) -> bool:
        return self._config.use_mock

    @property
    def default_from(self) -> str:
        return self._config.default_from

    # ------------------------------------------------------------ configuration
    def _configure(self, settings: SettingsSource | None) -> TransportConfig:
        config = TransportConfig.from_settings(settings)
        self._log_configuration(config)
        return config

    def _log_configuration(self, config: TransportConfig) -> None:
        self.logger.info("Configuring mail dispatcher with:")
        self.logger.info("\tconnection: %s", config.connection.value)
        for name, value in config.as_properties().items():
            self.logger.info("\t%s: %s", name, value)
        if config.username is not None:
            self.logger.info("\tusername: %s", config.username)
        if config.password is not None:
            self.logger.info("\tpassword set but not displayed")
        self.logger.info("\tfrom: %s", config.default_from)
        if config.use_mock:
            self.logger.info("\tmock delivery enabled, mails are logged and not sent")

    def reconfigure(self, settings: SettingsSource | None = None) -> None:
        """Rebuild the configuration snapshot after the settings changed.

        Mock mode is switched off first and the whole snapshot is then rebuilt
        from the new settings, so mock delivery only comes back when the new
        settings name the mock host again.

        Args:
            settings: The new settings. When omitted, the loader given at
                construction is called, or the last settings are reused.

        Raises:
            ConfigurationError: If a setting cannot be interpreted.
        """
        self.logger.info("Reconfiguring the mail dispatcher")
        self._config = dataclasses.replace(self._config, use_mock=False)
        if settings is None:
            settings = self._loader() if self._loader is not None else self._settings
        self._settings = settings
        self._config = self._configure(settings)

    # ------------------------------------------------------------------ sending
    async def send(
        self,
        to: MailRequest | str | Sequence[str] | None,
        cc: str | Sequence[str] | None = None,
        subject: str = "",
        body: str = "",
        attachments: Sequence[Path | str] | None = None,
    ) -> None:
        """Send a mail built from the given fields.

        Passing a :class:`MailRequest` as ``to`` sends it as is; the other
        arguments are then ignored.

        Raises:
            ValidationError: If ``to`` is missing or empty.
            AddressFormatError: If an address is invalid.
            AttachmentReadError: If an attachment cannot be read.
            SendError: If the SMTP transport fails.
        """
        if isinstance(to, MailRequest):
            await self.send_mail(to)
            return
        request = MailRequest(to=to, cc=cc, subject=subject, body=body, attachments=attachments)
        await self.send_mail(request)

    async def send_mail(self, request: MailRequest) -> None:
        """Render ``request`` and deliver it with the configured strategy.

        The request is rendered before any connection is opened, so
        validation and attachment errors never involve the transport.
        ``request.from_`` and ``request.sent_at`` are filled in as a side
        effect.

        Raises:
            ValidationError: If ``to`` is missing or empty.
            AddressFormatError: If an address is invalid.
            AttachmentReadError: If an attachment cannot be read.
            SendError: If connecting, authenticating or transmitting fails.
        """
        config = self._config
        rendered = MessageBuilder(config).build(request)
        if config.use_mock:
            self._deliver_via_mock(rendered)
            return
        await self._deliver_via_transport(config, rendered)

    def _deliver_via_mock(self, rendered: RenderedMessage) -> None:
        msg = rendered.message
        self.logger.info("Sending mail:")
        for name, value in msg.items():
            self.logger.info("\t%s = %s", name, value)
        self.logger.info("\t%s = %s", "Content-Type", msg.get("Content-Type"))
        self.logger.info("\t%s = %s", "Encoding", msg.get("Content-Transfer-Encoding"))

        self.logger.info(SEPARATOR)
        self.logger.info("%s", rendered.body)
        self.logger.info(SEPARATOR)

        self.logger.info(SEPARATOR)
        self.metrics.inc_mocked()

    async def _deliver_via_transport(self, config: TransportConfig, rendered: RenderedMessage) -> None:
        connection = config.connection.value
        try:
            async with open_transport(config) as smtp:
                errors, response = await smtp.send_message(
                    rendered.message,
                    sender=rendered.sender,
                    recipients=list(rendered.recipients),
                )
        except aiosmtplib.SMTPRecipientsRefused as exc:
            refused = {err.recipient: f"{err.code} {err.message}" for err in exc.recipients}
            raise self._send_failed(config, f"All recipients refused: {refused}", exc, refused=refused) from exc
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise self._send_failed(config, str(exc) or type(exc).__name__, exc) from exc

        if errors:
            refused = {addr: f"{resp.code} {resp.message}" for addr, resp in errors.items()}
            raise self._send_failed(config, f"Recipients refused: {refused}", None, refused=refused)

        self.metrics.inc_sent(connection)
        trace(config, "Message to %s accepted: %s", ", ".join(rendered.recipients), response)

    def _send_failed(
        self,
        config: TransportConfig,
        reason: str,
        exc: BaseException | None,
        *,
        refused: Mapping[str, Any] | None = None,
    ) -> SendError:
        smtp_code = getattr(exc, "code", None) if isinstance(exc, aiosmtplib.SMTPException) else None
        error_info = f"{reason} (SMTP {smtp_code})" if smtp_code else reason
        self.logger.error(
            "Failed to send mail via %s:%s (%s): %s",
            config.host,
            config.port,
            config.connection.value,
            error_info,
        )
        self.metrics.inc_error(config.connection.value)
        return SendError(
            f"Failed to send mail via {config.host}:{config.port}: {error_info}",
            smtp_code=smtp_code,
            refused=refused,
        )
