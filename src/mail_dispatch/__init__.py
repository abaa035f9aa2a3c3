"""SMTP mail dispatcher with a mock delivery mode.

This package composes MIME messages from mail requests and sends them over
SMTP in one of three connection modes:

- ``NO_AUTH``: plain SMTP without authentication
- ``TLS``: STARTTLS when offered, then login
- ``SSL``: implicit TLS (SMTPS)

When the configured host is ``"mock"`` (the default) messages are written to
the log instead of being sent.

Example:
    Basic usage::

        from mail_dispatch import MailTransportService, load_settings

        service = MailTransportService(load_settings("config.ini"))
        await service.send(["a@example.com"], [], "Hi", "Hello")
"""

from .builder import MessageBuilder, RenderedMessage
from .config_loader import MailSettings, load_settings
from .errors import (
    AddressFormatError,
    AttachmentReadError,
    ConfigurationError,
    MailError,
    SendError,
    ValidationError,
)
from .models import ConnectionMode, MailRequest
from .service import MailTransportService
from .transport_config import MOCK_SERVER_NAME, TransportConfig

__all__ = [
    "MailTransportService",
    "MessageBuilder",
    "RenderedMessage",
    "MailRequest",
    "ConnectionMode",
    "TransportConfig",
    "MOCK_SERVER_NAME",
    "MailSettings",
    "load_settings",
    "MailError",
    "ConfigurationError",
    "ValidationError",
    "AddressFormatError",
    "AttachmentReadError",
    "SendError",
]
