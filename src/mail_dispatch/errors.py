# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by the mail dispatcher.

Validation and rendering errors (``ValidationError``, ``AddressFormatError``,
``AttachmentReadError``) are raised before any SMTP connection is opened.
``SendError`` wraps failures reported by the transport once a connection
exists. Nothing here is retried by the dispatcher.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any


class MailError(Exception):
    """Base class for every error raised by ``mail_dispatch``."""


class ConfigurationError(MailError, ValueError):
    """Raised when a configuration value cannot be interpreted."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(f"Invalid value for {key!r}: {value!r} ({reason})")
        self.key = key
        self.value = value


class ValidationError(MailError, ValueError):
    """Raised when a mail request is missing required fields."""


class AddressFormatError(ValidationError):
    """Raised when an address string cannot be parsed."""

    def __init__(self, address: Any, reason: str | None = None):
        message = f"Invalid email address: {address!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.address = address


class AttachmentReadError(MailError, OSError):
    """Raised when an attachment file cannot be read from disk."""

    def __init__(self, path: Path | str, reason: str | None = None):
        message = f"Cannot read attachment {str(path)!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = Path(path)


class SendError(MailError):
    """Raised when the SMTP transport fails to deliver a message.

    Attributes:
        smtp_code: SMTP reply code extracted from the transport error, if any.
        refused: Recipients refused by the server, mapped to the server reply.
    """

    def __init__(
        self,
        message: str,
        *,
        smtp_code: int | None = None,
        refused: Mapping[str, Any] | None = None,
    ):
        super().__init__(message)
        self.smtp_code = smtp_code
        self.refused = dict(refused or {})
