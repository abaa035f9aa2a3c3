# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Rendering of mail requests into MIME messages.

:class:`MessageBuilder` turns a :class:`~mail_dispatch.models.MailRequest` into
a :class:`RenderedMessage`: a ``multipart/mixed`` :class:`EmailMessage` whose
first part is the text body, followed by one part per attachment. Building
performs no network I/O; attachment files are read inline.

Example:
    Rendering a request::

        builder = MessageBuilder(config)
        rendered = builder.build(MailRequest(to=["a@example.com"], subject="Hi", body="Hello"))
        rendered.message["Subject"]   # "Hi"
        rendered.recipients           # ("a@example.com",)
"""

from __future__ import annotations

import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from email.errors import HeaderParseError
from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import format_datetime
from pathlib import Path

from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from .errors import AddressFormatError, AttachmentReadError, ValidationError
from .models import MailRequest
from .transport_config import TransportConfig


@dataclass(frozen=True)
class RenderedMessage:
    """A message ready to be handed to the transport or logged.

    Attributes:
        message: The ``multipart/mixed`` message with all headers set.
        sender: Envelope sender address.
        recipients: To and Cc addresses, in that order.
        body: The text body as supplied by the caller.
        sent_at: Timestamp written to the ``Date`` header.
    """

    message: EmailMessage
    sender: str
    recipients: tuple[str, ...]
    body: str
    sent_at: datetime

    @property
    def parts(self) -> list[EmailMessage]:
        return list(self.message.iter_parts())

    @property
    def attachment_parts(self) -> list[EmailMessage]:
        return self.parts[1:]


def parse_address(raw: str | None, display_name: str | None = None) -> Address:
    """Parse a single address string, optionally in ``Name <addr>`` form.

    Args:
        raw: The address string.
        display_name: Overrides any display name found in ``raw``.

    Raises:
        AddressFormatError: If ``raw`` is empty or not a valid address.
    """
    text = "" if raw is None else str(raw).strip()
    if not text:
        raise AddressFormatError(raw, "empty address")
    try:
        parsed_name, normalized = validate_email(text)
        if "<" not in text:
            # validate_email falls back to the local part as name
            parsed_name = ""
        name = display_name or parsed_name
        if "\r" in name or "\n" in name:
            raise ValueError("display name contains a line break")
        return Address(display_name=name, addr_spec=normalized)
    except (PydanticCustomError, ValueError, HeaderParseError) as exc:
        raise AddressFormatError(raw, str(exc)) from exc


def convert(addresses: Iterable[str | None]) -> list[Address]:
    """Convert address strings into :class:`Address` values, keeping order.

    An empty iterable yields an empty list.

    Raises:
        AddressFormatError: Naming the first string that cannot be parsed.
    """
    return [parse_address(raw) for raw in addresses]


def guess_mime(filename: str) -> tuple[str, str]:
    """Return ``(maintype, subtype)`` for a file name, defaulting to octet-stream."""
    mt, _ = mimetypes.guess_type(filename)
    if not mt:
        return ("application", "octet-stream")
    return tuple(mt.split("/", 1))  # type: ignore[return-value]


class MessageBuilder:
    """Build :class:`RenderedMessage` objects against a transport configuration.

    The configuration supplies the default sender identity for requests that
    do not carry one.
    """

    def __init__(self, config: TransportConfig):
        self.config = config

    def build(self, request: MailRequest) -> RenderedMessage:
        """Validate and render ``request``.

        Side effects on ``request``: ``from_`` is filled with the default
        sender when missing and ``sent_at`` is stamped.

        Raises:
            ValidationError: If ``to`` is missing, empty or holds an empty entry.
            AddressFormatError: If any sender or recipient address is invalid.
            ValidationError: If the subject contains a line break.
            AttachmentReadError: If an attachment file cannot be read.
        """
        if not request.to or any(addr is None or not addr.strip() for addr in request.to):
            raise ValidationError("The given 'to' is null or empty")

        display_name = request.from_display_name
        if request.from_ is None:
            request.from_ = self.config.default_from
            display_name = display_name or self.config.default_from_name
        sender = parse_address(request.from_, display_name)
        to = convert(request.to)
        cc = convert(request.cc)

        msg = EmailMessage()
        try:
            msg["From"] = sender
            msg["To"] = to
            if cc:
                msg["Cc"] = cc
            msg["Subject"] = request.subject
        except ValueError as exc:
            raise ValidationError(f"Invalid header value: {exc}") from exc

        sent_at = datetime.now(timezone.utc)
        msg["Date"] = format_datetime(sent_at)
        request.sent_at = sent_at

        msg.set_content(request.body, subtype=request.sub_type, charset=request.charset)
        msg.make_mixed()
        for path in request.attachments:
            self._attach(msg, Path(path))

        return RenderedMessage(
            message=msg,
            sender=sender.addr_spec,
            recipients=tuple(addr.addr_spec for addr in to + cc),
            body=request.body,
            sent_at=sent_at,
        )

    @staticmethod
    def _attach(msg: EmailMessage, path: Path) -> None:
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise AttachmentReadError(path, exc.strerror or str(exc)) from exc
        maintype, subtype = guess_mime(path.name)
        msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=path.name)
