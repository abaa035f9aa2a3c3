# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for mail requests.

Models:
    - ConnectionMode: SMTP connection security mode
    - MailRequest: A mail to compose and send
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectionMode(str, Enum):
    """Connection security modes supported by the SMTP transport.

    Attributes:
        NO_AUTH: Plain connection, no credential exchange.
        TLS: Plain connection upgraded with STARTTLS when offered, then login.
        SSL: Implicit TLS from the first byte, credentials bound to the client.
    """

    NO_AUTH = "NO_AUTH"
    TLS = "TLS"
    SSL = "SSL"


def _split_addresses(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, tuple):
        return list(value)
    return value


class MailRequest(BaseModel):
    """A mail to be rendered and sent.

    ``to`` is deliberately not constrained here: an empty or missing list is
    rejected by the message builder with
    :class:`mail_dispatch.errors.ValidationError` before any transport work.

    Attributes:
        to: Primary recipients. A comma separated string is split.
        cc: Carbon-copy recipients, may be empty.
        from_: Sender address (alias ``from``). Filled with the configured
            default sender when missing.
        from_display_name: Optional human-readable sender name.
        subject: Subject line.
        body: Text body.
        charset: Body charset.
        sub_type: Body text subtype (``plain`` or ``html``).
        attachments: Files attached after the body, in order.
        sent_at: Set when the message is rendered for sending.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    to: Annotated[
        list[str | None] | None,
        Field(default=None, description="Primary recipients")
    ]
    cc: Annotated[
        list[str | None],
        Field(default_factory=list, description="Carbon-copy recipients")
    ]
    from_: Annotated[
        str | None,
        Field(default=None, alias="from", description="Sender address")
    ]
    from_display_name: Annotated[
        str | None,
        Field(default=None, description="Sender display name")
    ]
    subject: Annotated[str, Field(default="", description="Subject line")]
    body: Annotated[str, Field(default="", description="Text body")]
    charset: Annotated[str, Field(default="utf-8", description="Body charset")]
    sub_type: Annotated[str, Field(default="plain", description="Body text subtype")]
    attachments: Annotated[
        list[Path],
        Field(default_factory=list, description="Files to attach, in order")
    ]
    sent_at: Annotated[
        datetime | None,
        Field(default=None, description="Timestamp set when the mail is rendered")
    ]

    @field_validator("to", mode="before")
    @classmethod
    def split_to(cls, v: Any) -> Any:
        """Accept a comma separated string for ``to``."""
        return _split_addresses(v)

    @field_validator("cc", mode="before")
    @classmethod
    def split_cc(cls, v: Any) -> Any:
        """Accept ``None`` or a comma separated string for ``cc``."""
        if v is None:
            return []
        return _split_addresses(v)

    @field_validator("attachments", mode="before")
    @classmethod
    def attachments_as_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, Path)):
            return [v]
        return v
