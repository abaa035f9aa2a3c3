# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Flat key/value settings for the mail dispatcher.

The dispatcher consumes a flat mapping of ``mail.*`` keys. This module reads
that mapping from the ``[mail]`` section of an INI file, with environment
variables as fallbacks, and wraps it in :class:`MailSettings` for typed
access.

Example:
    Configuration file format (config.ini)::

        [mail]
        mail.smtp.connection = TLS
        mail.smtp.host = smtp.example.com
        mail.smtp.port = 587
        mail.smtp.from = noreply@example.com
        mail.smtp.from.name = Example Notifications
        mail.smtp.username = mailer
        mail.smtp.password = secret

    Environment fallbacks replace dots with underscores and upper-case the
    key, e.g. ``MAIL_SMTP_HOST`` for ``mail.smtp.host``::

        settings = load_settings("/etc/mail-dispatch/config.ini")
        service = MailTransportService(settings)
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .logger import get_logger

CONFIG_ENV_VAR = "MAIL_DISPATCH_CONFIG"
DEFAULT_CONFIG_PATH = "config.ini"
MAIL_SECTION = "mail"

CONF_CONNECTION = "mail.smtp.connection"
CONF_HOST = "mail.smtp.host"
CONF_PORT = "mail.smtp.port"
CONF_FROM = "mail.smtp.from"
CONF_FROM_NAME = "mail.smtp.from.name"
CONF_USERNAME = "mail.smtp.username"
CONF_PASSWORD = "mail.smtp.password"
CONF_DEBUG = "mail.smtp.debug"
CONF_SMTPS = "mail.smtps"
CONF_QUITWAIT = "mail.smtp.quitwait"

KNOWN_KEYS = (
    CONF_CONNECTION,
    CONF_HOST,
    CONF_PORT,
    CONF_FROM,
    CONF_FROM_NAME,
    CONF_USERNAME,
    CONF_PASSWORD,
    CONF_DEBUG,
    CONF_SMTPS,
    CONF_QUITWAIT,
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

logger = get_logger("MailConfigLoader")


def env_var_for(key: str) -> str:
    """Return the environment variable used as fallback for ``key``."""
    return key.replace(".", "_").upper()


class MailSettings:
    """Read-only view over a flat settings mapping with typed accessors.

    Missing keys and ``None`` values both resolve to the supplied default.
    """

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values = dict(values or {})

    def __contains__(self, key: str) -> bool:
        return self._values.get(key) is not None

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._values.get(key)
        if value is None:
            return default
        return str(value)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        value = self._values.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            return default
        if isinstance(value, bool):
            raise ConfigurationError(key, value, "expected an integer")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(key, value, "expected an integer") from exc

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._values.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        normalized = str(value).strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        raise ConfigurationError(key, value, "expected a boolean")


def load_settings(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load the flat ``mail.*`` settings from an INI file and the environment.

    Values found in the ``[mail]`` section win; for keys absent from the file
    the matching environment variable (see :func:`env_var_for`) is used.
    Keys present in neither are left out so that defaults apply downstream.

    Args:
        config_path: Path to the INI file. Defaults to ``$MAIL_DISPATCH_CONFIG``
            or ``config.ini``. A missing file is not an error.
        environ: Environment mapping, ``os.environ`` when omitted.

    Returns:
        Dictionary of setting keys to raw string values.
    """
    env = os.environ if environ is None else environ
    path = Path(config_path or env.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))

    parser = configparser.ConfigParser(interpolation=None)
    if path.exists():
        parser.read(path)
        logger.debug("Loaded mail settings from %s", path)
    else:
        logger.debug("Config file %s not found, using environment only", path)

    settings: dict[str, str] = {}
    if parser.has_section(MAIL_SECTION):
        for key, value in parser.items(MAIL_SECTION):
            if key not in KNOWN_KEYS:
                logger.warning("Ignoring unknown key in [%s] section: %s", MAIL_SECTION, key)
                continue
            settings[key] = value

    for key in KNOWN_KEYS:
        if key in settings:
            continue
        env_value = env.get(env_var_for(key))
        if env_value is not None:
            settings[key] = env_value
    return settings
