"""Logging helper for the mail dispatcher.

Handlers, level and format are configured once by the entry point
(``logging.basicConfig()`` in :mod:`mail_dispatch.cli`); library modules only
ask for a named logger.

Example:
    Typical usage in a module::

        from mail_dispatch.logger import get_logger

        logger = get_logger("MailTransport")
        logger.info("Connected to %s", host)
"""

import logging


def get_logger(name: str = "MailDispatch") -> logging.Logger:
    """Return the standard library logger bound to ``name``.

    No handlers or formatters are attached here; that responsibility lies
    with the application entry point.

    Args:
        name: The logger name. Defaults to "MailDispatch".
    """
    return logging.getLogger(name)
