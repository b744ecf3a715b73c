"""Logging utilities for findmypy modules."""

import logging

PACKAGE_LOGGER = 'findmypy'


def get_logger(name: str) -> logging.Logger:
    """Get a logger in the ``findmypy`` namespace.

    Names outside the package are nested under it, so ``setup_logging()``
    and handlers on ``findmypy`` see every logger the library creates. A
    logger nobody configured defaults to WARNING while the root logger has
    no handlers; a level set earlier (e.g. by ``setup_logging()``) is kept.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + '.'):
        name = f"{PACKAGE_LOGGER}.{name}"

    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)

    return logger


def mask_username(username: str) -> str:
    """Mask an account name for log output (``jo***@example.com``)."""
    if not username:
        return ''
    local, sep, domain = username.partition('@')
    visible = local[:2]
    return f"{visible}***{sep}{domain}"
