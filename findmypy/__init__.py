"""
findmypy - Async Python client for iCloud Find My.

Usage:
    >>> from findmypy import FindMyClient
    >>>
    >>> async with FindMyClient() as findmy:
    ...     await findmy.authenticate("user@example.com", password)
    ...     devices = await findmy.get_devices()
"""
import logging
from .client import FindMyClient
from .device import FindMyDevice, DeviceLocation

# Configuration
from .core.api import (
    ClientConfig,
    EndpointConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    HttpTransport,
    AiohttpTransport,
    TransportResponse,
    RequestDispatcher,
)

# Authentication
from .core.auth import Credentials, HandshakeSession, HandshakeState, SessionTokens

# Session management
from .core.session import (
    AccountInfo,
    AuthenticatedSession,
    Cookie,
    CookieSet,
    SessionStore,
)

# Errors
from .core.exceptions import (
    ErrorKind,
    FindMyError,
    NetworkError,
    ProtocolError,
    AuthenticationError,
    UnauthenticatedError,
    SerializationError,
    ServiceNotFoundError,
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for findmypy modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'findmypy',
        'findmypy.client',
        'findmypy.auth',
        'findmypy.dispatcher',
        'findmypy.transport',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'FindMyClient',
    'FindMyDevice',
    'DeviceLocation',
    'ClientConfig',
    'EndpointConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'HttpTransport',
    'AiohttpTransport',
    'TransportResponse',
    'RequestDispatcher',
    'Credentials',
    'HandshakeSession',
    'HandshakeState',
    'SessionTokens',
    'AccountInfo',
    'AuthenticatedSession',
    'Cookie',
    'CookieSet',
    'SessionStore',
    'ErrorKind',
    'FindMyError',
    'NetworkError',
    'ProtocolError',
    'AuthenticationError',
    'UnauthenticatedError',
    'SerializationError',
    'ServiceNotFoundError',
    'setup_logging',
]
