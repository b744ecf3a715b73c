"""iCloud API module - configuration, transport and request dispatch."""
from .config import (
    ClientConfig,
    EndpointConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
)
from .transport import AiohttpTransport, HttpTransport, TransportResponse
from .dispatcher import RequestDispatcher

__all__ = [
    # Configuration
    'ClientConfig',
    'EndpointConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',

    # Transport
    'HttpTransport',
    'AiohttpTransport',
    'TransportResponse',

    # Dispatch
    'RequestDispatcher',
]
