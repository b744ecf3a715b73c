"""
HTTP transport.

The sign-in flow and the dispatcher only need "POST a body, get status,
headers and body back". ``HttpTransport`` is that seam; ``AiohttpTransport``
is the production implementation.
"""
import asyncio
import logging
import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

import aiohttp
from multidict import CIMultiDict

from ..exceptions import NetworkError, ProtocolError
from ..logging import get_logger
from .config import ClientConfig


HeaderInput = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


@dataclass
class TransportResponse:
    """
    Status, headers and body of one HTTP exchange.

    Headers keep every value of repeated headers (``Set-Cookie``).
    """
    status: int
    headers: CIMultiDict
    body: bytes = b''

    @classmethod
    def build(cls, status: int, headers: Optional[HeaderInput] = None, body: Any = b'') -> 'TransportResponse':
        """Convenience constructor accepting plain dicts/lists and JSON-able bodies."""
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode('utf-8')
        elif isinstance(body, str):
            body = body.encode('utf-8')
        return cls(status=status, headers=CIMultiDict(headers or ()), body=body)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def set_cookie_headers(self) -> List[str]:
        return self.headers.getall('Set-Cookie', [])

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Raises:
            ProtocolError: If the body is not valid JSON
        """
        try:
            return json.loads(self.body.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise ProtocolError(f"Response body is not valid JSON: {e}") from e


@runtime_checkable
class HttpTransport(Protocol):
    """Protocol for HTTP transports used by the sign-in flow and dispatcher."""

    async def post(self, url: str, headers: Mapping[str, str], body: str) -> TransportResponse:
        """
        POST ``body`` to ``url``.

        Raises:
            NetworkError: On any transport-level failure
        """
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


class AiohttpTransport:
    """
    aiohttp-based transport.

    aiohttp's own cookie handling is disabled; cookies are owned by the
    session store and sent explicitly.

    Example:
        >>> async with AiohttpTransport(ClientConfig.default()) as transport:
        ...     response = await transport.post(url, headers, '{}')
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self._config = config or ClientConfig.default()
        self._session: Optional[aiohttp.ClientSession] = None
        self._logger = get_logger('findmypy.transport')
        # Leave the level to the root logger once basicConfig() has run
        if not logging.getLogger().handlers:
            self._logger.setLevel(self._config.log_level)

    async def __aenter__(self) -> 'AiohttpTransport':
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session is created and open."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(**self._config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                cookie_jar=aiohttp.DummyCookieJar(),
                **self._config.get_session_kwargs()
            )
        return self._session

    async def post(self, url: str, headers: Mapping[str, str], body: str) -> TransportResponse:
        session = await self._ensure_session()
        proxy = self._config.proxy.to_aiohttp_proxy() if self._config.proxy else None

        self._logger.debug(f"POST {url}")

        try:
            async with session.post(url, data=body, headers=dict(headers), proxy=proxy) as response:
                content = await response.read()
                self._logger.debug(f"POST {url} -> {response.status}")
                return TransportResponse(
                    status=response.status,
                    headers=CIMultiDict(response.headers),
                    body=content
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._logger.error(f"Network error on POST {url}: {e!r}")
            raise NetworkError(f"Network error: {e!r}") from e

    async def close(self) -> None:
        """Close transport and release resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
