"""
Authenticated request dispatcher.

Sends JSON requests to the named iCloud services of an established session
and folds the cookies each response sets back into the session store.
"""
import json
from typing import Any, Optional

from ..exceptions import NetworkError, ProtocolError, UnauthenticatedError
from ..logging import get_logger
from ..session import SessionStore, parse_set_cookie_headers
from .config import ClientConfig
from .transport import HttpTransport


class RequestDispatcher:
    """
    Issues authenticated calls on behalf of one ``SessionStore``.

    A failed call never clears or invalidates the store; the caller decides
    whether to retry or sign in again.

    Example:
        >>> dispatcher = RequestDispatcher(store, transport)
        >>> reply = await dispatcher.send('findme', '/fmipservice/client/web/refreshClient', {...})
    """

    def __init__(
        self,
        store: SessionStore,
        transport: HttpTransport,
        config: Optional[ClientConfig] = None
    ):
        """
        Initialize the dispatcher.

        Args:
            store: Session store to read from and merge cookies into
            transport: HTTP transport
            config: Client configuration (uses defaults if not provided)
        """
        self._store = store
        self._transport = transport
        self._config = config or ClientConfig.default()
        self._logger = get_logger('findmypy.dispatcher')

    @property
    def store(self) -> SessionStore:
        return self._store

    @staticmethod
    def build_url(base_url: str, path: str) -> str:
        if not path:
            return base_url
        return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

    async def send(self, service_name: str, path: str, payload: Any = None) -> Any:
        """
        Send a request to a named service.

        Args:
            service_name: Key in the account's service map (e.g. ``findme``)
            path: Path appended to the service base URL
            payload: JSON-serialisable request body (``{}`` if omitted)

        Returns:
            Decoded JSON response body

        Raises:
            UnauthenticatedError: If no session is established (no request is made)
            ServiceNotFoundError: If the account has no such service
            NetworkError: On transport failure or non-success status
            ProtocolError: If the response sets no cookies or is not JSON
        """
        if not self._store.is_authenticated:
            raise UnauthenticatedError("Cannot send request without an authenticated session")

        url = self.build_url(self._store.resolve(service_name), path)

        headers = self._config.base_headers()
        cookie_header = await self._store.cookie_header()
        if cookie_header:
            headers['Cookie'] = cookie_header

        body = json.dumps(payload if payload is not None else {})

        self._logger.debug(f"Dispatching request to {service_name}{path}")
        response = await self._transport.post(url, headers, body)

        if not response.ok:
            self._logger.warning(f"Request to {service_name}{path} failed with status {response.status}")
            raise NetworkError(
                f"Request to {service_name} failed with status {response.status}",
                status=response.status
            )

        cookies = parse_set_cookie_headers(response.set_cookie_headers())
        # TODO: confirm against captured traffic whether every service reply
        # rotates cookies, and drop this check for services that do not.
        if not cookies:
            raise ProtocolError(f"Response from {service_name} set no cookies", status=response.status)

        merged = await self._store.merge_cookies(cookies)
        self._logger.debug(f"Merged {merged} cookies from {service_name}")

        return response.json()
