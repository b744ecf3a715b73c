"""
FindMyClient - High-level async client for iCloud Find My.

Example:
    >>> async with FindMyClient() as findmy:
    ...     await findmy.authenticate("user@example.com", password)
    ...     for device in await findmy.get_devices():
    ...         print(device.name, device.battery)
"""
from typing import Any, Dict, List, Optional

from .core.api import AiohttpTransport, ClientConfig, HttpTransport, RequestDispatcher
from .core.auth import Credentials, HandshakeSession
from .core.logging import get_logger
from .core.session import SessionStore
from .device import FindMyDevice


FINDME_SERVICE = 'findme'
REFRESH_CLIENT_PATH = '/fmipservice/client/web/refreshClient'


class FindMyClient:
    """
    High-level async client owning one session store.

    Supports two ways of getting a session:

    1. Sign in with credentials:
        >>> client = FindMyClient()
        >>> await client.authenticate("user@example.com", password)
        >>> saved = client.export_auth_data()

    2. Resume previously exported state:
        >>> client = FindMyClient()
        >>> client.import_auth_data(saved)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[HttpTransport] = None
    ):
        """
        Initialize the client.

        Args:
            config: Optional client configuration
            transport: Optional HTTP transport; an aiohttp transport is
                created (and closed by ``close()``) when omitted
        """
        self._config = config or ClientConfig.default()
        self._owns_transport = transport is None
        self._transport: HttpTransport = transport or AiohttpTransport(self._config)
        self._store = SessionStore(cookie_host=self._config.endpoints.cookie_host)
        self._dispatcher = RequestDispatcher(self._store, self._transport, self._config)
        self._verification_required = False
        self._logger = get_logger('findmypy.client')

    # =========================================================================
    # Context manager
    # =========================================================================

    async def __aenter__(self) -> 'FindMyClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            await self._transport.close()

    # =========================================================================
    # Session management
    # =========================================================================

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def verification_required(self) -> bool:
        """True if the last sign-in deferred a second-factor request."""
        return self._verification_required

    async def authenticate(self, username: str, password: str) -> None:
        """
        Sign in and install the new session.

        The previous session, if any, is kept when the sign-in fails.

        Raises:
            FindMyError: Any handshake failure
        """
        handshake = HandshakeSession(self._transport, self._config)
        session = await handshake.start(Credentials(username=username, password=password))
        self._verification_required = handshake.verification_required
        self._store.establish(session)

    def is_authenticated(self) -> bool:
        return self._store.is_authenticated

    def clear(self) -> None:
        """Forget the current session."""
        self._store.clear()
        self._verification_required = False

    def export_auth_data(self) -> Dict[str, Any]:
        """
        Export the session for reuse after a restart.

        Raises:
            UnauthenticatedError: If no session is established
        """
        return self._store.export()

    def import_auth_data(self, data: Dict[str, Any]) -> None:
        """
        Install previously exported session state.

        Raises:
            SerializationError: If the state is malformed
        """
        self._store.import_state(data)
        self._logger.info("Session imported")

    # =========================================================================
    # Requests
    # =========================================================================

    async def send_icloud_request(self, service: str, path: str, payload: Any = None) -> Any:
        """Send an authenticated request to a named iCloud service."""
        return await self._dispatcher.send(service, path, payload)

    async def get_devices(self) -> List[FindMyDevice]:
        """
        List the devices of the account (and its family).

        Returns:
            List of FindMyDevice
        """
        reply = await self.send_icloud_request(
            FINDME_SERVICE,
            REFRESH_CLIENT_PATH,
            {
                'clientContext': {
                    'fmly': True,
                    'shouldLocate': True,
                    'deviceListVersion': 1,
                    'selectedDevice': 'all',
                },
            }
        )
        content = reply.get('content', []) if isinstance(reply, dict) else []
        if not isinstance(content, list):
            return []
        return [FindMyDevice(self, info) for info in content if isinstance(info, dict)]
