"""
Session store.

Holds the authenticated session (account info + cookie set) for one
logical account, and exports/imports it so a process restart does not
require another sign-in.
"""
import asyncio
import json
from typing import Any, Dict, Iterable, Optional

from ..exceptions import (
    ProtocolError,
    SerializationError,
    ServiceNotFoundError,
    UnauthenticatedError,
)
from ..logging import get_logger
from .cookies import Cookie, CookieSet
from .models import AccountInfo, AuthenticatedSession

logger = get_logger(__name__)

DEFAULT_COOKIE_HOST = 'www.icloud.com'


class SessionStore:
    """
    Owner of one ``AuthenticatedSession``.

    The store is either empty or holds a fully built session. Cookie merges
    and cookie-header snapshots are serialised through an ``asyncio.Lock``
    so concurrent requests on the same account cannot lose updates.

    Example:
        >>> store = SessionStore()
        >>> store.is_authenticated
        False
        >>> store = SessionStore.from_export(saved)
        >>> store.resolve('findme')
        'https://p00-fmipweb.icloud.com:443'
    """

    def __init__(
        self,
        session: Optional[AuthenticatedSession] = None,
        cookie_host: str = DEFAULT_COOKIE_HOST
    ):
        """
        Initialize the store.

        Args:
            session: Already established session (optional)
            cookie_host: Canonical host the cookie set is scoped to
        """
        self._session = session
        self._cookie_host = cookie_host
        self._lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def cookie_host(self) -> str:
        return self._cookie_host

    @property
    def session(self) -> AuthenticatedSession:
        """
        The current session.

        Raises:
            UnauthenticatedError: If no session is established
        """
        if self._session is None:
            raise UnauthenticatedError("No authenticated session")
        return self._session

    @property
    def account_info(self) -> AccountInfo:
        return self.session.account_info

    def establish(self, session: AuthenticatedSession) -> None:
        """Install a fully built session, replacing any previous one."""
        self._session = session
        logger.debug(f"Session established with {len(session.cookies)} cookies")

    def clear(self) -> None:
        """Forget the current session."""
        self._session = None

    def resolve(self, service_name: str) -> str:
        """
        Resolve a service's base URL.

        Raises:
            UnauthenticatedError: If no session is established
            ServiceNotFoundError: If the account has no such service
        """
        url = self.session.account_info.service_url(service_name)
        if url is None:
            raise ServiceNotFoundError(service_name)
        return url

    async def merge_cookies(self, cookies: Iterable[Cookie]) -> int:
        """
        Merge response cookies into the session's cookie set.

        Returns:
            Number of cookies merged

        Raises:
            UnauthenticatedError: If no session is established
        """
        async with self._lock:
            return self.session.cookies.merge(cookies)

    async def cookie_header(self) -> str:
        """Snapshot of the outgoing ``Cookie`` header value."""
        async with self._lock:
            return self.session.cookies.header_value()

    # =========================================================================
    # Export / import
    # =========================================================================

    def export(self) -> Dict[str, Any]:
        """
        Export the session in its persistable shape.

        Returns:
            ``{"cookies": [...], "accountInfo": {...}}``

        Raises:
            UnauthenticatedError: If no session is established
        """
        session = self.session
        return {
            'cookies': session.cookies.to_list(),
            'accountInfo': session.account_info.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.export())

    def import_state(self, data: Any) -> None:
        """
        Replace the current session with previously exported state.

        The current session is left untouched if the state is malformed.

        Raises:
            SerializationError: If the state is malformed
        """
        self._session = self._parse_export(data, self._cookie_host)
        logger.debug("Session imported from exported state")

    @classmethod
    def from_export(
        cls,
        data: Any,
        cookie_host: str = DEFAULT_COOKIE_HOST
    ) -> 'SessionStore':
        """
        Create a store from ``export()`` output.

        Raises:
            SerializationError: If the state is malformed
        """
        return cls(cls._parse_export(data, cookie_host), cookie_host)

    @classmethod
    def from_json(cls, json_str: str, cookie_host: str = DEFAULT_COOKIE_HOST) -> 'SessionStore':
        try:
            data = json.loads(json_str)
        except ValueError as e:
            raise SerializationError(f"Exported session is not valid JSON: {e}") from e
        return cls.from_export(data, cookie_host)

    @staticmethod
    def _parse_export(data: Any, cookie_host: str) -> AuthenticatedSession:
        if not isinstance(data, dict):
            raise SerializationError("Exported session must be an object")
        if 'cookies' not in data or 'accountInfo' not in data:
            raise SerializationError("Exported session needs 'cookies' and 'accountInfo'")

        cookies = CookieSet.from_list(cookie_host, data['cookies'])
        names = [item['name'] for item in data['cookies']]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise SerializationError(f"Exported session has duplicate cookies: {duplicates}")
        if len(cookies) != len(data['cookies']):
            raise SerializationError("Exported session has cookies for a foreign domain")
        try:
            account_info = AccountInfo.from_dict(data['accountInfo'])
        except ProtocolError as e:
            raise SerializationError(f"Exported account info is malformed: {e}") from e

        return AuthenticatedSession(account_info=account_info, cookies=cookies)
