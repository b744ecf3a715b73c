"""
Cookie parsing and the per-session cookie set.

``Set-Cookie`` headers are parsed one at a time with ``SimpleCookie`` (the
parser aiohttp uses for ``ClientResponse.cookies``) into ``Cookie`` objects
in which every attribute is either present or ``None``. ``CookieSet`` keeps
the cookies of one canonical domain in insertion order.
"""
from dataclasses import dataclass, asdict, fields
from http.cookies import CookieError, Morsel, SimpleCookie
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..exceptions import SerializationError
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass
class Cookie:
    """
    A single cookie as received in a ``Set-Cookie`` header.

    Attributes:
        name: Cookie name
        value: Cookie value, verbatim (quotes are kept)
        domain: ``Domain`` attribute without leading dot, lowercased
        path: ``Path`` attribute
        expires: ``Expires`` attribute, verbatim
        max_age: ``Max-Age`` attribute
        secure: ``Secure`` flag
        http_only: ``HttpOnly`` flag
        same_site: ``SameSite`` attribute
    """
    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[str] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None

    def cookie_string(self) -> str:
        """``name=value`` form used in a ``Cookie`` request header."""
        return f"{self.name}={self.value}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> 'Cookie':
        """
        Create from a snapshot dictionary.

        Raises:
            SerializationError: If the snapshot is malformed
        """
        if not isinstance(data, dict):
            raise SerializationError("Cookie snapshot is not an object")
        if not isinstance(data.get('name'), str) or not data['name']:
            raise SerializationError("Cookie snapshot has no name")
        if not isinstance(data.get('value'), str):
            raise SerializationError(f"Cookie '{data['name']}' has no string value")

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise SerializationError(
                f"Cookie '{data['name']}' has unknown attributes: {sorted(unknown)}"
            )

        for name in ('domain', 'path', 'expires', 'same_site'):
            if data.get(name) is not None and not isinstance(data[name], str):
                raise SerializationError(f"Cookie attribute '{name}' must be a string")
        max_age = data.get('max_age')
        if max_age is not None and (isinstance(max_age, bool) or not isinstance(max_age, int)):
            raise SerializationError("Cookie attribute 'max_age' must be an integer")
        for name in ('secure', 'http_only'):
            if not isinstance(data.get(name, False), bool):
                raise SerializationError(f"Cookie attribute '{name}' must be a boolean")

        return cls(**data)


def _from_morsel(morsel: Morsel) -> Cookie:
    max_age = None
    if morsel['max-age']:
        try:
            max_age = int(morsel['max-age'])
        except ValueError:
            logger.debug(f"Ignoring invalid Max-Age on cookie {morsel.key}")

    return Cookie(
        name=morsel.key,
        value=morsel.coded_value,
        domain=morsel['domain'].lstrip('.').lower() or None,
        path=morsel['path'] or None,
        expires=morsel['expires'] or None,
        max_age=max_age,
        secure=bool(morsel['secure']),
        http_only=bool(morsel['httponly']),
        same_site=morsel['samesite'] or None,
    )


def parse_set_cookie(header: str) -> Optional[Cookie]:
    """
    Parse one ``Set-Cookie`` header value.

    The value is kept as sent (``coded_value``), so quoted values keep their
    quotes and may contain ``;``.

    Args:
        header: Raw header value

    Returns:
        Cookie, or None if the header carries no ``name=value`` pair
    """
    if not header:
        return None

    jar = SimpleCookie()
    try:
        jar.load(header)
    except CookieError as e:
        logger.debug(f"Unparseable Set-Cookie header: {e}")
        return None
    if not jar:
        return None

    # Unknown attributes (Priority=High) load as extra morsels after the cookie
    return _from_morsel(next(iter(jar.values())))


def parse_set_cookie_headers(headers: Iterable[str]) -> List[Cookie]:
    """Parse every ``Set-Cookie`` header, skipping the unparseable ones."""
    cookies = []
    for header in headers:
        cookie = parse_set_cookie(header)
        if cookie is None:
            logger.debug("Skipping Set-Cookie header without a name=value pair")
            continue
        cookies.append(cookie)
    return cookies


def domain_matches(host: str, domain: str) -> bool:
    """
    RFC 6265 domain-match of ``host`` against a cookie ``domain``.

    Single-label domains (``com``) never match unless they are the host.
    """
    host = host.lower()
    domain = domain.lower().lstrip('.')
    if host == domain:
        return True
    return '.' in domain and host.endswith('.' + domain)


class CookieSet:
    """
    Cookies of one canonical host, keyed by name.

    Merging overwrites by name; a cookie keeps its position when it is
    overwritten. Empty-valued cookies stay in the set but are left out of
    the outgoing ``Cookie`` header.
    """

    def __init__(self, host: str, cookies: Iterable[Cookie] = ()):
        self.host = host.lower()
        self._cookies: Dict[str, Cookie] = {}
        self.merge(cookies)

    def merge(self, cookies: Iterable[Cookie]) -> int:
        """
        Merge cookies over the existing ones by name.

        Returns:
            Number of cookies accepted
        """
        accepted = 0
        for cookie in cookies:
            if cookie.domain and not domain_matches(self.host, cookie.domain):
                logger.debug(f"Ignoring cookie {cookie.name} for foreign domain {cookie.domain}")
                continue
            self._cookies[cookie.name] = cookie
            accepted += 1
        return accepted

    def get(self, name: str) -> Optional[Cookie]:
        return self._cookies.get(name)

    def header_value(self) -> str:
        """Build the ``Cookie`` request header value."""
        return '; '.join(
            cookie.cookie_string()
            for cookie in self._cookies.values()
            if cookie.value
        )

    def copy(self) -> 'CookieSet':
        return CookieSet(self.host, (Cookie(**c.to_dict()) for c in self))

    def to_list(self) -> List[Dict[str, Any]]:
        return [cookie.to_dict() for cookie in self._cookies.values()]

    @classmethod
    def from_list(cls, host: str, data: Any) -> 'CookieSet':
        """
        Rebuild a cookie set from ``to_list()`` output.

        Raises:
            SerializationError: If the snapshot is malformed
        """
        if not isinstance(data, list):
            raise SerializationError("Cookie snapshot must be a list")
        return cls(host, [Cookie.from_dict(item) for item in data])

    def __contains__(self, name: object) -> bool:
        return name in self._cookies

    def __iter__(self) -> Iterator[Cookie]:
        return iter(list(self._cookies.values()))

    def __len__(self) -> int:
        return len(self._cookies)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CookieSet):
            return NotImplemented
        return self.host == other.host and self.to_list() == other.to_list()

    def __repr__(self) -> str:
        return f"CookieSet(host={self.host!r}, names={list(self._cookies)})"
