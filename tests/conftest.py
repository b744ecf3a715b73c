"""Pytest fixtures for findmypy tests."""
import json
import hashlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Union

import pytest
from Crypto.Util.number import long_to_bytes

from findmypy.core.api import ClientConfig, TransportResponse
from findmypy.core.crypto import Base64Encoder, RFC5054_2048, S2KPasswordDeriver
from findmypy.core.session import AccountInfo, AuthenticatedSession, Cookie, CookieSet, SessionStore


USERNAME = 'user@example.com'
PASSWORD = 'correct horse battery staple'
SALT = bytes(range(1, 17))
ITERATIONS = 1000
SERVER_PRIVATE = 0x1D3A5C7E9F0B2D4F6A8C0E1F3B5D7F9A1C3E5F7B9D1F3A5C7E9F0B2D4F6A8C0E


@dataclass
class RecordedCall:
    """One request seen by FakeTransport."""
    url: str
    headers: Dict[str, str]
    body: Any


Handler = Union[TransportResponse, BaseException, Callable[[RecordedCall], Any]]


class FakeTransport:
    """In-memory HttpTransport routing requests by URL prefix."""

    def __init__(self):
        self.calls: List[RecordedCall] = []
        self.routes: Dict[str, Handler] = {}
        self.closed = False

    def route(self, url_prefix: str, handler: Handler) -> 'FakeTransport':
        self.routes[url_prefix] = handler
        return self

    def calls_to(self, url_prefix: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.url.startswith(url_prefix)]

    async def post(self, url, headers, body):
        call = RecordedCall(url=url, headers=dict(headers), body=json.loads(body))
        self.calls.append(call)
        for prefix, handler in self.routes.items():
            if url.startswith(prefix):
                if isinstance(handler, BaseException):
                    raise handler
                if callable(handler):
                    handler = handler(call)
                return handler
        raise AssertionError(f"Unexpected request to {url}")

    async def close(self):
        self.closed = True


def server_challenge_for(username: str = USERNAME, password: str = PASSWORD,
                         protocol: str = 's2k', salt: bytes = SALT,
                         iterations: int = ITERATIONS, b: int = SERVER_PRIVATE):
    """Build a server-side SRP view: verifier, B and a proof oracle."""
    group = RFC5054_2048
    N, g = group.N, group.g
    sha = lambda *parts: hashlib.sha256(b''.join(parts)).digest()
    to_int = lambda data: int.from_bytes(data, 'big')

    secret = S2KPasswordDeriver(protocol).derive(password, salt, iterations)
    x = to_int(sha(salt, sha(b':', secret)))
    v = pow(g, x, N)
    k = to_int(sha(long_to_bytes(N), group.pad(g)))
    B = (k * v + pow(g, b, N)) % N

    def proofs(A: int):
        u = to_int(sha(group.pad(A), group.pad(B)))
        S = pow(A * pow(v, u, N), b, N)
        K = sha(long_to_bytes(S))
        h_n = sha(long_to_bytes(N))
        h_g = sha(group.pad(g))
        hnxg = bytes(p ^ q for p, q in zip(h_n, h_g))
        m1 = sha(hnxg, sha(username.encode()), salt, long_to_bytes(A), long_to_bytes(B), K)
        m2 = sha(long_to_bytes(A), m1, K)
        return m1, m2

    payload = {
        'iteration': iterations,
        'salt': Base64Encoder.encode(salt),
        'protocol': protocol,
        'b': Base64Encoder.encode(long_to_bytes(B)),
        'c': 'd-123-abc:PRN',
    }
    return payload, proofs


@pytest.fixture
def config():
    """Default client configuration."""
    return ClientConfig.default()


@pytest.fixture
def transport():
    """Fresh fake transport with no routes."""
    return FakeTransport()


@pytest.fixture
def challenge_payload():
    """Valid init response JSON."""
    payload, _ = server_challenge_for()
    return payload


@pytest.fixture
def account_payload():
    """Setup response JSON."""
    return {
        'dsInfo': {'fullName': 'Test User', 'locale': 'en_US', 'appleId': USERNAME},
        'webservices': {
            'findme': {'url': 'https://p01-fmipweb.icloud.com:443', 'status': 'active'},
            'contacts': {'url': 'https://p01-contactsws.icloud.com:443', 'status': 'active'},
            'account': {'status': 'active'},
        },
        'isExtendedLogin': False,
    }


@pytest.fixture
def complete_headers():
    """Headers of a completion response carrying all session tokens."""
    return [
        ('X-Apple-Session-Token', 'session-token-123'),
        ('scnt', 'scnt-456'),
        ('Set-Cookie', 'dslang=US-EN; Domain=apple.com; Path=/; Secure; HttpOnly'),
        ('Set-Cookie', 'aasp=TRUST789; Domain=idmsa.apple.com; Path=/; Secure; HttpOnly'),
    ]


@pytest.fixture
def setup_headers():
    """Headers of the setup response carrying the initial cookies."""
    return [
        ('Set-Cookie', 'X-APPLE-WEBAUTH-USER="v=1:s=0:d=123"; Domain=.icloud.com; Path=/; Secure'),
        ('Set-Cookie', 'X-APPLE-WEBAUTH-TOKEN="v=2:t=AAA"; Domain=.icloud.com; Path=/; Secure; HttpOnly'),
        ('Set-Cookie', 'X-APPLE-UNUSED=; Domain=.icloud.com; Path=/; Max-Age=0'),
    ]


@pytest.fixture
def session_store(account_payload):
    """Store holding an established session."""
    cookies = CookieSet('www.icloud.com', [
        Cookie(name='X-APPLE-WEBAUTH-USER', value='"v=1:s=0"', domain='icloud.com', path='/', secure=True),
        Cookie(name='X-APPLE-DS-WEB-SESSION-TOKEN', value='tok-1', domain='icloud.com', path='/'),
        Cookie(name='X-APPLE-EXPIRED', value='', domain='icloud.com', path='/', max_age=0),
    ])
    session = AuthenticatedSession(
        account_info=AccountInfo.from_dict(account_payload),
        cookies=cookies
    )
    return SessionStore(session)


@pytest.fixture
def srp_server():
    """Factory for server-side SRP views (see ``server_challenge_for``)."""
    return server_challenge_for


@pytest.fixture
def username():
    return USERNAME


@pytest.fixture
def password():
    return PASSWORD
