"""
Unit tests for RequestDispatcher.

Tests service resolution, the outgoing request shape and cookie merging.
"""
import pytest

from findmypy.core.api import RequestDispatcher, TransportResponse
from findmypy.core.exceptions import (
    ErrorKind,
    NetworkError,
    ProtocolError,
    ServiceNotFoundError,
    UnauthenticatedError,
)
from findmypy.core.session import SessionStore


FINDME_URL = 'https://p01-fmipweb.icloud.com:443'
REFRESH_PATH = '/fmipservice/client/web/refreshClient'


@pytest.fixture
def dispatcher(session_store, transport, config):
    return RequestDispatcher(session_store, transport, config)


def rotated(body=None, *cookies):
    headers = [('Set-Cookie', cookie) for cookie in cookies]
    return TransportResponse.build(200, headers, body if body is not None else {})


class TestBuildUrl:
    """Test suite for URL joining."""

    @pytest.mark.parametrize('base,path,expected', [
        (FINDME_URL, REFRESH_PATH, FINDME_URL + REFRESH_PATH),
        (FINDME_URL + '/', REFRESH_PATH, FINDME_URL + REFRESH_PATH),
        (FINDME_URL, 'fmipservice/x', FINDME_URL + '/fmipservice/x'),
        (FINDME_URL, '', FINDME_URL),
    ])
    def test_build_url(self, base, path, expected):
        assert RequestDispatcher.build_url(base, path) == expected


class TestDispatcherPreconditions:
    """Test suite for requests that must not reach the network."""

    @pytest.mark.asyncio
    async def test_unauthenticated(self, transport, config):
        """Test an empty store fails without a request."""
        dispatcher = RequestDispatcher(SessionStore(), transport, config)

        with pytest.raises(UnauthenticatedError) as exc_info:
            await dispatcher.send('findme', REFRESH_PATH, {})

        assert exc_info.value.kind is ErrorKind.UNAUTHENTICATED
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unknown_service(self, dispatcher, transport):
        """Test an unmapped service fails without a request."""
        with pytest.raises(ServiceNotFoundError) as exc_info:
            await dispatcher.send('photos', '/records', {})

        assert exc_info.value.service == 'photos'
        assert transport.calls == []


class TestDispatcherSend:
    """Test suite for successful dispatch."""

    @pytest.mark.asyncio
    async def test_request_shape(self, dispatcher, transport):
        """Test URL, headers and body of the outgoing request."""
        transport.route(FINDME_URL, rotated({'content': []}, 'X-APPLE-DS-WEB-SESSION-TOKEN=tok-2; Domain=.icloud.com'))

        await dispatcher.send('findme', REFRESH_PATH, {'clientContext': {'fmly': True}})

        call, = transport.calls
        assert call.url == FINDME_URL + REFRESH_PATH
        assert call.headers['Cookie'] == 'X-APPLE-WEBAUTH-USER="v=1:s=0"; X-APPLE-DS-WEB-SESSION-TOKEN=tok-1'
        assert call.headers['Origin'] == 'https://www.icloud.com'
        assert call.headers['Referer'] == 'https://www.icloud.com/'
        assert call.headers['Accept'] == '*/*'
        assert call.headers['Content-Type'] == 'text/plain'
        assert call.body == {'clientContext': {'fmly': True}}

    @pytest.mark.asyncio
    async def test_default_payload(self, dispatcher, transport):
        """Test a missing payload is sent as an empty object."""
        transport.route(FINDME_URL, rotated({}, 'a=1'))

        await dispatcher.send('findme', REFRESH_PATH)

        assert transport.calls[0].body == {}

    @pytest.mark.asyncio
    async def test_returns_body_and_merges_cookies(self, dispatcher, transport, session_store):
        """Test cookies are folded into the store and the body returned."""
        transport.route(FINDME_URL, rotated(
            {'content': [{'id': 'dev-1'}]},
            'X-APPLE-DS-WEB-SESSION-TOKEN=tok-2; Domain=.icloud.com; Path=/',
            'X-APPLE-NEW=fresh; Domain=icloud.com',
        ))

        reply = await dispatcher.send('findme', REFRESH_PATH, {})

        assert reply == {'content': [{'id': 'dev-1'}]}
        assert await session_store.cookie_header() == (
            'X-APPLE-WEBAUTH-USER="v=1:s=0"; X-APPLE-DS-WEB-SESSION-TOKEN=tok-2; X-APPLE-NEW=fresh'
        )

    @pytest.mark.asyncio
    async def test_rotated_cookies_used_next_time(self, dispatcher, transport):
        """Test the next request carries the merged cookies."""
        transport.route(FINDME_URL, rotated({}, 'X-APPLE-DS-WEB-SESSION-TOKEN=tok-2'))

        await dispatcher.send('findme', REFRESH_PATH, {})
        await dispatcher.send('findme', REFRESH_PATH, {})

        first, second = transport.calls
        assert 'tok-1' in first.headers['Cookie']
        assert 'tok-2' in second.headers['Cookie']

    @pytest.mark.asyncio
    async def test_imported_store_sends_same_request(self, session_store, transport, config):
        """Test a restored session is indistinguishable on the wire."""
        transport.route(FINDME_URL, rotated({}, 'a=1'))
        restored = SessionStore.from_export(session_store.export())

        await RequestDispatcher(session_store, transport, config).send('findme', REFRESH_PATH, {})
        await RequestDispatcher(restored, transport, config).send('findme', REFRESH_PATH, {})

        first, second = transport.calls
        assert first.url == second.url
        assert first.headers == second.headers


class TestDispatcherFailures:
    """Test suite for failed dispatch."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [301, 400, 421, 500])
    async def test_non_success_status(self, dispatcher, transport, session_store, status):
        """Test non-2xx raises NetworkError and leaves the store alone."""
        before = session_store.export()
        transport.route(FINDME_URL, TransportResponse.build(
            status, [('Set-Cookie', 'X-APPLE-DS-WEB-SESSION-TOKEN=bad')]
        ))

        with pytest.raises(NetworkError) as exc_info:
            await dispatcher.send('findme', REFRESH_PATH, {})

        assert exc_info.value.status == status
        assert session_store.export() == before
        assert session_store.is_authenticated is True

    @pytest.mark.asyncio
    async def test_no_cookies(self, dispatcher, transport):
        """Test a reply that sets no cookies is a protocol error."""
        transport.route(FINDME_URL, TransportResponse.build(200, body={'content': []}))

        with pytest.raises(ProtocolError):
            await dispatcher.send('findme', REFRESH_PATH, {})

    @pytest.mark.asyncio
    async def test_invalid_json(self, dispatcher, transport):
        """Test a non-JSON body is a protocol error."""
        transport.route(FINDME_URL, rotated('<html>', 'a=1'))

        with pytest.raises(ProtocolError):
            await dispatcher.send('findme', REFRESH_PATH, {})

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_session(self, dispatcher, transport, session_store):
        """Test transport errors propagate without touching the session."""
        before = session_store.export()
        transport.route(FINDME_URL, NetworkError('connection reset'))

        with pytest.raises(NetworkError):
            await dispatcher.send('findme', REFRESH_PATH, {})

        assert session_store.export() == before
