"""
Sign-in handshake.

Drives the three round-trips of an Apple ID sign-in (SRP init, SRP
complete, account setup) and turns them into an ``AuthenticatedSession``.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..api.config import ClientConfig
from ..api.transport import HttpTransport, TransportResponse
from ..crypto import Base64Encoder, ChallengeRequest, ProofEngine, ProofPair, ServerChallenge
from ..exceptions import AuthenticationError, FindMyError, NetworkError, ProtocolError
from ..logging import get_logger, mask_username
from ..session import AccountInfo, AuthenticatedSession, CookieSet, parse_set_cookie_headers


class HandshakeState(Enum):
    """States of a sign-in attempt."""
    IDLE = 'idle'
    INITIATING = 'initiating'
    CHALLENGED = 'challenged'
    COMPLETING = 'completing'
    ESTABLISHED = 'established'
    FAILED = 'failed'


@dataclass(frozen=True)
class Credentials:
    """Account name and password for one sign-in attempt."""
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SessionTokens:
    """
    Tokens extracted from the sign-in completion response.

    Attributes:
        session_id: ``X-Apple-Session-Token`` header
        session_token: Same value as ``session_id``
        scnt: Anti-replay token header
        aasp: Trust token, the value of the ``aasp`` cookie
    """
    session_id: str = field(repr=False)
    session_token: str = field(repr=False)
    scnt: str = field(repr=False)
    aasp: str = field(repr=False)

    @classmethod
    def from_response(cls, response: TransportResponse) -> 'SessionTokens':
        """
        Extract all four tokens; partial extraction is an error.

        Raises:
            ProtocolError: If any token is missing or empty
        """
        session_id = response.header('X-Apple-Session-Token')
        scnt = response.header('scnt')

        aasp = None
        for cookie in parse_set_cookie_headers(response.set_cookie_headers()):
            if cookie.name == 'aasp':
                aasp = cookie.value

        missing = [
            name for name, value in (
                ('X-Apple-Session-Token', session_id),
                ('scnt', scnt),
                ('aasp cookie', aasp),
            )
            if not value
        ]
        if missing:
            raise ProtocolError(f"Failed to extract auth data, missing: {', '.join(missing)}")

        return cls(session_id=session_id, session_token=session_id, scnt=scnt, aasp=aasp)


class HandshakeSession:
    """
    Single-use sign-in state machine.

    ``IDLE -> INITIATING -> CHALLENGED -> COMPLETING -> ESTABLISHED``, or
    ``FAILED`` from any step. There are no retries; a failed attempt needs a
    new ``HandshakeSession``. The ephemeral key pair is wiped whatever the
    outcome, and no session is returned unless every step succeeded.

    Example:
        >>> handshake = HandshakeSession(transport)
        >>> session = await handshake.start(Credentials('user@example.com', password))
    """

    ACCEPTED_COMPLETE_STATUSES = (200, 409)
    VERIFICATION_PENDING_STATUS = 409
    REJECTED_PROOF_STATUSES = (401, 403)

    def __init__(
        self,
        transport: HttpTransport,
        config: Optional[ClientConfig] = None,
        engine: Optional[ProofEngine] = None
    ):
        """
        Initialize the handshake.

        Args:
            transport: HTTP transport
            config: Client configuration (uses defaults if not provided)
            engine: SRP proof engine (RFC 5054 2048-bit group if not provided)
        """
        self._transport = transport
        self._config = config or ClientConfig.default()
        self._engine = engine or ProofEngine()
        self._state = HandshakeState.IDLE
        self._verification_required = False
        self._error: Optional[FindMyError] = None
        self._logger = get_logger('findmypy.auth')

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def verification_required(self) -> bool:
        """True if the server asked for a second factor that was deferred."""
        return self._verification_required

    @property
    def error(self) -> Optional[FindMyError]:
        """The error that moved the handshake to ``FAILED``, if any."""
        return self._error

    async def start(self, credentials: Credentials) -> AuthenticatedSession:
        """
        Run the whole sign-in.

        Args:
            credentials: Account name and password

        Returns:
            AuthenticatedSession with account info and initial cookies

        Raises:
            NetworkError: Transport failure or unexpected status
            ProtocolError: Malformed challenge, missing tokens or cookies
            AuthenticationError: Password proof rejected
            RuntimeError: If this handshake was already started
        """
        if self._state is not HandshakeState.IDLE:
            raise RuntimeError(f"Handshake already used (state: {self._state.value})")

        account = mask_username(credentials.username)
        key_pair = None
        session = None

        try:
            self._state = HandshakeState.INITIATING
            self._logger.info(f"Starting sign-in for {account}")
            key_pair, request = self._engine.build_challenge_request(credentials.username)
            challenge = await self._initiate(request)

            self._state = HandshakeState.CHALLENGED
            proof = self._engine.build_proof(
                credentials.password,
                challenge,
                key_pair,
                credentials.username
            )

            self._state = HandshakeState.COMPLETING
            tokens = await self._complete(proof)
            session = await self._setup(tokens)
        except FindMyError as e:
            self._error = e
            self._logger.warning(f"Sign-in for {account} failed: {e}")
            raise
        finally:
            if key_pair is not None:
                key_pair.wipe()
            if session is None:
                self._state = HandshakeState.FAILED

        self._state = HandshakeState.ESTABLISHED
        self._logger.info(f"Signed in as {account}")
        return session

    async def _initiate(self, request: ChallengeRequest) -> ServerChallenge:
        response = await self._transport.post(
            self._config.endpoints.signin_init,
            self._config.auth_headers(),
            json.dumps(request.to_dict())
        )

        if not response.ok:
            raise NetworkError(f"Sign-in init failed with status {response.status}", status=response.status)

        return ServerChallenge.from_dict(response.json())

    async def _complete(self, proof: ProofPair) -> SessionTokens:
        body = {
            **proof.to_dict(),
            'trustTokens': [],
            'rememberMe': False,
            'pause2FA': True,
        }
        response = await self._transport.post(
            self._config.endpoints.signin_complete,
            self._config.auth_headers(),
            json.dumps(body)
        )

        if response.status in self.REJECTED_PROOF_STATUSES:
            raise AuthenticationError("Password proof rejected", status=response.status)
        if response.status not in self.ACCEPTED_COMPLETE_STATUSES:
            raise NetworkError(f"Sign-in complete failed with status {response.status}", status=response.status)

        if response.status == self.VERIFICATION_PENDING_STATUS:
            self._verification_required = True
            self._logger.warning("Account requires additional verification; it was deferred")

        self._check_server_proof(proof, response)

        return SessionTokens.from_response(response)

    def _check_server_proof(self, proof: ProofPair, response: TransportResponse) -> None:
        """Verify the server's ``m2`` when the completion reply carries one."""
        try:
            data: Any = response.json() if response.body else None
        except ProtocolError:
            return
        if not isinstance(data, dict) or 'm2' not in data:
            return

        try:
            received = Base64Encoder.decode(data['m2']) if isinstance(data['m2'], str) else b''
        except ValueError:
            received = b''
        if not self._engine.verify_server_proof(proof, received):
            raise AuthenticationError("Server proof does not match", status=response.status)

    async def _setup(self, tokens: SessionTokens) -> AuthenticatedSession:
        body = {
            'dsWebAuthToken': tokens.session_id,
            'trustToken': tokens.aasp,
        }
        response = await self._transport.post(
            self._config.endpoints.setup,
            self._config.base_headers(),
            json.dumps(body)
        )

        if not response.ok:
            raise NetworkError(f"Account setup failed with status {response.status}", status=response.status)

        cookies = CookieSet(
            self._config.endpoints.cookie_host,
            parse_set_cookie_headers(response.set_cookie_headers())
        )
        if not len(cookies):
            raise ProtocolError("Failed to extract iCloud cookies", status=response.status)

        account_info = AccountInfo.from_dict(response.json())

        return AuthenticatedSession(account_info=account_info, cookies=cookies)
