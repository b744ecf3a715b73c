"""
Secure Remote Password (SRP-6a) client for the Apple ID sign-in flow.

The server uses the RFC 5054 2048-bit group with SHA-256 and leaves the
account name out of the private key ``x`` (the "GSA" variant). Everything
in this module is free of I/O; randomness is only drawn when a new
ephemeral key pair is requested without explicit private bytes.
"""
import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from Crypto.Random import get_random_bytes
from Crypto.Util.number import bytes_to_long, long_to_bytes
from cryptography.hazmat.primitives import constant_time

from ..exceptions import ProtocolError
from .key_derivation import S2KPasswordDeriver
from .utils import Base64Encoder


_RFC5054_2048_N = int(
    'AC6BDB41324A9A9BF166DE5E1389582FAF72B6651987EE07FC3192943DB56050'
    'A37329CBB4A099ED8193E0757767A13DD52312AB4B03310DCD7F48A9DA04FD50'
    'E8083969EDB767B0CF6095179A163AB3661A05FBD5FAAAE82918A9962F0B93B8'
    '55F97993EC975EEAA80D740ADBF4FF747359D041D5C33EA71D281E446B14773B'
    'CA97B43A23FB801676BD207A436C6481F1D2B9078717461A5B9D32E688F87748'
    '544523B524B0D57D5EA77A2775D2ECFA032CFBDBF52FB3786160279004E57AE6'
    'AF874E7303CE53299CCC041C7BC308D82A5698F3A8D0C38271AE35F8E9DBFBB6'
    '94B5C803D89F7AE435DE236D525F54759B65E372FCD68EF20FA7111F9E4AFF73',
    16
)

PRIVATE_KEY_SIZE = 32


def _hash(*parts: bytes) -> bytes:
    h = hashlib.sha256()
    for part in parts:
        h.update(part)
    return h.digest()


@dataclass(frozen=True)
class SRPGroup:
    """A fixed SRP group: large safe prime ``N`` and generator ``g``."""
    N: int
    g: int

    @property
    def byte_length(self) -> int:
        """Length of ``N`` in bytes."""
        return (self.N.bit_length() + 7) // 8

    def pad(self, value: int) -> bytes:
        """Big-endian encoding of ``value`` left-padded to the length of ``N``."""
        return value.to_bytes(self.byte_length, 'big')

    @property
    def multiplier(self) -> int:
        """SRP-6a multiplier ``k = H(N | PAD(g))``."""
        return bytes_to_long(_hash(long_to_bytes(self.N), self.pad(self.g)))

    def hash_n_xor_g(self) -> bytes:
        """``H(N) xor H(PAD(g))`` as used in the client proof."""
        h_n = _hash(long_to_bytes(self.N))
        h_g = _hash(self.pad(self.g))
        return bytes(a ^ b for a, b in zip(h_n, h_g))


RFC5054_2048 = SRPGroup(N=_RFC5054_2048_N, g=2)


class EphemeralKeyPair:
    """
    One-time private exponent ``a`` and public value ``A = g^a mod N``.

    The private bytes live in a mutable buffer so they can be zeroed with
    ``wipe()`` once the handshake attempt is over. A wiped pair refuses to
    hand out its private exponent.
    """

    def __init__(self, private_bytes: bytes, group: SRPGroup = RFC5054_2048):
        if not private_bytes or not any(private_bytes):
            raise ValueError("Private exponent must be non-zero")
        self._private = bytearray(private_bytes)
        self.group = group
        self.public = pow(group.g, bytes_to_long(bytes(self._private)), group.N)

    @classmethod
    def generate(cls, group: SRPGroup = RFC5054_2048) -> 'EphemeralKeyPair':
        """Generate a fresh pair from a CSPRNG."""
        return cls(get_random_bytes(PRIVATE_KEY_SIZE), group)

    @property
    def private_exponent(self) -> int:
        if self.wiped:
            raise RuntimeError("Ephemeral key pair has been wiped")
        return bytes_to_long(bytes(self._private))

    @property
    def public_bytes(self) -> bytes:
        return long_to_bytes(self.public)

    @property
    def wiped(self) -> bool:
        return not any(self._private)

    def wipe(self) -> None:
        """Zero the private exponent in place."""
        for i in range(len(self._private)):
            self._private[i] = 0

    def __repr__(self) -> str:
        return f"EphemeralKeyPair(public={self.public:x}, wiped={self.wiped})"


@dataclass(frozen=True)
class ChallengeRequest:
    """Body of the sign-in init request."""
    account_name: str
    public_value: bytes
    protocols: Tuple[str, ...] = S2KPasswordDeriver.PROTOCOLS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'a': Base64Encoder.encode(self.public_value),
            'accountName': self.account_name,
            'protocols': list(self.protocols),
        }


@dataclass(frozen=True)
class ServerChallenge:
    """
    Server reply to the init request.

    Attributes:
        iteration: PBKDF2 iteration count
        salt: Password salt
        protocol: Password pre-hash protocol (``s2k`` or ``s2k_fo``)
        server_public: Server public value ``B``
        context: Opaque server context echoed back in the completion request
    """
    iteration: int
    salt: bytes
    protocol: str
    server_public: bytes
    context: str

    @classmethod
    def from_dict(cls, data: Any) -> 'ServerChallenge':
        """
        Validate and build a challenge from the init response JSON.

        Raises:
            ProtocolError: If any field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ProtocolError("Challenge payload is not a JSON object")

        iteration = data.get('iteration')
        if isinstance(iteration, bool) or not isinstance(iteration, int) or iteration <= 0:
            raise ProtocolError("Challenge has an invalid iteration count")

        protocol = data.get('protocol')
        if protocol not in S2KPasswordDeriver.PROTOCOLS:
            raise ProtocolError(f"Unsupported challenge protocol: {protocol!r}")

        context = data.get('c')
        if not isinstance(context, str) or not context:
            raise ProtocolError("Challenge is missing the server context")

        salt = cls._decode_field(data, 'salt')
        server_public = cls._decode_field(data, 'b')

        return cls(
            iteration=iteration,
            salt=salt,
            protocol=protocol,
            server_public=server_public,
            context=context
        )

    @staticmethod
    def _decode_field(data: Dict[str, Any], name: str) -> bytes:
        value = data.get(name)
        if not isinstance(value, str) or not value:
            raise ProtocolError(f"Challenge field '{name}' is missing")
        try:
            decoded = Base64Encoder.decode(value)
        except ValueError as e:
            raise ProtocolError(f"Challenge field '{name}' is not valid base64") from e
        if not decoded:
            raise ProtocolError(f"Challenge field '{name}' is empty")
        return decoded


@dataclass(frozen=True)
class ProofPair:
    """
    Client proof ``M1`` and the expected server counter-proof ``M2``.

    The session key used to derive both is not kept.
    """
    account_name: str
    client_proof: bytes
    server_proof: bytes
    context: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accountName': self.account_name,
            'm1': Base64Encoder.encode(self.client_proof),
            'm2': Base64Encoder.encode(self.server_proof),
            'c': self.context,
        }

    def __repr__(self) -> str:
        return f"ProofPair(account_name={self.account_name!r})"


class ProofEngine:
    """
    Stateless SRP-6a computations for one group.

    Example:
        >>> engine = ProofEngine()
        >>> key_pair, request = engine.build_challenge_request('user@example.com')
        >>> proof = engine.build_proof(password, challenge, key_pair, 'user@example.com')
    """

    def __init__(self, group: SRPGroup = RFC5054_2048):
        self.group = group

    def build_challenge_request(
        self,
        username: str,
        private_bytes: Optional[bytes] = None
    ) -> Tuple[EphemeralKeyPair, ChallengeRequest]:
        """
        Create a fresh ephemeral key pair and the init request carrying ``A``.

        Args:
            username: Account name
            private_bytes: Fixed private exponent (tests only); random if omitted

        Returns:
            Tuple of (key pair, request)
        """
        if private_bytes is None:
            key_pair = EphemeralKeyPair.generate(self.group)
        else:
            key_pair = EphemeralKeyPair(private_bytes, self.group)

        request = ChallengeRequest(
            account_name=username,
            public_value=key_pair.public_bytes
        )
        return key_pair, request

    def build_proof(
        self,
        password: str,
        challenge: ServerChallenge,
        key_pair: EphemeralKeyPair,
        username: str
    ) -> ProofPair:
        """
        Compute the client proof for a server challenge.

        Args:
            password: Account password
            challenge: Validated server challenge
            key_pair: Key pair created for this attempt
            username: Account name sent in the init request

        Returns:
            ProofPair with ``M1`` and the expected ``M2``

        Raises:
            ProtocolError: If the challenge is malformed or degenerate
        """
        N = self.group.N
        g = self.group.g

        if not challenge.salt:
            raise ProtocolError("Challenge salt is empty")

        B = bytes_to_long(challenge.server_public)
        if B % N == 0:
            raise ProtocolError("Server public value is degenerate")
        if B >= N:
            raise ProtocolError("Server public value is out of range")

        A = key_pair.public
        u = bytes_to_long(_hash(self.group.pad(A), self.group.pad(B)))
        if u == 0:
            raise ProtocolError("Scrambling parameter is zero")

        try:
            deriver = S2KPasswordDeriver(challenge.protocol)
            secret = deriver.derive(password, challenge.salt, challenge.iteration)
        except ValueError as e:
            raise ProtocolError(f"Cannot derive password secret: {e}") from e

        x = bytes_to_long(_hash(challenge.salt, _hash(b':', secret)))
        v = pow(g, x, N)
        k = self.group.multiplier

        S = pow((B - k * v) % N, key_pair.private_exponent + u * x, N)
        K = _hash(long_to_bytes(S))

        m1 = _hash(
            self.group.hash_n_xor_g(),
            _hash(username.encode('utf-8')),
            challenge.salt,
            long_to_bytes(A),
            long_to_bytes(B),
            K
        )
        m2 = _hash(long_to_bytes(A), m1, K)

        return ProofPair(
            account_name=username,
            client_proof=m1,
            server_proof=m2,
            context=challenge.context
        )

    @staticmethod
    def verify_server_proof(proof: ProofPair, received: bytes) -> bool:
        """Constant-time check of a counter-proof returned by the server."""
        return constant_time.bytes_eq(proof.server_proof, received)
