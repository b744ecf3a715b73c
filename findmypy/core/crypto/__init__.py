"""Crypto module - SRP proof engine and password key derivation."""
from .utils import Base64Encoder
from .key_derivation import PasswordKeyDeriver, S2KPasswordDeriver
from .srp import (
    RFC5054_2048,
    SRPGroup,
    EphemeralKeyPair,
    ChallengeRequest,
    ServerChallenge,
    ProofPair,
    ProofEngine,
)

__all__ = [
    'Base64Encoder',
    'PasswordKeyDeriver',
    'S2KPasswordDeriver',
    'RFC5054_2048',
    'SRPGroup',
    'EphemeralKeyPair',
    'ChallengeRequest',
    'ServerChallenge',
    'ProofPair',
    'ProofEngine',
]
