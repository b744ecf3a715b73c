"""
Authentication module.

The SRP sign-in handshake that produces an authenticated session.
"""
from .handshake import Credentials, HandshakeSession, HandshakeState, SessionTokens

__all__ = [
    'Credentials',
    'HandshakeSession',
    'HandshakeState',
    'SessionTokens',
]
