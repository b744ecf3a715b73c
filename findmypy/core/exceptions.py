"""
Custom exceptions for Find My / iCloud operations.

Every error carries an ``ErrorKind`` so callers can branch on the kind of
failure without inspecting messages.
"""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of failure reported by the library."""
    NETWORK = 'network'
    PROTOCOL = 'protocol'
    AUTHENTICATION = 'authentication'
    UNAUTHENTICATED = 'unauthenticated'
    SERIALIZATION = 'serialization'
    NOT_FOUND = 'not_found'


class FindMyError(Exception):
    """Base exception for all findmypy errors."""
    
    kind: ErrorKind = ErrorKind.PROTOCOL
    
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            status: HTTP status code (if the error came from a response)
        """
        self.status = status
        super().__init__(message)


class NetworkError(FindMyError):
    """Transport failure or unexpected HTTP status."""
    kind = ErrorKind.NETWORK


class ProtocolError(FindMyError):
    """Expected field, header or cookie missing or malformed."""
    kind = ErrorKind.PROTOCOL


class AuthenticationError(FindMyError):
    """The server rejected the password proof."""
    kind = ErrorKind.AUTHENTICATION


class UnauthenticatedError(FindMyError):
    """An authenticated operation was attempted without a session."""
    kind = ErrorKind.UNAUTHENTICATED


class SerializationError(FindMyError):
    """Imported session state is malformed."""
    kind = ErrorKind.SERIALIZATION


class ServiceNotFoundError(FindMyError):
    """The requested service is not in the account's service map."""
    
    kind = ErrorKind.NOT_FOUND
    
    def __init__(self, service: str) -> None:
        """
        Initialize the exception.
        
        Args:
            service: Name of the service that was not found
        """
        self.service = service
        super().__init__(f"Service not available for this account: {service}")
