"""Password-based key derivation using Strategy Pattern."""
from abc import ABC, abstractmethod
from typing import Union
import hashlib


class PasswordKeyDeriver(ABC):
    """Abstract base class for password-based key derivation."""
    
    @abstractmethod
    def derive(self, password: Union[str, bytes], salt: bytes, iterations: int) -> bytes:
        """Derives a key from a password."""
        pass


class S2KPasswordDeriver(PasswordKeyDeriver):
    """
    PBKDF2-SHA256 derivation over a SHA-256 pre-hashed password.
    
    The ``s2k`` protocol feeds the raw SHA-256 digest of the password into
    PBKDF2. The ``s2k_fo`` protocol feeds its lowercase hex digest instead.
    """
    
    PROTOCOLS = ('s2k', 's2k_fo')
    
    def __init__(self, protocol: str = 's2k', key_size: int = 32):
        """Initializes the deriver for one of ``PROTOCOLS``."""
        if protocol not in self.PROTOCOLS:
            raise ValueError(f"Unsupported password protocol: {protocol}")
        self.protocol = protocol
        self.key_size = key_size
    
    def prehash(self, password: Union[str, bytes]) -> bytes:
        """Hashes the password the way the selected protocol expects."""
        if isinstance(password, str):
            password = password.encode('utf-8')
        digest = hashlib.sha256(password)
        if self.protocol == 's2k_fo':
            return digest.hexdigest().encode('ascii')
        return digest.digest()
    
    def derive(self, password: Union[str, bytes], salt: bytes, iterations: int) -> bytes:
        """Derives the password secret with PBKDF2-HMAC-SHA256."""
        if not salt:
            raise ValueError("Salt is required for s2k key derivation")
        if iterations <= 0:
            raise ValueError("Iteration count must be positive")
        
        return hashlib.pbkdf2_hmac(
            'sha256',
            self.prehash(password),
            salt,
            iterations,
            self.key_size
        )
