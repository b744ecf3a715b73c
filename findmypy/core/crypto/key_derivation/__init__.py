"""
Key derivation from passwords.
"""
from .password_key_deriver import PasswordKeyDeriver, S2KPasswordDeriver

__all__ = [
    'PasswordKeyDeriver',
    'S2KPasswordDeriver',
]
