"""
Session module.

Cookie handling, account information and the session store that the
request dispatcher reads from and writes back to.
"""
from .cookies import Cookie, CookieSet, parse_set_cookie, parse_set_cookie_headers
from .models import AccountInfo, AuthenticatedSession
from .store import SessionStore

__all__ = [
    'Cookie',
    'CookieSet',
    'parse_set_cookie',
    'parse_set_cookie_headers',
    'AccountInfo',
    'AuthenticatedSession',
    'SessionStore',
]
