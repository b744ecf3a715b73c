"""
Session data models.

Contains the account information returned by the setup endpoint and the
authenticated session aggregate.
"""
import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..exceptions import ProtocolError
from ..logging import get_logger
from .cookies import CookieSet

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountInfo:
    """
    Account information fetched once after sign-in.

    Attributes:
        services: Service name to base URL
        payload: Full setup response, carried but not interpreted (copied in and out)
    """
    services: Mapping[str, str]
    payload: Mapping[str, Any]

    @classmethod
    def from_dict(cls, data: Any) -> 'AccountInfo':
        """
        Validate the setup response and extract the service map.

        Every ``webservices`` entry with a string ``url`` becomes a service;
        entries without one (status-only services) are skipped.

        Raises:
            ProtocolError: If the payload or its ``webservices`` map is malformed
        """
        if not isinstance(data, dict):
            raise ProtocolError("Account info is not a JSON object")

        webservices = data.get('webservices')
        if not isinstance(webservices, dict):
            raise ProtocolError("Account info has no webservices map")

        services: Dict[str, str] = {}
        for name, entry in webservices.items():
            url = entry.get('url') if isinstance(entry, dict) else None
            if isinstance(url, str) and url:
                services[name] = url
            else:
                logger.debug(f"Service {name} has no URL, skipping")

        return cls(
            services=MappingProxyType(services),
            payload=MappingProxyType(copy.deepcopy(data))
        )

    def service_url(self, name: str) -> Optional[str]:
        return self.services.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(dict(self.payload))


@dataclass
class AuthenticatedSession:
    """
    The single aggregate that represents "logged in".

    ``account_info`` never changes; ``cookies`` is updated in place by
    every authenticated exchange.
    """
    account_info: AccountInfo
    cookies: CookieSet
