"""
Client configuration module.

Provides configuration for the iCloud sign-in flow and the authenticated
request dispatcher.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union
from urllib.parse import urlparse
import ssl


DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 '
    '(KHTML, like Gecko) Version/17.0 Safari/605.1.15'
)

# Public widget key of the icloud.com web client
ICLOUD_WEB_CLIENT_ID = 'd39ba9916b7251055b22c7f910e2ea796ee65e98b2ddecea8f5dde8d9d1a815d'


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Supports HTTP and HTTPS proxies.
    """
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def to_aiohttp_proxy(self) -> Optional[str]:
        """Convert to aiohttp proxy URL, embedding credentials if set."""
        if not self.url:
            return None

        if self.username and self.password and '://' in self.url:
            scheme, rest = self.url.split('://', 1)
            return f"{scheme}://{self.username}:{self.password}@{rest}"

        return self.url


@dataclass
class SSLConfig:
    """SSL/TLS configuration."""
    verify: bool = True
    ca_file: Optional[str] = None
    check_hostname: bool = True

    def create_ssl_context(self) -> Union[ssl.SSLContext, bool]:
        """Create SSL context, or ``False`` to disable verification."""
        if not self.verify:
            return False

        context = ssl.create_default_context()
        if self.ca_file:
            context.load_verify_locations(self.ca_file)
        context.check_hostname = self.check_hostname

        return context


@dataclass
class TimeoutConfig:
    """Timeouts, in seconds, applied to every round-trip."""
    total: float = 60.0
    connect: float = 15.0
    sock_read: float = 30.0

    def to_aiohttp_timeout(self):
        """Convert to aiohttp ClientTimeout."""
        import aiohttp
        return aiohttp.ClientTimeout(
            total=self.total,
            connect=self.connect,
            sock_read=self.sock_read
        )


@dataclass
class EndpointConfig:
    """
    Backend endpoints.

    Attributes:
        auth: Base URL of the Apple ID sign-in service (trailing slash)
        setup: Account login endpoint that turns a sign-in into cookies
        cookie_url: Origin the session cookies are scoped to
    """
    auth: str = 'https://idmsa.apple.com/appleauth/auth/'
    setup: str = 'https://setup.icloud.com/setup/ws/1/accountLogin'
    cookie_url: str = 'https://www.icloud.com'

    @property
    def signin_init(self) -> str:
        return f"{self.auth}signin/init"

    @property
    def signin_complete(self) -> str:
        return f"{self.auth}signin/complete?isRememberMeEnabled=true"

    @property
    def cookie_host(self) -> str:
        return urlparse(self.cookie_url).hostname or ''


@dataclass
class ClientConfig:
    """
    Complete client configuration.

    Centralizes endpoints, transport settings and the fixed header sets.
    """
    endpoints: EndpointConfig = field(default_factory=EndpointConfig)

    user_agent: str = DEFAULT_USER_AGENT
    oauth_client_id: str = ICLOUD_WEB_CLIENT_ID

    # Sub-configurations
    proxy: Optional[ProxyConfig] = None
    ssl: SSLConfig = field(default_factory=SSLConfig)
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)

    # Added to every request
    extra_headers: Dict[str, str] = field(default_factory=dict)

    log_level: int = 20  # logging.INFO

    @classmethod
    def default(cls) -> 'ClientConfig':
        """Create default configuration."""
        return cls()

    @classmethod
    def with_proxy(cls, proxy_url: str, **kwargs) -> 'ClientConfig':
        """Create configuration with proxy."""
        return cls(proxy=ProxyConfig(url=proxy_url), **kwargs)

    @classmethod
    def insecure(cls, **kwargs) -> 'ClientConfig':
        """Create configuration with SSL verification disabled."""
        return cls(ssl=SSLConfig(verify=False, check_hostname=False), **kwargs)

    def base_headers(self) -> Dict[str, str]:
        """Headers sent to the setup endpoint and every iCloud service."""
        origin = self.endpoints.cookie_url
        return {
            'Accept': '*/*',
            'Content-Type': 'text/plain',
            'Origin': origin,
            'Referer': f"{origin}/",
            'User-Agent': self.user_agent,
            **self.extra_headers,
        }

    def auth_headers(self) -> Dict[str, str]:
        """Headers sent to the sign-in endpoints."""
        return {
            **self.base_headers(),
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            'X-Apple-OAuth-Client-Id': self.oauth_client_id,
            'X-Apple-OAuth-Client-Type': 'firstPartyAuth',
            'X-Apple-OAuth-Redirect-URI': self.endpoints.cookie_url,
            'X-Apple-OAuth-Require-Grant-Code': 'true',
            'X-Apple-OAuth-Response-Mode': 'web_message',
            'X-Apple-OAuth-Response-Type': 'code',
            'X-Apple-OAuth-State': self.oauth_client_id,
            'X-Apple-Widget-Key': self.oauth_client_id,
        }

    def get_connector_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp TCPConnector."""
        return {
            'ssl': self.ssl.create_ssl_context(),
        }

    def get_session_kwargs(self) -> Dict[str, Any]:
        """Get kwargs for aiohttp ClientSession."""
        return {
            'timeout': self.timeout.to_aiohttp_timeout(),
        }
