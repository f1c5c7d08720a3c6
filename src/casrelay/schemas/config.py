"""
Defines structured configuration models using dataclasses.
"""

from dataclasses import dataclass, field

CAS_BASE_URL = "https://cas.iium.edu.my:8448"
CAS_LOGIN_PATH = "/cas/login?service=https%3a%2f%2fimaluum.iium.edu.my%2fhome"


@dataclass
class TransportConfig:
    """Configuration for the shared upstream HTTP transport.

    Attributes:
        backend: HTTP backend name ("httpx" or "aiohttp").
        base_url: Base URL that relative request paths are resolved against.
        timeout: Per-request timeout in seconds.
        max_connections: Maximum idle connections kept per destination host.
        keepalive_expiry: Seconds an idle pooled connection is kept open.
        user_agent: Custom User-Agent string.
        headers: Headers attached to every request. Replaces the browser
            defaults when given.
        verify_ssl: Whether to verify SSL certificates.
        http2: Whether HTTP/2 should be negotiated. (`httpx`)
        trust_env: Whether environment variables are used for proxies.
        proxy: Proxy server URL.
    """

    backend: str = "httpx"
    base_url: str = CAS_BASE_URL
    timeout: float = 10.0
    max_connections: int = 10
    keepalive_expiry: float = 90.0
    user_agent: str | None = None
    headers: dict[str, str] | None = None
    verify_ssl: bool = True
    http2: bool = True
    trust_env: bool = False
    proxy: str | None = None


@dataclass
class UpstreamConfig:
    """Configuration describing the CAS portal and its login handshake.

    Attributes:
        login_path: Path (or absolute URL) of the CAS login page.
        post_path: Path the credentials are posted to. Defaults to
            ``login_path``.
        auth_cookie_name: Name of the cookie carrying the auth token.
        max_redirects: Maximum redirects followed per handshake phase.
        phase_timeout: Wall-clock limit in seconds for one handshake phase,
            redirects included. Defaults to the transport timeout.
        require_session_cookie: Whether the login page must set at least one
            cookie for the session to be considered established.
        default_execution: Fallback value for the CAS ``execution`` field
            when the login page does not carry one.
        extra_form: Additional form fields sent with the credentials.
        invalid_credential_statuses: Status codes treated as a credential
            rejection.
        failure_markers: Body substrings that identify the failure page.
        failure_xpath: Optional XPath that matches the failure page's error
            element.
    """

    login_path: str = CAS_LOGIN_PATH
    post_path: str | None = None
    auth_cookie_name: str = "MOD_AUTH_CAS"
    max_redirects: int = 10
    phase_timeout: float | None = None
    require_session_cookie: bool = True
    default_execution: str = "e1s1"
    extra_form: dict[str, str] = field(
        default_factory=lambda: {"_eventId": "submit", "geolocation": ""}
    )
    invalid_credential_statuses: frozenset[int] = frozenset({401, 403})
    failure_markers: tuple[str, ...] = ("Login failed", "Invalid credentials")
    failure_xpath: str | None = None


@dataclass
class ServerConfig:
    """Configuration for the RPC server.

    Attributes:
        host: Interface to bind.
        port: TCP port to bind.
        auth_token: Shared secret callers must present as a bearer token.
            Authentication is disabled when unset.
        log_level: Root log level name.
    """

    host: str = "0.0.0.0"
    port: int = 50052
    auth_token: str | None = None
    log_level: str = "INFO"


@dataclass
class AppConfig:
    """Top-level configuration.

    Attributes:
        server: RPC server settings.
        upstream: CAS portal settings.
        transport: Shared HTTP transport settings.
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
