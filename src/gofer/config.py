"""
Fixed configuration for the gofer gateway.

There is no configuration file: every value is a constant. GatewayConfig
bundles them so that a server can be built with a different port or
shorter timeouts (tests bind port 0).
"""

from dataclasses import dataclass


LOCAL_SERVER_HOST = "127.0.0.1"
LOCAL_SERVER_PORT = 8000
BROWSER_HOST = "localhost"

DEFAULT_GOPHER_HOST = "freeshell.org"
DEFAULT_GOPHER_PORT = "70"
DEFAULT_SELECTOR = "/"
PH_DEFAULT_PORT = "105"

SHUTDOWN_TIMEOUT_SECONDS = 60.0
MONITOR_INTERVAL_SECONDS = 5.0
TCP_TIMEOUT = 5.0
PAGE_HEARTBEAT_MS = 55000
HEARTMON_PING_MS = 30000

GOPHER_REQUEST_TERMINATOR = "\r\n"
FOCUS_ENDPOINT = "/focus"
HEARTBEAT_ENDPOINT = "/heartbeat"


@dataclass(frozen=True)
class GatewayConfig:
    host: str = LOCAL_SERVER_HOST
    port: int = LOCAL_SERVER_PORT
    browser_host: str = BROWSER_HOST
    default_gopher_host: str = DEFAULT_GOPHER_HOST
    default_gopher_port: str = DEFAULT_GOPHER_PORT
    idle_timeout: float = SHUTDOWN_TIMEOUT_SECONDS
    monitor_interval: float = MONITOR_INTERVAL_SECONDS
    tcp_timeout: float = TCP_TIMEOUT

    @property
    def base_url(self) -> str:
        """Root URL the browser uses to reach this gateway."""
        return f"http://{self.browser_host}:{self.port}"
