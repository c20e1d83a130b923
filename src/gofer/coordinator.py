"""
Single-instance coordination.

The first gofer process binds the fixed local service port and becomes the
primary: it serves the gateway until the activity monitor finds it idle.
A later launch fails to bind, becomes a secondary, forwards its gopher URI
to the primary's /focus endpoint and exits. Owning the port is the only
coordination mechanism; there are no lock files.
"""

import logging
import os
from typing import Callable, Optional

import requests

from .config import FOCUS_ENDPOINT, GatewayConfig
from .exceptions import ForwardingError, RequestValidationError
from .launcher import launch_browser
from .menu import parse_gopher_uri
from .server import GatewayHTTPServer, default_context, local_url


class InstanceCoordinator:
    """
    Decides whether this process is the primary or a secondary gofer and
    runs the matching path.
    """

    def __init__(
        self,
        config: GatewayConfig = GatewayConfig(),
        launcher: Callable[[str], object] = launch_browser
    ):
        self.config = config
        self.launcher = launcher
        self.logger = logging.getLogger(__name__)

    def initial_url(self, uri: Optional[str], base_url: Optional[str] = None) -> str:
        """
        Gateway URL for the first page, from a command-line gopher URI.

        Anything that is not a gopher:// URI falls back to the default page.
        ``base_url`` defaults to the configured service address.
        """
        context = default_context(self.config)

        if uri:
            try:
                if not uri.strip().lower().startswith("gopher://"):
                    raise RequestValidationError(f"not a gopher URI: {uri}")
                context = parse_gopher_uri(uri, default_port=self.config.default_gopher_port)
            except RequestValidationError:
                self.logger.warning(f"Invalid URI received: {uri}. Loading default page.")

        return local_url(base_url or self.config.base_url, context)

    def acquire(self) -> Optional[GatewayHTTPServer]:
        """
        Try to bind the service address.

        Returns:
            The bound server if this process is the primary, otherwise None
        """
        try:
            return GatewayHTTPServer(self.config, launcher=self.launcher)
        except OSError as e:
            self.logger.info(
                f"gofer (PID {os.getpid()}) is already running on port {self.config.port} ({e}). "
                "Sending re-focus signal."
            )
            return None

    def forward(self, uri: Optional[str]) -> int:
        """
        Hand ``uri`` (or a bare focus request) to the primary instance.

        Returns:
            int: The HTTP status the primary answered with

        Raises:
            ForwardingError: If the primary cannot be reached
        """
        url = self.config.base_url + FOCUS_ENDPOINT
        params = {"uri": uri} if uri else None

        try:
            response = requests.get(url, params=params, timeout=self.config.tcp_timeout)
        except requests.RequestException as e:
            raise ForwardingError(f"Error sending re-focus signal to {url}: {e}") from e

        self.logger.info(f"Primary answered {response.status_code}: {response.text}")
        return response.status_code

    def serve(self, server: GatewayHTTPServer, initial_url: str) -> None:
        """Run the primary until the activity monitor stops the server."""
        self.logger.info(f"gofer (PID {os.getpid()}) starting server on port {server.server_address[1]}...")

        server.monitor.start()
        server.monitor.touch()
        self.launcher(initial_url)

        try:
            server.serve_forever()
        finally:
            server.monitor.stop()
            server.server_close()
            self.logger.info("gofer stopped")

    def run(self, uri: Optional[str] = None) -> int:
        """
        Start as primary or forward as secondary.

        Returns:
            int: Process exit status

        Raises:
            ForwardingError: If this is a secondary and the primary is unreachable
        """
        server = self.acquire()
        if server is None:
            self.forward(uri)
            return 0

        self.serve(server, self.initial_url(uri, server.base_url))
        return 0
