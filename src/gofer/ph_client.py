"""
CSO/PH directory-lookup client.

Gopher item type 2 points at a PH (CCSO nameserver) rather than a Gopher
server. A PH server greets with a banner line, then answers "query ..."
commands. Every call here opens its own connection and closes it again.
"""

import logging
from typing import Tuple
from urllib.parse import unquote

from .config import PH_DEFAULT_PORT, TCP_TIMEOUT
from .exceptions import RouteError, TransportError
from .transport import TransportClient, decode_text


PH_ROUTE_PREFIX = "/ph/"

logger = logging.getLogger(__name__)


def parse_ph_route(path: str) -> Tuple[str, str]:
    """
    Split a ``/ph/<host>[:<port>]`` route into host and port.

    Both segments arrive percent-encoded and are decoded here.

    Raises:
        RouteError: If the route carries no host
    """
    if not path.startswith(PH_ROUTE_PREFIX):
        raise RouteError(f"invalid PH route: {path}")

    host, _, port = path[len(PH_ROUTE_PREFIX):].partition(":")
    host = unquote(host.strip("/"), errors="surrogateescape")
    port = unquote(port.strip("/"), errors="surrogateescape")

    if not host:
        raise RouteError(f"invalid PH route: {path}")
    return host, port or PH_DEFAULT_PORT


def greet(host: str, port: str, timeout: float = TCP_TIMEOUT) -> str:
    """
    Connect, read the server banner and disconnect.

    Raises:
        TransportError: If the server cannot be reached or sends no banner
    """
    with TransportClient(host, port, timeout=timeout) as client:
        banner = client.read_line()

    if banner is None:
        raise TransportError(host, port, "PH read failed: no greeting received")

    logger.info(f"PH greeting from {host}:{port}")
    return decode_text(banner).strip()


def query(host: str, port: str, text: str, timeout: float = TCP_TIMEOUT) -> str:
    """
    Run one PH query and return the server's reply block.

    The banner is read and discarded, then ``query <text>`` is sent and the
    reply is collected until the server closes or the deadline passes.

    Raises:
        TransportError: If the server cannot be reached or sends no banner
    """
    with TransportClient(host, port, timeout=timeout) as client:
        if client.read_line() is None:
            raise TransportError(host, port, "PH read failed: no greeting received")

        client.send_line(f"query {text}")
        reply = client.read_until_close()

    logger.info(f"PH query on {host}:{port} returned {len(reply)} bytes")
    return decode_text(reply).strip()
