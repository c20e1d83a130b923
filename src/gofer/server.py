"""
HTTP front end of the gateway.

Routes:
    /            fetch a Gopher item (uri=... or type/host/port/selector)
    /focus       navigation forwarded by a second gofer process
    /heartbeat   liveness ping, keeps the gateway from going idle
    /heartmon    small page that pings /heartbeat while it stays open
    /ph/h:p      CSO/PH directory lookup
    /search      Gopher index search (item type 7)

Every request, whatever its route or method, counts as activity.
"""

import logging
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from . import ph_client
from .activity import ActivityMonitor
from .config import FOCUS_ENDPOINT, GatewayConfig, HEARTBEAT_ENDPOINT
from .content_type import detect_content_type
from .exceptions import RequestValidationError, TransportError
from .launcher import launch_browser
from .menu import ItemTypes, NavigationContext, error_record, parse_directory, parse_gopher_uri
from .render import (
    navigation_url, render_directory, render_heartmon_page, render_ph_page, render_search_page
)
from .search import search
from .transport import decode_text, fetch_bytes


logger = logging.getLogger(__name__)

HTML_TYPE = "text/html; charset=utf-8"
TEXT_TYPE = "text/plain; charset=utf-8"


def local_url(base_url: str, context: NavigationContext) -> str:
    """Absolute gateway URL the browser should open for ``context``."""
    return base_url + navigation_url(
        context.item_type, context.host, context.port, context.selector
    )


def default_context(config: GatewayConfig) -> NavigationContext:
    return NavigationContext(
        host=config.default_gopher_host,
        port=config.default_gopher_port,
        selector="/",
        item_type=ItemTypes.DIRECTORY,
    )


def _first(query: Dict[str, List[str]], name: str) -> Optional[str]:
    values = query.get(name)
    if not values:
        return None
    return values[0]


class GatewayRequestHandler(BaseHTTPRequestHandler):
    """Dispatches gateway routes; one instance per request, one thread per request."""

    server_version = "gofer/0.5"
    server: "GatewayHTTPServer"

    def do_GET(self) -> None:  # noqa: N802
        self._dispatch("GET")

    def do_POST(self) -> None:  # noqa: N802
        self._dispatch("POST")

    def do_PUT(self) -> None:  # noqa: N802
        self._dispatch("PUT")

    def do_DELETE(self) -> None:  # noqa: N802
        self._dispatch("DELETE")

    def do_PATCH(self) -> None:  # noqa: N802
        self._dispatch("PATCH")

    def _dispatch(self, method: str) -> None:
        self.server.monitor.touch()

        parsed = urlsplit(self.path)
        route = parsed.path
        query = parse_qs(parsed.query, keep_blank_values=True, errors="surrogateescape")

        try:
            if route == "/":
                if method != "GET":
                    self._write_error(405, "Method not allowed")
                    return
                self._handle_navigation(query)
            elif route == FOCUS_ENDPOINT:
                self._handle_focus(query)
            elif route == HEARTBEAT_ENDPOINT:
                self._write(200, b"", TEXT_TYPE)
            elif route == "/heartmon":
                self._write_html(render_heartmon_page())
            elif route.startswith(ph_client.PH_ROUTE_PREFIX):
                self._handle_ph(method, route, query)
            elif route == "/search":
                self._handle_search(method, query)
            else:
                self._write_error(404, "Not found")
        except RequestValidationError as e:
            self._write_error(400, str(e))
        except TransportError as e:
            self._write_error(502, str(e))

    def _navigation_context(self, query: Dict[str, List[str]]) -> NavigationContext:
        config = self.server.config

        uri = _first(query, "uri")
        if uri:
            return parse_gopher_uri(uri, default_port=config.default_gopher_port)

        item_type = _first(query, "type") or ItemTypes.DIRECTORY
        return NavigationContext(
            host=_first(query, "host") or config.default_gopher_host,
            port=_first(query, "port") or config.default_gopher_port,
            selector=query.get("selector", ["/"])[0],
            item_type=item_type[0],
        )

    def _handle_navigation(self, query: Dict[str, List[str]]) -> None:
        context = self._navigation_context(query)

        # The declared type only decides how the reply is served; it is not checked against it.
        try:
            payload = fetch_bytes(
                context.host, context.port, context.selector, timeout=self.server.config.tcp_timeout
            )
        except TransportError as e:
            records = [error_record(f"Connection failed: {e}", context)]
            self._write_html(render_directory(records, context))
            return

        if context.item_type == ItemTypes.TEXT:
            self._write(200, payload, TEXT_TYPE)
        elif context.item_type == ItemTypes.DIRECTORY:
            records = parse_directory(decode_text(payload), context)
            self._write_html(render_directory(records, context))
        else:
            self._write(200, payload, detect_content_type(payload))

    def _handle_focus(self, query: Dict[str, List[str]]) -> None:
        """
        Open the browser at a gopher URI forwarded by a second gofer process.

        A bare /focus (no uri) is answered 400, but it has already been
        counted as activity, so it still works as a keep-alive.
        """
        uri = _first(query, "uri")
        if not uri:
            raise RequestValidationError("Missing 'uri' parameter.")
        if not uri.strip().lower().startswith("gopher://"):
            raise RequestValidationError("Invalid gopher URI.")

        target = parse_gopher_uri(uri, default_port=self.server.config.default_gopher_port)
        url = local_url(self.server.base_url, target)

        logger.info(f"Focus request for {uri}")
        self.server.launcher(url)
        self._write(200, f"Redirecting session to: {url}".encode("utf-8"), TEXT_TYPE)

    def _handle_ph(self, method: str, route: str, query: Dict[str, List[str]]) -> None:
        if method not in ("GET", "POST"):
            self._write_error(405, "Method not allowed")
            return

        host, port = ph_client.parse_ph_route(route)
        return_url = _first(query, "return") or "/"
        timeout = self.server.config.tcp_timeout

        if method == "POST":
            text = self._form_query()
            content = ph_client.query(host, port, text, timeout=timeout)
        else:
            content = ph_client.greet(host, port, timeout=timeout)

        self._write_html(render_ph_page(host, port, content, return_url))

    def _handle_search(self, method: str, query: Dict[str, List[str]]) -> None:
        host = _first(query, "host")
        port = _first(query, "port")
        selector = _first(query, "selector")
        if not host or not port or not selector:
            raise RequestValidationError("Missing host, port, or selector")

        return_url = _first(query, "return") or "/"

        if method == "GET":
            self._write_html(render_search_page("", host, port, return_url))
        elif method == "POST":
            terms = self._form_query()
            reply = search(host, port, selector, terms, timeout=self.server.config.tcp_timeout)
            context = NavigationContext(host, port, selector, ItemTypes.SEARCH)
            listing = render_directory(parse_directory(reply, context), context, embedded=True)
            self._write_html(render_search_page(listing, host, port, return_url))
        else:
            self._write_error(405, "Method not allowed")

    def _form_query(self) -> str:
        """
        Read the ``query`` field of a urlencoded POST body.

        Raises:
            RequestValidationError: If the body is unreadable or the query is empty
        """
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError as e:
            raise RequestValidationError("Invalid form data") from e

        body = self.rfile.read(length) if length > 0 else b""
        form = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)

        text = (_first(form, "query") or "").strip()
        if not text:
            raise RequestValidationError("Empty query")
        return text

    def _write(self, status: int, body: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)

    def _write_html(self, html: str) -> None:
        self._write(200, html.encode("utf-8", errors="replace"), HTML_TYPE)

    def _write_error(self, status: int, message: str) -> None:
        logger.debug(f"{self.command} {self.path} -> {status}: {message}")
        self._write(status, message.encode("utf-8", errors="replace"), TEXT_TYPE)

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


class GatewayHTTPServer(ThreadingHTTPServer):
    """
    The gateway's HTTP server.

    Constructing it binds the service address; an OSError from the
    constructor means another process already owns the address.
    """

    daemon_threads = True
    # Windows SO_REUSEADDR would let a second process bind an owned port.
    allow_reuse_address = sys.platform != "win32"
    allow_reuse_port = False

    def __init__(
        self,
        config: GatewayConfig = GatewayConfig(),
        launcher: Callable[[str], object] = launch_browser
    ):
        self.config = config
        self.launcher = launcher
        self.monitor = ActivityMonitor(
            on_idle=self.shutdown,
            idle_timeout=config.idle_timeout,
            interval=config.monitor_interval,
        )
        super().__init__((config.host, config.port), GatewayRequestHandler)

    @property
    def base_url(self) -> str:
        """Root URL of this server as the browser sees it (follows the bound port)."""
        return f"http://{self.config.browser_host}:{self.server_address[1]}"
