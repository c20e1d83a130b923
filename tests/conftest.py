"""
Shared fixtures: a scriptable loopback Gopher/PH server.
"""

import socketserver
import threading
import time
from typing import Callable, List, Optional, Union

import pytest


Reply = Union[bytes, Callable[[bytes], bytes]]


class _FakeHandler(socketserver.StreamRequestHandler):

    def handle(self):
        fake = self.server.fake
        try:
            if fake.banner is not None:
                self.wfile.write(fake.banner)

            line = self.rfile.readline()
            fake.requests.append(line)
            reply = fake.reply(line) if callable(fake.reply) else fake.reply

            self.wfile.write(reply)
            if fake.hold_open:
                time.sleep(fake.hold_open)
        except OSError:
            pass


class _ThreadingServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True


class FakeGopherServer:
    """
    Loopback server that records each request line and answers with ``reply``.

    With ``banner`` set it behaves like a PH server: the banner is sent on
    connect, before the request line is read. ``hold_open`` keeps the
    connection open after replying, to exercise read deadlines.
    """

    def __init__(
        self,
        reply: Reply = b"",
        banner: Optional[bytes] = None,
        hold_open: float = 0.0
    ):
        self.reply = reply
        self.banner = banner
        self.hold_open = hold_open
        self.requests: List[bytes] = []
        self._server = _ThreadingServer(("127.0.0.1", 0), _FakeHandler)
        self._server.fake = self
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def host(self) -> str:
        return "127.0.0.1"

    @property
    def port(self) -> str:
        return str(self._server.server_address[1])

    def start(self) -> "FakeGopherServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def gopher_server():
    """Factory fixture; every server it starts is stopped after the test."""
    servers = []

    def _start(**kwargs) -> FakeGopherServer:
        server = FakeGopherServer(**kwargs).start()
        servers.append(server)
        return server

    yield _start

    for server in servers:
        server.stop()


@pytest.fixture
def closed_port() -> str:
    """A loopback port with nothing listening on it."""
    import socket

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return str(sock.getsockname()[1])
