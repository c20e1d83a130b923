"""
Gopher transport client.

Gopher has no length framing: a reply ends when the server closes the
connection. This module opens a connection, writes one request line and
collects the reply until the peer closes or the read deadline passes.
Running out of time is a normal end of reply, not a failure, since slow
servers simply stop sending.
"""

import logging
import socket
import time
from typing import Optional

from .config import GOPHER_REQUEST_TERMINATOR, TCP_TIMEOUT
from .exceptions import TransportError


RECV_CHUNK_SIZE = 4096


class TransportClient:
    """
    One bounded-lifetime connection to a Gopher-family server.

    The connect timeout and the read deadline both use ``timeout``. The
    deadline is absolute: it starts once the connection is established and
    covers everything read afterwards.
    """

    def __init__(self, host: str, port: str, timeout: float = TCP_TIMEOUT):
        self.host = host
        self.port = str(port)
        self.timeout = timeout
        self.socket: Optional[socket.socket] = None
        self.deadline: Optional[float] = None
        self._buffer = b""
        self.logger = logging.getLogger(__name__)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def connect(self) -> None:
        """
        Open the connection and start the read deadline.

        Raises:
            TransportError: If the connection cannot be established
        """
        self.logger.debug(f"Connecting to {self.address}")
        try:
            self.socket = socket.create_connection(
                (self.host, int(self.port)), timeout=self.timeout
            )
        except (OSError, ValueError) as e:
            self.logger.warning(f"Failed to connect to {self.address}: {e}")
            raise TransportError(self.host, self.port, f"failed to connect: {e}") from e

        self.deadline = time.monotonic() + self.timeout

    def disconnect(self) -> None:
        """Close the connection."""
        if self.socket:
            try:
                self.socket.close()
            except OSError as e:
                self.logger.warning(f"Error while closing {self.address}: {e}")
            finally:
                self.socket = None
                self._buffer = b""

    def __enter__(self) -> "TransportClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _remaining(self) -> float:
        if self.deadline is None:
            return self.timeout
        return self.deadline - time.monotonic()

    def send_line(self, line: str) -> None:
        """
        Write ``line`` followed by the protocol line terminator.

        Raises:
            TransportError: If not connected or the write fails
        """
        if not self.socket:
            raise TransportError(self.host, self.port, "not connected")

        try:
            self.socket.settimeout(max(self._remaining(), 0.001))
            self.socket.sendall((line + GOPHER_REQUEST_TERMINATOR).encode("utf-8", errors="surrogateescape"))
        except OSError as e:
            self.logger.warning(f"Failed to write request to {self.address}: {e}")
            raise TransportError(self.host, self.port, f"failed to write request: {e}") from e

    def _recv_chunk(self) -> Optional[bytes]:
        """Return the next chunk, b"" on close, or None once the deadline passes."""
        if not self.socket:
            raise TransportError(self.host, self.port, "not connected")

        remaining = self._remaining()
        if remaining <= 0:
            return None

        try:
            self.socket.settimeout(remaining)
            return self.socket.recv(RECV_CHUNK_SIZE)
        except socket.timeout:
            return None
        except OSError as e:
            self.logger.warning(f"Error reading from {self.address}: {e}")
            raise TransportError(self.host, self.port, f"error reading from socket: {e}") from e

    def read_line(self) -> Optional[bytes]:
        """
        Read one line, terminator included.

        Returns:
            The line, a final unterminated fragment, or None if the peer
            sent nothing before closing or before the deadline.
        """
        while b"\n" not in self._buffer:
            chunk = self._recv_chunk()
            if not chunk:
                break
            self._buffer += chunk

        if b"\n" in self._buffer:
            line, _, self._buffer = self._buffer.partition(b"\n")
            return line + b"\n"

        if self._buffer:
            line, self._buffer = self._buffer, b""
            return line
        return None

    def read_until_close(self) -> bytes:
        """Read until the peer closes the connection or the deadline passes."""
        chunks = [self._buffer]
        self._buffer = b""

        while True:
            chunk = self._recv_chunk()
            if chunk is None:
                self.logger.debug(f"Read deadline reached for {self.address}, using partial reply")
                break
            if not chunk:
                break
            chunks.append(chunk)

        return b"".join(chunks)


def decode_text(payload: bytes) -> str:
    """Decode as UTF-8, keeping undecodable bytes as surrogates so they survive re-encoding."""
    return payload.decode("utf-8", errors="surrogateescape")


def fetch_bytes(host: str, port: str, request_line: str, timeout: float = TCP_TIMEOUT) -> bytes:
    """
    Send ``request_line`` to host:port and return the reply untouched.

    Raises:
        TransportError: If connecting, writing or reading fails
    """
    with TransportClient(host, port, timeout=timeout) as client:
        client.send_line(request_line)
        payload = client.read_until_close()

    logging.getLogger(__name__).info(
        f"Fetched {len(payload)} bytes from {host}:{port} selector={request_line!r}"
    )
    return payload


def fetch_text(host: str, port: str, request_line: str, timeout: float = TCP_TIMEOUT) -> str:
    """Same as fetch_bytes, decoded as UTF-8 text."""
    return decode_text(fetch_bytes(host, port, request_line, timeout=timeout))
