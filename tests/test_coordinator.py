"""
Tests for single-instance coordination.
"""

import socket
import threading
from unittest.mock import Mock, patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from src.gofer.config import GatewayConfig
from src.gofer.coordinator import InstanceCoordinator
from src.gofer.exceptions import ForwardingError
from src.gofer.server import GatewayHTTPServer


def params_of(url):
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query, keep_blank_values=True).items()}


@pytest.fixture
def primary():
    """A primary gateway already serving on an ephemeral port."""
    server = GatewayHTTPServer(GatewayConfig(port=0, tcp_timeout=1.0), launcher=Mock())
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=2)


class TestInitialUrl:
    """Test cases for the first page a primary opens."""

    def setup_method(self):
        self.coordinator = InstanceCoordinator(GatewayConfig(), launcher=Mock())

    def test_default_page(self):
        url = self.coordinator.initial_url(None)

        assert url.startswith("http://localhost:8000/?")
        assert params_of(url) == {"type": "1", "host": "freeshell.org", "port": "70", "selector": "/"}

    def test_gopher_uri(self):
        url = self.coordinator.initial_url("gopher://gopher.example:7070/0/about.txt")

        assert params_of(url) == {"type": "0", "host": "gopher.example", "port": "7070", "selector": "/about.txt"}

    def test_gopher_uri_without_path(self):
        url = self.coordinator.initial_url("gopher://gopher.example")

        assert params_of(url) == {"type": "1", "host": "gopher.example", "port": "70", "selector": ""}

    @pytest.mark.parametrize("uri", ["http://example.org/", "gopher.example/1/", "gopher://"])
    def test_invalid_uri_falls_back_to_default(self, uri):
        url = self.coordinator.initial_url(uri)

        assert params_of(url)["host"] == "freeshell.org"

    def test_explicit_base_url(self):
        url = self.coordinator.initial_url(None, "http://localhost:4242")

        assert url.startswith("http://localhost:4242/?")


class TestAcquire:
    """Test cases for binding the service port."""

    def test_acquire_free_port(self):
        coordinator = InstanceCoordinator(GatewayConfig(port=0), launcher=Mock())

        server = coordinator.acquire()
        try:
            assert isinstance(server, GatewayHTTPServer)
        finally:
            server.server_close()

    def test_acquire_owned_port(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as owner:
            owner.bind(("127.0.0.1", 0))
            owner.listen(1)
            port = owner.getsockname()[1]

            coordinator = InstanceCoordinator(GatewayConfig(port=port), launcher=Mock())

            assert coordinator.acquire() is None


class TestForward:
    """Test cases for a secondary handing its URI to the primary."""

    def setup_method(self):
        self.coordinator = InstanceCoordinator(GatewayConfig(port=8123, tcp_timeout=2.0), launcher=Mock())

    @patch('src.gofer.coordinator.requests.get')
    def test_forward_with_uri(self, mock_get):
        mock_get.return_value = Mock(status_code=200, text="Redirecting session to: ...")

        status = self.coordinator.forward("gopher://example.org/1/")

        assert status == 200
        mock_get.assert_called_once_with(
            "http://localhost:8123/focus",
            params={"uri": "gopher://example.org/1/"},
            timeout=2.0,
        )

    @patch('src.gofer.coordinator.requests.get')
    def test_forward_without_uri(self, mock_get):
        mock_get.return_value = Mock(status_code=400, text="Missing 'uri' parameter.")

        status = self.coordinator.forward(None)

        assert status == 400
        assert mock_get.call_args[1]["params"] is None

    @patch('src.gofer.coordinator.requests.get')
    def test_forward_unreachable_primary(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("Connection refused")

        with pytest.raises(ForwardingError, match="re-focus"):
            self.coordinator.forward("gopher://example.org/")

    @patch('src.gofer.coordinator.requests.get')
    def test_run_as_secondary_exits_zero_on_any_status(self, mock_get):
        mock_get.return_value = Mock(status_code=400, text="Invalid gopher URI.")
        self.coordinator.acquire = Mock(return_value=None)

        assert self.coordinator.run("not a uri") == 0
        self.coordinator.launcher.assert_not_called()


class TestRun:
    """End-to-end primary/secondary behaviour on loopback."""

    def test_second_instance_forwards_to_first(self, primary):
        port = primary.server_address[1]
        secondary = InstanceCoordinator(GatewayConfig(port=port, tcp_timeout=2.0), launcher=Mock())

        status = secondary.run("gopher://gopher.example:7070/1/phlog")

        assert status == 0
        secondary.launcher.assert_not_called()
        primary.launcher.assert_called_once()
        forwarded = primary.launcher.call_args[0][0]
        assert params_of(forwarded) == {
            "type": "1", "host": "gopher.example", "port": "7070", "selector": "/phlog",
        }

    def test_bare_second_instance_is_a_keep_alive(self, primary):
        port = primary.server_address[1]
        primary.monitor.last_activity -= 45
        secondary = InstanceCoordinator(GatewayConfig(port=port, tcp_timeout=2.0), launcher=Mock())

        assert secondary.run(None) == 0
        assert primary.monitor.idle_seconds() < 1.0
        primary.launcher.assert_not_called()

    def test_primary_opens_browser_and_stops_when_idle(self):
        launcher = Mock()
        config = GatewayConfig(port=0, idle_timeout=0.2, monitor_interval=0.05)
        coordinator = InstanceCoordinator(config, launcher=launcher)

        status = coordinator.run("gopher://gopher.example/0/readme")

        assert status == 0
        launcher.assert_called_once()
        opened = launcher.call_args[0][0]
        assert not opened.startswith("http://localhost:0/")
        assert params_of(opened)["selector"] == "/readme"
