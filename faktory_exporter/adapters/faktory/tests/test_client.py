"""Tests for the Faktory wire-protocol client.

A tiny threaded TCP server speaks just enough of the Faktory protocol to
exercise the handshake, INFO and END.
"""

import json
import socketserver
import threading

import pytest

from faktory_exporter.adapters.faktory import (
    DEFAULT_PORT,
    FaktoryClient,
    FaktoryServer,
    hash_password,
    parse_faktory_url,
)
from faktory_exporter.core.config import FaktoryScheme
from faktory_exporter.core.exceptions import ConnectionSetupError, FetchError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _Handler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        fake: FakeFaktoryServer = self.server.fake  # type: ignore[attr-defined]
        fake.connections += 1

        hi: dict = {"v": 2}
        if fake.password is not None:
            hi.update({"i": fake.iterations, "s": fake.salt})
        hi.update(fake.greeting_overrides)
        self._send(f"+HI {json.dumps(hi)}")

        hello_line = self.rfile.readline().decode().rstrip("\r\n")
        if not hello_line.startswith("HELLO "):
            return
        hello = json.loads(hello_line[len("HELLO "):])
        fake.hellos.append(hello)

        if fake.hello_error is not None:
            self._send(f"-{fake.hello_error}")
            return
        if fake.password is not None:
            expected = hash_password(fake.password, fake.salt, fake.iterations)
            if hello.get("pwdhash") != expected:
                self._send("-ERR Invalid password")
                return
        self._send("+OK")

        while True:
            line = self.rfile.readline()
            if not line:
                return
            command = line.decode().rstrip("\r\n")
            fake.commands.append(command)
            if command == "END":
                return
            if command == "INFO":
                if fake.drop_next_info:
                    fake.drop_next_info = False
                    return
                payload = fake.info_payload.encode()
                self.wfile.write(b"$%d\r\n" % len(payload) + payload + b"\r\n")
                self.wfile.flush()
            else:
                self._send("-ERR Unknown command")

    def _send(self, line: str) -> None:
        self.wfile.write(line.encode() + b"\r\n")
        self.wfile.flush()


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


class FakeFaktoryServer:
    """Threaded TCP server speaking a subset of the Faktory protocol."""

    def __init__(self, info: dict, password: str | None = None) -> None:
        self.info_payload = json.dumps(info)
        self.password = password
        self.salt = "a1b2c3"
        self.iterations = 3
        self.hello_error: str | None = None
        self.greeting_overrides: dict = {}
        self.drop_next_info = False
        self.connections = 0
        self.hellos: list[dict] = []
        self.commands: list[str] = []
        self._server = _TCPServer(("127.0.0.1", 0), _Handler)
        self._server.fake = self  # type: ignore[attr-defined]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def url(self, password: str | None = None) -> str:
        auth = f":{password}@" if password else ""
        return f"tcp://{auth}127.0.0.1:{self.port}"

    def start(self) -> "FakeFaktoryServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()


@pytest.fixture
def faktory_server(info_document):
    server = FakeFaktoryServer(info_document).start()
    yield server
    server.stop()


@pytest.fixture
def protected_faktory_server(info_document):
    server = FakeFaktoryServer(info_document, password="s3cret").start()
    yield server
    server.stop()


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    import time

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _unused_port() -> int:
    import socket

    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# URL parsing
# ---------------------------------------------------------------------------


class TestParseFaktoryUrl:
    """Connection URLs are parsed into FaktoryServer."""

    def test_plain_tcp(self):
        server = parse_faktory_url("tcp://localhost:7419")

        assert server == FaktoryServer(scheme=FaktoryScheme.TCP, host="localhost", port=7419)
        assert server.tls is False
        assert server.address == "localhost:7419"

    def test_default_port(self):
        assert parse_faktory_url("tcp://faktory").port == DEFAULT_PORT

    def test_password(self):
        server = parse_faktory_url("tcp://:p%40ss@faktory.internal:7420")

        assert server.password == "p@ss"
        assert server.host == "faktory.internal"
        assert server.port == 7420

    def test_empty_password_is_none(self):
        assert parse_faktory_url("tcp://:@faktory:7419").password is None

    def test_tls_scheme(self):
        server = parse_faktory_url("tcp+tls://faktory:7419")

        assert server.scheme == FaktoryScheme.TCP_TLS
        assert server.tls is True

    def test_ipv6_address(self):
        server = parse_faktory_url("tcp://[::1]:7419")

        assert server.host == "::1"
        assert server.address == "[::1]:7419"

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:7419",
            "localhost:7419",
            "tcp://localhost:notaport",
            "tcp://localhost:99999",
            "tcp://:7419",
            "",
        ],
    )
    def test_invalid_urls(self, url):
        with pytest.raises(ConnectionSetupError):
            parse_faktory_url(url)


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class TestHashPassword:
    """Password hash matches the server's iterated SHA-256."""

    def test_single_iteration(self):
        import hashlib

        assert hash_password("pwd", "salt", 1) == hashlib.sha256(b"pwdsalt").hexdigest()

    def test_iterations_rehash_the_digest(self):
        import hashlib

        digest = hashlib.sha256(b"pwdsalt").digest()
        digest = hashlib.sha256(digest).digest()
        digest = hashlib.sha256(digest).digest()

        assert hash_password("pwd", "salt", 3) == digest.hex()


# ---------------------------------------------------------------------------
# FaktoryClient
# ---------------------------------------------------------------------------


class TestFaktoryClient:
    """Handshake, INFO and reconnect behavior against a fake server."""

    def test_from_url_connects_and_says_hello(self, faktory_server):
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            assert faktory_server.connections == 1
            hello = faktory_server.hellos[0]
            assert hello["v"] == 2
            assert "pwdhash" not in hello
            assert isinstance(hello["pid"], int)
        finally:
            client.close()

    def test_fetch_status_returns_info_document(self, faktory_server, info_document):
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            assert client.fetch_status() == info_document
            assert client.fetch_status() == info_document
        finally:
            client.close()

        # One connection reused for both fetches, closed with END.
        assert faktory_server.connections == 1
        assert _wait_for(lambda: faktory_server.commands == ["INFO", "INFO", "END"])

    def test_password_handshake(self, protected_faktory_server, info_document):
        client = FaktoryClient.from_url(protected_faktory_server.url("s3cret"), timeout=2)
        try:
            assert client.fetch_status() == info_document
        finally:
            client.close()

        expected = hash_password("s3cret", protected_faktory_server.salt, 3)
        assert protected_faktory_server.hellos[0]["pwdhash"] == expected

    def test_wrong_password_fails_setup(self, protected_faktory_server):
        with pytest.raises(ConnectionSetupError, match="Invalid password"):
            FaktoryClient.from_url(protected_faktory_server.url("wrong"), timeout=2)

    def test_missing_password_fails_setup(self, protected_faktory_server):
        with pytest.raises(ConnectionSetupError, match="requires a password"):
            FaktoryClient.from_url(protected_faktory_server.url(), timeout=2)

    def test_hello_rejected(self, faktory_server):
        faktory_server.hello_error = "ERR Unsupported protocol"

        with pytest.raises(ConnectionSetupError, match="Unsupported protocol"):
            FaktoryClient.from_url(faktory_server.url(), timeout=2)

    def test_unreachable_server_fails_setup(self):
        with pytest.raises(ConnectionSetupError):
            FaktoryClient.from_url(f"tcp://127.0.0.1:{_unused_port()}", timeout=1)

    def test_invalid_url_fails_setup(self):
        with pytest.raises(ConnectionSetupError):
            FaktoryClient.from_url("redis://localhost:6379")

    def test_dropped_connection_raises_fetch_error_then_reconnects(
        self, faktory_server, info_document
    ):
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            faktory_server.drop_next_info = True
            with pytest.raises(FetchError):
                client.fetch_status()

            assert client.fetch_status() == info_document
            assert faktory_server.connections == 2
        finally:
            client.close()

    def test_reconnect_to_stopped_server_raises_fetch_error(self, info_document):
        server = FakeFaktoryServer(info_document).start()
        client = FaktoryClient.from_url(server.url(), timeout=1)
        server.stop()
        try:
            # The open session is dropped; the reconnect is refused.
            server.drop_next_info = True
            with pytest.raises(FetchError):
                client.fetch_status()
            with pytest.raises(FetchError):
                client.fetch_status()
        finally:
            client.close()

    def test_non_object_info_raises_fetch_error(self, faktory_server):
        faktory_server.info_payload = json.dumps([1, 2, 3])
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            with pytest.raises(FetchError, match="not a JSON object"):
                client.fetch_status()
        finally:
            client.close()

    def test_invalid_json_raises_fetch_error(self, faktory_server):
        faktory_server.info_payload = "{not json"
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            with pytest.raises(FetchError):
                client.fetch_status()
        finally:
            client.close()

    def test_close_is_idempotent(self, faktory_server):
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        client.close()
        client.close()

        assert _wait_for(lambda: faktory_server.commands == ["END"])

    @pytest.mark.parametrize("version", ["2", None, 2.0, True])
    def test_non_integer_protocol_version_fails_setup(self, faktory_server, version):
        faktory_server.greeting_overrides = {"v": version}

        with pytest.raises(ConnectionSetupError, match="Invalid protocol version"):
            FaktoryClient.from_url(faktory_server.url(), timeout=2)

    def test_newer_protocol_version_is_accepted(self, faktory_server, info_document):
        faktory_server.greeting_overrides = {"v": 3}
        client = FaktoryClient.from_url(faktory_server.url(), timeout=2)
        try:
            assert client.fetch_status() == info_document
        finally:
            client.close()

    @pytest.mark.parametrize("overrides", [{"i": "3"}, {"s": 42}])
    def test_malformed_password_challenge_fails_setup(self, protected_faktory_server, overrides):
        protected_faktory_server.greeting_overrides = overrides

        with pytest.raises(ConnectionSetupError, match="Invalid password challenge"):
            FaktoryClient.from_url(protected_faktory_server.url("s3cret"), timeout=2)
