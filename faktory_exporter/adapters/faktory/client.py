"""Faktory wire-protocol client.

Implements the subset of the Faktory protocol the exporter needs: the
``HI``/``HELLO`` handshake (with optional password hashing), ``INFO`` and
``END``. Faktory speaks a RESP-like line protocol:

    +<simple string>\\r\\n
    -<error>\\r\\n
    $<length>\\r\\n<payload>\\r\\n      ($-1 is a null bulk string)

The client holds one connection; a lock keeps a single request/reply
exchange in flight. Any failure during an exchange drops the connection and
the next ``fetch_status()`` reconnects.
"""

import hashlib
import json
import os
import socket
import ssl
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Optional
from urllib.parse import unquote, urlsplit

from faktory_exporter.core.config.enums import FaktoryScheme
from faktory_exporter.core.exceptions import (
    ConnectionSetupError,
    FaktoryProtocolError,
    FetchError,
)
from faktory_exporter.core.logging import logger
from faktory_exporter.core.protocols.status import StatusDocument, StatusSource

DEFAULT_PORT = 7419
PROTOCOL_VERSION = 2


@dataclass(frozen=True)
class FaktoryServer:
    """Connection parameters parsed from a Faktory URL."""

    scheme: FaktoryScheme
    host: str
    port: int = DEFAULT_PORT
    password: Optional[str] = None

    @property
    def tls(self) -> bool:
        return self.scheme == FaktoryScheme.TCP_TLS

    @property
    def address(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"


def parse_faktory_url(url: str) -> FaktoryServer:
    """Parse ``tcp://:password@host:port`` into ``FaktoryServer``.

    Raises:
        ConnectionSetupError: the URL is malformed, uses an unknown scheme,
            or has no host.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise ConnectionSetupError(f"Invalid Faktory URL {url!r}: {e}") from e

    try:
        scheme = FaktoryScheme(parts.scheme.lower())
    except ValueError:
        raise ConnectionSetupError(
            f"Invalid Faktory URL {url!r}: unsupported scheme {parts.scheme!r} "
            f"(expected one of {', '.join(s.value for s in FaktoryScheme)})"
        ) from None

    if not parts.hostname:
        raise ConnectionSetupError(f"Invalid Faktory URL {url!r}: missing host")

    password = unquote(parts.password) if parts.password is not None else None
    return FaktoryServer(
        scheme=scheme,
        host=parts.hostname,
        port=port or DEFAULT_PORT,
        password=password or None,
    )


def hash_password(password: str, salt: str, iterations: int) -> str:
    """Hash a password the way the Faktory server expects in ``HELLO``.

    SHA-256 over ``password + salt``, then over the previous digest for the
    remaining ``iterations - 1`` rounds; hex encoded.
    """
    digest = hashlib.sha256((password + salt).encode("utf-8")).digest()
    for _ in range(1, iterations):
        digest = hashlib.sha256(digest).digest()
    return digest.hex()


class _Connection:
    """One open socket plus its buffered reader."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.reader: BinaryIO = sock.makefile("rb")

    def send(self, command: str) -> None:
        self.sock.sendall(command.encode("utf-8") + b"\r\n")

    def read_reply(self) -> Optional[str]:
        line = self.reader.readline()
        if not line:
            raise FaktoryProtocolError("Connection closed by server")
        if not line.endswith(b"\r\n"):
            raise FaktoryProtocolError(f"Malformed reply line: {line!r}")

        text = line[:-2].decode("utf-8")
        kind, body = text[:1], text[1:]
        if kind == "+":
            return body
        if kind == "-":
            raise FaktoryProtocolError(body)
        if kind == "$":
            try:
                length = int(body)
            except ValueError:
                raise FaktoryProtocolError(f"Invalid bulk length: {body!r}") from None
            if length < 0:
                return None
            payload = self.reader.read(length + 2)
            if len(payload) != length + 2 or not payload.endswith(b"\r\n"):
                raise FaktoryProtocolError("Truncated bulk reply")
            return payload[:-2].decode("utf-8")
        raise FaktoryProtocolError(f"Unexpected reply type: {text!r}")

    def close(self) -> None:
        try:
            self.reader.close()
        finally:
            self.sock.close()


class FaktoryClient(StatusSource):
    """Blocking Faktory client that fetches the server's ``INFO`` document.

    Args:
        server: Parsed connection parameters.
        timeout: Socket timeout in seconds for connect and every round trip.
    """

    def __init__(self, server: FaktoryServer, timeout: float = 5.0) -> None:
        self._server = server
        self._timeout = timeout
        self._lock = threading.Lock()
        self._conn: _Connection | None = None
        self._log = logger.with_context(component="faktory_client", address=server.address)

    @classmethod
    def from_url(cls, url: str, timeout: float = 5.0) -> "FaktoryClient":
        """Parse ``url`` and dial the server.

        Raises:
            ConnectionSetupError: the URL is invalid or the handshake fails.
        """
        client = cls(parse_faktory_url(url), timeout=timeout)
        client.connect()
        return client

    @property
    def server(self) -> FaktoryServer:
        return self._server

    def connect(self) -> None:
        """Open the connection and complete the handshake.

        Raises:
            ConnectionSetupError: the server is unreachable or rejects the
                handshake.
        """
        with self._lock:
            try:
                self._ensure_connected()
            except (OSError, FaktoryProtocolError, ValueError) as e:
                raise ConnectionSetupError(
                    f"Failed to connect to Faktory at {self._server.address}: {e}"
                ) from e

    def fetch_status(self) -> StatusDocument:
        """Issue ``INFO`` and return the decoded JSON document.

        Raises:
            FetchError: on transport, protocol or JSON errors.
        """
        with self._lock:
            try:
                conn = self._ensure_connected()
                conn.send("INFO")
                payload = conn.read_reply()
                if payload is None:
                    raise FaktoryProtocolError("Empty INFO reply")
                document: Any = json.loads(payload)
            except (OSError, FaktoryProtocolError, ValueError) as e:
                self._drop()
                raise FetchError(f"INFO against {self._server.address} failed: {e}") from e

        if not isinstance(document, dict):
            raise FetchError(f"INFO reply is not a JSON object: {type(document).__name__}")
        return document

    def close(self) -> None:
        """Say goodbye to the server and close the socket."""
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.send("END")
            except OSError as e:
                self._log.debug(f"Error sending END: {e}")
            self._drop()

    # -------------------------------------------------------------------------
    # Internals (caller holds _lock)
    # -------------------------------------------------------------------------

    def _ensure_connected(self) -> _Connection:
        if self._conn is None:
            conn = self._dial()
            try:
                self._handshake(conn)
            except BaseException:
                conn.close()
                raise
            self._conn = conn
            self._log.debug("Connected to Faktory")
        return self._conn

    def _dial(self) -> _Connection:
        sock = socket.create_connection(
            (self._server.host, self._server.port), timeout=self._timeout
        )
        if self._server.tls:
            context = ssl.create_default_context()
            try:
                sock = context.wrap_socket(sock, server_hostname=self._server.host)
            except BaseException:
                sock.close()
                raise
        return _Connection(sock)

    def _handshake(self, conn: _Connection) -> None:
        greeting = conn.read_reply()
        if greeting is None or not greeting.startswith("HI "):
            raise FaktoryProtocolError(f"Unexpected greeting: {greeting!r}")
        hi = json.loads(greeting[3:])
        if not isinstance(hi, dict):
            raise FaktoryProtocolError(f"Unexpected greeting: {greeting!r}")

        version = hi.get("v", 0)
        if isinstance(version, bool) or not isinstance(version, int):
            raise FaktoryProtocolError(f"Invalid protocol version in greeting: {version!r}")
        if version > PROTOCOL_VERSION:
            self._log.warning(
                f"Faktory server speaks protocol v{version}, client expects v{PROTOCOL_VERSION}"
            )

        hello: dict[str, Any] = {
            "hostname": socket.gethostname(),
            "pid": os.getpid(),
            "v": PROTOCOL_VERSION,
        }
        if "s" in hi:
            if not self._server.password:
                raise FaktoryProtocolError("Server requires a password but none was configured")
            salt, iterations = hi["s"], hi.get("i", 1)
            if (
                not isinstance(salt, str)
                or isinstance(iterations, bool)
                or not isinstance(iterations, int)
            ):
                raise FaktoryProtocolError(f"Invalid password challenge in greeting: {greeting!r}")
            hello["pwdhash"] = hash_password(self._server.password, salt, iterations)

        conn.send(f"HELLO {json.dumps(hello)}")
        reply = conn.read_reply()
        if reply != "OK":
            raise FaktoryProtocolError(f"Unexpected HELLO reply: {reply!r}")

    def _drop(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except OSError:
                pass
            self._conn = None
