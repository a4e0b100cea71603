import socket
from typing import Optional, Protocol

import config
import log
from errors import TransportError


class Transport(Protocol):
    reused_count: int

    def connect(self, host: str, port: int, pool: str) -> None:
        ...

    def send(self, data: bytes) -> int:
        ...

    def receive(self, count: int) -> bytes:
        ...

    def close(self) -> None:
        ...

    def set_timeout(self, timeout_ms: int) -> None:
        ...

    def set_keepalive(self, pool_size: int) -> None:
        ...


# idle sockets handed back through set_keepalive, per pool key.
# each entry carries the number of times the socket has been reused.
IDLE_SOCKETS: dict[str, list[tuple[socket.socket, int]]] = {}


class SocketTransport:
    """A blocking tcp socket, with reuse of idle sockets by pool key."""

    def __init__(self, sock: Optional[socket.socket] = None) -> None:
        self.sock = sock
        self.pool: Optional[str] = None
        self.timeout_ms = config.TIMEOUT_MS
        self.reused_count = 0

    def connect(self, host: str, port: int, pool: str) -> None:
        self.pool = pool

        idle = IDLE_SOCKETS.get(pool)
        if idle:
            self.sock, times_used = idle.pop()
            self.reused_count = times_used + 1
            self.sock.settimeout(self.timeout_ms / 1000)

            if config.DEBUG_MODE:
                log.status(f"reusing idle socket from pool {pool}")
            return

        try:
            self.sock = socket.create_connection(
                (host, port),
                timeout=self.timeout_ms / 1000,
            )
        except OSError as exc:
            raise TransportError(f"failed to connect: {exc}") from exc

        self.reused_count = 0

    def _require_sock(self) -> socket.socket:
        if self.sock is None:
            raise TransportError("not initialized")

        return self.sock

    def send(self, data: bytes) -> int:
        sock = self._require_sock()

        try:
            sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"failed to send: {exc}") from exc

        return len(data)

    def receive(self, count: int) -> bytes:
        sock = self._require_sock()

        buf = bytearray(count)
        with memoryview(buf) as buf_view:
            to_read = count
            while to_read:
                try:
                    bytes_read = sock.recv_into(buf_view[count - to_read :], to_read)
                except OSError as exc:
                    raise TransportError(f"failed to receive: {exc}") from exc

                if bytes_read == 0:
                    raise TransportError(
                        f"connection closed ({count - to_read}/{count} bytes read)"
                    )

                to_read -= bytes_read

        return bytes(buf)

    def close(self) -> None:
        sock = self._require_sock()
        self.sock = None

        try:
            sock.close()
        except OSError as exc:
            raise TransportError(f"failed to close: {exc}") from exc

    def set_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        if self.sock is not None:
            self.sock.settimeout(timeout_ms / 1000)

    def set_keepalive(self, pool_size: int) -> None:
        sock = self._require_sock()
        self.sock = None

        assert self.pool is not None
        idle = IDLE_SOCKETS.setdefault(self.pool, [])
        if len(idle) >= pool_size:
            # pool is full, nothing to hand the socket to
            sock.close()
            return

        idle.append((sock, self.reused_count))
