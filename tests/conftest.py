"""Fixtures & helpers for building server responses."""

import struct
from typing import Optional, Sequence

import pytest

import config
from errors import TransportError


def backend_packet(tag: str, payload: bytes = b"") -> bytes:
    # inbound packets have no trailing null
    return tag.encode() + struct.pack(">I", len(payload) + 4) + payload


def auth_result(status: int = 0) -> bytes:
    return backend_packet("R", struct.pack(">I", status))


def param_status(key: str, value: str) -> bytes:
    return backend_packet("S", key.encode() + b"\x00" + value.encode() + b"\x00")


def backend_key(pid: int, secret: int) -> bytes:
    return backend_packet("K", struct.pack(">ii", pid, secret))


def ready_for_query(status: str = "I") -> bytes:
    return backend_packet("Z", status.encode())


def row_description_payload(names: list[str]) -> bytes:
    payload = bytearray(struct.pack(">H", len(names)))
    for name in names:
        payload += name.encode() + b"\x00"
        # table oid, attr number, type oid, typlen, typmod, format code
        payload += struct.pack(">IhIhih", 0, 0, 25, -1, -1, 0)
    return bytes(payload)


def row_description(names: list[str]) -> bytes:
    return backend_packet("T", row_description_payload(names))


def data_row_payload(values: list[Optional[bytes]]) -> bytes:
    payload = bytearray(struct.pack(">H", len(values)))
    for value in values:
        if value is None:
            payload += struct.pack(">i", -1)
        else:
            payload += struct.pack(">i", len(value)) + value
    return bytes(payload)


def data_row(values: list[Optional[bytes]]) -> bytes:
    return backend_packet("D", data_row_payload(values))


def command_complete(tag: str = "SELECT 1") -> bytes:
    return backend_packet("C", tag.encode() + b"\x00")


def error_payload(
    severity: str = "ERROR",
    code: str = "42601",
    message: str = "syntax error",
) -> bytes:
    payload = bytearray()
    payload += b"S" + severity.encode() + b"\x00"
    payload += b"C" + code.encode() + b"\x00"
    payload += b"M" + message.encode() + b"\x00"
    payload += b"\x00"
    return bytes(payload)


def error_response(**kwargs: str) -> bytes:
    return backend_packet("E", error_payload(**kwargs))


class FakeTransport:
    """An in-memory transport replaying pre-recorded server responses."""

    def __init__(self, responses: Sequence[bytes] = (), reused_count: int = 0) -> None:
        self.sent: list[bytes] = []
        self._data = b"".join(responses)
        self._pos = 0

        self.reused_count = reused_count
        self.connected_to: Optional[tuple[str, int, str]] = None
        self.timeout_ms: Optional[int] = None
        self.keepalive_pool_size: Optional[int] = None
        self.closed = False

    def feed(self, *responses: bytes) -> None:
        self._data += b"".join(responses)

    @property
    def unread(self) -> int:
        return len(self._data) - self._pos

    def connect(self, host: str, port: int, pool: str) -> None:
        self.connected_to = (host, port, pool)

    def send(self, data: bytes) -> int:
        self.sent.append(data)
        return len(data)

    def receive(self, count: int) -> bytes:
        if self.unread < count:
            raise TransportError("connection closed")

        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return chunk

    def close(self) -> None:
        self.closed = True

    def set_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    def set_keepalive(self, pool_size: int) -> None:
        self.keepalive_pool_size = pool_size


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "DEBUG_MODE", False)
    monkeypatch.setattr(config, "STARTUP_PARAMS", {})
