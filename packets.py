import struct
from enum import IntEnum

import config
import helpers
import log
from errors import MalformedPacket, ProtocolError, TruncatedInput
from transport import Transport


class ResponseType(IntEnum):
    # https://www.postgresql.org/docs/14/protocol-message-formats.html
    ErrorResponse = ord("E")
    AuthenticationRequest = ord("R")
    ParameterStatus = ord("S")
    BackendKeyData = ord("K")
    ReadyForQuery = ord("Z")
    RowDescription = ord("T")
    DataRow = ord("D")
    CommandComplete = ord("C")


class RequestType(IntEnum):
    Query = ord("Q")
    Termination = ord("X")


# binary deserialization (reading)


def _check_remaining(data: bytes, offset: int, size: int) -> None:
    if offset < 0 or len(data) - offset < size:
        raise TruncatedInput(
            f"need {size} bytes at offset {offset}, "
            f"only {max(len(data) - offset, 0)} available"
        )


def read_u16(data: bytes, offset: int) -> tuple[int, int]:
    _check_remaining(data, offset, 2)
    (val,) = struct.unpack_from(">H", data, offset)
    return val, offset + 2


def read_u32(data: bytes, offset: int) -> tuple[int, int]:
    _check_remaining(data, offset, 4)
    (val,) = struct.unpack_from(">I", data, offset)
    return val, offset + 4


def read_i32(data: bytes, offset: int) -> tuple[int, int]:
    _check_remaining(data, offset, 4)
    (val,) = struct.unpack_from(">i", data, offset)
    return val, offset + 4


def read_nullterm_string(data: bytes, offset: int) -> tuple[str, int]:
    end = data.find(b"\x00", offset)
    if end == -1:
        raise MalformedPacket(f"unterminated string at offset {offset}")

    val = data[offset:end].decode(config.CLIENT_ENCODING, errors="replace")
    return val, end + 1


class PacketReader:
    """A cursor over a single packet's payload."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def skip(self, count: int) -> None:
        _check_remaining(self.data, self.offset, count)
        self.offset += count

    def read_bytes(self, count: int) -> bytes:
        _check_remaining(self.data, self.offset, count)
        val = self.data[self.offset : self.offset + count]
        self.offset += count
        return val

    def read_u8(self) -> int:
        _check_remaining(self.data, self.offset, 1)
        val = self.data[self.offset]
        self.offset += 1
        return val

    def read_u16(self) -> int:
        val, self.offset = read_u16(self.data, self.offset)
        return val

    def read_u32(self) -> int:
        val, self.offset = read_u32(self.data, self.offset)
        return val

    def read_i32(self) -> int:
        val, self.offset = read_i32(self.data, self.offset)
        return val

    def read_nullterm_string(self) -> str:
        val, self.offset = read_nullterm_string(self.data, self.offset)
        return val


# binary serialization (writing)


def write_u16(n: int) -> bytes:
    return struct.pack(">H", n & 0xFFFF)


def write_u32(n: int) -> bytes:
    return struct.pack(">I", n & 0xFFFFFFFF)


def write_packet(tag: int, payload: bytes) -> bytes:
    # the length counts itself & the trailing null, but not the tag.
    # the server expects the trailing null on every packet we send.
    packet = bytearray()
    packet.append(tag)
    packet += write_u32(len(payload) + 4 + 1)
    packet += payload
    packet += b"\x00"
    return bytes(packet)


def fe_startup_packet(
    proto_ver_major: int,
    proto_ver_minor: int,
    db_params: dict[bytes, bytes],
) -> bytes:
    packet = bytearray()
    packet += write_u16(proto_ver_major)
    packet += write_u16(proto_ver_minor)

    for param_name, param_value in db_params.items():
        packet += param_name + b"\x00" + param_value + b"\x00"

    # zero byte is required as terminator
    # after the last name/value pair
    packet += b"\x00"

    # insert packet length at startup
    packet[0:0] = write_u32(len(packet) + 4)
    return bytes(packet)


# framing


def send_packet(transport: Transport, tag: int, payload: bytes) -> int:
    packet = write_packet(tag, payload)

    if config.DEBUG_MODE:
        log.send(helpers.hexdump(packet))

    return transport.send(packet)


def receive_packet(transport: Transport) -> tuple[int, bytes]:
    tag = transport.receive(1)[0]

    header = transport.receive(4)
    length, _ = read_u32(header, 0)
    if length < 4:
        raise ProtocolError(f"invalid length {length} for packet {chr(tag)!r}")
    if length - 4 > config.MAX_PACKET_SIZE:
        raise ProtocolError(f"packet {chr(tag)!r} too large ({length} bytes)")

    payload = transport.receive(length - 4) if length > 4 else b""

    if config.DEBUG_MODE:
        log.recv(f"{chr(tag)} {helpers.hexdump(header + payload)}")

    return tag, payload
