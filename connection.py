from typing import Optional

import config
import handlers
import log
import packets
from errors import NotConnected, ProtocolError, ReceiveError, ServerError, TransportError
from objects import (
    Command,
    ConnectionState,
    ConnectOptions,
    HandshakeState,
    ResultCallback,
)
from packets import PacketReader, RequestType, ResponseType
from transport import SocketTransport, Transport


class Connection:
    """A single connection to the server.

    Only one operation (the handshake, or one query) may be
    in flight at a time; the object is not safe to share.
    """

    def __init__(self, transport: Optional[Transport] = None) -> None:
        self.transport: Transport = transport if transport is not None else SocketTransport()

        self.state = ConnectionState.UNINITIALIZED
        self.handshake_state = HandshakeState.IDLE

        # populated during the handshake, if the server sends them
        self.parameters: dict[str, str] = {}
        self.process_id: Optional[int] = None
        self.secret_key: Optional[int] = None

    def set_timeout(self, timeout_ms: int) -> None:
        self.transport.set_timeout(timeout_ms)

    # framing

    def send_packet(self, tag: int, payload: bytes) -> int:
        return packets.send_packet(self.transport, tag, payload)

    def receive_packet(self) -> tuple[int, bytes]:
        return packets.receive_packet(self.transport)

    # handshake

    def connect(self, options: ConnectOptions) -> bool:
        """Connect to the server & drive the startup handshake to completion.

        Returns whether the server accepted the connection.
        """
        self.handshake_state = HandshakeState.IDLE
        self.transport.connect(options.host, options.port, options.pool_key)

        if self.transport.reused_count > 0:
            # a previous owner already completed the handshake
            self.handshake_state = HandshakeState.READY
            self.state = ConnectionState.CONNECTED
            return True

        log.status(
            f"initiating protocol startup with {options.host}:{options.port} "
            f"(v{config.PROTO_MAJOR}.{config.PROTO_MINOR})"
        )

        self.handshake_state = HandshakeState.NEGOTIATING
        self.transport.send(
            packets.fe_startup_packet(
                proto_ver_major=config.PROTO_MAJOR,
                proto_ver_minor=config.PROTO_MINOR,
                db_params=config.STARTUP_PARAMS,
            )
        )

        response_type, response = self.receive_packet()

        if response_type == ResponseType.ErrorResponse:
            # the server closes the connection after a startup error
            error = ServerError(handlers.read_err_notice_fields(PacketReader(response)))
            log.error(error)

            self.handshake_state = HandshakeState.FAILED
            return False

        if response_type != ResponseType.ReadyForQuery:
            self._drain_until_ready()

        if (
            response_type == ResponseType.AuthenticationRequest
            and PacketReader(response).read_u32() == 0
        ):
            self.handshake_state = HandshakeState.READY
            self.state = ConnectionState.CONNECTED
            log.success("connection ready for query")
            return True

        log.error(f"startup rejected by server ({chr(response_type)}={response!r})")
        self.handshake_state = HandshakeState.FAILED
        return False

    def _drain_until_ready(self) -> None:
        for _ in range(config.MAX_STARTUP_PACKETS):
            response_type, response = self.receive_packet()
            if response_type == ResponseType.ReadyForQuery:
                return

            packet_handler = handlers.STARTUP_HANDLERS.get(response_type)
            if packet_handler is not None:
                packet_handler(PacketReader(response), self)

        raise ProtocolError(
            f"no ReadyForQuery after {config.MAX_STARTUP_PACKETS} startup packets"
        )

    # querying

    def query(self, sql: str, callback: ResultCallback) -> None:
        """Send `sql` & stream its results into `callback`.

        The callback is invoked with (index, value, error) once per
        column header & data row. A server error is delivered as the
        final callback, after which nothing more is read.
        """
        if self.state != ConnectionState.CONNECTED:
            raise NotConnected("cannot query in the current connection state")

        command = Command(sql, callback)

        try:
            self.send_packet(RequestType.Query, sql.encode(config.CLIENT_ENCODING))
        except TransportError as exc:
            raise TransportError(f"failed to send query message: {exc}") from exc

        while not command.complete:
            try:
                response_type, response = self.receive_packet()
            except TransportError as exc:
                raise ReceiveError(f"failed to receive the result packet: {exc}") from exc

            packet_handler = handlers.RESPONSE_HANDLERS.get(response_type)
            if packet_handler is None:
                if response_type == ResponseType.ReadyForQuery:
                    # left over from a previous query, or the server
                    # is idle without sending CommandComplete (empty query)
                    log.handler("ReadyForQuery received mid-query")

                if config.DEBUG_MODE:
                    log.notice(f"skipping {chr(response_type)}={response!r}")
                continue

            log.handler(packet_handler.__name__)
            packet_handler(PacketReader(response), command)

    # lifecycle

    def get_reused_times(self) -> int:
        return self.transport.reused_count

    def set_keepalive(self, pool_size: Optional[int] = None) -> None:
        """Hand the connection's socket back for reuse by a later connect."""
        if self.state != ConnectionState.CONNECTED:
            raise NotConnected(
                f"cannot be reused in the current connection state: {self.state.name}"
            )

        self.state = ConnectionState.UNINITIALIZED
        self.transport.set_keepalive(
            pool_size if pool_size is not None else config.POOL_SIZE
        )

    def close(self) -> None:
        was_connected = self.state == ConnectionState.CONNECTED
        self.state = ConnectionState.UNINITIALIZED

        try:
            if was_connected:
                self.send_packet(RequestType.Termination, b"")
        finally:
            self.transport.close()

        log.status("connection terminated")
