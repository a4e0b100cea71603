from typing import Optional


class OBError(Exception):
    ...


class TransportError(OBError):
    """The underlying socket failed to connect, send or receive."""


class ReceiveError(TransportError):
    """A query's result stream ended before it was complete."""


class ProtocolError(OBError):
    """The server sent something that violates the framing rules."""


class MalformedPacket(ProtocolError):
    ...


class TruncatedInput(ProtocolError):
    ...


class NotConnected(OBError):
    ...


class ServerError(OBError):
    """An ErrorResponse sent by the server.

    https://www.postgresql.org/docs/14.1/protocol-error-fields.html
    """

    def __init__(self, fields: dict[str, str]) -> None:
        self.fields = fields
        super().__init__(str(self))

    @property
    def severity(self) -> Optional[str]:
        return self.fields.get("S")

    @property
    def code(self) -> Optional[str]:
        return self.fields.get("C")

    @property
    def message(self) -> Optional[str]:
        return self.fields.get("M")

    def __str__(self) -> str:
        return "[{}] {} ({})".format(
            self.severity or "ERROR",
            self.message or "unknown error",
            self.code or "?????",
        )
