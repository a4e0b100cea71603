from typing import TYPE_CHECKING, Callable, TypeVar

import config
import log
from errors import ServerError
from objects import Columns, Command, Row
from packets import PacketReader, ResponseType

if TYPE_CHECKING:
    from connection import Connection

# payload decoding

# table oid (4) & attr number (2), type oid (4) & typlen (2),
# typmod (4) & format code (2). none of which we make use of.
ROW_DESCRIPTION_FIELD_METADATA_SIZE = (4 + 2) * 3


def read_row_description(reader: PacketReader) -> Columns:
    num_fields = reader.read_u16()

    columns: Columns = []
    for _ in range(num_fields):
        columns.append(reader.read_nullterm_string())
        reader.skip(ROW_DESCRIPTION_FIELD_METADATA_SIZE)

    return columns


def read_data_row(reader: PacketReader) -> Row:
    num_values = reader.read_u16()

    row: Row = []
    for _ in range(num_values):
        value_len = reader.read_i32()

        if value_len < 1:
            # sql NULL
            row.append(None)
        else:
            row.append(reader.read_bytes(value_len))

    return row


def read_err_notice_fields(reader: PacketReader) -> dict[str, str]:
    # https://www.postgresql.org/docs/14.1/protocol-error-fields.html
    fields: dict[str, str] = {}

    while reader.remaining and (field_type := reader.read_u8()) != 0:
        fields[chr(field_type)] = reader.read_nullterm_string()

    return fields


# query result stream handling

Handler = Callable[[PacketReader, Command], None]
RESPONSE_HANDLERS: dict[int, Handler] = {}

T = TypeVar("T", bound=Handler)


def register(response_type: ResponseType) -> Callable[[T], T]:
    def wrapper(f: T) -> T:
        RESPONSE_HANDLERS[response_type] = f
        return f

    return wrapper


@register(ResponseType.RowDescription)
def handle_row_description(reader: PacketReader, command: Command) -> None:
    command.deliver(read_row_description(reader))


@register(ResponseType.DataRow)
def handle_data_row(reader: PacketReader, command: Command) -> None:
    command.deliver(read_data_row(reader))


@register(ResponseType.ErrorResponse)
def handle_error_response(reader: PacketReader, command: Command) -> None:
    error = ServerError(read_err_notice_fields(reader))

    if config.DEBUG_MODE:
        log.error(error)

    # an error ends the result stream, even
    # if some rows have already been delivered
    command.deliver(None, error)
    command.complete = True


@register(ResponseType.CommandComplete)
def handle_command_complete(reader: PacketReader, command: Command) -> None:
    command.complete = True

    if config.DEBUG_MODE and reader.remaining:
        log.success(f"command complete ({reader.read_nullterm_string()})")


# startup packet handling. anything not handled
# here is drained & discarded during the handshake

StartupHandler = Callable[[PacketReader, "Connection"], None]
STARTUP_HANDLERS: dict[int, StartupHandler] = {}


def register_startup(response_type: ResponseType) -> Callable[[StartupHandler], StartupHandler]:
    def wrapper(f: StartupHandler) -> StartupHandler:
        STARTUP_HANDLERS[response_type] = f
        return f

    return wrapper


@register_startup(ResponseType.ParameterStatus)
def handle_parameter_status(reader: PacketReader, client: "Connection") -> None:
    key = reader.read_nullterm_string()
    val = reader.read_nullterm_string()

    client.parameters[key] = val
    if config.DEBUG_MODE:
        log.status(f"read param {key}={val}")


@register_startup(ResponseType.BackendKeyData)
def handle_backend_key_data(reader: PacketReader, client: "Connection") -> None:
    client.process_id = reader.read_i32()
    client.secret_key = reader.read_i32()
