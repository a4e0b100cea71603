#!/usr/bin/env python3.9
"""A command-line client for oceanbase's postgresql-compatible wire protocol.

The server speaks a cut-down postgres v3 protocol: no authentication,
and every packet we send carries a trailing null byte.

References
1. PG Protocol Flow https://www.postgresql.org/docs/14/protocol-flow.html
"""

import argparse
import sys
from typing import Optional, Sequence, Union, cast

import config
import helpers
import log
from connection import Connection
from errors import OBError, ServerError
from objects import Columns, ConnectOptions, HandshakeState, Row

VERSION = "0.2.0"


def format_value(value: Optional[bytes]) -> str:
    if value is None:
        return "NULL"

    return value.decode(config.CLIENT_ENCODING, errors="replace")


class ResultPrinter:
    """Print a query's result stream as it arrives."""

    def __init__(self) -> None:
        self.columns: Optional[Columns] = None
        self.num_rows = 0
        self.error: Optional[ServerError] = None

    def __call__(
        self,
        index: int,
        value: Optional[Union[Columns, Row]],
        error: Optional[ServerError],
    ) -> None:
        if error is not None:
            self.error = error
            log.error(error)
            return

        assert value is not None

        # RowDescription always precedes its rows; a later header
        # (next result set) is told apart by its str values
        if self.columns is None or (value and all(isinstance(v, str) for v in value)):
            columns = cast(Columns, value)
            self.columns = columns
            print(" | ".join(columns))
            print("-+-".join("-" * len(c) for c in columns))
            return

        row = cast(Row, value)
        print(" | ".join(format_value(v) for v in row))
        self.num_rows += 1


def run_query(conn: Connection, sql: str) -> int:
    printer = ResultPrinter()
    conn.query(sql, printer)

    if printer.error is not None:
        return 1

    log.success(f"({printer.num_rows} rows)")
    return 0


def run_command_line_interface(conn: Connection) -> int:
    """Run the client until shut down programmatically."""
    # run the program as a command-line interface,
    # closing on SIGINT, SIGTERM, SIGHUP or EOFError.
    while True:
        try:
            user_input = input(f"{config.PS1} ")
        except (helpers.SignalError, EOFError):
            print("\x1b[0;91mreceived interrupt signal\x1b[0m")
            return 0

        if not user_input.strip():
            continue

        # server errors are reported, the connection stays usable
        run_query(conn, user_input)


def main(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(prog="obsql")

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s v{VERSION}",
    )

    parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable logging of additional information for debugging purposes",
    )

    subparsers = parser.add_subparsers(dest="command")

    # <> represent required args, () for optional

    # $ obsql cli (-H/--host) (-P/--port) (--pool) (-t/--timeout)
    cli_parser = subparsers.add_parser("cli", help="Connect and open a cli.")

    # $ obsql query <sql> (-H/--host) (-P/--port) (--pool) (-t/--timeout)
    query_parser = subparsers.add_parser("query", help="Connect and run one query.")
    query_parser.add_argument("sql", help="The query text to send")

    for subparser in (cli_parser, query_parser):
        subparser.add_argument("-H", "--host", default=None)
        subparser.add_argument("-P", "--port", default=None)
        subparser.add_argument("--pool", default=None)
        subparser.add_argument("-t", "--timeout", default=None, help="In milliseconds")

    if len(argv) == 0:
        argv = ["--help"]

    args = parser.parse_args(argv)

    if args.debug:
        config.DEBUG_MODE = True

    if args.command is None:
        parser.print_help()
        return 1

    if args.host:
        config.DB_HOST = cast(str, args.host)
    if args.port:
        config.DB_PORT = int(cast(str, args.port))
    if args.pool:
        config.DB_POOL = cast(str, args.pool)
    if args.timeout:
        config.TIMEOUT_MS = int(cast(str, args.timeout))

    conn = Connection()
    conn.set_timeout(config.TIMEOUT_MS)

    exit_code = 1
    try:
        if not conn.connect(ConnectOptions.from_config()):
            return exit_code

        if args.command == "cli":
            # use GNU readline interface
            import readline  # type: ignore

            # ensure the server is notified
            # of any client disconnections
            helpers.setup_shutdown_signal_handlers()

            exit_code = run_command_line_interface(conn)
        else:
            exit_code = run_query(conn, args.sql)
    except OBError as exc:
        log.error(exc)
    except helpers.SignalError:
        log.error("received interrupt signal")
    finally:
        # nothing to close if the socket never connected
        if conn.handshake_state != HandshakeState.IDLE:
            try:
                conn.close()
            except OBError as exc:
                log.error(exc)
                exit_code = 1

    return exit_code


def entrypoint() -> int:
    return main(sys.argv[1:])  # [1:] to remove executable


if __name__ == "__main__":
    raise SystemExit(entrypoint())
