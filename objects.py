from enum import IntEnum
from typing import Callable, NamedTuple, Optional, Union

import config
from errors import ServerError

Row = list[Optional[bytes]]
Columns = list[str]

# called once per column header & data row, with either
# a value or the error that terminated the result stream
ResultCallback = Callable[[int, Optional[Union[Columns, Row]], Optional[ServerError]], None]


class ConnectOptions(NamedTuple):
    host: str
    port: int = 5432
    pool: Optional[str] = None

    @property
    def pool_key(self) -> str:
        if self.pool is not None:
            return self.pool

        return f"{self.host}:{self.port}"

    @classmethod
    def from_config(cls) -> "ConnectOptions":
        return cls(host=config.DB_HOST, port=config.DB_PORT, pool=config.DB_POOL)


class ConnectionState(IntEnum):
    UNINITIALIZED = 0
    CONNECTED = 1


class HandshakeState(IntEnum):
    IDLE = 0
    NEGOTIATING = 1
    READY = 2
    FAILED = 3


class Command:
    """The in-flight query & the consumer of its result stream."""

    def __init__(self, query: str, callback: ResultCallback) -> None:
        self.query = query
        self.callback = callback

        self.result_index = 1
        self.complete = False

    def deliver(
        self,
        value: Optional[Union[Columns, Row]],
        error: Optional[ServerError] = None,
    ) -> None:
        self.callback(self.result_index, value, error)
        self.result_index += 1
