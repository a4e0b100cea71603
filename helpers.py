import signal
from types import FrameType
from typing import Optional


def hexdump(data: bytes) -> str:
    return " ".join(f"{b:02x}" for b in data)


# signal handling
class SignalError(Exception):
    ...


def setup_shutdown_signal_handlers() -> None:
    def signal_handler(
        signum: int,
        frame: Optional[FrameType] = None,
    ) -> None:
        # raise a signal handler we can handle elsewhere
        raise SignalError

    for signum in {
        signal.SIGINT,
        signal.SIGTERM,
        signal.SIGHUP,
    }:
        signal.signal(signum, signal_handler)
