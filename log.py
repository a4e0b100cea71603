import sys

import config

COLOURS = {
    "handler": "\x1b[0;90m",
    "error": "\x1b[0;91m",
    "success": "\x1b[0;92m",
    "status": "\x1b[0;93m",
    "notice": "\x1b[0;94m",
    "recv": "\x1b[0;95m",
    "send": "\x1b[0;96m",
}

# wire traffic & dispatch are too noisy outside of debug mode
DEBUG_ONLY = {"handler", "recv", "send"}


def _log(s: object, typ: str) -> None:
    if typ in DEBUG_ONLY and not config.DEBUG_MODE:
        return

    # keep stdout clean for query results
    print(f"[{COLOURS[typ]}{typ}\x1b[0m]", s, file=sys.stderr)


def handler(s: object) -> None:
    _log(s, "handler")


def error(s: object) -> None:
    _log(s, "error")


def success(s: object) -> None:
    _log(s, "success")


def status(s: object) -> None:
    _log(s, "status")


def notice(s: object) -> None:
    _log(s, "notice")


def recv(s: object) -> None:
    _log(s, "recv")


def send(s: object) -> None:
    _log(s, "send")
