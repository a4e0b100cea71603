from typing import Optional

# connection defaults, overridden from the command line
DB_HOST = "127.0.0.1"
DB_PORT = 5432
DB_POOL: Optional[str] = None

DEBUG_MODE = False

# NOTE: the server only speaks 3.0 at the moment
PROTO_MAJOR = 3
PROTO_MINOR = 0

# the server doesn't support authentication for now,
# so no user/database parameters are sent on startup
STARTUP_PARAMS: dict[bytes, bytes] = {}

# upper bound on packets drained while waiting for ReadyForQuery
MAX_STARTUP_PACKETS = 1024

# largest inbound payload we'll allocate for
MAX_PACKET_SIZE = 64 * 1024 * 1024

TIMEOUT_MS = 5000
POOL_SIZE = 30

CLIENT_ENCODING = "utf-8"

PS1 = "ob>"
