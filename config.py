"""Configuration constants for the static preview server.

Environment variables are read once at import time and override the defaults.
"""

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw_value = os.environ.get(name, "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw_value!r}") from exc


HOST: str = os.environ.get("HOST", "127.0.0.1")
PORT: int = _env_int("PORT", 3000)
STATIC_DIR: str = os.environ.get(
    "STATIC_ROOT",
    str(Path(__file__).resolve().parent / "static"),
)
INDEX_DOCUMENT: str = "index.html"
SERVER_NAME: str = "static-preview/1.0"
LOG_FORMAT: str = os.environ.get("LOG_FORMAT", "plain")

BUFFER_SIZE: int = 4096
SOCKET_TIMEOUT_SECS: int = 5
KEEPALIVE_TIMEOUT_SECS: int = 5
MAX_KEEPALIVE_REQUESTS: int = 100
MAX_HEADER_BYTES: int = 16_384
MAX_BODY_BYTES: int = 65_536
MAX_TARGET_LENGTH: int = 2048
WORKER_COUNT: int = 8
REQUEST_QUEUE_SIZE: int = 64
