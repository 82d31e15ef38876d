"""Unique key generation for maildir deliveries."""

from __future__ import annotations

import itertools
import os
import secrets
import socket
import threading
import time

from .codec import SEPARATOR
from .errors import KeyGenerationError

_RANDOM_BYTES = 10
_COUNTER_START = 10000


def escape_hostname(host: str) -> str:
    """Replace characters that may not appear in a key with octal escapes."""
    escaped = host.replace("/", "\\057")
    return escaped.replace(SEPARATOR, "\\%03o" % ord(SEPARATOR))


class KeyGenerator:
    """Produces keys unique across processes and hosts.

    A key is ``<seconds>.<host>.<pid><counter><random hex>``. The counter
    keeps keys from one process distinct within the same second, the random
    part keeps different processes and hosts apart. Build one generator per
    process and share it.
    """

    def __init__(self, start: int = _COUNTER_START) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def _next_count(self) -> int:
        with self._lock:
            return next(self._counter)

    def new_key(self) -> str:
        try:
            host = socket.gethostname()
        except OSError as e:
            raise KeyGenerationError(f"Cannot determine hostname: {e}") from e
        if not host:
            raise KeyGenerationError("Cannot determine hostname: empty name")
        try:
            entropy = secrets.token_bytes(_RANDOM_BYTES)
        except (OSError, NotImplementedError) as e:
            raise KeyGenerationError(f"Cannot read random source: {e}") from e
        return (
            f"{int(time.time())}.{escape_hostname(host)}."
            f"{os.getpid()}{self._next_count()}{entropy.hex()}"
        )


_default_generator: KeyGenerator | None = None
_default_lock = threading.Lock()


def default_key_generator() -> KeyGenerator:
    """Return the process-wide generator, creating it on first use."""
    global _default_generator
    if _default_generator is None:
        with _default_lock:
            if _default_generator is None:
                _default_generator = KeyGenerator()
    return _default_generator
