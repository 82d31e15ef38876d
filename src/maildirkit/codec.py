"""Basename encoding for maildir entries.

A ``cur/`` entry is named ``<key><SEPARATOR><info>`` where ``info`` is
``"2,"`` followed by the message flags, sorted by code point with
duplicates removed. The canonical form means two writers setting the same
flags produce byte-identical names.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Iterable

from .errors import ExperimentalInfoError, InvalidInfoError, MalformedEntryError

# ":" is not allowed in Windows filenames.
SEPARATOR = ";" if sys.platform == "win32" else ":"

INFO_PREFIX = "2,"


class Flag(str, Enum):
    # Resent, forwarded or bounced to someone else.
    PASSED = "P"
    REPLIED = "R"
    # Viewed, though perhaps not read all the way through.
    SEEN = "S"
    # Moved to the trash; emptied by a later user action.
    TRASHED = "T"
    DRAFT = "D"
    # User-defined flag.
    FLAGGED = "F"

    def __str__(self) -> str:
        return self.value


_KNOWN_FLAGS = {flag.value: flag for flag in Flag}
_FORBIDDEN_FLAG_CHARS = {SEPARATOR, "/", ",", "\0"}


def _as_flag(char: str) -> Flag | str:
    return _KNOWN_FLAGS.get(char, char)


def canonical_flags(flags: Iterable[Flag | str]) -> tuple[Flag | str, ...]:
    """Sort ``flags`` by code point and drop duplicates.

    Known characters come back as :class:`Flag` members, anything else is
    kept verbatim as a one-character string.
    """
    chars: set[str] = set()
    for flag in flags:
        char = flag.value if isinstance(flag, Flag) else str(flag)
        if len(char) != 1:
            raise ValueError(f"Flags must be single characters, got {char!r}")
        if char in _FORBIDDEN_FLAG_CHARS:
            raise ValueError(f"Character {char!r} cannot be used as a flag")
        chars.add(char)
    return tuple(_as_flag(char) for char in sorted(chars))


def format_info(flags: Iterable[Flag | str]) -> str:
    return INFO_PREFIX + "".join(str(flag) for flag in canonical_flags(flags))


def parse_info(info: str) -> tuple[Flag | str, ...]:
    """Validate an info section and return its canonical flags."""
    if len(info) < 2 or info[1] != ",":
        raise InvalidInfoError(info)
    if info[0] == "1":
        raise ExperimentalInfoError(info)
    if info[0] != "2":
        raise InvalidInfoError(info)
    flags = set(info[2:])
    if flags & _FORBIDDEN_FLAG_CHARS:
        raise InvalidInfoError(info)
    # On-disk order is never trusted.
    return tuple(_as_flag(char) for char in sorted(flags))


def check_key(key: str) -> str:
    if not key or SEPARATOR in key or "/" in key or key.startswith("."):
        raise ValueError(f"Invalid maildir key: {key!r}")
    return key


def split_key(basename: str) -> str:
    """Return the key part of ``basename``, tolerating a missing info section."""
    return basename.split(SEPARATOR, 1)[0]


def decode(basename: str) -> tuple[str, tuple[Flag | str, ...]]:
    parts = basename.split(SEPARATOR, 1)
    if len(parts) < 2 or not parts[0]:
        raise MalformedEntryError(basename)
    key, info = parts
    return key, parse_info(info)


def encode(key: str, flags: Iterable[Flag | str] = ()) -> str:
    return check_key(key) + SEPARATOR + format_info(flags)


def encode_info(key: str, info: str) -> str:
    """Join ``key`` with a raw, possibly non-standard, info section."""
    if SEPARATOR in info or "/" in info or "\0" in info:
        raise ValueError(f"Invalid info section: {info!r}")
    return check_key(key) + SEPARATOR + info
