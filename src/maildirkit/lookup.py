"""Resolve a message key to its file in ``cur/``."""

from __future__ import annotations

import os
from pathlib import Path

from .codec import SEPARATOR, Flag, check_key, encode
from .errors import AmbiguousKeyError, MessageNotFoundError
from .scanner import DEFAULT_CHUNK, iter_names

# Flag sets common enough to probe before falling back to a full scan.
_COMMON_FLAG_SETS: tuple[tuple[Flag, ...], ...] = (
    (),
    (Flag.PASSED,),
    (Flag.REPLIED,),
    (Flag.SEEN,),
    (Flag.TRASHED,),
    (Flag.DRAFT,),
    (Flag.FLAGGED,),
    (Flag.PASSED, Flag.SEEN),
    (Flag.PASSED, Flag.SEEN, Flag.FLAGGED),
    (Flag.PASSED, Flag.FLAGGED),
    (Flag.PASSED, Flag.REPLIED),
    (Flag.REPLIED, Flag.SEEN),
    (Flag.REPLIED, Flag.SEEN, Flag.FLAGGED),
    (Flag.REPLIED, Flag.FLAGGED),
    (Flag.SEEN, Flag.FLAGGED),
)


def filename_guesses(root: str | os.PathLike[str], key: str) -> list[Path]:
    cur_dir = Path(root) / "cur"
    return [cur_dir / encode(key, flags) for flags in _COMMON_FLAG_SETS]


def scan_for_key(root: str | os.PathLike[str], key: str, chunk_size: int = DEFAULT_CHUNK) -> list[Path]:
    """Return every ``cur/`` file whose key is exactly ``key``."""
    cur_dir = Path(root) / "cur"
    prefix = key + SEPARATOR
    return [
        cur_dir / name
        for name in iter_names(cur_dir, chunk_size)
        if name == key or name.startswith(prefix)
    ]


def filename_by_key(root: str | os.PathLike[str], key: str, chunk_size: int = DEFAULT_CHUNK) -> Path:
    """Return the path of the message ``key``.

    Probes the common flag combinations first; the full scan afterwards
    finds the entry under any flags. Raises :class:`MessageNotFoundError`
    or :class:`AmbiguousKeyError` unless exactly one file matches.
    """
    check_key(key)
    for guess in filename_guesses(root, key):
        if guess.exists():
            return guess
    matches = scan_for_key(root, key, chunk_size)
    if not matches:
        raise MessageNotFoundError(key)
    if len(matches) > 1:
        raise AmbiguousKeyError(key, len(matches))
    return matches[0]
