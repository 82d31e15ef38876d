"""Chunked, crash-tolerant enumeration of mailbox subdirectories."""

from __future__ import annotations

import itertools
import logging
import os
import stat
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterator

from .codec import SEPARATOR, decode, format_info, split_key
from .errors import InvalidInfoError, MalformedEntryError, ScanError


DEFAULT_CHUNK = 4096
DEFAULT_RETENTION = timedelta(hours=36)


def iter_batches(directory: str | os.PathLike[str], chunk_size: int = DEFAULT_CHUNK) -> Iterator[list[str]]:
    """Yield visible entry names of ``directory`` in lists of at most ``chunk_size``.

    Names starting with ``.`` are skipped. Entries created after the scan
    began may or may not show up; entries already yielded are not repeated.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    with os.scandir(directory) as entries:
        while True:
            batch = [e.name for e in itertools.islice(entries, chunk_size)]
            if not batch:
                return
            visible = [name for name in batch if not name.startswith(".")]
            if visible:
                yield visible


def iter_names(directory: str | os.PathLike[str], chunk_size: int = DEFAULT_CHUNK) -> Iterator[str]:
    for batch in iter_batches(directory, chunk_size):
        yield from batch


def count_unseen(root: str | os.PathLike[str], chunk_size: int = DEFAULT_CHUNK) -> int:
    return sum(len(batch) for batch in iter_batches(Path(root) / "new", chunk_size))


def promote_unseen(root: str | os.PathLike[str], chunk_size: int = DEFAULT_CHUNK) -> list[tuple[str, str]]:
    """Move every entry of ``new/`` into ``cur/`` with an empty flag set.

    Returns ``(key, basename)`` pairs for the promoted entries. Delivering
    agents often omit the info section, so any info found in ``new/`` is
    ignored. Entries that cannot be promoted are collected and raised
    together as :class:`ScanError` once every other entry has been handled;
    the promoted pairs are available as ``ScanError.partial``.
    """
    root = Path(root)
    new_dir, cur_dir = root / "new", root / "cur"
    promoted: list[tuple[str, str]] = []
    errors: list[BaseException] = []
    empty_info = format_info(())

    for name in iter_names(new_dir, chunk_size):
        key = split_key(name)
        if not key:
            logging.warning(f"Skipping unparseable entry in {new_dir}: {name!r}")
            errors.append(MalformedEntryError(name))
            continue
        basename = key + SEPARATOR + empty_info
        try:
            os.rename(new_dir / name, cur_dir / basename)
        except OSError as e:
            logging.warning(f"Could not promote {name!r}: {e}")
            errors.append(e)
            continue
        promoted.append((key, basename))

    if promoted:
        logging.info(f"Promoted {len(promoted)} message(s) from {new_dir}")
    if errors:
        raise ScanError(errors, partial=promoted)
    return promoted


def walk(
    root: str | os.PathLike[str],
    fn: Callable[[str, str], None],
    chunk_size: int = DEFAULT_CHUNK,
) -> None:
    """Call ``fn(key, basename)`` for every well-formed entry of ``cur/``.

    Malformed names are skipped and reported at the end as a
    :class:`ScanError`. If ``fn`` raises, the walk stops right away and the
    exception is raised as the ``cause`` of a :class:`ScanError` bundled with
    whatever malformed entries were seen so far.
    """
    cur_dir = Path(root) / "cur"
    errors: list[BaseException] = []
    for name in iter_names(cur_dir, chunk_size):
        try:
            key, _flags = decode(name)
        except (MalformedEntryError, InvalidInfoError) as e:
            logging.warning(f"Skipping malformed entry in {cur_dir}: {e}")
            errors.append(e)
            continue
        try:
            fn(key, name)
        except Exception as e:
            raise ScanError(errors, cause=e) from e
    if errors:
        raise ScanError(errors)


def clean_staging(
    root: str | os.PathLike[str],
    retention: timedelta = DEFAULT_RETENTION,
    *,
    now: float | None = None,
    chunk_size: int = DEFAULT_CHUNK,
) -> list[Path]:
    """Remove files in ``tmp/`` whose modification time is older than ``retention``.

    Uses mtime rather than atime, which many mounts do not maintain.
    """
    tmp_dir = Path(root) / "tmp"
    cutoff = (time.time() if now is None else now) - retention.total_seconds()
    removed: list[Path] = []
    for name in iter_names(tmp_dir, chunk_size):
        path = tmp_dir / name
        try:
            st = path.lstat()
        except FileNotFoundError:
            continue
        if not stat.S_ISREG(st.st_mode):
            logging.warning(f"Skipping non-file entry in {tmp_dir}: {name!r}")
            continue
        if st.st_mtime >= cutoff:
            continue
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        logging.info(f"Removed stale staged file {path}")
        removed.append(path)
    return removed
