"""Two-phase delivery: stage in tmp/, then publish with link or rename.

A reader never sees a partially written message: the file is complete in
``tmp/`` before its name appears in ``new/`` or ``cur/``. Multiple
processes may deliver into the same mailbox at the same time.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable

from .codec import Flag, check_key, encode
from .config import Settings, get_settings
from .keys import KeyGenerator, default_key_generator


# errno values meaning "this filesystem cannot hard link here"
_LINK_UNSUPPORTED = {
    errno.EPERM,
    errno.EXDEV,
    errno.ENOSYS,
    errno.ENOTSUP,
    getattr(errno, "EOPNOTSUPP", errno.ENOTSUP),
}

_COPY_CHUNK = 64 * 1024


def publish_file(staged: Path, destination: Path, *, strict: bool = False) -> Path:
    """Atomically expose ``staged`` under ``destination``.

    Hard links are preferred since ``link`` refuses to replace an existing
    name; filesystems without hard links fall back to ``rename``.

    With ``strict`` the source must disappear: if it cannot be unlinked
    after linking, the new link is removed again and the error is raised.
    """
    link = getattr(os, "link", None)
    if link is None:
        os.rename(staged, destination)
        return destination
    try:
        link(staged, destination)
    except OSError as e:
        if e.errno not in _LINK_UNSUPPORTED:
            raise
        logging.debug(f"Hard link unavailable ({e}); renaming {staged} -> {destination}")
        os.rename(staged, destination)
        return destination
    try:
        os.unlink(staged)
    except OSError as e:
        if strict:
            os.unlink(destination)
            raise
        # Already visible at the destination; clean() reclaims the leftover.
        logging.warning(f"Published {destination} but could not remove staged copy {staged}: {e}")
    return destination


def rename_entry(source: Path, destination: Path) -> Path:
    """Rename a mailbox entry in a single step, keeping its content."""
    logging.debug(f"Renaming {source} -> {destination}")
    os.rename(source, destination)
    return destination


class Delivery:
    """An in-flight delivery into a mailbox.

    The staged file is created with ``O_EXCL`` so a key collision fails
    loudly instead of overwriting an existing file. Call :meth:`close` to
    publish or :meth:`abort` to discard; dropping the object does neither and
    leaves the staged file for :meth:`Maildir.clean`.

    With ``flags`` set the message is published straight into ``cur/``
    under its encoded name, otherwise into ``new/`` under the bare key.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        key_generator: KeyGenerator | None = None,
        flags: Iterable[Flag | str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._root = Path(root)
        self._settings = settings or get_settings()
        generator = key_generator or default_key_generator()
        self.key = check_key(generator.new_key())
        if flags is None:
            self.destination = self._root / "new" / self.key
        else:
            self.destination = self._root / "cur" / encode(self.key, flags)
        self.staged_path = self._root / "tmp" / self.key

        fd = os.open(
            self.staged_path,
            os.O_CREAT | os.O_EXCL | os.O_WRONLY | getattr(os, "O_BINARY", 0),
            self._settings.file_mode,
        )
        self._file: BinaryIO = os.fdopen(fd, "wb")
        self._finished = False
        logging.debug(f"Staged delivery {self.key} at {self.staged_path}")

    @property
    def closed(self) -> bool:
        return self._finished

    def _ensure_open(self) -> None:
        if self._finished:
            raise ValueError(f"Delivery {self.key} is already finished")

    def write(self, data: bytes) -> int:
        self._ensure_open()
        return self._file.write(data)

    def writelines(self, lines: Iterable[bytes]) -> None:
        self._ensure_open()
        self._file.writelines(lines)

    def copy_from(self, stream: BinaryIO) -> None:
        self._ensure_open()
        shutil.copyfileobj(stream, self._file, _COPY_CHUNK)

    def close(self) -> Path:
        """Publish the staged file and return its visible path."""
        self._ensure_open()
        try:
            self._file.flush()
            if self._settings.fsync:
                os.fsync(self._file.fileno())
        finally:
            self._file.close()
        publish_file(self.staged_path, self.destination)
        self._finished = True
        logging.debug(f"Published delivery {self.key} to {self.destination}")
        return self.destination

    def abort(self) -> None:
        """Discard the staged file; nothing becomes visible to readers."""
        self._ensure_open()
        self._finished = True
        try:
            self._file.close()
        finally:
            self.staged_path.unlink(missing_ok=True)
        logging.debug(f"Aborted delivery {self.key}")

    def __enter__(self) -> "Delivery":
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: object) -> None:
        if self._finished:
            return
        if exc_type is not None:
            self.abort()
            return
        try:
            self.close()
        except BaseException:
            self.abort()
            raise


def deliver(
    root: str | os.PathLike[str],
    data: bytes | BinaryIO,
    *,
    key_generator: KeyGenerator | None = None,
    flags: Iterable[Flag | str] | None = None,
    settings: Settings | None = None,
) -> tuple[str, Path]:
    """Stage and publish ``data`` in one call, aborting on any failure."""
    delivery = Delivery(root, key_generator=key_generator, flags=flags, settings=settings)
    with delivery:
        if isinstance(data, (bytes, bytearray, memoryview)):
            delivery.write(bytes(data))
        else:
            delivery.copy_from(data)
    return delivery.key, delivery.destination
