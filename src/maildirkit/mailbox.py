"""The Maildir facade used by the single reading process.

Any number of processes may deliver into a mailbox concurrently (see
:class:`~maildirkit.delivery.Delivery`), but only one process may promote,
flag, move, copy or remove its messages. That contract is the caller's to
keep; nothing here locks.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import BinaryIO, Callable, Iterable

from . import lookup, scanner
from .codec import SEPARATOR, Flag, check_key, decode, split_key
from .config import Settings, get_settings
from .delivery import Delivery, deliver, publish_file, rename_entry
from .errors import KeyCollisionError, MessageNotFoundError, ScanError
from .keys import KeyGenerator, default_key_generator
from .message import Message


SUBDIRS = ("tmp", "new", "cur")


class Maildir:
    """A mailbox directory holding ``tmp/``, ``new/`` and ``cur/``."""

    separator = SEPARATOR

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        key_generator: KeyGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.path = Path(path).expanduser()
        self.settings = settings or get_settings()
        self.key_generator = key_generator or default_key_generator()

    def __repr__(self) -> str:
        return f"Maildir({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Maildir):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def tmp(self) -> Path:
        return self.path / "tmp"

    @property
    def new(self) -> Path:
        return self.path / "new"

    @property
    def cur(self) -> Path:
        return self.path / "cur"

    @property
    def _chunk(self) -> int:
        return self.settings.readdir_chunk

    def init(self) -> None:
        """Create the mailbox directories; existing ones are left alone.

        A failure part way through can leave an incomplete structure;
        calling ``init`` again completes it.
        """
        mode = self.settings.dir_mode
        self.path.mkdir(mode=mode, parents=True, exist_ok=True)
        for name in SUBDIRS:
            (self.path / name).mkdir(mode=mode, exist_ok=True)
        logging.debug(f"Initialized maildir at {self.path}")

    # -- delivery --------------------------------------------------------

    def new_delivery(self) -> Delivery:
        """Stage a delivery that is published into ``new/``."""
        return Delivery(self.path, key_generator=self.key_generator, settings=self.settings)

    def deliver(self, data: bytes | BinaryIO) -> str:
        key, _path = deliver(self.path, data, key_generator=self.key_generator, settings=self.settings)
        return key

    def create(self, flags: Iterable[Flag | str] = ()) -> tuple[Message, Delivery]:
        """Stage a message that is published straight into ``cur/``.

        The returned :class:`Message` only resolves once the delivery has
        been closed.
        """
        delivery = Delivery(self.path, key_generator=self.key_generator, flags=tuple(flags), settings=self.settings)
        return Message(self, delivery.key, delivery.destination.name), delivery

    # -- reading ---------------------------------------------------------

    def unseen(self) -> list[Message]:
        """Promote everything in ``new/`` into ``cur/`` and return the handles.

        On partial failure the raised :class:`ScanError` carries the
        promoted messages in ``partial``.
        """
        try:
            pairs = scanner.promote_unseen(self.path, self._chunk)
        except ScanError as e:
            e.partial = [Message(self, key, name) for key, name in e.partial]
            raise
        return [Message(self, key, name) for key, name in pairs]

    def unseen_count(self) -> int:
        return scanner.count_unseen(self.path, self._chunk)

    def walk(self, fn: Callable[[Message], None]) -> None:
        scanner.walk(self.path, lambda key, name: fn(Message(self, key, name)), self._chunk)

    def messages(self) -> list[Message]:
        """Return every message in ``cur/``; see :meth:`walk` for errors."""
        found: list[Message] = []
        try:
            self.walk(found.append)
        except ScanError as e:
            e.partial = found
            raise
        return found

    def keys(self) -> list[str]:
        return [msg.key for msg in self.messages()]

    def key(self, path: str | os.PathLike[str]) -> str:
        """Return the key of a file path inside this mailbox's ``cur/``."""
        path = Path(path)
        if path.parent != self.cur:
            raise ValueError(f"Path {path} belongs to a different maildir")
        key = split_key(path.name)
        return check_key(key)

    def filename(self, key: str) -> Path:
        return lookup.filename_by_key(self.path, key, self._chunk)

    def message_by_key(self, key: str) -> Message:
        return Message(self, key, self.filename(key).name)

    def open(self, key: str) -> BinaryIO:
        return self.filename(key).open("rb")

    def flags(self, key: str) -> tuple[Flag | str, ...]:
        return decode(self.filename(key).name)[1]

    # -- mutation --------------------------------------------------------

    def _rename(self, old_basename: str, new_basename: str) -> None:
        rename_entry(self.cur / old_basename, self.cur / new_basename)

    def set_flags(self, key: str, flags: Iterable[Flag | str]) -> Message:
        msg = self.message_by_key(key)
        msg.set_flags(flags)
        return msg

    def set_info(self, key: str, info: str) -> Message:
        """Set a raw info section; only for non-standard info formats."""
        msg = self.message_by_key(key)
        msg.set_info(info)
        return msg

    def remove(self, key: str) -> None:
        self.filename(key).unlink()
        logging.debug(f"Removed message {key} from {self.path}")

    def move(self, target: Maildir, key: str, *, overwrite: bool = True) -> Message:
        """Move a message into ``target``'s ``cur/`` keeping key and flags.

        By default an entry with the same name in ``target`` is replaced.
        With ``overwrite=False`` an existing entry with the same key raises
        :class:`KeyCollisionError` instead.
        """
        source = self.filename(key)
        destination = target.cur / source.name
        if overwrite:
            rename_entry(source, destination)
        else:
            try:
                target.filename(key)
            except MessageNotFoundError:
                pass
            else:
                raise KeyCollisionError(key, target.path)
            try:
                publish_file(source, destination, strict=True)
            except FileExistsError as e:
                raise KeyCollisionError(key, target.path) from e
        logging.debug(f"Moved message {key} from {self.path} to {target.path}")
        return Message(target, key, destination.name)

    def copy(self, target: Maildir, key: str) -> Message:
        """Copy a message into ``target`` under a new key, keeping its flags."""
        source = self.message_by_key(key)
        flags = source.flags
        delivery = Delivery(
            target.path,
            key_generator=target.key_generator,
            flags=(),
            settings=target.settings,
        )
        with delivery:
            with source.open() as f:
                delivery.copy_from(f)
        copied = Message(target, delivery.key, delivery.destination.name)
        try:
            copied.set_flags(flags)
        except BaseException:
            copied.path.unlink(missing_ok=True)
            raise
        logging.debug(f"Copied message {key} from {self.path} to {target.path} as {copied.key}")
        return copied

    def clean(self, retention: timedelta | None = None) -> list[Path]:
        """Reclaim staged files abandoned by crashed deliveries."""
        if retention is None:
            retention = self.settings.clean_retention
        return scanner.clean_staging(self.path, retention, chunk_size=self._chunk)
