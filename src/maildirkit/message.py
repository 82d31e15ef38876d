"""Transient handles to messages stored in a mailbox's ``cur/`` directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterable

from .codec import Flag, decode, encode, encode_info

if TYPE_CHECKING:
    from .mailbox import Maildir


@dataclass(slots=True)
class Message:
    """A cached view of one message.

    The handle does not own the file. Another process may rename or delete
    it at any time; operations then re-resolve the key and raise
    :class:`~maildirkit.errors.MessageNotFoundError` if it is gone.
    """

    mailbox: Maildir
    key: str
    # Last known basename inside cur/
    basename: str

    @property
    def path(self) -> Path:
        return self.mailbox.cur / self.basename

    @property
    def info(self) -> str:
        self.refresh()
        return self.basename.partition(self.mailbox.separator)[2]

    @property
    def flags(self) -> tuple[Flag | str, ...]:
        self.refresh()
        return decode(self.basename)[1]

    def refresh(self) -> Message:
        """Re-read the basename from disk if the cached one is stale."""
        if not self.path.exists():
            self.basename = self.mailbox.filename(self.key).name
        return self

    def open(self) -> BinaryIO:
        self.refresh()
        return self.path.open("rb")

    def read_bytes(self) -> bytes:
        with self.open() as f:
            return f.read()

    def _rename_to(self, basename: str) -> None:
        self.refresh()
        if basename != self.basename:
            self.mailbox._rename(self.basename, basename)
        self.basename = basename

    def set_flags(self, flags: Iterable[Flag | str]) -> None:
        self._rename_to(encode(self.key, flags))

    def add_flags(self, *flags: Flag | str) -> None:
        self.set_flags((*self.flags, *flags))

    def remove_flags(self, *flags: Flag | str) -> None:
        drop = {str(flag) for flag in flags}
        self.set_flags(flag for flag in self.flags if str(flag) not in drop)

    def set_info(self, info: str) -> None:
        self._rename_to(encode_info(self.key, info))

    def remove(self) -> None:
        self.refresh()
        self.path.unlink()

    def move_to(self, target: Maildir, *, overwrite: bool = True) -> Message:
        return self.mailbox.move(target, self.key, overwrite=overwrite)

    def copy_to(self, target: Maildir) -> Message:
        return self.mailbox.copy(target, self.key)
