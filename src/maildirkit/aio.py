"""Asyncio access to a Maildir.

Every call runs the blocking filesystem operation in a worker thread. A
timeout abandons the wait, not the operation: the thread keeps running to
completion, so a timed out delivery may still be published.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterable

from .codec import Flag
from .errors import MaildirOperationTimeout
from .mailbox import Maildir
from .message import Message


async def _to_thread(
    func: Any,
    /,
    *args: Any,
    _timeout: float | None = None,
    **kwargs: Any,
) -> Any:
    """Run a blocking function in a thread with optional timeout.

    Args:
        func: The blocking function to run
        *args: Positional arguments for func
        _timeout: Timeout in seconds. Use 0 or negative to wait forever.
        **kwargs: Keyword arguments for func

    Raises:
        MaildirOperationTimeout: If the operation times out
    """
    if _timeout is None or _timeout <= 0:
        return await asyncio.to_thread(func, *args, **kwargs)

    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args, **kwargs),
            timeout=_timeout,
        )
    except asyncio.TimeoutError:
        func_name = getattr(func, "__name__", str(func))
        raise MaildirOperationTimeout(
            f"Operation '{func_name}' timed out after {_timeout}s"
        ) from None


class AsyncMaildir:
    """Awaitable wrapper around :class:`Maildir` for asyncio applications."""

    def __init__(self, maildir: Maildir, *, timeout: float | None = None) -> None:
        self.maildir = maildir
        self.timeout = maildir.settings.thread_timeout_seconds if timeout is None else timeout

    async def _run(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        return await _to_thread(func, *args, _timeout=self.timeout, **kwargs)

    async def init(self) -> None:
        await self._run(self.maildir.init)

    async def deliver(self, data: bytes) -> str:
        return await self._run(self.maildir.deliver, data)

    async def unseen(self) -> list[Message]:
        return await self._run(self.maildir.unseen)

    async def unseen_count(self) -> int:
        return await self._run(self.maildir.unseen_count)

    async def messages(self) -> list[Message]:
        return await self._run(self.maildir.messages)

    async def filename(self, key: str) -> Path:
        return await self._run(self.maildir.filename, key)

    async def read_bytes(self, key: str) -> bytes:
        return await self._run(lambda: self.maildir.message_by_key(key).read_bytes())

    async def flags(self, key: str) -> tuple[Flag | str, ...]:
        return await self._run(self.maildir.flags, key)

    async def set_flags(self, key: str, flags: Iterable[Flag | str]) -> Message:
        return await self._run(self.maildir.set_flags, key, tuple(flags))

    async def remove(self, key: str) -> None:
        await self._run(self.maildir.remove, key)

    async def move(self, target: Maildir, key: str, *, overwrite: bool = True) -> Message:
        return await self._run(self.maildir.move, target, key, overwrite=overwrite)

    async def copy(self, target: Maildir, key: str) -> Message:
        return await self._run(self.maildir.copy, target, key)

    async def clean(self, retention: timedelta | None = None) -> list[Path]:
        return await self._run(self.maildir.clean, retention)
