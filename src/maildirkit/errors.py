"""Exception types raised by the maildir storage engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence


class MaildirError(Exception):
    """Base class for every error raised by maildirkit."""
    pass


class KeyGenerationError(MaildirError):
    """Raised when a unique delivery key cannot be produced."""
    pass


class KeyMatchError(MaildirError):
    """A key matched more or less than exactly one file in ``cur/``."""

    def __init__(self, key: str, count: int) -> None:
        self.key = key
        self.count = count
        super().__init__(f"maildir: key {key} matches {count} files")


class MessageNotFoundError(KeyMatchError):
    def __init__(self, key: str) -> None:
        super().__init__(key, 0)


class AmbiguousKeyError(KeyMatchError):
    pass


class KeyCollisionError(MaildirError):
    """Raised when a move would replace an entry that already uses the key."""

    def __init__(self, key: str, target: str | Path) -> None:
        self.key = key
        self.target = str(target)
        super().__init__(f"maildir: key {key} already exists in {self.target}")


class MalformedEntryError(MaildirError):
    """A basename has no key/info shape at all."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"maildir: invalid mailfile format: {name}")


class InvalidInfoError(MaildirError):
    """The info section of a basename failed structural validation."""

    experimental = False

    def __init__(self, info: str) -> None:
        self.info = info
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"maildir: bad info section encountered: {self.info}"


class ExperimentalInfoError(InvalidInfoError):
    """The info section uses the experimental ``1,`` generation marker."""

    experimental = True

    def _describe(self) -> str:
        return f"maildir: experimental info section encountered: {self.info[2:]}"


class ScanError(MaildirError):
    """Per-entry errors collected while enumerating a mailbox directory.

    ``errors`` holds every entry that was skipped. ``cause`` is the terminal
    error (for example the exception raised by a walk callback) when the scan
    stopped early. ``partial`` holds whatever the scan produced before it
    finished, so callers do not lose the entries that were handled.
    """

    def __init__(
        self,
        errors: Sequence[BaseException],
        *,
        cause: BaseException | None = None,
        partial: Sequence[Any] | None = None,
    ) -> None:
        self.errors = list(errors)
        self.cause = cause
        self.partial = list(partial or [])
        super().__init__(self._summary())

    def _summary(self) -> str:
        parts = [str(err) for err in self.errors]
        if self.cause is not None:
            parts.append(f"stopped by {type(self.cause).__name__}: {self.cause}")
        return "maildir: scan failed: " + "; ".join(parts)


class MaildirOperationTimeout(MaildirError):
    """Raised when an offloaded maildir operation exceeds its deadline."""
    pass
