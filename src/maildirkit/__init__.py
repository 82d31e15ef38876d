"""Maildir storage: lock-free concurrent delivery with a single reader."""

from .codec import SEPARATOR, Flag, canonical_flags, decode, encode, format_info, parse_info
from .config import Settings, get_settings
from .delivery import Delivery, deliver
from .errors import (
    AmbiguousKeyError,
    ExperimentalInfoError,
    InvalidInfoError,
    KeyCollisionError,
    KeyGenerationError,
    KeyMatchError,
    MaildirError,
    MaildirOperationTimeout,
    MalformedEntryError,
    MessageNotFoundError,
    ScanError,
)
from .keys import KeyGenerator, default_key_generator
from .mailbox import Maildir
from .message import Message

__all__ = [
    "SEPARATOR",
    "AmbiguousKeyError",
    "Delivery",
    "ExperimentalInfoError",
    "Flag",
    "InvalidInfoError",
    "KeyCollisionError",
    "KeyGenerationError",
    "KeyGenerator",
    "KeyMatchError",
    "Maildir",
    "MaildirError",
    "MaildirOperationTimeout",
    "MalformedEntryError",
    "Message",
    "MessageNotFoundError",
    "ScanError",
    "Settings",
    "canonical_flags",
    "decode",
    "default_key_generator",
    "deliver",
    "encode",
    "format_info",
    "get_settings",
    "parse_info",
]
