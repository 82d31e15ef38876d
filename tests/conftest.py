"""Shared fixtures for maildirkit tests."""

from __future__ import annotations

import os

import pytest

from maildirkit import KeyGenerator, Maildir, Settings
from maildirkit.config import clear_settings_cache


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Keep MAILDIR_* variables and .env files from leaking into tests."""
    for name in list(os.environ):
        if name.startswith("MAILDIR_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, fsync=False)


@pytest.fixture
def keygen() -> KeyGenerator:
    return KeyGenerator()


@pytest.fixture
def make_maildir(tmp_path, settings, keygen):
    """Factory creating initialized mailboxes under tmp_path."""

    def _make(name: str = "mbox") -> Maildir:
        box = Maildir(tmp_path / name, key_generator=keygen, settings=settings)
        box.init()
        return box

    return _make


@pytest.fixture
def maildir(make_maildir) -> Maildir:
    return make_maildir()
