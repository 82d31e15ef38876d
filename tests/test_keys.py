"""Tests for key generation."""

from __future__ import annotations

import os
import threading

import pytest

from maildirkit import keys
from maildirkit.codec import SEPARATOR
from maildirkit.errors import KeyGenerationError
from maildirkit.keys import KeyGenerator, default_key_generator, escape_hostname

pytestmark = pytest.mark.unit


class TestKeyFormat:
    def test_key_components(self, monkeypatch) -> None:
        monkeypatch.setattr(keys.socket, "gethostname", lambda: "mail.example.org")
        monkeypatch.setattr(keys.time, "time", lambda: 1700000000.9)
        key = KeyGenerator(start=42).new_key()

        seconds, rest = key.split(".", 1)
        assert seconds == "1700000000"
        assert rest.startswith("mail.example.org.")
        tail = rest[len("mail.example.org."):]
        pid = str(os.getpid())
        assert tail.startswith(pid + "42")
        entropy = tail[len(pid) + 2:]
        assert len(entropy) == 20
        int(entropy, 16)

    def test_counter_increments(self, monkeypatch) -> None:
        monkeypatch.setattr(keys.secrets, "token_bytes", lambda n: b"\0" * n)
        monkeypatch.setattr(keys.time, "time", lambda: 1.0)
        gen = KeyGenerator(start=10000)
        pid = str(os.getpid())
        first, second = gen.new_key(), gen.new_key()
        assert first.endswith(f"{pid}10000" + "00" * 10)
        assert second.endswith(f"{pid}10001" + "00" * 10)

    def test_key_has_no_separator_or_slash(self, monkeypatch) -> None:
        monkeypatch.setattr(keys.socket, "gethostname", lambda: f"odd/host{SEPARATOR}name")
        key = KeyGenerator().new_key()
        assert SEPARATOR not in key
        assert "/" not in key

    def test_escape_hostname(self) -> None:
        escaped = escape_hostname(f"a/b{SEPARATOR}c")
        assert escaped == "a\\057b\\%03oc" % ord(SEPARATOR)


class TestKeyFailures:
    def test_hostname_failure_aborts(self, monkeypatch) -> None:
        def broken() -> str:
            raise OSError("no hostname")

        monkeypatch.setattr(keys.socket, "gethostname", broken)
        with pytest.raises(KeyGenerationError):
            KeyGenerator().new_key()

    def test_empty_hostname_aborts(self, monkeypatch) -> None:
        monkeypatch.setattr(keys.socket, "gethostname", lambda: "")
        with pytest.raises(KeyGenerationError):
            KeyGenerator().new_key()

    def test_random_failure_aborts(self, monkeypatch) -> None:
        def broken(n: int) -> bytes:
            raise OSError("entropy unavailable")

        monkeypatch.setattr(keys.secrets, "token_bytes", broken)
        with pytest.raises(KeyGenerationError):
            KeyGenerator().new_key()


class TestUniqueness:
    @pytest.mark.slow
    def test_many_generators_never_collide(self) -> None:
        """10 generators x 5000 keys from parallel threads are all distinct."""
        generators = [KeyGenerator() for _ in range(10)]
        results: list[list[str]] = [[] for _ in generators]

        def run(index: int) -> None:
            gen = generators[index]
            results[index].extend(gen.new_key() for _ in range(5000))

        threads = [threading.Thread(target=run, args=(i,)) for i in range(len(generators))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        all_keys = [k for batch in results for k in batch]
        assert len(all_keys) == 50_000
        assert len(set(all_keys)) == 50_000

    def test_shared_generator_is_thread_safe(self) -> None:
        gen = KeyGenerator()
        out: list[str] = []
        lock = threading.Lock()

        def run() -> None:
            produced = [gen.new_key() for _ in range(500)]
            with lock:
                out.extend(produced)

        threads = [threading.Thread(target=run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(out)) == 4000

    def test_default_generator_is_shared(self) -> None:
        assert default_key_generator() is default_key_generator()
