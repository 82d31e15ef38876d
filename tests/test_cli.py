"""Tests for the command-line interface."""

from __future__ import annotations

import os

import pytest
from typer.testing import CliRunner

from maildirkit import Maildir
from maildirkit.cli import app
from maildirkit.codec import SEPARATOR, Flag

pytestmark = pytest.mark.unit

runner = CliRunner()


@pytest.fixture
def box_path(tmp_path):
    path = tmp_path / "box"
    result = runner.invoke(app, ["init", str(path)])
    assert result.exit_code == 0, result.output
    return path


def _deliver(path, body: bytes = b"hello", *extra: str) -> str:
    result = runner.invoke(app, ["deliver", str(path), *extra], input=body)
    assert result.exit_code == 0, result.output
    return result.stdout.strip()


def test_init_creates_layout(box_path) -> None:
    assert sorted(os.listdir(box_path)) == ["cur", "new", "tmp"]


def test_deliver_count_and_unseen(box_path) -> None:
    key = _deliver(box_path)
    assert (box_path / "new" / key).read_bytes() == b"hello"

    result = runner.invoke(app, ["count", str(box_path)])
    assert result.stdout.strip() == "1"

    result = runner.invoke(app, ["unseen", str(box_path)])
    assert result.exit_code == 0
    assert result.stdout.split() == [key]
    assert (box_path / "cur" / f"{key}{SEPARATOR}2,").exists()


def test_deliver_from_file_with_flags(box_path, tmp_path) -> None:
    source = tmp_path / "message.eml"
    source.write_bytes(b"Subject: hi\r\n\r\nbody\r\n")
    result = runner.invoke(app, ["deliver", str(box_path), "--file", str(source), "--flags", "S"])
    assert result.exit_code == 0, result.output
    key = result.stdout.strip()
    assert (box_path / "cur" / f"{key}{SEPARATOR}2,S").read_bytes() == source.read_bytes()


def test_flags_and_cat(box_path) -> None:
    key = _deliver(box_path, b"raw bytes")
    runner.invoke(app, ["unseen", str(box_path)])

    result = runner.invoke(app, ["flags", key, str(box_path), "--set", "SF"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "FS"
    assert Maildir(box_path).flags(key) == (Flag.FLAGGED, Flag.SEEN)

    result = runner.invoke(app, ["cat", key, str(box_path)])
    assert result.exit_code == 0
    assert result.stdout_bytes == b"raw bytes"


def test_ls_and_rm(box_path) -> None:
    key = _deliver(box_path)
    runner.invoke(app, ["unseen", str(box_path)])
    assert runner.invoke(app, ["ls", str(box_path)]).exit_code == 0

    result = runner.invoke(app, ["rm", key, str(box_path)])
    assert result.exit_code == 0
    assert os.listdir(box_path / "cur") == []


def test_mv_and_cp(box_path, tmp_path) -> None:
    other = tmp_path / "other"
    runner.invoke(app, ["init", str(other)])
    key = _deliver(box_path)
    runner.invoke(app, ["unseen", str(box_path)])

    result = runner.invoke(app, ["cp", str(box_path), str(other), key])
    assert result.exit_code == 0, result.output
    copy_key = result.stdout.strip()
    assert copy_key != key

    result = runner.invoke(app, ["mv", str(box_path), str(other), key])
    assert result.exit_code == 0, result.output
    assert sorted(Maildir(other).keys()) == sorted([key, copy_key])
    assert os.listdir(box_path / "cur") == []


def test_mv_refuses_collision(box_path, tmp_path) -> None:
    other = tmp_path / "other"
    runner.invoke(app, ["init", str(other)])
    key = _deliver(box_path)
    runner.invoke(app, ["unseen", str(box_path)])
    (other / "cur" / f"{key}{SEPARATOR}2,S").write_bytes(b"")

    result = runner.invoke(app, ["mv", str(box_path), str(other), key, "--no-overwrite"])
    assert result.exit_code == 1
    assert (box_path / "cur" / f"{key}{SEPARATOR}2,").exists()


def test_unknown_key_exits_with_error(box_path) -> None:
    result = runner.invoke(app, ["cat", "1.nosuch.1", str(box_path)])
    assert result.exit_code == 1


def test_clean(box_path) -> None:
    result = runner.invoke(app, ["clean", str(box_path), "--hours", "1"])
    assert result.exit_code == 0


def test_root_from_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("MAILDIR_ROOT", str(tmp_path / "envbox"))
    assert runner.invoke(app, ["init"]).exit_code == 0
    assert (tmp_path / "envbox" / "new").is_dir()


def test_missing_mailbox_exits_with_usage_error() -> None:
    result = runner.invoke(app, ["count"])
    assert result.exit_code == 2
