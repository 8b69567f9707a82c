"""Tests for command-line parsing and the start command."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from config import HOST, INDEX_DOCUMENT, LOG_FORMAT, PORT, STATIC_DIR
from server import _parse_args, main


def test_defaults_come_from_config() -> None:
    args = _parse_args([])

    assert args.host == HOST
    assert args.port == PORT
    assert args.root == STATIC_DIR
    assert args.index == INDEX_DOCUMENT
    assert args.log_format == LOG_FORMAT


def test_overrides_are_parsed(tmp_path: Path) -> None:
    args = _parse_args(
        ["--port", "9000", "--root", str(tmp_path), "--index", "", "--log-format", "json"]
    )

    assert args.port == 9000
    assert args.root == str(tmp_path)
    assert args.index == ""
    assert args.log_format == "json"


def test_invalid_log_format_is_rejected() -> None:
    with pytest.raises(SystemExit):
        _parse_args(["--log-format", "xml"])


def test_main_fails_when_root_is_missing(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("server.signal.signal", lambda *_args: None)
    missing = tmp_path / "nope"

    with caplog.at_level(logging.ERROR):
        exit_code = main(["--port", "0", "--root", str(missing)])

    assert exit_code == 1
    assert "Static root does not exist" in caplog.text
