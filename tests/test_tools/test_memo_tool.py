"""Tests for the spatial-memo CLI."""

from __future__ import annotations

import sys

import pytest

from spatial_memo.record.models import Record
from spatial_memo.tools import memo_tool


def _run(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["spatial-memo", *argv])
    with pytest.raises(SystemExit) as exc_info:
        memo_tool.main()
    return exc_info.value.code


class TestExampleRecord:
    def test_san_francisco(self) -> None:
        record = memo_tool.example_record()
        assert isinstance(record, Record)
        assert record.name == "San Francisco"
        assert record.category == "city"
        assert record.geometry.longitude == -122.4194
        assert record.geometry.latitude == 37.7749
        record.validate()


class TestMain:
    def test_no_command(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch) == 1
        assert "roundtrip" in capsys.readouterr().out

    def test_unknown_command(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "teleport") == 1
        assert "Unknown command: teleport" in capsys.readouterr().out

    def test_send_usage(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "send", "only-a-name") == 1
        assert "Usage: spatial-memo send" in capsys.readouterr().out

    def test_recover_usage(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "recover") == 1
        assert "Usage: spatial-memo recover" in capsys.readouterr().out

    def test_bad_coordinate(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "send", "Oslo", "city", "east", "59.9") == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_keypair(self, monkeypatch, capsys, tmp_path) -> None:
        monkeypatch.setenv("SPATIALMEMO_WALLET__KEYPAIR_PATH", str(tmp_path / "none.json"))
        assert _run(monkeypatch, "balance") == 1
        assert "keypair-error" in capsys.readouterr().err
