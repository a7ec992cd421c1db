"""
Tests for the per-mint trade ledger: file format, round-trip, atomic
rewrite and non-fatal write failures.
"""

from __future__ import annotations

import json
import os

import pytest

from conftest import MINT, T0
from swapwatch.core.exceptions import LedgerWriteError
from swapwatch.decoding.interface import Side
from swapwatch.ledger import trade_ledger
from swapwatch.ledger.trade_ledger import TradeLedger, TradeLogEntry, ledger_path_for

BUY = TradeLogEntry(timestamp=T0, type=Side.BUY, price=1.06, amount=1000, total=1060)
SELL = TradeLogEntry(
    timestamp=T0 + 15,
    type=Side.SELL,
    price=1.2296,
    amount=1000,
    total=1229.6,
    profit_loss=16.0,
    hold_time=15,
)


def test_new_ledger_is_empty_array(tmp_path):
    """Opening a ledger for a new mint creates trades_<mint>.json containing []."""
    ledger = TradeLedger.for_mint(MINT, tmp_path)
    assert ledger.path == tmp_path / f"trades_{MINT}.json"
    assert ledger.path == ledger_path_for(MINT, tmp_path)
    assert json.loads(ledger.path.read_text()) == []
    assert ledger.read_all() == []


def test_append_round_trip(ledger):
    """ReadAll after Append ends with the appended entry, field for field."""
    assert ledger.append(BUY) is True
    assert ledger.append(SELL) is True
    entries = ledger.read_all()
    assert entries == [BUY, SELL]
    assert entries[-1] == SELL


def test_file_field_set(ledger):
    """BUY rows omit profitLoss/holdTime; every row carries an ISO-8601 dateTime."""
    ledger.append(BUY)
    ledger.append(SELL)
    raw = json.loads(ledger.path.read_text())
    assert set(raw[0]) == {"timestamp", "type", "price", "amount", "total", "dateTime"}
    assert set(raw[1]) == {"timestamp", "type", "price", "amount", "total", "profitLoss", "holdTime", "dateTime"}
    assert raw[0]["type"] == "BUY"
    assert raw[0]["dateTime"] == "2023-11-14T22:13:20.000Z"
    assert raw[1]["profitLoss"] == 16.0
    assert raw[1]["holdTime"] == 15


def test_write_failure_is_logged_not_raised(ledger, monkeypatch):
    """A failed rename returns False, keeps the previous file intact and leaves no temp files."""
    ledger.append(BUY)
    before = ledger.path.read_text()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(trade_ledger.os, "replace", broken_replace)
    assert ledger.append(SELL) is False
    monkeypatch.undo()

    assert ledger.path.read_text() == before
    assert sorted(p.name for p in ledger.path.parent.iterdir()) == [ledger.path.name]


def test_atomic_writer_raises_ledger_error(tmp_path, monkeypatch):
    def broken_fsync(fd):
        raise OSError("io error")

    monkeypatch.setattr(trade_ledger.os, "fsync", broken_fsync)
    with pytest.raises(LedgerWriteError):
        trade_ledger._atomic_write_json(tmp_path / "x.json", [])
    assert list(tmp_path.iterdir()) == []


def test_corrupt_file_reads_empty(ledger):
    ledger.path.write_text("{not json")
    assert ledger.read_all() == []
    ledger.path.write_text(json.dumps({"not": "a list"}))
    assert ledger.read_all() == []


def test_malformed_rows_skipped(ledger):
    ledger.path.write_text(json.dumps([{"type": "BUY"}, BUY.to_dict(), "junk"]))
    assert ledger.read_all() == [BUY]


def test_stats_over_sell_entries(ledger):
    """Win rate and profit extremes only consider SELL rows."""
    losing = TradeLogEntry(timestamp=T0 + 60, type=Side.SELL, price=1.0, amount=1000, total=1000, profit_loss=-4.0, hold_time=5)
    for entry in (BUY, SELL, BUY, losing):
        ledger.append(entry)
    stats = ledger.stats()
    assert stats.total_trades == 4
    assert stats.closed_trades == 2
    assert stats.profitable_trades == 1
    assert stats.win_rate == pytest.approx(50.0)
    assert stats.average_profit == pytest.approx(6.0)
    assert stats.max_profit == pytest.approx(16.0)
    assert stats.max_loss == pytest.approx(-4.0)
    assert stats.to_dict()["win_rate"] == 50.0


def test_stats_empty_ledger(ledger):
    stats = ledger.stats()
    assert stats.total_trades == 0
    assert stats.win_rate == 0.0


def test_existing_file_not_truncated(tmp_path):
    first = TradeLedger.for_mint(MINT, tmp_path)
    first.append(BUY)
    reopened = TradeLedger.for_mint(MINT, tmp_path)
    assert reopened.read_all() == [BUY]
    assert os.path.exists(reopened.path)


def test_unreadable_file_is_not_overwritten(ledger, monkeypatch):
    """A transient read error fails the append and keeps every earlier entry."""
    for _ in range(3):
        ledger.append(BUY)
    before = ledger.path.read_text()
    real_read_text = trade_ledger.Path.read_text
    calls = []

    def flaky_read_text(self, *args, **kwargs):
        if not calls:
            calls.append(self)
            raise OSError(24, "Too many open files")
        return real_read_text(self, *args, **kwargs)

    monkeypatch.setattr(trade_ledger.Path, "read_text", flaky_read_text)
    assert ledger.append(SELL) is False
    assert ledger.path.read_text() == before

    assert ledger.append(SELL) is True
    assert ledger.read_all() == [BUY, BUY, BUY, SELL]


def test_corrupt_file_is_moved_aside_before_append(ledger):
    """A truncated array is preserved next to the ledger and journaling continues."""
    truncated = json.dumps([BUY.to_dict(), SELL.to_dict()])[:-20]
    ledger.path.write_text(truncated)

    assert ledger.append(BUY) is True
    assert ledger.read_all() == [BUY]
    moved = [p for p in ledger.path.parent.iterdir() if p.name.startswith(ledger.path.name + ".corrupt-")]
    assert len(moved) == 1
    assert moved[0].read_text() == truncated


def test_corrupt_file_kept_when_move_fails(ledger, monkeypatch):
    ledger.path.write_text(json.dumps({"not": "a list"}))

    def broken_replace(src, dst):
        raise OSError("read-only filesystem")

    monkeypatch.setattr(trade_ledger.os, "replace", broken_replace)
    assert ledger.append(BUY) is False
    monkeypatch.undo()
    assert json.loads(ledger.path.read_text()) == {"not": "a list"}


def test_open_without_create_leaves_disk_untouched(tmp_path):
    ledger = TradeLedger.for_mint(MINT, tmp_path / "nested", create=False)
    assert ledger.read_all() == []
    assert ledger.stats().total_trades == 0
    assert not (tmp_path / "nested").exists()
