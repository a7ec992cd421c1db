"""
Tests for the CLI entrypoint: decoder loading, --stats output and config errors.
"""

from __future__ import annotations

import json
import sys
import types

import pytest

from conftest import MINT, FakeDecoder
from swapwatch.agent_worker import runtime
from swapwatch.core.exceptions import ConfigError
from swapwatch.decoding.interface import Side
from swapwatch.ledger.trade_ledger import TradeLedger, TradeLogEntry


@pytest.fixture
def decoder_module(monkeypatch):
    module = types.ModuleType("fake_decoders")
    module.FakeDecoder = FakeDecoder
    module.instance = FakeDecoder()
    module.not_a_decoder = 42
    monkeypatch.setitem(sys.modules, "fake_decoders", module)
    return module


def test_load_decoder_from_class_or_instance(decoder_module):
    assert isinstance(runtime.load_decoder("fake_decoders:FakeDecoder"), FakeDecoder)
    assert runtime.load_decoder("fake_decoders:instance") is decoder_module.instance


@pytest.mark.parametrize(
    "target",
    ["fake_decoders", "fake_decoders:missing", "fake_decoders:not_a_decoder", "no_such_module_xyz:Decoder"],
)
def test_load_decoder_errors(decoder_module, target):
    with pytest.raises(ConfigError):
        runtime.load_decoder(target)


def test_stats_prints_ledger_summary(tmp_path, capsys):
    ledger = TradeLedger.for_mint(MINT, tmp_path)
    ledger.append(TradeLogEntry(timestamp=1_700_000_000, type=Side.BUY, price=1.0, amount=1000, total=1000))
    ledger.append(
        TradeLogEntry(
            timestamp=1_700_000_020,
            type=Side.SELL,
            price=1.05,
            amount=1000,
            total=1050,
            profit_loss=5.0,
            hold_time=20,
        )
    )
    code = runtime.main(["--mint", MINT, "--stats", "--trades-dir", str(tmp_path), "--preset", "scalper"])
    assert code == runtime.EXIT_OK
    out = json.loads(capsys.readouterr().out)
    assert out["mint"] == MINT
    assert out["stats"]["total_trades"] == 2
    assert out["stats"]["win_rate"] == 100.0
    assert out["wallet"] == {"balance": 10_050.0, "tokens": 0}


def test_invalid_mint_is_config_error(tmp_path):
    assert runtime.main(["--mint", "nope", "--stats", "--trades-dir", str(tmp_path)]) == runtime.EXIT_CONFIG


def test_decoder_required_to_run(tmp_path):
    assert runtime.main(["--mint", MINT, "--trades-dir", str(tmp_path)]) == runtime.EXIT_CONFIG


def test_missing_endpoint_is_config_error(tmp_path, monkeypatch, decoder_module):
    monkeypatch.setenv("STREAM_ENDPOINT", "")
    code = runtime.main(["--mint", MINT, "--decoder", "fake_decoders:FakeDecoder", "--trades-dir", str(tmp_path)])
    assert code == runtime.EXIT_CONFIG


@pytest.mark.parametrize("value", ["-1", "ten"])
def test_max_reconnects_rejected_at_parse_time(tmp_path, decoder_module, value):
    """Bad --max-reconnects values exit with the config code before anything is built."""
    with pytest.raises(SystemExit) as excinfo:
        runtime.main(
            [
                "--mint", MINT,
                "--decoder", "fake_decoders:FakeDecoder",
                "--trades-dir", str(tmp_path),
                "--max-reconnects", value,
            ]
        )
    assert excinfo.value.code == runtime.EXIT_CONFIG


def test_stats_reads_settings_without_creating_ledger(tmp_path, monkeypatch, capsys):
    """--stats takes TRADES_DIR/STRATEGY_PRESET from settings, needs no endpoint and writes nothing."""
    monkeypatch.setenv("TRADES_DIR", str(tmp_path))
    monkeypatch.setenv("STRATEGY_PRESET", "spike_hunter")
    monkeypatch.setenv("STREAM_ENDPOINT", "")
    assert runtime.main(["--mint", MINT, "--stats"]) == runtime.EXIT_OK
    out = json.loads(capsys.readouterr().out)
    assert out["ledger"] == str(tmp_path / f"trades_{MINT}.json")
    assert out["stats"]["total_trades"] == 0
    assert out["wallet"] == {"balance": 10_000.0, "tokens": 0}
    assert list(tmp_path.iterdir()) == []
