"""
Append-only paper-trade ledger: one JSON array file per tracked mint.

Each append reads the whole array, adds one entry with a derived ISO-8601
`dateTime`, and rewrites the file through a temp file + fsync + rename so a
crash never leaves a truncated array. Single writer only: the owning
StrategyEngine is the sole caller of append().
"""

from __future__ import annotations

import json
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from swapwatch.core.exceptions import LedgerReadError, LedgerWriteError
from swapwatch.decoding.interface import Side
from swapwatch.swapwatch_logging import get_logger

logger = get_logger(__name__)

LEDGER_FILE_TEMPLATE = "trades_{mint}.json"


@dataclass(frozen=True)
class TradeLogEntry:
    """One executed paper trade. profit_loss (percent) and hold_time only on SELL."""

    timestamp: float
    type: Side
    price: float
    amount: float
    total: float
    profit_loss: float | None = None
    hold_time: float | None = None

    @property
    def date_time(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp, tz=timezone.utc)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "price": self.price,
            "amount": self.amount,
            "total": self.total,
        }
        if self.profit_loss is not None:
            out["profitLoss"] = self.profit_loss
        if self.hold_time is not None:
            out["holdTime"] = self.hold_time
        out["dateTime"] = self.date_time
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TradeLogEntry":
        return cls(
            timestamp=data["timestamp"],
            type=Side(data["type"]),
            price=data["price"],
            amount=data["amount"],
            total=data["total"],
            profit_loss=data.get("profitLoss"),
            hold_time=data.get("holdTime"),
        )


@dataclass(frozen=True)
class LedgerStats:
    total_trades: int
    profitable_trades: int
    closed_trades: int
    win_rate: float
    """Percent of SELL entries with positive profit/loss."""
    average_profit: float
    max_profit: float
    max_loss: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_trades": self.total_trades,
            "profitable_trades": self.profitable_trades,
            "closed_trades": self.closed_trades,
            "win_rate": round(self.win_rate, 2),
            "average_profit": round(self.average_profit, 2),
            "max_profit": round(self.max_profit, 2),
            "max_loss": round(self.max_loss, 2),
        }


def ledger_path_for(mint: str, directory: str | Path) -> Path:
    return Path(directory) / LEDGER_FILE_TEMPLATE.format(mint=mint)


def _atomic_write_json(path: Path, payload: Any) -> None:
    """Write JSON to a sibling temp file, fsync, then rename over path."""
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    except OSError as e:
        raise LedgerWriteError(f"Could not create temp file for {path}: {e}") from e
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise LedgerWriteError(f"Could not write ledger {path}: {e}") from e


class TradeLedger:
    """Persisted trade log for one mint."""

    def __init__(self, path: str | Path, *, create: bool = True) -> None:
        self.path = Path(path)
        if create:
            self._initialize()

    @classmethod
    def for_mint(cls, mint: str, directory: str | Path, *, create: bool = True) -> "TradeLedger":
        return cls(ledger_path_for(mint, directory), create=create)

    def _initialize(self) -> None:
        """Create the file with an empty array when missing."""
        if self.path.exists():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write_json(self.path, [])
        except (OSError, LedgerWriteError) as e:
            logger.warning("ledger_init_failed", path=str(self.path), error=str(e))

    def _load(self) -> list[Any]:
        """Raw array from disk. Only a missing file counts as an empty ledger."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise LedgerReadError(f"Could not read ledger {self.path}: {e}") from e
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LedgerReadError(f"Ledger {self.path} is not valid JSON: {e}", corrupt=True) from e
        if not isinstance(data, list):
            raise LedgerReadError(f"Ledger {self.path} is not a JSON array", corrupt=True)
        return data

    def _quarantine(self) -> Path | None:
        """Move an unparseable ledger aside so its bytes survive the next write."""
        target = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time())}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            logger.error("ledger_quarantine_failed", path=str(self.path), error=str(e))
            return None
        logger.warning("ledger_quarantined", path=str(self.path), moved_to=str(target))
        return target

    def read_all(self) -> list[TradeLogEntry]:
        try:
            raw = self._load()
        except LedgerReadError as e:
            logger.error("ledger_read_failed", path=str(self.path), error=str(e))
            return []
        entries: list[TradeLogEntry] = []
        for item in raw:
            try:
                entries.append(TradeLogEntry.from_dict(item))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning("ledger_entry_skipped", path=str(self.path), error=str(e))
        return entries

    def append(self, entry: TradeLogEntry) -> bool:
        """
        Append one entry. Returns False (after logging) when the entry could
        not be persisted; existing entries are never dropped to make room for
        it. An unreadable file is left untouched; an unparseable one is moved
        aside to `<name>.corrupt-<unix ts>` and a fresh array is started.
        """
        try:
            records = self._load()
        except LedgerReadError as e:
            if not e.corrupt or self._quarantine() is None:
                logger.error(
                    "ledger_write_failed",
                    path=str(self.path),
                    side=entry.type.value,
                    timestamp=entry.timestamp,
                    error=str(e),
                )
                return False
            records = []
        records.append(entry.to_dict())
        try:
            _atomic_write_json(self.path, records)
        except LedgerWriteError as e:
            logger.error(
                "ledger_write_failed",
                path=str(self.path),
                side=entry.type.value,
                timestamp=entry.timestamp,
                error=str(e),
            )
            return False
        logger.debug(
            "ledger_appended",
            ledger=self.path.name,
            side=entry.type.value,
            count=len(records),
        )
        return True

    def stats(self) -> LedgerStats:
        """Win rate and profit figures over SELL entries."""
        entries = self.read_all()
        profits = [e.profit_loss for e in entries if e.type is Side.SELL and e.profit_loss is not None]
        profitable = sum(1 for p in profits if p > 0)
        return LedgerStats(
            total_trades=len(entries),
            profitable_trades=profitable,
            closed_trades=len(profits),
            win_rate=(profitable / len(profits) * 100) if profits else 0.0,
            average_profit=(sum(profits) / len(profits)) if profits else 0.0,
            max_profit=max(profits + [0.0]),
            max_loss=min(profits + [0.0]),
        )
