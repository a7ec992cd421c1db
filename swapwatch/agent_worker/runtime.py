"""
Live paper-trading worker for one tracked mint.

Streams transactions touching the scan address (defaults to the mint),
decodes trades with a pluggable decoder and runs the strategy until
SIGINT/SIGTERM or until the stream client gives up reconnecting.

Usage:
    python -m swapwatch.agent_worker.runtime --mint <MINT> --decoder my_pkg.decoders:PumpSwapDecoder
    python -m swapwatch.agent_worker.runtime --mint <MINT> --stats
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import signal
import sys
from pathlib import Path
from typing import Any, Sequence

from swapwatch.agent_worker.session import TradingSession, wallet_from_ledger
from swapwatch.config import get_settings
from swapwatch.config.env import (
    PUMP_SWAP_PROGRAM_ID,
    load_env,
    masked_endpoint,
    validate_address,
)
from swapwatch.core.exceptions import ConfigError, ReconnectExhausted
from swapwatch.decoding.interface import DecodeOptions, TradeDecoder
from swapwatch.ingestion.stream_client import ReconnectPolicy, StreamClient
from swapwatch.ingestion.subscription import SubscriptionFilter
from swapwatch.ingestion.transport import WebSocketTransport
from swapwatch.ledger.trade_ledger import TradeLedger
from swapwatch.strategy.config import PRESETS, get_preset
from swapwatch.swapwatch_logging import (
    bind_session_context,
    get_logger,
    short_address,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapwatch",
        description="Stream trades for one mint and paper-trade them.",
    )
    parser.add_argument("--mint", required=True, help="Tracked token mint address")
    parser.add_argument("--decoder", help="Trade decoder as module:factory (required unless --stats)")
    parser.add_argument("--scan-address", help="Account to subscribe to (default: the mint)")
    parser.add_argument("--preset", choices=sorted(PRESETS), help="Strategy preset (default: STRATEGY_PRESET or scalper)")
    parser.add_argument("--trades-dir", type=Path, help="Ledger directory (default: TRADES_DIR or cwd)")
    parser.add_argument("--allow-unknown-venue", action="store_true", help="Decode trades on any venue, not only PumpSwap")
    parser.add_argument("--track-liquidity", action="store_true", help="Also decode and log pool liquidity events")
    parser.add_argument(
        "--skip-create-account-with-seed",
        action="store_true",
        help="Skip transactions whose first instruction is CreateAccountWithSeed",
    )
    parser.add_argument("--max-reconnects", type=_non_negative_int, default=10, help="Reconnect budget; 0 disables the limit")
    parser.add_argument("--stats", action="store_true", help="Print ledger statistics and exit")
    return parser


def load_decoder(target: str) -> TradeDecoder:
    """
    Resolve "package.module:attr" to a decoder. `attr` may be a decoder
    instance or a zero-argument factory/class returning one.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"--decoder must look like module:factory, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import decoder module {module_name!r}: {e}") from e
    obj: Any = getattr(module, attr, None)
    if obj is None:
        raise ConfigError(f"Decoder {attr!r} not found in {module_name!r}")
    if isinstance(obj, type) or (callable(obj) and not isinstance(obj, TradeDecoder)):
        obj = obj()
    if not isinstance(obj, TradeDecoder):
        raise ConfigError(f"{target!r} does not provide decode_trades/decode_liquidity")
    return obj


def print_stats(mint: str, trades_dir: Path, preset: str) -> None:
    """Ledger statistics plus the wallet rebuilt from the ledger, as JSON on stdout."""
    ledger = TradeLedger.for_mint(mint, trades_dir, create=False)
    config = get_preset(preset)
    wallet = wallet_from_ledger(ledger.read_all(), config.initial_balance)
    out = {
        "mint": mint,
        "ledger": str(ledger.path),
        "stats": ledger.stats().to_dict(),
        "wallet": {"balance": round(wallet.balance, 2), "tokens": wallet.tokens},
    }
    print(json.dumps(out, indent=2))


def _fatal_alert(exc: ReconnectExhausted) -> None:
    print(f"FATAL: {exc}", file=sys.stderr)


async def run_session(session: TradingSession, client: StreamClient) -> None:
    """Run the client until a shutdown signal or a fatal reconnect failure."""
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    def request_shutdown(sig: str) -> None:
        logger.info("runtime_shutdown_signal", signal=sig)
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # Windows or not in main thread
            pass

    client_task = client.start()
    shutdown_task = asyncio.create_task(shutdown.wait())
    try:
        await asyncio.wait({client_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        shutdown_task.cancel()
        if not client_task.done():
            await client.stop()
        logger.info("runtime_session_summary", mint=short_address(session.mint), **session.summary())
    # re-raise ReconnectExhausted from the supervisor, if any
    if client_task.done() and not client_task.cancelled():
        client_task.result()


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint. Returns a process exit code."""
    args = _build_parser().parse_args(argv)
    load_env()
    try:
        mint = validate_address(args.mint, field_name="mint")
        if not args.stats and not args.decoder:
            raise ConfigError("--decoder is required to run a session")
        settings = get_settings(require_stream=not args.stats)
        trades_dir = args.trades_dir or settings.trades_dir
        preset = args.preset or settings.strategy_preset
        config = get_preset(preset)
        if args.stats:
            print_stats(mint, trades_dir, preset)
            return EXIT_OK
        scan_address = validate_address(args.scan_address or mint, field_name="scan address")
        decoder = load_decoder(args.decoder)
    except ConfigError as e:
        logger.error("runtime_config_invalid", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    endpoint = settings.stream_endpoint

    decode_options = DecodeOptions(
        allowed_program_ids=None if args.allow_unknown_venue else (PUMP_SWAP_PROGRAM_ID,),
        allow_unknown_venue=args.allow_unknown_venue,
    )
    session = TradingSession.create(
        mint,
        decoder,
        trades_dir=trades_dir,
        config=config,
        decode_options=decode_options,
        track_liquidity=args.track_liquidity,
        skip_create_account_with_seed=args.skip_create_account_with_seed,
    )
    client = StreamClient(
        WebSocketTransport(endpoint),
        SubscriptionFilter.for_address(scan_address),
        session.handle,
        policy=ReconnectPolicy(max_attempts=args.max_reconnects or None),
        on_fatal=_fatal_alert,
    )
    bind_session_context(mint=mint, preset=preset)
    logger.info(
        "runtime_started",
        scan_address=short_address(scan_address),
        endpoint=masked_endpoint(endpoint),
        ledger=str(session.ledger.path) if session.ledger else None,
    )
    try:
        asyncio.run(run_session(session, client))
        return EXIT_OK
    except KeyboardInterrupt:
        logger.info("runtime_shutdown_signal", signal="KeyboardInterrupt")
        return EXIT_OK
    except ReconnectExhausted as e:
        logger.critical("runtime_fatal", error=str(e))
        return EXIT_FATAL
    except Exception as e:
        logger.exception("runtime_fatal", error=str(e))
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
