"""
Test that swapwatch_logging can be imported without circular import and logger works.
"""

from __future__ import annotations

from swapwatch.utils.formatting import format_market_cap, format_price, format_volume


def test_logging_import():
    """Import get_logger from swapwatch_logging and use the logger."""
    from swapwatch.swapwatch_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_every_module_imports():
    """Each module builds its module-level logger at import time."""
    import importlib
    import pkgutil

    import swapwatch

    for info in pkgutil.walk_packages(swapwatch.__path__, prefix="swapwatch."):
        module = importlib.import_module(info.name)
        if hasattr(module, "logger"):
            module.logger.debug("module_import_checked", module=info.name)


def test_short_address():
    from swapwatch.swapwatch_logging import short_address

    assert short_address("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka") == "9QCfNuQuxct1Xk9y..."
    assert short_address("abc") == "abc"
    assert short_address(None) == ""


def test_human_formatting():
    assert format_price(0.26) == "$0.260000000"
    assert format_price(1.3e-16) == "$1.30000000e-16"
    assert format_volume(260) == "$260.00"
    assert format_volume(13_110) == "$13.11K"
    assert format_market_cap(2.6e8) == "$260.00M"
    assert format_market_cap(1.5e9) == "$1.50B"
    assert format_market_cap(12_000) == "$12.00K"


def test_session_context_is_merged_into_records():
    """Bound session fields appear on every record; addresses are shortened."""
    import io
    import json

    from conftest import MINT
    from swapwatch.swapwatch_logging import (
        bind_session_context,
        clear_session_context,
        configure_structlog,
        get_logger,
    )

    stream = io.StringIO()
    configure_structlog(fmt="json", stream=stream)
    try:
        bind_session_context(mint=MINT, preset="scalper")
        get_logger("session_context_test").info("paper_buy_executed", amount=1000)
        record = json.loads(stream.getvalue().splitlines()[-1])
        assert record["event_type"] == "paper_buy_executed"
        assert record["logger"] == "session_context_test"
        assert record["mint"] == MINT[:16] + "..."
        assert record["preset"] == "scalper"
        assert record["amount"] == 1000
        assert record["level"] == "info"
        assert "timestamp" in record
    finally:
        clear_session_context()
        configure_structlog()
