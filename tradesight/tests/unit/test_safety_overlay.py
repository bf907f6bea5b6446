"""
Test suite for the safety overlay and context checks.
"""

from datetime import date

import pytest

from tradesight.risk.safety_overlay import (
    SafetyOverlay,
    check_safety_context,
    get_vix_safety_note,
    is_expiry_day,
)
from tradesight.shared.config.defaults import SafetyConfig
from tradesight.shared.models.verdicts import SafetyContext


def test_wait_passes_unchanged():
    """Test the overlay never turns WAIT into a directional call."""
    outcome = SafetyOverlay().apply("WAIT", "LOW", "Trend weak", SafetyContext(volatility_index=30.0))

    assert outcome.signal == "WAIT"
    assert outcome.confidence == "LOW"
    assert outcome.reason == "Trend weak"
    assert not outcome.blocked
    assert outcome.warnings == ()


def test_clean_context_keeps_signal():
    """Test a clean context only adds the VIX note."""
    outcome = SafetyOverlay().apply("BUY", "HIGH", "Bullish setup", SafetyContext())

    assert outcome.signal == "BUY"
    assert outcome.confidence == "HIGH"
    assert outcome.warnings == ("VIX data unavailable - trade with caution",)
    assert outcome.original_signal is None


def test_extreme_vix_vetoes():
    """Test an extreme volatility index blocks the call."""
    outcome = SafetyOverlay().apply("STRONG_BUY", "VERY_HIGH", "Strong uptrend",
                                    SafetyContext(volatility_index=26.0))

    assert outcome.signal == "WAIT"
    assert outcome.confidence == "BLOCKED"
    assert outcome.blocked_by == ("VIX_EXTREME",)
    assert outcome.reason == "Trade blocked by safety: VIX_EXTREME"
    assert outcome.original_signal == "STRONG_BUY"
    assert "Elevated volatility index (26.0)" in outcome.warnings


def test_elevated_vix_only_warns():
    outcome = SafetyOverlay().apply("SELL", "MEDIUM", "Bearish setup", SafetyContext(volatility_index=21.0))

    assert outcome.signal == "SELL"
    assert "Elevated volatility index (21.0)" in outcome.warnings


def test_expiry_day_blocks_options_only():
    """Test expiry day vetoes OPTIONS and only warns otherwise."""
    overlay = SafetyOverlay()

    options = overlay.apply("BUY", "HIGH", "x", SafetyContext(is_expiry_day=True, trade_type="OPTIONS"))
    assert options.blocked_by == ("EXPIRY_DAY_RISK",)

    intraday = overlay.apply("BUY", "HIGH", "x", SafetyContext(is_expiry_day=True, trade_type="INTRADAY"))
    assert intraday.signal == "BUY"
    assert "Expiry day - mind the theta decay" in intraday.warnings


def test_overtrading():
    """Test the overtrade warning and the hard daily limit."""
    overlay = SafetyOverlay()

    warned = overlay.apply("BUY", "HIGH", "x", SafetyContext(trade_count_today=3))
    assert warned.signal == "BUY"
    assert "Overtrading: 3 trades today" in warned.warnings

    blocked = overlay.apply("BUY", "HIGH", "x", SafetyContext(trade_count_today=10))
    assert blocked.blocked_by == ("OVERTRADE_LIMIT",)


def test_result_day_policy():
    """Test result day warns by default and blocks when configured."""
    context = SafetyContext(is_result_day=True)

    warned = SafetyOverlay().apply("BUY", "HIGH", "x", context)
    assert warned.signal == "BUY"
    assert "Result day - elevated event risk" in warned.warnings

    blocked = SafetyOverlay(SafetyConfig(block_on_result_day=True)).apply("BUY", "HIGH", "x", context)
    assert blocked.blocked_by == ("RESULT_DAY_RISK",)


def test_multiple_vetoes_are_all_reported():
    outcome = SafetyOverlay().apply(
        "SELL", "HIGH", "x", SafetyContext(volatility_index=30.0, panic_active=True)
    )
    assert outcome.blocked_by == ("VIX_EXTREME", "PANIC_MODE")
    assert outcome.reason == "Trade blocked by safety: VIX_EXTREME, PANIC_MODE"


def test_missing_context_defaults_to_clean():
    outcome = SafetyOverlay().apply("BUY", "HIGH", "x")
    assert outcome.signal == "BUY"


@pytest.mark.parametrize("vix, prefix", [
    (None, "VIX data unavailable"),
    (0, "VIX data unavailable"),
    (True, "VIX data unavailable"),
    (12, "✅ LOW VIX (12)"),
    (16, "📊 ELEVATED VIX (16)"),
    (22, "⚡ HIGH VIX (22)"),
    (30, "⚠️ EXTREME VIX (30)"),
])
def test_vix_safety_note(vix, prefix):
    assert get_vix_safety_note(vix).startswith(prefix)


def test_is_expiry_day():
    """Test weekly expiry falls on Thursday."""
    assert is_expiry_day(date(2026, 10, 15))
    assert not is_expiry_day(date(2026, 10, 16))


def test_check_safety_context():
    """Test the pre-trade context summary."""
    assert check_safety_context(SafetyContext()) == {"safe": True, "issues": [], "recommendation": "OK"}

    report = check_safety_context(SafetyContext(is_expiry_day=True, trade_count_today=8, volatility_index=21.0))
    assert not report["safe"]
    assert report["recommendation"] == "CAUTION"
    assert report["issues"] == ["Expiry day - be careful", "High VIX: 21.0", "Near trade limit"]


def test_safety_context_validation():
    with pytest.raises(ValueError, match="Trade count cannot be negative"):
        SafetyContext(trade_count_today=-1)

    context = SafetyContext.from_dict({"is_expiry_day": True, "trade_type": "OPTIONS", "unknown": 1})
    assert context.is_expiry_day
    assert context.trade_type == "OPTIONS"


def test_safety_config_validation():
    with pytest.raises(ValueError, match="Max trades per day must be >= 1"):
        SafetyConfig(max_trades_per_day=0)
    with pytest.raises(ValueError, match="Extreme VIX threshold"):
        SafetyConfig(vix_elevated=30.0, vix_extreme=25.0)
