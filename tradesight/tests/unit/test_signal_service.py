"""
Test suite for the per-instrument evaluation pipeline and the screens.
"""

import pytest
from loguru import logger

from tradesight.services.screener import build_screen1, build_screen2, count_results
from tradesight.services.signal_service import (
    SignalService,
    configure_signal_service,
    get_signal_service,
)
from tradesight.shared.config.defaults import RiskRewardConfig
from tradesight.shared.models.scan import ExplosionDetection
from tradesight.shared.models.verdicts import SafetyContext, SignalVerdict
from tradesight.shared.utils.error_policy import (
    IncompleteVerdictError,
    InvalidSnapshotError,
    enforce_complete_verdict,
)
from tradesight.strategy.scanners.base import ScannerSuite
from tradesight.tests.fixtures.market_data import (
    choppy_fields,
    make_quote,
    make_snapshot,
    moderate_bull_fields,
    strong_bear_fields,
    strong_bull_fields,
)


@pytest.fixture
def plain_service():
    """Service without auxiliary scanners."""
    return SignalService(scanners=ScannerSuite.disabled())


def test_strong_call_carries_risk_reward(plain_service):
    """Test a STRONG call keeps its tier and gets ATR levels attached."""
    verdict = plain_service.evaluate(make_snapshot(symbol="RELIANCE", atr=1.0))

    assert verdict.symbol == "RELIANCE"
    assert verdict.signal == "STRONG_BUY"
    assert verdict.confidence == "VERY_HIGH"
    assert verdict.bullish_score == 9
    assert verdict.regime == "TRENDING_UP"
    assert verdict.risk_reward.ratio == 2.0
    assert verdict.risk_reward.target == 107.0
    assert verdict.original_signal is None
    assert verdict.actionable
    assert verdict.direction == "BULLISH"


def test_gate_upgrade_records_original_signal(plain_service):
    """Test a standard BUY with a 2:1 ATR plan is upgraded."""
    verdict = plain_service.evaluate(make_snapshot(base=moderate_bull_fields(), atr=0.5))

    assert verdict.signal == "STRONG_BUY"
    assert verdict.confidence == "VERY_HIGH"
    assert verdict.original_signal == "BUY"
    assert verdict.reason == "Bullish setup confirmed (Score: 4) | R:R 2.0 (EXCELLENT)"


def test_no_atr_skips_the_gate(plain_service):
    verdict = plain_service.evaluate(make_snapshot(base=moderate_bull_fields()))

    assert verdict.signal == "BUY"
    assert verdict.confidence == "MEDIUM"
    assert verdict.risk_reward is None


def test_safety_veto_is_final(plain_service):
    """Test the overlay veto wins over a STRONG call."""
    verdict = plain_service.evaluate(make_snapshot(atr=1.0), SafetyContext(volatility_index=26.0))

    assert verdict.signal == "WAIT"
    assert verdict.confidence == "BLOCKED"
    assert verdict.blocked
    assert verdict.blocked_by == ("VIX_EXTREME",)
    assert verdict.original_signal == "STRONG_BUY"
    assert verdict.reason == "Trade blocked by safety: VIX_EXTREME"
    assert not verdict.actionable


def test_rejections_are_logged_at_debug():
    """Test gate and veto rejections go to the DEBUG level."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        tight = SignalService(scanners=ScannerSuite.disabled(),
                              rr_config=RiskRewardConfig(target_atr_multiple=1.0, stop_atr_multiple=1.0))
        gated = tight.evaluate(make_snapshot(symbol="GATED", base=moderate_bull_fields(), atr=0.5))
        vetoed = SignalService(scanners=ScannerSuite.disabled()).evaluate(
            make_snapshot(symbol="VETOED", atr=1.0), SafetyContext(volatility_index=26.0)
        )
    finally:
        logger.remove(handler_id)

    assert gated.signal == "WAIT"
    assert vetoed.signal == "WAIT"
    rejections = [r for r in records if r["message"].startswith("🚫 REJECTED")]
    assert {r["message"] for r in rejections} == {
        "🚫 REJECTED: GATED at RISK_REWARD",
        "🚫 REJECTED: VETOED at SAFETY",
    }
    assert all(r["level"].name == "DEBUG" for r in rejections)


def test_wait_never_becomes_directional(plain_service):
    """Test a guarded WAIT survives both gates unchanged."""
    verdict = plain_service.evaluate(make_snapshot(base=choppy_fields(), atr=1.0), SafetyContext(panic_active=True))

    assert verdict.signal == "WAIT"
    assert verdict.confidence == "LOW"
    assert verdict.blocked_by == ()
    assert verdict.risk_reward is None


def test_default_scanners_add_momentum(plain_service):
    """Test the default suite adds confirmed momentum to the score."""
    verdict = SignalService().evaluate(make_snapshot())
    assert verdict.bullish_score == plain_service.evaluate(make_snapshot()).bullish_score + 3


def test_evaluate_raw_quote():
    """Test a raw upstream mapping is normalized before evaluation."""
    quote = make_quote(strong_bear_fields(), symbol="TATASTEEL", rsi=[45.0, 42.0, 40.0])
    verdict = SignalService(scanners=ScannerSuite.disabled()).evaluate(quote)

    assert verdict.symbol == "TATASTEEL"
    assert verdict.signal == "STRONG_SELL"

    with pytest.raises(InvalidSnapshotError):
        SignalService().evaluate(make_quote(strong_bull_fields()))


def test_verdict_serialization(plain_service):
    verdict = plain_service.evaluate(make_snapshot(atr=1.0))
    data = verdict.to_dict()

    assert data["signal"] == "STRONG_BUY"
    assert data["scores"] == {"bullish": 9, "bearish": 0}
    assert data["risk_reward"]["grade"] == "EXCELLENT"
    assert data["factors"]["trend"]["tag"] == "UPTREND"
    assert "timestamp" in data


def test_evaluate_many_keeps_input_order(plain_service):
    snapshots = [
        make_snapshot(symbol="C", base=choppy_fields()),
        make_snapshot(symbol="A"),
        make_snapshot(symbol="B", base=strong_bear_fields()),
    ]
    results = plain_service.evaluate_many(snapshots, max_workers=3)

    assert list(results) == ["C", "A", "B"]
    assert [v.signal for v in results.values()] == ["WAIT", "STRONG_BUY", "STRONG_SELL"]
    assert plain_service.actionable(results.values())[0].symbol == "A"
    assert plain_service.evaluate_many([]) == {}


def test_service_singleton():
    service = configure_signal_service(profile="strict")
    assert get_signal_service() is service
    assert service.profile.name == "strict"


def test_enforce_complete_verdict():
    """Test the output contract rejects inconsistent verdicts."""
    with pytest.raises(IncompleteVerdictError, match="is None"):
        enforce_complete_verdict(None)
    with pytest.raises(IncompleteVerdictError, match="reason cannot be empty"):
        enforce_complete_verdict(SignalVerdict(symbol="X", signal="BUY", confidence="HIGH", reason=""))
    with pytest.raises(IncompleteVerdictError, match="vetoed verdict must be WAIT"):
        enforce_complete_verdict(SignalVerdict(
            symbol="X", signal="BUY", confidence="HIGH", reason="x", blocked_by=("PANIC_MODE",)
        ))
    with pytest.raises(ValueError, match="Unknown signal type"):
        SignalVerdict(symbol="X", signal="HOLD", confidence="LOW", reason="x")


# ---------------------------------------------------------------------------
# Screens
# ---------------------------------------------------------------------------

def _verdict(symbol, signal, confidence):
    return SignalVerdict(symbol=symbol, signal=signal, confidence=confidence, reason="test")


def _explosion(symbol, kind, score):
    return ExplosionDetection(symbol=symbol, type=kind, direction="BULLISH", score=score, confidence="HIGH")


def test_screen1_orders_by_confidence():
    verdicts = [
        _verdict("MED", "BUY", "MEDIUM"),
        _verdict("WAITER", "WAIT", "LOW"),
        _verdict("TOP", "STRONG_SELL", "VERY_HIGH"),
        _verdict("MED2", "SELL", "MEDIUM"),
    ]
    assert [v.symbol for v in build_screen1(verdicts)] == ["TOP", "MED", "MED2"]


def test_screen2_orders_by_score():
    explosions = [_explosion("A", "SWING_CONTINUATION", 3), _explosion("B", "EARLY_EXPANSION", 5)]
    assert [e.symbol for e in build_screen2(explosions)] == ["B", "A"]


def test_count_results():
    verdicts = [_verdict("A", "BUY", "HIGH"), _verdict("B", "WAIT", "LOW"), _verdict("C", "BUY", "MEDIUM")]
    counts = count_results(verdicts, [_explosion("A", "EARLY_EXPANSION", 5)])

    assert counts["BUY"] == 2
    assert counts["WAIT"] == 1
    assert counts["STRONG_SELL"] == 0
    assert counts["actionable"] == 2
    assert counts["EARLY_EXPANSION"] == 1
    assert counts["EXPLOSIVE_RUNNER"] == 0
    assert counts["explosions"] == 1
