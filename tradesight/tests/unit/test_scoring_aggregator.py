"""
Test suite for the scoring aggregator and its decision ladder.

Snapshot presets live in the market_data fixtures; each preset's
docstring lists the points it is expected to collect.
"""

import pytest

from tradesight.shared.config.scoring_profiles import (
    ScoringThresholds,
    ScoringWeights,
    get_profile,
    list_profiles,
)
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import (
    BEARISH_SIGNALS,
    BULLISH_SIGNALS,
    SIGNAL_TYPES,
    ClassifierVerdict,
    ScoreState,
)
from tradesight.strategy.scanners.base import AuxiliaryScanner, ScannerSuite
from tradesight.strategy.scoring import CORE_DATA_MISSING, WEAK_CONTEXT, ScoringAggregator
from tradesight.tests.fixtures.market_data import (
    choppy_fields,
    generate_random_fields,
    make_snapshot,
    moderate_bull_fields,
    strong_bear_fields,
)


class ActiveScanner(AuxiliaryScanner):
    """Always fires (and confirms)."""

    def scan(self, snapshot, trend):
        return ClassifierVerdict(name=self.name, tag="HIT", active=True, confirmed=True)


def test_strong_buy():
    """Test a clean strong uptrend reaches the STRONG tier on score alone."""
    decision = ScoringAggregator().decide(make_snapshot())

    assert decision.signal == "STRONG_BUY"
    assert decision.confidence == "VERY_HIGH"
    assert decision.score.bullish == 9
    assert decision.score.bearish == 0
    assert decision.reason == "Strong uptrend + breakout + volume (Score: 9)"
    assert decision.regime == "TRENDING_UP"
    assert decision.trend == "UPTREND"


def test_strong_sell_mirror():
    """Test the bearish mirror of the strong uptrend."""
    decision = ScoringAggregator().decide(make_snapshot(base=strong_bear_fields()))

    assert decision.signal == "STRONG_SELL"
    assert decision.score.bearish == 9
    assert decision.score.bullish == 0
    assert decision.reason == "Strong downtrend + breakout + volume (Score: 9)"


def test_standard_buy():
    """Test a moderate setup lands on the standard tier."""
    decision = ScoringAggregator().decide(make_snapshot(base=moderate_bull_fields()))

    assert decision.signal == "BUY"
    assert decision.confidence == "MEDIUM"
    assert decision.score.bullish == 4
    assert decision.reason == "Bullish setup confirmed (Score: 4)"


def test_strict_profile_needs_more_points():
    """Test the strict profile turns the same setup into WAIT."""
    decision = ScoringAggregator(get_profile("strict")).decide(make_snapshot(base=moderate_bull_fields()))

    assert decision.signal == "WAIT"
    assert decision.confidence == "LOW"
    assert decision.reason == "Trend weak or conflicting signals (Bull: 4, Bear: 0)"


def test_hard_breakout_lowers_strong_threshold():
    """Test a same-direction hard breakout makes 6 points STRONG."""
    decision = ScoringAggregator().decide(make_snapshot(base=moderate_bull_fields(), range_high=104.9))

    assert decision.verdicts["breakout"].hard
    assert decision.score.bullish == 6
    assert decision.signal == "STRONG_BUY"
    assert decision.confidence == "VERY_HIGH"


def test_overbought_rsi_blocks_standard_tier():
    """Test an RSI block keeps a sub-STRONG score at WAIT."""
    decision = ScoringAggregator().decide(
        make_snapshot(base=moderate_bull_fields(), rsi=78.0, volume=200000.0)
    )

    assert not decision.verdicts["rsi"].allowed
    assert decision.signal == "WAIT"
    assert decision.reason == "Trend weak or conflicting signals (Bull: 5, Bear: 0)"


def test_core_data_guard():
    """Test missing core fields short-circuit to WAIT with no points."""
    decision = ScoringAggregator().decide(make_snapshot(rsi=None))

    assert decision.signal == "WAIT"
    assert decision.confidence == "NONE"
    assert decision.reason == CORE_DATA_MISSING
    assert decision.score.bullish == 0 and decision.score.bearish == 0

    bare = ScoringAggregator().decide(MarketSnapshot(symbol="EMPTY"))
    assert bare.reason == CORE_DATA_MISSING


def test_weak_context_guard():
    """Test a sideways, quiet, doji bar is WAIT before scoring."""
    decision = ScoringAggregator().decide(make_snapshot(base=choppy_fields()))

    assert decision.signal == "WAIT"
    assert decision.confidence == "LOW"
    assert decision.reason == WEAK_CONTEXT


def test_auxiliary_scanners_add_trend_points():
    """Test injected scanners credit their weight to the trend direction."""
    suite = ScannerSuite(pre_breakout=ActiveScanner(), momentum=ActiveScanner())
    decision = ScoringAggregator(scanners=suite).decide(make_snapshot(base=moderate_bull_fields()))

    # 4 base + pre_breakout 2 + confirmed momentum 3
    assert decision.score.bullish == 9
    assert decision.signal == "STRONG_BUY"
    factors = {f for f, _, _ in decision.score.contributions}
    assert {"pre_breakout", "momentum"} <= factors


def test_failing_scanner_does_not_change_decision():
    """Test a broken scanner degrades to neutral and scores nothing."""

    class Broken(AuxiliaryScanner):
        def scan(self, snapshot, trend):
            raise ValueError("bad history")

    plain = ScoringAggregator().decide(make_snapshot(base=moderate_bull_fields()))
    broken = ScoringAggregator(scanners=ScannerSuite(range_compression=Broken())).decide(
        make_snapshot(base=moderate_bull_fields())
    )

    assert broken.signal == plain.signal
    assert broken.score.bullish == plain.score.bullish
    assert broken.verdicts["range_compression"].tag == "NEUTRAL"


def test_htf_and_institutional_points():
    """Test higher-timeframe and institutional layers add points."""
    raw = dict(moderate_bull_fields(), symbol="SBIN", htf={"15m": "UPTREND", "1h": "UPTREND"},
               pcr=1.5, advanceDeclineRatio=2.5)
    decision = ScoringAggregator().decide(MarketSnapshot.from_raw(raw))

    # 4 base + htf 2 + institutional 2
    assert decision.score.bullish == 8
    assert decision.signal == "STRONG_BUY"


def test_regime_points_only_for_tradeable_regimes():
    """Test only a trending regime credits its own direction."""
    trending = ScoringAggregator().decide(make_snapshot())
    high_risk = ScoringAggregator().decide(make_snapshot(vix=22.0))

    assert ("BULLISH", "regime", 2) in trending.score.contributions
    assert high_risk.regime == "HIGH_RISK"
    assert all(factor != "regime" for _, factor, _ in high_risk.score.contributions)
    assert high_risk.score.bullish == trending.score.bullish - 2

    bearish = ScoringAggregator().decide(make_snapshot(base=strong_bear_fields()))
    assert ("BEARISH", "regime", 2) in bearish.score.contributions


def test_every_verdict_is_reported():
    """Test the decision carries a verdict for every classifier and slot."""
    decision = ScoringAggregator().decide(make_snapshot())
    assert set(decision.verdicts) == {
        "trend", "rsi", "volume", "breakout", "candle", "regime", "htf_alignment",
        "institutional", "pre_breakout", "volume_buildup", "range_compression", "momentum",
    }
    assert len(decision.factors()) == len(decision.verdicts)


@pytest.mark.parametrize("seed", range(25))
def test_decision_invariants_random_snapshots(seed):
    """Test scores stay non-negative and directional calls meet the standard tier."""
    aggregator = ScoringAggregator(scanners=ScannerSuite.default())
    snapshot = make_snapshot(symbol=f"RND{seed}", base=generate_random_fields(seed))

    first = aggregator.decide(snapshot)
    second = aggregator.decide(snapshot)

    assert first.signal in SIGNAL_TYPES
    assert first.score.bullish >= 0 and first.score.bearish >= 0
    assert (first.signal, first.score.bullish, first.score.bearish) == \
        (second.signal, second.score.bullish, second.score.bearish)
    if first.signal in BULLISH_SIGNALS:
        assert first.score.bullish >= 3
    if first.signal in BEARISH_SIGNALS:
        assert first.score.bearish >= 3


def test_score_state_rejects_negative_points():
    state = ScoreState()
    with pytest.raises(ValueError, match="cannot be negative"):
        state.add("BULLISH", "trend", -1)
    with pytest.raises(ValueError, match="Unknown score direction"):
        state.add("SIDEWAYS", "trend", 1)

    state.add("BEARISH", "volume", 0)
    assert state.contributions == []


def test_profile_validation():
    """Test profile lookups and threshold ordering."""
    assert get_profile("STRICT").thresholds.standard_score == 5
    assert {p["name"] for p in list_profiles()} == {"default", "strict"}

    with pytest.raises(ValueError, match="Unknown scoring profile"):
        get_profile("aggressive")
    with pytest.raises(ValueError, match="soft <= hard <= strong_score"):
        ScoringThresholds(strong_with_hard_breakout=9)
    with pytest.raises(ValueError, match="cannot be negative"):
        ScoringWeights(regime_match=-2)
