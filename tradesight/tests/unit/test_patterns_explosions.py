"""
Test suite for quote metrics, pattern tagging, ranking and explosion detection.
"""

import pytest

from tradesight.analysis.explosions import (
    EARLY_EXPANSION,
    EXPLOSIVE_RUNNER,
    HIGH_MOMENTUM_RUNNER,
    MOMENTUM_BUILDING,
    SWING_CONTINUATION,
    DailyContext,
    detect_early_expansion,
    detect_explosions,
    detect_momentum_runner,
    detect_swing_continuation,
    explosion_to_signal,
)
from tradesight.analysis.patterns import (
    compute_metrics,
    detect_patterns,
    get_top_candidates,
    rank_patterns,
    scan_instrument,
)
from tradesight.shared.config.defaults import ScannerConfig
from tradesight.shared.models.scan import ExplosionDetection, InstrumentMetrics
from tradesight.shared.models.snapshot import MarketSnapshot


def quote_snapshot(symbol: str = "TEST", **overrides) -> MarketSnapshot:
    fields = dict(
        open=100.5, high=106.0, low=100.0, close=105.0, prev_close=100.0,
        vwap=104.0, buy_qty=600.0, sell_qty=400.0, volume=300000.0, avg_volume=100000.0,
    )
    fields.update(overrides)
    return MarketSnapshot(symbol=symbol, **fields)


def expansion_snapshot(**overrides) -> MarketSnapshot:
    fields = dict(
        open=100.5, high=104.2, low=100.2, close=104.0, prev_close=100.0,
        volume=250000.0, avg_volume=100000.0, atr=2.0, ema20=102.0, ema50=100.0,
    )
    fields.update(overrides)
    return MarketSnapshot(symbol="EXP", **fields)


def test_compute_metrics():
    """Test quote-derived metrics."""
    m = compute_metrics(quote_snapshot())

    assert m.change_percent == 5.0
    assert m.range == 6.0
    assert m.range_percent == 6.0
    assert m.position_in_range == 0.83
    assert m.vwap_deviation == 0.96
    assert m.buying_pressure == 0.6
    assert m.volume_ratio == 3.0
    assert m.is_above_vwap
    assert m.is_bullish_candle
    assert m.body_percent == 75.0


def test_compute_metrics_defaults():
    """Test missing inputs fall back to neutral values."""
    m = compute_metrics(MarketSnapshot(symbol="EMPTY"))
    assert m == InstrumentMetrics()


def test_detect_patterns():
    """Test structural tags from one quote."""
    tags = detect_patterns(compute_metrics(quote_snapshot()))

    assert tags.volume_spike
    assert tags.range_expansion
    assert tags.strong_momentum
    assert not tags.breakout
    assert not tags.pre_breakout
    assert not tags.vwap_bounce
    assert not tags.compression
    assert set(tags.active()) == {"volume_spike", "range_expansion", "strong_momentum"}


def test_breakout_and_pre_breakout_positions():
    """Test breakout (>= 0.95, bullish) and pre-breakout [0.85, 0.95) bands."""
    breakout = scan_instrument(quote_snapshot(close=105.9, open=101.0))
    assert breakout.patterns.breakout
    assert not breakout.patterns.pre_breakout

    pre = scan_instrument(quote_snapshot(close=105.2))
    assert pre.metrics.position_in_range == 0.87
    assert pre.patterns.pre_breakout
    assert not pre.patterns.breakout


def test_compression_and_vwap_bounce():
    tags = detect_patterns(InstrumentMetrics(
        range_percent=0.8, volume_ratio=1.3, is_above_vwap=True, vwap_deviation=0.2,
    ))
    assert tags.compression
    assert tags.vwap_bounce


def test_rank_patterns_orders_and_truncates():
    """Test buckets rank by their own metric and respect the top-N."""
    entries = [
        scan_instrument(quote_snapshot("UP3", close=103.0, high=103.5, volume=120000.0)),
        scan_instrument(quote_snapshot("DN5", close=95.0, low=94.0, volume=400000.0)),
        scan_instrument(quote_snapshot("FLAT", close=100.5, volume=90000.0)),
    ]
    buckets = rank_patterns(entries)

    assert [e.symbol for e in buckets.top_movers] == ["DN5", "UP3"]
    assert [e.symbol for e in buckets.volume_spikes] == ["DN5"]

    limited = rank_patterns(entries, ScannerConfig(top_movers_limit=1))
    assert [e.symbol for e in limited.top_movers] == ["DN5"]


def test_rank_patterns_ties_keep_input_order():
    entries = [scan_instrument(quote_snapshot(s)) for s in ("AAA", "BBB", "CCC")]
    buckets = rank_patterns(entries)
    assert [e.symbol for e in buckets.top_movers] == ["AAA", "BBB", "CCC"]


def test_get_top_candidates_deduplicates():
    """Test each symbol appears once with its first bucket's reason."""
    entries = [
        scan_instrument(quote_snapshot("MOVER")),
        scan_instrument(quote_snapshot("SPIKE", close=100.5, prev_close=100.4, volume=250000.0)),
    ]
    candidates = get_top_candidates(rank_patterns(entries))

    assert [c["symbol"] for c in candidates] == ["MOVER", "SPIKE"]
    assert candidates[0]["reason"] == "Mover: 5.0%"
    assert candidates[1]["reason"] == "Volume: 2.5x"
    assert get_top_candidates(rank_patterns(entries), limit=1)[0]["symbol"] == "MOVER"


# ---------------------------------------------------------------------------
# Explosions
# ---------------------------------------------------------------------------

def test_early_expansion_all_conditions():
    """Test all five expansion conditions give a HIGH detection."""
    detection = detect_early_expansion(expansion_snapshot())

    assert detection.type == EARLY_EXPANSION
    assert detection.direction == "BULLISH"
    assert detection.score == 5
    assert detection.confidence == "HIGH"


def test_early_expansion_thresholds():
    """Test four conditions are MEDIUM and three are nothing."""
    medium = detect_early_expansion(expansion_snapshot(ema20=None))
    assert medium.score == 4
    assert medium.confidence == "MEDIUM"

    assert detect_early_expansion(expansion_snapshot(ema20=None, volume=100000.0)) is None
    assert detect_early_expansion(expansion_snapshot(atr=None)) is None


@pytest.mark.parametrize("close, volume, kind, stage", [
    (109.0, 350000.0, MOMENTUM_BUILDING, 1),
    (116.0, 100000.0, HIGH_MOMENTUM_RUNNER, 2),
    (78.0, 100000.0, EXPLOSIVE_RUNNER, 3),
])
def test_momentum_runner_stages(close, volume, kind, stage):
    detection = detect_momentum_runner(MarketSnapshot(
        symbol="RUN", close=close, prev_close=100.0, volume=volume, avg_volume=100000.0,
    ))
    assert detection.type == kind
    assert detection.stage == stage
    assert detection.score == stage


def test_momentum_runner_needs_volume_at_stage_one():
    snapshot = MarketSnapshot(symbol="RUN", close=109.0, prev_close=100.0, volume=200000.0, avg_volume=100000.0)
    assert detect_momentum_runner(snapshot) is None
    assert detect_momentum_runner(MarketSnapshot(symbol="RUN", close=105.0, prev_close=100.0,
                                                 volume=500000.0, avg_volume=100000.0)) is None


def test_swing_continuation():
    """Test daily context detection and parsing."""
    daily = DailyContext.from_raw({
        "dailyClose": 110.0, "weeklyLevel": 105.0, "dailyEma20": 106.0, "dailyEma50": 100.0,
        "dailyVolume": 2_000_000, "dailyAvgVolume": 1_000_000, "dailyRsi": 62.0,
    })
    detection = detect_swing_continuation("SWING", daily)

    assert detection.type == SWING_CONTINUATION
    assert detection.direction == "BULLISH"
    assert detection.score == 5
    assert detection.confidence == "HIGH"

    assert DailyContext.from_raw({"weeklyLevel": 105.0}) is None
    assert detect_swing_continuation("SWING", None) is None


def test_detect_explosions_collects_each_type():
    daily = DailyContext(close=90.0, weekly_level=95.0, ema20=94.0, ema50=100.0, rsi=40.0)
    found = detect_explosions(expansion_snapshot(), daily)

    assert [d.type for d in found] == [EARLY_EXPANSION, SWING_CONTINUATION]
    assert found[1].direction == "BEARISH"


def test_explosion_to_signal():
    def make(kind, direction):
        return ExplosionDetection(symbol="X", type=kind, direction=direction, score=1, confidence="MEDIUM")

    assert explosion_to_signal(make(EARLY_EXPANSION, "BULLISH")) == "STRONG_BUY"
    assert explosion_to_signal(make(EXPLOSIVE_RUNNER, "BEARISH")) == "STRONG_SELL"
    assert explosion_to_signal(make(MOMENTUM_BUILDING, "BEARISH")) == "SELL"
    assert explosion_to_signal(make(SWING_CONTINUATION, "BULLISH")) == "BUY"
    assert explosion_to_signal(None) is None
