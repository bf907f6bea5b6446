"""
Quote-derived metrics, structural pattern tags and relevance ranking.

Runs independently of the signal pipeline: every liquidity-filtered
instrument of a scan cycle gets metrics and tags, then each pattern
bucket is ranked by its own relevance metric and truncated to a top-N.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from tradesight.shared.config.defaults import DEFAULT_SCANNER_CONFIG, ScannerConfig
from tradesight.shared.models.scan import (
    InstrumentMetrics,
    PatternBuckets,
    PatternTags,
    ScannedInstrument,
)
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.utils.logging_utils import log_pattern_summary


def _pct(numerator: float, denominator: Optional[float]) -> float:
    return numerator / denominator * 100 if denominator else 0.0


def compute_metrics(snapshot: MarketSnapshot) -> InstrumentMetrics:
    """
    Derive change %, range %, position-in-range, VWAP deviation, buying
    pressure, volume ratio and candle shape from one quote.

    Missing inputs fall back to neutral values (0 change, mid-range
    position, balanced pressure, 1.0 volume ratio).
    """
    s = snapshot
    close = s.close or 0.0
    high = s.high if s.high is not None else close
    low = s.low if s.low is not None else close
    open_ = s.open if s.open is not None else close

    change = _pct(close - s.prev_close, s.prev_close) if s.prev_close else 0.0
    bar_range = high - low
    range_pct = _pct(bar_range, low) if low > 0 else 0.0
    position = (close - low) / bar_range if bar_range > 0 else 0.5
    vwap_dev = _pct(close - s.vwap, s.vwap) if s.vwap else 0.0

    buy, sell = s.buy_qty or 0.0, s.sell_qty or 0.0
    pressure = buy / (buy + sell) if buy + sell > 0 else 0.5

    volume_ratio = s.volume / s.avg_volume if s.volume is not None and s.avg_volume else 1.0
    body_pct = abs(close - open_) / bar_range * 100 if bar_range > 0 else 0.0

    return InstrumentMetrics(
        change_percent=round(change, 2),
        range=round(bar_range, 2),
        range_percent=round(range_pct, 2),
        position_in_range=round(position, 2),
        vwap_deviation=round(vwap_dev, 2),
        buying_pressure=round(pressure, 2),
        volume_ratio=round(volume_ratio, 2),
        is_above_vwap=bool(s.vwap) and close > s.vwap,
        is_bullish_candle=close > open_,
        body_percent=round(body_pct, 2),
    )


def detect_patterns(metrics: InstrumentMetrics, config: ScannerConfig = DEFAULT_SCANNER_CONFIG) -> PatternTags:
    m, c = metrics, config
    return PatternTags(
        volume_spike=m.volume_ratio >= c.volume_spike_ratio,
        breakout=m.position_in_range >= c.breakout_position and m.is_bullish_candle,
        pre_breakout=c.pre_breakout_position <= m.position_in_range < c.breakout_position,
        range_expansion=m.range_percent > c.range_expansion_pct,
        vwap_bounce=m.is_above_vwap and abs(m.vwap_deviation) < c.vwap_bounce_max_deviation,
        strong_momentum=(
            abs(m.change_percent) > c.strong_momentum_change_pct
            and m.volume_ratio > c.strong_momentum_volume_ratio
        ),
        compression=m.range_percent < c.compression_range_pct and m.volume_ratio > c.compression_volume_ratio,
    )


def scan_instrument(snapshot: MarketSnapshot, config: ScannerConfig = DEFAULT_SCANNER_CONFIG) -> ScannedInstrument:
    metrics = compute_metrics(snapshot)
    return ScannedInstrument(
        symbol=snapshot.symbol,
        close=snapshot.close,
        volume=snapshot.volume,
        metrics=metrics,
        patterns=detect_patterns(metrics, config),
    )


def _top(entries: Iterable[ScannedInstrument], key, limit: int) -> tuple:
    # sorted() is stable: ties keep watch-list order
    return tuple(sorted(entries, key=key, reverse=True)[:limit])


def rank_patterns(
    entries: Sequence[ScannedInstrument],
    config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
) -> PatternBuckets:
    """
    Rank and truncate each pattern bucket by its relevance metric.

    Buckets:
        top_movers: |change%| > 1, by |change%|
        volume_spikes: by volume ratio
        breakouts: by volume ratio
        pre_breakouts: by position in range
        range_expansions: by range %
        vwap_deviations: |deviation| > 1, by |deviation|
    """
    c = config
    buckets = PatternBuckets(
        top_movers=_top(
            (e for e in entries if abs(e.metrics.change_percent) > c.top_movers_min_change_pct),
            lambda e: abs(e.metrics.change_percent),
            c.top_movers_limit,
        ),
        volume_spikes=_top(
            (e for e in entries if e.patterns.volume_spike),
            lambda e: e.metrics.volume_ratio,
            c.volume_spikes_limit,
        ),
        breakouts=_top(
            (e for e in entries if e.patterns.breakout),
            lambda e: e.metrics.volume_ratio,
            c.breakouts_limit,
        ),
        pre_breakouts=_top(
            (e for e in entries if e.patterns.pre_breakout),
            lambda e: e.metrics.position_in_range,
            c.pre_breakouts_limit,
        ),
        range_expansions=_top(
            (e for e in entries if e.patterns.range_expansion),
            lambda e: e.metrics.range_percent,
            c.range_expansions_limit,
        ),
        vwap_deviations=_top(
            (e for e in entries if abs(e.metrics.vwap_deviation) > c.vwap_deviation_min_pct),
            lambda e: abs(e.metrics.vwap_deviation),
            c.vwap_deviations_limit,
        ),
    )
    log_pattern_summary({name: len(getattr(buckets, name)) for name in (
        "top_movers", "volume_spikes", "breakouts", "pre_breakouts", "range_expansions", "vwap_deviations"
    )})
    return buckets


def get_top_candidates(buckets: PatternBuckets, limit: int = 30) -> List[Dict[str, Any]]:
    """
    Merge the headline buckets into one candidate list.

    Order: top movers, then volume spikes, then breakouts; each symbol
    appears once with the reason of the first bucket that listed it.
    """
    seen = set()
    candidates: List[Dict[str, Any]] = []

    def _add(entry: ScannedInstrument, reason: str) -> None:
        if entry.symbol in seen:
            return
        seen.add(entry.symbol)
        candidates.append({
            "symbol": entry.symbol,
            "close": entry.close,
            "change_percent": entry.metrics.change_percent,
            "volume_ratio": entry.metrics.volume_ratio,
            "reason": reason,
        })

    for e in buckets.top_movers:
        _add(e, f"Mover: {e.metrics.change_percent}%")
    for e in buckets.volume_spikes:
        _add(e, f"Volume: {e.metrics.volume_ratio}x")
    for e in buckets.breakouts:
        _add(e, "Breakout")

    return candidates[:limit]
