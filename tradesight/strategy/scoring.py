"""
Scoring aggregator.

Combines the classifier verdicts into two competing scores (bullish and
bearish) using the weights of the active ScoringProfile, then walks the
decision ladder to pick a pre-gate signal. Two guards run before any
points are awarded:

1. Core data guard: missing close/EMA20/EMA50/RSI -> WAIT (confidence NONE)
2. Weak context guard: SIDEWAYS trend, unconfirmed volume, no hard
   breakout and a WEAK candle -> WAIT (confidence LOW)

The aggregator never looks at risk/reward or safety context; those gates
run afterwards in the signal service.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import logging

from tradesight.analysis.classifiers import (
    SIDEWAYS,
    check_htf_alignment,
    check_institutional,
    check_rsi,
    check_volume,
    classify_candle,
    classify_trend,
    detect_breakout,
    trend_direction,
)
from tradesight.analysis.regime_detector import detect_market_regime, is_regime_tradeable
from tradesight.shared.config.scoring_profiles import ScoringProfile, get_profile
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import (
    BUY,
    SELL,
    STRONG_BUY,
    STRONG_SELL,
    WAIT,
    ClassifierVerdict,
    ScoreState,
)
from tradesight.strategy.scanners.base import ScannerSuite

logger = logging.getLogger(__name__)

CORE_DATA_MISSING = "Core market data missing"
WEAK_CONTEXT = "No trend, no volume, no breakout - market undecided"

# Auxiliary scanner slot -> weight attribute
AUXILIARY_WEIGHTS = (
    ("pre_breakout", "pre_breakout"),
    ("volume_buildup", "volume_buildup"),
    ("range_compression", "range_compression"),
)


@dataclass
class Decision:
    """
    Pre-gate decision of the aggregator.

    Attributes:
        symbol: Instrument symbol
        signal: WAIT / BUY / SELL / STRONG_BUY / STRONG_SELL
        confidence: VERY_HIGH / HIGH / MEDIUM / LOW / NONE
        reason: Human-readable decision reason
        score: Accumulated bullish/bearish points
        trend: Trend tag
        verdicts: Classifier verdicts keyed by classifier name
    """
    symbol: str
    signal: str
    confidence: str
    reason: str
    score: ScoreState = field(default_factory=ScoreState)
    trend: Optional[str] = None
    verdicts: Dict[str, ClassifierVerdict] = field(default_factory=dict)

    @property
    def regime(self) -> Optional[str]:
        regime = self.verdicts.get("regime")
        return regime.tag if regime else None

    def factors(self) -> Tuple[ClassifierVerdict, ...]:
        return tuple(self.verdicts.values())


class ScoringAggregator:
    """
    Deterministic additive scoring over one MarketSnapshot.

    Usage:
        aggregator = ScoringAggregator(get_profile("default"), ScannerSuite.default())
        decision = aggregator.decide(snapshot)
    """

    def __init__(self, profile: Optional[ScoringProfile] = None, scanners: Optional[ScannerSuite] = None):
        self.profile = profile or get_profile("default")
        self.scanners = scanners or ScannerSuite.disabled()

    def classify(self, snapshot: MarketSnapshot) -> Dict[str, ClassifierVerdict]:
        """Run every classifier and auxiliary scanner against the snapshot."""
        trend = classify_trend(snapshot)
        candle = classify_candle(snapshot)
        verdicts = {
            "trend": trend,
            "rsi": check_rsi(snapshot, trend.tag),
            "volume": check_volume(snapshot),
            "breakout": detect_breakout(snapshot),
            "candle": candle,
            "regime": detect_market_regime(snapshot, candle_size_pct=candle.detail("change_pct")),
            "htf_alignment": check_htf_alignment(snapshot, trend.tag),
            "institutional": check_institutional(snapshot),
        }
        verdicts.update(self.scanners.run(snapshot, trend.tag))
        return verdicts

    def decide(self, snapshot: MarketSnapshot) -> Decision:
        verdicts = self.classify(snapshot)
        trend = verdicts["trend"]

        if not snapshot.has_core_data:
            return Decision(
                symbol=snapshot.symbol, signal=WAIT, confidence="NONE",
                reason=CORE_DATA_MISSING, trend=trend.tag, verdicts=verdicts,
            )

        volume, breakout, candle = verdicts["volume"], verdicts["breakout"], verdicts["candle"]
        if (
            trend.tag == SIDEWAYS
            and not volume.confirmed
            and not breakout.hard
            and candle.strength == "WEAK"
        ):
            return Decision(
                symbol=snapshot.symbol, signal=WAIT, confidence="LOW",
                reason=WEAK_CONTEXT, trend=trend.tag, verdicts=verdicts,
            )

        score = self.score(verdicts)
        signal, confidence, reason = self._ladder(score, verdicts)

        logger.debug("📊 %s: bull=%d bear=%d -> %s (%s)",
                      snapshot.symbol, score.bullish, score.bearish, signal, confidence)

        return Decision(
            symbol=snapshot.symbol,
            signal=signal,
            confidence=confidence,
            reason=reason,
            score=score,
            trend=trend.tag,
            verdicts=verdicts,
        )

    def score(self, verdicts: Dict[str, ClassifierVerdict]) -> ScoreState:
        """Accumulate bullish/bearish points from the classifier verdicts."""
        w = self.profile.weights
        state = ScoreState()
        trend = verdicts["trend"]
        trend_dir = trend_direction(trend.tag)

        if trend_dir:
            for slot, weight_name in AUXILIARY_WEIGHTS:
                verdict = verdicts.get(slot)
                if verdict is not None and verdict.active:
                    state.add(trend_dir, slot, getattr(w, weight_name))
            momentum = verdicts.get("momentum")
            if momentum is not None and momentum.confirmed:
                state.add(trend_dir, "momentum", w.momentum_confirmed)

            if verdicts["htf_alignment"].active:
                state.add(trend_dir, "htf_alignment", w.htf_aligned)

        institutional = verdicts["institutional"]
        if institutional.active:
            if institutional.detail("bullish"):
                state.add("BULLISH", "institutional", w.institutional)
            if institutional.detail("bearish"):
                state.add("BEARISH", "institutional", w.institutional)

        regime = verdicts["regime"]
        if is_regime_tradeable(regime):
            state.add(regime.direction, "regime", w.regime_match)

        if trend_dir:
            if trend.strength == "STRONG":
                state.add(trend_dir, "trend", w.trend_strong)
            elif trend.strength == "MODERATE":
                state.add(trend_dir, "trend", w.trend_moderate)

            if verdicts["rsi"].boost:
                state.add(trend_dir, "rsi", w.rsi_boost)

            volume_points = {
                "VERY_STRONG": w.volume_very_strong,
                "STRONG": w.volume_strong,
                "MODERATE": w.volume_moderate,
            }.get(verdicts["volume"].strength, 0)
            state.add(trend_dir, "volume", volume_points)

            if verdicts["candle"].strength == "STRONG":
                state.add(trend_dir, "candle", w.candle_strong)

        breakout = verdicts["breakout"]
        if breakout.active and breakout.direction:
            state.add(breakout.direction, "breakout", w.breakout_hard if breakout.hard else w.breakout_soft)

        return state

    def _is_strong(self, points: int, direction: str, breakout: ClassifierVerdict) -> bool:
        t = self.profile.thresholds
        if points >= t.strong_score:
            return True
        if breakout.active and breakout.direction == direction:
            if breakout.hard:
                return points >= t.strong_with_hard_breakout
            return points >= t.strong_with_soft_breakout
        return False

    def _ladder(self, score: ScoreState, verdicts: Dict[str, ClassifierVerdict]) -> Tuple[str, str, str]:
        t = self.profile.thresholds
        breakout = verdicts["breakout"]
        rsi_allowed = verdicts["rsi"].allowed
        volume_confirmed = verdicts["volume"].confirmed

        for direction, points, strong, standard, label in (
            ("BULLISH", score.bullish, STRONG_BUY, BUY, "uptrend"),
            ("BEARISH", score.bearish, STRONG_SELL, SELL, "downtrend"),
        ):
            if self._is_strong(points, direction, breakout):
                return strong, "VERY_HIGH", f"Strong {label} + breakout + volume (Score: {points})"
            if points >= t.standard_score and rsi_allowed and volume_confirmed:
                confidence = "HIGH" if points >= t.high_confidence_score else "MEDIUM"
                side = "Bullish" if direction == "BULLISH" else "Bearish"
                return standard, confidence, f"{side} setup confirmed (Score: {points})"

        return WAIT, "LOW", f"Trend weak or conflicting signals (Bull: {score.bullish}, Bear: {score.bearish})"
