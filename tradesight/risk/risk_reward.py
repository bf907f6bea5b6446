"""
Risk-Reward Gate

Synthesizes ATR-based target/stop levels for a directional call, grades
the reward:risk ratio and then either rejects the call (forces WAIT) or
upgrades it to its STRONG variant. The gate only ever moves a signal
toward WAIT or toward STRONG; it never invents a direction.

Grades:
    EXCELLENT   ratio >= 2.0
    GOOD        ratio >= 1.5
    ACCEPTABLE  ratio >= 1.2
    REJECTED    below the minimum
"""

from dataclasses import dataclass
from typing import Dict, Optional
import logging

from tradesight.shared.config.defaults import DEFAULT_RISK_REWARD_CONFIG, RiskRewardConfig
from tradesight.shared.models.verdicts import (
    BULLISH_SIGNALS,
    BUY,
    SELL,
    STRONG_BUY,
    STRONG_SELL,
    WAIT,
    RiskRewardResult,
    signal_direction,
)

logger = logging.getLogger(__name__)

GOOD_RATIO = 1.5

# float noise in ATR-derived levels must not push an exact 2:1 plan below 2.0
RATIO_TOLERANCE = 1e-9

RESULT_GRADES = {
    "STRONG": "EXCELLENT",
    "GOOD": "GOOD",
    "NORMAL": "ACCEPTABLE",
    "REJECT": "REJECTED",
}


def _meets(ratio: float, threshold: float) -> bool:
    return ratio + RATIO_TOLERANCE >= threshold


def calculate_risk_reward(
    entry: Optional[float],
    target: Optional[float],
    stop_loss: Optional[float],
    config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG,
) -> RiskRewardResult:
    """
    Grade an entry/target/stop triple.

    BUY ordering is stop < entry < target, SELL is target < entry < stop.
    Missing values, any other ordering, or a zero risk leg yield an
    INVALID result (ratio 0, not acceptable).
    """
    if entry is None or target is None or stop_loss is None:
        return RiskRewardResult.invalid(entry, target, stop_loss, "Missing price levels")

    if target > entry > stop_loss:
        direction = BUY
    elif target < entry < stop_loss:
        direction = SELL
    else:
        return RiskRewardResult.invalid(entry, target, stop_loss, "Invalid target/stop ordering")

    reward = abs(target - entry)
    risk = abs(entry - stop_loss)
    if risk == 0:
        return RiskRewardResult.invalid(entry, target, stop_loss, "Zero risk")

    # thresholds apply to the unrounded ratio; the rounded one is for display
    raw_ratio = reward / risk
    grade = RESULT_GRADES[get_signal_grade(raw_ratio, config)]

    return RiskRewardResult(
        entry=entry,
        target=target,
        stop_loss=stop_loss,
        ratio=round(raw_ratio, 2),
        raw_ratio=raw_ratio,
        grade=grade,
        acceptable=_meets(raw_ratio, config.min_ratio),
        direction=direction,
    )


def calculate_targets(
    entry: float,
    atr: float,
    direction: str,
    config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG,
) -> Dict[str, float]:
    """
    ATR targets for a directional call.

    BUY: target = entry + 2*ATR, stop = entry - 1*ATR. SELL mirrors it.

    Raises:
        ValueError: On a non-positive ATR or an unknown direction
    """
    if atr <= 0:
        raise ValueError(f"ATR must be positive, got {atr}")
    if direction == BUY:
        return {
            "target": entry + config.target_atr_multiple * atr,
            "stop_loss": entry - config.stop_atr_multiple * atr,
        }
    if direction == SELL:
        return {
            "target": entry - config.target_atr_multiple * atr,
            "stop_loss": entry + config.stop_atr_multiple * atr,
        }
    raise ValueError(f"Direction must be BUY or SELL, got {direction}")


def get_signal_grade(ratio: float, config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG) -> str:
    if _meets(ratio, config.strong_ratio):
        return "STRONG"
    if _meets(ratio, GOOD_RATIO):
        return "GOOD"
    if _meets(ratio, config.min_ratio):
        return "NORMAL"
    return "REJECT"


@dataclass(frozen=True)
class GateOutcome:
    """Signal after the risk-reward gate."""
    signal: str
    confidence: str
    reason: Optional[str]
    risk_reward: Optional[RiskRewardResult] = None
    original_signal: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.original_signal is not None and self.signal == WAIT


class RiskRewardGate:
    """
    Accept, reject or upgrade a directional call.

    Usage:
        gate = RiskRewardGate()
        outcome = gate.apply("BUY", "HIGH", "Bullish setup", entry=100, atr=3)
    """

    def __init__(self, config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG):
        self.config = config

    def evaluate_levels(self, signal: str, entry: float, target: float, stop_loss: float,
                        confidence: str = "MEDIUM", reason: Optional[str] = None) -> GateOutcome:
        """Gate a call against explicit target/stop levels."""
        rr = calculate_risk_reward(entry, target, stop_loss, self.config)
        return self._decide(signal, confidence, reason, rr)

    def apply(self, signal: str, confidence: str, reason: Optional[str],
              entry: Optional[float], atr: Optional[float]) -> GateOutcome:
        """
        Gate a call using ATR-derived levels.

        WAIT passes through. Missing entry or ATR leaves the signal
        untouched with no risk-reward attached.
        """
        if signal == WAIT:
            return GateOutcome(signal, confidence, reason)

        if not entry or not atr or atr <= 0:
            logger.debug("R:R skipped for %s: entry=%s atr=%s", signal, entry, atr)
            return GateOutcome(signal, confidence, reason)

        side = BUY if signal in BULLISH_SIGNALS else SELL
        levels = calculate_targets(entry, atr, side, self.config)
        rr = calculate_risk_reward(entry, levels["target"], levels["stop_loss"], self.config)
        return self._decide(signal, confidence, reason, rr)

    def _decide(self, signal: str, confidence: str, reason: Optional[str],
                rr: RiskRewardResult) -> GateOutcome:
        if signal == WAIT:
            return GateOutcome(signal, confidence, reason, risk_reward=rr)

        side = BUY if signal_direction(signal) == "BULLISH" else SELL
        if rr.valid and rr.direction != side:
            logger.info("🚫 R:R gate rejected %s: %s-side levels", signal, rr.direction)
            return GateOutcome(
                signal=WAIT,
                confidence="BLOCKED",
                reason=f"Target/stop levels are {rr.direction}-side (was {signal})",
                risk_reward=rr,
                original_signal=signal,
            )
        if not rr.acceptable:
            logger.info("🚫 R:R gate rejected %s (ratio %.2f, grade %s)", signal, rr.ratio, rr.grade)
            return GateOutcome(
                signal=WAIT,
                confidence="BLOCKED",
                reason=f"R:R ratio {rr.ratio} below minimum {self.config.min_ratio} (was {signal})",
                risk_reward=rr,
                original_signal=signal,
            )

        if _meets(rr.raw_ratio, self.config.strong_ratio) and signal in (BUY, SELL):
            upgraded = STRONG_BUY if signal == BUY else STRONG_SELL
            logger.debug("⬆️  R:R %.2f upgrades %s -> %s", rr.ratio, signal, upgraded)
            return GateOutcome(
                signal=upgraded,
                confidence="VERY_HIGH",
                reason=f"{reason} | R:R {rr.ratio} ({rr.grade})" if reason else f"R:R {rr.ratio} ({rr.grade})",
                risk_reward=rr,
                original_signal=signal,
            )

        return GateOutcome(signal, confidence, reason, risk_reward=rr)
