"""
Verdict models.

This module defines the data structures passed along the evaluation
pipeline: per-classifier verdicts, the accumulated bull/bear score, the
risk-reward result, the safety context, and the final SignalVerdict that
is the only object exposed to collaborators.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple


SignalType = Literal["WAIT", "BUY", "SELL", "STRONG_BUY", "STRONG_SELL"]
Direction = Literal["BULLISH", "BEARISH"]

WAIT = "WAIT"
BUY = "BUY"
SELL = "SELL"
STRONG_BUY = "STRONG_BUY"
STRONG_SELL = "STRONG_SELL"

SIGNAL_TYPES: Tuple[str, ...] = (WAIT, BUY, SELL, STRONG_BUY, STRONG_SELL)
BULLISH_SIGNALS = frozenset({BUY, STRONG_BUY})
BEARISH_SIGNALS = frozenset({SELL, STRONG_SELL})

# Sort order for actionable signals (higher first)
CONFIDENCE_ORDER: Dict[str, int] = {
    "VERY_HIGH": 4,
    "HIGH": 3,
    "MEDIUM": 2,
    "LOW": 1,
}


def signal_direction(signal: str) -> Optional[str]:
    """BULLISH / BEARISH for directional signals, None for WAIT."""
    if signal in BULLISH_SIGNALS:
        return "BULLISH"
    if signal in BEARISH_SIGNALS:
        return "BEARISH"
    return None


@dataclass(frozen=True)
class ClassifierVerdict:
    """
    Output of one classifier or auxiliary scanner.

    Attributes:
        name: Classifier identifier ('trend', 'rsi', 'pre_breakout', ...)
        tag: Primary label (UPTREND, VERY_STRONG, BULLISH_BREAKOUT, ...)
        strength: Confidence/strength qualifier
        reason: Human-readable justification
        allowed: Whether the classifier permits a directional call
        boost: Whether the classifier grants a confidence boost
        confirmed: Whether the classifier confirms the move
        active: Whether an auxiliary condition fired
        hard: Hard (vs soft) variant, used by the breakout detector
        direction: BULLISH / BEARISH when the verdict is directional
        score: Scanner-internal score, informational only
        details: Extra key/value diagnostics
    """
    name: str
    tag: str
    strength: str = "NONE"
    reason: str = ""
    allowed: bool = True
    boost: bool = False
    confirmed: bool = False
    active: bool = False
    hard: bool = False
    direction: Optional[str] = None
    score: float = 0.0
    details: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def neutral(cls, name: str, reason: str = "Scanner unavailable") -> "ClassifierVerdict":
        """Neutral verdict used when a scanner is missing or lacks data."""
        return cls(name=name, tag="NEUTRAL", strength="NONE", reason=reason)

    def detail(self, key: str, default: Any = None) -> Any:
        for k, v in self.details:
            if k == key:
                return v
        return default

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tag": self.tag,
            "strength": self.strength,
            "reason": self.reason,
            "allowed": self.allowed,
            "boost": self.boost,
            "confirmed": self.confirmed,
            "active": self.active,
            "hard": self.hard,
            "direction": self.direction,
            "score": self.score,
            "details": dict(self.details),
        }


@dataclass
class ScoreState:
    """
    Bullish/bearish point accumulator.

    Both scores start at zero and only grow; every contribution is
    recorded by factor name for diagnosability.
    """
    bullish: int = 0
    bearish: int = 0
    contributions: List[Tuple[str, str, int]] = field(default_factory=list)

    def add(self, direction: str, factor: str, points: int) -> None:
        """
        Credit points to one side.

        Raises:
            ValueError: On negative points or an unknown direction
        """
        if points < 0:
            raise ValueError(f"Score contribution cannot be negative ({factor}={points})")
        if points == 0:
            return
        if direction == "BULLISH":
            self.bullish += points
        elif direction == "BEARISH":
            self.bearish += points
        else:
            raise ValueError(f"Unknown score direction: {direction}")
        self.contributions.append((factor, direction, points))

    def score_for(self, direction: str) -> int:
        return self.bullish if direction == "BULLISH" else self.bearish

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bullish": self.bullish,
            "bearish": self.bearish,
            "contributions": [
                {"factor": f, "direction": d, "points": p} for f, d, p in self.contributions
            ],
        }


@dataclass(frozen=True)
class RiskRewardResult:
    """
    Reward-to-risk evaluation of an entry/target/stop triple.

    Invariant: raw_ratio == |target - entry| / |entry - stop_loss| and grade
    and acceptable are decided on raw_ratio; ratio is raw_ratio rounded to
    2 decimals for display. A zero risk leg is always invalid.
    """
    entry: Optional[float]
    target: Optional[float]
    stop_loss: Optional[float]
    ratio: float
    grade: str
    acceptable: bool
    valid: bool = True
    direction: Optional[str] = None
    reason: Optional[str] = None
    raw_ratio: float = 0.0

    @classmethod
    def invalid(cls, entry, target, stop_loss, reason: str) -> "RiskRewardResult":
        return cls(
            entry=entry,
            target=target,
            stop_loss=stop_loss,
            ratio=0.0,
            grade="INVALID",
            acceptable=False,
            valid=False,
            reason=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry": self.entry,
            "target": self.target,
            "stop_loss": self.stop_loss,
            "ratio": self.ratio,
            "grade": self.grade,
            "acceptable": self.acceptable,
            "valid": self.valid,
            "direction": self.direction,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class SafetyContext:
    """
    Contextual risk flags consumed by the safety overlay.

    Supplied by collaborators (calendar, trade journal, VIX feed, panic
    monitor); never derived from the verdict being evaluated.
    """
    is_result_day: bool = False
    is_expiry_day: bool = False
    trade_count_today: int = 0
    trade_type: str = "INTRADAY"
    volatility_index: Optional[float] = None
    panic_active: bool = False

    def __post_init__(self):
        if self.trade_count_today < 0:
            raise ValueError(f"Trade count cannot be negative, got {self.trade_count_today}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SafetyContext":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class SignalVerdict:
    """
    Final advisory signal for one instrument.

    Produced fresh per evaluation and never mutated afterwards.

    Attributes:
        symbol: Instrument symbol
        signal: WAIT / BUY / SELL / STRONG_BUY / STRONG_SELL
        confidence: VERY_HIGH / HIGH / MEDIUM / LOW / NONE / BLOCKED
        reason: Why this signal was produced (or suppressed)
        bullish_score / bearish_score: Final aggregator scores
        trend / regime: Trend and market regime tags
        risk_reward: Gate result when a directional call was evaluated
        warnings: Safety annotations
        blocked_by: Safety veto reasons (non-empty only when vetoed)
        original_signal: Pre-gate signal when a gate or veto changed it
        factors: Classifier verdicts, keyed by classifier name
        timestamp: Evaluation time (UTC)
    """
    symbol: str
    signal: str
    confidence: str
    reason: str
    bullish_score: int = 0
    bearish_score: int = 0
    trend: Optional[str] = None
    regime: Optional[str] = None
    risk_reward: Optional[RiskRewardResult] = None
    warnings: Tuple[str, ...] = ()
    blocked_by: Tuple[str, ...] = ()
    original_signal: Optional[str] = None
    factors: Tuple[ClassifierVerdict, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.signal not in SIGNAL_TYPES:
            raise ValueError(f"Unknown signal type: {self.signal}")
        if self.bullish_score < 0 or self.bearish_score < 0:
            raise ValueError("Scores cannot be negative")

    @property
    def actionable(self) -> bool:
        return self.signal != WAIT

    @property
    def direction(self) -> Optional[str]:
        return signal_direction(self.signal)

    @property
    def blocked(self) -> bool:
        return bool(self.blocked_by)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for API/CLI output."""
        return {
            "symbol": self.symbol,
            "signal": self.signal,
            "confidence": self.confidence,
            "reason": self.reason,
            "actionable": self.actionable,
            "scores": {"bullish": self.bullish_score, "bearish": self.bearish_score},
            "trend": self.trend,
            "regime": self.regime,
            "risk_reward": self.risk_reward.to_dict() if self.risk_reward else None,
            "warnings": list(self.warnings),
            "blocked": self.blocked,
            "blocked_by": list(self.blocked_by),
            "original_signal": self.original_signal,
            "factors": {v.name: v.to_dict() for v in self.factors},
            "timestamp": self.timestamp.isoformat(),
        }
