"""Scoring profile configuration.

One scoring table drives the aggregator. Profiles are data: named
point weights per factor plus the decision thresholds that turn a
bullish/bearish score pair into a signal tier.

Each profile supplies:
- name: canonical lowercase key
- description: human readable summary
- weights: point contribution per named factor
- thresholds: STRONG and standard tier cut-offs
"""
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class ScoringWeights:
    """
    Point contribution of each factor to the directional score.

    Attributes:
        trend_strong / trend_moderate: Trend classifier by strength
        rsi_boost: RSI in the aligned mid-zone
        volume_*: Volume confirmation tiers, credited to the trend direction
        breakout_hard / breakout_soft: Breakout detector by type
        candle_strong: STRONG candle, credited to the trend direction
        regime_match: TRENDING_UP / TRENDING_DOWN regime
        htf_aligned: Higher-timeframe agreement with the current trend
        institutional: Bullish or bearish institutional layer (OI/PCR/breadth)
        pre_breakout / volume_buildup / range_compression: Auxiliary scanner hits
        momentum_confirmed: Confirmed momentum context
    """
    trend_strong: int = 3
    trend_moderate: int = 2
    rsi_boost: int = 1
    volume_very_strong: int = 3
    volume_strong: int = 2
    volume_moderate: int = 1
    breakout_hard: int = 2
    breakout_soft: int = 1
    candle_strong: int = 1
    regime_match: int = 2
    htf_aligned: int = 2
    institutional: int = 2
    pre_breakout: int = 2
    volume_buildup: int = 2
    range_compression: int = 2
    momentum_confirmed: int = 3

    def __post_init__(self):
        for name, value in self.__dict__.items():
            if value < 0:
                raise ValueError(f"Weight '{name}' cannot be negative, got {value}")


@dataclass(frozen=True)
class ScoringThresholds:
    """
    Decision ladder cut-offs.

    STRONG tier when score >= strong_score, or >= strong_with_hard_breakout
    with a same-direction hard breakout, or >= strong_with_soft_breakout
    with a same-direction soft breakout. Standard tier when score >=
    standard_score with RSI allowed and volume confirmed.
    """
    strong_score: int = 8
    strong_with_hard_breakout: int = 6
    strong_with_soft_breakout: int = 5
    standard_score: int = 3
    high_confidence_score: int = 5

    def __post_init__(self):
        if self.standard_score < 1:
            raise ValueError(f"Standard score must be >= 1, got {self.standard_score}")
        if not (self.strong_with_soft_breakout <= self.strong_with_hard_breakout <= self.strong_score):
            raise ValueError("STRONG thresholds must satisfy soft <= hard <= strong_score")


@dataclass(frozen=True)
class ScoringProfile:
    name: str
    description: str
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = field(default_factory=ScoringThresholds)


PROFILES: Dict[str, ScoringProfile] = {
    "default": ScoringProfile(
        name="default",
        description="Standard tier at 3 points; STRONG at 8, or 6/5 with a hard/soft breakout.",
    ),
    "strict": ScoringProfile(
        name="strict",
        description="Conservative variant: standard tier needs 5 points.",
        thresholds=ScoringThresholds(standard_score=5),
    ),
}


def get_profile(name: str) -> ScoringProfile:
    """Lookup scoring profile by name (case-insensitive)."""
    key = name.lower()
    if key not in PROFILES:
        raise ValueError(f"Unknown scoring profile: {name}. Available: {', '.join(PROFILES)}")
    return PROFILES[key]


def list_profiles() -> List[Dict[str, object]]:
    return [
        {
            "name": p.name,
            "description": p.description,
            "standard_score": p.thresholds.standard_score,
            "strong_score": p.thresholds.strong_score,
        }
        for p in PROFILES.values()
    ]
