"""
Test suite for the risk-reward calculations and gate.
"""

import pytest

from tradesight.risk.risk_reward import (
    RiskRewardGate,
    calculate_risk_reward,
    calculate_targets,
    get_signal_grade,
)
from tradesight.shared.config.defaults import RiskRewardConfig


def test_risk_reward_ratio_and_grades():
    """Test ratio rounding and grade boundaries."""
    excellent = calculate_risk_reward(100, 106, 97)
    assert excellent.ratio == 2.0
    assert excellent.grade == "EXCELLENT"
    assert excellent.direction == "BUY"
    assert excellent.acceptable

    assert calculate_risk_reward(100, 103, 98).grade == "GOOD"
    assert calculate_risk_reward(100, 102.4, 98).grade == "ACCEPTABLE"

    rejected = calculate_risk_reward(100, 101, 98)
    assert rejected.ratio == 0.5
    assert rejected.grade == "REJECTED"
    assert not rejected.acceptable
    assert rejected.valid


def test_risk_reward_sell_side():
    """Test SELL ordering is target < entry < stop."""
    rr = calculate_risk_reward(100, 94, 103)
    assert rr.direction == "SELL"
    assert rr.ratio == 2.0


def test_risk_reward_invalid_inputs():
    """Test missing levels and broken ordering are never acceptable."""
    missing = calculate_risk_reward(None, 106, 97)
    assert not missing.valid
    assert missing.ratio == 0.0
    assert missing.grade == "INVALID"

    zero_risk = calculate_risk_reward(100, 103, 100)
    assert not zero_risk.valid
    assert zero_risk.reason == "Invalid target/stop ordering"

    assert not calculate_risk_reward(100, 97, 98).acceptable


def test_calculate_targets():
    """Test ATR targets (2x) and stops (1x)."""
    assert calculate_targets(100, 2, "BUY") == {"target": 104, "stop_loss": 98}
    assert calculate_targets(100, 2, "SELL") == {"target": 96, "stop_loss": 102}

    with pytest.raises(ValueError, match="ATR must be positive"):
        calculate_targets(100, 0, "BUY")
    with pytest.raises(ValueError, match="Direction must be BUY or SELL"):
        calculate_targets(100, 2, "HOLD")


def test_signal_grade():
    assert get_signal_grade(2.5) == "STRONG"
    assert get_signal_grade(1.6) == "GOOD"
    assert get_signal_grade(1.3) == "NORMAL"
    assert get_signal_grade(1.0) == "REJECT"


def test_thresholds_use_unrounded_ratio():
    """Test ratios just under 2.0 and 1.2 do not round up past the cut-offs."""
    near_strong = calculate_risk_reward(100, 101.998, 99)
    assert near_strong.ratio == 2.0
    assert near_strong.raw_ratio < 2.0
    assert near_strong.grade == "GOOD"

    near_minimum = calculate_risk_reward(100, 101.196, 99)
    assert near_minimum.ratio == 1.2
    assert near_minimum.grade == "REJECTED"
    assert not near_minimum.acceptable


def test_gate_does_not_upgrade_just_below_strong_ratio():
    gate = RiskRewardGate()

    kept = gate.evaluate_levels("BUY", 100, 101.998, 99)
    assert kept.signal == "BUY"
    assert kept.original_signal is None
    assert kept.risk_reward.grade == "GOOD"

    rejected = gate.evaluate_levels("BUY", 100, 101.196, 99)
    assert rejected.signal == "WAIT"
    assert rejected.confidence == "BLOCKED"
    assert rejected.rejected


def test_atr_plan_upgrades_despite_float_noise():
    """Test an exact 2:1 ATR plan on awkward prices still reaches STRONG."""
    outcome = RiskRewardGate().apply("BUY", "HIGH", None, entry=105.3, atr=0.3)

    assert outcome.signal == "STRONG_BUY"
    assert outcome.risk_reward.grade == "EXCELLENT"


def test_gate_upgrades_excellent_ratio():
    """Test a 2:1 plain BUY becomes STRONG_BUY."""
    outcome = RiskRewardGate().evaluate_levels("BUY", 100, 106, 97, confidence="MEDIUM")

    assert outcome.signal == "STRONG_BUY"
    assert outcome.confidence == "VERY_HIGH"
    assert outcome.original_signal == "BUY"
    assert outcome.risk_reward.ratio == 2.0
    assert outcome.reason == "R:R 2.0 (EXCELLENT)"
    assert not outcome.rejected


def test_gate_rejects_poor_ratio():
    """Test a sub-minimum ratio forces WAIT."""
    outcome = RiskRewardGate().evaluate_levels("BUY", 100, 101, 98)

    assert outcome.signal == "WAIT"
    assert outcome.confidence == "BLOCKED"
    assert outcome.reason == "R:R ratio 0.5 below minimum 1.2 (was BUY)"
    assert outcome.original_signal == "BUY"
    assert outcome.rejected


def test_gate_rejects_wrong_side_levels():
    """Test levels on the opposite side of the call are rejected."""
    outcome = RiskRewardGate().evaluate_levels("BUY", 100, 94, 103)

    assert outcome.signal == "WAIT"
    assert outcome.reason == "Target/stop levels are SELL-side (was BUY)"


def test_gate_passes_acceptable_ratio():
    """Test a GOOD ratio keeps the signal and attaches the result."""
    outcome = RiskRewardGate().evaluate_levels("STRONG_BUY", 100, 103, 98, confidence="VERY_HIGH",
                                               reason="Strong uptrend")

    assert outcome.signal == "STRONG_BUY"
    assert outcome.confidence == "VERY_HIGH"
    assert outcome.reason == "Strong uptrend"
    assert outcome.risk_reward.grade == "GOOD"
    assert outcome.original_signal is None


def test_gate_apply_with_atr():
    """Test ATR-derived levels always grade 2:1 with default multiples."""
    outcome = RiskRewardGate().apply("SELL", "HIGH", "Bearish setup confirmed (Score: 5)", entry=100, atr=2)

    assert outcome.signal == "STRONG_SELL"
    assert outcome.risk_reward.target == 96
    assert outcome.risk_reward.stop_loss == 102
    assert outcome.reason == "Bearish setup confirmed (Score: 5) | R:R 2.0 (EXCELLENT)"


def test_gate_apply_with_tight_target_multiple():
    """Test a configured 1x target falls below the minimum ratio."""
    gate = RiskRewardGate(RiskRewardConfig(target_atr_multiple=1.0, stop_atr_multiple=1.0))
    outcome = gate.apply("BUY", "MEDIUM", "Bullish setup", entry=100, atr=2)

    assert outcome.signal == "WAIT"
    assert outcome.risk_reward.ratio == 1.0


def test_gate_passthrough():
    """Test WAIT and missing ATR pass through untouched."""
    gate = RiskRewardGate()

    wait = gate.apply("WAIT", "LOW", "Trend weak", entry=100, atr=2)
    assert wait.signal == "WAIT"
    assert wait.risk_reward is None
    assert not wait.rejected

    no_atr = gate.apply("BUY", "MEDIUM", "Bullish", entry=100, atr=None)
    assert no_atr.signal == "BUY"
    assert no_atr.risk_reward is None


def test_risk_reward_config_validation():
    with pytest.raises(ValueError, match="Minimum ratio must be positive"):
        RiskRewardConfig(min_ratio=0)
    with pytest.raises(ValueError, match="Strong ratio must be >= minimum ratio"):
        RiskRewardConfig(min_ratio=2.5, strong_ratio=2.0)
