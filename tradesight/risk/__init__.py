"""
Risk package.

Provides the risk-reward gate, the safety overlay and the panic monitor
that together decide whether a directional call survives.
"""

from .panic_monitor import PanicMonitor
from .risk_reward import (
    GateOutcome,
    RiskRewardGate,
    calculate_risk_reward,
    calculate_targets,
    get_signal_grade,
)
from .safety_overlay import (
    SafetyOutcome,
    SafetyOverlay,
    check_safety_context,
    get_vix_safety_note,
    is_expiry_day,
)

__all__ = [
    'PanicMonitor',
    'GateOutcome',
    'RiskRewardGate',
    'calculate_risk_reward',
    'calculate_targets',
    'get_signal_grade',
    'SafetyOutcome',
    'SafetyOverlay',
    'check_safety_context',
    'get_vix_safety_note',
    'is_expiry_day',
]
