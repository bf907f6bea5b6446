"""
Safety Overlay - final gate.

Annotates a signal with contextual risk warnings and, under the blocked
policy, vetoes it to WAIT. The overlay never originates a direction: a
WAIT input is returned unchanged, so the overlay is monotonic toward
WAIT.

Veto reasons (blocked_by):
    VIX_EXTREME       volatility index >= vix_extreme
    PANIC_MODE        panic state reported by a collaborator
    OVERTRADE_LIMIT   trades today >= max_trades_per_day
    EXPIRY_DAY_RISK   expiry day and trade type in blocked_expiry_trade_types
    RESULT_DAY_RISK   result day, only when block_on_result_day is set
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
import logging

from tradesight.shared.config.defaults import DEFAULT_SAFETY_CONFIG, SafetyConfig
from tradesight.shared.models.verdicts import WAIT, SafetyContext

logger = logging.getLogger(__name__)


def is_expiry_day(day: Optional[date] = None) -> bool:
    """Weekly index expiry falls on Thursday."""
    day = day or date.today()
    return day.weekday() == 3


def get_vix_safety_note(vix: Optional[float]) -> str:
    if vix is None or isinstance(vix, bool) or not isinstance(vix, (int, float)) or vix <= 0:
        return "VIX data unavailable - trade with caution"
    if vix >= 25:
        return f"⚠️ EXTREME VIX ({vix}) - Avoid trading"
    if vix >= 20:
        return f"⚡ HIGH VIX ({vix}) - Reduce position size"
    if vix >= 15:
        return f"📊 ELEVATED VIX ({vix}) - Normal caution"
    return f"✅ LOW VIX ({vix}) - Favorable conditions"


def check_safety_context(context: SafetyContext, config: SafetyConfig = DEFAULT_SAFETY_CONFIG) -> Dict[str, Any]:
    """
    Quick pre-trade context check (no signal involved).

    Returns:
        Dict with safe flag, list of issues and OK/CAUTION recommendation
    """
    issues: List[str] = []
    if context.is_result_day:
        issues.append("Result day - avoid")
    if context.is_expiry_day:
        issues.append("Expiry day - be careful")
    if context.volatility_index is not None and context.volatility_index >= config.vix_elevated:
        issues.append(f"High VIX: {context.volatility_index}")
    if context.trade_count_today >= config.max_trades_per_day - 2:
        issues.append("Near trade limit")
    if context.panic_active:
        issues.append("Panic mode active")

    return {
        "safe": not issues,
        "issues": issues,
        "recommendation": "CAUTION" if issues else "OK",
    }


@dataclass(frozen=True)
class SafetyOutcome:
    """Signal after the safety overlay."""
    signal: str
    confidence: str
    reason: str
    warnings: Tuple[str, ...] = ()
    blocked_by: Tuple[str, ...] = ()
    original_signal: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return bool(self.blocked_by)


class SafetyOverlay:
    """
    Contextual veto/annotation layer.

    Usage:
        overlay = SafetyOverlay()
        outcome = overlay.apply("BUY", "HIGH", "Bullish setup", SafetyContext(volatility_index=26))
        # outcome.signal == "WAIT", outcome.blocked_by == ("VIX_EXTREME",)
    """

    def __init__(self, config: SafetyConfig = DEFAULT_SAFETY_CONFIG):
        self.config = config

    def warnings_for(self, context: SafetyContext) -> List[str]:
        cfg = self.config
        warnings: List[str] = []
        if context.is_result_day:
            warnings.append("Result day - elevated event risk")
        if context.is_expiry_day:
            warnings.append("Expiry day - mind the theta decay")
        if context.trade_count_today >= cfg.overtrade_warning_count:
            warnings.append(f"Overtrading: {context.trade_count_today} trades today")
        vix = context.volatility_index
        if vix is not None and vix >= cfg.vix_elevated:
            warnings.append(f"Elevated volatility index ({vix})")
        warnings.append(get_vix_safety_note(vix))
        return warnings

    def veto_reasons(self, context: SafetyContext) -> List[str]:
        cfg = self.config
        reasons: List[str] = []
        if context.is_result_day and cfg.block_on_result_day:
            reasons.append("RESULT_DAY_RISK")
        if context.is_expiry_day and context.trade_type.upper() in cfg.blocked_expiry_trade_types:
            reasons.append("EXPIRY_DAY_RISK")
        if context.trade_count_today >= cfg.max_trades_per_day:
            reasons.append("OVERTRADE_LIMIT")
        if context.volatility_index is not None and context.volatility_index >= cfg.vix_extreme:
            reasons.append("VIX_EXTREME")
        if context.panic_active:
            reasons.append("PANIC_MODE")
        return reasons

    def apply(self, signal: str, confidence: str, reason: str,
              context: Optional[SafetyContext] = None) -> SafetyOutcome:
        if signal == WAIT:
            return SafetyOutcome(signal, confidence, reason)

        context = context or SafetyContext()
        warnings = tuple(self.warnings_for(context))
        blocked = tuple(self.veto_reasons(context))

        if blocked:
            logger.warning("🛑 Safety veto on %s: %s", signal, ", ".join(blocked))
            return SafetyOutcome(
                signal=WAIT,
                confidence="BLOCKED",
                reason=f"Trade blocked by safety: {', '.join(blocked)}",
                warnings=warnings,
                blocked_by=blocked,
                original_signal=signal,
            )

        return SafetyOutcome(signal, confidence, reason, warnings=warnings)
