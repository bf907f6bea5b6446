"""
Signal Service - per-instrument evaluation pipeline.

Runs one MarketSnapshot through:

    classifiers -> scoring aggregator -> risk-reward gate -> safety overlay

and returns a frozen SignalVerdict. The gates run strictly in that order:
the R:R gate can only move a call toward WAIT or toward its STRONG
variant, and the safety overlay runs last so that its veto is final.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from tradesight.risk.risk_reward import RiskRewardGate
from tradesight.risk.safety_overlay import SafetyOverlay
from tradesight.shared.config.defaults import (
    DEFAULT_RISK_REWARD_CONFIG,
    DEFAULT_SAFETY_CONFIG,
    RiskRewardConfig,
    SafetyConfig,
)
from tradesight.shared.config.scoring_profiles import ScoringProfile, get_profile
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import WAIT, SafetyContext, SignalVerdict
from tradesight.shared.utils.error_policy import enforce_complete_verdict
from tradesight.shared.utils.logging_utils import log_pipeline_stage, log_rejection
from tradesight.strategy.scanners.base import ScannerSuite
from tradesight.strategy.scoring import ScoringAggregator


logger = logging.getLogger(__name__)


class SignalService:
    """
    Service for evaluating trade signals.

    Owns one aggregator, one R:R gate and one safety overlay; holds no
    per-evaluation state, so a single instance can evaluate many
    instruments concurrently.

    Usage:
        service = SignalService(profile=get_profile("strict"), scanners=ScannerSuite.default())
        verdict = service.evaluate(snapshot, SafetyContext(volatility_index=14.2))
    """

    def __init__(
        self,
        profile: Optional[ScoringProfile] = None,
        scanners: Optional[ScannerSuite] = None,
        rr_config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG,
        safety_config: SafetyConfig = DEFAULT_SAFETY_CONFIG,
    ):
        self.aggregator = ScoringAggregator(profile or get_profile("default"), scanners or ScannerSuite.default())
        self.gate = RiskRewardGate(rr_config)
        self.overlay = SafetyOverlay(safety_config)

    @property
    def profile(self) -> ScoringProfile:
        return self.aggregator.profile

    def evaluate(
        self,
        snapshot: Union[MarketSnapshot, Mapping[str, Any]],
        safety_context: Optional[SafetyContext] = None,
    ) -> SignalVerdict:
        """
        Evaluate one instrument.

        Args:
            snapshot: MarketSnapshot, or a raw quote mapping to normalize
            safety_context: Contextual risk flags (defaults to a clean context)

        Returns:
            SignalVerdict (never None)

        Raises:
            InvalidSnapshotError: If a raw mapping has no symbol
        """
        if not isinstance(snapshot, MarketSnapshot):
            snapshot = MarketSnapshot.from_raw(snapshot)
        symbol = snapshot.symbol

        log_pipeline_stage("SCORING", symbol)
        decision = self.aggregator.decide(snapshot)
        if decision.signal == WAIT:
            log_rejection(symbol, "SCORING", decision.reason, decision.score.to_dict())

        gated = self.gate.apply(
            decision.signal, decision.confidence, decision.reason,
            entry=snapshot.close, atr=snapshot.atr,
        )
        if gated.rejected:
            log_rejection(symbol, "RISK_REWARD", gated.reason)

        safe = self.overlay.apply(gated.signal, gated.confidence, gated.reason, safety_context)
        if safe.blocked:
            log_rejection(symbol, "SAFETY", safe.reason, {"blocked_by": list(safe.blocked_by)})

        verdict = SignalVerdict(
            symbol=symbol,
            signal=safe.signal,
            confidence=safe.confidence,
            reason=safe.reason,
            bullish_score=decision.score.bullish,
            bearish_score=decision.score.bearish,
            trend=decision.trend,
            regime=decision.regime,
            risk_reward=gated.risk_reward,
            warnings=safe.warnings,
            blocked_by=safe.blocked_by,
            original_signal=safe.original_signal or gated.original_signal,
            factors=decision.factors(),
            timestamp=snapshot.timestamp,
        )
        enforce_complete_verdict(verdict)

        log_pipeline_stage("EVALUATE", symbol, "COMPLETE", {"signal": verdict.signal,
                                                            "confidence": verdict.confidence})
        return verdict

    def evaluate_many(
        self,
        snapshots: Iterable[MarketSnapshot],
        safety_context: Optional[SafetyContext] = None,
        max_workers: int = 4,
    ) -> Dict[str, SignalVerdict]:
        """
        Evaluate many instruments in parallel.

        Instruments that fail are logged and skipped; the rest are
        returned keyed by symbol.
        """
        snapshots = list(snapshots)
        results: Dict[str, SignalVerdict] = {}
        if not snapshots:
            return results

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self.evaluate, s, safety_context): s.symbol for s in snapshots}
            for future in as_completed(futures):
                symbol = futures[future]
                try:
                    results[symbol] = future.result()
                except Exception as e:
                    logger.error("❌ Evaluation failed for %s: %s", symbol, e)

        return {s.symbol: results[s.symbol] for s in snapshots if s.symbol in results}

    def actionable(self, verdicts: Iterable[SignalVerdict]) -> List[SignalVerdict]:
        return [v for v in verdicts if v.actionable]


# Singleton
_signal_service: Optional[SignalService] = None


def get_signal_service() -> SignalService:
    """Get the singleton SignalService instance, creating a default one on first use."""
    global _signal_service
    if _signal_service is None:
        _signal_service = SignalService()
    return _signal_service


def configure_signal_service(
    profile: Optional[Union[str, ScoringProfile]] = None,
    scanners: Optional[ScannerSuite] = None,
    rr_config: RiskRewardConfig = DEFAULT_RISK_REWARD_CONFIG,
    safety_config: SafetyConfig = DEFAULT_SAFETY_CONFIG,
) -> SignalService:
    """Configure and return the singleton SignalService."""
    global _signal_service
    if isinstance(profile, str):
        profile = get_profile(profile)
    _signal_service = SignalService(profile, scanners, rr_config, safety_config)
    return _signal_service
