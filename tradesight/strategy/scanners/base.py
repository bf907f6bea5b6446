"""
Auxiliary context scanner contracts.

Auxiliary scanners (pre-breakout, volume buildup, range compression,
momentum context) add optional evidence to the score. They are injected
at construction through a ScannerSuite; a slot that is not wired gets a
NullScanner, and a scanner that fails at runtime degrades to its neutral
verdict instead of failing the evaluation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Optional
import logging

from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict

logger = logging.getLogger(__name__)


class AuxiliaryScanner(ABC):
    """Abstract interface for an optional context scanner."""

    name: str = "auxiliary"

    @abstractmethod
    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        """
        Evaluate the snapshot.

        Args:
            snapshot: Market snapshot with candle history
            trend: Trend tag from the trend classifier

        Returns:
            ClassifierVerdict with `active` set when the condition fires
            (and `confirmed` for momentum confirmation)
        """
        pass

    def neutral(self, reason: str) -> ClassifierVerdict:
        return ClassifierVerdict.neutral(self.name, reason)


class NullScanner(AuxiliaryScanner):
    """No-op scanner: always neutral."""

    def __init__(self, name: str):
        self.name = name

    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        return self.neutral("Scanner not configured")


def _null(name: str):
    return field(default_factory=lambda: NullScanner(name))


@dataclass
class ScannerSuite:
    """
    The injected set of auxiliary scanners.

    Usage:
        suite = ScannerSuite.default()        # real implementations
        suite = ScannerSuite.disabled()       # all neutral
        suite = ScannerSuite(pre_breakout=MyScanner())
    """
    pre_breakout: AuxiliaryScanner = _null("pre_breakout")
    volume_buildup: AuxiliaryScanner = _null("volume_buildup")
    range_compression: AuxiliaryScanner = _null("range_compression")
    momentum: AuxiliaryScanner = _null("momentum")

    @classmethod
    def default(cls) -> "ScannerSuite":
        from tradesight.strategy.scanners.momentum import MomentumContextScanner
        from tradesight.strategy.scanners.pre_breakout import PreBreakoutScanner
        from tradesight.strategy.scanners.range_compression import RangeCompressionScanner
        from tradesight.strategy.scanners.volume_buildup import VolumeBuildupScanner

        return cls(
            pre_breakout=PreBreakoutScanner(),
            volume_buildup=VolumeBuildupScanner(),
            range_compression=RangeCompressionScanner(),
            momentum=MomentumContextScanner(),
        )

    @classmethod
    def disabled(cls) -> "ScannerSuite":
        return cls()

    def run(self, snapshot: MarketSnapshot, trend: str) -> Dict[str, ClassifierVerdict]:
        """
        Run every scanner, degrading failures to neutral verdicts.

        Returns:
            Dict of slot name -> verdict (verdict name is the slot name)
        """
        results: Dict[str, ClassifierVerdict] = {}
        for slot in fields(self):
            scanner: Optional[AuxiliaryScanner] = getattr(self, slot.name)
            if scanner is None:
                results[slot.name] = ClassifierVerdict.neutral(slot.name, "Scanner not configured")
                continue
            try:
                verdict = scanner.scan(snapshot, trend)
            except Exception as e:
                logger.warning("⚠️  %s: %s scanner failed (%s) - using neutral verdict",
                               snapshot.symbol, slot.name, e)
                verdict = ClassifierVerdict.neutral(slot.name, f"Scanner error: {e}")
            if verdict.name != slot.name:
                verdict = replace(verdict, name=slot.name)
            results[slot.name] = verdict
        return results
