"""Auxiliary context scanners injected into the scoring aggregator."""

from tradesight.strategy.scanners.base import AuxiliaryScanner, NullScanner, ScannerSuite
from tradesight.strategy.scanners.momentum import MomentumContextScanner
from tradesight.strategy.scanners.pre_breakout import PreBreakoutScanner
from tradesight.strategy.scanners.range_compression import RangeCompressionScanner
from tradesight.strategy.scanners.volume_buildup import VolumeBuildupScanner

__all__ = [
    "AuxiliaryScanner",
    "NullScanner",
    "ScannerSuite",
    "MomentumContextScanner",
    "PreBreakoutScanner",
    "RangeCompressionScanner",
    "VolumeBuildupScanner",
]
