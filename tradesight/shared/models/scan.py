"""
Scan cycle models.

Per-instrument derived metrics and pattern tags, explosion detections,
ranked pattern buckets, and the ScanResult that the orchestrator caches
after each completed cycle. Everything here is frozen: a cached result
handed to a reader cannot be mutated by that reader.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tradesight.shared.models.verdicts import SignalVerdict


NO_DATA_MESSAGE = "No scan results available. Start scanner first."


class ScanCycleState(Enum):
    """Scan orchestrator lifecycle state."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class QuoteResult:
    """
    One symbol's outcome from a batched quote fetch.

    `data` is the raw upstream mapping (camelCase keys accepted, see
    FIELD_ALIASES); `error` explains a per-symbol failure.
    """
    symbol: str
    success: bool
    data: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def failed(cls, symbol: str, error: str) -> "QuoteResult":
        return cls(symbol=symbol, success=False, error=error)


@dataclass(frozen=True)
class InstrumentMetrics:
    """
    Quote-derived metrics used for pattern tagging and ranking.

    Attributes:
        change_percent: Close vs previous close (%)
        range: High - low
        range_percent: Range relative to low (%)
        position_in_range: (close - low) / range, 0.5 for a flat bar
        vwap_deviation: Close vs VWAP (%)
        buying_pressure: Buy qty / (buy + sell qty), 0.5 when unknown
        volume_ratio: Volume vs average volume
        is_above_vwap: Close above VWAP
        is_bullish_candle: Close above open
        body_percent: Body as % of range
    """
    change_percent: float = 0.0
    range: float = 0.0
    range_percent: float = 0.0
    position_in_range: float = 0.5
    vwap_deviation: float = 0.0
    buying_pressure: float = 0.5
    volume_ratio: float = 1.0
    is_above_vwap: bool = False
    is_bullish_candle: bool = False
    body_percent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PatternTags:
    """Structural pattern flags for one instrument."""
    volume_spike: bool = False
    breakout: bool = False
    pre_breakout: bool = False
    range_expansion: bool = False
    vwap_bounce: bool = False
    strong_momentum: bool = False
    compression: bool = False

    def active(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def to_dict(self) -> Dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ScannedInstrument:
    """One liquidity-filtered instrument of a scan cycle."""
    symbol: str
    close: Optional[float]
    volume: Optional[float]
    metrics: InstrumentMetrics
    patterns: PatternTags

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "close": self.close,
            "volume": self.volume,
            "metrics": self.metrics.to_dict(),
            "patterns": self.patterns.to_dict(),
        }


@dataclass(frozen=True)
class ExplosionDetection:
    """
    Explosive-move detection (early expansion, momentum runner, swing).

    Attributes:
        symbol: Instrument symbol
        type: EARLY_EXPANSION, MOMENTUM_BUILDING, HIGH_MOMENTUM_RUNNER,
              EXPLOSIVE_RUNNER or SWING_CONTINUATION
        direction: BULLISH / BEARISH
        score: Detector score (count of satisfied conditions, or stage)
        confidence: HIGH / MEDIUM
        stage: Runner stage (1-3), momentum runners only
        details: Detector measurements
    """
    symbol: str
    type: str
    direction: str
    score: int
    confidence: str
    stage: Optional[int] = None
    details: Tuple[Tuple[str, Any], ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "type": self.type,
            "direction": self.direction,
            "score": self.score,
            "confidence": self.confidence,
            "stage": self.stage,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PatternBuckets:
    """Ranked, truncated pattern buckets of one cycle."""
    top_movers: Tuple[ScannedInstrument, ...] = ()
    volume_spikes: Tuple[ScannedInstrument, ...] = ()
    breakouts: Tuple[ScannedInstrument, ...] = ()
    pre_breakouts: Tuple[ScannedInstrument, ...] = ()
    range_expansions: Tuple[ScannedInstrument, ...] = ()
    vwap_deviations: Tuple[ScannedInstrument, ...] = ()

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {f.name: [s.to_dict() for s in getattr(self, f.name)] for f in fields(self)}


def _freeze_counts(counts: Optional[Mapping[str, int]]) -> Mapping[str, int]:
    return MappingProxyType(dict(counts or {}))


@dataclass(frozen=True)
class ScanResult:
    """
    Aggregate of one completed scan cycle.

    Attributes:
        available: False only for the "no data yet" marker
        screen1: Actionable signal verdicts, highest confidence first
        screen2: Explosion detections, highest score first
        buckets: Ranked pattern buckets
        last_scan_time: Cycle completion time (UTC)
        scan_duration_ms: Cycle wall time
        counts: Signal/explosion counts by type (read-only mapping)
        total_scanned: Watch-list size
        successful: Quotes fetched successfully
        filtered: Instruments that passed the liquidity filter
        errors: Per-instrument failures (symbol: reason)
        cycle_id: Monotonic cycle number
        message: Explanation for the unavailable marker
    """
    available: bool
    screen1: Tuple[SignalVerdict, ...] = ()
    screen2: Tuple[ExplosionDetection, ...] = ()
    buckets: PatternBuckets = field(default_factory=PatternBuckets)
    last_scan_time: Optional[datetime] = None
    scan_duration_ms: float = 0.0
    counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    total_scanned: int = 0
    successful: int = 0
    filtered: int = 0
    errors: Tuple[str, ...] = ()
    cycle_id: int = 0
    message: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.counts, MappingProxyType):
            object.__setattr__(self, "counts", _freeze_counts(self.counts))

    @classmethod
    def unavailable(cls, message: str = NO_DATA_MESSAGE) -> "ScanResult":
        """Explicit "no data yet" marker returned before the first completed cycle."""
        return cls(available=False, message=message)

    def age_seconds(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.last_scan_time is None:
            return None
        now = now or datetime.now(timezone.utc)
        return int((now - self.last_scan_time).total_seconds())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API response format."""
        if not self.available:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "cycle_id": self.cycle_id,
            "age": self.age_seconds(),
            "last_scan_time": self.last_scan_time.isoformat() if self.last_scan_time else None,
            "scan_duration_ms": round(self.scan_duration_ms, 1),
            "total_scanned": self.total_scanned,
            "successful": self.successful,
            "filtered": self.filtered,
            "counts": dict(self.counts),
            "screen1": [v.to_dict() for v in self.screen1],
            "screen2": [e.to_dict() for e in self.screen2],
            "buckets": self.buckets.to_dict(),
            "errors": list(self.errors),
        }
