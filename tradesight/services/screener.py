"""
Screen builders for a scan cycle.

screen1: actionable signal verdicts, highest confidence first
screen2: explosion detections, highest score first
counts:  signal and explosion counts by type
"""

from collections import Counter
from typing import Dict, Iterable, Tuple

from tradesight.analysis.explosions import EXPLOSION_TYPES
from tradesight.shared.models.scan import ExplosionDetection
from tradesight.shared.models.verdicts import CONFIDENCE_ORDER, SIGNAL_TYPES, SignalVerdict


def build_screen1(verdicts: Iterable[SignalVerdict]) -> Tuple[SignalVerdict, ...]:
    """Actionable verdicts ordered VERY_HIGH > HIGH > MEDIUM > LOW (stable for ties)."""
    actionable = [v for v in verdicts if v.actionable]
    return tuple(sorted(actionable, key=lambda v: CONFIDENCE_ORDER.get(v.confidence, 0), reverse=True))


def build_screen2(explosions: Iterable[ExplosionDetection]) -> Tuple[ExplosionDetection, ...]:
    return tuple(sorted(explosions, key=lambda e: e.score, reverse=True))


def count_results(
    verdicts: Iterable[SignalVerdict],
    explosions: Iterable[ExplosionDetection],
) -> Dict[str, int]:
    """
    Signal counts keyed by signal type plus explosion counts keyed by
    explosion type, every known type present (zero when absent).
    """
    signals = Counter(v.signal for v in verdicts)
    blasts = Counter(e.type for e in explosions)

    counts = {signal: signals.get(signal, 0) for signal in SIGNAL_TYPES}
    counts.update({kind: blasts.get(kind, 0) for kind in EXPLOSION_TYPES})
    counts["actionable"] = sum(n for s, n in signals.items() if s != "WAIT")
    counts["explosions"] = sum(blasts.values())
    return counts
