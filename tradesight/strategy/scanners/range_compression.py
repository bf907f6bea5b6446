"""Range compression scanner: narrowing bars before expansion."""

from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict
from tradesight.strategy.scanners.base import AuxiliaryScanner


class RangeCompressionScanner(AuxiliaryScanner):
    name = "range_compression"
    lookback = 15

    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        highs, lows = snapshot.highs, snapshot.lows
        if len(highs) < self.lookback or len(lows) < self.lookback:
            return self.neutral("Insufficient data")

        ranges = [h - l for h, l in zip(highs[-self.lookback:], lows[-self.lookback:])]
        recent5, prev10 = ranges[-5:], ranges[:-5]
        recent_avg = sum(recent5) / 5
        prev_avg = sum(prev10) / 10
        ratio = recent_avg / prev_avg if prev_avg > 0 else 1.0

        narrowing = sum(1 for prev, cur in zip(recent5, recent5[1:]) if cur < prev)

        consolidating = False
        closes = snapshot.closes
        if len(closes) >= 10:
            lo, hi = min(closes[-10:]), max(closes[-10:])
            consolidating = lo > 0 and (hi - lo) / lo * 100 < 2

        score = 0
        if ratio < 0.6:
            score += 4
        elif ratio < 0.75:
            score += 2
        if narrowing >= 3:
            score += 2
        if consolidating:
            score += 2

        details = (
            ("compression_ratio", round(ratio, 2)),
            ("narrowing_candles", narrowing),
            ("consolidating", consolidating),
        )

        if score >= 6:
            return ClassifierVerdict(
                name=self.name, tag="TIGHT_COMPRESSION", strength="HIGH", active=True, score=score,
                reason="Explosive move imminent", details=details,
            )
        if score >= 4:
            return ClassifierVerdict(
                name=self.name, tag="MODERATE_COMPRESSION", strength="MEDIUM", active=True,
                score=score, reason="Building energy", details=details,
            )
        return ClassifierVerdict(
            name=self.name, tag="NO_COMPRESSION", score=score,
            reason="No compression detected", details=details,
        )
