"""Volume buildup detector: quiet accumulation ahead of a move."""

from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict
from tradesight.strategy.scanners.base import AuxiliaryScanner


class VolumeBuildupScanner(AuxiliaryScanner):
    """
    Score:
        increasing (last-5 avg > 1.1x the 3 bars before)     +2
        above average (last-5 avg > 85% of avg volume)       +2
        elevated (>= 3 of last 5 bars > 90% of avg volume)   +2
        accumulation (10-bar change in [-2%, 3%], rising)    +3
    ACCUMULATION (HIGH) at >= 7, VOLUME_BUILDUP (MEDIUM) at >= 5.
    """

    name = "volume_buildup"

    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        volumes, avg_volume = snapshot.volumes, snapshot.avg_volume
        if len(volumes) < 10 or not avg_volume:
            return self.neutral("Insufficient data")

        last10 = volumes[-10:]
        last5 = last10[-5:]
        prev3 = last10[-8:-5]
        avg5 = sum(last5) / 5
        avg3 = sum(prev3) / 3

        increasing = avg5 > avg3 * 1.1
        above_avg = avg5 > avg_volume * 0.85
        elevated = sum(1 for v in last5 if v > avg_volume * 0.9) >= 3

        accumulation = False
        closes = snapshot.closes
        if len(closes) >= 10 and closes[-10]:
            change = (closes[-1] - closes[-10]) / closes[-10] * 100
            accumulation = -2 <= change <= 3 and increasing

        score = (2 if increasing else 0) + (2 if above_avg else 0) + (2 if elevated else 0) \
            + (3 if accumulation else 0)
        details = (
            ("volume_ratio", round(avg5 / avg_volume, 2)),
            ("increasing", increasing),
            ("elevated", elevated),
            ("accumulation", accumulation),
        )

        if score >= 7:
            return ClassifierVerdict(
                name=self.name, tag="ACCUMULATION", strength="HIGH", active=True, score=score,
                reason="Volume accumulation under a flat price", details=details,
            )
        if score >= 5:
            return ClassifierVerdict(
                name=self.name, tag="VOLUME_BUILDUP", strength="MEDIUM", active=True, score=score,
                reason="Volume building", details=details,
            )
        return ClassifierVerdict(
            name=self.name, tag="NO_BUILDUP", score=score, reason="No buildup", details=details
        )
