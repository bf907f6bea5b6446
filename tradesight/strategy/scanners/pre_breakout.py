"""
Pre-breakout scanner.

Spots a stock coiling under resistance: recent bar ranges compressed
against the 10-bar average, volume holding up, price close to
resistance and a run of higher lows.
"""

from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict
from tradesight.strategy.scanners.base import AuxiliaryScanner


class PreBreakoutScanner(AuxiliaryScanner):
    """
    Score:
        compressed (recent 3-bar range < 70% of 10-bar avg)  +3
        volume building (last-5 avg > 90% of avg volume)      +2
        near resistance (0-1.5%, or 0-2% of the 10-bar high)  +2
        >= 2 higher lows across the last 5 bars                +2
        deep compression (< 50%)                              +1
    Active at score >= 4 (MEDIUM), HIGH at >= 6. No compression, no setup.
    """

    name = "pre_breakout"
    lookback = 10

    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        close = snapshot.close
        highs, lows = snapshot.highs, snapshot.lows
        if not close or len(highs) < self.lookback or len(lows) < self.lookback:
            return self.neutral("Insufficient data")

        last_highs = highs[-self.lookback:]
        last_lows = lows[-self.lookback:]
        ranges = [h - l for h, l in zip(last_highs, last_lows)]
        avg_range = sum(ranges) / len(ranges)
        recent_avg = sum(ranges[-3:]) / 3
        compression_ratio = recent_avg / avg_range if avg_range > 0 else 1.0

        if compression_ratio >= 0.7:
            return ClassifierVerdict(
                name=self.name, tag="NO_SETUP", reason="No compression",
                details=(("compression_ratio", round(compression_ratio, 2)),),
            )

        volume_building = False
        volumes = snapshot.volumes
        if len(volumes) >= 5 and snapshot.avg_volume:
            volume_building = sum(volumes[-5:]) / 5 > snapshot.avg_volume * 0.9

        if snapshot.resistance:
            dist = (snapshot.resistance - close) / close * 100
            near_resistance = 0 <= dist <= 1.5
        else:
            dist = (max(last_highs) - close) / close * 100
            near_resistance = 0 <= dist <= 2

        recent_lows = last_lows[-5:]
        higher_lows = sum(1 for prev, cur in zip(recent_lows, recent_lows[1:]) if cur > prev)

        score = 3
        if volume_building:
            score += 2
        if near_resistance:
            score += 2
        if higher_lows >= 2:
            score += 2
        if compression_ratio < 0.5:
            score += 1

        details = (
            ("compression_ratio", round(compression_ratio, 2)),
            ("volume_building", volume_building),
            ("near_resistance", near_resistance),
            ("higher_lows", higher_lows),
        )

        if score >= 6:
            return ClassifierVerdict(
                name=self.name, tag="PRE_BREAKOUT", strength="HIGH", active=True, score=score,
                reason="Stock coiling - breakout near", details=details,
            )
        if score >= 4:
            return ClassifierVerdict(
                name=self.name, tag="PRE_BREAKOUT", strength="MEDIUM", active=True, score=score,
                reason="Possible breakout forming", details=details,
            )
        return ClassifierVerdict(
            name=self.name, tag="NO_SETUP", score=score, reason="Low setup strength", details=details
        )
