"""
Momentum context scanner.

Confirms a trend with RSI and volume power:
- confirmed (STRONG): trend + RSI (>= 55 up / <= 45 down) + volume >= 1.2x avg
- active only (WEAK): trend + RSI without the volume
"""

from tradesight.analysis.classifiers import DOWNTREND, UPTREND, trend_from_emas
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import ClassifierVerdict
from tradesight.strategy.scanners.base import AuxiliaryScanner


class MomentumContextScanner(AuxiliaryScanner):
    name = "momentum"
    rsi_bullish = 55.0
    rsi_bearish = 45.0
    volume_power = 1.2

    def scan(self, snapshot: MarketSnapshot, trend: str) -> ClassifierVerdict:
        s = snapshot
        if not (s.close and s.ema20 and s.ema50 and s.rsi and s.volume and s.avg_volume):
            return self.neutral("Insufficient data")

        stacked = trend_from_emas(s.close, s.ema20, s.ema50)
        volume_power = s.volume >= s.avg_volume * self.volume_power
        bullish = stacked == UPTREND and s.rsi >= self.rsi_bullish
        bearish = stacked == DOWNTREND and s.rsi <= self.rsi_bearish
        details = (("trend", stacked), ("volume_power", volume_power), ("rsi", s.rsi))

        if (bullish or bearish) and volume_power:
            return ClassifierVerdict(
                name=self.name, tag="CONFIRMED", strength="STRONG", active=True, confirmed=True,
                direction="BULLISH" if bullish else "BEARISH",
                reason="Trend, RSI and volume aligned", details=details,
            )
        if bullish or bearish:
            return ClassifierVerdict(
                name=self.name, tag="BUILDING", strength="WEAK", active=True,
                direction="BULLISH" if bullish else "BEARISH",
                reason="Trend and RSI aligned, volume lagging", details=details,
            )
        return ClassifierVerdict(
            name=self.name, tag="NONE", strength="WEAK", reason="No momentum alignment", details=details
        )
