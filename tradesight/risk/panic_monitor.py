"""
Panic monitor.

Derives the market-wide panic flag consumed by the safety overlay from
index, volatility index and breadth readings pushed in by a feed:

- index change <= -2% inside a 15 minute window
- volatility index jump >= +15% inside the same window
- advancing breadth below 20%

Once triggered the flag holds for at least the cooldown (30 minutes),
then releases on the first observation where no trigger fires.
"""

from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple
import logging
import threading

from tradesight.shared.config.defaults import DEFAULT_PANIC_CONFIG, PanicConfig

logger = logging.getLogger(__name__)

HISTORY_MINUTES = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PanicMonitor:
    """
    Thread-safe panic state.

    Usage:
        monitor = PanicMonitor()
        monitor.observe(index_price=22100.0, vix=14.2, breadth_pct=45.0)
        if monitor.is_active():
            ...
    """

    def __init__(self, config: PanicConfig = DEFAULT_PANIC_CONFIG):
        self.config = config
        self._lock = threading.Lock()
        self._index_history: Deque[Tuple[datetime, float]] = deque()
        self._vix_history: Deque[Tuple[datetime, float]] = deque()
        self._active = False
        self._reason: Optional[str] = None
        self._triggered_at: Optional[datetime] = None
        self._cooldown_until: Optional[datetime] = None

    def observe(
        self,
        index_price: Optional[float] = None,
        vix: Optional[float] = None,
        breadth_pct: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Record readings and re-evaluate the panic state.

        Returns:
            True while panic mode is active
        """
        now = now or _now()
        with self._lock:
            cutoff = now - timedelta(minutes=HISTORY_MINUTES)
            if index_price:
                self._index_history.append((now, index_price))
            if vix:
                self._vix_history.append((now, vix))
            for history in (self._index_history, self._vix_history):
                while history and history[0][0] <= cutoff:
                    history.popleft()

            if self._cooldown_until and now < self._cooldown_until:
                return self._active

            reasons = self._check(now, breadth_pct)
            if reasons and not self._active:
                self._trigger(" | ".join(reasons), now)
            elif not reasons and self._active:
                self._release(now)
            return self._active

    def _window_change(self, history: Deque[Tuple[datetime, float]], now: datetime) -> Optional[float]:
        cutoff = now - timedelta(minutes=self.config.index_window_minutes)
        recent = [value for ts, value in history if ts > cutoff]
        if len(recent) < 2 or not recent[0]:
            return None
        return (recent[-1] - recent[0]) / recent[0] * 100

    def _check(self, now: datetime, breadth_pct: Optional[float]) -> List[str]:
        cfg = self.config
        reasons: List[str] = []

        index_change = self._window_change(self._index_history, now)
        if index_change is not None and index_change <= cfg.index_drop_pct:
            reasons.append(f"Index {index_change:.2f}% in {cfg.index_window_minutes}min")

        vix_change = self._window_change(self._vix_history, now)
        if vix_change is not None and vix_change >= cfg.vix_jump_pct:
            reasons.append(f"VIX +{vix_change:.2f}% spike")

        if breadth_pct is not None and breadth_pct < cfg.min_breadth_pct:
            reasons.append(f"Breadth {breadth_pct:.1f}% < {cfg.min_breadth_pct}%")

        return reasons

    def _trigger(self, reason: str, now: datetime) -> None:
        self._active = True
        self._reason = reason
        self._triggered_at = now
        self._cooldown_until = now + timedelta(minutes=self.config.cooldown_minutes)
        logger.warning("🚨 PANIC MODE: %s (cooldown until %s)", reason, self._cooldown_until.isoformat())

    def _release(self, now: datetime) -> None:
        minutes = (now - self._triggered_at).total_seconds() / 60 if self._triggered_at else 0
        logger.info("✅ Panic mode released after %.0f minutes", minutes)
        self._active = False
        self._reason = None
        self._triggered_at = None
        self._cooldown_until = None

    def trigger(self, reason: str = "Manual trigger", now: Optional[datetime] = None) -> Dict[str, Any]:
        with self._lock:
            self._trigger(reason, now or _now())
        return self.status(now)

    def release(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        with self._lock:
            if self._active:
                self._release(now or _now())
            self._cooldown_until = None
        return self.status(now)

    def is_active(self) -> bool:
        with self._lock:
            return self._active

    def should_allow_signals(self) -> Dict[str, Any]:
        with self._lock:
            if self._active:
                return {"allowed": False, "reason": "GLOBAL_SIGNAL_BLOCKED: PANIC_MODE", "detail": self._reason}
            return {"allowed": True, "reason": "Market conditions normal"}

    def status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or _now()
        with self._lock:
            remaining = 0.0
            if self._cooldown_until:
                remaining = max(0.0, (self._cooldown_until - now).total_seconds() / 60)
            return {
                "panic_mode": self._active,
                "reason": self._reason,
                "triggered_at": self._triggered_at.isoformat() if self._triggered_at else None,
                "cooldown_remaining_minutes": round(remaining),
                "index_history_count": len(self._index_history),
                "vix_history_count": len(self._vix_history),
            }
