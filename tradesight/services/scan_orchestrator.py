"""
Scan Orchestrator - periodic market scan over a watch-list.

Owns the process-wide scan lifecycle:

    IDLE -> (start) -> STARTING -> RUNNING -> (stop) -> STOPPING -> IDLE

Each cycle:
1. Fetch batched quotes for the watch-list (fallible, non-fatal)
2. Drop instruments below the liquidity floor
3. Evaluate every survivor through the signal pipeline (thread pool)
4. Compute metrics, pattern tags and explosion detections
5. Rank pattern buckets, build screens and counts
6. Swap the cached ScanResult atomically

A failed fetch logs, counts the cycle as failed and keeps the previous
result (stale-but-available over empty). Only one cycle runs at a time:
a cycle requested while another is in flight joins it.
"""

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from tradesight.analysis.explosions import DailyContext, detect_explosions
from tradesight.analysis.patterns import get_top_candidates, rank_patterns, scan_instrument
from tradesight.risk.panic_monitor import PanicMonitor
from tradesight.risk.safety_overlay import check_safety_context
from tradesight.services.screener import build_screen1, build_screen2, count_results
from tradesight.services.signal_service import SignalService
from tradesight.shared.config.defaults import DEFAULT_SCANNER_CONFIG, ScannerConfig
from tradesight.shared.config.scoring_profiles import get_profile
from tradesight.shared.config.watchlist import StaticWatchlistProvider
from tradesight.shared.models.scan import (
    ExplosionDetection,
    QuoteResult,
    ScanCycleState,
    ScannedInstrument,
    ScanResult,
)
from tradesight.shared.models.snapshot import MarketSnapshot
from tradesight.shared.models.verdicts import SafetyContext, SignalVerdict
from tradesight.shared.utils.error_policy import InvalidSnapshotError, UpstreamFetchError
from tradesight.shared.utils.logging_utils import format_scan_summary, time_operation
from tradesight.strategy.scanners.base import ScannerSuite

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LOG = 1000


class QuoteProvider(Protocol):
    """Batched quote fetch keyed by symbol list."""

    def fetch_quotes(self, symbols: Sequence[str]) -> Mapping[str, QuoteResult]:
        ...


class WatchlistProvider(Protocol):
    def get_watchlist(self) -> Sequence[str]:
        ...


class SafetyContextProvider(Protocol):
    """Supplies the contextual risk flags for the current cycle."""

    def get_safety_context(self) -> SafetyContext:
        ...


@dataclass
class ScanState:
    """
    The orchestrator's only mutable state.

    Every transition and the cached-result swap happen under `lock`, so
    readers always see either the previous or the new result.
    """
    state: ScanCycleState = ScanCycleState.IDLE
    watchlist: Tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    cached_result: ScanResult = field(default_factory=ScanResult.unavailable)
    cycles: int = 0
    failed_cycles: int = 0
    last_error: Optional[str] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def transition(self, expected: Tuple[ScanCycleState, ...], new: ScanCycleState) -> Optional[ScanCycleState]:
        """
        Move to `new` if the current state is one of `expected`.

        Returns:
            None on success, otherwise the state that blocked the move
        """
        with self.lock:
            if self.state not in expected:
                return self.state
            self.state = new
            return None

    def next_cycle_id(self) -> int:
        with self.lock:
            self.cycles += 1
            return self.cycles

    def record_failure(self, error: str) -> None:
        with self.lock:
            self.failed_cycles += 1
            self.last_error = error

    def swap(self, result: ScanResult) -> bool:
        """Replace the cached result unless a newer cycle already landed."""
        with self.lock:
            current = self.cached_result
            if current.available and current.cycle_id > result.cycle_id:
                return False
            self.cached_result = result
            self.last_error = None
            return True


@dataclass(frozen=True)
class _InstrumentOutcome:
    verdict: Optional[SignalVerdict]
    scanned: ScannedInstrument
    explosions: Tuple[ExplosionDetection, ...]


class ScanOrchestrator:
    """
    Periodic scan lifecycle with a cached result.

    Usage:
        orchestrator = configure_scan_orchestrator(quote_provider=provider)
        await orchestrator.start()
        ...
        result = orchestrator.get_cached_result()
        await orchestrator.stop()
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        watchlist_provider: Optional[WatchlistProvider] = None,
        signal_service: Optional[SignalService] = None,
        config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
        safety_provider: Optional[SafetyContextProvider] = None,
        state: Optional[ScanState] = None,
        panic_monitor: Optional[PanicMonitor] = None,
    ):
        self.quote_provider = quote_provider
        self.watchlist_provider = watchlist_provider or StaticWatchlistProvider()
        self.config = config
        self.signal_service = signal_service or SignalService(
            profile=get_profile(config.scoring_profile), scanners=ScannerSuite.default()
        )
        self.safety_provider = safety_provider
        self.state = state or ScanState()
        self.panic_monitor = panic_monitor

        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None
        self.activity_log: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Dict[str, Any]:
        """
        Start periodic scanning.

        A start while STARTING or RUNNING is rejected, not queued.
        """
        blocked = self.state.transition((ScanCycleState.IDLE,), ScanCycleState.STARTING)
        if blocked == ScanCycleState.STARTING:
            return {"success": False, "message": "Start already in progress"}
        if blocked == ScanCycleState.RUNNING:
            return {"success": False, "message": "Scanner already active"}
        if blocked == ScanCycleState.STOPPING:
            return {"success": False, "message": "Scanner is stopping"}

        loop = asyncio.get_running_loop()
        try:
            watchlist = await loop.run_in_executor(None, self.watchlist_provider.get_watchlist)
        except Exception as e:
            logger.error("❌ Failed to load watch-list: %s", e)
            self.state.transition((ScanCycleState.STARTING,), ScanCycleState.IDLE)
            return {"success": False, "message": f"Failed to load watch-list: {e}"}

        with self.state.lock:
            if self.state.state != ScanCycleState.STARTING:
                # stop() arrived while the watch-list was loading
                return {"success": False, "message": "Start cancelled"}
            self.state.watchlist = tuple(dict.fromkeys(watchlist))
            self.state.started_at = datetime.now(timezone.utc)
            self._loop_task = asyncio.create_task(self._scan_loop())
            self.state.state = ScanCycleState.RUNNING

        self._log_activity("scanner_started", {"watchlist_size": len(self.state.watchlist)})
        logger.info("🚀 Scanner started: %d symbols, every %ss (first cycle in %ss)",
                    len(self.state.watchlist), self.config.scan_interval_seconds,
                    self.config.warmup_delay_seconds)

        return {
            "success": True,
            "message": "Scanner started",
            "interval_seconds": self.config.scan_interval_seconds,
            "watchlist_size": len(self.state.watchlist),
        }

    async def stop(self) -> Dict[str, Any]:
        """
        Stop periodic scanning.

        Clears the timer; a cycle already in flight finishes and still
        lands in the cache.
        """
        blocked = self.state.transition(
            (ScanCycleState.RUNNING, ScanCycleState.STARTING), ScanCycleState.STOPPING
        )
        if blocked == ScanCycleState.IDLE:
            return {"success": False, "message": "Scanner not running"}
        if blocked == ScanCycleState.STOPPING:
            return {"success": False, "message": "Stop already in progress"}

        task, self._loop_task = self._loop_task, None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        with self.state.lock:
            self.state.state = ScanCycleState.IDLE
            self.state.started_at = None

        self._log_activity("scanner_stopped", {"cycles": self.state.cycles})
        logger.info("🛑 Scanner stopped after %d cycles", self.state.cycles)

        return {"success": True, "message": "Scanner stopped", "cycles": self.state.cycles}

    async def _scan_loop(self):
        """Background loop: warm-up, then one cycle per interval."""
        await asyncio.sleep(self.config.warmup_delay_seconds)

        while self.state.state == ScanCycleState.RUNNING:
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error("Scan loop error: %s", e)
                self._log_activity("scan_error", {"error": str(e)})

            await asyncio.sleep(self.config.scan_interval_seconds)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    @property
    def cycle_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def run_cycle(self) -> ScanResult:
        """
        Run one scan cycle now, or join the one already in flight.

        Returns:
            The cached result after the cycle (the previous one if it failed)
        """
        if not self.cycle_in_flight:
            self._inflight = asyncio.ensure_future(self._execute_cycle())
        else:
            logger.debug("⏳ Scan cycle already in flight - joining it")
        return await asyncio.shield(self._inflight)

    async def _execute_cycle(self) -> ScanResult:
        cycle_id = self.state.next_cycle_id()
        started = time.perf_counter()
        loop = asyncio.get_running_loop()

        try:
            watchlist = self.state.watchlist
            if not watchlist:
                watchlist = tuple(dict.fromkeys(
                    await loop.run_in_executor(None, self.watchlist_provider.get_watchlist)
                ))
            quotes = await self._fetch_quotes(watchlist)
            safety = await loop.run_in_executor(None, self._safety_context)
            self._check_safety(cycle_id, safety)
            result = await loop.run_in_executor(
                None, self._process, cycle_id, watchlist, quotes, safety, started
            )
        except Exception as e:
            kind = "quote fetch failed" if isinstance(e, UpstreamFetchError) else "failed"
            logger.error("❌ Cycle %d %s: %s - keeping previous results", cycle_id, kind, e)
            self.state.record_failure(str(e))
            self._log_activity("cycle_failed", {"cycle_id": cycle_id, "error": str(e)})
            return self.state.cached_result

        if self.state.swap(result):
            self._log_activity("cycle_completed", {
                "cycle_id": cycle_id,
                "signals": len(result.screen1),
                "explosions": len(result.screen2),
            })
        return self.state.cached_result

    async def _fetch_quotes(self, symbols: Sequence[str]) -> Mapping[str, QuoteResult]:
        loop = asyncio.get_running_loop()
        try:
            with time_operation("fetch_quotes"):
                quotes = await loop.run_in_executor(None, self.quote_provider.fetch_quotes, list(symbols))
        except Exception as e:
            raise UpstreamFetchError(f"Batched quote fetch failed: {e}") from e
        if quotes is None:
            raise UpstreamFetchError("Batched quote fetch returned nothing")
        return quotes

    def _check_safety(self, cycle_id: int, context: SafetyContext):
        report = check_safety_context(context, self.signal_service.overlay.config)
        if not report["safe"]:
            logger.warning("⚠️ Cycle %d safety caution: %s", cycle_id, "; ".join(report["issues"]))
        self._log_activity("safety_check", {"cycle_id": cycle_id, **report})

    def _safety_context(self) -> SafetyContext:
        context = SafetyContext() if self.safety_provider is None else self.safety_provider.get_safety_context()
        if self.panic_monitor is None:
            return context
        # VIX readings from the context feed the monitor's spike window
        if self.panic_monitor.observe(vix=context.volatility_index) and not context.panic_active:
            logger.warning("🚨 Panic mode active - directional signals will be vetoed")
            return replace(context, panic_active=True)
        return context

    def _process(
        self,
        cycle_id: int,
        watchlist: Sequence[str],
        quotes: Mapping[str, QuoteResult],
        safety: SafetyContext,
        started: float,
    ) -> ScanResult:
        errors: List[str] = []
        snapshots: List[Tuple[MarketSnapshot, Optional[DailyContext]]] = []
        successful = 0

        for symbol in watchlist:
            quote = quotes.get(symbol)
            if quote is None or not quote.success:
                errors.append(f"{symbol}: {(quote.error or 'fetch failed') if quote else 'no quote'}")
                continue
            successful += 1
            try:
                snapshot = MarketSnapshot.from_raw(quote.data, symbol=symbol)
            except InvalidSnapshotError as e:
                errors.append(f"{symbol}: {e}")
                continue
            if snapshot.volume is None or snapshot.volume < self.config.min_liquidity_volume:
                continue
            snapshots.append((snapshot, DailyContext.from_raw(quote.data)))

        outcomes: Dict[str, _InstrumentOutcome] = {}
        with ThreadPoolExecutor(max_workers=self.config.concurrency_workers) as executor:
            futures = {
                executor.submit(self._safe_evaluate, snapshot, daily, safety): snapshot.symbol
                for snapshot, daily in snapshots
            }
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is not None:
                    outcomes[futures[future]] = outcome

        # Watch-list order keeps ranking ties deterministic
        ordered = [outcomes[s.symbol] for s, _ in snapshots if s.symbol in outcomes]
        verdicts = [o.verdict for o in ordered if o.verdict is not None]
        explosions = [e for o in ordered for e in o.explosions]
        failed = len(snapshots) - sum(1 for o in ordered if o.verdict is not None)
        if failed:
            errors.append(f"{failed} instrument(s) failed evaluation")

        buckets = rank_patterns([o.scanned for o in ordered], self.config)
        screen1 = build_screen1(verdicts)
        screen2 = build_screen2(explosions)
        duration_ms = (time.perf_counter() - started) * 1000

        logger.info("\n%s", format_scan_summary(
            symbols_scanned=len(snapshots),
            signals_generated=len(screen1),
            explosions_detected=len(screen2),
            duration_sec=duration_ms / 1000,
        ))

        return ScanResult(
            available=True,
            screen1=screen1,
            screen2=screen2,
            buckets=buckets,
            last_scan_time=datetime.now(timezone.utc),
            scan_duration_ms=duration_ms,
            counts=count_results(verdicts, explosions),
            total_scanned=len(watchlist),
            successful=successful,
            filtered=len(snapshots),
            errors=tuple(errors),
            cycle_id=cycle_id,
        )

    def _safe_evaluate(
        self,
        snapshot: MarketSnapshot,
        daily: Optional[DailyContext],
        safety: SafetyContext,
    ) -> Optional[_InstrumentOutcome]:
        """Evaluate one instrument; failures are logged and yield no verdict."""
        try:
            verdict: Optional[SignalVerdict] = self.signal_service.evaluate(snapshot, safety)
        except Exception as e:
            logger.warning("⚠️  %s: evaluation failed: %s", snapshot.symbol, e)
            verdict = None
        try:
            scanned = scan_instrument(snapshot, self.config)
            explosions = tuple(detect_explosions(snapshot, daily))
        except Exception as e:
            logger.warning("⚠️  %s: pattern scan failed: %s", snapshot.symbol, e)
            return None
        return _InstrumentOutcome(verdict=verdict, scanned=scanned, explosions=explosions)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_cached_result(self) -> ScanResult:
        """Last completed cycle, or the explicit "no data yet" marker. Never blocks on a cycle."""
        with self.state.lock:
            return self.state.cached_result

    def get_top_candidates(self, limit: int = 30) -> List[Dict[str, Any]]:
        result = self.get_cached_result()
        if not result.available:
            return []
        return get_top_candidates(result.buckets, limit)

    def status(self) -> Dict[str, Any]:
        with self.state.lock:
            s = self.state
            result = s.cached_result
            uptime = (datetime.now(timezone.utc) - s.started_at).total_seconds() if s.started_at else 0
            return {
                "state": s.state.value,
                "running": s.state == ScanCycleState.RUNNING,
                "started_at": s.started_at.isoformat() if s.started_at else None,
                "uptime_seconds": int(uptime),
                "watchlist_size": len(s.watchlist),
                "interval_seconds": self.config.scan_interval_seconds,
                "cycles": s.cycles,
                "failed_cycles": s.failed_cycles,
                "last_error": s.last_error,
                "cycle_in_flight": self.cycle_in_flight,
                "last_scan_time": result.last_scan_time.isoformat() if result.last_scan_time else None,
                "has_results": result.available,
                "panic_mode": self.panic_monitor.is_active() if self.panic_monitor else False,
            }

    def _log_activity(self, event_type: str, data: Dict[str, Any]):
        self.activity_log.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "data": data,
        })
        if len(self.activity_log) > MAX_ACTIVITY_LOG:
            self.activity_log = self.activity_log[-500:]


# Singleton
_scan_orchestrator: Optional[ScanOrchestrator] = None


def get_scan_orchestrator() -> Optional[ScanOrchestrator]:
    """Get the singleton ScanOrchestrator instance."""
    return _scan_orchestrator


def configure_scan_orchestrator(
    quote_provider: QuoteProvider,
    watchlist_provider: Optional[WatchlistProvider] = None,
    signal_service: Optional[SignalService] = None,
    config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
    safety_provider: Optional[SafetyContextProvider] = None,
    panic_monitor: Optional[PanicMonitor] = None,
) -> ScanOrchestrator:
    """
    Configure and return the singleton ScanOrchestrator.

    Raises:
        ValueError: If the current orchestrator is not IDLE
    """
    global _scan_orchestrator
    if _scan_orchestrator is not None and _scan_orchestrator.state.state != ScanCycleState.IDLE:
        raise ValueError("Cannot reconfigure the scan orchestrator while it is running. Stop it first.")
    _scan_orchestrator = ScanOrchestrator(
        quote_provider=quote_provider,
        watchlist_provider=watchlist_provider,
        signal_service=signal_service,
        config=config,
        safety_provider=safety_provider,
        panic_monitor=panic_monitor,
    )
    return _scan_orchestrator
