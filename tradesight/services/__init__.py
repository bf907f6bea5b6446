"""Services package - evaluation pipeline and scan orchestration for TradeSight."""

from tradesight.services.signal_service import (
    SignalService,
    get_signal_service,
    configure_signal_service,
)

from tradesight.services.screener import (
    build_screen1,
    build_screen2,
    count_results,
)

from tradesight.services.scan_orchestrator import (
    QuoteProvider,
    SafetyContextProvider,
    ScanOrchestrator,
    ScanState,
    WatchlistProvider,
    get_scan_orchestrator,
    configure_scan_orchestrator,
)

__all__ = [
    # Signal Service
    "SignalService",
    "get_signal_service",
    "configure_signal_service",
    # Screens
    "build_screen1",
    "build_screen2",
    "count_results",
    # Scan Orchestrator
    "QuoteProvider",
    "SafetyContextProvider",
    "ScanOrchestrator",
    "ScanState",
    "WatchlistProvider",
    "get_scan_orchestrator",
    "configure_scan_orchestrator",
]
