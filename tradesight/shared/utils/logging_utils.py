"""
Logging utilities for the evaluation pipeline and scan orchestrator.

Provides consistent, structured logging helpers for tracking pipeline
flow, rejections, timing and cycle summaries across all components.
"""

import time
from typing import Any, Dict, Optional

from loguru import logger


def log_pipeline_stage(
    stage_name: str,
    symbol: str,
    status: str = "START",
    data: Optional[Dict[str, Any]] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log a pipeline stage with consistent formatting.

    Args:
        stage_name: Name of the stage (e.g., "SCORING", "RISK_REWARD", "SAFETY")
        symbol: Instrument being processed
        status: Stage status ("START", "COMPLETE", "FAILED")
        data: Optional additional data to log
        level: Log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    log_func = getattr(logger, level.lower(), logger.debug)

    if status == "START":
        log_func(f"🔄 [{stage_name}] Starting for {symbol}")
    elif status == "COMPLETE":
        duration_msg = f" ({data.get('duration_ms', 0):.0f}ms)" if data and 'duration_ms' in data else ""
        log_func(f"✅ [{stage_name}] Completed for {symbol}{duration_msg}")
        if data:
            for key, value in data.items():
                if key != 'duration_ms':
                    log_func(f"   └─ {key}: {value}")
    elif status == "FAILED":
        log_func(f"❌ [{stage_name}] Failed for {symbol}")
        if data:
            log_func(f"   └─ Reason: {data.get('reason', 'Unknown')}")
            if 'error' in data:
                log_func(f"   └─ Error: {data['error']}")


def log_rejection(
    symbol: str,
    stage: str,
    reason: str,
    diagnostics: Optional[Dict[str, Any]] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log a signal rejection (guard, gate or veto) with diagnostic context.

    Args:
        symbol: Instrument symbol
        stage: Pipeline stage where the rejection occurred
        reason: Human-readable rejection reason
        diagnostics: Detailed diagnostic data
        level: Log level
    """
    log_func = getattr(logger, level.lower(), logger.debug)

    log_func(f"🚫 REJECTED: {symbol} at {stage}")
    log_func(f"   └─ Reason: {reason}")

    if diagnostics:
        log_func(f"   └─ Diagnostics:")
        for key, value in diagnostics.items():
            if isinstance(value, float):
                log_func(f"      • {key}: {value:.4f}")
            else:
                log_func(f"      • {key}: {value}")


def log_timing(
    operation_name: str,
    duration_ms: float,
    symbol: Optional[str] = None,
    level: str = "DEBUG"
) -> None:
    """
    Log timing information for performance monitoring.

    Args:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds
        symbol: Optional symbol context
        level: Log level
    """
    log_func = getattr(logger, level.lower(), logger.debug)

    symbol_str = f" [{symbol}]" if symbol else ""

    if duration_ms < 100:
        emoji = "⚡"
    elif duration_ms < 1000:
        emoji = "⏱️"
    else:
        emoji = "🐌"

    log_func(f"{emoji} {operation_name}{symbol_str}: {duration_ms:.0f}ms")


def format_scan_summary(
    symbols_scanned: int,
    signals_generated: int,
    explosions_detected: int,
    duration_sec: float,
    rejection_breakdown: Optional[Dict[str, int]] = None
) -> str:
    """
    Format a scan cycle completion summary.

    Args:
        symbols_scanned: Instruments evaluated after the liquidity filter
        signals_generated: Actionable signals (screen 1)
        explosions_detected: Explosion detections (screen 2)
        duration_sec: Total cycle duration in seconds
        rejection_breakdown: Optional dict of failure reasons and counts

    Returns:
        Formatted summary string
    """
    hit_rate = (signals_generated / symbols_scanned * 100) if symbols_scanned > 0 else 0

    lines = [
        "=" * 60,
        "📊 SCAN SUMMARY",
        "=" * 60,
        f"Symbols Scanned:     {symbols_scanned}",
        f"✅ Actionable Signals: {signals_generated} ({hit_rate:.1f}%)",
        f"💥 Explosions:         {explosions_detected}",
        f"⏱️  Total Duration:     {duration_sec:.2f}s",
    ]

    if rejection_breakdown:
        lines.append("")
        lines.append("Failure Breakdown:")
        for reason, count in sorted(rejection_breakdown.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"  • {reason}: {count}")

    lines.append("=" * 60)

    return "\n".join(lines)


def log_pattern_summary(bucket_sizes: Dict[str, int]) -> None:
    """
    Log ranked pattern bucket sizes after a cycle.

    Args:
        bucket_sizes: Dict of bucket name -> entry count
    """
    logger.info("📐 Pattern buckets:")
    for bucket, count in bucket_sizes.items():
        if count > 0:
            logger.info(f"   └─ {bucket}: {count}")


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str, symbol: Optional[str] = None):
        self.operation_name = operation_name
        self.symbol = symbol
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.time() - self.start_time) * 1000
        log_timing(self.operation_name, self.duration_ms, self.symbol)
        return False


def time_operation(operation_name: str, symbol: Optional[str] = None):
    """
    Context manager for timing operations.

    Usage:
        with time_operation("fetch_quotes"):
            # ... operation ...
    """
    return TimingContext(operation_name, symbol)
