"""
Default configuration for the TradeSight signal engine and scanner.

Scanner cadence, liquidity floor, pattern thresholds, risk-reward gate
and safety overlay limits. Scoring weights live in scoring_profiles.py.
"""
from dataclasses import dataclass, field
from typing import FrozenSet


@dataclass
class ScannerConfig:
    """Scan orchestrator configuration."""
    scan_interval_seconds: float = 60.0
    warmup_delay_seconds: float = 10.0
    min_liquidity_volume: float = 100000.0
    concurrency_workers: int = 4
    scoring_profile: str = "default"

    # Pattern tagging
    volume_spike_ratio: float = 1.5
    breakout_position: float = 0.95
    pre_breakout_position: float = 0.85
    range_expansion_pct: float = 2.0
    vwap_bounce_max_deviation: float = 0.5
    strong_momentum_change_pct: float = 2.0
    strong_momentum_volume_ratio: float = 1.2
    compression_range_pct: float = 1.0
    compression_volume_ratio: float = 1.0

    # Ranking buckets (top-N per bucket)
    top_movers_min_change_pct: float = 1.0
    vwap_deviation_min_pct: float = 1.0
    top_movers_limit: int = 50
    volume_spikes_limit: int = 30
    breakouts_limit: int = 20
    pre_breakouts_limit: int = 20
    range_expansions_limit: int = 20
    vwap_deviations_limit: int = 20

    def __post_init__(self):
        if self.scan_interval_seconds <= 0:
            raise ValueError(f"Scan interval must be positive, got {self.scan_interval_seconds}")
        if self.warmup_delay_seconds < 0:
            raise ValueError(f"Warm-up delay cannot be negative, got {self.warmup_delay_seconds}")
        if self.concurrency_workers < 1:
            raise ValueError(f"Concurrency workers must be >= 1, got {self.concurrency_workers}")
        if self.pre_breakout_position >= self.breakout_position:
            raise ValueError("Pre-breakout position must sit below the breakout position")


@dataclass
class RiskRewardConfig:
    """Risk-reward gate thresholds."""
    min_ratio: float = 1.2
    strong_ratio: float = 2.0
    target_atr_multiple: float = 2.0
    stop_atr_multiple: float = 1.0

    def __post_init__(self):
        if self.min_ratio <= 0:
            raise ValueError(f"Minimum ratio must be positive, got {self.min_ratio}")
        if self.strong_ratio < self.min_ratio:
            raise ValueError("Strong ratio must be >= minimum ratio")
        if self.stop_atr_multiple <= 0:
            raise ValueError("Stop ATR multiple must be positive")


@dataclass
class SafetyConfig:
    """
    Safety overlay limits.

    Attributes:
        max_trades_per_day: Hard overtrade limit (veto)
        overtrade_warning_count: Trade count that starts emitting a warning
        vix_elevated: Volatility index level that emits a warning
        vix_extreme: Volatility index level that vetoes signals
        blocked_expiry_trade_types: Trade types vetoed on expiry day
        block_on_result_day: Veto (instead of warn) on result day
    """
    max_trades_per_day: int = 10
    overtrade_warning_count: int = 3
    vix_elevated: float = 20.0
    vix_extreme: float = 25.0
    blocked_expiry_trade_types: FrozenSet[str] = field(default_factory=lambda: frozenset({"OPTIONS"}))
    block_on_result_day: bool = False

    def __post_init__(self):
        if self.max_trades_per_day < 1:
            raise ValueError(f"Max trades per day must be >= 1, got {self.max_trades_per_day}")
        if self.vix_extreme < self.vix_elevated:
            raise ValueError("Extreme VIX threshold must be >= elevated threshold")


@dataclass
class PanicConfig:
    """Panic monitor triggers."""
    index_drop_pct: float = -2.0
    index_window_minutes: int = 15
    vix_jump_pct: float = 15.0
    min_breadth_pct: float = 20.0
    cooldown_minutes: int = 30


# Default instances
DEFAULT_SCANNER_CONFIG = ScannerConfig()
DEFAULT_RISK_REWARD_CONFIG = RiskRewardConfig()
DEFAULT_SAFETY_CONFIG = SafetyConfig()
DEFAULT_PANIC_CONFIG = PanicConfig()
