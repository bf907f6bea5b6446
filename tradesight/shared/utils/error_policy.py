"""
Error policy - every path ends in a well-formed verdict or result.

Classifiers report missing inputs as neutral verdicts; exceptions are
reserved for malformed construction and for collaborator failures that
the orchestrator converts into logged, counted cycle failures.
"""

from typing import Optional

from tradesight.shared.models.verdicts import (
    BEARISH_SIGNALS,
    BULLISH_SIGNALS,
    WAIT,
    SignalVerdict,
)


class InsufficientDataError(ValueError):
    """Raised when an indicator calculation lacks enough history."""


class InvalidSnapshotError(ValueError):
    """Raised when a raw quote cannot be turned into a MarketSnapshot."""


class UpstreamFetchError(Exception):
    """Raised when the batched quote fetch fails for a whole cycle."""


class IncompleteVerdictError(Exception):
    """Raised when a SignalVerdict violates the pipeline's output contract."""


def enforce_complete_verdict(verdict: Optional[SignalVerdict]) -> None:
    """
    Ensure a verdict is complete and internally consistent.

    Raises:
        IncompleteVerdictError: If the verdict is missing or inconsistent
    """
    if verdict is None:
        raise IncompleteVerdictError("SignalVerdict is None")

    if not verdict.symbol:
        raise IncompleteVerdictError("Verdict has no symbol")

    if not verdict.reason:
        raise IncompleteVerdictError(f"{verdict.symbol}: verdict reason cannot be empty")

    if verdict.blocked_by and verdict.signal != WAIT:
        raise IncompleteVerdictError(
            f"{verdict.symbol}: vetoed verdict must be WAIT, got {verdict.signal}"
        )

    rr = verdict.risk_reward
    if rr is not None and verdict.signal != WAIT:
        if not rr.acceptable:
            raise IncompleteVerdictError(
                f"{verdict.symbol}: {verdict.signal} carries unacceptable R:R {rr.ratio}"
            )
        if rr.direction == "BUY" and verdict.signal not in BULLISH_SIGNALS:
            raise IncompleteVerdictError(f"{verdict.symbol}: BUY-side targets on {verdict.signal}")
        if rr.direction == "SELL" and verdict.signal not in BEARISH_SIGNALS:
            raise IncompleteVerdictError(f"{verdict.symbol}: SELL-side targets on {verdict.signal}")
