"""
TradeSight CLI - Command-line interface.

Evaluate a single instrument from a quote file or candle CSV, run one
scan cycle over a file of quotes, or list the scoring profiles.
"""
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import pandas as pd
import typer

from tradesight.shared.models.scan import QuoteResult

app = typer.Typer(help="📈 TradeSight - Multi-factor trade signal engine")


class JsonQuoteProvider:
    """Quote provider backed by a JSON file: {symbol: {ltp, prevClose, ...}}."""

    def __init__(self, path: Path):
        self.path = path

    def _load(self) -> Dict[str, Any]:
        with open(self.path) as f:
            return json.load(f)

    def get_watchlist(self) -> Sequence[str]:
        return list(self._load().keys())

    def fetch_quotes(self, symbols: Sequence[str]) -> Mapping[str, QuoteResult]:
        raw = self._load()
        return {
            s: QuoteResult(symbol=s, success=True, data=raw[s]) if s in raw else QuoteResult.failed(s, "not in file")
            for s in symbols
        }


def _print_verdict(verdict, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(verdict.to_dict(), default=str, indent=2))
        return
    typer.echo(f"{verdict.symbol}: {verdict.signal} ({verdict.confidence})")
    typer.echo(f"   Reason: {verdict.reason}")
    typer.echo(f"   Scores: bull {verdict.bullish_score} / bear {verdict.bearish_score}")
    typer.echo(f"   Trend: {verdict.trend} | Regime: {verdict.regime}")
    if verdict.risk_reward:
        rr = verdict.risk_reward
        typer.echo(f"   Risk:Reward: {rr.ratio}:1 ({rr.grade}) target {rr.target} stop {rr.stop_loss}")
    for warning in verdict.warnings:
        typer.echo(f"   ⚠️  {warning}")


@app.command()
def evaluate(
    path: Path = typer.Argument(..., exists=True, help="Quote JSON file or OHLCV candle CSV"),
    symbol: Optional[str] = typer.Option(None, help="Symbol (required for CSV input)"),
    profile: str = typer.Option("default", help="Scoring profile (default/strict)"),
    vix: Optional[float] = typer.Option(None, help="Volatility index reading"),
    trade_count: int = typer.Option(0, help="Trades already taken today"),
    trade_type: str = typer.Option("INTRADAY", help="Trade type (INTRADAY/OPTIONS/DELIVERY)"),
    expiry: bool = typer.Option(False, help="Expiry day"),
    result_day: bool = typer.Option(False, help="Result day"),
    output: str = typer.Option("console", help="Output format (console/json)"),
):
    """
    🔎 Evaluate one instrument through the full signal pipeline.
    """
    from tradesight.indicators.snapshot_builder import build_snapshot_from_candles
    from tradesight.services.signal_service import configure_signal_service
    from tradesight.shared.models.snapshot import MarketSnapshot
    from tradesight.shared.models.verdicts import SafetyContext

    try:
        if path.suffix.lower() == ".csv":
            if not symbol:
                raise typer.BadParameter("--symbol is required for CSV input")
            df = pd.read_csv(path)
            snapshot = build_snapshot_from_candles(symbol, df, extra={"vix": vix} if vix is not None else None)
        else:
            with open(path) as f:
                raw = json.load(f)
            if vix is not None:
                raw.setdefault("vix", vix)
            snapshot = MarketSnapshot.from_raw(raw, symbol=symbol)

        service = configure_signal_service(profile=profile)
        context = SafetyContext(
            is_result_day=result_day,
            is_expiry_day=expiry,
            trade_count_today=trade_count,
            trade_type=trade_type.upper(),
            volatility_index=vix,
        )
        _print_verdict(service.evaluate(snapshot, context), output == "json")
    except typer.BadParameter:
        raise
    except Exception as e:
        typer.echo(f"❌ Evaluation failed: {e}")
        raise typer.Exit(code=1)


@app.command()
def scan(
    quotes: Path = typer.Argument(..., exists=True, help="JSON file of quotes keyed by symbol"),
    profile: str = typer.Option("default", help="Scoring profile (default/strict)"),
    min_volume: float = typer.Option(100000, help="Liquidity floor (volume)"),
    top: int = typer.Option(10, help="Top candidates to print"),
    output: str = typer.Option("console", help="Output format (console/json)"),
):
    """
    📡 Run one scan cycle over a quote file and print the screens.
    """
    from tradesight.services.scan_orchestrator import ScanOrchestrator
    from tradesight.shared.config.defaults import ScannerConfig

    provider = JsonQuoteProvider(quotes)
    config = ScannerConfig(scoring_profile=profile, min_liquidity_volume=min_volume)
    orchestrator = ScanOrchestrator(quote_provider=provider, watchlist_provider=provider, config=config)

    result = asyncio.run(orchestrator.run_cycle())
    if not result.available:
        typer.echo(f"❌ Scan failed: {orchestrator.status()['last_error']}")
        raise typer.Exit(code=1)

    if output == "json":
        typer.echo(json.dumps(result.to_dict(), default=str, indent=2))
        return

    typer.echo(f"📡 Scanned {result.total_scanned} symbols ({result.filtered} liquid) "
               f"in {result.scan_duration_ms:.0f}ms")
    typer.echo("=" * 60)
    typer.echo(f"Screen 1 - {len(result.screen1)} actionable signals")
    for verdict in result.screen1:
        typer.echo(f"   {verdict.symbol:<12} {verdict.signal:<12} {verdict.confidence:<10} {verdict.reason}")
    typer.echo(f"Screen 2 - {len(result.screen2)} explosions")
    for explosion in result.screen2:
        typer.echo(f"   {explosion.symbol:<12} {explosion.type:<22} {explosion.direction:<8} "
                   f"score {explosion.score} ({explosion.confidence})")
    typer.echo("Top candidates:")
    for candidate in orchestrator.get_top_candidates(top):
        typer.echo(f"   {candidate['symbol']:<12} {candidate['reason']}")


@app.command()
def profiles():
    """
    📋 List scoring profiles.
    """
    from tradesight.shared.config.scoring_profiles import list_profiles

    for p in list_profiles():
        typer.echo(f"{p['name']:<10} standard >= {p['standard_score']}, strong >= {p['strong_score']}")
        typer.echo(f"           {p['description']}")


if __name__ == "__main__":
    app()
