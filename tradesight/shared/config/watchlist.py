"""
Default scan universe.

Liquid NSE cash names (NIFTY 50 core plus additional F&O stocks) and the
index underlyings. The orchestrator consumes a WatchlistProvider; the
static provider below serves these lists.
"""
from typing import List, Optional, Sequence, Tuple


NIFTY_50_SYMBOLS: Tuple[str, ...] = (
    "RELIANCE", "TCS", "HDFCBANK", "INFY", "HINDUNILVR", "ICICIBANK", "KOTAKBANK",
    "SBIN", "BHARTIARTL", "BAJFINANCE", "ITC", "ASIANPAINT", "LT", "AXISBANK",
    "MARUTI", "TITAN", "SUNPHARMA", "ULTRACEMCO", "NESTLEIND", "WIPRO", "HCLTECH",
    "TECHM", "POWERGRID", "NTPC", "BAJAJFINSV", "ONGC", "ADANIPORTS",
    "COALINDIA", "M&M", "TATASTEEL", "JSWSTEEL", "INDUSINDBK", "HINDALCO", "DRREDDY",
    "CIPLA", "DIVISLAB", "EICHERMOT", "GRASIM", "BPCL", "TATACONSUM", "HEROMOTOCO",
    "SHREECEM", "UPL", "SBILIFE", "APOLLOHOSP", "BRITANNIA", "ADANIENT",
)

ADDITIONAL_FNO_SYMBOLS: Tuple[str, ...] = (
    "VEDL", "TATAPOWER", "SAIL", "CANBK", "PNB", "BANKBARODA", "UNIONBANK",
    "IDFCFIRSTB", "RECLTD", "PFC", "LICHSGFIN", "CHOLAFIN", "MUTHOOTFIN",
    "FEDERALBNK", "AUBANK", "BANDHANBNK", "RBLBANK", "NMDC", "NATIONALUM",
    "TORNTPOWER", "IRCTC", "DIXON", "JUBLFOOD", "BERGEPAINT", "PIDILITIND",
    "SRF", "DEEPAKNTR", "COROMANDEL", "TATACHEM", "PERSISTENT", "COFORGE",
    "MPHASIS", "LTTS", "OFSS", "CONCOR", "BHARATFORG", "EXIDEIND",
    "AMBUJACEM", "ACC", "RAMCOCEM",
)

INDEX_SYMBOLS: Tuple[str, ...] = ("NIFTY", "BANKNIFTY", "FINNIFTY", "MIDCPNIFTY")

VOLATILITY_INDEX_SYMBOL = "INDIAVIX"


def get_universal_watchlist() -> List[str]:
    """Cash universe followed by index underlyings."""
    return [*NIFTY_50_SYMBOLS, *ADDITIONAL_FNO_SYMBOLS, *INDEX_SYMBOLS]


def get_fno_symbols() -> List[str]:
    """F&O-eligible subset (every listed stock here trades derivatives)."""
    return [*NIFTY_50_SYMBOLS, *ADDITIONAL_FNO_SYMBOLS]


class StaticWatchlistProvider:
    """
    Watch-list provider backed by fixed symbol lists.

    Usage:
        provider = StaticWatchlistProvider()
        symbols = provider.get_watchlist()
    """

    def __init__(self, symbols: Optional[Sequence[str]] = None, fno_symbols: Optional[Sequence[str]] = None):
        self._symbols = list(symbols) if symbols is not None else get_universal_watchlist()
        self._fno = list(fno_symbols) if fno_symbols is not None else get_fno_symbols()

    def get_watchlist(self) -> List[str]:
        # De-duplicate while preserving order
        return list(dict.fromkeys(self._symbols))

    def get_fno_watchlist(self) -> List[str]:
        fno = set(self._fno)
        return [s for s in self.get_watchlist() if s in fno]
