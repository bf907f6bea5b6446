"""TradeSight - advisory trade-signal engine and market scanner."""

__version__ = "0.3.0"
