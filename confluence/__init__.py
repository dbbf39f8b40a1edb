"""Confluence - signal-combination backtesting and conviction scoring."""

__version__ = "0.1.0"
