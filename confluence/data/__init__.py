"""Candle series adapters.

Historical data retrieval is left to the caller; these helpers turn a pandas
OHLCV frame into the Candle records the engine walks over.
"""

from .candles import candles_from_dataframe, candles_to_dataframe, validate_candles

__all__ = [
    "candles_from_dataframe",
    "candles_to_dataframe",
    "validate_candles",
]
