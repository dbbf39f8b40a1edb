"""
Backtest configuration.

Hard caps protect the per-candle combinatorics from overflow; everything else
is tunable through BacktestSettings.
"""

from dataclasses import dataclass, field

# Combination generation caps (soft: exceeding them truncates, never raises)
MAX_SIGNALS_PER_CANDLE = 8
MAX_COMBINATIONS_PER_SIZE = 50
MAX_COMBINATIONS_PER_CANDLE = 200

SIGNATURE_SEPARATOR = " + "


@dataclass
class BacktestSettings:
    """
    Settings for one (asset, timeframe) backtest run.

    Attributes:
        required_signals: Minimum combination size
        max_signals: Maximum combination size
        min_combined_strength: Minimum sum of member strengths to keep a combination
        warmup_candles: Index of the first candle evaluated (indicator warm-up)
        coin: Asset symbol recorded on every combination
        timeframe: Candle timeframe recorded on every combination
        regime_aware: Query the regime source on every candle
        progress_interval: Invoke the progress callback every N candles
        max_error_logs: Signal source errors logged per run before suppression
        max_warning_logs: Truncation warnings logged per run before suppression
        signal_settings: Opaque settings forwarded to the signal source

    Example:
        >>> settings = BacktestSettings(
        ...     required_signals=2,
        ...     max_signals=3,
        ...     min_combined_strength=120,
        ... )
    """

    required_signals: int = 1
    max_signals: int = 5
    min_combined_strength: float = 150.0
    warmup_candles: int = 250

    coin: str = "BTC/USDT"
    timeframe: str = "4h"
    regime_aware: bool = False

    # Logging / progress throttles
    progress_interval: int = 200
    max_error_logs: int = 5
    max_warning_logs: int = 5

    signal_settings: dict = field(default_factory=dict)

    def __post_init__(self):
        """Validate settings."""
        if self.required_signals < 1:
            raise ValueError(f"required_signals must be >= 1, got {self.required_signals}")
        if self.max_signals < 1:
            raise ValueError(f"max_signals must be >= 1, got {self.max_signals}")
        if self.min_combined_strength < 0:
            raise ValueError(
                f"min_combined_strength must be non-negative, got {self.min_combined_strength}"
            )
        if self.warmup_candles < 0:
            raise ValueError(f"warmup_candles must be non-negative, got {self.warmup_candles}")
        if self.progress_interval < 1:
            raise ValueError(f"progress_interval must be >= 1, got {self.progress_interval}")

    @property
    def label(self) -> str:
        """Log prefix identifying the run."""
        return f"[{self.coin} {self.timeframe}]"
