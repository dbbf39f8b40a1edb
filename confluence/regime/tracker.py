"""Per-run regime statistics."""

import logging
from collections import Counter

logger = logging.getLogger(__name__)


class RegimeTracker:
    """
    Accumulate the regime detected at each candle of one backtest run.

    Created by the match recorder for every run and returned with the result,
    so concurrent runs never share regime statistics.

    Example:
        >>> tracker = RegimeTracker()
        >>> tracker.record("uptrend", 0.8)
        >>> tracker.record("ranging", 0.6)
        >>> tracker.dominant_regime()
        'uptrend'
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.counts: Counter = Counter()
        self.history: list[str] = []
        self.change_count = 0
        self.failures = 0
        self._confidence_sum = 0.0

    @property
    def total(self) -> int:
        return len(self.history)

    def record(self, regime: str, confidence: float = 0.0, failed: bool = False) -> None:
        """
        Record the regime of one candle.

        Args:
            regime: Regime label
            confidence: Detection confidence 0-1
            failed: True when detection failed and the regime is a default
        """
        regime = regime or "unknown"
        if self.history and self.history[-1] != regime:
            self.change_count += 1

        self.history.append(regime)
        self.counts[regime] += 1
        self._confidence_sum += confidence or 0.0
        if failed:
            self.failures += 1

    def distribution(self) -> dict[str, float]:
        """Share of candles per regime, in percent."""
        if not self.total:
            return {}
        return {regime: count / self.total * 100 for regime, count in self.counts.items()}

    def dominant_regime(self) -> str | None:
        """Most frequent regime; ties go to the regime seen first."""
        if not self.counts:
            return None
        return self.counts.most_common(1)[0][0]

    def average_confidence(self) -> float:
        if not self.total:
            return 0.0
        return self._confidence_sum / self.total

    def log_summary(self, label: str = "") -> None:
        """Log the regime distribution at info level."""
        if not self.total:
            return

        prefix = f"{label} " if label else ""
        logger.info(f"{prefix}Regime distribution over {self.total} candles:")
        for regime, share in sorted(self.distribution().items(), key=lambda item: -item[1]):
            logger.info(f"{prefix}  {regime.upper()}: {self.counts[regime]} candles ({share:.1f}%)")
        logger.info(
            f"{prefix}Regime changes: {self.change_count}, "
            f"avg confidence {self.average_confidence():.2f}, failed detections {self.failures}"
        )
