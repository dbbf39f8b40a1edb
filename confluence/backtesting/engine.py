"""
Walk-forward match recorder.

Walks a candle series once, asks the signal source what fired at each candle,
expands the signals into strength-qualified combinations and records every
new (non-consecutive) occurrence of each combination signature.

A signature that keeps firing on consecutive candles is one ongoing
occurrence: it is recorded once, when it first appears, and becomes eligible
again only after at least one candle without it.
"""

import logging
import time
from enum import Enum
from typing import Callable

import pandas as pd

from confluence.backtesting.results import BacktestResult
from confluence.backtesting.sources import SignalSource, coerce_regime
from confluence.config import BacktestSettings
from confluence.core.combinations import CombinationGenerator, filter_subset_combinations
from confluence.core.models import Combination, RegimeState, Signal
from confluence.core.signals import reduce_to_strongest
from confluence.data.candles import candles_from_dataframe
from confluence.regime.tracker import RegimeTracker

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class MatchRecorder:
    """
    Record signal-combination matches over one (asset, timeframe) series.

    Each instance owns its match list, signal counters, regime tracker and
    last-match index map. An instance runs once; call reset() to reuse it.

    Example:
        >>> recorder = MatchRecorder(
        ...     signal_source=evaluate_signals,
        ...     settings=BacktestSettings(coin="ETH/USDT", timeframe="1h"),
        ...     regime_source=detector,
        ... )
        >>> result = recorder.run(candles, indicators)
        >>> print(f"{result.total_matches} matches")
    """

    def __init__(
        self,
        signal_source: SignalSource,
        settings: BacktestSettings | None = None,
        regime_source=None,
        event_classifier: Callable[[Signal], bool] | None = None,
    ):
        """
        Initialize the recorder.

        Args:
            signal_source: Callable returning the signals at one candle
            settings: Run settings (uses defaults if None)
            regime_source: Object with get_regime(candle_index), used when
                settings.regime_aware is True
            event_classifier: Optional callable re-tagging members' is_event
        """
        self.signal_source = signal_source
        self.settings = settings or BacktestSettings()
        self.regime_source = regime_source
        self.event_classifier = event_classifier
        self.reset()

    def reset(self) -> None:
        """Clear all run state and return to IDLE."""
        self.state = RunState.IDLE
        self.matches: list[Combination] = []
        self.signal_counts: dict[str, int] = {}
        self.regime_tracker = RegimeTracker()
        self.last_match_index: dict[str, int] = {}
        self.error_count = 0
        self.generator = CombinationGenerator(self.settings, self.event_classifier)

    def run(
        self,
        candles,
        indicators: dict | None = None,
        progress_callback: ProgressCallback | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> BacktestResult:
        """
        Walk the candle series and record matches.

        Args:
            candles: List of Candle (or an OHLCV DataFrame), time-ascending
            indicators: Precomputed indicator snapshot, passed to the signal source
            progress_callback: Called as (percent, stage) every
                settings.progress_interval candles and at the end
            should_stop: Checked once per candle; returning True ends the run early

        Returns:
            BacktestResult (empty if the candle series is empty or missing)

        Raises:
            RuntimeError: If the recorder already ran and was not reset

        Errors raised by a single candle's evaluation are logged and the
        candle is skipped. Anything else escaping the loop (e.g. from the
        progress callback) leaves the recorder FAILED and is re-raised.
        """
        if self.state is not RunState.IDLE:
            raise RuntimeError(
                f"MatchRecorder is {self.state.value}; call reset() before running again"
            )

        label = self.settings.label
        if isinstance(candles, pd.DataFrame):
            candles = candles_from_dataframe(candles) if not candles.empty else []

        if not candles:
            logger.error(f"{label} Candle series is empty, cannot run backtest")
            self.state = RunState.FAILED
            return self._build_result(total_candles=0, candles_processed=0)

        self.reset()
        self.state = RunState.RUNNING
        indicators = indicators if indicators is not None else {}
        started = time.perf_counter()

        first = self.settings.warmup_candles
        last = len(candles) - 1  # exclusive, the final candle is never evaluated
        total_to_process = max(0, last - first)
        logger.info(
            f"{label} Processing {total_to_process} candles "
            f"(warm-up {first}, regime-aware {self.settings.regime_aware})"
        )

        processed = 0
        cancelled = False
        try:
            for i in range(first, last):
                if should_stop is not None and should_stop():
                    logger.info(f"{label} Run stopped by caller at candle {i}")
                    cancelled = True
                    break

                if (
                    progress_callback is not None
                    and processed
                    and processed % self.settings.progress_interval == 0
                ):
                    percent = processed / total_to_process * 100
                    progress_callback(percent, f"Processing candle {i + 1}/{len(candles)}")

                self._process_candle(candles, i, indicators)
                processed += 1
        except Exception as e:
            self.state = RunState.FAILED
            logger.error(f"{label} Backtest failed after {processed} candles: {e}")
            raise

        self.state = RunState.COMPLETED
        if progress_callback is not None:
            progress_callback(100.0, "Completed")

        elapsed = time.perf_counter() - started
        logger.info(
            f"{label} Backtest completed in {elapsed:.2f}s: "
            f"{len(self.matches)} matches across {processed} candles"
        )
        logger.debug(f"{label} Signal counts: {self.signal_counts}")
        if self.settings.regime_aware:
            self.regime_tracker.log_summary(label)

        return self._build_result(
            total_candles=len(candles), candles_processed=processed, cancelled=cancelled
        )

    def _process_candle(self, candles, i: int, indicators: dict) -> None:
        """Evaluate one candle and record its new matches."""
        candle = candles[i]
        regime = self._detect_regime(i)

        try:
            raw_signals = self.signal_source(
                candle, indicators, i, self.settings.signal_settings, regime.regime
            )
            signals = reduce_to_strongest(raw_signals)
            if len(signals) < self.settings.required_signals:
                return

            counts = {}
            for signal in signals:
                key = signal.type.lower()
                counts[key] = counts.get(key, 0) + 1

            combinations = self.generator.generate(signals, candle, i, regime)
            combinations = filter_subset_combinations(combinations)
        except Exception as e:
            self._log_candle_error(candle, i, e)
            return

        # commit only once the whole candle evaluated cleanly
        for key, count in counts.items():
            self.signal_counts[key] = self.signal_counts.get(key, 0) + count

        for combination in combinations:
            signature = combination.signature
            last_index = self.last_match_index.get(signature)
            if last_index is None or i > last_index + 1:
                self.matches.append(combination)
            self.last_match_index[signature] = i

    def _detect_regime(self, i: int) -> RegimeState:
        if not self.settings.regime_aware or self.regime_source is None:
            return RegimeState.unknown()

        try:
            regime = coerce_regime(self.regime_source.get_regime(i))
        except Exception as e:
            logger.warning(f"{self.settings.label} Regime detection failed at candle {i}: {e}")
            self.regime_tracker.record("unknown", 0.0, failed=True)
            return RegimeState.unknown()

        self.regime_tracker.record(regime.regime, regime.confidence)
        return regime

    def _log_candle_error(self, candle, i: int, error: Exception) -> None:
        self.error_count += 1
        max_logs = self.settings.max_error_logs
        if self.error_count > max_logs:
            return

        logger.error(
            f"{self.settings.label} Error analyzing candle {i} "
            f"(time: {getattr(candle, 'timestamp', None)}): {error}"
        )
        if self.error_count == max_logs:
            logger.warning(f"{self.settings.label} Further candle errors will be suppressed")

    def _build_result(
        self, total_candles: int, candles_processed: int, cancelled: bool = False
    ) -> BacktestResult:
        return BacktestResult(
            matches=list(self.matches),
            total_matches=len(self.matches),
            total_candles=total_candles,
            candles_processed=candles_processed,
            signal_counts=dict(self.signal_counts),
            coin=self.settings.coin,
            timeframe=self.settings.timeframe,
            regime_tracker=self.regime_tracker,
            errors=self.error_count,
            cancelled=cancelled,
        )


def run_backtest(
    candles,
    signal_source: SignalSource,
    settings: BacktestSettings | None = None,
    indicators: dict | None = None,
    regime_source=None,
    progress_callback: ProgressCallback | None = None,
) -> BacktestResult:
    """
    Run a single backtest with a fresh MatchRecorder.

    Example:
        >>> result = run_backtest(candles, evaluate_signals, BacktestSettings(warmup_candles=50))
    """
    recorder = MatchRecorder(signal_source, settings, regime_source)
    return recorder.run(candles, indicators, progress_callback)
