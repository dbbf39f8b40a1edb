"""
Signal combination generation and pruning.

At every candle the active signals are expanded into all subsets whose
combined strength clears the configured threshold. Subsets are enumerated in
lexicographic index order so that the overflow caps always keep the same
combinations for the same input.
"""

import logging
from dataclasses import replace
from typing import Callable, Iterator

from confluence.config import (
    MAX_COMBINATIONS_PER_CANDLE,
    MAX_COMBINATIONS_PER_SIZE,
    MAX_SIGNALS_PER_CANDLE,
    BacktestSettings,
)
from confluence.core.models import Candle, Combination, RegimeState, Signal

logger = logging.getLogger(__name__)


def iter_index_combinations(n: int, k: int) -> Iterator[tuple[int, ...]]:
    """
    Yield every k-subset of range(n) as increasing index tuples.

    Standard "next combination" iteration: keep k increasing indices, advance
    the rightmost index that can still move and reset the ones after it.

    Example:
        >>> list(iter_index_combinations(4, 2))
        [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
    """
    if k <= 0 or k > n:
        return

    indices = list(range(k))
    while True:
        yield tuple(indices)

        i = k - 1
        while i >= 0 and indices[i] == n - k + i:
            i -= 1
        if i < 0:
            return

        indices[i] += 1
        for j in range(i + 1, k):
            indices[j] = indices[j - 1] + 1


class CombinationGenerator:
    """
    Enumerate strength-qualified signal combinations for one candle.

    One generator belongs to one backtest run; it keeps a count of emitted
    truncation warnings so a long run logs at most `max_warning_logs` of them.

    Example:
        >>> generator = CombinationGenerator(BacktestSettings(min_combined_strength=150))
        >>> combos = generator.generate(signals, candle, candle_index=300)
    """

    def __init__(
        self,
        settings: BacktestSettings,
        event_classifier: Callable[[Signal], bool] | None = None,
    ):
        """
        Initialize the generator.

        Args:
            settings: Run settings (sizes, threshold, coin/timeframe context)
            event_classifier: Optional callable re-tagging each member's is_event
        """
        self.settings = settings
        self.event_classifier = event_classifier
        self.warnings_logged = 0

    def generate(
        self,
        signals: list[Signal],
        candle: Candle | None,
        candle_index: int,
        regime: RegimeState | None = None,
    ) -> list[Combination]:
        """
        Generate all qualifying combinations from the signals of one candle.

        Args:
            signals: Signals active at the candle, one per type
            candle: The candle (supplies time and close price)
            candle_index: Position of the candle in the series
            regime: Regime snapshot at the candle

        Returns:
            At most MAX_COMBINATIONS_PER_CANDLE combinations, smallest size first

        Edge Cases:
            - Empty input returns []
            - Only the first MAX_SIGNALS_PER_CANDLE signals are used
            - Sizes are clamped to the available signal count
        """
        if not signals:
            return []

        if len(signals) > MAX_SIGNALS_PER_CANDLE:
            self._warn(
                f"{self.settings.label} {len(signals)} signals at candle {candle_index}, "
                f"using the first {MAX_SIGNALS_PER_CANDLE}"
            )
            signals = signals[:MAX_SIGNALS_PER_CANDLE]

        count = len(signals)
        min_size = max(1, min(self.settings.required_signals, count))
        max_size = max(min_size, min(self.settings.max_signals, count))

        regime = regime or RegimeState.unknown()
        members = self._classify(signals)
        combinations: list[Combination] = []

        for size in range(min_size, max_size + 1):
            budget = min(MAX_COMBINATIONS_PER_SIZE, MAX_COMBINATIONS_PER_CANDLE - len(combinations))
            retained = self._generate_size(members, size, budget, candle, candle_index, regime)
            combinations.extend(retained)

            if len(combinations) >= MAX_COMBINATIONS_PER_CANDLE:
                self._warn(
                    f"{self.settings.label} combination generation stopped at "
                    f"{MAX_COMBINATIONS_PER_CANDLE} for candle {candle_index}"
                )
                break

        return combinations

    def _generate_size(
        self,
        signals: list[Signal],
        size: int,
        budget: int,
        candle: Candle | None,
        candle_index: int,
        regime: RegimeState,
    ) -> list[Combination]:
        """Enumerate combinations of a single size, keeping at most `budget`."""
        retained: list[Combination] = []
        threshold = self.settings.min_combined_strength

        for indices in iter_index_combinations(len(signals), size):
            members = tuple(signals[i] for i in indices)
            combined_strength = sum(s.strength for s in members)
            if combined_strength < threshold:
                continue

            if len(retained) >= budget:
                # per-candle overflow is reported by generate()
                if budget == MAX_COMBINATIONS_PER_SIZE:
                    self._warn(
                        f"{self.settings.label} size-{size} combinations capped at "
                        f"{MAX_COMBINATIONS_PER_SIZE} for candle {candle_index}"
                    )
                break

            retained.append(
                Combination(
                    signals=members,
                    combined_strength=combined_strength,
                    candle_index=candle_index,
                    time=candle.timestamp if candle is not None else None,
                    price=candle.close if candle is not None else None,
                    coin=self.settings.coin,
                    timeframe=self.settings.timeframe,
                    market_regime=regime.regime,
                    regime_confidence=regime.confidence,
                )
            )

        return retained

    def _classify(self, signals: list[Signal]) -> list[Signal]:
        if self.event_classifier is None:
            return list(signals)
        return [replace(s, is_event=bool(self.event_classifier(s))) for s in signals]

    def _warn(self, message: str) -> None:
        if self.warnings_logged < self.settings.max_warning_logs:
            logger.warning(message)
            self.warnings_logged += 1
            if self.warnings_logged == self.settings.max_warning_logs:
                logger.warning(f"{self.settings.label} further truncation warnings suppressed")


def filter_subset_combinations(combinations: list[Combination]) -> list[Combination]:
    """
    Keep only maximal combinations for one candle.

    A combination is dropped when its type set is a proper subset of another
    combination's type set. Identical type sets are not subsets of each other,
    so both survive.

    Args:
        combinations: Combinations generated for one candle

    Returns:
        Surviving combinations in their original order

    Example:
        >>> # {RSI, MACD} is dropped in favour of {RSI, MACD, Stoch}
        >>> filter_subset_combinations([rsi_macd, rsi_macd_stoch])
        [rsi_macd_stoch]
    """
    if not combinations or len(combinations) <= 1:
        return combinations

    type_sets = [c.type_set for c in combinations]
    survivors = []

    for i, combination in enumerate(combinations):
        dominated = any(
            type_sets[i] < type_sets[j] for j in range(len(combinations)) if j != i
        )
        if not dominated:
            survivors.append(combination)

    return survivors


# =============================================================================
# TEST REQUIREMENTS
# =============================================================================
# [x] test_index_combinations_lexicographic_order
# [x] test_combined_strength_equals_member_sum
# [x] test_threshold_excludes_weak_subsets
# [x] test_signals_beyond_eight_truncated
# [x] test_per_size_cap_50
# [x] test_per_candle_cap_200
# [x] test_proper_subset_removed
# [x] test_identical_type_sets_both_survive
# =============================================================================
