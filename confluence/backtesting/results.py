"""
Backtest results and match analysis.

Matches are returned unlabeled; outcome labeling (success/failure, realized
price move) is done by the caller. The helpers here group matches by
signature and turn a group into a Strategy record.
"""

from collections import Counter
from dataclasses import dataclass, field

import pandas as pd

from confluence.core.models import Combination, Strategy
from confluence.regime.tracker import RegimeTracker


@dataclass
class BacktestResult:
    """
    Results from one match-recorder run.

    Attributes:
        matches: Recorded combinations in candle order
        total_matches: Number of recorded matches
        total_candles: Length of the candle series
        candles_processed: Candles evaluated after warm-up
        signal_counts: Occurrences per (lower-cased) signal type
        coin: Asset symbol
        timeframe: Candle timeframe
        regime_tracker: Regime statistics for the run
        errors: Candles skipped because the signal source raised
        cancelled: True if the run was stopped early by the caller

    Example:
        >>> result = recorder.run(candles, indicators)
        >>> print(f"{result.total_matches} matches in {result.total_candles} candles")
    """

    matches: list[Combination] = field(default_factory=list)
    total_matches: int = 0
    total_candles: int = 0
    candles_processed: int = 0
    signal_counts: dict[str, int] = field(default_factory=dict)
    coin: str = ""
    timeframe: str = ""
    regime_tracker: RegimeTracker = field(default_factory=RegimeTracker)
    errors: int = 0
    cancelled: bool = False

    @property
    def regime_distribution(self) -> dict[str, float]:
        return self.regime_tracker.distribution()

    @property
    def dominant_regime(self) -> str | None:
        return self.regime_tracker.dominant_regime()

    @property
    def regime_changes(self) -> int:
        return self.regime_tracker.change_count

    def summary(self) -> dict:
        """Flat summary counters."""
        return {
            "coin": self.coin,
            "timeframe": self.timeframe,
            "total_matches": self.total_matches,
            "total_candles": self.total_candles,
            "candles_processed": self.candles_processed,
            "unique_signatures": len({m.signature for m in self.matches}),
            "errors": self.errors,
            "cancelled": self.cancelled,
            "dominant_regime": self.dominant_regime,
        }


def group_matches_by_signature(matches: list[Combination]) -> dict[str, list[Combination]]:
    """Group matches by signature, keeping first-seen order."""
    grouped: dict[str, list[Combination]] = {}
    for match in matches:
        grouped.setdefault(match.signature, []).append(match)
    return grouped


def dominant_regime(regimes) -> tuple[str | None, dict[str, int]]:
    """
    Find the most frequent regime.

    Args:
        regimes: Iterable of regime labels (falsy entries ignored)

    Returns:
        dominant: Most frequent label (first seen wins ties), None if empty
        distribution: Count per label
    """
    counts = Counter(r for r in regimes if r)
    if not counts:
        return None, {}
    return counts.most_common(1)[0][0], dict(counts)


def summarize_matches(matches: list[Combination]) -> pd.DataFrame:
    """
    One row per signature with occurrence and regime statistics.

    Args:
        matches: Recorded matches (any number of runs)

    Returns:
        DataFrame sorted by occurrences (descending) with columns
        [signature, signal_count, occurrences, avg_strength, max_strength,
         first_seen, last_seen, dominant_regime, regime_distribution]
    """
    columns = [
        "signature",
        "signal_count",
        "occurrences",
        "avg_strength",
        "max_strength",
        "first_seen",
        "last_seen",
        "dominant_regime",
        "regime_distribution",
    ]
    if not matches:
        return pd.DataFrame(columns=columns)

    rows = []
    for signature, group in group_matches_by_signature(matches).items():
        strengths = pd.Series([m.combined_strength for m in group], dtype="float64")
        times = [m.time for m in group if m.time is not None]
        regime, distribution = dominant_regime(m.market_regime for m in group)
        rows.append(
            {
                "signature": signature,
                "signal_count": group[0].size,
                "occurrences": len(group),
                "avg_strength": strengths.mean(),
                "max_strength": strengths.max(),
                "first_seen": min(times) if times else None,
                "last_seen": max(times) if times else None,
                "dominant_regime": regime,
                "regime_distribution": distribution,
            }
        )

    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values("occurrences", ascending=False, kind="stable").reset_index(drop=True)


def promote_to_strategy(signature: str, matches: list[Combination]) -> Strategy:
    """
    Build a Strategy from the matches of one signature.

    Args:
        signature: Combination signature to promote
        matches: Matches to draw from (other signatures are ignored)

    Returns:
        Strategy with dominant regime and average combined strength

    Raises:
        ValueError: If no match has the given signature
    """
    group = [m for m in matches if m.signature == signature]
    if not group:
        raise ValueError(f"No matches found for signature '{signature}'")

    regime, distribution = dominant_regime(m.market_regime for m in group)
    return Strategy(
        name=signature,
        signal_types=tuple(sorted(group[0].type_set)),
        dominant_regime=regime,
        combined_strength=sum(m.combined_strength for m in group) / len(group),
        occurrences=len(group),
        regime_distribution=distribution,
    )
