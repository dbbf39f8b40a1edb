"""
Per-candle signal preparation.

Signal evaluators may report several signals of the same indicator family at
one candle (e.g. an RSI state and an RSI cross). Only the strongest instance of
each type takes part in combination generation.
"""

import numbers

from confluence.core.models import Signal

# Value fragments that mark a signal as a discrete trigger rather than a state
EVENT_KEYWORDS = (
    "cross",
    "crossover",
    "entry",
    "exit",
    "breakout",
    "breakdown",
    "reversal",
    "flip",
    "squeeze",
    "expansion",
    "bounce",
    "rejection",
    "divergence",
    "pattern_complete",
    "trend_change",
    "signal_triggered",
)


def reduce_to_strongest(signals) -> list[Signal]:
    """
    Keep only the strongest signal of each type.

    Entries without a type or a numeric strength are dropped. On equal
    strength the first reported signal wins. Output order follows the first
    appearance of each type.

    Args:
        signals: Signals reported for one candle (may be None)

    Returns:
        List with at most one signal per type

    Example:
        >>> reduce_to_strongest([
        ...     Signal("RSI", "Oversold", 60),
        ...     Signal("RSI", "Oversold Entry", 75),
        ...     Signal("MACD", "Bullish Cross", 80),
        ... ])
        [Signal(type='RSI', value='Oversold Entry', strength=75, ...), Signal(type='MACD', ...)]
    """
    if not signals:
        return []

    strongest: dict[str, Signal] = {}
    for signal in signals:
        signal_type = getattr(signal, "type", None)
        strength = getattr(signal, "strength", None)
        if not signal_type or not isinstance(strength, numbers.Real):
            continue
        current = strongest.get(signal_type)
        if current is None or strength > current.strength:
            strongest[signal_type] = signal

    return list(strongest.values())


def classify_signal_event(signal: Signal) -> bool:
    """
    Decide whether a signal is a transient event or a persistent state.

    Candlestick patterns are always events; otherwise the qualitative value is
    matched against EVENT_KEYWORDS.

    Args:
        signal: Signal to classify

    Returns:
        True for events, False for states
    """
    if signal is None or not signal.type:
        return False

    signal_type = signal.type.lower()
    if "candlestick" in signal_type or "cdl_" in signal_type:
        return True

    value = str(signal.value or "").lower().replace(" ", "_")
    return any(keyword in value for keyword in EVENT_KEYWORDS)
