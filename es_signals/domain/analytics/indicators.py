"""Indicator calculations (RSI, EMA, MACD, realized volatility, VWAP deviation)."""
import math
from typing import NamedTuple, Optional, Sequence

NEUTRAL_RSI = 50.0
MACD_FAST = 12
MACD_SLOW = 26
# Signal line is approximated as a fixed fraction of MACD, not an EMA of it
MACD_SIGNAL_RATIO = 0.9


class MACD(NamedTuple):
    macd: float
    signal: float
    histogram: float


def ema(values: Sequence[float], period: int) -> float:
    if not values:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    k = 2 / (period + 1)
    ema_value = sum(values[:period]) / period
    for price in values[period:]:
        ema_value = (price - ema_value) * k + ema_value
    return ema_value


def rsi(values: Sequence[float], period: int = 14) -> float:
    if len(values) < period + 1:
        return NEUTRAL_RSI
    gains = 0.0
    losses = 0.0
    for i in range(len(values) - period, len(values)):
        delta = values[i] - values[i - 1]
        if delta > 0:
            gains += delta
        else:
            losses -= delta
    if losses == 0:
        return 100.0
    rs = gains / losses
    return 100 - (100 / (1 + rs))


def macd(values: Sequence[float], fast: int = MACD_FAST, slow: int = MACD_SLOW) -> MACD:
    if len(values) < slow:
        return MACD(0.0, 0.0, 0.0)
    macd_value = ema(values, fast) - ema(values, slow)
    signal = macd_value * MACD_SIGNAL_RATIO
    return MACD(macd_value, signal, macd_value - signal)


def realized_volatility(values: Sequence[float]) -> float:
    """Population std-dev of simple returns, in percent."""
    if len(values) < 2:
        return 0.0
    returns = [(values[i] - values[i - 1]) / values[i - 1] for i in range(1, len(values))]
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance) * 100


def vwap_deviation(price: Optional[float], values: Sequence[float]) -> float:
    """
    Percent distance of price from the plain mean of the history.

    No volume weighting: the history carries prices only.
    """
    if not values or price is None:
        return 0.0
    avg = sum(values) / len(values)
    if avg <= 0:
        return 0.0
    return (price - avg) / avg * 100


def percent_change(values: Sequence[float], lookback: int) -> float:
    if lookback <= 0 or len(values) < lookback:
        return 0.0
    base = values[-lookback]
    if base == 0:
        return 0.0
    return (values[-1] - base) / base * 100
