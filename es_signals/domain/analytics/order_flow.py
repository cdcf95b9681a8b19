"""Order-flow measures from tick trades, plus the price-delta fallback."""
from typing import List, NamedTuple, Sequence

from es_signals.domain.models import Trade

BUY_SIDES = ("B", "A")
FALLBACK_IMBALANCE_SCALE = 10.0
FALLBACK_DELTA_SCALE = 1000.0


class OrderFlow(NamedTuple):
    imbalance: float
    cumulative_delta: float
    volume: float


def _is_buy(trade: Trade) -> bool:
    return trade.side in BUY_SIDES


def order_flow_imbalance(trades: Sequence[Trade]) -> float:
    """(buy volume - sell volume) / total volume, in [-1, 1]."""
    buy_volume = 0.0
    sell_volume = 0.0
    for trade in trades:
        if _is_buy(trade):
            buy_volume += trade.size
        else:
            sell_volume += trade.size
    total = buy_volume + sell_volume
    if total == 0:
        return 0.0
    return (buy_volume - sell_volume) / total


def cumulative_delta(trades: Sequence[Trade]) -> List[float]:
    series: List[float] = []
    running = 0.0
    for trade in trades:
        running += trade.size if _is_buy(trade) else -trade.size
        series.append(running)
    return series


def summarize_trades(trades: Sequence[Trade]) -> OrderFlow:
    if not trades:
        return OrderFlow(0.0, 0.0, 0.0)
    deltas = cumulative_delta(trades)
    return OrderFlow(
        imbalance=order_flow_imbalance(trades),
        cumulative_delta=deltas[-1] if deltas else 0.0,
        volume=sum(t.size for t in trades),
    )


def estimate_from_prices(prices: Sequence[float]) -> OrderFlow:
    """
    Approximation used when no tick feed is available: the last price move,
    scaled by 10, stands in for imbalance. Not a real order-flow measure.
    """
    if len(prices) < 2 or prices[-2] == 0:
        return OrderFlow(0.0, 0.0, 0.0)
    imbalance = (prices[-1] - prices[-2]) / prices[-2] * FALLBACK_IMBALANCE_SCALE
    return OrderFlow(imbalance, imbalance * FALLBACK_DELTA_SCALE, 0.0)
