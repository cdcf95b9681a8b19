"""
Feature Builder
Turns the market snapshot and rolling price history into the model feature vector.
Every branch degrades to a neutral numeric default; nothing here raises.
"""

from typing import Sequence

from es_signals.domain.analytics import indicators
from es_signals.domain.analytics.order_flow import estimate_from_prices
from es_signals.domain.models import FeatureVector, MarketSnapshot

DEFAULT_VIX = 20.0
BOOK_IMBALANCE_RATIO = 0.8
SHORT_LOOKBACK = 5
LONG_LOOKBACK = 15


def build_features(
    snapshot: MarketSnapshot,
    price_history: Sequence[float],
    last_regime_duration: int = 0,
) -> FeatureVector:
    prices = list(price_history)
    macd = indicators.macd(prices)

    imbalance = snapshot.order_flow_imbalance
    delta = snapshot.cumulative_delta
    if imbalance == 0 and len(prices) > 1:
        estimate = estimate_from_prices(prices)
        imbalance, delta = estimate.imbalance, estimate.cumulative_delta

    return FeatureVector(
        order_flow_imbalance=imbalance,
        cumulative_delta=delta,
        rsi14=indicators.rsi(prices, 14),
        macd_histogram=macd.histogram,
        volume_ratio=1.0 if snapshot.volume > 0 else 0.5,
        vwap_deviation=indicators.vwap_deviation(snapshot.price, prices),
        gex_level=snapshot.gex if snapshot.gex is not None else 0.0,
        vix_level=snapshot.vix if snapshot.vix is not None else DEFAULT_VIX,
        vix_term_structure=snapshot.vix_change_pct,
        regime_duration=float(last_regime_duration or 0),
        book_imbalance=imbalance * BOOK_IMBALANCE_RATIO,
        price_change_5m=indicators.percent_change(prices, SHORT_LOOKBACK),
        price_change_15m=indicators.percent_change(prices, LONG_LOOKBACK),
        volatility=indicators.realized_volatility(prices),
    )
