"""
Signal Generator
Weighted multi-strategy ensemble. Five factors vote into buy/sell scores with
regime-dependent weights; the net score picks the signal and the
buy/sell balance gives the confidence.
"""

from __future__ import annotations

import math
from typing import Dict, List, Tuple

from es_signals.domain.models import (
    FeatureVector,
    GexRegime,
    MarketSnapshot,
    Regime,
    RegimeState,
    SignalRecord,
    SignalType,
)

FACTORS = ("order_flow", "rsi", "macd", "gex", "vix")

DEFAULT_WEIGHTS: Dict[str, float] = {name: 0.2 for name in FACTORS}

_TREND_WEIGHTS = {"order_flow": 0.3, "rsi": 0.1, "macd": 0.3, "gex": 0.15, "vix": 0.15}

REGIME_WEIGHTS: Dict[Regime, Dict[str, float]] = {
    Regime.TREND_UP: _TREND_WEIGHTS,
    Regime.TREND_DOWN: _TREND_WEIGHTS,
    Regime.MEAN_REVERSION: {"order_flow": 0.2, "rsi": 0.3, "macd": 0.1, "gex": 0.25, "vix": 0.15},
    Regime.HIGH_VOLATILITY: {"order_flow": 0.15, "rsi": 0.25, "macd": 0.1, "gex": 0.2, "vix": 0.3},
    Regime.LOW_VOLATILITY: {"order_flow": 0.25, "rsi": 0.2, "macd": 0.25, "gex": 0.2, "vix": 0.1},
}

REGIME_TP_SL_MULTIPLIER: Dict[Regime, float] = {
    Regime.TREND_UP: 1.3,
    Regime.TREND_DOWN: 1.3,
    Regime.MEAN_REVERSION: 0.8,
    Regime.HIGH_VOLATILITY: 1.5,
    Regime.LOW_VOLATILITY: 0.7,
}

MAX_CONFIDENCE = 0.95
DEFAULT_MIN_CONFIDENCE = 0.65
TREND_AMPLIFIER = 1.2
MEAN_REVERSION_AMPLIFIER = 1.3

BASE_TP_TICKS = 8
BASE_SL_TICKS = 5
TP_BOUNDS = (4, 20)
SL_BOUNDS = (2, 12)


def strategy_weights(regime: Regime | str) -> Dict[str, float]:
    try:
        return dict(REGIME_WEIGHTS[Regime(regime)])
    except ValueError:
        return dict(DEFAULT_WEIGHTS)


def _score_factors(
    features: FeatureVector,
    snapshot: MarketSnapshot,
    weights: Dict[str, float],
) -> Tuple[float, float, List[str]]:
    reasoning: List[str] = []
    buy = 0.0
    sell = 0.0

    # 1) Order flow
    if features.order_flow_imbalance > 0.3:
        buy += weights["order_flow"]
        reasoning.append(f"Order flow bullish ({features.order_flow_imbalance * 100:.1f}%)")
    elif features.order_flow_imbalance < -0.3:
        sell += weights["order_flow"]
        reasoning.append(f"Order flow bearish ({features.order_flow_imbalance * 100:.1f}%)")

    # 2) RSI extremes
    if features.rsi14 < 30:
        buy += weights["rsi"]
        reasoning.append(f"RSI oversold ({features.rsi14:.1f})")
    elif features.rsi14 > 70:
        sell += weights["rsi"]
        reasoning.append(f"RSI overbought ({features.rsi14:.1f})")

    # 3) MACD with short-term momentum
    if features.macd_histogram > 0 and features.price_change_5m > 0:
        buy += weights["macd"]
        reasoning.append("MACD bullish crossover")
    elif features.macd_histogram < 0 and features.price_change_5m < 0:
        sell += weights["macd"]
        reasoning.append("MACD bearish crossover")

    # 4) Dealer gamma positioning
    if snapshot.gex_regime == GexRegime.POSITIVE and features.vwap_deviation < -0.5:
        buy += weights["gex"]
        reasoning.append("Positive GEX + below VWAP (mean reversion buy)")
    elif snapshot.gex_regime == GexRegime.NEGATIVE and features.price_change_5m < -0.2:
        sell += weights["gex"]
        reasoning.append("Negative GEX + momentum down (trend sell)")

    # 5) VIX contrarian
    if features.vix_level > 25 and features.vix_term_structure < 0:
        buy += weights["vix"]
        reasoning.append("VIX spike + backwardation (fear peak)")
    elif features.vix_level < 15 and features.vix_term_structure > 0:
        sell += weights["vix"]
        reasoning.append("Low VIX + contango (complacency)")

    return buy, sell, reasoning


def _apply_regime_scaling(
    regime: RegimeState,
    features: FeatureVector,
    buy: float,
    sell: float,
    reasoning: List[str],
) -> Tuple[float, float]:
    if regime.regime == Regime.TREND_UP and buy > sell:
        buy *= TREND_AMPLIFIER
        reasoning.append(f"Trend up regime (confidence: {regime.confidence * 100:.0f}%)")
    elif regime.regime == Regime.TREND_DOWN and sell > buy:
        sell *= TREND_AMPLIFIER
        reasoning.append(f"Trend down regime (confidence: {regime.confidence * 100:.0f}%)")
    elif regime.regime == Regime.MEAN_REVERSION:
        if features.rsi14 < 35:
            buy *= MEAN_REVERSION_AMPLIFIER
        if features.rsi14 > 65:
            sell *= MEAN_REVERSION_AMPLIFIER
        reasoning.append("Mean reversion regime active")
    return buy, sell


def classify_net_score(net_score: float) -> SignalType:
    if net_score > 0.6:
        return SignalType.STRONG_BUY
    if net_score > 0.2:
        return SignalType.BUY
    if net_score < -0.6:
        return SignalType.STRONG_SELL
    if net_score < -0.2:
        return SignalType.SELL
    return SignalType.HOLD


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_tp_sl(features: FeatureVector, regime: Regime | str) -> Tuple[int, int]:
    """Take-profit / stop-loss in ticks, widened by volatility and regime."""
    vol_multiplier = 1 + features.volatility / 2
    try:
        regime_multiplier = REGIME_TP_SL_MULTIPLIER[Regime(regime)]
    except ValueError:
        regime_multiplier = 1.0

    tp = _round_half_up(BASE_TP_TICKS * vol_multiplier * regime_multiplier)
    sl = _round_half_up(BASE_SL_TICKS * vol_multiplier * regime_multiplier)
    return (
        max(TP_BOUNDS[0], min(TP_BOUNDS[1], tp)),
        max(SL_BOUNDS[0], min(SL_BOUNDS[1], sl)),
    )


def generate_signal(
    features: FeatureVector,
    regime: RegimeState,
    snapshot: MarketSnapshot,
) -> SignalRecord:
    weights = strategy_weights(regime.regime)
    buy, sell, reasoning = _score_factors(features, snapshot, weights)
    buy, sell = _apply_regime_scaling(regime, features, buy, sell, reasoning)

    net_score = buy - sell
    total_score = buy + sell
    confidence = min(MAX_CONFIDENCE, abs(net_score) / total_score) if total_score > 0 else 0.0

    tp, sl = calculate_tp_sl(features, regime.regime)

    return SignalRecord(
        timestamp=snapshot.timestamp,
        signal_type=classify_net_score(net_score),
        confidence=confidence,
        regime=regime.regime,
        suggested_tp=tp,
        suggested_sl=sl,
        entry_price=snapshot.price or 0.0,
        executed=False,
        reasoning=tuple(reasoning),
        features=features,
    )


def should_persist(signal: SignalRecord, min_confidence: float = DEFAULT_MIN_CONFIDENCE) -> bool:
    """Only actionable, sufficiently confident signals are stored."""
    return signal.signal_type != SignalType.HOLD and signal.confidence >= min_confidence
