"""
Regime Classifier
Rule-based market state model. Rules are evaluated in priority order and the
first match wins: volatility extremes dominate trend and mean-reversion reads.
"""

from typing import Dict, Optional, Tuple

from es_signals.domain.models import FeatureVector, MarketSnapshot, Regime, RegimeState

DEFAULT_VIX = 20.0
MAX_CONFIDENCE = 0.95
MEAN_REVERSION_MAX_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.5
DURATION_CONFIDENCE_STEP = 0.01
TREND_THRESHOLD_PCT = 0.3

# (probability when matched, probability otherwise); descriptive only
_TRANSITION_SCORES: Dict[Regime, Tuple[float, float]] = {
    Regime.TREND_UP: (0.7, 0.1),
    Regime.TREND_DOWN: (0.7, 0.1),
    Regime.MEAN_REVERSION: (0.6, 0.2),
    Regime.HIGH_VOLATILITY: (0.8, 0.05),
    Regime.LOW_VOLATILITY: (0.75, 0.05),
}


def _clamp(value: float, upper: float = MAX_CONFIDENCE) -> float:
    # 6 dp absorbs float noise such as 0.7 + 0.2 == 0.8999999999999999
    return round(max(0.0, min(upper, value)), 6)


def _raw_regime(vix: float, gex: float, features: FeatureVector) -> Tuple[Regime, float]:
    volatility = features.volatility
    rsi = features.rsi14
    macd_hist = features.macd_histogram
    change = features.price_change_15m

    if vix > 25 or volatility > 2:
        return Regime.HIGH_VOLATILITY, min(MAX_CONFIDENCE, 0.7 + (vix - 20) / 50)
    if vix < 15 and volatility < 0.5:
        return Regime.LOW_VOLATILITY, min(MAX_CONFIDENCE, 0.7 + (15 - vix) / 30)
    if change > TREND_THRESHOLD_PCT and rsi > 55 and macd_hist > 0:
        return Regime.TREND_UP, min(MAX_CONFIDENCE, 0.6 + change / 2)
    if change < -TREND_THRESHOLD_PCT and rsi < 45 and macd_hist < 0:
        return Regime.TREND_DOWN, min(MAX_CONFIDENCE, 0.6 + abs(change) / 2)
    if gex > 0 and abs(change) < TREND_THRESHOLD_PCT:
        return Regime.MEAN_REVERSION, min(MEAN_REVERSION_MAX_CONFIDENCE, 0.6 + gex / 1000)
    return Regime.MEAN_REVERSION, FALLBACK_CONFIDENCE


def transition_probabilities(regime: Regime) -> Dict[str, float]:
    return {
        tag.value: matched if tag == regime else other
        for tag, (matched, other) in _TRANSITION_SCORES.items()
    }


def classify_regime(
    features: FeatureVector,
    snapshot: MarketSnapshot,
    previous_state: Optional[RegimeState] = None,
) -> RegimeState:
    vix = snapshot.vix if snapshot.vix is not None else DEFAULT_VIX
    gex = snapshot.gex if snapshot.gex is not None else 0.0

    regime, confidence = _raw_regime(vix, gex, features)

    duration = 1
    if previous_state is not None and previous_state.regime == regime:
        duration = previous_state.duration + 1
        confidence = confidence + duration * DURATION_CONFIDENCE_STEP

    return RegimeState(
        regime=regime,
        confidence=_clamp(confidence),
        duration=duration,
        transition_probabilities=transition_probabilities(regime),
    )
