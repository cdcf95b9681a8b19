"""Feature-importance telemetry sampled from the live feature vector."""
from datetime import datetime
from typing import Dict, List

from es_signals.domain.models import FeatureCategory, FeatureTelemetry, FeatureVector

IMPORTANCE_SCALE = 100.0
DEFAULT_SAMPLE_MINUTES = 10

FEATURE_CATEGORIES: Dict[str, FeatureCategory] = {
    "order_flow_imbalance": FeatureCategory.ORDERFLOW,
    "cumulative_delta": FeatureCategory.ORDERFLOW,
    "book_imbalance": FeatureCategory.ORDERFLOW,
    "rsi14": FeatureCategory.TECHNICAL,
    "macd_histogram": FeatureCategory.TECHNICAL,
    "volatility": FeatureCategory.TECHNICAL,
    "volume_ratio": FeatureCategory.VOLUME,
    "vwap_deviation": FeatureCategory.PRICE,
    "price_change_5m": FeatureCategory.PRICE,
    "price_change_15m": FeatureCategory.PRICE,
    "gex_level": FeatureCategory.OPTIONS,
    "vix_level": FeatureCategory.OPTIONS,
    "vix_term_structure": FeatureCategory.OPTIONS,
    "regime_duration": FeatureCategory.REGIME,
}


def feature_category(name: str) -> FeatureCategory:
    return FEATURE_CATEGORIES.get(name, FeatureCategory.OTHER)


def is_sampling_minute(ts: datetime, every_minutes: int = DEFAULT_SAMPLE_MINUTES) -> bool:
    if every_minutes <= 1:
        return True
    return ts.minute % every_minutes == 0


def build_feature_telemetry(features: FeatureVector) -> List[FeatureTelemetry]:
    """
    One row per feature. The importance is |value| / 100, a magnitude proxy
    rather than a model-derived importance.
    """
    return [
        FeatureTelemetry(
            name=name,
            value=abs(value) / IMPORTANCE_SCALE,
            category=feature_category(name),
        )
        for name, value in features.as_dict().items()
    ]
