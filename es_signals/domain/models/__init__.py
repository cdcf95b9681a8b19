"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    FeatureCategory,
    GexRegime,
    Regime,
    SignalType,

    # Entities
    FeatureTelemetry,
    FeatureVector,
    GammaExposureSnapshot,
    MarketSnapshot,
    PricePoint,
    RegimeState,
    SignalRecord,
    Trade,
    VolatilitySnapshot,
)

__all__ = [
    # Enums
    "FeatureCategory",
    "GexRegime",
    "Regime",
    "SignalType",

    # Entities
    "FeatureTelemetry",
    "FeatureVector",
    "GammaExposureSnapshot",
    "MarketSnapshot",
    "PricePoint",
    "RegimeState",
    "SignalRecord",
    "Trade",
    "VolatilitySnapshot",
]
