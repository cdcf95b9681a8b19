"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple


class Regime(str, Enum):
    """Discrete market regime"""
    TREND_UP = "trend_up"
    TREND_DOWN = "trend_down"
    MEAN_REVERSION = "mean_reversion"
    HIGH_VOLATILITY = "high_volatility"
    LOW_VOLATILITY = "low_volatility"


class SignalType(str, Enum):
    """Directional trading signal"""
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"


class GexRegime(str, Enum):
    """Sign of aggregate dealer gamma exposure"""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class FeatureCategory(str, Enum):
    ORDERFLOW = "orderflow"
    TECHNICAL = "technical"
    VOLUME = "volume"
    PRICE = "price"
    OPTIONS = "options"
    REGIME = "regime"
    OTHER = "other"


@dataclass(frozen=True)
class Trade:
    """Single tick-level trade. Side "B"/"A" is buyer-initiated."""
    price: float
    size: float
    side: str


@dataclass(frozen=True)
class VolatilitySnapshot:
    level: float
    change_percent: float = 0.0


@dataclass(frozen=True)
class GammaExposureSnapshot:
    total: float
    regime: GexRegime = GexRegime.NEUTRAL


@dataclass(frozen=True)
class PricePoint:
    timestamp: datetime
    price: float


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Market state captured once per iteration.

    The futures price is either a positive number or None; a None price
    means the iteration cannot proceed.
    """
    timestamp: datetime
    price: Optional[float] = None
    vix: Optional[float] = None
    vix_change_pct: float = 0.0
    gex: Optional[float] = None
    gex_regime: GexRegime = GexRegime.NEUTRAL
    order_flow_imbalance: float = 0.0
    cumulative_delta: float = 0.0
    volume: float = 0.0

    def __post_init__(self):
        if self.price is not None and not self.price > 0:
            raise ValueError("Snapshot price must be positive or None")


@dataclass(frozen=True)
class FeatureVector:
    """Fixed-size numeric feature vector fed to the regime and signal models"""
    order_flow_imbalance: float
    cumulative_delta: float
    rsi14: float
    macd_histogram: float
    volume_ratio: float
    vwap_deviation: float
    gex_level: float
    vix_level: float
    vix_term_structure: float
    regime_duration: float
    book_imbalance: float
    price_change_5m: float
    price_change_15m: float
    volatility: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class RegimeState:
    regime: Regime
    confidence: float
    duration: int
    transition_probabilities: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SignalRecord:
    """Signal candidate; persisted only when actionable and confident enough"""
    timestamp: datetime
    signal_type: SignalType
    confidence: float
    regime: Regime
    suggested_tp: int
    suggested_sl: int
    entry_price: float
    executed: bool = False
    reasoning: Tuple[str, ...] = ()
    features: Optional[FeatureVector] = None


@dataclass(frozen=True)
class FeatureTelemetry:
    name: str
    value: float
    category: FeatureCategory
    model_type: str = "ensemble"
