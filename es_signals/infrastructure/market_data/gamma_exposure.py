"""
Gamma exposure (GEX) from a synthetic options chain.

GEX = sum(gamma x open interest x contract multiplier x spot^2), scaled by 1e9.
Positive GEX: dealers long gamma, hedging dampens moves (mean reversion).
Negative GEX: dealers short gamma, hedging amplifies moves (trend).

The chain is synthetic: a fixed IV smile, simplified Black-Scholes greeks and
randomized open interest. A dedicated options feed would replace it.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from es_signals.domain.models import GammaExposureSnapshot, GexRegime

CONTRACT_MULTIPLIER = 100
GEX_SCALE = 1e9
REGIME_THRESHOLD = 100.0
RISK_FREE_RATE = 0.05
DAYS_TO_EXPIRY = 30

ATM_IV = 0.15
IV_SKEW = 0.1
IV_SMILE = 0.05


@dataclass(frozen=True)
class OptionQuote:
    strike: float
    expiration: str
    option_type: str  # "call" / "put"
    open_interest: int
    implied_volatility: float
    delta: float
    gamma: float


@dataclass(frozen=True)
class GEXData:
    total_gex: float
    call_gex: float
    put_gex: float
    flip_level: float
    regime: GexRegime
    major_levels: List[Tuple[float, float]] = field(default_factory=list)

    def to_snapshot(self) -> GammaExposureSnapshot:
        return GammaExposureSnapshot(total=self.total_gex, regime=self.regime)


def normal_cdf(x: float) -> float:
    """Abramowitz-Stegun approximation of the standard normal CDF."""
    a1, a2, a3, a4, a5 = 0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429
    p = 0.3275911
    sign = -1 if x < 0 else 1
    x = abs(x) / math.sqrt(2)
    t = 1.0 / (1.0 + p * x)
    y = 1.0 - ((((a5 * t + a4) * t + a3) * t + a2) * t + a1) * t * math.exp(-x * x)
    return 0.5 * (1.0 + sign * y)


def implied_volatility(moneyness: float) -> float:
    return ATM_IV + IV_SKEW * moneyness + IV_SMILE * moneyness * moneyness


def greeks(spot: float, strike: float, iv: float, days_to_expiry: int = DAYS_TO_EXPIRY) -> Tuple[float, float]:
    """Call delta and gamma under simplified Black-Scholes."""
    t = days_to_expiry / 365
    d1 = (math.log(spot / strike) + (RISK_FREE_RATE + iv * iv / 2) * t) / (iv * math.sqrt(t))
    delta = normal_cdf(d1)
    gamma = math.exp(-d1 * d1 / 2) / (spot * iv * math.sqrt(2 * math.pi * t))
    return delta, gamma


def generate_strikes(spot: float, count: int = 50, step: float = 1.0) -> List[float]:
    base = math.floor(spot / step + 0.5) * step
    half = count // 2
    return [base + i * step for i in range(-half, half + 1)]


def next_friday(today: date) -> date:
    days = (4 - today.weekday()) % 7 or 7
    return today + timedelta(days=days)


class GammaExposureCalculator:
    def __init__(self, rng: Optional[random.Random] = None, strike_count: int = 50, strike_step: float = 1.0):
        self._rng = rng or random.Random()
        self.strike_count = strike_count
        self.strike_step = strike_step

    def _open_interest(self) -> int:
        return self._rng.randint(5000, 54999)

    def build_chain(self, spot: float, today: Optional[date] = None) -> List[OptionQuote]:
        if spot <= 0:
            return []
        expiration = next_friday(today or date.today()).isoformat()
        chain: List[OptionQuote] = []
        for strike in generate_strikes(spot, self.strike_count, self.strike_step):
            if strike <= 0:
                continue
            iv = implied_volatility((strike - spot) / spot)
            delta, gamma = greeks(spot, strike, iv)
            chain.append(OptionQuote(strike, expiration, "call", self._open_interest(), iv, delta, gamma))
            chain.append(OptionQuote(strike, expiration, "put", self._open_interest(), iv, delta - 1, gamma))
        return chain

    def calculate(self, spot: float, chain: Optional[List[OptionQuote]] = None) -> Optional[GEXData]:
        chain = chain if chain is not None else self.build_chain(spot)
        if spot <= 0 or not chain:
            return None

        total = 0.0
        call_gex = 0.0
        put_gex = 0.0
        by_strike: Dict[float, float] = {}

        for option in chain:
            gex = option.gamma * option.open_interest * CONTRACT_MULTIPLIER * spot * spot / GEX_SCALE
            # Dealers are assumed short calls and long puts
            dealer_gex = -gex if option.option_type == "call" else gex
            total += dealer_gex
            if option.option_type == "call":
                call_gex += abs(gex)
            else:
                put_gex += abs(gex)
            by_strike[option.strike] = by_strike.get(option.strike, 0.0) + dealer_gex

        flip_level = spot
        min_abs = math.inf
        running = 0.0
        for strike, gex in sorted(by_strike.items()):
            running += gex
            if abs(running) < min_abs:
                min_abs = abs(running)
                flip_level = strike

        major_levels = sorted(by_strike.items(), key=lambda kv: abs(kv[1]), reverse=True)[:10]

        if total > REGIME_THRESHOLD:
            regime = GexRegime.POSITIVE
        elif total < -REGIME_THRESHOLD:
            regime = GexRegime.NEGATIVE
        else:
            regime = GexRegime.NEUTRAL

        return GEXData(
            total_gex=total,
            call_gex=call_gex,
            put_gex=put_gex,
            flip_level=flip_level,
            regime=regime,
            major_levels=major_levels,
        )
