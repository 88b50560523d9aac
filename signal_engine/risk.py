"""Risk scoring and position sizing hints.

Score = base 50
      + min(volatility * 100, 40)
      + 10 for low liquidity / - 10 for high liquidity
      + 5 when RSI is in an extreme band
clamped to [0, 100] and rounded. The score is monotonically
non-decreasing in volatility with the other inputs fixed.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from signal_engine.indicators import bandwidth
from signal_engine.models import IndicatorSet, RiskConfig, SeriesSnapshot

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_VALUE = 100_000.0

ENTRY_ZONE_FRACTION = 0.005
STOP_LOSS_FALLBACK = 0.95
TAKE_PROFIT_FALLBACK = 1.08


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RiskFactor(BaseModel):
    """One human-readable contributor to the risk score."""

    model_config = ConfigDict(frozen=True)

    severity: str  # "high" or "medium"
    title: str
    description: str


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    level: RiskLevel
    volatility: float
    factors: list[RiskFactor] = Field(default_factory=list)


class TradingLevels(BaseModel):
    """Suggested entry zone, stop loss and take profit around a price."""

    model_config = ConfigDict(frozen=True)

    entry_low: float
    entry_high: float
    stop_loss: float
    take_profit: float
    risk_reward: float | None = None


class RiskScorer:
    """Derive a 0-100 risk score and categorical level."""

    def __init__(self, config: RiskConfig | None = None):
        self.config = config or RiskConfig()

    def level_for(self, score: int) -> RiskLevel:
        if score >= self.config.high_cutoff:
            return RiskLevel.HIGH
        if score >= self.config.medium_cutoff:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def _factors(
        self, volatility: float, volume: float | None, rsi: float | None
    ) -> list[RiskFactor]:
        c = self.config
        factors = []
        if volatility > c.high_volatility:
            factors.append(RiskFactor(
                severity="high",
                title="High Volatility",
                description=(
                    f"{volatility * 100:.1f}% volatility detected - "
                    "consider smaller position sizes"
                ),
            ))
        if volume is not None and volume < c.low_liquidity_volume:
            factors.append(RiskFactor(
                severity="high",
                title="Low Liquidity",
                description=(
                    f"Trading volume below {c.low_liquidity_volume:,.0f} - "
                    "may impact order execution"
                ),
            ))
        if rsi is not None and rsi > c.rsi_extreme_high:
            factors.append(RiskFactor(
                severity="medium",
                title="Overbought Conditions",
                description=f"RSI at {rsi:.1f} - potentially overvalued",
            ))
        if rsi is not None and rsi < c.rsi_extreme_low:
            factors.append(RiskFactor(
                severity="medium",
                title="Oversold Conditions",
                description=f"RSI at {rsi:.1f} - potentially undervalued",
            ))
        return factors

    def score(
        self,
        price: float,
        volatility: float,
        volume: float | None = None,
        rsi: float | None = None,
    ) -> RiskAssessment:
        """
        Score the risk of holding an instrument.

        Args:
            price: Latest price (must be positive)
            volatility: Relative volatility, e.g. 0.05 for 5%
            volume: Latest traded volume; None skips the liquidity term
            rsi: Latest RSI; None skips the extremity term

        Returns:
            RiskAssessment with integer score, level and contributing factors
        """
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        c = self.config
        volatility = max(volatility, 0.0)

        score = c.base_score
        score += min(volatility * c.volatility_scale, c.max_volatility_points)

        if volume is not None:
            if volume < c.low_liquidity_volume:
                score += c.liquidity_points
            elif volume > c.high_liquidity_volume:
                score -= c.liquidity_points

        if rsi is not None and (rsi > c.rsi_extreme_high or rsi < c.rsi_extreme_low):
            score += c.rsi_points

        final = int(max(0, min(100, round(score))))
        logger.debug(
            "Risk score %d (volatility=%.4f volume=%s rsi=%s)",
            final,
            volatility,
            volume,
            rsi,
        )
        return RiskAssessment(
            score=final,
            level=self.level_for(final),
            volatility=volatility,
            factors=self._factors(volatility, volume, rsi),
        )

    def score_indicators(
        self, indicators: IndicatorSet, snapshot: SeriesSnapshot
    ) -> RiskAssessment | None:
        """Score from an IndicatorSet and its snapshot.

        Volatility is the Bollinger bandwidth, falling back to ATR / price.
        Returns None for an empty snapshot.
        """
        latest = snapshot.latest
        if latest is None:
            return None
        if indicators.bollinger is not None and indicators.bollinger.width > 0:
            volatility = bandwidth(indicators.bollinger)
        elif indicators.atr is not None:
            volatility = indicators.atr / latest.price
        else:
            volatility = 0.0
        return self.score(latest.price, volatility, latest.volume, indicators.rsi)

    def suggest_position_size(
        self,
        price: float,
        assessment: RiskAssessment,
        portfolio_value: float = DEFAULT_PORTFOLIO_VALUE,
    ) -> int:
        """Whole units to buy given the risk level's portfolio allocation."""
        if price <= 0:
            raise ValueError(f"price must be positive, got {price}")
        allocation = {
            RiskLevel.LOW: self.config.low_risk_allocation,
            RiskLevel.MEDIUM: self.config.medium_risk_allocation,
            RiskLevel.HIGH: self.config.high_risk_allocation,
        }[assessment.level]
        return int(portfolio_value * allocation // price)


def trading_levels(price: float, indicators: IndicatorSet) -> TradingLevels:
    """Entry zone around price, stop at support, target at resistance.

    Without support/resistance the stop is 5% below and the target 8%
    above the price.
    """
    stop = indicators.support if indicators.support is not None else price * STOP_LOSS_FALLBACK
    target = (
        indicators.resistance
        if indicators.resistance is not None
        else price * TAKE_PROFIT_FALLBACK
    )
    risk = price - stop
    return TradingLevels(
        entry_low=price * (1 - ENTRY_ZONE_FRACTION),
        entry_high=price * (1 + ENTRY_ZONE_FRACTION),
        stop_loss=stop,
        take_profit=target,
        risk_reward=(target - price) / risk if risk > 0 else None,
    )
