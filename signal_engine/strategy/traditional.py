"""Rule-based (traditional) signal generator.

Maps an IndicatorSet to a single BUY/SELL/HOLD opinion by letting four
directional indicators vote:

- RSI: oversold -> bullish, overbought -> bearish, otherwise neutral
- MACD histogram: positive -> bullish, negative -> bearish
- Price vs SMA(20): above -> bullish, below -> bearish
- Bollinger position: below the lower band -> bullish, above the upper
  band -> bearish, otherwise neutral

Volume does not vote; above-average volume adds a small confidence
bonus to the winning side. One reason string is emitted per indicator,
always in the order RSI, MACD, Volume, SMA, Bollinger.

This module is pure business logic with no I/O dependencies.
"""

import logging

from signal_engine.indicators import bollinger_position
from signal_engine.models import (
    TRADITIONAL_SOURCE,
    Action,
    IndicatorSet,
    Opinion,
    TraditionalConfig,
)

logger = logging.getLogger(__name__)

BULLISH = 1
BEARISH = -1
NEUTRAL = 0

DIRECTIONAL_INDICATORS = 4


class TraditionalSignalGenerator:
    """Generate the "traditional" opinion from indicator values."""

    def __init__(self, config: TraditionalConfig | None = None):
        self.config = config or TraditionalConfig()

    # ------------------------------------------------------------------
    # Per-indicator classification
    # ------------------------------------------------------------------

    def _rsi_vote(self, value: float) -> tuple[int, str]:
        if value < self.config.rsi_oversold:
            return BULLISH, f"RSI indicates oversold conditions ({value:.1f})"
        if value > self.config.rsi_overbought:
            return BEARISH, f"RSI indicates overbought conditions ({value:.1f})"
        return NEUTRAL, f"RSI indicates neutral conditions ({value:.1f})"

    def _macd_vote(self, histogram: float) -> tuple[int, str]:
        if histogram > 0:
            return BULLISH, f"MACD shows bullish momentum (histogram: {histogram:.3f})"
        if histogram < 0:
            return BEARISH, f"MACD shows bearish momentum (histogram: {histogram:.3f})"
        return NEUTRAL, "MACD shows no momentum (histogram: 0.000)"

    def _volume_check(
        self, volume: float | None, average_volume: float | None
    ) -> tuple[bool, str]:
        if volume is None or average_volume is None or average_volume <= 0:
            return False, "Volume data unavailable"
        above = volume > average_volume * self.config.volume_ratio_threshold
        return above, (
            f"Volume is {'above' if above else 'below'} average ({volume:,.0f})"
        )

    def _sma_vote(self, price: float, sma20: float) -> tuple[int, str]:
        if price > sma20:
            return BULLISH, f"Price is above SMA(20) (${sma20:.2f})"
        if price < sma20:
            return BEARISH, f"Price is below SMA(20) (${sma20:.2f})"
        return NEUTRAL, f"Price is at SMA(20) (${sma20:.2f})"

    def _band_vote(self, position: float) -> tuple[int, str]:
        text = f"Bollinger position: {position:.0f}% of range"
        if position > self.config.band_upper_pct:
            return BEARISH, f"{text} (above upper band)"
        if position < self.config.band_lower_pct:
            return BULLISH, f"{text} (below lower band)"
        return NEUTRAL, text

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(
        self,
        indicators: IndicatorSet,
        price: float,
        volume: float | None = None,
        average_volume: float | None = None,
    ) -> Opinion:
        """
        Build the traditional opinion for the current price.

        Args:
            indicators: Indicator values from the same snapshot
            price: Latest price
            volume: Latest volume, if the feed provides it
            average_volume: Recent average volume to compare against

        Returns:
            Opinion with source "traditional"
        """
        votes: list[int] = []
        reasons: list[str] = []

        if indicators.rsi is not None:
            vote, reason = self._rsi_vote(indicators.rsi)
            votes.append(vote)
            reasons.append(reason)

        if indicators.macd is not None:
            vote, reason = self._macd_vote(indicators.macd.histogram)
            votes.append(vote)
            reasons.append(reason)

        volume_confirms, reason = self._volume_check(volume, average_volume)
        reasons.append(reason)

        if indicators.sma20 is not None:
            vote, reason = self._sma_vote(price, indicators.sma20)
            votes.append(vote)
            reasons.append(reason)

        if indicators.bollinger is not None:
            position = bollinger_position(price, indicators.bollinger)
            vote, reason = self._band_vote(position)
            votes.append(vote)
            reasons.append(reason)

        bullish = votes.count(BULLISH)
        bearish = votes.count(BEARISH)
        action, confidence = self._resolve(bullish, bearish, volume_confirms)

        logger.debug(
            "Traditional opinion: %s (%.2f) bullish=%d bearish=%d neutral=%d",
            action.value,
            confidence,
            bullish,
            bearish,
            votes.count(NEUTRAL),
        )
        return Opinion(
            source=TRADITIONAL_SOURCE,
            action=action,
            confidence=confidence,
            reasons=reasons,
        )

    def _resolve(
        self, bullish: int, bearish: int, volume_confirms: bool
    ) -> tuple[Action, float]:
        """Majority vote; confidence grows with the margin of agreement."""
        if bullish > bearish and bullish >= self.config.min_agreeing:
            action, agreeing, opposing = Action.BUY, bullish, bearish
        elif bearish > bullish and bearish >= self.config.min_agreeing:
            action, agreeing, opposing = Action.SELL, bearish, bullish
        else:
            return Action.HOLD, self.config.hold_confidence

        confidence = 0.5 + 0.5 * (agreeing - opposing) / DIRECTIONAL_INDICATORS
        if volume_confirms:
            confidence += self.config.volume_bonus
        return action, min(max(confidence, 0.0), 1.0)
