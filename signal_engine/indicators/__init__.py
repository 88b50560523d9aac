"""Technical indicators (pure math, no I/O)."""

from signal_engine.indicators.indicators import (
    DEFAULT_VOLUME,
    OHLC_FALLBACK_FRACTION,
    RESISTANCE_FACTOR,
    RSI_NEUTRAL,
    SIGNAL_SMOOTHING,
    SR_LOOKBACK,
    STOCHASTIC_NEUTRAL,
    SUPPORT_FACTOR,
    WILLIAMS_R_NEUTRAL,
    IndicatorCalculator,
    atr,
    bandwidth,
    bollinger_bands,
    bollinger_position,
    ema,
    macd,
    rsi,
    sma,
    stochastic,
    support_resistance,
    true_range,
    vwap,
    williams_r,
)

__all__ = [
    "DEFAULT_VOLUME",
    "OHLC_FALLBACK_FRACTION",
    "RESISTANCE_FACTOR",
    "RSI_NEUTRAL",
    "SIGNAL_SMOOTHING",
    "SR_LOOKBACK",
    "STOCHASTIC_NEUTRAL",
    "SUPPORT_FACTOR",
    "WILLIAMS_R_NEUTRAL",
    "IndicatorCalculator",
    "atr",
    "bandwidth",
    "bollinger_bands",
    "bollinger_position",
    "ema",
    "macd",
    "rsi",
    "sma",
    "stochastic",
    "support_resistance",
    "true_range",
    "vwap",
    "williams_r",
]
