"""Technical indicators for signal generation.

Every function is pure and deterministic over the slice it receives and
never raises for short input. When a series is shorter than an
indicator's lookback the function returns the documented fallback
below instead of NaN, so callers always get a best-effort value.

Several formulas are deliberate simplifications kept for parity with
the values the dashboard has always displayed:

- ``ema`` seeds at the first price of whatever slice is passed in and
  runs over the whole slice. It is an approximation, not a textbook
  period-seeded EMA.
- The MACD signal line and stochastic %D are the line / %K scaled by
  ``SIGNAL_SMOOTHING`` rather than a 9-period / 3-period average.
- Without high/low data the true range is built from price plus or
  minus ``OHLC_FALLBACK_FRACTION``.
- Support and resistance are the lookback extremes padded by a fixed
  factor, not a pivot or fractal detector.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_engine.models.config import IndicatorConfig
from signal_engine.models.series import SeriesSnapshot
from signal_engine.models.signal import (
    BollingerBands,
    IndicatorSet,
    MacdValues,
    StochasticValues,
)

# =============================================================================
# Insufficient-data fallbacks and fixed approximation constants
# =============================================================================

RSI_NEUTRAL = 50.0
RSI_MAX = 100.0
STOCHASTIC_NEUTRAL = 50.0
WILLIAMS_R_NEUTRAL = -50.0
BAND_POSITION_NEUTRAL = 50.0

DEFAULT_VOLUME = 1_000_000.0
OHLC_FALLBACK_FRACTION = 0.005
SIGNAL_SMOOTHING = 0.9

SUPPORT_FACTOR = 0.995
RESISTANCE_FACTOR = 1.005
SR_LOOKBACK = 20


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _fill(values: Sequence[float | None] | None, fallback: np.ndarray) -> np.ndarray:
    """Replace missing entries (or a missing sequence) with ``fallback``."""
    if values is None:
        return fallback.copy()
    return np.array(
        [fallback[i] if v is None else float(v) for i, v in enumerate(values)],
        dtype=np.float64,
    )


def _window_extremes(
    prices: Sequence[float],
    period: int,
    highs: Sequence[float | None] | None,
    lows: Sequence[float | None] | None,
) -> tuple[float, float, float]:
    """Return (close, highest high, lowest low) over the last ``period`` samples."""
    arr = _as_array(prices)
    hi = _fill(highs, arr)[-period:]
    lo = _fill(lows, arr)[-period:]
    return float(arr[-1]), float(np.max(hi)), float(np.min(lo))


# =============================================================================
# Moving averages
# =============================================================================

def sma(prices: Sequence[float], period: int) -> float | None:
    """
    Simple Moving Average of the last ``period`` prices.

    With fewer than ``period`` prices the latest price is returned
    (insufficient-data policy). Returns None only for an empty series.
    """
    if len(prices) == 0:
        return None
    if len(prices) < period:
        return float(prices[-1])
    return float(np.mean(_as_array(prices)[-period:]))


def ema(prices: Sequence[float], period: int) -> float | None:
    """
    Exponential Moving Average seeded at the first price of the slice.

    ema = (price - ema) * k + ema, k = 2 / (period + 1), applied over the
    whole slice. Fewer than ``period`` prices returns the latest price.
    """
    if len(prices) == 0:
        return None
    if len(prices) < period:
        return float(prices[-1])

    k = 2.0 / (period + 1)
    arr = _as_array(prices)
    value = arr[0]
    for price in arr[1:]:
        value = (price - value) * k + value
    return float(value)


# =============================================================================
# Oscillators
# =============================================================================

def rsi(prices: Sequence[float], period: int = 14) -> float | None:
    """
    Relative Strength Index over the last ``period`` price changes.

    Uses the simple average gain and loss of those changes. Returns
    ``RSI_NEUTRAL`` with fewer than ``period + 1`` prices or when the
    window is flat. When there are gains but no losses the ratio is
    unbounded and the result is clamped to 100.
    """
    if len(prices) == 0:
        return None
    if len(prices) < period + 1:
        return RSI_NEUTRAL

    deltas = np.diff(_as_array(prices)[-(period + 1):])
    avg_gain = float(np.sum(deltas[deltas > 0])) / period
    avg_loss = float(-np.sum(deltas[deltas < 0])) / period

    if avg_loss == 0:
        return RSI_MAX if avg_gain > 0 else RSI_NEUTRAL
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
) -> MacdValues | None:
    """
    MACD line, signal and histogram.

    line = EMA(fast) - EMA(slow); signal = line * 0.9 (simplified stand-in
    for a 9-period EMA of the line); histogram = line - signal.
    """
    fast = ema(prices, fast_period)
    slow = ema(prices, slow_period)
    if fast is None or slow is None:
        return None
    line = fast - slow
    signal = line * SIGNAL_SMOOTHING
    return MacdValues(line=line, signal=signal, histogram=line - signal)


def stochastic(
    prices: Sequence[float],
    period: int = 14,
    highs: Sequence[float | None] | None = None,
    lows: Sequence[float | None] | None = None,
) -> StochasticValues | None:
    """
    Stochastic oscillator.

    %K = (close - lowest low) / (highest high - lowest low) * 100 over the
    window, %D = %K * 0.9. Highs/lows default to the price for samples
    that lack them. Short or flat windows return neutral %K = %D = 50.
    """
    if len(prices) == 0:
        return None
    if len(prices) < period:
        return StochasticValues(k=STOCHASTIC_NEUTRAL, d=STOCHASTIC_NEUTRAL)

    close, highest, lowest = _window_extremes(prices, period, highs, lows)
    span = highest - lowest
    if span <= 0:
        return StochasticValues(k=STOCHASTIC_NEUTRAL, d=STOCHASTIC_NEUTRAL)
    k = (close - lowest) / span * 100.0
    return StochasticValues(k=k, d=k * SIGNAL_SMOOTHING)


def williams_r(
    prices: Sequence[float],
    period: int = 14,
    highs: Sequence[float | None] | None = None,
    lows: Sequence[float | None] | None = None,
) -> float | None:
    """
    Williams %R = (highest high - close) / (highest high - lowest low) * -100.

    Ranges from -100 (at the low) to 0 (at the high). Short or flat
    windows return ``WILLIAMS_R_NEUTRAL``.
    """
    if len(prices) == 0:
        return None
    if len(prices) < period:
        return WILLIAMS_R_NEUTRAL

    close, highest, lowest = _window_extremes(prices, period, highs, lows)
    span = highest - lowest
    if span <= 0:
        return WILLIAMS_R_NEUTRAL
    return (highest - close) / span * -100.0


# =============================================================================
# Volatility
# =============================================================================

def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> BollingerBands | None:
    """
    Bollinger Bands around SMA(period).

    band = k * population standard deviation of the last ``period``
    prices around the middle line (all prices when fewer are available).
    upper >= middle >= lower always holds.
    """
    middle = sma(prices, period)
    if middle is None:
        return None
    window = _as_array(prices)[-period:]
    std = float(np.sqrt(np.mean((window - middle) ** 2)))
    band = k * std
    return BollingerBands(upper=middle + band, middle=middle, lower=middle - band)


def bollinger_position(price: float, bands: BollingerBands) -> float:
    """Position of ``price`` inside the bands in percent (0 = lower, 100 = upper).

    Values outside [0, 100] mean price is outside the bands.
    """
    if bands.width <= 0:
        return BAND_POSITION_NEUTRAL
    return (price - bands.lower) / bands.width * 100.0


def bandwidth(bands: BollingerBands) -> float:
    """Band width relative to the middle line, a unitless volatility estimate."""
    if bands.middle <= 0:
        return 0.0
    return bands.width / bands.middle


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    The first bar has no previous close and uses high - low.
    """
    n = len(highs)
    if n == 0:
        return []

    result = [highs[0] - lows[0]]
    for i in range(1, n):
        hl = highs[i] - lows[i]
        hc = abs(highs[i] - closes[i - 1])
        lc = abs(lows[i] - closes[i - 1])
        result.append(max(hl, hc, lc))
    return result


def atr(
    prices: Sequence[float],
    highs: Sequence[float | None] | None = None,
    lows: Sequence[float | None] | None = None,
    period: int = 14,
) -> float | None:
    """
    Average True Range: mean true range over the last ``period`` bars.

    Samples without high/low get price * (1 +/- 0.5%). This fallback is
    only meant for feeds that do not provide full OHLC data.
    """
    if len(prices) == 0:
        return None

    closes = _as_array(prices)
    # Need one extra bar so the first true range in the window has a prev close
    start = max(len(closes) - period - 1, 0)
    closes = closes[start:]
    hi = _fill(highs[start:] if highs is not None else None,
               closes * (1 + OHLC_FALLBACK_FRACTION))
    lo = _fill(lows[start:] if lows is not None else None,
               closes * (1 - OHLC_FALLBACK_FRACTION))

    tr = true_range(hi.tolist(), lo.tolist(), closes.tolist())
    return float(np.mean(tr[-period:]))


# =============================================================================
# Volume and levels
# =============================================================================

def vwap(
    prices: Sequence[float],
    volumes: Sequence[float | None] | None = None,
) -> float | None:
    """
    Volume Weighted Average Price over all supplied samples.

    Samples without volume are weighted with ``DEFAULT_VOLUME``; without
    any volume data this reduces to the arithmetic mean.
    """
    if len(prices) == 0:
        return None
    arr = _as_array(prices)
    vol = _fill(volumes, np.full(len(arr), DEFAULT_VOLUME))
    total = float(np.sum(vol))
    if total <= 0:
        return float(np.mean(arr))
    return float(np.sum(arr * vol) / total)


def support_resistance(
    prices: Sequence[float],
    lookback: int = SR_LOOKBACK,
) -> tuple[float, float] | None:
    """
    Naive support/resistance: lookback min * 0.995 and max * 1.005.

    A placeholder-quality heuristic, not a real level detector.
    """
    if len(prices) == 0:
        return None
    window = _as_array(prices)[-lookback:]
    return float(np.min(window)) * SUPPORT_FACTOR, float(np.max(window)) * RESISTANCE_FACTOR


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for every indicator in an IndicatorSet."""

    def __init__(self, config: IndicatorConfig | None = None):
        self.config = config or IndicatorConfig()

    @property
    def max_lookback(self) -> int:
        """Longest lookback in use; series shorter than this get fallbacks."""
        c = self.config
        return max(
            c.rsi_period + 1,
            c.sma_fast_period,
            c.sma_slow_period,
            c.ema_fast_period,
            c.ema_slow_period,
            c.bollinger_period,
            c.atr_period + 1,
            c.stochastic_period,
            c.williams_period,
        )

    def calculate(self, snapshot: SeriesSnapshot) -> IndicatorSet:
        """
        Calculate all indicators for the latest sample of a snapshot.

        Args:
            snapshot: Immutable series snapshot

        Returns:
            IndicatorSet; every field is None for an empty snapshot
        """
        if len(snapshot) == 0:
            return IndicatorSet()

        c = self.config
        prices = snapshot.prices()
        highs = snapshot.highs()
        lows = snapshot.lows()
        levels = support_resistance(prices, c.support_resistance_lookback)

        return IndicatorSet(
            rsi=rsi(prices, c.rsi_period),
            macd=macd(prices, c.ema_fast_period, c.ema_slow_period),
            bollinger=bollinger_bands(prices, c.bollinger_period, c.bollinger_k),
            sma20=sma(prices, c.sma_fast_period),
            sma50=sma(prices, c.sma_slow_period),
            ema12=ema(prices, c.ema_fast_period),
            ema26=ema(prices, c.ema_slow_period),
            atr=atr(prices, highs, lows, c.atr_period),
            stochastic=stochastic(prices, c.stochastic_period, highs, lows),
            williams_r=williams_r(prices, c.williams_period, highs, lows),
            vwap=vwap(prices, snapshot.volumes()),
            support=levels[0],
            resistance=levels[1],
        )

    def is_warm(self, snapshot: SeriesSnapshot) -> bool:
        """True once the snapshot covers every lookback (no fallbacks in use)."""
        return len(snapshot) >= self.max_lookback
