"""Tests for technical indicators."""

import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from signal_engine.indicators import (
    DEFAULT_VOLUME,
    RSI_NEUTRAL,
    STOCHASTIC_NEUTRAL,
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
from signal_engine.models import BollingerBands, IndicatorConfig, Sample, SeriesSnapshot


def _snapshot(prices, volumes=None, symbol="AAPL") -> SeriesSnapshot:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    samples = []
    for i, price in enumerate(prices):
        volume = volumes[i] if volumes is not None else None
        samples.append(
            Sample(timestamp=start + timedelta(minutes=i), price=price, volume=volume)
        )
    return SeriesSnapshot(symbol=symbol, samples=tuple(samples))


def _random_walk(n: int, seed: int = 7) -> list[float]:
    rng = random.Random(seed)
    prices = [100.0]
    for _ in range(n - 1):
        prices.append(max(1.0, prices[-1] + rng.uniform(-2.0, 2.0)))
    return prices


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        """Test basic SMA calculation."""
        values = [float(i) for i in range(1, 11)]  # 1-10
        # (8+9+10)/3 = 9
        assert sma(values, 3) == pytest.approx(9.0)

    def test_sma_insufficient_data_returns_latest_price(self):
        """Test SMA with insufficient data returns the latest price."""
        assert sma([100.0, 101.0, 102.0], 20) == 102.0

    def test_sma_empty(self):
        """Test SMA of an empty series."""
        assert sma([], 20) is None


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeds_at_first_price_of_slice(self):
        """Test EMA seeds at the first price of the slice."""
        # k = 0.5: 1 -> 1.5 -> 2.25
        assert ema([1.0, 2.0, 3.0], 3) == pytest.approx(2.25)

    def test_ema_runs_over_whole_slice(self):
        """Test EMA depends on the head of the slice."""
        # Same tail, different head: the seed changes the result
        assert ema([10.0, 2.0, 3.0], 3) != pytest.approx(ema([1.0, 2.0, 3.0], 3))

    def test_ema_constant_series(self):
        """Test EMA of constant prices."""
        assert ema([50.0] * 30, 12) == pytest.approx(50.0)

    def test_ema_insufficient_data(self):
        """Test EMA with insufficient data."""
        assert ema([100.0, 101.0], 12) == 101.0


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_insufficient_data_is_neutral(self):
        """Test RSI with insufficient data is neutral."""
        assert rsi([100.0 + i for i in range(14)], 14) == RSI_NEUTRAL

    def test_rsi_all_gains_clamps_to_100(self):
        """Test RSI clamps to 100 with no losses."""
        assert rsi([100.0 + i for i in range(15)], 14) == 100.0

    def test_rsi_all_losses_is_zero(self):
        """Test RSI is 0 with no gains."""
        assert rsi([100.0 - i for i in range(15)], 14) == pytest.approx(0.0)

    def test_rsi_flat_is_neutral(self):
        """Test RSI of flat prices."""
        assert rsi([100.0] * 20, 14) == RSI_NEUTRAL

    def test_rsi_balanced_moves(self):
        """Test RSI with equal gains and losses."""
        prices = [100.0 if i % 2 == 0 else 101.0 for i in range(15)]
        assert rsi(prices, 14) == pytest.approx(50.0)

    def test_rsi_uses_last_period_deltas_only(self):
        """Test RSI ignores changes outside the window."""
        # Early crash is outside the 14-delta window
        prices = [200.0, 100.0] + [100.0 + i for i in range(1, 15)]
        assert rsi(prices, 14) == 100.0

    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_rsi_bounded(self, seed):
        """Test RSI stays within [0, 100]."""
        prices = _random_walk(80, seed)
        for end in range(1, len(prices) + 1):
            value = rsi(prices[:end], 14)
            assert 0.0 <= value <= 100.0


class TestMACD:
    """Tests for MACD calculation."""

    def test_macd_uptrend_is_bullish(self):
        """Test MACD in an uptrend."""
        result = macd([100.0 + i for i in range(40)])
        assert result.line > 0
        assert result.histogram > 0

    def test_macd_simplified_signal_line(self):
        """Test MACD signal line scaling."""
        result = macd([100.0 + (i % 7) * 1.5 for i in range(40)])
        assert result.signal == pytest.approx(result.line * 0.9)
        assert result.histogram == pytest.approx(result.line - result.signal)

    def test_macd_empty(self):
        """Test MACD of an empty series."""
        assert macd([]) is None


class TestBollingerBands:
    """Tests for Bollinger Bands calculation."""

    def test_bollinger_basic(self):
        """Test basic Bollinger Bands calculation."""
        # mean 3, population variance 2
        bands = bollinger_bands([1.0, 2.0, 3.0, 4.0, 5.0], period=5, k=2.0)
        assert bands.middle == pytest.approx(3.0)
        assert bands.upper == pytest.approx(3.0 + 2 * math.sqrt(2))
        assert bands.lower == pytest.approx(3.0 - 2 * math.sqrt(2))

    def test_bollinger_constant_prices_collapse(self):
        """Test Bollinger Bands collapse on constant prices."""
        bands = bollinger_bands([100.0] * 25)
        assert bands.upper == bands.middle == bands.lower == pytest.approx(100.0)

    def test_bollinger_short_series_centres_on_latest_price(self):
        """Test Bollinger Bands with insufficient data."""
        bands = bollinger_bands([1.0, 2.0, 3.0], period=20)
        assert bands.middle == 3.0
        assert bands.upper > bands.middle > bands.lower

    @pytest.mark.parametrize("seed", [11, 12, 13])
    def test_bollinger_ordering(self, seed):
        """Test upper >= middle >= lower for any prefix."""
        prices = _random_walk(60, seed)
        for end in range(1, len(prices) + 1):
            bands = bollinger_bands(prices[:end])
            assert bands.upper >= bands.middle >= bands.lower

    def test_bollinger_position(self):
        """Test price position inside the bands."""
        bands = BollingerBands(upper=110.0, middle=100.0, lower=90.0)
        assert bollinger_position(100.0, bands) == pytest.approx(50.0)
        assert bollinger_position(110.0, bands) == pytest.approx(100.0)
        assert bollinger_position(85.0, bands) < 0

    def test_bollinger_position_zero_width(self):
        """Test band position with zero-width bands."""
        bands = BollingerBands(upper=100.0, middle=100.0, lower=100.0)
        assert bollinger_position(100.0, bands) == 50.0

    def test_bandwidth(self):
        """Test relative bandwidth."""
        bands = BollingerBands(upper=110.0, middle=100.0, lower=90.0)
        assert bandwidth(bands) == pytest.approx(0.2)


class TestATR:
    """Tests for ATR calculation."""

    def test_true_range_basic(self):
        """Test basic True Range calculation."""
        result = true_range([102.0, 105.0], [100.0, 101.0], [101.0, 104.0])
        # bar 0: 102-100; bar 1: max(4, |105-101|, |101-101|)
        assert result == [2.0, 4.0]

    def test_atr_constant_range(self):
        """Test ATR with constant range candles."""
        highs = [102.0] * 20
        lows = [100.0] * 20
        closes = [101.0] * 20
        assert atr(closes, highs, lows, 14) == pytest.approx(2.0)

    def test_atr_without_high_low_uses_fraction_of_price(self):
        """Test ATR without high/low data."""
        # high/low = price +/- 0.5% -> range 1.0 at price 100
        assert atr([100.0] * 20, period=14) == pytest.approx(1.0)

    def test_atr_single_sample(self):
        """Test ATR of a single sample."""
        assert atr([200.0]) == pytest.approx(2.0)

    def test_atr_partial_high_low(self):
        """Test ATR with high/low on some samples only."""
        closes = [100.0] * 20
        highs = [None] * 19 + [104.0]
        lows = [None] * 19 + [98.0]
        # 13 bars of 1.0 plus one bar of 6.0
        assert atr(closes, highs, lows, 14) == pytest.approx((13 * 1.0 + 6.0) / 14)


class TestStochasticAndWilliams:
    """Tests for Stochastic oscillator and Williams %R."""

    def test_stochastic_at_high(self):
        """Test stochastic with close at the window high."""
        result = stochastic([float(i) for i in range(1, 15)], 14)
        assert result.k == pytest.approx(100.0)
        assert result.d == pytest.approx(90.0)

    def test_stochastic_short_and_flat_are_neutral(self):
        """Test stochastic fallbacks."""
        assert stochastic([1.0, 2.0], 14).k == STOCHASTIC_NEUTRAL
        flat = stochastic([10.0] * 20, 14)
        assert flat.k == STOCHASTIC_NEUTRAL
        assert flat.d == STOCHASTIC_NEUTRAL

    def test_stochastic_uses_high_low_when_present(self):
        """Test stochastic uses recorded high/low."""
        prices = [10.0] * 14
        result = stochastic(prices, 14, highs=[12.0] * 14, lows=[8.0] * 14)
        assert result.k == pytest.approx(50.0)

    def test_williams_r_range(self):
        """Test Williams %R at the window high and low."""
        assert williams_r([float(i) for i in range(1, 15)], 14) == pytest.approx(0.0)
        assert williams_r([float(i) for i in range(14, 0, -1)], 14) == pytest.approx(-100.0)

    def test_williams_r_short_and_flat_are_neutral(self):
        """Test Williams %R fallbacks."""
        assert williams_r([1.0], 14) == WILLIAMS_R_NEUTRAL
        assert williams_r([5.0] * 20, 14) == WILLIAMS_R_NEUTRAL


class TestVolumeAndLevels:
    """Tests for VWAP and support/resistance."""

    def test_vwap_basic(self):
        """Test basic VWAP calculation."""
        assert vwap([10.0, 20.0], [1.0, 3.0]) == pytest.approx(17.5)

    def test_vwap_without_volume_is_mean(self):
        """Test VWAP without volume data."""
        assert vwap([10.0, 20.0, 30.0]) == pytest.approx(20.0)

    def test_vwap_missing_volume_uses_default(self):
        """Test VWAP with partially missing volume."""
        result = vwap([10.0, 20.0], [None, 3 * DEFAULT_VOLUME])
        assert result == pytest.approx(17.5)

    def test_vwap_zero_volume_is_mean(self):
        """Test VWAP with zero total volume."""
        assert vwap([10.0, 20.0], [0.0, 0.0]) == pytest.approx(15.0)

    def test_support_resistance(self):
        """Test support and resistance levels."""
        prices = [float(i) for i in range(1, 31)]
        support, resistance = support_resistance(prices, 20)
        assert support == pytest.approx(11 * 0.995)
        assert resistance == pytest.approx(30 * 1.005)

    def test_support_resistance_empty(self):
        """Test support and resistance of an empty series."""
        assert support_resistance([]) is None


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator class."""

    def test_calculate_full_history(self):
        """Test calculate with full history."""
        snapshot = _snapshot(_random_walk(60), volumes=[1000.0] * 60)
        result = IndicatorCalculator().calculate(snapshot)

        assert result.missing() == []
        assert result.sma20 == pytest.approx(sum(snapshot.prices()[-20:]) / 20)
        assert result.bollinger.upper >= result.bollinger.middle >= result.bollinger.lower

    def test_calculate_empty_snapshot(self):
        """Test calculate with an empty snapshot."""
        result = IndicatorCalculator().calculate(SeriesSnapshot("AAPL", ()))
        assert len(result.missing()) == 13
        assert result.rsi is None

    def test_short_series_uses_fallbacks(self):
        """Test calculate with a short series."""
        snapshot = _snapshot([100.0, 101.0, 102.0, 101.5, 103.0])
        result = IndicatorCalculator().calculate(snapshot)

        assert result.missing() == []
        assert result.rsi == RSI_NEUTRAL
        assert result.sma50 == 103.0
        assert result.ema26 == 103.0
        assert result.stochastic.k == STOCHASTIC_NEUTRAL
        assert result.williams_r == WILLIAMS_R_NEUTRAL

    @pytest.mark.parametrize("n", [1, 2, 5, 14, 15, 20, 26, 50, 51])
    def test_no_nan_for_any_length(self, n):
        """Test no indicator is ever NaN."""
        for prices in (_random_walk(n), [100.0] * n):
            result = IndicatorCalculator().calculate(_snapshot(prices))
            values = result.model_dump()
            for name, value in values.items():
                nested = value.values() if isinstance(value, dict) else [value]
                for v in nested:
                    assert math.isfinite(v), f"{name} is not finite for n={n}"

    def test_is_warm(self):
        """Test warm-up detection."""
        calc = IndicatorCalculator(IndicatorConfig())
        assert calc.max_lookback == 50
        assert not calc.is_warm(_snapshot([100.0] * 49))
        assert calc.is_warm(_snapshot([100.0] * 50))
