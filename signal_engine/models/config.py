"""Engine configuration models."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from signal_engine.errors import ConfigError


class IndicatorConfig(BaseModel):
    """Lookback periods for the indicator library."""

    rsi_period: int = Field(default=14, ge=1)
    sma_fast_period: int = Field(default=20, ge=1)
    sma_slow_period: int = Field(default=50, ge=1)
    ema_fast_period: int = Field(default=12, ge=1)
    ema_slow_period: int = Field(default=26, ge=1)
    bollinger_period: int = Field(default=20, ge=1)
    bollinger_k: float = Field(default=2.0, ge=0.0)
    atr_period: int = Field(default=14, ge=1)
    stochastic_period: int = Field(default=14, ge=1)
    williams_period: int = Field(default=14, ge=1)
    support_resistance_lookback: int = Field(default=20, ge=1)
    volume_lookback: int = Field(default=20, ge=1)


class TraditionalConfig(BaseModel):
    """Thresholds for the rule-based analyzer."""

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    # Bollinger position (0-100 inside the bands) beyond which price is stretched
    band_lower_pct: float = 0.0
    band_upper_pct: float = 100.0

    # Latest volume above ratio * average counts as confirmation
    volume_ratio_threshold: float = 0.85
    volume_bonus: float = Field(default=0.05, ge=0.0, le=1.0)

    min_agreeing: int = Field(default=2, ge=1)
    hold_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class FusionConfig(BaseModel):
    """Weights and thresholds for combining opinions.

    Weights need not sum to 1 (the engine normalizes) but must be
    non-negative and not both zero; see ``check()``.
    """

    traditional_weight: float = 0.4
    ai_weight: float = 0.6
    confidence_threshold: float = 0.65
    enable_disagreement_alert: bool = True

    # Confidence spread above which agreeing sources still count as divergent
    divergence_threshold: float = 0.3

    max_reasons: int = Field(default=5, ge=1)
    tag_reasons: bool = True

    def check(self) -> "FusionConfig":
        """Raise ConfigError unless the weights are usable."""
        for name in ("traditional_weight", "ai_weight", "divergence_threshold"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigError(f"{name} must be a finite number, got {value}")
        if self.traditional_weight < 0 or self.ai_weight < 0:
            raise ConfigError(
                "source weights must be non-negative, got "
                f"traditional={self.traditional_weight}, ai={self.ai_weight}"
            )
        if self.traditional_weight == 0 and self.ai_weight == 0:
            raise ConfigError("traditional_weight and ai_weight cannot both be zero")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigError(
                f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}"
            )
        return self

    def updated(self, **changes) -> "FusionConfig":
        """Return a checked copy with ``changes`` applied."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ConfigError(f"Unknown fusion config fields: {', '.join(sorted(unknown))}")
        try:
            merged = type(self).model_validate({**self.model_dump(), **changes})
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return merged.check()


class RiskConfig(BaseModel):
    """Risk score terms and level cut points."""

    base_score: float = 50.0
    volatility_scale: float = 100.0
    max_volatility_points: float = 40.0

    low_liquidity_volume: float = 1_000_000.0
    high_liquidity_volume: float = 10_000_000.0
    liquidity_points: float = 10.0

    rsi_extreme_low: float = 30.0
    rsi_extreme_high: float = 70.0
    rsi_points: float = 5.0

    # score < medium_cutoff -> LOW, score >= high_cutoff -> HIGH
    medium_cutoff: int = 40
    high_cutoff: int = 70

    high_volatility: float = 0.3

    # Fraction of portfolio value allocated per risk level
    low_risk_allocation: float = 0.05
    medium_risk_allocation: float = 0.03
    high_risk_allocation: float = 0.01


class EngineConfig(BaseModel):
    """All component configurations, as loaded from engine.yaml."""

    indicators: IndicatorConfig = IndicatorConfig()
    traditional: TraditionalConfig = TraditionalConfig()
    fusion: FusionConfig = FusionConfig()
    risk: RiskConfig = RiskConfig()

    # Per-model weight in [0, 1]; models not listed get 1.0
    model_weights: dict[str, float] = {}
