"""Indicator, opinion and hybrid signal data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from signal_engine.errors import ValidationError, describe

TRADITIONAL_SOURCE = "traditional"
MODEL_SOURCE_PREFIX = "model:"


class Action(str, Enum):
    """Directional trading recommendation."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class SignalSource(str, Enum):
    """Kind of source behind a hybrid signal."""

    HUMAN = "human"  # traditional analyzer only
    AI = "ai"  # model-based analyzers only
    COMBINED = "combined"


class MacdValues(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: float
    signal: float
    histogram: float


class BollingerBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float

    @property
    def width(self) -> float:
        return self.upper - self.lower


class StochasticValues(BaseModel):
    model_config = ConfigDict(frozen=True)

    k: float
    d: float


class IndicatorSet(BaseModel):
    """Indicator values computed from one series snapshot.

    A field is None only when the series had no samples at all. With at
    least one sample every field carries either the computed value or
    its documented insufficient-data fallback, never NaN.
    """

    model_config = ConfigDict(frozen=True)

    rsi: float | None = None
    macd: MacdValues | None = None
    bollinger: BollingerBands | None = None
    sma20: float | None = None
    sma50: float | None = None
    ema12: float | None = None
    ema26: float | None = None
    atr: float | None = None
    stochastic: StochasticValues | None = None
    williams_r: float | None = None
    vwap: float | None = None
    support: float | None = None
    resistance: float | None = None

    def missing(self) -> list[str]:
        """Names of the indicators that could not be computed."""
        return [name for name, value in self if value is None]


class Opinion(BaseModel):
    """One source's directional recommendation."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    source: str  # "traditional" or "model:<id>"
    action: Action
    confidence: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    weight: float = Field(default=1.0, ge=0.0, le=1.0)
    features: dict[str, float] = Field(default_factory=dict)

    @property
    def is_model(self) -> bool:
        return self.source.startswith(MODEL_SOURCE_PREFIX)

    @property
    def model_id(self) -> str | None:
        if not self.is_model:
            return None
        return self.source[len(MODEL_SOURCE_PREFIX):]


def parse_opinion(raw: Mapping[str, Any] | Opinion) -> Opinion:
    """Validate raw opinion input.

    Raises:
        ValidationError: If action is missing/unknown or confidence or
            weight is outside [0, 1].
    """
    if isinstance(raw, Opinion):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"opinion must be a mapping, got {type(raw).__name__}")
    try:
        return Opinion.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        raise ValidationError(f"invalid opinion: {describe(e)}") from e


class HybridSignal(BaseModel):
    """Fused recommendation for one instrument.

    ``reasons`` is capped for display; ``all_reasons`` keeps every entry.
    Low-confidence signals are not suppressed: ``weight`` drops to the
    confidence and ``meets_threshold`` is False, leaving the filtering
    decision to the consumer.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    action: Action
    confidence: float
    weight: float
    reasons: list[str]
    all_reasons: list[str]
    source: SignalSource
    disagreement: bool
    divergent: bool = False
    meets_threshold: bool = True
    weights: dict[str, float] = Field(default_factory=dict)
    price: float | None = None
    timestamp: datetime
