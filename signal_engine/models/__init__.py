"""Data models shared by every engine component."""

from signal_engine.models.config import (
    EngineConfig,
    FusionConfig,
    IndicatorConfig,
    RiskConfig,
    TraditionalConfig,
)
from signal_engine.models.series import (
    DEFAULT_CAPACITY,
    Sample,
    SeriesBuffer,
    SeriesSnapshot,
)
from signal_engine.models.signal import (
    MODEL_SOURCE_PREFIX,
    TRADITIONAL_SOURCE,
    Action,
    BollingerBands,
    HybridSignal,
    IndicatorSet,
    MacdValues,
    Opinion,
    SignalSource,
    StochasticValues,
    parse_opinion,
)

__all__ = [
    "Action",
    "BollingerBands",
    "DEFAULT_CAPACITY",
    "EngineConfig",
    "FusionConfig",
    "HybridSignal",
    "IndicatorConfig",
    "IndicatorSet",
    "MODEL_SOURCE_PREFIX",
    "MacdValues",
    "Opinion",
    "RiskConfig",
    "Sample",
    "SeriesBuffer",
    "SeriesSnapshot",
    "SignalSource",
    "StochasticValues",
    "TRADITIONAL_SOURCE",
    "TraditionalConfig",
    "parse_opinion",
]
