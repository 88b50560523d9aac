"""Technical indicator and hybrid signal fusion engine.

This package contains pure business logic with no I/O dependencies
(no network, database, or timers). An external feed appends samples to
a SeriesBuffer and an external scheduler asks the engine to evaluate
the current snapshot; every evaluation is a bounded, synchronous
computation over immutable data.
"""

from signal_engine.errors import (
    ConfigError,
    EngineError,
    InsufficientDataError,
    ValidationError,
)
from signal_engine.fusion import HybridFusionEngine
from signal_engine.indicators import IndicatorCalculator
from signal_engine.models import (
    Action,
    EngineConfig,
    FusionConfig,
    HybridSignal,
    IndicatorSet,
    Opinion,
    Sample,
    SeriesBuffer,
    SeriesSnapshot,
)
from signal_engine.pipeline import Evaluation, SignalPipeline
from signal_engine.risk import RiskAssessment, RiskLevel, RiskScorer
from signal_engine.strategy import ModelSignalAdapter, TraditionalSignalGenerator

__all__ = [
    "Action",
    "ConfigError",
    "EngineConfig",
    "EngineError",
    "Evaluation",
    "FusionConfig",
    "HybridFusionEngine",
    "HybridSignal",
    "IndicatorCalculator",
    "IndicatorSet",
    "InsufficientDataError",
    "ModelSignalAdapter",
    "Opinion",
    "RiskAssessment",
    "RiskLevel",
    "RiskScorer",
    "Sample",
    "SeriesBuffer",
    "SeriesSnapshot",
    "SignalPipeline",
    "TraditionalSignalGenerator",
    "ValidationError",
]
