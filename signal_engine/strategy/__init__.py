"""Opinion sources: the rule-based analyzer and the model adapter."""

from signal_engine.strategy.model_adapter import ModelPrediction, ModelSignalAdapter
from signal_engine.strategy.traditional import TraditionalSignalGenerator

__all__ = [
    "ModelPrediction",
    "ModelSignalAdapter",
    "TraditionalSignalGenerator",
]
