"""Adapter from externally scored model predictions to opinions.

The models themselves (DQN, PPO, LSTM, ensembles, ...) run elsewhere.
This module only checks the shape of what they produced and repackages
it as an Opinion with source "model:<id>". No inference happens here.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Mapping

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_engine.errors import ValidationError, describe
from signal_engine.models import MODEL_SOURCE_PREFIX, Action, Opinion

logger = logging.getLogger(__name__)

ModelType = Literal["dqn", "ppo", "lstm", "ensemble", "other"]

DEFAULT_MODEL_WEIGHT = 1.0


class ModelPrediction(BaseModel):
    """Already-computed output of an external model."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, protected_namespaces=())

    model_id: str = Field(min_length=1)
    model_type: ModelType = "other"
    action: Action
    confidence: float = Field(ge=0.0, le=1.0)
    features: dict[str, float] = Field(default_factory=dict)
    reasoning: list[str] = Field(default_factory=list)

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ModelSignalAdapter:
    """Normalize model predictions into Opinions.

    Parameters
    ----------
    weights : dict[str, float] | None
        Optional per-model weight in [0, 1], keyed by model id. Models
        without an entry get 1.0.
    """

    def __init__(self, weights: Mapping[str, float] | None = None):
        self.weights = dict(weights or {})
        for model_id, weight in self.weights.items():
            self._check_weight(model_id, weight)

    @staticmethod
    def _check_weight(model_id: str, weight: float) -> None:
        if not (isinstance(weight, (int, float)) and 0.0 <= weight <= 1.0):
            raise ValidationError(
                f"weight for model '{model_id}' must be in [0, 1], got {weight!r}"
            )

    @staticmethod
    def parse(raw: Mapping[str, Any] | ModelPrediction) -> ModelPrediction:
        """Validate a raw mapping as a ModelPrediction.

        Raises:
            ValidationError: If action is missing/unknown or confidence is
                outside [0, 1].
        """
        if isinstance(raw, ModelPrediction):
            return raw
        if not isinstance(raw, Mapping):
            raise ValidationError(
                f"model prediction must be a mapping, got {type(raw).__name__}"
            )
        try:
            return ModelPrediction.model_validate(dict(raw))
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid model prediction: {describe(e)}") from e

    def adapt(
        self,
        raw: Mapping[str, Any] | ModelPrediction,
        weight: float | None = None,
    ) -> Opinion:
        """
        Repackage one prediction as an Opinion.

        Args:
            raw: Prediction mapping or ModelPrediction
            weight: Explicit weight overriding the per-model weight map

        Returns:
            Opinion with source "model:<model_id>" and reasons passed
            through unchanged
        """
        prediction = self.parse(raw)
        if weight is None:
            weight = self.weights.get(prediction.model_id, DEFAULT_MODEL_WEIGHT)
        self._check_weight(prediction.model_id, weight)

        opinion = Opinion(
            source=f"{MODEL_SOURCE_PREFIX}{prediction.model_id}",
            action=prediction.action,
            confidence=prediction.confidence,
            reasons=list(prediction.reasoning),
            weight=weight,
            features=dict(prediction.features),
        )
        logger.debug(
            "Adapted %s prediction from %s: %s (%.2f, weight %.2f)",
            prediction.model_type,
            prediction.model_id,
            opinion.action.value,
            opinion.confidence,
            opinion.weight,
        )
        return opinion

    def adapt_many(
        self, raws: list[Mapping[str, Any] | ModelPrediction]
    ) -> list[Opinion]:
        """Adapt several predictions; the first malformed one raises."""
        return [self.adapt(raw) for raw in raws]
