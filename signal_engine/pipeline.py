"""Evaluation pipeline wiring every engine component together.

An external feed calls ``append()`` as samples arrive; an external
scheduler calls ``evaluate()`` whenever it wants a fresh signal. The
pipeline holds no timers and keeps no per-evaluation state, so
different symbols may be evaluated from different threads.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from signal_engine.errors import InsufficientDataError, ValidationError
from signal_engine.fusion import HybridFusionEngine
from signal_engine.indicators import IndicatorCalculator
from signal_engine.models import (
    DEFAULT_CAPACITY,
    EngineConfig,
    HybridSignal,
    IndicatorSet,
    Opinion,
    Sample,
    SeriesBuffer,
    SeriesSnapshot,
)
from signal_engine.risk import RiskAssessment, RiskScorer, TradingLevels, trading_levels
from signal_engine.strategy import (
    ModelPrediction,
    ModelSignalAdapter,
    TraditionalSignalGenerator,
)

logger = logging.getLogger(__name__)


class Evaluation(BaseModel):
    """Everything computed for one symbol in one evaluation cycle."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    samples: int
    warm: bool  # every indicator lookback is covered
    indicators: IndicatorSet
    opinions: list[Opinion]
    signal: HybridSignal
    risk: RiskAssessment
    levels: TradingLevels


class SignalPipeline:
    """Series buffers plus the full indicator -> opinion -> fusion chain."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        capacity: int = DEFAULT_CAPACITY,
    ):
        self.config = config or EngineConfig()
        self.capacity = capacity

        self.calculator = IndicatorCalculator(self.config.indicators)
        self.traditional = TraditionalSignalGenerator(self.config.traditional)
        self.adapter = ModelSignalAdapter(self.config.model_weights)
        self.fusion = HybridFusionEngine(self.config.fusion)
        self.risk = RiskScorer(self.config.risk)

        self._buffers: dict[str, SeriesBuffer] = {}
        self._buffers_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Series management
    # ------------------------------------------------------------------

    def buffer(self, symbol: str) -> SeriesBuffer:
        """Get (or create) the buffer for a symbol."""
        with self._buffers_lock:
            buf = self._buffers.get(symbol)
            if buf is None:
                buf = SeriesBuffer(symbol, self.capacity)
                self._buffers[symbol] = buf
            return buf

    def append(self, symbol: str, sample: Sample) -> bool:
        """Record a new sample for a symbol."""
        return self.buffer(symbol).append(sample)

    def symbols(self) -> list[str]:
        with self._buffers_lock:
            return sorted(self._buffers)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _model_opinions(
        self, symbol: str, predictions: Iterable[Mapping[str, Any] | ModelPrediction]
    ) -> list[Opinion]:
        opinions = []
        for raw in predictions:
            try:
                opinions.append(self.adapter.adapt(raw))
            except ValidationError as e:
                logger.warning("%s: ignoring model prediction: %s", symbol, e)
        return opinions

    def evaluate_snapshot(
        self,
        snapshot: SeriesSnapshot,
        model_predictions: Iterable[Mapping[str, Any] | ModelPrediction] = (),
    ) -> Evaluation:
        """
        Evaluate an immutable snapshot.

        Args:
            snapshot: Series snapshot for one symbol
            model_predictions: Externally computed model outputs; malformed
                ones are logged and skipped

        Returns:
            Evaluation with indicators, opinions, hybrid signal and risk

        Raises:
            InsufficientDataError: If the snapshot has no samples.
        """
        latest = snapshot.latest
        if latest is None:
            raise InsufficientDataError(f"{snapshot.symbol}: no samples recorded")

        indicators = self.calculator.calculate(snapshot)
        opinions = [
            self.traditional.generate(
                indicators,
                latest.price,
                latest.volume,
                snapshot.average_volume(self.config.indicators.volume_lookback),
            )
        ]
        opinions.extend(self._model_opinions(snapshot.symbol, model_predictions))

        signal = self.fusion.fuse(
            snapshot.symbol,
            opinions,
            price=latest.price,
            timestamp=latest.timestamp,
        )
        risk = self.risk.score_indicators(indicators, snapshot)

        return Evaluation(
            symbol=snapshot.symbol,
            samples=len(snapshot),
            warm=self.calculator.is_warm(snapshot),
            indicators=indicators,
            opinions=opinions,
            signal=signal,
            risk=risk,
            levels=trading_levels(latest.price, indicators),
        )

    def evaluate(
        self,
        symbol: str,
        model_predictions: Iterable[Mapping[str, Any] | ModelPrediction] = (),
    ) -> Evaluation:
        """Evaluate the current snapshot of a symbol's buffer."""
        return self.evaluate_snapshot(self.buffer(symbol).snapshot(), model_predictions)
