"""Hybrid fusion of traditional and model-based opinions.

Combines one or more opinions for a symbol into a single HybridSignal:

1. Effective weight = confidence x configured source weight x opinion
   weight, normalized to sum to 1.
2. Unanimous opinions keep their action. Otherwise the opinion with the
   highest effective weight wins; ties go to model-sourced opinions,
   then to input order.
3. Confidence is the effective-weighted mean of the opinions' confidences.
4. Disagreement (more than one distinct action, alert enabled) puts a
   warning in front of the reasons.

Signals below the confidence threshold are still returned with a
reduced weight; filtering is the consumer's decision.

This module is pure business logic with no I/O dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from signal_engine.errors import ConfigError, EngineError, ValidationError
from signal_engine.models import (
    TRADITIONAL_SOURCE,
    Action,
    FusionConfig,
    HybridSignal,
    Opinion,
    SignalSource,
    parse_opinion,
)

logger = logging.getLogger(__name__)

DISAGREEMENT_PREFIX = "⚠️ Sources disagree"

# Decimal places kept for confidence and the weight breakdown
OUTPUT_PRECISION = 12

# Normalized weights closer than this count as tied
_TIE_EPSILON = 1e-12

COMBINED_BONUS = 1.1
LOW_CONFIDENCE_PENALTY = 0.9
LOW_CONFIDENCE_LEVEL = 0.7


class HybridFusionEngine:
    """Fuse opinions into hybrid signals using a FusionConfig."""

    def __init__(self, config: FusionConfig | None = None):
        self.config = (config or FusionConfig()).check()

    def update_config(self, **changes) -> FusionConfig:
        """Apply a partial configuration update (e.g. from a JSON body).

        Raises:
            ConfigError: If the resulting configuration is invalid. The
                current configuration is kept in that case.
        """
        self.config = self.config.updated(**changes)
        logger.info(
            "Fusion config updated: traditional=%.2f ai=%.2f threshold=%.2f alert=%s",
            self.config.traditional_weight,
            self.config.ai_weight,
            self.config.confidence_threshold,
            self.config.enable_disagreement_alert,
        )
        return self.config

    # ------------------------------------------------------------------
    # Weighting
    # ------------------------------------------------------------------

    def _source_weight(self, opinion: Opinion) -> float:
        if opinion.is_model:
            return self.config.ai_weight
        return self.config.traditional_weight

    def effective_weights(self, opinions: Sequence[Opinion]) -> list[float]:
        """Normalized effective weight of each opinion, in input order.

        Raises:
            ConfigError: If every effective weight is zero.
        """
        raw = [
            o.confidence * self._source_weight(o) * o.weight
            for o in opinions
        ]
        total = sum(raw)
        if not total > 0:
            raise ConfigError(
                "all effective weights are zero; check source weights and "
                "opinion confidences"
            )
        return [w / total for w in raw]

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _pick_action(opinions: Sequence[Opinion], weights: Sequence[float]) -> Action:
        actions = {o.action for o in opinions}
        if len(actions) == 1:
            return opinions[0].action

        best = 0
        for i in range(1, len(opinions)):
            diff = weights[i] - weights[best]
            if diff > _TIE_EPSILON:
                best = i
            elif abs(diff) <= _TIE_EPSILON:
                # Tie: newer model information beats the rule-based view
                if opinions[i].is_model and not opinions[best].is_model:
                    best = i
        return opinions[best].action

    @staticmethod
    def _signal_source(
        opinions: Sequence[Opinion], weights: Sequence[float]
    ) -> SignalSource:
        # Only sources with a positive effective weight contributed
        contributing = [o for o, w in zip(opinions, weights) if w > 0]
        if len({o.source for o in contributing}) > 1:
            return SignalSource.COMBINED
        if contributing[0].is_model:
            return SignalSource.AI
        return SignalSource.HUMAN

    def _tag(self, opinion: Opinion, reason: str) -> str:
        if not self.config.tag_reasons:
            return reason
        if opinion.source == TRADITIONAL_SOURCE:
            return f"Traditional: {reason}"
        if opinion.is_model:
            return f"AI ({opinion.model_id}): {reason}"
        return f"{opinion.source}: {reason}"

    @staticmethod
    def _disagreement_reason(opinions: Sequence[Opinion]) -> str:
        views = ", ".join(f"{o.source}={o.action.value}" for o in opinions)
        return f"{DISAGREEMENT_PREFIX}: {views}"

    def detect_divergence(self, opinions: Sequence[Opinion]) -> bool:
        """True if actions differ or confidences spread beyond the threshold."""
        if len({o.action for o in opinions}) > 1:
            return True
        confidences = [o.confidence for o in opinions]
        return max(confidences) - min(confidences) > self.config.divergence_threshold

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fuse(
        self,
        symbol: str,
        opinions: Sequence[Opinion | Mapping[str, Any]],
        price: float | None = None,
        timestamp: datetime | None = None,
    ) -> HybridSignal:
        """
        Fuse the opinions for one symbol into a HybridSignal.

        Args:
            symbol: Instrument the opinions refer to
            opinions: Non-empty sequence of opinions (Opinion instances or
                raw mappings, which are validated first)
            price: Latest price, carried through for display
            timestamp: Evaluation time (defaults to now, UTC)

        Returns:
            HybridSignal. Confidence and the weight breakdown are rounded to
            ``OUTPUT_PRECISION`` places, so scaling both source weights by
            the same factor yields an equal signal.

        Raises:
            ValidationError: If no opinions are given or one is malformed.
            ConfigError: If every effective weight is zero.
        """
        if not opinions:
            raise ValidationError(f"{symbol}: at least one opinion is required")
        opinions = [parse_opinion(o) for o in opinions]

        weights = self.effective_weights(opinions)
        action = self._pick_action(opinions, weights)
        confidence = sum(w * o.confidence for w, o in zip(weights, opinions))
        confidence = round(min(max(confidence, 0.0), 1.0), OUTPUT_PRECISION)

        distinct_actions = len({o.action for o in opinions})
        disagreement = distinct_actions > 1 and self.config.enable_disagreement_alert

        all_reasons: list[str] = []
        if disagreement:
            all_reasons.append(self._disagreement_reason(opinions))
            logger.warning(
                "Signal disagreement for %s: %s",
                symbol,
                ", ".join(f"{o.source}={o.action.value}" for o in opinions),
            )
        for opinion in opinions:
            all_reasons.extend(self._tag(opinion, r) for r in opinion.reasons)

        meets_threshold = confidence >= self.config.confidence_threshold
        breakdown: dict[str, float] = {}
        for opinion, weight in zip(opinions, weights):
            breakdown[opinion.source] = breakdown.get(opinion.source, 0.0) + weight
        breakdown = {s: round(w, OUTPUT_PRECISION) for s, w in breakdown.items()}

        signal = HybridSignal(
            symbol=symbol,
            action=action,
            confidence=confidence,
            weight=1.0 if meets_threshold else confidence,
            reasons=all_reasons[: self.config.max_reasons],
            all_reasons=all_reasons,
            source=self._signal_source(opinions, weights),
            disagreement=disagreement,
            divergent=self.detect_divergence(opinions),
            meets_threshold=meets_threshold,
            weights=breakdown,
            price=price,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        logger.debug(
            "Hybrid signal %s: %s conf=%.3f source=%s disagreement=%s",
            symbol,
            signal.action.value,
            signal.confidence,
            signal.source.value,
            signal.disagreement,
        )
        return signal

    def fuse_portfolio(
        self,
        opinions_by_symbol: Mapping[str, Sequence[Opinion | Mapping[str, Any]]],
        prices: Mapping[str, float] | None = None,
        timestamp: datetime | None = None,
    ) -> list[HybridSignal]:
        """
        Fuse opinions for many symbols.

        Symbols whose fusion fails are logged and skipped so one bad input
        does not drop the whole batch.

        Returns:
            Signals sorted by confidence, highest first
        """
        prices = prices or {}
        signals = []
        for symbol, opinions in opinions_by_symbol.items():
            try:
                signals.append(
                    self.fuse(symbol, opinions, prices.get(symbol), timestamp)
                )
            except EngineError as e:
                logger.warning("Skipping %s: %s", symbol, e)
        return sorted(signals, key=lambda s: s.confidence, reverse=True)

    @staticmethod
    def score_signal(signal: HybridSignal) -> float:
        """Rank score for decision making, capped at 1.0.

        confidence x weight, +10% for combined signals, -10% below 0.7
        confidence.
        """
        score = signal.confidence * signal.weight
        if signal.source == SignalSource.COMBINED:
            score *= COMBINED_BONUS
        if signal.confidence < LOW_CONFIDENCE_LEVEL:
            score *= LOW_CONFIDENCE_PENALTY
        return min(score, 1.0)
