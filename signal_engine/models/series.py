"""Price sample and bounded per-symbol series buffer."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

# Longest default lookback is SMA(50); keep plenty of margin.
DEFAULT_CAPACITY = 200


class Sample(BaseModel):
    """One recorded price observation for an instrument."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    timestamp: datetime
    price: float = Field(gt=0)
    volume: float | None = Field(default=None, ge=0)
    high: float | None = None
    low: float | None = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.high is not None and self.high < self.price:
            raise ValueError(f"high {self.high} is below price {self.price}")
        if self.low is not None and self.low > self.price:
            raise ValueError(f"low {self.low} is above price {self.price}")
        return self

    @property
    def has_range(self) -> bool:
        """True when both high and low were recorded."""
        return self.high is not None and self.low is not None


@dataclass(frozen=True, slots=True)
class SeriesSnapshot:
    """Immutable view of a series at one point in time.

    Accessors return plain lists aligned by index, ready for the
    indicator functions.
    """

    symbol: str
    samples: tuple[Sample, ...]

    def prices(self) -> list[float]:
        return [s.price for s in self.samples]

    def volumes(self) -> list[float | None]:
        return [s.volume for s in self.samples]

    def highs(self) -> list[float | None]:
        return [s.high for s in self.samples]

    def lows(self) -> list[float | None]:
        return [s.low for s in self.samples]

    @property
    def latest(self) -> Sample | None:
        """Most recent sample, or None for an empty series."""
        return self.samples[-1] if self.samples else None

    def average_volume(self, lookback: int = 20) -> float | None:
        """Mean of the recorded volumes among the last ``lookback`` samples."""
        recorded = [s.volume for s in self.samples[-lookback:] if s.volume is not None]
        if not recorded:
            return None
        return sum(recorded) / len(recorded)

    def __len__(self) -> int:
        return len(self.samples)


class SeriesBuffer:
    """Bounded, append-only history of samples for one symbol.

    One producer appends; any number of readers call ``snapshot()``.
    Appends and snapshot copies happen under a lock so a reader always
    sees a consistent prefix of the series.

    Parameters
    ----------
    symbol : str
        Instrument the samples belong to.
    capacity : int
        Maximum samples kept. The oldest sample is evicted on overflow.
    """

    def __init__(self, symbol: str, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.symbol = symbol
        self.capacity = capacity
        self._samples: deque[Sample] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, sample: Sample) -> bool:
        """Add a sample, keeping timestamps strictly increasing.

        A sample with the same timestamp as the latest one replaces it
        (same-bar update). Older samples are ignored.

        Returns:
            True if the buffer changed.
        """
        with self._lock:
            if self._samples:
                last = self._samples[-1]
                if sample.timestamp == last.timestamp:
                    self._samples[-1] = sample
                    return True
                if sample.timestamp < last.timestamp:
                    logger.debug(
                        "%s: dropping out-of-order sample at %s (latest %s)",
                        self.symbol,
                        sample.timestamp,
                        last.timestamp,
                    )
                    return False
            self._samples.append(sample)
            return True

    def extend(self, samples: list[Sample]) -> int:
        """Append samples in order. Returns how many were accepted."""
        return sum(1 for s in samples if self.append(s))

    def snapshot(self) -> SeriesSnapshot:
        """Copy the current contents into an immutable snapshot."""
        with self._lock:
            samples = tuple(self._samples)
        return SeriesSnapshot(symbol=self.symbol, samples=samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
