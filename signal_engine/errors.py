"""Error types raised by the signal engine.

All of these are local, recoverable conditions: a caller typically skips
the symbol for the current cycle or keeps its last known signal.
"""

import pydantic


class EngineError(Exception):
    """Base class for signal engine errors."""


class ValidationError(EngineError, ValueError):
    """Malformed input (sample, opinion, or model prediction)."""


class ConfigError(EngineError, ValueError):
    """Invalid engine configuration, e.g. all source weights zero."""


class InsufficientDataError(EngineError):
    """No samples at all for a symbol.

    Never raised for indicator lookback shortfall: indicators degrade to
    documented fallbacks instead.
    """


def describe(error: pydantic.ValidationError) -> str:
    """Flatten a pydantic error into "field: message; ..." text."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "input"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)
