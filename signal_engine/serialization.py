"""JSON serialization of engine outputs using orjson."""

from typing import Any

import orjson
from pydantic import BaseModel

from signal_engine.models import HybridSignal


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    return str(obj)


def dumps(obj: Any, indent: bool = False) -> str:
    """Serialize a model (or plain data) to a JSON string."""
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json")
    option = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(obj, default=_default, option=option).decode("utf-8")


def loads(data: str | bytes) -> Any:
    """Parse a JSON document."""
    return orjson.loads(data)


def signal_from_json(data: str | bytes) -> HybridSignal:
    """Rebuild a HybridSignal from its JSON form."""
    return HybridSignal.model_validate(orjson.loads(data))
