"""Type aliases shared across httptrace."""

from __future__ import annotations

from typing import Any, Union

# Any for recursive slots, avoids Pydantic resolution issues
JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]
