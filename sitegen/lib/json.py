"""orjson wrappers shared by the manifest, metrics and JSON artifacts."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from pathlib import Path
from typing import Any

import orjson

JSONDecodeError = orjson.JSONDecodeError


def _encode_extra(obj: Any) -> Any:
    # orjson handles datetimes, dataclasses and enums itself.
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"{type(obj).__name__} values cannot be written as JSON")


def _chain(first: Callable[[Any], Any] | None) -> Callable[[Any], Any]:
    if first is None:
        return _encode_extra

    def encode(obj: Any) -> Any:
        try:
            return first(obj)
        except TypeError:
            return _encode_extra(obj)

    return encode


def dumps(
    obj: Any,
    *,
    default: Callable[[Any], Any] | None = None,
    indent: bool = False,
    sort_keys: bool = False,
) -> str:
    """Serialize ``obj``; ``indent`` gives the 2-space form used for files people read."""
    option = (orjson.OPT_INDENT_2 if indent else 0) | (orjson.OPT_SORT_KEYS if sort_keys else 0)
    return orjson.dumps(obj, default=_chain(default), option=option).decode("utf-8")


def loads(data: str | bytes) -> Any:
    return orjson.loads(data)


__all__ = ["dumps", "loads", "JSONDecodeError"]
