"""Payload shaping helpers shared by the notification builder and delivery.

These functions never mutate their inputs; each returns a fresh structure that
is safe to serialize.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, Iterable, Optional

FILTERED = "[FILTERED]"
RECURSION = "[RECURSION]"
TRUNCATED = "[TRUNCATED]"

MAX_STRING_LENGTH = 4096
MAX_DEPTH = 5
MAX_ITEMS = 100
METADATA_BUDGET = 64000


def flatten_meta_data(overrides: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    """Lift a nested ``meta_data`` mapping to the top level of ``overrides``.

    Keys inside ``meta_data`` replace top-level keys of the same name. A
    ``meta_data`` value that is not a mapping is discarded.
    """
    if overrides is None:
        return None
    flattened = {str(key): value for key, value in overrides.items()}
    nested = flattened.pop("meta_data", None)
    if isinstance(nested, Mapping):
        flattened.update({str(key): value for key, value in nested.items()})
    return flattened


def _is_filtered(key: str, filters: Iterable[Any]) -> bool:
    lowered = key.lower()
    for pattern in filters:
        if isinstance(pattern, re.Pattern):
            if pattern.search(key):
                return True
        elif str(pattern).lower() in lowered:
            return True
    return False


def cleanup_obj(obj: Any, filters: Optional[Iterable[Any]] = None, _seen: Optional[set[int]] = None) -> Any:
    """Return a JSON-safe copy of ``obj`` with filtered keys masked.

    ``filters`` holds plain strings (case-insensitive substring match on keys)
    or compiled regular expressions. Cyclic containers are replaced with a
    marker instead of recursing forever.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    filter_list = list(filters or ())
    seen = _seen if _seen is not None else set()

    if isinstance(obj, Mapping):
        if id(obj) in seen:
            return RECURSION
        seen.add(id(obj))
        cleaned: dict[str, Any] = {}
        for key, value in obj.items():
            key_str = str(key)
            if filter_list and _is_filtered(key_str, filter_list):
                cleaned[key_str] = FILTERED
            else:
                cleaned[key_str] = cleanup_obj(value, filter_list, seen)
        seen.discard(id(obj))
        return cleaned

    if isinstance(obj, (list, tuple, set, frozenset)):
        if id(obj) in seen:
            return RECURSION
        seen.add(id(obj))
        items = sorted(obj, key=repr) if isinstance(obj, (set, frozenset)) else obj
        cleaned_list = [cleanup_obj(item, filter_list, seen) for item in items]
        seen.discard(id(obj))
        return cleaned_list

    return str(obj)


def _truncate(value: Any, depth: int) -> Any:
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            return value[:MAX_STRING_LENGTH] + TRUNCATED
        return value
    if isinstance(value, Mapping):
        if depth >= MAX_DEPTH:
            return TRUNCATED
        items = list(value.items())[:MAX_ITEMS]
        return {key: _truncate(item, depth + 1) for key, item in items}
    if isinstance(value, (list, tuple)):
        if depth >= MAX_DEPTH:
            return TRUNCATED
        return [_truncate(item, depth + 1) for item in list(value)[:MAX_ITEMS]]
    return value


def _json_size(value: Any) -> int:
    return len(dump_json(value).encode("utf-8"))


def reduce_hash_size(meta_data: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    """Shrink metadata for an oversized payload.

    Long strings are cut, deep or wide containers are truncated, and if the
    result still exceeds ``METADATA_BUDGET`` bytes whole tabs are dropped,
    largest first with ties broken by tab name.
    """
    if meta_data is None:
        return None

    reduced = _truncate(meta_data, 0)
    if not isinstance(reduced, dict):
        return {}

    if _json_size(reduced) <= METADATA_BUDGET:
        return reduced

    by_size = sorted(reduced, key=lambda name: (-_json_size(reduced[name]), name))
    for name in by_size:
        del reduced[name]
        if _json_size(reduced) <= METADATA_BUDGET:
            break
    return reduced


def error_class(exception: Any) -> str:
    """Name reported for an exception: bare for builtins, module-qualified otherwise.

    Exception classes are accepted as well as instances.
    """
    klass = exception if isinstance(exception, type) else type(exception)
    module = getattr(klass, "__module__", None)
    if not module or module == "builtins":
        return klass.__qualname__
    return f"{module}.{klass.__qualname__}"


def _json_default(value: Any) -> str:
    return str(value)


def dump_json(value: Any) -> str:
    """Serialize to ASCII-only JSON so lone surrogates survive UTF-8 encoding."""
    return json.dumps(value, default=_json_default)
