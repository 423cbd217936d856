from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def expand_env(value: Any) -> Any:
    """Expand ``$VAR`` and ``${VAR}`` in every string of a loaded YAML document."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    return value


def load_yaml_mapping(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML settings file; an empty file is an empty mapping."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return expand_env(data)


def parse_env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def env_bool(name: str) -> Optional[bool]:
    """Boolean flag from the environment; None when unset or unrecognized."""
    return parse_env_bool(os.getenv(name))


def env_str(name: str) -> Optional[str]:
    """Stripped setting from the environment; None when unset or blank."""
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def env_list(name: str) -> Optional[List[str]]:
    """Comma-separated setting from the environment.

    An unset variable gives None so it does not override file values; a set but
    empty variable gives an empty list.
    """
    raw = os.getenv(name)
    if raw is None:
        return None
    return [part.strip() for part in raw.split(",") if part.strip()]
