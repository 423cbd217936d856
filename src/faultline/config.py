from __future__ import annotations

import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .helpers import error_class
from .middleware import Callbacks, MiddlewareStack, RequestDataTabs
from .utils import env_bool, env_list, env_str, load_yaml_mapping

DEFAULT_ENDPOINT = "notify.faultline.io"
DEFAULT_PARAMS_FILTERS = ("password", "password_confirmation")

_STRING_FIELDS = ("api_key", "release_stage", "app_version", "endpoint", "project_root")
_BOOL_FIELDS = ("use_ssl", "auto_notify", "enabled")
_LIST_FIELDS = ("notify_release_stages", "params_filters", "ignore_classes")

_ENV_STRINGS = {
    "api_key": "FAULTLINE_API_KEY",
    "release_stage": "FAULTLINE_RELEASE_STAGE",
    "app_version": "FAULTLINE_APP_VERSION",
    "endpoint": "FAULTLINE_ENDPOINT",
    "project_root": "FAULTLINE_PROJECT_ROOT",
}
_ENV_BOOLS = {
    "use_ssl": "FAULTLINE_USE_SSL",
    "auto_notify": "FAULTLINE_AUTO_NOTIFY",
    "enabled": "FAULTLINE_ENABLED",
}
_ENV_LISTS = {
    "notify_release_stages": "FAULTLINE_NOTIFY_RELEASE_STAGES",
    "params_filters": "FAULTLINE_PARAMS_FILTERS",
    "ignore_classes": "FAULTLINE_IGNORE_CLASSES",
}


@dataclass(frozen=True)
class ExactClassMatch:
    """Ignore exceptions whose reported class name equals ``name``."""

    name: str

    def matches(self, exception: Any) -> bool:
        return error_class(exception) == self.name


@dataclass(frozen=True)
class Predicate:
    """Ignore exceptions for which ``function(exception)`` is truthy."""

    function: Callable[[Any], Any]

    def matches(self, exception: Any) -> bool:
        return bool(self.function(exception))


IgnoreRule = Union[ExactClassMatch, Predicate]


def coerce_ignore_rule(value: Any) -> IgnoreRule:
    if isinstance(value, (ExactClassMatch, Predicate)):
        return value
    if isinstance(value, str):
        return ExactClassMatch(value.strip())
    if isinstance(value, type):
        return ExactClassMatch(error_class(value))
    if callable(value):
        return Predicate(value)
    raise ValueError(f"Ignore rules must be class names or callables, got {value!r}")


def _default_middleware() -> MiddlewareStack:
    stack = MiddlewareStack()
    stack.use(RequestDataTabs)
    stack.use(Callbacks)
    return stack


@dataclass
class Configuration:
    api_key: Optional[str] = None
    release_stage: Optional[str] = None
    notify_release_stages: Optional[list[str]] = None
    app_version: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    use_ssl: bool = False
    project_root: Optional[str] = None
    params_filters: list[Any] = field(default_factory=lambda: list(DEFAULT_PARAMS_FILTERS))
    ignore_classes: list[Any] = field(default_factory=list)
    auto_notify: bool = True
    enabled: bool = True
    before_notify_callbacks: list[Callable[..., Any]] = field(default_factory=list)
    middleware: MiddlewareStack = field(default_factory=_default_middleware)
    _request_local: threading.local = field(default_factory=threading.local, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.ignore_classes = [coerce_ignore_rule(rule) for rule in self.ignore_classes]
        self.project_root = _normalize_root(self.project_root)

    def should_notify(self) -> bool:
        if not self.enabled:
            return False
        if self.notify_release_stages is None:
            return True
        return self.release_stage in self.notify_release_stages

    def update(self, **settings: Any) -> "Configuration":
        known = {item.name for item in fields(self) if item.init}
        for name, value in settings.items():
            if name not in known:
                raise ValueError(f"Unknown configuration setting '{name}'")
            setattr(self, name, value)
        self.__post_init__()
        return self

    @property
    def request_data(self) -> dict[str, Any]:
        """Per-thread data about the request being handled, keyed by tab name."""
        data = getattr(self._request_local, "data", None)
        if data is None:
            data = {}
            self._request_local.data = data
        return data

    def set_request_data(self, key: str, value: Any) -> None:
        self.request_data[key] = value

    def clear_request_data(self) -> None:
        self._request_local.data = {}


def _normalize_root(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text.rstrip("/\\") or text


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be provided as a list of strings")
    result: list[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ValueError(f"'{field_name}[{index}]' must be a string")
        stripped = entry.strip()
        if stripped:
            result.append(stripped)
    return result


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    merged = dict(data)
    for name, env_name in _ENV_STRINGS.items():
        value = env_str(env_name)
        if value is not None:
            merged[name] = value
    for name, env_name in _ENV_BOOLS.items():
        flag = env_bool(env_name)
        if flag is not None:
            merged[name] = flag
    for name, env_name in _ENV_LISTS.items():
        items = env_list(env_name)
        if items is not None:
            merged[name] = items
    return merged


def _build_configuration(data: dict[str, Any]) -> Configuration:
    unknown = sorted(set(data) - set(_STRING_FIELDS) - set(_BOOL_FIELDS) - set(_LIST_FIELDS))
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for name in _STRING_FIELDS:
        if data.get(name) is None:
            continue
        value = data[name]
        if name == "app_version" and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            raise ValueError(f"'{name}' must be a string")
        kwargs[name] = value.strip()

    for name in _BOOL_FIELDS:
        if data.get(name) is None:
            continue
        if not isinstance(data[name], bool):
            raise ValueError(f"'{name}' must be a boolean")
        kwargs[name] = data[name]

    if data.get("notify_release_stages") is not None:
        kwargs["notify_release_stages"] = _ensure_string_list(
            data["notify_release_stages"], field_name="notify_release_stages"
        )
    if data.get("params_filters") is not None:
        kwargs["params_filters"] = _ensure_string_list(data["params_filters"], field_name="params_filters")
    if data.get("ignore_classes") is not None:
        kwargs["ignore_classes"] = _ensure_string_list(data["ignore_classes"], field_name="ignore_classes")

    return Configuration(**kwargs)


def load_configuration(path: Optional[Path] = None, **overrides: Any) -> Configuration:
    """Build a configuration from an optional YAML file, the environment and keyword overrides.

    Later sources win: file values, then ``FAULTLINE_*`` environment variables,
    then ``overrides``. Overrides are applied without file-level validation so
    callables (ignore predicates, callbacks) can be passed directly.
    """
    data = load_yaml_mapping(path) if path is not None else {}
    configuration = _build_configuration(_apply_env_overrides(data))
    if overrides:
        configuration.update(**overrides)
    return configuration
