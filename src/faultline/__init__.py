"""Faultline error-reporting notifier.

The package is organized into focused modules:

- **notification**: Exception-chain unwrapping, metadata merging and payload assembly
- **middleware**: The ordered, fault-isolating middleware stack and built-in middleware
- **stacktrace**: Frame parsing, path cleanup and in-project detection
- **delivery**: Size-bounded serialization and the HTTP POST to the endpoint
- **config**: The ``Configuration`` dataclass and YAML/environment loading

Typical use:

    import faultline

    faultline.configure(api_key="0123456789abcdef0123456789abcdef", release_stage="production")

    try:
        process_order()
    except Exception as exc:
        faultline.notify(exc, {"context": "orders#process"})
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Optional

from .config import Configuration, ExactClassMatch, Predicate, load_configuration
from .meta_data import MetaData
from .middleware import Middleware, MiddlewareStack
from .notification import Notification
from .version import __version__

LOGGER = logging.getLogger(__name__)
LOGGER.addHandler(logging.NullHandler())

_configuration: Optional[Configuration] = None
_configuration_lock = threading.Lock()


def configuration() -> Configuration:
    """Return the process-wide configuration, loading it from the environment on first use."""
    global _configuration
    if _configuration is None:
        with _configuration_lock:
            if _configuration is None:
                _configuration = load_configuration()
    return _configuration


def configure(**settings: Any) -> Configuration:
    return configuration().update(**settings)


def notify(
    exception: Any,
    overrides: Optional[Mapping[str, Any]] = None,
    request_data: Optional[Mapping[str, Any]] = None,
) -> None:
    """Report ``exception``. Never raises; failures are logged."""
    try:
        notification = Notification(exception, configuration(), overrides, request_data)
        if notification.ignore():
            LOGGER.debug("Ignoring %s", notification.exceptions[-1].__class__.__name__)
            return
        notification.deliver()
    except Exception as exc:  # noqa: BLE001 - reporting must never raise into the host
        LOGGER.warning("Failed to notify: %s", exc, exc_info=True)


def auto_notify(
    exception: Any,
    overrides: Optional[Mapping[str, Any]] = None,
    request_data: Optional[Mapping[str, Any]] = None,
) -> None:
    """Report an exception caught by an integration, unless auto notification is off."""
    if configuration().auto_notify:
        notify(exception, overrides, request_data)


def before_notify_callbacks() -> list[Callable[..., Any]]:
    return configuration().before_notify_callbacks


def set_request_data(key: str, value: Any) -> None:
    configuration().set_request_data(key, value)


def clear_request_data() -> None:
    configuration().clear_request_data()


__all__ = [
    "__version__",
    "Configuration",
    "ExactClassMatch",
    "MetaData",
    "Middleware",
    "MiddlewareStack",
    "Notification",
    "Predicate",
    "auto_notify",
    "before_notify_callbacks",
    "clear_request_data",
    "configuration",
    "configure",
    "load_configuration",
    "notify",
    "set_request_data",
]
